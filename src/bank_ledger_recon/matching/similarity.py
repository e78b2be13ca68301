"""
Text similarity for bank and ledger descriptions.
"""

# Score for one description containing the other. Statement descriptions
# often truncate or pad the ledger text.
CONTAINMENT_SCORE = 0.8


def normalize_text(text: str) -> str:
    """Trim and case-fold a description."""
    return (text or "").strip().casefold()


def levenshtein(a: str, b: str) -> int:
    """
    Edit distance with unit costs for insertion, deletion and substitution.

    Args:
        a: First string
        b: Second string

    Returns:
        Minimum number of edits turning a into b
    """
    if len(a) < len(b):
        a, b = b, a
    if not b:
        return len(a)

    previous = list(range(len(b) + 1))
    for i, char_a in enumerate(a, start=1):
        current = [i]
        for j, char_b in enumerate(b, start=1):
            cost = 0 if char_a == char_b else 1
            current.append(
                min(
                    previous[j] + 1,  # deletion
                    current[j - 1] + 1,  # insertion
                    previous[j - 1] + cost,  # substitution
                )
            )
        previous = current

    return previous[-1]


def similarity(a: str, b: str) -> float:
    """
    Similarity between two descriptions in [0, 1].

    Exact match after normalization scores 1.0, an empty side scores 0.0,
    containment either way scores CONTAINMENT_SCORE, anything else scores
    one minus the edit distance over the longer length.
    """
    s1 = normalize_text(a)
    s2 = normalize_text(b)

    if s1 == s2:
        return 1.0
    if not s1 or not s2:
        return 0.0
    if s1 in s2 or s2 in s1:
        return CONTAINMENT_SCORE

    return 1.0 - levenshtein(s1, s2) / max(len(s1), len(s2))
