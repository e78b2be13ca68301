import pytest

from bank_ledger_recon.matching.similarity import (
    CONTAINMENT_SCORE,
    levenshtein,
    normalize_text,
    similarity,
)


class TestLevenshtein:
    def test_classic_example(self):
        assert levenshtein("kitten", "sitting") == 3

    def test_empty_side(self):
        assert levenshtein("", "abc") == 3
        assert levenshtein("abc", "") == 3

    def test_identical(self):
        assert levenshtein("fattura", "fattura") == 0

    def test_single_operations(self):
        assert levenshtein("abc", "abd") == 1  # substitution
        assert levenshtein("abc", "abcd") == 1  # insertion
        assert levenshtein("abcd", "acd") == 1  # deletion

    def test_suffix_only_difference(self):
        assert levenshtein("diverso", "acme srl") == 6


class TestSimilarity:
    def test_normalization(self):
        assert normalize_text("  ACME Srl ") == "acme srl"

    def test_equal_after_trim_and_case(self):
        assert similarity("  ACME SRL", "acme srl  ") == 1.0

    def test_empty_side_scores_zero(self):
        assert similarity("", "acme") == 0.0
        assert similarity("acme", "   ") == 0.0

    def test_containment_scores_fixed_value(self):
        assert similarity("ACME SRL", "PAGAMENTO FORNITORE ACME SRL") == CONTAINMENT_SCORE
        assert similarity("PAGAMENTO FORNITORE ACME SRL", "acme srl") == CONTAINMENT_SCORE

    def test_edit_distance_ratio(self):
        assert similarity("kitten", "sitting") == pytest.approx(1 - 3 / 7)

    def test_shared_prefix(self):
        score = similarity("Pagamento fornitore diverso", "PAGAMENTO FORNITORE ACME SRL")
        assert score == pytest.approx(1 - 6 / 28)

    @pytest.mark.parametrize(
        "a,b",
        [
            ("bonifico", "giroconto"),
            ("stipendio marzo", "fattura 123"),
            ("kitten", "sitting"),
        ],
    )
    def test_symmetric(self, a, b):
        assert similarity(a, b) == similarity(b, a)

    def test_range(self):
        assert 0.0 <= similarity("abc", "xyz") <= 1.0
        assert similarity("abc", "xyz") == 0.0
