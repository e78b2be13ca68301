"""Similarity, scoring, candidate search and classification."""

from .candidates import CandidateFinder
from .classifier import StatusClassifier
from .scoring import ConfidenceScorer, ledger_amount_for
from .similarity import levenshtein, similarity

__all__ = [
    "CandidateFinder",
    "StatusClassifier",
    "ConfidenceScorer",
    "ledger_amount_for",
    "levenshtein",
    "similarity",
]
