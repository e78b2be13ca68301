"""Reconciliation lifecycle, actions, batch runs and review views."""

from .actions import ReconciliationActions
from .batch import BatchReconciler
from .lifecycle import Action, TRANSITIONS, check_transition
from .review import ReconciliationReview

__all__ = [
    "ReconciliationActions",
    "BatchReconciler",
    "Action",
    "TRANSITIONS",
    "check_transition",
    "ReconciliationReview",
]
