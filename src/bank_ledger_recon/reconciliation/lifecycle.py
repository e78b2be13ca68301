"""
Reconciliation status lifecycle.

All status checks go through check_transition; callers never compare
statuses themselves.
"""

from enum import Enum

from ..models.transaction import BankTransaction, ReconciliationStatus
from ..utils.exceptions import InvalidStateTransitionError

S = ReconciliationStatus


class Action(str, Enum):
    """Operations that change a transaction's reconciliation status."""

    CLASSIFY = "classify"
    CONFIRM = "confirm"
    MANUAL_MATCH = "manual_match"
    IGNORE = "ignore"
    UNMATCH = "unmatch"


# action -> (statuses it may start from, statuses it may end in)
TRANSITIONS: dict[Action, tuple[frozenset, frozenset]] = {
    Action.CLASSIFY: (
        frozenset({S.PENDING}),
        frozenset({S.MATCHED, S.TO_REVIEW, S.UNMATCHED}),
    ),
    # PENDING with a link is accepted so a repeated confirm stays harmless
    Action.CONFIRM: (
        frozenset({S.TO_REVIEW, S.PENDING}),
        frozenset({S.MATCHED}),
    ),
    Action.MANUAL_MATCH: (
        frozenset({S.PENDING, S.UNMATCHED, S.TO_REVIEW}),
        frozenset({S.MANUAL}),
    ),
    Action.IGNORE: (
        frozenset({S.PENDING, S.TO_REVIEW, S.UNMATCHED, S.IGNORED}),
        frozenset({S.IGNORED}),
    ),
    Action.UNMATCH: (
        frozenset({S.MATCHED, S.MANUAL, S.IGNORED}),
        frozenset({S.PENDING}),
    ),
}


def check_transition(
    action: Action, transaction: BankTransaction, target: ReconciliationStatus
) -> None:
    """
    Validate that action may move transaction to target.

    Args:
        action: Requested action
        transaction: Transaction as currently stored
        target: Status the action would write

    Raises:
        InvalidStateTransitionError: If the table forbids the move, or a
            confirm has no link to confirm
    """
    sources, targets = TRANSITIONS[action]

    if transaction.status not in sources:
        allowed = ", ".join(sorted(s.value for s in sources))
        raise InvalidStateTransitionError(
            action.value, transaction.status, reason=f"allowed from {allowed}"
        )

    if target not in targets:
        raise InvalidStateTransitionError(
            action.value,
            transaction.status,
            reason=f"{action.value} cannot produce {target.value}",
        )

    if action == Action.CONFIRM and not transaction.matched_entry_id:
        raise InvalidStateTransitionError(
            action.value, transaction.status, reason="nothing to confirm"
        )
