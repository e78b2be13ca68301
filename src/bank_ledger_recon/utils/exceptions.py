"""Custom exceptions for the reconciliation engine."""

from typing import Optional


class ReconciliationError(Exception):
    """Base exception for reconciliation errors."""

    pass


class NotFoundError(ReconciliationError):
    """Referenced bank transaction or ledger entry does not exist."""

    def __init__(self, kind: str, identifier: str):
        self.kind = kind
        self.identifier = identifier
        super().__init__(f"{kind} not found: {identifier}")


class InvalidStateTransitionError(ReconciliationError):
    """Action attempted from a status that does not permit it."""

    def __init__(self, action: str, current_status, reason: Optional[str] = None):
        self.action = action
        self.current_status = current_status
        self.reason = reason
        status_value = getattr(current_status, "value", current_status)
        message = f"Cannot {action} a transaction in status {status_value}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class ExclusivityViolationError(ReconciliationError):
    """Ledger entry is already linked to a different bank transaction."""

    def __init__(self, entry_id: str, holder_id: Optional[str] = None):
        self.entry_id = entry_id
        self.holder_id = holder_id
        message = f"Ledger entry {entry_id} is already linked"
        if holder_id:
            message = f"{message} to transaction {holder_id}"
        super().__init__(message)


class MalformedInputError(ReconciliationError):
    """Record from the import collaborator is missing or has unparseable fields."""

    pass


class ConfigurationError(ReconciliationError):
    """Error in configuration."""

    pass
