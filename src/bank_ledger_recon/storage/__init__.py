"""Transaction and ledger stores."""

from .base import LedgerStore, ReconciliationStore, ReconciliationUpdate, TransactionStore
from .memory import InMemoryStore
from .sql import SqlStore

__all__ = [
    "LedgerStore",
    "ReconciliationStore",
    "ReconciliationUpdate",
    "TransactionStore",
    "InMemoryStore",
    "SqlStore",
]
