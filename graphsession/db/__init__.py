"""
Connection, session and transaction lifecycle.

Provides:
- ConnectionRegistry: named connections owning a driver each
- SessionRegistry: read/write sessions keyed by (alias, session id)
- QueryExecutor: auto-commit queries
- TransactionCoordinator: explicit transactions with one deadlock retry
"""

from .connection_registry import Connection, ConnectionRegistry, ConnectionResult
from .query_executor import QueryExecutor
from .session_registry import AccessMode, Session, SessionRegistry
from .transaction_coordinator import (
    DEADLOCK_ERROR_CODE,
    ErrorKind,
    TransactionCoordinator,
    TransactionOutcome,
    classify_error,
)

__all__ = [
    "AccessMode",
    "Connection",
    "ConnectionRegistry",
    "ConnectionResult",
    "DEADLOCK_ERROR_CODE",
    "ErrorKind",
    "QueryExecutor",
    "Session",
    "SessionRegistry",
    "TransactionCoordinator",
    "TransactionOutcome",
    "classify_error",
]
