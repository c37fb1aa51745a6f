"""
graphsession

Session management and result normalization in front of the neo4j driver:
named connections, read/write sessions, auto-commit queries, transactions with
a single deadlock retry, and conversion of driver values into JSON-safe ones.
"""

from .config_manager import ConnectionParams, LoggingConfig
from .db import (
    AccessMode,
    ConnectionRegistry,
    ConnectionResult,
    ErrorKind,
    QueryExecutor,
    Session,
    SessionRegistry,
    TransactionCoordinator,
    TransactionOutcome,
)
from .exceptions import (
    ConfigurationError,
    GraphConnectionError,
    GraphDatabaseError,
    GraphQueryError,
    GraphSessionCloseError,
    GraphSessionError,
    GraphTransactionError,
    UnknownConnectionError,
)
from .manager import GraphSessionManager
from .normalization import normalize_params, normalize_result_set, normalize_value

__version__ = "0.1.0"

__all__ = [
    "AccessMode",
    "ConfigurationError",
    "ConnectionParams",
    "ConnectionRegistry",
    "ConnectionResult",
    "ErrorKind",
    "GraphConnectionError",
    "GraphDatabaseError",
    "GraphQueryError",
    "GraphSessionCloseError",
    "GraphSessionError",
    "GraphSessionManager",
    "GraphTransactionError",
    "LoggingConfig",
    "QueryExecutor",
    "Session",
    "SessionRegistry",
    "TransactionCoordinator",
    "TransactionOutcome",
    "UnknownConnectionError",
    "normalize_params",
    "normalize_result_set",
    "normalize_value",
]
