"""Mock stand-ins for the neo4j async driver objects used across the tests."""

from typing import Any, Dict, List, Optional
from unittest.mock import AsyncMock, MagicMock

from neo4j import EagerResult, Record

DEADLOCK = "Neo.TransientError.Transaction.DeadlockDetected"


class DriverError(Exception):
    """Stand-in for a neo4j error carrying a status code."""

    def __init__(self, code: Optional[str], message: str = "driver failure") -> None:
        super().__init__(message)
        self.code = code


def make_eager_result(rows: Optional[List[Dict[str, Any]]] = None) -> EagerResult:
    rows = rows or []
    records = [Record(row) for row in rows]
    keys = list(rows[0]) if rows else []
    return EagerResult(records, MagicMock(name="summary"), keys)


def make_result(rows: Optional[List[Dict[str, Any]]] = None) -> MagicMock:
    """Mock of the driver's AsyncResult."""
    result = MagicMock(name="result")
    result.to_eager_result = AsyncMock(return_value=make_eager_result(rows))
    return result


def make_transaction(
    rows: Optional[List[Dict[str, Any]]] = None, error: Optional[Exception] = None
) -> MagicMock:
    """Mock of the driver's AsyncTransaction."""
    tx = MagicMock(name="transaction")
    if error is not None:
        tx.run = AsyncMock(side_effect=error)
    else:
        tx.run = AsyncMock(return_value=make_result(rows))
    tx.commit = AsyncMock()
    tx.rollback = AsyncMock()
    return tx


def make_session_handle(**config: Any) -> MagicMock:
    """Mock of the driver's AsyncSession."""
    handle = MagicMock(name="session")
    handle.config = config
    handle.run = AsyncMock(return_value=make_result())
    handle.begin_transaction = AsyncMock(side_effect=lambda: make_transaction())
    handle.close = AsyncMock()
    return handle
