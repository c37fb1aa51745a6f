"""
Transaction Coordinator.

Runs a statement inside an explicit transaction. Each attempt moves through
STARTED -> RUNNING -> COMMITTED or ROLLED_BACK. An attempt that fails with a
deadlock is retried exactly once, in a fresh transaction, when the owning
connection allows it. Callers needing more retries must loop themselves.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

import structlog

from ..exceptions import GraphTransactionError, wrap_neo4j_exception
from ..normalization import normalize_result_set
from .connection_registry import ConnectionRegistry
from .session_registry import Session

logger = structlog.get_logger(__name__)

DEADLOCK_ERROR_CODE = "Neo.TransientError.Transaction.DeadlockDetected"


class ErrorKind(str, Enum):
    """Classification of a failed transaction attempt."""

    NONE = "none"
    DEADLOCK = "deadlock"
    OTHER = "other"


def classify_error(exc: BaseException) -> ErrorKind:
    if getattr(exc, "code", None) == DEADLOCK_ERROR_CODE:
        return ErrorKind.DEADLOCK
    return ErrorKind.OTHER


@dataclass
class TransactionOutcome:
    """Result of one transaction attempt."""

    success: bool
    payload: Any = None
    error_kind: ErrorKind = ErrorKind.NONE
    error: Optional[BaseException] = None
    rollback_error: Optional[BaseException] = None
    attempt: int = 1


class TransactionCoordinator:
    """Executes statements in explicit transactions with one deadlock retry."""

    def __init__(self, connections: ConnectionRegistry) -> None:
        self._connections = connections

    async def run_attempt(
        self, tx: Any, cypher: str, params: Dict[str, Any]
    ) -> TransactionOutcome:
        """
        Run ``cypher`` on an open transaction and commit it.

        On failure the transaction is rolled back. A failing rollback is logged
        and kept on the outcome rather than raised.
        """
        try:
            result = await tx.run(cypher, params)
            payload = await result.to_eager_result()
            await tx.commit()
        except Exception as e:
            outcome = TransactionOutcome(
                success=False, error_kind=classify_error(e), error=e
            )
            logger.warning(
                f"Transaction attempt failed ({outcome.error_kind.value}): {e}"
            )
            try:
                await tx.rollback()
            except Exception as rollback_error:
                logger.error(f"Rollback failed: {rollback_error}")
                outcome.rollback_error = rollback_error
            return outcome
        return TransactionOutcome(success=True, payload=payload)

    async def _attempt(
        self, session: Session, cypher: str, params: Dict[str, Any], attempt: int
    ) -> TransactionOutcome:
        try:
            tx = await session.handle.begin_transaction()
        except Exception as e:
            raise wrap_neo4j_exception(
                e,
                context={
                    "alias": session.connection,
                    "session_id": session.session_id,
                    "operation": "begin_transaction",
                },
            ) from e
        outcome = await self.run_attempt(tx, cypher, params)
        outcome.attempt = attempt
        return outcome

    async def execute(
        self,
        session: Session,
        cypher: str,
        params: Optional[Dict[str, Any]] = None,
    ) -> TransactionOutcome:
        """
        Run the transaction and return the final attempt's outcome.

        Never raises for statement failures; inspect ``success`` and
        ``error_kind`` instead.

        Raises:
            UnknownConnectionError: If the session's connection was closed
            GraphDatabaseError: If a transaction cannot be started
        """
        if params is None:
            params = {}
        connection = self._connections.get_connection(session.connection)

        outcome = await self._attempt(session, cypher, params, attempt=1)
        if (
            not outcome.success
            and outcome.error_kind is ErrorKind.DEADLOCK
            and connection.retry_deadlock
        ):
            logger.warning(
                f"Deadlock on {session.connection}#{session.session_id}, retrying once"
            )
            outcome = await self._attempt(session, cypher, params, attempt=2)
        return outcome

    async def transaction(
        self,
        session: Session,
        cypher: str,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """
        Run ``cypher`` in a transaction and return its committed result.

        Returns:
            Normalized rows (or None when nothing matched) if the connection
            scrubs results, otherwise the driver's ``EagerResult``

        Raises:
            GraphTransactionError: If the final attempt did not commit; the
                outcome is available as ``exc.outcome``
        """
        outcome = await self.execute(session, cypher, params)
        if not outcome.success:
            raise GraphTransactionError(
                f"Transaction failed after {outcome.attempt} attempt(s): {outcome.error}",
                outcome=outcome,
                query=cypher,
                parameters=params,
            )

        connection = self._connections.get_connection(session.connection)
        if connection.scrub_results and outcome.payload is not None:
            return normalize_result_set(outcome.payload)
        return outcome.payload
