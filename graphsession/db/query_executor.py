"""Auto-commit query execution against registered sessions."""

from __future__ import annotations

from typing import Any, Dict, Optional

import structlog

from ..exceptions import GraphQueryError
from ..normalization import normalize_result_set
from .connection_registry import ConnectionRegistry
from .session_registry import Session

logger = structlog.get_logger(__name__)


class QueryExecutor:
    """Runs single auto-commit statements; failures are raised, never retried."""

    def __init__(self, connections: ConnectionRegistry) -> None:
        self._connections = connections

    async def query(
        self,
        session: Session,
        cypher: str,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """
        Execute a single query on ``session``.

        Args:
            session: Session returned by ``SessionRegistry.open_session``
            cypher: Cypher statement
            params: Optional query parameters

        Returns:
            Normalized rows (or None when nothing matched) if the connection
            scrubs results, otherwise the driver's ``EagerResult``

        Raises:
            UnknownConnectionError: If the session's connection was closed
            GraphQueryError: If query execution fails
        """
        if params is None:
            params = {}
        connection = self._connections.get_connection(session.connection)

        try:
            result = await session.handle.run(cypher, params)
            eager_result = await result.to_eager_result()
        except Exception as e:
            logger.error(
                f"Query failed on {session.connection}#{session.session_id}: {e}"
            )
            raise GraphQueryError(
                f"Query execution failed: {e}",
                query=cypher,
                parameters=params,
                error_code=getattr(e, "code", None) or "GRAPH_QUERY_FAILED",
                cause=e,
            ) from e

        if connection.scrub_results:
            return normalize_result_set(eager_result)
        return eager_result
