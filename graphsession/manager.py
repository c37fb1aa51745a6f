"""
Graph Session Manager

Single entry point wiring the connection and session registries to the query
executor and transaction coordinator.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, Mapping, Optional, Union

import structlog

from .config_manager import ConnectionParams
from .db import (
    AccessMode,
    ConnectionRegistry,
    ConnectionResult,
    QueryExecutor,
    Session,
    SessionRegistry,
    TransactionCoordinator,
)
from .db.connection_registry import DriverFactory
from .exceptions import GraphSessionCloseError

logger = structlog.get_logger(__name__)


class GraphSessionManager:
    """
    Manages named graph database connections and the sessions opened on them.

    Example:
        ```python
        async with GraphSessionManager() as manager:
            await manager.open_connection(
                alias="main", uri="bolt://localhost:7687", database="neo4j",
                user="neo4j", password="secret",
            )
            async with manager.session("main", "read") as session:
                rows = await manager.query(session, "MATCH (n) RETURN n LIMIT 5")
        # every connection is closed when the block exits
        ```
    """

    def __init__(self, driver_factory: Optional[DriverFactory] = None) -> None:
        self.connections = ConnectionRegistry(driver_factory)
        self.sessions = SessionRegistry(self.connections)
        self.executor = QueryExecutor(self.connections)
        self.coordinator = TransactionCoordinator(self.connections)

    async def open_connection(
        self,
        params: Union[ConnectionParams, Mapping[str, Any], None] = None,
        **kwargs: Any,
    ) -> ConnectionResult:
        return await self.connections.open_connection(params, **kwargs)

    async def close_connection(self, alias: Optional[str] = None) -> bool:
        return await self.connections.close_connection(alias)

    async def open_session(self, alias: str, mode: Union[AccessMode, str]) -> Session:
        return await self.sessions.open_session(alias, mode)

    async def open_read_session(self, alias: str) -> Session:
        return await self.sessions.open_read_session(alias)

    async def open_write_session(self, alias: str) -> Session:
        return await self.sessions.open_write_session(alias)

    async def close_session(self, session: Session) -> bool:
        return await self.sessions.close_session(session)

    @asynccontextmanager
    async def session(
        self, alias: str, mode: Union[AccessMode, str] = AccessMode.READ
    ) -> AsyncGenerator[Session, None]:
        """
        Open a session for the duration of an ``async with`` block.

        A failure to close the session is raised only when the block itself
        succeeded; otherwise it is logged and the block's exception propagates.
        """
        session = await self.open_session(alias, mode)
        body_failed = False
        try:
            yield session
        except BaseException:
            body_failed = True
            raise
        finally:
            try:
                await self.close_session(session)
            except GraphSessionCloseError as e:
                if not body_failed:
                    raise
                logger.warning(f"Error closing session after failed block: {e}")

    async def query(
        self, session: Session, cypher: str, params: Optional[Dict[str, Any]] = None
    ) -> Any:
        return await self.executor.query(session, cypher, params)

    async def transaction(
        self, session: Session, cypher: str, params: Optional[Dict[str, Any]] = None
    ) -> Any:
        return await self.coordinator.transaction(session, cypher, params)

    async def __aenter__(self) -> "GraphSessionManager":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Close every connection still open."""
        if not len(self.connections):
            return
        try:
            await self.close_connection()
        except GraphSessionCloseError as e:
            if exc_type is None:
                raise
            logger.warning(f"Error closing graph connections after failure: {e}")
            return
        logger.info("All graph connections closed")
