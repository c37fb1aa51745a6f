"""
Session Registry.

Opens read/write sessions against registered connections and tracks them by
``(alias, session_id)`` until they are closed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional, Tuple, Union

import structlog
from neo4j import READ_ACCESS, WRITE_ACCESS

from ..exceptions import GraphSessionCloseError, wrap_neo4j_exception
from .connection_registry import ConnectionRegistry

logger = structlog.get_logger(__name__)


class AccessMode(str, Enum):
    """Default access mode of a session."""

    READ = "read"
    WRITE = "write"

    @classmethod
    def _missing_(cls, value: object) -> Optional["AccessMode"]:
        if isinstance(value, str):
            return cls.__members__.get(value.upper())
        return None

    @property
    def driver_mode(self) -> str:
        return READ_ACCESS if self is AccessMode.READ else WRITE_ACCESS


@dataclass
class Session:
    """A driver session registered under its connection alias and id."""

    connection: str
    mode: AccessMode
    session_id: int
    handle: Any = field(repr=False, compare=False)

    @property
    def key(self) -> Tuple[str, int]:
        return (self.connection, self.session_id)


class SessionRegistry:
    """Allocates and releases sessions on connections owned by a ConnectionRegistry."""

    def __init__(self, connections: ConnectionRegistry) -> None:
        self._connections = connections

    async def open_session(self, alias: str, mode: Union[AccessMode, str]) -> Session:
        """
        Open a session on the connection registered as ``alias``.

        Args:
            alias: Connection alias
            mode: ``read`` or ``write``

        Returns:
            Session: The registered session record

        Raises:
            UnknownConnectionError: If ``alias`` is not registered
            ValueError: If ``mode`` is not a known access mode
        """
        mode = AccessMode(mode)
        connection = self._connections.get_connection(alias)
        try:
            handle = connection.driver.session(
                database=connection.database,
                default_access_mode=mode.driver_mode,
            )
        except Exception as e:
            raise wrap_neo4j_exception(
                e, context={"alias": alias, "operation": "open_session"}
            ) from e

        session = Session(
            connection=alias,
            mode=mode,
            session_id=connection.next_session_id(),
            handle=handle,
        )
        connection.sessions[session.session_id] = session
        logger.debug(f"Opened {mode.value} session {alias}#{session.session_id}")
        return session

    async def open_read_session(self, alias: str) -> Session:
        return await self.open_session(alias, AccessMode.READ)

    async def open_write_session(self, alias: str) -> Session:
        return await self.open_session(alias, AccessMode.WRITE)

    def get_session(self, alias: str, session_id: int) -> Optional[Session]:
        connection = self._connections.find_connection(alias)
        if connection is None:
            return None
        return connection.sessions.get(session_id)

    def open_sessions(self, alias: str) -> List[Session]:
        connection = self._connections.find_connection(alias)
        return list(connection.sessions.values()) if connection else []

    async def close_session(self, session: Session) -> bool:
        """
        Close a session if it is still registered.

        Closing an unknown or already closed session is a no-op.

        Raises:
            GraphSessionCloseError: If the driver fails to close the session
        """
        registered = self.get_session(session.connection, session.session_id)
        if registered is None or registered.handle is not session.handle:
            return True

        del self._connections.get_connection(session.connection).sessions[
            session.session_id
        ]
        try:
            await registered.handle.close()
        except Exception as e:
            logger.warning(
                f"Error closing session {session.connection}#{session.session_id}: {e}"
            )
            raise GraphSessionCloseError(
                f"Failed to close session {session.connection}#{session.session_id}",
                failures={f"{session.connection} session {session.session_id}": e},
                cause=e,
            ) from e
        logger.debug(f"Closed session {session.connection}#{session.session_id}")
        return True
