"""
Connection Registry.

Keeps named connections. Each connection owns one neo4j driver (pooling is
left to the driver) and the sessions opened against it.

Connection Lifecycle:
    1. ``open_connection`` validates parameters and builds a driver
    2. Sessions are opened and closed through ``SessionRegistry``
    3. ``close_connection`` closes the remaining sessions, then the driver
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Mapping, Optional, Union

import structlog
from neo4j import AsyncGraphDatabase, basic_auth

from ..config_manager import ConnectionParams
from ..exceptions import GraphSessionCloseError, UnknownConnectionError

if TYPE_CHECKING:
    from .session_registry import Session

logger = structlog.get_logger(__name__)

DriverFactory = Callable[..., Any]


@dataclass
class ConnectionResult:
    """Outcome of ``open_connection``; validation failures are reported here."""

    error: bool = False
    error_text: List[str] = field(default_factory=list)

    @classmethod
    def failed(cls, messages: List[str]) -> "ConnectionResult":
        return cls(error=True, error_text=list(messages))


@dataclass
class Connection:
    """A named driver bound to one database."""

    alias: str
    database: str
    driver: Any = field(repr=False)
    retry_deadlock: bool = True
    scrub_results: bool = True
    session_counter: int = 0
    sessions: Dict[int, "Session"] = field(default_factory=dict, repr=False)

    def next_session_id(self) -> int:
        # No await between read and increment, so ids are unique per event loop.
        session_id = self.session_counter
        self.session_counter += 1
        return session_id

    async def close(self) -> Dict[str, BaseException]:
        """
        Close every open session, then the driver.

        Returns:
            Failures keyed by the resource that failed to close
        """
        sessions = list(self.sessions.values())
        self.sessions.clear()
        results = await asyncio.gather(
            *(session.handle.close() for session in sessions), return_exceptions=True
        )

        failures: Dict[str, BaseException] = {}
        for session, result in zip(sessions, results):
            if isinstance(result, BaseException):
                logger.warning(
                    f"Error closing session {self.alias}#{session.session_id}: {result}"
                )
                failures[f"{self.alias} session {session.session_id}"] = result

        try:
            await self.driver.close()
        except Exception as e:
            logger.warning(f"Error closing driver for {self.alias}: {e}")
            failures[f"{self.alias} driver"] = e
        return failures


class ConnectionRegistry:
    """
    Registry of named connections.

    Example:
        registry = ConnectionRegistry()
        result = await registry.open_connection(
            alias="main", uri="bolt://localhost:7687", database="neo4j",
            user="neo4j", password="secret",
        )
        if result.error:
            print(result.error_text)
    """

    def __init__(self, driver_factory: Optional[DriverFactory] = None) -> None:
        """
        Args:
            driver_factory: Callable building a driver from ``(uri, auth=...,
                **driver_options)``. Defaults to ``AsyncGraphDatabase.driver``.
        """
        self._driver_factory = driver_factory or AsyncGraphDatabase.driver
        self._connections: Dict[str, Connection] = {}

    def __contains__(self, alias: object) -> bool:
        return alias in self._connections

    def __len__(self) -> int:
        return len(self._connections)

    def aliases(self) -> List[str]:
        return list(self._connections)

    def find_connection(self, alias: str) -> Optional[Connection]:
        return self._connections.get(alias)

    def get_connection(self, alias: str) -> Connection:
        """
        Resolve a registered connection.

        Raises:
            UnknownConnectionError: If nothing is registered under ``alias``
        """
        connection = self._connections.get(alias)
        if connection is None:
            raise UnknownConnectionError(alias)
        return connection

    async def open_connection(
        self,
        params: Union[ConnectionParams, Mapping[str, Any], None] = None,
        **kwargs: Any,
    ) -> ConnectionResult:
        """
        Validate parameters, build a driver and register it under its alias.

        Parameters may be given as a mapping, a ``ConnectionParams`` instance or
        keyword arguments. Invalid parameters and driver construction failures
        are returned as a failed ``ConnectionResult``; nothing is registered.
        An alias that is already open is closed and replaced.
        """
        if isinstance(params, ConnectionParams):
            raw: Union[ConnectionParams, Dict[str, Any]] = params
        else:
            raw = {**(params or {}), **kwargs}

        validated, messages = ConnectionParams.validate_params(raw)
        if validated is None:
            logger.warning(f"Rejected connection parameters: {', '.join(messages)}")
            return ConnectionResult.failed(messages)

        try:
            driver = self._driver_factory(
                validated.uri,
                auth=basic_auth(validated.user, validated.password),
                **validated.driver_options(),
            )
        except Exception as e:
            code = getattr(e, "code", None) or type(e).__name__
            logger.error(
                f"Failed to create driver for {validated.alias} "
                f"({validated.get_connection_string()}): {e}"
            )
            return ConnectionResult.failed([code])

        previous = self._connections.pop(validated.alias, None)
        if previous is not None:
            logger.warning(
                f"Connection {validated.alias} already open, closing existing driver"
            )
            failures = await previous.close()
            if failures:
                logger.warning(
                    f"Replaced connection {validated.alias} with {len(failures)} "
                    f"resource(s) not closed cleanly: {', '.join(sorted(failures))}"
                )

        self._connections[validated.alias] = Connection(
            alias=validated.alias,
            database=validated.database,
            driver=driver,
            retry_deadlock=validated.retry_deadlock,
            scrub_results=validated.scrub_results,
        )
        logger.info(
            f"Opened connection {validated.alias} -> {validated.get_connection_string()}"
        )
        return ConnectionResult()

    async def close_connection(self, alias: Optional[str] = None) -> bool:
        """
        Close one connection, or every connection when ``alias`` is None.

        Open sessions are closed before the driver. Cleanup carries on past
        individual failures, which are then reported together.

        Raises:
            UnknownConnectionError: If ``alias`` is not registered
            GraphSessionCloseError: If any session or driver failed to close
        """
        if alias is None:
            targets = list(self._connections)
        elif alias in self._connections:
            targets = [alias]
        else:
            raise UnknownConnectionError(alias)

        failures: Dict[str, BaseException] = {}
        for name in targets:
            connection = self._connections.pop(name)
            failures.update(await connection.close())
            logger.info(f"Closed connection {name}")

        if failures:
            raise GraphSessionCloseError(
                f"{len(failures)} resource(s) failed to close", failures=failures
            )
        return True
