"""End-to-end tests of the GraphSessionManager facade against a mocked driver."""

from unittest.mock import AsyncMock

import pytest
from neo4j.time import DateTime

from graphsession import GraphSessionManager
from graphsession.exceptions import GraphSessionCloseError
from tests.driver_fakes import DriverError, make_result, make_transaction


@pytest.mark.asyncio
async def test_full_lifecycle(driver_factory, connection_params):
    async with GraphSessionManager(driver_factory=driver_factory) as manager:
        result = await manager.open_connection(connection_params)
        assert result.error is False

        session = await manager.open_write_session("main")
        created = DateTime(2024, 3, 15, 10, 30, 0, 0)
        session.handle.begin_transaction = AsyncMock(
            return_value=make_transaction([{"created": created}])
        )
        rows = await manager.transaction(session, "CREATE (n {created: datetime()}) RETURN n.created AS created")
        assert rows[0]["created"]["unixTZO"] == 1710498600000

        reader = await manager.open_read_session("main")
        reader.handle.run = AsyncMock(return_value=make_result([{"count": 1}]))
        assert await manager.query(reader, "MATCH (n) RETURN count(n) AS count") == [{"count": 1}]

        assert await manager.close_session(session) is True
        assert reader.session_id == 1

    assert len(manager.connections) == 0
    driver = driver_factory.drivers[0]
    driver.close.assert_awaited_once()
    reader.handle.close.assert_awaited_once()


@pytest.mark.asyncio
async def test_session_context_manager_closes_session(manager):
    async with manager.session("main", "write") as session:
        assert manager.sessions.get_session("main", session.session_id) is session

    session.handle.close.assert_awaited_once()
    assert manager.sessions.open_sessions("main") == []


@pytest.mark.asyncio
async def test_session_context_manager_closes_on_error(manager):
    with pytest.raises(RuntimeError):
        async with manager.session("main") as session:
            raise RuntimeError("caller failed")

    session.handle.close.assert_awaited_once()


@pytest.mark.asyncio
async def test_exit_without_connections_is_quiet(driver_factory):
    async with GraphSessionManager(driver_factory=driver_factory) as manager:
        pass

    assert len(manager.connections) == 0
    driver_factory.assert_not_called()


@pytest.mark.asyncio
async def test_close_connection_cascades_to_sessions(manager):
    first = await manager.open_read_session("main")
    second = await manager.open_write_session("main")

    assert await manager.close_connection("main") is True

    first.handle.close.assert_awaited_once()
    second.handle.close.assert_awaited_once()
    # The session was already released with its connection.
    assert await manager.close_session(first) is True
    first.handle.close.assert_awaited_once()


@pytest.mark.asyncio
async def test_session_close_failure_keeps_block_exception(manager):
    with pytest.raises(KeyError, match="body"):
        async with manager.session("main", "write") as session:
            session.handle.close = AsyncMock(side_effect=DriverError(None, "socket closed"))
            raise KeyError("body")

    session.handle.close.assert_awaited_once()
    assert manager.sessions.open_sessions("main") == []


@pytest.mark.asyncio
async def test_session_close_failure_raised_when_block_succeeds(manager):
    with pytest.raises(GraphSessionCloseError) as exc_info:
        async with manager.session("main") as session:
            session.handle.close = AsyncMock(side_effect=DriverError(None, "socket closed"))

    assert "main session 0" in exc_info.value.failures


@pytest.mark.asyncio
async def test_exit_close_failure_keeps_block_exception(driver_factory, connection_params):
    with pytest.raises(KeyError, match="body"):
        async with GraphSessionManager(driver_factory=driver_factory) as manager:
            await manager.open_connection(connection_params)
            driver_factory.drivers[0].close = AsyncMock(side_effect=RuntimeError("socket closed"))
            raise KeyError("body")

    assert len(manager.connections) == 0
    driver_factory.drivers[0].close.assert_awaited_once()


@pytest.mark.asyncio
async def test_exit_close_failure_raised_when_block_succeeds(driver_factory, connection_params):
    with pytest.raises(GraphSessionCloseError) as exc_info:
        async with GraphSessionManager(driver_factory=driver_factory) as manager:
            await manager.open_connection(connection_params)
            driver_factory.drivers[0].close = AsyncMock(side_effect=RuntimeError("socket closed"))

    assert list(exc_info.value.failures) == ["main driver"]
