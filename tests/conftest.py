from typing import Any, Dict, List
from unittest.mock import AsyncMock, MagicMock

import pytest

from graphsession import GraphSessionManager
from tests.driver_fakes import make_session_handle


@pytest.fixture
def driver_factory() -> MagicMock:
    """Driver factory recording every driver it builds in ``factory.drivers``."""
    drivers: List[MagicMock] = []

    def build(uri: str, auth: Any = None, **options: Any) -> MagicMock:
        driver = MagicMock(name=f"driver({uri})")
        driver.session = MagicMock(side_effect=make_session_handle)
        driver.close = AsyncMock()
        drivers.append(driver)
        return driver

    factory = MagicMock(side_effect=build)
    factory.drivers = drivers
    return factory


@pytest.fixture
def connection_params() -> Dict[str, Any]:
    return {
        "alias": "main",
        "uri": "bolt://localhost:7687",
        "database": "neo4j",
        "user": "neo4j",
        "password": "test_password",  # pragma: allowlist secret
    }


@pytest.fixture
async def manager(driver_factory, connection_params) -> GraphSessionManager:
    """Manager with the ``main`` connection already open."""
    manager = GraphSessionManager(driver_factory=driver_factory)
    result = await manager.open_connection(connection_params)
    assert result.error is False
    return manager
