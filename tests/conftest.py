"""
Root test configuration and fixtures for dormhub.

Client and workflow tests run against ``FakeDormServer`` (see
fixtures/fake_server.py), installed in place of the HTTP session's
``request`` method, so nothing touches the network.

Note: sys.path manipulation is handled here to ensure imports work correctly.
"""

from __future__ import annotations

import sys
from pathlib import Path
from unittest.mock import MagicMock

import pytest
import requests

# Add project root to path to allow imports
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from dormapi.client import DormApiConfig, SessionRoomClient  # noqa: E402
from dormhub.settings import get_settings  # noqa: E402
from tests.fixtures.fake_server import BASE_URL, FakeDormServer  # noqa: E402


@pytest.fixture(autouse=True)
def clear_settings_cache():
    """Settings are cached per process; start every test from a clean environment read."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def http() -> requests.Session:
    return requests.Session()


@pytest.fixture
def fake_server(http: requests.Session) -> FakeDormServer:
    """Route every request made through ``http`` to an in-memory server."""
    server = FakeDormServer(http)
    http.request = MagicMock(side_effect=server)  # type: ignore[method-assign]
    return server


@pytest.fixture
def api_config() -> DormApiConfig:
    return DormApiConfig(base_url=BASE_URL)


@pytest.fixture
def client(api_config: DormApiConfig, http: requests.Session, fake_server: FakeDormServer) -> SessionRoomClient:
    return SessionRoomClient(api_config, http=http)


@pytest.fixture
def logged_in(client: SessionRoomClient):
    """Client with a live session for a@x.com."""
    session = client.login("a@x.com", "secret")
    return client, session
