"""Shared test fixtures for alpaca-trade."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from pathlib import Path

import httpx
import pytest
import structlog
from hypothesis import HealthCheck, settings

from alpaca_trade.config import RESTConfig
from tests.mock_http import Handler, RecordingTransport

_APCA_ENV_VARS = (
    "APCA_API_KEY_ID",
    "APCA_API_SECRET_KEY",
    "APCA_API_BASE_URL",
    "APCA_API_DATA_URL",
    "APCA_API_RETRY_MAX",
    "APCA_API_RETRY_WAIT",
    "APCA_API_RETRY_CODES",
)

# Hypothesis builds its unicode character table on first use, which trips
# the too_slow health check on a cold cache.
settings.register_profile("default", suppress_health_check=[HealthCheck.too_slow])
settings.load_profile("default")

MockHttp = Callable[[Handler], tuple[httpx.Client, RecordingTransport]]


@pytest.fixture(autouse=True)
def _clean_apca_env(
    request: pytest.FixtureRequest,
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
) -> None:
    """Keep the developer's APCA_API_* variables and .env out of unit tests."""
    if request.node.get_closest_marker("integration"):
        return
    for name in _APCA_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def config() -> RESTConfig:
    """Config with dummy credentials and no backoff wait."""
    return RESTConfig(
        key_id="test-key",
        secret_key="test-secret",
        base_url="https://api.test",
        data_url="https://data.test",
        retry_max=3,
        retry_wait=0.0,
        retry_codes=[429, 504],
    )


@pytest.fixture
def sleeps(monkeypatch: pytest.MonkeyPatch) -> list[float]:
    """Record backoff sleeps instead of blocking."""
    recorded: list[float] = []
    monkeypatch.setattr("alpaca_trade.rest.time.sleep", recorded.append)
    return recorded


@pytest.fixture
def mock_http() -> Iterator[MockHttp]:
    """Factory for httpx clients backed by a recording mock transport."""
    clients: list[httpx.Client] = []

    def make(handler: Handler) -> tuple[httpx.Client, RecordingTransport]:
        transport = RecordingTransport(handler)
        client = httpx.Client(transport=transport)
        clients.append(client)
        return client, transport

    yield make

    for client in clients:
        client.close()


@pytest.fixture
def reset_logging() -> Iterator[None]:
    """Undo setup_logging so later tests do not write to a stale stream."""
    yield
    structlog.reset_defaults()
    logging.getLogger().handlers.clear()
