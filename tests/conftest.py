"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import Callable

import httpx
import pytest

from healthwatch.health.models import Command, Config, Grace, Request

Handler = Callable[[httpx.Request], httpx.Response]


@pytest.fixture
def grace() -> Grace:
    return Grace(
        check_interval_ms=100,
        check_interval_failed_ms=50,
        retry_count=3,
        timeout_ms=1_000,
        wait_after_command_ms=500,
    )


@pytest.fixture
def config(grace: Grace) -> Config:
    """A GET probe against example.test with a no-op command."""
    return Config(
        request=Request(method="GET", url="http://example.test/health"),
        command=Command(command="true"),
        grace=grace,
    )


@pytest.fixture
def mock_client() -> Callable[[Handler], httpx.AsyncClient]:
    """Factory for an AsyncClient whose requests are answered by ``handler``."""

    def _make(handler: Handler) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(handler), follow_redirects=True)

    return _make
