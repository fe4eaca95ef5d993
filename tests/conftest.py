"""
Pytest configuration for vairified tests.

HTTP calls never leave the process: ``MockApi`` serves canned responses
through ``httpx.MockTransport`` and records every request it receives.
"""

from __future__ import annotations

from typing import Any, Callable, Optional

import httpx
import pytest

from vairified import Vairified

API_KEY = "vair_pk_test123456789"
BASE_URL = "https://api.test.vairified.com/api/v1"
API_PREFIX = "/api/v1"

ENV_VARS = (
    "VAIRIFIED_API_KEY",
    "VAIRIFIED_ENV",
    "VAIRIFIED_BASE_URL",
    "VAIRIFIED_TIMEOUT",
    "VAIRIFIED_LOG_LEVEL",
)

Handler = Callable[[httpx.Request], Any]


class MockApi:
    """Route table for httpx.MockTransport keyed by (method, path)."""

    def __init__(self):
        self.routes: dict[tuple[str, str], Handler] = {}
        self.requests: list[httpx.Request] = []

    def route(self, method: str, path: str, handler: Handler) -> None:
        self.routes[(method, API_PREFIX + path)] = handler

    def json(
        self,
        method: str,
        path: str,
        payload: Any,
        status: int = 200,
        headers: Optional[dict[str, str]] = None,
    ) -> None:
        self.route(method, path, lambda request: httpx.Response(status, json=payload, headers=headers))

    def handle(self, request: httpx.Request) -> Any:
        self.requests.append(request)
        handler = self.routes.get((request.method, request.url.path))
        if handler is None:
            return httpx.Response(404, json={"message": f"No route for {request.method} {request.url.path}"})
        return handler(request)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    @property
    def last_request(self) -> httpx.Request:
        assert self.requests, "no requests were made"
        return self.requests[-1]


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    """Keep VAIRIFIED_* variables and any local .env file out of the tests."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def api() -> MockApi:
    return MockApi()


@pytest.fixture
async def client(api):
    async with Vairified(api_key=API_KEY, base_url=BASE_URL, transport=api.transport) as c:
        yield c
