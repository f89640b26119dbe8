from __future__ import annotations

import httpx
import pytest
from fastapi.testclient import TestClient

from gio_relay import DirectDispatch, HttpForward, Settings, create_app

ROLLUP_URL = "http://rollup.test"


class FakeRollup:
    """Stands in for the rollup node's HTTP server and records what it receives."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.status_code = 200
        self.content = b'{"status":"success"}'
        self.headers = {"content-type": "application/json"}
        self.error: Exception | None = None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return httpx.Response(self.status_code, content=self.content, headers=self.headers)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


@pytest.fixture
def rollup() -> FakeRollup:
    return FakeRollup()


@pytest.fixture
def make_client(rollup: FakeRollup):
    def factory(base_url: str | None = ROLLUP_URL, **overrides) -> TestClient:
        settings = Settings(dispatch=HttpForward(base_url=base_url), **overrides)
        return TestClient(create_app(settings, transport=rollup.transport))

    return factory


@pytest.fixture
def client(make_client) -> TestClient:
    return make_client()


@pytest.fixture
def direct_client() -> TestClient:
    return TestClient(create_app(Settings(dispatch=DirectDispatch())))
