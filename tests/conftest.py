"""Pytest configuration and fixtures."""

import json
from collections.abc import Callable
from pathlib import Path
from typing import Any

import httpx
import pytest

from scmkit.models import ContentParams, PullRequestInput, Signature

TESTDATA = Path(__file__).parent / "testdata"

Handler = Callable[[httpx.Request], httpx.Response]


def load_fixture(name: str) -> bytes:
    """Read a file from tests/testdata."""
    return (TESTDATA / name).read_bytes()


def load_json(name: str) -> Any:
    return json.loads(load_fixture(name))


class MockServer:
    """
    In-memory HTTP server for ``httpx.MockTransport``.

    Routes are keyed by method and URL path; every request is recorded so
    tests can assert on what was (or was not) sent.
    """

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], Handler] = {}
        self.requests: list[httpx.Request] = []

    def add(
        self,
        method: str,
        path: str,
        status: int = 200,
        json: Any = None,
        content: bytes | str | None = None,
        headers: dict[str, str] | None = None,
        fixture: str | None = None,
    ) -> None:
        """Register a canned response."""
        if fixture is not None:
            content = load_fixture(fixture)

        def respond(request: httpx.Request) -> httpx.Response:
            if json is not None:
                return httpx.Response(status, json=json, headers=headers)
            return httpx.Response(status, content=content or b"", headers=headers)

        self.routes[(method.upper(), path)] = respond

    def add_handler(self, method: str, path: str, handler: Handler) -> None:
        self.routes[(method.upper(), path)] = handler

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get((request.method, request.url.path))
        if route is None:
            return httpx.Response(404, json={"message": f"no route for {request.method} {request.url.path}"})
        return route(request)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handle))

    def requests_to(self, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path == path]

    @property
    def last_request(self) -> httpx.Request:
        return self.requests[-1]


@pytest.fixture
def server() -> MockServer:
    """Create an empty mock server."""
    return MockServer()


@pytest.fixture
def pull_request_input() -> PullRequestInput:
    return PullRequestInput(
        title="Add License File",
        body="Using a BSD License",
        head="feature",
        base="master",
    )


@pytest.fixture
def content_params() -> ContentParams:
    """Content write parameters with an already base64-encoded payload."""
    return ContentParams(
        message="my commit message",
        data=b"bXkgbmV3IGZpbGUgY29udGVudHM=",
        signature=Signature(name="Zaki", email="zaki@example.com"),
    )
