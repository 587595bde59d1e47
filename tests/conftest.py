"""
Shared test fixtures and utilities.

This module provides common test infrastructure used across all test modules.
"""

import json
from typing import Any, Optional

import httpx
import pytest

from modules.auth.client import AuthClient, reset_auth_client
from modules.auth.storage import MemoryStorage
from modules.auth.store import SessionStore
from shared.config import get_settings
from shared.http import ApiClient


TEST_BASE_URL = "http://backend.test/api/v1"


class FakeBackend:
    """
    Scripted backend served through httpx.MockTransport.

    Responses are queued per (method, path); the last queued response
    for a route is reused once the queue is drained. An exception
    instance in the queue is raised instead of answering.
    """

    def __init__(self):
        self.routes: dict[tuple[str, str], list[Any]] = {}
        self.requests: list[httpx.Request] = []

    def add(self, method: str, path: str, *responses: Any) -> None:
        self.routes.setdefault((method.upper(), path), []).extend(responses)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path.removeprefix("/api/v1")
        queue = self.routes.get((request.method, path))
        if not queue:
            return httpx.Response(404, json={"message": f"No route {request.method} {path}"})

        response = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(response, Exception):
            raise response
        status, body = response
        if isinstance(body, str):
            return httpx.Response(status, text=body)
        return httpx.Response(status, json=body)

    def calls(self, method: str, path: str) -> list[httpx.Request]:
        return [
            request
            for request in self.requests
            if request.method == method.upper()
            and request.url.path.removeprefix("/api/v1") == path
        ]

    @staticmethod
    def body(request: httpx.Request) -> Optional[Any]:
        return json.loads(request.content) if request.content else None


@pytest.fixture(autouse=True)
def reset_singletons():
    """Reset the settings cache and auth client singleton around each test."""
    get_settings.cache_clear()
    reset_auth_client()
    yield
    reset_auth_client()
    get_settings.cache_clear()


@pytest.fixture
def memory_storage() -> MemoryStorage:
    """Provide an empty in-memory storage backend."""
    return MemoryStorage()


@pytest.fixture
def session_store(memory_storage: MemoryStorage) -> SessionStore:
    """Provide a session store over in-memory storage."""
    return SessionStore(memory_storage, prefix="predictx")


@pytest.fixture
def backend() -> FakeBackend:
    """Provide an empty scripted backend."""
    return FakeBackend()


@pytest.fixture
def api_client(backend: FakeBackend) -> ApiClient:
    """Provide an ApiClient wired to the scripted backend."""
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(backend.handler))
    return ApiClient(base_url=TEST_BASE_URL, http_client=http_client)


@pytest.fixture
def auth_client(session_store: SessionStore, api_client: ApiClient) -> AuthClient:
    """Provide an AuthClient over in-memory storage and the scripted backend."""
    return AuthClient(store=session_store, api=api_client)
