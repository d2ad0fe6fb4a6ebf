"""Unit test conftest: an in-process fake extraction backend.

The fake speaks the backend's HTTP protocol through ``httpx.MockTransport``
so the real ``ExtractionBackendClient`` is exercised end to end without a
network.
"""

from __future__ import annotations

import asyncio
from typing import Any

import httpx
import pytest

from text_extraction.backend import ExtractionBackendClient
from text_extraction.cache import InMemoryCacheStore
from text_extraction.poller import PollPolicy, TaskPoller
from text_extraction.service import TextExtractionService

BASE_URL = "http://extractor.test"

DEFAULT_RESULT: dict[str, Any] = {
    "content": "Mount Saratoga 2022 budget",
    "metadata": {"source": "budget.pdf", "pages": 3},
}


class FakeExtractionBackend:
    """Scriptable stand-in for the extraction backend.

    ``statuses`` is the sequence of status bodies returned by successive
    status queries; the last one repeats once the script runs out.
    """

    def __init__(self) -> None:
        self.statuses: list[dict[str, Any]] = [{"status": "completed", "result": DEFAULT_RESULT}]
        self.requests: list[httpx.Request] = []
        self.submissions: list[httpx.Request] = []
        self.status_queries: list[str] = []
        self.clear_calls = 0
        self.submit_response: httpx.Response | None = None
        self.clear_response: httpx.Response | None = None
        self._next_task = 0

    @property
    def network_calls(self) -> int:
        return len(self.requests)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if request.method == "POST" and path == "/api/v1/extract":
            self.submissions.append(request)
            if self.submit_response is not None:
                return self.submit_response
            self._next_task += 1
            return httpx.Response(200, json={"task_id": f"task-{self._next_task}"})

        if request.method == "GET" and path.startswith("/api/v1/status/"):
            self.status_queries.append(request.url.raw_path.decode().rsplit("/", 1)[-1])
            idx = min(len(self.status_queries), len(self.statuses)) - 1
            return httpx.Response(200, json=self.statuses[idx])

        if request.method == "POST" and path == "/api/v1/clear-cache":
            self.clear_calls += 1
            if self.clear_response is not None:
                return self.clear_response
            return httpx.Response(200, json={"success": True})

        return httpx.Response(404, text="not found")


class RecordingSleep:
    """Replacement for ``asyncio.sleep`` that records delays and only yields."""

    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.calls.append(delay)
        await asyncio.sleep(0)


@pytest.fixture
def fake_backend() -> FakeExtractionBackend:
    return FakeExtractionBackend()


@pytest.fixture
async def http_client(fake_backend: FakeExtractionBackend):
    async with httpx.AsyncClient(transport=httpx.MockTransport(fake_backend.handler)) as client:
        yield client


@pytest.fixture
def backend_client(http_client: httpx.AsyncClient) -> ExtractionBackendClient:
    return ExtractionBackendClient(BASE_URL, "v1", http_client=http_client)


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def cache_store() -> InMemoryCacheStore:
    return InMemoryCacheStore()


@pytest.fixture
def service(
    backend_client: ExtractionBackendClient,
    cache_store: InMemoryCacheStore,
    recording_sleep: RecordingSleep,
) -> TextExtractionService:
    poller = TaskPoller(
        backend_client,
        PollPolicy(max_attempts=30, delay_s=1.0),
        sleep=recording_sleep,
    )
    return TextExtractionService(backend=backend_client, cache=cache_store, poller=poller)
