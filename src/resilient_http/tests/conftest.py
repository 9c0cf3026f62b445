"""Shared fakes for request execution tests."""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator, Callable, Iterator
from dataclasses import dataclass, field

import httpx
import pytest

from resilient_http import HttpxExecutor, Request
from resilient_http.config import clear_settings_cache
from resilient_http.observability import BoundLogger, LogEntry


class TrackingStream(httpx.AsyncByteStream):
    """Async body stream that records whether it was closed."""

    def __init__(self, *chunks: bytes, fail_after: int | None = None) -> None:
        self.chunks = chunks
        self.fail_after = fail_after
        self.closed = False

    async def __aiter__(self) -> AsyncIterator[bytes]:
        for i, chunk in enumerate(self.chunks):
            if self.fail_after is not None and i >= self.fail_after:
                raise httpx.ReadError("connection reset mid-body")
            yield chunk

    async def aclose(self) -> None:
        self.closed = True


def streamed(status: int, *chunks: bytes, fail_after: int | None = None) -> tuple[httpx.Response, TrackingStream]:
    """Unread response backed by a TrackingStream."""
    stream = TrackingStream(*chunks, fail_after=fail_after)
    return httpx.Response(status, headers={"Content-Type": "application/json"}, stream=stream), stream


@dataclass
class ScriptedExecutor:
    """Executor replaying a script of outcomes; the last outcome repeats.

    Each outcome is either an exception to raise or a response to return.
    """

    outcomes: list[BaseException | httpx.Response]
    calls: list[Request] = field(default_factory=list)
    call_times: list[float] = field(default_factory=list)

    async def send(self, request: Request) -> httpx.Response:
        self.calls.append(request)
        self.call_times.append(time.monotonic())
        outcome = self.outcomes[min(len(self.calls) - 1, len(self.outcomes) - 1)]
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    @property
    def call_count(self) -> int:
        return len(self.calls)


@dataclass
class RecordingDecoder:
    """Decoder that records its inputs and optionally fails."""

    raises: Exception | None = None
    calls: list[tuple[bytes, object]] = field(default_factory=list)

    def decode(self, source: bytes | None, target: object) -> None:
        self.calls.append((source, target))  # type: ignore[arg-type]
        if self.raises is not None:
            raise self.raises


@dataclass
class RecordingRenderer:
    entries: list[LogEntry] = field(default_factory=list)

    def render(self, entry: LogEntry) -> None:
        self.entries.append(entry)

    def events(self, level: str | None = None) -> list[str]:
        return [e.event for e in self.entries if level is None or e.level == level]


def mock_executor(handler: Callable[[httpx.Request], httpx.Response]) -> HttpxExecutor:
    """HttpxExecutor whose transport is served by ``handler``."""
    return HttpxExecutor(httpx.AsyncClient(transport=httpx.MockTransport(handler)))


@pytest.fixture
def renderer() -> RecordingRenderer:
    return RecordingRenderer()


@pytest.fixture
def logger(renderer: RecordingRenderer) -> BoundLogger:
    return BoundLogger(_renderer=renderer, _level=logging.DEBUG)


@pytest.fixture(autouse=True)
def fresh_settings() -> Iterator[None]:
    """Reset cached settings around each test."""
    clear_settings_cache()
    yield
    clear_settings_cache()
