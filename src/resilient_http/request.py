"""Requests, executors and the request builder.

Request is the unit the orchestrator executes: a deadline-bearing Context
plus method, url, headers and an optional body. An Executor performs one
attempt of it; HttpxExecutor is the default, backed by httpx.AsyncClient.

Bodies given as bytes or str are replayed on every attempt. Iterables are
consumed by the first attempt, so requests with streamed bodies should not
be retried.
"""

from __future__ import annotations

from collections.abc import AsyncIterable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol, runtime_checkable
from urllib.parse import urlencode

import httpx

from .context import Context, has_deadline
from .errors import MissingDeadlineError

if TYPE_CHECKING:
    from httpx._client import UseClientDefault

RequestContent = bytes | str | Iterable[bytes] | AsyncIterable[bytes]
FormValues = Mapping[str, str | Sequence[str]]

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


@dataclass(slots=True)
class Request:
    """A single executable request.

    Attributes:
        context: Cancellation scope; must carry a deadline to be executed
        method: HTTP method, upper-cased
        url: Target URL
        headers: Request headers
        content: Optional body
    """

    context: Context | None
    method: str
    url: str
    headers: dict[str, str] = field(default_factory=dict)
    content: RequestContent | None = None

    def __post_init__(self) -> None:
        self.method = self.method.upper()


# ─────────────────────────────────────────────────────────────────────────────
# Executors
# ─────────────────────────────────────────────────────────────────────────────


@runtime_checkable
class Executor(Protocol):
    """Performs one attempt of a request.

    Returns the response or raises; any exception counts as a failed attempt.
    A returned response's body must still be open for reading.
    """

    async def send(self, request: Request) -> httpx.Response: ...


class HttpxExecutor:
    """Executor backed by an httpx.AsyncClient.

    Responses are opened in streaming mode so that the body is read only
    when the response gate allows it. The remaining context time caps the
    transport timeout of each attempt.

    Args:
        client: Client to use; one is created (and owned) when omitted
        timeout: Default transport timeout for an owned client
        follow_redirects: Redirect policy for an owned client
        verify: TLS verification for an owned client
        headers: Default headers for an owned client
    """

    __slots__ = ("_client", "_owns_client")

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        *,
        timeout: float = 30.0,
        follow_redirects: bool = True,
        verify: bool = True,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=timeout,
            follow_redirects=follow_redirects,
            verify=verify,
            headers=dict(headers or {}),
        )

    @property
    def client(self) -> httpx.AsyncClient:
        return self._client

    def _timeout_for(self, ctx: Context | None) -> float | UseClientDefault:
        remaining = ctx.remaining() if ctx is not None else None
        if remaining is None:
            return httpx.USE_CLIENT_DEFAULT
        default = self._client.timeout.read
        return remaining if default is None else min(remaining, default)

    async def send(self, request: Request) -> httpx.Response:
        http_request = self._client.build_request(
            request.method,
            request.url,
            headers=request.headers,
            content=request.content,
            timeout=self._timeout_for(request.context),
        )
        return await self._client.send(http_request, stream=True)

    async def aclose(self) -> None:
        """Close the underlying client if this executor created it."""
        if self._owns_client:
            await self._client.aclose()

    def __repr__(self) -> str:
        return f"HttpxExecutor(owns_client={self._owns_client})"


# ─────────────────────────────────────────────────────────────────────────────
# Builder
# ─────────────────────────────────────────────────────────────────────────────


class RequestBuilder:
    """Builds requests for the verb-specific client entry points.

    Every method rejects a context without a deadline before building.
    """

    __slots__ = ()

    @staticmethod
    def _require_deadline(ctx: Context | None) -> Context:
        if not has_deadline(ctx):
            raise MissingDeadlineError()
        return ctx  # type: ignore[return-value]

    def build_get_request(self, ctx: Context | None, url: str) -> Request:
        return Request(self._require_deadline(ctx), "GET", url)

    def build_head_request(self, ctx: Context | None, url: str) -> Request:
        return Request(self._require_deadline(ctx), "HEAD", url)

    def build_post_request(
        self,
        ctx: Context | None,
        url: str,
        content_type: str,
        body: RequestContent | None,
    ) -> Request:
        """Build a POST with the given Content-Type header."""
        return Request(self._require_deadline(ctx), "POST", url, {"Content-Type": content_type}, body)

    def build_post_form_request(self, ctx: Context | None, url: str, data: FormValues) -> Request:
        """Build a POST with url-encoded form data. Sequence values repeat the key."""
        encoded = urlencode(
            [(k, v) for k, vs in data.items() for v in ([vs] if isinstance(vs, str) else vs)]
        )
        return self.build_post_request(ctx, url, FORM_CONTENT_TYPE, encoded.encode())
