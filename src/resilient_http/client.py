"""Client façade with verb-specific entry points.

Example:
    >>> from resilient_http import Client, ClientConfig, Context, ExponentialBackoff
    >>>
    >>> async with Client(ClientConfig(max_retries=3, backoff=ExponentialBackoff(0.1, 2))) as client:
    ...     user: dict[str, object] = {}
    ...     resp = await client.get(Context.with_timeout(10), "https://api.example.com/user", user)
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Annotated

from pydantic import BaseModel, ConfigDict, Field

from .config import ResilientHttpSettings, get_settings
from .request import Executor, HttpxExecutor, RequestBuilder
from .response.decoder import BodyDecoder, DecoderType, decoder_for
from .response.gate import ResponseGate, always_read
from .retry.backoff import Backoff, ConstantBackoff
from .retry.orchestrator import RetryOrchestrator
from .retry.policy import RetryCallback, RetryPolicy

if TYPE_CHECKING:
    import httpx

    from .context import Context
    from .request import FormValues, Request, RequestContent


class ClientConfig(BaseModel):
    """Client construction options. Unset fields take defaults in Client().

    Attributes:
        executor: Performs attempts (default: HttpxExecutor)
        body_decoder: Decodes read bodies (default: decoder for decoder_type)
        decoder_type: Decoder used when body_decoder is unset (default: JSON)
        backoff: Interval strategy between retries (default: ConstantBackoff(0))
        max_retries: Retries after the first attempt (default: 0)
        response_gate: Decides whether bodies are read (default: always_read)
        on_retry: Callback invoked before each backoff wait
    """

    model_config = ConfigDict(
        frozen=True,
        arbitrary_types_allowed=True,
        extra="forbid",
        revalidate_instances="never",
    )

    executor: Executor | None = Field(default=None, repr=False)
    body_decoder: BodyDecoder | None = Field(default=None, repr=False)
    decoder_type: DecoderType = DecoderType.JSON
    backoff: Backoff | None = None
    max_retries: Annotated[int, Field(ge=0)] = 0
    response_gate: ResponseGate | None = Field(default=None, repr=False)
    on_retry: RetryCallback | None = Field(default=None, exclude=True, repr=False)

    @classmethod
    def from_settings(cls, settings: ResilientHttpSettings | None = None, **overrides: object) -> ClientConfig:
        """Config with retry options taken from settings, then ``overrides``."""
        retry = (settings or get_settings()).retry
        values: dict[str, object] = {"max_retries": retry.max_retries, "backoff": retry.build_backoff()}
        return cls(**{**values, **overrides})


class Client:
    """HTTP client that retries failed attempts and decodes response bodies.

    Defaults are resolved once here, so the attempt loop never sees an unset
    strategy. The resolved collaborators stay public attributes; all of them
    are stateless and safe to share between concurrent calls.

    Every entry point requires a context carrying a deadline.
    """

    def __init__(
        self,
        config: ClientConfig | None = None,
        *,
        settings: ResilientHttpSettings | None = None,
    ) -> None:
        self.config = config = config or ClientConfig()
        self._owned_executor: HttpxExecutor | None = None

        executor = config.executor
        if executor is None:
            http = (settings or get_settings()).http
            executor = self._owned_executor = HttpxExecutor(
                timeout=http.timeout,
                follow_redirects=http.follow_redirects,
                verify=http.verify_ssl,
                headers={"User-Agent": http.user_agent},
            )

        self.executor: Executor | None = executor
        self.body_decoder: BodyDecoder | None = config.body_decoder or decoder_for(config.decoder_type)
        self.policy: RetryPolicy | None = RetryPolicy(
            max_retries=config.max_retries,
            backoff=config.backoff or ConstantBackoff(0),
            on_retry=config.on_retry,
        )
        self.response_gate: ResponseGate = config.response_gate or always_read
        self._builder = RequestBuilder()

    async def do(self, request: Request | None, target: object = None) -> httpx.Response:
        """Execute a pre-built request. See RetryOrchestrator.do for semantics."""
        orchestrator = RetryOrchestrator(self.executor, self.policy, self.response_gate, self.body_decoder)
        return await orchestrator.do(request, target)

    async def get(self, ctx: Context | None, url: str, target: object = None) -> httpx.Response:
        return await self.do(self._builder.build_get_request(ctx, url), target)

    async def head(self, ctx: Context | None, url: str, target: object = None) -> httpx.Response:
        return await self.do(self._builder.build_head_request(ctx, url), target)

    async def post(
        self,
        ctx: Context | None,
        url: str,
        content_type: str,
        body: RequestContent | None,
        target: object = None,
    ) -> httpx.Response:
        return await self.do(self._builder.build_post_request(ctx, url, content_type, body), target)

    async def post_form(
        self,
        ctx: Context | None,
        url: str,
        data: FormValues,
        target: object = None,
    ) -> httpx.Response:
        """POST ``data`` as application/x-www-form-urlencoded."""
        return await self.do(self._builder.build_post_form_request(ctx, url, data), target)

    # ─────────────────────────────────────────────────────────────────
    # Lifecycle
    # ─────────────────────────────────────────────────────────────────

    async def aclose(self) -> None:
        """Close the default executor if this client created it."""
        if self._owned_executor is not None:
            await self._owned_executor.aclose()

    async def __aenter__(self) -> Client:
        return self

    async def __aexit__(self, *_: object) -> None:
        await self.aclose()
