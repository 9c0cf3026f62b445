"""Tests for the Client façade."""

from __future__ import annotations

from urllib.parse import parse_qs

import httpx
import orjson
import pytest
from pydantic import ValidationError

from resilient_http import (
    Client,
    ClientConfig,
    ConstantBackoff,
    Context,
    DecodeError,
    ExecutorError,
    ExponentialBackoff,
    HttpxExecutor,
    JsonDecoder,
    MissingDeadlineError,
    ResilientHttpSettings,
    always_read,
    skip_on_client_or_server_error,
)
from resilient_http.config import HttpSettings
from conftest import RecordingDecoder, mock_executor

URL = "https://api.example.test/users"


class Recorder:
    """MockTransport handler that records requests and replays responses."""

    def __init__(self, *responses: httpx.Response | Exception) -> None:
        self.responses = list(responses) or [httpx.Response(200, json={})]
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        outcome = self.responses[min(len(self.requests), len(self.responses)) - 1]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def make_client(handler: Recorder, **config: object) -> Client:
    return Client(ClientConfig(executor=mock_executor(handler), **config))  # type: ignore[arg-type]


@pytest.fixture
def ctx() -> Context:
    return Context.with_timeout(5)


# ═════════════════════════════════════════════════════════════════════════════
# Defaults
# ═════════════════════════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_defaults() -> None:
    async with Client() as client:
        assert isinstance(client.executor, HttpxExecutor)
        assert isinstance(client.body_decoder, JsonDecoder)
        assert client.response_gate is always_read
        assert client.policy is not None
        assert client.policy.max_retries == 0
        assert client.policy.backoff == ConstantBackoff(0.0)
    assert client.executor.client.is_closed  # type: ignore[union-attr]


@pytest.mark.asyncio
async def test_default_executor_uses_http_settings() -> None:
    settings = ResilientHttpSettings(http=HttpSettings(timeout=7.5, user_agent="probe/2"))
    async with Client(settings=settings) as client:
        http_client = client.executor.client  # type: ignore[union-attr]
        assert http_client.timeout.read == 7.5
        assert http_client.headers["User-Agent"] == "probe/2"


@pytest.mark.asyncio
async def test_supplied_executor_is_not_closed() -> None:
    executor = mock_executor(Recorder())
    async with Client(ClientConfig(executor=executor)) as client:
        assert client.executor is executor
    assert not executor.client.is_closed
    await executor.client.aclose()


def test_supplied_collaborators_are_kept() -> None:
    decoder = RecordingDecoder()
    backoff = ExponentialBackoff(0.1, 3)
    client = Client(ClientConfig(
        executor=mock_executor(Recorder()),
        body_decoder=decoder,
        backoff=backoff,
        max_retries=2,
        response_gate=skip_on_client_or_server_error,
    ))
    assert client.body_decoder is decoder
    assert client.policy is not None and client.policy.backoff is backoff
    assert client.policy.max_attempts == 3
    assert client.response_gate is skip_on_client_or_server_error


def test_config_validation() -> None:
    with pytest.raises(ValidationError):
        ClientConfig(max_retries=-1)
    with pytest.raises(ValidationError):
        ClientConfig(retries=3)  # type: ignore[call-arg]
    with pytest.raises(ValidationError):
        ClientConfig(executor="http")  # type: ignore[arg-type]
    with pytest.raises(ValidationError):
        ClientConfig(decoder_type="yaml")  # type: ignore[arg-type]


def test_config_from_settings(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("RESILIENT_HTTP_RETRY_MAX_RETRIES", "4")
    monkeypatch.setenv("RESILIENT_HTTP_RETRY_STRATEGY", "EXPONENTIAL")
    monkeypatch.setenv("RESILIENT_HTTP_RETRY_INTERVAL", "0.5")

    config = ClientConfig.from_settings()
    assert config.max_retries == 4
    assert config.backoff == ExponentialBackoff(interval=0.5, base=2.0)

    assert ClientConfig.from_settings(max_retries=1).max_retries == 1


# ═════════════════════════════════════════════════════════════════════════════
# Verbs
# ═════════════════════════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_get_decodes_into_target(ctx: Context) -> None:
    handler = Recorder(httpx.Response(200, json={"id": 9, "name": "ada"}))
    user: dict[str, object] = {}

    resp = await make_client(handler).get(ctx, URL, user)

    assert resp.status_code == 200
    assert user == {"id": 9, "name": "ada"}
    assert handler.requests[0].method == "GET"
    assert str(handler.requests[0].url) == URL


@pytest.mark.asyncio
async def test_head_without_decoder(ctx: Context) -> None:
    handler = Recorder(httpx.Response(200, headers={"X-Total": "12"}))
    client = make_client(handler)
    client.body_decoder = None

    resp = await client.head(ctx, URL)

    assert handler.requests[0].method == "HEAD"
    assert resp.headers["X-Total"] == "12"


@pytest.mark.asyncio
async def test_head_with_json_decoder_fails_on_empty_body(ctx: Context) -> None:
    with pytest.raises(DecodeError) as exc_info:
        await make_client(Recorder(httpx.Response(200))).head(ctx, URL, {})
    assert exc_info.value.response is not None
    assert exc_info.value.response.status_code == 200


@pytest.mark.asyncio
async def test_post(ctx: Context) -> None:
    handler = Recorder(httpx.Response(201, json={"id": 1}))
    created: dict[str, object] = {}

    await make_client(handler).post(ctx, URL, "application/json", orjson.dumps({"name": "ada"}), created)

    sent = handler.requests[0]
    assert sent.method == "POST"
    assert sent.headers["Content-Type"] == "application/json"
    assert orjson.loads(sent.content) == {"name": "ada"}
    assert created == {"id": 1}


@pytest.mark.asyncio
async def test_post_form(ctx: Context) -> None:
    handler = Recorder(httpx.Response(200, json={"ok": True}))

    await make_client(handler).post_form(ctx, URL, {"name": "ada lovelace", "role": ["admin", "dev"]}, {})

    sent = handler.requests[0]
    assert sent.headers["Content-Type"] == "application/x-www-form-urlencoded"
    assert parse_qs(sent.content.decode()) == {"name": ["ada lovelace"], "role": ["admin", "dev"]}


@pytest.mark.asyncio
async def test_verbs_require_deadline() -> None:
    handler = Recorder()
    client = make_client(handler)
    ctx = Context.background()

    with pytest.raises(MissingDeadlineError):
        await client.get(ctx, URL, {})
    with pytest.raises(MissingDeadlineError):
        await client.head(ctx, URL)
    with pytest.raises(MissingDeadlineError):
        await client.post(ctx, URL, "text/plain", b"x", {})
    with pytest.raises(MissingDeadlineError):
        await client.post_form(ctx, URL, {"a": "b"}, {})

    assert handler.requests == []


# ═════════════════════════════════════════════════════════════════════════════
# Retry through the client
# ═════════════════════════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_retries_transport_failures(ctx: Context) -> None:
    handler = Recorder(httpx.ConnectError("refused"), httpx.ConnectError("refused"), httpx.Response(200, json=[1]))
    retried: list[int] = []
    target: list[object] = []

    client = make_client(handler, max_retries=2, on_retry=lambda n, exc, delay: retried.append(n))
    await client.get(ctx, URL, target)

    assert len(handler.requests) == 3
    assert retried == [1, 2]
    assert target == [1]


@pytest.mark.asyncio
async def test_gives_up_after_budget(ctx: Context) -> None:
    handler = Recorder(httpx.ConnectError("refused"))

    with pytest.raises(ExecutorError) as exc_info:
        await make_client(handler, max_retries=1).get(ctx, URL, {})

    assert len(handler.requests) == 2
    assert isinstance(exc_info.value.cause, httpx.ConnectError)


@pytest.mark.asyncio
async def test_error_status_is_not_retried(ctx: Context) -> None:
    handler = Recorder(httpx.Response(503, json={"error": "down"}))
    target: dict[str, object] = {}

    resp = await make_client(handler, max_retries=3, response_gate=skip_on_client_or_server_error).get(ctx, URL, target)

    assert len(handler.requests) == 1
    assert resp.status_code == 503
    assert target == {}
    assert orjson.loads(await resp.aread()) == {"error": "down"}


@pytest.mark.asyncio
async def test_replaced_collaborators_take_effect(ctx: Context) -> None:
    client = make_client(Recorder(httpx.Response(200, content=b"raw")))
    decoder = RecordingDecoder()
    client.body_decoder = decoder

    await client.get(ctx, URL, {})

    assert decoder.calls == [(b"raw", {})]
