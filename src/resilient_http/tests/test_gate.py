"""Tests for response gates."""

from __future__ import annotations

import httpx
import pytest

from resilient_http import ResponseGate, always_read, skip_on_client_or_server_error
from conftest import streamed


@pytest.mark.parametrize(
    ("gate", "status", "expected"),
    [
        (always_read, None, False),
        (always_read, 200, True),
        (always_read, 404, True),
        (always_read, 500, True),
        (skip_on_client_or_server_error, None, False),
        (skip_on_client_or_server_error, 200, True),
        (skip_on_client_or_server_error, 204, True),
        (skip_on_client_or_server_error, 302, True),
        (skip_on_client_or_server_error, 399, True),
        (skip_on_client_or_server_error, 400, False),
        (skip_on_client_or_server_error, 404, False),
        (skip_on_client_or_server_error, 500, False),
        (skip_on_client_or_server_error, 503, False),
    ],
)
def test_gate(gate: ResponseGate, status: int | None, expected: bool) -> None:
    response = None if status is None else httpx.Response(status)
    assert gate(response) is expected


@pytest.mark.parametrize("gate", [always_read, skip_on_client_or_server_error])
def test_gate_never_touches_body(gate: ResponseGate) -> None:
    response, stream = streamed(200, b'{"a": 1}')
    gate(response)
    assert not response.is_stream_consumed
    assert not stream.closed
