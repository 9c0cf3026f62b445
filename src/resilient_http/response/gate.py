"""Response gates: decide whether a response body should be read.

A gate looks only at response metadata, never the body. When it returns
False the response is handed back unread and the caller owns (and must
close) its body.
"""

from __future__ import annotations

from typing import Callable

import httpx

ResponseGate = Callable[[httpx.Response | None], bool]

_FIRST_ERROR_STATUS = 400


def always_read(response: httpx.Response | None) -> bool:
    """Read every response that exists."""
    # The body can't be read from a missing response.
    return response is not None


def skip_on_client_or_server_error(response: httpx.Response | None) -> bool:
    """Read only responses whose status is below 400."""
    if response is None:
        return False
    return response.status_code < _FIRST_ERROR_STATUS
