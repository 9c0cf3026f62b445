"""resilient-http - Deadline-aware HTTP requests with bounded retries.

Wraps any request executor with:
- Bounded automatic retry with pluggable backoff strategies
- Deadline-aware cancellation between attempts
- Conditional response consumption via response gates
- Pluggable response body decoding (JSON by default)

Quick Start:
    >>> from resilient_http import Client, ClientConfig, Context, ExponentialBackoff
    >>>
    >>> client = Client(ClientConfig(
    ...     max_retries=3,
    ...     backoff=ExponentialBackoff(interval=0.1, base=2),
    ... ))
    >>> payload: dict[str, object] = {}
    >>> resp = await client.get(Context.with_timeout(5.0), "https://api.example.com/items", payload)

Skipping error bodies:
    >>> from resilient_http import skip_on_client_or_server_error
    >>> client = Client(ClientConfig(response_gate=skip_on_client_or_server_error))
    >>> resp = await client.get(ctx, url, payload)
    >>> if resp.status_code >= 400:
    ...     await resp.aclose()  # unread body belongs to the caller
"""

from .client import Client, ClientConfig
from .config import ResilientHttpSettings, clear_settings_cache, get_settings
from .context import Context, has_deadline
from .errors import (
    ContextCancelledError,
    DeadlineExceededError,
    DecodeError,
    ErrorCode,
    ExecutorError,
    InvalidTargetError,
    MissingDeadlineError,
    MissingDependencyError,
    NilSourceError,
    ResilientHttpError,
    RetryAbortedError,
    StatusError,
    UnknownDecoderTypeError,
    classify_exception,
)
from .observability import configure_logging, get_logger
from .request import Executor, HttpxExecutor, Request, RequestBuilder
from .response import (
    BodyDecoder,
    DecoderType,
    JsonDecoder,
    ResponseGate,
    always_read,
    decoder_for,
    skip_on_client_or_server_error,
)
from .retry import (
    MAX_INTERVAL,
    NO_RETRY,
    Backoff,
    ConstantBackoff,
    ExponentialBackoff,
    RetryOrchestrator,
    RetryPolicy,
)

__version__ = "0.1.0"

__all__ = [
    # Client
    "Client", "ClientConfig",
    # Context
    "Context", "has_deadline",
    # Requests
    "Request", "RequestBuilder", "Executor", "HttpxExecutor",
    # Retry
    "RetryOrchestrator", "RetryPolicy", "NO_RETRY",
    "Backoff", "ConstantBackoff", "ExponentialBackoff", "MAX_INTERVAL",
    # Responses
    "ResponseGate", "always_read", "skip_on_client_or_server_error",
    "BodyDecoder", "JsonDecoder", "DecoderType", "decoder_for",
    # Errors
    "ErrorCode", "ResilientHttpError", "MissingDeadlineError", "MissingDependencyError",
    "ExecutorError", "ContextCancelledError", "DeadlineExceededError", "RetryAbortedError",
    "DecodeError", "NilSourceError", "InvalidTargetError", "UnknownDecoderTypeError",
    "StatusError", "classify_exception",
    # Config & logging
    "ResilientHttpSettings", "get_settings", "clear_settings_cache",
    "configure_logging", "get_logger",
]
