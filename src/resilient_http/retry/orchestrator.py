"""Retry orchestration: the attempt loop behind every client call.

Each call runs one sequential loop:

    wait(0) -> attempt -> [fail -> wait(backoff) -> attempt]* -> gate -> decode

The wait is the only suspension point and races the backoff timer against
the request context. An attempt in flight is never interrupted; the context
is observed between attempts only. Decode failures are not retried.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from ..context import has_deadline
from ..errors import (
    DeadlineExceededError,
    DecodeError,
    ExecutorError,
    MissingDeadlineError,
    MissingDependencyError,
    RetryAbortedError,
    classify_exception,
)
from ..observability import BoundLogger, get_logger
from ..response.gate import always_read

if TYPE_CHECKING:
    import httpx

    from ..context import Context
    from ..request import Executor, Request
    from ..response.decoder import BodyDecoder
    from ..response.gate import ResponseGate
    from .policy import RetryPolicy


class RetryOrchestrator:
    """Runs a request through retry, read gating and decoding.

    Holds no per-call state: the retry counter and timer live inside each
    ``do`` call, so one orchestrator can serve concurrent calls.

    Args:
        executor: Performs single attempts
        policy: Retry budget and backoff
        gate: Decides whether a successful response is read
        decoder: Decodes read bodies; None returns the response without decoding
        logger: Structured logger (default: ``resilient_http.retry``)
    """

    __slots__ = ("executor", "policy", "gate", "decoder", "_log")

    def __init__(
        self,
        executor: Executor | None,
        policy: RetryPolicy | None,
        gate: ResponseGate = always_read,
        decoder: BodyDecoder | None = None,
        *,
        logger: BoundLogger | None = None,
    ) -> None:
        self.executor = executor
        self.policy = policy
        self.gate = gate
        self.decoder = decoder
        self._log = logger or get_logger("resilient_http.retry")

    async def do(self, request: Request | None, target: object = None) -> httpx.Response:
        """Execute ``request`` and decode a readable body into ``target``.

        Returns:
            The last response. Unread (body open, caller-owned) when the gate
            declined it, otherwise with its body read and closed.

        Raises:
            MissingDeadlineError: The request context has no deadline.
            MissingDependencyError: Executor or retry policy is not configured.
            ContextCancelledError: The context ended before the first attempt.
            RetryAbortedError: The context ended while backing off after a failure.
            ExecutorError: Every permitted attempt failed.
            DecodeError: The body could not be decoded; carries the response.
        """
        if request is None or not has_deadline(request.context):
            raise MissingDeadlineError()
        executor, policy = self.executor, self.policy
        if executor is None or policy is None:
            raise MissingDependencyError(
                [name for name, dep in (("executor", executor), ("backoff", policy)) if dep is None]
            )

        log = self._log.bind(method=request.method, url=request.url)
        response = await self._execute(request, request.context, executor, policy, log)
        return await self._consume(response, target, log)

    async def _execute(
        self,
        request: Request,
        ctx: Context,
        executor: Executor,
        policy: RetryPolicy,
        log: BoundLogger,
    ) -> httpx.Response:
        retries = 0
        delay = 0.0
        failure: ExecutorError | None = None

        while True:
            if not await ctx.sleep(delay):
                # A wait cut short without cancellation ended at the deadline
                ctx_err = ctx.err() or DeadlineExceededError()
                log.info("context done while waiting", reason=str(ctx_err), retries=retries)
                if failure is None:
                    raise ctx_err
                raise RetryAbortedError.from_executor_error(failure, ctx_err) from failure.cause

            attempt = retries + 1
            try:
                response = await executor.send(request)
            except Exception as e:
                failure = ExecutorError(e, attempts=attempt)
                retries += 1
                if policy.exhausted(retries):
                    log.warning("retries exhausted", attempts=attempt, code=failure.cause_code.value, error=str(e))
                    raise failure from e
                delay = policy.interval_for_retry(retries)
                log.warning(
                    "attempt failed",
                    attempt=attempt,
                    max_attempts=policy.max_attempts,
                    code=classify_exception(e).value,
                    error=str(e),
                    retry_in=round(delay, 3),
                )
                if policy.on_retry:
                    policy.on_retry(retries, e, delay)
                continue

            log.debug("attempt succeeded", attempt=attempt, status=response.status_code)
            return response

    async def _consume(self, response: httpx.Response, target: object, log: BoundLogger) -> httpx.Response:
        if not self.gate(response):
            log.debug("response left unread", status=response.status_code)
            return response

        try:
            if self.decoder is None:
                return response
            try:
                self.decoder.decode(await response.aread(), target)
            except Exception as e:
                log.error("decode failed", status=response.status_code, error=str(e))
                raise DecodeError(e, response=response) from e
        finally:
            await response.aclose()
        return response
