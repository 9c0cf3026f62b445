"""Retry orchestration with pluggable backoff strategies.

Example:
    >>> from resilient_http.retry import ExponentialBackoff, RetryOrchestrator, RetryPolicy
    >>>
    >>> policy = RetryPolicy(max_retries=3, backoff=ExponentialBackoff(interval=0.1, base=2))
    >>> orchestrator = RetryOrchestrator(executor, policy)
    >>> response = await orchestrator.do(request, target)
"""

from .backoff import MAX_INTERVAL, Backoff, ConstantBackoff, ExponentialBackoff
from .orchestrator import RetryOrchestrator
from .policy import NO_RETRY, RetryCallback, RetryPolicy

__all__ = [
    # Backoff strategies
    "Backoff",
    "ConstantBackoff",
    "ExponentialBackoff",
    "MAX_INTERVAL",
    # Policy
    "RetryPolicy",
    "RetryCallback",
    "NO_RETRY",
    # Execution
    "RetryOrchestrator",
]
