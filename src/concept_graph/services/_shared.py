"""Retry policy for the embedding step.

Embedding batches are sent to a remote endpoint before any clustering runs,
so a single throttled or dropped request would otherwise abort the whole
analysis. Both ``AnalysisService`` and anchor-axis embedding go through the
policy built here.
"""

from __future__ import annotations

from openai import APIConnectionError, InternalServerError, RateLimitError
from tenacity import (
    RetryCallState,
    retry,
    retry_if_exception,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ..utils.logging_config import get_logger

logger = get_logger(__name__)

# Matched as substrings of the lowercased error message. Covers gateways
# and local TEI/vLLM servers that do not raise typed openai errors.
RETRYABLE_ERROR_PATTERNS = [
    "rate limit",
    "429",
    "502",
    "503",
    "504",
    "timeout",
    "timed out",
    "connection",
    "internal server",
    "service unavailable",
    "temporary",
    "throttl",
    "overloaded",
]

RETRYABLE_OPENAI_ERRORS = (InternalServerError, APIConnectionError, RateLimitError)


def should_retry_exception(exc: BaseException) -> bool:
    """Return ``True`` if an embedding call failed for a transient reason.

    Timeouts and dropped connections count by type; anything else is judged
    by its message. Size mismatches and auth failures are permanent.
    """
    if isinstance(exc, (TimeoutError, ConnectionError)):
        return True
    error_msg = str(exc).lower()
    return any(p in error_msg for p in RETRYABLE_ERROR_PATTERNS)


def _log_embedding_retry(retry_state: RetryCallState) -> None:
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    logger.warning(
        "Embedding batch failed (attempt %d): %s; retrying",
        retry_state.attempt_number,
        exc,
    )


def embedding_retry(max_retries: int = 6, initial_wait: float = 1.0, max_wait: float = 30.0):
    """
    Tenacity decorator for one embedding batch call.

    Args:
        max_retries: Maximum number of attempts, including the first
        initial_wait: First backoff in seconds; doubles on each retry
        max_wait: Upper bound on a single backoff

    Returns:
        A decorator that re-raises the last error once attempts run out.
    """
    return retry(
        stop=stop_after_attempt(max_retries),
        wait=wait_exponential(multiplier=initial_wait, min=initial_wait, max=max_wait),
        retry=retry_if_exception_type(RETRYABLE_OPENAI_ERRORS)
        | retry_if_exception(should_retry_exception),
        before_sleep=_log_embedding_retry,
        reraise=True,
    )
