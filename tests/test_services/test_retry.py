"""
Tests for embedding retry logic with exponential backoff.

AnalysisService retries transient provider errors, while permanent
failures surface immediately.
"""

import time

import pytest

from concept_graph.services._shared import embedding_retry, should_retry_exception
from concept_graph.services.analysis_service import AnalysisService


@pytest.mark.asyncio
async def test_retry_on_timeout_errors(failing_embedding_provider):
    """Test that timeout errors are retried."""
    provider = failing_embedding_provider(fail_count=2, error_type="timeout")
    service = AnalysisService(provider, max_retries=3, initial_wait=0.05, max_wait=1.0)

    start = time.time()
    vectors = await service.embed_texts(["the site plan reads well"])
    duration = time.time() - start

    assert provider.attempts == 3, "Should have made 3 attempts"
    assert vectors.shape == (1, 4)
    assert duration > 0.05


@pytest.mark.asyncio
@pytest.mark.parametrize("error_type", ["rate_limit", "503", "connection"])
async def test_retry_on_transient_errors(failing_embedding_provider, error_type):
    provider = failing_embedding_provider(fail_count=1, error_type=error_type)
    service = AnalysisService(provider, max_retries=3, initial_wait=0.01)

    await service.embed_texts(["lighting"])

    assert provider.attempts == 2, "Should have made 2 attempts"


@pytest.mark.asyncio
async def test_retry_exhaustion(failing_embedding_provider):
    """Test that retries are exhausted when max_retries is reached."""
    provider = failing_embedding_provider(fail_count=10, error_type="timeout")
    service = AnalysisService(provider, max_retries=2, initial_wait=0.01)

    with pytest.raises(TimeoutError):
        await service.embed_texts(["lighting"])

    assert provider.attempts == 2, "Should have made exactly max_retries attempts"


@pytest.mark.asyncio
async def test_no_retry_on_permanent_errors(failing_embedding_provider):
    """Test that permanent errors (like 401) are NOT retried."""
    provider = failing_embedding_provider(fail_count=5, error_type="auth")
    service = AnalysisService(provider, max_retries=3, initial_wait=0.01)

    with pytest.raises(Exception, match="401 Unauthorized"):
        await service.embed_texts(["lighting"])

    assert provider.attempts == 1, "Should NOT have retried permanent error"


@pytest.mark.asyncio
async def test_failed_batch_is_not_cached(failing_embedding_provider):
    provider = failing_embedding_provider(fail_count=10, error_type="timeout")
    service = AnalysisService(provider, max_retries=1, initial_wait=0.01)

    with pytest.raises(TimeoutError):
        await service.embed_texts(["lighting"])
    assert len(service.cache) == 0


# ------------------------------------------------------------------
# should_retry_exception
# ------------------------------------------------------------------

@pytest.mark.parametrize(
    "exc",
    [
        TimeoutError("slow"),
        ConnectionError("reset"),
        Exception("Rate limit exceeded"),
        Exception("HTTP 429"),
        Exception("504 Gateway Timeout"),
        Exception("Requests are being throttled"),
    ],
)
def test_should_retry_transient(exc):
    assert should_retry_exception(exc) is True


@pytest.mark.parametrize(
    "exc",
    [
        Exception("401 Unauthorized: Invalid API key"),
        ValueError("Provider returned 1 embedding(s) for 2 text(s)"),
        KeyError("model"),
    ],
)
def test_should_not_retry_permanent(exc):
    assert should_retry_exception(exc) is False


# ------------------------------------------------------------------
# embedding_retry
# ------------------------------------------------------------------

@pytest.mark.asyncio
async def test_embedding_retry_recovers_from_overloaded_endpoint():
    calls = []

    @embedding_retry(max_retries=3, initial_wait=0.01, max_wait=0.05)
    async def embed_batch():
        calls.append(1)
        if len(calls) < 2:
            raise RuntimeError("Model is overloaded, try again")
        return [[1.0, 0.0]]

    assert await embed_batch() == [[1.0, 0.0]]
    assert len(calls) == 2


@pytest.mark.asyncio
async def test_embedding_retry_reraises_permanent_error():
    calls = []

    @embedding_retry(max_retries=3, initial_wait=0.01)
    async def embed_batch():
        calls.append(1)
        raise ValueError("Provider returned 1 embedding(s) for 2 text(s)")

    with pytest.raises(ValueError):
        await embed_batch()
    assert len(calls) == 1
