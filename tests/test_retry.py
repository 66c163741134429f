"""Tests for llm7_chat.retry - retry policy against a fake flaky transport."""

import httpx
import pytest

from llm7_chat.config import LLM7Config
from llm7_chat.errors import ApiRequestError, RetryableStatusError
from llm7_chat.retry import is_retryable_error, is_retryable_status, with_retry


class FlakyTransport:
    """Fails with the queued exceptions, then returns 'ok'."""

    def __init__(self, *failures: BaseException):
        self.failures = list(failures)
        self.calls = 0

    async def send(self, payload: dict) -> str:
        self.calls += 1
        if self.failures:
            raise self.failures.pop(0)
        return "ok"


def make_config(max_retries: int = 3) -> LLM7Config:
    return LLM7Config(max_retries=max_retries, retry_min_wait=0, retry_max_wait=0)


class TestClassification:

    @pytest.mark.parametrize("status", [429, 500, 502, 503, 504])
    def test_retryable_statuses(self, status):
        assert is_retryable_status(status)

    @pytest.mark.parametrize("status", [400, 401, 403, 404, 422])
    def test_terminal_statuses(self, status):
        assert not is_retryable_status(status)

    @pytest.mark.parametrize("error", [
        httpx.ConnectError("Connection refused"),
        httpx.ReadError("Connection reset by peer"),
        httpx.ConnectTimeout("timed out"),
        httpx.ReadTimeout("timed out"),
        httpx.RemoteProtocolError("Server disconnected"),
        RetryableStatusError(503),
    ])
    def test_retryable_errors(self, error):
        assert is_retryable_error(error)

    @pytest.mark.parametrize("error", [
        ApiRequestError(400, "bad request"),
        httpx.UnsupportedProtocol("ftp://"),
        ValueError("boom"),
    ])
    def test_terminal_errors(self, error):
        assert not is_retryable_error(error)


class TestWithRetry:

    @pytest.mark.asyncio
    async def test_success_needs_one_call(self):
        transport = FlakyTransport()
        send = with_retry(transport.send, make_config())

        assert await send({}) == "ok"
        assert transport.calls == 1

    @pytest.mark.asyncio
    async def test_recovers_after_transient_failures(self):
        transport = FlakyTransport(
            httpx.ConnectError("Connection refused"),
            RetryableStatusError(429),
        )
        send = with_retry(transport.send, make_config())

        assert await send({}) == "ok"
        assert transport.calls == 3

    @pytest.mark.asyncio
    async def test_exhausted_status_becomes_api_error(self):
        transport = FlakyTransport(*[RetryableStatusError(429, "slow down")] * 5)
        send = with_retry(transport.send, make_config(max_retries=2))

        with pytest.raises(ApiRequestError) as exc_info:
            await send({})

        assert exc_info.value.status_code == 429
        assert exc_info.value.body == "slow down"
        assert transport.calls == 3

    @pytest.mark.asyncio
    async def test_exhausted_network_error_keeps_cause(self):
        transport = FlakyTransport(*[httpx.ConnectError("Connection refused")] * 5)
        send = with_retry(transport.send, make_config(max_retries=1))

        with pytest.raises(ApiRequestError) as exc_info:
            await send({})

        assert exc_info.value.status_code is None
        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)
        assert transport.calls == 2

    @pytest.mark.asyncio
    async def test_terminal_error_is_not_retried(self):
        transport = FlakyTransport(ApiRequestError(404, "not found"))
        send = with_retry(transport.send, make_config())

        with pytest.raises(ApiRequestError) as exc_info:
            await send({})

        assert exc_info.value.status_code == 404
        assert transport.calls == 1

    @pytest.mark.asyncio
    async def test_zero_retries_means_single_attempt(self):
        transport = FlakyTransport(RetryableStatusError(503))
        send = with_retry(transport.send, make_config(max_retries=0))

        with pytest.raises(ApiRequestError):
            await send({})
        assert transport.calls == 1

    @pytest.mark.asyncio
    async def test_retries_are_logged(self, caplog):
        transport = FlakyTransport(RetryableStatusError(503))
        send = with_retry(transport.send, make_config())

        with caplog.at_level("WARNING", logger="llm7_chat.retry"):
            await send({})

        assert "Retrying" in caplog.text
