"""
Retry policy for the outer HTTP call.

Kept separate from the transport so it can be wrapped around any
"send once" coroutine, including fake flaky transports in tests. Stream
decoding is never retried: once a 200 response is open, failures surface
directly.
"""

import functools
import logging
from typing import Awaitable, Callable, TypeVar

import httpx
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from llm7_chat.config import LLM7Config
from llm7_chat.errors import ApiRequestError, RetryableStatusError

logger = logging.getLogger(__name__)

T = TypeVar("T")

RATE_LIMITED_STATUS = 429

# Connection refused/reset, DNS failure, read/write/connect/pool timeouts,
# and servers dropping the connection mid-response.
NETWORK_ERRORS = (httpx.NetworkError, httpx.TimeoutException, httpx.RemoteProtocolError)


def is_retryable_status(status_code: int) -> bool:
    """429 and any 5xx are retried; every other status is terminal."""
    return status_code == RATE_LIMITED_STATUS or 500 <= status_code <= 599


def is_retryable_error(exception: BaseException) -> bool:
    """
    Determine if an exception is retryable.

    Retryable errors include:
    - Network-level failures (connection refused/reset, timeouts)
    - Rate limiting (HTTP 429)
    - Server errors (HTTP 5xx)
    """
    if isinstance(exception, RetryableStatusError):
        return True
    return isinstance(exception, NETWORK_ERRORS)


def with_retry(
    send: Callable[..., Awaitable[T]],
    config: LLM7Config,
) -> Callable[..., Awaitable[T]]:
    """
    Wrap an async "send once" callable in the configured retry policy.

    Up to ``config.max_retries`` extra attempts with exponential backoff.
    When retries run out, the last failure is surfaced as ApiRequestError
    (status None for network-level failures, chained to the cause).
    """

    @retry(
        stop=stop_after_attempt(config.max_retries + 1),
        wait=wait_exponential(
            multiplier=1, min=config.retry_min_wait, max=config.retry_max_wait
        ),
        retry=retry_if_exception(is_retryable_error),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    async def attempt(*args, **kwargs) -> T:
        return await send(*args, **kwargs)

    @functools.wraps(send)
    async def send_with_retry(*args, **kwargs) -> T:
        try:
            return await attempt(*args, **kwargs)
        except RetryableStatusError as e:
            raise ApiRequestError(e.status_code, e.body) from e
        except NETWORK_ERRORS as e:
            raise ApiRequestError(
                None,
                message=f"LLM7 API request error: {type(e).__name__}: {e}",
            ) from e

    return send_with_retry
