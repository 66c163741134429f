"""
Error types raised by llm7-chat.

Translation errors are input errors and are never retried. Transport errors
are classified after the retry policy has run its course.
"""

from typing import Optional


class LLM7Error(Exception):
    """Base class for all llm7-chat errors."""
    pass


class UnsupportedMessageTypeError(LLM7Error):
    """A conversation turn has a kind with no provider role."""

    def __init__(self, message_type: str):
        self.message_type = message_type
        super().__init__(f"Unsupported message type: {message_type}")


class UnsupportedContentTypeError(LLM7Error):
    """A turn's content is neither a string nor a list of content parts."""

    def __init__(self, content_type: str):
        self.content_type = content_type
        super().__init__(f"Unsupported message content type: {content_type}")


class ApiRequestError(LLM7Error):
    """
    The API call failed after retries were exhausted.

    status_code is None when the last failure was network-level
    (connection refused, reset, timeout) rather than an HTTP status.
    """

    def __init__(self, status_code: Optional[int], body: str = "", message: Optional[str] = None):
        self.status_code = status_code
        self.body = body
        if message is None:
            message = f"LLM7 API request failed with status {status_code}: {body[:500]}"
        super().__init__(message)


class MalformedResponseError(LLM7Error):
    """A 200 response did not carry choices[0].message.content."""
    pass


class StreamTransportError(LLM7Error):
    """Reading the response stream failed part-way through."""
    pass


class RequestCancelledError(LLM7Error):
    """The caller's cancellation signal fired while the call was in flight."""
    pass


class RetryableStatusError(LLM7Error):
    """
    Raised inside the retry loop for 429 and retryable 5xx statuses.

    Converted to ApiRequestError once retries are exhausted; callers
    never see it.
    """

    def __init__(self, status_code: int, body: str = ""):
        self.status_code = status_code
        self.body = body
        super().__init__(f"Retryable HTTP status {status_code}")
