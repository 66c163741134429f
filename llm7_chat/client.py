"""
LLM7Client - async transport for the LLM7 chat completions API.

Translates a conversation, builds the payload, sends it under the retry
policy and turns the response (whole or streamed) back into text.

One client holds one httpx.AsyncClient; its connection pool is safe for
concurrent calls, and nothing else is shared between calls.
"""

import asyncio
import json
import logging
from typing import Any, AsyncGenerator, Iterable, Optional, Sequence

import httpx

from llm7_chat.callbacks import (
    ProgressObserver,
    await_cancellable,
    notify_error,
    notify_token,
)
from llm7_chat.config import LLM7Config
from llm7_chat.errors import (
    ApiRequestError,
    MalformedResponseError,
    RetryableStatusError,
    StreamTransportError,
)
from llm7_chat.messages import ConversationTurn, format_messages
from llm7_chat.payload import build_payload
from llm7_chat.retry import is_retryable_status, with_retry
from llm7_chat.stream import StreamDelta, decode_stream

logger = logging.getLogger(__name__)

JSON_HEADERS = {"Content-Type": "application/json"}

# Failures while reading an already-open response body
STREAM_READ_ERRORS = (httpx.HTTPError, httpx.StreamError, OSError)


def extract_message_content(data: Any) -> Optional[str]:
    """choices[0].message.content from a non-streaming response, else None."""
    if not isinstance(data, dict):
        return None
    choices = data.get("choices")
    if not isinstance(choices, list) or not choices:
        return None
    first = choices[0]
    if not isinstance(first, dict):
        return None
    message = first.get("message")
    if not isinstance(message, dict):
        return None
    content = message.get("content")
    return content if isinstance(content, str) else None


def parse_completion(response: httpx.Response) -> str:
    """Extract the completion text or raise MalformedResponseError."""
    try:
        data = response.json()
    except ValueError as e:
        raise MalformedResponseError(
            f"Invalid API response format: {response.text[:500]}"
        ) from e

    content = extract_message_content(data)
    if content is None:
        raise MalformedResponseError(
            f"Invalid API response format: {json.dumps(data)[:500]}"
        )
    return content


async def drain_error_body(response: httpx.Response) -> str:
    """
    Read whatever error body is available, then close the response.

    Best-effort: a failing read yields an empty body rather than masking
    the HTTP status that is about to be reported.
    """
    try:
        await response.aread()
        return response.text
    except STREAM_READ_ERRORS as e:
        logger.debug(f"Could not read error body (HTTP {response.status_code}): {e}")
        return ""
    finally:
        await response.aclose()


class LLM7Client:
    """
    Stateless per-call translator over a shared connection pool.

    Usage:
        async with LLM7Client(LLM7Config(model_name="gpt-4.1-nano")) as client:
            text = await client.complete([HumanMessage(content="Hi")])
            async for delta in client.stream_completion(messages):
                print(delta.text, end="")
    """

    def __init__(
        self,
        config: Optional[LLM7Config] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Args:
            config: Adapter configuration (defaults to LLM7Config()).
            http_client: Optional pre-built httpx client. When given, the
                caller owns it and aclose() leaves it open.
        """
        self.config = config or LLM7Config()
        self._owns_http = http_client is None
        self._http = http_client or httpx.AsyncClient(
            timeout=self.config.timeout,
            headers=JSON_HEADERS,
        )
        self._send = with_retry(self._send_once, self.config)

    async def __aenter__(self) -> "LLM7Client":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    # ─────────────────────────────────────────────────────────────────
    # TRANSPORT
    # ─────────────────────────────────────────────────────────────────

    async def _send_once(self, payload: dict, stream: bool) -> httpx.Response:
        """
        One POST attempt. Returns an open 200 response.

        Non-200 responses are drained and closed here; 429 and 5xx raise
        RetryableStatusError so the retry policy can try again.
        """
        request = self._http.build_request(
            "POST",
            self.config.completions_url,
            json=payload,
            headers=JSON_HEADERS,
        )
        logger.debug(f"POST {request.url} (model={payload.get('model')}, stream={stream})")
        response = await self._http.send(request, stream=stream)
        if response.status_code == 200:
            return response

        body = await drain_error_body(response)
        if is_retryable_status(response.status_code):
            raise RetryableStatusError(response.status_code, body)
        raise ApiRequestError(response.status_code, body)

    async def _open(
        self,
        messages: Sequence[ConversationTurn],
        stream: bool,
        stop: Optional[Iterable[str]],
        cancel_event: Optional[asyncio.Event],
    ) -> httpx.Response:
        payload = build_payload(self.config, format_messages(messages), stream=stream, stop=stop)
        try:
            return await await_cancellable(self._send(payload.to_wire(), stream), cancel_event)
        except httpx.HTTPError as e:
            raise ApiRequestError(
                None, message=f"LLM7 API request error: {type(e).__name__}: {e}"
            ) from e

    # ─────────────────────────────────────────────────────────────────
    # PUBLIC API
    # ─────────────────────────────────────────────────────────────────

    async def complete(
        self,
        messages: Sequence[ConversationTurn],
        stop: Optional[Iterable[str]] = None,
        observer: Optional[ProgressObserver] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> str:
        """
        Send the conversation and return the full completion text.

        Raises:
            UnsupportedMessageTypeError, UnsupportedContentTypeError: bad input
            ApiRequestError: non-200 status or network failure after retries
            MalformedResponseError: 200 without choices[0].message.content
            RequestCancelledError: cancel_event was set mid-call
        """
        try:
            response = await self._open(messages, False, stop, cancel_event)
            try:
                return parse_completion(response)
            finally:
                await response.aclose()
        except Exception as e:
            await notify_error(observer, e)
            raise

    async def stream_completion(
        self,
        messages: Sequence[ConversationTurn],
        stop: Optional[Iterable[str]] = None,
        observer: Optional[ProgressObserver] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> AsyncGenerator[StreamDelta, None]:
        """
        Stream the completion as StreamDeltas, in arrival order.

        Each delta is reported to ``observer.on_llm_new_token`` before it is
        yielded. The response is closed on every exit path, including the
        consumer abandoning the generator.

        Raises the same errors as complete(), plus StreamTransportError when
        reading the body fails part-way through.
        """
        try:
            response = await self._open(messages, True, stop, cancel_event)
        except Exception as e:
            await notify_error(observer, e)
            raise

        try:
            deltas = decode_stream(response.aiter_bytes())
            try:
                while True:
                    try:
                        delta = await await_cancellable(deltas.__anext__(), cancel_event)
                    except StopAsyncIteration:
                        break
                    await notify_token(observer, delta.text)
                    yield delta
            finally:
                await deltas.aclose()
        except STREAM_READ_ERRORS as e:
            error = StreamTransportError(f"Error processing LLM7 stream: {e}")
            await notify_error(observer, error)
            raise error from e
        except Exception as e:
            await notify_error(observer, e)
            raise
        finally:
            await response.aclose()
