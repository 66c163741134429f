"""
Incremental decoder for server-sent-event completion streams.

Transport chunk boundaries do not line up with protocol line boundaries, so
decoding is an explicit buffer-plus-scan state machine: bytes are decoded
and appended to a buffer, every complete line is cut off the front, and the
partial tail is carried over to the next read.
"""

import codecs
import json
import logging
from dataclasses import dataclass
from typing import Any, AsyncGenerator, AsyncIterable, Optional

from llm7_chat.config import SSE_DATA_PREFIX, SSE_DONE_SENTINEL

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StreamDelta:
    """One increment of generated text."""
    text: str


class SSEDecoder:
    """
    Splits an arbitrarily chunked byte stream into trimmed lines.

    UTF-8 is decoded incrementally, so a multi-byte character split across
    two reads is reassembled rather than corrupted.
    """

    def __init__(self) -> None:
        self._utf8 = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""

    @property
    def leftover(self) -> str:
        """Text received after the last newline, not yet emitted."""
        return self._buffer

    def feed(self, chunk: bytes) -> list[str]:
        """Consume one read's bytes; return every line it completed."""
        self._buffer += self._utf8.decode(chunk)
        lines = []
        newline_index = self._buffer.find("\n")
        while newline_index != -1:
            lines.append(self._buffer[:newline_index].strip())
            self._buffer = self._buffer[newline_index + 1:]
            newline_index = self._buffer.find("\n")
        return lines

    def flush(self) -> str:
        """Finish decoding and return (and clear) any unterminated tail."""
        self._buffer += self._utf8.decode(b"", final=True)
        tail, self._buffer = self._buffer, ""
        return tail


def extract_delta_content(chunk: Any) -> Optional[str]:
    """choices[0].delta.content if it is a non-empty string, else None."""
    if not isinstance(chunk, dict):
        return None
    choices = chunk.get("choices")
    if not isinstance(choices, list) or not choices:
        return None
    first = choices[0]
    if not isinstance(first, dict):
        return None
    delta = first.get("delta")
    if not isinstance(delta, dict):
        return None
    content = delta.get("content")
    if isinstance(content, str) and content:
        return content
    return None


END_OF_STREAM = object()


def parse_line(line: str) -> Any:
    """
    Interpret one trimmed line.

    Returns a StreamDelta, None for lines that carry nothing, or
    END_OF_STREAM for the ``data: [DONE]`` sentinel.
    """
    if not line or not line.startswith(SSE_DATA_PREFIX):
        return None
    data = line[len(SSE_DATA_PREFIX):].lstrip()
    if data == SSE_DONE_SENTINEL:
        return END_OF_STREAM
    try:
        chunk = json.loads(data)
    except json.JSONDecodeError as e:
        logger.warning(f"Failed to parse stream chunk JSON: {data[:200]!r} ({e})")
        return None
    content = extract_delta_content(chunk)
    if content is None:
        return None
    return StreamDelta(text=content)


async def decode_stream(chunks: AsyncIterable[bytes]) -> AsyncGenerator[StreamDelta, None]:
    """
    Decode raw response bytes into StreamDeltas, in arrival order.

    Stops at ``data: [DONE]``, discarding anything buffered after it.
    Exceptions from ``chunks`` propagate unchanged.
    """
    decoder = SSEDecoder()
    async for chunk in chunks:
        lines = decoder.feed(chunk)
        for index, line in enumerate(lines):
            delta = parse_line(line)
            if delta is END_OF_STREAM:
                discarded = "\n".join(lines[index + 1:] + [decoder.flush()])
                if discarded.strip():
                    logger.warning(
                        f"Discarding buffered stream content after [DONE]: {discarded[:200]!r}"
                    )
                return
            if delta is not None:
                yield delta

    tail = decoder.flush()
    if tail.strip():
        logger.warning(f"Streaming finished with unprocessed buffer content: {tail[:200]!r}")
