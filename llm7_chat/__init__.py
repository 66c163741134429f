"""
llm7-chat: LangChain adapter for the LLM7 chat completions API.

Translate a conversation -> build the payload -> send it (whole or
streamed) -> translate the reply back.
"""

from .callbacks import ProgressObserver
from .chat_model import ChatLLM7
from .client import LLM7Client
from .config import LLM7Config
from .errors import (
    ApiRequestError,
    LLM7Error,
    MalformedResponseError,
    RequestCancelledError,
    StreamTransportError,
    UnsupportedContentTypeError,
    UnsupportedMessageTypeError,
)
from .messages import format_messages
from .payload import ProviderMessage, RequestPayload, build_payload
from .stream import StreamDelta

__all__ = [
    "ApiRequestError",
    "ChatLLM7",
    "LLM7Client",
    "LLM7Config",
    "LLM7Error",
    "MalformedResponseError",
    "ProgressObserver",
    "ProviderMessage",
    "RequestCancelledError",
    "RequestPayload",
    "StreamDelta",
    "StreamTransportError",
    "UnsupportedContentTypeError",
    "UnsupportedMessageTypeError",
    "build_payload",
    "format_messages",
]
