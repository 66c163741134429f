"""
Message translation: LangChain conversation turns -> provider messages.

Works on anything exposing the BaseMessage capability (``.type`` and
``.content``); HumanMessage, AIMessage and SystemMessage from langchain_core
are the usual inputs.
"""

import json
import logging
from typing import Any, Protocol, Sequence

from llm7_chat.errors import UnsupportedContentTypeError, UnsupportedMessageTypeError
from llm7_chat.payload import ProviderMessage

logger = logging.getLogger(__name__)


class ConversationTurn(Protocol):
    type: str
    content: Any


# Chunk variants report their class name as type
ROLE_BY_TYPE: dict[str, str] = {
    "human": "user",
    "HumanMessageChunk": "user",
    "ai": "assistant",
    "AIMessageChunk": "assistant",
    "system": "system",
    "SystemMessageChunk": "system",
}


def map_role(message_type: str) -> str:
    """Provider role for a turn kind. Raises UnsupportedMessageTypeError."""
    try:
        return ROLE_BY_TYPE[message_type]
    except KeyError:
        raise UnsupportedMessageTypeError(message_type) from None


def _is_text_part(part: Any) -> bool:
    if isinstance(part, str):
        return True
    return isinstance(part, dict) and part.get("type") == "text"


def _part_text(part: Any) -> str:
    if isinstance(part, str):
        return part
    return str(part.get("text") or "")


def extract_text(content: Any, role: str) -> str:
    """
    Flatten turn content to a string.

    Plain strings pass through. Lists of content parts keep only text parts,
    joined with newlines; other parts (images, audio, tool use) are dropped
    with a warning, since the API only accepts text.
    """
    if isinstance(content, str):
        return content

    if isinstance(content, list):
        text_parts = [_part_text(p) for p in content if _is_text_part(p)]

        if not text_parts:
            logger.warning(
                "Message content did not contain any text parts: "
                f"{json.dumps(content, default=str)[:500]}"
            )
            return ""

        if len(text_parts) < len(content):
            logger.warning(
                f"Ignoring {len(content) - len(text_parts)} non-text part(s) in message "
                f"content for role {role}. LLM7 only supports text."
            )
        return "\n".join(text_parts)

    raise UnsupportedContentTypeError(type(content).__name__)


def format_messages(messages: Sequence[ConversationTurn]) -> list[ProviderMessage]:
    """
    Translate a conversation into provider messages.

    Output has the same length and order as the input. Any unsupported turn
    aborts the whole batch.
    """
    formatted = []
    for message in messages:
        role = map_role(message.type)
        content = extract_text(message.content, role)
        formatted.append(ProviderMessage(role=role, content=content))
    return formatted
