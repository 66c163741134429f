"""Shared test fixtures for llm7-chat tests."""

import json

import pytest
import pytest_asyncio
from langchain_core.messages import HumanMessage, SystemMessage


# ─────────────────────────────────────────────────────────────────────
# MOCK DATA
# ─────────────────────────────────────────────────────────────────────

MOCK_BASE_URL = "https://llm7.test/v1"
MOCK_COMPLETIONS_URL = f"{MOCK_BASE_URL}/chat/completions"
MOCK_MODEL = "gpt-4.1-nano"

MOCK_COMPLETION_RESPONSE = {
    "id": "chatcmpl-123",
    "object": "chat.completion",
    "created": 1699000000,
    "model": MOCK_MODEL,
    "choices": [
        {
            "index": 0,
            "message": {
                "role": "assistant",
                "content": "Paris"
            },
            "finish_reason": "stop"
        }
    ],
    "usage": {
        "prompt_tokens": 20,
        "completion_tokens": 1,
        "total_tokens": 21
    }
}


def sse_line(content: str) -> str:
    """One SSE data line carrying a content delta."""
    chunk = {
        "id": "chatcmpl-123",
        "object": "chat.completion.chunk",
        "model": MOCK_MODEL,
        "choices": [{"index": 0, "delta": {"content": content}, "finish_reason": None}],
    }
    return f"data: {json.dumps(chunk)}\n"


def sse_stream(*contents: str, done: bool = True) -> bytes:
    """Build a complete SSE body from delta contents."""
    body = "".join(sse_line(c) + "\n" for c in contents)
    if done:
        body += "data: [DONE]\n\n"
    return body.encode("utf-8")


async def iter_chunks(*chunks: bytes):
    """Async byte iterator yielding the given reads in order."""
    for chunk in chunks:
        yield chunk


class RecordingObserver:
    """ProgressObserver that records every notification."""

    def __init__(self):
        self.tokens: list[str] = []
        self.errors: list[BaseException] = []

    async def on_llm_new_token(self, token: str, **kwargs) -> None:
        self.tokens.append(token)

    async def on_llm_error(self, error: BaseException, **kwargs) -> None:
        self.errors.append(error)


# ─────────────────────────────────────────────────────────────────────
# FIXTURES - Configuration
# ─────────────────────────────────────────────────────────────────────

@pytest.fixture
def config():
    """Config pointing at the mock host, with no backoff delay."""
    from llm7_chat.config import LLM7Config
    return LLM7Config(
        base_url=MOCK_BASE_URL,
        model_name=MOCK_MODEL,
        max_retries=3,
        retry_min_wait=0,
        retry_max_wait=0,
        timeout=5.0,
    )


@pytest_asyncio.fixture
async def client(config):
    from llm7_chat.client import LLM7Client
    async with LLM7Client(config) as c:
        yield c


@pytest.fixture
def observer():
    return RecordingObserver()


# ─────────────────────────────────────────────────────────────────────
# FIXTURES - Conversations
# ─────────────────────────────────────────────────────────────────────

@pytest.fixture
def capital_question():
    """System + human turns asking for the capital of France."""
    return [
        SystemMessage(content="You are helpful"),
        HumanMessage(content="What is the capital of France?"),
    ]
