"""
ChatLLM7 - LangChain chat model backed by LLM7Client.

Every call opens its own LLM7Client from the current field values, so a
model can be reconfigured between calls and used from any event loop. Sync
entry points (invoke, stream) drive the same async code on a private event
loop, so they must not be called from inside a running loop.
"""

import asyncio
from typing import Any, AsyncIterator, Dict, Iterator, List, Optional

from langchain_core.callbacks import (
    AsyncCallbackManagerForLLMRun,
    CallbackManagerForLLMRun,
)
from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import AIMessage, AIMessageChunk, BaseMessage
from langchain_core.outputs import ChatGeneration, ChatGenerationChunk, ChatResult
from pydantic import ConfigDict, Field

from llm7_chat.client import LLM7Client
from llm7_chat.config import (
    DEFAULT_BASE_URL,
    DEFAULT_MAX_RETRIES,
    DEFAULT_MODEL_NAME,
    DEFAULT_TEMPERATURE,
    DEFAULT_TIMEOUT_SECONDS,
    LLM7Config,
)


class _RunManagerObserver:
    """
    Forwards delta tokens to a LangChain run manager.

    Errors are not forwarded: BaseChatModel already reports failures to its
    run managers, and reporting them here as well would duplicate them.
    """

    def __init__(self, run_manager: AsyncCallbackManagerForLLMRun):
        self._run_manager = run_manager

    async def on_llm_new_token(self, token: str, **kwargs) -> None:
        await self._run_manager.on_llm_new_token(token)

    async def on_llm_error(self, error: BaseException, **kwargs) -> None:
        return None


def _ensure_no_running_loop(method: str) -> None:
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return
    raise RuntimeError(
        f"ChatLLM7.{method} cannot run inside an event loop; "
        "use the async API (ainvoke/astream) instead."
    )


class ChatLLM7(BaseChatModel):
    """
    LangChain chat model for the LLM7 chat completions API.

    Usage:
        llm = ChatLLM7(model="gpt-4.1-nano", temperature=0.2)
        reply = await llm.ainvoke([SystemMessage("Be brief."), HumanMessage("Hi")])
        async for chunk in llm.astream("Tell me a story"):
            print(chunk.content, end="")
    """

    model_config = ConfigDict(populate_by_name=True, protected_namespaces=())

    base_url: str = DEFAULT_BASE_URL
    model_name: str = Field(default=DEFAULT_MODEL_NAME, alias="model")
    temperature: float = DEFAULT_TEMPERATURE
    max_tokens: Optional[int] = None
    timeout: float = DEFAULT_TIMEOUT_SECONDS
    max_retries: int = DEFAULT_MAX_RETRIES
    stop: Optional[List[str]] = None

    @classmethod
    def lc_name(cls) -> str:
        return "ChatLLM7"

    @property
    def _llm_type(self) -> str:
        return "llm7-chat"

    @property
    def _identifying_params(self) -> Dict[str, Any]:
        return {
            "model_name": self.model_name,
            "base_url": self.base_url,
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }

    @property
    def client_config(self) -> LLM7Config:
        return LLM7Config(
            base_url=self.base_url,
            model_name=self.model_name,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
            timeout=self.timeout,
            max_retries=self.max_retries,
            stop=self.stop,
        )

    # ─────────────────────────────────────────────────────────────────
    # ASYNC
    # ─────────────────────────────────────────────────────────────────

    async def _agenerate(
        self,
        messages: List[BaseMessage],
        stop: Optional[List[str]] = None,
        run_manager: Optional[AsyncCallbackManagerForLLMRun] = None,
        **kwargs: Any,
    ) -> ChatResult:
        async with LLM7Client(self.client_config) as client:
            text = await client.complete(
                messages, stop=stop, cancel_event=kwargs.get("cancel_event")
            )
        return ChatResult(generations=[ChatGeneration(message=AIMessage(content=text))])

    async def _astream(
        self,
        messages: List[BaseMessage],
        stop: Optional[List[str]] = None,
        run_manager: Optional[AsyncCallbackManagerForLLMRun] = None,
        **kwargs: Any,
    ) -> AsyncIterator[ChatGenerationChunk]:
        observer = _RunManagerObserver(run_manager) if run_manager else None
        async with LLM7Client(self.client_config) as client:
            async for delta in client.stream_completion(
                messages,
                stop=stop,
                observer=observer,
                cancel_event=kwargs.get("cancel_event"),
            ):
                yield ChatGenerationChunk(message=AIMessageChunk(content=delta.text))

    # ─────────────────────────────────────────────────────────────────
    # SYNC
    # ─────────────────────────────────────────────────────────────────

    def _generate(
        self,
        messages: List[BaseMessage],
        stop: Optional[List[str]] = None,
        run_manager: Optional[CallbackManagerForLLMRun] = None,
        **kwargs: Any,
    ) -> ChatResult:
        _ensure_no_running_loop("invoke")

        async def complete_once() -> str:
            async with LLM7Client(self.client_config) as client:
                return await client.complete(messages, stop=stop)

        text = asyncio.run(complete_once())
        return ChatResult(generations=[ChatGeneration(message=AIMessage(content=text))])

    def _stream(
        self,
        messages: List[BaseMessage],
        stop: Optional[List[str]] = None,
        run_manager: Optional[CallbackManagerForLLMRun] = None,
        **kwargs: Any,
    ) -> Iterator[ChatGenerationChunk]:
        _ensure_no_running_loop("stream")

        loop = asyncio.new_event_loop()
        client = LLM7Client(self.client_config)
        deltas = client.stream_completion(messages, stop=stop)
        try:
            while True:
                try:
                    delta = loop.run_until_complete(deltas.__anext__())
                except StopAsyncIteration:
                    break
                chunk = ChatGenerationChunk(message=AIMessageChunk(content=delta.text))
                if run_manager:
                    run_manager.on_llm_new_token(delta.text, chunk=chunk)
                yield chunk
        finally:
            loop.run_until_complete(deltas.aclose())
            loop.run_until_complete(client.aclose())
            loop.close()
