"""
Per-call capabilities supplied by the host framework.

ProgressObserver is the WHAT (interface). LangChain's
AsyncCallbackManagerForLLMRun matches it structurally, so a run manager can
be passed straight through.
"""

import asyncio
import inspect
import logging
from typing import Awaitable, Optional, Protocol, TypeVar, runtime_checkable

from llm7_chat.errors import RequestCancelledError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@runtime_checkable
class ProgressObserver(Protocol):
    """
    Receives per-delta and per-error notifications during a call.

    on_llm_new_token is awaited once per non-empty delta, in arrival order,
    with the raw delta text. on_llm_error is awaited once with the terminal
    error before it is re-raised to the caller.
    """

    async def on_llm_new_token(self, token: str, **kwargs) -> None:
        ...

    async def on_llm_error(self, error: BaseException, **kwargs) -> None:
        ...


async def notify_token(observer: Optional[ProgressObserver], token: str) -> None:
    if observer is not None:
        await observer.on_llm_new_token(token)


async def notify_error(observer: Optional[ProgressObserver], error: BaseException) -> None:
    if observer is not None:
        await observer.on_llm_error(error)


async def await_cancellable(
    awaitable: Awaitable[T],
    cancel_event: Optional[asyncio.Event],
) -> T:
    """
    Await ``awaitable``, aborting it if ``cancel_event`` is set first.

    Raises RequestCancelledError after the aborted work has been cancelled.
    Native task cancellation of the caller propagates unchanged.
    """
    if cancel_event is None:
        return await awaitable

    if cancel_event.is_set():
        if inspect.iscoroutine(awaitable):
            awaitable.close()
        raise RequestCancelledError("Request cancelled before it started")

    work = asyncio.ensure_future(awaitable)
    waiter = asyncio.ensure_future(cancel_event.wait())
    try:
        done, _ = await asyncio.wait({work, waiter}, return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        work.cancel()
        waiter.cancel()
        raise

    if work in done:
        waiter.cancel()
        return work.result()

    logger.debug("Cancellation signal received, aborting in-flight work")
    work.cancel()
    try:
        await work
    except asyncio.CancelledError:
        pass
    raise RequestCancelledError("Request cancelled by caller")
