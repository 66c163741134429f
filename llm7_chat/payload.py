from typing import Any, Dict, Iterable, List, Literal, Optional

from pydantic import BaseModel, ConfigDict

from llm7_chat.config import LLM7Config


class ProviderMessage(BaseModel):
    """One conversation turn in the provider's flat role/content format."""
    model_config = ConfigDict(frozen=True)

    role: Literal["user", "assistant", "system"]
    content: str


class RequestPayload(BaseModel):
    """
    Body of a POST to /chat/completions.

    max_tokens and stop are left as None when they should not appear on
    the wire; to_wire() drops them.
    """
    model: str
    messages: List[ProviderMessage]
    temperature: float
    stream: bool
    max_tokens: Optional[int] = None
    stop: Optional[List[str]] = None

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


def merge_stop_sequences(*sources: Optional[Iterable[str]]) -> List[str]:
    """Union of stop sequences, deduplicated, first-seen order kept."""
    merged: dict[str, None] = {}
    for source in sources:
        for seq in source or ():
            merged.setdefault(seq, None)
    return list(merged)


def build_payload(
    config: LLM7Config,
    messages: List[ProviderMessage],
    stream: bool,
    stop: Optional[Iterable[str]] = None,
) -> RequestPayload:
    """Assemble the request payload for one call. Pure: no I/O."""
    stop_sequences = merge_stop_sequences(config.stop, stop)
    return RequestPayload(
        model=config.model_name,
        messages=list(messages),
        temperature=config.temperature,
        stream=stream,
        max_tokens=config.max_tokens,
        stop=stop_sequences or None,
    )
