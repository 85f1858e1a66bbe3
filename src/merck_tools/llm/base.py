from __future__ import annotations

from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from pydantic import ValidationError

from ..core.errors import LLMError
from ..models import ChatMessage

ChunkCallback = Callable[[str], None]
JSON_RESPONSE_FORMAT = {"type": "json_object"}


def _field(message: Any, key: str) -> Any:
    if isinstance(message, Mapping):
        if key in message:
            return message[key]
        for k, v in message.items():
            if isinstance(k, str) and k.lower() == key:
                return v
        return None
    return getattr(message, key, None)


def normalize_messages(messages: Optional[Iterable[Any]]) -> List[Dict[str, str]]:
    """Coerce role/content to strings and drop entries where either is blank.

    Accepts mappings (any key casing) or objects exposing ``role``/``content``.
    """
    if messages is None:
        return []
    if isinstance(messages, (Mapping, str)) or hasattr(messages, "role"):
        messages = [messages]

    out: List[Dict[str, str]] = []
    for m in messages:
        role = _field(m, "role")
        content = _field(m, "content")
        if role is None or content is None:
            continue
        try:
            msg = ChatMessage(role=str(role), content=str(content))
        except ValidationError:
            continue
        out.append(msg.model_dump())
    return out


def choice_content(payload: Any) -> str:
    """Extract ``choices[0].message.content`` from a chat-completions payload."""
    try:
        content = payload["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError):
        return ""
    return "" if content is None else str(content)


def last_user_content(messages: List[Dict[str, str]]) -> Optional[str]:
    for m in reversed(messages):
        if m["role"] == "user":
            return m["content"]
    return None


class BaseClient:
    """Uniform chat-completion contract shared by every provider."""

    provider = "base"

    def generate(
        self,
        messages: Iterable[Any],
        *,
        temperature: float = 0.2,
        max_tokens: int = 900,
        json_mode: bool = False,
    ) -> str:
        raise NotImplementedError(f"{type(self).__name__}.generate must be implemented")

    def stream(
        self,
        messages: Iterable[Any],
        *,
        temperature: float = 0.2,
        max_tokens: int = 900,
        json_mode: bool = False,
        on_chunk: Optional[ChunkCallback] = None,
    ) -> str:
        """Default: generate the full response and deliver it as one chunk."""
        text = self.generate(
            messages, temperature=temperature, max_tokens=max_tokens, json_mode=json_mode
        )
        if on_chunk is not None:
            on_chunk(text)
        return text

    def _prepare(self, messages: Iterable[Any]) -> List[Dict[str, str]]:
        msgs = normalize_messages(messages)
        if not msgs:
            raise LLMError("No messages provided")
        return msgs


__all__ = [
    "BaseClient",
    "ChunkCallback",
    "normalize_messages",
    "choice_content",
    "last_user_content",
    "JSON_RESPONSE_FORMAT",
]
