"""Multi-vendor chat client backed by the ``openai`` SDK.

OpenAI, Anthropic and Gemini all expose an OpenAI-compatible chat-completions
endpoint, so one SDK covers every vendor; only the base URL, key and model
differ per provider.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple

from openai import OpenAI, OpenAIError

from ..core.config import env_first, env_int, pick
from ..core.errors import LLMError
from .base import JSON_RESPONSE_FORMAT, BaseClient, ChunkCallback
from .openai_client import REASONING_MODEL


@dataclass(frozen=True)
class VendorDefaults:
    base_url: str
    base_url_env: Tuple[str, ...]
    key_env: Tuple[str, ...]
    model_env: Tuple[str, ...]
    model: str


VENDORS: Dict[str, VendorDefaults] = {
    "openai": VendorDefaults(
        base_url="https://api.openai.com/v1",
        base_url_env=("OPENAI_API_BASE",),
        key_env=("OPENAI_API_KEY",),
        model_env=("OPENAI_MODEL", "AI_MODEL"),
        model="gpt-4o-mini",
    ),
    "anthropic": VendorDefaults(
        base_url="https://api.anthropic.com/v1/",
        base_url_env=(),
        key_env=("ANTHROPIC_API_KEY",),
        model_env=("ANTHROPIC_MODEL",),
        model="claude-sonnet-4-5",
    ),
    "gemini": VendorDefaults(
        base_url="https://generativelanguage.googleapis.com/v1beta/openai/",
        base_url_env=(),
        key_env=("GEMINI_API_KEY", "GOOGLE_API_KEY"),
        model_env=("GEMINI_MODEL", "AI_MODEL"),
        model="gemini-2.0-flash",
    ),
}


def detect_provider(model: Optional[str] = None) -> str:
    """Map a model name prefix to a vendor; defaults to openai."""
    name = (model if model is not None else env_first(("AI_MODEL", "OPENAI_MODEL"))).lower()
    if name.startswith("claude"):
        return "anthropic"
    if name.startswith("gemini"):
        return "gemini"
    return "openai"


@dataclass(frozen=True)
class AdapterConfig:
    provider: str
    api_key: str
    base_url: str
    model: str
    timeout_seconds: int = 300

    @classmethod
    def resolve(
        cls,
        provider: str = "openai",
        *,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        model: Optional[str] = None,
        timeout_seconds: Optional[int] = None,
    ) -> "AdapterConfig":
        vendor = VENDORS.get(provider)
        if vendor is None:
            raise ValueError(
                f"Unknown provider {provider!r}; expected one of {sorted(VENDORS)}"
            )
        return cls(
            provider=provider,
            api_key=pick(api_key, vendor.key_env),
            base_url=pick(base_url, vendor.base_url_env, vendor.base_url),
            model=pick(model, vendor.model_env, vendor.model),
            timeout_seconds=(
                timeout_seconds
                if timeout_seconds is not None
                else env_int(("AI_HTTP_TIMEOUT",), 300)
            ),
        )


class AdapterClient(BaseClient):
    def __init__(
        self,
        provider: str = "openai",
        *,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        model: Optional[str] = None,
        timeout_seconds: Optional[int] = None,
        config: Optional[AdapterConfig] = None,
        sdk: Optional[Any] = None,
    ):
        self.config = config or AdapterConfig.resolve(
            provider,
            api_key=api_key,
            base_url=base_url,
            model=model,
            timeout_seconds=timeout_seconds,
        )
        self._sdk = sdk

    @property
    def provider(self) -> str:  # type: ignore[override]
        return self.config.provider

    @property
    def model(self) -> str:
        return self.config.model

    @property
    def sdk(self) -> Any:
        if self._sdk is None:
            if not self.config.api_key:
                raise LLMError(f"{self.provider} not configured: missing API key")
            self._sdk = OpenAI(
                api_key=self.config.api_key,
                base_url=self.config.base_url,
                timeout=float(self.config.timeout_seconds),
                max_retries=0,
            )
        return self._sdk

    def generate(
        self,
        messages: Iterable[Any],
        *,
        temperature: float = 0.2,
        max_tokens: int = 900,
        json_mode: bool = False,
    ) -> str:
        msgs = self._prepare(messages)
        request = self._request(msgs, temperature, max_tokens, json_mode)
        try:
            completion = self.sdk.chat.completions.create(**request)
        except OpenAIError as exc:
            raise self._wrap(exc) from exc

        choices = getattr(completion, "choices", None) or []
        if not choices:
            return ""
        content = getattr(choices[0].message, "content", None)
        return "" if content is None else str(content)

    def stream(
        self,
        messages: Iterable[Any],
        *,
        temperature: float = 0.2,
        max_tokens: int = 900,
        json_mode: bool = False,
        on_chunk: Optional[ChunkCallback] = None,
    ) -> str:
        msgs = self._prepare(messages)
        request = self._request(msgs, temperature, max_tokens, json_mode)
        parts: List[str] = []
        try:
            for chunk in self.sdk.chat.completions.create(stream=True, **request):
                choices = getattr(chunk, "choices", None) or []
                if not choices:
                    continue
                delta = getattr(choices[0].delta, "content", None)
                if delta:
                    parts.append(delta)
                    if on_chunk is not None:
                        on_chunk(delta)
        except OpenAIError as exc:
            raise self._wrap(exc) from exc
        return "".join(parts)

    def _request(
        self, msgs: List[Dict[str, str]], temperature: float, max_tokens: int, json_mode: bool
    ) -> Dict[str, Any]:
        request: Dict[str, Any] = {
            "model": self.config.model,
            "messages": msgs,
            "temperature": float(temperature),
        }
        if self.provider == "openai" and REASONING_MODEL.match(self.config.model):
            request["max_completion_tokens"] = int(max_tokens)
        else:
            request["max_tokens"] = int(max_tokens)
        if json_mode:
            request["response_format"] = dict(JSON_RESPONSE_FORMAT)
        return request

    def _wrap(self, exc: OpenAIError) -> LLMError:
        return LLMError(
            f"{self.provider} error: {exc}",
            status_code=getattr(exc, "status_code", None),
        )


__all__ = ["AdapterClient", "AdapterConfig", "VENDORS", "detect_provider"]
