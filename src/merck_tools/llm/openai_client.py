"""Direct OpenAI chat-completions client over httpx (no SDK).

Token-limit field: reasoning models (o1, o3, o4, ...) always take
``max_completion_tokens``. Other models start with ``max_completion_tokens``
too, but if the API rejects it ("... is not supported ... Use 'max_tokens'
instead") the client retries once with ``max_tokens`` and keeps using the
legacy name for the rest of this instance's life.
"""

from __future__ import annotations

import json
import re
import threading
import time
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

import httpx

from ..core.config import env_int, load_env_config, pick, require, strip_slash
from ..core.errors import LLMError, snippet
from ..core.http import HTTPService, build_timeout, is_success
from ..core.observability import log_event
from .base import JSON_RESPONSE_FORMAT, BaseClient, ChunkCallback, choice_content

CHAT_PATH = "/v1/chat/completions"
DEFAULT_API_BASE = "https://api.openai.com"
DEFAULT_MODEL = "gpt-4o-mini"

MODERN_TOKENS_FIELD = "max_completion_tokens"
LEGACY_TOKENS_FIELD = "max_tokens"

REASONING_MODEL = re.compile(r"^o\d")
_UNSUPPORTED = re.compile(r"not supported|unsupported", re.IGNORECASE)

ERROR_BODY_LIMIT = 500


@dataclass(frozen=True)
class OpenAIConfig:
    api_key: str
    api_base: str = DEFAULT_API_BASE
    model: str = DEFAULT_MODEL
    read_timeout: int = 600
    open_timeout: int = 30

    @classmethod
    def resolve(
        cls,
        *,
        api_key: Optional[str] = None,
        api_base: Optional[str] = None,
        model: Optional[str] = None,
        read_timeout: Optional[int] = None,
        open_timeout: Optional[int] = None,
    ) -> "OpenAIConfig":
        return cls(
            api_key=pick(api_key, ("OPENAI_API_KEY",)),
            api_base=strip_slash(pick(api_base, ("OPENAI_API_BASE",), DEFAULT_API_BASE)),
            model=pick(model, ("OPENAI_MODEL",), DEFAULT_MODEL),
            read_timeout=(
                read_timeout
                if read_timeout is not None
                else env_int(("HTTP_READ_TIMEOUT",), 600)
            ),
            open_timeout=(
                open_timeout
                if open_timeout is not None
                else env_int(("HTTP_OPEN_TIMEOUT",), 30)
            ),
        )


def _error_message(resp: httpx.Response) -> str:
    try:
        payload = resp.json()
    except ValueError:
        return resp.text or ""
    if isinstance(payload, dict):
        err = payload.get("error")
        if isinstance(err, dict) and err.get("message"):
            return str(err["message"])
    return resp.text or ""


class OpenAIClient(HTTPService, BaseClient):
    service = "openai"
    provider = "openai"

    def __init__(
        self,
        *,
        api_key: Optional[str] = None,
        api_base: Optional[str] = None,
        model: Optional[str] = None,
        read_timeout: Optional[int] = None,
        open_timeout: Optional[int] = None,
        config: Optional[OpenAIConfig] = None,
        http: Optional[httpx.Client] = None,
    ):
        self.config = config or OpenAIConfig.resolve(
            api_key=api_key,
            api_base=api_base,
            model=model,
            read_timeout=read_timeout,
            open_timeout=open_timeout,
        )
        require([("api_key", self.config.api_key)])
        super().__init__(
            base_url=self.config.api_base,
            headers={
                "Authorization": f"Bearer {self.config.api_key}",
                "Content-Type": "application/json",
            },
            timeout=build_timeout(self.config.read_timeout, self.config.open_timeout),
            http=http,
        )
        self.uses_legacy_max_tokens = False
        self._correction_lock = threading.Lock()

    @classmethod
    def from_env(cls, **kwargs: Any) -> "OpenAIClient":
        load_env_config()
        return cls(**kwargs)

    @property
    def model(self) -> str:
        return self.config.model

    @property
    def is_reasoning_model(self) -> bool:
        return bool(REASONING_MODEL.match(self.config.model))

    def max_tokens_key(self) -> str:
        if self.is_reasoning_model or not self.uses_legacy_max_tokens:
            return MODERN_TOKENS_FIELD
        return LEGACY_TOKENS_FIELD

    def generate(
        self,
        messages: Iterable[Any],
        *,
        temperature: float = 0.2,
        max_tokens: int = 900,
        json_mode: bool = False,
    ) -> str:
        msgs = self._prepare(messages)

        body = self._body(msgs, temperature, max_tokens, json_mode)
        resp = self._post(body)
        if self._rejects_modern_field(resp, body):
            self._adopt_legacy_field()
            body = self._body(msgs, temperature, max_tokens, json_mode)
            resp = self._post(body)

        if not is_success(resp):
            raise self._http_error(resp, "OpenAI")
        try:
            parsed = resp.json()
        except ValueError as exc:
            raise LLMError(
                "OpenAI: invalid JSON response",
                status_code=resp.status_code,
                response_text=snippet(resp.text, ERROR_BODY_LIMIT),
            ) from exc
        return choice_content(parsed)

    def stream(
        self,
        messages: Iterable[Any],
        *,
        temperature: float = 0.2,
        max_tokens: int = 900,
        json_mode: bool = False,
        on_chunk: Optional[ChunkCallback] = None,
    ) -> str:
        """Stream deltas over server-sent events, invoking ``on_chunk`` per fragment."""
        msgs = self._prepare(messages)

        for attempt in range(2):
            body = self._body(msgs, temperature, max_tokens, json_mode, stream=True)
            start = time.perf_counter()
            try:
                with self.http.stream("POST", CHAT_PATH, json=body) as resp:
                    self.log.debug(
                        "http_call",
                        extra={
                            "service": self.service,
                            "method": "POST",
                            "url": str(resp.request.url),
                            "status": resp.status_code,
                            "duration_ms": int((time.perf_counter() - start) * 1000),
                        },
                    )
                    if not is_success(resp):
                        resp.read()
                        if attempt == 0 and self._rejects_modern_field(resp, body):
                            self._adopt_legacy_field()
                            continue
                        raise self._http_error(resp, "OpenAI stream")
                    return self._consume_events(resp, on_chunk)
            except httpx.HTTPError as exc:
                raise LLMError(f"OpenAI stream failed: {exc}", method="POST", url=CHAT_PATH) from exc

        raise LLMError("OpenAI stream: no successful response", method="POST", url=CHAT_PATH)

    # --- Internals ----------------------------------------------------------

    def _body(
        self,
        msgs: List[Dict[str, str]],
        temperature: float,
        max_tokens: int,
        json_mode: bool,
        *,
        stream: bool = False,
    ) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "model": self.config.model,
            "messages": msgs,
            "temperature": float(temperature),
        }
        if stream:
            body["stream"] = True
        body[self.max_tokens_key()] = int(max_tokens)
        if json_mode:
            body["response_format"] = dict(JSON_RESPONSE_FORMAT)
        return body

    def _post(self, body: Dict[str, Any]) -> httpx.Response:
        try:
            return self.send("POST", CHAT_PATH, json=body)
        except httpx.HTTPError as exc:
            raise LLMError(f"OpenAI request failed: {exc}", method="POST", url=CHAT_PATH) from exc

    def _rejects_modern_field(self, resp: httpx.Response, body: Dict[str, Any]) -> bool:
        if resp.status_code != 400 or MODERN_TOKENS_FIELD not in body:
            return False
        if self.is_reasoning_model:
            return False
        message = _error_message(resp)
        return MODERN_TOKENS_FIELD in message and bool(_UNSUPPORTED.search(message))

    def _adopt_legacy_field(self) -> None:
        with self._correction_lock:
            if self.uses_legacy_max_tokens:
                return
            self.uses_legacy_max_tokens = True
        log_event(
            "llm_token_field_corrected",
            self.log,
            provider=self.provider,
            attempt=1,
        )

    def _consume_events(self, resp: httpx.Response, on_chunk: Optional[ChunkCallback]) -> str:
        parts: List[str] = []
        for line in resp.iter_lines():
            ln = line.strip()
            if not ln or ln.startswith(":") or not ln.startswith("data:"):
                continue
            data = ln[len("data:"):].strip()
            if data == "[DONE]":
                break
            try:
                event = json.loads(data)
            except ValueError:
                continue
            try:
                delta = event["choices"][0]["delta"].get("content")
            except (KeyError, IndexError, TypeError, AttributeError):
                continue
            if delta:
                parts.append(delta)
                if on_chunk is not None:
                    on_chunk(delta)
        return "".join(parts)

    @staticmethod
    def _http_error(resp: httpx.Response, label: str) -> LLMError:
        body = snippet(resp.text, ERROR_BODY_LIMIT)
        return LLMError(
            f"{label} {resp.status_code}: {body}",
            status_code=resp.status_code,
            method="POST",
            url=str(resp.request.url),
            response_text=body,
        )


__all__ = [
    "OpenAIClient",
    "OpenAIConfig",
    "MODERN_TOKENS_FIELD",
    "LEGACY_TOKENS_FIELD",
]
