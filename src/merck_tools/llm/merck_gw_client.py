"""Merck internal Azure-OpenAI gateway client.

The gateway authenticates with an API-key header (not Bearer) and the model
may be mounted under one of several path conventions, so each call tries the
candidate URL shapes in order: a 404 moves on, any other failure raises.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

import httpx

from ..core.config import env_int, load_env_config, pick, require, strip_slash
from ..core.errors import LLMError, snippet
from ..core.http import HTTPService, build_timeout, is_success
from .base import JSON_RESPONSE_FORMAT, BaseClient, choice_content

DEFAULT_API_ROOT = "https://iapi-test.merck.com/gpt/v2"
DEFAULT_API_VERSION = "2025-04-14"
DEFAULT_API_HEADER = "X-Merck-APIKey"
CONNECT_TIMEOUT_SECONDS = 30
ERROR_BODY_LIMIT = 500


@dataclass(frozen=True)
class MerckGwConfig:
    api_key: str
    api_root: str = DEFAULT_API_ROOT
    api_version: str = DEFAULT_API_VERSION
    model: str = "gpt-4o-mini"
    api_header: str = DEFAULT_API_HEADER
    timeout: int = 300

    @classmethod
    def resolve(
        cls,
        *,
        api_root: Optional[str] = None,
        api_version: Optional[str] = None,
        model: Optional[str] = None,
        api_key: Optional[str] = None,
        api_header: Optional[str] = None,
        timeout: Optional[int] = None,
    ) -> "MerckGwConfig":
        return cls(
            api_root=strip_slash(
                pick(api_root, ("GW_API_ROOT", "MERCK_API_ROOT"), DEFAULT_API_ROOT)
            ),
            api_version=pick(
                api_version, ("GW_API_VERSION", "MERCK_API_VERSION"), DEFAULT_API_VERSION
            ),
            model=pick(model, ("GW_MODEL", "MERCK_DEPLOYMENT", "OPENAI_MODEL"), "gpt-4o-mini"),
            api_key=pick(api_key, ("MERCK_GW_API_KEY", "X_MERCK_APIKEY", "MERCK_API_KEY")),
            api_header=pick(
                api_header, ("GW_API_HEADER", "MERCK_API_HEADER"), DEFAULT_API_HEADER
            ),
            timeout=timeout if timeout is not None else env_int(("AI_HTTP_TIMEOUT",), 300),
        )


class MerckGwClient(HTTPService, BaseClient):
    service = "merck_gw"
    provider = "merck_gw"

    def __init__(
        self,
        *,
        api_root: Optional[str] = None,
        api_version: Optional[str] = None,
        model: Optional[str] = None,
        api_key: Optional[str] = None,
        api_header: Optional[str] = None,
        timeout: Optional[int] = None,
        config: Optional[MerckGwConfig] = None,
        http: Optional[httpx.Client] = None,
    ):
        self.config = config or MerckGwConfig.resolve(
            api_root=api_root,
            api_version=api_version,
            model=model,
            api_key=api_key,
            api_header=api_header,
            timeout=timeout,
        )
        require([("api_key", self.config.api_key)])
        super().__init__(
            headers={self.config.api_header: self.config.api_key},
            timeout=build_timeout(self.config.timeout, CONNECT_TIMEOUT_SECONDS),
            http=http,
        )

    @classmethod
    def from_env(cls, **kwargs: Any) -> "MerckGwClient":
        load_env_config()
        return cls(**kwargs)

    @property
    def model(self) -> str:
        return self.config.model

    def candidate_urls(self) -> List[str]:
        root, model = self.config.api_root, self.config.model
        return list(
            dict.fromkeys(
                [
                    f"{root}/{model}/chat/completions",
                    f"{root}/deployments/{model}/chat/completions",
                    f"{root}/openai/deployments/{model}/chat/completions",
                ]
            )
        )

    def generate(
        self,
        messages: Iterable[Any],
        *,
        temperature: float = 0.2,
        max_tokens: int = 900,
        json_mode: bool = False,
    ) -> str:
        msgs = self._prepare(messages)
        payload: Dict[str, Any] = {
            "model": self.config.model,
            "messages": msgs,
            "temperature": float(temperature),
            "max_completion_tokens": int(max_tokens),
        }
        if json_mode:
            payload["response_format"] = dict(JSON_RESPONSE_FORMAT)
        params = {"api-version": self.config.api_version} if self.config.api_version else None

        last_error: Optional[LLMError] = None
        for url in self.candidate_urls():
            try:
                resp = self.send("POST", url, json=payload, params=params)
            except httpx.HTTPError as exc:
                last_error = LLMError(
                    f"Merck GW request failed: {exc}", method="POST", url=url
                )
                continue

            if not is_success(resp):
                body = snippet(resp.text, ERROR_BODY_LIMIT)
                last_error = LLMError(
                    f"Merck GW {resp.status_code}: {body}",
                    status_code=resp.status_code,
                    method="POST",
                    url=url,
                    response_text=body,
                )
                if resp.status_code == 404:
                    continue
                raise last_error

            try:
                parsed = resp.json()
            except ValueError:
                self.log.warning(
                    "Merck GW returned a non-JSON body: %s",
                    snippet(resp.text, ERROR_BODY_LIMIT),
                )
                parsed = {}
            return choice_content(parsed)

        raise last_error or LLMError("Merck GW: no successful response from any URL pattern")


__all__ = ["MerckGwClient", "MerckGwConfig"]
