"""Chat-completion clients behind a uniform ``generate``/``stream`` interface.

``build_from_env`` picks the provider from ``AI_PROVIDER`` / ``LLM_PROVIDER``
(an explicit argument wins) and falls back to the no-network ``MockClient``.
"""

from __future__ import annotations

import logging
from typing import Optional

from ..core.config import env_first
from ..core.errors import LLMError
from ..core.observability import log_event
from .adapter_client import AdapterClient, AdapterConfig, detect_provider
from .base import BaseClient, normalize_messages
from .merck_gw_client import MerckGwClient, MerckGwConfig
from .mock_client import MockClient
from .openai_client import OpenAIClient, OpenAIConfig

log = logging.getLogger("merck_tools.llm")

GATEWAY_NAMES = {"merck_gw", "gw"}
ADAPTER_NAMES = {"adapter", "multi"}
MOCK_NAMES = {"mock", ""}


def build_from_env(provider: Optional[str] = None) -> BaseClient:
    """Return the chat client for the configured provider."""
    name = (
        provider if provider is not None else env_first(("AI_PROVIDER", "LLM_PROVIDER"), "mock")
    )
    name = name.strip().lower()

    client: BaseClient
    if name in GATEWAY_NAMES:
        client = MerckGwClient()
    elif name == "openai":
        client = OpenAIClient()
    elif name in ("anthropic", "gemini"):
        client = AdapterClient(name)
    elif name in ADAPTER_NAMES:
        client = AdapterClient(detect_provider())
    else:
        if name not in MOCK_NAMES:
            log.warning("Unknown AI provider %r; falling back to mock", name)
        client = MockClient()

    log_event("llm_provider_selected", log, level=logging.DEBUG, provider=client.provider)
    return client


__all__ = [
    "build_from_env",
    "normalize_messages",
    "BaseClient",
    "MockClient",
    "MerckGwClient",
    "MerckGwConfig",
    "OpenAIClient",
    "OpenAIConfig",
    "AdapterClient",
    "AdapterConfig",
    "detect_provider",
    "LLMError",
]
