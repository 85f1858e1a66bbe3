from __future__ import annotations

from typing import Any, Iterable

from .base import BaseClient, last_user_content, normalize_messages

MOCK_TEMPLATE = """**Mock AI (not configured)**

Set `AI_PROVIDER` in `.env` to one of: `openai`, `anthropic`, `gemini`, `merck_gw`, or `adapter`.

Your question:
{question}
"""


class MockClient(BaseClient):
    """No-network stand-in used when no provider is configured."""

    provider = "mock"

    def generate(
        self,
        messages: Iterable[Any],
        *,
        temperature: float = 0.2,
        max_tokens: int = 900,
        json_mode: bool = False,
    ) -> str:
        question = last_user_content(normalize_messages(messages)) or "(no question)"
        return MOCK_TEMPLATE.format(question=question)


__all__ = ["MockClient", "MOCK_TEMPLATE"]
