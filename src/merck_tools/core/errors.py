from __future__ import annotations

from typing import Optional

SNIPPET_LIMIT = 300


def snippet(text: Optional[str], limit: int = SNIPPET_LIMIT) -> str:
    """Truncate a response body for diagnostics."""
    return (text or "")[:limit]


class MerckToolsError(Exception):
    """Base error for all merck_tools clients."""


class MerckToolsHTTPError(MerckToolsError):
    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        method: Optional[str] = None,
        url: Optional[str] = None,
        response_text: Optional[str] = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.method = method
        self.url = url
        self.response_text = response_text


class JiraError(MerckToolsHTTPError):
    pass


class ConfluenceError(MerckToolsHTTPError):
    pass


class OAuthError(MerckToolsHTTPError):
    pass


class SharePointError(MerckToolsHTTPError):
    pass


class MSGraphError(MerckToolsHTTPError):
    pass


class LLMError(MerckToolsHTTPError):
    pass


__all__ = [
    "MerckToolsError",
    "MerckToolsHTTPError",
    "JiraError",
    "ConfluenceError",
    "OAuthError",
    "SharePointError",
    "MSGraphError",
    "LLMError",
    "snippet",
    "SNIPPET_LIMIT",
]
