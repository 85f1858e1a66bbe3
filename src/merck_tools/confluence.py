"""Confluence REST client (v1 content API).

Every non-2xx response raises ``ConfluenceError`` with the status and a
truncated body. ``write`` is read-modify-write on the page version counter;
there is no lock, so two concurrent writers can lose an update.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from .core.config import (
    env_first,
    first_present,
    load_env_config,
    parse_log_level,
    pick,
    require,
    strip_slash,
)
from .core.errors import ConfluenceError, snippet
from .core.http import HTTPService, build_timeout, is_success, parse_json

API = "/rest/api/latest"
DEFAULT_BASE_URL = "https://share.merck.com"
READ_TIMEOUT_SECONDS = 300.0
WRITE_TIMEOUT_SECONDS = 120.0

BASE_URL_ENV = ("CONFLUENCE_BASE_URL", "CONFLUENCE_REST_URL")
USERNAME_ENV = ("CONFLUENCE_USER", "JIRA_EMAIL", "JIRA_USERNAME", "predictify_user")
SECRET_ENV = (
    "CONFLUENCE_API_TOKEN",
    "CONFLUENCE_PASSWORD",
    "JIRA_API_TOKEN",
    "JIRA_PASSWORD",
    "predictify_password",
)


@dataclass(frozen=True)
class ConfluenceConfig:
    base_url: str
    username: str = ""
    secret: str = ""
    log_level: int = logging.WARNING

    @classmethod
    def resolve(
        cls,
        *,
        base_url: Optional[str] = None,
        username: Optional[str] = None,
        api_token: Optional[str] = None,
        password: Optional[str] = None,
        log_level: Optional[str] = None,
    ) -> "ConfluenceConfig":
        return cls(
            base_url=strip_slash(pick(base_url, BASE_URL_ENV, DEFAULT_BASE_URL)),
            username=pick(username, USERNAME_ENV),
            secret=first_present(api_token, password) or env_first(SECRET_ENV),
            log_level=parse_log_level(
                log_level or env_first(("CONFLUENCE_LOG_LEVEL",))
            ),
        )


class ConfluenceClient(HTTPService):
    service = "confluence"

    def __init__(
        self,
        *,
        base_url: Optional[str] = None,
        username: Optional[str] = None,
        api_token: Optional[str] = None,
        password: Optional[str] = None,
        log_level: Optional[str] = None,
        config: Optional[ConfluenceConfig] = None,
        http: Optional[httpx.Client] = None,
    ):
        self.config = config or ConfluenceConfig.resolve(
            base_url=base_url,
            username=username,
            api_token=api_token,
            password=password,
            log_level=log_level,
        )
        require([("base_url", self.config.base_url)])
        auth = None
        if self.config.username or self.config.secret:
            auth = httpx.BasicAuth(self.config.username, self.config.secret)
        super().__init__(
            base_url=self.config.base_url,
            auth=auth,
            timeout=build_timeout(READ_TIMEOUT_SECONDS),
            logger=logging.getLogger(f"merck_tools.{self.service}.{id(self):x}"),
            http=http,
        )
        # per-instance child logger; the level never leaks to other clients
        self.log.setLevel(self.config.log_level)

    @classmethod
    def from_env(cls, **kwargs: Any) -> "ConfluenceClient":
        load_env_config()
        return cls(**kwargs)

    @property
    def base_url(self) -> str:
        return self.config.base_url

    def read(self, page_id: str) -> Dict[str, Any]:
        """Read a page's storage-format body and version info."""
        return self._request(
            "GET",
            f"{API}/content/{page_id}",
            params={"expand": "version,body.storage"},
        )

    def write(self, page_id: str, content: str) -> Dict[str, Any]:
        """Replace a page's body, bumping its version by one (minor edit)."""
        try:
            page = self.read(page_id)
        except ConfluenceError as exc:
            raise ConfluenceError(
                f"Cannot read page {page_id}: {exc}",
                status_code=exc.status_code,
                method="GET",
                url=exc.url,
                response_text=exc.response_text,
            ) from exc
        if not isinstance(page, dict) or not page:
            raise ConfluenceError(f"Cannot read page {page_id}", method="GET")

        version = page.get("version") or {}
        if not isinstance(version, dict):
            raise ConfluenceError(f"Page {page_id} has an invalid version: {version!r}")
        try:
            number = int(version.get("number") or 0)
        except (TypeError, ValueError) as exc:
            raise ConfluenceError(
                f"Page {page_id} has an invalid version number: {version!r}"
            ) from exc

        payload = {
            "version": {"number": number + 1, "minorEdit": True},
            "type": "page",
            "title": page.get("title"),
            "body": {"storage": {"value": content, "representation": "storage"}},
        }
        return self._request(
            "PUT",
            f"{API}/content/{page_id}",
            json=payload,
            timeout=build_timeout(WRITE_TIMEOUT_SECONDS),
        )

    def search(self, cql: str) -> Dict[str, Any]:
        return self._request("GET", f"{API}/content/search", params={"cql": cql})

    def attachments(self, page_id: str) -> Dict[str, Any]:
        return self._request(
            "GET",
            f"{API}/content/{page_id}/child/attachment",
            params={"expand": "version"},
        )

    def download_attachment(self, page_id: str, filename: str) -> Optional[bytes]:
        """Download an attachment by exact title; None when no attachment matches."""
        listing = self.attachments(page_id)
        results = listing.get("results") if isinstance(listing, dict) else None
        match = next(
            (
                att
                for att in results or []
                if isinstance(att, dict) and att.get("title") == filename
            ),
            None,
        )
        if match is None:
            return None

        href = (match.get("_links") or {}).get("download")
        if not href:
            return None

        url = f"{self.config.base_url}{href}"
        resp = self._send(
            "GET",
            url,
            headers={"Accept": "*/*"},
            timeout=build_timeout(WRITE_TIMEOUT_SECONDS),
        )
        return resp.content

    # --- Internals ----------------------------------------------------------

    def _send(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            resp = self.send(method, path, **kwargs)
        except httpx.HTTPError as exc:
            raise ConfluenceError(
                f"Confluence {method} {path} failed: {exc}", method=method, url=path
            ) from exc

        if not is_success(resp):
            body = snippet(resp.text)
            raise ConfluenceError(
                f"Confluence {method} {path} failed: {resp.status_code} {body}",
                status_code=resp.status_code,
                method=method,
                url=path,
                response_text=body,
            )
        return resp

    def _request(self, method: str, path: str, **kwargs: Any) -> Dict[str, Any]:
        headers = {"Accept": "application/json"}
        resp = self._send(method, path, headers=headers, **kwargs)
        try:
            return parse_json(resp)
        except ValueError as exc:
            raise ConfluenceError(
                f"Confluence {method} {path} returned a non-JSON body",
                status_code=resp.status_code,
                method=method,
                url=path,
                response_text=snippet(resp.text),
            ) from exc


__all__ = ["ConfluenceClient", "ConfluenceConfig", "ConfluenceError"]
