"""Jira REST client.

Supports both service-account queries and per-user actions (vote, comment).

Read operations never raise: transport, HTTP and JSON errors are logged and
surface as ``None`` (or an empty value). Issue creation raises ``JiraError``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Union

import httpx

from .core.config import (
    env_first,
    env_int,
    first_present,
    load_env_config,
    parse_log_level,
    pick,
    require,
    strip_slash,
)
from .core.errors import JiraError, snippet
from .core.http import HTTPService, build_timeout, is_success, parse_json

DEFAULT_FIELDS = (
    "summary",
    "status",
    "description",
    "assignee",
    "labels",
    "duedate",
    "fixVersions",
    "priority",
    "created",
    "updated",
    "issuetype",
    "project",
    "components",
    "comment",
    "votes",
)

API = "/rest/api/latest"
AGILE = "/rest/agile/latest"

DEFAULT_BASE_URL = "https://issues.merck.com"
DEFAULT_PAGINATION = 500
SPRINT_PAGE_SIZE = 50
COMMENT_PAGE_SIZE = 100

READ_TIMEOUT_SECONDS = 300.0
WRITE_TIMEOUT_SECONDS = 120.0
USER_ACTION_TIMEOUT_SECONDS = 60.0

BASE_URL_ENV = ("JIRA_BASE_URL", "JIRA_REST_URL")
USERNAME_ENV = ("JIRA_EMAIL", "JIRA_USERNAME", "predictify_user")
SECRET_ENV = ("JIRA_API_TOKEN", "JIRA_PASSWORD", "predictify_password")

FieldList = Union[str, Iterable[str], None]


@dataclass(frozen=True)
class JiraConfig:
    base_url: str
    username: str
    secret: str
    pagination: int = DEFAULT_PAGINATION
    log_level: int = logging.WARNING

    @classmethod
    def resolve(
        cls,
        *,
        base_url: Optional[str] = None,
        username: Optional[str] = None,
        api_token: Optional[str] = None,
        password: Optional[str] = None,
        pagination: Optional[int] = None,
        log_level: Optional[str] = None,
    ) -> "JiraConfig":
        # explicit token beats explicit password; env chain only when neither given
        secret = first_present(api_token, password) or env_first(SECRET_ENV)
        if pagination is None:
            pagination = env_int(("JIRA_PAGINATION",), DEFAULT_PAGINATION)
        if pagination < 1:
            raise ValueError("pagination must be >= 1")
        return cls(
            base_url=strip_slash(pick(base_url, BASE_URL_ENV, DEFAULT_BASE_URL)),
            username=pick(username, USERNAME_ENV),
            secret=secret,
            pagination=pagination,
            log_level=parse_log_level(log_level or env_first(("JIRA_LOG_LEVEL",))),
        )


def _as_list(value: FieldList) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    return [str(v) for v in value]


def _merge_fields(fields: FieldList) -> str:
    return ",".join(dict.fromkeys([*DEFAULT_FIELDS, *_as_list(fields)]))


class JiraClient(HTTPService):
    service = "jira"

    def __init__(
        self,
        *,
        base_url: Optional[str] = None,
        username: Optional[str] = None,
        api_token: Optional[str] = None,
        password: Optional[str] = None,
        pagination: Optional[int] = None,
        log_level: Optional[str] = None,
        config: Optional[JiraConfig] = None,
        http: Optional[httpx.Client] = None,
    ):
        self.config = config or JiraConfig.resolve(
            base_url=base_url,
            username=username,
            api_token=api_token,
            password=password,
            pagination=pagination,
            log_level=log_level,
        )
        require(
            [
                ("base_url", self.config.base_url),
                ("username", self.config.username),
                ("api_token or password", self.config.secret),
            ]
        )
        super().__init__(
            base_url=self.config.base_url,
            headers={"Accept": "application/json"},
            auth=httpx.BasicAuth(self.config.username, self.config.secret),
            timeout=build_timeout(READ_TIMEOUT_SECONDS),
            logger=logging.getLogger(f"merck_tools.{self.service}.{id(self):x}"),
            http=http,
        )
        # per-instance child logger; the level never leaks to other clients
        self.log.setLevel(self.config.log_level)

    @classmethod
    def from_env(cls, **kwargs: Any) -> "JiraClient":
        load_env_config()
        return cls(**kwargs)

    @property
    def base_url(self) -> str:
        return self.config.base_url

    # --- Search -------------------------------------------------------------

    def search(
        self,
        jql: str,
        *,
        fields: FieldList = None,
        expand: FieldList = None,
        max_results: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """Run a JQL search, following pagination until exhausted."""
        page_size = self.config.pagination
        limit = max_results or page_size
        start_at = 0
        issues: List[Dict[str, Any]] = []

        while True:
            params: Dict[str, Any] = {
                "jql": jql,
                "fields": _merge_fields(fields),
                "maxResults": min(limit, page_size),
                "startAt": start_at,
            }
            if expand:
                params["expand"] = ",".join(_as_list(expand))

            data = self._get(f"{API}/search", params=params)
            if not isinstance(data, dict) or not isinstance(data.get("issues"), list):
                break

            page = data["issues"]
            issues.extend(page)
            total = _to_int(data.get("total"))
            if len(issues) >= total or not page:
                break
            if max_results and len(issues) >= max_results:
                break
            start_at += len(page)

        return issues[:max_results] if max_results else issues

    # --- Single issue -------------------------------------------------------

    def issue(
        self, key: str, *, fields: FieldList = None, expand: Optional[str] = "renderedFields"
    ) -> Optional[Dict[str, Any]]:
        params: Dict[str, Any] = {"fields": _merge_fields(fields)}
        if expand:
            params["expand"] = expand
        return self._get(f"{API}/issue/{key}", params=params)

    # --- Projects & versions ------------------------------------------------

    def project_versions(self, project_key: str) -> List[Dict[str, Any]]:
        data = self._get(f"{API}/project/{project_key}/versions")
        return data if isinstance(data, list) else []

    def project(
        self, project_key: str, *, include_versions: bool = False
    ) -> Optional[Dict[str, Any]]:
        data = self._get(f"{API}/project/{project_key}")
        if include_versions and isinstance(data, dict):
            data["versions"] = self.project_versions(project_key)
        return data

    # --- Sprints ------------------------------------------------------------

    def sprints(self, board_id: Union[int, str], *, state: Optional[str] = None) -> List[Dict[str, Any]]:
        out: List[Dict[str, Any]] = []
        start_at = 0
        while True:
            params: Dict[str, Any] = {"maxResults": SPRINT_PAGE_SIZE, "startAt": start_at}
            if state:
                params["state"] = state
            data = self._get(f"{AGILE}/board/{board_id}/sprint", params=params)
            values = data.get("values") if isinstance(data, dict) else None
            if not values:
                break
            out.extend(values)
            start_at += len(values)
        return out

    # --- Votes & comments ---------------------------------------------------

    def votes(self, issue_key: str) -> int:
        data = self._get(f"{API}/issue/{issue_key}/votes")
        return _to_int(data.get("votes")) if isinstance(data, dict) else 0

    def comments(self, issue_key: str) -> List[Dict[str, Any]]:
        data = self._get(
            f"{API}/issue/{issue_key}/comment", params={"maxResults": COMMENT_PAGE_SIZE}
        )
        if not isinstance(data, dict):
            return []
        return data.get("comments") or []

    # --- Create -------------------------------------------------------------

    def create_issue(self, payload: Dict[str, Any], *, bulk: bool = False) -> Any:
        path = f"{API}/issue/bulk" if bulk else f"{API}/issue"
        try:
            resp = self.send(
                "POST",
                path,
                json=payload,
                timeout=build_timeout(WRITE_TIMEOUT_SECONDS),
            )
        except httpx.HTTPError as exc:
            self.log.error("[JIRA][POST] %s %s: %s", path, type(exc).__name__, exc)
            raise JiraError(
                f"Jira POST failed: {exc}", method="POST", url=path
            ) from exc

        if not is_success(resp):
            body = snippet(resp.text)
            self.log.error("[JIRA][POST] %s %s: %s", path, resp.status_code, body)
            raise JiraError(
                f"Jira POST failed: {resp.status_code}",
                status_code=resp.status_code,
                method="POST",
                url=path,
                response_text=body,
            )

        try:
            return parse_json(resp)
        except ValueError as exc:
            raise JiraError(
                "Jira POST returned a non-JSON body",
                status_code=resp.status_code,
                method="POST",
                url=path,
                response_text=snippet(resp.text),
            ) from exc

    # --- Per-user actions ---------------------------------------------------

    def vote_as_user(self, issue_key: str, *, username: str, token: str) -> bool:
        return self._post_as(
            f"{API}/issue/{issue_key}/votes", None, username=username, token=token
        )

    def comment_as_user(
        self, issue_key: str, *, body: str, username: str, token: str
    ) -> bool:
        return self._post_as(
            f"{API}/issue/{issue_key}/comment",
            {"body": body},
            username=username,
            token=token,
        )

    # --- Internals ----------------------------------------------------------

    def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        try:
            resp = self.send("GET", path, params=params)
        except httpx.HTTPError as exc:
            self.log.error("[JIRA][GET] %s %s: %s", path, type(exc).__name__, exc)
            return None

        if not is_success(resp):
            self.log.error(
                "[JIRA][GET] %s %s: %s", path, resp.status_code, snippet(resp.text)
            )
            return None

        try:
            return parse_json(resp)
        except ValueError:
            self.log.error("[JIRA][GET] %s non-JSON body: %s", path, snippet(resp.text))
            return None

    def _post_as(
        self, path: str, payload: Optional[Dict[str, Any]], *, username: str, token: str
    ) -> bool:
        try:
            resp = self.send(
                "POST",
                path,
                json=payload,
                auth=httpx.BasicAuth(username, token),
                timeout=build_timeout(USER_ACTION_TIMEOUT_SECONDS),
            )
        except httpx.HTTPError as exc:
            self.log.error("[JIRA][POST_AS] %s %s: %s", path, type(exc).__name__, exc)
            return False

        if not is_success(resp):
            self.log.error("[JIRA][POST_AS] %s %s", path, resp.status_code)
            return False
        return True


def _to_int(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


__all__ = ["JiraClient", "JiraConfig", "JiraError", "DEFAULT_FIELDS"]
