"""Microsoft Graph directory client (via the iAPI proxy).

Lookups degrade instead of raising: ``user`` returns None and
``direct_reports`` returns [] when the proxy is unreachable or answers with
anything but 200.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional
from urllib.parse import quote_plus

import httpx

from .core.config import env_int, load_env_config, pick, require, strip_slash
from .core.errors import MSGraphError
from .core.http import HTTPService, build_timeout, parse_json
from .models import PhotoResponse

OCTET_STREAM = "application/octet-stream"
DEFAULT_REPORTS_SELECT = "companyName,userPrincipalName"


@dataclass(frozen=True)
class MSGraphConfig:
    base: str
    api_key: str
    upn_domain: str = "merck.com"
    open_timeout: int = 2
    read_timeout: int = 5

    @classmethod
    def resolve(
        cls,
        *,
        base: Optional[str] = None,
        api_key: Optional[str] = None,
        upn_domain: Optional[str] = None,
        open_timeout: Optional[int] = None,
        read_timeout: Optional[int] = None,
    ) -> "MSGraphConfig":
        return cls(
            base=strip_slash(pick(base, ("MS_GRAPH_BASE", "GRAPH_HOST"))),
            api_key=pick(api_key, ("MS_GRAPH_API_KEY", "GRAPH_KEY")),
            upn_domain=pick(upn_domain, ("MS_GRAPH_UPN_DOMAIN",), "merck.com"),
            open_timeout=(
                open_timeout
                if open_timeout is not None
                else env_int(("MS_GRAPH_OPEN_TIMEOUT",), 2)
            ),
            read_timeout=(
                read_timeout
                if read_timeout is not None
                else env_int(("MS_GRAPH_READ_TIMEOUT",), 5)
            ),
        )


def _email_domain(value: Optional[str]) -> Optional[str]:
    s = (value or "").strip()
    if "@" not in s:
        return None
    return s.split("@", 1)[1] or None


def identifier_candidates(profile: Mapping[str, Any], default_domain: str = "") -> List[str]:
    """Ordered, de-duplicated identifiers to try for a profile photo."""
    profile = profile if isinstance(profile, Mapping) else {}
    email = str(profile.get("email") or "").strip()
    upn = str(profile.get("userPrincipalName") or "").strip()
    isid = str(profile.get("isid") or "").strip()
    domain = _email_domain(email) or _email_domain(upn) or default_domain.strip()

    candidates: List[str] = []
    if email:
        candidates.append(email)
    if isid and domain:
        candidates.append(f"{isid}@{domain}")
    if isid:
        candidates.append(isid)
    if upn:
        candidates.append(upn)
    return list(dict.fromkeys(candidates))


class MSGraphClient(HTTPService):
    service = "ms_graph"

    def __init__(
        self,
        *,
        base: Optional[str] = None,
        api_key: Optional[str] = None,
        upn_domain: Optional[str] = None,
        open_timeout: Optional[int] = None,
        read_timeout: Optional[int] = None,
        config: Optional[MSGraphConfig] = None,
        http: Optional[httpx.Client] = None,
    ):
        self.config = config or MSGraphConfig.resolve(
            base=base,
            api_key=api_key,
            upn_domain=upn_domain,
            open_timeout=open_timeout,
            read_timeout=read_timeout,
        )
        require([("base", self.config.base), ("api_key", self.config.api_key)])
        super().__init__(
            base_url=self.config.base,
            headers={"X-Merck-APIKey": self.config.api_key},
            timeout=build_timeout(self.config.read_timeout, self.config.open_timeout),
            http=http,
        )

    @classmethod
    def from_env(cls, **kwargs: Any) -> "MSGraphClient":
        load_env_config()
        return cls(**kwargs)

    def user(self, identifier: str) -> Optional[Dict[str, Any]]:
        """Fetch a user profile from /users/{identifier}."""
        try:
            resp = self._api_get(
                f"/users/{quote_plus(identifier)}", accept="application/json"
            )
        except MSGraphError as exc:
            self.log.warning("graph user lookup failed: %s", exc)
            return None
        if resp.status_code != 200:
            return None
        try:
            data = parse_json(resp)
        except ValueError:
            self.log.warning("graph user lookup returned a non-JSON body")
            return None
        return data if isinstance(data, dict) else None

    def user_photo(self, profile: Mapping[str, Any]) -> PhotoResponse:
        """Fetch photo bytes, trying each identifier candidate in turn."""
        last: Optional[PhotoResponse] = None
        for candidate in identifier_candidates(profile, self.config.upn_domain):
            try:
                res = self.user_photo_raw(candidate)
            except MSGraphError as exc:
                self.log.debug("photo lookup for candidate failed: %s", exc)
                continue
            last = res
            if res.ok:
                return res
        return last or PhotoResponse(status=404, body=b"", content_type=OCTET_STREAM)

    def user_photo_raw(self, id_or_upn: str) -> PhotoResponse:
        """Low-level GET /users/{id}/photo/$value; raises MSGraphError on transport failure."""
        resp = self._api_get(f"/users/{quote_plus(id_or_upn)}/photo/$value")
        return PhotoResponse(
            status=resp.status_code,
            body=resp.content or b"",
            content_type=resp.headers.get("Content-Type") or OCTET_STREAM,
        )

    def direct_reports(
        self, id_or_upn: str, select: str = DEFAULT_REPORTS_SELECT
    ) -> List[Dict[str, Any]]:
        try:
            resp = self._api_get(
                f"/users/{quote_plus(id_or_upn)}/directReports",
                accept="application/json",
                params={"$select": select},
            )
        except MSGraphError as exc:
            self.log.warning("graph direct reports lookup failed: %s", exc)
            return []
        if resp.status_code != 200:
            return []
        try:
            data = parse_json(resp)
        except ValueError:
            return []
        return (data.get("value") or []) if isinstance(data, dict) else []

    def _api_get(
        self,
        path: str,
        *,
        accept: str = "*/*",
        params: Optional[Dict[str, Any]] = None,
    ) -> httpx.Response:
        try:
            return self.send("GET", path, params=params or None, headers={"Accept": accept})
        except httpx.HTTPError as exc:
            raise MSGraphError(
                f"Graph GET {path} failed: {exc}", method="GET", url=path
            ) from exc


__all__ = [
    "MSGraphClient",
    "MSGraphConfig",
    "MSGraphError",
    "identifier_candidates",
]
