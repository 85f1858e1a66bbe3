"""SharePoint Online list client (via the iAPI proxy).

Generic CRUD for lists and list items using the SharePoint app permission
model. Besides the API key, every request carries the target site URL and the
site app credentials as routing headers for the proxy.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, Union
from urllib.parse import quote_plus

import httpx

from .core.config import env_int, load_env_config, pick, strip_slash
from .core.errors import SharePointError, snippet
from .core.http import HTTPService, build_timeout, is_success, parse_json

ERROR_BODY_LIMIT = 500


@dataclass(frozen=True)
class SharePointConfig:
    base_url: str = ""
    api_key: str = ""
    site_url: str = ""
    client_id: str = ""
    client_secret: str = ""
    open_timeout: int = 5
    read_timeout: int = 30

    @classmethod
    def resolve(
        cls,
        *,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        site_url: Optional[str] = None,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        open_timeout: Optional[int] = None,
        read_timeout: Optional[int] = None,
    ) -> "SharePointConfig":
        return cls(
            base_url=strip_slash(pick(base_url, ("SP_BASE_URL",))),
            api_key=pick(api_key, ("SP_API_KEY",)),
            site_url=pick(site_url, ("SP_SITE_URL",)),
            client_id=pick(client_id, ("SP_CLIENT_ID",)),
            client_secret=pick(client_secret, ("SP_CLIENT_SECRET",)),
            open_timeout=(
                open_timeout
                if open_timeout is not None
                else env_int(("SP_OPEN_TIMEOUT",), 5)
            ),
            read_timeout=(
                read_timeout
                if read_timeout is not None
                else env_int(("SP_READ_TIMEOUT",), 30)
            ),
        )

    @property
    def complete(self) -> bool:
        return all(
            (self.base_url, self.api_key, self.site_url, self.client_id, self.client_secret)
        )


def build_query(
    *,
    top: Optional[int] = None,
    skip: Optional[int] = None,
    select: Optional[str] = None,
    filter: Optional[str] = None,
) -> Dict[str, Any]:
    """OData-style query params; only supplied values are emitted."""
    params: Dict[str, Any] = {}
    if top is not None:
        params["$top"] = int(top)
    if skip is not None:
        params["$skip"] = int(skip)
    if select is not None:
        params["$select"] = str(select)
    if filter is not None:
        params["$filter"] = str(filter)
    return params


def _encode(value: Any) -> str:
    return quote_plus(str(value))


class SharePointClient(HTTPService):
    service = "sharepoint"

    def __init__(
        self,
        *,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        site_url: Optional[str] = None,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        open_timeout: Optional[int] = None,
        read_timeout: Optional[int] = None,
        config: Optional[SharePointConfig] = None,
        http: Optional[httpx.Client] = None,
    ):
        self.config = config or SharePointConfig.resolve(
            base_url=base_url,
            api_key=api_key,
            site_url=site_url,
            client_id=client_id,
            client_secret=client_secret,
            open_timeout=open_timeout,
            read_timeout=read_timeout,
        )
        super().__init__(
            base_url=self.config.base_url,
            headers={
                "Content-Type": "application/json",
                "Accept": "application/json",
                "X-Merck-APIKey": self.config.api_key,
                "siteurl": self.config.site_url,
                "siteClientId": self.config.client_id,
                "siteSecretId": self.config.client_secret,
            },
            timeout=build_timeout(self.config.read_timeout, self.config.open_timeout),
            http=http,
        )

    @classmethod
    def from_env(cls, **kwargs: Any) -> "SharePointClient":
        load_env_config()
        return cls(**kwargs)

    def enabled(self) -> bool:
        """True when all required configuration is present."""
        return self.config.complete

    # --- Lists --------------------------------------------------------------

    def lists(
        self,
        *,
        top: Optional[int] = None,
        skip: Optional[int] = None,
        select: Optional[str] = None,
    ) -> Any:
        params = build_query(top=top, skip=skip, select=select)
        return self._request("GET", "/lists", params=params)

    # --- List items ---------------------------------------------------------

    def list_items(
        self,
        list_name: str,
        *,
        top: Optional[int] = None,
        skip: Optional[int] = None,
        select: Optional[str] = None,
        filter: Optional[str] = None,
    ) -> Any:
        params = build_query(top=top, skip=skip, select=select, filter=filter)
        return self._request("GET", f"/lists/{_encode(list_name)}/items", params=params)

    def create_item(self, list_name: str, fields: Dict[str, Any]) -> Any:
        return self._request("POST", f"/lists/{_encode(list_name)}/items", json=fields)

    def update_item(
        self, list_name: str, item_id: Union[int, str], fields: Dict[str, Any]
    ) -> Any:
        return self._request(
            "PUT", f"/lists/{_encode(list_name)}/items/{item_id}", json=fields
        )

    def delete_item(self, list_name: str, item_id: Union[int, str]) -> bool:
        self._request("DELETE", f"/lists/{_encode(list_name)}/items/{item_id}")
        return True

    # --- Internals ----------------------------------------------------------

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        if not self.enabled():
            raise SharePointError(
                "SharePoint client is not configured "
                "(SP_BASE_URL, SP_API_KEY, SP_SITE_URL, SP_CLIENT_ID, SP_CLIENT_SECRET)",
                method=method,
                url=path,
            )

        try:
            resp = self.send(method, path, **kwargs)
        except httpx.HTTPError as exc:
            raise SharePointError(
                f"SharePoint API {method} {path} failed: {exc}", method=method, url=path
            ) from exc

        if not is_success(resp):
            body = snippet(resp.text, ERROR_BODY_LIMIT)
            raise SharePointError(
                f"SharePoint API {method} {path} returned {resp.status_code}: {body}",
                status_code=resp.status_code,
                method=method,
                url=path,
                response_text=body,
            )

        try:
            return parse_json(resp)
        except ValueError as exc:
            raise SharePointError(
                f"SharePoint API response parse error: {exc}",
                status_code=resp.status_code,
                method=method,
                url=path,
                response_text=snippet(resp.text, ERROR_BODY_LIMIT),
            ) from exc


__all__ = ["SharePointClient", "SharePointConfig", "SharePointError", "build_query"]
