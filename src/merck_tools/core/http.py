from __future__ import annotations

import logging
import time
from typing import Any, Dict, Mapping, Optional

import httpx


def build_timeout(read_seconds: float, connect_seconds: Optional[float] = None) -> httpx.Timeout:
    return httpx.Timeout(read_seconds, connect=connect_seconds or read_seconds)


def is_success(resp: httpx.Response) -> bool:
    return 200 <= resp.status_code < 300


def parse_json(resp: httpx.Response) -> Any:
    """Parse a JSON body; an empty body is treated as an empty object.

    Raises ValueError (json.JSONDecodeError) on non-JSON content.
    """
    if not resp.content or not resp.content.strip():
        return {}
    return resp.json()


class HTTPService:
    """
    Shared synchronous HTTP plumbing for the service clients.
    - Owns an httpx.Client unless one is injected
    - Logs every call (method, url, status, duration) without secrets
    - Leaves status handling and error policy to the component
    """

    service = "http"

    def __init__(
        self,
        *,
        base_url: str = "",
        headers: Optional[Mapping[str, str]] = None,
        auth: Optional[httpx.Auth] = None,
        timeout: Optional[httpx.Timeout] = None,
        logger: Optional[logging.Logger] = None,
        http: Optional[httpx.Client] = None,
    ):
        self.log = logger or logging.getLogger(f"merck_tools.{self.service}")
        self._owns_http = http is None
        self.http = http or httpx.Client(
            base_url=base_url,
            headers=dict(headers or {}),
            auth=auth,
            timeout=timeout if timeout is not None else httpx.Timeout(30.0),
        )

    def close(self) -> None:
        if self._owns_http:
            self.http.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def send(
        self,
        method: str,
        url: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
        data: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        auth: Optional[httpx.Auth] = None,
        timeout: Optional[httpx.Timeout] = None,
    ) -> httpx.Response:
        """Issue one request; transport errors propagate as httpx.HTTPError."""
        method = method.upper()
        kwargs: Dict[str, Any] = {"params": params, "headers": headers}
        if json is not None:
            kwargs["json"] = json
        if data is not None:
            kwargs["data"] = data
        if auth is not None:
            kwargs["auth"] = auth
        if timeout is not None:
            kwargs["timeout"] = timeout

        start = time.perf_counter()
        try:
            resp = self.http.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            self.log.debug(
                "http_call",
                extra={
                    "service": self.service,
                    "method": method,
                    "url": url,
                    "status": "exception",
                    "error_type": type(exc).__name__,
                    "duration_ms": int((time.perf_counter() - start) * 1000),
                },
            )
            raise

        self.log.debug(
            "http_call",
            extra={
                "service": self.service,
                "method": method,
                "url": str(resp.request.url),
                "status": resp.status_code,
                "duration_ms": int((time.perf_counter() - start) * 1000),
            },
        )
        return resp


__all__ = ["HTTPService", "build_timeout", "is_success", "parse_json"]
