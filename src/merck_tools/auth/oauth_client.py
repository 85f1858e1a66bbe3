"""Standalone OAuth 2.0 client for the authentication-service (v2).

Framework-agnostic: every call returns an ``OAuthResponse`` envelope
(status + parsed body) and leaves cookies, sessions and redirects to the caller.
"""

from __future__ import annotations

import base64
import re
from dataclasses import dataclass
from typing import Any, Dict, Optional
from urllib.parse import urlencode

import httpx

from ..core.config import env_first, env_int, load_env_config, pick, require, strip_slash
from ..core.errors import OAuthError
from ..core.http import HTTPService, build_timeout
from ..models import OAuthResponse

DEFAULT_BASE = "https://iapi-test.merck.com/authentication-service/v2"
DEFAULT_TIMEOUT_SECONDS = 30

# A secret that is long, colon-free and pure Base64 is assumed to be a
# deployment-supplied "id:secret" already encoded; it is sent verbatim.
PRE_ENCODED_MIN_LENGTH = 20
_BASE64_ALPHABET = re.compile(r"^[A-Za-z0-9+/=]+$")


def looks_pre_encoded(secret: str) -> bool:
    return (
        ":" not in secret
        and len(secret) >= PRE_ENCODED_MIN_LENGTH
        and bool(_BASE64_ALPHABET.match(secret))
    )


def basic_credentials(client_id: str, client_secret: str) -> str:
    if looks_pre_encoded(client_secret):
        return client_secret
    return base64.b64encode(f"{client_id}:{client_secret}".encode()).decode("ascii")


@dataclass(frozen=True)
class OAuthConfig:
    base: str
    client_id: str
    client_secret: str
    redirect_uri: str = ""
    scope: str = "default"
    login_method: str = "sso"
    timeout_seconds: int = DEFAULT_TIMEOUT_SECONDS

    @classmethod
    def resolve(
        cls,
        *,
        base: Optional[str] = None,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        redirect_uri: Optional[str] = None,
        scope: Optional[str] = None,
        login_method: Optional[str] = None,
        timeout_seconds: Optional[int] = None,
    ) -> "OAuthConfig":
        return cls(
            base=strip_slash(pick(base, ("OAUTH_BASE", "OAUTH_HOST"), DEFAULT_BASE)),
            client_id=pick(client_id, ("OAUTH_CLIENT_ID", "OAUTH_KEY")),
            client_secret=pick(client_secret, ("OAUTH_CLIENT_SECRET", "OAUTH_SECRET")),
            redirect_uri=pick(redirect_uri, ("OAUTH_REDIRECT_URI",)),
            scope=pick(scope, ("OAUTH_SCOPE",), "default"),
            login_method=pick(login_method, ("OAUTH_LOGIN_METHOD",), "sso"),
            timeout_seconds=(
                timeout_seconds
                if timeout_seconds is not None
                else env_int(("OAUTH_TIMEOUT",), DEFAULT_TIMEOUT_SECONDS)
            ),
        )


class OAuthClient(HTTPService):
    service = "oauth"

    def __init__(
        self,
        *,
        base: Optional[str] = None,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        redirect_uri: Optional[str] = None,
        scope: Optional[str] = None,
        login_method: Optional[str] = None,
        timeout_seconds: Optional[int] = None,
        config: Optional[OAuthConfig] = None,
        http: Optional[httpx.Client] = None,
    ):
        self.config = config or OAuthConfig.resolve(
            base=base,
            client_id=client_id,
            client_secret=client_secret,
            redirect_uri=redirect_uri,
            scope=scope,
            login_method=login_method,
            timeout_seconds=timeout_seconds,
        )
        require(
            [
                ("client_id", self.config.client_id),
                ("client_secret", self.config.client_secret),
            ]
        )
        super().__init__(
            timeout=build_timeout(self.config.timeout_seconds),
            http=http,
        )

    @classmethod
    def from_env(cls, **kwargs: Any) -> "OAuthClient":
        load_env_config()
        return cls(**kwargs)

    @property
    def base(self) -> str:
        return self.config.base

    @property
    def client_id(self) -> str:
        return self.config.client_id

    @property
    def redirect_uri(self) -> str:
        return self.config.redirect_uri

    def authorize_url(self, state: str, redirect_uri: Optional[str] = None) -> str:
        """URL the browser should be redirected to."""
        query = urlencode(
            {
                "response_type": "code",
                "client_id": self.config.client_id,
                "redirect_uri": redirect_uri or self.config.redirect_uri,
                "scope": self.config.scope,
                "state": state,
                "login_method": self.config.login_method,
            }
        )
        return f"{self.config.base}/authorize?{query}"

    def exchange_code(self, code: str, redirect_uri: Optional[str] = None) -> OAuthResponse:
        return self._post_form(
            "/token",
            {
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": redirect_uri or self.config.redirect_uri,
                "scope": self.config.scope,
            },
        )

    def refresh_token(self, refresh_token: str) -> OAuthResponse:
        return self._post_form(
            "/token",
            {
                "grant_type": "refresh_token",
                "refresh_token": refresh_token,
                "scope": self.config.scope,
            },
        )

    def introspect(self, token: str, token_type_hint: str = "access_token") -> OAuthResponse:
        """Check whether a token is still active."""
        return self._post_form(
            "/introspect", {"token": token, "token_type_hint": token_type_hint}
        )

    def userinfo(self, access_token: str) -> OAuthResponse:
        return self._call(
            "GET",
            "/userinfo",
            headers={
                "Accept": "application/json",
                "Authorization": f"Bearer {access_token}",
            },
        )

    def basic_auth_header(self) -> str:
        return "Basic " + basic_credentials(
            self.config.client_id, self.config.client_secret
        )

    # --- Internals ----------------------------------------------------------

    def _post_form(self, path: str, form: Dict[str, str]) -> OAuthResponse:
        return self._call(
            "POST",
            path,
            data=form,
            headers={
                "Accept": "application/json",
                "Authorization": self.basic_auth_header(),
                "Content-Type": "application/x-www-form-urlencoded",
            },
        )

    def _call(self, method: str, path: str, **kwargs: Any) -> OAuthResponse:
        url = f"{self.config.base}{path}"
        try:
            resp = self.send(method, url, **kwargs)
        except httpx.HTTPError as exc:
            raise OAuthError(
                f"OAuth {method} {path} failed: {exc}", method=method, url=url
            ) from exc

        try:
            data = resp.json()
        except ValueError:
            data = {"raw": resp.text}
        return OAuthResponse(status=resp.status_code, data=data)


__all__ = [
    "OAuthClient",
    "OAuthConfig",
    "OAuthError",
    "basic_credentials",
    "looks_pre_encoded",
]
