import base64
from urllib.parse import parse_qsl, urlsplit

import httpx
import pytest
import respx
from httpx import Response
from merck_tools.auth import OAuthClient, OAuthConfig, OAuthError
from merck_tools.auth.oauth_client import basic_credentials, looks_pre_encoded

BASE = "https://auth.test/v2"


def _client(**kwargs):
    kwargs.setdefault("base", BASE)
    kwargs.setdefault("client_id", "app")
    kwargs.setdefault("client_secret", "s3cret")
    kwargs.setdefault("redirect_uri", "https://app.test/callback")
    return OAuthClient(**kwargs)


def test_authorize_url_query_order_and_values():
    url = _client(scope="openid", login_method="password").authorize_url("xyz")

    parts = urlsplit(url)
    assert f"{parts.scheme}://{parts.netloc}{parts.path}" == f"{BASE}/authorize"
    assert parse_qsl(parts.query) == [
        ("response_type", "code"),
        ("client_id", "app"),
        ("redirect_uri", "https://app.test/callback"),
        ("scope", "openid"),
        ("state", "xyz"),
        ("login_method", "password"),
    ]


def test_authorize_url_redirect_override():
    url = _client().authorize_url("s", redirect_uri="https://other.test/cb")
    query = dict(parse_qsl(urlsplit(url).query))
    assert query["redirect_uri"] == "https://other.test/cb"
    assert query["scope"] == "default"
    assert query["login_method"] == "sso"


def test_basic_header_encodes_raw_secret():
    expected = base64.b64encode(b"app:s3cret").decode()
    assert _client().basic_auth_header() == f"Basic {expected}"


def test_basic_header_sends_pre_encoded_secret_verbatim():
    pre = base64.b64encode(b"app:a-much-longer-secret").decode()
    assert looks_pre_encoded(pre)
    assert _client(client_secret=pre).basic_auth_header() == f"Basic {pre}"


@pytest.mark.parametrize(
    "secret",
    [
        "short+b64=",  # under 20 characters
        "has:colon-but-is-long-enough",
        "contains spaces and is long enough",
        "dashes-are-not-base64-alphabet",
    ],
)
def test_secrets_that_are_encoded_before_sending(secret):
    assert not looks_pre_encoded(secret)
    expected = base64.b64encode(f"app:{secret}".encode()).decode()
    assert basic_credentials("app", secret) == expected


@respx.mock
def test_exchange_code_posts_form_with_basic_auth():
    route = respx.post(f"{BASE}/token").mock(
        return_value=Response(200, json={"access_token": "at", "refresh_token": "rt"})
    )

    result = _client().exchange_code("the-code")

    assert result.ok
    assert result.status == 200
    assert result.data["access_token"] == "at"
    request = route.calls[0].request
    assert request.headers["Content-Type"] == "application/x-www-form-urlencoded"
    assert request.headers["Authorization"].startswith("Basic ")
    assert dict(parse_qsl(request.content.decode())) == {
        "grant_type": "authorization_code",
        "code": "the-code",
        "redirect_uri": "https://app.test/callback",
        "scope": "default",
    }


@respx.mock
def test_refresh_token_form():
    route = respx.post(f"{BASE}/token").mock(return_value=Response(200, json={}))

    _client().refresh_token("rt")

    assert dict(parse_qsl(route.calls[0].request.content.decode())) == {
        "grant_type": "refresh_token",
        "refresh_token": "rt",
        "scope": "default",
    }


@respx.mock
def test_introspect_sends_token_type_hint():
    route = respx.post(f"{BASE}/introspect").mock(
        return_value=Response(200, json={"active": True})
    )

    result = _client().introspect("tok", token_type_hint="refresh_token")

    assert result.data == {"active": True}
    assert dict(parse_qsl(route.calls[0].request.content.decode())) == {
        "token": "tok",
        "token_type_hint": "refresh_token",
    }


@respx.mock
def test_userinfo_uses_bearer_token():
    route = respx.get(f"{BASE}/userinfo").mock(
        return_value=Response(200, json={"email": "a@merck.com"})
    )

    result = _client().userinfo("access")

    assert result.data["email"] == "a@merck.com"
    assert route.calls[0].request.headers["Authorization"] == "Bearer access"


@respx.mock
def test_non_2xx_is_returned_not_raised():
    respx.post(f"{BASE}/token").mock(
        return_value=Response(401, json={"error": "invalid_client"})
    )

    result = _client().exchange_code("c")

    assert not result.ok
    assert result.status == 401
    assert result.data == {"error": "invalid_client"}


@respx.mock
def test_non_json_body_is_wrapped_as_raw():
    respx.post(f"{BASE}/token").mock(return_value=Response(502, text="Bad Gateway"))

    result = _client().exchange_code("c")

    assert result.status == 502
    assert result.data == {"raw": "Bad Gateway"}


@respx.mock
def test_transport_error_raises_oauth_error():
    respx.post(f"{BASE}/token").mock(side_effect=httpx.ConnectError("refused"))

    with pytest.raises(OAuthError) as exc:
        _client().exchange_code("c")
    assert exc.value.status_code is None


def test_config_env_chain(monkeypatch):
    monkeypatch.setenv("OAUTH_HOST", "https://host.test/v2/")
    monkeypatch.setenv("OAUTH_KEY", "key-id")
    monkeypatch.setenv("OAUTH_SECRET", "key-secret")
    monkeypatch.setenv("OAUTH_TIMEOUT", "12")

    cfg = OAuthConfig.resolve()

    assert cfg.base == "https://host.test/v2"
    assert cfg.client_id == "key-id"
    assert cfg.client_secret == "key-secret"
    assert cfg.timeout_seconds == 12
    assert cfg.scope == "default"
    assert cfg.login_method == "sso"


def test_config_default_base():
    assert OAuthConfig.resolve().base == (
        "https://iapi-test.merck.com/authentication-service/v2"
    )


def test_missing_client_credentials_raise():
    with pytest.raises(ValueError) as exc:
        OAuthClient(client_id="app")
    assert "client_secret" in str(exc.value)
