import json

import httpx
import pytest
import respx
from httpx import Response
from merck_tools.confluence import ConfluenceClient, ConfluenceConfig, ConfluenceError

BASE = "https://wiki.test"
PAGE = f"{BASE}/rest/api/latest/content/42"


def _client():
    return ConfluenceClient(base_url=BASE, username="svc", api_token="tok")


@respx.mock
def test_read_requests_version_and_storage():
    route = respx.get(PAGE).mock(
        return_value=Response(200, json={"id": "42", "title": "Home"})
    )

    page = _client().read("42")

    assert page["title"] == "Home"
    assert route.calls[0].request.url.params["expand"] == "version,body.storage"


@respx.mock
def test_write_bumps_version_and_keeps_title():
    respx.get(PAGE).mock(
        return_value=Response(
            200,
            json={"id": "42", "title": "Release Notes", "version": {"number": 7}},
        )
    )
    put = respx.put(PAGE).mock(return_value=Response(200, json={"id": "42"}))

    result = _client().write("42", "<p>new</p>")

    assert result == {"id": "42"}
    body = json.loads(put.calls[0].request.content)
    assert body == {
        "version": {"number": 8, "minorEdit": True},
        "type": "page",
        "title": "Release Notes",
        "body": {"storage": {"value": "<p>new</p>", "representation": "storage"}},
    }


@respx.mock(assert_all_called=False)
def test_write_without_readable_page_sends_no_put(respx_mock):
    respx_mock.get(PAGE).mock(return_value=Response(404, text="missing"))
    put = respx_mock.put(PAGE).mock(return_value=Response(200, json={}))

    with pytest.raises(ConfluenceError) as exc:
        _client().write("42", "body")

    assert "Cannot read page 42" in str(exc.value)
    assert exc.value.status_code == 404
    assert not put.called


@respx.mock(assert_all_called=False)
def test_write_with_empty_page_sends_no_put(respx_mock):
    respx_mock.get(PAGE).mock(return_value=Response(200, text=""))
    put = respx_mock.put(PAGE).mock(return_value=Response(200, json={}))

    with pytest.raises(ConfluenceError):
        _client().write("42", "body")
    assert not put.called


@respx.mock(assert_all_called=False)
def test_write_with_non_object_version_sends_no_put(respx_mock):
    respx_mock.get(PAGE).mock(
        return_value=Response(200, json={"id": "42", "title": "T", "version": 5})
    )
    put = respx_mock.put(PAGE).mock(return_value=Response(200, json={}))

    with pytest.raises(ConfluenceError) as exc:
        _client().write("42", "body")

    assert "invalid version" in str(exc.value)
    assert not put.called


@respx.mock
def test_search_passes_cql():
    route = respx.get(f"{BASE}/rest/api/latest/content/search").mock(
        return_value=Response(200, json={"results": []})
    )

    assert _client().search('space = "ENG"') == {"results": []}
    assert route.calls[0].request.url.params["cql"] == 'space = "ENG"'


@respx.mock
def test_non_2xx_raises_with_truncated_body():
    respx.get(f"{BASE}/rest/api/latest/content/search").mock(
        return_value=Response(500, text="e" * 900)
    )

    with pytest.raises(ConfluenceError) as exc:
        _client().search("x")

    assert exc.value.status_code == 500
    assert len(exc.value.response_text) == 300


@respx.mock
def test_transport_error_raises():
    respx.get(PAGE).mock(side_effect=httpx.ConnectError("down"))
    with pytest.raises(ConfluenceError):
        _client().read("42")


@respx.mock
def test_invalid_json_raises():
    respx.get(PAGE).mock(return_value=Response(200, text="<html>"))
    with pytest.raises(ConfluenceError) as exc:
        _client().read("42")
    assert "non-JSON" in str(exc.value)


@respx.mock
def test_download_attachment_by_exact_title():
    listing = respx.get(f"{PAGE}/child/attachment").mock(
        return_value=Response(
            200,
            json={
                "results": [
                    {"title": "report.pdf.bak", "_links": {"download": "/dl/bak"}},
                    {"title": "report.pdf", "_links": {"download": "/dl/report.pdf?v=2"}},
                ]
            },
        )
    )
    download = respx.get(f"{BASE}/dl/report.pdf").mock(
        return_value=Response(200, content=b"%PDF-1.7")
    )

    data = _client().download_attachment("42", "report.pdf")

    assert data == b"%PDF-1.7"
    assert listing.calls[0].request.url.params["expand"] == "version"
    assert download.calls[0].request.headers["Accept"] == "*/*"
    assert download.calls[0].request.url.params["v"] == "2"


@respx.mock
def test_download_attachment_no_match_returns_none():
    respx.get(f"{PAGE}/child/attachment").mock(
        return_value=Response(200, json={"results": [{"title": "other.txt"}]})
    )
    assert _client().download_attachment("42", "report.pdf") is None


def test_config_falls_back_to_jira_credentials(monkeypatch):
    monkeypatch.setenv("CONFLUENCE_REST_URL", "https://rest.wiki/")
    monkeypatch.setenv("JIRA_EMAIL", "me@merck.com")
    monkeypatch.setenv("JIRA_PASSWORD", "pw")

    cfg = ConfluenceConfig.resolve()

    assert cfg.base_url == "https://rest.wiki"
    assert cfg.username == "me@merck.com"
    assert cfg.secret == "pw"


def test_config_own_variables_take_priority(monkeypatch):
    monkeypatch.setenv("CONFLUENCE_USER", "wiki-user")
    monkeypatch.setenv("JIRA_EMAIL", "jira-user")
    monkeypatch.setenv("CONFLUENCE_API_TOKEN", "wiki-token")
    monkeypatch.setenv("JIRA_API_TOKEN", "jira-token")

    cfg = ConfluenceConfig.resolve()

    assert cfg.base_url == "https://share.merck.com"
    assert cfg.username == "wiki-user"
    assert cfg.secret == "wiki-token"
