import json
import logging
import threading

import httpx
import pytest
import respx
from httpx import Response
from merck_tools.core.errors import LLMError
from merck_tools.llm.openai_client import OpenAIClient, OpenAIConfig

URL = "https://api.openai.com/v1/chat/completions"
MSGS = [{"role": "user", "content": "hi"}]

REJECTION = {
    "error": {
        "message": (
            "Unsupported parameter: 'max_completion_tokens' is not supported "
            "with this model. Use 'max_tokens' instead."
        ),
        "type": "invalid_request_error",
        "param": "max_completion_tokens",
        "code": "unsupported_parameter",
    }
}


def _client(model="gpt-4o-mini"):
    return OpenAIClient(api_key="sk-test", api_base="https://api.openai.com", model=model)


def _ok(text):
    return Response(200, json={"choices": [{"message": {"content": text}}]})


def _body(call):
    return json.loads(call.request.content)


def _sse(*lines):
    return Response(
        200,
        content="\n".join(lines).encode(),
        headers={"Content-Type": "text/event-stream"},
    )


@respx.mock
def test_generate_sends_bearer_and_modern_token_field():
    route = respx.post(URL).mock(return_value=_ok("Hello from OpenAI"))

    result = _client().generate(MSGS, temperature=0.5, max_tokens=64, json_mode=True)

    assert result == "Hello from OpenAI"
    request = route.calls[0].request
    assert request.headers["Authorization"] == "Bearer sk-test"
    assert _body(route.calls[0]) == {
        "model": "gpt-4o-mini",
        "messages": MSGS,
        "temperature": 0.5,
        "max_completion_tokens": 64,
        "response_format": {"type": "json_object"},
    }


@respx.mock
def test_rejected_field_retries_once_with_max_tokens_and_persists():
    route = respx.post(URL).mock(
        side_effect=[Response(400, json=REJECTION), _ok("worked"), _ok("second")]
    )
    client = _client()

    assert client.generate(MSGS) == "worked"
    assert client.uses_legacy_max_tokens is True
    first, retried = _body(route.calls[0]), _body(route.calls[1])
    assert "max_completion_tokens" in first and "max_tokens" not in first
    assert retried["max_tokens"] == 900 and "max_completion_tokens" not in retried

    assert client.generate(MSGS) == "second"
    assert route.call_count == 3
    assert "max_tokens" in _body(route.calls[2])


@respx.mock
def test_correction_is_logged(caplog):
    caplog.set_level(logging.INFO, logger="merck_tools.openai")
    respx.post(URL).mock(side_effect=[Response(400, json=REJECTION), _ok("ok")])

    _client().generate(MSGS)

    record = next(r for r in caplog.records if r.getMessage() == "llm_token_field_corrected")
    assert record.provider == "openai"


@respx.mock
def test_retry_happens_at_most_once():
    route = respx.post(URL).mock(
        side_effect=[Response(400, json=REJECTION), Response(400, json=REJECTION)]
    )

    with pytest.raises(LLMError) as exc:
        _client().generate(MSGS)

    assert exc.value.status_code == 400
    assert route.call_count == 2


@respx.mock
def test_reasoning_models_never_switch_fields():
    route = respx.post(URL).mock(return_value=Response(400, json=REJECTION))
    client = _client(model="o3-mini")

    with pytest.raises(LLMError):
        client.generate(MSGS)

    assert route.call_count == 1
    assert client.uses_legacy_max_tokens is False
    assert client.max_tokens_key() == "max_completion_tokens"


@respx.mock
def test_unrelated_400_is_not_retried():
    route = respx.post(URL).mock(
        return_value=Response(400, json={"error": {"message": "temperature is invalid"}})
    )
    client = _client()

    with pytest.raises(LLMError):
        client.generate(MSGS)

    assert route.call_count == 1
    assert client.uses_legacy_max_tokens is False


@respx.mock
def test_invalid_json_raises():
    respx.post(URL).mock(return_value=Response(200, text="<html>"))
    with pytest.raises(LLMError) as exc:
        _client().generate(MSGS)
    assert "invalid JSON" in str(exc.value)


@respx.mock
def test_transport_error_raises_llm_error():
    respx.post(URL).mock(side_effect=httpx.ConnectError("refused"))
    with pytest.raises(LLMError):
        _client().generate(MSGS)


@respx.mock
def test_stream_parses_server_sent_events():
    route = respx.post(URL).mock(
        return_value=_sse(
            ": keep-alive",
            "",
            'data: {"choices":[{"delta":{"role":"assistant"}}]}',
            'data: {"choices":[{"delta":{"content":"Hel"}}]}',
            "event: ping",
            "data: not-json",
            'data:{"choices":[{"delta":{"content":"lo"}}]}',
            "data: [DONE]",
            'data: {"choices":[{"delta":{"content":"ignored"}}]}',
        )
    )
    chunks = []

    text = _client().stream(MSGS, on_chunk=chunks.append)

    assert text == "Hello"
    assert chunks == ["Hel", "lo"]
    assert _body(route.calls[0])["stream"] is True


@respx.mock
def test_stream_applies_adaptive_correction():
    route = respx.post(URL).mock(
        side_effect=[
            Response(400, json=REJECTION),
            _sse('data: {"choices":[{"delta":{"content":"ok"}}]}', "data: [DONE]"),
        ]
    )
    client = _client()

    assert client.stream(MSGS) == "ok"
    assert client.uses_legacy_max_tokens is True
    assert "max_tokens" in _body(route.calls[1])


@respx.mock
def test_stream_error_raises():
    respx.post(URL).mock(return_value=Response(500, text="upstream down"))
    with pytest.raises(LLMError) as exc:
        _client().stream(MSGS)
    assert exc.value.status_code == 500
    assert "upstream down" in exc.value.response_text


@respx.mock
def test_concurrent_first_use_ends_with_legacy_flag():
    def responder(request):
        if "max_completion_tokens" in json.loads(request.content):
            return Response(400, json=REJECTION)
        return _ok("ok")

    route = respx.post(URL).mock(side_effect=responder)
    client = _client()
    results = []

    threads = [
        threading.Thread(target=lambda: results.append(client.generate(MSGS)))
        for _ in range(4)
    ]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert results == ["ok"] * 4
    assert client.uses_legacy_max_tokens is True
    assert route.call_count <= 8


def test_config_env(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-env")
    monkeypatch.setenv("OPENAI_API_BASE", "https://proxy.test/")
    monkeypatch.setenv("HTTP_READ_TIMEOUT", "120")

    cfg = OpenAIConfig.resolve()

    assert cfg.api_key == "sk-env"
    assert cfg.api_base == "https://proxy.test"
    assert cfg.model == "gpt-4o-mini"
    assert (cfg.read_timeout, cfg.open_timeout) == (120, 30)


def test_missing_api_key_raises():
    with pytest.raises(ValueError):
        OpenAIClient()
