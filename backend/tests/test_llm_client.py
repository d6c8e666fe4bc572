"""
Tests for CompletionClient
"""
import asyncio
import json

import httpx
import pytest

from listing_extraction.core.errors import ErrorKind, TransportFailure
from listing_extraction.core.llm_client import CompletionClient

MESSAGES = [{"role": "system", "content": "sys"}, {"role": "user", "content": "usr"}]


def _client(extraction_config, handler) -> CompletionClient:
    http_client = httpx.AsyncClient(base_url="http://llm.test/v1", transport=httpx.MockTransport(handler))
    return CompletionClient(extraction_config, http_client=http_client)


def _ok(content="{}", **extra):
    body = {
        "model": "served-model",
        "choices": [{"message": {"role": "assistant", "content": content}}],
        "usage": {"prompt_tokens": 100, "completion_tokens": 20, "total_tokens": 120},
    }
    body.update(extra)
    return httpx.Response(200, json=body)


@pytest.mark.asyncio
async def test_successful_completion(extraction_config):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers.get("authorization")
        seen["body"] = json.loads(request.content)
        return _ok('{"properties": []}')

    client = _client(extraction_config, handler)
    result = await client.complete(MESSAGES)

    assert result.content == '{"properties": []}'
    assert result.model == "served-model"
    assert result.total_tokens == 120
    assert result.prompt_tokens == 100
    assert seen["url"] == "http://llm.test/v1/chat/completions"
    assert seen["auth"] == "Bearer test-key"
    assert seen["body"]["model"] == "test-model"
    assert seen["body"]["stream"] is False
    assert seen["body"]["max_tokens"] == 1000
    assert seen["body"]["temperature"] == 0.1
    assert seen["body"]["messages"] == MESSAGES


@pytest.mark.asyncio
async def test_missing_usage_defaults_to_zero(extraction_config):
    client = _client(extraction_config, lambda request: httpx.Response(
        200, json={"choices": [{"message": {"content": "[]"}}]}
    ))
    result = await client.complete(MESSAGES)
    assert result.total_tokens == 0
    assert result.model == "test-model"


@pytest.mark.asyncio
@pytest.mark.parametrize("body", [
    {"choices": []},
    {"choices": [{"message": {"content": ""}}]},
    {"choices": [{"message": {"content": "   "}}]},
    {},
])
async def test_empty_content_is_transport_failure(extraction_config, body):
    client = _client(extraction_config, lambda request: httpx.Response(200, json=body))
    with pytest.raises(TransportFailure) as exc_info:
        await client.complete(MESSAGES)
    assert exc_info.value.message == "No content received from completion API"
    assert exc_info.value.kind == ErrorKind.TRANSPORT
    assert exc_info.value.metadata == {"reason": "empty_content"}


@pytest.mark.asyncio
async def test_http_error_status(extraction_config):
    client = _client(extraction_config, lambda request: httpx.Response(500, text="upstream exploded"))
    with pytest.raises(TransportFailure) as exc_info:
        await client.complete(MESSAGES)
    assert "HTTP 500" in exc_info.value.details
    assert "upstream exploded" in exc_info.value.details


@pytest.mark.asyncio
async def test_timeout(extraction_config):
    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    client = _client(extraction_config, handler)
    with pytest.raises(TransportFailure) as exc_info:
        await client.complete(MESSAGES)
    assert exc_info.value.message == "Completion request timed out"
    assert exc_info.value.metadata == {"reason": "timeout"}


@pytest.mark.asyncio
async def test_connection_error(extraction_config):
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    client = _client(extraction_config, handler)
    with pytest.raises(TransportFailure):
        await client.complete(MESSAGES)


@pytest.mark.asyncio
async def test_non_json_body(extraction_config):
    client = _client(extraction_config, lambda request: httpx.Response(200, text="<html>oops</html>"))
    with pytest.raises(TransportFailure) as exc_info:
        await client.complete(MESSAGES)
    assert exc_info.value.message == "Completion API returned a malformed body"
    assert exc_info.value.metadata["reason"] == "malformed_body"


@pytest.mark.asyncio
async def test_cancel_in_flight_request(extraction_config):
    async def handler(request):
        await asyncio.sleep(10)
        return _ok()

    client = _client(extraction_config, handler)
    cancel = asyncio.Event()

    async def cancel_soon():
        await asyncio.sleep(0.05)
        cancel.set()

    canceller = asyncio.create_task(cancel_soon())
    with pytest.raises(TransportFailure) as exc_info:
        await asyncio.wait_for(client.complete(MESSAGES, cancel_event=cancel), timeout=5)
    await canceller
    assert exc_info.value.message == "Extraction cancelled by caller"


@pytest.mark.asyncio
async def test_already_cancelled_sends_nothing(extraction_config):
    calls = []

    def handler(request):
        calls.append(request)
        return _ok()

    client = _client(extraction_config, handler)
    cancel = asyncio.Event()
    cancel.set()
    with pytest.raises(TransportFailure):
        await client.complete(MESSAGES, cancel_event=cancel)
    assert calls == []


@pytest.mark.asyncio
async def test_unset_event_does_not_interfere(extraction_config):
    client = _client(extraction_config, lambda request: _ok("[1]"))
    result = await client.complete(MESSAGES, cancel_event=asyncio.Event())
    assert result.content == "[1]"


@pytest.mark.asyncio
async def test_close_leaves_injected_client_open(extraction_config):
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(lambda request: _ok()))
    client = CompletionClient(extraction_config, http_client=http_client)
    await client.close()
    assert not http_client.is_closed
    await http_client.aclose()
