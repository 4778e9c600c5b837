import json

import httpx
import pytest

from app.core.errors import UpstreamUnavailable
from app.services.llms.gemini_service import GeminiService
from app.services.ocr.vision_service import ImagePayload

API_BASE = "https://gen.test/v1beta"


def _service(handler, api_key="test-key"):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    service = GeminiService(client=client, api_key=api_key, model="gemini-test", api_base=API_BASE)
    service.base_backoff = 0.0
    return service


def _answer(text, grounding=None):
    candidate = {"content": {"parts": [{"text": part} for part in text]}}
    if grounding is not None:
        candidate["groundingMetadata"] = grounding
    return httpx.Response(200, json={"candidates": [candidate]})


@pytest.mark.asyncio
async def test_generate_posts_prompt_and_joins_text_parts():
    captured = {}

    def handler(request):
        captured["url"] = str(request.url)
        captured["key"] = request.headers.get("x-goog-api-key")
        captured["body"] = json.loads(request.content)
        return _answer(['{"verdict": ', '"REAL"}'], grounding={"groundingChunks": []})

    result = await _service(handler).generate("check this", use_search=True)

    assert captured["url"] == f"{API_BASE}/models/gemini-test:generateContent"
    assert captured["key"] == "test-key"
    assert captured["body"]["contents"][0]["parts"][0] == {"text": "check this"}
    assert captured["body"]["tools"] == [{"google_search": {}}]
    assert result.text == '{"verdict": "REAL"}'
    assert result.grounding_metadata == {"groundingChunks": []}


@pytest.mark.asyncio
async def test_image_is_sent_inline_and_search_is_off_without_url():
    captured = {}

    def handler(request):
        captured["body"] = json.loads(request.content)
        return _answer(["ok"])

    await _service(handler).generate("look", image=ImagePayload(mime_type="image/png", data="QUJD"))

    parts = captured["body"]["contents"][0]["parts"]
    assert parts[1] == {"inline_data": {"mime_type": "image/png", "data": "QUJD"}}
    assert "tools" not in captured["body"]


@pytest.mark.asyncio
async def test_missing_api_key():
    with pytest.raises(UpstreamUnavailable) as exc:
        await _service(lambda request: _answer(["unused"]), api_key="").generate("x")
    assert exc.value.reason == "missing-api-key"


@pytest.mark.asyncio
async def test_rate_limited_provider_is_retried():
    calls = []

    def handler(request):
        calls.append(1)
        if len(calls) == 1:
            return httpx.Response(429)
        return _answer(["second time lucky"])

    result = await _service(handler).generate("x")
    assert result.text == "second time lucky"
    assert len(calls) == 2


@pytest.mark.asyncio
async def test_persistent_rate_limit_gives_up():
    calls = []

    def handler(request):
        calls.append(1)
        return httpx.Response(429)

    with pytest.raises(UpstreamUnavailable):
        await _service(handler).generate("x")
    assert len(calls) == 3


@pytest.mark.asyncio
async def test_provider_error_status():
    with pytest.raises(UpstreamUnavailable) as exc:
        await _service(lambda request: httpx.Response(500, text="boom")).generate("x")
    assert exc.value.to_dict() == {"error": "upstream-unavailable", "detail": "Upstream provider error"}


@pytest.mark.asyncio
async def test_non_json_body():
    with pytest.raises(UpstreamUnavailable):
        await _service(lambda request: httpx.Response(200, text="<html>proxy error</html>")).generate("x")


@pytest.mark.asyncio
async def test_transport_failure():
    def handler(request):
        raise httpx.ConnectError("down", request=request)

    with pytest.raises(UpstreamUnavailable):
        await _service(handler).generate("x")


@pytest.mark.asyncio
async def test_empty_candidates_yield_empty_text():
    result = await _service(lambda request: httpx.Response(200, json={"candidates": []})).generate("x")
    assert result.text == ""
    assert result.grounding_metadata is None
