import asyncio

import httpx
import pytest

from app.services.verification.fetch_gate import (
    FetchGate,
    FetchNetworkError,
    FetchTimeout,
    PrivateTargetBlocked,
)


def _gate(handler, **kwargs):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler), follow_redirects=True)
    return FetchGate(client=client, **kwargs)


@pytest.mark.asyncio
async def test_get_returns_status_final_url_and_body():
    def handler(request):
        return httpx.Response(200, html="<html><title>Hello</title></html>")

    gate = _gate(handler)
    response = await gate.fetch("https://news.example/story", method="GET", timeout=2.0)

    assert response.status == 200
    assert response.ok
    assert response.is_html
    assert response.url == "https://news.example/story"
    assert "<title>Hello</title>" in response.text


@pytest.mark.asyncio
async def test_head_reads_no_body():
    def handler(request):
        assert request.method == "HEAD"
        return httpx.Response(200, headers={"content-type": "text/html"})

    gate = _gate(handler)
    response = await gate.fetch("https://news.example/", method="HEAD", timeout=2.0)
    assert response.ok
    assert response.text == ""


@pytest.mark.asyncio
async def test_error_status_is_returned_not_raised():
    gate = _gate(lambda request: httpx.Response(404, text="missing"))
    response = await gate.fetch("https://news.example/gone", timeout=2.0)
    assert response.status == 404
    assert not response.ok


@pytest.mark.asyncio
async def test_redirects_are_followed_and_final_url_reported():
    def handler(request):
        if request.url.path == "/old":
            return httpx.Response(301, headers={"location": "https://news.example/new"})
        return httpx.Response(200, text="moved here")

    gate = _gate(handler)
    response = await gate.fetch("https://news.example/old", timeout=2.0)
    assert response.status == 200
    assert response.url == "https://news.example/new"


@pytest.mark.asyncio
async def test_redirect_into_private_network_is_blocked():
    seen = []

    def handler(request):
        seen.append(str(request.url))
        if request.url.host == "public.example":
            return httpx.Response(302, headers={"location": "http://127.0.0.1/admin"})
        return httpx.Response(200, text="internal secrets")

    gate = _gate(handler)
    with pytest.raises(PrivateTargetBlocked):
        await gate.fetch("https://public.example/", timeout=2.0)
    assert seen == ["https://public.example/"]


@pytest.mark.asyncio
async def test_deadline_is_enforced():
    async def handler(request):
        await asyncio.sleep(1.0)
        return httpx.Response(200)

    gate = _gate(handler)
    with pytest.raises(FetchTimeout):
        await gate.fetch("https://slow.example/", timeout=0.05)


@pytest.mark.asyncio
async def test_connection_failure_maps_to_network_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    gate = _gate(handler)
    with pytest.raises(FetchNetworkError):
        await gate.fetch("https://down.example/", timeout=2.0)


@pytest.mark.asyncio
async def test_body_is_capped():
    gate = _gate(lambda request: httpx.Response(200, text="x" * 100), max_body_bytes=10)
    response = await gate.fetch("https://big.example/", timeout=2.0)
    assert response.text == "x" * 10


@pytest.mark.asyncio
async def test_owned_client_is_closed():
    gate = FetchGate()
    await gate.aclose()
    assert gate._client.is_closed


@pytest.mark.asyncio
async def test_gates_sharing_a_client_register_the_guard_once():
    async def other_hook(request):
        return None

    client = httpx.AsyncClient(
        transport=httpx.MockTransport(lambda request: httpx.Response(200, text="ok")),
        event_hooks={"request": [other_hook]},
    )
    first = FetchGate(client=client)
    second = FetchGate(client=client)

    hooks = client.event_hooks["request"]
    assert hooks[0] is other_hook
    assert len(hooks) == 2

    response = await second.fetch("https://news.example/", method="GET", timeout=2.0)
    assert response.status == 200
    with pytest.raises(PrivateTargetBlocked):
        await first.fetch("http://10.0.0.5/", method="GET", timeout=2.0)
