import asyncio
from datetime import datetime, timedelta, timezone

import httpx
import pytest

from app.services.verification.archive import ArchiveResolver
from app.services.verification.fetch_gate import FetchGate
from app.services.verification.source_verifier import SourceVerifier

FIXED_NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)
ARCHIVE_HOST = "archive.test"

ARTICLE = """<html><head>
<title>Example Domain</title>
<meta property="article:published_time" content="2024-03-01T09:00:00Z">
</head><body><p>The council approved the new bridge on Friday.</p></body></html>"""


class Site:
    """Routes requests to per-host handlers and records what was fetched."""

    def __init__(self, pages, snapshot=None):
        self.pages = pages
        self.snapshot = snapshot
        self.requests = []

    async def __call__(self, request):
        self.requests.append((request.method, str(request.url)))
        if request.url.host == ARCHIVE_HOST:
            if self.snapshot:
                return httpx.Response(200, json=[["urlkey", "timestamp", "original"], ["k", self.snapshot, "o"]])
            return httpx.Response(200, json=[])
        handler = self.pages.get(request.url.host)
        if handler is None:
            raise httpx.ConnectError("name resolution failed", request=request)
        result = handler(request)
        if asyncio.iscoroutine(result):
            result = await result
        return result


def _verifier(site, **kwargs):
    client = httpx.AsyncClient(transport=httpx.MockTransport(site), follow_redirects=True)
    gate = FetchGate(client=client)
    archive = ArchiveResolver(gate, index_url=f"https://{ARCHIVE_HOST}/cdx", web_base=f"https://{ARCHIVE_HOST}/web")
    return SourceVerifier(gate, archive, clock=lambda: FIXED_NOW, **kwargs)


@pytest.mark.asyncio
async def test_reachable_html_page_is_verified_with_metadata():
    def page(request):
        if request.method == "HEAD":
            return httpx.Response(200, headers={"content-type": "text/html"})
        return httpx.Response(200, html=ARTICLE)

    verifier = _verifier(Site({"news.example": page}))
    record = await verifier.verify("https://news.example/bridge", claimed_date="2024-03-01")

    assert record.verified
    assert record.status == 200
    assert record.final_url == "https://news.example/bridge"
    assert record.archived_url is None
    assert record.title == "Example Domain"
    assert record.found_date == "2024-03-01T09:00:00Z"
    assert record.verified_at == FIXED_NOW
    assert record.date_mismatch is False
    assert record.error_kind is None


@pytest.mark.asyncio
async def test_head_rejected_falls_through_to_get():
    def page(request):
        if request.method == "HEAD":
            return httpx.Response(405)
        return httpx.Response(200, html=ARTICLE)

    site = Site({"news.example": page})
    record = await _verifier(site).verify("https://news.example/bridge")

    assert record.verified
    assert record.title == "Example Domain"
    assert [m for m, _ in site.requests] == ["HEAD", "GET"]


@pytest.mark.asyncio
async def test_non_html_success_is_unverified_but_keeps_status():
    def page(request):
        return httpx.Response(200, headers={"content-type": "application/pdf"}, content=b"%PDF-1.4")

    site = Site({"docs.example": page})
    record = await _verifier(site).verify("https://docs.example/report.pdf")

    assert record.verified is False
    assert record.error_kind == "non-html"
    assert record.status == 200
    assert record.final_url == "https://docs.example/report.pdf"
    assert record.title is None
    assert record.verified_at is None
    assert [m for m, _ in site.requests] == ["HEAD"]


@pytest.mark.asyncio
async def test_verifying_same_url_twice_differs_only_in_timestamp():
    ticks = iter([FIXED_NOW, FIXED_NOW + timedelta(seconds=30)])
    site = Site({"news.example": lambda request: httpx.Response(200, html=ARTICLE)})
    client = httpx.AsyncClient(transport=httpx.MockTransport(site), follow_redirects=True)
    gate = FetchGate(client=client)
    archive = ArchiveResolver(gate, index_url=f"https://{ARCHIVE_HOST}/cdx", web_base=f"https://{ARCHIVE_HOST}/web")
    verifier = SourceVerifier(gate, archive, clock=lambda: next(ticks))

    first = await verifier.verify("https://news.example/bridge", claimed_date="2024-03-01")
    second = await verifier.verify("https://news.example/bridge", claimed_date="2024-03-01")

    assert first.verified and second.verified
    assert first.model_dump(exclude={"verified_at"}) == second.model_dump(exclude={"verified_at"})
    assert first.verified_at != second.verified_at


@pytest.mark.asyncio
async def test_date_mismatch_and_excerpt_are_recorded():
    site = Site({"news.example": lambda request: httpx.Response(200, html=ARTICLE)})
    record = await _verifier(site).verify(
        "https://news.example/bridge",
        claimed_date="2019-12-31",
        excerpt="The council approved the new bridge",
    )

    assert record.verified
    assert record.date_mismatch is True
    assert record.excerpt_found is True


@pytest.mark.asyncio
async def test_http_error_with_snapshot_is_verified_via_archive():
    site = Site({"news.example": lambda request: httpx.Response(404)}, snapshot="20200101000000")
    record = await _verifier(site).verify("https://news.example/removed")

    assert record.verified
    assert record.status == 404
    assert record.final_url is None
    assert record.archived_url == "https://archive.test/web/20200101000000/https://news.example/removed"
    assert record.error_kind == "original-404-archived-found"


@pytest.mark.asyncio
async def test_http_error_without_snapshot_is_unverified():
    site = Site({"news.example": lambda request: httpx.Response(404)})
    record = await _verifier(site).verify("https://news.example/removed")

    assert not record.verified
    assert record.status == 404
    assert record.error_kind == "http-error"
    assert record.archived_url is None


@pytest.mark.asyncio
async def test_unreachable_host_is_network_error():
    site = Site({})
    record = await _verifier(site).verify("https://this-domain-does-not-exist.example/")

    assert not record.verified
    assert record.error_kind == "network-error"


@pytest.mark.asyncio
async def test_unreachable_host_with_snapshot():
    site = Site({}, snapshot="20190505000000")
    record = await _verifier(site).verify("https://gone.example/page")

    assert record.verified
    assert record.error_kind == "original-network-error-archived-found"


@pytest.mark.asyncio
async def test_slow_host_times_out():
    async def slow(request):
        await asyncio.sleep(1.0)
        return httpx.Response(200)

    site = Site({"slow.example": slow})
    record = await _verifier(site, probe_timeout=0.05, content_timeout=0.05).verify("https://slow.example/")

    assert not record.verified
    assert record.error_kind == "timeout"


@pytest.mark.asyncio
async def test_redirect_to_private_address_is_blocked():
    site = Site({"public.example": lambda request: httpx.Response(302, headers={"location": "http://10.0.0.5/"})})
    record = await _verifier(site).verify("https://public.example/")

    assert not record.verified
    assert record.error_kind == "private-ip-blocked"
    assert all("10.0.0.5" not in url for _, url in site.requests)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "url, kind",
    [
        (None, "no-url"),
        ("SOURCE_UNAVAILABLE", "source-unavailable"),
        ("https://example.com/" + "/".join(["abc"] * 20), "invalid-url"),
        ("http://127.0.0.1:8080/", "private-ip-blocked"),
    ],
)
async def test_rejected_urls_never_reach_the_network(url, kind):
    site = Site({})
    record = await _verifier(site).verify(url)

    assert not record.verified
    assert record.error_kind == kind
    assert site.requests == []
