"""
Single outbound HTTP request with an enforced deadline.

The deadline covers connect, every redirect hop and the body read. When it
expires the in-flight request is cancelled and FetchTimeout is raised; the
caller never waits past its budget. Redirect hops are re-checked against the
private-target guard, so a public URL cannot bounce the fetch into the
internal network.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Dict, Optional

import httpx

from app.constants.config import CONTENT_TIMEOUT_SECONDS, FETCH_HEADERS, MAX_BODY_BYTES
from app.core.logger import get_logger
from app.services.verification.url_sanity import is_private_target

logger = get_logger(__name__)


class FetchError(Exception):
    """Base class for Fetch Gate failures."""


class FetchTimeout(FetchError):
    pass


class FetchNetworkError(FetchError):
    pass


class PrivateTargetBlocked(FetchNetworkError):
    pass


@dataclass(frozen=True)
class FetchResponse:
    status: int
    # final URL after redirects
    url: str
    headers: Dict[str, str] = field(default_factory=dict)
    text: str = ""

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 400

    @property
    def content_type(self) -> str:
        return self.headers.get("content-type", "").lower()

    @property
    def is_html(self) -> bool:
        return "text/html" in self.content_type or "application/xhtml+xml" in self.content_type


async def _guard_request(request: httpx.Request) -> None:
    host = request.url.host
    if host and is_private_target(host):
        raise PrivateTargetBlocked(f"private target {host}")


class FetchGate:
    """
    Thin wrapper over a shared httpx.AsyncClient.

    Pass `client` to reuse a pooled client (or a MockTransport-backed client in
    tests); otherwise one is created and closed by `aclose()`.
    """

    def __init__(self, client: Optional[httpx.AsyncClient] = None, max_body_bytes: int = MAX_BODY_BYTES):
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(follow_redirects=True, headers=FETCH_HEADERS)
        self.max_body_bytes = max_body_bytes

        hooks = dict(self._client.event_hooks)
        if _guard_request not in hooks.get("request", []):
            hooks["request"] = [*hooks.get("request", []), _guard_request]
            self._client.event_hooks = hooks

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def fetch(self, url: str, method: str = "GET", timeout: float = CONTENT_TIMEOUT_SECONDS) -> FetchResponse:
        """Perform one request; raises FetchTimeout or FetchNetworkError."""
        try:
            return await asyncio.wait_for(self._perform(url, method.upper(), timeout), timeout=timeout)
        except asyncio.TimeoutError:
            raise FetchTimeout(f"{method} {url} exceeded {timeout}s")
        except httpx.TimeoutException as e:
            raise FetchTimeout(f"{method} {url}: {type(e).__name__}")
        except FetchError:
            raise
        except (httpx.HTTPError, httpx.InvalidURL, ValueError) as e:
            raise FetchNetworkError(f"{method} {url}: {type(e).__name__}")

    async def _perform(self, url: str, method: str, timeout: float) -> FetchResponse:
        async with self._client.stream(method, url, timeout=timeout) as response:
            body = b""
            if method != "HEAD":
                chunks = []
                size = 0
                async for chunk in response.aiter_bytes():
                    chunks.append(chunk)
                    size += len(chunk)
                    if size >= self.max_body_bytes:
                        break
                body = b"".join(chunks)[: self.max_body_bytes]

            return FetchResponse(
                status=response.status_code,
                url=str(response.url),
                headers={k.lower(): v for k, v in response.headers.items()},
                text=_decode(body, response.charset_encoding),
            )


def _decode(body: bytes, charset: Optional[str]) -> str:
    if not body:
        return ""
    try:
        return body.decode(charset or "utf-8", errors="replace")
    except LookupError:
        return body.decode("utf-8", errors="replace")
