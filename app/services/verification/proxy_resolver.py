"""
Unwrap search-provider redirect/proxy URLs into the underlying source URL.

Resolution order, first success wins:
  1. explicit retrieved-context URI (unless it is itself a proxy URL)
  2. a known redirect query parameter decoding to http(s)
  3. a percent-encoded http(s) URL embedded anywhere in the proxy URL
  4. an http(s) URL embedded in the human-readable title
Otherwise the raw URL is returned unchanged.
"""

import re
from typing import Optional
from urllib.parse import parse_qs, unquote, urlparse

from app.constants.config import PROXY_QUERY_PARAMS, PROXY_URL_MARKERS
from app.core.logger import get_logger

logger = get_logger(__name__)

_ENCODED_URL = re.compile(r"https?%3A%2F%2F[^&\s\"'<>]+", re.IGNORECASE)
_PLAIN_URL = re.compile(r"https?://[^\s\"'<>)\]]+", re.IGNORECASE)


def is_proxy_url(url: Optional[str]) -> bool:
    if not url:
        return False
    lowered = url.lower()
    return any(marker in lowered for marker in PROXY_URL_MARKERS)


def _is_http(value: str) -> bool:
    return value.lower().startswith(("http://", "https://"))


def _from_query(raw_url: str) -> Optional[str]:
    try:
        params = parse_qs(urlparse(raw_url).query)
    except ValueError:
        return None
    for name in PROXY_QUERY_PARAMS:
        for value in params.get(name, []):
            # parse_qs decodes once; some providers double-encode
            decoded = value if _is_http(value) else unquote(value)
            if _is_http(decoded):
                return decoded
    return None


def _from_encoded_pattern(raw_url: str) -> Optional[str]:
    match = _ENCODED_URL.search(raw_url)
    if not match:
        return None
    decoded = unquote(match.group(0))
    return decoded if _is_http(decoded) else None


def _from_title(title_hint: Optional[str]) -> Optional[str]:
    if not title_hint:
        return None
    match = _PLAIN_URL.search(title_hint)
    return match.group(0).rstrip(".,;") if match else None


def resolve_real_url(raw_url: Optional[str], title_hint: Optional[str] = None, retrieved_uri: Optional[str] = None) -> str:
    """Return the best real URL for a possibly-proxied source URL."""
    raw_url = raw_url or ""

    if retrieved_uri and _is_http(retrieved_uri) and not is_proxy_url(retrieved_uri):
        return retrieved_uri

    if not is_proxy_url(raw_url):
        return raw_url

    for strategy, resolved in (
        ("query", _from_query(raw_url)),
        ("encoded", _from_encoded_pattern(raw_url)),
        ("title", _from_title(title_hint)),
    ):
        if resolved and not is_proxy_url(resolved):
            logger.debug(f"[ProxyResolver] Resolved via {strategy}: {resolved}")
            return resolved

    logger.info(f"[ProxyResolver] Could not unwrap proxy URL, verifying as-is: {raw_url[:120]}")
    return raw_url
