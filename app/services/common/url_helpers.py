"""
URL validation, parsing, and normalization utilities.
"""

import re
from typing import Optional
from urllib.parse import urlparse

_URL_PATTERN = re.compile(r"^https?://[^\s/$.?#].[^\s]*$", re.IGNORECASE)


def normalize_url(url: str) -> str:
    """
    Normalize URL for consistent matching and deduplication.

    Removes:
        - Trailing slashes on the path
        - URL fragments
        - 'www' prefix

    The query string is kept. Scheme and host are lowercased; path and
    query keep their case.

    Args:
        url: URL to normalize

    Returns:
        Normalized URL
    """
    if not url:
        return ""

    try:
        parsed = urlparse(url.strip())
    except ValueError:
        return url.strip().lower()

    netloc = parsed.netloc.lower()
    if netloc.startswith("www."):
        netloc = netloc[4:]
    normalized = f"{parsed.scheme.lower()}://{netloc}{parsed.path.rstrip('/')}"
    if parsed.query:
        normalized = f"{normalized}?{parsed.query}"
    return normalized


def is_http_url(url: Optional[str]) -> bool:
    """
    Validate that the URL is an absolute http(s) URL.

    Args:
        url: URL to validate

    Returns:
        True if valid URL format
    """
    if not url or not isinstance(url, str):
        return False
    return bool(_URL_PATTERN.match(url.strip()))


def extract_hostname(url: str) -> Optional[str]:
    """Hostname without port or credentials, lowercased. IPv6 brackets are stripped."""
    try:
        hostname = urlparse(url.strip()).hostname
    except ValueError:
        return None
    return hostname.lower() if hostname else None


def extract_domain(url: str) -> Optional[str]:
    """
    Extract domain from URL.

    Args:
        url: Full URL

    Returns:
        Domain (e.g., 'example.com') or None if invalid
    """
    if not is_http_url(url):
        return None

    domain = extract_hostname(url)
    if not domain:
        return None
    if domain.startswith("www."):
        domain = domain[4:]
    return domain


def domain_matches(domain: Optional[str], candidates: set) -> bool:
    """True when domain equals, or is a subdomain of, any entry in candidates."""
    if not domain:
        return False
    if domain in candidates:
        return True
    return any(domain.endswith(f".{entry}") for entry in candidates)
