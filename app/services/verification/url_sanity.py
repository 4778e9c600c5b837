"""
Structural sanity checks run before any network call.

- is_likely_hallucinated: heuristics for URLs a model invented
- is_private_target: coarse SSRF guard on the hostname (no DNS resolution)

Both are pure functions; their false-positive/negative behaviour is pinned in
tests/test_url_sanity.py.
"""

import ipaddress
import re
from urllib.parse import urlparse

from app.constants.config import (
    HALLUCINATION_MAX_NUMERIC_RUN,
    HALLUCINATION_MAX_PATH_SEGMENTS,
    HALLUCINATION_MIN_SEGMENT_LENGTH,
    ID_BEARING_DOMAINS,
)
from app.services.common.url_helpers import domain_matches

_SEGMENT_SPLIT = re.compile(r"[-_/]+")

# nine or more hyphen-joined words followed by a trailing number: /this-is-how-...-story-2024
_ARTICLE_SLUG = re.compile(r"(?:[a-z]+-){9,}\d+/?(?:\.html?)?$", re.IGNORECASE)

_NUMERIC_RUN = re.compile(r"\d{%d,}" % (HALLUCINATION_MAX_NUMERIC_RUN + 1))

_PRIVATE_NETWORKS = [
    ipaddress.ip_network(cidr)
    for cidr in (
        "0.0.0.0/8",
        "10.0.0.0/8",
        "127.0.0.0/8",
        "169.254.0.0/16",
        "172.16.0.0/12",
        "192.168.0.0/16",
        "::/128",
        "::1/128",
        "fc00::/7",
        "fe80::/10",
    )
]

_LOCAL_HOSTNAMES = {"localhost", "localhost.localdomain", "ip6-localhost", "ip6-loopback"}


def is_likely_hallucinated(url: str) -> bool:
    """True when any heuristic flags the URL as probably fabricated."""
    try:
        parsed = urlparse(url)
    except ValueError:
        return True

    path = parsed.path or ""
    segments = [s for s in _SEGMENT_SPLIT.split(path) if len(s) >= HALLUCINATION_MIN_SEGMENT_LENGTH]
    if len(segments) > HALLUCINATION_MAX_PATH_SEGMENTS:
        return True

    if _ARTICLE_SLUG.search(path):
        return True

    if _NUMERIC_RUN.search(url):
        host = (parsed.hostname or "").lower()
        if host.startswith("www."):
            host = host[4:]
        if not domain_matches(host, ID_BEARING_DOMAINS):
            return True

    return False


def is_private_target(hostname: str) -> bool:
    """
    True for loopback, RFC1918, link-local and IPv6 loopback/link-local/ULA hosts.

    Only literal addresses and well-known local names are recognised; names
    that merely resolve to private addresses are not (no DNS lookup here).
    """
    host = (hostname or "").strip().lower().strip("[]").rstrip(".")
    if not host:
        return True
    if host in _LOCAL_HOSTNAMES or host.endswith(".localhost"):
        return True

    # drop IPv6 zone id (fe80::1%eth0)
    host = host.split("%", 1)[0]
    try:
        address = ipaddress.ip_address(host)
    except ValueError:
        return False

    if isinstance(address, ipaddress.IPv6Address) and address.ipv4_mapped:
        address = address.ipv4_mapped
    return any(address in network for network in _PRIVATE_NETWORKS)
