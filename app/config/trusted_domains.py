"""Canonical trusted-domain configuration and helpers."""

from __future__ import annotations

from urllib.parse import urlparse

TRUSTED_ROOT_DOMAINS: set[str] = {
    # wire services
    "reuters.com",
    "apnews.com",
    "afp.com",
    # flagship outlets
    "bbc.co.uk",
    "bbc.com",
    "nytimes.com",
    "theguardian.com",
    "washingtonpost.com",
    "wsj.com",
    "ft.com",
    "economist.com",
    "npr.org",
    "pbs.org",
    "aljazeera.com",
    "dw.com",
    "france24.com",
    "abc.net.au",
    "cbc.ca",
    # fact-checkers
    "snopes.com",
    "politifact.com",
    "factcheck.org",
    "fullfact.org",
    # intergovernmental and research
    "who.int",
    "un.org",
    "europa.eu",
    "worldbank.org",
    "imf.org",
    "nature.com",
    "science.org",
    "nih.gov",
    "cdc.gov",
    "gov.uk",
    "canada.ca",
}

# Any host under these public suffixes counts as trusted (gov.in, ac.uk, ...)
TRUSTED_SUFFIXES: tuple[str, ...] = (
    ".gov",
    ".mil",
    ".edu",
)

TRUSTED_SECOND_LEVEL_LABELS: set[str] = {"gov", "edu", "ac", "mil"}


def _extract_domain(value: str) -> str:
    raw = (value or "").strip()
    if not raw:
        return ""
    parsed = urlparse(raw if "://" in raw else f"//{raw}", scheme="https")
    domain = (parsed.netloc or parsed.path or "").strip().lower()
    if "@" in domain:
        domain = domain.split("@", 1)[-1]
    if ":" in domain:
        domain = domain.split(":", 1)[0]
    if domain.startswith("www."):
        domain = domain[4:]
    return domain


def is_trusted_domain(url: str) -> bool:
    """Return True when URL/domain matches the trusted allowlist or a government/education suffix."""
    domain = _extract_domain(url)
    if not domain:
        return False
    if domain in TRUSTED_ROOT_DOMAINS:
        return True
    if any(domain.endswith(f".{trusted}") for trusted in TRUSTED_ROOT_DOMAINS):
        return True
    if domain.endswith(TRUSTED_SUFFIXES):
        return True
    # country-code government/academic zones: gov.in, ac.uk, edu.au
    labels = domain.split(".")
    return len(labels) >= 3 and labels[-2] in TRUSTED_SECOND_LEVEL_LABELS and len(labels[-1]) == 2
