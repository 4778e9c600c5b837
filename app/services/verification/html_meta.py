"""
Regex heuristics over raw HTML: page title, publish date, claimed-date comparison.

These are heuristics, not parsers. Behaviour is pinned by tests.
"""

import html
import re
from typing import Optional

_TITLE = re.compile(r"<title[^>]*>([^<]+)</title>", re.IGNORECASE)

_META_DATE = re.compile(
    r"<meta[^>]+(?:property|name|itemprop)=[\"']?"
    r"(?:article:published_time|article:published|pubdate|publication_date|datePublished|date)"
    r"[\"']?[^>]*content=[\"']([^\"']+)[\"'][^>]*>",
    re.IGNORECASE,
)

# content= before property=
_META_DATE_REVERSED = re.compile(
    r"<meta[^>]+content=[\"']([^\"']+)[\"'][^>]*(?:property|name|itemprop)=[\"']?"
    r"(?:article:published_time|article:published|pubdate|publication_date|datePublished|date)[\"']?[^>]*>",
    re.IGNORECASE,
)

_JSON_LD_DATE = re.compile(r"\"datePublished\"\s*:\s*\"([^\"]+)\"")

_TEXT_DATE = re.compile(
    r"\b\d{4}[-/]\d{1,2}[-/]\d{1,2}\b"
    r"|\b(?:Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Oct|Nov|Dec)[a-z]*\.?\s+\d{1,2},\s*\d{4}\b",
    re.IGNORECASE,
)


def extract_title(page: str) -> Optional[str]:
    match = _TITLE.search(page or "")
    if not match:
        return None
    title = " ".join(html.unescape(match.group(1)).split())
    return title or None


def extract_publish_date(page: str) -> Optional[str]:
    """First match among explicit metadata date tags, else a generic date-like text pattern."""
    if not page:
        return None
    for pattern in (_META_DATE, _META_DATE_REVERSED, _JSON_LD_DATE):
        match = pattern.search(page)
        if match and match.group(1).strip():
            return match.group(1).strip()
    match = _TEXT_DATE.search(page)
    return match.group(0) if match else None


def dates_mismatch(claimed: Optional[str], found: Optional[str]) -> bool:
    """
    Loose comparison at calendar-date precision.

    Both values are truncated to 10 chars; they mismatch only when neither
    contains the other, which tolerates "2024" vs "2024-03-01" and similar drift.
    """
    if not claimed or not found:
        return False
    claimed_day = str(claimed).strip()[:10]
    found_day = str(found).strip()[:10]
    if not claimed_day or not found_day:
        return False
    return claimed_day not in found_day and found_day not in claimed_day


def contains_excerpt(page: str, excerpt: str, max_chars: int) -> bool:
    return excerpt.lower()[:max_chars] in (page or "").lower()
