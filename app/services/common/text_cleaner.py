"""
Text cleaning for user-submitted claims.
"""

import re

_LONG_REPEAT = re.compile(r"(.)\1{100,}", re.DOTALL)


def sanitize_claim_text(text: str) -> str:
    """
    Collapse runs of a single repeated character (>100) to one occurrence.

    The result feeds both the prompt and the cache fingerprint.
    """
    if not isinstance(text, str):
        return ""
    return _LONG_REPEAT.sub(r"\1", text)


def normalize_text(text: str) -> str:
    """Collapse whitespace and strip."""
    if not isinstance(text, str):
        return ""
    return " ".join(text.split())
