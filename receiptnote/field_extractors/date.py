"""Date extraction helpers."""
from __future__ import annotations

import re
from typing import Optional

# Priority order matters: the first pattern with any match wins.
DATE_PATTERNS = [
    re.compile(r"20\d{2}[-.]\d{1,2}[-.]\d{1,2}"),
    re.compile(r"\d{4}[-.]\d{1,2}[-.]\d{1,2}"),
    re.compile(r"\d{1,2}/\d{1,2}/20\d{2}"),
    re.compile(r"\d{1,2}/\d{1,2}/\d{2}"),
    re.compile(r"20\d{2}년\s*\d{1,2}월\s*\d{1,2}일"),
]


def extract_date(text: str) -> Optional[str]:
    """Return the first date-looking substring of ``text`` verbatim.

    The match is never parsed into a calendar value; callers receive exactly
    what the OCR engine produced.
    """

    for pattern in DATE_PATTERNS:
        match = pattern.search(text or "")
        if match:
            return match.group(0)
    return None


__all__ = ["DATE_PATTERNS", "extract_date"]
