"""Merchant and purchased-item extraction using line heuristics."""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Optional, Sequence

from .lines import Line

STORE_KEYWORDS = ("편의점", "마트", "mart", "store", "shop", "카페", "cafe", "음식점", "치킨", "피자")
STORE_SCAN_LINES = 5
MAX_ITEMS = 3

_ITEM_STRIP_CHARS = "*()[]{}"
_DATE_OR_CODE_PATTERNS = [
    re.compile(r"^\d{4}[.-]\d{1,2}[.-]\d{1,2}$"),
    re.compile(r"^\d{10,}$"),
    re.compile(r"^[A-Z0-9]{5,}$"),
]


@dataclass
class MerchantExtraction:
    store_name: Optional[str]
    items: List[str]

    @property
    def value(self) -> Optional[str]:
        """Store name and up to three items combined into a memo string."""

        if not self.items:
            return self.store_name
        items_text = ", ".join(self.items[:MAX_ITEMS])
        if self.store_name:
            return f"{self.store_name} - {items_text}"
        return items_text


def _has_store_keyword(text: str) -> bool:
    lowered = text.lower()
    return any(keyword in lowered for keyword in STORE_KEYWORDS)


def find_store_name(lines: Sequence[Line]) -> Optional[str]:
    """First store-keyword line among the top lines, else the first non-empty line."""

    for line in lines[:STORE_SCAN_LINES]:
        text = line.text.strip()
        if text and _has_store_keyword(text):
            return text
    for line in lines:
        text = line.text.strip()
        if text:
            return text
    return None


def is_only_numbers(token: str) -> bool:
    return all(char.isdigit() or char in ",.-" for char in token)


def is_date_or_code(token: str) -> bool:
    return any(pattern.search(token) for pattern in _DATE_OR_CODE_PATTERNS)


def _is_item_token(token: str) -> bool:
    if not 2 <= len(token) <= 20:
        return False
    if not any(char.isalpha() for char in token):
        return False
    return not is_only_numbers(token) and not is_date_or_code(token)


def extract_item_name(line: str) -> Optional[str]:
    """Return the first token of ``line`` that reads like a product name."""

    for component in line.split():
        token = component.strip(_ITEM_STRIP_CHARS)
        if _is_item_token(token):
            return token
    return None


def extract_items(lines: Sequence[Line], limit: int = MAX_ITEMS) -> List[str]:
    items: List[str] = []
    for line in lines:
        if len(items) >= limit:
            break
        text = line.text.strip()
        if not 2 <= len(text) <= 50:
            continue
        if not any(char.isdigit() for char in text):
            continue
        item = extract_item_name(text)
        if item:
            items.append(item)
    return items


def extract_merchant(lines: Sequence[Line]) -> MerchantExtraction:
    return MerchantExtraction(store_name=find_store_name(lines), items=extract_items(lines))


__all__ = [
    "MerchantExtraction",
    "STORE_KEYWORDS",
    "extract_item_name",
    "extract_items",
    "extract_merchant",
    "find_store_name",
    "is_date_or_code",
    "is_only_numbers",
]
