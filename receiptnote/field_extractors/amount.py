"""Rule-based amount extraction utilities.

Every strategy below runs on every call and contributes zero or more
candidates. Only :func:`select_best` decides which one wins, so adding a
strategy never changes what the others produce.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Iterable, List, Optional, Sequence

from .lines import Line, split_lines

MIN_AMOUNT = Decimal(100)
MIN_MAJOR_AMOUNT = Decimal(1000)
POSITIONAL_WINDOW = 5

KEYWORD_STRATEGIES = [
    ("keyword_hapgye", re.compile(r"합계[\s:₩]*([0-9,]+)", re.IGNORECASE), 100),
    ("keyword_chongaek", re.compile(r"총액[\s:₩]*([0-9,]+)", re.IGNORECASE), 95),
    ("keyword_gye", re.compile(r"(?<![가-힣])계[\s:₩]*([0-9,]+)", re.IGNORECASE), 90),
    ("keyword_total", re.compile(r"total[\s:₩]*([0-9,]+)", re.IGNORECASE), 85),
    ("keyword_chong", re.compile(r"총\s*([0-9,]+)", re.IGNORECASE), 80),
]

# OCR engines frequently read the won sign as a backslash.
CURRENCY_PATTERNS = [
    re.compile(r"₩\s*([0-9,]+)", re.IGNORECASE),
    re.compile(r"\\([0-9,]+)", re.IGNORECASE),
    re.compile(r"won\s*([0-9,]+)", re.IGNORECASE),
]
CURRENCY_CONFIDENCE = 75
POSITIONAL_CONFIDENCE = 70
CURRENCY_UNIT = "원"
CURRENCY_UNIT_CONFIDENCE = 60
FALLBACK_CONFIDENCE = 40

NUMBER_PATTERNS = [
    re.compile(r"\d[\d,]*\.\d{2}"),
    re.compile(r"\d{1,3}(?:,\d{3})+"),
    re.compile(r"\d{4,}"),
]


@dataclass(frozen=True)
class AmountCandidate:
    value: Decimal
    confidence: int
    strategy: str


@dataclass
class AmountExtraction:
    best: Optional[AmountCandidate]
    candidates: List[AmountCandidate]


def _normalise_number(text: str) -> Optional[Decimal]:
    cleaned = text.replace(",", "").strip()
    try:
        value = Decimal(cleaned)
    except InvalidOperation:
        return None
    if not value.is_finite():
        return None
    return value


def extract_number_tokens(text: str) -> List[Decimal]:
    """Return every numeric token in ``text`` that could be a price.

    The three shapes are matched independently and their union is kept, so
    ``12,345.67`` yields both ``12345.67`` and ``12345``. Values below 100
    are discarded as noise.
    """

    values: List[Decimal] = []
    for pattern in NUMBER_PATTERNS:
        for match in pattern.finditer(text):
            value = _normalise_number(match.group(0))
            if value is not None and value >= MIN_AMOUNT:
                values.append(value)
    return values


def _first_amount(text: str, pattern: "re.Pattern[str]") -> Optional[Decimal]:
    match = pattern.search(text)
    if not match:
        return None
    value = _normalise_number(match.group(1))
    if value is None or value < MIN_AMOUNT:
        return None
    return value


def _keyword_candidates(text: str) -> Iterable[AmountCandidate]:
    for tag, pattern, confidence in KEYWORD_STRATEGIES:
        value = _first_amount(text, pattern)
        if value is not None:
            yield AmountCandidate(value=value, confidence=confidence, strategy=tag)


def _currency_candidates(text: str) -> Iterable[AmountCandidate]:
    for pattern in CURRENCY_PATTERNS:
        value = _first_amount(text, pattern)
        if value is not None:
            yield AmountCandidate(value=value, confidence=CURRENCY_CONFIDENCE, strategy="currency_symbol")


def _positional_candidates(lines: Sequence[Line]) -> Iterable[AmountCandidate]:
    # Bottom-up: totals usually sit at the end of a receipt.
    for line in reversed(lines[-POSITIONAL_WINDOW:]):
        for value in extract_number_tokens(line.text):
            if value >= MIN_MAJOR_AMOUNT:
                yield AmountCandidate(value=value, confidence=POSITIONAL_CONFIDENCE, strategy="positional")


def _currency_unit_candidates(lines: Sequence[Line]) -> Iterable[AmountCandidate]:
    for line in lines:
        if CURRENCY_UNIT not in line.text:
            continue
        for value in extract_number_tokens(line.text):
            if value >= MIN_MAJOR_AMOUNT:
                yield AmountCandidate(value=value, confidence=CURRENCY_UNIT_CONFIDENCE, strategy="currency_unit")


def _fallback_candidates(text: str) -> Iterable[AmountCandidate]:
    values = extract_number_tokens(text)
    if values:
        largest = max(values)
        if largest >= MIN_MAJOR_AMOUNT:
            yield AmountCandidate(value=largest, confidence=FALLBACK_CONFIDENCE, strategy="global_max")


def mine_candidates(text: str, lines: Optional[Sequence[Line]] = None) -> List[AmountCandidate]:
    """Run every amount strategy and collect all of their candidates."""

    if lines is None:
        lines = split_lines(text)
    candidates: List[AmountCandidate] = []
    candidates.extend(_keyword_candidates(text))
    candidates.extend(_currency_candidates(text))
    candidates.extend(_positional_candidates(lines))
    candidates.extend(_currency_unit_candidates(lines))
    candidates.extend(_fallback_candidates(text))
    return candidates


def select_best(candidates: Sequence[AmountCandidate]) -> Optional[AmountCandidate]:
    """Pick the highest-confidence candidate.

    Ties go to the earliest candidate, i.e. strategy order first and scan
    order second, which is the order :func:`mine_candidates` emits them in.
    """

    best: Optional[AmountCandidate] = None
    for candidate in candidates:
        if best is None or candidate.confidence > best.confidence:
            best = candidate
    return best


def extract_amount(text: str, lines: Optional[Sequence[Line]] = None) -> AmountExtraction:
    """Extract the most plausible total amount from recognised receipt text."""

    candidates = mine_candidates(text, lines)
    return AmountExtraction(best=select_best(candidates), candidates=candidates)


__all__ = [
    "AmountCandidate",
    "AmountExtraction",
    "extract_amount",
    "extract_number_tokens",
    "mine_candidates",
    "select_best",
]
