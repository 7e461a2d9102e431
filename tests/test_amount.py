from __future__ import annotations

from decimal import Decimal

import pytest

from receiptnote.field_extractors.amount import (
    AmountCandidate,
    extract_amount,
    extract_number_tokens,
    mine_candidates,
    select_best,
)
from receiptnote.field_extractors.lines import split_lines


def _strategies(text: str) -> list[str]:
    return [candidate.strategy for candidate in mine_candidates(text)]


def test_grand_total_keyword_beats_everything(sample_receipt: str) -> None:
    result = extract_amount(sample_receipt)

    assert result.best is not None
    assert result.best.value == Decimal("5500")
    assert result.best.confidence == 100
    assert result.best.strategy == "keyword_hapgye"


def test_hapgye_with_colon_selects_exact_value() -> None:
    text = "메가커피\n아메리카노 2,000원\n₩ 99,000\n합계: 12,345\n총 88,000"

    assert extract_amount(text).best.value == Decimal("12345")


@pytest.mark.parametrize(
    "text,value,strategy",
    [
        ("총액: 7,500원", Decimal("7500"), "keyword_chongaek"),
        ("받을금액\n계 3,200", Decimal("3200"), "keyword_gye"),
        ("TOTAL: 4,100", Decimal("4100"), "keyword_total"),
        ("총 2,900", Decimal("2900"), "keyword_chong"),
    ],
)
def test_keyword_strategies(text: str, value: Decimal, strategy: str) -> None:
    best = extract_amount(text).best

    assert best is not None
    assert best.value == value
    assert best.strategy == strategy


def test_balance_keyword_ignores_hangul_prefixed_matches() -> None:
    assert "keyword_gye" not in _strategies("소계 3,000")
    assert "keyword_gye" not in _strategies("합계 3,000")
    assert "keyword_gye" in _strategies("계 3,000")


def test_currency_symbol_variants() -> None:
    for text in ("₩ 12,000", "\\12,000", "WON 12,000"):
        best = extract_amount(text).best
        assert best is not None
        assert best.value == Decimal("12000")
        assert best.confidence == 75


def test_keyword_amount_below_floor_is_dropped() -> None:
    assert "keyword_hapgye" not in _strategies("합계: 99")


def test_malformed_keyword_match_is_dropped() -> None:
    assert "keyword_hapgye" not in _strategies("합계: ,,,")


def test_positional_strategy_only_looks_at_last_five_lines() -> None:
    text = "\n".join(["상품 8,800", "a", "b", "c", "d", "e", "끝 1,200"])
    positional = [c.value for c in mine_candidates(text) if c.strategy == "positional"]

    assert positional == [Decimal("1200")]


def test_positional_scans_bottom_up() -> None:
    text = "라면 1,200\n김치 3,500"
    positional = [c.value for c in mine_candidates(text) if c.strategy == "positional"]

    assert positional == [Decimal("3500"), Decimal("1200")]


def test_currency_unit_lines_require_major_amounts() -> None:
    text = "\n".join(["head", "봉투 500원", "x", "y", "z", "w", "v", "라면 1,200원"])
    unit = [c.value for c in mine_candidates(text) if c.strategy == "currency_unit"]

    assert unit == [Decimal("1200")]


def test_global_max_fallback() -> None:
    text = "\n".join(["주문번호 4321", "x", "y", "z", "w", "v", "감사합니다"])
    candidates = mine_candidates(text)

    assert [c.strategy for c in candidates] == ["global_max"]
    assert select_best(candidates).value == Decimal("4321")


def test_all_candidates_respect_floors() -> None:
    text = "합계 150\n₩120\n총 5\n99원 1,000원\n12 34 567 2025"
    for candidate in mine_candidates(text):
        assert candidate.value >= 100
        if candidate.strategy in {"positional", "currency_unit", "global_max"}:
            assert candidate.value >= 1000


def test_no_numbers_means_no_amount() -> None:
    result = extract_amount("just words here")

    assert result.best is None
    assert result.candidates == []


def test_ties_resolve_to_first_emitted_candidate() -> None:
    first = AmountCandidate(value=Decimal("1000"), confidence=70, strategy="positional")
    second = AmountCandidate(value=Decimal("2000"), confidence=70, strategy="positional")
    weaker = AmountCandidate(value=Decimal("9000"), confidence=40, strategy="global_max")

    assert select_best([weaker, first, second]) is first
    assert select_best([]) is None


def test_mining_accepts_pretokenised_lines() -> None:
    text = "라면 1,200\n김치 3,500\n총액: 4,700원"

    assert mine_candidates(text, split_lines(text)) == mine_candidates(text)


def test_number_tokens_union_of_shapes() -> None:
    values = extract_number_tokens("12,345.67 8901 5 77")

    assert Decimal("12345.67") in values
    assert Decimal("12345") in values
    assert Decimal("8901") in values
    assert all(value >= 100 for value in values)
