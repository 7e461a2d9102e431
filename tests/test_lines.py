from __future__ import annotations

from receiptnote.field_extractors.lines import Line, split_lines


def test_split_lines_preserves_order_and_content() -> None:
    lines = split_lines("  CU편의점 \n\n총액: 7,500원")

    assert lines == [Line(0, "  CU편의점 "), Line(1, ""), Line(2, "총액: 7,500원")]


def test_split_lines_empty_input_yields_single_empty_line() -> None:
    assert split_lines("") == [Line(0, "")]


def test_split_lines_handles_carriage_returns() -> None:
    assert [line.text for line in split_lines("a\r\nb\rc")] == ["a", "b", "c"]
