"""Line splitting used by the positional heuristics."""
from __future__ import annotations

import re
from typing import List, NamedTuple

_NEWLINE_PATTERN = re.compile(r"\r\n|\r|\n")


class Line(NamedTuple):
    index: int
    text: str


def split_lines(text: str) -> List[Line]:
    """Split ``text`` on newline boundaries, keeping every line verbatim.

    Empty lines are preserved and nothing is trimmed, so ``Line.index``
    always matches the position in the recognised text. An empty input
    yields a single empty line.
    """

    return [Line(index, part) for index, part in enumerate(_NEWLINE_PATTERN.split(text or ""))]


__all__ = ["Line", "split_lines"]
