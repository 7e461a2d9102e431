from __future__ import annotations

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


@pytest.fixture
def sample_receipt() -> str:
    return "\n".join(
        [
            "세븐일레븐 편의점 역삼점",
            "서울특별시 강남구 테헤란로 123",
            "2025.05.21 14:32",
            "삼각김밥 1,500",
            "바나나우유 1,700",
            "(과자) 2,300",
            "합계: 5,500",
            "카드결제 5,500원",
        ]
    )
