"""Turn a block of recognised receipt text into structured fields.

The pipeline is pure: lines are split once, then the amount, date and
merchant extractors run independently over the same input and the results
are assembled into an immutable :class:`ExtractionResult`. Any field that no
heuristic can find is simply ``None`` (or an empty ``items`` tuple).
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Optional, Tuple

from .field_extractors import amount, date, merchant
from .field_extractors.lines import split_lines

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExtractionResult:
    merchant_name: Optional[str] = None
    transaction_date_text: Optional[str] = None
    total_amount: Optional[Decimal] = None
    items: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "merchant_name": self.merchant_name,
            "transaction_date_text": self.transaction_date_text,
            "total_amount": float(self.total_amount) if self.total_amount is not None else None,
            "items": list(self.items),
        }


def extract_receipt_info(text: str) -> ExtractionResult:
    """Extract merchant, date and total amount from OCR text."""

    text = text or ""
    lines = split_lines(text)

    amount_info = amount.extract_amount(text, lines)
    date_text = date.extract_date(text)
    merchant_info = merchant.extract_merchant(lines)

    if amount_info.best is not None:
        LOGGER.debug(
            "amount %s selected by %s from %d candidates",
            amount_info.best.value,
            amount_info.best.strategy,
            len(amount_info.candidates),
        )

    return ExtractionResult(
        merchant_name=merchant_info.value,
        transaction_date_text=date_text,
        total_amount=amount_info.best.value if amount_info.best else None,
        items=tuple(merchant_info.items),
    )


__all__ = ["ExtractionResult", "extract_receipt_info"]
