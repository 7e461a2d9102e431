"""Receipt field extraction for the ReceiptNote expense tracker."""
from .extraction import ExtractionResult, extract_receipt_info

__all__ = ["ExtractionResult", "extract_receipt_info"]
