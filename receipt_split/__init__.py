"""
Receipt Split

Reads line items from receipt text (OCR or PDF) and splits the bill
between two people.
"""

__version__ = "1.0.0"
__author__ = "Receipt Split Contributors"

from receipt_split.core.models import (
    Category,
    CategorizedItem,
    LineItem,
    SettlementResult,
)
from receipt_split.core.parsers import parse_receipt
from receipt_split.core.settlement import format_summary, settle, split

__all__ = [
    "Category",
    "CategorizedItem",
    "LineItem",
    "SettlementResult",
    "parse_receipt",
    "split",
    "settle",
    "format_summary",
]
