"""
Utility functions and constants for receipt processing.
"""

import os
import secrets
import string
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Optional

from .models import CENT

# File type constants
IMAGE_EXTS = {".png", ".jpg", ".jpeg", ".tif", ".tiff", ".bmp", ".webp"}
PDF_EXTS = {".pdf"}
TEXT_EXTS = {".txt"}

DEFAULT_CURRENCY = "€"

_ID_ALPHABET = string.ascii_lowercase + string.digits


def normalize_amount(s: str) -> Optional[Decimal]:
    """
    Normalize an amount string like "2,50" or "-1.99" to a Decimal.

    The result is rounded half-up to whole cents. Returns None for
    anything that is not a number.
    """
    if not s:
        return None
    s = s.strip().replace(" ", "").replace(",", ".")
    try:
        value = Decimal(s)
    except InvalidOperation:
        return None
    if not value.is_finite():
        return None
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def generate_id(length: int = 7) -> str:
    """Return a short random identifier for a line item."""
    return "".join(secrets.choice(_ID_ALPHABET) for _ in range(length))


def format_price(v: Decimal) -> str:
    """Format amount with a comma decimal separator, e.g. -12,50."""
    formatted = f"{abs(v):.2f}".replace(".", ",")
    return f"-{formatted}" if v < 0 else formatted


def money_fmt(v: Optional[Decimal], currency: str = DEFAULT_CURRENCY) -> str:
    """Format amount as currency."""
    return f"{format_price(v)} {currency}" if v is not None else ""


def env_currency() -> str:
    """Currency marker for summaries, overridable with RECEIPT_SPLIT_CURRENCY."""
    return os.getenv("RECEIPT_SPLIT_CURRENCY") or DEFAULT_CURRENCY
