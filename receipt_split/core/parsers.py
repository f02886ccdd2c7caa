"""
Parsers for extracting line items from receipt text.

The text comes from OCR or PDF extraction and is usually noisy, so
items are read with a cascade of increasingly permissive passes. The
first pass that accepts at least one item wins; the discount
breakdown pass always runs in addition.
"""

import logging
import re
from decimal import Decimal
from typing import Callable, List, Mapping, Optional, Set, Tuple

from .dialects import BUILTIN_DIALECTS, ReceiptDialect, collect, footer_markers
from .models import LineItem
from .utils import generate_id, normalize_amount

logger = logging.getLogger(__name__)

Dialects = Mapping[str, ReceiptDialect]
SeenKeys = Set[Tuple[str, Decimal]]

# Letters seen on Finnish and English receipts
LETTER = r"A-ZÄÖÅa-zäöå"
NAME_CHARS = LETTER + r"0-9\s\-/%.,:"
MAX_NAME_LENGTH = 80
# Raw name runs may also carry a glued-on column header before cleaning
MAX_RAW_NAME_LENGTH = 2 * MAX_NAME_LENGTH

ITEM_NAME = rf"[{LETTER}][{NAME_CHARS}]{{1,{MAX_RAW_NAME_LENGTH}}}?"
QUANTITY = r"\d+(?:[.,]\d+)?\s*(?:kg|g|l|ml|kpl|rl|pack|p|-p|eur)?"
AMOUNT = r"\d{1,3}[.,]\d{2}"

MIN_NAME_LENGTH = 3
MIN_DISCOUNT_NAME_LENGTH = 5

# Plausibility band and name limits for the line-by-line fallback
FALLBACK_MIN_PRICE = Decimal("0.10")
FALLBACK_MAX_PRICE = Decimal("99.99")
FALLBACK_MAX_NAME_LENGTH = 60

FALLBACK_PRICE_RE = re.compile(r"(\d{1,2})[.,](\d{2})(?=\s|$|[.,;:])")
FIXED_WIDTH_RE = re.compile(rf"^(.+?)\s{{2,}}(-?{AMOUNT})$", re.MULTILINE)

# Recoverable failures inside a single pass
PASS_ERRORS = (re.error, ValueError, ArithmeticError, RecursionError)


def _currency_re(dialects: Dialects) -> str:
    symbols = list(collect(dialects, "currency_symbols")) or ["€"]
    return "(?:" + "|".join(re.escape(s) for s in symbols) + ")"


def _discount_labels_re(dialects: Dialects) -> Optional[str]:
    labels = sorted(collect(dialects, "discount_labels"), key=len, reverse=True)
    if not labels:
        return None
    return "(" + "|".join(re.escape(label) for label in labels) + ")"


def split_sections(text: str, dialects: Dialects = BUILTIN_DIALECTS) -> Tuple[str, str]:
    """
    Split receipt text into (main section, discount breakdown section).

    Everything from the footer onwards is dropped. Footer markers are
    tried first in priority order; totals keywords only when none of them
    occur, because the totals word is also part of some column headers.
    The cut is made at the first occurrence of the first marker found.
    """
    before_footer = text
    for markers in (footer_markers(dialects), list(collect(dialects, "total_markers"))):
        match = None
        for pattern in markers:
            match = re.search(pattern, text, flags=re.IGNORECASE | re.MULTILINE)
            if match:
                break
        if match:
            before_footer = text[:match.start()]
            break

    labels = _discount_labels_re(dialects)
    if labels is None:
        return before_footer, ""
    marker = re.search(rf"{labels}\s+-{AMOUNT}\s*{_currency_re(dialects)}",
                       before_footer, flags=re.IGNORECASE)
    if not marker:
        return before_footer, ""
    return before_footer[:marker.start()], before_footer[marker.start():]


def clean_item_name(name: str, dialects: Dialects = BUILTIN_DIALECTS) -> str:
    """Remove column-header fragments and collapse whitespace."""
    for fragment in collect(dialects, "header_fragments"):
        name = re.sub(fragment, "", name, flags=re.IGNORECASE)
    return re.sub(r"\s+", " ", name).strip()


def is_noise(name: str, dialects: Dialects = BUILTIN_DIALECTS) -> bool:
    """True if a candidate item name is header/footer text rather than a product."""
    trimmed = name.strip()
    if len(trimmed) < MIN_NAME_LENGTH:
        return True
    return any(re.search(p, trimmed, flags=re.IGNORECASE)
               for p in collect(dialects, "skip_patterns"))


def _accept(items: List[LineItem], seen: SeenKeys, name: str, price: Decimal) -> None:
    key = (name, price)
    if key in seen:
        return
    seen.add(key)
    items.append(LineItem(id=generate_id(), name=name, price=price))


def parse_currency_items(section: str, seen: SeenKeys,
                         dialects: Dialects = BUILTIN_DIALECTS) -> List[LineItem]:
    """Pass 1: '<name> [<quantity>] <amount> €' items, as on online store receipts."""
    pattern = re.compile(
        rf"({ITEM_NAME})\s+(?:({QUANTITY})\s+)?(-?{AMOUNT})\s*{_currency_re(dialects)}"
    )
    items: List[LineItem] = []
    for m in pattern.finditer(section):
        name = clean_item_name(m.group(1), dialects)
        price = normalize_amount(m.group(3))
        if not price or len(name) > MAX_NAME_LENGTH:
            continue
        # Short names with negative amounts are nearly always discount noise
        min_length = MIN_DISCOUNT_NAME_LENGTH if price < 0 else MIN_NAME_LENGTH
        if len(name) < min_length or is_noise(name, dialects):
            continue
        _accept(items, seen, name, price)
    return items


def parse_fixed_width_items(section: str, seen: SeenKeys,
                            dialects: Dialects = BUILTIN_DIALECTS) -> List[LineItem]:
    """Pass 2: 'Item name    3,99' lines without a currency sign (register tape)."""
    items: List[LineItem] = []
    for m in FIXED_WIDTH_RE.finditer(section):
        name = clean_item_name(m.group(1), dialects)
        price = normalize_amount(m.group(2))
        if not price:
            continue
        if not MIN_NAME_LENGTH <= len(name) <= MAX_NAME_LENGTH:
            continue
        if is_noise(name, dialects):
            continue
        _accept(items, seen, name, price)
    return items


def _fallback_name(prefix: str) -> str:
    name = re.sub(r"\s+", " ", prefix).strip()
    name = re.sub(rf"[^{NAME_CHARS}]", "", name).strip()
    # Register line codes and other leading junk
    name = re.sub(rf"^[^{LETTER}]*", "", name)
    name = re.sub(r"\d{1,2}[:.]\d{2}\s*$", "", name).strip()
    name = re.sub(r"\d{1,2}[.,]\d{1,2}[.,]\d{2,4}\s*$", "", name).strip()
    return name


def parse_noisy_lines(section: str, seen: SeenKeys,
                      dialects: Dialects = BUILTIN_DIALECTS) -> List[LineItem]:
    """
    Pass 3: line-by-line fallback for badly garbled OCR output.

    The last decimal number on a line is taken as the price, since
    quantities and unit prices come before the line total.
    """
    items: List[LineItem] = []
    for line in section.split("\n"):
        matches = list(FALLBACK_PRICE_RE.finditer(line))
        if not matches:
            continue
        last = matches[-1]
        price = normalize_amount(f"{last.group(1)}.{last.group(2)}")
        if price is None or not FALLBACK_MIN_PRICE <= price <= FALLBACK_MAX_PRICE:
            continue
        name = _fallback_name(line[:last.start()])
        if not MIN_NAME_LENGTH <= len(name) <= FALLBACK_MAX_NAME_LENGTH:
            continue
        if is_noise(name, dialects):
            continue
        _accept(items, seen, name, price)
    return items


def parse_discount_breakdown(section: str, seen: SeenKeys,
                             dialects: Dialects = BUILTIN_DIALECTS) -> List[LineItem]:
    """
    Pass 4: '<label> -<amount> € <product> <quantity>' discount lines.

    Each discount becomes its own item named '<product> <label>' so it
    can be categorised separately from the product it applies to.
    """
    labels = _discount_labels_re(dialects)
    if not section or labels is None:
        return []
    pattern = re.compile(
        rf"{labels}\s+(-{AMOUNT})\s*{_currency_re(dialects)}\s*({ITEM_NAME})\s+(\d+)"
    )
    items: List[LineItem] = []
    for m in pattern.finditer(section):
        price = normalize_amount(m.group(2))
        if not price:
            continue
        name = f"{clean_item_name(m.group(3), dialects)} {m.group(1).strip()}"
        _accept(items, seen, name, price)
    return items


ItemPass = Callable[[str, SeenKeys, Dialects], List[LineItem]]

# Tried in order until one of them yields items
FALLBACK_PASSES: Tuple[ItemPass, ...] = (
    parse_currency_items,
    parse_fixed_width_items,
    parse_noisy_lines,
)


def _run_pass(item_pass: ItemPass, section: str, seen: SeenKeys,
              dialects: Dialects) -> List[LineItem]:
    # Work on a copy so a failed pass leaves no keys behind
    pass_seen = set(seen)
    try:
        items = item_pass(section, pass_seen, dialects)
    except PASS_ERRORS as e:
        logger.debug("%s failed, skipping: %s", item_pass.__name__, e)
        return []
    seen.update(pass_seen)
    return items


def parse_receipt(text: str, dialects: Optional[Dialects] = None) -> List[LineItem]:
    """
    Extract line items from raw receipt text.

    Never raises; unreadable text gives an empty list. Items are unique
    by (name, price) and never have a zero price.
    """
    dialects = dialects or BUILTIN_DIALECTS
    if not text or not text.strip():
        return []
    text = text.replace("\r\n", "\n").replace("\r", "\n")

    try:
        main_section, discount_section = split_sections(text, dialects)
    except PASS_ERRORS as e:
        logger.debug("Section split failed, using whole text: %s", e)
        main_section, discount_section = text, ""

    seen: SeenKeys = set()
    items: List[LineItem] = []
    for item_pass in FALLBACK_PASSES:
        items = _run_pass(item_pass, main_section, seen, dialects)
        if items:
            logger.debug("%s found %d item(s)", item_pass.__name__, len(items))
            break

    discounts = _run_pass(parse_discount_breakdown, discount_section, seen, dialects)
    if discounts:
        logger.debug("Discount breakdown added %d item(s)", len(discounts))
    return items + discounts


def placeholder_items() -> List[LineItem]:
    """Single blank item offered for manual entry when nothing could be parsed."""
    return [LineItem(id="1", name="Item 1", price=Decimal("0.00"))]
