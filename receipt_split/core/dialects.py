"""
Receipt dialect tables: section markers and noise patterns per receipt style.

Parsing logic in parsers.py only reads these tables, so a new receipt
dialect is added here or in a rules.json file, not in the parser.
"""

import json
import logging
import re
from dataclasses import dataclass, replace
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

logger = logging.getLogger(__name__)

VAT_HEADER = r"alv\s+veroton\s+vero\s+verollinen"
CARD_TRANSACTION = r"card\s+transaction"
LOYALTY_CARD = r"kanta.?as[it1l]?a?kas"  # also OCR misreads like KANTA-ASTAKAS

# Built-in footer markers in the order they are tried, whatever the
# dialect that carries them
FOOTER_MARKER_ORDER = (VAT_HEADER, CARD_TRANSACTION, LOYALTY_CARD)

# Fields holding regular expressions; the rest are matched literally
PATTERN_FIELDS = ("footer_markers", "total_markers", "skip_patterns", "header_fragments")
LITERAL_FIELDS = ("discount_labels", "currency_symbols")


@dataclass(frozen=True)
class ReceiptDialect:
    """Marker and rejection patterns for one family of receipts."""
    name: str
    # Headers that always start the tax/payment footer
    footer_markers: Tuple[str, ...] = ()
    # Totals keywords; they also show up in column headers, so they are
    # only used when no footer marker is present
    total_markers: Tuple[str, ...] = ()
    # Labels of per-product markdowns listed after the item section
    discount_labels: Tuple[str, ...] = ()
    # Item names matching any of these are header/footer noise
    skip_patterns: Tuple[str, ...] = ()
    # Column headers that OCR glues onto the first item name
    header_fragments: Tuple[str, ...] = ()
    currency_symbols: Tuple[str, ...] = ()

    def extend(self, other: "ReceiptDialect") -> "ReceiptDialect":
        """Return a copy with the patterns of another dialect appended."""
        def merged(a: Tuple[str, ...], b: Tuple[str, ...]) -> Tuple[str, ...]:
            return a + tuple(p for p in b if p not in a)

        return replace(
            self,
            footer_markers=merged(self.footer_markers, other.footer_markers),
            total_markers=merged(self.total_markers, other.total_markers),
            discount_labels=merged(self.discount_labels, other.discount_labels),
            skip_patterns=merged(self.skip_patterns, other.skip_patterns),
            header_fragments=merged(self.header_fragments, other.header_fragments),
            currency_symbols=merged(self.currency_symbols, other.currency_symbols),
        )


FINNISH = ReceiptDialect(
    name="finnish",
    footer_markers=(VAT_HEADER, LOYALTY_CARD),
    total_markers=(
        r"yhteensä|vrreensä",
    ),
    discount_labels=("Plussa-tasaerä", "Plussasetti", "Tasaerä"),
    skip_patterns=(
        r"kuitti tilauksestasi",
        r"ostostesi kokonaishinta",
        r"^tuotteet\s+kuvaus",
        r"kuvaus\s+määrä\s+yhteensä",
        r"yhteensä",
        r"vrreensä",  # OCR misread of yhteensä
        r"^kuvaus$",
        r"^määrä$",
        r"^maksukortti",
        r"^plussa-kortti",
        r"^kuittinumero",
        r"^tilaus:",
        r"^säästit",
        r"toimitusmaksun verolliset",
        r"^kanta-asiakas",
        r"^kortti:",
        r"plussaa",
        r"kerryttävät",
        r"ostot\s*$",
        r"^alv\s+\d",
        r"^veroton",
        r"^kiitos käynnistä",
        r"^avoinna",
        r"^ma-pe",
        r"supermarket",
        r"^k\d{3}\s+m",  # register codes like "K009 M065..."
        r"m\d{5,}",
        r"puh\.",
        r"y-tunnus",
    ),
    header_fragments=(
        r"Tuotteet\s+Kuvaus\s+määrä\s+yhteensä\s*",
        r"Kuvaus\s+määrä\s+yhteensä\s*",
    ),
    currency_symbols=("€",),
)

ENGLISH = ReceiptDialect(
    name="english",
    footer_markers=(CARD_TRANSACTION,),
    total_markers=(
        r"^[ \t]*(?:sub[ \t]*)?total\b",
    ),
    skip_patterns=(
        r"^card\s+transaction",
        r"^card:",
        r"^application:",
        r"^tr\.nr",
        r"^payee",
        r"^reference:",
        r"^debit/charge",
        r"^paypass",
        r"^(?:sub\s*)?total\b",
        r"^vat\b",
        r"^change\b",
        r"^thank\s*you",
        r"^\d{4}\s+\*{4}",  # masked card numbers
        r"^\d{2}:\d{2}\s",  # lines starting with a time of day
    ),
    header_fragments=(
        r"Description\s+(?:Qty|Quantity)\s+(?:Amount|Total)\s*",
    ),
    currency_symbols=("€",),
)

BUILTIN_DIALECTS: Mapping[str, ReceiptDialect] = MappingProxyType({
    FINNISH.name: FINNISH,
    ENGLISH.name: ENGLISH,
})


def _dialect_from_dict(name: str, raw: Dict) -> ReceiptDialect:
    """Build a dialect from its rules.json entry, rejecting broken patterns."""
    if not isinstance(raw, dict):
        raise ValueError(f"Dialect {name!r}: expected an object of pattern lists")

    def strings(key: str) -> Tuple[str, ...]:
        value = raw.get(key, [])
        if isinstance(value, str):
            value = [value]
        if not isinstance(value, list):
            raise ValueError(f"Dialect {name!r}: {key} must be a string or a list of strings")
        return tuple(str(v) for v in value)

    fields = {key: strings(key) for key in PATTERN_FIELDS + LITERAL_FIELDS}
    for key in PATTERN_FIELDS:
        for pattern in fields[key]:
            try:
                re.compile(pattern)
            except re.error as e:
                raise ValueError(
                    f"Dialect {name!r}: invalid pattern {pattern!r} in {key}: {e}"
                ) from None
    return ReceiptDialect(name=name, **fields)


def load_dialects(path: Optional[Path] = None) -> Mapping[str, ReceiptDialect]:
    """
    Load the dialect table, extended by the "dialects" section of a rules file.

    Rules format:
        {
          "dialects": {
            "swedish": {"total_markers": ["summa"], "skip_patterns": ["^moms"]},
            "finnish": {"skip_patterns": ["^bonus"]}
          }
        }

    A dialect that already exists has the given patterns appended;
    any other name adds a new dialect. A missing file yields the
    built-in table. A malformed file or pattern raises ValueError.
    """
    if path is None or not path.exists():
        return BUILTIN_DIALECTS
    with path.open("r", encoding="utf-8") as f:
        rules = json.load(f)
    if not isinstance(rules, dict):
        raise ValueError(f"{path}: expected a JSON object")
    sections = rules.get("dialects") or {}
    if not isinstance(sections, dict):
        raise ValueError(f"{path}: \"dialects\" must map dialect names to pattern lists")

    table = dict(BUILTIN_DIALECTS)
    for name, raw in sections.items():
        try:
            dialect = _dialect_from_dict(name, raw or {})
        except ValueError as e:
            raise ValueError(f"{path}: {e}") from None
        logger.debug("%s dialect %r from %s", "Extending" if name in table else "Adding", name, path)
        table[name] = table[name].extend(dialect) if name in table else dialect
    return MappingProxyType(table)


def collect(dialects: Mapping[str, ReceiptDialect], attr: str) -> Iterable[str]:
    """Yield one pattern list across all dialects, in table order, without repeats."""
    seen = set()
    for dialect in dialects.values():
        for pattern in getattr(dialect, attr):
            if pattern not in seen:
                seen.add(pattern)
                yield pattern


def footer_markers(dialects: Mapping[str, ReceiptDialect]) -> List[str]:
    """
    Footer markers in the order they are tried.

    Built-in markers keep a fixed priority across dialects (VAT header,
    card transaction, loyalty card); markers added by rules follow in
    table order.
    """
    present = list(collect(dialects, "footer_markers"))
    ordered = [p for p in FOOTER_MARKER_ORDER if p in present]
    return ordered + [p for p in present if p not in FOOTER_MARKER_ORDER]
