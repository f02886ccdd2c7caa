"""
Assignment sheets: parsed items written out for categorisation and read back.

The swipe/categorisation step happens outside this package; a sheet is
the hand-off format between parsing and settlement.
"""

import csv
import json
import logging
from pathlib import Path
from typing import Dict, List, Sequence

from .models import Category, CategorizedItem, LineItem, SettlementResult
from .parsers import placeholder_items
from .utils import generate_id, normalize_amount

logger = logging.getLogger(__name__)

FIELDNAMES = ["id", "name", "price", "category"]
PLACEHOLDER = placeholder_items()[0]


class AssignmentError(ValueError):
    """Raised when a categorised sheet cannot be read."""


def write_items_csv(items: Sequence[LineItem], out_csv: Path):
    """Write items to a CSV sheet with an empty category column to fill in."""
    with out_csv.open("w", newline="", encoding="utf-8") as f:
        w = csv.DictWriter(f, fieldnames=FIELDNAMES)
        w.writeheader()
        for item in items:
            row = item.to_dict()
            row["category"] = ""
            w.writerow(row)


def _row_price(row: Dict):
    # A blank price cell counts as zero; JSON prices may be numbers
    raw = row.get("price")
    return normalize_amount("0" if raw in (None, "") else str(raw))


def _row_to_categorized(row: Dict, where: str) -> CategorizedItem:
    name = (row.get("name") or "").strip()
    price = _row_price(row)
    if not name:
        raise AssignmentError(f"{where}: missing item name")
    if row.get("price") in (None, ""):
        raise AssignmentError(f"{where}: missing price")
    if price is None:
        raise AssignmentError(f"{where}: invalid price {row.get('price')!r}")
    try:
        category = Category.from_label(str(row.get("category") or ""))
    except ValueError:
        raise AssignmentError(
            f"{where}: unknown category {row.get('category')!r} "
            f"(expected one of: {', '.join(c.value for c in Category)})"
        ) from None
    item = LineItem(id=str(row.get("id") or generate_id()), name=name, price=price)
    return CategorizedItem(item=item, category=category)


def _is_placeholder(row: Dict) -> bool:
    """True for a blank row, or the untouched "Item 1" row offered for manual entry."""
    if _row_price(row) != 0:
        return False
    name = (row.get("name") or "").strip()
    blank = PLACEHOLDER.to_dict()
    return not name or (name == blank["name"] and str(row.get("id") or "") == blank["id"])


def read_categorized_csv(path: Path) -> List[CategorizedItem]:
    """
    Read a filled-in CSV sheet.

    Blank rows and the untouched placeholder row are skipped; any other
    row with a missing name, bad price or unknown category raises
    AssignmentError.
    """
    entries = []
    with path.open("r", newline="", encoding="utf-8") as f:
        for n, row in enumerate(csv.DictReader(f), start=2):
            if _is_placeholder(row):
                logger.debug("%s:%d: skipping placeholder row", path.name, n)
                continue
            entries.append(_row_to_categorized(row, f"{path.name}:{n}"))
    return entries


def read_categorized_json(path: Path) -> List[CategorizedItem]:
    """Read a JSON list of {"name", "price", "category"} objects."""
    with path.open("r", encoding="utf-8") as f:
        rows = json.load(f)
    if not isinstance(rows, list):
        raise AssignmentError(f"{path.name}: expected a list of items")

    entries = []
    for n, row in enumerate(rows):
        if not isinstance(row, dict):
            raise AssignmentError(f"{path.name}[{n}]: expected an object")
        if _is_placeholder(row):
            continue
        entries.append(_row_to_categorized(row, f"{path.name}[{n}]"))
    return entries


def read_categorized(path: Path) -> List[CategorizedItem]:
    """Read a categorised sheet, CSV or JSON by extension."""
    if path.suffix.lower() == ".json":
        return read_categorized_json(path)
    return read_categorized_csv(path)


def write_settlement_json(result: SettlementResult, out_json: Path):
    """Write the settlement as JSON."""
    with out_json.open("w", encoding="utf-8") as f:
        json.dump(result.to_dict(), f, ensure_ascii=False, indent=2)
