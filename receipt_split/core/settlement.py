"""
Settlement: who owes what once every item has a category.
"""

from typing import Iterable, List, Sequence

from .models import Category, CategorizedItem, LineItem, SettlementResult
from .utils import DEFAULT_CURRENCY, money_fmt

SECTION_TITLES = (
    ("me_items", "Me:"),
    ("you_items", "You:"),
    ("common_items", "Shared (split 50/50):"),
)


def split(categorized: Iterable[CategorizedItem]) -> SettlementResult:
    """
    Partition categorized items and total them per category.

    Items keep their input order within each category. Ignored items
    are listed but counted in no total.
    """
    result = SettlementResult()
    for entry in categorized:
        price = entry.item.price
        if entry.category == Category.ME:
            result.me_total += price
            result.me_items.append(entry)
        elif entry.category == Category.YOU:
            result.you_total += price
            result.you_items.append(entry)
        elif entry.category == Category.COMMON:
            result.common_total += price
            result.common_items.append(entry)
        else:
            result.ignored_items.append(entry)
    return result


def settle(items: Sequence[LineItem], categories: Sequence[Category]) -> SettlementResult:
    """Split a parsed item list given one category per item, in item order."""
    if len(items) != len(categories):
        raise ValueError(
            f"Got {len(categories)} categories for {len(items)} items"
        )
    return split(CategorizedItem(item=i, category=c) for i, c in zip(items, categories))


def format_summary(result: SettlementResult, currency: str = DEFAULT_CURRENCY) -> str:
    """Render the plain-text summary that gets copied to the clipboard."""
    lines: List[str] = [
        "Receipt Split Summary",
        "=====================",
        "",
    ]

    for attr, title in SECTION_TITLES:
        entries = getattr(result, attr)
        if not entries:
            continue
        lines.append(title)
        for entry in entries:
            lines.append(f"  {entry.item.name}: {money_fmt(entry.item.price, currency)}")
        lines.append("")

    lines.append("---------------------")
    lines.append(f"Me owes: {money_fmt(result.me_owes, currency)}")
    lines.append(f"You owe: {money_fmt(result.you_owes, currency)}")
    return "\n".join(lines)
