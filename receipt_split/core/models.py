"""
Data models for receipt items and settlement results.
"""

from dataclasses import dataclass, field, asdict
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import List

CENT = Decimal("0.01")


class Category(str, Enum):
    """Who pays for an item."""
    ME = "me"
    YOU = "you"
    COMMON = "common"
    IGNORE = "ignore"

    @classmethod
    def from_label(cls, label: str) -> "Category":
        """
        Resolve a category from user input.

        Accepts the canonical values, "shared" for common and the
        one-letter shortcuts m/y/c/s/i.
        """
        key = (label or "").strip().lower()
        if key in _CATEGORY_ALIASES:
            return _CATEGORY_ALIASES[key]
        return cls(key)


_CATEGORY_ALIASES = {
    "m": Category.ME,
    "y": Category.YOU,
    "c": Category.COMMON,
    "s": Category.COMMON,
    "shared": Category.COMMON,
    "i": Category.IGNORE,
}


@dataclass(frozen=True)
class LineItem:
    """One product/price pair read from a receipt."""
    id: str
    name: str
    price: Decimal

    def to_dict(self):
        """Convert to dictionary."""
        d = asdict(self)
        d["price"] = str(self.price)
        return d


@dataclass(frozen=True)
class CategorizedItem:
    """A line item together with the category a user gave it."""
    item: LineItem
    category: Category

    def to_dict(self):
        """Convert to dictionary."""
        d = self.item.to_dict()
        d["category"] = self.category.value
        return d


@dataclass
class SettlementResult:
    """Per-category totals and item lists for one receipt."""
    me_total: Decimal = Decimal("0.00")
    you_total: Decimal = Decimal("0.00")
    common_total: Decimal = Decimal("0.00")
    me_items: List[CategorizedItem] = field(default_factory=list)
    you_items: List[CategorizedItem] = field(default_factory=list)
    common_items: List[CategorizedItem] = field(default_factory=list)
    ignored_items: List[CategorizedItem] = field(default_factory=list)

    @property
    def common_half(self) -> Decimal:
        """Half of the shared total, rounded half-up to the cent."""
        return (self.common_total / 2).quantize(CENT, rounding=ROUND_HALF_UP)

    @property
    def me_owes(self) -> Decimal:
        return self.me_total + self.common_half

    @property
    def you_owes(self) -> Decimal:
        # Remainder of the shared total, so odd cents are never lost
        return self.you_total + (self.common_total - self.common_half)

    @property
    def item_count(self) -> int:
        return (len(self.me_items) + len(self.you_items)
                + len(self.common_items) + len(self.ignored_items))

    def to_dict(self):
        """Convert to dictionary."""
        return {
            "me_total": str(self.me_total),
            "you_total": str(self.you_total),
            "common_total": str(self.common_total),
            "me_owes": str(self.me_owes),
            "you_owes": str(self.you_owes),
            "me_items": [c.to_dict() for c in self.me_items],
            "you_items": [c.to_dict() for c in self.you_items],
            "common_items": [c.to_dict() for c in self.common_items],
            "ignored_items": [c.to_dict() for c in self.ignored_items],
        }
