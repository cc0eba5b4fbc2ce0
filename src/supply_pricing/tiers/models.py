"""
Data models for quantity price tiers.

A tier maps an inclusive quantity range to a single unit price. An upper
bound of None means the tier is open-ended ("this quantity and above").
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional


@dataclass(frozen=True)
class PriceTier:
    """A single quantity range with its unit price."""
    min_qty: int
    max_qty: Optional[int]  # None = unbounded
    unit_price: Decimal

    @property
    def is_unbounded(self) -> bool:
        """True when the tier has no upper quantity limit."""
        return self.max_qty is None

    def contains(self, quantity: int) -> bool:
        """Check whether a purchase quantity falls inside this tier."""
        if quantity < self.min_qty:
            return False
        return self.is_unbounded or quantity <= self.max_qty

    def label(self) -> str:
        """Human-readable range, e.g. '1-50' or '100+'."""
        if self.is_unbounded:
            return f"{self.min_qty}+"
        return f"{self.min_qty}-{self.max_qty}"
