"""
Price tier set - normalization, validation, lookup and (de)serialization.

A supply record carries a list of quantity breakpoints. Before every save
the list is normalized (sorted by min_qty) and validated:

1. at least one tier
2. every min_qty >= 1
3. bounded tiers have max_qty >= min_qty
4. at most one unbounded tier, and it has the greatest min_qty
5. no two tiers share a quantity ([1,50] + [51,100] is fine, [1,50] + [50,100] is not)

Gaps between tiers are allowed; a quantity in a gap has no tier price and
falls back to the record's default price.
"""
import json
from bisect import bisect_right
from collections.abc import Mapping
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Iterable, Optional, Sequence

from .models import PriceTier
from .errors import (
    PriceTierError,
    EmptySetError,
    InvalidBoundsError,
    MultipleUnboundedTiersError,
    UnboundedTierNotLastError,
    OverlappingRangesError,
    NegativePriceError,
    MalformedTierError,
    TierValidationResult,
)


def normalize(tiers: Iterable[PriceTier]) -> list[PriceTier]:
    """Return the tiers sorted ascending by min_qty. Input is not modified."""
    return sorted(tiers, key=lambda t: t.min_qty)


def _upper(tier: PriceTier) -> float:
    return float('inf') if tier.is_unbounded else tier.max_qty


def _check_bounds(tiers: Sequence[PriceTier]) -> list[PriceTierError]:
    # All lower bounds are checked before any upper bound
    errors = [
        InvalidBoundsError(f"tier {i}: min_qty={tier.min_qty} must be at least 1", (i,))
        for i, tier in enumerate(tiers)
        if tier.min_qty < 1
    ]
    for i, tier in enumerate(tiers):
        if tier.min_qty >= 1 and not tier.is_unbounded and tier.max_qty < tier.min_qty:
            errors.append(InvalidBoundsError(
                f"tier {i}: max_qty={tier.max_qty} is below min_qty={tier.min_qty}", (i,)
            ))
    return errors


def _check_unbounded(tiers: Sequence[PriceTier]) -> list[PriceTierError]:
    errors = []
    open_ended = [i for i, t in enumerate(tiers) if t.is_unbounded]

    if len(open_ended) > 1:
        listed = ", ".join(str(i) for i in open_ended)
        errors.append(MultipleUnboundedTiersError(
            f"tiers {listed} have no max_qty; only one open-ended tier is allowed",
            tuple(open_ended),
        ))

    for u in open_ended:
        for j, other in enumerate(tiers):
            if j == u or other.is_unbounded:
                continue
            if other.min_qty > tiers[u].min_qty:
                errors.append(UnboundedTierNotLastError(
                    f"tier {u} is open-ended from {tiers[u].min_qty} "
                    f"but tier {j} starts higher at {other.min_qty}",
                    (u, j),
                ))
                break
    return errors


def _check_overlaps(tiers: Sequence[PriceTier]) -> list[PriceTierError]:
    errors = []
    for i in range(len(tiers)):
        for j in range(i + 1, len(tiers)):
            a, b = tiers[i], tiers[j]
            if a.min_qty <= _upper(b) and b.min_qty <= _upper(a):
                low, high = (a, b) if a.min_qty <= b.min_qty else (b, a)
                bound = "unbounded" if low.is_unbounded else low.max_qty
                errors.append(OverlappingRangesError(
                    f"tier {i} overlaps tier {j}: max_qty={bound} >= min_qty={high.min_qty}",
                    (i, j),
                ))
    return errors


def _check_prices(tiers: Sequence[PriceTier]) -> list[PriceTierError]:
    return [
        NegativePriceError(f"tier {i}: unit_price={t.unit_price} is negative", (i,))
        for i, t in enumerate(tiers)
        if t.unit_price < 0
    ]


_CHECKS = (_check_bounds, _check_unbounded, _check_overlaps, _check_prices)


def validate(tiers: Sequence[PriceTier], collect_all: bool = False) -> TierValidationResult:
    """
    Validate an already-normalized tier list.

    Does not sort. By default stops at the first violation found in the
    fixed check order (empty, bounds, unbounded, overlap, price), so
    errors holds exactly one entry on failure. With collect_all=True every
    violation is reported, still in check order.
    """
    tiers = list(tiers)
    if not tiers:
        return TierValidationResult(
            valid=False,
            errors=[EmptySetError("at least one price tier is required")],
        )

    errors: list[PriceTierError] = []
    for check in _CHECKS:
        found = check(tiers)
        if found and not collect_all:
            return TierValidationResult(valid=False, errors=found[:1], tiers=tiers)
        errors.extend(found)

    return TierValidationResult(valid=not errors, errors=errors, tiers=tiers)


def lookup(tiers: Sequence[PriceTier], quantity: int) -> Optional[Decimal]:
    """
    Find the unit price for a quantity.

    Requires a validated tier list. Sorted input is searched with bisect,
    unsorted input is scanned. Returns None when the quantity sits in a gap
    or below the first tier.
    """
    if not tiers:
        return None
    if any(a.min_qty > b.min_qty for a, b in zip(tiers, tiers[1:])):
        # Unsorted input, scan instead of bisecting
        return next((t.unit_price for t in tiers if t.contains(quantity)), None)
    pos = bisect_right(tiers, quantity, key=lambda t: t.min_qty) - 1
    if pos < 0:
        return None
    tier = tiers[pos]
    if tier.contains(quantity):
        return tier.unit_price
    return None


def effective_price_for_quantity(
    tiers: Sequence[PriceTier],
    quantity: int,
    fallback_price: Decimal,
) -> Decimal:
    """Tier price for the quantity, or the fallback (default list) price."""
    price = lookup(tiers, quantity)
    if price is None:
        return fallback_price
    return price


def serialize(tiers: Iterable[PriceTier]) -> list[dict]:
    """
    Convert tiers to plain dicts in their current order.

    max_qty is None for the open-ended tier; unit_price is a decimal string
    so the value round-trips exactly.
    """
    return [
        {
            "min_qty": t.min_qty,
            "max_qty": t.max_qty,
            "unit_price": str(t.unit_price),
        }
        for t in tiers
    ]


def _parse_qty(value, index: int, name: str) -> int:
    if isinstance(value, bool):
        raise MalformedTierError(f"tier {index}: {name} must be an integer", (index,))
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            pass
    raise MalformedTierError(f"tier {index}: {name}={value!r} must be an integer", (index,))


def _parse_price(value, index: int) -> Decimal:
    if isinstance(value, bool) or value is None:
        raise MalformedTierError(f"tier {index}: unit_price must be a number", (index,))
    if isinstance(value, Decimal):
        price = value
    else:
        try:
            price = Decimal(str(value).strip())
        except InvalidOperation:
            raise MalformedTierError(f"tier {index}: unit_price={value!r} is not a number", (index,)) from None
    if not price.is_finite():
        raise MalformedTierError(f"tier {index}: unit_price={value!r} is not a number", (index,))
    return price


def _parse_tier(raw, index: int) -> PriceTier:
    if not isinstance(raw, Mapping):
        raise MalformedTierError(f"tier {index}: expected an object, got {type(raw).__name__}", (index,))
    if 'min_qty' not in raw:
        raise MalformedTierError(f"tier {index}: min_qty is required", (index,))

    # Older records store the tier price under "price"
    if 'unit_price' in raw:
        price_value = raw['unit_price']
    elif 'price' in raw:
        price_value = raw['price']
    else:
        raise MalformedTierError(f"tier {index}: unit_price is required", (index,))

    max_value = raw.get('max_qty')
    if isinstance(max_value, str) and max_value.strip() == '':
        max_value = None

    return PriceTier(
        min_qty=_parse_qty(raw['min_qty'], index, 'min_qty'),
        max_qty=None if max_value is None else _parse_qty(max_value, index, 'max_qty'),
        unit_price=_parse_price(price_value, index),
    )


def deserialize(value) -> TierValidationResult:
    """
    Parse stored or submitted tier data into PriceTier objects.

    Accepts a list of mappings or a JSON string holding one. Order is
    preserved and invariants are not checked; call normalize() and
    validate() afterwards.
    """
    if isinstance(value, (str, bytes)):
        try:
            value = json.loads(value)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            return TierValidationResult(
                valid=False,
                errors=[MalformedTierError(f"price tiers are not valid JSON: {e}")],
            )

    if not isinstance(value, (list, tuple)):
        return TierValidationResult(
            valid=False,
            errors=[MalformedTierError(f"price tiers must be a list, got {type(value).__name__}")],
        )

    tiers = []
    for i, raw in enumerate(value):
        try:
            tiers.append(_parse_tier(raw, i))
        except MalformedTierError as e:
            return TierValidationResult(valid=False, errors=[e])

    return TierValidationResult(valid=True, tiers=tiers)


@dataclass(frozen=True)
class PriceTierSet:
    """Immutable tier list owned by one supply record."""
    tiers: tuple[PriceTier, ...] = ()

    @classmethod
    def from_raw(cls, value) -> 'PriceTierSet':
        """Build from raw dicts or JSON. Raises MalformedTierError on bad data."""
        result = deserialize(value)
        result.raise_for_errors()
        return cls(tuple(result.tiers))

    def normalized(self) -> 'PriceTierSet':
        return PriceTierSet(tuple(normalize(self.tiers)))

    def validate(self, collect_all: bool = False) -> TierValidationResult:
        return validate(self.tiers, collect_all=collect_all)

    def lookup(self, quantity: int) -> Optional[Decimal]:
        return lookup(self.tiers, quantity)

    def effective_price(self, quantity: int, fallback_price: Decimal) -> Decimal:
        return effective_price_for_quantity(self.tiers, quantity, fallback_price)

    def to_list(self) -> list[dict]:
        return serialize(self.tiers)

    def __len__(self):
        return len(self.tiers)

    def __iter__(self):
        return iter(self.tiers)
