"""
Error taxonomy for price tier validation.

Errors are returned inside a TierValidationResult rather than raised, so a
form submission can show the message next to the offending rows. They are
still ValueError subclasses and can be raised with raise_for_errors().
"""
from dataclasses import dataclass, field

from .models import PriceTier


class PriceTierError(ValueError):
    """Base class for a violated tier rule."""
    code = "TIER_ERROR"

    def __init__(self, message: str, indices: tuple[int, ...] = ()):
        super().__init__(message)
        self.message = message
        self.indices = tuple(indices)

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "indices": list(self.indices),
            "message": self.message,
        }

    def __eq__(self, other):
        if not isinstance(other, PriceTierError):
            return NotImplemented
        return (type(self), self.indices, self.message) == (type(other), other.indices, other.message)

    def __hash__(self):
        return hash((type(self), self.indices, self.message))


class EmptySetError(PriceTierError):
    """No tiers were provided."""
    code = "EMPTY_SET"


class InvalidBoundsError(PriceTierError):
    """min_qty below 1, or max_qty below min_qty."""
    code = "INVALID_BOUNDS"


class MultipleUnboundedTiersError(PriceTierError):
    """More than one tier has no upper bound."""
    code = "MULTIPLE_UNBOUNDED"


class UnboundedTierNotLastError(PriceTierError):
    """The open-ended tier does not have the greatest min_qty."""
    code = "UNBOUNDED_NOT_LAST"


class OverlappingRangesError(PriceTierError):
    """Two tiers share at least one quantity."""
    code = "OVERLAPPING_RANGES"


class NegativePriceError(PriceTierError):
    """A tier has a unit price below zero."""
    code = "NEGATIVE_PRICE"


class MalformedTierError(PriceTierError):
    """Raw tier data could not be parsed."""
    code = "MALFORMED_TIER"


@dataclass
class TierValidationResult:
    """Outcome of validate() or deserialize()."""
    valid: bool
    errors: list[PriceTierError] = field(default_factory=list)
    tiers: list[PriceTier] = field(default_factory=list)

    @property
    def first_error(self):
        return self.errors[0] if self.errors else None

    def raise_for_errors(self):
        """Raise the primary error, if any."""
        if self.errors:
            raise self.errors[0]

    def error_dicts(self) -> list[dict]:
        return [e.to_dict() for e in self.errors]
