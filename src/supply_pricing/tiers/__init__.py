"""Tiers subpackage - price tier model, validation and lookup."""
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
from .price_tiers import (
    PriceTierSet,
    normalize,
    validate,
    lookup,
    effective_price_for_quantity,
    serialize,
    deserialize,
)

__all__ = [
    'PriceTier', 'PriceTierSet',
    'normalize', 'validate', 'lookup', 'effective_price_for_quantity',
    'serialize', 'deserialize',
    'PriceTierError', 'EmptySetError', 'InvalidBoundsError',
    'MultipleUnboundedTiersError', 'UnboundedTierNotLastError',
    'OverlappingRangesError', 'NegativePriceError', 'MalformedTierError',
    'TierValidationResult',
]
