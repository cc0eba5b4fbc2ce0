"""
Quote result models for supply records.

Uses dataclasses for structured, traceable price resolution output.
"""
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional


@dataclass
class TraceStep:
    """A single step in the price resolution trace."""
    step: str
    description: str
    value: Optional[str] = None


@dataclass
class QuoteLine:
    """Price for one supply record at a purchase quantity."""
    record_id: str
    product_id: str
    supplier_id: int
    quantity: int
    unit_price: Decimal
    extended_price: Decimal
    source: str  # "Tier" or "Default"
    tier_used: Optional[str] = None
    warnings: list[str] = field(default_factory=list)
    trace: list[TraceStep] = field(default_factory=list)

    def add_trace(self, step: str, description: str, value: str = None):
        """Add a step to the trace for this quote."""
        self.trace.append(TraceStep(step=step, description=description, value=value))

    def add_warning(self, warning: str):
        """Add a warning for this quote."""
        self.warnings.append(warning)

    def get_trace_text(self) -> str:
        """Get human-readable trace as formatted text."""
        lines = []
        for t in self.trace:
            if t.value:
                lines.append(f"→ {t.step}: {t.description} = {t.value}")
            else:
                lines.append(f"→ {t.step}: {t.description}")
        return "\n".join(lines)
