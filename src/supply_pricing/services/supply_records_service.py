"""
Supply Records Service - CRUD operations for supply records.

Handles reading/writing supply_records.csv. Every create/update normalizes
and validates the record's price tiers before anything is written; the
tier list is always replaced wholesale.
"""
import csv
import json
import logging
import uuid
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Optional

import pandas as pd

from ..tiers import (
    PriceTier,
    TierValidationResult,
    normalize,
    validate,
    lookup,
    serialize,
    deserialize,
)
from .quote import QuoteLine

logger = logging.getLogger(__name__)


class TierSetRejected(ValueError):
    """Raised when a record's price tiers fail validation."""

    def __init__(self, result: TierValidationResult):
        self.result = result
        message = "; ".join(e.message for e in result.errors) or "invalid price tiers"
        super().__init__(message)


def _to_decimal(value, name: str) -> Decimal:
    if isinstance(value, bool):
        raise ValueError(f"{name} must be a number")
    try:
        return Decimal(str(value).strip())
    except InvalidOperation:
        raise ValueError(f"{name} must be a number, got {value!r}") from None


def _parse_date(value: str, name: str) -> date:
    try:
        return date.fromisoformat(value)
    except (TypeError, ValueError):
        raise ValueError(f"{name} must be an ISO date (YYYY-MM-DD), got {value!r}") from None


def _parse_bool(value: str, default: bool = False) -> bool:
    if value is None or value == '':
        return default
    return str(value).lower() in ('true', '1', 'yes', 'on')


@dataclass
class SupplyRecord:
    """A product offered by a supplier, with default price and tiers."""
    product_id: str
    supplier_id: int
    price: Decimal = Decimal('0')
    moq: int = 1
    price_tiers: Optional[list[PriceTier]] = None  # None = derive the default tier
    record_id: str = ''
    has_authorization: bool = False
    has_certification: bool = False
    is_active: bool = True
    delivery_days: Optional[int] = None
    valid_from: Optional[str] = None
    valid_until: Optional[str] = None
    notes: Optional[str] = None
    created_at: str = ''
    updated_at: str = ''

    def to_csv_row(self) -> dict:
        """Convert to CSV row format."""
        return {
            'record_id': self.record_id,
            'product_id': self.product_id,
            'supplier_id': str(self.supplier_id),
            'price': str(self.price),
            'moq': str(self.moq),
            'price_tiers': json.dumps(serialize(self.price_tiers)),
            'has_authorization': 'true' if self.has_authorization else 'false',
            'has_certification': 'true' if self.has_certification else 'false',
            'is_active': 'true' if self.is_active else 'false',
            'delivery_days': str(self.delivery_days) if self.delivery_days is not None else '',
            'valid_from': self.valid_from or '',
            'valid_until': self.valid_until or '',
            'notes': self.notes or '',
            'created_at': self.created_at,
            'updated_at': self.updated_at,
        }

    @classmethod
    def from_csv_row(cls, row: dict) -> 'SupplyRecord':
        """Create SupplyRecord from CSV row."""
        parsed = deserialize(row.get('price_tiers') or '[]')
        if not parsed.valid:
            logger.warning(
                "Record %s has unreadable price tiers: %s",
                row.get('record_id'), parsed.first_error.message,
            )

        return cls(
            record_id=row.get('record_id', ''),
            product_id=row.get('product_id', ''),
            supplier_id=int(row.get('supplier_id') or 0),
            price=Decimal(row.get('price') or '0'),
            moq=int(row.get('moq') or 1),
            price_tiers=parsed.tiers,
            has_authorization=_parse_bool(row.get('has_authorization')),
            has_certification=_parse_bool(row.get('has_certification')),
            is_active=_parse_bool(row.get('is_active'), default=True),
            delivery_days=int(row['delivery_days']) if row.get('delivery_days') else None,
            valid_from=row.get('valid_from') or None,
            valid_until=row.get('valid_until') or None,
            notes=row.get('notes') or None,
            created_at=row.get('created_at', ''),
            updated_at=row.get('updated_at', ''),
        )

    def default_tiers(self) -> list[PriceTier]:
        """Single open-ended tier from the MOQ at the default price."""
        return [PriceTier(min_qty=self.moq, max_qty=None, unit_price=self.price)]


class SupplyRecordsService:
    """Service for managing supply records."""

    CSV_COLUMNS = [
        'record_id', 'product_id', 'supplier_id', 'price', 'moq', 'price_tiers',
        'has_authorization', 'has_certification', 'is_active', 'delivery_days',
        'valid_from', 'valid_until', 'notes', 'created_at', 'updated_at'
    ]

    def __init__(self, csv_path: Path, collect_all_violations: bool = False):
        self.csv_path = Path(csv_path)
        self.collect_all_violations = collect_all_violations

    def _read_rows(self) -> list[dict]:
        if not self.csv_path.exists():
            return []
        with open(self.csv_path, 'r', encoding='utf-8', newline='') as f:
            return [row for row in csv.DictReader(f) if row.get('record_id')]

    def _all_records(self) -> list[SupplyRecord]:
        return [SupplyRecord.from_csv_row(row) for row in self._read_rows()]

    def list_records(
        self,
        product_id: Optional[str] = None,
        supplier_id: Optional[int] = None,
        search: Optional[str] = None,
        active_only: bool = False,
        page: int = 1,
        page_size: int = 50,
    ) -> list[SupplyRecord]:
        """List records, newest first, with optional filters and pagination."""
        if page < 1 or page_size < 1:
            raise ValueError("page and page_size must be positive")

        records = self._all_records()

        if product_id:
            records = [r for r in records if r.product_id == str(product_id)]
        if supplier_id is not None:
            records = [r for r in records if r.supplier_id == int(supplier_id)]
        if active_only:
            records = [r for r in records if r.is_active]
        if search:
            needle = search.strip().lower()
            records = [
                r for r in records
                if needle in r.product_id.lower() or needle in (r.notes or '').lower()
            ]

        records.sort(key=lambda r: r.created_at, reverse=True)

        start = (page - 1) * page_size
        return records[start:start + page_size]

    def get_record(self, record_id: str) -> Optional[SupplyRecord]:
        """Get a single record by ID."""
        for record in self._all_records():
            if record.record_id == record_id:
                return record
        return None

    def prepare_tiers(self, tiers: list[PriceTier]) -> list[PriceTier]:
        """Normalize and validate a tier list. Raises TierSetRejected on failure."""
        normalized = normalize(tiers)
        result = validate(normalized, collect_all=self.collect_all_violations)
        if not result.valid:
            logger.warning("Rejected price tiers: %s", result.error_dicts())
            raise TierSetRejected(result)
        return normalized

    def _coerce_tiers(self, value) -> list[PriceTier]:
        if all(isinstance(t, PriceTier) for t in value or []):
            return list(value or [])
        parsed = deserialize(value)
        if not parsed.valid:
            raise TierSetRejected(parsed)
        return parsed.tiers

    def _check_fields(self, record: SupplyRecord):
        if not record.product_id:
            raise ValueError("product_id is required")
        if not record.supplier_id:
            raise ValueError("supplier_id is required")
        if record.moq < 1:
            raise ValueError("moq must be at least 1")
        if record.price < 0:
            raise ValueError("price must not be negative")
        if record.delivery_days is not None and record.delivery_days < 1:
            raise ValueError("delivery_days must be at least 1")
        start = _parse_date(record.valid_from, 'valid_from') if record.valid_from else None
        end = _parse_date(record.valid_until, 'valid_until') if record.valid_until else None
        if start and end and start > end:
            raise ValueError("valid_from must be before valid_until")

    def create_record(self, record: SupplyRecord) -> SupplyRecord:
        """Create a new record."""
        record.price = _to_decimal(record.price, 'price')
        self._check_fields(record)

        if record.price_tiers is None:
            tiers = record.default_tiers()
        else:
            tiers = self._coerce_tiers(record.price_tiers)
        record.price_tiers = self.prepare_tiers(tiers)

        if not record.record_id:
            record.record_id = uuid.uuid4().hex

        if self.get_record(record.record_id):
            raise ValueError(f"Supply record with ID '{record.record_id}' already exists")

        now = datetime.now().isoformat()
        record.created_at = now
        record.updated_at = now

        records = self._all_records()
        records.append(record)
        self._write_records(records)

        logger.info(
            "Created supply record %s (product %s, supplier %s, %d tiers)",
            record.record_id, record.product_id, record.supplier_id, len(record.price_tiers),
        )
        return record

    def update_record(self, record_id: str, updates: dict) -> SupplyRecord:
        """Update an existing record. A price_tiers update replaces the whole set."""
        records = self._all_records()

        for i, record in enumerate(records):
            if record.record_id == record_id:
                break
        else:
            raise ValueError(f"Supply record with ID '{record_id}' not found")

        for key, value in updates.items():
            if key in ('record_id', 'created_at', 'updated_at'):
                continue
            if key == 'price_tiers':
                value = self._coerce_tiers(value)
            elif key == 'price':
                value = _to_decimal(value, 'price')
            if hasattr(record, key):
                setattr(record, key, value)

        self._check_fields(record)
        record.price_tiers = self.prepare_tiers(record.price_tiers)
        record.updated_at = datetime.now().isoformat()

        records[i] = record
        self._write_records(records)

        logger.info("Updated supply record %s", record_id)
        return record

    def delete_record(self, record_id: str) -> bool:
        """Delete a record together with its tier set."""
        records = self._all_records()
        original_count = len(records)
        records = [r for r in records if r.record_id != record_id]

        if len(records) == original_count:
            raise ValueError(f"Supply record with ID '{record_id}' not found")

        self._write_records(records)
        logger.info("Deleted supply record %s", record_id)
        return True

    def _write_records(self, records: list[SupplyRecord]):
        """Write records back to CSV."""
        self.csv_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.csv_path, 'w', encoding='utf-8', newline='') as f:
            writer = csv.DictWriter(f, fieldnames=self.CSV_COLUMNS)
            writer.writeheader()
            for record in records:
                writer.writerow(record.to_csv_row())

    def quote(self, record_id: str, quantity: int, as_of: Optional[str] = None) -> QuoteLine:
        """
        Price a purchase quantity against a record.

        Uses the matching tier price, falling back to the record's default
        price when the quantity is in a gap or below every tier.
        """
        if quantity < 1:
            raise ValueError("quantity must be at least 1")

        record = self.get_record(record_id)
        if record is None:
            raise ValueError(f"Supply record with ID '{record_id}' not found")

        line = QuoteLine(
            record_id=record.record_id,
            product_id=record.product_id,
            supplier_id=record.supplier_id,
            quantity=quantity,
            unit_price=record.price,
            extended_price=Decimal('0'),
            source="Default",
        )
        line.add_trace("Record Lookup", "Found supply record", record.record_id)

        tier_price = lookup(record.price_tiers, quantity)
        if tier_price is not None:
            tier = next(t for t in record.price_tiers if t.contains(quantity))
            line.unit_price = tier_price
            line.source = "Tier"
            line.tier_used = tier.label()
            line.add_trace("Tier Match", f"Quantity {quantity} in tier {tier.label()}", f"{tier_price}")
        else:
            line.add_trace("Tier Match", f"No tier covers quantity {quantity}, using default price", f"{record.price}")

        if quantity < record.moq:
            line.add_warning(f"Quantity {quantity} is below the minimum order quantity {record.moq}")
        if not record.is_active:
            line.add_warning("Supply record is inactive")

        today = _parse_date(as_of, 'as_of') if as_of else date.today()
        if record.valid_from and today < _parse_date(record.valid_from, 'valid_from'):
            line.add_warning(f"Price not valid until {record.valid_from}")
        if record.valid_until and today > _parse_date(record.valid_until, 'valid_until'):
            line.add_warning(f"Price expired on {record.valid_until}")

        line.extended_price = line.unit_price * quantity
        line.add_trace("Extension", f"Quantity {quantity} × {line.unit_price}", f"{line.extended_price}")
        return line

    def audit_tiers(self) -> list[tuple[str, TierValidationResult]]:
        """Re-check the stored tier set of every record. Returns failures only."""
        failures = []
        for row in self._read_rows():
            parsed = deserialize(row.get('price_tiers') or '[]')
            if parsed.valid:
                parsed = validate(normalize(parsed.tiers), collect_all=self.collect_all_violations)
            if not parsed.valid:
                failures.append((row['record_id'], parsed))
        return failures

    def get_stats(self) -> dict:
        """Get aggregate statistics about supply records."""
        records = self._all_records()
        if not records:
            return {
                'total': 0,
                'active': 0,
                'inactive': 0,
                'products': 0,
                'suppliers': 0,
                'avg_price': None,
                'min_price': None,
                'max_price': None,
                'avg_moq': None,
                'tiered': 0,
                'by_supplier': {},
            }

        df = pd.DataFrame([
            {
                'product_id': r.product_id,
                'supplier_id': r.supplier_id,
                'price': float(r.price),
                'moq': r.moq,
                'is_active': r.is_active,
                'tier_count': len(r.price_tiers),
            }
            for r in records
        ])

        active = int(df['is_active'].sum())
        by_supplier = df.groupby('supplier_id').size()

        return {
            'total': len(df),
            'active': active,
            'inactive': len(df) - active,
            'products': int(df['product_id'].nunique()),
            'suppliers': int(df['supplier_id'].nunique()),
            'avg_price': round(float(df['price'].mean()), 2),
            'min_price': float(df['price'].min()),
            'max_price': float(df['price'].max()),
            'avg_moq': round(float(df['moq'].mean()), 2),
            'tiered': int((df['tier_count'] > 1).sum()),
            'by_supplier': {str(k): int(v) for k, v in by_supplier.items()},
        }
