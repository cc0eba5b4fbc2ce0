"""
Supply Records API - FastAPI routers for supply records and price tiers.
"""
from decimal import Decimal
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from ..services.supply_records_service import SupplyRecord, SupplyRecordsService, TierSetRejected
from ..tiers import (
    deserialize,
    normalize,
    validate,
    lookup,
    effective_price_for_quantity,
    serialize,
)
from .state import get_service

router = APIRouter(prefix="/api/supply-records", tags=["supply-records"])
tiers_router = APIRouter(prefix="/api/price-tiers", tags=["price-tiers"])


# Pydantic models for API
class SupplyRecordCreate(BaseModel):
    """Request model for creating a supply record."""
    record_id: Optional[str] = None
    product_id: str
    supplier_id: int
    price: Decimal = Decimal('0')
    moq: int = 1
    price_tiers: Optional[list[dict[str, Any]]] = None
    has_authorization: bool = False
    has_certification: bool = False
    is_active: bool = True
    delivery_days: Optional[int] = None
    valid_from: Optional[str] = None
    valid_until: Optional[str] = None
    notes: Optional[str] = None


class SupplyRecordUpdate(BaseModel):
    """Request model for updating a supply record."""
    product_id: Optional[str] = None
    supplier_id: Optional[int] = None
    price: Optional[Decimal] = None
    moq: Optional[int] = None
    price_tiers: Optional[list[dict[str, Any]]] = None
    has_authorization: Optional[bool] = None
    has_certification: Optional[bool] = None
    is_active: Optional[bool] = None
    delivery_days: Optional[int] = None
    valid_from: Optional[str] = None
    valid_until: Optional[str] = None
    notes: Optional[str] = None


class SupplyRecordResponse(BaseModel):
    """Response model for a supply record."""
    record_id: str
    product_id: str
    supplier_id: int
    price: Decimal
    moq: int
    price_tiers: list[dict[str, Any]]
    has_authorization: bool
    has_certification: bool
    is_active: bool
    delivery_days: Optional[int]
    valid_from: Optional[str]
    valid_until: Optional[str]
    notes: Optional[str]
    created_at: str
    updated_at: str

    @classmethod
    def from_record(cls, record: SupplyRecord) -> 'SupplyRecordResponse':
        data = dict(record.__dict__)
        data['price_tiers'] = serialize(record.price_tiers)
        return cls(**data)


class TierValidationRequest(BaseModel):
    """Raw tier rows as submitted by the tier editor."""
    tiers: Any
    normalize: bool = True
    collect_all: Optional[bool] = None


class TierValidationResponse(BaseModel):
    """Response model for tier validation."""
    valid: bool
    errors: list[dict[str, Any]]
    tiers: list[dict[str, Any]]


class TierLookupRequest(BaseModel):
    """Request model for a tier price lookup."""
    tiers: Any
    quantity: int
    fallback_price: Optional[Decimal] = None


class TierLookupResponse(BaseModel):
    """Response model for a tier price lookup."""
    quantity: int
    unit_price: Optional[Decimal]
    found: bool


def _rejected(e: TierSetRejected) -> HTTPException:
    return HTTPException(status_code=422, detail={"errors": e.result.error_dicts()})


# Supply record endpoints

@router.get("", response_model=list[SupplyRecordResponse])
async def list_records(
    product_id: Optional[str] = None,
    supplier_id: Optional[int] = None,
    search: Optional[str] = None,
    active_only: bool = False,
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=500),
    service: SupplyRecordsService = Depends(get_service),
):
    """List supply records, newest first."""
    records = service.list_records(
        product_id=product_id,
        supplier_id=supplier_id,
        search=search,
        active_only=active_only,
        page=page,
        page_size=page_size,
    )
    return [SupplyRecordResponse.from_record(r) for r in records]


@router.get("/stats")
async def get_stats(service: SupplyRecordsService = Depends(get_service)):
    """Get supply record statistics."""
    return service.get_stats()


@router.get("/{record_id}", response_model=SupplyRecordResponse)
async def get_record(record_id: str, service: SupplyRecordsService = Depends(get_service)):
    """Get a single supply record by ID."""
    record = service.get_record(record_id)
    if not record:
        raise HTTPException(status_code=404, detail=f"Supply record '{record_id}' not found")
    return SupplyRecordResponse.from_record(record)


@router.post("", response_model=SupplyRecordResponse)
async def create_record(
    record_data: SupplyRecordCreate,
    service: SupplyRecordsService = Depends(get_service),
):
    """Create a new supply record."""
    data = record_data.model_dump()
    data['record_id'] = data['record_id'] or ''

    try:
        created = service.create_record(SupplyRecord(**data))
    except TierSetRejected as e:
        raise _rejected(e)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return SupplyRecordResponse.from_record(created)


@router.put("/{record_id}", response_model=SupplyRecordResponse)
async def update_record(
    record_id: str,
    updates: SupplyRecordUpdate,
    service: SupplyRecordsService = Depends(get_service),
):
    """Update an existing supply record."""
    if not service.get_record(record_id):
        raise HTTPException(status_code=404, detail=f"Supply record '{record_id}' not found")

    # Only fields present in the body are applied
    update_dict = updates.model_dump(exclude_unset=True)

    try:
        updated = service.update_record(record_id, update_dict)
    except TierSetRejected as e:
        raise _rejected(e)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return SupplyRecordResponse.from_record(updated)


@router.delete("/{record_id}")
async def delete_record(record_id: str, service: SupplyRecordsService = Depends(get_service)):
    """Delete a supply record."""
    try:
        service.delete_record(record_id)
        return {"success": True, "message": f"Supply record '{record_id}' deleted"}
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.get("/{record_id}/quote")
async def quote_record(
    record_id: str,
    quantity: int = Query(..., ge=1),
    service: SupplyRecordsService = Depends(get_service),
):
    """Price a purchase quantity against a supply record."""
    if not service.get_record(record_id):
        raise HTTPException(status_code=404, detail=f"Supply record '{record_id}' not found")

    from fastapi.encoders import jsonable_encoder
    return jsonable_encoder(service.quote(record_id, quantity))


# Price tier endpoints

@tiers_router.post("/validate", response_model=TierValidationResponse)
async def validate_tiers(
    request: TierValidationRequest,
    service: SupplyRecordsService = Depends(get_service),
):
    """Validate a tier list without saving."""
    parsed = deserialize(request.tiers)
    if not parsed.valid:
        return TierValidationResponse(valid=False, errors=parsed.error_dicts(), tiers=[])

    tiers = normalize(parsed.tiers) if request.normalize else parsed.tiers
    collect_all = service.collect_all_violations if request.collect_all is None else request.collect_all
    result = validate(tiers, collect_all=collect_all)

    return TierValidationResponse(
        valid=result.valid,
        errors=result.error_dicts(),
        tiers=serialize(tiers),
    )


@tiers_router.post("/lookup", response_model=TierLookupResponse)
async def lookup_price(request: TierLookupRequest):
    """Look up the unit price for a quantity in a tier list."""
    parsed = deserialize(request.tiers)
    if not parsed.valid:
        raise HTTPException(status_code=422, detail={"errors": parsed.error_dicts()})

    tiers = normalize(parsed.tiers)
    result = validate(tiers)
    if not result.valid:
        raise HTTPException(status_code=422, detail={"errors": result.error_dicts()})

    found = lookup(tiers, request.quantity) is not None
    if request.fallback_price is not None:
        price = effective_price_for_quantity(tiers, request.quantity, request.fallback_price)
    else:
        price = lookup(tiers, request.quantity)

    return TierLookupResponse(quantity=request.quantity, unit_price=price, found=found)
