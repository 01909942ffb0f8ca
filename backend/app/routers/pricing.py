"""Router exposing the tenant NDIS pricing catalogue."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from .. import schemas
from ..database import get_db
from ..models.pricing import ShiftType
from ..services import DuplicatePricingEntry, PricingService, PricingServiceError
from ..tenancy import require_tenant

router = APIRouter()


@router.get("", response_model=schemas.NdisPricingListResponse)
def list_pricing(
    db: Session = Depends(get_db),
    tenant_id: int = Depends(require_tenant),
    shift_type: Optional[ShiftType] = Query(None, description="Filter by shift type"),
    include_inactive: bool = Query(False, description="Include retired rates"),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=200),
) -> schemas.NdisPricingListResponse:
    items, total = PricingService.list_pricing(
        db,
        tenant_id,
        shift_type=shift_type,
        include_inactive=include_inactive,
        skip=skip,
        limit=limit,
    )
    return schemas.NdisPricingListResponse(items=items, total=total, limit=limit, skip=skip)


@router.post(
    "",
    response_model=schemas.NdisPricingRead,
    status_code=status.HTTP_201_CREATED,
)
def create_pricing(
    pricing_in: schemas.NdisPricingCreate,
    db: Session = Depends(get_db),
    tenant_id: int = Depends(require_tenant),
) -> schemas.NdisPricingRead:
    try:
        return PricingService.create_pricing(db, tenant_id, pricing_in)
    except DuplicatePricingEntry as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    except PricingServiceError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)
        ) from exc
