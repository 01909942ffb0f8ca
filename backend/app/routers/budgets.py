"""Router exposing client NDIS budgets."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from .. import schemas
from ..database import get_db
from ..services import (
    BudgetAlreadyExists,
    BudgetService,
    BudgetServiceError,
    LedgerError,
    ShiftBillingService,
)
from ..tenancy import require_tenant
from .ledger_http import ledger_http_error

router = APIRouter()


@router.get("", response_model=schemas.NdisBudgetListResponse)
def list_budgets(
    db: Session = Depends(get_db),
    tenant_id: int = Depends(require_tenant),
    include_inactive: bool = Query(False, description="Include soft-deleted budgets"),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=200),
) -> schemas.NdisBudgetListResponse:
    items, total = BudgetService.list_budgets(
        db, tenant_id, include_inactive=include_inactive, skip=skip, limit=limit
    )
    return schemas.NdisBudgetListResponse(items=items, total=total, limit=limit, skip=skip)


@router.get("/client/{client_id}", response_model=schemas.NdisBudgetRead)
def get_client_budget(
    client_id: int,
    db: Session = Depends(get_db),
    tenant_id: int = Depends(require_tenant),
) -> schemas.NdisBudgetRead:
    try:
        return BudgetService.get_client_budget(db, tenant_id, client_id)
    except LedgerError as exc:
        raise ledger_http_error(exc) from exc


@router.post("", response_model=schemas.NdisBudgetRead, status_code=status.HTTP_201_CREATED)
def create_budget(
    budget_in: schemas.NdisBudgetCreate,
    db: Session = Depends(get_db),
    tenant_id: int = Depends(require_tenant),
) -> schemas.NdisBudgetRead:
    try:
        return BudgetService.create_budget(db, tenant_id, budget_in)
    except BudgetAlreadyExists as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    except BudgetServiceError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)
        ) from exc


@router.patch("/{budget_id}", response_model=schemas.NdisBudgetRead)
def update_budget(
    budget_id: int,
    budget_in: schemas.NdisBudgetUpdate,
    db: Session = Depends(get_db),
    tenant_id: int = Depends(require_tenant),
) -> schemas.NdisBudgetRead:
    try:
        return BudgetService.update_budget(db, tenant_id, budget_id, budget_in)
    except LedgerError as exc:
        raise ledger_http_error(exc) from exc
    except BudgetAlreadyExists as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    except BudgetServiceError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)
        ) from exc


@router.post("/{budget_id}/preview", response_model=schemas.DeductionPreview)
def preview_deduction(
    budget_id: int,
    request: schemas.DeductionPreviewRequest,
    db: Session = Depends(get_db),
    tenant_id: int = Depends(require_tenant),
) -> schemas.DeductionPreview:
    """Price a shift window against the budget without writing anything."""

    try:
        budget = BudgetService.get_budget(db, tenant_id, budget_id)
        charge = ShiftBillingService.price_window(
            db,
            budget,
            start_time=request.start_time,
            end_time=request.end_time,
            ratio=request.staff_ratio,
            category=request.funding_category,
        )
    except LedgerError as exc:
        raise ledger_http_error(exc) from exc

    preview = ShiftBillingService.preview(charge)
    return schemas.DeductionPreview(
        budget_id=budget.id,
        shift_type=charge.shift_type,
        ratio=charge.ratio,
        category=charge.category.category,
        category_inferred=charge.category.inferred,
        rate=charge.cost.rate,
        rate_source=charge.rate.source,
        hours=charge.cost.hours,
        multiplier=charge.cost.multiplier,
        amount=charge.cost.amount,
        available=preview.available,
        sufficient_funds=preview.sufficient_funds,
        ratio_allowed=preview.ratio_allowed,
    )
