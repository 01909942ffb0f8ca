"""Router exposing the budget ledger and backfill operations."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .. import models, schemas
from ..database import get_db
from ..models.budget import FundingCategory
from ..services import (
    BackfillReport,
    BudgetBackfillService,
    BudgetLedger,
    BudgetService,
    LedgerError,
    ShiftBillingService,
    TransactionMetadata,
)
from ..tenancy import require_tenant
from .ledger_http import ledger_http_error

LOGGER = logging.getLogger(__name__)

router = APIRouter()


def _backfill_response(report: BackfillReport) -> schemas.BackfillResponse:
    return schemas.BackfillResponse(
        processed=report.processed,
        skipped=report.skipped,
        amount=report.amount,
        tenants=[
            schemas.TenantBackfillSummary(
                tenant_id=item.tenant_id,
                scanned=item.scanned,
                processed=item.processed,
                skipped=dict(item.skipped),
                amount=item.amount,
                transaction_ids=item.transaction_ids,
            )
            for item in report.tenants
        ],
    )


@router.get("/budget-transactions", response_model=schemas.BudgetTransactionListResponse)
def list_transactions(
    db: Session = Depends(get_db),
    tenant_id: int = Depends(require_tenant),
    category: Optional[FundingCategory] = Query(None, description="Filter by category"),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
) -> schemas.BudgetTransactionListResponse:
    items, total = BudgetService.list_transactions(
        db, tenant_id, category=category, skip=skip, limit=limit
    )
    return schemas.BudgetTransactionListResponse(
        items=items, total=total, limit=limit, skip=skip
    )


@router.get(
    "/budget-transactions/{budget_id}",
    response_model=schemas.BudgetTransactionListResponse,
)
def list_budget_transactions(
    budget_id: int,
    db: Session = Depends(get_db),
    tenant_id: int = Depends(require_tenant),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
) -> schemas.BudgetTransactionListResponse:
    try:
        BudgetService.get_budget(db, tenant_id, budget_id)
    except LedgerError as exc:
        raise ledger_http_error(exc) from exc
    items, total = BudgetService.list_transactions(
        db, tenant_id, budget_id=budget_id, skip=skip, limit=limit
    )
    return schemas.BudgetTransactionListResponse(
        items=items, total=total, limit=limit, skip=skip
    )


@router.post(
    "/budget-transactions/deduct",
    response_model=schemas.BudgetDeductionResponse,
    status_code=status.HTTP_201_CREATED,
)
def deduct(
    request: schemas.BudgetDeductionCreate,
    db: Session = Depends(get_db),
    tenant_id: int = Depends(require_tenant),
) -> schemas.BudgetDeductionResponse:
    try:
        BudgetService.get_budget(db, tenant_id, request.budget_id)
        metadata = TransactionMetadata(
            shift_type=request.shift_type,
            ratio=request.ratio,
            hours=request.hours,
            rate=request.rate,
            company_id=ShiftBillingService.company_id_for_tenant(db, tenant_id),
            created_by_user_id=request.created_by_user_id,
            description=request.description,
            shift_id=request.shift_id,
            case_note_id=request.case_note_id,
        )
        result = BudgetLedger.deduct(
            db, request.budget_id, request.category, request.amount, metadata
        )
    except LedgerError as exc:
        raise ledger_http_error(exc) from exc
    return schemas.BudgetDeductionResponse(
        transaction=result.transaction, budget=result.budget
    )


@router.post(
    "/shifts/{shift_id}/bill",
    response_model=schemas.BudgetDeductionResponse,
    status_code=status.HTTP_201_CREATED,
)
def bill_shift(
    shift_id: int,
    request: Optional[schemas.BillShiftRequest] = None,
    db: Session = Depends(get_db),
    tenant_id: int = Depends(require_tenant),
) -> schemas.BudgetDeductionResponse:
    """Deduct a completed shift from its client's budget."""

    shift = (
        db.query(models.Shift)
        .filter(models.Shift.id == shift_id, models.Shift.tenant_id == tenant_id)
        .first()
    )
    if shift is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Shift not found")

    created_by = request.created_by_user_id if request else None
    try:
        result = ShiftBillingService.bill_shift(db, shift, created_by_user_id=created_by)
    except LedgerError as exc:
        LOGGER.info("Shift %s was not billed: %s", shift_id, exc.reason)
        raise ledger_http_error(exc) from exc
    return schemas.BudgetDeductionResponse(
        transaction=result.transaction, budget=result.budget
    )


@router.post("/budget/backfill", response_model=schemas.BackfillResponse)
def run_backfill(
    db: Session = Depends(get_db),
    tenant_id: int = Depends(require_tenant),
) -> schemas.BackfillResponse:
    LOGGER.info("Budget backfill requested for tenant %s", tenant_id)
    try:
        report = BudgetBackfillService.run(db, tenant_ids=[tenant_id])
    except SQLAlchemyError as exc:
        LOGGER.exception("Budget backfill failed for tenant %s", tenant_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Budget backfill could not be completed. Try again later.",
        ) from exc
    return _backfill_response(report)
