from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from ..models.budget import FundingCategory
from ..models.budget_transaction import TransactionType
from ..models.pricing import ShiftType, StaffRatio
from .budget import NdisBudgetRead
from .common import PaginatedResponse


class BudgetTransactionRead(BaseModel):
    """Immutable ledger row as returned by the API."""

    id: int
    budget_id: int
    shift_id: Optional[int] = None
    case_note_id: Optional[int] = None
    company_id: str
    category: FundingCategory
    shift_type: ShiftType
    ratio: StaffRatio
    hours: Decimal
    rate: Decimal
    amount: Decimal
    description: Optional[str] = None
    transaction_type: TransactionType
    created_by_user_id: int
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class BudgetTransactionListResponse(PaginatedResponse[BudgetTransactionRead]):
    """Paginated ledger listing."""

    pass


class BudgetDeductionCreate(BaseModel):
    """Direct deduction request for callers that priced the work themselves."""

    budget_id: int = Field(..., ge=1)
    category: FundingCategory
    amount: Decimal = Field(..., gt=0)
    shift_type: ShiftType
    ratio: StaffRatio
    hours: Decimal = Field(..., gt=0, le=24)
    rate: Decimal = Field(..., gt=0)
    created_by_user_id: int = Field(..., ge=1)
    shift_id: Optional[int] = None
    case_note_id: Optional[int] = None
    description: Optional[str] = None


class BillShiftRequest(BaseModel):
    created_by_user_id: Optional[int] = Field(
        default=None, ge=1, description="Defaults to the shift's assigned user"
    )


class BudgetDeductionResponse(BaseModel):
    transaction: BudgetTransactionRead
    budget: NdisBudgetRead


class TenantBackfillSummary(BaseModel):
    tenant_id: int
    scanned: int
    processed: int
    skipped: dict[str, int]
    amount: Decimal
    transaction_ids: list[int]


class BackfillResponse(BaseModel):
    processed: int
    skipped: int
    amount: Decimal
    tenants: list[TenantBackfillSummary]
