"""Expose Pydantic schemas for convenient imports."""

from .budget import (
    DeductionPreview,
    DeductionPreviewRequest,
    NdisBudgetCreate,
    NdisBudgetListResponse,
    NdisBudgetRead,
    NdisBudgetUpdate,
)
from .common import LedgerErrorDetail, PaginatedResponse
from .pricing import (
    NdisPricingBase,
    NdisPricingCreate,
    NdisPricingListResponse,
    NdisPricingRead,
)
from .transaction import (
    BackfillResponse,
    BillShiftRequest,
    BudgetDeductionCreate,
    BudgetDeductionResponse,
    BudgetTransactionListResponse,
    BudgetTransactionRead,
    TenantBackfillSummary,
)

__all__ = [
    "DeductionPreview",
    "DeductionPreviewRequest",
    "NdisBudgetCreate",
    "NdisBudgetListResponse",
    "NdisBudgetRead",
    "NdisBudgetUpdate",
    "LedgerErrorDetail",
    "PaginatedResponse",
    "NdisPricingBase",
    "NdisPricingCreate",
    "NdisPricingListResponse",
    "NdisPricingRead",
    "BackfillResponse",
    "BillShiftRequest",
    "BudgetDeductionCreate",
    "BudgetDeductionResponse",
    "BudgetTransactionListResponse",
    "BudgetTransactionRead",
    "TenantBackfillSummary",
]
