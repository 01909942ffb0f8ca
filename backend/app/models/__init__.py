"""Expose SQLAlchemy models for convenient imports."""

from .budget import CATEGORY_COLUMN_PREFIX, FundingCategory, NdisBudget
from .budget_transaction import (
    BudgetTransaction,
    ImmutableLedgerRowError,
    TransactionType,
)
from .pricing import NdisPricing, ShiftType, StaffRatio
from .shift import SHIFT_STATUS_COMPLETED, Shift
from .tenant import Tenant

__all__ = [
    "CATEGORY_COLUMN_PREFIX",
    "FundingCategory",
    "NdisBudget",
    "BudgetTransaction",
    "ImmutableLedgerRowError",
    "TransactionType",
    "NdisPricing",
    "ShiftType",
    "StaffRatio",
    "SHIFT_STATUS_COMPLETED",
    "Shift",
    "Tenant",
]
