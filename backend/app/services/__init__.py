"""Service layer encapsulating business logic for API routers."""

from .budget_backfill import BackfillReport, BudgetBackfillService, TenantBackfillReport
from .budget_ledger import BudgetLedger, DeductionResult, TransactionMetadata
from .budgets import BudgetAlreadyExists, BudgetService, BudgetServiceError
from .ledger_errors import (
    BudgetNotFound,
    DuplicateShiftDeduction,
    InsufficientFunds,
    InvalidDuration,
    InvalidShiftRecord,
    LedgerError,
    LedgerServiceError,
    NoRateConfigured,
    NonPositiveAmount,
)
from .pricing import DuplicatePricingEntry, PricingService, PricingServiceError
from .rates import RateResolver, ResolvedRate, determine_shift_type
from .shift_billing import ChargePreview, ShiftBillingService, ShiftCharge
from .shift_costs import CategoryDecision, ShiftCost, ShiftCostCalculator

__all__ = [
    "BackfillReport",
    "BudgetBackfillService",
    "TenantBackfillReport",
    "BudgetLedger",
    "DeductionResult",
    "TransactionMetadata",
    "BudgetAlreadyExists",
    "BudgetService",
    "BudgetServiceError",
    "BudgetNotFound",
    "DuplicateShiftDeduction",
    "InsufficientFunds",
    "InvalidDuration",
    "InvalidShiftRecord",
    "LedgerError",
    "LedgerServiceError",
    "NoRateConfigured",
    "NonPositiveAmount",
    "DuplicatePricingEntry",
    "PricingService",
    "PricingServiceError",
    "RateResolver",
    "ResolvedRate",
    "determine_shift_type",
    "ChargePreview",
    "ShiftBillingService",
    "ShiftCharge",
    "CategoryDecision",
    "ShiftCost",
    "ShiftCostCalculator",
]
