"""Failure kinds raised by the budget ledger services."""

from __future__ import annotations

from decimal import Decimal
from typing import Optional


class LedgerError(RuntimeError):
    """Base class for expected ledger failures.

    ``reason`` is a stable code used in logs and backfill reports.
    """

    reason = "ledger_error"


class BudgetNotFound(LedgerError):
    reason = "budget_not_found"

    def __init__(
        self,
        *,
        budget_id: Optional[int] = None,
        client_id: Optional[int] = None,
        tenant_id: Optional[int] = None,
    ) -> None:
        self.budget_id = budget_id
        self.client_id = client_id
        self.tenant_id = tenant_id
        if budget_id is not None:
            message = f"No active budget with id {budget_id}"
        else:
            message = f"No active budget for client {client_id} in tenant {tenant_id}"
        super().__init__(message)


class NoRateConfigured(LedgerError):
    reason = "no_rate_configured"

    def __init__(self, shift_type, ratio, tenant_id: int) -> None:
        self.shift_type = shift_type
        self.ratio = ratio
        self.tenant_id = tenant_id
        super().__init__(
            f"No price override or pricing entry for {shift_type.value} {ratio.value} "
            f"in tenant {tenant_id}"
        )


class InvalidDuration(LedgerError):
    reason = "invalid_duration"

    def __init__(self, hours: Decimal) -> None:
        self.hours = hours
        super().__init__(f"Shift duration must be within (0, 24] hours, got {hours}")


class InsufficientFunds(LedgerError):
    reason = "insufficient_funds"

    def __init__(self, budget_id: int, category, amount: Decimal) -> None:
        self.budget_id = budget_id
        self.category = category
        self.amount = amount
        super().__init__(
            f"Insufficient {category.value} funds on budget {budget_id} for {amount}"
        )


class InvalidShiftRecord(LedgerError):
    reason = "invalid_shift_record"

    def __init__(self, shift_id: Optional[int], detail: str) -> None:
        self.shift_id = shift_id
        super().__init__(f"Shift {shift_id} cannot be billed: {detail}")


class DuplicateShiftDeduction(LedgerError):
    reason = "duplicate_shift_deduction"

    def __init__(self, shift_id: int) -> None:
        self.shift_id = shift_id
        super().__init__(f"Shift {shift_id} already has a budget transaction")


class LedgerServiceError(LedgerError):
    """Raised when the database rejects a ledger write for unexpected reasons."""

    reason = "database_error"


class NonPositiveAmount(LedgerError):
    """Raised when a charge rounds to zero cents or less."""

    reason = "non_positive_amount"

    def __init__(self, amount: Decimal) -> None:
        self.amount = amount
        super().__init__(f"Deduction amount must be greater than zero, got {amount}")
