"""Atomic, fund-checked deductions against NDIS budgets."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from .. import models
from .ledger_errors import (
    BudgetNotFound,
    DuplicateShiftDeduction,
    InsufficientFunds,
    LedgerServiceError,
    NonPositiveAmount,
)
from .shift_costs import quantize_currency

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransactionMetadata:
    """Descriptive fields copied onto the ledger row."""

    shift_type: models.ShiftType
    ratio: models.StaffRatio
    hours: Decimal
    rate: Decimal
    company_id: str
    created_by_user_id: int
    description: Optional[str] = None
    shift_id: Optional[int] = None
    case_note_id: Optional[int] = None


@dataclass
class DeductionResult:
    transaction: models.BudgetTransaction
    budget: models.NdisBudget


class BudgetLedger:
    """The only code path that changes a budget balance."""

    @staticmethod
    def _budget_is_active(db: Session, budget_id: int) -> bool:
        return (
            db.query(models.NdisBudget.id)
            .filter(
                models.NdisBudget.id == budget_id,
                models.NdisBudget.is_active.is_(True),
            )
            .first()
            is not None
        )

    @staticmethod
    def _shift_already_billed(db: Session, shift_id: int) -> bool:
        return (
            db.query(models.BudgetTransaction.id)
            .filter(models.BudgetTransaction.shift_id == shift_id)
            .first()
            is not None
        )

    @classmethod
    def deduct(
        cls,
        db: Session,
        budget_id: int,
        category: models.FundingCategory,
        amount: Decimal,
        metadata: TransactionMetadata,
    ) -> DeductionResult:
        """Debit ``amount`` from one category and append the ledger row.

        The fund check and the decrement are a single conditional UPDATE, so
        concurrent deductions against the same budget serialise on the row
        and can never drive it negative. The transaction row is inserted in
        the same unit of work; on any failure nothing is written.
        """

        amount = quantize_currency(Decimal(amount))
        if amount <= 0:
            raise NonPositiveAmount(amount)

        remaining = models.NdisBudget.remaining_column(category)
        statement = (
            update(models.NdisBudget)
            .where(
                models.NdisBudget.id == budget_id,
                models.NdisBudget.is_active.is_(True),
                remaining >= amount,
            )
            .values({remaining: remaining - amount})
            .execution_options(synchronize_session=False)
        )

        try:
            result = db.execute(statement)
            if result.rowcount != 1:
                db.rollback()
                if not cls._budget_is_active(db, budget_id):
                    raise BudgetNotFound(budget_id=budget_id)
                raise InsufficientFunds(budget_id, category, amount)

            transaction = models.BudgetTransaction(
                budget_id=budget_id,
                shift_id=metadata.shift_id,
                case_note_id=metadata.case_note_id,
                company_id=metadata.company_id,
                category=category,
                shift_type=metadata.shift_type,
                ratio=metadata.ratio,
                hours=quantize_currency(Decimal(metadata.hours)),
                rate=quantize_currency(Decimal(metadata.rate)),
                amount=amount,
                description=metadata.description,
                transaction_type=models.TransactionType.DEDUCTION,
                created_by_user_id=metadata.created_by_user_id,
            )
            db.add(transaction)
            db.commit()
        except IntegrityError as exc:
            db.rollback()
            if metadata.shift_id is not None and cls._shift_already_billed(
                db, metadata.shift_id
            ):
                raise DuplicateShiftDeduction(metadata.shift_id) from exc
            LOGGER.error("Budget deduction for budget %s violated a constraint: %s", budget_id, exc)
            raise LedgerServiceError("Budget deduction violated a constraint") from exc
        except SQLAlchemyError as exc:
            db.rollback()
            LOGGER.exception("Budget deduction failed for budget %s", budget_id)
            raise LedgerServiceError("Budget deduction could not be recorded") from exc

        db.refresh(transaction)
        budget = db.get(models.NdisBudget, budget_id, populate_existing=True)
        LOGGER.info(
            "Deducted %s from %s on budget %s (transaction %s, remaining %s)",
            amount,
            category.value,
            budget_id,
            transaction.id,
            budget.remaining_for(category),
        )
        return DeductionResult(transaction=transaction, budget=budget)
