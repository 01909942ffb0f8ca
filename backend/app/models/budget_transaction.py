"""Append-only ledger of budget movements."""

from __future__ import annotations

import enum

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    Enum as SAEnum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    event,
    func,
)
from sqlalchemy.orm import relationship

from ..database import Base
from .budget import FundingCategory
from .pricing import SHIFT_TYPE_ENUM, STAFF_RATIO_ENUM


class TransactionType(str, enum.Enum):
    """Kinds of ledger movement. Only deductions are recorded today."""

    DEDUCTION = "deduction"


FUNDING_CATEGORY_ENUM = SAEnum(
    FundingCategory,
    name="ndis_funding_category_enum",
    values_callable=lambda enum_cls: [member.value for member in enum_cls],
    native_enum=False,
    validate_strings=True,
)

TRANSACTION_TYPE_ENUM = SAEnum(
    TransactionType,
    name="budget_transaction_type_enum",
    values_callable=lambda enum_cls: [member.value for member in enum_cls],
    native_enum=False,
    validate_strings=True,
)


class ImmutableLedgerRowError(RuntimeError):
    """Raised when code attempts to rewrite or remove a ledger transaction."""


class BudgetTransaction(Base):
    """One immutable movement against a client's budget."""

    __tablename__ = "budget_transactions"
    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_budget_transactions_amount_positive"),
        CheckConstraint("hours > 0", name="ck_budget_transactions_hours_positive"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    budget_id = Column(
        Integer,
        ForeignKey("ndis_budgets.id", ondelete="RESTRICT"),
        nullable=False,
    )
    shift_id = Column(
        Integer,
        ForeignKey("shifts.id", ondelete="SET NULL"),
        nullable=True,
    )
    case_note_id = Column(Integer, nullable=True)
    company_id = Column(String(64), nullable=False)
    category = Column(FUNDING_CATEGORY_ENUM, nullable=False)
    shift_type = Column(SHIFT_TYPE_ENUM, nullable=False)
    ratio = Column(STAFF_RATIO_ENUM, nullable=False)
    hours = Column(Numeric(5, 2), nullable=False)
    rate = Column(Numeric(10, 2), nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    description = Column(Text, nullable=True)
    transaction_type = Column(
        TRANSACTION_TYPE_ENUM, nullable=False, default=TransactionType.DEDUCTION
    )
    created_by_user_id = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    budget = relationship("NdisBudget", back_populates="transactions")
    shift = relationship("Shift", back_populates="budget_transaction")


Index("budget_transactions_budget_idx", BudgetTransaction.budget_id)
# A shift produces at most one deduction; NULL shift ids are not constrained.
Index("budget_transactions_shift_uidx", BudgetTransaction.shift_id, unique=True)


@event.listens_for(BudgetTransaction, "before_update")
def _reject_update(_mapper, _connection, target: BudgetTransaction) -> None:
    raise ImmutableLedgerRowError(f"Budget transaction {target.id} is immutable")


@event.listens_for(BudgetTransaction, "before_delete")
def _reject_delete(_mapper, _connection, target: BudgetTransaction) -> None:
    raise ImmutableLedgerRowError(f"Budget transaction {target.id} cannot be deleted")
