"""Bill completed shifts against the client's NDIS budget."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from .. import models
from .budget_ledger import BudgetLedger, DeductionResult, TransactionMetadata
from .ledger_errors import BudgetNotFound, InvalidShiftRecord
from .rates import RateResolver, ResolvedRate, determine_shift_type
from .shift_costs import CategoryDecision, ShiftCost, ShiftCostCalculator

LOGGER = logging.getLogger(__name__)

DEFAULT_COMPANY_ID_ENV = "BUDGET_DEFAULT_COMPANY_ID"
DEFAULT_COMPANY_ID = "default-company"
DEFAULT_STAFF_RATIO = models.StaffRatio.ONE_TO_ONE


@dataclass(frozen=True)
class ShiftCharge:
    """Everything needed to deduct one shift, computed before any write."""

    budget: models.NdisBudget
    shift_type: models.ShiftType
    ratio: models.StaffRatio
    category: CategoryDecision
    rate: ResolvedRate
    cost: ShiftCost


@dataclass(frozen=True)
class ChargePreview:
    charge: ShiftCharge
    available: Decimal
    sufficient_funds: bool
    ratio_allowed: bool


def _default_company_id() -> str:
    return os.getenv(DEFAULT_COMPANY_ID_ENV) or DEFAULT_COMPANY_ID


def parse_staff_ratio(raw: Optional[str], *, shift_id: Optional[int] = None) -> models.StaffRatio:
    if raw is None or not str(raw).strip():
        return DEFAULT_STAFF_RATIO
    try:
        return models.StaffRatio(str(raw).strip())
    except ValueError as exc:
        raise InvalidShiftRecord(shift_id, f"unknown staff ratio {raw!r}") from exc


def parse_funding_category(
    raw: Optional[str], *, shift_id: Optional[int] = None
) -> Optional[models.FundingCategory]:
    if raw is None or not str(raw).strip():
        return None
    try:
        return models.FundingCategory(str(raw).strip())
    except ValueError as exc:
        raise InvalidShiftRecord(shift_id, f"unknown funding category {raw!r}") from exc


class ShiftBillingService:
    """Runs rate resolution, costing and the ledger deduction for a shift."""

    @staticmethod
    def active_budget_for_client(
        db: Session, client_id: int, tenant_id: int
    ) -> models.NdisBudget:
        budget = (
            db.query(models.NdisBudget)
            .filter(
                models.NdisBudget.client_id == client_id,
                models.NdisBudget.tenant_id == tenant_id,
                models.NdisBudget.is_active.is_(True),
            )
            .order_by(models.NdisBudget.id.desc())
            .first()
        )
        if budget is None:
            raise BudgetNotFound(client_id=client_id, tenant_id=tenant_id)
        return budget

    @staticmethod
    def company_id_for_tenant(db: Session, tenant_id: int) -> str:
        tenant = db.get(models.Tenant, tenant_id)
        if tenant is not None and tenant.company_id:
            return tenant.company_id
        return _default_company_id()

    @classmethod
    def price_window(
        cls,
        db: Session,
        budget: models.NdisBudget,
        *,
        start_time: datetime,
        end_time: datetime,
        ratio: models.StaffRatio,
        category: Optional[models.FundingCategory],
    ) -> ShiftCharge:
        shift_type = determine_shift_type(start_time)
        resolved = RateResolver.resolve(db, budget, shift_type, ratio)
        cost = ShiftCostCalculator.calculate(start_time, end_time, resolved.rate, ratio)
        decision = ShiftCostCalculator.decide_category(category, shift_type)
        return ShiftCharge(
            budget=budget,
            shift_type=shift_type,
            ratio=ratio,
            category=decision,
            rate=resolved,
            cost=cost,
        )

    @classmethod
    def price_shift(cls, db: Session, shift: models.Shift) -> ShiftCharge:
        if shift.start_time is None or shift.end_time is None:
            raise InvalidShiftRecord(shift.id, "missing scheduled start or end time")
        if shift.client_id is None:
            raise InvalidShiftRecord(shift.id, "no client assigned")

        ratio = parse_staff_ratio(shift.staff_ratio, shift_id=shift.id)
        category = parse_funding_category(shift.funding_category, shift_id=shift.id)
        budget = cls.active_budget_for_client(db, shift.client_id, shift.tenant_id)
        return cls.price_window(
            db,
            budget,
            start_time=shift.start_time,
            end_time=shift.end_time,
            ratio=ratio,
            category=category,
        )

    @staticmethod
    def preview(charge: ShiftCharge) -> ChargePreview:
        category = charge.category.category
        available = charge.budget.remaining_for(category)
        allowed = charge.budget.allowed_ratios_for(category)
        return ChargePreview(
            charge=charge,
            available=available,
            sufficient_funds=available >= charge.cost.amount,
            ratio_allowed=not allowed or charge.ratio.value in allowed,
        )

    @staticmethod
    def describe(shift: models.Shift, charge: ShiftCharge, prefix: str) -> str:
        title = shift.title or f"shift {shift.id}"
        return (
            f"{prefix}: {title} - {charge.cost.hours}h @ ${charge.cost.rate}/h "
            f"({charge.rate.source} rate, {charge.ratio.value} x{charge.cost.multiplier}), "
            f"category {charge.category.describe()}"
        )

    @classmethod
    def bill_shift(
        cls,
        db: Session,
        shift: models.Shift,
        *,
        created_by_user_id: Optional[int] = None,
        description_prefix: str = "Shift completion",
    ) -> DeductionResult:
        """Deduct the cost of a completed shift.

        Errors propagate to the caller, which owns the policy for shifts that
        cannot be billed.
        """

        if not shift.is_completed:
            raise InvalidShiftRecord(shift.id, "shift is not completed")

        charge = cls.price_shift(db, shift)
        creator = created_by_user_id if created_by_user_id is not None else shift.user_id
        if creator is None:
            raise InvalidShiftRecord(shift.id, "no user to attribute the deduction to")

        LOGGER.debug(
            "Shift %s priced at %s (%s %s, %s)",
            shift.id,
            charge.cost.amount,
            charge.shift_type.value,
            charge.ratio.value,
            charge.category.describe(),
        )

        metadata = TransactionMetadata(
            shift_type=charge.shift_type,
            ratio=charge.ratio,
            hours=charge.cost.hours,
            rate=charge.cost.rate,
            company_id=cls.company_id_for_tenant(db, shift.tenant_id),
            created_by_user_id=creator,
            description=cls.describe(shift, charge, description_prefix),
            shift_id=shift.id,
        )
        return BudgetLedger.deduct(
            db,
            charge.budget.id,
            charge.category.category,
            charge.cost.amount,
            metadata,
        )
