"""Budget enrolment and read operations.

Balances are never edited here: they start equal to the totals and only the
ledger's ``deduct`` moves them afterwards.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .. import models, schemas
from .ledger_errors import BudgetNotFound
from .shift_costs import quantize_currency

LOGGER = logging.getLogger(__name__)


class BudgetServiceError(RuntimeError):
    """Raised when a budget cannot be created or updated."""


class BudgetAlreadyExists(BudgetServiceError):
    """Raised when the client already has an active budget in the tenant."""


def _ratio_values(ratios: Optional[Iterable[models.StaffRatio]]) -> list[str]:
    return sorted({ratio.value for ratio in ratios or []})


def _override_values(overrides) -> Optional[dict[str, str]]:
    if overrides is None:
        return None
    return {
        shift_type.value: str(quantize_currency(rate))
        for shift_type, rate in overrides.items()
    }


class BudgetService:
    """Operations over ``ndis_budgets`` outside of deductions."""

    @staticmethod
    def list_budgets(
        db: Session,
        tenant_id: int,
        *,
        include_inactive: bool = False,
        skip: int = 0,
        limit: int = 100,
    ) -> Tuple[Iterable[models.NdisBudget], int]:
        query = db.query(models.NdisBudget).filter(models.NdisBudget.tenant_id == tenant_id)
        if not include_inactive:
            query = query.filter(models.NdisBudget.is_active.is_(True))
        total = query.count()
        items = (
            query.order_by(models.NdisBudget.client_id.asc(), models.NdisBudget.id.asc())
            .offset(max(skip, 0))
            .limit(max(limit, 1))
            .all()
        )
        return items, total

    @staticmethod
    def get_budget(db: Session, tenant_id: int, budget_id: int) -> models.NdisBudget:
        budget = (
            db.query(models.NdisBudget)
            .filter(
                models.NdisBudget.id == budget_id,
                models.NdisBudget.tenant_id == tenant_id,
            )
            .first()
        )
        if budget is None:
            raise BudgetNotFound(budget_id=budget_id)
        return budget

    @staticmethod
    def get_client_budget(db: Session, tenant_id: int, client_id: int) -> models.NdisBudget:
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

    @classmethod
    def create_budget(
        cls, db: Session, tenant_id: int, data: schemas.NdisBudgetCreate
    ) -> models.NdisBudget:
        try:
            cls.get_client_budget(db, tenant_id, data.client_id)
        except BudgetNotFound:
            pass
        else:
            raise BudgetAlreadyExists(
                f"Client {data.client_id} already has an active budget"
            )

        sil_total = quantize_currency(data.sil_total)
        community_total = quantize_currency(data.community_access_total)
        capacity_total = quantize_currency(data.capacity_building_total)
        budget = models.NdisBudget(
            client_id=data.client_id,
            tenant_id=tenant_id,
            sil_total=sil_total,
            sil_remaining=sil_total,
            sil_allowed_ratios=_ratio_values(data.sil_allowed_ratios),
            community_access_total=community_total,
            community_access_remaining=community_total,
            community_access_allowed_ratios=_ratio_values(
                data.community_access_allowed_ratios
            ),
            capacity_building_total=capacity_total,
            capacity_building_remaining=capacity_total,
            capacity_building_allowed_ratios=_ratio_values(
                data.capacity_building_allowed_ratios
            ),
            price_overrides=_override_values(data.price_overrides),
            is_active=True,
        )
        db.add(budget)
        try:
            db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            raise BudgetServiceError("Budget could not be created") from exc
        db.refresh(budget)
        LOGGER.info("Created budget %s for client %s", budget.id, budget.client_id)
        return budget

    @classmethod
    def _ensure_no_other_active_budget(cls, db: Session, budget: models.NdisBudget) -> None:
        try:
            active = cls.get_client_budget(db, budget.tenant_id, budget.client_id)
        except BudgetNotFound:
            return
        if active.id != budget.id:
            raise BudgetAlreadyExists(
                f"Client {budget.client_id} already has an active budget ({active.id})"
            )

    @classmethod
    def update_budget(
        cls,
        db: Session,
        tenant_id: int,
        budget_id: int,
        data: schemas.NdisBudgetUpdate,
    ) -> models.NdisBudget:
        budget = cls.get_budget(db, tenant_id, budget_id)
        changes = data.model_dump(exclude_unset=True)
        if changes.get("is_active") and not budget.is_active:
            cls._ensure_no_other_active_budget(db, budget)

        if "price_overrides" in changes:
            budget.price_overrides = _override_values(data.price_overrides)
        for prefix in models.CATEGORY_COLUMN_PREFIX.values():
            key = f"{prefix}_allowed_ratios"
            if key in changes:
                setattr(budget, key, _ratio_values(getattr(data, key)))
        if "is_active" in changes and data.is_active is not None:
            budget.is_active = data.is_active

        try:
            db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            raise BudgetServiceError("Budget could not be updated") from exc
        db.refresh(budget)
        return budget

    @staticmethod
    def list_transactions(
        db: Session,
        tenant_id: int,
        *,
        budget_id: Optional[int] = None,
        category: Optional[models.FundingCategory] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> Tuple[Iterable[models.BudgetTransaction], int]:
        query = (
            db.query(models.BudgetTransaction)
            .join(models.NdisBudget, models.NdisBudget.id == models.BudgetTransaction.budget_id)
            .filter(models.NdisBudget.tenant_id == tenant_id)
        )
        if budget_id is not None:
            query = query.filter(models.BudgetTransaction.budget_id == budget_id)
        if category:
            query = query.filter(models.BudgetTransaction.category == category)

        total = query.count()
        items = (
            query.order_by(
                models.BudgetTransaction.created_at.desc(),
                models.BudgetTransaction.id.desc(),
            )
            .offset(max(skip, 0))
            .limit(max(limit, 1))
            .all()
        )
        return items, total
