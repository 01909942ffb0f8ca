"""Replay missing budget deductions for completed shifts."""

from __future__ import annotations

import logging
import os
from collections import Counter
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from .. import models
from .ledger_errors import LedgerError
from .shift_billing import ShiftBillingService

LOGGER = logging.getLogger(__name__)

BACKFILL_USER_ID_ENV = "BUDGET_BACKFILL_USER_ID"
DEFAULT_BACKFILL_USER_ID = 1
BACKFILL_DESCRIPTION_PREFIX = "Backfill: Shift completion"


@dataclass
class TenantBackfillReport:
    """Outcome of reconciling one tenant's backlog."""

    tenant_id: int
    scanned: int = 0
    processed: int = 0
    amount: Decimal = Decimal("0.00")
    skipped: Counter = field(default_factory=Counter)
    transaction_ids: list[int] = field(default_factory=list)

    @property
    def skipped_total(self) -> int:
        return sum(self.skipped.values())


@dataclass
class BackfillReport:
    tenants: list[TenantBackfillReport] = field(default_factory=list)

    @property
    def processed(self) -> int:
        return sum(item.processed for item in self.tenants)

    @property
    def skipped(self) -> int:
        return sum(item.skipped_total for item in self.tenants)

    @property
    def amount(self) -> Decimal:
        return sum((item.amount for item in self.tenants), Decimal("0.00"))


def _backfill_user_id() -> int:
    raw = os.getenv(BACKFILL_USER_ID_ENV)
    if not raw:
        return DEFAULT_BACKFILL_USER_ID
    try:
        return int(raw)
    except ValueError:
        LOGGER.warning(
            "Invalid %s=%s; falling back to user %s",
            BACKFILL_USER_ID_ENV,
            raw,
            DEFAULT_BACKFILL_USER_ID,
        )
        return DEFAULT_BACKFILL_USER_ID


class BudgetBackfillService:
    """Finds completed shifts without a ledger row and bills them one by one.

    Shifts that already carry a transaction are excluded by the query, so a
    re-run only revisits shifts that failed before.
    """

    @staticmethod
    def unbilled_completed_shifts(db: Session, tenant_id: int) -> list[models.Shift]:
        return (
            db.query(models.Shift)
            .outerjoin(
                models.BudgetTransaction,
                models.BudgetTransaction.shift_id == models.Shift.id,
            )
            .filter(
                models.Shift.tenant_id == tenant_id,
                models.Shift.end_time.isnot(None),
                or_(
                    models.Shift.is_active.is_(False),
                    models.Shift.status == models.SHIFT_STATUS_COMPLETED,
                ),
                models.BudgetTransaction.id.is_(None),
            )
            .order_by(models.Shift.start_time.asc(), models.Shift.id.asc())
            .all()
        )

    @classmethod
    def backfill_tenant(
        cls, db: Session, tenant_id: int, *, fallback_user_id: Optional[int] = None
    ) -> TenantBackfillReport:
        report = TenantBackfillReport(tenant_id=tenant_id)
        user_id = fallback_user_id if fallback_user_id is not None else _backfill_user_id()

        shift_ids = [shift.id for shift in cls.unbilled_completed_shifts(db, tenant_id)]
        report.scanned = len(shift_ids)
        LOGGER.info("Found %s unbilled shifts for tenant %s", report.scanned, tenant_id)

        for shift_id in shift_ids:
            # Each deduction commits or rolls back on its own, which expires
            # loaded instances; reload the shift per iteration.
            shift = db.get(models.Shift, shift_id)
            if shift is None:
                continue
            try:
                result = ShiftBillingService.bill_shift(
                    db,
                    shift,
                    created_by_user_id=shift.user_id or user_id,
                    description_prefix=BACKFILL_DESCRIPTION_PREFIX,
                )
            except LedgerError as exc:
                report.skipped[exc.reason] += 1
                LOGGER.warning("Skipping shift %s: %s (%s)", shift_id, exc.reason, exc)
                continue

            report.processed += 1
            report.amount += Decimal(result.transaction.amount)
            report.transaction_ids.append(result.transaction.id)
            LOGGER.info(
                "Backfilled shift %s with transaction %s for %s",
                shift_id,
                result.transaction.id,
                result.transaction.amount,
            )

        return report

    @classmethod
    def run(
        cls,
        db: Session,
        *,
        tenant_ids: Optional[Iterable[int]] = None,
        fallback_user_id: Optional[int] = None,
    ) -> BackfillReport:
        """Reconcile every active tenant, or only ``tenant_ids`` when given."""

        query = db.query(models.Tenant.id).filter(models.Tenant.is_active.is_(True))
        if tenant_ids is not None:
            query = query.filter(models.Tenant.id.in_(list(tenant_ids)))
        ordered_ids = [row[0] for row in query.order_by(models.Tenant.id.asc()).all()]
        LOGGER.info("Starting budget backfill for %s tenants", len(ordered_ids))

        report = BackfillReport()
        for tenant_id in ordered_ids:
            tenant_report = cls.backfill_tenant(
                db, tenant_id, fallback_user_id=fallback_user_id
            )
            report.tenants.append(tenant_report)

        LOGGER.info(
            "Budget backfill finished: %s processed, %s skipped, %s deducted",
            report.processed,
            report.skipped,
            report.amount,
        )
        return report
