"""Hourly rate resolution for shifts."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from sqlalchemy.orm import Session

from .. import models
from .ledger_errors import NoRateConfigured

LOGGER = logging.getLogger(__name__)

RATE_SOURCE_OVERRIDE = "override"
RATE_SOURCE_PRICING = "pricing"


@dataclass(frozen=True)
class ResolvedRate:
    """An hourly rate together with where it came from."""

    rate: Decimal
    source: str


def determine_shift_type(start_time: datetime) -> models.ShiftType:
    """Classify a shift by the hour its scheduled start falls in.

    06:00-13:59 AM, 14:00-19:59 PM, 20:00-21:59 Sleepover, otherwise
    ActiveNight.
    """

    hour = start_time.hour
    if 6 <= hour < 20:
        return models.ShiftType.AM if hour < 14 else models.ShiftType.PM
    if hour >= 22 or hour < 6:
        return models.ShiftType.ACTIVE_NIGHT
    return models.ShiftType.SLEEPOVER


def _parse_positive_rate(raw: Any) -> Optional[Decimal]:
    if raw is None or isinstance(raw, bool):
        return None
    try:
        value = Decimal(str(raw).strip())
    except (InvalidOperation, ValueError):
        return None
    if not value.is_finite() or value <= 0:
        return None
    return value


class RateResolver:
    """Resolve the effective hourly rate for a shift on a client's budget."""

    @staticmethod
    def override_rate(
        budget: models.NdisBudget, shift_type: models.ShiftType
    ) -> Optional[Decimal]:
        overrides = budget.price_overrides or {}
        if not isinstance(overrides, dict):
            return None
        raw = overrides.get(shift_type.value)
        rate = _parse_positive_rate(raw)
        if raw is not None and rate is None:
            LOGGER.warning(
                "Ignoring unusable %s price override %r on budget %s",
                shift_type.value,
                raw,
                budget.id,
            )
        return rate

    @staticmethod
    def pricing_rate(
        db: Session,
        tenant_id: int,
        shift_type: models.ShiftType,
        ratio: models.StaffRatio,
    ) -> Optional[Decimal]:
        entry = (
            db.query(models.NdisPricing)
            .filter(
                models.NdisPricing.tenant_id == tenant_id,
                models.NdisPricing.shift_type == shift_type,
                models.NdisPricing.ratio == ratio,
                models.NdisPricing.is_active.is_(True),
            )
            .first()
        )
        if entry is None:
            return None
        return _parse_positive_rate(entry.rate)

    @classmethod
    def resolve(
        cls,
        db: Session,
        budget: models.NdisBudget,
        shift_type: models.ShiftType,
        ratio: models.StaffRatio,
    ) -> ResolvedRate:
        """Return the budget override for ``shift_type`` or the tenant rate.

        Overrides are keyed by shift type only and apply to every ratio; the
        tenant table needs the exact (shift type, ratio) pair.
        """

        override = cls.override_rate(budget, shift_type)
        if override is not None:
            return ResolvedRate(rate=override, source=RATE_SOURCE_OVERRIDE)

        rate = cls.pricing_rate(db, budget.tenant_id, shift_type, ratio)
        if rate is not None:
            return ResolvedRate(rate=rate, source=RATE_SOURCE_PRICING)

        raise NoRateConfigured(shift_type, ratio, budget.tenant_id)
