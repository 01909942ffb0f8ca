"""Billable amount calculation for a shift."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from .. import models
from .ledger_errors import InvalidDuration, NonPositiveAmount

CENTS = Decimal("0.01")
SECONDS_PER_HOUR = Decimal("3600")
MAX_SHIFT_HOURS = Decimal("24")

RATIO_MULTIPLIERS: dict[models.StaffRatio, Decimal] = {
    models.StaffRatio.ONE_TO_ONE: Decimal("1.00"),
    models.StaffRatio.ONE_TO_TWO: Decimal("0.60"),
    models.StaffRatio.ONE_TO_THREE: Decimal("0.40"),
    models.StaffRatio.ONE_TO_FOUR: Decimal("0.30"),
    models.StaffRatio.TWO_TO_ONE: Decimal("2.00"),
}


@dataclass(frozen=True)
class CategoryDecision:
    """Funding category for a shift and whether it had to be inferred."""

    category: models.FundingCategory
    inferred: bool

    def describe(self) -> str:
        origin = "inferred from shift type" if self.inferred else "explicit"
        return f"{self.category.value} ({origin})"


@dataclass(frozen=True)
class ShiftCost:
    hours: Decimal
    rate: Decimal
    multiplier: Decimal
    amount: Decimal


def quantize_currency(value: Decimal) -> Decimal:
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


class ShiftCostCalculator:
    """Price a shift from its scheduled window, rate and staff ratio."""

    @staticmethod
    def duration_hours(start_time: datetime, end_time: datetime) -> Decimal:
        delta = end_time - start_time
        seconds = Decimal(delta.days * 86400 + delta.seconds) + (
            Decimal(delta.microseconds) / Decimal(1_000_000)
        )
        return seconds / SECONDS_PER_HOUR

    @staticmethod
    def multiplier_for(ratio: models.StaffRatio) -> Decimal:
        return RATIO_MULTIPLIERS[ratio]

    @classmethod
    def calculate(
        cls,
        start_time: datetime,
        end_time: datetime,
        rate: Decimal,
        ratio: models.StaffRatio,
    ) -> ShiftCost:
        """Charge the booking: scheduled hours, not clocked hours."""

        hours = cls.duration_hours(start_time, end_time)
        billed_hours = quantize_currency(hours)
        # Ledger rows store hours to the cent, so a window under 18 seconds is empty.
        if hours <= 0 or hours > MAX_SHIFT_HOURS or billed_hours <= 0:
            raise InvalidDuration(billed_hours)

        multiplier = cls.multiplier_for(ratio)
        amount = quantize_currency(Decimal(rate) * hours * multiplier)
        if amount <= 0:
            raise NonPositiveAmount(amount)
        return ShiftCost(
            hours=billed_hours,
            rate=quantize_currency(Decimal(rate)),
            multiplier=multiplier,
            amount=amount,
        )

    @staticmethod
    def decide_category(
        explicit: Optional[models.FundingCategory], shift_type: models.ShiftType
    ) -> CategoryDecision:
        if explicit is not None:
            return CategoryDecision(category=explicit, inferred=False)
        if shift_type in (models.ShiftType.AM, models.ShiftType.PM):
            return CategoryDecision(
                category=models.FundingCategory.COMMUNITY_ACCESS, inferred=True
            )
        return CategoryDecision(category=models.FundingCategory.SIL, inferred=True)
