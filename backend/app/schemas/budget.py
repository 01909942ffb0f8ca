from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ..models.budget import FundingCategory
from ..models.pricing import ShiftType, StaffRatio
from .common import PaginatedResponse


class NdisBudgetCreate(BaseModel):
    """Enrol a client with opening totals for each funding category."""

    client_id: int = Field(..., ge=1)
    sil_total: Decimal = Field(default=Decimal("0"), ge=0)
    community_access_total: Decimal = Field(default=Decimal("0"), ge=0)
    capacity_building_total: Decimal = Field(default=Decimal("0"), ge=0)
    sil_allowed_ratios: list[StaffRatio] = Field(default_factory=list)
    community_access_allowed_ratios: list[StaffRatio] = Field(default_factory=list)
    capacity_building_allowed_ratios: list[StaffRatio] = Field(default_factory=list)
    price_overrides: Optional[dict[ShiftType, Decimal]] = Field(
        default=None, description="Client-specific hourly rates keyed by shift type"
    )

    @model_validator(mode="after")
    def _positive_overrides(self):
        for shift_type, rate in (self.price_overrides or {}).items():
            if rate <= 0:
                raise ValueError(f"Price override for {shift_type.value} must be positive")
        return self


class NdisBudgetUpdate(BaseModel):
    """Editable budget attributes. Balances are changed only by deductions."""

    sil_allowed_ratios: Optional[list[StaffRatio]] = None
    community_access_allowed_ratios: Optional[list[StaffRatio]] = None
    capacity_building_allowed_ratios: Optional[list[StaffRatio]] = None
    price_overrides: Optional[dict[ShiftType, Decimal]] = None
    is_active: Optional[bool] = None

    @model_validator(mode="after")
    def _positive_overrides(self):
        for shift_type, rate in (self.price_overrides or {}).items():
            if rate <= 0:
                raise ValueError(f"Price override for {shift_type.value} must be positive")
        return self


class NdisBudgetRead(BaseModel):
    id: int
    client_id: int
    tenant_id: int
    sil_total: Decimal
    sil_remaining: Decimal
    sil_allowed_ratios: list[str]
    community_access_total: Decimal
    community_access_remaining: Decimal
    community_access_allowed_ratios: list[str]
    capacity_building_total: Decimal
    capacity_building_remaining: Decimal
    capacity_building_allowed_ratios: list[str]
    price_overrides: Optional[dict[str, str]] = None
    is_active: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class NdisBudgetListResponse(PaginatedResponse[NdisBudgetRead]):
    """Paginated budget listing."""

    pass


class DeductionPreviewRequest(BaseModel):
    """A prospective shift window to price against a budget."""

    start_time: datetime
    end_time: datetime
    staff_ratio: StaffRatio = StaffRatio.ONE_TO_ONE
    funding_category: Optional[FundingCategory] = None


class DeductionPreview(BaseModel):
    budget_id: int
    shift_type: ShiftType
    ratio: StaffRatio
    category: FundingCategory
    category_inferred: bool
    rate: Decimal
    rate_source: str
    hours: Decimal
    multiplier: Decimal
    amount: Decimal
    available: Decimal
    sufficient_funds: bool
    ratio_allowed: bool
