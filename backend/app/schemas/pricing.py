from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from ..models.pricing import ShiftType, StaffRatio
from .common import PaginatedResponse


class NdisPricingBase(BaseModel):
    """Shared attributes of a tenant pricing entry."""

    shift_type: ShiftType = Field(..., description="Shift classification being priced")
    ratio: StaffRatio = Field(..., description="Staff-to-client ratio")
    rate: Decimal = Field(..., gt=0, description="Hourly rate in AUD")
    is_active: bool = Field(default=True, description="Inactive entries are ignored")


class NdisPricingCreate(NdisPricingBase):
    pass


class NdisPricingRead(NdisPricingBase):
    id: int
    tenant_id: int
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class NdisPricingListResponse(PaginatedResponse[NdisPricingRead]):
    """Paginated pricing listing."""

    pass
