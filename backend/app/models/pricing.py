"""NDIS pricing catalogue and the closed vocabularies it is keyed by."""

from __future__ import annotations

import enum

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Enum as SAEnum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import relationship

from ..database import Base


class ShiftType(str, enum.Enum):
    """Shift classifications used to price support."""

    AM = "AM"
    PM = "PM"
    ACTIVE_NIGHT = "ActiveNight"
    SLEEPOVER = "Sleepover"


class StaffRatio(str, enum.Enum):
    """Staff-to-client ratios (``staff:clients``)."""

    ONE_TO_ONE = "1:1"
    ONE_TO_TWO = "1:2"
    ONE_TO_THREE = "1:3"
    ONE_TO_FOUR = "1:4"
    TWO_TO_ONE = "2:1"


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


SHIFT_TYPE_ENUM = SAEnum(
    ShiftType,
    name="ndis_shift_type_enum",
    values_callable=_enum_values,
    native_enum=False,
    validate_strings=True,
)

STAFF_RATIO_ENUM = SAEnum(
    StaffRatio,
    name="ndis_staff_ratio_enum",
    values_callable=_enum_values,
    native_enum=False,
    validate_strings=True,
)


class NdisPricing(Base):
    """Tenant hourly rate for a shift type and staff ratio."""

    __tablename__ = "ndis_pricing"
    __table_args__ = (
        CheckConstraint("rate > 0", name="ck_ndis_pricing_rate_positive"),
        UniqueConstraint(
            "tenant_id", "shift_type", "ratio", name="uq_ndis_pricing_tenant_type_ratio"
        ),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    tenant_id = Column(
        Integer,
        ForeignKey("tenants.id", ondelete="CASCADE"),
        nullable=False,
    )
    shift_type = Column(SHIFT_TYPE_ENUM, nullable=False)
    ratio = Column(STAFF_RATIO_ENUM, nullable=False)
    rate = Column(Numeric(10, 2), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    tenant = relationship("Tenant", back_populates="pricing_entries")


Index("ndis_pricing_tenant_idx", NdisPricing.tenant_id)
