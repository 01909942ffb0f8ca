"""Per-client NDIS funding budgets."""

from __future__ import annotations

import enum
from decimal import Decimal

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    func,
)
from sqlalchemy.dialects.sqlite import JSON as SQLiteJSON
from sqlalchemy.orm import relationship

from ..database import Base


class FundingCategory(str, enum.Enum):
    """Budget pools a shift can be charged against."""

    SIL = "SIL"
    COMMUNITY_ACCESS = "CommunityAccess"
    CAPACITY_BUILDING = "CapacityBuilding"


# Column prefix holding each category's balances on ``ndis_budgets``.
CATEGORY_COLUMN_PREFIX = {
    FundingCategory.SIL: "sil",
    FundingCategory.COMMUNITY_ACCESS: "community_access",
    FundingCategory.CAPACITY_BUILDING: "capacity_building",
}


def _balance_checks(prefix: str) -> tuple[CheckConstraint, CheckConstraint]:
    return (
        CheckConstraint(
            f"{prefix}_remaining >= 0",
            name=f"ck_ndis_budgets_{prefix}_remaining_non_negative",
        ),
        CheckConstraint(
            f"{prefix}_remaining <= {prefix}_total",
            name=f"ck_ndis_budgets_{prefix}_remaining_within_total",
        ),
    )


def _json_column(**kwargs) -> Column:
    return Column(JSON().with_variant(SQLiteJSON(), "sqlite"), **kwargs)


class NdisBudget(Base):
    """Funding balances for one client within a tenant."""

    __tablename__ = "ndis_budgets"
    __table_args__ = (
        *_balance_checks("sil"),
        *_balance_checks("community_access"),
        *_balance_checks("capacity_building"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    client_id = Column(Integer, nullable=False)
    tenant_id = Column(
        Integer,
        ForeignKey("tenants.id", ondelete="CASCADE"),
        nullable=False,
    )
    sil_total = Column(Numeric(12, 2), nullable=False, default=0)
    sil_remaining = Column(Numeric(12, 2), nullable=False, default=0)
    sil_allowed_ratios = _json_column(nullable=False, default=list)
    community_access_total = Column(Numeric(12, 2), nullable=False, default=0)
    community_access_remaining = Column(Numeric(12, 2), nullable=False, default=0)
    community_access_allowed_ratios = _json_column(nullable=False, default=list)
    capacity_building_total = Column(Numeric(12, 2), nullable=False, default=0)
    capacity_building_remaining = Column(Numeric(12, 2), nullable=False, default=0)
    capacity_building_allowed_ratios = _json_column(nullable=False, default=list)
    price_overrides = _json_column(nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    tenant = relationship("Tenant", back_populates="budgets")
    transactions = relationship(
        "BudgetTransaction",
        back_populates="budget",
        order_by="BudgetTransaction.id",
    )

    @staticmethod
    def remaining_column(category: FundingCategory):
        return getattr(NdisBudget, f"{CATEGORY_COLUMN_PREFIX[category]}_remaining")

    def total_for(self, category: FundingCategory) -> Decimal:
        return Decimal(getattr(self, f"{CATEGORY_COLUMN_PREFIX[category]}_total") or 0)

    def remaining_for(self, category: FundingCategory) -> Decimal:
        return Decimal(getattr(self, f"{CATEGORY_COLUMN_PREFIX[category]}_remaining") or 0)

    def allowed_ratios_for(self, category: FundingCategory) -> list[str]:
        return list(
            getattr(self, f"{CATEGORY_COLUMN_PREFIX[category]}_allowed_ratios") or []
        )


Index("ndis_budgets_client_tenant_idx", NdisBudget.client_id, NdisBudget.tenant_id)
