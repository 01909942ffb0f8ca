"""Rostered shifts as seen by the budget ledger (read-only)."""

from __future__ import annotations

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.orm import relationship

from ..database import Base

SHIFT_STATUS_COMPLETED = "completed"


class Shift(Base):
    """A scheduled block of support delivered to a client.

    ``funding_category`` and ``staff_ratio`` are free text owned by the
    rostering screens; the ledger parses them into closed enums when billing.
    """

    __tablename__ = "shifts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    tenant_id = Column(
        Integer,
        ForeignKey("tenants.id", ondelete="CASCADE"),
        nullable=False,
    )
    user_id = Column(Integer, nullable=True)
    client_id = Column(Integer, nullable=True)
    title = Column(String(200), nullable=True)
    description = Column(Text, nullable=True)
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=True)
    status = Column(String(32), nullable=True, default="assigned")
    funding_category = Column(String(32), nullable=True)
    staff_ratio = Column(String(8), nullable=True)
    is_active = Column(Boolean, nullable=True, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    tenant = relationship("Tenant", back_populates="shifts")
    budget_transaction = relationship(
        "BudgetTransaction", back_populates="shift", uselist=False
    )

    @property
    def is_completed(self) -> bool:
        return self.status == SHIFT_STATUS_COMPLETED or self.is_active is False


Index("shifts_tenant_client_idx", Shift.tenant_id, Shift.client_id)
