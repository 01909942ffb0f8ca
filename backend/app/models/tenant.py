"""Tenants that own budgets, pricing and shifts."""

from __future__ import annotations

from sqlalchemy import Boolean, Column, DateTime, Integer, String, func
from sqlalchemy.orm import relationship

from ..database import Base


class Tenant(Base):
    """A care provider organisation using the platform."""

    __tablename__ = "tenants"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(200), nullable=False)
    company_id = Column(String(64), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    budgets = relationship("NdisBudget", back_populates="tenant")
    pricing_entries = relationship("NdisPricing", back_populates="tenant")
    shifts = relationship("Shift", back_populates="tenant")
