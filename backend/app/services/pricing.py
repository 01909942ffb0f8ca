"""Tenant NDIS pricing catalogue operations."""

from __future__ import annotations

from typing import Iterable, Optional, Tuple

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from .. import models, schemas
from .shift_costs import quantize_currency


class PricingServiceError(RuntimeError):
    """Raised when a pricing entry cannot be stored."""


class DuplicatePricingEntry(PricingServiceError):
    """Raised when the tenant already prices the same shift type and ratio."""


class PricingService:
    """Read and create tenant pricing entries."""

    @staticmethod
    def list_pricing(
        db: Session,
        tenant_id: int,
        *,
        shift_type: Optional[models.ShiftType] = None,
        include_inactive: bool = False,
        skip: int = 0,
        limit: int = 100,
    ) -> Tuple[Iterable[models.NdisPricing], int]:
        query = db.query(models.NdisPricing).filter(models.NdisPricing.tenant_id == tenant_id)
        if shift_type:
            query = query.filter(models.NdisPricing.shift_type == shift_type)
        if not include_inactive:
            query = query.filter(models.NdisPricing.is_active.is_(True))

        total = query.count()
        items = (
            query.order_by(models.NdisPricing.shift_type.asc(), models.NdisPricing.ratio.asc())
            .offset(max(skip, 0))
            .limit(max(limit, 1))
            .all()
        )
        return items, total

    @staticmethod
    def create_pricing(
        db: Session, tenant_id: int, data: schemas.NdisPricingCreate
    ) -> models.NdisPricing:
        entry = models.NdisPricing(
            tenant_id=tenant_id,
            shift_type=data.shift_type,
            ratio=data.ratio,
            rate=quantize_currency(data.rate),
            is_active=data.is_active,
        )
        db.add(entry)
        try:
            db.commit()
        except IntegrityError as exc:
            db.rollback()
            raise DuplicatePricingEntry(
                f"Pricing for {data.shift_type.value} {data.ratio.value} already exists"
            ) from exc
        except SQLAlchemyError as exc:
            db.rollback()
            raise PricingServiceError("Pricing entry could not be saved") from exc
        db.refresh(entry)
        return entry
