from __future__ import annotations

from datetime import datetime, timedelta
from decimal import Decimal
import os
import sys
from pathlib import Path
from typing import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session, sessionmaker

# Ensure the project root (which exposes the ``backend`` package) is on ``sys.path``
PROJECT_ROOT = Path(__file__).resolve().parents[2]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

# The test engines are created per test; keep the app from migrating its default database.
os.environ.setdefault("RUN_MIGRATIONS_ON_STARTUP", "0")

from backend.app.database import Base, build_engine, build_session_factory, get_db
from backend.app.main import app
from backend.app import models
from backend.app.tenancy import TENANT_HEADER


@pytest.fixture
def engine(tmp_path):
    # A file database so that separate connections (threads) share state.
    test_engine = build_engine(f"sqlite:///{tmp_path / 'ledger.db'}")
    Base.metadata.create_all(bind=test_engine)
    yield test_engine
    test_engine.dispose()


@pytest.fixture
def session_factory(engine) -> sessionmaker:
    return build_session_factory(engine)


@pytest.fixture
def db_session(session_factory: sessionmaker) -> Generator[Session, None, None]:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(db_session: Session, seed_ledger: dict) -> Generator[TestClient, None, None]:
    def override_get_db() -> Generator[Session, None, None]:
        try:
            yield db_session
        finally:
            db_session.expire_all()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        test_client.headers.update({TENANT_HEADER: str(seed_ledger["tenant"].id)})
        yield test_client
    app.dependency_overrides.pop(get_db, None)


@pytest.fixture
def make_shift(db_session: Session, seed_ledger: dict):
    """Return a factory that stores a shift for the seeded tenant."""

    def _make_shift(
        *,
        start: datetime,
        hours: float,
        client_id: int = 7,
        status: str = models.SHIFT_STATUS_COMPLETED,
        user_id: int | None = 11,
        funding_category: str | None = None,
        staff_ratio: str | None = None,
        title: str | None = None,
    ) -> models.Shift:
        shift = models.Shift(
            tenant_id=seed_ledger["tenant"].id,
            client_id=client_id,
            user_id=user_id,
            title=title,
            start_time=start,
            end_time=start + timedelta(hours=hours),
            status=status,
            funding_category=funding_category,
            staff_ratio=staff_ratio,
        )
        db_session.add(shift)
        db_session.commit()
        db_session.refresh(shift)
        return shift

    return _make_shift


@pytest.fixture
def seed_ledger(db_session: Session) -> dict:
    tenant = models.Tenant(name="Harbour Support Services", company_id="harbour-care")
    db_session.add(tenant)
    db_session.flush()

    pricing = [
        models.NdisPricing(
            tenant_id=tenant.id,
            shift_type=models.ShiftType.AM,
            ratio=models.StaffRatio.ONE_TO_ONE,
            rate=Decimal("40.00"),
        ),
        models.NdisPricing(
            tenant_id=tenant.id,
            shift_type=models.ShiftType.AM,
            ratio=models.StaffRatio.ONE_TO_TWO,
            rate=Decimal("45.00"),
        ),
        models.NdisPricing(
            tenant_id=tenant.id,
            shift_type=models.ShiftType.PM,
            ratio=models.StaffRatio.ONE_TO_ONE,
            rate=Decimal("42.00"),
        ),
        models.NdisPricing(
            tenant_id=tenant.id,
            shift_type=models.ShiftType.ACTIVE_NIGHT,
            ratio=models.StaffRatio.ONE_TO_ONE,
            rate=Decimal("60.00"),
        ),
    ]
    db_session.add_all(pricing)

    budget = models.NdisBudget(
        client_id=7,
        tenant_id=tenant.id,
        sil_total=Decimal("1000.00"),
        sil_remaining=Decimal("1000.00"),
        sil_allowed_ratios=["1:1"],
        community_access_total=Decimal("500.00"),
        community_access_remaining=Decimal("500.00"),
        community_access_allowed_ratios=["1:1", "1:2"],
        capacity_building_total=Decimal("0.00"),
        capacity_building_remaining=Decimal("0.00"),
        capacity_building_allowed_ratios=[],
        price_overrides=None,
    )
    db_session.add(budget)
    db_session.commit()
    db_session.refresh(tenant)
    db_session.refresh(budget)

    return {"tenant": tenant, "budget": budget, "pricing": pricing}
