from __future__ import annotations

from datetime import datetime
from decimal import Decimal

import pytest
from sqlalchemy import func

from backend.app import models
from backend.app.database import session_scope
from backend.app.scripts import budget_backfill as backfill_cli
from backend.app.services.budget_backfill import BudgetBackfillService


@pytest.fixture
def backlog(make_shift) -> dict:
    return {
        "community": make_shift(
            start=datetime(2025, 3, 3, 9, 0), hours=3, title="Morning outing"
        ),
        "over_budget": make_shift(
            start=datetime(2025, 3, 3, 14, 0),
            hours=10,
            funding_category="CommunityAccess",
        ),
        "night": make_shift(
            start=datetime(2025, 3, 3, 22, 0),
            hours=8,
            funding_category="SIL",
            user_id=None,
        ),
        "no_rate": make_shift(start=datetime(2025, 3, 4, 20, 0), hours=10),
        "no_budget": make_shift(start=datetime(2025, 3, 5, 9, 0), hours=2, client_id=99),
        "bad_ratio": make_shift(start=datetime(2025, 3, 6, 9, 0), hours=2, staff_ratio="3:1"),
        "too_long": make_shift(start=datetime(2025, 3, 6, 14, 0), hours=25),
        "in_progress": make_shift(
            start=datetime(2025, 3, 7, 9, 0), hours=2, status="in_progress"
        ),
    }


def _transactions(db_session) -> list[models.BudgetTransaction]:
    return db_session.query(models.BudgetTransaction).order_by(models.BudgetTransaction.id).all()


def test_backfill_bills_completed_shifts_and_reports_skips(db_session, seed_ledger, backlog):
    tenant = seed_ledger["tenant"]

    report = BudgetBackfillService.backfill_tenant(db_session, tenant.id)

    assert report.scanned == 7
    assert report.processed == 2
    assert report.amount == Decimal("600.00")
    assert dict(report.skipped) == {
        "insufficient_funds": 1,
        "no_rate_configured": 1,
        "budget_not_found": 1,
        "invalid_shift_record": 1,
        "invalid_duration": 1,
    }

    db_session.expire_all()
    budget = db_session.get(models.NdisBudget, seed_ledger["budget"].id)
    assert budget.community_access_remaining == Decimal("380.00")
    assert budget.sil_remaining == Decimal("520.00")

    by_shift = {item.shift_id: item for item in _transactions(db_session)}
    assert set(by_shift) == {backlog["community"].id, backlog["night"].id}
    assert sorted(report.transaction_ids) == sorted(item.id for item in by_shift.values())


def test_charge_rounding_to_zero_is_skipped_without_stopping_the_run(
    db_session, seed_ledger, make_shift
):
    budget = seed_ledger["budget"]
    budget.price_overrides = {"AM": "1.00"}
    db_session.commit()
    make_shift(start=datetime(2025, 3, 3, 9, 0), hours=30 / 3600, staff_ratio="1:4")
    later = make_shift(start=datetime(2025, 3, 4, 9, 0), hours=2)

    report = BudgetBackfillService.backfill_tenant(db_session, seed_ledger["tenant"].id)

    assert report.scanned == 2
    assert report.processed == 1
    assert dict(report.skipped) == {"non_positive_amount": 1}
    assert report.amount == Decimal("2.00")
    assert [item.shift_id for item in _transactions(db_session)] == [later.id]


def test_backfill_records_how_the_category_was_chosen(db_session, seed_ledger, backlog):
    BudgetBackfillService.backfill_tenant(db_session, seed_ledger["tenant"].id)

    by_shift = {item.shift_id: item for item in _transactions(db_session)}
    inferred = by_shift[backlog["community"].id]
    explicit = by_shift[backlog["night"].id]

    assert inferred.category is models.FundingCategory.COMMUNITY_ACCESS
    assert inferred.description.startswith("Backfill: Shift completion: Morning outing")
    assert "CommunityAccess (inferred from shift type)" in inferred.description
    assert explicit.category is models.FundingCategory.SIL
    assert "SIL (explicit)" in explicit.description


def test_backfill_attributes_unassigned_shifts_to_fallback_user(
    db_session, seed_ledger, backlog
):
    by_default = BudgetBackfillService.backfill_tenant(db_session, seed_ledger["tenant"].id)
    assert by_default.processed == 2

    by_shift = {item.shift_id: item for item in _transactions(db_session)}
    assert by_shift[backlog["community"].id].created_by_user_id == 11
    assert by_shift[backlog["night"].id].created_by_user_id == 1
    assert by_shift[backlog["night"].id].company_id == "harbour-care"


def test_backfill_fallback_user_can_be_configured(db_session, seed_ledger, make_shift, monkeypatch):
    shift = make_shift(start=datetime(2025, 3, 3, 9, 0), hours=1, user_id=None)
    monkeypatch.setenv("BUDGET_BACKFILL_USER_ID", "42")

    BudgetBackfillService.backfill_tenant(db_session, seed_ledger["tenant"].id)

    transaction = (
        db_session.query(models.BudgetTransaction)
        .filter(models.BudgetTransaction.shift_id == shift.id)
        .one()
    )
    assert transaction.created_by_user_id == 42


def test_second_backfill_run_creates_no_new_rows(db_session, seed_ledger, backlog):
    tenant_id = seed_ledger["tenant"].id
    BudgetBackfillService.backfill_tenant(db_session, tenant_id)
    first_count = len(_transactions(db_session))

    again = BudgetBackfillService.backfill_tenant(db_session, tenant_id)

    assert again.scanned == 5
    assert again.processed == 0
    assert again.amount == Decimal("0.00")
    assert len(_transactions(db_session)) == first_count == 2


def test_unbilled_query_excludes_billed_and_open_shifts(db_session, seed_ledger, backlog):
    tenant_id = seed_ledger["tenant"].id
    BudgetBackfillService.backfill_tenant(db_session, tenant_id)

    pending = BudgetBackfillService.unbilled_completed_shifts(db_session, tenant_id)

    assert [shift.id for shift in pending] == [
        backlog["over_budget"].id,
        backlog["no_rate"].id,
        backlog["no_budget"].id,
        backlog["bad_ratio"].id,
        backlog["too_long"].id,
    ]


def test_inactive_shift_counts_as_completed(db_session, seed_ledger, make_shift):
    shift = make_shift(start=datetime(2025, 3, 3, 9, 0), hours=1, status="assigned")
    shift.is_active = False
    db_session.commit()

    pending = BudgetBackfillService.unbilled_completed_shifts(db_session, seed_ledger["tenant"].id)

    assert [item.id for item in pending] == [shift.id]


def test_run_walks_active_tenants_only(db_session, seed_ledger, backlog):
    retired = models.Tenant(name="Closed Provider", company_id="closed", is_active=False)
    db_session.add(retired)
    db_session.commit()

    report = BudgetBackfillService.run(db_session)

    assert [item.tenant_id for item in report.tenants] == [seed_ledger["tenant"].id]
    assert report.processed == 2
    assert report.skipped == 5
    assert report.amount == Decimal("600.00")


def test_cli_runs_backfill_for_selected_tenant(
    db_session, session_factory, seed_ledger, backlog, monkeypatch
):
    monkeypatch.setattr(backfill_cli, "session_scope", lambda: session_scope(session_factory))

    exit_code = backfill_cli.main(["--tenant-id", str(seed_ledger["tenant"].id)])

    assert exit_code == 0
    db_session.expire_all()
    assert db_session.query(func.count(models.BudgetTransaction.id)).scalar() == 2
