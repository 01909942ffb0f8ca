from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from backend.app import models
from backend.app.tenancy import TENANT_HEADER


def _decimal(value) -> Decimal:
    return Decimal(str(value))


def test_requests_without_tenant_header_are_rejected(client):
    missing = client.get("/ndis-budgets", headers={TENANT_HEADER: ""})
    malformed = client.get("/ndis-budgets", headers={TENANT_HEADER: "acme"})

    assert missing.status_code == 400
    assert missing.json()["detail"] == "X-Tenant-ID header is required"
    assert malformed.status_code == 400
    assert malformed.json()["detail"] == "X-Tenant-ID must be an integer"


def test_create_and_list_pricing(client):
    response = client.post(
        "/ndis-pricing",
        json={"shift_type": "Sleepover", "ratio": "1:1", "rate": "235.76"},
    )
    assert response.status_code == 201, response.text
    assert _decimal(response.json()["rate"]) == Decimal("235.76")

    duplicate = client.post(
        "/ndis-pricing",
        json={"shift_type": "Sleepover", "ratio": "1:1", "rate": "240"},
    )
    assert duplicate.status_code == 409

    listing = client.get("/ndis-pricing", params={"shift_type": "Sleepover"})
    assert listing.status_code == 200, listing.text
    payload = listing.json()
    assert payload["total"] == 1
    assert payload["items"][0]["ratio"] == "1:1"


def test_pricing_rejects_non_positive_rate(client):
    response = client.post(
        "/ndis-pricing",
        json={"shift_type": "AM", "ratio": "1:3", "rate": "0"},
    )

    assert response.status_code == 422


def test_create_budget_starts_with_remaining_equal_to_total(client):
    response = client.post(
        "/ndis-budgets",
        json={
            "client_id": 21,
            "sil_total": "1500",
            "community_access_total": "250.50",
            "sil_allowed_ratios": ["1:1", "2:1"],
            "price_overrides": {"AM": "50"},
        },
    )
    assert response.status_code == 201, response.text
    data = response.json()
    assert _decimal(data["sil_remaining"]) == Decimal("1500.00")
    assert _decimal(data["community_access_remaining"]) == Decimal("250.50")
    assert _decimal(data["capacity_building_remaining"]) == Decimal("0.00")
    assert data["sil_allowed_ratios"] == ["1:1", "2:1"]
    assert data["price_overrides"] == {"AM": "50.00"}

    duplicate = client.post("/ndis-budgets", json={"client_id": 21})
    assert duplicate.status_code == 409

    fetched = client.get("/ndis-budgets/client/21")
    assert fetched.status_code == 200, fetched.text
    assert fetched.json()["id"] == data["id"]


def test_unknown_client_budget_is_not_found(client):
    response = client.get("/ndis-budgets/client/404")

    assert response.status_code == 404
    assert response.json()["detail"]["reason"] == "budget_not_found"


def test_budget_is_invisible_to_other_tenants(client, db_session, seed_ledger):
    other = models.Tenant(name="Other Provider")
    db_session.add(other)
    db_session.commit()

    response = client.get(
        "/ndis-budgets/client/7", headers={TENANT_HEADER: str(other.id)}
    )

    assert response.status_code == 404


def test_update_budget_changes_overrides_and_deactivates(client, seed_ledger):
    budget_id = seed_ledger["budget"].id

    response = client.patch(
        f"/ndis-budgets/{budget_id}",
        json={"price_overrides": {"PM": "55.5"}, "community_access_allowed_ratios": ["1:3"]},
    )
    assert response.status_code == 200, response.text
    assert response.json()["price_overrides"] == {"PM": "55.50"}
    assert response.json()["community_access_allowed_ratios"] == ["1:3"]
    assert _decimal(response.json()["sil_remaining"]) == Decimal("1000.00")

    deactivated = client.patch(f"/ndis-budgets/{budget_id}", json={"is_active": False})
    assert deactivated.status_code == 200
    assert client.get("/ndis-budgets/client/7").status_code == 404
    assert client.get("/ndis-budgets").json()["total"] == 0
    assert client.get("/ndis-budgets", params={"include_inactive": True}).json()["total"] == 1


def test_reactivating_budget_conflicts_with_replacement(client, seed_ledger):
    old_id = seed_ledger["budget"].id
    assert client.patch(f"/ndis-budgets/{old_id}", json={"is_active": False}).status_code == 200
    replacement = client.post("/ndis-budgets", json={"client_id": 7, "sil_total": "300"})
    assert replacement.status_code == 201, replacement.text

    conflict = client.patch(f"/ndis-budgets/{old_id}", json={"is_active": True})

    assert conflict.status_code == 409
    current = client.get("/ndis-budgets/client/7").json()
    assert current["id"] == replacement.json()["id"]
    assert client.get("/ndis-budgets").json()["total"] == 1
    retired = client.patch(
        f"/ndis-budgets/{replacement.json()['id']}", json={"is_active": False}
    )
    assert retired.status_code == 200
    restored = client.patch(f"/ndis-budgets/{old_id}", json={"is_active": True})
    assert restored.status_code == 200, restored.text
    assert restored.json()["is_active"] is True


def test_preview_prices_window_without_writing(client, db_session, seed_ledger):
    budget_id = seed_ledger["budget"].id

    response = client.post(
        f"/ndis-budgets/{budget_id}/preview",
        json={
            "start_time": "2025-03-04T09:00:00",
            "end_time": "2025-03-04T12:30:00",
            "staff_ratio": "1:2",
        },
    )

    assert response.status_code == 200, response.text
    data = response.json()
    assert data["shift_type"] == "AM"
    assert data["category"] == "CommunityAccess"
    assert data["category_inferred"] is True
    assert data["rate_source"] == "pricing"
    assert _decimal(data["rate"]) == Decimal("45.00")
    assert _decimal(data["hours"]) == Decimal("3.50")
    assert _decimal(data["amount"]) == Decimal("94.50")
    assert _decimal(data["available"]) == Decimal("500.00")
    assert data["sufficient_funds"] is True
    assert data["ratio_allowed"] is True

    assert db_session.query(func.count(models.BudgetTransaction.id)).scalar() == 0


def test_preview_flags_disallowed_ratio_and_missing_rate(client, seed_ledger):
    budget_id = seed_ledger["budget"].id

    disallowed = client.post(
        f"/ndis-budgets/{budget_id}/preview",
        json={
            "start_time": "2025-03-04T09:00:00",
            "end_time": "2025-03-04T10:00:00",
            "staff_ratio": "1:2",
            "funding_category": "SIL",
        },
    )
    assert disallowed.status_code == 200, disallowed.text
    assert disallowed.json()["category_inferred"] is False
    assert disallowed.json()["ratio_allowed"] is False
    assert _decimal(disallowed.json()["amount"]) == Decimal("27.00")

    no_rate = client.post(
        f"/ndis-budgets/{budget_id}/preview",
        json={
            "start_time": "2025-03-04T09:00:00",
            "end_time": "2025-03-04T10:00:00",
            "staff_ratio": "1:4",
        },
    )
    assert no_rate.status_code == 422
    assert no_rate.json()["detail"]["reason"] == "no_rate_configured"

    too_long = client.post(
        f"/ndis-budgets/{budget_id}/preview",
        json={
            "start_time": "2025-03-04T09:00:00",
            "end_time": "2025-03-05T09:01:00",
        },
    )
    assert too_long.status_code == 422
    assert too_long.json()["detail"]["reason"] == "invalid_duration"


def test_direct_deduction_debits_budget(client, seed_ledger):
    budget_id = seed_ledger["budget"].id

    response = client.post(
        "/budget-transactions/deduct",
        json={
            "budget_id": budget_id,
            "category": "SIL",
            "amount": "200.00",
            "shift_type": "AM",
            "ratio": "1:1",
            "hours": "5",
            "rate": "40",
            "created_by_user_id": 3,
            "case_note_id": 77,
            "description": "Manual adjustment",
        },
    )

    assert response.status_code == 201, response.text
    data = response.json()
    assert _decimal(data["budget"]["sil_remaining"]) == Decimal("800.00")
    assert _decimal(data["transaction"]["amount"]) == Decimal("200.00")
    assert data["transaction"]["company_id"] == "harbour-care"
    assert data["transaction"]["case_note_id"] == 77
    assert data["transaction"]["transaction_type"] == "deduction"

    listing = client.get(f"/budget-transactions/{budget_id}")
    assert listing.status_code == 200
    assert listing.json()["total"] == 1


def test_direct_deduction_failures_map_to_http_errors(client, seed_ledger):
    payload = {
        "budget_id": seed_ledger["budget"].id,
        "category": "CommunityAccess",
        "amount": "600.00",
        "shift_type": "PM",
        "ratio": "1:1",
        "hours": "5",
        "rate": "120",
        "created_by_user_id": 3,
    }

    insufficient = client.post("/budget-transactions/deduct", json=payload)
    assert insufficient.status_code == 409
    assert insufficient.json()["detail"]["reason"] == "insufficient_funds"

    missing = client.post("/budget-transactions/deduct", json={**payload, "budget_id": 9999})
    assert missing.status_code == 404

    zero = client.post("/budget-transactions/deduct", json={**payload, "amount": "0"})
    assert zero.status_code == 422

    sub_cent = client.post("/budget-transactions/deduct", json={**payload, "amount": "0.001"})
    assert sub_cent.status_code == 422
    assert sub_cent.json()["detail"]["reason"] == "non_positive_amount"

    budget = client.get("/ndis-budgets/client/7").json()
    assert _decimal(budget["community_access_remaining"]) == Decimal("500.00")


def test_bill_completed_shift(client, make_shift):
    shift = make_shift(
        start=datetime(2025, 3, 4, 9, 0),
        hours=3.5,
        staff_ratio="1:2",
        title="Library visit",
    )

    response = client.post(f"/shifts/{shift.id}/bill", json={"created_by_user_id": 5})

    assert response.status_code == 201, response.text
    data = response.json()
    transaction = data["transaction"]
    assert transaction["shift_id"] == shift.id
    assert transaction["category"] == "CommunityAccess"
    assert transaction["created_by_user_id"] == 5
    assert _decimal(transaction["amount"]) == Decimal("94.50")
    assert "CommunityAccess (inferred from shift type)" in transaction["description"]
    assert _decimal(data["budget"]["community_access_remaining"]) == Decimal("405.50")

    again = client.post(f"/shifts/{shift.id}/bill")
    assert again.status_code == 409
    assert again.json()["detail"]["reason"] == "duplicate_shift_deduction"


def test_bill_shift_rejects_open_or_unknown_shifts(client, make_shift):
    open_shift = make_shift(start=datetime(2025, 3, 4, 9, 0), hours=2, status="in_progress")

    not_completed = client.post(f"/shifts/{open_shift.id}/bill")
    assert not_completed.status_code == 422
    assert not_completed.json()["detail"]["reason"] == "invalid_shift_record"

    unknown = client.post("/shifts/9999/bill")
    assert unknown.status_code == 404


def test_backfill_endpoint_reports_tenant_summary(client, make_shift):
    make_shift(start=datetime(2025, 3, 3, 9, 0), hours=3)
    make_shift(start=datetime(2025, 3, 3, 20, 0), hours=10)

    response = client.post("/budget/backfill")

    assert response.status_code == 200, response.text
    data = response.json()
    assert data["processed"] == 1
    assert data["skipped"] == 1
    assert _decimal(data["amount"]) == Decimal("120.00")
    assert data["tenants"][0]["skipped"] == {"no_rate_configured": 1}

    rerun = client.post("/budget/backfill")
    assert rerun.json()["processed"] == 0

    listing = client.get("/budget-transactions", params={"category": "CommunityAccess"})
    assert listing.json()["total"] == 1


def test_backfill_endpoint_hides_database_errors(client, monkeypatch):
    def fail_run(*_args, **_kwargs):
        raise SQLAlchemyError("boom")

    monkeypatch.setattr(
        "backend.app.services.budget_backfill.BudgetBackfillService.run",
        fail_run,
    )

    response = client.post("/budget/backfill")

    assert response.status_code == 500
    assert response.json()["detail"] == "Budget backfill could not be completed. Try again later."
