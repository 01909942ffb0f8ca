"""Create the NDIS budget ledger tables.

Revision ID: 20261016_0001
Revises:
Create Date: 2026-10-16
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


revision = "20261016_0001"
down_revision = None
branch_labels = None
depends_on = None


BUDGET_CATEGORIES = ("sil", "community_access", "capacity_building")


def _timestamp(name: str, *, on_update: bool = False) -> sa.Column:
    return sa.Column(
        name,
        sa.DateTime(timezone=True),
        server_default=sa.func.now(),
        server_onupdate=sa.func.now() if on_update else None,
        nullable=False,
    )


def _category_columns(prefix: str) -> list[sa.Column]:
    return [
        sa.Column(f"{prefix}_total", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column(f"{prefix}_remaining", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column(f"{prefix}_allowed_ratios", sa.JSON(), nullable=False),
    ]


def _category_checks(prefix: str) -> list[sa.CheckConstraint]:
    return [
        sa.CheckConstraint(
            f"{prefix}_remaining >= 0",
            name=f"ck_ndis_budgets_{prefix}_remaining_non_negative",
        ),
        sa.CheckConstraint(
            f"{prefix}_remaining <= {prefix}_total",
            name=f"ck_ndis_budgets_{prefix}_remaining_within_total",
        ),
    ]


def upgrade() -> None:
    op.create_table(
        "tenants",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("company_id", sa.String(length=64), nullable=True),
        sa.Column(
            "is_active",
            sa.Boolean(create_constraint=False),
            nullable=False,
            server_default=sa.true(),
        ),
        _timestamp("created_at"),
    )

    op.create_table(
        "shifts",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "tenant_id",
            sa.Integer(),
            sa.ForeignKey("tenants.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("user_id", sa.Integer(), nullable=True),
        sa.Column("client_id", sa.Integer(), nullable=True),
        sa.Column("title", sa.String(length=200), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("start_time", sa.DateTime(), nullable=False),
        sa.Column("end_time", sa.DateTime(), nullable=True),
        sa.Column("status", sa.String(length=32), nullable=True, server_default="assigned"),
        sa.Column("funding_category", sa.String(length=32), nullable=True),
        sa.Column("staff_ratio", sa.String(length=8), nullable=True),
        sa.Column(
            "is_active",
            sa.Boolean(create_constraint=False),
            nullable=True,
            server_default=sa.true(),
        ),
        _timestamp("created_at"),
    )
    op.create_index("shifts_tenant_client_idx", "shifts", ["tenant_id", "client_id"])

    op.create_table(
        "ndis_pricing",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "tenant_id",
            sa.Integer(),
            sa.ForeignKey("tenants.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("shift_type", sa.String(length=16), nullable=False),
        sa.Column("ratio", sa.String(length=8), nullable=False),
        sa.Column("rate", sa.Numeric(10, 2), nullable=False),
        sa.Column(
            "is_active",
            sa.Boolean(create_constraint=False),
            nullable=False,
            server_default=sa.true(),
        ),
        _timestamp("created_at"),
        _timestamp("updated_at", on_update=True),
        sa.CheckConstraint("rate > 0", name="ck_ndis_pricing_rate_positive"),
        sa.UniqueConstraint(
            "tenant_id", "shift_type", "ratio", name="uq_ndis_pricing_tenant_type_ratio"
        ),
    )
    op.create_index("ndis_pricing_tenant_idx", "ndis_pricing", ["tenant_id"])

    budget_columns: list[sa.Column] = []
    budget_checks: list[sa.CheckConstraint] = []
    for prefix in BUDGET_CATEGORIES:
        budget_columns.extend(_category_columns(prefix))
        budget_checks.extend(_category_checks(prefix))

    op.create_table(
        "ndis_budgets",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("client_id", sa.Integer(), nullable=False),
        sa.Column(
            "tenant_id",
            sa.Integer(),
            sa.ForeignKey("tenants.id", ondelete="CASCADE"),
            nullable=False,
        ),
        *budget_columns,
        sa.Column("price_overrides", sa.JSON(), nullable=True),
        sa.Column(
            "is_active",
            sa.Boolean(create_constraint=False),
            nullable=False,
            server_default=sa.true(),
        ),
        _timestamp("created_at"),
        _timestamp("updated_at", on_update=True),
        *budget_checks,
    )
    op.create_index(
        "ndis_budgets_client_tenant_idx", "ndis_budgets", ["client_id", "tenant_id"]
    )

    op.create_table(
        "budget_transactions",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "budget_id",
            sa.Integer(),
            sa.ForeignKey("ndis_budgets.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column(
            "shift_id",
            sa.Integer(),
            sa.ForeignKey("shifts.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("case_note_id", sa.Integer(), nullable=True),
        sa.Column("company_id", sa.String(length=64), nullable=False),
        sa.Column("category", sa.String(length=32), nullable=False),
        sa.Column("shift_type", sa.String(length=16), nullable=False),
        sa.Column("ratio", sa.String(length=8), nullable=False),
        sa.Column("hours", sa.Numeric(5, 2), nullable=False),
        sa.Column("rate", sa.Numeric(10, 2), nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column(
            "transaction_type",
            sa.String(length=16),
            nullable=False,
            server_default="deduction",
        ),
        sa.Column("created_by_user_id", sa.Integer(), nullable=False),
        _timestamp("created_at"),
        sa.CheckConstraint("amount > 0", name="ck_budget_transactions_amount_positive"),
        sa.CheckConstraint("hours > 0", name="ck_budget_transactions_hours_positive"),
    )
    op.create_index(
        "budget_transactions_budget_idx", "budget_transactions", ["budget_id"]
    )
    op.create_index(
        "budget_transactions_shift_uidx",
        "budget_transactions",
        ["shift_id"],
        unique=True,
    )


def downgrade() -> None:
    op.drop_index("budget_transactions_shift_uidx", table_name="budget_transactions")
    op.drop_index("budget_transactions_budget_idx", table_name="budget_transactions")
    op.drop_table("budget_transactions")
    op.drop_index("ndis_budgets_client_tenant_idx", table_name="ndis_budgets")
    op.drop_table("ndis_budgets")
    op.drop_index("ndis_pricing_tenant_idx", table_name="ndis_pricing")
    op.drop_table("ndis_pricing")
    op.drop_index("shifts_tenant_client_idx", table_name="shifts")
    op.drop_table("shifts")
    op.drop_table("tenants")
