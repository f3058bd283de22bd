"""checkout_core_schema

Revision ID: 0b1e7c4d2a90
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""
from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "0b1e7c4d2a90"
down_revision: str | None = None
branch_labels: Sequence[str] | None = None
depends_on: Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("email", sa.String(320), nullable=True),
        sa.Column("name", sa.Text(), nullable=True),
        sa.Column("password_hash", sa.String(128), nullable=True),
        sa.Column(
            "unlocked_features",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column("coins", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("purchased_bundle", sa.String(64), nullable=True),
        sa.Column("purchase_type", sa.String(32), nullable=True),
        sa.Column("payment_status", sa.String(16), nullable=True),
        sa.Column("subscription_plan", sa.String(32), nullable=True),
        sa.Column("is_dev_tester", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("entitlements_version", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.CheckConstraint("coins >= 0", name="ck_users_coins_non_negative"),
        sa.CheckConstraint(
            "payment_status IS NULL OR payment_status IN ('pending','paid')",
            name="ck_users_payment_status",
        ),
    )
    op.create_index("idx_users_created_at", "users", ["created_at"])
    op.create_index(
        "uq_users_email",
        "users",
        ["email"],
        unique=True,
        postgresql_where=sa.text("email IS NOT NULL"),
    )

    op.create_table(
        "payments",
        sa.Column("id", sa.String(96), primary_key=True),
        sa.Column("gateway", sa.String(16), nullable=False),
        sa.Column("gateway_txn_id", sa.String(96), nullable=False),
        sa.Column("gateway_payment_id", sa.String(96), nullable=True),
        sa.Column("purchase_type", sa.String(16), nullable=False),
        sa.Column("item_id", sa.String(64), nullable=False),
        sa.Column(
            "features",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
        ),
        sa.Column("coins", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("amount_minor", sa.Integer(), nullable=False),
        sa.Column("currency", sa.String(3), nullable=False, server_default=sa.text("'INR'")),
        sa.Column("status", sa.String(16), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=True),
        sa.Column("customer_email", sa.String(320), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("paid_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("gateway IN ('PAYU','RAZORPAY')", name="ck_payments_gateway"),
        sa.CheckConstraint(
            "purchase_type IN ('bundle','upsell','coins','report')",
            name="ck_payments_purchase_type",
        ),
        sa.CheckConstraint("status IN ('created','paid','failed')", name="ck_payments_status"),
        sa.CheckConstraint("amount_minor > 0", name="ck_payments_amount_positive"),
        sa.CheckConstraint("coins >= 0", name="ck_payments_coins_non_negative"),
        sa.UniqueConstraint("gateway_txn_id", name="uq_payments_gateway_txn_id"),
    )
    op.create_index("idx_payments_status_created", "payments", ["status", "created_at"])
    op.create_index("idx_payments_user", "payments", ["user_id"])
    op.create_index("idx_payments_paid_at", "payments", ["paid_at"])

    op.create_table(
        "ledger_entries",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("payment_id", sa.String(96), nullable=True),
        sa.Column("asset", sa.String(16), nullable=False),
        sa.Column("feature", sa.String(32), nullable=True),
        sa.Column("amount", sa.Integer(), nullable=False),
        sa.Column("balance_after", sa.Integer(), nullable=True),
        sa.Column("source", sa.String(16), nullable=False),
        sa.Column("idempotency_key", sa.String(160), nullable=False),
        sa.Column(
            "metadata",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("amount > 0", name="ck_ledger_entries_amount_positive"),
        sa.CheckConstraint("asset IN ('FEATURE','COINS')", name="ck_ledger_entries_asset"),
        sa.CheckConstraint(
            "source IN ('PAYMENT','PAYMENT_BONUS','PROMO','DEV_TESTER','ACCOUNT_MERGE')",
            name="ck_ledger_entries_source",
        ),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["payment_id"], ["payments.id"]),
        sa.UniqueConstraint("idempotency_key", name="uq_ledger_entries_idempotency_key"),
    )
    op.create_index("idx_ledger_user_created", "ledger_entries", ["user_id", "created_at"])
    op.create_index("idx_ledger_payment", "ledger_entries", ["payment_id"])

    op.create_table(
        "promo_codes",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("max_uses", sa.Integer(), nullable=True),
        sa.Column("used_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("last_used_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("discount", sa.Integer(), nullable=True),
        sa.Column("discount_type", sa.String(16), nullable=True),
        sa.Column("coins", sa.Integer(), nullable=True),
        sa.Column("plan", sa.String(32), nullable=True),
        sa.Column("unlock_all", sa.Boolean(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.CheckConstraint(
            "discount_type IS NULL OR discount_type IN ('percent','fixed')",
            name="ck_promo_codes_discount_type",
        ),
        sa.CheckConstraint("max_uses IS NULL OR max_uses >= 0", name="ck_promo_codes_max_uses"),
        sa.CheckConstraint("used_count >= 0", name="ck_promo_codes_used_count_non_negative"),
    )

    op.create_table(
        "settings",
        sa.Column("key", sa.String(64), primary_key=True),
        sa.Column("value", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
    )

    op.create_table(
        "ab_tests",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("status", sa.String(16), nullable=False),
        sa.Column("variants", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("last_reset_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("status IN ('active','paused','completed')", name="ck_ab_tests_status"),
    )

    op.create_table(
        "ab_test_assignments",
        sa.Column("id", sa.String(160), primary_key=True),
        sa.Column("test_id", sa.String(64), nullable=False),
        sa.Column("visitor_id", sa.String(96), nullable=False),
        sa.Column("variant", sa.String(16), nullable=False),
        sa.Column("assigned_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["test_id"], ["ab_tests.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("test_id", "visitor_id", name="uq_ab_test_assignments_test_visitor"),
    )
    op.create_index("idx_ab_test_assignments_test", "ab_test_assignments", ["test_id"])

    op.create_table(
        "ab_test_stats",
        sa.Column("id", sa.String(96), primary_key=True),
        sa.Column("test_id", sa.String(64), nullable=False),
        sa.Column("variant", sa.String(16), nullable=False),
        sa.Column("impressions", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("conversions", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("bounces", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("checkouts_started", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("total_revenue", sa.Numeric(14, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["test_id"], ["ab_tests.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("test_id", "variant", name="uq_ab_test_stats_test_variant"),
    )

    op.create_table(
        "ab_test_events",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("test_id", sa.String(64), nullable=False),
        sa.Column("variant", sa.String(16), nullable=False),
        sa.Column("event_type", sa.String(32), nullable=False),
        sa.Column("visitor_id", sa.String(96), nullable=True),
        sa.Column("user_id", sa.String(64), nullable=True),
        sa.Column(
            "metadata",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            "event_type IN ('impression','conversion','bounce','checkout_started')",
            name="ck_ab_test_events_type",
        ),
        sa.ForeignKeyConstraint(["test_id"], ["ab_tests.id"], ondelete="CASCADE"),
    )
    op.create_index("idx_ab_test_events_test_created", "ab_test_events", ["test_id", "created_at"])

    op.create_table(
        "admins",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("password_hash", sa.String(128), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
    )

    op.create_table(
        "admin_sessions",
        sa.Column("token_hash", sa.String(64), primary_key=True),
        sa.Column("admin_id", sa.String(64), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("idx_admin_sessions_expires_at", "admin_sessions", ["expires_at"])

    op.create_table(
        "reconciliation_runs",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("finished_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("status", sa.String(8), nullable=False),
        sa.Column("paid_payments_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("credited_payments_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("diff_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.CheckConstraint("status IN ('OK','DIFF')", name="ck_reconciliation_runs_status"),
    )


def downgrade() -> None:
    op.drop_table("reconciliation_runs")
    op.drop_index("idx_admin_sessions_expires_at", table_name="admin_sessions")
    op.drop_table("admin_sessions")
    op.drop_table("admins")
    op.drop_index("idx_ab_test_events_test_created", table_name="ab_test_events")
    op.drop_table("ab_test_events")
    op.drop_table("ab_test_stats")
    op.drop_index("idx_ab_test_assignments_test", table_name="ab_test_assignments")
    op.drop_table("ab_test_assignments")
    op.drop_table("ab_tests")
    op.drop_table("settings")
    op.drop_table("promo_codes")
    op.drop_index("idx_ledger_payment", table_name="ledger_entries")
    op.drop_index("idx_ledger_user_created", table_name="ledger_entries")
    op.drop_table("ledger_entries")
    op.drop_index("idx_payments_paid_at", table_name="payments")
    op.drop_index("idx_payments_user", table_name="payments")
    op.drop_index("idx_payments_status_created", table_name="payments")
    op.drop_table("payments")
    op.drop_index("uq_users_email", table_name="users")
    op.drop_index("idx_users_created_at", table_name="users")
    op.drop_table("users")
