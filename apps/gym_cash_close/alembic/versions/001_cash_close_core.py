"""Create money source tables, cash periods and adjustments.

Revision ID: 001_cash_close_core
Revises:
Create Date: 2026-02-17
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001_cash_close_core"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


cash_movement_type_enum = sa.Enum("IN", "OUT", name="cash_movement_type")
cash_period_type_enum = sa.Enum(
    "DAILY", "WEEKLY", "MONTHLY", "MANUAL", name="cash_period_type"
)
cash_period_status_enum = sa.Enum("OPEN", "CLOSED", name="cash_period_status")
adjustment_type_enum = sa.Enum("ADD", "SUBTRACT", name="cash_close_adjustment_type")


def _created_at(name: str = "created_at") -> sa.Column:
    return sa.Column(
        name,
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=sa.func.now(),
    )


def _money(name: str, nullable: bool = True) -> sa.Column:
    return sa.Column(name, sa.Numeric(12, 2), nullable=nullable)


def upgrade() -> None:
    op.create_table(
        "payments",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        _money("amount", nullable=False),
        sa.Column("method", sa.String(length=40), nullable=True),
        sa.Column(
            "status",
            sa.String(length=30),
            nullable=False,
            server_default="completed",
        ),
        _created_at("paid_at"),
        sa.Column("created_by", sa.Integer(), nullable=True),
        sa.Column("member_name", sa.String(length=120), nullable=True),
        sa.Column("note", sa.String(length=280), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_payments_paid_at", "payments", ["paid_at"])

    op.create_table(
        "refunds",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("payment_id", sa.Integer(), nullable=False),
        _money("amount", nullable=False),
        sa.Column("reason", sa.String(length=280), nullable=True),
        sa.Column("created_by", sa.Integer(), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(["payment_id"], ["payments.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_refunds_created_at", "refunds", ["created_at"])

    op.create_table(
        "cash_movements",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("type", cash_movement_type_enum, nullable=False),
        _money("amount", nullable=False),
        sa.Column("reason", sa.String(length=120), nullable=True),
        sa.Column("notes", sa.String(length=280), nullable=True),
        sa.Column("employee_id", sa.Integer(), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_cash_movements_created_at", "cash_movements", ["created_at"])

    op.create_table(
        "sale_transactions",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("employee_id", sa.Integer(), nullable=True),
        sa.Column("payment_method", sa.String(length=40), nullable=True),
        _money("total_amount", nullable=False),
        sa.Column("notes", sa.String(length=280), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_sale_transactions_created_at", "sale_transactions", ["created_at"]
    )

    op.create_table(
        "sale_items",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("sale_id", sa.Integer(), nullable=False),
        sa.Column("product_id", sa.Integer(), nullable=True),
        sa.Column("product_name", sa.String(length=120), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        _money("line_total", nullable=False),
        sa.ForeignKeyConstraint(
            ["sale_id"], ["sale_transactions.id"], ondelete="CASCADE"
        ),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "trainer_payouts",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("trainer_id", sa.Integer(), nullable=False),
        _money("total_amount", nullable=False),
        sa.Column("method", sa.String(length=40), nullable=True),
        sa.Column("note", sa.String(length=280), nullable=True),
        _created_at("paid_at"),
        sa.Column("paid_by_employee_id", sa.Integer(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_trainer_payouts_paid_at", "trainer_payouts", ["paid_at"])

    op.create_table(
        "trainer_earnings",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("trainer_id", sa.Integer(), nullable=False),
        _money("commission_amount", nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "appointments",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column(
            "status",
            sa.String(length=30),
            nullable=False,
            server_default="scheduled",
        ),
        sa.Column(
            "is_completed",
            sa.Boolean(),
            nullable=False,
            server_default=sa.false(),
        ),
        _created_at("scheduled_at"),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("action", sa.String(length=60), nullable=False),
        sa.Column("entity_type", sa.String(length=60), nullable=False),
        sa.Column("entity_id", sa.String(length=60), nullable=True),
        sa.Column("performed_by", sa.Integer(), nullable=True),
        sa.Column("metadata_json", sa.Text(), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "cash_periods",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("period_type", cash_period_type_enum, nullable=False),
        sa.Column("status", cash_period_status_enum, nullable=False),
        sa.Column("start_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("closed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_by", sa.Integer(), nullable=True),
        sa.Column("closed_by", sa.Integer(), nullable=True),
        sa.Column("notes", sa.String(length=500), nullable=True),
        _money("expected_cash_amount"),
        _money("expected_non_cash_amount"),
        _money("expected_card_amount"),
        _money("expected_transfer_amount"),
        _money("expected_total_amount"),
        _money("actual_cash_amount"),
        _money("actual_non_cash_amount"),
        _money("actual_total_amount"),
        _money("difference_cash"),
        _money("difference_non_cash"),
        _money("difference_total"),
        _money("revenue_total"),
        sa.Column("sessions_total", sa.Integer(), nullable=True),
        _money("payouts_total"),
        _money("cash_in_total"),
        _money("cash_refunds_total"),
        _money("cash_revenue"),
        _money("card_revenue"),
        _money("transfer_revenue"),
        sa.Column("export_version", sa.Integer(), nullable=True),
        sa.Column("snapshot_json", sa.Text(), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "uq_cash_periods_single_open",
        "cash_periods",
        ["status"],
        unique=True,
        postgresql_where=sa.text("status = 'OPEN'"),
        sqlite_where=sa.text("status = 'OPEN'"),
    )
    op.create_index("ix_cash_periods_closed_at", "cash_periods", ["closed_at"])

    op.create_table(
        "cash_close_adjustments",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("period_id", sa.Integer(), nullable=False),
        sa.Column("type", adjustment_type_enum, nullable=False),
        _money("amount", nullable=False),
        sa.Column("reason", sa.String(length=280), nullable=False),
        sa.Column("created_by", sa.Integer(), nullable=True),
        _created_at(),
        sa.CheckConstraint(
            "amount > 0",
            name="ck_cash_close_adjustments_amount_positive",
        ),
        sa.ForeignKeyConstraint(["period_id"], ["cash_periods.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_cash_close_adjustments_period_id",
        "cash_close_adjustments",
        ["period_id"],
    )


def downgrade() -> None:
    op.drop_index(
        "ix_cash_close_adjustments_period_id",
        table_name="cash_close_adjustments",
    )
    op.drop_table("cash_close_adjustments")
    op.drop_index("ix_cash_periods_closed_at", table_name="cash_periods")
    op.drop_index("uq_cash_periods_single_open", table_name="cash_periods")
    op.drop_table("cash_periods")
    op.drop_table("audit_logs")
    op.drop_table("appointments")
    op.drop_table("trainer_earnings")
    op.drop_index("ix_trainer_payouts_paid_at", table_name="trainer_payouts")
    op.drop_table("trainer_payouts")
    op.drop_table("sale_items")
    op.drop_index("ix_sale_transactions_created_at", table_name="sale_transactions")
    op.drop_table("sale_transactions")
    op.drop_index("ix_cash_movements_created_at", table_name="cash_movements")
    op.drop_table("cash_movements")
    op.drop_index("ix_refunds_created_at", table_name="refunds")
    op.drop_table("refunds")
    op.drop_index("ix_payments_paid_at", table_name="payments")
    op.drop_table("payments")

    bind = op.get_bind()
    adjustment_type_enum.drop(bind, checkfirst=True)
    cash_period_status_enum.drop(bind, checkfirst=True)
    cash_period_type_enum.drop(bind, checkfirst=True)
    cash_movement_type_enum.drop(bind, checkfirst=True)
