"""Cash period and post-close adjustment ORM models."""

from __future__ import annotations

import enum
from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    func,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from gym_cash_close.db.base import Base
from gym_cash_close.domain.periods import utc_now

SINGLE_OPEN_INDEX_NAME = "uq_cash_periods_single_open"


class PeriodType(enum.StrEnum):
    """Cadence label attached to a cash period."""

    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"
    MANUAL = "MANUAL"


class PeriodStatus(enum.StrEnum):
    """Lifecycle state of a cash period."""

    OPEN = "OPEN"
    CLOSED = "CLOSED"


class AdjustmentType(enum.StrEnum):
    """Sign of a post-close adjustment."""

    ADD = "ADD"
    SUBTRACT = "SUBTRACT"


def _money_column() -> Mapped[Decimal | None]:
    return mapped_column(Numeric(12, 2), nullable=True)


class CashPeriod(Base):
    """Reconciliation window; snapshot columns are frozen once closed."""

    __tablename__ = "cash_periods"
    __table_args__ = (
        Index(
            SINGLE_OPEN_INDEX_NAME,
            "status",
            unique=True,
            postgresql_where=text("status = 'OPEN'"),
            sqlite_where=text("status = 'OPEN'"),
        ),
        Index("ix_cash_periods_closed_at", "closed_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    period_type: Mapped[PeriodType] = mapped_column(
        Enum(
            PeriodType,
            name="cash_period_type",
            values_callable=lambda enum_cls: [member.value for member in enum_cls],
            validate_strings=True,
        ),
        nullable=False,
        default=PeriodType.MANUAL,
    )
    status: Mapped[PeriodStatus] = mapped_column(
        Enum(
            PeriodStatus,
            name="cash_period_status",
            values_callable=lambda enum_cls: [member.value for member in enum_cls],
            validate_strings=True,
        ),
        nullable=False,
        default=PeriodStatus.OPEN,
    )
    start_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    closed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    created_by: Mapped[int | None] = mapped_column(Integer, nullable=True)
    closed_by: Mapped[int | None] = mapped_column(Integer, nullable=True)
    notes: Mapped[str | None] = mapped_column(String(500), nullable=True)

    expected_cash_amount: Mapped[Decimal | None] = _money_column()
    expected_non_cash_amount: Mapped[Decimal | None] = _money_column()
    expected_card_amount: Mapped[Decimal | None] = _money_column()
    expected_transfer_amount: Mapped[Decimal | None] = _money_column()
    expected_total_amount: Mapped[Decimal | None] = _money_column()
    actual_cash_amount: Mapped[Decimal | None] = _money_column()
    actual_non_cash_amount: Mapped[Decimal | None] = _money_column()
    actual_total_amount: Mapped[Decimal | None] = _money_column()
    difference_cash: Mapped[Decimal | None] = _money_column()
    difference_non_cash: Mapped[Decimal | None] = _money_column()
    difference_total: Mapped[Decimal | None] = _money_column()
    revenue_total: Mapped[Decimal | None] = _money_column()
    sessions_total: Mapped[int | None] = mapped_column(Integer, nullable=True)
    payouts_total: Mapped[Decimal | None] = _money_column()
    cash_in_total: Mapped[Decimal | None] = _money_column()
    cash_refunds_total: Mapped[Decimal | None] = _money_column()
    cash_revenue: Mapped[Decimal | None] = _money_column()
    card_revenue: Mapped[Decimal | None] = _money_column()
    transfer_revenue: Mapped[Decimal | None] = _money_column()
    export_version: Mapped[int | None] = mapped_column(Integer, nullable=True)
    snapshot_json: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
        server_default=func.now(),
    )

    adjustments: Mapped[list[CashCloseAdjustment]] = relationship(
        back_populates="period",
        order_by="CashCloseAdjustment.id",
    )


class CashCloseAdjustment(Base):
    """Manual correction recorded against a closed period."""

    __tablename__ = "cash_close_adjustments"
    __table_args__ = (
        CheckConstraint(
            "amount > 0",
            name="ck_cash_close_adjustments_amount_positive",
        ),
        Index("ix_cash_close_adjustments_period_id", "period_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    period_id: Mapped[int] = mapped_column(
        ForeignKey("cash_periods.id"),
        nullable=False,
    )
    type: Mapped[AdjustmentType] = mapped_column(
        Enum(
            AdjustmentType,
            name="cash_close_adjustment_type",
            values_callable=lambda enum_cls: [member.value for member in enum_cls],
            validate_strings=True,
        ),
        nullable=False,
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    reason: Mapped[str] = mapped_column(String(280), nullable=False)
    created_by: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
        server_default=func.now(),
    )

    period: Mapped[CashPeriod] = relationship(back_populates="adjustments")
