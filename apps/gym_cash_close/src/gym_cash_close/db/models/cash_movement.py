"""Manual cash drawer movement ORM model."""

from __future__ import annotations

import enum
from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, Enum, Index, Integer, Numeric, String, func
from sqlalchemy.orm import Mapped, mapped_column

from gym_cash_close.db.base import Base
from gym_cash_close.domain.periods import utc_now


class CashMovementType(enum.StrEnum):
    """Direction of a manual drawer movement."""

    IN = "IN"
    OUT = "OUT"


class CashMovement(Base):
    """Cash put into or taken out of the drawer outside of a sale."""

    __tablename__ = "cash_movements"
    __table_args__ = (Index("ix_cash_movements_created_at", "created_at"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    type: Mapped[CashMovementType] = mapped_column(
        Enum(
            CashMovementType,
            name="cash_movement_type",
            values_callable=lambda enum_cls: [member.value for member in enum_cls],
            validate_strings=True,
        ),
        nullable=False,
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    reason: Mapped[str | None] = mapped_column(String(120), nullable=True)
    notes: Mapped[str | None] = mapped_column(String(280), nullable=True)
    employee_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
        server_default=func.now(),
    )
