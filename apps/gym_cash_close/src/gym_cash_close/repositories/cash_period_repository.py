"""Cash period persistence and lookup operations."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import Select, func, select, update
from sqlalchemy.orm import Session

from gym_cash_close.db.models.cash_period import (
    CashCloseAdjustment,
    CashPeriod,
    PeriodStatus,
    PeriodType,
)


@dataclass(frozen=True, slots=True)
class CashPeriodFilters:
    """Filters for the period listing endpoint."""

    status: PeriodStatus | None = None
    period_type: PeriodType | None = None
    closed_from: datetime | None = None
    closed_to: datetime | None = None


SUMMARY_COLUMNS = (
    "expected_cash_amount",
    "expected_non_cash_amount",
    "expected_total_amount",
    "actual_cash_amount",
    "actual_non_cash_amount",
    "actual_total_amount",
    "difference_cash",
    "difference_non_cash",
    "difference_total",
    "payouts_total",
    "cash_in_total",
)


class CashPeriodRepository:
    """Repository for cash periods and their adjustments."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def list_open_periods(self, *, for_update: bool = False) -> list[CashPeriod]:
        statement = (
            select(CashPeriod)
            .where(CashPeriod.status == PeriodStatus.OPEN)
            .order_by(CashPeriod.start_at, CashPeriod.id)
        )
        if for_update:
            statement = statement.with_for_update()
        return list(self._session.scalars(statement).all())

    def get_by_id(self, period_id: int) -> CashPeriod | None:
        return self._session.get(CashPeriod, period_id)

    def add(self, period: CashPeriod) -> CashPeriod:
        self._session.add(period)
        self._session.flush()
        return period

    def close_if_open(self, period_id: int, values: dict[str, Any]) -> int:
        """Apply close values only while the row is still OPEN.

        Returns the affected row count so callers can detect a lost race.
        """

        statement = (
            update(CashPeriod)
            .where(
                CashPeriod.id == period_id,
                CashPeriod.status == PeriodStatus.OPEN,
            )
            .values(status=PeriodStatus.CLOSED, **values)
            .execution_options(synchronize_session="evaluate")
        )
        result = self._session.execute(statement)
        return int(result.rowcount or 0)

    def list_periods(
        self,
        filters: CashPeriodFilters,
        *,
        limit: int,
        offset: int,
    ) -> tuple[list[CashPeriod], int]:
        statement = self._apply_filters(select(CashPeriod), filters)

        total_statement = select(func.count()).select_from(statement.subquery())
        total = int(self._session.scalar(total_statement) or 0)

        page_statement = (
            statement.order_by(
                CashPeriod.closed_at.desc().nulls_first(),
                CashPeriod.id.desc(),
            )
            .limit(limit)
            .offset(offset)
        )
        items = list(self._session.scalars(page_statement).all())
        return items, total

    def summarize(self, filters: CashPeriodFilters) -> dict[str, Decimal]:
        """Sum snapshot money columns over every period matching filters."""

        filtered = self._apply_filters(select(CashPeriod), filters).subquery()
        statement = select(
            *(
                func.coalesce(func.sum(filtered.c[column]), Decimal("0.00"))
                for column in SUMMARY_COLUMNS
            )
        )
        row = self._session.execute(statement).one()
        return {
            column: Decimal(value or Decimal("0"))
            for column, value in zip(SUMMARY_COLUMNS, row, strict=True)
        }

    def list_adjustments(self, period_id: int) -> list[CashCloseAdjustment]:
        statement = (
            select(CashCloseAdjustment)
            .where(CashCloseAdjustment.period_id == period_id)
            .order_by(CashCloseAdjustment.created_at, CashCloseAdjustment.id)
        )
        return list(self._session.scalars(statement).all())

    def add_adjustment(self, adjustment: CashCloseAdjustment) -> CashCloseAdjustment:
        self._session.add(adjustment)
        self._session.flush()
        return adjustment

    @staticmethod
    def _apply_filters(
        statement: Select[tuple[CashPeriod]],
        filters: CashPeriodFilters,
    ) -> Select[tuple[CashPeriod]]:
        if filters.status is not None:
            statement = statement.where(CashPeriod.status == filters.status)
        if filters.period_type is not None:
            statement = statement.where(CashPeriod.period_type == filters.period_type)
        if filters.closed_from is not None:
            statement = statement.where(CashPeriod.closed_at >= filters.closed_from)
        if filters.closed_to is not None:
            statement = statement.where(CashPeriod.closed_at <= filters.closed_to)
        return statement
