from __future__ import annotations

from datetime import UTC, datetime, timedelta
from decimal import Decimal

import pytest
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from gym_cash_close.db.models.cash_period import (
    AdjustmentType,
    CashCloseAdjustment,
    CashPeriod,
    PeriodStatus,
    PeriodType,
)
from gym_cash_close.repositories.cash_period_repository import (
    CashPeriodFilters,
    CashPeriodRepository,
)

START = datetime(2026, 3, 2, 8, 0, tzinfo=UTC)


def _closed(start_at: datetime, closed_at: datetime, cash: str) -> CashPeriod:
    return CashPeriod(
        status=PeriodStatus.CLOSED,
        period_type=PeriodType.DAILY,
        start_at=start_at,
        end_at=closed_at,
        closed_at=closed_at,
        expected_cash_amount=Decimal(cash),
        actual_cash_amount=Decimal(cash),
        difference_cash=Decimal("0.00"),
    )


def test_single_open_index_rejects_second_open_period(
    sqlite_session_factory: sessionmaker[Session],
) -> None:
    with sqlite_session_factory() as session:
        repository = CashPeriodRepository(session)
        repository.add(CashPeriod(status=PeriodStatus.OPEN, start_at=START))
        session.commit()

        with pytest.raises(IntegrityError, match="cash_periods.status"):
            repository.add(
                CashPeriod(status=PeriodStatus.OPEN, start_at=START + timedelta(hours=1))
            )
        session.rollback()

        assert len(repository.list_open_periods()) == 1


def test_close_if_open_only_touches_open_rows(
    sqlite_session_factory: sessionmaker[Session],
) -> None:
    with sqlite_session_factory() as session:
        repository = CashPeriodRepository(session)
        period = repository.add(CashPeriod(status=PeriodStatus.OPEN, start_at=START))
        values = {"end_at": START + timedelta(hours=4), "notes": "first"}

        first = repository.close_if_open(period.id, values)
        second = repository.close_if_open(period.id, {"notes": "second"})
        session.commit()

        assert first == 1
        assert second == 0
        session.expire_all()
        stored = repository.get_by_id(period.id)
        assert stored is not None
        assert stored.status == PeriodStatus.CLOSED
        assert stored.notes == "first"


def test_list_periods_orders_and_filters(
    sqlite_session_factory: sessionmaker[Session],
) -> None:
    with sqlite_session_factory() as session:
        repository = CashPeriodRepository(session)
        older = repository.add(_closed(START, START + timedelta(hours=2), "10.00"))
        newer = repository.add(
            _closed(START + timedelta(days=1), START + timedelta(days=1, hours=2), "5.00")
        )
        current = repository.add(
            CashPeriod(status=PeriodStatus.OPEN, start_at=START + timedelta(days=2))
        )
        session.commit()

        items, total = repository.list_periods(CashPeriodFilters(), limit=10, offset=0)
        closed_items, closed_total = repository.list_periods(
            CashPeriodFilters(
                status=PeriodStatus.CLOSED,
                closed_from=START + timedelta(hours=12),
            ),
            limit=10,
            offset=0,
        )

        assert total == 3
        assert [item.id for item in items] == [current.id, newer.id, older.id]
        assert closed_total == 1
        assert [item.id for item in closed_items] == [newer.id]


def test_summarize_sums_matching_periods(
    sqlite_session_factory: sessionmaker[Session],
) -> None:
    with sqlite_session_factory() as session:
        repository = CashPeriodRepository(session)
        repository.add(_closed(START, START + timedelta(hours=2), "10.00"))
        repository.add(
            _closed(START + timedelta(days=1), START + timedelta(days=1, hours=2), "5.50")
        )
        session.commit()

        summary = repository.summarize(CashPeriodFilters(status=PeriodStatus.CLOSED))
        empty = repository.summarize(CashPeriodFilters(status=PeriodStatus.OPEN))

        assert summary["expected_cash_amount"] == Decimal("15.50")
        assert summary["actual_cash_amount"] == Decimal("15.50")
        assert empty["expected_cash_amount"] == Decimal("0")


def test_adjustments_are_listed_in_creation_order(
    sqlite_session_factory: sessionmaker[Session],
) -> None:
    with sqlite_session_factory() as session:
        repository = CashPeriodRepository(session)
        period = repository.add(_closed(START, START + timedelta(hours=2), "10.00"))
        for kind, amount in ((AdjustmentType.ADD, "3.00"), (AdjustmentType.SUBTRACT, "1.00")):
            repository.add_adjustment(
                CashCloseAdjustment(
                    period_id=period.id,
                    type=kind,
                    amount=Decimal(amount),
                    reason="recount",
                )
            )
        session.commit()

        adjustments = repository.list_adjustments(period.id)

        assert [item.type for item in adjustments] == [
            AdjustmentType.ADD,
            AdjustmentType.SUBTRACT,
        ]
