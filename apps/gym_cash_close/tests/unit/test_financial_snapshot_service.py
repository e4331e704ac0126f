from __future__ import annotations

from datetime import UTC, datetime
from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from gym_cash_close.domain.periods import DateRange
from gym_cash_close.services.cash_closing_stats import CashClosingStats
from gym_cash_close.services.financial_snapshot_service import (
    FinancialSnapshot,
    FinancialSnapshotService,
)

RANGE = DateRange(
    start_at=datetime(2026, 3, 2, 8, 0, tzinfo=UTC),
    end_at=datetime(2026, 3, 2, 20, 0, tzinfo=UTC),
)


def _broken_table() -> OperationalError:
    return OperationalError("SELECT 1", {}, Exception("no such table: payments"))


class FakeSession:
    """Mimics a transaction that refuses statements after a failure."""

    def __init__(self) -> None:
        self.aborted = False
        self.rollbacks = 0

    def rollback(self) -> None:
        self.aborted = False
        self.rollbacks += 1


class FakeStatsService:
    def __init__(self, *, fail: bool = False) -> None:
        self._fail = fail

    def calculate(self, date_range, actor_id=None) -> CashClosingStats:
        if self._fail:
            raise _broken_table()
        return CashClosingStats.zero()


class FakeMetricsRepository:
    def __init__(
        self,
        *,
        fail_sessions: bool = False,
        session: FakeSession | None = None,
    ) -> None:
        self._fail_sessions = fail_sessions
        self._session = session or FakeSession()

    def count_completed_sessions(self, date_range) -> int:
        if self._fail_sessions:
            self._session.aborted = True
            raise _broken_table()
        return 4

    def sum_trainer_commissions(self, date_range) -> Decimal:
        if self._session.aborted:
            raise OperationalError(
                "SELECT", {}, Exception("current transaction is aborted")
            )
        return Decimal("35.00")


def test_non_strict_mode_replaces_failing_parts_with_zero(
    caplog: pytest.LogCaptureFixture,
) -> None:
    session = FakeSession()
    service = FinancialSnapshotService(
        stats_service=FakeStatsService(fail=True),
        metrics_repository=FakeMetricsRepository(fail_sessions=True, session=session),
        session=session,
    )

    snapshot = service.calculate(RANGE, strict=False)

    assert snapshot.stats == CashClosingStats.zero()
    assert snapshot.total_sessions == 0
    assert snapshot.trainer_commissions == Decimal("35.00")
    assert [record.message for record in caplog.records].count(
        "preview_degraded"
    ) == 2
    assert session.rollbacks == 2


def test_strict_mode_propagates_failures() -> None:
    service = FinancialSnapshotService(
        stats_service=FakeStatsService(fail=True),
        metrics_repository=FakeMetricsRepository(),
        session=FakeSession(),
    )

    with pytest.raises(OperationalError):
        service.calculate(RANGE, strict=True)


def test_summary_renders_money_as_strings() -> None:
    snapshot = FinancialSnapshot(
        stats=CashClosingStats.zero(),
        total_sessions=3,
        trainer_commissions=Decimal("12.5"),
    )

    summary = snapshot.summary()

    assert summary["total_sessions"] == 3
    assert summary["trainer_commissions"] == "12.50"
    assert summary["expected_cash"] == "0.00"
    assert set(summary) == {
        "total_sessions",
        "total_revenue",
        "cash_revenue",
        "card_revenue",
        "transfer_revenue",
        "trainer_commissions",
        "payouts_total",
        "cash_in_total",
        "expected_cash",
        "expected_non_cash",
    }
