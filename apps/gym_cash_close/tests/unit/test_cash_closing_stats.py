from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal

from gym_cash_close.domain.ledger import LedgerEntry
from gym_cash_close.domain.periods import DateRange
from gym_cash_close.services.cash_closing_stats import (
    CashClosingStats,
    CashClosingStatsService,
    build_cash_closing_stats,
)

AT = datetime(2026, 3, 2, 10, 0, tzinfo=UTC)


def entry(
    entry_id: int,
    amount: str,
    method: str | None,
    movement_type: str | None = None,
) -> LedgerEntry:
    return LedgerEntry(
        id=entry_id,
        amount=Decimal(amount),
        method=method,
        occurred_at=AT,
        movement_type=movement_type,
    )


def reference_rows() -> dict[str, list[LedgerEntry]]:
    return {
        "payments": [entry(1, "100.00", "cash"), entry(2, "200.00", "Visa Credit")],
        "refunds": [entry(1, "10.00", "cash"), entry(2, "20.00", "Visa Credit")],
        "sales": [],
        "cash_movements": [
            entry(1, "50.00", "cash", "IN"),
            entry(2, "20.00", "cash", "OUT"),
        ],
        "payouts": [entry(1, "30.00", "CASH"), entry(2, "40.00", "TRANSFER")],
    }


def test_reference_scenario_expected_amounts() -> None:
    stats = build_cash_closing_stats(**reference_rows())

    assert stats.expected_cash == Decimal("90.00")
    assert stats.expected_card == Decimal("180.00")
    assert stats.expected_transfer == Decimal("-40.00")
    assert stats.expected_non_cash == Decimal("140.00")
    assert stats.expected_total == Decimal("230.00")
    assert stats.payouts_cash == Decimal("50.00")
    assert stats.payouts_total == Decimal("90.00")
    assert stats.cash_in_total == Decimal("50.00")
    assert stats.cash_out_total == Decimal("20.00")
    assert stats.revenue_total == Decimal("300.00")
    assert stats.refunds_total == Decimal("30.00")
    assert stats.payments_count == 2
    assert stats.refunds_count == 2
    assert stats.payouts_count == 2


def test_expected_total_equals_cash_plus_non_cash() -> None:
    stats = build_cash_closing_stats(**reference_rows())

    assert stats.expected_total == stats.expected_cash + stats.expected_non_cash
    assert stats.expected_non_cash == stats.expected_card + stats.expected_transfer


def test_no_rows_gives_zero_stats() -> None:
    stats = build_cash_closing_stats(
        payments=[],
        refunds=[],
        sales=[],
        cash_movements=[],
        payouts=[],
    )

    assert stats == CashClosingStats.zero()
    assert stats.expected_total == Decimal("0.00")


def test_non_positive_amounts_are_ignored_everywhere() -> None:
    stats = build_cash_closing_stats(
        payments=[entry(1, "0.00", "cash"), entry(2, "-15.00", "card")],
        refunds=[entry(1, "-5.00", "cash")],
        sales=[entry(1, "0", "cash")],
        cash_movements=[entry(1, "-50.00", "cash", "IN")],
        payouts=[entry(1, "0.00", "transfer")],
    )

    assert stats == CashClosingStats.zero()


def test_unknown_and_missing_methods_count_as_cash() -> None:
    stats = build_cash_closing_stats(
        payments=[entry(1, "12.50", None), entry(2, "7.50", "voucher")],
        refunds=[],
        sales=[entry(3, "5.00", "")],
        cash_movements=[],
        payouts=[],
    )

    assert stats.cash_revenue == Decimal("25.00")
    assert stats.expected_cash == Decimal("25.00")
    assert stats.sales_count == 1


def test_sales_count_as_revenue_by_method() -> None:
    stats = build_cash_closing_stats(
        payments=[],
        refunds=[],
        sales=[entry(1, "15.00", "Debit"), entry(2, "8.00", "cash")],
        cash_movements=[],
        payouts=[],
    )

    assert stats.card_revenue == Decimal("15.00")
    assert stats.cash_revenue == Decimal("8.00")
    assert stats.expected_total == Decimal("23.00")


def test_same_rows_give_same_stats() -> None:
    first = build_cash_closing_stats(**reference_rows())
    second = build_cash_closing_stats(**reference_rows())

    assert first == second


@dataclass
class FakeLedgerRepository:
    rows: dict[str, list[LedgerEntry]]
    calls: list[tuple[str, int | None]] = field(default_factory=list)

    def _rows(self, name: str, actor_id: int | None) -> list[LedgerEntry]:
        self.calls.append((name, actor_id))
        return self.rows[name]

    def list_payments(self, date_range, *, actor_id=None):
        return self._rows("payments", actor_id)

    def list_refunds(self, date_range, *, actor_id=None):
        return self._rows("refunds", actor_id)

    def list_sales(self, date_range, *, actor_id=None):
        return self._rows("sales", actor_id)

    def list_cash_movements(self, date_range, *, actor_id=None):
        return self._rows("cash_movements", actor_id)

    def list_trainer_payouts(self, date_range, *, actor_id=None):
        return self._rows("payouts", actor_id)


def test_service_forwards_actor_filter_to_every_read() -> None:
    repository = FakeLedgerRepository(rows=reference_rows())
    service = CashClosingStatsService(ledger_repository=repository)

    stats = service.calculate(DateRange(start_at=AT, end_at=AT), actor_id=7)

    assert stats.expected_cash == Decimal("90.00")
    assert {actor for _, actor in repository.calls} == {7}
    assert len(repository.calls) == 5
