"""Expected-cash aggregation over flat ledger rows.

``build_cash_closing_stats`` is a pure function: identical rows always give
identical stats. Every amount is rounded after each arithmetic step, unknown
methods fall back to cash and non-positive amounts are skipped on every side.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, fields
from decimal import Decimal
from typing import Protocol

from gym_cash_close.db.models.cash_movement import CashMovementType
from gym_cash_close.domain.ledger import LedgerEntry
from gym_cash_close.domain.money import ZERO, round_money
from gym_cash_close.domain.payment_methods import PaymentMethod, normalize_method
from gym_cash_close.domain.periods import DateRange


class LedgerRowsRepositoryProtocol(Protocol):
    """Ledger reads consumed by the stats service."""

    def list_payments(
        self, date_range: DateRange, *, actor_id: int | None = None
    ) -> list[LedgerEntry]: ...

    def list_refunds(
        self, date_range: DateRange, *, actor_id: int | None = None
    ) -> list[LedgerEntry]: ...

    def list_cash_movements(
        self, date_range: DateRange, *, actor_id: int | None = None
    ) -> list[LedgerEntry]: ...

    def list_trainer_payouts(
        self, date_range: DateRange, *, actor_id: int | None = None
    ) -> list[LedgerEntry]: ...

    def list_sales(
        self, date_range: DateRange, *, actor_id: int | None = None
    ) -> list[LedgerEntry]: ...


@dataclass(slots=True, frozen=True)
class CashClosingStats:
    """Per-method revenue, deductions and expected amounts for a range."""

    cash_revenue: Decimal
    card_revenue: Decimal
    transfer_revenue: Decimal
    revenue_total: Decimal
    cash_refunds: Decimal
    card_refunds: Decimal
    transfer_refunds: Decimal
    refunds_total: Decimal
    cash_in_total: Decimal
    cash_out_total: Decimal
    payouts_cash: Decimal
    payouts_card: Decimal
    payouts_transfer: Decimal
    payouts_total: Decimal
    expected_cash: Decimal
    expected_card: Decimal
    expected_transfer: Decimal
    expected_non_cash: Decimal
    expected_total: Decimal
    payments_count: int = 0
    sales_count: int = 0
    refunds_count: int = 0
    payouts_count: int = 0

    @classmethod
    def zero(cls) -> CashClosingStats:
        values = {
            item.name: 0 if item.type in (int, "int") else ZERO
            for item in fields(cls)
        }
        return cls(**values)


def _positive(entries: Iterable[LedgerEntry]) -> list[LedgerEntry]:
    return [entry for entry in entries if round_money(entry.amount) > ZERO]


def _sum_by_method(entries: Iterable[LedgerEntry]) -> dict[PaymentMethod, Decimal]:
    totals = {method: ZERO for method in PaymentMethod}
    for entry in entries:
        method = normalize_method(entry.method)
        totals[method] = round_money(totals[method] + round_money(entry.amount))
    return totals


def _sum(entries: Iterable[LedgerEntry]) -> Decimal:
    total = ZERO
    for entry in entries:
        total = round_money(total + round_money(entry.amount))
    return total


def build_cash_closing_stats(
    payments: Iterable[LedgerEntry],
    refunds: Iterable[LedgerEntry],
    sales: Iterable[LedgerEntry],
    cash_movements: Iterable[LedgerEntry],
    payouts: Iterable[LedgerEntry],
) -> CashClosingStats:
    """Compute expected drawer and non-cash amounts from raw ledger rows."""

    payment_rows = _positive(payments)
    sale_rows = _positive(sales)
    refund_rows = _positive(refunds)
    payout_rows = _positive(payouts)
    movement_rows = _positive(cash_movements)

    revenue = _sum_by_method([*payment_rows, *sale_rows])
    refunded = _sum_by_method(refund_rows)
    paid_out = _sum_by_method(payout_rows)

    cash_in_total = _sum(
        row for row in movement_rows if row.movement_type == CashMovementType.IN
    )
    cash_out_total = _sum(
        row for row in movement_rows if row.movement_type == CashMovementType.OUT
    )

    payouts_cash = round_money(paid_out[PaymentMethod.CASH] + cash_out_total)
    payouts_card = paid_out[PaymentMethod.CARD]
    payouts_transfer = paid_out[PaymentMethod.TRANSFER]

    expected_cash = round_money(
        round_money(
            round_money(revenue[PaymentMethod.CASH] + cash_in_total) - payouts_cash
        )
        - refunded[PaymentMethod.CASH]
    )
    expected_card = round_money(
        round_money(revenue[PaymentMethod.CARD] - payouts_card)
        - refunded[PaymentMethod.CARD]
    )
    expected_transfer = round_money(
        round_money(revenue[PaymentMethod.TRANSFER] - payouts_transfer)
        - refunded[PaymentMethod.TRANSFER]
    )
    expected_non_cash = round_money(expected_card + expected_transfer)

    return CashClosingStats(
        cash_revenue=revenue[PaymentMethod.CASH],
        card_revenue=revenue[PaymentMethod.CARD],
        transfer_revenue=revenue[PaymentMethod.TRANSFER],
        revenue_total=round_money(
            revenue[PaymentMethod.CASH]
            + revenue[PaymentMethod.CARD]
            + revenue[PaymentMethod.TRANSFER]
        ),
        cash_refunds=refunded[PaymentMethod.CASH],
        card_refunds=refunded[PaymentMethod.CARD],
        transfer_refunds=refunded[PaymentMethod.TRANSFER],
        refunds_total=_sum(refund_rows),
        cash_in_total=cash_in_total,
        cash_out_total=cash_out_total,
        payouts_cash=payouts_cash,
        payouts_card=payouts_card,
        payouts_transfer=payouts_transfer,
        payouts_total=round_money(payouts_cash + payouts_card + payouts_transfer),
        expected_cash=expected_cash,
        expected_card=expected_card,
        expected_transfer=expected_transfer,
        expected_non_cash=expected_non_cash,
        expected_total=round_money(expected_cash + expected_non_cash),
        payments_count=len(payment_rows),
        sales_count=len(sale_rows),
        refunds_count=len(refund_rows),
        payouts_count=len(payout_rows),
    )


class CashClosingStatsService:
    """Fetches ledger rows for a range and aggregates them."""

    def __init__(self, *, ledger_repository: LedgerRowsRepositoryProtocol) -> None:
        self._ledger_repository = ledger_repository

    def calculate(
        self,
        date_range: DateRange,
        actor_id: int | None = None,
    ) -> CashClosingStats:
        return build_cash_closing_stats(
            payments=self._ledger_repository.list_payments(
                date_range, actor_id=actor_id
            ),
            refunds=self._ledger_repository.list_refunds(
                date_range, actor_id=actor_id
            ),
            sales=self._ledger_repository.list_sales(date_range, actor_id=actor_id),
            cash_movements=self._ledger_repository.list_cash_movements(
                date_range, actor_id=actor_id
            ),
            payouts=self._ledger_repository.list_trainer_payouts(
                date_range, actor_id=actor_id
            ),
        )
