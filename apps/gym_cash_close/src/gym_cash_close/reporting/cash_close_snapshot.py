"""Immutable close snapshot assembly.

The snapshot is the only source exports read from, so it carries both the
frozen totals and a row-level breakdown of every movement that fed them.
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any

from gym_cash_close.domain.ledger import LedgerEntry
from gym_cash_close.domain.money import ZERO, format_money, round_money
from gym_cash_close.domain.payment_methods import PaymentMethod, normalize_method
from gym_cash_close.domain.periods import DateRange, ensure_utc
from gym_cash_close.services.cash_closing_stats import CashClosingStats
from gym_cash_close.services.financial_snapshot_service import FinancialSnapshot

SUPPORTED_SNAPSHOT_VERSION = 1

BREAKDOWN_CATEGORIES = (
    "payments",
    "refunds",
    "cash_in",
    "cash_out",
    "payouts",
    "sales",
)
CATEGORIES_WITH_METHOD_SUMMARY = ("payments", "refunds", "payouts", "sales")


@dataclass(slots=True, frozen=True)
class CloseBreakdown:
    """Row-level ledger entries behind a close."""

    payments: Sequence[LedgerEntry] = field(default_factory=tuple)
    refunds: Sequence[LedgerEntry] = field(default_factory=tuple)
    cash_in: Sequence[LedgerEntry] = field(default_factory=tuple)
    cash_out: Sequence[LedgerEntry] = field(default_factory=tuple)
    payouts: Sequence[LedgerEntry] = field(default_factory=tuple)
    sales: Sequence[LedgerEntry] = field(default_factory=tuple)


@dataclass(slots=True, frozen=True)
class CloseAmounts:
    """Cash, non-cash and total triple used for actuals and differences."""

    cash: Decimal
    non_cash: Decimal
    total: Decimal


def compute_actuals(declared_cash: Decimal, declared_non_cash: Decimal) -> CloseAmounts:
    cash = round_money(declared_cash)
    non_cash = round_money(declared_non_cash)
    return CloseAmounts(cash=cash, non_cash=non_cash, total=round_money(cash + non_cash))


def compute_differences(actuals: CloseAmounts, stats: CashClosingStats) -> CloseAmounts:
    """Return declared minus expected for each bucket."""

    return CloseAmounts(
        cash=round_money(actuals.cash - stats.expected_cash),
        non_cash=round_money(actuals.non_cash - stats.expected_non_cash),
        total=round_money(actuals.total - stats.expected_total),
    )


def serialize_row(entry: LedgerEntry) -> dict[str, Any]:
    return {
        "id": entry.id,
        "occurred_at": ensure_utc(entry.occurred_at).isoformat(),
        "method": str(normalize_method(entry.method)),
        "raw_method": entry.method,
        "amount": format_money(round_money(entry.amount)),
        "note": entry.note,
    }


def _rows(entries: Iterable[LedgerEntry]) -> list[dict[str, Any]]:
    positive = [entry for entry in entries if round_money(entry.amount) > ZERO]
    positive.sort(key=lambda entry: (ensure_utc(entry.occurred_at), entry.id))
    return [serialize_row(entry) for entry in positive]


def _summary_by_method(rows: Iterable[dict[str, Any]]) -> dict[str, str]:
    totals = {str(method): ZERO for method in PaymentMethod}
    for row in rows:
        totals[row["method"]] = round_money(
            totals[row["method"]] + Decimal(row["amount"])
        )
    return {method: format_money(total) for method, total in totals.items()}


def build_breakdown_section(breakdown: CloseBreakdown, total_sessions: int) -> dict:
    section: dict[str, Any] = {}
    for category in BREAKDOWN_CATEGORIES:
        rows = _rows(getattr(breakdown, category))
        entry: dict[str, Any] = {"rows": rows}
        if category in CATEGORIES_WITH_METHOD_SUMMARY:
            entry["summary_by_method"] = _summary_by_method(rows)
        section[category] = entry
    section["sessions"] = {"total_sessions": total_sessions}
    return section


def build_totals(
    snapshot: FinancialSnapshot,
    actuals: CloseAmounts,
    differences: CloseAmounts,
) -> dict[str, Any]:
    stats = snapshot.stats
    return {
        "expected_cash_amount": format_money(stats.expected_cash),
        "expected_non_cash_amount": format_money(stats.expected_non_cash),
        "expected_card_amount": format_money(stats.expected_card),
        "expected_transfer_amount": format_money(stats.expected_transfer),
        "expected_total_amount": format_money(stats.expected_total),
        "actual_cash_amount": format_money(actuals.cash),
        "actual_non_cash_amount": format_money(actuals.non_cash),
        "actual_total_amount": format_money(actuals.total),
        "difference_cash": format_money(differences.cash),
        "difference_non_cash": format_money(differences.non_cash),
        "difference_total": format_money(differences.total),
        "revenue_total": format_money(stats.revenue_total),
        "sessions_total": snapshot.total_sessions,
        "payouts_total": format_money(stats.payouts_total),
        "cash_in_total": format_money(stats.cash_in_total),
        "cash_out_total": format_money(stats.cash_out_total),
        "cash_refunds_total": format_money(stats.cash_refunds),
        "refunds_total": format_money(stats.refunds_total),
        "trainer_commissions": format_money(snapshot.trainer_commissions),
        "cash_revenue": format_money(stats.cash_revenue),
        "card_revenue": format_money(stats.card_revenue),
        "transfer_revenue": format_money(stats.transfer_revenue),
    }


def build_close_snapshot(
    *,
    period_id: int,
    period_type: str,
    date_range: DateRange,
    snapshot: FinancialSnapshot,
    breakdown: CloseBreakdown,
    actuals: CloseAmounts,
    differences: CloseAmounts,
    version: int,
    generated_at: datetime,
) -> dict[str, Any]:
    """Assemble the versioned snapshot stored on a closed period."""

    return {
        "version": version,
        "generated_at": ensure_utc(generated_at).isoformat(),
        "period": {
            "id": period_id,
            "period_type": str(period_type),
            "start_at": date_range.start_at.isoformat(),
            "end_at": date_range.end_at.isoformat(),
        },
        "totals": build_totals(snapshot, actuals, differences),
        "breakdown": build_breakdown_section(breakdown, snapshot.total_sessions),
    }


def dump_snapshot(snapshot: dict[str, Any]) -> str:
    return json.dumps(snapshot, sort_keys=True, separators=(",", ":"))
