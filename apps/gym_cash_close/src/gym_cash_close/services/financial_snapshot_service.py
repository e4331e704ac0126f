"""Composition of stats, session counts and commissions for a range."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from decimal import Decimal
from typing import Protocol, TypeVar

from gym_cash_close.domain.money import ZERO, format_money
from gym_cash_close.domain.periods import DateRange
from gym_cash_close.services.cash_closing_stats import (
    CashClosingStats,
    CashClosingStatsService,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SessionProtocol(Protocol):
    """Subset of SQLAlchemy session APIs used by this service."""

    def rollback(self) -> None: ...


class SessionMetricsRepositoryProtocol(Protocol):
    """Reads used for the KPI part of the snapshot."""

    def count_completed_sessions(self, date_range: DateRange) -> int: ...

    def sum_trainer_commissions(self, date_range: DateRange) -> Decimal: ...


@dataclass(slots=True, frozen=True)
class FinancialSnapshot:
    """Stats plus session and commission KPIs for one range."""

    stats: CashClosingStats
    total_sessions: int
    trainer_commissions: Decimal

    @classmethod
    def zero(cls) -> FinancialSnapshot:
        return cls(
            stats=CashClosingStats.zero(),
            total_sessions=0,
            trainer_commissions=ZERO,
        )

    def summary(self) -> dict[str, int | str]:
        """Return the preview KPI block with money rendered as strings."""

        return {
            "total_sessions": self.total_sessions,
            "total_revenue": format_money(self.stats.revenue_total),
            "cash_revenue": format_money(self.stats.cash_revenue),
            "card_revenue": format_money(self.stats.card_revenue),
            "transfer_revenue": format_money(self.stats.transfer_revenue),
            "trainer_commissions": format_money(self.trainer_commissions),
            "payouts_total": format_money(self.stats.payouts_total),
            "cash_in_total": format_money(self.stats.cash_in_total),
            "expected_cash": format_money(self.stats.expected_cash),
            "expected_non_cash": format_money(self.stats.expected_non_cash),
        }


class FinancialSnapshotService:
    """Builds a financial snapshot either strictly or best-effort.

    In strict mode (used by the close) any failure propagates. Otherwise each
    part is computed independently and a failing part is replaced with zero.
    A failed part rolls the session back before the next part runs.
    """

    def __init__(
        self,
        *,
        stats_service: CashClosingStatsService,
        metrics_repository: SessionMetricsRepositoryProtocol,
        session: SessionProtocol,
    ) -> None:
        self._stats_service = stats_service
        self._metrics_repository = metrics_repository
        self._session = session

    def calculate(
        self,
        date_range: DateRange,
        *,
        actor_id: int | None = None,
        strict: bool,
    ) -> FinancialSnapshot:
        stats = self._run(
            "stats",
            lambda: self._stats_service.calculate(date_range, actor_id=actor_id),
            CashClosingStats.zero(),
            strict=strict,
        )
        total_sessions = self._run(
            "sessions",
            lambda: self._metrics_repository.count_completed_sessions(date_range),
            0,
            strict=strict,
        )
        trainer_commissions = self._run(
            "commissions",
            lambda: self._metrics_repository.sum_trainer_commissions(date_range),
            ZERO,
            strict=strict,
        )
        return FinancialSnapshot(
            stats=stats,
            total_sessions=total_sessions,
            trainer_commissions=trainer_commissions,
        )

    def _run(
        self,
        part: str,
        compute: Callable[[], T],
        fallback: T,
        *,
        strict: bool,
    ) -> T:
        if strict:
            return compute()
        try:
            return compute()
        except Exception:
            self._session.rollback()
            logger.warning(
                "preview_degraded",
                extra={"part": part},
                exc_info=True,
            )
            return fallback
