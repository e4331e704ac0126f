"""Cash period lifecycle: open, close, history and adjustments.

A period moves ``OPEN -> CLOSED`` exactly once and the close inserts the
successor ``OPEN`` period in the same transaction. At most one period may be
open at any time; when storage already violates that, every lifecycle call
fails with ``OPEN_PERIOD_EXISTS`` instead of guessing which row to keep.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Protocol

from sqlalchemy.exc import IntegrityError

from gym_cash_close.db.models.cash_period import (
    AdjustmentType,
    CashCloseAdjustment,
    CashPeriod,
    PeriodStatus,
    PeriodType,
)
from gym_cash_close.domain.errors import (
    CloseEndBeforePeriodStartError,
    InvalidRequestError,
    OpenPeriodConflictError,
    PeriodNotClosedError,
    PeriodNotFoundError,
    compose_error_message,
)
from gym_cash_close.domain.ledger import LedgerEntry
from gym_cash_close.domain.money import ZERO, format_money, round_money
from gym_cash_close.domain.periods import DateRange, ensure_utc, utc_now
from gym_cash_close.reporting.cash_close_snapshot import (
    CloseBreakdown,
    build_close_snapshot,
    compute_actuals,
    compute_differences,
    dump_snapshot,
)
from gym_cash_close.repositories.cash_period_repository import CashPeriodFilters
from gym_cash_close.services.audit_service import CASH_PERIOD_ENTITY, AuditService
from gym_cash_close.services.financial_snapshot_service import (
    FinancialSnapshot,
    FinancialSnapshotService,
)

logger = logging.getLogger(__name__)

NEGATIVE_EXPECTED_CASH = "NEGATIVE_EXPECTED_CASH"
AUDIT_PERIOD_CLOSED = "CASH_PERIOD_CLOSED"
AUDIT_ADJUSTMENT_ADDED = "CASH_CLOSE_ADJUSTMENT"


class SessionProtocol(Protocol):
    """Subset of SQLAlchemy session APIs used by this service."""

    def commit(self) -> None: ...
    def rollback(self) -> None: ...
    def refresh(self, instance: object) -> None: ...


class CashPeriodRepositoryProtocol(Protocol):
    """Period repository contract consumed by service."""

    def list_open_periods(self, *, for_update: bool = False) -> list[CashPeriod]: ...

    def get_by_id(self, period_id: int) -> CashPeriod | None: ...

    def add(self, period: CashPeriod) -> CashPeriod: ...

    def close_if_open(self, period_id: int, values: dict[str, Any]) -> int: ...

    def list_periods(
        self,
        filters: CashPeriodFilters,
        *,
        limit: int,
        offset: int,
    ) -> tuple[list[CashPeriod], int]: ...

    def summarize(self, filters: CashPeriodFilters) -> dict[str, Decimal]: ...

    def list_adjustments(self, period_id: int) -> list[CashCloseAdjustment]: ...

    def add_adjustment(
        self, adjustment: CashCloseAdjustment
    ) -> CashCloseAdjustment: ...


class BreakdownRepositoryProtocol(Protocol):
    """Row-level reads used to freeze the close breakdown."""

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
class CloseCashPeriodInput:
    """Input model for closing the current period."""

    declared_cash_amount: Decimal
    declared_non_cash_amount: Decimal = ZERO
    end_at: datetime | None = None
    period_type: PeriodType | None = None
    notes: str | None = None
    actor_id: int | None = None


@dataclass(slots=True, frozen=True)
class CloseCashPeriodResult:
    """Closed period, its successor and an optional soft warning."""

    closed_period: CashPeriod
    new_open_period: CashPeriod
    warning_code: str | None = None


@dataclass(slots=True, frozen=True)
class CurrentPeriodOverview:
    """Open period with a best-effort live snapshot up to now."""

    period: CashPeriod
    date_range: DateRange
    snapshot: FinancialSnapshot


@dataclass(slots=True, frozen=True)
class PeriodPage:
    """One page of periods plus money totals over every matching period."""

    items: list[CashPeriod]
    total: int
    page: int
    limit: int
    summary: dict[str, Decimal] = field(default_factory=dict)


@dataclass(slots=True, frozen=True)
class PeriodDetail:
    """Period with adjustments and the balance they produce."""

    period: CashPeriod
    adjustments: list[CashCloseAdjustment]
    adjustment_total: Decimal
    final_cash_balance: Decimal


@dataclass(slots=True, frozen=True)
class AdjustmentInput:
    """Input model for a post-close adjustment."""

    type: AdjustmentType
    amount: Decimal
    reason: str
    actor_id: int | None = None


def signed_adjustment_total(adjustments: list[CashCloseAdjustment]) -> Decimal:
    total = ZERO
    for adjustment in adjustments:
        amount = round_money(adjustment.amount)
        if adjustment.type == AdjustmentType.SUBTRACT:
            amount = -amount
        total = round_money(total + amount)
    return total


class CashPeriodService:
    """Coordinates period state changes inside explicit transactions."""

    def __init__(
        self,
        *,
        period_repository: CashPeriodRepositoryProtocol,
        ledger_repository: BreakdownRepositoryProtocol,
        snapshot_service: FinancialSnapshotService,
        audit_service: AuditService,
        session: SessionProtocol,
        export_version: int = 1,
        successor_offset_seconds: int = 1,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._period_repository = period_repository
        self._ledger_repository = ledger_repository
        self._snapshot_service = snapshot_service
        self._audit_service = audit_service
        self._session = session
        self._export_version = export_version
        self._successor_offset = timedelta(seconds=successor_offset_seconds)
        self._clock = clock

    def ensure_open_period(self, actor_id: int | None = None) -> CashPeriod:
        """Return the single open period, creating it when none exists."""

        open_periods = self._period_repository.list_open_periods()
        if len(open_periods) == 1:
            return open_periods[0]
        if len(open_periods) > 1:
            raise self._duplicate_open_error(open_periods)

        period = CashPeriod(
            status=PeriodStatus.OPEN,
            period_type=PeriodType.MANUAL,
            start_at=ensure_utc(self._clock()),
            created_by=actor_id,
        )
        try:
            self._period_repository.add(period)
            self._session.commit()
        except IntegrityError:
            # another request created the open period first
            self._session.rollback()
            open_periods = self._period_repository.list_open_periods()
            if len(open_periods) == 1:
                return open_periods[0]
            raise self._duplicate_open_error(open_periods) from None
        except Exception:
            self._session.rollback()
            raise

        self._session.refresh(period)
        logger.info(
            "cash_period_opened",
            extra={"period_id": period.id, "actor_id": actor_id},
        )
        return period

    def current_overview(self, actor_id: int | None = None) -> CurrentPeriodOverview:
        """Open period plus a live preview that never fails on stats errors."""

        period = self.ensure_open_period(actor_id=actor_id)
        start_at = ensure_utc(period.start_at)
        end_at = max(ensure_utc(self._clock()), start_at)
        date_range = DateRange(start_at=start_at, end_at=end_at)
        snapshot = self._snapshot_service.calculate(date_range, strict=False)
        return CurrentPeriodOverview(
            period=period,
            date_range=date_range,
            snapshot=snapshot,
        )

    def resolve_preview_range(
        self,
        start_at: datetime | None,
        end_at: datetime | None,
        *,
        reorder: bool = False,
    ) -> DateRange:
        """Explicit range when both bounds are given, else the open period."""

        if (start_at is None) != (end_at is None):
            raise InvalidRequestError(
                message=compose_error_message(
                    cause="Only one of start_at and end_at was provided.",
                    action="Send both start_at and end_at, or neither.",
                )
            )
        if start_at is not None and end_at is not None:
            if reorder:
                return DateRange.ordered(start_at, end_at)
            return DateRange(start_at=start_at, end_at=end_at)

        now = ensure_utc(self._clock())
        try:
            period = self.ensure_open_period()
        except Exception:
            self._session.rollback()
            logger.warning(
                "preview_degraded",
                extra={"part": "open_period"},
                exc_info=True,
            )
            return DateRange(start_at=now, end_at=now)
        start = ensure_utc(period.start_at)
        return DateRange(start_at=start, end_at=max(now, start))

    def preview(
        self,
        date_range: DateRange,
        *,
        actor_id: int | None = None,
    ) -> FinancialSnapshot:
        return self._snapshot_service.calculate(
            date_range,
            actor_id=actor_id,
            strict=False,
        )

    def get_period(self, period_id: int) -> CashPeriod:
        return self._get_period(period_id)

    def close_period(self, payload: CloseCashPeriodInput) -> CloseCashPeriodResult:
        now = ensure_utc(self._clock())
        try:
            period = self._lock_open_period(payload, now)
            start_at = ensure_utc(period.start_at)
            end_at = ensure_utc(payload.end_at) if payload.end_at else now
            if end_at < start_at:
                raise CloseEndBeforePeriodStartError(
                    details={
                        "period_id": period.id,
                        "start_at": start_at.isoformat(),
                        "end_at": end_at.isoformat(),
                    }
                )

            date_range = DateRange(start_at=start_at, end_at=end_at)
            snapshot = self._snapshot_service.calculate(date_range, strict=True)
            breakdown = self._load_breakdown(date_range)
            actuals = compute_actuals(
                payload.declared_cash_amount,
                payload.declared_non_cash_amount,
            )
            differences = compute_differences(actuals, snapshot.stats)
            period_type = payload.period_type or period.period_type

            document = build_close_snapshot(
                period_id=period.id,
                period_type=period_type,
                date_range=date_range,
                snapshot=snapshot,
                breakdown=breakdown,
                actuals=actuals,
                differences=differences,
                version=self._export_version,
                generated_at=now,
            )
            stats = snapshot.stats
            values: dict[str, Any] = {
                "period_type": period_type,
                "end_at": end_at,
                "closed_at": now,
                "closed_by": payload.actor_id,
                "notes": payload.notes,
                "expected_cash_amount": stats.expected_cash,
                "expected_non_cash_amount": stats.expected_non_cash,
                "expected_card_amount": stats.expected_card,
                "expected_transfer_amount": stats.expected_transfer,
                "expected_total_amount": stats.expected_total,
                "actual_cash_amount": actuals.cash,
                "actual_non_cash_amount": actuals.non_cash,
                "actual_total_amount": actuals.total,
                "difference_cash": differences.cash,
                "difference_non_cash": differences.non_cash,
                "difference_total": differences.total,
                "revenue_total": stats.revenue_total,
                "sessions_total": snapshot.total_sessions,
                "payouts_total": stats.payouts_total,
                "cash_in_total": stats.cash_in_total,
                "cash_refunds_total": stats.cash_refunds,
                "cash_revenue": stats.cash_revenue,
                "card_revenue": stats.card_revenue,
                "transfer_revenue": stats.transfer_revenue,
                "export_version": self._export_version,
                "snapshot_json": dump_snapshot(document),
            }
            if self._period_repository.close_if_open(period.id, values) != 1:
                raise OpenPeriodConflictError(
                    message=compose_error_message(
                        cause="The open period was closed by a concurrent request.",
                        action="Reload the current period and retry.",
                    ),
                    details={"period_id": period.id, "retryable": True},
                )

            successor = self._period_repository.add(
                CashPeriod(
                    status=PeriodStatus.OPEN,
                    period_type=period_type,
                    start_at=end_at + self._successor_offset,
                    created_by=payload.actor_id,
                )
            )
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        self._session.refresh(period)
        self._session.refresh(successor)

        warning_code = None
        if stats.expected_cash < ZERO:
            warning_code = NEGATIVE_EXPECTED_CASH
            logger.warning(
                "negative_expected_cash",
                extra={
                    "period_id": period.id,
                    "expected_cash": format_money(stats.expected_cash),
                },
            )

        logger.info(
            "cash_period_closed",
            extra={
                "period_id": period.id,
                "successor_id": successor.id,
                "actor_id": payload.actor_id,
                "difference_total": format_money(differences.total),
            },
        )
        self._audit_service.record(
            AUDIT_PERIOD_CLOSED,
            CASH_PERIOD_ENTITY,
            period.id,
            payload.actor_id,
            {
                "closed_at": now.isoformat(),
                "expected_cash": format_money(stats.expected_cash),
                "actual_cash": format_money(actuals.cash),
                "difference_cash": format_money(differences.cash),
                "difference_total": format_money(differences.total),
                "successor_id": successor.id,
            },
        )
        return CloseCashPeriodResult(
            closed_period=period,
            new_open_period=successor,
            warning_code=warning_code,
        )

    def list_history(self, *, page: int = 1, limit: int = 20) -> PeriodPage:
        return self.list_periods(
            CashPeriodFilters(status=PeriodStatus.CLOSED),
            page=page,
            limit=limit,
        )

    def list_periods(
        self,
        filters: CashPeriodFilters,
        *,
        page: int = 1,
        limit: int = 20,
    ) -> PeriodPage:
        if page < 1 or limit < 1:
            raise InvalidRequestError(
                message=compose_error_message(
                    cause="page and limit must be positive integers.",
                    action="Send page >= 1 and limit >= 1.",
                )
            )
        items, total = self._period_repository.list_periods(
            filters,
            limit=limit,
            offset=(page - 1) * limit,
        )
        return PeriodPage(
            items=items,
            total=total,
            page=page,
            limit=limit,
            summary=self._period_repository.summarize(filters),
        )

    def get_period_detail(self, period_id: int) -> PeriodDetail:
        period = self._get_period(period_id)
        adjustments = self._period_repository.list_adjustments(period_id)
        adjustment_total = signed_adjustment_total(adjustments)
        return PeriodDetail(
            period=period,
            adjustments=adjustments,
            adjustment_total=adjustment_total,
            final_cash_balance=round_money(
                round_money(period.actual_cash_amount) + adjustment_total
            ),
        )

    def add_adjustment(
        self,
        period_id: int,
        payload: AdjustmentInput,
    ) -> CashCloseAdjustment:
        amount = round_money(payload.amount)
        if amount <= ZERO:
            raise InvalidRequestError(
                message=compose_error_message(
                    cause="Adjustment amount must be greater than zero.",
                    action="Send a positive amount and choose ADD or SUBTRACT.",
                )
            )
        reason = payload.reason.strip()
        if not reason:
            raise InvalidRequestError(
                message=compose_error_message(
                    cause="Adjustment reason cannot be blank.",
                    action="Describe why the drawer is being adjusted.",
                )
            )

        period = self._get_period(period_id)
        if period.status != PeriodStatus.CLOSED:
            raise PeriodNotClosedError(details={"period_id": period_id})

        adjustment = CashCloseAdjustment(
            period_id=period_id,
            type=payload.type,
            amount=amount,
            reason=reason,
            created_by=payload.actor_id,
        )
        try:
            self._period_repository.add_adjustment(adjustment)
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        self._session.refresh(adjustment)
        logger.info(
            "cash_close_adjustment_added",
            extra={
                "period_id": period_id,
                "adjustment_id": adjustment.id,
                "type": str(adjustment.type),
                "amount": format_money(amount),
            },
        )
        self._audit_service.record(
            AUDIT_ADJUSTMENT_ADDED,
            CASH_PERIOD_ENTITY,
            period_id,
            payload.actor_id,
            {
                "adjustment_id": adjustment.id,
                "type": str(adjustment.type),
                "amount": format_money(amount),
                "reason": reason,
            },
        )
        return adjustment

    def _get_period(self, period_id: int) -> CashPeriod:
        period = self._period_repository.get_by_id(period_id)
        if period is None:
            raise PeriodNotFoundError(details={"period_id": period_id})
        return period

    def _lock_open_period(
        self,
        payload: CloseCashPeriodInput,
        now: datetime,
    ) -> CashPeriod:
        open_periods = self._period_repository.list_open_periods(for_update=True)
        if len(open_periods) > 1:
            raise self._duplicate_open_error(open_periods)
        if open_periods:
            return open_periods[0]

        period = self._period_repository.add(
            CashPeriod(
                status=PeriodStatus.OPEN,
                period_type=payload.period_type or PeriodType.MANUAL,
                start_at=now,
                created_by=payload.actor_id,
            )
        )
        logger.info(
            "cash_period_opened",
            extra={"period_id": period.id, "actor_id": payload.actor_id},
        )
        return period

    def _load_breakdown(self, date_range: DateRange) -> CloseBreakdown:
        movements = self._ledger_repository.list_cash_movements(date_range)
        return CloseBreakdown(
            payments=self._ledger_repository.list_payments(date_range),
            refunds=self._ledger_repository.list_refunds(date_range),
            cash_in=[row for row in movements if row.movement_type == "IN"],
            cash_out=[row for row in movements if row.movement_type == "OUT"],
            payouts=self._ledger_repository.list_trainer_payouts(date_range),
            sales=self._ledger_repository.list_sales(date_range),
        )

    @staticmethod
    def _duplicate_open_error(open_periods: list[CashPeriod]) -> OpenPeriodConflictError:
        period_ids = [period.id for period in open_periods]
        logger.error(
            "duplicate_open_periods",
            extra={"open_period_ids": period_ids},
        )
        return OpenPeriodConflictError(details={"open_period_ids": period_ids})
