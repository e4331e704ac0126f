"""Schemas for cash closing endpoints."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from gym_cash_close.db.models.cash_period import (
    CashCloseAdjustment,
    CashPeriod,
    PeriodType,
)
from gym_cash_close.db.models.payment import Payment
from gym_cash_close.domain.money import format_money
from gym_cash_close.domain.periods import DateRange, ensure_utc
from gym_cash_close.services.cash_closing_stats import CashClosingStats
from gym_cash_close.services.cash_period_service import PeriodDetail, PeriodPage
from gym_cash_close.services.collection_report_service import (
    CollectionTotals,
    EmployeeCollection,
    MonthlyCollections,
)
from gym_cash_close.services.financial_snapshot_service import FinancialSnapshot
from gym_cash_close.services.sales_preview_service import SalesPreview

MONEY_PATTERN = r"^-?[0-9]+\.[0-9]{2}$"
INPUT_MONEY_PATTERN = r"^[0-9]+\.[0-9]{2}$"

PeriodTypeName = Literal["DAILY", "WEEKLY", "MONTHLY", "MANUAL"]


def _money(value: Decimal | None) -> str | None:
    if value is None:
        return None
    return format_money(Decimal(value))


def _utc(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    return ensure_utc(value)


class RangeResponse(BaseModel):
    start_at: datetime
    end_at: datetime

    @classmethod
    def from_range(cls, date_range: DateRange) -> RangeResponse:
        return cls(start_at=date_range.start_at, end_at=date_range.end_at)


class ExpectedCashResponse(BaseModel):
    """Per-method breakdown of what the drawer and accounts should hold."""

    expected_cash: str = Field(pattern=MONEY_PATTERN)
    expected_card: str = Field(pattern=MONEY_PATTERN)
    expected_transfer: str = Field(pattern=MONEY_PATTERN)
    expected_non_cash: str = Field(pattern=MONEY_PATTERN)
    expected_total: str = Field(pattern=MONEY_PATTERN)
    cash_revenue: str = Field(pattern=MONEY_PATTERN)
    card_revenue: str = Field(pattern=MONEY_PATTERN)
    transfer_revenue: str = Field(pattern=MONEY_PATTERN)
    revenue_total: str = Field(pattern=MONEY_PATTERN)
    cash_refunds: str = Field(pattern=MONEY_PATTERN)
    card_refunds: str = Field(pattern=MONEY_PATTERN)
    transfer_refunds: str = Field(pattern=MONEY_PATTERN)
    refunds_total: str = Field(pattern=MONEY_PATTERN)
    cash_in_total: str = Field(pattern=MONEY_PATTERN)
    cash_out_total: str = Field(pattern=MONEY_PATTERN)
    payouts_cash: str = Field(pattern=MONEY_PATTERN)
    payouts_card: str = Field(pattern=MONEY_PATTERN)
    payouts_transfer: str = Field(pattern=MONEY_PATTERN)
    payouts_total: str = Field(pattern=MONEY_PATTERN)
    payments_count: int = Field(ge=0)
    sales_count: int = Field(ge=0)
    refunds_count: int = Field(ge=0)
    payouts_count: int = Field(ge=0)

    @classmethod
    def from_stats(cls, stats: CashClosingStats) -> ExpectedCashResponse:
        return cls(
            expected_cash=format_money(stats.expected_cash),
            expected_card=format_money(stats.expected_card),
            expected_transfer=format_money(stats.expected_transfer),
            expected_non_cash=format_money(stats.expected_non_cash),
            expected_total=format_money(stats.expected_total),
            cash_revenue=format_money(stats.cash_revenue),
            card_revenue=format_money(stats.card_revenue),
            transfer_revenue=format_money(stats.transfer_revenue),
            revenue_total=format_money(stats.revenue_total),
            cash_refunds=format_money(stats.cash_refunds),
            card_refunds=format_money(stats.card_refunds),
            transfer_refunds=format_money(stats.transfer_refunds),
            refunds_total=format_money(stats.refunds_total),
            cash_in_total=format_money(stats.cash_in_total),
            cash_out_total=format_money(stats.cash_out_total),
            payouts_cash=format_money(stats.payouts_cash),
            payouts_card=format_money(stats.payouts_card),
            payouts_transfer=format_money(stats.payouts_transfer),
            payouts_total=format_money(stats.payouts_total),
            payments_count=stats.payments_count,
            sales_count=stats.sales_count,
            refunds_count=stats.refunds_count,
            payouts_count=stats.payouts_count,
        )


class FinancialSummaryResponse(BaseModel):
    """KPI block shown next to the close form."""

    total_sessions: int = Field(ge=0)
    total_revenue: str = Field(pattern=MONEY_PATTERN)
    cash_revenue: str = Field(pattern=MONEY_PATTERN)
    card_revenue: str = Field(pattern=MONEY_PATTERN)
    transfer_revenue: str = Field(pattern=MONEY_PATTERN)
    trainer_commissions: str = Field(pattern=MONEY_PATTERN)
    payouts_total: str = Field(pattern=MONEY_PATTERN)
    cash_in_total: str = Field(pattern=MONEY_PATTERN)
    expected_cash: str = Field(pattern=MONEY_PATTERN)
    expected_non_cash: str = Field(pattern=MONEY_PATTERN)

    @classmethod
    def from_snapshot(cls, snapshot: FinancialSnapshot) -> FinancialSummaryResponse:
        return cls.model_validate(snapshot.summary())


class CashPeriodResponse(BaseModel):
    """Serialized cash period; snapshot fields are null while open."""

    id: int
    period_type: PeriodTypeName
    status: Literal["OPEN", "CLOSED"]
    start_at: datetime
    end_at: datetime | None
    closed_at: datetime | None
    created_by: int | None
    closed_by: int | None
    notes: str | None
    expected_cash_amount: str | None
    expected_non_cash_amount: str | None
    expected_card_amount: str | None
    expected_transfer_amount: str | None
    expected_total_amount: str | None
    actual_cash_amount: str | None
    actual_non_cash_amount: str | None
    actual_total_amount: str | None
    difference_cash: str | None
    difference_non_cash: str | None
    difference_total: str | None
    cash_difference_state: Literal["balanced", "shortage", "overage"] | None
    revenue_total: str | None
    sessions_total: int | None
    payouts_total: str | None
    cash_in_total: str | None
    cash_refunds_total: str | None
    cash_revenue: str | None
    card_revenue: str | None
    transfer_revenue: str | None
    export_version: int | None

    @classmethod
    def from_model(cls, period: CashPeriod) -> CashPeriodResponse:
        state = None
        if period.difference_cash is not None:
            difference = Decimal(period.difference_cash)
            if difference < 0:
                state = "shortage"
            elif difference > 0:
                state = "overage"
            else:
                state = "balanced"
        return cls(
            id=period.id,
            period_type=str(period.period_type),
            status=str(period.status),
            start_at=ensure_utc(period.start_at),
            end_at=_utc(period.end_at),
            closed_at=_utc(period.closed_at),
            created_by=period.created_by,
            closed_by=period.closed_by,
            notes=period.notes,
            expected_cash_amount=_money(period.expected_cash_amount),
            expected_non_cash_amount=_money(period.expected_non_cash_amount),
            expected_card_amount=_money(period.expected_card_amount),
            expected_transfer_amount=_money(period.expected_transfer_amount),
            expected_total_amount=_money(period.expected_total_amount),
            actual_cash_amount=_money(period.actual_cash_amount),
            actual_non_cash_amount=_money(period.actual_non_cash_amount),
            actual_total_amount=_money(period.actual_total_amount),
            difference_cash=_money(period.difference_cash),
            difference_non_cash=_money(period.difference_non_cash),
            difference_total=_money(period.difference_total),
            cash_difference_state=state,
            revenue_total=_money(period.revenue_total),
            sessions_total=period.sessions_total,
            payouts_total=_money(period.payouts_total),
            cash_in_total=_money(period.cash_in_total),
            cash_refunds_total=_money(period.cash_refunds_total),
            cash_revenue=_money(period.cash_revenue),
            card_revenue=_money(period.card_revenue),
            transfer_revenue=_money(period.transfer_revenue),
            export_version=period.export_version,
        )


class CurrentPeriodResponse(BaseModel):
    open_period: CashPeriodResponse
    range: RangeResponse
    expected: ExpectedCashResponse
    summary: FinancialSummaryResponse


class CalculateExpectedResponse(BaseModel):
    range: RangeResponse
    expected: ExpectedCashResponse


class FinancialPreviewResponse(BaseModel):
    range: RangeResponse
    summary: FinancialSummaryResponse


class ProductSalesResponse(BaseModel):
    product_id: int | None
    name: str
    quantity: int
    revenue: str = Field(pattern=MONEY_PATTERN)


class SalesPreviewResponse(BaseModel):
    range: RangeResponse
    total_revenue: str = Field(pattern=MONEY_PATTERN)
    total_units: int
    transactions_count: int = Field(ge=0)
    top_products: list[ProductSalesResponse]

    @classmethod
    def from_preview(
        cls, date_range: DateRange, preview: SalesPreview
    ) -> SalesPreviewResponse:
        return cls(
            range=RangeResponse.from_range(date_range),
            total_revenue=format_money(preview.total_revenue),
            total_units=preview.total_units,
            transactions_count=preview.transactions_count,
            top_products=[
                ProductSalesResponse(
                    product_id=product.product_id,
                    name=product.name,
                    quantity=product.quantity,
                    revenue=format_money(product.revenue),
                )
                for product in preview.top_products
            ],
        )


class CloseCashPeriodRequest(BaseModel):
    """Payload for closing the current cash period."""

    period_type: PeriodTypeName | None = None
    end_at: datetime | None = None
    declared_cash_amount: str = Field(pattern=INPUT_MONEY_PATTERN)
    declared_non_cash_amount: str = Field(default="0.00", pattern=INPUT_MONEY_PATTERN)
    notes: str | None = Field(default=None, max_length=500)

    @field_validator("notes")
    @classmethod
    def normalize_notes(cls, value: str | None) -> str | None:
        if value is None:
            return None
        trimmed = value.strip()
        return trimmed or None

    def period_type_enum(self) -> PeriodType | None:
        return PeriodType(self.period_type) if self.period_type else None


class CloseCashPeriodResponse(BaseModel):
    close_id: int
    export_url: str
    closed_period: CashPeriodResponse
    new_open_period: CashPeriodResponse
    warning_code: str | None = None


class PeriodSummaryResponse(BaseModel):
    """Money totals over every period matching a listing query."""

    expected_cash_amount: str = Field(pattern=MONEY_PATTERN)
    expected_non_cash_amount: str = Field(pattern=MONEY_PATTERN)
    expected_total_amount: str = Field(pattern=MONEY_PATTERN)
    actual_cash_amount: str = Field(pattern=MONEY_PATTERN)
    actual_non_cash_amount: str = Field(pattern=MONEY_PATTERN)
    actual_total_amount: str = Field(pattern=MONEY_PATTERN)
    difference_cash: str = Field(pattern=MONEY_PATTERN)
    difference_non_cash: str = Field(pattern=MONEY_PATTERN)
    difference_total: str = Field(pattern=MONEY_PATTERN)
    payouts_total: str = Field(pattern=MONEY_PATTERN)
    cash_in_total: str = Field(pattern=MONEY_PATTERN)


class PeriodListResponse(BaseModel):
    """Paginated cash period list response."""

    items: list[CashPeriodResponse]
    total: int = Field(ge=0)
    page: int = Field(ge=1)
    limit: int = Field(ge=1)
    summary: PeriodSummaryResponse

    @classmethod
    def from_page(cls, page: PeriodPage) -> PeriodListResponse:
        return cls(
            items=[CashPeriodResponse.from_model(item) for item in page.items],
            total=page.total,
            page=page.page,
            limit=page.limit,
            summary=PeriodSummaryResponse.model_validate(
                {key: format_money(value) for key, value in page.summary.items()}
            ),
        )


class CreateAdjustmentRequest(BaseModel):
    """Payload for a post-close adjustment."""

    type: Literal["ADD", "SUBTRACT"]
    amount: str = Field(pattern=INPUT_MONEY_PATTERN)
    reason: str = Field(min_length=1, max_length=280)

    @field_validator("amount")
    @classmethod
    def validate_amount(cls, value: str) -> str:
        if Decimal(value) <= Decimal("0"):
            raise ValueError("Amount must be greater than zero.")
        return value

    @field_validator("reason")
    @classmethod
    def validate_reason(cls, value: str) -> str:
        trimmed = value.strip()
        if not trimmed:
            raise ValueError("Reason cannot be blank.")
        return trimmed


class AdjustmentResponse(BaseModel):
    id: int
    period_id: int
    type: Literal["ADD", "SUBTRACT"]
    amount: str = Field(pattern=MONEY_PATTERN)
    reason: str
    created_by: int | None
    created_at: datetime

    @classmethod
    def from_model(cls, adjustment: CashCloseAdjustment) -> AdjustmentResponse:
        return cls(
            id=adjustment.id,
            period_id=adjustment.period_id,
            type=str(adjustment.type),
            amount=format_money(Decimal(adjustment.amount)),
            reason=adjustment.reason,
            created_by=adjustment.created_by,
            created_at=ensure_utc(adjustment.created_at),
        )


class PeriodDetailResponse(BaseModel):
    period: CashPeriodResponse
    adjustments: list[AdjustmentResponse]
    adjustment_total: str = Field(pattern=MONEY_PATTERN)
    final_cash_balance: str = Field(pattern=MONEY_PATTERN)

    @classmethod
    def from_detail(cls, detail: PeriodDetail) -> PeriodDetailResponse:
        return cls(
            period=CashPeriodResponse.from_model(detail.period),
            adjustments=[
                AdjustmentResponse.from_model(item) for item in detail.adjustments
            ],
            adjustment_total=format_money(detail.adjustment_total),
            final_cash_balance=format_money(detail.final_cash_balance),
        )


class EmployeeCollectionResponse(BaseModel):
    employee_id: int
    payments_count: int = Field(ge=0)
    cash_total: str = Field(pattern=MONEY_PATTERN)
    non_cash_total: str = Field(pattern=MONEY_PATTERN)
    total: str = Field(pattern=MONEY_PATTERN)
    refunds_total: str = Field(pattern=MONEY_PATTERN)

    @classmethod
    def from_collection(
        cls, collection: EmployeeCollection
    ) -> EmployeeCollectionResponse:
        return cls(
            employee_id=collection.employee_id,
            payments_count=collection.payments_count,
            cash_total=format_money(collection.cash_total),
            non_cash_total=format_money(collection.non_cash_total),
            total=format_money(collection.total),
            refunds_total=format_money(collection.refunds_total),
        )


class CollectionTotalsResponse(BaseModel):
    payments_count: int = Field(ge=0)
    cash_total: str = Field(pattern=MONEY_PATTERN)
    non_cash_total: str = Field(pattern=MONEY_PATTERN)
    gross_total: str = Field(pattern=MONEY_PATTERN)
    refunds_total: str = Field(pattern=MONEY_PATTERN)
    net_revenue: str = Field(pattern=MONEY_PATTERN)

    @classmethod
    def from_totals(cls, totals: CollectionTotals) -> CollectionTotalsResponse:
        return cls(
            payments_count=totals.payments_count,
            cash_total=format_money(totals.cash_total),
            non_cash_total=format_money(totals.non_cash_total),
            gross_total=format_money(totals.gross_total),
            refunds_total=format_money(totals.refunds_total),
            net_revenue=format_money(totals.net_revenue),
        )


class MonthlyCollectionsResponse(BaseModel):
    """Collections per employee for one calendar month."""

    month: str
    range: RangeResponse
    employees: list[EmployeeCollectionResponse]
    grand_total: CollectionTotalsResponse

    @classmethod
    def from_report(cls, report: MonthlyCollections) -> MonthlyCollectionsResponse:
        return cls(
            month=report.month,
            range=RangeResponse.from_range(report.date_range),
            employees=[
                EmployeeCollectionResponse.from_collection(item)
                for item in report.employees
            ],
            grand_total=CollectionTotalsResponse.from_totals(report.grand_total),
        )


class EmployeePaymentResponse(BaseModel):
    id: int
    amount: str = Field(pattern=MONEY_PATTERN)
    method: str | None
    status: str
    paid_at: datetime
    member_name: str | None
    note: str | None

    @classmethod
    def from_model(cls, payment: Payment) -> EmployeePaymentResponse:
        return cls(
            id=payment.id,
            amount=format_money(Decimal(payment.amount)),
            method=payment.method,
            status=payment.status,
            paid_at=ensure_utc(payment.paid_at),
            member_name=payment.member_name,
            note=payment.note,
        )


class EmployeePaymentsResponse(BaseModel):
    employee_id: int
    range: RangeResponse
    items: list[EmployeePaymentResponse]
