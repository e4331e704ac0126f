"""Cash closing routes."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Annotated, Literal

from fastapi import APIRouter, Depends, Query, Response, status

from gym_cash_close.api.dependencies import (
    get_actor_id,
    get_cash_period_service,
    get_collection_report_service,
    get_sales_preview_service,
)
from gym_cash_close.api.schemas.cash_closings import (
    AdjustmentResponse,
    CalculateExpectedResponse,
    CashPeriodResponse,
    CloseCashPeriodRequest,
    CloseCashPeriodResponse,
    CreateAdjustmentRequest,
    CurrentPeriodResponse,
    EmployeePaymentResponse,
    EmployeePaymentsResponse,
    ExpectedCashResponse,
    FinancialPreviewResponse,
    FinancialSummaryResponse,
    MonthlyCollectionsResponse,
    PeriodDetailResponse,
    PeriodListResponse,
    RangeResponse,
    SalesPreviewResponse,
)
from gym_cash_close.core.settings import Settings, get_settings
from gym_cash_close.db.models.cash_period import (
    AdjustmentType,
    PeriodStatus,
    PeriodType,
)
from gym_cash_close.domain.periods import DateRange
from gym_cash_close.reporting.cash_close_export import (
    MEDIA_TYPES,
    ExportFormat,
    build_export_payload,
    export_filename,
    render_export,
)
from gym_cash_close.repositories.cash_period_repository import CashPeriodFilters
from gym_cash_close.services.cash_period_service import (
    AdjustmentInput,
    CashPeriodService,
    CloseCashPeriodInput,
)
from gym_cash_close.services.collection_report_service import (
    CollectionReportService,
)
from gym_cash_close.services.sales_preview_service import SalesPreviewService

router = APIRouter(prefix="/cash-closings", tags=["Cash closings"])

ServiceDep = Annotated[CashPeriodService, Depends(get_cash_period_service)]
ActorDep = Annotated[int | None, Depends(get_actor_id)]
CollectionsDep = Annotated[
    CollectionReportService, Depends(get_collection_report_service)
]


def export_url(period_id: int, fmt: ExportFormat = ExportFormat.XLSX) -> str:
    return f"/v1/cash-closings/{period_id}/export?format={fmt}"


@router.get(
    "/period/current",
    response_model=CurrentPeriodResponse,
    responses={
        409: {"description": "More than one open period"},
        500: {"description": "Schema mismatch or storage failure"},
    },
)
def get_current_period(
    service: ServiceDep,
    actor_id: ActorDep,
) -> CurrentPeriodResponse:
    """Return the open period, creating it on first use, with live totals."""

    overview = service.current_overview(actor_id=actor_id)
    return CurrentPeriodResponse(
        open_period=CashPeriodResponse.from_model(overview.period),
        range=RangeResponse.from_range(overview.date_range),
        expected=ExpectedCashResponse.from_stats(overview.snapshot.stats),
        summary=FinancialSummaryResponse.from_snapshot(overview.snapshot),
    )


@router.get(
    "/calculate-expected",
    response_model=CalculateExpectedResponse,
    responses={400: {"description": "Only one range bound provided"}},
)
def calculate_expected(
    service: ServiceDep,
    start_at: datetime | None = None,
    end_at: datetime | None = None,
    employee_id: Annotated[int | None, Query(ge=1)] = None,
) -> CalculateExpectedResponse:
    """Preview expected amounts; internal failures degrade to zeros."""

    date_range = service.resolve_preview_range(start_at, end_at)
    snapshot = service.preview(date_range, actor_id=employee_id)
    return CalculateExpectedResponse(
        range=RangeResponse.from_range(date_range),
        expected=ExpectedCashResponse.from_stats(snapshot.stats),
    )


@router.get("/sales-preview", response_model=SalesPreviewResponse)
def sales_preview(
    service: ServiceDep,
    sales_service: Annotated[SalesPreviewService, Depends(get_sales_preview_service)],
    start_at: datetime | None = None,
    end_at: datetime | None = None,
    employee_id: Annotated[int | None, Query(ge=1)] = None,
) -> SalesPreviewResponse:
    """Summarize product sales; reversed bounds are swapped."""

    date_range = service.resolve_preview_range(start_at, end_at, reorder=True)
    preview = sales_service.preview(date_range, actor_id=employee_id)
    return SalesPreviewResponse.from_preview(date_range, preview)


@router.get("/financial-preview", response_model=FinancialPreviewResponse)
def financial_preview(
    service: ServiceDep,
    start_at: datetime | None = None,
    end_at: datetime | None = None,
) -> FinancialPreviewResponse:
    """KPI preview for a range; internal failures degrade to zeros."""

    date_range = service.resolve_preview_range(start_at, end_at)
    snapshot = service.preview(date_range)
    return FinancialPreviewResponse(
        range=RangeResponse.from_range(date_range),
        summary=FinancialSummaryResponse.from_snapshot(snapshot),
    )


@router.get(
    "/monthly-summary",
    response_model=MonthlyCollectionsResponse,
    responses={400: {"description": "Month is not YYYY-MM"}},
)
def monthly_summary(
    collections: CollectionsDep,
    month: Annotated[str, Query(description="Calendar month as YYYY-MM")],
) -> MonthlyCollectionsResponse:
    """Collections per employee for a month, independent of closes."""

    return MonthlyCollectionsResponse.from_report(
        collections.list_monthly_collections(month)
    )


@router.get(
    "/employee-payments",
    response_model=EmployeePaymentsResponse,
    responses={400: {"description": "Missing or reversed range"}},
)
def employee_payments(
    collections: CollectionsDep,
    employee_id: Annotated[int, Query(ge=1)],
    start_at: datetime,
    end_at: datetime,
) -> EmployeePaymentsResponse:
    """Completed payments taken by one employee, newest first."""

    date_range = DateRange(start_at=start_at, end_at=end_at)
    payments = collections.list_employee_payments(employee_id, date_range)
    return EmployeePaymentsResponse(
        employee_id=employee_id,
        range=RangeResponse.from_range(date_range),
        items=[EmployeePaymentResponse.from_model(item) for item in payments],
    )


@router.post(
    "",
    response_model=CloseCashPeriodResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"description": "Invalid payload or end before period start"},
        409: {"description": "Concurrent close or duplicated open periods"},
        500: {"description": "Schema mismatch or storage failure"},
    },
)
def close_cash_period(
    payload: CloseCashPeriodRequest,
    service: ServiceDep,
    actor_id: ActorDep,
) -> CloseCashPeriodResponse:
    """Close the open period and open its successor atomically."""

    result = service.close_period(
        CloseCashPeriodInput(
            declared_cash_amount=Decimal(payload.declared_cash_amount),
            declared_non_cash_amount=Decimal(payload.declared_non_cash_amount),
            end_at=payload.end_at,
            period_type=payload.period_type_enum(),
            notes=payload.notes,
            actor_id=actor_id,
        )
    )
    return CloseCashPeriodResponse(
        close_id=result.closed_period.id,
        export_url=export_url(result.closed_period.id),
        closed_period=CashPeriodResponse.from_model(result.closed_period),
        new_open_period=CashPeriodResponse.from_model(result.new_open_period),
        warning_code=result.warning_code,
    )


@router.get("/history", response_model=PeriodListResponse)
def list_close_history(
    service: ServiceDep,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=200)] = 20,
) -> PeriodListResponse:
    """List closed periods, most recent first."""

    return PeriodListResponse.from_page(service.list_history(page=page, limit=limit))


@router.get("", response_model=PeriodListResponse)
def list_cash_periods(
    service: ServiceDep,
    status_filter: Annotated[
        Literal["OPEN", "CLOSED"] | None,
        Query(alias="status"),
    ] = None,
    period_type: Literal["DAILY", "WEEKLY", "MONTHLY", "MANUAL"] | None = None,
    closed_from: datetime | None = None,
    closed_to: datetime | None = None,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=200)] = 20,
) -> PeriodListResponse:
    """List every period with optional filters."""

    filters = CashPeriodFilters(
        status=PeriodStatus(status_filter) if status_filter else None,
        period_type=PeriodType(period_type) if period_type else None,
        closed_from=closed_from,
        closed_to=closed_to,
    )
    return PeriodListResponse.from_page(
        service.list_periods(filters, page=page, limit=limit)
    )


@router.get(
    "/{period_id}/export",
    responses={
        200: {"description": "Immutable export file"},
        404: {"description": "Period not found"},
        409: {"description": "Period still open"},
        500: {"description": "Stored snapshot unreadable"},
    },
)
def export_cash_period(
    period_id: int,
    service: ServiceDep,
    settings: Annotated[Settings, Depends(get_settings)],
    format: Annotated[Literal["csv", "json", "xlsx"], Query()] = "xlsx",
) -> Response:
    """Render the snapshot frozen at close time."""

    fmt = ExportFormat(format)
    payload = build_export_payload(
        service.get_period(period_id),
        supported_version=settings.cash_close_export_version,
    )
    filename = export_filename(
        payload,
        period_id,
        fmt,
        timezone_name=settings.app_timezone,
    )
    return Response(
        content=render_export(payload, fmt),
        media_type=MEDIA_TYPES[fmt],
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get(
    "/{period_id}",
    response_model=PeriodDetailResponse,
    responses={404: {"description": "Period not found"}},
)
def get_cash_period(period_id: int, service: ServiceDep) -> PeriodDetailResponse:
    """Return one period with adjustments and final cash balance."""

    return PeriodDetailResponse.from_detail(service.get_period_detail(period_id))


@router.post(
    "/{period_id}/adjustments",
    response_model=AdjustmentResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        404: {"description": "Period not found"},
        409: {"description": "Period still open"},
    },
)
def add_adjustment(
    period_id: int,
    payload: CreateAdjustmentRequest,
    service: ServiceDep,
    actor_id: ActorDep,
) -> AdjustmentResponse:
    """Record a manual ADD/SUBTRACT correction on a closed period."""

    adjustment = service.add_adjustment(
        period_id,
        AdjustmentInput(
            type=AdjustmentType(payload.type),
            amount=Decimal(payload.amount),
            reason=payload.reason,
            actor_id=actor_id,
        ),
    )
    return AdjustmentResponse.from_model(adjustment)
