"""API request and response schemas."""

from gym_cash_close.api.schemas.cash_closings import (
    CalculateExpectedResponse,
    CashPeriodResponse,
    CloseCashPeriodRequest,
    CloseCashPeriodResponse,
    CreateAdjustmentRequest,
    CurrentPeriodResponse,
    EmployeePaymentsResponse,
    FinancialPreviewResponse,
    MonthlyCollectionsResponse,
    PeriodDetailResponse,
    PeriodListResponse,
    SalesPreviewResponse,
)

__all__ = [
    "CalculateExpectedResponse",
    "CashPeriodResponse",
    "CloseCashPeriodRequest",
    "CloseCashPeriodResponse",
    "CreateAdjustmentRequest",
    "CurrentPeriodResponse",
    "EmployeePaymentsResponse",
    "FinancialPreviewResponse",
    "MonthlyCollectionsResponse",
    "PeriodDetailResponse",
    "PeriodListResponse",
    "SalesPreviewResponse",
]
