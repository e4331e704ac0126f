"""API dependency providers."""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from gym_cash_close.core.settings import Settings, get_settings
from gym_cash_close.db.session import get_db_session
from gym_cash_close.repositories.audit_log_repository import AuditLogRepository
from gym_cash_close.repositories.cash_period_repository import CashPeriodRepository
from gym_cash_close.repositories.ledger_query_repository import (
    LedgerQueryRepository,
)
from gym_cash_close.services.audit_service import AuditService
from gym_cash_close.services.cash_closing_stats import CashClosingStatsService
from gym_cash_close.services.cash_period_service import CashPeriodService
from gym_cash_close.services.collection_report_service import (
    CollectionReportService,
)
from gym_cash_close.services.financial_snapshot_service import (
    FinancialSnapshotService,
)
from gym_cash_close.services.sales_preview_service import SalesPreviewService


def build_cash_period_service(session: Session, settings: Settings) -> CashPeriodService:
    """Wire the period service and its collaborators around one session."""

    ledger_repository = LedgerQueryRepository(session)
    snapshot_service = FinancialSnapshotService(
        stats_service=CashClosingStatsService(ledger_repository=ledger_repository),
        metrics_repository=ledger_repository,
        session=session,
    )
    return CashPeriodService(
        period_repository=CashPeriodRepository(session),
        ledger_repository=ledger_repository,
        snapshot_service=snapshot_service,
        audit_service=AuditService(
            audit_repository=AuditLogRepository(session),
            session=session,
        ),
        session=session,
        export_version=settings.cash_close_export_version,
        successor_offset_seconds=settings.cash_close_successor_offset_seconds,
    )


def get_cash_period_service(
    session: Annotated[Session, Depends(get_db_session)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> CashPeriodService:
    """Build cash period service with per-request session."""

    return build_cash_period_service(session, settings)


def get_sales_preview_service(
    session: Annotated[Session, Depends(get_db_session)],
) -> SalesPreviewService:
    """Build sales preview service with per-request session."""

    return SalesPreviewService(sales_repository=LedgerQueryRepository(session))


def get_collection_report_service(
    session: Annotated[Session, Depends(get_db_session)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> CollectionReportService:
    """Build per-employee collection report service."""

    return CollectionReportService(
        collections_repository=LedgerQueryRepository(session),
        timezone_name=settings.app_timezone,
    )


def get_actor_id(
    x_actor_id: Annotated[int | None, Header(alias="X-Actor-Id")] = None,
) -> int | None:
    """Return the acting employee id forwarded by the caller, if any."""

    return x_actor_id
