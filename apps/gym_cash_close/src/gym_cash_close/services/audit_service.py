"""Best-effort audit trail writer."""

from __future__ import annotations

import json
import logging
from typing import Any, Protocol

from gym_cash_close.db.models.audit_log import AuditLog

logger = logging.getLogger(__name__)

CASH_PERIOD_ENTITY = "CashPeriod"


class SessionProtocol(Protocol):
    """Subset of SQLAlchemy session APIs used by this service."""

    def commit(self) -> None: ...
    def rollback(self) -> None: ...


class AuditLogRepositoryProtocol(Protocol):
    """Audit repository contract consumed by service."""

    def add(self, entry: AuditLog) -> AuditLog: ...


class AuditService:
    """Writes audit rows in their own commit and never raises."""

    def __init__(
        self,
        *,
        audit_repository: AuditLogRepositoryProtocol,
        session: SessionProtocol,
    ) -> None:
        self._audit_repository = audit_repository
        self._session = session

    def record(
        self,
        action: str,
        entity_type: str,
        entity_id: int | str | None,
        performed_by: int | None,
        metadata: dict[str, Any] | None = None,
    ) -> AuditLog | None:
        try:
            entry = AuditLog(
                action=action,
                entity_type=entity_type,
                entity_id=None if entity_id is None else str(entity_id),
                performed_by=performed_by,
                metadata_json=json.dumps(metadata or {}, sort_keys=True, default=str),
            )
            self._audit_repository.add(entry)
            self._session.commit()
        except Exception:
            self._session.rollback()
            logger.exception(
                "audit_log_failed",
                extra={
                    "action": action,
                    "entity_type": entity_type,
                    "entity_id": entity_id,
                },
            )
            return None
        return entry
