"""Audit trail persistence."""

from __future__ import annotations

from sqlalchemy.orm import Session

from gym_cash_close.db.models.audit_log import AuditLog


class AuditLogRepository:
    """Append-only access to audit log rows."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def add(self, entry: AuditLog) -> AuditLog:
        self._session.add(entry)
        self._session.flush()
        return entry
