from __future__ import annotations

import json

import pytest
from sqlalchemy.exc import OperationalError

from gym_cash_close.db.models.audit_log import AuditLog
from gym_cash_close.services.audit_service import CASH_PERIOD_ENTITY, AuditService


class FakeSession:
    def __init__(self) -> None:
        self.committed = False
        self.rolled_back = False

    def commit(self) -> None:
        self.committed = True

    def rollback(self) -> None:
        self.rolled_back = True


class FakeAuditRepository:
    def __init__(self, *, error: Exception | None = None) -> None:
        self.entries: list[AuditLog] = []
        self._error = error

    def add(self, entry: AuditLog) -> AuditLog:
        if self._error is not None:
            raise self._error
        self.entries.append(entry)
        return entry


def test_record_serializes_metadata_and_commits() -> None:
    repository = FakeAuditRepository()
    session = FakeSession()
    service = AuditService(audit_repository=repository, session=session)

    entry = service.record(
        "CASH_PERIOD_CLOSED",
        CASH_PERIOD_ENTITY,
        12,
        4,
        {"difference_total": "-5.00", "successor_id": 13},
    )

    assert entry is repository.entries[0]
    assert entry.entity_id == "12"
    assert entry.performed_by == 4
    assert json.loads(entry.metadata_json) == {
        "difference_total": "-5.00",
        "successor_id": 13,
    }
    assert session.committed is True


@pytest.mark.parametrize(
    "error",
    [
        OperationalError("INSERT", {}, Exception("disk I/O error")),
        RuntimeError("audit sink unavailable"),
    ],
)
def test_record_swallows_write_errors(
    error: Exception,
    caplog: pytest.LogCaptureFixture,
) -> None:
    session = FakeSession()
    service = AuditService(
        audit_repository=FakeAuditRepository(error=error),
        session=session,
    )

    entry = service.record("CASH_PERIOD_CLOSED", CASH_PERIOD_ENTITY, 1, None)

    assert entry is None
    assert session.rolled_back is True
    assert "audit_log_failed" in [record.message for record in caplog.records]
