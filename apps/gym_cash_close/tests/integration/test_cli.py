from __future__ import annotations

import json
from pathlib import Path

import pytest
from sqlalchemy.orm import Session, sessionmaker
from typer.testing import CliRunner

from gym_cash_close.cli import app
from gym_cash_close.db import session as db_session

runner = CliRunner()


@pytest.fixture(autouse=True)
def sqlite_cli_session(
    monkeypatch: pytest.MonkeyPatch,
    sqlite_session_factory: sessionmaker[Session],
) -> None:
    monkeypatch.setattr(db_session, "SessionFactory", sqlite_session_factory)


def test_healthcheck_reports_ready() -> None:
    result = runner.invoke(app, ["healthcheck"])

    assert result.exit_code == 0
    assert "gym-cash-close is ready" in result.output


def test_current_creates_and_prints_open_period() -> None:
    result = runner.invoke(app, ["current"])

    assert result.exit_code == 0
    assert "Open period #1" in result.output
    assert "Expected cash: 0.00" in result.output


def test_close_then_export_json(
    tmp_path: Path,
    open_period_id: int,
    reference_ledger: None,
) -> None:
    closed = runner.invoke(
        app,
        [
            "close",
            "--declared-cash",
            "90.00",
            "--declared-non-cash",
            "140.00",
            "--end-at",
            "2026-03-02T20:00:00",
            "--notes",
            "evening shift",
        ],
    )
    target = tmp_path / "close.json"
    exported = runner.invoke(
        app,
        ["export", str(open_period_id), "--format", "json", "--output", str(target)],
    )

    assert closed.exit_code == 0
    assert f"Closed period #{open_period_id}" in closed.output
    assert "Cash: expected 90.00 | actual 90.00 | difference 0.00" in closed.output
    assert "Total: expected 230.00 | actual 230.00 | difference 0.00" in closed.output
    assert "New open period #" in closed.output
    assert exported.exit_code == 0
    payload = json.loads(target.read_text())
    assert payload["close_id"] == open_period_id
    assert payload["notes"] == "evening shift"
    assert payload["totals"]["expected_cash_amount"] == "90.00"


def test_close_rejects_end_before_start(open_period_id: int) -> None:
    result = runner.invoke(
        app,
        ["close", "--declared-cash", "0.00", "--end-at", "2026-03-01T00:00:00"],
    )

    assert result.exit_code == 1
    assert "CLOSE_END_BEFORE_PERIOD_START" in result.output


def test_export_unknown_period_fails() -> None:
    result = runner.invoke(app, ["export", "42"])

    assert result.exit_code == 1
    assert "PERIOD_NOT_FOUND" in result.output
