"""Export payload and renderers for closed cash periods.

Exports only read what was frozen on the period row at close time. The live
payment, refund and sale tables are never consulted here, which keeps a
re-export byte-identical no matter what happened after the close.
"""

from __future__ import annotations

import csv
import enum
import json
from datetime import datetime
from decimal import Decimal
from io import BytesIO, StringIO
from typing import Any

from openpyxl import Workbook
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter

from gym_cash_close.db.models.cash_period import CashPeriod, PeriodStatus
from gym_cash_close.domain.errors import PeriodNotClosedError, SnapshotFormatError
from gym_cash_close.domain.money import ZERO, format_money
from gym_cash_close.domain.periods import ensure_utc, local_date
from gym_cash_close.reporting.cash_close_snapshot import (
    BREAKDOWN_CATEGORIES,
    CATEGORIES_WITH_METHOD_SUMMARY,
    SUPPORTED_SNAPSHOT_VERSION,
)


class ExportFormat(enum.StrEnum):
    """Supported export encodings."""

    JSON = "json"
    CSV = "csv"
    XLSX = "xlsx"


MEDIA_TYPES = {
    ExportFormat.JSON: "application/json",
    ExportFormat.CSV: "text/csv; charset=utf-8",
    ExportFormat.XLSX: (
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
    ),
}

SHEET_TITLES = {
    "payments": "Payments",
    "refunds": "Refunds",
    "cash_in": "Cash In",
    "cash_out": "Cash Out",
    "payouts": "Payouts",
    "sales": "Sales",
}

ROW_COLUMNS = ("id", "occurred_at", "method", "raw_method", "amount", "note")
ROW_HEADERS = ("ID", "Occurred at", "Method", "Raw method", "Amount", "Note")

LEGACY_TOTAL_COLUMNS = (
    "expected_cash_amount",
    "expected_non_cash_amount",
    "expected_card_amount",
    "expected_transfer_amount",
    "expected_total_amount",
    "actual_cash_amount",
    "actual_non_cash_amount",
    "actual_total_amount",
    "difference_cash",
    "difference_non_cash",
    "difference_total",
    "revenue_total",
    "payouts_total",
    "cash_in_total",
    "cash_refunds_total",
    "cash_revenue",
    "card_revenue",
    "transfer_revenue",
)

REVENUE_SECTION = (
    ("Cash revenue", "cash_revenue"),
    ("Card revenue", "card_revenue"),
    ("Transfer revenue", "transfer_revenue"),
    ("Revenue total", "revenue_total"),
    ("Refunds total", "refunds_total"),
    ("Cash refunds", "cash_refunds_total"),
    ("Cash in", "cash_in_total"),
    ("Cash out", "cash_out_total"),
    ("Payouts total", "payouts_total"),
    ("Trainer commissions", "trainer_commissions"),
)


def _isoformat(value: datetime | None) -> str | None:
    if value is None:
        return None
    return ensure_utc(value).isoformat()


def _empty_breakdown() -> dict[str, Any]:
    section: dict[str, Any] = {}
    for category in BREAKDOWN_CATEGORIES:
        entry: dict[str, Any] = {"rows": []}
        if category in CATEGORIES_WITH_METHOD_SUMMARY:
            entry["summary_by_method"] = {}
        section[category] = entry
    return section


def _legacy_snapshot(period: CashPeriod) -> dict[str, Any]:
    """Rebuild a snapshot from stored columns for rows closed without a blob."""

    totals: dict[str, Any] = {
        column: format_money(Decimal(getattr(period, column) or ZERO))
        for column in LEGACY_TOTAL_COLUMNS
    }
    totals["sessions_total"] = period.sessions_total or 0
    breakdown = _empty_breakdown()
    breakdown["sessions"] = {"total_sessions": period.sessions_total or 0}
    return {
        "version": period.export_version or SUPPORTED_SNAPSHOT_VERSION,
        "generated_at": _isoformat(period.closed_at),
        "period": {
            "id": period.id,
            "period_type": str(period.period_type),
            "start_at": _isoformat(period.start_at),
            "end_at": _isoformat(period.end_at),
        },
        "totals": totals,
        "breakdown": breakdown,
    }


def _parse_snapshot(period: CashPeriod, supported_version: int) -> dict[str, Any]:
    try:
        snapshot = json.loads(period.snapshot_json or "")
    except ValueError as exc:
        raise SnapshotFormatError(details={"period_id": period.id}) from exc

    if not isinstance(snapshot, dict):
        raise SnapshotFormatError(details={"period_id": period.id})
    version = snapshot.get("version")
    if not isinstance(version, int) or version > supported_version:
        raise SnapshotFormatError(
            details={
                "period_id": period.id,
                "snapshot_version": version,
                "supported_version": supported_version,
            }
        )
    for key in ("period", "totals", "breakdown"):
        if not isinstance(snapshot.get(key), dict):
            raise SnapshotFormatError(
                details={"period_id": period.id, "missing_key": key}
            )
    return snapshot


def build_export_payload(
    period: CashPeriod,
    *,
    supported_version: int = SUPPORTED_SNAPSHOT_VERSION,
) -> dict[str, Any]:
    """Return the export document for a closed period from stored data only."""

    if period.status != PeriodStatus.CLOSED:
        raise PeriodNotClosedError(details={"period_id": period.id})

    if period.snapshot_json:
        snapshot = _parse_snapshot(period, supported_version)
    else:
        snapshot = _legacy_snapshot(period)

    return {
        "close_id": period.id,
        "status": str(period.status),
        "closed_at": _isoformat(period.closed_at),
        "closed_by": period.closed_by,
        "notes": period.notes,
        "export_version": period.export_version,
        **snapshot,
    }


def export_filename(
    payload: dict[str, Any],
    period_id: int,
    fmt: ExportFormat | str,
    *,
    timezone_name: str = "UTC",
) -> str:
    """Return ``cash-close-{id}-{YYYY-MM-DD}.{ext}`` using the close date."""

    stamp = payload.get("closed_at") or payload.get("period", {}).get("end_at")
    if stamp:
        day = local_date(datetime.fromisoformat(stamp), timezone_name)
        return f"cash-close-{period_id}-{day.isoformat()}.{ExportFormat(fmt)}"
    return f"cash-close-{period_id}.{ExportFormat(fmt)}"


def render_json(payload: dict[str, Any]) -> bytes:
    return json.dumps(payload, indent=2, sort_keys=True).encode("utf-8")


def render_csv(payload: dict[str, Any]) -> bytes:
    """Write a summary section followed by one section per breakdown category."""

    output = StringIO()
    writer = csv.writer(output, lineterminator="\n")
    period = payload.get("period", {})
    totals = payload.get("totals", {})

    writer.writerow(["section", "summary"])
    writer.writerow(["close_id", payload.get("close_id")])
    writer.writerow(["period_type", period.get("period_type")])
    writer.writerow(["start_at", period.get("start_at")])
    writer.writerow(["end_at", period.get("end_at")])
    writer.writerow(["closed_at", payload.get("closed_at")])
    writer.writerow(["export_version", payload.get("export_version")])
    for key in sorted(totals):
        writer.writerow([key, totals[key]])

    breakdown = payload.get("breakdown", {})
    for category in BREAKDOWN_CATEGORIES:
        writer.writerow([])
        writer.writerow(["section", category])
        writer.writerow(ROW_COLUMNS)
        for row in breakdown.get(category, {}).get("rows", []):
            writer.writerow([row.get(column) for column in ROW_COLUMNS])
    return output.getvalue().encode("utf-8")


def _money_cell(value: Any) -> Decimal:
    return Decimal(str(value)) if value is not None else ZERO


def _write_summary_sheet(sheet: Any, payload: dict[str, Any]) -> None:
    bold = Font(bold=True)
    period = payload.get("period", {})
    totals = payload.get("totals", {})

    sheet["A1"] = "Cash close report"
    sheet["A1"].font = Font(bold=True, size=14)
    sheet["B1"] = f"version {payload.get('version')}"
    metadata = (
        ("Close ID", payload.get("close_id")),
        ("Period type", period.get("period_type")),
        ("Start", period.get("start_at")),
        ("End", period.get("end_at")),
        ("Closed at", payload.get("closed_at")),
        ("Closed by", payload.get("closed_by")),
        ("Notes", payload.get("notes")),
    )
    for row_index, (label, value) in enumerate(metadata, start=2):
        sheet.cell(row=row_index, column=1, value=label).font = bold
        sheet.cell(row=row_index, column=2, value=value)

    for column_index, header in enumerate(
        ("Item", "Expected", "Actual", "Difference"), start=1
    ):
        sheet.cell(row=10, column=column_index, value=header).font = bold

    reconciliation = (
        ("Cash", "expected_cash_amount", "actual_cash_amount", "difference_cash"),
        (
            "Non-cash",
            "expected_non_cash_amount",
            "actual_non_cash_amount",
            "difference_non_cash",
        ),
        ("Total", "expected_total_amount", "actual_total_amount", "difference_total"),
    )
    for row_index, (label, *keys) in enumerate(reconciliation, start=11):
        sheet.cell(row=row_index, column=1, value=label)
        for column_index, key in enumerate(keys, start=2):
            cell = sheet.cell(
                row=row_index,
                column=column_index,
                value=_money_cell(totals.get(key)),
            )
            cell.number_format = "#,##0.00"

    sheet.cell(row=15, column=1, value="Revenue and payouts").font = bold
    for row_index, (label, key) in enumerate(REVENUE_SECTION, start=16):
        sheet.cell(row=row_index, column=1, value=label)
        cell = sheet.cell(row=row_index, column=2, value=_money_cell(totals.get(key)))
        cell.number_format = "#,##0.00"
    sessions_row = 16 + len(REVENUE_SECTION)
    sheet.cell(row=sessions_row, column=1, value="Sessions")
    sheet.cell(row=sessions_row, column=2, value=totals.get("sessions_total", 0))

    sheet.column_dimensions["A"].width = 24
    for column_index in range(2, 5):
        sheet.column_dimensions[get_column_letter(column_index)].width = 16


def _write_rows_sheet(sheet: Any, rows: list[dict[str, Any]]) -> None:
    bold = Font(bold=True)
    for column_index, header in enumerate(ROW_HEADERS, start=1):
        sheet.cell(row=1, column=column_index, value=header).font = bold
    amount_column = ROW_COLUMNS.index("amount") + 1
    for row in rows:
        sheet.append(
            [
                _money_cell(row.get(column)) if column == "amount" else row.get(column)
                for column in ROW_COLUMNS
            ]
        )
        sheet.cell(row=sheet.max_row, column=amount_column).number_format = "#,##0.00"
    sheet.freeze_panes = "A2"


def render_workbook(payload: dict[str, Any]) -> bytes:
    workbook = Workbook()
    summary = workbook.active
    summary.title = "Summary"
    _write_summary_sheet(summary, payload)

    breakdown = payload.get("breakdown", {})
    for category in BREAKDOWN_CATEGORIES:
        sheet = workbook.create_sheet(title=SHEET_TITLES[category])
        _write_rows_sheet(sheet, breakdown.get(category, {}).get("rows", []))

    output = BytesIO()
    workbook.save(output)
    return output.getvalue()


RENDERERS = {
    ExportFormat.JSON: render_json,
    ExportFormat.CSV: render_csv,
    ExportFormat.XLSX: render_workbook,
}


def render_export(payload: dict[str, Any], fmt: ExportFormat | str) -> bytes:
    return RENDERERS[ExportFormat(fmt)](payload)
