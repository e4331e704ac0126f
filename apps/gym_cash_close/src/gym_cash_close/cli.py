"""CLI bootstrap for gym-cash-close."""

import logging
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import NoReturn

import typer
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from gym_cash_close.api.dependencies import build_cash_period_service
from gym_cash_close.api.error_handlers import map_cash_close_error
from gym_cash_close.core.settings import get_settings
from gym_cash_close.db import session as db_session
from gym_cash_close.domain.errors import DomainError
from gym_cash_close.domain.money import format_money, parse_money
from gym_cash_close.reporting.cash_close_export import (
    ExportFormat,
    build_export_payload,
    export_filename,
    render_export,
)
from gym_cash_close.services.cash_period_service import CloseCashPeriodInput

app = typer.Typer(help="CLI for gym cash period reconciliation and closing.")


def _fail(exc: Exception) -> NoReturn:
    error = map_cash_close_error(exc)
    typer.echo(f"{error.code}: {error.message}", err=True)
    raise typer.Exit(code=1)


@app.callback()
def configure() -> None:
    """Apply the configured log level."""
    logging.basicConfig(level=get_settings().log_level.upper())


@app.command("healthcheck")
def healthcheck() -> None:
    """Verify that the database answers."""
    with db_session.SessionFactory() as session:
        try:
            session.execute(text("SELECT 1"))
        except SQLAlchemyError as exc:
            _fail(exc)
    typer.echo("gym-cash-close is ready")


@app.command("current")
def current() -> None:
    """Print the open period and its expected cash."""
    settings = get_settings()
    with db_session.SessionFactory() as session:
        service = build_cash_period_service(session, settings)
        try:
            overview = service.current_overview()
        except (DomainError, SQLAlchemyError) as exc:
            _fail(exc)
        stats = overview.snapshot.stats
        typer.echo(f"Open period #{overview.period.id}")
        typer.echo(f"Since: {overview.date_range.start_at.isoformat()}")
        typer.echo(f"Expected cash: {format_money(stats.expected_cash)}")
        typer.echo(f"Expected non-cash: {format_money(stats.expected_non_cash)}")
        typer.echo(f"Expected total: {format_money(stats.expected_total)}")


@app.command("close")
def close(
    declared_cash: str = typer.Option(..., help="Counted drawer cash, e.g. 90.00"),
    declared_non_cash: str = typer.Option("0.00", help="Card plus transfer total"),
    end_at: datetime | None = typer.Option(None, help="Close instant in UTC"),
    notes: str | None = typer.Option(None),
    actor_id: int | None = typer.Option(None),
) -> None:
    """Close the open period with the declared amounts."""
    try:
        cash_amount = parse_money(declared_cash)
        non_cash_amount = parse_money(declared_non_cash)
    except ArithmeticError as exc:
        raise typer.BadParameter("Amounts must be decimal numbers.") from exc

    settings = get_settings()
    with db_session.SessionFactory() as session:
        service = build_cash_period_service(session, settings)
        try:
            result = service.close_period(
                CloseCashPeriodInput(
                    declared_cash_amount=cash_amount,
                    declared_non_cash_amount=non_cash_amount,
                    end_at=end_at,
                    notes=notes,
                    actor_id=actor_id,
                )
            )
        except (DomainError, SQLAlchemyError) as exc:
            _fail(exc)

        closed = result.closed_period
        typer.echo(f"Closed period #{closed.id}")
        for label, expected, actual, difference in (
            (
                "Cash",
                closed.expected_cash_amount,
                closed.actual_cash_amount,
                closed.difference_cash,
            ),
            (
                "Non-cash",
                closed.expected_non_cash_amount,
                closed.actual_non_cash_amount,
                closed.difference_non_cash,
            ),
            (
                "Total",
                closed.expected_total_amount,
                closed.actual_total_amount,
                closed.difference_total,
            ),
        ):
            typer.echo(
                f"{label}: expected {format_money(Decimal(expected))} | "
                f"actual {format_money(Decimal(actual))} | "
                f"difference {format_money(Decimal(difference))}"
            )
        typer.echo(f"New open period #{result.new_open_period.id}")
        if result.warning_code:
            typer.echo(f"Warning: {result.warning_code}")


@app.command("export")
def export(
    period_id: int,
    format: ExportFormat = typer.Option(ExportFormat.JSON, "--format"),
    output: Path | None = typer.Option(None, "--output", dir_okay=False),
) -> None:
    """Write the immutable export of a closed period."""
    settings = get_settings()
    with db_session.SessionFactory() as session:
        service = build_cash_period_service(session, settings)
        try:
            payload = build_export_payload(
                service.get_period(period_id),
                supported_version=settings.cash_close_export_version,
            )
        except (DomainError, SQLAlchemyError) as exc:
            _fail(exc)

    target = output or Path(
        export_filename(
            payload,
            period_id,
            format,
            timezone_name=settings.app_timezone,
        )
    )
    target.write_bytes(render_export(payload, format))
    typer.echo(f"Wrote {target}")


def main() -> None:
    """Run the gym-cash-close CLI application."""
    app()


if __name__ == "__main__":
    main()
