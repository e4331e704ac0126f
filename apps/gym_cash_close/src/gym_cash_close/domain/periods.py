"""Date range and clock helpers for cash periods.

Every timestamp handled by the service is normalized to UTC. SQLite returns
naive datetimes even for ``DateTime(timezone=True)`` columns, so values read
back from storage pass through :func:`ensure_utc` before being compared.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import UTC, date, datetime, timedelta
from zoneinfo import ZoneInfo

from gym_cash_close.domain.errors import InvalidRequestError, compose_error_message

MONTH_PATTERN = re.compile(r"^(\d{4})-(\d{2})$")


def utc_now() -> datetime:
    """Return the current aware UTC timestamp."""

    return datetime.now(tz=UTC)


def ensure_utc(value: datetime) -> datetime:
    """Treat naive values as UTC and convert aware values to UTC."""

    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def local_date(value: datetime, timezone_name: str) -> date:
    """Return the calendar date of ``value`` in the given IANA timezone."""

    return ensure_utc(value).astimezone(ZoneInfo(timezone_name)).date()


@dataclass(slots=True, frozen=True)
class DateRange:
    """Inclusive ``[start_at, end_at]`` interval in UTC."""

    start_at: datetime
    end_at: datetime

    def __post_init__(self) -> None:
        start_at = ensure_utc(self.start_at)
        end_at = ensure_utc(self.end_at)
        if end_at < start_at:
            raise InvalidRequestError(
                message=compose_error_message(
                    cause="Range end_at is earlier than start_at.",
                    action="Send an end_at at or after start_at.",
                ),
                details={
                    "start_at": start_at.isoformat(),
                    "end_at": end_at.isoformat(),
                },
            )
        object.__setattr__(self, "start_at", start_at)
        object.__setattr__(self, "end_at", end_at)

    @classmethod
    def ordered(cls, first: datetime, second: datetime) -> DateRange:
        """Build a range from two instants regardless of their order."""

        first_utc = ensure_utc(first)
        second_utc = ensure_utc(second)
        if second_utc < first_utc:
            return cls(start_at=second_utc, end_at=first_utc)
        return cls(start_at=first_utc, end_at=second_utc)


def month_range(month: str, timezone_name: str) -> DateRange:
    """Return the UTC range covering calendar month ``YYYY-MM`` in a timezone.

    The range starts at local midnight of the first day and ends one
    microsecond before local midnight of the following month.
    """

    match = MONTH_PATTERN.match(month)
    year, month_number = (0, 0)
    if match is not None:
        year, month_number = int(match.group(1)), int(match.group(2))
    if not (1 <= year <= 9998 and 1 <= month_number <= 12):
        raise InvalidRequestError(
            message=compose_error_message(
                cause=f"Month '{month}' is not a valid YYYY-MM value.",
                action="Send month as YYYY-MM, for example 2026-03.",
            ),
            details={"month": month},
        )

    zone = ZoneInfo(timezone_name)
    start_local = datetime(year, month_number, 1, tzinfo=zone)
    if month_number == 12:
        next_local = datetime(year + 1, 1, 1, tzinfo=zone)
    else:
        next_local = datetime(year, month_number + 1, 1, tzinfo=zone)
    return DateRange(
        start_at=start_local,
        end_at=next_local - timedelta(microseconds=1),
    )
