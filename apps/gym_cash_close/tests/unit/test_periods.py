from __future__ import annotations

from datetime import UTC, date, datetime, timedelta, timezone

import pytest

from gym_cash_close.domain.errors import InvalidRequestError
from gym_cash_close.domain.periods import (
    DateRange,
    ensure_utc,
    local_date,
    month_range,
)


def test_ensure_utc_treats_naive_values_as_utc() -> None:
    naive = datetime(2026, 3, 2, 10, 0)

    assert ensure_utc(naive) == datetime(2026, 3, 2, 10, 0, tzinfo=UTC)


def test_ensure_utc_converts_offsets() -> None:
    minus_three = timezone(timedelta(hours=-3))
    value = datetime(2026, 3, 2, 21, 30, tzinfo=minus_three)

    assert ensure_utc(value) == datetime(2026, 3, 3, 0, 30, tzinfo=UTC)


def test_local_date_uses_given_timezone() -> None:
    value = datetime(2026, 3, 3, 1, 0, tzinfo=UTC)

    assert local_date(value, "UTC") == date(2026, 3, 3)
    assert local_date(value, "America/Sao_Paulo") == date(2026, 3, 2)


def test_date_range_rejects_end_before_start() -> None:
    with pytest.raises(InvalidRequestError) as exc_info:
        DateRange(
            start_at=datetime(2026, 3, 2, 10, 0, tzinfo=UTC),
            end_at=datetime(2026, 3, 2, 9, 0, tzinfo=UTC),
        )

    assert exc_info.value.code == "VALIDATION_ERROR"
    assert exc_info.value.status_code == 400


def test_date_range_accepts_zero_length_range() -> None:
    instant = datetime(2026, 3, 2, 10, 0, tzinfo=UTC)

    date_range = DateRange(start_at=instant, end_at=instant)

    assert date_range.start_at == date_range.end_at == instant


def test_date_range_ordered_swaps_reversed_bounds() -> None:
    later = datetime(2026, 3, 2, 18, 0)
    earlier = datetime(2026, 3, 2, 8, 0, tzinfo=UTC)

    date_range = DateRange.ordered(later, earlier)

    assert date_range.start_at == earlier
    assert date_range.end_at == datetime(2026, 3, 2, 18, 0, tzinfo=UTC)


def test_month_range_covers_the_whole_utc_month() -> None:
    date_range = month_range("2026-02", "UTC")

    assert date_range.start_at == datetime(2026, 2, 1, tzinfo=UTC)
    assert date_range.end_at == datetime(2026, 2, 28, 23, 59, 59, 999999, tzinfo=UTC)


def test_month_range_follows_local_midnight() -> None:
    date_range = month_range("2026-03", "America/Sao_Paulo")

    assert date_range.start_at == datetime(2026, 3, 1, 3, 0, tzinfo=UTC)
    assert date_range.end_at == datetime(2026, 4, 1, 2, 59, 59, 999999, tzinfo=UTC)


def test_month_range_rolls_december_into_next_year() -> None:
    date_range = month_range("2025-12", "UTC")

    assert date_range.end_at == datetime(2025, 12, 31, 23, 59, 59, 999999, tzinfo=UTC)


@pytest.mark.parametrize("month", ["2026-13", "2026-00", "2026-3", "March", "0000-01"])
def test_month_range_rejects_malformed_months(month: str) -> None:
    with pytest.raises(InvalidRequestError) as error:
        month_range(month, "UTC")

    assert error.value.details == {"month": month}
