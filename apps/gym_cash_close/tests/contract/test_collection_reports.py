from __future__ import annotations

from datetime import UTC, datetime
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session, sessionmaker

from gym_cash_close.db.models.payment import Payment, Refund

MARCH_10 = datetime(2026, 3, 10, 12, 0, tzinfo=UTC)
MARCH_20 = datetime(2026, 3, 20, 12, 0, tzinfo=UTC)
APRIL_1 = datetime(2026, 4, 1, 0, 0, tzinfo=UTC)


@pytest.fixture
def march_collections(sqlite_session_factory: sessionmaker[Session]) -> None:
    with sqlite_session_factory() as session:
        first = Payment(
            amount=Decimal("100.00"),
            method="cash",
            paid_at=MARCH_10,
            created_by=7,
            member_name="Ana",
        )
        session.add_all(
            [
                first,
                Payment(
                    amount=Decimal("80.00"),
                    method="Master Credit",
                    paid_at=MARCH_20,
                    created_by=7,
                ),
                Payment(
                    amount=Decimal("250.00"),
                    method="bank transfer",
                    paid_at=MARCH_20,
                    created_by=8,
                ),
                Payment(
                    amount=Decimal("40.00"),
                    method="cash",
                    paid_at=MARCH_20,
                    created_by=7,
                    status="pending",
                ),
                Payment(
                    amount=Decimal("999.00"),
                    method="cash",
                    paid_at=APRIL_1,
                    created_by=7,
                ),
            ]
        )
        session.flush()
        session.add(
            Refund(
                payment_id=first.id,
                amount=Decimal("30.00"),
                created_by=9,
                created_at=MARCH_20,
            )
        )
        session.commit()


def test_monthly_summary_groups_collections_per_employee(
    client: TestClient,
    march_collections: None,
) -> None:
    response = client.get(
        "/v1/cash-closings/monthly-summary",
        params={"month": "2026-03"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["month"] == "2026-03"
    assert body["range"]["start_at"].startswith("2026-03-01T00:00:00")
    assert [item["employee_id"] for item in body["employees"]] == [8, 7, 9]
    assert body["employees"][1] == {
        "employee_id": 7,
        "payments_count": 2,
        "cash_total": "100.00",
        "non_cash_total": "80.00",
        "total": "180.00",
        "refunds_total": "0.00",
    }
    assert body["employees"][2]["refunds_total"] == "30.00"
    assert body["grand_total"] == {
        "payments_count": 3,
        "cash_total": "100.00",
        "non_cash_total": "330.00",
        "gross_total": "430.00",
        "refunds_total": "30.00",
        "net_revenue": "400.00",
    }


def test_monthly_summary_requires_a_valid_month(client: TestClient) -> None:
    missing = client.get("/v1/cash-closings/monthly-summary")
    malformed = client.get(
        "/v1/cash-closings/monthly-summary",
        params={"month": "2026-3"},
    )

    assert missing.status_code == 400
    assert missing.json()["code"] == "VALIDATION_ERROR"
    assert malformed.status_code == 400
    assert malformed.json()["details"] == {"month": "2026-3"}


def test_employee_payments_lists_completed_payments_newest_first(
    client: TestClient,
    march_collections: None,
) -> None:
    response = client.get(
        "/v1/cash-closings/employee-payments",
        params={
            "employee_id": 7,
            "start_at": "2026-03-01T00:00:00Z",
            "end_at": "2026-03-31T23:59:59Z",
        },
    )

    assert response.status_code == 200
    body = response.json()
    assert body["employee_id"] == 7
    assert [item["amount"] for item in body["items"]] == ["80.00", "100.00"]
    assert body["items"][1]["member_name"] == "Ana"
    assert all(item["status"] == "completed" for item in body["items"])


def test_employee_payments_validates_range(client: TestClient) -> None:
    missing = client.get(
        "/v1/cash-closings/employee-payments",
        params={"employee_id": 7, "start_at": "2026-03-01T00:00:00Z"},
    )
    reversed_range = client.get(
        "/v1/cash-closings/employee-payments",
        params={
            "employee_id": 7,
            "start_at": "2026-03-31T00:00:00Z",
            "end_at": "2026-03-01T00:00:00Z",
        },
    )

    assert missing.status_code == 400
    assert reversed_range.status_code == 400
    assert reversed_range.json()["code"] == "VALIDATION_ERROR"
