from __future__ import annotations

from fastapi.testclient import TestClient

CURRENT_URL = "/v1/cash-closings/period/current"


def test_current_period_is_created_on_first_request(client: TestClient) -> None:
    first = client.get(CURRENT_URL)
    second = client.get(CURRENT_URL)

    assert first.status_code == 200
    assert second.status_code == 200
    body = first.json()
    assert body["open_period"]["status"] == "OPEN"
    assert body["open_period"]["period_type"] == "MANUAL"
    assert body["open_period"]["expected_cash_amount"] is None
    assert body["open_period"]["cash_difference_state"] is None
    assert second.json()["open_period"]["id"] == body["open_period"]["id"]
    assert body["expected"]["expected_total"] == "0.00"


def test_current_period_reports_live_expected_totals(
    client: TestClient,
    open_period_id: int,
    reference_ledger: None,
) -> None:
    response = client.get(CURRENT_URL, headers={"X-Actor-Id": "3"})

    assert response.status_code == 200
    body = response.json()
    assert body["open_period"]["id"] == open_period_id
    assert body["range"]["start_at"].startswith("2026-03-02T08:00:00")
    assert body["expected"]["expected_cash"] == "90.00"
    assert body["expected"]["expected_card"] == "180.00"
    assert body["expected"]["expected_transfer"] == "-40.00"
    assert body["expected"]["expected_non_cash"] == "140.00"
    assert body["expected"]["expected_total"] == "230.00"
    assert body["summary"]["payouts_total"] == "90.00"
    assert body["summary"]["cash_in_total"] == "50.00"
