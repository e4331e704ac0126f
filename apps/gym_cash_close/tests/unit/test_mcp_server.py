from __future__ import annotations

import asyncio
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

import httpx
import pytest
from fastmcp import Client

from gym_cash_close.mcp.server import _build_api_error, create_mcp_server


@dataclass
class FakeRequester:
    responses: dict[tuple[str, str], object]
    calls: list[dict[str, object]] = field(default_factory=list)

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, str | int | float | bool | None] | None = None,
        json_body: Mapping[str, object] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> object:
        self.calls.append(
            {
                "method": method,
                "path": path,
                "params": dict(params) if params else None,
                "json_body": dict(json_body) if json_body else None,
                "headers": dict(headers) if headers else None,
            }
        )

        value = self.responses[(method, path)]
        if isinstance(value, Exception):
            raise value
        return value


def _server(fake_requester: FakeRequester):
    return create_mcp_server(
        api_base_url="http://example.test",
        timeout_seconds=1,
        requester=fake_requester,
    )


def test_create_mcp_server_registers_expected_tools() -> None:
    async def scenario() -> list[str]:
        server = _server(FakeRequester(responses={}))
        async with Client(server) as client:
            tools = await client.list_tools()
        return sorted(tool.name for tool in tools)

    tool_names = asyncio.run(scenario())

    assert tool_names == [
        "calculate_expected",
        "close_cash_period",
        "export_cash_period_json",
        "get_cash_period",
        "get_current_period",
        "get_financial_preview",
        "get_sales_preview",
        "list_close_history",
    ]


def test_get_current_period_tool_returns_api_payload() -> None:
    expected_payload: dict[str, Any] = {
        "open_period": {"id": 3, "status": "OPEN"},
        "expected": {"expected_cash": "90.00"},
    }

    async def scenario() -> tuple[object, dict[str, object]]:
        fake_requester = FakeRequester(
            responses={("GET", "/v1/cash-closings/period/current"): expected_payload}
        )
        async with Client(_server(fake_requester)) as client:
            result = await client.call_tool("get_current_period", {"actor_id": 4})
        return result.data, fake_requester.calls[0]

    tool_result, recorded_call = asyncio.run(scenario())

    assert tool_result == expected_payload
    assert recorded_call["headers"] == {"X-Actor-Id": "4"}


def test_close_cash_period_tool_sends_expected_payload() -> None:
    async def scenario() -> dict[str, object]:
        fake_requester = FakeRequester(
            responses={("POST", "/v1/cash-closings"): {"close_id": 3}}
        )
        async with Client(_server(fake_requester)) as client:
            await client.call_tool(
                "close_cash_period",
                {
                    "declared_cash_amount": "90.00",
                    "declared_non_cash_amount": "140.00",
                    "end_at": "2026-03-02T20:00:00Z",
                    "notes": "evening shift",
                },
            )
        return fake_requester.calls[0]

    recorded_call = asyncio.run(scenario())

    assert recorded_call == {
        "method": "POST",
        "path": "/v1/cash-closings",
        "params": None,
        "json_body": {
            "declared_cash_amount": "90.00",
            "declared_non_cash_amount": "140.00",
            "end_at": "2026-03-02T20:00:00Z",
            "notes": "evening shift",
        },
        "headers": None,
    }


def test_calculate_expected_tool_forwards_range() -> None:
    async def scenario() -> dict[str, object]:
        fake_requester = FakeRequester(
            responses={("GET", "/v1/cash-closings/calculate-expected"): {"ok": True}}
        )
        async with Client(_server(fake_requester)) as client:
            await client.call_tool(
                "calculate_expected",
                {
                    "start_at": "2026-03-02T08:00:00Z",
                    "end_at": "2026-03-02T20:00:00Z",
                    "employee_id": 2,
                },
            )
        return fake_requester.calls[0]

    recorded_call = asyncio.run(scenario())

    assert recorded_call["params"] == {
        "start_at": "2026-03-02T08:00:00Z",
        "end_at": "2026-03-02T20:00:00Z",
        "employee_id": 2,
    }


def test_export_tool_requests_json_format() -> None:
    async def scenario() -> dict[str, object]:
        fake_requester = FakeRequester(
            responses={("GET", "/v1/cash-closings/3/export"): {"close_id": 3}}
        )
        async with Client(_server(fake_requester)) as client:
            await client.call_tool("export_cash_period_json", {"period_id": 3})
        return fake_requester.calls[0]

    recorded_call = asyncio.run(scenario())

    assert recorded_call["params"] == {"format": "json"}


def test_create_mcp_server_rejects_non_positive_timeout() -> None:
    with pytest.raises(ValueError, match="greater than zero"):
        create_mcp_server(api_base_url="http://example.test", timeout_seconds=0)


def test_build_api_error_uses_contract_payload_shape() -> None:
    response = httpx.Response(
        status_code=409,
        json={
            "code": "OPEN_PERIOD_EXISTS",
            "message": "Cause: duplicate. Action: repair.",
            "details": {"open_period_ids": [1, 2]},
        },
        request=httpx.Request("POST", "http://example.test/v1/cash-closings"),
    )

    error_message = _build_api_error(response)

    assert "OPEN_PERIOD_EXISTS" in error_message
    assert "details={'open_period_ids': [1, 2]}" in error_message
