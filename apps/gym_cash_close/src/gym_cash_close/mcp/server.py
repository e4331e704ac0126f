"""MCP server exposing gym_cash_close API capabilities."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Literal, Protocol

import httpx
from fastmcp import FastMCP

from gym_cash_close.core.settings import get_settings

PeriodTypeName = Literal["DAILY", "WEEKLY", "MONTHLY", "MANUAL"]
ParamValue = str | int | float | bool | None
ParamsMapping = Mapping[str, ParamValue]

CASH_CLOSINGS_PATH = "/v1/cash-closings"


class APIRequester(Protocol):
    """Requester abstraction to simplify HTTP boundary testing."""

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: ParamsMapping | None = None,
        json_body: Mapping[str, object] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> object: ...


@dataclass(slots=True, frozen=True)
class HTTPAPIRequester:
    """HTTP client wrapper for gym_cash_close API."""

    base_url: str
    timeout_seconds: float

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: ParamsMapping | None = None,
        json_body: Mapping[str, object] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> object:
        async with httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout_seconds,
        ) as client:
            response = await client.request(
                method=method,
                url=path,
                params=params,
                json=dict(json_body) if json_body else None,
                headers=dict(headers) if headers else None,
            )

        if response.is_success:
            return _parse_json_response(response)
        raise RuntimeError(_build_api_error(response))


def _parse_json_response(response: httpx.Response) -> object:
    try:
        return response.json()
    except ValueError as exc:
        raise RuntimeError(
            f"API returned a non-JSON response with status {response.status_code}."
        ) from exc


def _build_api_error(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        text = response.text.strip()
        if text:
            return f"API request failed with status {response.status_code}: {text}"
        return f"API request failed with status {response.status_code}."

    if isinstance(payload, Mapping):
        error_code = payload.get("code")
        error_message = payload.get("message")
        details = payload.get("details")
        if isinstance(error_code, str) and isinstance(error_message, str):
            if details is None:
                return f"API error {error_code}: {error_message}"
            return f"API error {error_code}: {error_message} | details={details}"

    return f"API request failed with status {response.status_code}: {payload}"


def _normalize_base_url(value: str) -> str:
    return value.rstrip("/")


def _range_params(
    start_at: str | None,
    end_at: str | None,
    employee_id: int | None = None,
) -> dict[str, ParamValue] | None:
    if (start_at is None) != (end_at is None):
        raise ValueError("start_at and end_at must be provided together.")
    params: dict[str, ParamValue] = {}
    if start_at is not None:
        params["start_at"] = start_at
        params["end_at"] = end_at
    if employee_id is not None:
        params["employee_id"] = employee_id
    return params or None


def _actor_headers(actor_id: int | None) -> dict[str, str] | None:
    if actor_id is None:
        return None
    return {"X-Actor-Id": str(actor_id)}


def create_mcp_server(
    *,
    api_base_url: str | None = None,
    timeout_seconds: float | None = None,
    requester: APIRequester | None = None,
) -> FastMCP:
    """Create MCP server with curated tools mapped to REST endpoints."""

    settings = get_settings()
    resolved_base_url = _normalize_base_url(api_base_url or settings.mcp_api_base_url)
    resolved_timeout = (
        settings.mcp_api_timeout_seconds if timeout_seconds is None else timeout_seconds
    )
    if resolved_timeout <= 0:
        raise ValueError("MCP API timeout must be greater than zero.")

    mcp = FastMCP(name="Gym Cash Close")
    api_requester: APIRequester = requester or HTTPAPIRequester(
        base_url=resolved_base_url,
        timeout_seconds=resolved_timeout,
    )

    @mcp.tool
    async def get_current_period(actor_id: int | None = None) -> object:
        """Return the open cash period with live expected totals."""

        return await api_requester.request(
            "GET",
            f"{CASH_CLOSINGS_PATH}/period/current",
            headers=_actor_headers(actor_id),
        )

    @mcp.tool
    async def calculate_expected(
        start_at: str | None = None,
        end_at: str | None = None,
        employee_id: int | None = None,
    ) -> object:
        """Preview expected cash for a range or for the open period."""

        return await api_requester.request(
            "GET",
            f"{CASH_CLOSINGS_PATH}/calculate-expected",
            params=_range_params(start_at, end_at, employee_id),
        )

    @mcp.tool
    async def get_financial_preview(
        start_at: str | None = None,
        end_at: str | None = None,
    ) -> object:
        """Return revenue, sessions, commissions and payout KPIs."""

        return await api_requester.request(
            "GET",
            f"{CASH_CLOSINGS_PATH}/financial-preview",
            params=_range_params(start_at, end_at),
        )

    @mcp.tool
    async def get_sales_preview(
        start_at: str | None = None,
        end_at: str | None = None,
        employee_id: int | None = None,
    ) -> object:
        """Return product sales totals and the top products by revenue."""

        return await api_requester.request(
            "GET",
            f"{CASH_CLOSINGS_PATH}/sales-preview",
            params=_range_params(start_at, end_at, employee_id),
        )

    @mcp.tool
    async def close_cash_period(
        declared_cash_amount: str,
        declared_non_cash_amount: str = "0.00",
        end_at: str | None = None,
        period_type: PeriodTypeName | None = None,
        notes: str | None = None,
        actor_id: int | None = None,
    ) -> object:
        """Close the open period with the declared drawer amounts."""

        payload: dict[str, object] = {
            "declared_cash_amount": declared_cash_amount,
            "declared_non_cash_amount": declared_non_cash_amount,
        }
        if end_at is not None:
            payload["end_at"] = end_at
        if period_type is not None:
            payload["period_type"] = period_type
        if notes is not None:
            payload["notes"] = notes

        return await api_requester.request(
            "POST",
            CASH_CLOSINGS_PATH,
            json_body=payload,
            headers=_actor_headers(actor_id),
        )

    @mcp.tool
    async def list_close_history(page: int = 1, limit: int = 20) -> object:
        """List closed periods, most recent first."""

        return await api_requester.request(
            "GET",
            f"{CASH_CLOSINGS_PATH}/history",
            params={"page": page, "limit": limit},
        )

    @mcp.tool
    async def get_cash_period(period_id: int) -> object:
        """Return one period with adjustments and final cash balance."""

        return await api_requester.request(
            "GET",
            f"{CASH_CLOSINGS_PATH}/{period_id}",
        )

    @mcp.tool
    async def export_cash_period_json(period_id: int) -> object:
        """Return the immutable JSON export of a closed period."""

        return await api_requester.request(
            "GET",
            f"{CASH_CLOSINGS_PATH}/{period_id}/export",
            params={"format": "json"},
        )

    return mcp


def main() -> None:
    """Run the MCP server over stdio."""

    create_mcp_server().run()


if __name__ == "__main__":
    main()
