from __future__ import annotations

from datetime import date
from typing import Callable

import httpx
import pytest

from backoffice_reports.clients import ReportsClient
from backoffice_reports.exceptions import (
    PermissionError,
    ServerError,
    TransportError,
    ValidationError,
)
from backoffice_reports.http_client import TRACE_HEADER, AsyncHttpClient
from backoffice_reports.models import DateRange

from .support import Handler

MARCH = DateRange(start_date=date(2023, 3, 1), end_date=date(2023, 3, 31))


@pytest.mark.asyncio
async def test_sales_report_sends_range_auth_and_trace(make_reports: Callable[..., ReportsClient]) -> None:
    seen: list[httpx.Request] = []

    def _handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(
            200,
            json={"success": True, "data": [{"amount": 10}], "summary": {"totalSales": 10}},
            headers={TRACE_HEADER: "trace-from-server"},
        )

    reports = make_reports(_handler, access_token="token-1", store_id="store-9")

    envelope = await reports.get_sales_report(MARCH)

    assert envelope.success is True
    assert envelope.data == [{"amount": 10}]
    assert envelope.summary == {"totalSales": 10}
    request = seen[0]
    assert request.url.path == "/reports/sales"
    assert dict(request.url.params) == {"startDate": "2023-03-01", "endDate": "2023-03-31", "timeframe": "daily"}
    assert request.headers["Authorization"] == "Bearer token-1"
    assert request.headers["X-Store-ID"] == "store-9"
    assert request.headers[TRACE_HEADER]
    assert reports.http.last_operation is not None
    assert reports.http.last_operation.result == "success"
    assert reports.http.last_operation.trace_id == "trace-from-server"


@pytest.mark.parametrize(
    ("method", "args", "path", "extra"),
    [
        ("get_sales_by_category", (), "/reports/sales/categories", {}),
        ("get_expense_transactions", ("Rent",), "/reports/expenses/transactions", {"category": "Rent"}),
        ("get_expense_transactions", (), "/reports/expenses/transactions", {}),
        ("get_expenses_by_category", (), "/reports/expenses/categories", {}),
        ("get_expense_trends", (), "/reports/expenses/trends", {"groupBy": "month"}),
        ("get_financial_summary", (), "/reports/financial/summary", {}),
        ("get_profit_and_loss", (), "/reports/profit-loss", {}),
        ("get_cash_flow", (), "/reports/cash-flow", {}),
        ("get_cash_drawer", (), "/reports/cash-drawer", {}),
    ],
)
@pytest.mark.asyncio
async def test_report_routes(
    make_reports: Callable[..., ReportsClient],
    method: str,
    args: tuple[str, ...],
    path: str,
    extra: dict[str, str],
) -> None:
    seen: list[httpx.Request] = []

    def _handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"success": True, "data": []})

    reports = make_reports(_handler)

    envelope = await getattr(reports, method)(MARCH, *args)

    assert envelope.success is True
    assert seen[0].url.path == path
    assert dict(seen[0].url.params) == {"startDate": "2023-03-01", "endDate": "2023-03-31", **extra}
    assert "Authorization" not in seen[0].headers


@pytest.mark.parametrize(
    ("status", "error_type", "code"),
    [
        (400, ValidationError, "REPORT_INVALID_DATE_RANGE"),
        (422, ValidationError, "REPORT_INVALID_DATE_RANGE"),
        (403, PermissionError, "REPORT_SCOPE_FORBIDDEN"),
        (500, ServerError, "HTTP_ERROR"),
    ],
)
@pytest.mark.asyncio
async def test_report_errors_are_mapped(
    make_reports: Callable[..., ReportsClient],
    status: int,
    error_type: type[Exception],
    code: str,
) -> None:
    def _handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status, json={"success": False, "error": "rejected"})

    reports = make_reports(_handler)

    with pytest.raises(error_type) as excinfo:
        await reports.get_financial_summary(MARCH)

    assert excinfo.value.code == code
    assert excinfo.value.message == "rejected"
    assert excinfo.value.status_code == status


@pytest.mark.asyncio
async def test_non_object_report_body_is_rejected(make_reports: Callable[..., ReportsClient]) -> None:
    reports = make_reports(lambda request: httpx.Response(200, json=[1, 2, 3]))

    with pytest.raises(ValueError, match="JSON object"):
        await reports.get_cash_flow(MARCH)


@pytest.mark.asyncio
async def test_transport_failures_become_transport_errors(make_http: Callable[[Handler], AsyncHttpClient]) -> None:
    def _handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    http = make_http(_handler)

    with pytest.raises(TransportError) as excinfo:
        await http.get_json("/sales")

    assert excinfo.value.code == "TRANSPORT_ERROR"
    assert excinfo.value.status_code == 0
    assert http.last_operation is not None
    assert http.last_operation.result == "error"


@pytest.mark.asyncio
async def test_invalid_json_body(make_http: Callable[[Handler], AsyncHttpClient]) -> None:
    http = make_http(lambda request: httpx.Response(200, text="<html>oops</html>"))

    with pytest.raises(TransportError) as excinfo:
        await http.get_json("/sales")

    assert excinfo.value.code == "INVALID_JSON"


@pytest.mark.asyncio
async def test_empty_body_returns_none(make_http: Callable[[Handler], AsyncHttpClient]) -> None:
    http = make_http(lambda request: httpx.Response(204))

    assert await http.get_json("/sales") is None


@pytest.mark.asyncio
async def test_non_json_error_body_keeps_text(make_http: Callable[[Handler], AsyncHttpClient]) -> None:
    http = make_http(lambda request: httpx.Response(502, text="Bad Gateway"))

    with pytest.raises(ServerError) as excinfo:
        await http.get_json("/sales")

    assert excinfo.value.message == "Bad Gateway"


@pytest.mark.asyncio
async def test_owned_client_is_closed(config) -> None:
    async with AsyncHttpClient(config=config) as http:
        assert http.client is not None
        assert str(http.client.base_url) == "https://api.example.com/"

    assert http.client.is_closed
