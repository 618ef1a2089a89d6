from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict

from ..exceptions import PermissionError, ValidationError
from ..models import DateRange
from .base import BaseClient


class ReportEnvelope(BaseModel):
    model_config = ConfigDict(extra="allow")

    success: bool = False
    data: Any = None
    summary: dict[str, Any] | None = None
    message: str | None = None
    error: str | None = None


@dataclass
class ReportsClient(BaseClient):
    async def get_sales_report(self, date_range: DateRange, timeframe: str = "daily") -> ReportEnvelope:
        return await self._fetch_report("/reports/sales", date_range, timeframe=timeframe)

    async def get_sales_by_category(self, date_range: DateRange) -> ReportEnvelope:
        return await self._fetch_report("/reports/sales/categories", date_range)

    async def get_expense_transactions(self, date_range: DateRange, category: str | None = None) -> ReportEnvelope:
        return await self._fetch_report("/reports/expenses/transactions", date_range, category=category)

    async def get_expenses_by_category(self, date_range: DateRange) -> ReportEnvelope:
        return await self._fetch_report("/reports/expenses/categories", date_range)

    async def get_expense_trends(self, date_range: DateRange, group_by: str = "month") -> ReportEnvelope:
        return await self._fetch_report("/reports/expenses/trends", date_range, groupBy=group_by)

    async def get_financial_summary(self, date_range: DateRange) -> ReportEnvelope:
        return await self._fetch_report("/reports/financial/summary", date_range)

    async def get_profit_and_loss(self, date_range: DateRange) -> ReportEnvelope:
        return await self._fetch_report("/reports/profit-loss", date_range)

    async def get_cash_flow(self, date_range: DateRange) -> ReportEnvelope:
        return await self._fetch_report("/reports/cash-flow", date_range)

    async def get_cash_drawer(self, date_range: DateRange) -> ReportEnvelope:
        return await self._fetch_report("/reports/cash-drawer", date_range)

    async def _fetch_report(self, path: str, date_range: DateRange, **extra: str | None) -> ReportEnvelope:
        query: dict[str, str] = date_range.to_query()
        query.update({key: value for key, value in extra.items() if value})
        try:
            data = await self._request("GET", path, params=query, module="reports", operation=path)
        except ValidationError as exc:
            raise ValidationError(
                code="REPORT_INVALID_DATE_RANGE",
                message=exc.message,
                details=exc.details,
                trace_id=exc.trace_id,
                status_code=exc.status_code,
            ) from exc
        except PermissionError as exc:
            raise PermissionError(
                code="REPORT_SCOPE_FORBIDDEN",
                message=exc.message,
                details=exc.details,
                trace_id=exc.trace_id,
                status_code=exc.status_code,
            ) from exc
        if not isinstance(data, dict):
            raise ValueError("Expected report response to be a JSON object")
        return ReportEnvelope.model_validate(data)
