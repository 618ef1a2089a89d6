"""Detail-view orchestration: identifier in, ``ReportViewModel`` out.

Each ``load_*`` coroutine decodes the identifier once, walks the source
chains for its report kind and hands the retrieved data to the aggregator.
Nothing here raises for bad identifiers or failing backends; the returned
view-model carries an ``Outcome`` describing what was degraded.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date
from typing import Any

import httpx

from .aggregator import (
    breakdown_from_summary,
    category_trend,
    financial_lines,
    financial_summary,
    find_category,
    monthly_totals,
    product_rollup,
    sales_summary,
)
from .clients.reports_client import ReportsClient
from .config import EngineConfig
from .exceptions import InvalidIdentifierError
from .http_client import AsyncHttpClient
from .logging import configure_logging, log_json
from .models import (
    Dataset,
    DateRange,
    Outcome,
    OutcomeStatus,
    ReportKind,
    ReportViewModel,
    TrendSeries,
)
from .period import (
    CategorySubject,
    FinancialPeriodSubject,
    MonthSubject,
    PeriodSubject,
    decode_identifier,
)
from .sources import (
    AttemptReporter,
    EndpointSource,
    ServiceSource,
    SourceChain,
    SyntheticSource,
    fetch_envelope,
    normalize_cash_drawer,
    normalize_expense,
    normalize_sale,
)
from .synthetic import SyntheticGenerator
from .telemetry import TelemetryLogger, build_event

logger = logging.getLogger(__name__)

INVALID_IDENTIFIER = "invalid identifier"


def _rows(data: object) -> list[dict[str, Any]]:
    if isinstance(data, Mapping):
        return [dict(data)]
    if isinstance(data, list):
        return [dict(row) for row in data if isinstance(row, Mapping)]
    return []


@dataclass
class ReportEngine:
    reports: ReportsClient
    generator: SyntheticGenerator = field(default_factory=SyntheticGenerator)
    today: date | None = None
    telemetry: TelemetryLogger | None = None

    @classmethod
    def from_config(
        cls,
        config: EngineConfig,
        *,
        access_token: str | None = None,
        store_id: str | None = None,
        client: httpx.AsyncClient | None = None,
        today: date | None = None,
    ) -> "ReportEngine":
        configure_logging(config.log_level)
        http = AsyncHttpClient(config=config, client=client)
        return cls(
            reports=ReportsClient(http=http, access_token=access_token, store_id=store_id),
            generator=SyntheticGenerator(seed=config.synthetic_seed),
            today=today,
            telemetry=TelemetryLogger(enabled=config.telemetry_enabled),
        )

    async def __aenter__(self) -> "ReportEngine":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.reports.http.aclose()

    # -- entry points -------------------------------------------------------

    async def load(self, identifier: str, *, selection: DateRange | None = None) -> ReportViewModel:
        """Dispatch on the identifier prefix; bare period tokens load the sales view."""
        started = time.monotonic()
        try:
            subject = self._decode(identifier, allow_bare_period=True)
        except InvalidIdentifierError as exc:
            return await self._finish(self._invalid(exc), started)
        if isinstance(subject, (CategorySubject, MonthSubject)):
            view = await self._expense_view(subject, selection)
        elif isinstance(subject, FinancialPeriodSubject):
            view = await self._financial_view(subject)
        else:
            view = await self._sales_view(subject)
        return await self._finish(view, started)

    async def load_sales_detail(self, identifier: str) -> ReportViewModel:
        started = time.monotonic()
        try:
            subject = self._decode(identifier, allow_bare_period=True)
        except InvalidIdentifierError as exc:
            return await self._finish(self._invalid(exc), started)
        return await self._finish(await self._sales_view(subject), started)

    async def load_expense_detail(self, identifier: str, selection: DateRange | None = None) -> ReportViewModel:
        started = time.monotonic()
        try:
            subject = self._decode(identifier)
            if not isinstance(subject, (CategorySubject, MonthSubject)):
                raise InvalidIdentifierError(identifier, "not an expense identifier")
        except InvalidIdentifierError as exc:
            return await self._finish(self._invalid(exc), started)
        return await self._finish(await self._expense_view(subject, selection), started)

    async def load_financial_detail(self, identifier: str) -> ReportViewModel:
        started = time.monotonic()
        try:
            subject = self._decode(identifier)
            if not isinstance(subject, FinancialPeriodSubject):
                raise InvalidIdentifierError(identifier, "not a financial identifier")
        except InvalidIdentifierError as exc:
            return await self._finish(self._invalid(exc), started)
        return await self._finish(await self._financial_view(subject), started)

    # -- source chains ------------------------------------------------------

    def sales_chain(self) -> SourceChain:
        return SourceChain(
            [
                ServiceSource("reports.sales", lambda period, _: self.reports.get_sales_report(period), normalize_sale),
                EndpointSource("endpoint.sales", self.reports, "/sales", normalize_sale),
            ],
            SyntheticSource(
                lambda period, _: Dataset(records=self.generator.sale_transactions(period), source="synthetic")
            ),
            kind=ReportKind.SALES.value,
            telemetry=self.telemetry,
        )

    def expense_chain(self) -> SourceChain:
        return SourceChain(
            [
                ServiceSource("reports.expenses", self.reports.get_expense_transactions, normalize_expense),
                EndpointSource("endpoint.expenses", self.reports, "/expenses", normalize_expense),
            ],
            SyntheticSource(
                lambda period, category: Dataset(
                    records=self.generator.expense_transactions(period, category), source="synthetic"
                )
            ),
            kind="expenses",
            synthesize_on_empty=True,
            telemetry=self.telemetry,
        )

    def cash_drawer_chain(self) -> SourceChain:
        return SourceChain(
            [
                ServiceSource("reports.cash_drawer", lambda period, _: self.reports.get_cash_drawer(period), normalize_cash_drawer),
                EndpointSource("endpoint.cash_drawer", self.reports, "/cash-drawer", normalize_cash_drawer),
            ],
            SyntheticSource(
                lambda period, _: Dataset(records=self.generator.cash_drawer_transactions(period), source="synthetic")
            ),
            kind="cash_drawer",
            synthesize_on_empty=True,
            telemetry=self.telemetry,
        )

    # -- views --------------------------------------------------------------

    async def _sales_view(self, subject: PeriodSubject) -> ReportViewModel:
        date_range = subject.date_range
        result = await self.sales_chain().fetch(date_range)
        reasons = list(result.reasons)
        records = result.records

        reporter = AttemptReporter(kind=ReportKind.SALES.value, telemetry=self.telemetry)
        categories, failure = await fetch_envelope(
            "reports.sales_categories",
            lambda: self.reports.get_sales_by_category(date_range),
            reporter,
            date_range,
        )
        if failure is not None:
            reasons.append(failure.describe())

        upstream = None if result.dataset.synthetic else result.dataset.summary
        return ReportViewModel(
            kind=ReportKind.SALES,
            label=subject.label,
            date_range=date_range,
            outcome=Outcome.combine(reasons),
            transactions=records,
            breakdown=breakdown_from_summary(categories.get("data")) if categories else [],
            products=product_rollup(records),
            trend=monthly_totals(records, date_range),
            sales_summary=sales_summary(records, upstream),
        )

    async def _expense_view(
        self,
        subject: CategorySubject | MonthSubject,
        selection: DateRange | None,
    ) -> ReportViewModel:
        if isinstance(subject, MonthSubject):
            return await self._monthly_expense_view(subject)

        date_range = selection or subject.date_range
        result = await self.expense_chain().fetch(date_range, subject.name)
        reasons = list(result.reasons)
        reporter = AttemptReporter(kind=ReportKind.EXPENSE_CATEGORY.value, telemetry=self.telemetry)

        categories, failure = await fetch_envelope(
            "reports.expense_categories",
            lambda: self.reports.get_expenses_by_category(date_range),
            reporter,
            date_range,
        )
        if failure is not None:
            reasons.append(failure.describe())
        selected = find_category(
            breakdown_from_summary(categories.get("data")) if categories else [],
            subject.name,
        )

        trends, failure = await fetch_envelope(
            "reports.expense_trends",
            lambda: self.reports.get_expense_trends(date_range),
            reporter,
            date_range,
        )
        trend = category_trend(trends.get("data"), subject.name, selected.percentage) if trends else TrendSeries()
        if not trend.points:
            reasons.append(failure.describe() if failure is not None else "reports.expense_trends: EMPTY_RESULT")
            trend = TrendSeries(points=self.generator.monthly_trend(self.today), estimated=True)

        return ReportViewModel(
            kind=ReportKind.EXPENSE_CATEGORY,
            label=subject.label,
            date_range=date_range,
            outcome=Outcome.combine(reasons),
            transactions=result.records,
            breakdown=[selected],
            trend=trend,
        )

    async def _monthly_expense_view(self, subject: MonthSubject) -> ReportViewModel:
        date_range = subject.date_range
        result = await self.expense_chain().fetch(date_range)
        reasons = list(result.reasons)
        reporter = AttemptReporter(kind=ReportKind.MONTHLY_EXPENSE.value, telemetry=self.telemetry)

        categories, failure = await fetch_envelope(
            "reports.expense_categories",
            lambda: self.reports.get_expenses_by_category(date_range),
            reporter,
            date_range,
        )
        if failure is not None:
            reasons.append(failure.describe())
            breakdown = self.generator.expense_breakdown()
        else:
            breakdown = breakdown_from_summary(categories.get("data"))

        return ReportViewModel(
            kind=ReportKind.MONTHLY_EXPENSE,
            label=f"{subject.label} Expenses",
            date_range=date_range,
            outcome=Outcome.combine(reasons),
            transactions=result.records,
            breakdown=breakdown,
            trend=monthly_totals(result.records, date_range),
        )

    async def _financial_view(self, subject: FinancialPeriodSubject) -> ReportViewModel:
        date_range = subject.date_range
        reasons: list[str] = []
        reporter = AttemptReporter(kind=ReportKind.FINANCIAL.value, telemetry=self.telemetry)

        payloads = {}
        for name, call in (
            ("reports.financial_summary", self.reports.get_financial_summary),
            ("reports.profit_loss", self.reports.get_profit_and_loss),
            ("reports.cash_flow", self.reports.get_cash_flow),
        ):
            payload, failure = await fetch_envelope(name, lambda: call(date_range), reporter, date_range)
            if failure is not None:
                reasons.append(failure.describe())
            payloads[name] = payload.get("data") if payload else None

        drawer = await self.cash_drawer_chain().fetch(date_range)
        reasons.extend(drawer.reasons)

        summary = financial_summary(payloads["reports.financial_summary"])
        return ReportViewModel(
            kind=ReportKind.FINANCIAL,
            label=subject.label,
            date_range=date_range,
            outcome=Outcome.combine(reasons),
            transactions=drawer.records,
            financial_summary=summary,
            financial_lines=financial_lines(summary, drawer.records),
            profit_loss=_rows(payloads["reports.profit_loss"]),
            cash_flow=_rows(payloads["reports.cash_flow"]),
        )

    # -- helpers ------------------------------------------------------------

    def _decode(self, identifier: str, *, allow_bare_period: bool = False) -> PeriodSubject:
        return decode_identifier(identifier, allow_bare_period=allow_bare_period, today=self.today)

    def _invalid(self, exc: InvalidIdentifierError) -> ReportViewModel:
        log_json(
            logger,
            {"event": "invalid_identifier", "identifier": exc.identifier, "reason": exc.reason},
            level=logging.WARNING,
        )
        return ReportViewModel(outcome=Outcome.unrecoverable(INVALID_IDENTIFIER))

    async def _finish(self, view: ReportViewModel, started: float) -> ReportViewModel:
        duration_ms = int((time.monotonic() - started) * 1000)
        log_json(
            logger,
            {
                "event": "report_loaded",
                "kind": view.kind.value if view.kind else None,
                "outcome": view.outcome.status.value,
                "reasons": view.outcome.reasons,
                "duration_ms": duration_ms,
            },
            level=logging.INFO if view.outcome.status == OutcomeStatus.SUCCESS else logging.WARNING,
        )
        if self.telemetry is not None:
            await self.telemetry.aemit(
                build_event(
                    category="report_load",
                    name="load",
                    kind=view.kind.value if view.kind else "unknown",
                    duration_ms=duration_ms,
                    success=view.outcome.status != OutcomeStatus.UNRECOVERABLE,
                    context={"outcome": view.outcome.status.value},
                )
            )
        return view
