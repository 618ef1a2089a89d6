"""Pure transforms from raw report data to view-model structures.

Everything here is synchronous and deterministic and never raises on bad
input: amounts and percentages are coerced with ``coerce_decimal`` (anything
unparseable becomes 0) before they reach a sum, and missing summaries or
empty record sets produce zeroed or empty results.
"""

from __future__ import annotations

import math
import re
from collections.abc import Iterable, Mapping, Sequence
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Union

from pydantic import BaseModel

from .models import (
    CategorySummary,
    DateRange,
    FinancialLine,
    FinancialSummary,
    ProductSummary,
    SalesSummary,
    TransactionRecord,
    TrendPoint,
    TrendSeries,
)
from .period import month_label

ZERO = Decimal("0")
HUNDRED = Decimal("100")
CENTS = Decimal("0.01")
DEFAULT_CATEGORY_SHARE = Decimal("10")

REVENUE_TEMPLATE: tuple[tuple[str, int], ...] = (
    ("Product Sales", 70),
    ("Service Revenue", 20),
    ("Other Income", 10),
)
EXPENSE_TEMPLATE: tuple[tuple[str, int], ...] = (
    ("Rent & Utilities", 25),
    ("Salaries", 35),
    ("Inventory", 20),
    ("Marketing", 10),
    ("Miscellaneous", 10),
)

_LEADING_NUMBER = re.compile(r"^[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")

Record = Union[TransactionRecord, Mapping[str, Any]]


# ---------------------------------------------------------------------------
# Numeric coercion
# ---------------------------------------------------------------------------


def coerce_decimal(value: object, default: Decimal = ZERO) -> Decimal:
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, Decimal):
        return value if value.is_finite() else default
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        return Decimal(str(value)) if math.isfinite(value) else default
    if not isinstance(value, str):
        return default
    text = value.strip().replace(",", "").replace("$", "")
    if not text:
        return default
    try:
        parsed = Decimal(text)
    except InvalidOperation:
        # Same leniency as parseFloat: "12.5 USD" -> 12.5
        match = _LEADING_NUMBER.match(text)
        if match is None:
            return default
        parsed = Decimal(match.group(0))
    return parsed if parsed.is_finite() else default


def coerce_int(value: object, default: int = 0) -> int:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    parsed = coerce_decimal(value, default=Decimal(default))
    return int(parsed)


def coerce_text(value: object, default: str) -> str:
    if value is None:
        return default
    text = str(value).strip()
    return text or default


def _cents(value: Decimal) -> Decimal:
    # quantize cannot represent amounts wider than the context precision
    try:
        return value.quantize(CENTS)
    except InvalidOperation:
        return value


def _get(source: object, *names: str) -> Any:
    for name in names:
        if isinstance(source, BaseModel):
            value = getattr(source, name, None)
            if value is None and source.model_extra:
                value = source.model_extra.get(name)
        elif isinstance(source, Mapping):
            value = source.get(name)
        else:
            value = getattr(source, name, None)
        if value is not None:
            return value
    return None


def _items(record: object) -> list[Any]:
    items = _get(record, "items")
    if not isinstance(items, (list, tuple)):
        return []
    return [item for item in items if item is not None]


# ---------------------------------------------------------------------------
# Breakdowns
# ---------------------------------------------------------------------------


def breakdown_from_summary(items: object) -> list[CategorySummary]:
    if not isinstance(items, Sequence) or isinstance(items, (str, bytes)):
        return []
    breakdown: list[CategorySummary] = []
    for item in items:
        if not isinstance(item, (Mapping, BaseModel)):
            continue
        breakdown.append(
            CategorySummary(
                category=coerce_text(_get(item, "category", "name"), "Uncategorized"),
                amount=coerce_decimal(_get(item, "amount")),
                percentage=coerce_decimal(_get(item, "percentage")),
            )
        )
    return breakdown


def template_breakdown(total: object, template: Sequence[tuple[str, int]]) -> list[CategorySummary]:
    base = coerce_decimal(total)
    return [
        CategorySummary(category=name, amount=base * share / HUNDRED, percentage=Decimal(share))
        for name, share in template
    ]


def group_breakdown(
    records: Iterable[Record],
    *,
    key: Callable[[Record], object] | None = None,
    default_label: str = "Uncategorized",
) -> list[CategorySummary]:
    """Sum record amounts per group; percentages are relative to the grouped total."""
    key = key or (lambda record: _get(record, "category"))
    totals: dict[str, Decimal] = {}
    for record in records or []:
        if record is None:
            continue
        label = coerce_text(key(record), default_label)
        totals[label] = totals.get(label, ZERO) + coerce_decimal(_get(record, "amount"))
    total = sum(totals.values(), ZERO)
    return [
        CategorySummary(
            category=label,
            amount=amount,
            percentage=(amount / total * HUNDRED) if total else ZERO,
        )
        for label, amount in totals.items()
    ]


def find_category(breakdown: Iterable[CategorySummary], name: str) -> CategorySummary:
    wanted = name.strip().lower()
    for item in breakdown:
        if item.category.strip().lower() == wanted:
            return item
    return CategorySummary(category=name, amount=ZERO, percentage=ZERO)


# ---------------------------------------------------------------------------
# Products
# ---------------------------------------------------------------------------


def product_rollup(records: Iterable[Record]) -> list[ProductSummary]:
    products: dict[str, dict[str, Any]] = {}
    for record_index, record in enumerate(records or []):
        items = _get(record, "items") if record is not None else None
        if not isinstance(items, (list, tuple)):
            continue
        for item_index, item in enumerate(items):
            if item is None:
                continue
            item_id = _get(item, "item_id", "itemId")
            sku = _get(item, "sku")
            key = str(item_id or sku or f"product-{record_index}-{item_index}")
            entry = products.setdefault(
                key,
                {
                    "name": coerce_text(_get(item, "name"), "Unknown Product"),
                    "sku": coerce_text(sku, "No SKU"),
                    "quantity": 0,
                    "total": ZERO,
                },
            )
            quantity = coerce_int(_get(item, "quantity"))
            entry["quantity"] += quantity
            entry["total"] += coerce_decimal(_get(item, "price")) * quantity
    ranked = [ProductSummary(**entry) for entry in products.values() if entry["quantity"] > 0]
    return sorted(ranked, key=lambda product: product.total, reverse=True)


# ---------------------------------------------------------------------------
# Trends
# ---------------------------------------------------------------------------


def _period_label(row: Mapping[str, Any], index: int) -> str:
    period = row.get("period")
    if period:
        return str(period)
    return f"Month {row.get('month') or index + 1}"


def _category_value(categories: Mapping[str, Any], category: str) -> Any:
    if category in categories:
        return categories[category]
    wanted = category.strip().lower()
    for name, value in categories.items():
        if str(name).strip().lower() == wanted:
            return value
    return None


def category_trend(rows: object, category: str, share_percentage: object = None) -> TrendSeries:
    """Monthly series for one category.

    Rows carrying per-category values are used directly. Otherwise each
    period total is apportioned by the category's share of the breakdown
    (10% when unknown) and the series is flagged ``estimated``.
    """
    if not isinstance(rows, Sequence) or isinstance(rows, (str, bytes)):
        return TrendSeries()
    valid = [row for row in rows if isinstance(row, Mapping)]
    if not valid:
        return TrendSeries()

    share = coerce_decimal(share_percentage)
    if share <= 0:
        share = DEFAULT_CATEGORY_SHARE
    ratio = share / HUNDRED

    if isinstance(valid[0].get("categories"), Mapping):
        direct = []
        for index, row in enumerate(valid):
            categories = row.get("categories")
            if not isinstance(categories, Mapping):
                continue
            value = _category_value(categories, category)
            if value is not None:
                direct.append(TrendPoint(period=_period_label(row, index), amount=coerce_decimal(value)))
        if direct:
            return TrendSeries(points=direct)
        points = []
        for index, row in enumerate(valid):
            categories = row.get("categories")
            period_total = (
                sum((coerce_decimal(value) for value in categories.values()), ZERO)
                if isinstance(categories, Mapping)
                else ZERO
            )
            points.append(TrendPoint(period=_period_label(row, index), amount=period_total * ratio))
        return TrendSeries(points=points, estimated=True)

    points = [
        TrendPoint(
            period=_period_label(row, index),
            amount=coerce_decimal(row.get("amount") or row.get("total")) * ratio,
        )
        for index, row in enumerate(valid)
    ]
    return TrendSeries(points=points, estimated=True)


def monthly_totals(records: Iterable[Record], date_range: DateRange) -> TrendSeries:
    buckets: dict[tuple[int, int], Decimal] = {month: ZERO for month in date_range.iter_months()}
    for record in records or []:
        stamp = _get(record, "date") if record is not None else None
        if isinstance(stamp, str):
            try:
                stamp = datetime.fromisoformat(stamp.replace("Z", "+00:00"))
            except ValueError:
                continue
        if not isinstance(stamp, datetime) or not date_range.contains(stamp.date()):
            continue
        bucket = (stamp.year, stamp.month)
        buckets[bucket] = buckets.get(bucket, ZERO) + coerce_decimal(_get(record, "amount"))
    return TrendSeries(
        points=[TrendPoint(period=month_label(year, month), amount=amount) for (year, month), amount in buckets.items()]
    )


# ---------------------------------------------------------------------------
# Summaries
# ---------------------------------------------------------------------------


def sales_summary(records: Sequence[Record], upstream: Mapping[str, Any] | None = None) -> SalesSummary:
    if isinstance(upstream, Mapping) and upstream:
        return SalesSummary(
            total_sales=_cents(coerce_decimal(upstream.get("totalSales"))),
            total_transactions=coerce_int(upstream.get("totalTransactions")),
            total_items=coerce_int(upstream.get("totalItems")),
            average_transaction=_cents(coerce_decimal(upstream.get("averageTransaction"))),
        )
    records = [record for record in records or [] if record is not None]
    total = sum((coerce_decimal(_get(record, "amount")) for record in records), ZERO)
    items = sum(
        coerce_int(_get(item, "quantity"))
        for record in records
        for item in _items(record)
    )
    average = total / len(records) if records else ZERO
    return SalesSummary(
        total_sales=_cents(total),
        total_transactions=len(records),
        total_items=items,
        average_transaction=_cents(average),
    )


def financial_summary(raw: object) -> FinancialSummary:
    if not isinstance(raw, Mapping):
        return FinancialSummary()
    revenue = coerce_decimal(raw.get("revenue"))
    expenses = coerce_decimal(raw.get("expenses"))
    profit = coerce_decimal(raw.get("profit"), default=revenue - expenses)
    margin_default = profit / revenue * HUNDRED if revenue else ZERO
    margin = coerce_decimal(raw.get("profitMargin"), default=margin_default)
    balance = raw.get("currentBalance")
    return FinancialSummary(
        revenue=_cents(revenue),
        expenses=_cents(expenses),
        profit=_cents(profit),
        profit_margin=_cents(margin),
        current_balance=_cents(coerce_decimal(balance)) if balance is not None else None,
        revenue_breakdown=breakdown_from_summary(raw.get("revenueBreakdown")),
        expense_breakdown=breakdown_from_summary(raw.get("expenseBreakdown")),
    )


def _lines(kind: str, breakdown: Iterable[CategorySummary]) -> list[FinancialLine]:
    return [
        FinancialLine(category=item.category, type=kind, amount=item.amount, percentage=item.percentage)
        for item in breakdown
    ]


def financial_lines(summary: FinancialSummary, cash_drawer: Iterable[Record]) -> list[FinancialLine]:
    """Revenue and expense lines for the financial detail table.

    Backend breakdowns win. Revenue otherwise falls back to the fixed
    template; expenses are grouped from cash-drawer expense notes, then the
    template when the drawer has no expenses.
    """
    revenue = summary.revenue_breakdown or template_breakdown(summary.revenue, REVENUE_TEMPLATE)
    expenses = summary.expense_breakdown
    if not expenses:
        drawer_expenses = [
            record
            for record in cash_drawer or []
            if record is not None and coerce_text(_get(record, "operation"), "").lower() == "expense"
        ]
        expenses = group_breakdown(drawer_expenses, key=lambda record: _get(record, "notes"))
    if not expenses:
        expenses = template_breakdown(summary.expenses, EXPENSE_TEMPLATE)
    return _lines("Revenue", revenue) + _lines("Expense", expenses)
