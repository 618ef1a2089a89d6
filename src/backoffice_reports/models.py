from __future__ import annotations

from datetime import date, datetime, timedelta
from decimal import Decimal
from enum import Enum
from typing import Any, Iterator

from pydantic import BaseModel, ConfigDict, Field, model_validator


class DateRange(BaseModel):
    model_config = ConfigDict(frozen=True)

    start_date: date
    end_date: date

    @model_validator(mode="after")
    def ensure_ordered(self):
        if self.start_date > self.end_date:
            raise ValueError("start_date must be less than or equal to end_date")
        return self

    def iter_days(self) -> Iterator[date]:
        for offset in range((self.end_date - self.start_date).days + 1):
            yield self.start_date + timedelta(days=offset)

    def iter_months(self) -> Iterator[tuple[int, int]]:
        year, month = self.start_date.year, self.start_date.month
        while (year, month) <= (self.end_date.year, self.end_date.month):
            yield year, month
            year, month = (year + 1, 1) if month == 12 else (year, month + 1)

    def contains(self, value: date) -> bool:
        return self.start_date <= value <= self.end_date

    def to_query(self) -> dict[str, str]:
        return {"startDate": self.start_date.isoformat(), "endDate": self.end_date.isoformat()}


class LineItem(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    item_id: str | None = Field(default=None, alias="itemId")
    name: str = "Unknown Product"
    sku: str | None = None
    price: Decimal = Field(default=Decimal("0"), ge=0)
    quantity: int = Field(default=0, ge=0)


class TransactionRecord(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    date: datetime
    amount: Decimal = Decimal("0")
    category: str | None = None
    description: str | None = None
    payment_method: str | None = Field(default=None, alias="paymentMethod")
    status: str | None = None
    items: list[LineItem] = Field(default_factory=list)
    operation: str | None = None
    notes: str | None = None
    balance: Decimal | None = None
    reference: str | None = None
    customer_name: str | None = Field(default=None, alias="customerName")


class CategorySummary(BaseModel):
    category: str
    amount: Decimal
    percentage: Decimal


class ProductSummary(BaseModel):
    name: str
    sku: str
    quantity: int
    total: Decimal


class TrendPoint(BaseModel):
    period: str
    amount: Decimal


class TrendSeries(BaseModel):
    points: list[TrendPoint] = Field(default_factory=list)
    # True when amounts were apportioned from period totals rather than reported per category.
    estimated: bool = False


class SalesSummary(BaseModel):
    total_sales: Decimal = Decimal("0")
    total_transactions: int = 0
    total_items: int = 0
    average_transaction: Decimal = Decimal("0")


class FinancialSummary(BaseModel):
    revenue: Decimal = Decimal("0")
    expenses: Decimal = Decimal("0")
    profit: Decimal = Decimal("0")
    profit_margin: Decimal = Decimal("0")
    current_balance: Decimal | None = None
    revenue_breakdown: list[CategorySummary] = Field(default_factory=list)
    expense_breakdown: list[CategorySummary] = Field(default_factory=list)


class FinancialLine(BaseModel):
    category: str
    type: str
    amount: Decimal
    percentage: Decimal


class Dataset(BaseModel):
    records: list[TransactionRecord] = Field(default_factory=list)
    summary: dict[str, Any] | None = None
    source: str
    synthetic: bool = False


class OutcomeStatus(str, Enum):
    SUCCESS = "success"
    DEGRADED = "degraded"
    UNRECOVERABLE = "unrecoverable"


class Outcome(BaseModel):
    status: OutcomeStatus
    reasons: list[str] = Field(default_factory=list)

    @classmethod
    def success(cls) -> "Outcome":
        return cls(status=OutcomeStatus.SUCCESS)

    @classmethod
    def degraded(cls, reasons: list[str]) -> "Outcome":
        return cls(status=OutcomeStatus.DEGRADED, reasons=list(reasons))

    @classmethod
    def unrecoverable(cls, reason: str) -> "Outcome":
        return cls(status=OutcomeStatus.UNRECOVERABLE, reasons=[reason])

    @classmethod
    def combine(cls, reasons: list[str]) -> "Outcome":
        return cls.degraded(reasons) if reasons else cls.success()


class ReportKind(str, Enum):
    SALES = "sales"
    EXPENSE_CATEGORY = "expense_category"
    MONTHLY_EXPENSE = "monthly_expense"
    FINANCIAL = "financial"


class ReportViewModel(BaseModel):
    kind: ReportKind | None = None
    label: str = ""
    date_range: DateRange | None = None
    outcome: Outcome
    transactions: list[TransactionRecord] = Field(default_factory=list)
    breakdown: list[CategorySummary] = Field(default_factory=list)
    products: list[ProductSummary] = Field(default_factory=list)
    trend: TrendSeries = Field(default_factory=TrendSeries)
    sales_summary: SalesSummary | None = None
    financial_summary: FinancialSummary | None = None
    financial_lines: list[FinancialLine] = Field(default_factory=list)
    profit_loss: list[dict[str, Any]] = Field(default_factory=list)
    cash_flow: list[dict[str, Any]] = Field(default_factory=list)
