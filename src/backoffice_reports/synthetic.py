"""Placeholder report data for when no real source answers.

Output is shaped exactly like normalised backend data so the aggregator and
the views never special-case "no data". Randomness comes from an injected
``random.Random``; pass a seed for reproducible output.
"""

from __future__ import annotations

import calendar
import random
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal

from .models import CategorySummary, DateRange, LineItem, TransactionRecord, TrendPoint

EXPENSE_CATEGORIES = (
    "Rent",
    "Utilities",
    "Salaries",
    "Inventory",
    "Marketing",
    "Office Supplies",
    "Insurance",
    "Maintenance",
    "Miscellaneous",
)
PAYMENT_METHODS = ("Cash", "Credit Card", "Bank Transfer", "Check")
EXPENSE_STATUSES = ("Paid", "Pending")
SAMPLE_EXPENSE_TOTAL = Decimal("10000")
SAMPLE_DRAWER_BALANCE = Decimal("5000")


def _stamp(day: date, hour: int = 0, minute: int = 0) -> datetime:
    return datetime.combine(day, time(hour, minute), tzinfo=timezone.utc)


class SyntheticGenerator:
    def __init__(self, rng: random.Random | None = None, *, seed: int | None = None) -> None:
        self.rng = rng or random.Random(seed)

    def expense_transactions(self, date_range: DateRange, category: str | None = None) -> list[TransactionRecord]:
        """Sparse expenses: roughly every other day, stepping 1-3 days at a time."""
        categories = (category,) if category else EXPENSE_CATEGORIES
        records: list[TransactionRecord] = []
        span = (date_range.end_date - date_range.start_date).days
        offset = 0
        while offset <= span:
            if self.rng.random() > 0.5:
                day = date_range.start_date + timedelta(days=offset)
                records.append(self._expense(day, self.rng.choice(categories)))
            offset += 1 + self.rng.randint(0, 2)
        if not records:
            records.append(self._expense(date_range.start_date, self.rng.choice(categories)))
        return records

    def _expense(self, day: date, category: str) -> TransactionRecord:
        return TransactionRecord(
            date=_stamp(day),
            description=f"{category} expense",
            payment_method=self.rng.choice(PAYMENT_METHODS),
            amount=Decimal(self.rng.randint(50, 349)),
            status=self.rng.choice(EXPENSE_STATUSES),
            category=category,
        )

    def sale_transactions(self, date_range: DateRange) -> list[TransactionRecord]:
        """Dense sales: 1-3 tickets per day, 1-5 lines each, between 08:00 and 19:59."""
        records: list[TransactionRecord] = []
        for day in date_range.iter_days():
            for _ in range(self.rng.randint(1, 3)):
                items = []
                for position in range(self.rng.randint(1, 5)):
                    items.append(
                        LineItem(
                            item_id=f"item-{position}-{self.rng.getrandbits(32):08x}",
                            name=f"Product {position + 1}",
                            sku=f"SKU-{position + 1}{self.rng.randint(0, 999)}",
                            price=Decimal(self.rng.randint(10, 109)),
                            quantity=self.rng.randint(1, 3),
                        )
                    )
                customer = f"Customer {self.rng.randint(0, 99)}" if self.rng.random() > 0.7 else None
                records.append(
                    TransactionRecord(
                        date=_stamp(day, self.rng.randint(8, 19), self.rng.randint(0, 59)),
                        amount=sum((item.price * item.quantity for item in items), Decimal("0")),
                        items=items,
                        customer_name=customer,
                    )
                )
        return records

    def cash_drawer_transactions(self, date_range: DateRange) -> list[TransactionRecord]:
        records = []
        for day in date_range.iter_days():
            is_expense = self.rng.random() > 0.7
            records.append(
                TransactionRecord(
                    date=_stamp(day),
                    operation="expense" if is_expense else "sale",
                    notes="Inventory Purchase" if self.rng.random() > 0.7 else "Daily Sales",
                    amount=Decimal(self.rng.randint(50, 549)),
                    balance=SAMPLE_DRAWER_BALANCE,
                )
            )
        return records

    def expense_breakdown(self, total: Decimal = SAMPLE_EXPENSE_TOTAL) -> list[CategorySummary]:
        """Random 5-24% shares for each vocabulary category; the last one takes the remainder."""
        remaining = 100
        breakdown: list[CategorySummary] = []
        for name in EXPENSE_CATEGORIES[:-1]:
            share = min(self.rng.randint(5, 24), remaining - 5)
            share = max(share, 0)
            remaining -= share
            breakdown.append(
                CategorySummary(category=name, amount=total * share / 100, percentage=Decimal(share))
            )
        breakdown.append(
            CategorySummary(
                category=EXPENSE_CATEGORIES[-1],
                amount=total * remaining / 100,
                percentage=Decimal(remaining),
            )
        )
        return breakdown

    def monthly_trend(self, today: date | None = None, months: int = 6) -> list[TrendPoint]:
        """The last ``months`` months of the current year with a slight upward drift."""
        today = today or date.today()
        first = max(1, today.month - months + 1)
        points = []
        for index, month in enumerate(range(first, today.month + 1)):
            amount = self.rng.randint(500, 999) + index * 50
            points.append(TrendPoint(period=f"{calendar.month_name[month]} {today.year}", amount=Decimal(amount)))
        return points
