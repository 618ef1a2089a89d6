"""Period token resolution.

Report detail identifiers carry a human-readable period ("2023-03-07",
"Mar 1 - Mar 7, 2023", "03/01 - 03/07", "March 2023", "Q1 2023", "2023"),
optionally behind an entity prefix ("expense-", "monthly-expense-",
"financial-"). ``resolve_period`` turns any of them into an inclusive
``DateRange`` and never raises: unrecognised tokens resolve to the current
calendar month. ``decode_identifier`` additionally classifies the identifier
into a ``PeriodSubject`` and is the only place an identifier can be rejected.
"""

from __future__ import annotations

import calendar
import re
from dataclasses import dataclass
from datetime import MAXYEAR, MINYEAR, date
from typing import Union
from urllib.parse import unquote

from .exceptions import InvalidIdentifierError
from .models import DateRange, ReportKind

MONTH_NAMES = tuple(name.lower() for name in calendar.month_name[1:])

MONTHLY_EXPENSE_PREFIX = "monthly-expense-"
EXPENSE_PREFIX = "expense-"
FINANCIAL_PREFIX = "financial-"
# Longest first so "monthly-expense-" is not mistaken for a category token.
KNOWN_PREFIXES = (MONTHLY_EXPENSE_PREFIX, EXPENSE_PREFIX, FINANCIAL_PREFIX)

_ISO_DAY = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})$")
_ISO_MONTH = re.compile(r"^(\d{4})-(\d{1,2})$")
_YEAR = re.compile(r"^(\d{4})$")
_MONTH_YEAR = re.compile(r"^([A-Za-z]+)\.?\s*,?\s+(\d{4})$")
_QUARTER_FIRST = re.compile(r"^Q([1-4])\s*[-/]?\s*(\d{4})$", re.IGNORECASE)
_YEAR_FIRST_QUARTER = re.compile(r"^(\d{4})\s*[-/]?\s*Q([1-4])$", re.IGNORECASE)
_RANGE_SEPARATOR = re.compile(r"\s+(?:-|–|—|to)\s+", re.IGNORECASE)

_SLASHED = re.compile(r"^(\d{1,2})/(\d{1,2})(?:/(\d{4}))?$")
_NAMED_DAY = re.compile(r"^([A-Za-z]+)\.?\s+(\d{1,2})(?:st|nd|rd|th)?(?:\s*,?\s*(\d{4}))?$", re.IGNORECASE)
_DAY_ONLY = re.compile(r"^(\d{1,2})(?:st|nd|rd|th)?(?:\s*,\s*(\d{4}))?$", re.IGNORECASE)


def match_month(name: str) -> int | None:
    """Return the 1-based month for a case-insensitive, unambiguous name prefix."""
    key = name.strip().rstrip(".").lower()
    if not key:
        return None
    matches = [index for index, month in enumerate(MONTH_NAMES, start=1) if month.startswith(key)]
    if len(matches) != 1:
        return None
    return matches[0]


def month_label(year: int, month: int) -> str:
    return f"{calendar.month_name[month]} {year}"


def month_range(year: int, month: int) -> DateRange:
    last_day = calendar.monthrange(year, month)[1]
    return DateRange(start_date=date(year, month, 1), end_date=date(year, month, last_day))


def quarter_range(year: int, quarter: int) -> DateRange:
    first_month = (quarter - 1) * 3 + 1
    last_month = first_month + 2
    return DateRange(
        start_date=date(year, first_month, 1),
        end_date=date(year, last_month, calendar.monthrange(year, last_month)[1]),
    )


def year_range(year: int) -> DateRange:
    return DateRange(start_date=date(year, 1, 1), end_date=date(year, 12, 31))


def current_month(today: date | None = None) -> DateRange:
    today = today or date.today()
    return month_range(today.year, today.month)


def resolve_period(
    token: str | None,
    *,
    today: date | None = None,
    context_year: int | None = None,
) -> DateRange:
    today = today or date.today()
    resolved = _resolve(token or "", today=today, context_year=context_year or today.year)
    return resolved or current_month(today)


def _resolve(token: str, *, today: date, context_year: int) -> DateRange | None:
    text = " ".join(token.split())
    if not text:
        return None

    lowered = text.lower()
    for prefix in KNOWN_PREFIXES:
        if lowered.startswith(prefix):
            return _resolve(text[len(prefix):], today=today, context_year=context_year)

    match = _ISO_DAY.match(text)
    if match:
        day = _safe_date(int(match.group(1)), int(match.group(2)), int(match.group(3)))
        return DateRange(start_date=day, end_date=day) if day else None

    match = _YEAR.match(text)
    if match:
        year = int(match.group(1))
        return year_range(year) if _valid_year(year) else None

    match = _QUARTER_FIRST.match(text)
    if match:
        year, quarter = int(match.group(2)), int(match.group(1))
        return quarter_range(year, quarter) if _valid_year(year) else None

    match = _YEAR_FIRST_QUARTER.match(text)
    if match:
        year, quarter = int(match.group(1)), int(match.group(2))
        return quarter_range(year, quarter) if _valid_year(year) else None

    match = _MONTH_YEAR.match(text)
    if match:
        year, month = int(match.group(2)), match_month(match.group(1))
        return month_range(year, month) if month and _valid_year(year) else None

    match = _ISO_MONTH.match(text)
    if match:
        year, month = int(match.group(1)), int(match.group(2))
        return month_range(year, month) if 1 <= month <= 12 and _valid_year(year) else None

    parts = _RANGE_SEPARATOR.split(text, maxsplit=1)
    if len(parts) == 2:
        return _resolve_range(parts[0], parts[1], context_year=context_year)
    return None


@dataclass
class _Endpoint:
    year: int | None
    month: int | None
    day: int | None


def _parse_endpoint(text: str) -> _Endpoint | None:
    text = text.strip().rstrip(",")
    match = _ISO_DAY.match(text)
    if match:
        return _Endpoint(int(match.group(1)), int(match.group(2)), int(match.group(3)))
    match = _SLASHED.match(text)
    if match:
        year = int(match.group(3)) if match.group(3) else None
        return _Endpoint(year, int(match.group(1)), int(match.group(2)))
    match = _MONTH_YEAR.match(text)
    if match:
        month = match_month(match.group(1))
        return _Endpoint(int(match.group(2)), month, None) if month else None
    match = _NAMED_DAY.match(text)
    if match:
        month = match_month(match.group(1))
        if month is None:
            return None
        year = int(match.group(3)) if match.group(3) else None
        return _Endpoint(year, month, int(match.group(2)))
    match = _DAY_ONLY.match(text)
    if match:
        year = int(match.group(2)) if match.group(2) else None
        return _Endpoint(year, None, int(match.group(1)))
    return None


def _resolve_range(start_text: str, end_text: str, *, context_year: int) -> DateRange | None:
    start = _parse_endpoint(start_text)
    end = _parse_endpoint(end_text)
    if start is None or end is None or start.month is None:
        return None

    end_month_inherited = end.month is None
    if end_month_inherited:
        end.month = start.month

    end_year_inherited = False
    start_year_inherited = False
    if end.year is None and start.year is not None:
        end.year = start.year
        end_year_inherited = True
    elif start.year is None and end.year is not None:
        start.year = end.year
        start_year_inherited = True
    elif start.year is None and end.year is None:
        start.year = end.year = context_year
        end_year_inherited = True

    start_date = _safe_date(start.year, start.month, start.day or 1)
    end_date = _safe_date(end.year, end.month, end.day or _last_day(end.year, end.month))
    if start_date is None or end_date is None:
        return None

    if start_date > end_date:
        # A roll that would leave the calendar is skipped; the swap below still applies.
        if end_month_inherited:
            year, month = _shift_month(end.year, end.month, 1)
            end_date = _clamped_date(year, month, end_date.day) or end_date
        elif end_year_inherited:
            end_date = _clamped_date(end.year + 1, end.month, end_date.day) or end_date
        elif start_year_inherited:
            start_date = _clamped_date(start.year - 1, start.month, start_date.day) or start_date
        if start_date > end_date:
            start_date, end_date = end_date, start_date
    return DateRange(start_date=start_date, end_date=end_date)


def _valid_year(year: int) -> bool:
    return MINYEAR <= year <= MAXYEAR


def _last_day(year: int, month: int) -> int:
    if not 1 <= month <= 12 or not _valid_year(year):
        return 1
    return calendar.monthrange(year, month)[1]


def _safe_date(year: int, month: int, day: int) -> date | None:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def _clamped_date(year: int, month: int, day: int) -> date | None:
    return _safe_date(year, month, min(day, _last_day(year, month)))


def _shift_month(year: int, month: int, delta: int) -> tuple[int, int]:
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


# ---------------------------------------------------------------------------
# Identifier subjects
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CategorySubject:
    name: str
    date_range: DateRange
    kind: ReportKind = ReportKind.EXPENSE_CATEGORY

    @property
    def label(self) -> str:
        return self.name


@dataclass(frozen=True)
class MonthSubject:
    label: str
    date_range: DateRange
    kind: ReportKind = ReportKind.MONTHLY_EXPENSE


@dataclass(frozen=True)
class FinancialPeriodSubject:
    label: str
    date_range: DateRange
    kind: ReportKind = ReportKind.FINANCIAL


@dataclass(frozen=True)
class SalesPeriodSubject:
    label: str
    date_range: DateRange
    kind: ReportKind = ReportKind.SALES


PeriodSubject = Union[CategorySubject, MonthSubject, FinancialPeriodSubject, SalesPeriodSubject]


def decode_identifier(
    identifier: str | None,
    *,
    allow_bare_period: bool = False,
    today: date | None = None,
    context_year: int | None = None,
) -> PeriodSubject:
    raw = unquote(identifier or "").strip()
    if not raw:
        raise InvalidIdentifierError(identifier or "", "identifier is empty")

    def _range(token: str) -> DateRange:
        return resolve_period(token, today=today, context_year=context_year)

    lowered = raw.lower()
    if lowered.startswith(MONTHLY_EXPENSE_PREFIX):
        label = raw[len(MONTHLY_EXPENSE_PREFIX):].strip()
        match = _MONTH_YEAR.match(label)
        month = match_month(match.group(1)) if match else None
        if match is None or month is None:
            raise InvalidIdentifierError(raw, "monthly expense label must look like 'March 2023'")
        year = int(match.group(2))
        if not _valid_year(year):
            raise InvalidIdentifierError(raw, f"year {year} is out of range")
        return MonthSubject(label=label, date_range=month_range(year, month))

    if lowered.startswith(EXPENSE_PREFIX):
        name = raw[len(EXPENSE_PREFIX):].strip()
        if not name:
            raise InvalidIdentifierError(raw, "expense category is empty")
        return CategorySubject(name=name, date_range=_range(name))

    if lowered.startswith(FINANCIAL_PREFIX):
        label = raw[len(FINANCIAL_PREFIX):].strip()
        if not label:
            raise InvalidIdentifierError(raw, "financial period is empty")
        return FinancialPeriodSubject(label=label, date_range=_range(label))

    if allow_bare_period:
        return SalesPeriodSubject(label=raw, date_range=_range(raw))

    raise InvalidIdentifierError(raw, "unknown identifier prefix")
