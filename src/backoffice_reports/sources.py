from __future__ import annotations

import logging
import time
from collections.abc import Awaitable, Callable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Protocol

from pydantic import BaseModel

from .aggregator import coerce_decimal, coerce_int, coerce_text
from .clients.base import BaseClient
from .exceptions import ApiError, SourceError
from .logging import log_json
from .models import DateRange, Dataset, LineItem, Outcome, TransactionRecord
from .telemetry import TelemetryLogger, build_event

logger = logging.getLogger(__name__)

Normalizer = Callable[[Mapping[str, Any], "str | None"], TransactionRecord]
ServiceCall = Callable[[DateRange, "str | None"], Awaitable[Any]]

_RECORD_FIELDS = {
    "date",
    "amount",
    "total",
    "category",
    "description",
    "payment_method",
    "paymentMethod",
    "status",
    "items",
    "operation",
    "notes",
    "balance",
    "reference",
    "customer_name",
    "customerName",
}
_ITEM_FIELDS = {"item_id", "itemId", "name", "sku", "price", "quantity"}


# ---------------------------------------------------------------------------
# Normalisation
# ---------------------------------------------------------------------------


def parse_timestamp(value: object, *, now: datetime | None = None) -> datetime:
    fallback = now or datetime.now(timezone.utc)
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        try:
            parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return fallback
    else:
        return fallback
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed


def _extras(raw: Mapping[str, Any], known: set[str]) -> dict[str, Any]:
    extras = {
        str(key): value
        for key, value in raw.items()
        if key not in known and not str(key).startswith("_")
    }
    if "_id" in raw and "id" not in extras:
        extras["id"] = raw["_id"]
    return extras


def normalize_expense(raw: Mapping[str, Any], category: str | None = None) -> TransactionRecord:
    label = coerce_text(raw.get("category"), category or "Miscellaneous")
    return TransactionRecord.model_validate(
        {
            **_extras(raw, _RECORD_FIELDS),
            "date": parse_timestamp(raw.get("date")),
            "amount": coerce_decimal(raw.get("amount")),
            "category": label,
            "description": coerce_text(raw.get("description"), f"{label} expense"),
            "payment_method": coerce_text(raw.get("paymentMethod", raw.get("payment_method")), "Cash"),
            "status": coerce_text(raw.get("status"), "Paid"),
        }
    )


def normalize_line_item(raw: Mapping[str, Any]) -> LineItem:
    item_id = raw.get("itemId", raw.get("item_id"))
    sku = raw.get("sku")
    return LineItem.model_validate(
        {
            **_extras(raw, _ITEM_FIELDS),
            "item_id": str(item_id) if item_id else None,
            "name": coerce_text(raw.get("name"), "Unknown Product"),
            "sku": str(sku) if sku else None,
            "price": max(coerce_decimal(raw.get("price")), Decimal("0")),
            "quantity": max(coerce_int(raw.get("quantity"), default=1), 0),
        }
    )


def normalize_sale(raw: Mapping[str, Any], category: str | None = None) -> TransactionRecord:
    raw_items = raw.get("items")
    items = [
        normalize_line_item(item)
        for item in (raw_items if isinstance(raw_items, list) else [])
        if isinstance(item, Mapping)
    ]
    total = raw.get("total", raw.get("amount"))
    amount = (
        coerce_decimal(total)
        if total is not None
        else sum((item.price * item.quantity for item in items), Decimal("0"))
    )
    return TransactionRecord.model_validate(
        {
            **_extras(raw, _RECORD_FIELDS),
            "date": parse_timestamp(raw.get("date")),
            "amount": amount,
            "category": coerce_text(raw.get("category"), "") or None,
            "payment_method": coerce_text(raw.get("paymentMethod", raw.get("payment_method")), "Cash"),
            "items": items,
            "customer_name": coerce_text(raw.get("customerName", raw.get("customer_name")), "") or None,
        }
    )


def normalize_cash_drawer(raw: Mapping[str, Any], category: str | None = None) -> TransactionRecord:
    reference = raw.get("reference")
    return TransactionRecord.model_validate(
        {
            **_extras(raw, _RECORD_FIELDS),
            "date": parse_timestamp(raw.get("date")),
            "operation": coerce_text(raw.get("operation"), "unknown"),
            "notes": coerce_text(raw.get("notes") or raw.get("description"), "No description"),
            "amount": coerce_decimal(raw.get("amount")),
            "balance": coerce_decimal(raw.get("balance")),
            "reference": str(reference) if reference else None,
        }
    )


def normalize_records(
    rows: Sequence[Any],
    normalizer: Normalizer,
    category: str | None = None,
) -> list[TransactionRecord]:
    records = []
    for row in rows:
        if isinstance(row, TransactionRecord):
            records.append(row)
        elif isinstance(row, Mapping):
            records.append(normalizer(row, category))
    return records


def filter_by_category(records: list[TransactionRecord], category: str | None) -> list[TransactionRecord]:
    if not category or not records:
        return records
    wanted = category.lower()
    return [record for record in records if record.category and record.category.lower() == wanted]


def sort_newest_first(records: list[TransactionRecord]) -> list[TransactionRecord]:
    def _key(record: TransactionRecord) -> datetime:
        stamp = record.date
        return stamp if stamp.tzinfo else stamp.replace(tzinfo=timezone.utc)

    return sorted(records, key=_key, reverse=True)


# ---------------------------------------------------------------------------
# Source tiers
# ---------------------------------------------------------------------------


class Source(Protocol):
    name: str

    async def attempt(self, date_range: DateRange, category: str | None) -> Dataset: ...


def _as_payload(response: object) -> object:
    if isinstance(response, BaseModel):
        return response.model_dump()
    return response


def _source_error(name: str, exc: Exception) -> SourceError:
    if isinstance(exc, SourceError):
        return exc
    if isinstance(exc, ApiError):
        return SourceError(source=name, code=exc.code, message=exc.message)
    return SourceError(source=name, code=type(exc).__name__, message=str(exc) or type(exc).__name__)


@dataclass
class ServiceSource:
    """Primary tier: a structured service call answering ``{success, data, summary?}``."""

    name: str
    call: ServiceCall
    normalizer: Normalizer

    async def attempt(self, date_range: DateRange, category: str | None) -> Dataset:
        try:
            response = await self.call(date_range, category)
        except Exception as exc:
            raise _source_error(self.name, exc) from exc
        payload = _as_payload(response)
        if not isinstance(payload, Mapping) or not payload.get("success"):
            raise SourceError(source=self.name, code="UNSUCCESSFUL_RESPONSE", message="service did not report success")
        data = payload.get("data")
        if data is None:
            data = []
        if not isinstance(data, list):
            raise SourceError(source=self.name, code="MALFORMED_RESPONSE", message="data is not a list")
        summary = payload.get("summary")
        return Dataset(
            records=normalize_records(data, self.normalizer, category),
            summary=dict(summary) if isinstance(summary, Mapping) else None,
            source=self.name,
        )


@dataclass
class EndpointSource:
    """Secondary tier: a raw GET answering ``{success, data}``, ``{data}`` or a bare array."""

    name: str
    client: BaseClient
    path: str
    normalizer: Normalizer

    async def attempt(self, date_range: DateRange, category: str | None) -> Dataset:
        params = date_range.to_query()
        if category:
            params["category"] = category
        try:
            payload = await self.client.get_json(self.path, params=params, operation=self.name)
        except Exception as exc:
            raise _source_error(self.name, exc) from exc
        summary = None
        if isinstance(payload, list):
            rows = payload
        elif isinstance(payload, Mapping) and payload.get("success", True) and isinstance(payload.get("data"), list):
            rows = payload["data"]
            summary = payload.get("summary") if isinstance(payload.get("summary"), Mapping) else None
        else:
            raise SourceError(source=self.name, code="MALFORMED_RESPONSE", message="unexpected response envelope")
        return Dataset(
            records=normalize_records(rows, self.normalizer, category),
            summary=dict(summary) if summary else None,
            source=self.name,
        )


@dataclass
class SyntheticSource:
    """Last tier. Never fails."""

    generate: Callable[[DateRange, "str | None"], Dataset]
    name: str = "synthetic"

    async def attempt(self, date_range: DateRange, category: str | None) -> Dataset:
        dataset = self.generate(date_range, category)
        return dataset.model_copy(update={"source": self.name, "synthetic": True})


# ---------------------------------------------------------------------------
# Chain
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AttemptFailure:
    source: str
    code: str
    message: str

    def describe(self) -> str:
        return f"{self.source}: {self.code}"


@dataclass
class AttemptReporter:
    kind: str
    telemetry: TelemetryLogger | None = None

    async def failed(
        self,
        failure: AttemptFailure,
        date_range: DateRange,
        started: float,
        category: str | None = None,
    ) -> None:
        log_json(
            logger,
            {
                "event": "source_attempt_failed",
                "kind": self.kind,
                "source": failure.source,
                "code": failure.code,
                "message": failure.message,
                "start_date": date_range.start_date,
                "end_date": date_range.end_date,
                "category": category,
            },
            level=logging.WARNING,
        )
        await self._emit(failure.source, started, success=False, error_code=failure.code)

    async def succeeded(self, source: str, started: float) -> None:
        await self._emit(source, started, success=True)

    async def _emit(self, source: str, started: float, *, success: bool, error_code: str | None = None) -> None:
        if self.telemetry is None:
            return
        await self.telemetry.aemit(
            build_event(
                category="source_attempt",
                name="attempt",
                kind=self.kind,
                source=source,
                duration_ms=int((time.monotonic() - started) * 1000),
                success=success,
                error_code=error_code,
            )
        )


@dataclass
class ChainResult:
    dataset: Dataset
    failures: list[AttemptFailure] = field(default_factory=list)

    @property
    def records(self) -> list[TransactionRecord]:
        return self.dataset.records

    @property
    def reasons(self) -> list[str]:
        # Real data from a later tier is not a degradation; earlier failures are only logged.
        if not self.dataset.synthetic:
            return []
        return [*(failure.describe() for failure in self.failures), "showing estimated data"]

    @property
    def outcome(self) -> Outcome:
        return Outcome.combine(self.reasons)


class SourceChain:
    """Tries each source in order, moving on only when one fails.

    The synthetic ``fallback`` always runs last, so ``fetch`` never raises and
    always returns a dataset. Records are filtered by category (when any were
    retrieved) and sorted newest first whatever tier produced them.
    """

    def __init__(
        self,
        sources: Sequence[Source],
        fallback: SyntheticSource,
        *,
        kind: str,
        synthesize_on_empty: bool = False,
        telemetry: TelemetryLogger | None = None,
    ) -> None:
        self.sources = list(sources)
        self.fallback = fallback
        self.kind = kind
        self.synthesize_on_empty = synthesize_on_empty
        self.reporter = AttemptReporter(kind=kind, telemetry=telemetry)

    async def fetch(self, date_range: DateRange, category: str | None = None) -> ChainResult:
        failures: list[AttemptFailure] = []
        dataset: Dataset | None = None
        for source in [*self.sources, self.fallback]:
            started = time.monotonic()
            try:
                candidate = await source.attempt(date_range, category)
            except Exception as exc:
                error = _source_error(source.name, exc)
                failure = AttemptFailure(source=error.source, code=error.code, message=error.message)
            else:
                if candidate.records or candidate.synthetic or not self.synthesize_on_empty:
                    await self.reporter.succeeded(source.name, started)
                    dataset = candidate
                    break
                failure = AttemptFailure(source=source.name, code="EMPTY_RESULT", message="source returned no records")
            await self.reporter.failed(failure, date_range, started, category)
            failures.append(failure)

        if dataset is None:
            dataset = Dataset(source=self.fallback.name, synthetic=True)
        records = sort_newest_first(filter_by_category(dataset.records, category))
        return ChainResult(dataset=dataset.model_copy(update={"records": records}), failures=failures)


async def fetch_envelope(
    name: str,
    call: Callable[[], Awaitable[Any]],
    reporter: AttemptReporter,
    date_range: DateRange,
) -> tuple[Mapping[str, Any] | None, AttemptFailure | None]:
    """Single-tier fetch for summary-style calls; failures are logged, never raised."""
    started = time.monotonic()
    try:
        payload = _as_payload(await call())
        if not isinstance(payload, Mapping) or not payload.get("success"):
            raise SourceError(source=name, code="UNSUCCESSFUL_RESPONSE", message="service did not report success")
    except Exception as exc:
        error = _source_error(name, exc)
        failure = AttemptFailure(source=error.source, code=error.code, message=error.message)
        await reporter.failed(failure, date_range, started)
        return None, failure
    await reporter.succeeded(name, started)
    return payload, None
