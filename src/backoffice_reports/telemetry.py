from __future__ import annotations

import asyncio
import json
import os
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

TELEMETRY_CATEGORIES = {"source_attempt", "report_load"}


@dataclass(frozen=True)
class TelemetryEvent:
    category: str
    name: str
    kind: str
    timestamp_utc: str
    source: str | None = None
    duration_ms: int | None = None
    success: bool | None = None
    error_code: str | None = None
    context: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        return {key: value for key, value in payload.items() if value is not None}


def build_event(
    *,
    category: str,
    name: str,
    kind: str,
    source: str | None = None,
    duration_ms: int | None = None,
    success: bool | None = None,
    error_code: str | None = None,
    context: dict[str, Any] | None = None,
    now: datetime | None = None,
) -> TelemetryEvent:
    if category not in TELEMETRY_CATEGORIES:
        raise ValueError(f"Unsupported telemetry category: {category}")
    stamp = (now or datetime.now(timezone.utc)).isoformat()
    return TelemetryEvent(
        category=category,
        name=name,
        kind=kind,
        timestamp_utc=stamp,
        source=source,
        duration_ms=duration_ms,
        success=success,
        error_code=error_code,
        context=context,
    )


class TelemetryLogger:
    """Appends events as JSON lines to ``log_file``.

    ``emit`` does blocking file I/O. Code running on the event loop uses
    ``aemit``, which performs the append in a worker thread.
    """

    def __init__(
        self,
        *,
        app_name: str = "backoffice-reports",
        enabled: bool | None = None,
        log_file: str | Path | None = None,
    ) -> None:
        self.app_name = app_name
        self.enabled = enabled if enabled is not None else _env_telemetry_enabled()
        self.log_file = Path(log_file) if log_file else Path("artifacts") / "telemetry" / f"{app_name}.jsonl"

    def emit(self, event: TelemetryEvent) -> bool:
        if not self.enabled:
            return False
        line = json.dumps({**event.to_dict(), "app_name": self.app_name}, sort_keys=True, default=str)
        self.log_file.parent.mkdir(parents=True, exist_ok=True)
        with self.log_file.open("a", encoding="utf-8") as fp:
            fp.write(f"{line}\n")
        return True

    async def aemit(self, event: TelemetryEvent) -> bool:
        if not self.enabled:
            return False
        return await asyncio.to_thread(self.emit, event)


def _env_telemetry_enabled() -> bool:
    value = os.getenv("BACKOFFICE_TELEMETRY_ENABLED", "0").strip().lower()
    return value in {"1", "true", "yes", "on"}
