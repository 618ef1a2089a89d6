from __future__ import annotations

import json
import time
import uuid
from dataclasses import dataclass
from typing import Any

import httpx

from .config import EngineConfig
from .error_mapper import map_error
from .exceptions import TransportError

TRACE_HEADER = "X-Trace-ID"


@dataclass
class LastOperation:
    module: str
    operation: str
    duration_ms: int
    result: str
    trace_id: str | None


@dataclass
class AsyncHttpClient:
    config: EngineConfig
    client: httpx.AsyncClient | None = None
    last_operation: LastOperation | None = None

    def __post_init__(self) -> None:
        self._owns_client = self.client is None
        if self.client is None:
            self.client = httpx.AsyncClient(
                base_url=self.config.api_base_url.rstrip("/") + "/",
                timeout=httpx.Timeout(
                    self.config.timeout_seconds,
                    connect=self.config.connect_timeout_seconds,
                ),
                limits=httpx.Limits(max_connections=self.config.max_connections),
                verify=self.config.verify_ssl,
            )

    async def __aenter__(self) -> "AsyncHttpClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self.client is not None and self._owns_client:
            await self.client.aclose()

    async def request(
        self,
        method: str,
        path: str,
        *,
        headers: dict[str, str] | None = None,
        params: dict[str, Any] | None = None,
        module: str = "unknown",
        operation: str = "unknown",
    ) -> dict[str, Any] | list[Any] | None:
        if self.client is None:
            raise RuntimeError("HTTP client not initialized")
        trace_id = str(uuid.uuid4())
        request_headers = {"Accept": "application/json", TRACE_HEADER: trace_id}
        if headers:
            request_headers.update(headers)

        started = time.monotonic()
        try:
            response = await self.client.request(
                method.upper(),
                path.lstrip("/"),
                headers=request_headers,
                params=params,
            )
        except httpx.HTTPError as exc:
            self._record_operation(module, operation, started, "error", trace_id)
            raise TransportError(
                code="TRANSPORT_ERROR",
                message=str(exc) or type(exc).__name__,
                details={"type": type(exc).__name__},
                trace_id=trace_id,
                status_code=0,
                raw_payload=None,
            ) from exc

        trace_id = response.headers.get(TRACE_HEADER) or trace_id
        if response.is_success:
            self._record_operation(module, operation, started, "success", trace_id)
            if not response.content:
                return None
            try:
                return response.json()
            except json.JSONDecodeError as exc:
                raise TransportError(
                    code="INVALID_JSON",
                    message="Response body is not valid JSON",
                    details={"content_type": response.headers.get("content-type")},
                    trace_id=trace_id,
                    status_code=response.status_code,
                    raw_payload=response.text,
                ) from exc

        try:
            payload = response.json()
        except json.JSONDecodeError:
            payload = {"message": response.text}
        self._record_operation(module, operation, started, "error", trace_id)
        raise map_error(response.status_code, payload if isinstance(payload, dict) else {}, trace_id)

    async def get_json(self, path: str, **kwargs: Any) -> dict[str, Any] | list[Any] | None:
        return await self.request("GET", path, **kwargs)

    def _record_operation(self, module: str, operation: str, started: float, result: str, trace_id: str | None) -> None:
        self.last_operation = LastOperation(
            module=module,
            operation=operation,
            duration_ms=int((time.monotonic() - started) * 1000),
            result=result,
            trace_id=trace_id,
        )
