from __future__ import annotations

from datetime import date
from typing import Callable

import httpx

TODAY = date(2024, 5, 15)
BASE_URL = "https://api.example.com"

Handler = Callable[[httpx.Request], httpx.Response]


def route(responses: dict[str, object], *, default_status: int = 404) -> Handler:
    """Answer known paths with a JSON body; anything else gets ``default_status``."""

    def _handler(request: httpx.Request) -> httpx.Response:
        body = responses.get(request.url.path)
        if body is None:
            return httpx.Response(default_status, json={"success": False, "message": "unavailable"})
        if isinstance(body, httpx.Response):
            return body
        if callable(body):
            return body(request)
        return httpx.Response(200, json=body)

    return _handler


def backend_down(request: httpx.Request) -> httpx.Response:
    return httpx.Response(503, json={"success": False, "message": "service unavailable"})
