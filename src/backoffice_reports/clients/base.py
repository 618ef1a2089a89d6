from __future__ import annotations

from dataclasses import dataclass

from ..http_client import AsyncHttpClient


@dataclass
class BaseClient:
    http: AsyncHttpClient
    access_token: str | None = None
    store_id: str | None = None

    def _auth_headers(self) -> dict[str, str]:
        headers: dict[str, str] = {}
        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"
        if self.store_id:
            headers["X-Store-ID"] = self.store_id
        return headers

    async def get_json(self, path: str, params: dict[str, str] | None = None, *, operation: str = "unknown"):
        return await self._request("GET", path, params=params, module="reports", operation=operation)

    async def _request(self, method: str, path: str, **kwargs):
        headers = kwargs.pop("headers", {})
        merged = {**self._auth_headers(), **headers}
        return await self.http.request(method, path, headers=merged, **kwargs)
