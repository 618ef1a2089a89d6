from __future__ import annotations

import logging
import os
from datetime import date
from typing import Callable, Iterator

import httpx
import pytest

from backoffice_reports.clients import ReportsClient
from backoffice_reports.config import EngineConfig
from backoffice_reports.http_client import AsyncHttpClient
from backoffice_reports.logging import PACKAGE_LOGGER
from backoffice_reports.synthetic import SyntheticGenerator

from .support import BASE_URL, TODAY, Handler


@pytest.fixture(autouse=True)
def _isolate_backoffice_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in list(os.environ):
        if key.startswith("BACKOFFICE_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture(autouse=True)
def _restore_package_log_level() -> Iterator[None]:
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    level = package_logger.level
    yield
    package_logger.setLevel(level)


@pytest.fixture
def today() -> date:
    return TODAY


@pytest.fixture
def generator() -> SyntheticGenerator:
    return SyntheticGenerator(seed=7)


@pytest.fixture
def config() -> EngineConfig:
    return EngineConfig(env_name="test", api_base_url=BASE_URL)


@pytest.fixture
def make_http(config: EngineConfig) -> Callable[[Handler], AsyncHttpClient]:
    def _make(handler: Handler) -> AsyncHttpClient:
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url=f"{BASE_URL}/")
        return AsyncHttpClient(config=config, client=client)

    return _make


@pytest.fixture
def make_reports(make_http: Callable[[Handler], AsyncHttpClient]) -> Callable[..., ReportsClient]:
    def _make(handler: Handler, **kwargs: str) -> ReportsClient:
        return ReportsClient(http=make_http(handler), **kwargs)

    return _make
