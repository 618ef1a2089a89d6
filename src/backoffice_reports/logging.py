from __future__ import annotations

import json
import logging

PACKAGE_LOGGER = "backoffice_reports"


def configure_logging(level: int | str = logging.INFO) -> None:
    logging.basicConfig(level=level, format="%(message)s")
    logging.getLogger(PACKAGE_LOGGER).setLevel(level)


def log_json(logger: logging.Logger, payload: dict, *, level: int = logging.INFO) -> None:
    logger.log(level, json.dumps(payload, ensure_ascii=False, default=str))
