from __future__ import annotations

import json
import logging

from app.concierge.core.config import settings

_QUIET_LOGGERS = ("uvicorn.access", "passlib")


def configure_logging(level: str | None = None) -> None:
    logging.basicConfig(level=(level or settings.LOG_LEVEL).upper(), format="%(message)s")
    # concierge.request already emits one line per request.
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def log_json(logger: logging.Logger, payload: dict, *, level: int = logging.INFO) -> None:
    logger.log(level, json.dumps(payload, ensure_ascii=False, default=str))
