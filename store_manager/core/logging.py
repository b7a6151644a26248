"""Structured logging for the store API.

Every record is one JSON object. Records emitted while a request is in flight
carry its ``request_id`` and, after authentication, the acting staff member's
``user_id`` and ``role``. Call sites add domain identifiers (``sale_id``,
``order_id``, ``product_id``) through ``extra={"extra_data": {...}}``.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Mapping

from ..middlewares.request_id import request_id_ctx_var, staff_ctx_var

# Uvicorn's access log duplicates "request.completed".
QUIET_LOGGERS = ("uvicorn.access",)


class StoreLogFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z",
            "level": record.levelname.lower(),
            "logger": record.name,
            "event": record.getMessage(),
        }
        request_id = request_id_ctx_var.get()
        if request_id:
            payload["request_id"] = request_id
        staff = staff_ctx_var.get()
        if staff:
            payload.update(staff)
        extra = getattr(record, "extra_data", None)
        if isinstance(extra, Mapping):
            payload.update(extra)
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, separators=(",", ":"), default=str)


def configure_logging(level: str = "INFO") -> None:
    handler = logging.StreamHandler()
    handler.setFormatter(StoreLogFormatter())
    logging.root.handlers = [handler]
    logging.root.setLevel(level.upper())
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
