"""Logging setup for the shiftdesk API."""

from __future__ import annotations

import json
import logging
import os
import sys
from datetime import datetime, timezone

TEXT_FORMAT = "%(asctime)s [%(name)s] %(levelname)s: %(message)s"
QUIET_LOGGERS = ("uvicorn.access", "httpcore", "httpx")


class JSONFormatter(logging.Formatter):
    """One JSON object per line, tagged with the organization when the caller passed one."""

    def format(self, record):
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        organization_id = getattr(record, "organization_id", None)
        if organization_id is not None:
            entry["organization_id"] = organization_id
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry)


def setup_logging(level: str | None = None, json_output: bool | None = None) -> None:
    level = level or os.getenv("LOG_LEVEL", "INFO")
    if json_output is None:
        json_output = os.getenv("LOG_FORMAT", "text").lower() == "json"

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter() if json_output else logging.Formatter(TEXT_FORMAT))

    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    root.handlers = [handler]

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
