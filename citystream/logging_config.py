"""
logging_config.py

Console logging for every run, plus an optional JSON-lines file
(`LOG_DIR/backend.jsonl`) that the operator log endpoints can tail.
"""
from __future__ import annotations

import json
import logging
import os
from datetime import datetime, timezone

from citystream.config import Settings

LOG_FILE_NAME = "backend.jsonl"
_MARKER = "_citystream_handler"


class JsonLineFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload)


def configure_logging(settings: Settings) -> logging.Logger:
    root = logging.getLogger("citystream")
    root.setLevel(getattr(logging, settings.log_level, logging.INFO))

    if any(getattr(h, _MARKER, False) for h in root.handlers):
        return root

    console = logging.StreamHandler()
    console.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s"))
    setattr(console, _MARKER, True)
    root.addHandler(console)

    if settings.log_dir:
        os.makedirs(settings.log_dir, exist_ok=True)
        file_handler = logging.FileHandler(os.path.join(settings.log_dir, LOG_FILE_NAME), encoding="utf-8")
        file_handler.setFormatter(JsonLineFormatter())
        setattr(file_handler, _MARKER, True)
        root.addHandler(file_handler)

    return root
