"""JSON logging with stable schema."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from civicdata.common.constants import JSON_LOG_FIELDS
from civicdata.common.fs import ensure_dir
from civicdata.common.time_utils import utc_timestamp_iso


class JsonLineFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": utc_timestamp_iso(),
            "level": record.levelname,
            "message": record.getMessage(),
        }
        for field in JSON_LOG_FIELDS:
            if field in payload:
                continue
            payload[field] = getattr(record, field, None)
        return json.dumps(payload, ensure_ascii=False)


class RunIdFilter(logging.Filter):
    """Stamps every record with the run id unless the caller set one."""

    def __init__(self, run_id: str) -> None:
        super().__init__()
        self.run_id = run_id

    def filter(self, record: logging.LogRecord) -> bool:
        if getattr(record, "run_id", None) is None:
            record.run_id = self.run_id
        return True


def build_logger(run_id: str, log_dir: Path | None = None, level: str = "INFO") -> logging.Logger:
    logger = logging.getLogger(f"civicdata.{run_id}")
    logger.setLevel(level.upper())
    logger.handlers.clear()
    logger.filters.clear()
    logger.propagate = False
    logger.addFilter(RunIdFilter(run_id))

    stream = logging.StreamHandler()
    stream.setFormatter(JsonLineFormatter())
    logger.addHandler(stream)

    if log_dir is not None:
        log_path = log_dir / "run_meta" / f"{run_id}.log.jsonl"
        ensure_dir(log_path.parent)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setFormatter(JsonLineFormatter())
        logger.addHandler(file_handler)

    return logger


def log_event(logger: logging.Logger, message: str, level: int = logging.INFO, **event_fields: Any) -> None:
    logger.log(level, message, extra=event_fields)
