"""Logging setup: plain text by default, structured JSON when requested.

JSON output uses python-json-logger and carries a ``severity`` field so log
collectors that key on it (Cloud Logging, Loki) classify records correctly.
"""

from __future__ import annotations

import logging

from pythonjsonlogger.json import JsonFormatter


class SeverityJsonFormatter(JsonFormatter):
    """JSON formatter that replaces ``levelname`` with ``severity``."""

    def add_fields(
        self,
        log_record: dict[str, object],
        record: logging.LogRecord,
        message_dict: dict[str, object],
    ) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["severity"] = record.levelname
        log_record.pop("levelname", None)


def setup_logging(*, level: str = "INFO", json: bool = False) -> None:
    """Configure the root logger with a single stream handler."""
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    # Remove existing handlers
    for h in root.handlers[:]:
        root.removeHandler(h)

    handler = logging.StreamHandler()
    if json:
        handler.setFormatter(SeverityJsonFormatter(
            fmt="%(message)s %(name)s %(funcName)s %(lineno)d",
            rename_fields={"name": "logger"},
        ))
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)-8s %(name)s:%(lineno)d  %(message)s",
            datefmt="%H:%M:%S",
        ))

    root.addHandler(handler)

    # httpx logs every request at INFO; keep it quiet unless debugging
    if root.level > logging.DEBUG:
        logging.getLogger("httpx").setLevel(logging.WARNING)
