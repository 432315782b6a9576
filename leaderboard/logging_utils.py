"""
Structured logging for the leaderboard service.

Messages are short event names (``score_saved``, ``sessions_swept``); the
details travel as ``extra=`` fields and are rendered either as one JSON
object per line or as ``key=value`` pairs for a terminal.
"""

import json
import logging
import os
import sys
from contextvars import ContextVar
from typing import Any, Dict, Optional, Union

request_id_ctx: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

# Attributes every LogRecord carries; anything else came in through extra=
_RECORD_ATTRS = set(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {
    "message",
    "asctime",
    "color_message",  # uvicorn duplicate of msg with ANSI codes
}


def record_fields(record: logging.LogRecord) -> Dict[str, Any]:
    fields = {
        key: val for key, val in vars(record).items()
        if key not in _RECORD_ATTRS and not key.startswith("_") and val is not None
    }
    rid = request_id_ctx.get()
    if rid:
        fields["request_id"] = rid
    return fields


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "level": record.levelname,
            "time": self.formatTime(record, datefmt="%Y-%m-%dT%H:%M:%S%z"),
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(record_fields(record))
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


class PrettyFormatter(logging.Formatter):
    """``LEVEL HH:MM:SS logger - message key=value ...``"""

    def format(self, record: logging.LogRecord) -> str:
        line = "{} {} {} - {}".format(
            record.levelname,
            self.formatTime(record, datefmt="%H:%M:%S"),
            record.name,
            record.getMessage(),
        )
        fields = record_fields(record)
        if fields:
            line += " " + " ".join(f"{k}={v}" for k, v in fields.items())
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def setup_logging(level: Union[int, str] = logging.INFO) -> logging.Logger:
    """Configure the root logger and route uvicorn's loggers through it.

    LOG_FORMAT=json or LOG_FORMAT=pretty picks the format; when unset,
    pretty is used on a TTY and JSON otherwise.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    fmt = os.getenv("LOG_FORMAT", "").lower()
    pretty = fmt == "pretty" or (fmt == "" and hasattr(sys.stdout, "isatty") and sys.stdout.isatty())

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(PrettyFormatter() if pretty else JsonFormatter())

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers = [handler]

    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        lg = logging.getLogger(name)
        lg.handlers = [handler]
        lg.setLevel(level)
        lg.propagate = False

    return root


def get_logger(name: str = "leaderboard") -> logging.Logger:
    return logging.getLogger(name)
