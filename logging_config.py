"""
Structured logging configuration.

- JSON lines in production, text in development
- Every record emitted inside a request carries that request's id, so a
  storage warning can be matched to the toggle that caused it
- Store and engine context (storage key, card id, achievement id) is passed
  with ``extra=`` and rendered as its own JSON field
- One access line per API request, tagged with the card id from the URL
"""

from __future__ import annotations

import json
import logging
import time
import uuid

from flask import Flask, g, has_request_context, request

# Attributes set through ``extra=`` by storage, gamification and the access log
CONTEXT_FIELDS = ("request_id", "storage_key", "card_id", "achievement_id")

QUIET_PATHS = ("/health",)


class RequestContextFilter(logging.Filter):
    """Stamp the current request id onto records that don't carry one."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "request_id"):
            record.request_id = g.get("request_id", "-") if has_request_context() else "-"
        return True


class JSONFormatter(logging.Formatter):
    """Emit log records as single-line JSON."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for name in CONTEXT_FIELDS:
            value = getattr(record, name, None)
            if value not in (None, "-"):
                entry[name] = value
        if record.exc_info and record.exc_info[0]:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def init_logging(app: Flask) -> None:
    """Install one root handler from LOG_FORMAT/LOG_LEVEL and the request hooks."""
    log_format = app.config.get("LOG_FORMAT", "text")
    log_level = app.config.get("LOG_LEVEL", "INFO")

    root = logging.getLogger()
    root.setLevel(getattr(logging, log_level.upper(), logging.INFO))
    root.handlers.clear()

    handler = logging.StreamHandler()
    handler.addFilter(RequestContextFilter())
    if log_format == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s [%(request_id)s]: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        ))
    root.addHandler(handler)

    logging.getLogger("werkzeug").setLevel(logging.WARNING)

    @app.before_request
    def _attach_request_id():
        g.request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex[:12]
        g.request_start = time.time()

    @app.after_request
    def _log_request(response):
        response.headers["X-Request-ID"] = g.get("request_id", "-")
        if request.path in QUIET_PATHS:
            return response
        duration_ms = (time.time() - g.get("request_start", time.time())) * 1000
        extra = {"request_id": g.get("request_id", "-")}
        card_id = (request.view_args or {}).get("card_id")
        if card_id:
            extra["card_id"] = card_id
        app.logger.info(
            "%s %s %s %.0fms",
            request.method,
            request.path,
            response.status_code,
            duration_ms,
            extra=extra,
        )
        return response
