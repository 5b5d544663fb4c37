"""Structured JSON logging for Cloud Run compatibility.

Configures python-json-logger for GCP Cloud Logging severity mapping
when hosted, and a compact text format for local development.
"""

from __future__ import annotations

import logging
import os
import re
import uuid

from pythonjsonlogger.json import JsonFormatter

# GCP severity mapping: Python log levels -> Cloud Logging severity strings
_GCP_SEVERITY = {
    "DEBUG": "DEBUG",
    "INFO": "INFO",
    "WARNING": "WARNING",
    "ERROR": "ERROR",
    "CRITICAL": "CRITICAL",
}

# Third-party loggers that echo every outbound request URL. Telegram URLs
# embed the bot token, so keep them quiet below WARNING.
_NOISY_LOGGERS = ("httpx", "httpcore", "openai")

# Bot API URLs look like /bot123456:AA.../sendMessage
_BOT_TOKEN = re.compile(r"bot\d+:[A-Za-z0-9_-]+")


def redact(text: str) -> str:
    return _BOT_TOKEN.sub("bot<redacted>", text)


class BotTokenFilter(logging.Filter):
    """Mask Telegram bot tokens in log messages, tracebacks and stack info.

    Tracebacks are rendered here and stored on ``exc_text``; ``exc_info`` is
    cleared so no formatter renders the raw exception again.
    """

    _formatter = logging.Formatter()

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = redact(message)
        if redacted != message:
            record.msg = redacted
            record.args = None
        if record.exc_info:
            if not record.exc_text:
                record.exc_text = self._formatter.formatException(record.exc_info)
            record.exc_info = None
        if record.exc_text:
            record.exc_text = redact(record.exc_text)
        if record.stack_info:
            record.stack_info = redact(record.stack_info)
        return True


class GCPJsonFormatter(JsonFormatter):
    """JSON formatter that maps Python log levels to GCP severity."""

    def add_fields(
        self,
        log_record: dict[str, object],
        record: logging.LogRecord,
        message_dict: dict[str, object],
    ) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["severity"] = _GCP_SEVERITY.get(record.levelname, record.levelname)
        log_record.pop("levelname", None)


_configured = False


def setup_logging(*, level: str = "INFO", force: bool = True) -> None:
    """Configure structured JSON logging when on Cloud Run, plain text locally.

    With ``force=False`` an earlier configuration (e.g. from the CLI) is kept.
    """
    global _configured
    if _configured and not force:
        return
    _configured = True

    is_cloud_run = bool(os.getenv("K_SERVICE"))

    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    for h in root.handlers[:]:
        root.removeHandler(h)

    handler = logging.StreamHandler()
    if is_cloud_run:
        handler.setFormatter(GCPJsonFormatter(
            fmt="%(message)s %(name)s %(funcName)s %(lineno)d",
            rename_fields={"message": "message", "name": "logger"},
        ))
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)-8s %(name)s:%(lineno)d  %(message)s",
            datefmt="%H:%M:%S",
        ))

    handler.addFilter(BotTokenFilter())
    root.addHandler(handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def generate_request_id() -> str:
    """Generate a unique request ID for trace correlation."""
    return uuid.uuid4().hex[:16]
