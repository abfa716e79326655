"""
Logging setup for the Discogs quiz recommender.

Call ``configure_logging(config.logging)`` once at CLI entry, before any
network work.  Library modules only ever call ``logging.getLogger(__name__)``.

PLAINTEXT OAuth puts secrets into the ``Authorization`` header, so every
handler installed here carries ``RedactSecretsFilter``: values of
``oauth_signature``, ``oauth_token_secret`` and ``oauth_verifier`` are masked
before a record is formatted, whichever logger emitted it.

JSON format (``json_format = true`` under ``[logging]``) emits one object per
line::

    {"ts": "2026-10-19T15:00:00Z", "level": "INFO", "logger": "...", "msg": "..."}
"""

from __future__ import annotations

import json
import logging
import re
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from discogs_quiz.config import LoggingConfig

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%dT%H:%M:%SZ"

_SECRET_PATTERN = re.compile(
    r'(oauth_signature|oauth_token_secret|oauth_verifier)(="|=)([^"&,\s]+)'
)
_TRACEBACK_FORMATTER = logging.Formatter()


def redact(text: str) -> str:
    """Mask OAuth secret values in ``text`` (header or form-encoded style)."""
    return _SECRET_PATTERN.sub(r"\1\2***", text)


class RedactSecretsFilter(logging.Filter):
    """Mask OAuth secrets in a record's rendered message and traceback.

    The traceback is rendered into ``record.exc_text`` here, which every
    ``logging.Formatter`` reuses instead of formatting ``exc_info`` again.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        masked = redact(message)
        if masked != message:
            record.msg = masked
            record.args = None
        if record.exc_info and not record.exc_text:
            record.exc_text = _TRACEBACK_FORMATTER.formatException(record.exc_info)
        if record.exc_text:
            record.exc_text = redact(record.exc_text)
        return True


class _JsonFormatter(logging.Formatter):
    """One JSON object per line; ``extra=`` kwargs are lifted to the top level."""

    _STANDARD_ATTRS = frozenset(
        logging.LogRecord("", 0, "", 0, "", None, None).__dict__
    ) | {"message", "asctime"}

    def format(self, record: logging.LogRecord) -> str:
        payload: dict = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).strftime(
                LOG_DATE_FORMAT
            ),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            payload["exc"] = redact(record.exc_text or self.formatException(record.exc_info))
        for key, val in record.__dict__.items():
            if key not in self._STANDARD_ATTRS and not key.startswith("_"):
                payload[key] = val
        return json.dumps(payload, default=str)


def configure_logging(config: "LoggingConfig") -> None:
    """Configure the root logger from a ``LoggingConfig`` instance.

    Sets up a stdout handler, an optional file handler (parent directories are
    created), the optional JSON formatter, and secret redaction on both.

    Args:
        config: Logging section of ``AppConfig``.
    """
    level = getattr(logging, config.level.upper(), logging.INFO)

    formatter: logging.Formatter
    if config.json_format:
        formatter = _JsonFormatter()
    else:
        formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    redactor = RedactSecretsFilter()
    handlers: list[logging.Handler] = []

    console = logging.StreamHandler(sys.stdout)
    handlers.append(console)

    if config.log_file:
        log_path = Path(config.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path, encoding="utf-8"))

    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        handler.addFilter(redactor)

    logging.basicConfig(level=level, handlers=handlers, force=True)

    # httpx logs every request line at INFO, including query strings
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
