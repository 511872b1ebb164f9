"""JSON logging for the consultation assistant.

Client phone numbers travel in the ``context`` of most records; the handler
installed by ``setup_logging`` masks them and scrubs configured secrets
before anything reaches stdout.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Iterable, Optional

PHONE_CONTEXT_KEYS = ("phone", "from", "to")
VISIBLE_PHONE_DIGITS = 4


def mask_phone(value: Any) -> Any:
    """``whatsapp:+15551234567`` -> ``whatsapp:+*******4567``; non-strings pass through."""
    if not isinstance(value, str):
        return value
    prefix, sep, number = value.rpartition(":")
    if len(number) <= VISIBLE_PHONE_DIGITS:
        return value
    hidden = len(number) - VISIBLE_PHONE_DIGITS
    lead = "+" if number.startswith("+") else ""
    return f"{prefix}{sep}{lead}{'*' * (hidden - len(lead))}{number[hidden:]}"


class SensitiveDataFilter(logging.Filter):
    """Mask client phones in record context and replace secret values in messages."""

    def __init__(self, secrets: Iterable[Optional[str]] = (), mask_phones: bool = True):
        super().__init__()
        self.secrets = [secret for secret in secrets if secret]
        self.mask_phones = mask_phones

    def filter(self, record: logging.LogRecord) -> bool:
        if self.secrets:
            message = record.getMessage()
            for secret in self.secrets:
                message = message.replace(secret, "[REDACTED]")
            record.msg, record.args = message, None

        context = getattr(record, "context", None)
        if self.mask_phones and isinstance(context, dict):
            record.context = {
                key: mask_phone(value) if key in PHONE_CONTEXT_KEYS else value for key, value in context.items()
            }
        return True


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if getattr(record, "context", None):
            log_data["context"] = record.context

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, ensure_ascii=False, default=str)


def setup_logging(
    level: str = "INFO",
    secrets: Iterable[Optional[str]] = (),
    mask_phones: bool = True,
) -> logging.Handler:
    """Replace root handlers with one JSON stdout handler and return it."""
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter())
    handler.addFilter(SensitiveDataFilter(secrets, mask_phones))
    root_logger.addHandler(handler)

    for noisy in ("httpx", "httpcore", "uvicorn.access", "twilio.http_client"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
    return handler


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(f"curlbot.{name}")


class LoggerAdapter(logging.LoggerAdapter):
    """Adds a fixed context (usually the client's phone) to every record.

    Per-call ``context=`` entries are merged over it.
    """

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        context = kwargs.pop("context", None)
        if context or self.extra:
            kwargs["extra"] = {"context": {**self.extra, **(context or {})}}
        return msg, kwargs
