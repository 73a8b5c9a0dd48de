from __future__ import annotations

import logging
import re
from logging.config import dictConfig


EMAIL_RE = re.compile(r"[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}")
# Verification links, cookies and OAuth callbacks carry credentials as key=value.
SECRET_PARAM_RE = re.compile(r"\b((?:csrf_)?token|session|code|state)=[^\s&\"'<>;]+")


class _PIIRedactionFilter(logging.Filter):
    """Mask email addresses and credential parameters before records reach a handler."""

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            record.msg = redact(record.msg)
        if record.args and isinstance(record.args, tuple):
            record.args = tuple(_redact_arg(arg) for arg in record.args)
        return True


def _redact_arg(arg: object) -> object:
    if isinstance(arg, str):
        return redact(arg)
    if isinstance(arg, BaseException):
        # SMTP and HTTP errors often echo the recipient or the request URL.
        return redact(str(arg))
    return arg


def redact(value: str) -> str:
    value = EMAIL_RE.sub("[redacted-email]", value)
    return SECRET_PARAM_RE.sub(r"\1=[redacted]", value)


def setup_logging(level: str = "INFO") -> None:
    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "filters": {
                "redact_pii": {
                    "()": _PIIRedactionFilter,
                }
            },
            "formatters": {
                "default": {
                    "format": "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
                }
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "default",
                    "filters": ["redact_pii"],
                }
            },
            "root": {
                "handlers": ["console"],
                "level": level,
            },
        }
    )


logger = logging.getLogger("gighub")
