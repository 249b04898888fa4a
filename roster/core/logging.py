import logging
import logging.config
import re

# OCR noise occasionally lands contact details inside a "name".
SENSITIVE_PATTERNS = [
    re.compile(r"[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}"),
    re.compile(r"\b\d{3}-?\d{2}-?\d{4}\b"),
    re.compile(r"\b(?:\+1[-.\s]?)?(?:\(?\d{3}\)?[-.\s]?)\d{3}[-.\s]?\d{4}\b"),
]

MAX_LOGGED_STRING = 120


class SafeNameFilter(logging.Filter):
    """Redact contact fragments and clip run-on junk strings in log arguments."""

    def _redact(self, value: object) -> object:
        if not isinstance(value, str):
            return value
        for pattern in SENSITIVE_PATTERNS:
            value = pattern.sub("[REDACTED]", value)
        return value

    def _sanitize(self, value: object) -> object:
        cleaned = self._redact(value)
        if isinstance(cleaned, str) and len(cleaned) > MAX_LOGGED_STRING:
            cleaned = cleaned[:MAX_LOGGED_STRING] + "..."
        return cleaned

    def filter(self, record: logging.LogRecord) -> bool:
        # The format string is only redacted; clipping it could split a placeholder.
        record.msg = self._redact(record.msg)

        if isinstance(record.args, tuple):
            record.args = tuple(self._sanitize(item) for item in record.args)
        elif isinstance(record.args, dict):
            record.args = {key: self._sanitize(value) for key, value in record.args.items()}

        return True


def build_logging_config(level: str) -> dict:
    """dictConfig payload: one stderr handler, pass/executor chatter at *level*."""
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {
            "safe_names": {"()": "roster.core.logging.SafeNameFilter"},
        },
        "formatters": {
            "default": {
                "format": "%(asctime)s %(levelname)s %(name)s %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
        },
        "handlers": {
            # stdout belongs to the CLI's tables
            "stderr": {
                "class": "logging.StreamHandler",
                "stream": "ext://sys.stderr",
                "formatter": "default",
                "filters": ["safe_names"],
            },
        },
        "root": {"handlers": ["stderr"], "level": "WARNING"},
        "loggers": {
            "roster": {"level": level.upper()},
            "sqlalchemy.engine": {"level": "WARNING"},
            "alembic": {"level": "INFO"},
        },
    }


def setup_logging(level: str | None = None) -> None:
    from roster.core.settings import get_settings

    logging.config.dictConfig(build_logging_config(level or get_settings().log_level))
