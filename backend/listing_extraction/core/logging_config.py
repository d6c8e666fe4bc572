"""
Logging setup for the extraction service

Structured JSON (or plain text) records on stdout, optional daily-rotated log
file, per-module levels, and masking of completion API credentials. Request
and extraction-run identifiers travel in a context variable and are merged
into every JSON record.
"""
import json
import logging
import re
import sys
from contextvars import ContextVar
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import Any, Dict, List, Optional

from listing_extraction.core.config import get_settings

log_context: ContextVar[Dict[str, Any]] = ContextVar("log_context", default={})

_STANDARD_ATTRS = set(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "asctime", "taskName"}

_SECRET_PATTERNS = [
    (re.compile(r"(Bearer\s+)[^\s\"']+", re.IGNORECASE), r"\1***"),
    (re.compile(r"(api[_-]?key[\"']?\s*[:=]\s*[\"']?)[^\"'\s,&}]+", re.IGNORECASE), r"\1***"),
    (re.compile(r"sk-[A-Za-z0-9_\-]{8,}"), "sk-***"),
]

# Extra fields that never reach a handler in clear text
_SECRET_FIELDS = {"api_key", "llm_api_key", "authorization"}


def mask_secrets(text: str) -> str:
    for pattern, replacement in _SECRET_PATTERNS:
        text = pattern.sub(replacement, text)
    return text


class SecretMaskingFilter(logging.Filter):
    """Masks completion API keys and bearer tokens in messages and extras"""

    def __init__(self, enabled: bool = True):
        super().__init__()
        self.enabled = enabled

    def filter(self, record: logging.LogRecord) -> bool:
        if not self.enabled:
            return True
        record.msg = mask_secrets(record.msg) if isinstance(record.msg, str) else record.msg
        if isinstance(record.args, tuple):
            record.args = tuple(mask_secrets(a) if isinstance(a, str) else a for a in record.args)
        for key in _SECRET_FIELDS & set(record.__dict__):
            setattr(record, key, "***")
        return True


class JsonLogFormatter(logging.Formatter):
    """One JSON object per record: base fields, run context, then extras"""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(log_context.get())
        for key, value in record.__dict__.items():
            if key not in _STANDARD_ATTRS and key not in entry:
                entry[key] = value
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


class LoggingConfig:
    """Process-wide logging configuration"""

    _configured = False
    _counts: Dict[str, int] = {}

    @classmethod
    def configure(cls, module_levels: Optional[Dict[str, str]] = None, force: bool = False):
        if cls._configured and not force:
            return
        settings = get_settings()

        levels = {
            "httpx": "WARNING",
            "httpcore": "WARNING",
            "uvicorn.error": "INFO",
            "uvicorn.access": "INFO" if settings.log_uvicorn_access else "WARNING",
            "listing_extraction": settings.log_level,
        }
        if settings.log_module_levels:
            try:
                levels.update(json.loads(settings.log_module_levels))
            except (json.JSONDecodeError, TypeError):
                print(f"Ignoring malformed LOG_MODULE_LEVELS: {settings.log_module_levels!r}", file=sys.stderr)
        levels.update(module_levels or {})

        if settings.log_format.lower() == "json":
            formatter: logging.Formatter = JsonLogFormatter(datefmt="%Y-%m-%dT%H:%M:%S")
        else:
            formatter = logging.Formatter(
                "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )

        handlers = cls._build_handlers(settings)
        secret_filter = SecretMaskingFilter(enabled=not settings.log_sensitive_data)
        for handler in handlers:
            handler.setFormatter(formatter)
            handler.addFilter(secret_filter)
        handlers.append(cls._CountingHandler(level=logging.DEBUG))

        logging.basicConfig(level=settings.log_level.upper(), handlers=handlers, force=True)
        for name, level in levels.items():
            logging.getLogger(name).setLevel(level.upper())

        cls._configured = True

    @staticmethod
    def _build_handlers(settings) -> List[logging.Handler]:
        handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
        if settings.log_file_enabled:
            path = Path(settings.log_file_path)
            if not path.is_absolute():
                path = Path(__file__).resolve().parents[3] / path
            path.parent.mkdir(parents=True, exist_ok=True)
            handlers.append(TimedRotatingFileHandler(
                filename=str(path),
                when="midnight",
                backupCount=settings.log_file_retention,
                encoding="utf-8",
            ))
        return handlers

    @classmethod
    def get_logger(cls, name: str) -> logging.Logger:
        if not cls._configured:
            cls.configure()
        return logging.getLogger(name)

    @classmethod
    def set_context(cls, **fields):
        """Merge fields into the context attached to JSON records"""
        log_context.set({**log_context.get(), **fields})

    @classmethod
    def clear_context(cls):
        log_context.set({})

    @classmethod
    def get_metrics(cls) -> Dict[str, int]:
        """Records emitted so far, by level name"""
        return dict(cls._counts)

    class _CountingHandler(logging.Handler):
        def emit(self, record: logging.LogRecord):
            counts = LoggingConfig._counts
            counts[record.levelname] = counts.get(record.levelname, 0) + 1
