"""
Logging configuration with secret redaction and run-scoped context.

Test runs type credentials into pages; none of them may reach the logs.
Every record emitted while a run is active carries that run's id.
"""

import re
import logging
import json
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Dict, Iterator, List, Optional
from datetime import datetime

from qaptain.utils.config import SECRET_PATTERNS

REDACTED = "[REDACTED]"

# Run id of the runner invocation executing in the current task
current_run_id: ContextVar[str] = ContextVar("current_run_id", default="-")

# Attributes every LogRecord carries; anything else was passed via ``extra``.
_STANDARD_ATTRS = frozenset([
    'name', 'msg', 'args', 'created', 'filename', 'funcName',
    'levelname', 'levelno', 'lineno', 'module', 'msecs',
    'pathname', 'process', 'processName', 'relativeCreated',
    'stack_info', 'exc_info', 'exc_text', 'thread', 'threadName',
    'taskName', 'message'
])

_SECRET_KEY = re.compile("|".join(SECRET_PATTERNS), re.IGNORECASE)

# key=value / key: "value" where the key looks secret
_SECRET_PAIR = re.compile(
    rf'(\w*(?:{"|".join(SECRET_PATTERNS)})\w*)\s*[=:]\s*["\']?[^"\'\s,}}]+["\']?',
    re.IGNORECASE
)

_SECRET_VALUES = [
    re.compile(r'Bearer\s+[A-Za-z0-9\-_\.]+', re.IGNORECASE),
    re.compile(r'Basic\s+[A-Za-z0-9\+/=]+', re.IGNORECASE),
    re.compile(r'sk-[A-Za-z0-9\-_]+'),   # OpenAI keys
    re.compile(r'eyJ[A-Za-z0-9\-_]+\.eyJ[A-Za-z0-9\-_]+'),  # JWTs
]


def redact_text(text: str) -> str:
    """Mask secret-looking values and ``key=value`` pairs with a secret key."""
    for pattern in _SECRET_VALUES:
        text = pattern.sub(REDACTED, text)
    return _SECRET_PAIR.sub(rf'\1={REDACTED}', text)


class RedactingFilter(logging.Filter):
    """Filter that redacts sensitive information from log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            record.msg = redact_text(record.msg)

        if isinstance(record.args, dict):
            record.args = redact_dict(record.args)
        elif record.args:
            record.args = tuple(redact_text(arg) if isinstance(arg, str) else arg for arg in record.args)
        return True


class RunContextFilter(logging.Filter):
    """Stamps each record with the id of the run executing in the current task."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "run_id"):
            record.run_id = current_run_id.get()
        return True


@contextmanager
def bind_run(run_id: str) -> Iterator[str]:
    """Attribute log records emitted inside the block to ``run_id``."""
    token = current_run_id.set(run_id)
    try:
        yield run_id
    finally:
        current_run_id.reset(token)


class JSONFormatter(logging.Formatter):
    """One JSON object per line, redacted."""

    def __init__(self):
        super().__init__()
        self.redacting_filter = RedactingFilter()

    def format(self, record: logging.LogRecord) -> str:
        self.redacting_filter.filter(record)

        log_data = {
            "timestamp": datetime.utcnow().isoformat() + "Z",
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in _STANDARD_ATTRS:
                log_data[key] = value

        return json.dumps(log_data, default=str)


def setup_logging(level: Optional[str] = None, log_format: Optional[str] = None):
    """Configure application logging."""
    from qaptain.utils.config import settings

    level = (level or settings.LOG_LEVEL).upper()
    log_format = (log_format or settings.LOG_FORMAT).lower()

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level, logging.INFO))
    root_logger.handlers.clear()

    handler = logging.StreamHandler()
    if log_format == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - run=%(run_id)s - %(message)s"
        ))
    handler.addFilter(RunContextFilter())
    handler.addFilter(RedactingFilter())

    root_logger.addHandler(handler)

    # Reduce noise from third-party libraries
    for noisy in ("httpx", "httpcore", "openai", "aiohttp", "asyncio", "sqlalchemy.engine"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def redact_dict(data: Dict[str, Any], keys_to_redact: Optional[List[str]] = None) -> Dict[str, Any]:
    """Copy of ``data`` with values under secret-looking keys masked, recursively."""
    key_pattern = _SECRET_KEY if keys_to_redact is None else re.compile("|".join(keys_to_redact), re.IGNORECASE)

    def scrub(value: Any) -> Any:
        if isinstance(value, dict):
            return {
                key: REDACTED if key_pattern.search(str(key)) else scrub(item)
                for key, item in value.items()
            }
        if isinstance(value, list):
            return [scrub(item) for item in value]
        return value

    return scrub(data)


def describe_value(label: str, value: str) -> str:
    """Loggable form of a value typed into a field; masks secret-looking fields."""
    if _SECRET_KEY.search(label or ""):
        return REDACTED
    return repr(value)
