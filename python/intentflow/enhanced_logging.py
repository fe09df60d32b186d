"""intentflow logging helpers.

Provides logging setup from settings, a timing decorator, and log hygiene
helpers for step params and wallet addresses. Delegates to Python's
standard logging library.
"""

import functools
import inspect
import json
import logging
import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

SENSITIVE_FIELDS = ("privateKey", "secret", "password", "mnemonic", "seed")
REDACTED = "***REDACTED***"

_ROOT_LOGGER = "intentflow"


class JsonFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            entry["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def configure_logging(settings: Any) -> logging.Logger:
    """Attach a handler to the ``intentflow`` logger according to settings.

    Idempotent: handlers installed by a previous call are replaced.
    """
    root = logging.getLogger(_ROOT_LOGGER)
    for handler in list(root.handlers):
        if getattr(handler, "_intentflow_handler", False):
            root.removeHandler(handler)
            handler.close()

    if settings.log_file:
        handler: logging.Handler = logging.FileHandler(settings.log_file)
    else:
        handler = logging.StreamHandler()

    if settings.log_format == "json":
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s")
        )
    handler._intentflow_handler = True  # type: ignore[attr-defined]

    root.addHandler(handler)
    root.setLevel(settings.get_log_level())
    return root


def track_performance(func: Optional[Callable] = None, *, operation: str = ""):
    """Decorator that logs execution time of a function."""
    def decorator(fn: Callable) -> Callable:
        op = operation or fn.__qualname__

        @functools.wraps(fn)
        def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
            start = time.perf_counter()
            try:
                return fn(*args, **kwargs)
            finally:
                elapsed = time.perf_counter() - start
                logging.getLogger(fn.__module__).debug(
                    "%s completed in %.3fs", op, elapsed
                )

        @functools.wraps(fn)
        async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
            start = time.perf_counter()
            try:
                return await fn(*args, **kwargs)
            finally:
                elapsed = time.perf_counter() - start
                logging.getLogger(fn.__module__).debug(
                    "%s completed in %.3fs", op, elapsed
                )

        if inspect.iscoroutinefunction(fn):
            return async_wrapper
        return sync_wrapper

    if func is not None:
        return decorator(func)
    return decorator


def mask_address(address: Optional[str]) -> Optional[str]:
    """Shorten a wallet address to ``0x1234...abcd`` for logs."""
    if not address or len(address) <= 10:
        return address
    return f"{address[:6]}...{address[-4:]}"


def sanitize_params(params: Dict[str, Any]) -> Dict[str, Any]:
    """Shallow copy of params with sensitive fields redacted."""
    sanitized = dict(params)
    for name in SENSITIVE_FIELDS:
        if name in sanitized:
            sanitized[name] = REDACTED
    return sanitized
