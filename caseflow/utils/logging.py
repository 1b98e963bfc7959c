"""Structured logging setup for the case management backend."""

import logging
from contextlib import contextmanager
from functools import wraps
from typing import Optional, Dict, Any, Iterator, List
from pathlib import Path


DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Context fields a format string may reference outside any case
CONTEXT_DEFAULTS = {"case_id": "-", "component": "-"}


class ContextFilter(logging.Filter):
    """
    Stamp the active case context onto every log record.

    Fields missing from the context fall back to ``CONTEXT_DEFAULTS`` so a
    format such as ``[%(case_id)s]`` works for log lines outside a case.
    """

    def __init__(self, defaults: Optional[Dict[str, Any]] = None):
        super().__init__()
        self.defaults = dict(CONTEXT_DEFAULTS if defaults is None else defaults)
        self.context: Dict[str, Any] = {}

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in {**self.defaults, **self.context}.items():
            if key in self.context or not hasattr(record, key):
                setattr(record, key, value)
        return True

    @contextmanager
    def scoped(self, **fields: Any) -> Iterator[None]:
        """Add fields for the duration of a block, then restore the previous context."""
        saved = self.context
        self.context = {**saved, **fields}
        try:
            yield
        finally:
            self.context = saved


_context_filter = ContextFilter()


def _build_handlers(log_file: Optional[str]) -> List[logging.Handler]:
    handlers: List[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))
    return handlers


def setup_logging(
    level: str = "INFO",
    log_format: str = DEFAULT_FORMAT,
    log_file: Optional[str] = None
) -> logging.Logger:
    """
    Route all case management logging through the root logger.

    Console output is always enabled; a file handler is added when
    ``log_file`` is given. Every handler carries the case context filter.

    Args:
        level: Logging level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Format string for log messages; may use ``%(case_id)s``
            and ``%(component)s``
        log_file: Optional path to log file, parent directories are created

    Returns:
        Configured root logger
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)

    formatter = logging.Formatter(log_format)
    for handler in _build_handlers(log_file):
        handler.setLevel(numeric_level)
        handler.setFormatter(formatter)
        handler.addFilter(_context_filter)
        root_logger.addHandler(handler)

    return root_logger


def set_context(**kwargs):
    """
    Set context fields for all subsequent log messages.

    Example:
        set_context(case_id="case-12", component="workflow")
        logger.info("Marking case as finished")
    """
    _context_filter.context = {**_context_filter.context, **kwargs}


def clear_context():
    _context_filter.context = {}


def get_context() -> Dict[str, Any]:
    """Return a copy of the current context fields."""
    return dict(_context_filter.context)


def case_context(case_id: str, **extra: Any):
    """
    Scope log context to a single case.

    Example:
        with case_context("case-12", component="repository"):
            logger.info("Invoice deleted")
    """
    return _context_filter.scoped(case_id=case_id, **extra)


def with_context(**context_kwargs):
    """
    Decorator to add context to all log messages within a function.

    Example:
        @with_context(component="workflow")
        def mark_finished(repo, case_id, date):
            ...
    """
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            with _context_filter.scoped(**context_kwargs):
                return func(*args, **kwargs)

        return wrapper
    return decorator
