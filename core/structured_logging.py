"""Structured logging helpers with run, phase and unit correlation context."""

from __future__ import annotations

import contextvars
import logging
import uuid
from contextlib import contextmanager
from typing import Iterator

_RUN_ID_VAR: contextvars.ContextVar[str] = contextvars.ContextVar(
    "run_id", default="-"
)
_PHASE_VAR: contextvars.ContextVar[str] = contextvars.ContextVar(
    "phase", default="-"
)
_UNIT_VAR: contextvars.ContextVar[str] = contextvars.ContextVar(
    "unit", default="-"
)


class _RunContextFilter(logging.Filter):
    """Inject run correlation fields into all log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.run_id = _RUN_ID_VAR.get("-")
        record.phase = _PHASE_VAR.get("-")
        record.unit = _UNIT_VAR.get("-")
        return True


def _ensure_filter_on_root_handlers() -> None:
    root_logger = logging.getLogger()
    for handler in root_logger.handlers:
        has_filter = any(isinstance(f, _RunContextFilter) for f in handler.filters)
        if not has_filter:
            handler.addFilter(_RunContextFilter())


def configure_structured_logging(level: int = logging.INFO) -> None:
    """Configure root logging format with run/phase/unit context."""
    fmt = (
        "%(asctime)s | %(levelname)s | run_id=%(run_id)s | phase=%(phase)s | "
        "unit=%(unit)s | %(name)s | %(message)s"
    )
    root_logger = logging.getLogger()
    if not root_logger.handlers:
        logging.basicConfig(level=level, format=fmt)
    else:
        root_logger.setLevel(level)
        formatter = logging.Formatter(fmt)
        for handler in root_logger.handlers:
            handler.setFormatter(formatter)
    _ensure_filter_on_root_handlers()


def set_run_id(run_id: str | None = None) -> str:
    """Set or generate run correlation ID."""
    value = run_id or str(uuid.uuid4())
    _RUN_ID_VAR.set(value)
    return value


def get_run_id() -> str:
    """Get current run correlation ID."""
    return _RUN_ID_VAR.get("-")


def get_unit() -> str:
    """Get the source unit currently being processed."""
    return _UNIT_VAR.get("-")


@contextmanager
def phase_scope(phase: str) -> Iterator[None]:
    """Temporarily set phase context for emitted logs."""
    token = _PHASE_VAR.set(phase)
    try:
        yield
    finally:
        _PHASE_VAR.reset(token)


@contextmanager
def unit_scope(unit: str) -> Iterator[None]:
    """Temporarily set the source unit name for emitted logs.

    Worker threads start with an empty context, so the pipeline enters this
    scope inside each task rather than around the executor.
    """
    token = _UNIT_VAR.set(unit)
    try:
        yield
    finally:
        _UNIT_VAR.reset(token)
