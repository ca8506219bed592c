"""Diagnostics channel shared by every conversion stage.

Stages never raise for recoverable problems. They return an ``Outcome``
carrying the value they managed to build together with the diagnostics they
produced, and the caller folds those into its own collector.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Generic, Iterable, List, Optional, TypeVar

logger = logging.getLogger(__name__)

INFO = "info"
WARNING = "warning"
ERROR = "error"

SEVERITIES = (INFO, WARNING, ERROR)

_LOG_LEVELS = {
    INFO: logging.INFO,
    WARNING: logging.WARNING,
    ERROR: logging.ERROR,
}

T = TypeVar("T")


@dataclass(frozen=True)
class Diagnostic:
    """One record on the diagnostics channel.

    Attributes:
        severity: One of ``info``, ``warning``, ``error``.
        message: Human readable description.
        identifier: Class or ``Class::Method(types)`` the record refers to.
        unit: Name of the source unit the record was produced for.
        offset: Byte offset into the unit, for structural problems.
    """

    severity: str
    message: str
    identifier: Optional[str] = None
    unit: Optional[str] = None
    offset: Optional[int] = None

    def __post_init__(self) -> None:
        if self.severity not in SEVERITIES:
            raise ValueError(f"Unknown diagnostic severity: {self.severity}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "severity": self.severity,
            "message": self.message,
            "identifier": self.identifier,
            "unit": self.unit,
            "offset": self.offset,
        }

    def __str__(self) -> str:
        where = []
        if self.unit:
            where.append(self.unit)
        if self.offset is not None:
            where.append(f"@{self.offset}")
        if self.identifier:
            where.append(self.identifier)
        prefix = f"[{' '.join(where)}] " if where else ""
        return f"{self.severity.upper()}: {prefix}{self.message}"


class DiagnosticCollector:
    """Ordered accumulator for diagnostics produced by one stage."""

    def __init__(self, unit: Optional[str] = None):
        self.unit = unit
        self._records: List[Diagnostic] = []

    def add(
        self,
        severity: str,
        message: str,
        identifier: Optional[str] = None,
        offset: Optional[int] = None,
    ) -> Diagnostic:
        record = Diagnostic(
            severity=severity,
            message=message,
            identifier=identifier,
            unit=self.unit,
            offset=offset,
        )
        self._records.append(record)
        logger.log(_LOG_LEVELS[severity], "%s", record)
        return record

    def info(self, message: str, identifier: Optional[str] = None, offset: Optional[int] = None) -> Diagnostic:
        return self.add(INFO, message, identifier, offset)

    def warning(self, message: str, identifier: Optional[str] = None, offset: Optional[int] = None) -> Diagnostic:
        return self.add(WARNING, message, identifier, offset)

    def error(self, message: str, identifier: Optional[str] = None, offset: Optional[int] = None) -> Diagnostic:
        return self.add(ERROR, message, identifier, offset)

    def extend(self, records: Iterable[Diagnostic]) -> None:
        """Append records produced elsewhere without re-logging them."""
        self._records.extend(records)

    @property
    def records(self) -> List[Diagnostic]:
        return list(self._records)

    def __len__(self) -> int:
        return len(self._records)


@dataclass
class Outcome(Generic[T]):
    """Result of a best-effort stage: a value (possibly None) plus diagnostics."""

    value: Optional[T]
    diagnostics: List[Diagnostic] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.value is not None and not any(
            d.severity == ERROR for d in self.diagnostics
        )


def count_by_severity(records: Iterable[Diagnostic]) -> Dict[str, int]:
    """Count diagnostics per severity (all severities present as keys)."""
    counts = {severity: 0 for severity in SEVERITIES}
    for record in records:
        counts[record.severity] += 1
    return counts


def has_severity(records: Iterable[Diagnostic], severity: str) -> bool:
    return any(record.severity == severity for record in records)
