"""Core shared contracts and utilities."""

from core.diagnostics import (
    ERROR,
    INFO,
    WARNING,
    Diagnostic,
    DiagnosticCollector,
    Outcome,
    count_by_severity,
    has_severity,
)
from core.structured_logging import (
    configure_structured_logging,
    get_run_id,
    get_unit,
    phase_scope,
    set_run_id,
    unit_scope,
)
from core.converter_config import (
    ConfigValidationError,
    ConverterOptions,
    load_converter_options,
    load_options_file,
    options_from_mapping,
    resolve_strict_config_validation,
)
from core.run_artifacts import build_run_report, write_run_report

__all__ = [
    "ERROR",
    "INFO",
    "WARNING",
    "Diagnostic",
    "DiagnosticCollector",
    "Outcome",
    "count_by_severity",
    "has_severity",
    "configure_structured_logging",
    "get_run_id",
    "get_unit",
    "phase_scope",
    "set_run_id",
    "unit_scope",
    "ConfigValidationError",
    "ConverterOptions",
    "load_converter_options",
    "load_options_file",
    "options_from_mapping",
    "resolve_strict_config_validation",
    "build_run_report",
    "write_run_report",
]
