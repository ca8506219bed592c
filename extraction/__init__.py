"""
Layer 1: Extraction Engine

Structural scanner and rule-based declaration parser for C++ headers and
implementation files, producing one SourceUnit per input.
"""

from extraction.models import (
    Comment,
    Define,
    Field,
    Initializer,
    Method,
    Parameter,
    PassThrough,
    Region,
    SourceUnit,
    TypeDeclaration,
    normalize_type,
)
from extraction.scanner import Segment, scan, scan_range, count_top_level_constructs
from extraction.declarations import (
    ParseContext,
    check_initializer_order,
    parse_declaration,
    parse_directive,
    parse_parameters,
    parse_scope,
)
from extraction.parser import create_parser, parse_bytes, count_error_nodes, syntax_error_count
from extraction.extractor import (
    ExtractionStats,
    discover_cpp_files,
    pair_units,
    parse_source_unit,
    read_units,
)

__all__ = [
    # Data models
    "Comment",
    "Define",
    "Field",
    "Initializer",
    "Method",
    "Parameter",
    "PassThrough",
    "Region",
    "SourceUnit",
    "TypeDeclaration",
    "normalize_type",
    # Scanning
    "Segment",
    "scan",
    "scan_range",
    "count_top_level_constructs",
    # Declaration parsing
    "ParseContext",
    "check_initializer_order",
    "parse_declaration",
    "parse_directive",
    "parse_parameters",
    "parse_scope",
    # Syntax cross-check
    "create_parser",
    "parse_bytes",
    "count_error_nodes",
    "syntax_error_count",
    # Orchestration
    "ExtractionStats",
    "discover_cpp_files",
    "pair_units",
    "parse_source_unit",
    "read_units",
]
