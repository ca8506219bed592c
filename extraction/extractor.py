"""
High-level orchestrator for per-unit declaration extraction.

This module turns one raw input unit (bytes or text) into a SourceUnit, and
provides the file discovery and header/implementation pairing helpers used
by the command-line entry point.
"""

import logging
import os
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Union

from core.converter_config import ConverterOptions
from core.diagnostics import DiagnosticCollector, Outcome
from extraction.config import (
    CPP_EXTENSIONS,
    HEADER_EXTENSIONS,
    HEADER_ROLE,
    IMPLEMENTATION_EXTENSIONS,
    IMPLEMENTATION_ROLE,
    SKIPPED_DIRECTORIES,
)
from extraction.declarations import ParseContext, parse_scope
from extraction.models import Method, PassThrough, SourceUnit
from extraction.parser import syntax_error_count
from extraction.scanner import scan

logger = logging.getLogger(__name__)


class ExtractionStats:
    """Statistics for an extraction operation."""

    def __init__(self):
        self.units_parsed = 0
        self.units_failed = 0
        self.types_extracted = 0
        self.pass_through_blocks = 0
        self.defines_extracted = 0

    def record(self, unit: Optional[SourceUnit]) -> None:
        if unit is None:
            self.units_failed += 1
            return
        self.units_parsed += 1
        self.types_extracted += len(unit.types)
        self.pass_through_blocks += len(unit.pass_through)
        self.defines_extracted += len(unit.defines) + sum(len(t.defines) for t in unit.types)

    def to_dict(self) -> Dict[str, int]:
        """Convert stats to dictionary."""
        return {
            "units_parsed": self.units_parsed,
            "units_failed": self.units_failed,
            "types_extracted": self.types_extracted,
            "pass_through_blocks": self.pass_through_blocks,
            "defines_extracted": self.defines_extracted,
        }

    def __str__(self) -> str:
        return (
            f"ExtractionStats(parsed={self.units_parsed}, "
            f"failed={self.units_failed}, types={self.types_extracted}, "
            f"defines={self.defines_extracted}, "
            f"pass_through={self.pass_through_blocks})"
        )


def decode_source(
    data: Union[bytes, str],
    encodings: Sequence[str],
    collector: DiagnosticCollector,
) -> Optional[str]:
    """Decode unit bytes trying each encoding in order; normalise newlines.

    Returns None (after recording an error) when no encoding fits.
    """
    if isinstance(data, str):
        text = data
    elif isinstance(data, (bytes, bytearray)):
        text = None
        for encoding in encodings:
            try:
                text = bytes(data).decode(encoding)
            except (UnicodeDecodeError, LookupError) as exc:
                logger.debug("Decoding with %s failed: %s", encoding, exc)
                continue
            logger.debug("Decoded %d bytes as %s", len(data), encoding)
            break
        if text is None:
            collector.error(
                f"Input cannot be decoded with any of: {', '.join(encodings)}"
            )
            return None
    else:
        raise TypeError(f"Unit content must be bytes or str, got {type(data).__name__}")

    if text.startswith("\ufeff"):
        text = text[1:]
    return text.replace("\r\n", "\n").replace("\r", "\n")


def parse_source_unit(
    name: str,
    data: Union[bytes, str],
    role: str = HEADER_ROLE,
    options: Optional[ConverterOptions] = None,
) -> Outcome[Optional[SourceUnit]]:
    """Scan and parse one input unit.

    Args:
        name: Logical unit name (usually the relative file path).
        data: Raw unit content.
        role: ``header`` or ``implementation``.
        options: Converter options; defaults apply when omitted.

    Returns:
        Outcome holding the SourceUnit, or None when the unit is empty or
        cannot be decoded (an error diagnostic explains why).

    Raises:
        TypeError: If ``data`` is neither bytes nor str.
        ValueError: If ``role`` is unknown.
    """
    if role not in (HEADER_ROLE, IMPLEMENTATION_ROLE):
        raise ValueError(f"Unknown unit role: {role!r}")
    options = options or ConverterOptions()
    collector = DiagnosticCollector(unit=name)

    text = decode_source(data, options.encodings, collector)
    if text is None:
        return Outcome(value=None, diagnostics=collector.records)
    if not text.strip():
        collector.error("Input unit is empty")
        return Outcome(value=None, diagnostics=collector.records)

    if options.syntax_check:
        errors = syntax_error_count(text)
        if errors:
            collector.info(f"Syntax check found {errors} error node(s)")

    scope = parse_scope(text, scan(text), ParseContext(access="public", unit=name), collector)
    unit = SourceUnit(name=name, role=role, types=scope.types, defines=scope.defines)

    passed_offsets = set()
    for member in scope.members:
        if isinstance(member, PassThrough):
            unit.pass_through.append(member)
            continue
        if member.owner is None and role == HEADER_ROLE:
            if member.offset in passed_offsets:
                unit.pass_through[-1].regions_after.extend(member.regions_after)
                continue
            passed_offsets.add(member.offset)
            # Free declarations in a header have no class to live in
            collector.info(
                "Declaration outside any class passed through as comment",
                identifier=member.name,
            )
            unit.pass_through.append(
                PassThrough(
                    text=text[member.offset:_segment_end(text, member.offset)].strip(),
                    reason="declaration outside any class",
                    access=member.access,
                    leading_comment=member.leading_comment,
                    trailing_comment=member.trailing_comment,
                    regions_before=list(member.regions_before),
                    regions_after=list(member.regions_after),
                    offset=member.offset,
                )
            )
            continue
        if isinstance(member, Method) and member.owner is None and member.has_body:
            member.is_local = True
        unit.members.append(member)

    logger.info(
        "Parsed %s (%s): %d types, %d members, %d defines, %d pass-through blocks",
        name, role, len(unit.types), len(unit.members), len(unit.defines), len(unit.pass_through),
    )
    return Outcome(value=unit, diagnostics=collector.records)


def _segment_end(text: str, start: int) -> int:
    for segment in scan(text[start:]):
        return start + segment.end
    return len(text)


def discover_cpp_files(directory: str) -> List[str]:
    """Recursively discover all C++ headers and implementation files.

    Args:
        directory: Root directory to search.

    Returns:
        Sorted list of absolute paths to C++ files.
    """
    cpp_files = []
    directory = os.path.abspath(directory)

    logger.info("Discovering C++ files in %s", directory)

    for root, dirs, files in os.walk(directory):
        # Skip hidden directories and common build/cache directories
        dirs[:] = [d for d in dirs if not d.startswith(".") and d not in SKIPPED_DIRECTORIES]

        for file in files:
            ext = os.path.splitext(file)[1].lower()
            if ext in CPP_EXTENSIONS:
                cpp_files.append(os.path.join(root, file))

    logger.info("Found %d C++ files", len(cpp_files))
    return sorted(cpp_files)


def classify_role(path: str) -> Optional[str]:
    ext = os.path.splitext(path)[1].lower()
    if ext in HEADER_EXTENSIONS:
        return HEADER_ROLE
    if ext in IMPLEMENTATION_EXTENSIONS:
        return IMPLEMENTATION_ROLE
    return None


def _stem(name: str) -> str:
    base = os.path.basename(name.replace("\\", "/"))
    return os.path.splitext(base)[0].lower()


def pair_units(headers: Iterable[str], implementations: Iterable[str]) -> Dict[str, List[str]]:
    """Pair each header with the implementation units sharing its base name.

    Matching is case-insensitive on the file stem. Every header gets an
    entry, possibly empty; implementation order follows the input order.
    """
    by_stem: Dict[str, List[str]] = {}
    for impl in implementations:
        by_stem.setdefault(_stem(impl), []).append(impl)
    pairing = {header: list(by_stem.get(_stem(header), [])) for header in headers}
    paired = {impl for impls in pairing.values() for impl in impls}
    for impls in by_stem.values():
        for impl in impls:
            if impl not in paired:
                logger.debug("Implementation unit %s has no matching header", impl)
    return pairing


def read_units(paths: Iterable[str], root: str) -> Mapping[str, bytes]:
    """Read files as raw bytes keyed by their path relative to ``root``.

    Raises:
        FileNotFoundError: If a path does not exist.
    """
    units: Dict[str, bytes] = {}
    root = os.path.abspath(root)
    for path in paths:
        absolute = os.path.abspath(path)
        try:
            relative = os.path.relpath(absolute, root)
        except ValueError:
            logger.warning(
                "Cannot compute relative path for %s from %s. Using absolute path.",
                absolute,
                root,
            )
            relative = absolute
        with open(absolute, "rb") as handle:
            units[relative.replace(os.sep, "/")] = handle.read()
    return units
