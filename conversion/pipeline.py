"""
Conversion pipeline.

Parses every unit concurrently, waits for all parses, merges each header
class with the definitions found in the implementation units, links factory
bodies across classes, then generates the classes concurrently. Results are
re-assembled in input order so the output does not depend on scheduling.
"""

import contextvars
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Tuple, TypeVar, Union

from core.converter_config import ConverterOptions
from core.diagnostics import ERROR, WARNING, Diagnostic, DiagnosticCollector, Outcome, count_by_severity
from core.structured_logging import phase_scope, unit_scope
from extraction.config import HEADER_ROLE, IMPLEMENTATION_ROLE
from extraction.extractor import ExtractionStats, pair_units, parse_source_unit
from extraction.models import Define, Member, Method, PassThrough, SourceUnit, TypeDeclaration
from generation.generator import EmissionUnit, generate, generate_defines
from generation.layout import render_file
from merging.merger import (
    MergedClass,
    is_interface,
    link_factory_bodies,
    merge_class,
    report_unresolved,
)

logger = logging.getLogger(__name__)

UnitContent = Union[bytes, str]
T = TypeVar("T")


@dataclass
class FileOutput:
    """Everything generated for one header."""

    header: str
    stem: str
    units: List[EmissionUnit] = field(default_factory=list)
    pass_through: List[PassThrough] = field(default_factory=list)
    text: str = ""


@dataclass
class ConversionResult:
    """Ordered emission units, per-header grouping and all diagnostics."""

    files: List[FileOutput] = field(default_factory=list)
    diagnostics: List[Diagnostic] = field(default_factory=list)
    stats: ExtractionStats = field(default_factory=ExtractionStats)

    @property
    def units(self) -> List[EmissionUnit]:
        return [unit for output in self.files for unit in output.units]

    @property
    def pass_through(self) -> List[PassThrough]:
        return [block for output in self.files for block in output.pass_through]

    def counts(self) -> Dict[str, int]:
        return count_by_severity(self.diagnostics)

    @property
    def has_errors(self) -> bool:
        return self.counts()[ERROR] > 0

    @property
    def has_warnings(self) -> bool:
        return self.counts()[WARNING] > 0


@dataclass
class _ClassJob:
    header_index: int
    declaration: TypeDeclaration
    unit: str
    definitions: List[Member] = field(default_factory=list)
    local_methods: List[Method] = field(default_factory=list)
    header_defines: List[Define] = field(default_factory=list)
    source_defines: List[Define] = field(default_factory=list)


@dataclass
class _DefinesJob:
    """Defines of a header that declares no types."""

    header_index: int
    unit: str
    name: str
    header_defines: List[Define] = field(default_factory=list)
    source_defines: List[Define] = field(default_factory=list)


def _run_parallel(
    func: Callable[..., T],
    jobs: Sequence[tuple],
    max_workers: int,
) -> List[T]:
    """Run ``func(*job)`` for every job; results come back in job order.

    Each task runs in a copy of the caller's context so run and phase
    correlation fields reach worker-thread log records.
    """
    if not jobs:
        return []
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        futures = [
            executor.submit(contextvars.copy_context().run, func, *job)
            for job in jobs
        ]
        return [future.result() for future in futures]


def _parse_task(name: str, data: UnitContent, role: str, options: ConverterOptions) -> Outcome:
    with unit_scope(name):
        return parse_source_unit(name, data, role=role, options=options)


def _merge_task(job: _ClassJob, options: ConverterOptions) -> Outcome:
    with unit_scope(job.unit):
        return merge_class(
            job.declaration,
            job.definitions,
            job.local_methods,
            header_defines=job.header_defines,
            source_defines=job.source_defines,
            options=options,
            unit=job.unit,
        )


def _generate_task(merged: MergedClass, unit: str, options: ConverterOptions) -> Outcome:
    with unit_scope(unit):
        return generate(merged, options)


def _check_mapping(value, label: str) -> Mapping[str, UnitContent]:
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise TypeError(f"{label} must be a mapping of unit name to content, got {type(value).__name__}")
    return value


def _type_names(declaration: TypeDeclaration) -> List[str]:
    names = [declaration.name]
    for child in declaration.nested_types:
        names.extend(_type_names(child))
    return names


def _route_members(
    header_units: List[Tuple[int, SourceUnit]],
    impl_units: Dict[str, SourceUnit],
    pairing: Mapping[str, Sequence[str]],
    headers: Sequence[str],
    collector: DiagnosticCollector,
) -> Tuple[List[_ClassJob], List[_DefinesJob]]:
    """Build one merge job per header class and route definitions to it.

    Defines go to the first non-interface class of their header (or of the
    paired header for implementation units); a header without types gets a
    standalone defines job.
    """
    jobs: List[_ClassJob] = []
    by_type: Dict[str, _ClassJob] = {}
    for header_index, unit in header_units:
        for declaration in unit.types:
            job = _ClassJob(header_index=header_index, declaration=declaration, unit=unit.name)
            jobs.append(job)
            for name in _type_names(declaration):
                if name in by_type:
                    logger.debug("Class %s declared more than once; keeping the first", name)
                    continue
                by_type[name] = job

    header_of_impl: Dict[str, str] = {}
    for header in headers:
        for impl in pairing.get(header, ()):
            header_of_impl.setdefault(impl, header)
    jobs_by_header: Dict[str, List[_ClassJob]] = {}
    for job in jobs:
        jobs_by_header.setdefault(job.unit, []).append(job)

    defines_jobs: Dict[str, _DefinesJob] = {}

    def defines_home(header: str) -> Optional[_ClassJob]:
        header_jobs = jobs_by_header.get(header, [])
        for job in header_jobs:
            if not is_interface(job.declaration):
                return job
        return header_jobs[0] if header_jobs else None

    def standalone(header_index: int, unit: SourceUnit) -> _DefinesJob:
        if unit.name not in defines_jobs:
            defines_jobs[unit.name] = _DefinesJob(
                header_index=header_index, unit=unit.name, name=f"{unit.stem}Defines"
            )
        return defines_jobs[unit.name]

    header_by_name = {unit.name: (index, unit) for index, unit in header_units}
    for header_index, unit in header_units:
        if not unit.defines:
            continue
        target = defines_home(unit.name)
        if target is not None:
            target.header_defines.extend(unit.defines)
        else:
            standalone(header_index, unit).header_defines.extend(unit.defines)

    sources = [unit for _, unit in header_units] + list(impl_units.values())
    for unit in sources:
        unit_collector = DiagnosticCollector(unit=unit.name)
        home: Optional[_ClassJob] = None
        for member in unit.members:
            candidate = by_type.get(member.owner) if member.owner is not None else None
            if candidate is not None and not is_interface(candidate.declaration):
                home = candidate
                break
        if home is None:
            paired_jobs = jobs_by_header.get(header_of_impl.get(unit.name, ""), [])
            home = paired_jobs[0] if paired_jobs else None

        if unit.role == IMPLEMENTATION_ROLE and unit.defines:
            paired_header = header_of_impl.get(unit.name, "")
            if home is not None:
                home.source_defines.extend(unit.defines)
            elif paired_header in header_by_name:
                standalone(*header_by_name[paired_header]).source_defines.extend(unit.defines)
            else:
                unit_collector.warning(
                    "Defines have no class to attach to; not converted",
                    identifier=", ".join(d.name for d in unit.defines),
                )

        for member in unit.members:
            if member.owner is not None:
                target = by_type.get(member.owner)
                if target is None:
                    identifier = (
                        member.qualified_signature()
                        if isinstance(member, Method)
                        else f"{member.owner}::{member.name}"
                    )
                    unit_collector.warning(
                        "Definition for a class that is not declared in any header; not converted",
                        identifier=identifier,
                    )
                    continue
                target.definitions.append(member)
                continue
            if isinstance(member, Method) and not member.return_type and member.name in by_type:
                # unqualified constructor definition
                by_type[member.name].definitions.append(member)
                continue
            if isinstance(member, Method) and member.is_local:
                if home is None:
                    unit_collector.warning(
                        "Local function has no class to attach to; not converted",
                        identifier=f"{unit.name}:{member.name}",
                    )
                    continue
                home.local_methods.append(member)
                continue
            logger.debug("Ignoring free declaration %s in %s", member.name, unit.name)
        collector.extend(unit_collector.records)
    return jobs, list(defines_jobs.values())


def convert(
    headers: Mapping[str, UnitContent],
    implementations: Optional[Mapping[str, UnitContent]] = None,
    pairing: Optional[Mapping[str, Sequence[str]]] = None,
    options: Optional[ConverterOptions] = None,
) -> ConversionResult:
    """Convert header and implementation units into C# emission units.

    Args:
        headers: Header unit name to raw content.
        implementations: Implementation unit name to raw content.
        pairing: Header name to the implementation names whose local
            functions and pass-through blocks belong to it. Defaults to
            pairing by base file name.
        options: Converter options.

    Returns:
        ConversionResult with one FileOutput per parsed header, in input
        order, and every diagnostic of the run in production order.

    Raises:
        TypeError: If the unit collections are not mappings.
        ValueError: If the pairing names an unknown unit.
    """
    headers = _check_mapping(headers, "headers")
    implementations = _check_mapping(implementations, "implementations")
    options = options or ConverterOptions()
    if pairing is None:
        pairing = pair_units(headers.keys(), implementations.keys())
    for header, impls in pairing.items():
        if header not in headers:
            raise ValueError(f"Pairing refers to unknown header unit: {header}")
        for impl in impls:
            if impl not in implementations:
                raise ValueError(f"Pairing refers to unknown implementation unit: {impl}")

    result = ConversionResult()
    collector = DiagnosticCollector(unit=None)
    header_names = list(headers.keys())

    with phase_scope("parse"):
        parse_jobs = [(name, headers[name], HEADER_ROLE, options) for name in header_names]
        parse_jobs += [(name, data, IMPLEMENTATION_ROLE, options) for name, data in implementations.items()]
        outcomes = _run_parallel(_parse_task, parse_jobs, options.max_workers)

    header_units: List[Tuple[int, SourceUnit]] = []
    impl_units: Dict[str, SourceUnit] = {}
    for job, outcome in zip(parse_jobs, outcomes):
        collector.extend(outcome.diagnostics)
        result.stats.record(outcome.value)
        if outcome.value is None:
            continue
        if job[2] == HEADER_ROLE:
            header_units.append((header_names.index(job[0]), outcome.value))
        else:
            impl_units[job[0]] = outcome.value
    logger.info("Parse phase complete: %s", result.stats)

    with phase_scope("merge"):
        class_jobs, defines_jobs = _route_members(header_units, impl_units, pairing, header_names, collector)
        merge_outcomes = _run_parallel(
            _merge_task, [(job, options) for job in class_jobs], options.max_workers
        )
        merged_classes = []
        for outcome in merge_outcomes:
            collector.extend(outcome.diagnostics)
            merged_classes.append(outcome.value)
        collector.extend(link_factory_bodies(merged_classes, options))
        for job, merged in zip(class_jobs, merged_classes):
            collector.extend(report_unresolved(merged, unit=job.unit))

    with phase_scope("generate"):
        generated = _run_parallel(
            _generate_task,
            [(merged, job.unit, options) for job, merged in zip(class_jobs, merged_classes)],
            options.max_workers,
        )

    outputs: Dict[int, FileOutput] = {}
    for header_index, unit in header_units:
        output = FileOutput(header=unit.name, stem=unit.stem, pass_through=list(unit.pass_through))
        for impl in pairing.get(unit.name, ()):
            if impl in impl_units:
                output.pass_through.extend(impl_units[impl].pass_through)
        outputs[header_index] = output
    for job, outcome in zip(class_jobs, generated):
        collector.extend(outcome.diagnostics)
        outputs[job.header_index].units.extend(outcome.value or [])
    for defines_job in defines_jobs:
        with unit_scope(defines_job.unit):
            outcome = generate_defines(
                defines_job.name,
                defines_job.header_defines,
                defines_job.source_defines,
                options,
                unit=defines_job.unit,
            )
        collector.extend(outcome.diagnostics)
        outputs[defines_job.header_index].units.append(outcome.value)

    for unit in impl_units.values():
        if unit.types:
            unit_collector = DiagnosticCollector(unit=unit.name)
            unit_collector.warning(
                "Types declared in an implementation unit are not converted",
                identifier=", ".join(t.name for t in unit.types),
            )
            collector.extend(unit_collector.records)

    for header_index in sorted(outputs):
        output = outputs[header_index]
        output.text = render_file(output.stem, output.units, output.pass_through, options)
        result.files.append(output)

    result.diagnostics = collector.records
    logger.info(
        "Conversion complete: %d files, %d units, diagnostics=%s",
        len(result.files), len(result.units), result.counts(),
    )
    return result
