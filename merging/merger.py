"""
Cross-file merger.

Reconciles a class declared in a header with the out-of-line definitions
found in its implementation units. Methods are matched on
``(class, name, parameter type sequence)``; parameter names never take part.
The parsed SourceUnits are left untouched: bodies are attached to per-method
bindings held by the MergedClass.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence

from core.converter_config import ConverterOptions
from core.diagnostics import Diagnostic, DiagnosticCollector, Outcome
from extraction.declarations import check_initializer_order
from extraction.models import (
    Comment,
    Define,
    Field,
    Initializer,
    Member,
    Method,
    Parameter,
    Region,
    TypeDeclaration,
)

logger = logging.getLogger(__name__)

RESOLVED = "resolved"
PURE = "pure"
UNRESOLVED = "unresolved"

_DECORATION_RE = re.compile(r"\bconst\b|[*&]")
_TEMPLATE_ARGS_RE = re.compile(r"<.*>")


@dataclass
class MethodBinding:
    """A header method together with the body it was resolved to."""

    method: Method
    body: Optional[str] = None
    source: Optional[Method] = None
    status: str = UNRESOLVED

    @property
    def parameters(self) -> List[Parameter]:
        """Header parameters, named after the implementation where it names them."""
        if self.source is None or len(self.source.parameters) != len(self.method.parameters):
            return list(self.method.parameters)
        merged = []
        for declared, defined in zip(self.method.parameters, self.source.parameters):
            merged.append(
                Parameter(
                    type=declared.type,
                    name=defined.name or declared.name,
                    default_value=declared.default_value,
                    leading_comment=declared.leading_comment or defined.leading_comment,
                    trailing_comment=declared.trailing_comment or defined.trailing_comment,
                )
            )
        return merged

    @property
    def initializers(self) -> List[Initializer]:
        if self.source is not None and self.source.initializers:
            return list(self.source.initializers)
        return list(self.method.initializers)

    @property
    def leading_comments(self) -> List[Comment]:
        """Header comment first, then the implementation's own."""
        comments = [self.method.leading_comment]
        if self.source is not None:
            comments.append(self.source.leading_comment)
        return [c for c in comments if c is not None]

    @property
    def trailing_comment(self) -> Optional[Comment]:
        if self.method.trailing_comment is not None or self.source is None:
            return self.method.trailing_comment
        return self.source.trailing_comment

    @property
    def regions_before(self) -> List[Region]:
        regions = list(self.method.regions_before)
        if self.source is not None:
            regions.extend(self.source.regions_before)
        return regions

    @property
    def regions_after(self) -> List[Region]:
        regions = list(self.method.regions_after)
        if self.source is not None:
            regions.extend(self.source.regions_after)
        return regions


@dataclass
class MergedClass:
    """A class after header and implementation bodies have been reconciled."""

    declaration: TypeDeclaration
    bindings: List[MethodBinding] = field(default_factory=list)
    field_defaults: Dict[str, str] = field(default_factory=dict)
    local_methods: List[Method] = field(default_factory=list)
    orphans: List[Member] = field(default_factory=list)
    nested: List["MergedClass"] = field(default_factory=list)
    header_defines: List[Define] = field(default_factory=list)
    source_defines: List[Define] = field(default_factory=list)

    @property
    def name(self) -> str:
        return self.declaration.name

    def binding_for(self, method: Method) -> Optional[MethodBinding]:
        for binding in self.bindings:
            if binding.method is method:
                return binding
        return None

    def field_value(self, member: Field) -> Optional[str]:
        """Default value of a field, including a static member definition."""
        return self.field_defaults.get(member.name, member.default_value)

    def walk(self) -> Iterable["MergedClass"]:
        yield self
        for child in self.nested:
            yield from child.walk()


# ---------------------------------------------------------------------------
# Structural classification shared with the generator
# ---------------------------------------------------------------------------

def is_interface(declaration: TypeDeclaration) -> bool:
    """No fields, and every instance method is pure (at least one)."""
    if declaration.kind != "class" or declaration.fields:
        return False
    instance_methods = [
        m for m in declaration.methods
        if not m.is_static and not m.is_destructor and not m.is_constructor_of(declaration.name)
    ]
    return bool(instance_methods) and all(m.is_pure for m in instance_methods)


def is_static_class(declaration: TypeDeclaration) -> bool:
    """Every field and method is static."""
    members = declaration.fields + declaration.methods
    return bool(members) and all(m.is_static for m in members)


def _base_name(type_text: str) -> str:
    bare = _TEMPLATE_ARGS_RE.sub("", type_text)
    bare = _DECORATION_RE.sub(" ", bare).strip()
    return bare.split("::")[-1].strip()


def factory_methods(declaration: TypeDeclaration, options: ConverterOptions) -> List[Method]:
    """Static methods following the configured "get instance" naming idiom.

    The method must return a pointer or reference to the declaring type.
    """
    found = []
    for method in declaration.methods:
        if not method.is_static or method.name not in options.factory_method_names:
            continue
        returns = method.return_type.rstrip()
        if returns.endswith(("*", "&")) and _base_name(returns) == declaration.name:
            found.append(method)
    return found


# ---------------------------------------------------------------------------
# Matching
# ---------------------------------------------------------------------------

def _loose_types(method: Method) -> tuple:
    return tuple(" ".join(_DECORATION_RE.sub(" ", t).split()) for t in method.parameter_types())


def _match(
    definition: Method,
    bindings: Sequence[MethodBinding],
    class_name: str,
    options: ConverterOptions,
    collector: DiagnosticCollector,
) -> Optional[MethodBinding]:
    candidates = [
        b for b in bindings
        if b.method.name == definition.name
        and b.method.is_destructor == definition.is_destructor
        and not b.method.is_pure
    ]
    if not candidates:
        return None

    key = definition.parameter_types()
    exact = [b for b in candidates if b.method.parameter_types() == key]
    if exact:
        for binding in exact:
            if binding.body is None:
                return binding
        return exact[0]

    if options.strict_overload_matching:
        return None

    loose_key = _loose_types(definition)
    open_candidates = [b for b in candidates if b.body is None]
    loose = [b for b in open_candidates if _loose_types(b.method) == loose_key]
    if loose:
        collector.info(
            "Matched implementation ignoring const/pointer/reference decoration",
            identifier=definition.qualified_signature(class_name),
        )
        return loose[0]

    by_arity = [b for b in open_candidates if len(b.method.parameters) == len(definition.parameters)]
    if len(by_arity) == 1:
        collector.info(
            "Matched implementation by name and parameter count",
            identifier=definition.qualified_signature(class_name),
        )
        return by_arity[0]
    return None


def _initial_binding(method: Method) -> MethodBinding:
    if method.is_pure:
        return MethodBinding(method=method, status=PURE)
    if method.has_body:
        return MethodBinding(method=method, body=method.body, status=RESOLVED)
    return MethodBinding(method=method)


def merge_class(
    declaration: TypeDeclaration,
    definitions: Iterable[Member] = (),
    local_methods: Iterable[Method] = (),
    options: Optional[ConverterOptions] = None,
    unit: Optional[str] = None,
    header_defines: Iterable[Define] = (),
    source_defines: Iterable[Define] = (),
) -> Outcome[MergedClass]:
    """Attach implementation definitions to a header class declaration.

    Args:
        declaration: Class as declared in the header.
        definitions: Methods and static member definitions owned by this
            class (``Class::`` qualified), in source order. Definitions for
            nested classes are routed by their owner name.
        local_methods: Free functions of the paired implementation units
            that belong to this class.
        options: Converter options (overload matching strictness).
        unit: Header unit name, for diagnostics.
        header_defines: Defines of the header outside any class; emitted
            together with the class body's own defines in source order.
        source_defines: Defines of the paired implementation units.

    Returns:
        Outcome holding the MergedClass. Unresolved methods and orphan
        bodies are reported later by ``report_unresolved`` so that factory
        bodies defined on derived classes can still be linked first.
    """
    options = options or ConverterOptions()
    collector = DiagnosticCollector(unit=unit)
    definitions = list(definitions)
    merged = _merge(declaration, definitions, options, collector, accept_unowned=True)
    merged.local_methods.extend(local_methods)
    merged.header_defines = sorted(merged.header_defines + list(header_defines), key=lambda d: d.offset)
    merged.source_defines.extend(source_defines)
    logger.debug(
        "Merged %s: %d methods, %d orphans, %d local methods",
        declaration.name, len(merged.bindings), len(merged.orphans), len(merged.local_methods),
    )
    return Outcome(value=merged, diagnostics=collector.records)


def _merge(
    declaration: TypeDeclaration,
    definitions: List[Member],
    options: ConverterOptions,
    collector: DiagnosticCollector,
    accept_unowned: bool = False,
) -> MergedClass:
    merged = MergedClass(declaration=declaration, header_defines=list(declaration.defines))
    merged.bindings = [_initial_binding(m) for m in declaration.methods]

    nested_names = {t.name for t in declaration.nested_types}
    owners = (None, declaration.name) if accept_unowned else (declaration.name,)
    own = [d for d in definitions if d.owner in owners]
    for child in declaration.nested_types:
        merged.nested.append(_merge(child, definitions, options, collector))

    for definition in own:
        if definition.owner is None and definition.name in nested_names:
            continue
        if isinstance(definition, Field):
            _attach_static_definition(merged, definition, collector)
            continue
        if not isinstance(definition, Method):
            continue
        if not definition.has_body:
            logger.debug("Ignoring body-less definition %s", definition.qualified_signature(declaration.name))
            continue

        binding = _match(definition, merged.bindings, declaration.name, options, collector)
        if binding is None:
            merged.orphans.append(definition)
            continue
        if binding.body is not None:
            collector.warning(
                "Duplicate body ignored; the method already has an implementation",
                identifier=definition.qualified_signature(declaration.name),
            )
            continue
        binding.body = definition.body
        binding.source = definition
        binding.status = RESOLVED

    for binding in merged.bindings:
        if binding.method.is_constructor_of(declaration.name) and binding.initializers:
            constructor = Method(
                name=binding.method.name,
                parameters=binding.method.parameters,
                initializers=binding.initializers,
            )
            check_initializer_order(constructor, declaration, collector)
    return merged


def _attach_static_definition(merged: MergedClass, definition: Field, collector: DiagnosticCollector) -> None:
    target = merged.declaration.find_field(definition.name)
    if target is None:
        merged.orphans.append(definition)
        return
    if definition.default_value is None:
        return
    if target.default_value is not None:
        collector.warning(
            "Field initialised both in the declaration and in a definition; keeping the declaration",
            identifier=f"{merged.name}::{definition.name}",
        )
        return
    merged.field_defaults[definition.name] = definition.default_value


# ---------------------------------------------------------------------------
# Cross-class linking and reporting
# ---------------------------------------------------------------------------

def link_factory_bodies(
    classes: Sequence[MergedClass],
    options: Optional[ConverterOptions] = None,
) -> List[Diagnostic]:
    """Attach factory bodies defined on a derived class to its base.

    ``ISample* CSample::GetInstance() { ... }`` matches nothing in
    ``CSample`` but resolves the static ``ISample::GetInstance()`` declared
    by its base.
    """
    options = options or ConverterOptions()
    by_name: Dict[str, MergedClass] = {}
    for root in classes:
        for merged in root.walk():
            by_name.setdefault(merged.name, merged)

    collector = DiagnosticCollector(unit=None)
    for root in classes:
        for merged in root.walk():
            remaining: List[Member] = []
            for orphan in merged.orphans:
                target = None
                if isinstance(orphan, Method) and orphan.name in options.factory_method_names:
                    target = _find_base_factory(merged, orphan, by_name)
                if target is None:
                    remaining.append(orphan)
                    continue
                target.binding.body = orphan.body
                target.binding.source = orphan
                target.binding.status = RESOLVED
                collector.info(
                    f"Factory body defined on {merged.name} attached to {target.owner}",
                    identifier=orphan.qualified_signature(target.owner),
                )
            merged.orphans = remaining
    return collector.records


@dataclass
class _FactoryTarget:
    owner: str
    binding: MethodBinding


def _find_base_factory(
    merged: MergedClass,
    orphan: Method,
    by_name: Dict[str, MergedClass],
) -> Optional[_FactoryTarget]:
    for base in merged.declaration.bases:
        base_class = by_name.get(_base_name(base))
        if base_class is None:
            continue
        for binding in base_class.bindings:
            method = binding.method
            if (
                method.is_static
                and method.name == orphan.name
                and binding.body is None
                and method.parameter_types() == orphan.parameter_types()
            ):
                return _FactoryTarget(owner=base_class.name, binding=binding)
    return None


def report_unresolved(merged: MergedClass, unit: Optional[str] = None) -> List[Diagnostic]:
    """Warn once per unresolved method and once per orphan definition."""
    collector = DiagnosticCollector(unit=unit)
    for current in merged.walk():
        interface = is_interface(current.declaration)
        for binding in current.bindings:
            if binding.status != UNRESOLVED:
                continue
            if interface:
                # interfaces keep only their pure signatures and factories
                continue
            collector.warning(
                "No implementation found; emitted as stub",
                identifier=binding.method.qualified_signature(current.name),
            )
        for orphan in current.orphans:
            if isinstance(orphan, Method):
                identifier = orphan.qualified_signature(current.name)
            else:
                identifier = f"{current.name}::{orphan.name}"
            collector.warning(
                "Implementation matches no declaration; emitted as comment",
                identifier=identifier,
            )
    return collector.records
