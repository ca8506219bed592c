"""
Code generator.

Turns a MergedClass into EmissionUnits: an interface (plus an extension
class for the "get instance" factory idiom and a class holding its defines),
a class, or a struct. Units are rendered at column zero with four-space
indentation and ``\\n`` line endings; ``generation.layout.render_file``
places them inside a namespace.
"""

import logging
import re
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from core.converter_config import ConverterOptions
from core.diagnostics import DiagnosticCollector, Outcome
from extraction.models import Comment, Define, Field, Method, PassThrough, Region, TypeDeclaration
from generation.type_mapping import (
    reindent_lines,
    translate_body,
    translate_define,
    translate_parameters,
    translate_type,
    translate_value,
)
from merging.merger import (
    PURE,
    UNRESOLVED,
    MergedClass,
    MethodBinding,
    factory_methods,
    is_interface,
    is_static_class,
)

logger = logging.getLogger(__name__)

INTERFACE = "interface"
CLASS = "class"
EXTENSION = "extension"
STRUCT = "struct"

UNIT_KINDS = (INTERFACE, CLASS, EXTENSION, STRUCT)

INDENT = "    "
UNRESOLVED_MARKER = "// UNRESOLVED: no implementation found for"
ORPHAN_MARKER = "// ORPHAN: implementation matches no declaration:"
NOT_CONVERTED_MARKER = "// NOT CONVERTED"

_NEW_EXPRESSION_RE = re.compile(r"\bnew\s+([A-Za-z_]\w*)\s*\(")


@dataclass(frozen=True)
class EmissionUnit:
    """One generated artifact."""

    name: str
    text: str
    kind: str

    def __post_init__(self) -> None:
        if self.kind not in UNIT_KINDS:
            raise ValueError(f"Unknown emission unit kind: {self.kind}")


class _Writer:
    """Accumulates output lines at the current indentation."""

    def __init__(self, options: ConverterOptions, level: int = 0):
        self.options = options
        self.level = level
        self.lines: List[str] = []

    @property
    def indent(self) -> str:
        return INDENT * self.level

    def line(self, text: str = "") -> None:
        self.lines.append(self.indent + text if text else "")

    def blank(self) -> None:
        if self.lines and self.lines[-1] != "" and not self.lines[-1].endswith("{"):
            self.lines.append("")

    def comment(self, comment: Optional[Comment]) -> None:
        if comment is None or not self.options.preserve_comments:
            return
        for text in comment.lines():
            self.line(text)

    def trailing(self, text: str, comment: Optional[Comment]) -> str:
        if comment is None or not self.options.preserve_comments:
            return text
        return f"{text} {comment.raw.strip()}"

    def open(self, header: str) -> None:
        self.line(header)
        self.line("{")
        self.level += 1

    def close(self) -> None:
        if self.lines and self.lines[-1] == "":
            self.lines.pop()
        self.level -= 1
        self.line("}")

    def extend(self, lines: List[str]) -> None:
        self.lines.extend(lines)

    def text(self) -> str:
        while self.lines and self.lines[-1] == "":
            self.lines.pop()
        return "\n".join(self.lines) + "\n"


def _visibility(declaration: TypeDeclaration) -> str:
    return "public" if declaration.is_exported else "internal"


def _base_clause(declaration: TypeDeclaration, options: ConverterOptions) -> str:
    if not declaration.bases:
        return ""
    return " : " + ", ".join(translate_type(b, options.type_map) for b in declaration.bases)


def _params(parameters, options: ConverterOptions) -> str:
    return translate_parameters(parameters, options.type_map, options.preserve_comments)


def _commented(writer: _Writer, text: str) -> None:
    for line in text.split("\n"):
        stripped = line.rstrip()
        writer.line(f"// {stripped}" if stripped.strip() else "//")


def _write_regions(writer: _Writer, regions: Sequence[Region]) -> None:
    """``#pragma region`` markers become ``//#region`` lines set off by blank lines."""
    for region in regions:
        writer.blank()
        writer.comment(region.leading_comment)
        writer.line(region.marker)
        writer.blank()


def _write_pass_through(writer: _Writer, block: PassThrough) -> None:
    writer.comment(block.leading_comment)
    writer.line(writer.trailing(f"{NOT_CONVERTED_MARKER} ({block.reason}):", block.trailing_comment))
    _commented(writer, "\n".join(reindent_lines(block.text, "", skip_first=True)))


def pass_through_lines(block: PassThrough, options: ConverterOptions, level: int = 0) -> List[str]:
    """Commented rendering of a block that was not converted."""
    writer = _Writer(options, level)
    _write_regions(writer, block.regions_before)
    _write_pass_through(writer, block)
    _write_regions(writer, block.regions_after)
    while writer.lines and writer.lines[-1] == "":
        writer.lines.pop()
    return writer.lines


def _write_orphan(writer: _Writer, owner: str, orphan) -> None:
    _write_regions(writer, orphan.regions_before)
    if isinstance(orphan, Method):
        writer.line(f"{ORPHAN_MARKER} {orphan.qualified_signature(owner)}")
        writer.comment(orphan.leading_comment)
        params = ", ".join(p.signature(with_comments=writer.options.preserve_comments) for p in orphan.parameters)
        signature = f"{orphan.return_type} {owner}::{orphan.display_name()}({params})".strip()
        _commented(writer, writer.trailing(signature, orphan.trailing_comment))
        _commented(writer, "{")
        for line in reindent_lines(orphan.body or "", INDENT, skip_first=True):
            _commented(writer, line)
        _commented(writer, "}")
    else:
        writer.line(f"{ORPHAN_MARKER} {owner}::{orphan.name}")
        value = f" = {orphan.default_value}" if orphan.default_value is not None else ""
        _commented(writer, writer.trailing(f"{owner}::{orphan.name}{value};", orphan.trailing_comment))
    _write_regions(writer, orphan.regions_after)


# ---------------------------------------------------------------------------
# Defines
# ---------------------------------------------------------------------------

def defines_class_name(name: str) -> str:
    """``ISample`` -> ``SampleDefines``; other names just get the suffix."""
    if len(name) > 1 and name[0] == "I" and name[1].isupper():
        name = name[1:]
    return f"{name}Defines"


def _define_line(define: Define, access: str) -> Optional[str]:
    constant = translate_define(define.value)
    if constant is None:
        return None
    cs_type, value = constant
    return f"{access} const {cs_type} {define.name} = {value};"


def _write_defines(writer: _Writer, defines: Sequence[Tuple[Define, str]]) -> None:
    """Defines as ``const`` members, each with its comments; non-literal values are passed through."""
    for define, access in defines:
        if define.leading_comment is not None and writer.options.preserve_comments:
            writer.blank()
        writer.comment(define.leading_comment)
        line = _define_line(define, access)
        if line is None:
            _write_pass_through(
                writer,
                PassThrough(
                    text=f"#define {define.name} {define.value}",
                    reason="define",
                    trailing_comment=define.trailing_comment,
                ),
            )
            continue
        writer.line(writer.trailing(line, define.trailing_comment))
    if defines:
        writer.blank()


def _class_defines(merged: MergedClass) -> List[Tuple[Define, str]]:
    return [(d, "internal") for d in merged.header_defines] + [(d, "private") for d in merged.source_defines]


def _write_defines_class(
    writer: _Writer,
    name: str,
    header_defines: Sequence[Define],
    source_defines: Sequence[Define],
) -> None:
    writer.open(f"public static class {name}")
    _write_defines(
        writer,
        [(d, "public") for d in header_defines] + [(d, "internal") for d in source_defines],
    )
    writer.close()


def _report_defines(collector: DiagnosticCollector, defines: Sequence[Define]) -> None:
    for define in defines:
        if translate_define(define.value) is None:
            collector.info("Define value is not a literal; passed through as comment", identifier=define.name)


def generate_defines(
    name: str,
    header_defines: Sequence[Define],
    source_defines: Sequence[Define] = (),
    options: Optional[ConverterOptions] = None,
    unit: Optional[str] = None,
) -> Outcome[EmissionUnit]:
    """Emit a ``public static class`` holding defines that have no class to live in."""
    options = options or ConverterOptions()
    collector = DiagnosticCollector(unit=unit)
    _report_defines(collector, list(header_defines) + list(source_defines))
    writer = _Writer(options)
    _write_defines_class(writer, name, header_defines, source_defines)
    return Outcome(value=EmissionUnit(name=name, text=writer.text(), kind=CLASS), diagnostics=collector.records)


# ---------------------------------------------------------------------------
# Fields
# ---------------------------------------------------------------------------

def _field_line(merged: MergedClass, member: Field, access: str, options: ConverterOptions) -> str:
    value = merged.field_value(member)
    modifiers = [access]
    if member.is_static and member.is_const and value is not None and not member.is_array:
        modifiers.append("const")
    elif member.is_static:
        modifiers.append("static")
        if member.is_const:
            modifiers.append("readonly")
    elif member.is_const:
        modifiers.append("readonly")

    cs_type = translate_type(member.type, options.type_map) if member.type else "object"
    initializer = ""
    if member.is_array:
        rank = "[" + "," * (len(member.array_dims) - 1) + "]"
        if value is not None:
            initializer = f" = {translate_value(value)}"
        elif all(member.array_dims):
            sizes = ", ".join(translate_value(d) for d in member.array_dims)
            initializer = f" = new {cs_type}[{sizes}]"
        cs_type += rank
    elif value is not None:
        initializer = f" = {translate_value(value)}"

    return " ".join(modifiers + [cs_type, member.name]) + initializer + ";"


def _write_fields(writer: _Writer, merged: MergedClass) -> None:
    for member in merged.declaration.fields:
        _write_regions(writer, member.regions_before)
        if member.leading_comment is not None and writer.options.preserve_comments:
            writer.blank()
        writer.comment(member.leading_comment)
        writer.line(writer.trailing(_field_line(merged, member, member.access, writer.options), member.trailing_comment))
        _write_regions(writer, member.regions_after)


# ---------------------------------------------------------------------------
# Methods
# ---------------------------------------------------------------------------

def _write_body(
    writer: _Writer,
    header: str,
    statements: List[str],
    body: Optional[str],
    trailing: Optional[Comment] = None,
) -> None:
    if body is not None and not statements and ("\n" not in body or not body.strip()):
        content = translate_body(body).strip()
        line = f"{header} {{ {content} }}" if content else f"{header} {{ }}"
        writer.line(writer.trailing(line, trailing))
        return
    writer.open(writer.trailing(header, trailing))
    for statement in statements:
        writer.line(statement)
    if body is not None:
        writer.extend(reindent_lines(translate_body(body), writer.indent, skip_first=True))
    writer.close()


def _method_header(
    merged: MergedClass,
    binding: MethodBinding,
    options: ConverterOptions,
    abstract_class: bool,
) -> str:
    method = binding.method
    params = _params(binding.parameters, options)
    if method.is_destructor:
        return f"~{merged.name}()"
    modifiers = [method.access]
    if method.is_static:
        modifiers.append("static")
    if method.is_pure and abstract_class:
        modifiers.append("abstract")
    elif method.is_virtual and not merged.declaration.bases and not method.is_static:
        modifiers.append("virtual")
    if method.is_constructor_of(merged.name):
        return f"{' '.join(modifiers)} {merged.name}({params})"
    returns = translate_type(method.return_type, options.type_map)
    return f"{' '.join(modifiers)} {returns} {method.name}({params})"


def _constructor_statements(merged: MergedClass, binding: MethodBinding, header: str) -> tuple:
    """Split initializers into a ``: base(...)`` clause and assignments."""
    bases = {b.split("<")[0].split("::")[-1] for b in merged.declaration.bases}
    statements = []
    for initializer in binding.initializers:
        expression = translate_value(initializer.expression)
        if initializer.name in bases:
            header += f" : base({expression})"
            continue
        statements.append(f"{initializer.name} = {expression};")
    return header, statements


def _write_method(
    writer: _Writer,
    merged: MergedClass,
    binding: MethodBinding,
    abstract_class: bool,
) -> None:
    options = writer.options
    method = binding.method
    trailing = binding.trailing_comment
    writer.blank()
    for comment in binding.leading_comments:
        writer.comment(comment)

    header = _method_header(merged, binding, options, abstract_class)
    if binding.status == PURE:
        writer.line(writer.trailing(header + ";", trailing))
        return

    statements: List[str] = []
    if method.is_constructor_of(merged.name):
        header, statements = _constructor_statements(merged, binding, header)

    if binding.status == UNRESOLVED:
        writer.open(writer.trailing(header, trailing))
        for statement in statements:
            writer.line(statement)
        writer.line(f"{UNRESOLVED_MARKER} {method.qualified_signature(merged.name)}")
        writer.line("throw new NotImplementedException();")
        writer.close()
        return
    _write_body(writer, header, statements, binding.body, trailing)


def _write_local_method(writer: _Writer, method: Method) -> None:
    options = writer.options
    writer.blank()
    writer.comment(method.leading_comment)
    returns = translate_type(method.return_type, options.type_map)
    params = _params(method.parameters, options)
    _write_body(
        writer,
        f"private static {returns} {method.name}({params})",
        [],
        method.body,
        method.trailing_comment,
    )


def _ordered_bindings(merged: MergedClass) -> List[MethodBinding]:
    """Constructors, then the destructor, then the rest in declaration order."""
    constructors, destructors, others = [], [], []
    for binding in merged.bindings:
        if binding.method.is_constructor_of(merged.name):
            constructors.append(binding)
        elif binding.method.is_destructor:
            destructors.append(binding)
        else:
            others.append(binding)
    return constructors + destructors + others


# ---------------------------------------------------------------------------
# Units
# ---------------------------------------------------------------------------

def _is_plain_struct(declaration: TypeDeclaration) -> bool:
    return declaration.kind == "struct" and not declaration.methods and not declaration.bases


def _write_members_tail(writer: _Writer, merged: MergedClass) -> None:
    for block in merged.declaration.pass_through:
        writer.blank()
        _write_regions(writer, block.regions_before)
        _write_pass_through(writer, block)
        _write_regions(writer, block.regions_after)


def _write_struct(writer: _Writer, merged: MergedClass) -> None:
    declaration = merged.declaration
    _write_regions(writer, declaration.regions_before)
    writer.comment(declaration.leading_comment)
    writer.open(writer.trailing(f"{_visibility(declaration)} struct {declaration.name}", declaration.trailing_comment))
    _write_defines(writer, _class_defines(merged))
    _write_fields(writer, merged)
    _write_nested(writer, merged)
    _write_members_tail(writer, merged)
    writer.close()
    _write_regions(writer, declaration.regions_after)


def _write_class(writer: _Writer, merged: MergedClass) -> None:
    declaration = merged.declaration
    options = writer.options
    modifiers = [_visibility(declaration)]
    abstract_class = any(m.is_pure for m in declaration.methods)
    if is_static_class(declaration) and not merged.local_methods:
        modifiers.append("static")
    elif abstract_class:
        modifiers.append("abstract")

    _write_regions(writer, declaration.regions_before)
    writer.comment(declaration.leading_comment)
    header = f"{' '.join(modifiers)} class {declaration.name}{_base_clause(declaration, options)}"
    writer.open(writer.trailing(header, declaration.trailing_comment))
    _write_defines(writer, _class_defines(merged))
    _write_fields(writer, merged)
    _write_nested(writer, merged)
    for binding in _ordered_bindings(merged):
        _write_regions(writer, binding.regions_before)
        _write_method(writer, merged, binding, abstract_class)
        _write_regions(writer, binding.regions_after)
    for method in merged.local_methods:
        _write_regions(writer, method.regions_before)
        _write_local_method(writer, method)
        _write_regions(writer, method.regions_after)
    _write_members_tail(writer, merged)
    for orphan in merged.orphans:
        writer.blank()
        _write_orphan(writer, declaration.name, orphan)
    writer.close()
    _write_regions(writer, declaration.regions_after)
    logger.debug("Generated class %s (%d methods)", declaration.name, len(merged.bindings))


def _write_nested(writer: _Writer, merged: MergedClass) -> None:
    for child in merged.nested:
        writer.blank()
        if _is_plain_struct(child.declaration):
            _write_struct(writer, child)
        elif is_interface(child.declaration):
            _write_interface(writer, child)
            if child.header_defines or child.source_defines:
                writer.blank()
                _write_defines_class(
                    writer,
                    defines_class_name(child.name),
                    child.header_defines,
                    child.source_defines,
                )
        else:
            _write_class(writer, child)


def _write_interface(writer: _Writer, merged: MergedClass) -> None:
    declaration = merged.declaration
    options = writer.options
    factories = factory_methods(declaration, options)
    _write_regions(writer, declaration.regions_before)
    writer.comment(declaration.leading_comment)
    header = f"{_visibility(declaration)} interface {declaration.name}{_base_clause(declaration, options)}"
    writer.open(writer.trailing(header, declaration.trailing_comment))
    for member in declaration.members:
        if isinstance(member, PassThrough):
            writer.blank()
            _write_regions(writer, member.regions_before)
            _write_pass_through(writer, member)
            _write_regions(writer, member.regions_after)
            continue
        if not isinstance(member, Method):
            continue
        if member.is_pure:
            binding = merged.binding_for(member)
            params = _params(binding.parameters if binding else member.parameters, options)
            returns = translate_type(member.return_type, options.type_map)
            _write_regions(writer, member.regions_before)
            writer.blank()
            writer.comment(member.leading_comment)
            writer.line(writer.trailing(f"{returns} {member.name}({params});", member.trailing_comment))
            _write_regions(writer, member.regions_after)
        elif member.is_static and not (member in factories and options.emit_factory_extension):
            _write_regions(writer, member.regions_before)
            writer.blank()
            writer.comment(member.leading_comment)
            writer.line(writer.trailing(f"// {member.signature()};", member.trailing_comment))
            _write_regions(writer, member.regions_after)
    writer.close()
    _write_regions(writer, declaration.regions_after)


def _concrete_class(declaration: TypeDeclaration, binding: Optional[MethodBinding]) -> str:
    if binding is not None and binding.body:
        match = _NEW_EXPRESSION_RE.search(binding.body)
        if match:
            return match.group(1)
    name = declaration.name
    if len(name) > 1 and name[0] == "I" and name[1].isupper():
        return "C" + name[1:]
    return f"{name}Impl"


def _extension_unit(merged: MergedClass, options: ConverterOptions) -> Optional[EmissionUnit]:
    declaration = merged.declaration
    factories = factory_methods(declaration, options)
    if not factories or not options.emit_factory_extension:
        return None
    name = f"{declaration.name}Extensions"
    writer = _Writer(options)
    writer.open(f"internal static class {name}")
    for method in factories:
        binding = merged.binding_for(method)
        params = _params(binding.parameters if binding else method.parameters, options)
        params = f"this {declaration.name} instance" + (f", {params}" if params else "")
        writer.blank()
        writer.comment(method.leading_comment)
        writer.open(writer.trailing(f"public static {declaration.name} {method.name}({params})", method.trailing_comment))
        writer.line(f"return new {_concrete_class(declaration, binding)}();")
        writer.close()
    writer.close()
    return EmissionUnit(name=name, text=writer.text(), kind=EXTENSION)


def generate(merged: MergedClass, options: Optional[ConverterOptions] = None) -> Outcome[List[EmissionUnit]]:
    """Emit the units for one merged class.

    Args:
        merged: The class with bodies attached.
        options: Converter options (comments, factory idiom, type map).

    Returns:
        Outcome holding the emission units in output order: the interface
        followed by its extension class and its defines class, or a single
        class or struct unit.
    """
    options = options or ConverterOptions()
    collector = DiagnosticCollector(unit=merged.declaration.origin)
    declaration = merged.declaration
    writer = _Writer(options)
    units: List[EmissionUnit] = []
    for item in merged.walk():
        _report_defines(collector, item.header_defines + item.source_defines)

    if _is_plain_struct(declaration):
        _write_struct(writer, merged)
        units.append(EmissionUnit(name=declaration.name, text=writer.text(), kind=STRUCT))
    elif is_interface(declaration):
        _write_interface(writer, merged)
        units.append(EmissionUnit(name=declaration.name, text=writer.text(), kind=INTERFACE))
        extension = _extension_unit(merged, options)
        if extension is not None:
            units.append(extension)
        if merged.header_defines or merged.source_defines:
            defines_writer = _Writer(options)
            name = defines_class_name(declaration.name)
            _write_defines_class(defines_writer, name, merged.header_defines, merged.source_defines)
            units.append(EmissionUnit(name=name, text=defines_writer.text(), kind=CLASS))
    else:
        _write_class(writer, merged)
        units.append(EmissionUnit(name=declaration.name, text=writer.text(), kind=CLASS))

    logger.debug("Generated %s", ", ".join(f"{u.kind} {u.name}" for u in units))
    return Outcome(value=units, diagnostics=collector.records)
