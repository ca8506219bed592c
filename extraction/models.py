"""
Symbol model for extracted C++ declarations.

Files own types, types own members. Base types and factory return types are
kept as plain names and resolved by the generator, so the model never holds
reference cycles.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import List, Optional, Tuple, Union

from extraction.config import HEADER_ROLE

_SPACE_RE = re.compile(r"\s+")
_DECORATION_SPACE_RE = re.compile(r"\s*([*&])")
_SCOPE_RE = re.compile(r"\s*::\s*")
_ANGLE_OPEN_RE = re.compile(r"\s*<\s*")
_ANGLE_CLOSE_RE = re.compile(r"\s*>")
_COMMA_RE = re.compile(r"\s*,\s*")


def normalize_type(type_text: str) -> str:
    """Canonical spelling of a C++ type.

    Whitespace runs collapse to one space and pointer/reference decoration is
    attached to the preceding token, so ``const CString &``, ``const
    CString&`` and ``const  CString &`` all become ``const CString&``.
    """
    normalized = _SPACE_RE.sub(" ", type_text.strip())
    normalized = _DECORATION_SPACE_RE.sub(r"\1", normalized)
    normalized = _SCOPE_RE.sub("::", normalized)
    normalized = _ANGLE_OPEN_RE.sub("<", normalized)
    normalized = _ANGLE_CLOSE_RE.sub(">", normalized)
    normalized = _COMMA_RE.sub(", ", normalized)
    return normalized.strip()


@dataclass(frozen=True)
class Comment:
    """A comment kept verbatim, delimiters included."""

    raw: str

    @property
    def is_line_comment(self) -> bool:
        return self.raw.lstrip().startswith("//")

    @property
    def text(self) -> str:
        """Comment content without delimiters, one line per source line."""
        lines = []
        for line in self.raw.strip().split("\n"):
            stripped = line.strip()
            if stripped.startswith("//"):
                stripped = stripped[2:]
            else:
                if stripped.startswith("/*"):
                    stripped = stripped[2:]
                if stripped.endswith("*/"):
                    stripped = stripped[:-2]
                if stripped.startswith("*"):
                    stripped = stripped[1:]
            lines.append(stripped.strip())
        return "\n".join(lines).strip()

    def lines(self) -> List[str]:
        """Raw lines with their original left margin removed.

        Continuation lines of block comments that start with ``*`` keep one
        leading space so the asterisks stay aligned under ``/*``.
        """
        result = []
        for idx, line in enumerate(self.raw.strip().split("\n")):
            stripped = line.strip()
            if idx > 0 and stripped.startswith("*"):
                stripped = " " + stripped
            result.append(stripped)
        return result

    def inline(self) -> str:
        """Single-line ``/* ... */`` spelling for use inside a line of code."""
        if self.is_line_comment:
            content = self.raw.strip()[2:].strip().replace("*/", "* /")
            return f"/* {content} */" if content else "/* */"
        return " ".join(self.raw.split())


@dataclass(frozen=True)
class Region:
    """A ``#pragma region`` or ``#pragma endregion`` marker.

    ``text`` is the directive without ``#pragma``, e.g. ``region My Variables``
    or ``endregion // My Variables``.
    """

    text: str
    is_start: bool
    leading_comment: Optional[Comment] = None
    offset: int = 0

    @property
    def marker(self) -> str:
        return f"//#{self.text}"


@dataclass
class Parameter:
    """One method parameter.

    Comments written inside the parameter list are kept on the parameter they
    precede (``leading_comment``) or follow (``trailing_comment``).
    """

    type: str
    name: str = ""
    default_value: Optional[str] = None
    leading_comment: Optional[Comment] = None
    trailing_comment: Optional[Comment] = None

    @property
    def is_const(self) -> bool:
        return self.type.startswith("const ") or " const" in self.type

    @property
    def is_pointer(self) -> bool:
        return self.type.rstrip().endswith("*")

    @property
    def is_reference(self) -> bool:
        return self.type.rstrip().endswith("&")

    def signature(self, with_default: bool = True, with_comments: bool = False) -> str:
        text = self.type if not self.name else f"{self.type} {self.name}"
        if with_default and self.default_value is not None:
            text += f" = {self.default_value}"
        if with_comments:
            if self.leading_comment is not None:
                text = f"{self.leading_comment.inline()} {text}"
            if self.trailing_comment is not None:
                text = f"{text} {self.trailing_comment.inline()}"
        return text


@dataclass(frozen=True)
class Initializer:
    """One constructor initializer entry, ``name(expression)`` or ``name = expression``."""

    name: str
    expression: str


@dataclass
class Field:
    """A data member, or a static member definition when ``owner`` is set."""

    name: str
    type: str
    array_dims: List[str] = field(default_factory=list)
    default_value: Optional[str] = None
    is_static: bool = False
    is_const: bool = False
    access: str = "private"
    owner: Optional[str] = None
    leading_comment: Optional[Comment] = None
    trailing_comment: Optional[Comment] = None
    regions_before: List[Region] = field(default_factory=list)
    regions_after: List[Region] = field(default_factory=list)
    offset: int = 0

    @property
    def is_array(self) -> bool:
        return bool(self.array_dims)


@dataclass
class Method:
    """A method declaration or definition."""

    name: str
    return_type: str = ""
    parameters: List[Parameter] = field(default_factory=list)
    is_virtual: bool = False
    is_static: bool = False
    is_const: bool = False
    is_pure: bool = False
    is_destructor: bool = False
    initializers: List[Initializer] = field(default_factory=list)
    body: Optional[str] = None
    owner: Optional[str] = None
    access: str = "private"
    is_local: bool = False
    leading_comment: Optional[Comment] = None
    trailing_comment: Optional[Comment] = None
    regions_before: List[Region] = field(default_factory=list)
    regions_after: List[Region] = field(default_factory=list)
    offset: int = 0

    @property
    def has_body(self) -> bool:
        return self.body is not None

    def is_constructor_of(self, class_name: str) -> bool:
        return not self.is_destructor and not self.return_type and self.name == class_name

    def parameter_types(self) -> Tuple[str, ...]:
        """Parameter type sequence used as the overload matching key."""
        if self.is_destructor:
            return ()
        return tuple(normalize_type(p.type) for p in self.parameters)

    def display_name(self) -> str:
        return f"~{self.name}" if self.is_destructor else self.name

    def qualified_signature(self, class_name: Optional[str] = None) -> str:
        """``Class::Method(type, type)`` identification used in diagnostics."""
        owner = class_name or self.owner
        prefix = f"{owner}::" if owner else ""
        return f"{prefix}{self.display_name()}({', '.join(self.parameter_types())})"

    def signature(self) -> str:
        """Re-serialise the declaration (without body or initializers)."""
        parts = []
        if self.is_virtual:
            parts.append("virtual")
        if self.is_static:
            parts.append("static")
        if self.return_type:
            parts.append(self.return_type)
        params = ", ".join(p.signature() for p in self.parameters)
        parts.append(f"{self.display_name()}({params})")
        text = " ".join(parts)
        if self.is_const:
            text += " const"
        if self.is_pure:
            text += " = 0"
        return text


@dataclass
class PassThrough:
    """A block the parser did not recognise, kept verbatim."""

    text: str
    reason: str
    access: str = "private"
    leading_comment: Optional[Comment] = None
    trailing_comment: Optional[Comment] = None
    regions_before: List[Region] = field(default_factory=list)
    regions_after: List[Region] = field(default_factory=list)
    offset: int = 0


@dataclass
class Define:
    """An object-like macro, ``#define NAME value``."""

    name: str
    value: str
    leading_comment: Optional[Comment] = None
    trailing_comment: Optional[Comment] = None
    offset: int = 0


Member = Union[Field, Method, PassThrough]


@dataclass
class TypeDeclaration:
    """A class, struct or typedef'd struct."""

    name: str
    kind: str = "class"
    members: List[Member] = field(default_factory=list)
    bases: List[str] = field(default_factory=list)
    is_exported: bool = False
    is_typedef: bool = False
    leading_comment: Optional[Comment] = None
    trailing_comment: Optional[Comment] = None
    regions_before: List[Region] = field(default_factory=list)
    regions_after: List[Region] = field(default_factory=list)
    nested_types: List["TypeDeclaration"] = field(default_factory=list)
    defines: List[Define] = field(default_factory=list)
    origin: Optional[str] = None
    offset: int = 0

    @property
    def fields(self) -> List[Field]:
        return [m for m in self.members if isinstance(m, Field)]

    @property
    def methods(self) -> List[Method]:
        return [m for m in self.members if isinstance(m, Method)]

    @property
    def pass_through(self) -> List[PassThrough]:
        return [m for m in self.members if isinstance(m, PassThrough)]

    def find_field(self, name: str) -> Optional[Field]:
        for member in self.fields:
            if member.name == name:
                return member
        return None


@dataclass
class SourceUnit:
    """One parsed input file."""

    name: str
    role: str = HEADER_ROLE
    types: List[TypeDeclaration] = field(default_factory=list)
    members: List[Member] = field(default_factory=list)
    pass_through: List[PassThrough] = field(default_factory=list)
    defines: List[Define] = field(default_factory=list)

    @property
    def stem(self) -> str:
        base = self.name.replace("\\", "/").rsplit("/", 1)[-1]
        return base.rsplit(".", 1)[0] if "." in base else base

    @property
    def methods(self) -> List[Method]:
        return [m for m in self.members if isinstance(m, Method)]

    @property
    def fields(self) -> List[Field]:
        return [m for m in self.members if isinstance(m, Field)]

    def find_type(self, name: str) -> Optional[TypeDeclaration]:
        for declaration in self.types:
            if declaration.name == name:
                return declaration
        return None
