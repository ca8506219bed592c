"""
Layer 3: Code Generator

Deterministic C# emission for merged classes: interfaces with factory
extension classes, classes, structs and classes of define constants.
"""

from generation.generator import (
    CLASS,
    EXTENSION,
    INTERFACE,
    STRUCT,
    UNRESOLVED_MARKER,
    EmissionUnit,
    generate,
    generate_defines,
)
from generation.layout import namespace_for, render_file
from generation.type_mapping import (
    BUILTIN_TYPE_MAP,
    translate_body,
    translate_define,
    translate_parameter,
    translate_parameters,
    translate_type,
    translate_value,
)

__all__ = [
    "CLASS",
    "EXTENSION",
    "INTERFACE",
    "STRUCT",
    "UNRESOLVED_MARKER",
    "EmissionUnit",
    "generate",
    "generate_defines",
    "namespace_for",
    "render_file",
    "BUILTIN_TYPE_MAP",
    "translate_body",
    "translate_define",
    "translate_parameter",
    "translate_parameters",
    "translate_type",
    "translate_value",
]
