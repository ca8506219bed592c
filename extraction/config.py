"""
Configuration constants for C++ declaration extraction.

Keyword sets used by the structural scanner and the declaration parser.
"""

from typing import Set

# Keywords whose `{...}` body is followed by a terminating `;`
TYPE_KEYWORDS: Set[str] = {
    "class",
    "struct",
    "union",
    "enum",
    "typedef",
}

# Keywords that open a scope whose body is re-scanned as top-level code
CONTAINER_KEYWORDS: Set[str] = {
    "namespace",
}

# Access labels inside class bodies
ACCESS_KEYWORDS: Set[str] = {
    "public",
    "protected",
    "private",
}

# Leading modifiers that carry no meaning for the generated code
DISCARDED_MODIFIERS: Set[str] = {
    "inline",
    "explicit",
    "extern",
    "mutable",
    "constexpr",
    "volatile",
    "register",
    "__inline",
    "__forceinline",
    "afx_msg",
}

# Calling conventions and similar decoration between return type and name
CALLING_CONVENTIONS: Set[str] = {
    "__cdecl",
    "__stdcall",
    "__fastcall",
    "__thiscall",
    "WINAPI",
    "CALLBACK",
    "APIENTRY",
}

# Qualifiers that may follow the parameter list
TRAILING_QUALIFIERS: Set[str] = {
    "const",
    "override",
    "final",
    "noexcept",
    "throw",
}

# Built-in type keywords; never a declarator name
BUILTIN_TYPE_WORDS: Set[str] = {
    "void",
    "bool",
    "char",
    "wchar_t",
    "short",
    "int",
    "long",
    "float",
    "double",
    "signed",
    "unsigned",
    "auto",
    "const",
}

# Declarations starting with these are kept verbatim as pass-through
PASS_THROUGH_KEYWORDS: Set[str] = {
    "enum",
    "template",
    "using",
    "friend",
    "typedef",
    "static_assert",
    "operator",
}

# Source roles
HEADER_ROLE: str = "header"
IMPLEMENTATION_ROLE: str = "implementation"

# C++ file extensions per role
HEADER_EXTENSIONS: Set[str] = {
    ".h",
    ".hh",
    ".hpp",
    ".hxx",
}

IMPLEMENTATION_EXTENSIONS: Set[str] = {
    ".cpp",
    ".cc",
    ".cxx",
    ".c",
}

CPP_EXTENSIONS: Set[str] = HEADER_EXTENSIONS | IMPLEMENTATION_EXTENSIONS

# Directories skipped by file discovery
SKIPPED_DIRECTORIES: Set[str] = {
    "build",
    "cmake-build-debug",
    "cmake-build-release",
    "node_modules",
    "venv",
    "__pycache__",
    "dist",
    "out",
}

# Tab width used when measuring indentation of bodies and comments
TAB_WIDTH: int = 4
