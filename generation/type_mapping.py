"""
C++ to C# type, parameter, value and body translation.

All substitutions are purely textual and applied outside string/char
literals and comments.
"""

import logging
import re
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from extraction.config import TAB_WIDTH
from extraction.models import Parameter, normalize_type
from extraction.scanner import CODE, iter_lexemes, mask_comments

logger = logging.getLogger(__name__)

BUILTIN_TYPE_MAP: Dict[str, str] = {
    "unsigned int": "uint",
    "unsigned": "uint",
    "unsigned char": "byte",
    "unsigned short": "ushort",
    "unsigned long": "ulong",
    "long long": "long",
    "__int64": "long",
    "char*": "string",
    "const char*": "string",
    "std::string": "string",
    "BOOL": "bool",
}

_CONST_RE = re.compile(r"\bconst\b")
_T_MACRO_RE = re.compile(r"\b_T\s*\(\s*(\"[^\"\n]*\")\s*\)")
_NULL_RE = re.compile(r"\b(?:NULL|nullptr)\b")
_TRUE_RE = re.compile(r"\bTRUE\b")
_FALSE_RE = re.compile(r"\bFALSE\b")
_PARENS_RE = re.compile(r"^\((.*)\)$", re.DOTALL)
_LITERAL_MACRO_RE = re.compile(r"^_T?\s*\(\s*(.*?)\s*\)$", re.DOTALL)

_BOOL_DEFINES: Dict[str, str] = {
    "TRUE": "true",
    "YES": "true",
    "OK": "true",
    "true": "true",
    "FALSE": "false",
    "NO": "false",
    "NOTOK": "false",
    "false": "false",
}

_DEFINE_LITERALS = (
    (re.compile(r'^"(?:[^"\\]|\\.)*"$'), "string"),
    (re.compile(r"^'(?:[^'\\]|\\.)*'$"), "char"),
    (re.compile(r"^-?(?:0[xX][0-9a-fA-F]+|\d+)$"), "int"),
    (re.compile(r"^-?(?:0[xX][0-9a-fA-F]+|\d+)[uU]$"), "uint"),
    (re.compile(r"^-?(?:0[xX][0-9a-fA-F]+|\d+)[lL]$"), "long"),
    (re.compile(r"^-?(?:\d+\.\d*|\.\d+|\d+)(?:[eE][-+]?\d+)?[fF]$"), "float"),
    (re.compile(r"^-?(?:\d+\.\d*|\.\d+)(?:[eE][-+]?\d+)?[dD]?$"), "double"),
    (re.compile(r"^-?\d+(?:[eE][-+]?\d+)?[dD]$"), "double"),
)


def _type_table(type_map: Optional[Mapping[str, str]]) -> Dict[str, str]:
    table = dict(BUILTIN_TYPE_MAP)
    for cpp_type, cs_type in (type_map or {}).items():
        table[normalize_type(cpp_type)] = cs_type
    return table


def _strip_const(type_text: str) -> str:
    return normalize_type(_CONST_RE.sub(" ", type_text))


def _direct_lookup(type_text: str, table: Mapping[str, str]) -> Optional[str]:
    """Mapping for the decorated spelling, e.g. ``const char*`` → ``string``."""
    normalized = normalize_type(type_text)
    if normalized in table:
        return table[normalized]
    if normalized.endswith(("*", "&")):
        unconst = _strip_const(normalized)
        if unconst in table:
            return table[unconst]
    return None


def translate_type(cpp_type: str, type_map: Optional[Mapping[str, str]] = None) -> str:
    """Translate a C++ type to its C# spelling.

    ``const`` and ``*``/``&`` decoration are dropped, mapped types are
    substituted and ``::`` becomes ``.`` outside template arguments.
    """
    table = _type_table(type_map)
    direct = _direct_lookup(cpp_type, table)
    if direct is not None:
        return direct

    bare = _strip_const(cpp_type).rstrip("*&").strip()
    if not bare:
        return "void"
    if bare in table:
        return table[bare]
    if "<" in bare:
        return bare
    return bare.replace("::", ".")


def parameter_modifier(parameter: Parameter, type_map: Optional[Mapping[str, str]] = None) -> str:
    """``out`` for non-const pointers, ``ref`` for non-const references."""
    if _direct_lookup(parameter.type, _type_table(type_map)) is not None:
        return ""
    if parameter.is_const:
        return ""
    if parameter.is_pointer:
        return "out"
    if parameter.is_reference:
        return "ref"
    return ""


def translate_parameter(
    parameter: Parameter,
    index: int = 0,
    type_map: Optional[Mapping[str, str]] = None,
    with_comments: bool = True,
) -> str:
    """C# spelling of one parameter; its comments stay in place as block comments."""
    text = _translate_parameter_code(parameter, index, type_map)
    if not with_comments:
        return text
    if parameter.leading_comment is not None:
        text = f"{parameter.leading_comment.inline()} {text}"
    if parameter.trailing_comment is not None:
        text = f"{text} {parameter.trailing_comment.inline()}"
    return text


def _translate_parameter_code(
    parameter: Parameter,
    index: int,
    type_map: Optional[Mapping[str, str]],
) -> str:
    modifier = parameter_modifier(parameter, type_map)
    if parameter.type == "...":
        return "params object[] args"
    text = translate_type(parameter.type, type_map)
    if modifier:
        text = f"{modifier} {text}"
    text += f" {parameter.name or f'arg{index}'}"
    # out/ref parameters cannot carry a default in C#
    if parameter.default_value is not None and not modifier:
        text += f" = {translate_value(parameter.default_value)}"
    return text


def translate_parameters(
    parameters: Sequence[Parameter],
    type_map: Optional[Mapping[str, str]] = None,
    with_comments: bool = True,
) -> str:
    return ", ".join(
        translate_parameter(p, i, type_map, with_comments) for i, p in enumerate(parameters)
    )


def _replace_t_macro(text: str) -> str:
    masked = mask_comments(text, mask_literals=True)
    pieces: List[str] = []
    last = 0
    for match in _T_MACRO_RE.finditer(masked):
        literal_start, literal_end = match.span(1)
        pieces.append(text[last:match.start()])
        pieces.append(text[literal_start:literal_end])
        last = match.end()
    pieces.append(text[last:])
    return "".join(pieces)


def _substitute_code(chunk: str) -> str:
    chunk = chunk.replace("->", ".").replace("::", ".")
    chunk = _NULL_RE.sub("null", chunk)
    chunk = _TRUE_RE.sub("true", chunk)
    return _FALSE_RE.sub("false", chunk)


def translate_body(text: str) -> str:
    """Apply the token substitution table outside literals and comments."""
    text = _replace_t_macro(text)
    out: List[str] = []
    for kind, start, end in iter_lexemes(text):
        chunk = text[start:end]
        out.append(_substitute_code(chunk) if kind == CODE else chunk)
    return "".join(out)


def translate_value(expression: str) -> str:
    """Translate a default value or initializer expression."""
    return " ".join(translate_body(expression).split("\n")).strip()


def translate_define(value: str) -> Optional[Tuple[str, str]]:
    """C# type and value for a ``#define`` constant.

    Only literals are translated: strings and characters (optionally wrapped
    in ``_T(...)`` or ``_(...)``), integers, ``L``-suffixed longs, floating
    point numbers and the boolean spellings ``TRUE``/``YES``/``OK`` and
    ``FALSE``/``NO``/``NOTOK``. Returns None for any other expression.
    """
    text = value.strip()
    parens = _PARENS_RE.match(text)
    if parens:
        text = parens.group(1).strip()
    wrapped = _LITERAL_MACRO_RE.match(text)
    if wrapped:
        text = wrapped.group(1)
    if text in _BOOL_DEFINES:
        return "bool", _BOOL_DEFINES[text]
    for pattern, cs_type in _DEFINE_LITERALS:
        if pattern.match(text):
            return cs_type, text
    return None


def _indent_width(line: str) -> int:
    expanded = line.expandtabs(TAB_WIDTH)
    return len(expanded) - len(expanded.lstrip(" "))


def reindent_lines(text: str, indent: str, skip_first: bool = False) -> List[str]:
    """Re-indent a block relative to its common indentation.

    Leading and trailing blank lines are dropped; inner blank lines become
    empty. With ``skip_first`` the first line is stripped and excluded from
    the common-indentation measure (it shares a line with an opening brace).
    """
    lines = text.split("\n")
    first: Optional[str] = None
    if skip_first and lines:
        first = lines.pop(0).strip()

    measured = [_indent_width(line) for line in lines if line.strip()]
    common = min(measured) if measured else 0

    result = []
    if first:
        result.append(indent + first)
    for line in lines:
        if not line.strip():
            result.append("")
            continue
        expanded = line.expandtabs(TAB_WIDTH).rstrip()
        result.append(indent + expanded[common:])

    while result and not result[0].strip():
        result.pop(0)
    while result and not result[-1].strip():
        result.pop()
    return result
