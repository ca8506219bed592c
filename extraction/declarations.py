"""
Declaration parser.

Classifies one scanner segment as a type declaration, a method, one or more
fields, a container (namespace / ``extern "C"``) whose body is re-scanned,
or a pass-through block, and extracts the signature components. Each rule
works on a masked copy of the block (comments and literal contents blanked)
so offsets line up with the raw text, and returns an ``Outcome`` rather than
raising.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Tuple, Union

from core.diagnostics import DiagnosticCollector, Outcome
from extraction.config import (
    ACCESS_KEYWORDS,
    BUILTIN_TYPE_WORDS,
    CALLING_CONVENTIONS,
    CONTAINER_KEYWORDS,
    DISCARDED_MODIFIERS,
    PASS_THROUGH_KEYWORDS,
    TRAILING_QUALIFIERS,
)
from extraction.models import (
    Comment,
    Define,
    Field,
    Initializer,
    Member,
    Method,
    Parameter,
    PassThrough,
    Region,
    TypeDeclaration,
    normalize_type,
)
from extraction.scanner import (
    COMMENT,
    DIRECTIVE,
    LABEL,
    Segment,
    byte_offset,
    find_matching,
    iter_lexemes,
    mask_comments,
    scan_range,
    split_top_level,
)

logger = logging.getLogger(__name__)

_WORD_RE = re.compile(r"[A-Za-z_]\w*")
_DECLSPEC_RE = re.compile(r"__declspec\s*\(\s*(\w+)\s*\)")
_EXPORT_MACRO_RE = re.compile(r"^[A-Z][A-Z0-9_]*$")
_TRAILING_NAME_RE = re.compile(
    r"(~?\s*[A-Za-z_]\w*(?:\s*::\s*~?\s*[A-Za-z_]\w*)*)\s*$"
)
_TRAILING_IDENT_RE = re.compile(r"([A-Za-z_]\w*)\s*$")
_ARRAY_SUFFIX_RE = re.compile(r"((?:\s*\[[^\]]*\])+)\s*$")
_DIM_RE = re.compile(r"\[([^\]]*)\]")
_BITFIELD_RE = re.compile(r"\s*:\s*\d+\s*$")
_OPERATOR_RE = re.compile(r"\boperator\b")
_ARGUMENT_LIKE_RE = re.compile(
    r"""^\s*(["'\d\-+]|true\b|false\b|TRUE\b|FALSE\b|NULL\b|nullptr\b|_T\s*\()"""
)
_INIT_CALL_RE = re.compile(r"^\s*([A-Za-z_][\w:]*)\s*([({])(.*)[)}]\s*$", re.DOTALL)
_INIT_ASSIGN_RE = re.compile(r"^\s*([A-Za-z_][\w:]*)\s*=\s*(.+?)\s*$", re.DOTALL)
_DEFINE_RE = re.compile(r"^#\s*define\s+([A-Za-z_]\w*)(\()?(.*)$", re.DOTALL)
_REGION_RE = re.compile(r"^#\s*pragma\s+((end)?region\b.*)$", re.DOTALL)
_CONTINUATION_RE = re.compile(r"\\\r?\n\s*")

# Words that may precede the type without being part of it
_TYPE_PREFIX_NOISE = {"struct", "class", "enum", "union", "typename"}
_UNNAMED_TYPE_PARTS = {"const", "unsigned", "signed", "volatile", "struct", "class", "enum"}


@dataclass(frozen=True)
class ParseContext:
    """Where a block sits: the enclosing class (if any) and the access in force."""

    owner: Optional[str] = None
    access: str = "public"
    unit: Optional[str] = None


@dataclass
class Container:
    """A namespace or ``extern "C"`` block; its body range is re-scanned."""

    kind: str
    name: Optional[str]
    body_start: int
    body_end: int


@dataclass
class ScopeResult:
    """Everything parsed from one scope, in source order."""

    types: List[TypeDeclaration] = field(default_factory=list)
    members: List[Member] = field(default_factory=list)
    defines: List[Define] = field(default_factory=list)


Parsed = Union[TypeDeclaration, List[Member], Container, PassThrough]


# ---------------------------------------------------------------------------
# Small text helpers
# ---------------------------------------------------------------------------

def _first_word(masked: str, start: int = 0) -> Optional[re.Match]:
    return _WORD_RE.search(masked, start)


def _find_top_level(masked: str, targets: str, start: int = 0, stop: Optional[int] = None) -> int:
    """First index of any char in ``targets`` outside (), [] and <>."""
    if stop is None:
        stop = len(masked)
    depth = 0
    for idx in range(start, stop):
        c = masked[idx]
        if c in targets and depth == 0:
            return idx
        if c in "([<":
            depth += 1
        elif c in ")]>":
            depth = max(depth - 1, 0)
    return -1


def _find_assignment(masked: str) -> int:
    """Index of a top-level ``=`` that is not part of a comparison."""
    depth = 0
    for idx, c in enumerate(masked):
        if c in "([{<":
            depth += 1
        elif c in ")]}>":
            depth = max(depth - 1, 0)
        elif c == "=" and depth == 0:
            prev = masked[idx - 1] if idx else ""
            nxt = masked[idx + 1] if idx + 1 < len(masked) else ""
            if prev not in "=!<>" and nxt != "=":
                return idx
    return -1


def _find_single_colon(masked: str, start: int = 0) -> int:
    """Index of a ``:`` that is not part of ``::``."""
    idx = masked.find(":", start)
    while idx != -1:
        prev = masked[idx - 1] if idx else ""
        nxt = masked[idx + 1] if idx + 1 < len(masked) else ""
        if prev != ":" and nxt != ":":
            return idx
        idx = masked.find(":", idx + 2)
    return -1


def _same_line(text: str, a: int, b: int) -> bool:
    return "\n" not in text[a:b]


def _blank_line_between(text: str, a: int, b: int) -> bool:
    return text[a:b].count("\n") >= 2


def _strip_declspec(text: str) -> Tuple[str, bool]:
    exported = False
    for match in _DECLSPEC_RE.finditer(text):
        if match.group(1) in ("dllexport", "dllimport"):
            exported = True
    return _DECLSPEC_RE.sub(" ", text), exported


def _split_qualified(name: str) -> Tuple[Optional[str], str]:
    parts = [p.strip() for p in name.split("::")]
    if len(parts) == 1:
        return None, parts[0]
    return parts[-2], parts[-1]


# ---------------------------------------------------------------------------
# Parameters and initializers
# ---------------------------------------------------------------------------

def _piece_comments(piece: str) -> Tuple[List[str], List[str]]:
    """Comments of one parameter, split into those before and after its code."""
    before: List[str] = []
    after: List[str] = []
    seen_code = False
    for kind, start, end in iter_lexemes(piece):
        chunk = piece[start:end]
        if kind == COMMENT:
            (after if seen_code else before).append(chunk.strip())
        elif chunk.strip():
            seen_code = True
    return before, after


def _joined_comment(chunks: List[str]) -> Optional[Comment]:
    if not chunks:
        return None
    if len(chunks) == 1:
        return Comment(chunks[0])
    return Comment(" ".join(Comment(c).inline() for c in chunks))


def parse_parameters(params_text: str) -> List[Parameter]:
    """Parse the text between a method's parentheses into Parameters.

    Names are optional. A comment inside the list is kept on the parameter
    it precedes or, when nothing follows it, on the one it follows.
    """
    if mask_comments(params_text).strip() in ("", "void"):
        return []

    parameters: List[Parameter] = []
    carried: List[str] = []
    for piece in split_top_level(params_text, ","):
        head_comments, tail_comments = _piece_comments(piece)
        code = mask_comments(piece).strip()
        if not code:
            if parameters:
                previous = parameters[-1]
                existing = [previous.trailing_comment.raw] if previous.trailing_comment else []
                previous.trailing_comment = _joined_comment(existing + head_comments)
            else:
                carried.extend(head_comments)
            continue
        leading = _joined_comment(carried + head_comments)
        trailing = _joined_comment(tail_comments)
        carried = []

        default_value = None
        eq = _find_assignment(code)
        if eq != -1:
            default_value = code[eq + 1:].strip()
            code = code[:eq].strip()
        if code == "...":
            parameters.append(
                Parameter(
                    type="...",
                    name="",
                    default_value=default_value,
                    leading_comment=leading,
                    trailing_comment=trailing,
                )
            )
            continue

        suffix = ""
        array_match = _ARRAY_SUFFIX_RE.search(code)
        if array_match:
            suffix = "[]" * len(_DIM_RE.findall(array_match.group(1)))
            code = code[:array_match.start()].strip()

        name = ""
        type_part = code
        ident = _TRAILING_IDENT_RE.search(code)
        if ident:
            candidate = ident.group(1)
            before = code[:ident.start()].strip()
            if (
                before
                and not before.endswith("::")
                and candidate not in BUILTIN_TYPE_WORDS
                and before not in _UNNAMED_TYPE_PARTS
            ):
                name = candidate
                type_part = before
        parameters.append(
            Parameter(
                type=normalize_type(type_part + suffix),
                name=name,
                default_value=default_value,
                leading_comment=leading,
                trailing_comment=trailing,
            )
        )
    return parameters


def parse_initializers(init_text: str) -> Tuple[List[Initializer], List[str]]:
    """Parse a constructor initializer list (text after the ``:``).

    Returns the initializers in source order and the pieces that matched
    neither ``name(expr)`` nor ``name = expr``.
    """
    initializers = []
    rejected = []
    for piece in split_top_level(init_text, ",", angle=False):
        code = mask_comments(piece).strip()
        if not code:
            continue
        call = _INIT_CALL_RE.match(code)
        if call:
            initializers.append(Initializer(name=call.group(1), expression=call.group(3).strip()))
            continue
        assign = _INIT_ASSIGN_RE.match(code)
        if assign:
            initializers.append(Initializer(name=assign.group(1), expression=assign.group(2).strip()))
            continue
        rejected.append(code)
    return initializers, rejected


def check_initializer_order(
    constructor: Method,
    declaration: TypeDeclaration,
    collector: DiagnosticCollector,
) -> bool:
    """Warn when initializer order differs from field declaration order.

    The initializers are left as written. Entries that name no field (base
    class initializers, inherited members) are not part of the comparison.
    """
    field_order = {f.name: idx for idx, f in enumerate(declaration.fields)}
    positions = [field_order[i.name] for i in constructor.initializers if i.name in field_order]
    if positions == sorted(positions):
        return True
    given = ", ".join(i.name for i in constructor.initializers if i.name in field_order)
    collector.warning(
        f"Constructor initializer order ({given}) differs from field declaration "
        f"order; kept as written",
        identifier=constructor.qualified_signature(declaration.name),
    )
    return False


# ---------------------------------------------------------------------------
# Members
# ---------------------------------------------------------------------------

def _find_body_open(masked: str, start: int) -> int:
    """First ``{`` after an initializer list that opens the body.

    Braces directly after an identifier are brace-initializers
    (``m_value{3}``) and are skipped.
    """
    k = start
    while k < len(masked):
        c = masked[k]
        if c == "(":
            close = find_matching(masked, k)
            if close == -1:
                return -1
            k = close + 1
            continue
        if c == "{":
            prev = masked[:k].rstrip()
            if prev and (prev[-1].isalnum() or prev[-1] == "_"):
                close = find_matching(masked, k)
                if close == -1:
                    return -1
                k = close + 1
                continue
            return k
        if c == ";":
            return -1
        k += 1
    return -1


def _parse_method(
    raw: str,
    masked: str,
    paren_open: int,
    leading: Optional[Comment],
    context: ParseContext,
    offset: int,
) -> Union[Method, PassThrough, None]:
    paren_close = find_matching(masked, paren_open)
    if paren_close == -1:
        return PassThrough(raw.strip(), "unbalanced parameter list", context.access, leading, offset=offset)

    prefix, _ = _strip_declspec(masked[:paren_open])
    name_match = _TRAILING_NAME_RE.search(prefix)
    if not name_match:
        return PassThrough(raw.strip(), "no method name before parameter list", context.access, leading, offset=offset)

    qualified = re.sub(r"\s+", "", name_match.group(1))
    owner, name = _split_qualified(qualified)
    is_destructor = name.startswith("~")
    if is_destructor:
        name = name[1:]

    is_virtual = False
    is_static = False
    return_words = []
    for word in prefix[:name_match.start()].split():
        if word == "virtual":
            is_virtual = True
        elif word == "static":
            is_static = True
        elif word in DISCARDED_MODIFIERS or word in CALLING_CONVENTIONS or word.startswith('"'):
            continue
        else:
            return_words.append(word)
    return_type = normalize_type(" ".join(return_words))

    if name in BUILTIN_TYPE_WORDS or name == "operator":
        return PassThrough(raw.strip(), "function pointer or operator", context.access, leading, offset=offset)
    if not return_type and not is_destructor:
        expected_owner = owner or context.owner
        # an unqualified constructor body at file scope is resolved by the merger
        free_definition = expected_owner is None and "{" in masked[paren_close:]
        if name != expected_owner and not free_definition:
            return PassThrough(raw.strip(), "macro invocation or declaration without type", context.access, leading, offset=offset)
    if owner is not None and owner == context.owner:
        owner = None

    params_text = raw[paren_open + 1:paren_close]
    if return_type and not is_destructor and any(
        _ARGUMENT_LIKE_RE.match(mask_comments(piece)) for piece in split_top_level(params_text, ",")
    ):
        # `CString m_name(_T("x"));` is a field with a constructor-style initializer
        return Field(
            name=name,
            type=return_type,
            default_value=mask_comments(params_text).strip(),
            is_static=is_static,
            access=context.access,
            owner=owner,
            leading_comment=leading,
            offset=offset,
        )

    method = Method(
        name=name,
        return_type=return_type,
        parameters=[] if is_destructor else parse_parameters(params_text),
        is_virtual=is_virtual,
        is_static=is_static,
        is_destructor=is_destructor,
        owner=owner,
        access=context.access,
        leading_comment=leading,
        offset=offset,
    )

    j = paren_close + 1
    n = len(masked)
    while j < n:
        c = masked[j]
        if c.isspace():
            j += 1
            continue
        word = _WORD_RE.match(masked, j)
        if word:
            token = word.group(0)
            j = word.end()
            if token == "const":
                method.is_const = True
            elif token == "PURE":
                method.is_pure = True
            elif token in ("throw", "noexcept"):
                k = j
                while k < n and masked[k].isspace():
                    k += 1
                if k < n and masked[k] == "(":
                    close = find_matching(masked, k)
                    j = n if close == -1 else close + 1
            elif token not in TRAILING_QUALIFIERS:
                logger.debug("Ignoring trailing token '%s' after %s()", token, name)
            continue
        if c == "=":
            tail = masked[j + 1:].strip().rstrip(";").strip()
            if tail == "0":
                method.is_pure = True
            elif tail == "default":
                method.body = ""
            elif tail == "delete":
                return None
            break
        if c == ":":
            body_open = _find_body_open(masked, j + 1)
            init_end = body_open if body_open != -1 else n
            method.initializers, rejected = parse_initializers(raw[j + 1:init_end].rstrip().rstrip(";"))
            for piece in rejected:
                logger.debug("Unparsed initializer '%s' in %s", piece, name)
            if body_open == -1:
                break
            j = body_open
            continue
        if c == "{":
            close = find_matching(masked, j)
            method.body = raw[j + 1:close] if close != -1 else raw[j + 1:]
            break
        if c == ";":
            break
        j += 1

    # comments between the parameter list and the body stay with the signature
    method.trailing_comment = _joined_comment(
        [raw[start:end].strip() for lexeme, start, end in iter_lexemes(raw[paren_close + 1:j]) if lexeme == COMMENT]
    )
    return method


def _parse_fields(
    raw: str,
    masked: str,
    leading: Optional[Comment],
    context: ParseContext,
    offset: int,
) -> Union[List[Field], PassThrough]:
    statement_end = masked.rstrip().rstrip(";")
    pieces = split_top_level(raw[:len(statement_end)], ",")
    fields: List[Field] = []

    base_type = ""
    is_static = False
    is_const = False
    for index, piece in enumerate(pieces):
        code = mask_comments(piece, mask_literals=False)
        default_value = None
        eq = _find_assignment(mask_comments(piece, mask_literals=True))
        if eq != -1:
            default_value = code[eq + 1:].strip()
            code = code[:eq]
        code = _BITFIELD_RE.sub("", code).strip()

        dims: List[str] = []
        array_match = _ARRAY_SUFFIX_RE.search(code)
        if array_match:
            dims = [d.strip() for d in _DIM_RE.findall(array_match.group(1))]
            code = code[:array_match.start()].strip()

        name_match = _TRAILING_NAME_RE.search(code)
        if not name_match:
            return PassThrough(raw.strip(), "no field name", context.access, leading, offset=offset)
        owner, name = _split_qualified(re.sub(r"\s+", "", name_match.group(1)))
        before = code[:name_match.start()].strip()

        if index == 0:
            words = []
            for word in before.split():
                if word == "static":
                    is_static = True
                elif word == "const" and not words:
                    is_const = True
                elif word in DISCARDED_MODIFIERS or word in _TYPE_PREFIX_NOISE:
                    continue
                else:
                    words.append(word)
            base_type = normalize_type(" ".join(words))
            if is_const and base_type.endswith(("*", "&")):
                # `const char* p` qualifies the pointee, not the field
                base_type = normalize_type("const " + base_type)
                is_const = False
            field_type = base_type
            if not field_type and owner is None:
                return PassThrough(raw.strip(), "declaration without type", context.access, leading, offset=offset)
            if name in BUILTIN_TYPE_WORDS or name in ACCESS_KEYWORDS:
                return PassThrough(raw.strip(), "unrecognized declaration", context.access, leading, offset=offset)
        else:
            plain = base_type.rstrip("*&")
            field_type = normalize_type(plain + before)

        if owner is not None and owner == context.owner:
            owner = None
        fields.append(
            Field(
                name=name,
                type=field_type,
                array_dims=dims,
                default_value=default_value,
                is_static=is_static,
                is_const=is_const,
                access=context.access,
                owner=owner,
                leading_comment=leading if index == 0 else None,
                offset=offset,
            )
        )
    return fields


def _parse_member(
    raw: str,
    masked: str,
    leading: Optional[Comment],
    context: ParseContext,
    offset: int,
) -> Union[List[Member], PassThrough, None]:
    limit = len(masked)
    for stop_char in ("=", "{", ";"):
        idx = _find_top_level(masked, stop_char)
        if idx != -1:
            limit = min(limit, idx)
    paren_open = _find_top_level(masked, "(", 0, limit)
    head_end = paren_open if paren_open != -1 else limit
    if _OPERATOR_RE.search(masked[:head_end]):
        return PassThrough(raw.strip(), "operator overload", context.access, leading, offset=offset)
    if paren_open != -1:
        parsed = _parse_method(raw, masked, paren_open, leading, context, offset)
        if parsed is None or isinstance(parsed, PassThrough):
            return parsed
        return [parsed]
    return _parse_fields(raw, masked, leading, context, offset)


# ---------------------------------------------------------------------------
# Types and containers
# ---------------------------------------------------------------------------

def _parse_type_declaration(
    text: str,
    segment: Segment,
    masked: str,
    leading: Optional[Comment],
    context: ParseContext,
    collector: DiagnosticCollector,
) -> Union[TypeDeclaration, PassThrough, None]:
    raw = segment.text
    open_idx = _find_top_level(masked, "{")
    if open_idx == -1:
        logger.debug("Skipping forward declaration at offset %d", segment.start)
        return None
    close_idx = find_matching(masked, open_idx)
    body_end = close_idx if close_idx != -1 else len(raw)

    head, exported = _strip_declspec(masked[:open_idx])
    words_match = _first_word(head)
    is_typedef = words_match is not None and words_match.group(0) == "typedef"
    if is_typedef:
        head = head[words_match.end():]
    keyword_match = _first_word(head)
    if keyword_match is None:
        return PassThrough(raw.strip(), "type without keyword", context.access, leading, offset=segment.start)
    keyword = keyword_match.group(0)
    if keyword == "union":
        return PassThrough(raw.strip(), "union", context.access, leading, offset=segment.start)
    head = head[keyword_match.end():]

    colon = _find_single_colon(head)
    name_part = head if colon == -1 else head[:colon]
    base_part = "" if colon == -1 else head[colon + 1:]

    name_words = [w for w in _WORD_RE.findall(name_part) if w not in ("final", "sealed")]
    name = name_words[-1] if name_words else ""
    if any(_EXPORT_MACRO_RE.match(w) for w in name_words[:-1]):
        exported = True

    if is_typedef or not name:
        tail = masked[body_end + 1:] if close_idx != -1 else ""
        alias = _first_word(tail)
        if alias is not None:
            name = alias.group(0)
    if not name:
        return PassThrough(raw.strip(), "anonymous type", context.access, leading, offset=segment.start)

    bases = []
    for piece in split_top_level(base_part, ","):
        words = [w for w in piece.split() if w not in ACCESS_KEYWORDS and w != "virtual"]
        if words:
            bases.append(normalize_type(" ".join(words)))

    kind = "struct" if keyword == "struct" else "class"
    inner_context = ParseContext(
        owner=name,
        access="public" if kind == "struct" else "private",
        unit=context.unit,
    )
    header_comments = [
        raw[start:end].strip() for lexeme, start, end in iter_lexemes(raw[:open_idx]) if lexeme == COMMENT
    ]
    body_start = segment.start + open_idx + 1
    scope = parse_scope(
        text,
        scan_range(text, body_start, segment.start + body_end),
        inner_context,
        collector,
    )
    logger.debug(
        "Parsed %s %s with %d members and %d nested types",
        kind, name, len(scope.members), len(scope.types),
    )
    return TypeDeclaration(
        name=name,
        kind=kind,
        members=scope.members,
        bases=bases,
        is_exported=exported,
        is_typedef=is_typedef,
        leading_comment=leading,
        trailing_comment=_joined_comment(header_comments),
        nested_types=scope.types,
        defines=scope.defines,
        origin=context.unit,
        offset=segment.start,
    )


def _parse_container(segment: Segment, masked: str, kind: str) -> Optional[Container]:
    open_idx = masked.find("{")
    if open_idx == -1:
        return None
    close_idx = find_matching(masked, open_idx)
    if close_idx == -1:
        close_idx = len(masked)
    name_match = _first_word(masked[:open_idx], masked.find(kind) + len(kind))
    return Container(
        kind=kind,
        name=name_match.group(0) if name_match and kind == "namespace" else None,
        body_start=segment.start + open_idx + 1,
        body_end=segment.start + close_idx,
    )


def parse_declaration(
    text: str,
    segment: Segment,
    leading: Optional[Comment] = None,
    context: Optional[ParseContext] = None,
) -> Outcome[Parsed]:
    """Classify one declaration segment and extract its structure.

    Args:
        text: The full unit text the segment offsets refer to.
        segment: A ``declaration`` segment from the scanner.
        leading: Comment directly above the segment, if any.
        context: Enclosing class and access level.

    Returns:
        Outcome whose value is a TypeDeclaration, a list of Members, a
        Container, a PassThrough, or None for blocks that carry nothing
        (forward declarations, deleted functions, ``using namespace``).
    """
    context = context or ParseContext()
    collector = DiagnosticCollector(unit=context.unit)
    raw = segment.text
    masked = mask_comments(raw, mask_literals=True)
    stripped, _ = _strip_declspec(masked)
    first_match = _first_word(stripped)
    first = first_match.group(0) if first_match else ""
    second_match = _first_word(stripped, first_match.end()) if first_match else None
    second = second_match.group(0) if second_match else ""

    value: Optional[Parsed]
    if first in CONTAINER_KEYWORDS:
        value = _parse_container(segment, masked, first)
    elif first == "extern" and '"C"' in raw and "{" in masked:
        value = _parse_container(segment, masked, "extern")
    elif first in ("class", "struct", "union") or (
        first == "typedef" and second in ("class", "struct", "union") and "{" in masked
    ):
        value = _parse_type_declaration(text, segment, masked, leading, context, collector)
    elif first == "using" and second == "namespace":
        logger.debug("Ignoring using-directive at offset %d", segment.start)
        value = None
    elif first in PASS_THROUGH_KEYWORDS:
        value = PassThrough(raw.strip(), first, context.access, leading, offset=segment.start)
    elif not stripped.strip().rstrip(";").strip():
        value = None
    else:
        value = _parse_member(raw, masked, leading, context, segment.start)

    if isinstance(value, PassThrough):
        collector.info(
            f"Unrecognized declaration ({value.reason}) passed through as comment",
            identifier=context.owner,
            offset=byte_offset(text, segment.start),
        )
    return Outcome(value=value, diagnostics=collector.records)


def parse_directive(
    text: str,
    segment: Segment,
    leading: Optional[Comment] = None,
    context: Optional[ParseContext] = None,
) -> Outcome[Optional[Union[Define, Region, PassThrough]]]:
    """Classify one preprocessor directive.

    ``#define NAME value`` becomes a Define and ``#pragma region`` /
    ``#pragma endregion`` a Region. Function-like macros are passed through.
    Valueless defines (include guards, feature switches) and all other
    directives carry nothing for the generated code and yield None.
    """
    context = context or ParseContext()
    collector = DiagnosticCollector(unit=context.unit)
    raw = segment.text.strip()

    region = _REGION_RE.match(raw)
    if region:
        value = Region(
            text=_CONTINUATION_RE.sub(" ", region.group(1)).strip(),
            is_start=region.group(2) is None,
            leading_comment=leading,
            offset=segment.start,
        )
        return Outcome(value=value, diagnostics=collector.records)

    define = _DEFINE_RE.match(raw)
    if define is None:
        logger.debug("Ignoring directive at offset %d: %s", segment.start, raw.split("\n")[0])
        return Outcome(value=None, diagnostics=collector.records)

    name = define.group(1)
    if define.group(2):
        collector.info(
            "Function-like macro passed through as comment",
            identifier=name,
            offset=byte_offset(text, segment.start),
        )
        block = PassThrough(raw, "macro", context.access, leading, offset=segment.start)
        return Outcome(value=block, diagnostics=collector.records)

    rest = define.group(3)
    value_text = _CONTINUATION_RE.sub(" ", mask_comments(rest)).strip()
    if not value_text:
        logger.debug("Ignoring valueless define %s", name)
        return Outcome(value=None, diagnostics=collector.records)
    comments = [rest[start:end].strip() for kind, start, end in iter_lexemes(rest) if kind == COMMENT]
    value = Define(
        name=name,
        value=value_text,
        leading_comment=leading,
        trailing_comment=_joined_comment(comments),
        offset=segment.start,
    )
    return Outcome(value=value, diagnostics=collector.records)


def _adjacent_comment(text: str, pending: List[Segment], start: int) -> Optional[Comment]:
    if pending and not _blank_line_between(text, pending[-1].end, start):
        return Comment(text[pending[0].start:pending[-1].end])
    if pending:
        logger.debug("Dropping detached comment at offset %d", pending[0].start)
    return None


def parse_scope(
    text: str,
    segments: Iterable[Segment],
    context: ParseContext,
    collector: DiagnosticCollector,
) -> ScopeResult:
    """Parse a sequence of segments from one scope.

    Pairs comments with declarations: a comment block directly above a
    declaration (no blank line between) becomes its leading comment; a
    comment starting on the line a declaration ends on becomes that
    declaration's trailing comment. Access labels update the access level
    for the members that follow.

    Region markers are attached to declarations: a ``#pragma region`` to the
    declaration after it, a ``#pragma endregion`` to the one before it.
    Defines are collected in source order.
    """
    result = ScopeResult()
    access = context.access
    pending: List[Segment] = []
    pending_regions: List[Region] = []
    last_item = None
    anchor = None
    last_end = -1

    for segment in segments:
        if segment.kind == COMMENT:
            if segment.truncated:
                collector.warning(
                    "Unterminated comment at end of input",
                    identifier=context.owner,
                    offset=byte_offset(text, segment.start),
                )
            if (
                last_item is not None
                and getattr(last_item, "trailing_comment", True) is None
                and _same_line(text, last_end, segment.start)
            ):
                last_item.trailing_comment = Comment(segment.text)
                continue
            if pending and not _blank_line_between(text, pending[-1].end, segment.start):
                pending.append(segment)
            else:
                pending = [segment]
            last_item = None
            continue

        if segment.kind == DIRECTIVE:
            leading = _adjacent_comment(text, pending, segment.start)
            pending, last_item = [], None
            scoped = ParseContext(owner=context.owner, access=access, unit=context.unit)
            outcome = parse_directive(text, segment, leading, scoped)
            collector.extend(outcome.diagnostics)
            value = outcome.value
            if isinstance(value, Define):
                result.defines.append(value)
            elif isinstance(value, Region):
                if value.is_start or pending_regions or anchor is None:
                    pending_regions.append(value)
                else:
                    anchor.regions_after.append(value)
            elif isinstance(value, PassThrough):
                value.regions_before.extend(pending_regions)
                pending_regions = []
                result.members.append(value)
                anchor = value
            elif leading is not None:
                logger.debug("Dropping comment above directive at offset %d", segment.start)
            continue

        if segment.kind == LABEL:
            access = segment.text.rstrip(":").strip()
            pending, last_item = [], None
            continue

        leading = _adjacent_comment(text, pending, segment.start)
        pending = []

        if segment.unbalanced:
            collector.warning(
                "Unbalanced braces; declaration truncated at end of input",
                identifier=context.owner,
                offset=byte_offset(text, segment.start),
            )
        elif segment.truncated:
            collector.warning(
                "Unterminated declaration, literal or comment at end of input",
                identifier=context.owner,
                offset=byte_offset(text, segment.start),
            )

        scoped = ParseContext(owner=context.owner, access=access, unit=context.unit)
        outcome = parse_declaration(text, segment, leading, scoped)
        collector.extend(outcome.diagnostics)
        value = outcome.value
        last_item = None
        last_end = segment.end

        if value is None:
            continue
        if isinstance(value, Container):
            inner = parse_scope(
                text,
                scan_range(text, value.body_start, value.body_end),
                ParseContext(owner=context.owner, access=access, unit=context.unit),
                collector,
            )
            result.types.extend(inner.types)
            result.members.extend(inner.members)
            result.defines.extend(inner.defines)
            continue
        if isinstance(value, (TypeDeclaration, PassThrough)):
            if isinstance(value, TypeDeclaration):
                result.types.append(value)
            else:
                result.members.append(value)
            value.regions_before.extend(pending_regions)
            pending_regions = []
            last_item = anchor = value
            continue
        if not value:
            continue
        value[0].regions_before.extend(pending_regions)
        pending_regions = []
        result.members.extend(value)
        last_item = anchor = value[-1]

    if pending_regions:
        if anchor is not None:
            anchor.regions_after.extend(pending_regions)
        else:
            for region in pending_regions:
                collector.info(
                    "Region marker with no declaration to attach to; dropped",
                    identifier=context.owner,
                    offset=byte_offset(text, region.offset),
                )
    return result
