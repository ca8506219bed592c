"""
Structural scanner for C++ source text.

Segments raw text into top-level declaration blocks, comments, preprocessor
directives and access labels. The scanner is a small explicit state machine
(brace/paren depth plus literal and comment state); it never builds a syntax
tree and holds no state between calls, so it is safe to use from several
threads at once.
"""

import logging
import re
from dataclasses import dataclass
from typing import Iterator, List, Optional, Tuple

from extraction.config import ACCESS_KEYWORDS, TYPE_KEYWORDS

logger = logging.getLogger(__name__)

DECLARATION = "declaration"
COMMENT = "comment"
DIRECTIVE = "directive"
LABEL = "label"

# Lexeme kinds produced by iter_lexemes
CODE = "code"
LITERAL = "literal"

_TEMPLATE_PREFIX_RE = re.compile(r"^\s*template\s*<")
_FIRST_WORD_RE = re.compile(r"[A-Za-z_]\w*")
_CONTINUED_HEAD_RE = re.compile(r"(?:template\s*<.*>\s*)?(?:typedef|class|struct|union|enum)\b", re.DOTALL)

_INITIALIZER_LIST_RE = re.compile(r"\)[^()]*?(?<!:):(?!:)")

_OPENERS = {"(": ")", "[": "]", "{": "}", "<": ">"}


@dataclass(frozen=True)
class Segment:
    """A non-overlapping range of the scanned text.

    Attributes:
        kind: One of ``declaration``, ``comment``, ``directive``, ``label``.
        start: Start index (inclusive) into the full text.
        end: End index (exclusive) into the full text.
        text: ``full_text[start:end]``.
        truncated: An unterminated literal/comment or a missing terminator
            cut the segment short at the end of input.
        unbalanced: Braces did not balance; the segment runs to the end of
            the scanned range.
    """

    kind: str
    start: int
    end: int
    text: str
    truncated: bool = False
    unbalanced: bool = False


def _skip_literal(text: str, i: int, end: int) -> Tuple[int, bool]:
    """Return the index after the literal starting at ``i`` and whether it closed."""
    quote = text[i]
    j = i + 1
    while j < end:
        c = text[j]
        if c == "\\":
            j += 2
            continue
        if c == quote:
            return j + 1, True
        j += 1
    return end, False


def _skip_block_comment(text: str, i: int, end: int) -> Tuple[int, bool]:
    close = text.find("*/", i + 2, end)
    if close == -1:
        return end, False
    return close + 2, True


def _line_end(text: str, i: int, end: int) -> int:
    j = text.find("\n", i, end)
    return end if j == -1 else j


def _directive_end(text: str, i: int, end: int) -> int:
    """End of a preprocessor directive, following backslash continuations."""
    j = _line_end(text, i, end)
    while j < end and text[i:j].rstrip("\r").endswith("\\"):
        j = _line_end(text, j + 1, end)
    return j


def _at_line_start(text: str, i: int) -> bool:
    line_start = text.rfind("\n", 0, i) + 1
    return text[line_start:i].strip() == ""


def iter_lexemes(text: str, start: int = 0, end: Optional[int] = None) -> Iterator[Tuple[str, int, int]]:
    """Split text into ``(kind, start, end)`` runs of code, comments and literals."""
    if end is None:
        end = len(text)
    i = start
    run_start = start
    while i < end:
        ch = text[i]
        nxt = text[i + 1] if i + 1 < end else ""
        if ch == "/" and nxt in ("/", "*"):
            if run_start < i:
                yield CODE, run_start, i
            if nxt == "/":
                close = _line_end(text, i, end)
            else:
                close, _ = _skip_block_comment(text, i, end)
            yield COMMENT, i, close
            i = run_start = close
            continue
        if ch in ("\"", "'"):
            if run_start < i:
                yield CODE, run_start, i
            close, _ = _skip_literal(text, i, end)
            yield LITERAL, i, close
            i = run_start = close
            continue
        i += 1
    if run_start < end:
        yield CODE, run_start, end


def mask_comments(text: str, mask_literals: bool = False) -> str:
    """Blank out comments (and optionally literal contents), keeping offsets.

    Newlines are preserved so line structure survives masking. Masked
    literals keep their quote characters.
    """
    out: List[str] = []
    for kind, start, end in iter_lexemes(text):
        chunk = text[start:end]
        if kind == COMMENT or (kind == LITERAL and mask_literals):
            blanked = "".join(c if c == "\n" else " " for c in chunk)
            if kind == LITERAL:
                blanked = chunk[0] + blanked[1:-1] + chunk[-1] if len(chunk) > 1 else chunk
            out.append(blanked)
        else:
            out.append(chunk)
    return "".join(out)


def find_matching(masked: str, open_index: int) -> int:
    """Index of the bracket closing the one at ``open_index``, or -1.

    ``masked`` must already have comments and literals blanked out.
    """
    opener = masked[open_index]
    closer = _OPENERS[opener]
    depth = 0
    for j in range(open_index, len(masked)):
        c = masked[j]
        if c == opener:
            depth += 1
        elif c == closer:
            depth -= 1
            if depth == 0:
                return j
    return -1


def split_top_level(text: str, separator: str = ",", angle: bool = True) -> List[str]:
    """Split ``text`` at ``separator`` occurrences outside any brackets.

    Brackets inside comments and literals are ignored; the returned pieces
    are slices of the original text.
    """
    masked = mask_comments(text, mask_literals=True)
    pieces: List[str] = []
    depth = 0
    last = 0
    openers = "([{<" if angle else "([{"
    closers = ")]}>" if angle else ")]}"
    for idx, c in enumerate(masked):
        if c in openers:
            depth += 1
        elif c in closers:
            depth = max(depth - 1, 0)
        elif c == separator and depth == 0:
            pieces.append(text[last:idx])
            last = idx + 1
    pieces.append(text[last:])
    return pieces


def _has_top_level_assignment(masked_head: str) -> bool:
    depth = 0
    for idx, c in enumerate(masked_head):
        if c in "([<":
            depth += 1
        elif c in ")]>":
            depth = max(depth - 1, 0)
        elif c == "=" and depth == 0:
            prev = masked_head[idx - 1] if idx else ""
            nxt = masked_head[idx + 1] if idx + 1 < len(masked_head) else ""
            if masked_head[:idx].rstrip().endswith("operator"):
                continue
            if prev not in "=!<>" and nxt != "=":
                return True
    return False


def _head_needs_terminator(head: str) -> bool:
    """Whether a block opened after ``head`` runs on to a terminating ``;``.

    Type definitions and aggregate initializers do; function bodies,
    namespaces and ``extern "C"`` blocks end at their closing brace.
    """
    masked = mask_comments(head, mask_literals=True)
    stripped = masked.strip()
    if _TEMPLATE_PREFIX_RE.match(stripped):
        close = find_matching(stripped, stripped.index("<"))
        stripped = stripped[close + 1:].strip() if close != -1 else stripped
    first = _FIRST_WORD_RE.match(stripped)
    if first and first.group(0) in TYPE_KEYWORDS:
        return True
    return _has_top_level_assignment(stripped)


def _is_brace_initializer(text: str, decl_start: int, i: int) -> bool:
    """Whether the `{` at `i` is a member brace-initializer (`: m_items{1, 2}`)."""
    head = mask_comments(text[decl_start:i], mask_literals=True).rstrip()
    if not head or not (head[-1].isalnum() or head[-1] == "_"):
        return False
    return _INITIALIZER_LIST_RE.search(head) is not None


def _skip_braced(text: str, i: int, end: int) -> int:
    """Index after the `}` matching the `{` at `i`, skipping literals and comments."""
    depth = 0
    j = i
    while j < end:
        c = text[j]
        if c in ("\"", "'"):
            j, _ = _skip_literal(text, j, end)
            continue
        if c == "/" and text[j + 1:j + 2] == "/":
            j = _line_end(text, j, end)
            continue
        if c == "/" and text[j + 1:j + 2] == "*":
            j, _ = _skip_block_comment(text, j, end)
            continue
        if c == "{":
            depth += 1
        elif c == "}":
            depth -= 1
            if depth == 0:
                return j + 1
        j += 1
    return end


def scan(text: str) -> Iterator[Segment]:
    """Lazily segment the whole text. See ``scan_range``."""
    return scan_range(text, 0, len(text))


def scan_range(text: str, start: int, end: int) -> Iterator[Segment]:
    """Lazily segment ``text[start:end]`` into top-level segments.

    Offsets in the yielded segments refer to the full ``text`` so nested
    bodies can be re-segmented by calling this again on their inner range.
    """
    i = start
    decl_start: Optional[int] = None
    depth = 0
    paren = 0
    needs_terminator: Optional[bool] = None
    truncated = False
    unbalanced = False

    def _declaration(stop: int) -> Segment:
        return Segment(
            kind=DECLARATION,
            start=decl_start,
            end=stop,
            text=text[decl_start:stop],
            truncated=truncated,
            unbalanced=unbalanced,
        )

    while i < end:
        ch = text[i]
        nxt = text[i + 1] if i + 1 < end else ""

        if ch == "/" and nxt == "/":
            close = _line_end(text, i, end)
            if decl_start is None:
                yield Segment(COMMENT, i, close, text[i:close])
            i = close
            continue

        if ch == "/" and nxt == "*":
            close, closed = _skip_block_comment(text, i, end)
            if decl_start is None:
                yield Segment(COMMENT, i, close, text[i:close], truncated=not closed)
            elif not closed:
                truncated = True
            i = close
            continue

        if ch in ("\"", "'"):
            if decl_start is None:
                decl_start = i
            close, closed = _skip_literal(text, i, end)
            if not closed:
                truncated = True
            i = close
            continue

        if ch.isspace():
            i += 1
            continue

        if decl_start is None:
            if ch == "#" and _at_line_start(text, i):
                close = _directive_end(text, i, end)
                yield Segment(DIRECTIVE, i, close, text[i:close].rstrip())
                i = close
                continue
            decl_start = i

        if ch == "(":
            paren += 1
        elif ch == ")":
            paren = max(paren - 1, 0)
        elif ch == "{":
            if depth == 0 and not needs_terminator and _is_brace_initializer(text, decl_start, i):
                i = _skip_braced(text, i, end)
                continue
            if depth == 0 and needs_terminator is None:
                needs_terminator = _head_needs_terminator(text[decl_start:i])
            depth += 1
        elif ch == "}":
            if depth == 0:
                unbalanced = True
            else:
                depth -= 1
                if depth == 0 and not needs_terminator:
                    stop = i + 1
                    k = stop
                    while k < end and text[k] in " \t":
                        k += 1
                    if k < end and text[k] == ";":
                        stop = k + 1
                    yield _declaration(stop)
                    decl_start, needs_terminator = None, None
                    paren, truncated, unbalanced = 0, False, False
                    i = stop
                    continue
        elif ch == ";" and depth == 0 and paren == 0:
            yield _declaration(i + 1)
            decl_start, needs_terminator = None, None
            truncated, unbalanced = False, False
        elif ch == ":" and depth == 0 and paren == 0 and nxt != ":":
            prev = text[i - 1] if i > start else ""
            if prev != ":" and text[decl_start:i].strip() in ACCESS_KEYWORDS:
                yield Segment(LABEL, decl_start, i + 1, text[decl_start:i + 1])
                decl_start, needs_terminator = None, None
                truncated, unbalanced = False, False
        i += 1

    if decl_start is not None:
        pending = text[decl_start:end].rstrip()
        if pending:
            if depth > 0:
                unbalanced = True
            else:
                truncated = True
            logger.debug(
                "Scanner reached end of range with open declaration at %d "
                "(depth=%d)", decl_start, depth,
            )
            yield _declaration(decl_start + len(pending))


def byte_offset(text: str, index: int) -> int:
    """Convert a character index into a UTF-8 byte offset."""
    return len(text[:index].encode("utf-8"))


def count_top_level_constructs(text: str) -> int:
    """Count depth-zero ``;`` / ``{...}`` terminated constructs.

    An independent counter used to cross-check the scanner. It works on the
    masked text and skips directive lines. A ``{...}`` block whose head
    starts with a type keyword or holds an ``=`` runs on to its ``;``; any
    other block is one construct together with a ``;`` directly after it.
    """
    masked = mask_comments(text, mask_literals=True)
    count = 0
    depth = 0
    paren = 0
    head_start: Optional[int] = None
    continues = False
    just_closed = False
    i = 0
    while i < len(masked):
        c = masked[i]
        if c == "#" and depth == 0 and head_start is None and _at_line_start(masked, i):
            i = _directive_end(masked, i, len(masked))
            continue
        if c.isspace():
            i += 1
            continue
        if depth == 0 and head_start is None and not (c == ";" and just_closed):
            head_start = i
        if c == ";" and depth == 0 and paren == 0:
            if not just_closed:
                count += 1
            head_start = None
        elif c == "{":
            if depth == 0:
                head = masked[head_start:i].strip() if head_start is not None else ""
                continues = bool(_CONTINUED_HEAD_RE.match(head)) or "=" in head
            depth += 1
        elif c == "}" and depth > 0:
            depth -= 1
            if depth == 0 and not continues:
                count += 1
                head_start = None
                just_closed = True
                i += 1
                continue
        elif c == "(":
            paren += 1
        elif c == ")":
            paren = max(paren - 1, 0)
        just_closed = False
        i += 1
    return count
