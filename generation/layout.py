"""File layout for the units generated from one header."""

import logging
from typing import Iterable, List, Optional, Sequence

from core.converter_config import ConverterOptions
from extraction.models import PassThrough
from generation.generator import INDENT, EmissionUnit, pass_through_lines

logger = logging.getLogger(__name__)


def namespace_for(stem: str, options: Optional[ConverterOptions] = None) -> str:
    options = options or ConverterOptions()
    return f"{options.namespace_prefix}{stem}"


def _indented(text: str) -> List[str]:
    return [INDENT + line if line else "" for line in text.rstrip("\n").split("\n")]


def render_file(
    stem: str,
    units: Sequence[EmissionUnit],
    pass_through: Iterable[PassThrough] = (),
    options: Optional[ConverterOptions] = None,
) -> str:
    """Wrap the units of one header in its namespace.

    Args:
        stem: Header base name; the namespace is ``<prefix><stem>``.
        units: Emission units in output order.
        pass_through: Top-level blocks of the header that were not
            converted; appended as commented passages.
        options: Converter options (namespace prefix, using directives).

    Returns:
        The complete file text, ending with a newline.
    """
    options = options or ConverterOptions()
    lines: List[str] = []
    for directive in options.using_directives:
        lines.append(f"using {directive};")
    if lines:
        lines.append("")

    lines.append(f"namespace {namespace_for(stem, options)}")
    lines.append("{")
    sections = [_indented(unit.text) for unit in units]
    sections.extend(pass_through_lines(block, options, level=1) for block in pass_through)
    for index, section in enumerate(sections):
        if index:
            lines.append("")
        lines.extend(section)
    lines.append("}")
    logger.debug("Rendered %s with %d sections", stem, len(sections))
    return "\n".join(lines) + "\n"
