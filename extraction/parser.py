"""
Tree-sitter parser initialization and syntax checking.

The converter's own scanner does the structural work; tree-sitter is used as
an independent syntax check that reports how many error nodes a full C++
grammar finds in a unit.
"""

import logging
import tree_sitter_cpp as tscpp
from tree_sitter import Language, Node, Parser, Tree

# Configure logging
logger = logging.getLogger(__name__)

# Module-level language constant
CPP_LANGUAGE = Language(tscpp.language())


def create_parser() -> Parser:
    """Create and configure a tree-sitter parser for C++.

    Returns:
        A Parser instance configured with the C++ language.

    Example:
        >>> parser = create_parser()
        >>> tree = parser.parse(b"int main() { return 0; }")
    """
    parser = Parser(CPP_LANGUAGE)
    logger.debug("Created tree-sitter C++ parser")
    return parser


def parse_bytes(source: bytes) -> Tree:
    """Parse raw bytes of C++ source code.

    Args:
        source: UTF-8 encoded bytes of C++ source code.

    Returns:
        A Tree object representing the parsed AST.

    Raises:
        TypeError: If source is not bytes.
    """
    if not isinstance(source, bytes):
        raise TypeError(f"Source must be bytes, got {type(source).__name__}")

    tree = create_parser().parse(source)
    logger.debug("Parsed %d bytes of C++ code", len(source))
    return tree


def count_error_nodes(tree: Tree) -> int:
    """Count ERROR and MISSING nodes in a parsed tree."""
    count = 0
    stack = [tree.root_node]
    while stack:
        node: Node = stack.pop()
        if node.type == "ERROR" or node.is_missing:
            count += 1
        if node.has_error:
            stack.extend(node.children)
    return count


def syntax_error_count(text: str) -> int:
    """Parse ``text`` with tree-sitter and return its error node count."""
    tree = parse_bytes(text.encode("utf-8"))
    if not tree.root_node.has_error:
        return 0
    return count_error_nodes(tree)
