"""
Unit tests for parser.py

Tests tree-sitter parser initialization and the syntax cross-check.
"""

import unittest

from extraction.parser import count_error_nodes, create_parser, parse_bytes, syntax_error_count


class TestParserInitialization(unittest.TestCase):
    """Test parser creation and initialization."""

    def test_create_parser(self):
        """Test that create_parser returns a parser with a language set."""
        parser = create_parser()
        self.assertIsNotNone(parser)
        self.assertIsNotNone(parser.language)


class TestParseBytes(unittest.TestCase):
    """Test parsing raw bytes of C++ code."""

    def test_parse_class(self):
        source = b"""
        class Foo {
        public:
            void bar();
        };
        """
        tree = parse_bytes(source)
        self.assertEqual(tree.root_node.type, "translation_unit")
        self.assertFalse(tree.root_node.has_error)
        self.assertEqual(count_error_nodes(tree), 0)

    def test_parse_invalid_type(self):
        """Test that non-bytes input raises TypeError."""
        with self.assertRaises(TypeError):
            parse_bytes("int x;")


class TestSyntaxErrorCount(unittest.TestCase):
    def test_clean_source(self):
        self.assertEqual(syntax_error_count("int CFoo::Get() const { return m_x; }"), 0)

    def test_broken_source(self):
        self.assertGreater(syntax_error_count("class Foo { void bar( ; };"), 0)


if __name__ == "__main__":
    unittest.main()
