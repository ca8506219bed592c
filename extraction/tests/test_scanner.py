"""Unit tests for the structural scanner."""

import unittest

from extraction.scanner import (
    CODE,
    COMMENT,
    DECLARATION,
    DIRECTIVE,
    LABEL,
    LITERAL,
    byte_offset,
    count_top_level_constructs,
    find_matching,
    iter_lexemes,
    mask_comments,
    scan,
    scan_range,
    split_top_level,
)


def _kinds(text):
    return [segment.kind for segment in scan(text)]


class TestScan(unittest.TestCase):
    def test_segments_cover_directives_comments_and_declarations(self):
        text = "#pragma once\n// note\nclass A\n{\n};\nint x;\n"
        segments = list(scan(text))
        self.assertEqual([s.kind for s in segments], [DIRECTIVE, COMMENT, DECLARATION, DECLARATION])
        self.assertEqual(segments[0].text, "#pragma once")
        self.assertEqual(segments[2].text, "class A\n{\n};")
        self.assertEqual(segments[3].text, "int x;")

    def test_segments_do_not_overlap(self):
        text = "class A { int a; };\nvoid f() { g(); }\nint b = 3;\n"
        segments = list(scan(text))
        for left, right in zip(segments, segments[1:]):
            self.assertLessEqual(left.end, right.start)
        for segment in segments:
            self.assertEqual(text[segment.start:segment.end], segment.text)

    def test_function_body_ends_at_brace(self):
        text = "void CFoo::Bar()\n{\n    if (x) { y(); }\n}\nint z;"
        segments = list(scan(text))
        self.assertEqual(len(segments), 2)
        self.assertTrue(segments[0].text.endswith("}"))

    def test_typedef_struct_runs_to_semicolon(self):
        text = "typedef struct\n{\n    bool b;\n} MyStruct;\n"
        segments = list(scan(text))
        self.assertEqual(len(segments), 1)
        self.assertTrue(segments[0].text.endswith("MyStruct;"))

    def test_aggregate_initializer_runs_to_semicolon(self):
        text = 'CString CStatic::Names[] = { _T("a"), _T("b") };\nint y;'
        segments = list(scan(text))
        self.assertEqual(len(segments), 2)
        self.assertTrue(segments[0].text.endswith("};"))

    def test_brace_initializer_does_not_end_constructor(self):
        text = "CSample::CSample()\n    : m_items{1, 2}, m_value(0)\n{\n    Init();\n}\nint z;"
        segments = list(scan(text))
        self.assertEqual(len(segments), 2)
        self.assertIn("Init();", segments[0].text)

    def test_braces_in_literals_and_comments_are_ignored(self):
        text = 'void f() { s = "}"; /* } */ c = \'{\'; }\nint after;'
        segments = list(scan(text))
        self.assertEqual([s.kind for s in segments], [DECLARATION, DECLARATION])
        self.assertEqual(segments[1].text, "int after;")

    def test_comment_inside_declaration_is_not_a_segment(self):
        text = "int a; // trailing\nvoid f(int x /* unused */);"
        self.assertEqual(_kinds(text), [DECLARATION, COMMENT, DECLARATION])

    def test_access_label(self):
        text = "public:\n    int a;\nprivate :\n    int b;"
        segments = list(scan(text))
        self.assertEqual([s.kind for s in segments], [LABEL, DECLARATION, LABEL, DECLARATION])
        self.assertEqual(segments[0].text, "public:")

    def test_qualified_name_is_not_a_label(self):
        self.assertEqual(_kinds("CFoo::m_x = 1;"), [DECLARATION])

    def test_directive_with_continuation(self):
        text = "#define X(a) \\\n    (a + 1)\nint y;"
        segments = list(scan(text))
        self.assertEqual(segments[0].kind, DIRECTIVE)
        self.assertIn("(a + 1)", segments[0].text)
        self.assertEqual(segments[1].text, "int y;")

    def test_unbalanced_braces_flagged(self):
        segments = list(scan("class A {\n    void f() {\n"))
        self.assertEqual(len(segments), 1)
        self.assertTrue(segments[0].unbalanced)

    def test_unterminated_comment_flagged(self):
        segments = list(scan("int a;\n/* never closed"))
        self.assertEqual(segments[-1].kind, COMMENT)
        self.assertTrue(segments[-1].truncated)

    def test_missing_terminator_flagged(self):
        segments = list(scan("int a"))
        self.assertTrue(segments[0].truncated)

    def test_empty_input(self):
        self.assertEqual(list(scan("")), [])
        self.assertEqual(list(scan("   \n\n")), [])

    def test_scan_range_uses_full_text_offsets(self):
        text = "class A\n{\n    int a;\n};"
        open_idx = text.index("{")
        close_idx = text.rindex("}")
        inner = list(scan_range(text, open_idx + 1, close_idx))
        self.assertEqual(len(inner), 1)
        self.assertEqual(inner[0].text, "int a;")
        self.assertEqual(text[inner[0].start:inner[0].end], "int a;")


class TestLexemes(unittest.TestCase):
    def test_iter_lexemes(self):
        text = 'a = "x"; // c'
        kinds = [kind for kind, _, _ in iter_lexemes(text)]
        self.assertEqual(kinds, [CODE, LITERAL, CODE, COMMENT])

    def test_mask_keeps_offsets_and_newlines(self):
        text = 'a /* b\n c */ "lit{";'
        masked = mask_comments(text, mask_literals=True)
        self.assertEqual(len(masked), len(text))
        self.assertEqual(masked.count("\n"), 1)
        self.assertNotIn("{", masked)
        self.assertIn('"    "', masked)

    def test_find_matching(self):
        masked = "f(a, (b), c) {"
        self.assertEqual(find_matching(masked, 1), 11)
        self.assertEqual(find_matching("(()", 0), -1)

    def test_split_top_level(self):
        pieces = split_top_level('int a, std::map<int, int> b, f(1, 2), "x,y"')
        self.assertEqual([p.strip() for p in pieces], ["int a", "std::map<int, int> b", "f(1, 2)", '"x,y"'])

    def test_byte_offset(self):
        self.assertEqual(byte_offset("é;", 1), 2)


class TestConstructCount(unittest.TestCase):
    """The scanner and an independent counter agree on construct counts."""

    SAMPLES = [
        "int a;\nint b;\n",
        "class A\n{\npublic:\n    void f() { g(); }\n};\n",
        "void CFoo::Bar()\n{\n    if (x) { y(); }\n}\nint z;\n",
        "typedef struct\n{\n    int a;\n} S;\n",
        "#include <x.h>\n// note\nnamespace n { int a; }\nextern \"C\" { void f(); }\n",
        'CString CS::Names[] = { _T("a}"), _T("b") };\n',
        "enum E { A, B };\nstruct P { int x; } p;\n",
    ]

    def test_counts_agree(self):
        for sample in self.SAMPLES:
            with self.subTest(sample=sample):
                declarations = [s for s in scan(sample) if s.kind == DECLARATION]
                self.assertEqual(len(declarations), count_top_level_constructs(sample))


if __name__ == "__main__":
    unittest.main()
