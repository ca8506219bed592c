"""Unit tests for type, parameter and body translation."""

import unittest

from extraction.models import Comment, Parameter
from generation.type_mapping import (
    parameter_modifier,
    reindent_lines,
    translate_body,
    translate_define,
    translate_parameter,
    translate_parameters,
    translate_type,
    translate_value,
)


class TestTranslateType(unittest.TestCase):
    def test_decoration_is_dropped(self):
        self.assertEqual(translate_type("const CString&"), "CString")
        self.assertEqual(translate_type("CAgrMT*"), "CAgrMT")
        self.assertEqual(translate_type("bool"), "bool")
        self.assertEqual(translate_type(""), "void")

    def test_builtin_and_user_mapping(self):
        self.assertEqual(translate_type("unsigned int"), "uint")
        self.assertEqual(translate_type("const char*"), "string")
        self.assertEqual(translate_type("CString", {"CString": "string"}), "string")
        self.assertEqual(translate_type("const CString &", {"CString": "string"}), "string")

    def test_scopes_and_templates(self):
        self.assertEqual(translate_type("legacy::CThing*"), "legacy.CThing")
        self.assertEqual(translate_type("std::vector<int>"), "std::vector<int>")


class TestParameters(unittest.TestCase):
    def test_modifiers(self):
        self.assertEqual(parameter_modifier(Parameter("CString*", "p")), "out")
        self.assertEqual(parameter_modifier(Parameter("int&", "r")), "ref")
        self.assertEqual(parameter_modifier(Parameter("const CString&", "c")), "")
        self.assertEqual(parameter_modifier(Parameter("const char*", "s")), "")

    def test_translate_parameters(self):
        params = [
            Parameter("const CString&", "cParam1"),
            Parameter("const bool&", "bParam2"),
            Parameter("CString*", "pcParam3"),
        ]
        self.assertEqual(
            translate_parameters(params),
            "CString cParam1, bool bParam2, out CString pcParam3",
        )

    def test_unnamed_defaults_and_varargs(self):
        self.assertEqual(translate_parameter(Parameter("int"), index=2), "int arg2")
        self.assertEqual(translate_parameter(Parameter("BOOL", "b", "TRUE")), "bool b = true")
        self.assertEqual(translate_parameter(Parameter("int*", "p", "NULL")), "out int p")
        self.assertEqual(translate_parameter(Parameter("...")), "params object[] args")

    def test_comments_stay_inline(self):
        params = [
            Parameter("const CString&", "cResTab"),
            Parameter("CAgrMT*", "pmtTable", leading_comment=Comment("/* agrint &oldParameter,*/")),
            Parameter("int", "n", trailing_comment=Comment("// count")),
        ]
        self.assertEqual(
            translate_parameters(params),
            "CString cResTab, /* agrint &oldParameter,*/ out CAgrMT pmtTable, int n /* count */",
        )
        self.assertEqual(
            translate_parameters(params, with_comments=False),
            "CString cResTab, out CAgrMT pmtTable, int n",
        )


class TestTranslateDefine(unittest.TestCase):
    def test_literals(self):
        self.assertEqual(translate_define("1"), ("int", "1"))
        self.assertEqual(translate_define("0x1F"), ("int", "0x1F"))
        self.assertEqual(translate_define("10L"), ("long", "10L"))
        self.assertEqual(translate_define("2.5"), ("double", "2.5"))
        self.assertEqual(translate_define("1.5f"), ("float", "1.5f"))
        self.assertEqual(translate_define("'x'"), ("char", "'x'"))
        self.assertEqual(translate_define('_T("abc")'), ("string", '"abc"'))
        self.assertEqual(translate_define("(42)"), ("int", "42"))

    def test_booleans(self):
        self.assertEqual(translate_define("TRUE"), ("bool", "true"))
        self.assertEqual(translate_define("NOTOK"), ("bool", "false"))

    def test_expressions_are_not_translated(self):
        self.assertIsNone(translate_define("(A + B)"))
        self.assertIsNone(translate_define("OTHER_DEFINE"))


class TestTranslateBody(unittest.TestCase):
    def test_substitutions_outside_literals(self):
        body = 'p->Run(NULL); CSample::Count(); s = _T("a->b::NULL"); // p->x'
        self.assertEqual(
            translate_body(body),
            'p.Run(null); CSample.Count(); s = "a->b::NULL"; // p->x',
        )

    def test_booleans(self):
        self.assertEqual(translate_body("return TRUE || FALSE;"), "return true || false;")

    def test_translate_value_flattens_lines(self):
        self.assertEqual(translate_value('{ _T("a"),\n  _T("b") }'), '{ "a",   "b" }')


class TestReindent(unittest.TestCase):
    def test_common_indent_removed(self):
        body = "\n        m_value1 = 0;\n\n        if (x)\n            y();\n"
        self.assertEqual(
            reindent_lines(body, "    ", skip_first=True),
            ["    m_value1 = 0;", "", "    if (x)", "        y();"],
        )

    def test_tabs_expand(self):
        self.assertEqual(reindent_lines("\ta;\n\t\tb;", ""), ["a;", "    b;"])


if __name__ == "__main__":
    unittest.main()
