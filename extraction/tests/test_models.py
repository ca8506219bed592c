"""Unit tests for the symbol model."""

import unittest

from extraction.models import Comment, Method, Parameter, Region, SourceUnit, TypeDeclaration, Field, normalize_type


class TestNormalizeType(unittest.TestCase):
    def test_decoration_spacing(self):
        for spelling in ("const CString &", "const CString&", "const  CString &", " const CString& "):
            self.assertEqual(normalize_type(spelling), "const CString&")

    def test_scopes_and_templates(self):
        self.assertEqual(normalize_type("std :: vector < int , CString * >"), "std::vector<int, CString*>")


class TestComment(unittest.TestCase):
    def test_line_comment_text(self):
        self.assertEqual(Comment("//Res/Rate-Reporting").text, "Res/Rate-Reporting")
        self.assertTrue(Comment("// x").is_line_comment)

    def test_block_comment_text_and_lines(self):
        comment = Comment("/* first\n     * second\n     */")
        self.assertEqual(comment.text, "first\nsecond")
        self.assertEqual(comment.lines(), ["/* first", " * second", " */"])
        self.assertFalse(comment.is_line_comment)

    def test_inline_spelling(self):
        self.assertEqual(Comment("// keeps */ running").inline(), "/* keeps * / running */")
        self.assertEqual(Comment("/* a\n   b */").inline(), "/* a b */")
        self.assertEqual(Comment("//").inline(), "/* */")


class TestMethod(unittest.TestCase):
    def test_signature_round_trip_text(self):
        method = Method(
            name="MethodOne",
            return_type="void",
            parameters=[Parameter("const CString&", "cParam1"), Parameter("int", "n", "0")],
            is_virtual=True,
            is_pure=True,
        )
        self.assertEqual(method.signature(), "virtual void MethodOne(const CString& cParam1, int n = 0) = 0")
        self.assertEqual(method.qualified_signature("ISample"), "ISample::MethodOne(const CString&, int)")

    def test_constructor_and_destructor(self):
        ctor = Method(name="CSample")
        dtor = Method(name="CSample", is_destructor=True)
        self.assertTrue(ctor.is_constructor_of("CSample"))
        self.assertFalse(dtor.is_constructor_of("CSample"))
        self.assertEqual(dtor.display_name(), "~CSample")
        self.assertEqual(dtor.parameter_types(), ())

    def test_has_body(self):
        self.assertFalse(Method(name="f").has_body)
        self.assertTrue(Method(name="f", body="").has_body)


class TestParameter(unittest.TestCase):
    def test_flags(self):
        self.assertTrue(Parameter("const CString&").is_const)
        self.assertTrue(Parameter("CString*").is_pointer)
        self.assertTrue(Parameter("bool&").is_reference)
        self.assertEqual(Parameter("int").signature(), "int")

    def test_signature_with_comments(self):
        parameter = Parameter("CAgrMT*", "pmtTable", leading_comment=Comment("/* agrint &old,*/"))
        self.assertEqual(parameter.signature(), "CAgrMT* pmtTable")
        self.assertEqual(parameter.signature(with_comments=True), "/* agrint &old,*/ CAgrMT* pmtTable")


class TestRegion(unittest.TestCase):
    def test_marker(self):
        self.assertEqual(Region("region My Variables", is_start=True).marker, "//#region My Variables")


class TestContainers(unittest.TestCase):
    def test_type_views(self):
        declaration = TypeDeclaration(
            name="CSample",
            members=[Field("m_a", "int"), Method("Run", "void"), Field("m_b", "bool")],
        )
        self.assertEqual([f.name for f in declaration.fields], ["m_a", "m_b"])
        self.assertEqual([m.name for m in declaration.methods], ["Run"])
        self.assertIsNotNone(declaration.find_field("m_b"))
        self.assertIsNone(declaration.find_field("m_c"))

    def test_unit_stem(self):
        self.assertEqual(SourceUnit(name="src/legacy/CSample.h").stem, "CSample")
        self.assertEqual(SourceUnit(name="src\\ISample.hpp").stem, "ISample")
        unit = SourceUnit(name="a.h", types=[TypeDeclaration(name="A")])
        self.assertIsNotNone(unit.find_type("A"))


if __name__ == "__main__":
    unittest.main()
