"""Unit tests for the cross-file merger."""

import unittest

from core.converter_config import ConverterOptions
from core.diagnostics import INFO, WARNING
from extraction.config import IMPLEMENTATION_ROLE
from extraction.extractor import parse_source_unit
from merging.merger import (
    PURE,
    RESOLVED,
    UNRESOLVED,
    factory_methods,
    is_interface,
    is_static_class,
    link_factory_bodies,
    merge_class,
    report_unresolved,
)

INTERFACE = """
class ISample
{
public:
    virtual ~ISample(){};
    static ISample* GetInstance();
    virtual bool MethodTwo() = 0;
};
"""

CLASS = """
class CSample : public ISample
{
public:
    // Header comment
    CSample();
    void Method(const CString& name, int count);
    void Method(int count);
    bool MethodTwo();
    int Inline() const { return 1; }

private:
    int m_value1;
    CString cValue1;
    static agrint m_iIndex;
};
"""

IMPLEMENTATION = """
agrint CSample::m_iIndex = -1;

// Implementation comment
CSample::CSample()
    : cValue1(_T("ABC")), m_value1(0)
{
}

void CSample::Method(const CString& cName, int nCount)
{
    Use(cName, nCount);
}

bool CSample::MethodTwo()
{
    return true;
}

void CSample::Unknown()
{
}

ISample* CSample::GetInstance()
{
    return new CSample();
}
"""


def declaration_of(text, name):
    return parse_source_unit("t.h", text).value.find_type(name)


def definitions_of(text):
    return parse_source_unit("t.cpp", text, role=IMPLEMENTATION_ROLE).value.members


class TestClassification(unittest.TestCase):
    def test_interface(self):
        self.assertTrue(is_interface(declaration_of(INTERFACE, "ISample")))
        self.assertFalse(is_interface(declaration_of(CLASS, "CSample")))

    def test_struct_is_never_an_interface(self):
        self.assertFalse(is_interface(declaration_of("struct S\n{\n    virtual void f() = 0;\n};", "S")))

    def test_static_class(self):
        self.assertTrue(is_static_class(declaration_of("class C\n{\npublic:\n    static int s_a;\n    static void Run();\n};", "C")))
        self.assertFalse(is_static_class(declaration_of(CLASS, "CSample")))

    def test_factory_methods(self):
        options = ConverterOptions()
        factories = factory_methods(declaration_of(INTERFACE, "ISample"), options)
        self.assertEqual([m.name for m in factories], ["GetInstance"])
        renamed = ConverterOptions(factory_method_names=("Create",))
        self.assertEqual(factory_methods(declaration_of(INTERFACE, "ISample"), renamed), [])


class TestMergeClass(unittest.TestCase):
    def setUp(self):
        self.declaration = declaration_of(CLASS, "CSample")
        self.outcome = merge_class(self.declaration, definitions_of(IMPLEMENTATION), unit="CSample.h")
        self.merged = self.outcome.value

    def _binding(self, name, arity=None):
        for binding in self.merged.bindings:
            if binding.method.name == name and (arity is None or len(binding.method.parameters) == arity):
                return binding
        raise AssertionError(name)

    def test_bodies_attached_by_signature(self):
        self.assertEqual(self._binding("Method", 2).status, RESOLVED)
        self.assertIn("Use(cName, nCount);", self._binding("Method", 2).body)
        self.assertEqual(self._binding("Method", 1).status, UNRESOLVED)
        self.assertEqual(self._binding("MethodTwo").status, RESOLVED)
        self.assertEqual(self._binding("Inline").status, RESOLVED)

    def test_parameter_names_come_from_implementation(self):
        names = [p.name for p in self._binding("Method", 2).parameters]
        self.assertEqual(names, ["cName", "nCount"])

    def test_comments_from_both_files(self):
        comments = [c.text for c in self._binding("CSample").leading_comments]
        self.assertEqual(comments, ["Header comment", "Implementation comment"])

    def test_static_definition_becomes_default(self):
        field = self.declaration.find_field("m_iIndex")
        self.assertEqual(self.merged.field_value(field), "-1")

    def test_unmatched_definitions_are_orphans(self):
        self.assertEqual([o.name for o in self.merged.orphans], ["Unknown", "GetInstance"])

    def test_initializer_order_warning(self):
        warnings = [d for d in self.outcome.diagnostics if d.severity == WARNING]
        self.assertEqual(len(warnings), 1)
        self.assertIn("initializer order", warnings[0].message)
        self.assertEqual(warnings[0].identifier, "CSample::CSample()")

    def test_header_declaration_untouched(self):
        self.assertIsNone(self.declaration.methods[0].body)

    def test_duplicate_body_warns(self):
        twice = definitions_of("bool CSample::MethodTwo()\n{\n    return true;\n}\nbool CSample::MethodTwo()\n{\n    return false;\n}")
        outcome = merge_class(self.declaration, twice)
        self.assertEqual(self._first_body(outcome.value, "MethodTwo").strip(), "return true;")
        self.assertEqual([d.severity for d in outcome.diagnostics], [WARNING])

    @staticmethod
    def _first_body(merged, name):
        for binding in merged.bindings:
            if binding.method.name == name:
                return binding.body
        return None


class TestOverloadMatching(unittest.TestCase):
    HEADER = "class C\n{\npublic:\n    void Set(const CString& value);\n};"
    IMPL = "void C::Set(CString value)\n{\n}"

    def test_strict_matching_rejects_decoration_difference(self):
        merged = merge_class(declaration_of(self.HEADER, "C"), definitions_of(self.IMPL)).value
        self.assertEqual(merged.bindings[0].status, UNRESOLVED)
        self.assertEqual(len(merged.orphans), 1)

    def test_loose_matching_is_reported(self):
        options = ConverterOptions(strict_overload_matching=False)
        outcome = merge_class(declaration_of(self.HEADER, "C"), definitions_of(self.IMPL), options=options)
        self.assertEqual(outcome.value.bindings[0].status, RESOLVED)
        self.assertEqual(outcome.diagnostics[0].severity, INFO)


class TestNestedMerge(unittest.TestCase):
    def test_nested_definitions(self):
        header = "class COuter\n{\npublic:\n    struct Inner\n    {\n        void Run();\n    };\n    void Go();\n};"
        impl = "void COuter::Inner::Run()\n{\n}\nvoid COuter::Go()\n{\n}"
        merged = merge_class(declaration_of(header, "COuter"), definitions_of(impl)).value
        self.assertEqual(merged.bindings[0].status, RESOLVED)
        self.assertEqual(merged.nested[0].bindings[0].status, RESOLVED)
        self.assertEqual([m.name for m in merged.walk()], ["COuter", "Inner"])


class TestLinkingAndReporting(unittest.TestCase):
    def test_factory_body_on_derived_class(self):
        interface = merge_class(declaration_of(INTERFACE, "ISample")).value
        concrete = merge_class(declaration_of(CLASS, "CSample"), definitions_of(IMPLEMENTATION)).value

        records = link_factory_bodies([interface, concrete])

        factory = [b for b in interface.bindings if b.method.name == "GetInstance"][0]
        self.assertEqual(factory.status, RESOLVED)
        self.assertIn("new CSample()", factory.body)
        self.assertEqual([o.name for o in concrete.orphans], ["Unknown"])
        self.assertEqual(records[0].severity, INFO)

    def test_pure_methods_status(self):
        merged = merge_class(declaration_of(INTERFACE, "ISample")).value
        statuses = {b.method.name: b.status for b in merged.bindings if not b.method.is_destructor}
        self.assertEqual(statuses["MethodTwo"], PURE)

    def test_report_unresolved(self):
        concrete = merge_class(declaration_of(CLASS, "CSample"), definitions_of(IMPLEMENTATION)).value
        records = report_unresolved(concrete, unit="CSample.h")
        identifiers = [r.identifier for r in records]
        self.assertEqual(identifiers, ["CSample::Method(int)", "CSample::Unknown()", "CSample::GetInstance()"])
        self.assertTrue(all(r.severity == WARNING and r.unit == "CSample.h" for r in records))

    def test_interfaces_are_not_reported(self):
        interface = merge_class(declaration_of(INTERFACE, "ISample")).value
        self.assertEqual(report_unresolved(interface), [])


if __name__ == "__main__":
    unittest.main()
