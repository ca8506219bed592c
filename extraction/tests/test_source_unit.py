"""
Integration tests for extractor.py

Tests per-unit parsing, decoding, discovery and pairing.
"""

import os
import tempfile
import unittest
from pathlib import Path

from core.converter_config import ConverterOptions
from core.diagnostics import ERROR, INFO, DiagnosticCollector
from extraction.config import HEADER_ROLE, IMPLEMENTATION_ROLE
from extraction.extractor import (
    ExtractionStats,
    classify_role,
    decode_source,
    discover_cpp_files,
    pair_units,
    parse_source_unit,
    read_units,
)

HEADER = b"""#pragma once
#include "ISample.h"

/* Sample implementation */
class CSample : public ISample
{
public:
    CSample();
    virtual ~CSample();

    void MethodOne(const CString& cParam1, const bool &bParam2, CString *pcParam3);

private:
    CAgrMT* m_pmtReport; //Res/Rate-Reporting
    static agrint m_iIndex;
};

void FreeHelper(int value);
"""

IMPLEMENTATION = b"""#include "CSample.h"

agrint CSample::m_iIndex = -1;

static int Clamp(int value)
{
    return value < 0 ? 0 : value;
}

CSample::CSample()
{
    m_pmtReport = NULL;
}
"""


class TestExtractionStats(unittest.TestCase):
    """Test ExtractionStats class."""

    def test_creation(self):
        stats = ExtractionStats()
        self.assertEqual(stats.units_parsed, 0)
        self.assertEqual(stats.units_failed, 0)

    def test_record(self):
        stats = ExtractionStats()
        stats.record(parse_source_unit("CSample.h", HEADER).value)
        stats.record(None)
        self.assertEqual(stats.to_dict()["units_parsed"], 1)
        self.assertEqual(stats.to_dict()["units_failed"], 1)
        self.assertEqual(stats.types_extracted, 1)
        self.assertIn("parsed=1", str(stats))


class TestParseSourceUnit(unittest.TestCase):
    def test_defines_and_regions_outside_classes(self):
        text = (
            b"// Top defines\n#define MY_DEFINE 1\n"
            b"#pragma region Helpers\nvoid FreeHelper(int value);\n#pragma endregion\n"
        )
        unit = parse_source_unit("H.h", text).value
        self.assertEqual([d.name for d in unit.defines], ["MY_DEFINE"])
        self.assertEqual(unit.defines[0].leading_comment.text, "Top defines")
        block = unit.pass_through[0]
        self.assertEqual([r.text for r in block.regions_before], ["region Helpers"])
        self.assertEqual([r.text for r in block.regions_after], ["endregion"])
        stats = ExtractionStats()
        stats.record(unit)
        self.assertEqual(stats.defines_extracted, 1)
        self.assertIn("defines=1", str(stats))

    def test_header(self):
        outcome = parse_source_unit("CSample.h", HEADER, role=HEADER_ROLE)
        unit = outcome.value
        self.assertEqual([t.name for t in unit.types], ["CSample"])
        declaration = unit.types[0]
        self.assertEqual(declaration.leading_comment.text, "Sample implementation")
        self.assertEqual(declaration.bases, ["ISample"])
        self.assertEqual(declaration.find_field("m_pmtReport").trailing_comment.text, "Res/Rate-Reporting")

    def test_free_header_declaration_is_passed_through(self):
        outcome = parse_source_unit("CSample.h", HEADER, role=HEADER_ROLE)
        unit = outcome.value
        self.assertEqual(unit.members, [])
        self.assertEqual(len(unit.pass_through), 1)
        self.assertEqual(unit.pass_through[0].text, "void FreeHelper(int value);")
        self.assertTrue(any(d.severity == INFO and d.identifier == "FreeHelper" for d in outcome.diagnostics))

    def test_implementation(self):
        unit = parse_source_unit("CSample.cpp", IMPLEMENTATION, role=IMPLEMENTATION_ROLE).value
        static_def, clamp, ctor = unit.members
        self.assertEqual(static_def.owner, "CSample")
        self.assertTrue(clamp.is_local)
        self.assertTrue(clamp.is_static)
        self.assertEqual(ctor.owner, "CSample")
        self.assertFalse(ctor.is_local)

    def test_crlf_and_bom(self):
        data = b"\xef\xbb\xbfclass A\r\n{\r\n    int a; // note\r\n};\r\n"
        unit = parse_source_unit("A.h", data).value
        self.assertEqual(unit.types[0].fields[0].trailing_comment.text, "note")

    def test_cp1252_fallback(self):
        data = "// Gr\xfc\xdfe\nclass A\n{\n};\n".encode("cp1252")
        outcome = parse_source_unit("A.h", data)
        self.assertEqual(outcome.value.types[0].leading_comment.text, "Gr\xfc\xdfe")

    def test_undecodable(self):
        options = ConverterOptions(encodings=("ascii",))
        outcome = parse_source_unit("A.h", b"\xff\xfe", options=options)
        self.assertIsNone(outcome.value)
        self.assertEqual(outcome.diagnostics[0].severity, ERROR)

    def test_empty_unit(self):
        outcome = parse_source_unit("empty.h", b"  \n")
        self.assertIsNone(outcome.value)
        self.assertEqual(outcome.diagnostics[0].severity, ERROR)

    def test_invalid_arguments(self):
        with self.assertRaises(ValueError):
            parse_source_unit("A.h", b"int a;", role="source")
        with self.assertRaises(TypeError):
            parse_source_unit("A.h", 42)

    def test_syntax_check_reports_info(self):
        options = ConverterOptions(syntax_check=True)
        outcome = parse_source_unit("A.h", b"class A\n{\n    void f( ;\n};\n", options=options)
        self.assertTrue(any(d.severity == INFO and "Syntax check" in d.message for d in outcome.diagnostics))

    def test_decode_source_str_passthrough(self):
        collector = DiagnosticCollector()
        self.assertEqual(decode_source("a\r\nb", ("utf-8",), collector), "a\nb")


class TestDiscovery(unittest.TestCase):
    def test_discover_and_read(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            (root / "src").mkdir()
            (root / "build").mkdir()
            (root / "src" / "CSample.h").write_bytes(HEADER)
            (root / "src" / "CSample.cpp").write_bytes(IMPLEMENTATION)
            (root / "build" / "gen.h").write_bytes(b"int x;")
            (root / "README.md").write_text("x")

            paths = discover_cpp_files(tmpdir)
            self.assertEqual([os.path.basename(p) for p in paths], ["CSample.cpp", "CSample.h"])
            units = read_units(paths, tmpdir)
            self.assertEqual(sorted(units), ["src/CSample.cpp", "src/CSample.h"])
            self.assertEqual(units["src/CSample.h"], HEADER)

    def test_classify_role(self):
        self.assertEqual(classify_role("a/B.H"), HEADER_ROLE)
        self.assertEqual(classify_role("b.cpp"), IMPLEMENTATION_ROLE)
        self.assertIsNone(classify_role("c.txt"))

    def test_pair_units(self):
        pairing = pair_units(["inc/CSample.h", "ISample.h"], ["src/csample.cpp", "Other.cpp"])
        self.assertEqual(pairing, {"inc/CSample.h": ["src/csample.cpp"], "ISample.h": []})


if __name__ == "__main__":
    unittest.main()
