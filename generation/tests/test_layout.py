"""Unit tests for file layout."""

import unittest

from core.converter_config import ConverterOptions
from extraction.models import PassThrough
from generation.generator import CLASS, EmissionUnit
from generation.layout import namespace_for, render_file


class TestLayout(unittest.TestCase):
    def test_namespace_for(self):
        self.assertEqual(namespace_for("CSample"), "Generated_CSample")
        self.assertEqual(namespace_for("CSample", ConverterOptions(namespace_prefix="Legacy.")), "Legacy.CSample")

    def test_render_file(self):
        units = [
            EmissionUnit(name="A", text="internal class A\n{\n}\n", kind=CLASS),
            EmissionUnit(name="B", text="internal class B\n{\n    int x;\n}\n", kind=CLASS),
        ]
        block = PassThrough(text="#define X 1", reason="macro")
        options = ConverterOptions(using_directives=("System",))
        text = render_file("CSample", units, [block], options)
        self.assertEqual(
            text,
            "using System;\n"
            "\n"
            "namespace Generated_CSample\n"
            "{\n"
            "    internal class A\n"
            "    {\n"
            "    }\n"
            "\n"
            "    internal class B\n"
            "    {\n"
            "        int x;\n"
            "    }\n"
            "\n"
            "    // NOT CONVERTED (macro):\n"
            "    // #define X 1\n"
            "}\n",
        )

    def test_empty_file(self):
        self.assertEqual(render_file("Empty", []), "namespace Generated_Empty\n{\n}\n")


if __name__ == "__main__":
    unittest.main()
