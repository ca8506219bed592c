"""Tests for run artifact writer."""

import json
import tempfile
import unittest
from pathlib import Path

from core.diagnostics import DiagnosticCollector
from core.run_artifacts import build_run_report, write_run_report


class TestRunArtifacts(unittest.TestCase):
    def test_write_run_report(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            path = write_run_report(
                report={"status": "success", "value": 1},
                run_id="run-123",
                output_dir=tmpdir,
            )
            self.assertTrue(Path(path).is_file())
            payload = json.loads(Path(path).read_text(encoding="utf-8"))
            self.assertEqual(payload["run_id"], "run-123")
            self.assertEqual(payload["status"], "success")
            self.assertEqual(payload["value"], 1)
            self.assertIn("timestamp_utc", payload)

    def test_build_run_report_counts_diagnostics(self) -> None:
        collector = DiagnosticCollector(unit="CSample.h")
        collector.warning("no implementation", identifier="CSample::Method()")
        collector.info("passed through")

        report = build_run_report(
            [("ISample", "interface"), ("CSample", "class")],
            collector.records,
            source_dir="/src",
        )

        self.assertEqual(
            report["emitted_units"],
            [{"name": "ISample", "kind": "interface"}, {"name": "CSample", "kind": "class"}],
        )
        self.assertEqual(report["diagnostic_counts"], {"info": 1, "warning": 1, "error": 0})
        self.assertEqual(report["diagnostics"][0]["identifier"], "CSample::Method()")
        self.assertEqual(report["diagnostics"][0]["unit"], "CSample.h")
        self.assertEqual(report["source_dir"], "/src")


if __name__ == "__main__":
    unittest.main()
