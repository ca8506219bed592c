#!/usr/bin/env python3
"""
Command-line entry point for C++ to C# conversion.

Discovers headers and implementation files under a source directory, pairs
them by base file name, converts them and writes one ``.cs`` file per header
plus a JSON run report.

Usage:
    python run_conversion.py --source-dir ./src
    python run_conversion.py --source-dir ./src --output-dir out/cs --options converter.yaml
    python run_conversion.py --source-dir ./src --fail-on-warning
"""

import argparse
import logging
import os
import sys
import time

from dotenv import load_dotenv

from core.converter_config import (
    ConfigValidationError,
    load_converter_options,
    resolve_strict_config_validation,
)
from core.diagnostics import ERROR, WARNING
from core.run_artifacts import build_run_report, write_run_report
from core.structured_logging import configure_structured_logging, phase_scope, set_run_id

logger = logging.getLogger(__name__)


def parse_args(argv=None) -> argparse.Namespace:
    """Parse command-line arguments.

    Returns:
        Parsed argument namespace.
    """
    parser = argparse.ArgumentParser(
        description="C++ header/implementation to C# converter",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  python run_conversion.py --source-dir ./src\n"
            "  python run_conversion.py --source-dir ./src --options converter.yaml --fail-on-warning\n"
        ),
    )

    parser.add_argument(
        "--source-dir",
        required=True,
        help="Directory searched recursively for C++ headers and implementation files.",
    )
    parser.add_argument(
        "--output-dir",
        default="output/generated",
        help="Directory for the generated .cs files. Default: output/generated",
    )
    parser.add_argument(
        "--options",
        default=None,
        help="YAML or JSON converter options file.",
    )
    parser.add_argument(
        "--report-dir",
        default="output/run_reports",
        help="Directory for the JSON run report. Default: output/run_reports",
    )
    parser.add_argument(
        "--strict-config",
        action="store_true",
        default=resolve_strict_config_validation(default=False),
        help=(
            "Enable strict option validation. "
            "Can also be enabled with CPP2CS_STRICT_CONFIG=true."
        ),
    )
    parser.add_argument(
        "--fail-on-warning",
        action="store_true",
        default=False,
        help="Exit non-zero when warning-severity diagnostics were produced.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        default=False,
        help="Enable debug logging.",
    )

    return parser.parse_args(argv)


def write_outputs(result, output_dir: str) -> list:
    """Write one ``<stem>.cs`` per converted header; return the written paths."""
    os.makedirs(output_dir, exist_ok=True)
    written = []
    for output in result.files:
        path = os.path.join(output_dir, f"{output.stem}.cs")
        with open(path, "w", encoding="utf-8", newline="\n") as f:
            f.write(output.text)
        written.append(path)
        logger.info("Wrote %s (%d units)", path, len(output.units))
    return written


def run(args: argparse.Namespace) -> dict:
    """Discover, convert and write; return the run report body."""
    from conversion.pipeline import convert
    from extraction.config import HEADER_ROLE
    from extraction.extractor import classify_role, discover_cpp_files, pair_units, read_units

    options = load_converter_options(args.options, strict=args.strict_config)

    if not os.path.isdir(args.source_dir):
        raise FileNotFoundError(f"Source directory not found: {args.source_dir}")

    with phase_scope("discover"):
        paths = discover_cpp_files(args.source_dir)
        units = read_units(paths, args.source_dir)
        headers = {name: data for name, data in units.items() if classify_role(name) == HEADER_ROLE}
        implementations = {name: data for name, data in units.items() if name not in headers}
        pairing = pair_units(headers.keys(), implementations.keys())

    logger.info("Source directory : %s", os.path.abspath(args.source_dir))
    logger.info("Headers          : %d", len(headers))
    logger.info("Implementations  : %d", len(implementations))

    t0 = time.time()
    result = convert(headers, implementations, pairing=pairing, options=options)
    elapsed = time.time() - t0

    with phase_scope("write"):
        written = write_outputs(result, args.output_dir)

    return build_run_report(
        ((unit.name, unit.kind) for unit in result.units),
        result.diagnostics,
        source_dir=os.path.abspath(args.source_dir),
        output_files=written,
        options=options.to_dict(),
        extraction_stats=result.stats.to_dict(),
        elapsed_seconds=round(elapsed, 3),
    )


def exit_code(report: dict, fail_on_warning: bool) -> int:
    counts = report.get("diagnostic_counts", {})
    if counts.get(ERROR, 0):
        return 1
    if fail_on_warning and counts.get(WARNING, 0):
        return 1
    return 0


def main(argv=None) -> None:
    """Main entry point for the converter."""
    load_dotenv()
    args = parse_args(argv)
    configure_structured_logging(level=logging.DEBUG if args.verbose else logging.INFO)
    run_id = set_run_id()

    run_report = {
        "run_id": run_id,
        "pipeline": "cpp2cs_conversion",
        "status": "failed",
    }
    try:
        run_report.update(run(args))
        code = exit_code(run_report, args.fail_on_warning)
        run_report["status"] = "succeeded" if code == 0 else "completed_with_diagnostics"
        report_path = write_run_report(run_report, run_id, args.report_dir)
        logger.info("Run report written: %s", report_path)
        logger.info("Diagnostics: %s", run_report["diagnostic_counts"])
        if code:
            sys.exit(code)
    except (FileNotFoundError, ConfigValidationError) as exc:
        run_report["error"] = str(exc)
        report_path = write_run_report(run_report, run_id, args.report_dir)
        logger.info("Run report written: %s", report_path)
        logger.error("Conversion failed: %s", exc)
        sys.exit(1)


if __name__ == "__main__":
    main()
