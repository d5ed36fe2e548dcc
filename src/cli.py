"""
Command-line interface for checking JavaScript bundles against the platform's
lifetime availability policy.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

import esprima

from frontend import FrontEndResult, run_frontend
from linter import LintError, load_config
from parser import SOURCE_TYPES
from reporter import SourceMapError, SourceMapIndexAdapter, format_report, load_source_map

logger = logging.getLogger("cli")


def _configure_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)-5.5s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )


def _format_location(line: int | None, column: int | None) -> str:
    if line is None:
        return ""
    if column is None:
        return f":{line}"
    return f":{line}:{column}"


def _print_diagnostics(messages: List[str]) -> None:
    for message in messages:
        sys.stderr.write(message + "\n")


def _collect_diagnostics(result: FrontEndResult) -> List[str]:
    diagnostics: List[str] = []
    source_name = result.parse.source_name

    for error in result.parse.errors:
        loc = _format_location(error.line, error.column)
        diagnostics.append(f"ERROR {source_name}{loc}: {error.description}")

    if result.report is not None:
        diagnostics.extend(format_report(result.report))
    return diagnostics


def _resolve_source_map(args: argparse.Namespace, input_path: Path) -> Optional[SourceMapIndexAdapter]:
    if args.source_map:
        return load_source_map(args.source_map)
    sibling = input_path.with_name(input_path.name + ".map")
    if sibling.exists():
        logger.info("using source map %s", sibling)
        return load_source_map(sibling)
    return None


def lint_command(args: argparse.Namespace) -> int:
    input_path = Path(args.input).resolve()
    if not input_path.exists():
        sys.stderr.write(f"ERROR: Input file not found: {input_path}\n")
        return 1

    try:
        source = input_path.read_text(encoding="utf-8")
    except OSError as exc:
        sys.stderr.write(f"ERROR: Failed to read {input_path}: {exc}\n")
        return 1

    try:
        config = load_config(args.config)
        source_map = _resolve_source_map(args, input_path)
    except (LintError, SourceMapError) as exc:
        sys.stderr.write(f"ERROR: {exc}\n")
        return 1

    source_type = "module" if args.module else args.source_type
    try:
        result = run_frontend(
            source,
            source_name=str(input_path),
            config=config,
            source_map=source_map,
            tolerant=not args.strict,
            source_type=source_type,
            fail_fast=not args.all,
        )
    except esprima.Error as exc:
        sys.stderr.write(f"ERROR: Parsing failed: {exc}\n")
        return 1
    except LintError as exc:
        sys.stderr.write(f"ERROR: Linting failed: {exc}\n")
        return 1

    if not result.has_ast:
        sys.stderr.write("ERROR: Parsing failed; no AST produced.\n")
    _print_diagnostics(_collect_diagnostics(result))

    if result.report is not None and result.report.ok:
        logger.info("%s: no availability violations", input_path)
    has_errors = not result.has_ast or (result.report is not None and not result.report.ok)
    if args.strict and result.parse.errors:
        has_errors = True
    return 1 if has_errors else 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="js-lifetime-lint",
        description="Reject JavaScript that uses platform APIs outside the lifetime they are available in",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase log output (-v info, -vv debug).",
    )
    subparsers = parser.add_subparsers(dest="command")

    lint_parser = subparsers.add_parser("lint", help="Lint a single JS file")
    lint_parser.add_argument("input", help="Path to the JavaScript file")
    lint_parser.add_argument(
        "--config",
        help="YAML policy file (defaults to the bundled service-worker policy)",
    )
    lint_parser.add_argument(
        "--source-map",
        help="Source map for the input (defaults to <input>.map when present)",
    )
    lint_parser.add_argument(
        "--module",
        action="store_true",
        help="Parse the input as an ES module (same as --source-type module).",
    )
    lint_parser.add_argument(
        "--source-type",
        choices=SOURCE_TYPES,
        default="script",
        help="How to parse the input: script (default), module, or auto to try module then script.",
    )
    lint_parser.add_argument(
        "--strict",
        action="store_true",
        help="Disable tolerant parsing and treat recovered parse errors as failures.",
    )
    lint_parser.add_argument(
        "--all",
        action="store_true",
        help="Report every violation instead of stopping at the first one.",
    )
    lint_parser.set_defaults(func=lint_command)

    return parser


def main(argv: List[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)
    if not hasattr(args, "func"):
        parser.print_help()
        return 1
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
