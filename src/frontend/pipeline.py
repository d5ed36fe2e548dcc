"""
Front-end integration stitching together parsing and lifetime linting.

`run_frontend` accepts raw JavaScript source, invokes the parser to obtain an
AST, lints it against the configured availability policy when an AST was
produced, and persists cached parse artefacts when requested. Callers (the
CLI, build tooling) consume the aggregated result instead of repeating these
steps.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Union

from linter import LintConfig, lint, load_config
from parser import ParseError, ParseResult, parse_js
from reporter import Diagnostic, LintReport, SourceMap

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FrontEndResult:
    """Combined output from the parsing and linting pipeline."""

    parse: ParseResult
    report: Optional[LintReport]

    @property
    def has_ast(self) -> bool:
        return self.parse.ast is not None

    @property
    def ok(self) -> bool:
        """True when the source parsed cleanly and passed the lint."""
        return not self.parse.errors and self.report is not None and self.report.ok

    @property
    def diagnostics(self) -> List[Union[ParseError, Diagnostic]]:
        """Aggregate parse errors and policy diagnostics."""
        diagnostics: List[Union[ParseError, Diagnostic]] = list(self.parse.errors)
        if self.report:
            diagnostics.extend(self.report.diagnostics)
        return diagnostics


def run_frontend(
    source: str,
    *,
    source_name: str = "<input>",
    config: Optional[LintConfig] = None,
    source_map: Optional[SourceMap] = None,
    tolerant: bool = True,
    source_type: str = "script",
    fail_fast: bool = True,
    cache_dir: Optional[Union[str, Path]] = None,
) -> FrontEndResult:
    """
    Parse JavaScript input and lint it for lifetime availability violations.

    Args:
        source: Raw JavaScript source text.
        source_name: Identifier used in diagnostics, e.g. file path.
        config: Policy and handler shapes; defaults to the bundled policy.
        source_map: Optional map from the linted source back to authored source.
        tolerant: Forwarded to parser; when True esprima attempts recovery.
        source_type: `"script"`, `"module"` or `"auto"`.
        fail_fast: Stop at the first violation instead of collecting all.
        cache_dir: Optional directory to write parse artefacts (`None` disables).

    Returns:
        FrontEndResult containing the parser output and the lint report, if any.
    """
    parse_result = parse_js(
        source,
        source_name=source_name,
        tolerant=tolerant,
        source_type=source_type,
    )

    report: Optional[LintReport] = None
    if parse_result.ast is not None:
        config = config or load_config()
        report = lint(
            parse_result.ast,
            config.policy,
            source_map,
            tracker=config.tracker(),
            fail_fast=fail_fast,
            source_name=source_name,
        )
    else:
        logger.info("skipping lint of %s: no AST was produced", source_name)

    if cache_dir is not None:
        _persist_parse(cache_dir, parse_result)

    return FrontEndResult(parse=parse_result, report=report)


def _persist_parse(cache_dir: Union[str, Path], parse_result: ParseResult) -> None:
    """Store the raw parse output to disk for reuse in subsequent runs."""
    path = Path(cache_dir)
    path.mkdir(parents=True, exist_ok=True)
    cache_file = path / f"{parse_result.source_hash}.json"
    cache_file.write_text(parse_result.to_json(), encoding="utf-8")


__all__ = ["FrontEndResult", "run_frontend"]
