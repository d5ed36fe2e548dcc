"""
Finalise and render the outcome of a lint pass.

`finalize` turns the raw diagnostics collected by the walker into a
`LintReport`, translating each position through a source map when one is
supplied. A diagnostic whose position the map does not cover is kept as it
was: translation only ever adds information. `render_report` produces the
text the CLI prints, one line per diagnostic.
"""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from .diagnostics import Diagnostic
from .source_map import SourceMap

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LintReport:
    """Verdict of one lint pass: clean, or the diagnostics that rejected it."""

    source_name: str
    diagnostics: Tuple[Diagnostic, ...] = ()

    @property
    def ok(self) -> bool:
        return not self.diagnostics

    @property
    def first(self) -> Optional[Diagnostic]:
        return self.diagnostics[0] if self.diagnostics else None


def _translate(diagnostic: Diagnostic, source_map: SourceMap) -> Diagnostic:
    original = source_map.lookup(diagnostic.loc)
    if original is None:
        logger.debug(
            "keeping generated position for `%s`; the source map does not cover it",
            diagnostic.name,
        )
        return diagnostic
    return diagnostic.with_original(original)


def finalize(
    diagnostics: Iterable[Diagnostic],
    source_map: Optional[SourceMap] = None,
    *,
    source_name: str = "<input>",
) -> LintReport:
    """Build the final report, mapping positions back to the original source if possible."""
    collected = list(diagnostics)
    if source_map is not None:
        collected = [_translate(diagnostic, source_map) for diagnostic in collected]
    return LintReport(source_name=source_name, diagnostics=tuple(collected))


def _format_location(line: Optional[int], column: Optional[int]) -> str:
    if line is None:
        return ""
    if column is None:
        return f":{line}"
    return f":{line}:{column}"


def format_diagnostic(diagnostic: Diagnostic, source_name: str) -> str:
    source, line, column = diagnostic.reported_location(source_name)
    text = f"ERROR {source}{_format_location(line, column)}: {diagnostic.message} [{diagnostic.code}]"
    if diagnostic.is_mapped:
        generated = _format_location(diagnostic.loc.line, diagnostic.loc.column)
        text += f" (generated {source_name}{generated})"
    return text


def format_report(report: LintReport) -> List[str]:
    return [format_diagnostic(diagnostic, report.source_name) for diagnostic in report.diagnostics]


def render_report(report: LintReport, *, trailing_newline: bool = True) -> str:
    buffer = io.StringIO()
    buffer.write("\n".join(format_report(report)))
    if trailing_newline and report.diagnostics:
        buffer.write("\n")
    return buffer.getvalue()


__all__ = ["LintReport", "finalize", "format_diagnostic", "format_report", "render_report"]
