"""Diagnostics, source-map translation and report rendering."""

from .diagnostics import Diagnostic, PolicyList, violation_message
from .source_map import (
    OriginalPosition,
    SourceMap,
    SourceMapError,
    SourceMapIndexAdapter,
    load_source_map,
)
from .writer import LintReport, finalize, format_diagnostic, format_report, render_report

__all__ = [
    "Diagnostic",
    "LintReport",
    "OriginalPosition",
    "PolicyList",
    "SourceMap",
    "SourceMapError",
    "SourceMapIndexAdapter",
    "finalize",
    "format_diagnostic",
    "format_report",
    "load_source_map",
    "render_report",
    "violation_message",
]
