"""Exceptions raised while linting."""

from __future__ import annotations

from typing import Any, Dict, Optional

from reporter import Diagnostic


def _format_location(node: Optional[Dict[str, Any]]) -> str:
    if not node or not isinstance(node, dict):
        return ""
    start = (node.get("loc") or {}).get("start") or {}
    line = start.get("line")
    column = start.get("column")
    if line is None or column is None:
        return ""
    return f" (line {line}, column {column})"


class LintError(RuntimeError):
    """Base class for errors raised by the linter."""


class PolicyViolation(LintError):
    """A free identifier reference forbidden in its lifetime."""

    def __init__(self, diagnostic: Diagnostic):
        loc = diagnostic.loc
        where = f" (line {loc.line}, column {loc.column})" if loc.line is not None else ""
        super().__init__(f"{diagnostic.message}{where}")
        self.diagnostic = diagnostic


class UnsupportedNodeError(LintError):
    """Raised when the walker meets a node shape it does not know.

    The tree is assumed to be well formed, so this signals either a parser
    producing newer syntax than the walker covers or a corrupted tree.
    """

    def __init__(self, message: str, node: Optional[Dict[str, Any]] = None):
        super().__init__(f"{message}{_format_location(node)}")
        self.node = node


class ConfigError(LintError):
    """Raised when a lint configuration document is malformed."""


__all__ = ["ConfigError", "LintError", "PolicyViolation", "UnsupportedNodeError"]
