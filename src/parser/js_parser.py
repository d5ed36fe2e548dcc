"""
JavaScript parsing utilities built on top of the Python `esprima` port.

`parse_js` returns the JSON-compatible ESTree AST (with `loc` and `range` data
so diagnostics can point at source positions) along with metadata describing
the parse run. Service-worker scripts and ES module workers are both
supported through the `source_type` switch; `"auto"` tries a module parse
first and falls back to a classic script.
"""

from __future__ import annotations

import hashlib
import json
import logging
from dataclasses import dataclass
from typing import Any, List, Optional

import esprima

logger = logging.getLogger(__name__)

SOURCE_TYPES = ("script", "module", "auto")


@dataclass(frozen=True)
class ParseError:
    """Represents a parsing issue reported by esprima."""

    description: str
    line: Optional[int]
    column: Optional[int]
    offset: Optional[int] = None


@dataclass(frozen=True)
class ParseResult:
    """Aggregate of the output AST plus metadata about the parse run."""

    ast: Any
    errors: List[ParseError]
    source_hash: str
    source_name: str
    source_type: str = "script"

    def to_json(self) -> str:
        """Serialise the parse result to JSON for debugging or caching."""
        payload = {
            "ast": self.ast,
            "errors": [error.__dict__ for error in self.errors],
            "source_hash": self.source_hash,
            "source_name": self.source_name,
            "source_type": self.source_type,
        }
        return json.dumps(payload, ensure_ascii=False, indent=2)


def _hash_source(source: str) -> str:
    return hashlib.sha256(source.encode("utf-8")).hexdigest()


def _error_from_exception(exc: esprima.Error) -> ParseError:
    return ParseError(
        description=getattr(exc, "description", None) or str(exc),
        line=getattr(exc, "lineNumber", None),
        column=getattr(exc, "column", None),
        offset=getattr(exc, "index", None),
    )


def _run_esprima(source: str, source_type: str, tolerant: bool) -> Any:
    options = dict(loc=True, range=True, tolerant=tolerant)
    parser = esprima.parseModule if source_type == "module" else esprima.parseScript
    ast = parser(source, **options)
    return ast.toDict() if hasattr(ast, "toDict") else ast


def parse_js(
    source: str,
    *,
    source_name: str = "<input>",
    tolerant: bool = True,
    source_type: str = "script",
) -> ParseResult:
    """
    Parse JavaScript source text into an esprima AST.

    Args:
        source: Raw JavaScript source code.
        source_name: Label used for diagnostics (defaults to `<input>`).
        tolerant: When True, esprima performs error recovery instead of raising.
        source_type: `"script"`, `"module"`, or `"auto"` (module, then script).

    Returns:
        ParseResult containing the AST, any recoverable errors, and metadata.

    Raises:
        esprima.Error: If parsing fails and `tolerant` is False.
        ValueError: If `source_type` is not one of the supported values.
    """
    if source_type not in SOURCE_TYPES:
        raise ValueError(f"Unknown source type: {source_type!r}")

    source_hash = _hash_source(source)
    if source_type == "auto":
        try:
            raw_ast = _run_esprima(source, "module", tolerant=False)
            source_type = "module"
        except esprima.Error:
            logger.debug("%s is not an ES module; retrying as a script", source_name)
            source_type = "script"
            raw_ast = None
        if raw_ast is not None:
            return ParseResult(
                ast=raw_ast,
                errors=[],
                source_hash=source_hash,
                source_name=source_name,
                source_type=source_type,
            )

    try:
        raw_ast = _run_esprima(source, source_type, tolerant)
    except esprima.Error as exc:
        if not tolerant:
            raise
        logger.debug("esprima failed to recover while parsing %s: %s", source_name, exc)
        return ParseResult(
            ast=None,
            errors=[_error_from_exception(exc)],
            source_hash=source_hash,
            source_name=source_name,
            source_type=source_type,
        )

    errors: List[ParseError] = []
    if tolerant and isinstance(raw_ast, dict):
        for error in raw_ast.get("errors", []):
            errors.append(
                ParseError(
                    description=error.get("description"),
                    line=error.get("lineNumber"),
                    column=error.get("column"),
                    offset=error.get("index"),
                )
            )

    return ParseResult(
        ast=raw_ast,
        errors=errors,
        source_hash=source_hash,
        source_name=source_name,
        source_type=source_type,
    )


__all__ = ["ParseError", "ParseResult", "SOURCE_TYPES", "parse_js"]
