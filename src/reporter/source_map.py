"""
Source-map lookups for translating diagnostics back to authored source.

`SourceMap` is the collaborator interface the reporter depends on: anything
with a `lookup(position)` method returning an `OriginalPosition` (or None when
the position is not covered) will do. `SourceMapIndexAdapter` implements it on
top of the `sourcemap` package's v3 decoder.

Positions on the linter side follow esprima: 1-based lines, 0-based columns.
The `sourcemap` package works with 0-based lines, so the adapter converts in
both directions.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Protocol, Union

import sourcemap

from analyzer import SourcePosition

logger = logging.getLogger(__name__)


class SourceMapError(ValueError):
    """Raised when a source map cannot be read or decoded."""


@dataclass(frozen=True)
class OriginalPosition:
    source: str
    line: int
    column: int
    name: Optional[str] = None

    def __str__(self) -> str:
        return f"{self.source}:{self.line}:{self.column}"


class SourceMap(Protocol):
    def lookup(self, position: SourcePosition) -> Optional[OriginalPosition]:
        ...


class SourceMapIndexAdapter:
    """Expose a decoded `sourcemap.SourceMapIndex` through `SourceMap`."""

    def __init__(self, index) -> None:
        self._index = index

    @classmethod
    def from_json(cls, text: str) -> "SourceMapIndexAdapter":
        try:
            return cls(sourcemap.loads(text))
        except (ValueError, KeyError, TypeError) as exc:
            raise SourceMapError(f"Invalid source map: {exc}") from exc

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "SourceMapIndexAdapter":
        map_path = Path(path)
        try:
            text = map_path.read_text(encoding="utf-8")
        except OSError as exc:
            raise SourceMapError(f"Failed to read source map {map_path}: {exc}") from exc
        return cls.from_json(text)

    def lookup(self, position: SourcePosition) -> Optional[OriginalPosition]:
        if position.line is None or position.column is None:
            return None
        line = position.line - 1
        try:
            token = self._index.lookup(line, position.column)
        except (IndexError, KeyError):
            logger.debug("no mapping for generated position %s:%s", position.line, position.column)
            return None
        # The decoder falls back to a neighbouring segment when nothing on the
        # line precedes the column; that is not a real mapping.
        if token.dst_line != line or token.dst_col > position.column or token.src is None:
            logger.debug("no mapping for generated position %s:%s", position.line, position.column)
            return None
        return OriginalPosition(
            source=token.src,
            line=token.src_line + 1,
            column=token.src_col,
            name=token.name,
        )


def load_source_map(path: Union[str, Path]) -> SourceMapIndexAdapter:
    return SourceMapIndexAdapter.from_file(path)


__all__ = [
    "OriginalPosition",
    "SourceMap",
    "SourceMapError",
    "SourceMapIndexAdapter",
    "load_source_map",
]
