"""Diagnostic records produced by a lint pass."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

from analyzer import SourcePosition

from .source_map import OriginalPosition


class PolicyList(str, Enum):
    """Which availability list a violation came from."""

    UNAVAILABLE = "unavailable"
    REQUEST_ONLY = "request_only"


_CODES = {
    PolicyList.UNAVAILABLE: "unavailable-api",
    PolicyList.REQUEST_ONLY: "request-only-api",
}


def violation_message(name: str, listed: PolicyList) -> str:
    if listed is PolicyList.UNAVAILABLE:
        return f"`{name}` is not available on this platform."
    return (
        f"`{name}` can only be used while handling a request; "
        "it is not available in the global scope."
    )


@dataclass(frozen=True)
class Diagnostic:
    """A single policy violation. Immutable once created."""

    message: str
    name: str
    listed: PolicyList
    loc: SourcePosition
    in_request_lifetime: bool = False
    original: Optional[OriginalPosition] = None

    @classmethod
    def for_violation(
        cls, name: str, listed: PolicyList, loc: SourcePosition, *, in_request_lifetime: bool
    ) -> "Diagnostic":
        return cls(
            message=violation_message(name, listed),
            name=name,
            listed=listed,
            loc=loc,
            in_request_lifetime=in_request_lifetime,
        )

    @property
    def code(self) -> str:
        return _CODES[self.listed]

    @property
    def is_mapped(self) -> bool:
        return self.original is not None

    def reported_location(self, source_name: str) -> Tuple[str, Optional[int], Optional[int]]:
        """(file, line, column) to show the user, preferring the original source."""
        if self.original is not None:
            return self.original.source, self.original.line, self.original.column
        return source_name, self.loc.line, self.loc.column

    def with_original(self, original: OriginalPosition) -> "Diagnostic":
        return dataclasses.replace(self, original=original)


__all__ = ["Diagnostic", "PolicyList", "violation_message"]
