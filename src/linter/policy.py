"""Availability policy: which free identifiers are allowed in which lifetime."""

from __future__ import annotations

import sys
from dataclasses import dataclass
from typing import FrozenSet, Iterable, Optional

from reporter import PolicyList

from .context import LifetimeContext


def _interned(names: Iterable[str]) -> FrozenSet[str]:
    return frozenset(sys.intern(str(name)) for name in names)


@dataclass(frozen=True)
class AvailabilityPolicy:
    """
    Denylist pair for platform globals.

    `unavailable` names are never permitted. `request_only` names are permitted
    only while handling a request. Any other name is assumed to be an ordinary
    user global and is permitted. A name listed in both sets is treated as
    unavailable.
    """

    unavailable: FrozenSet[str] = frozenset()
    request_only: FrozenSet[str] = frozenset()

    def __post_init__(self) -> None:
        object.__setattr__(self, "unavailable", _interned(self.unavailable))
        object.__setattr__(self, "request_only", _interned(self.request_only))

    @property
    def overlap(self) -> FrozenSet[str]:
        return self.unavailable & self.request_only

    def violation(self, name: str, context: LifetimeContext) -> Optional[PolicyList]:
        """Return the list that forbids `name` under `context`, or None if permitted."""
        if name in self.unavailable:
            return PolicyList.UNAVAILABLE
        if name in self.request_only and not context.in_request_lifetime:
            return PolicyList.REQUEST_ONLY
        return None

    def permitted(self, name: str, context: LifetimeContext) -> bool:
        return self.violation(name, context) is None


__all__ = ["AvailabilityPolicy", "PolicyList"]
