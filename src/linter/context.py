"""
Lifetime tracking: which parts of a program run while handling a request.

Code runs in the global lifetime unless it sits inside a function that the
platform calls per request. Those functions are recognised syntactically:

* a function or arrow expression passed at a registered argument position of
  a registered call, e.g. the second argument of `addEventListener(...)`;
* a method (or function-valued property) named after a registered handler on
  the object literal of `export default { ... }`, e.g. `fetch(request) {}`.

Every other nested function inherits the lifetime it is declared in. Handlers
passed by name, or returned from other functions, are not recognised.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Tuple

logger = logging.getLogger(__name__)

FUNCTION_TYPES = frozenset({"FunctionExpression", "ArrowFunctionExpression"})


@dataclass(frozen=True)
class LifetimeContext:
    """Carried by value down the walk; a nested body gets its own copy."""

    in_request_lifetime: bool = False

    def entering_request(self) -> "LifetimeContext":
        return REQUEST if not self.in_request_lifetime else self


GLOBAL = LifetimeContext(in_request_lifetime=False)
REQUEST = LifetimeContext(in_request_lifetime=True)


@dataclass(frozen=True)
class HandlerRegistration:
    """A call shape whose argument at `argument` runs in the request lifetime."""

    callee: str
    argument: int

    @classmethod
    def parse(cls, spec: str) -> "HandlerRegistration":
        """Parse `callee:argument`, e.g. `self.addEventListener:1`."""
        callee, sep, position = spec.rpartition(":")
        if not sep or not callee or not position.isdigit():
            raise ValueError(f"Expected `callee:argument`, got {spec!r}")
        return cls(callee=callee, argument=int(position))


DEFAULT_HANDLERS: Tuple[HandlerRegistration, ...] = (
    HandlerRegistration("addEventListener", 1),
    HandlerRegistration("self.addEventListener", 1),
    HandlerRegistration("globalThis.addEventListener", 1),
)
DEFAULT_EXPORTED_HANDLERS: FrozenSet[str] = frozenset({"fetch", "scheduled", "queue"})


def callee_path(node: Optional[Dict[str, Any]]) -> Optional[str]:
    """Dotted path of a callee such as `self.addEventListener`, if it has one."""
    if not isinstance(node, dict):
        return None
    node_type = node.get("type")
    if node_type == "Identifier":
        return node.get("name")
    if node_type == "ThisExpression":
        return "this"
    if node_type != "MemberExpression":
        return None
    prop = node.get("property") or {}
    if node.get("computed"):
        if prop.get("type") != "Literal" or not isinstance(prop.get("value"), str):
            return None
        name = prop["value"]
    elif prop.get("type") == "Identifier":
        name = prop["name"]
    else:
        return None
    owner = callee_path(node.get("object"))
    return f"{owner}.{name}" if owner else None


def property_name(node: Dict[str, Any]) -> Optional[str]:
    key = node.get("key") or {}
    if key.get("type") == "Identifier" and not node.get("computed"):
        return key.get("name")
    if key.get("type") == "Literal" and isinstance(key.get("value"), str):
        return key["value"]
    return None


class LifetimeTracker:
    """Decides the lifetime of function arguments and exported handlers."""

    def __init__(
        self,
        handlers: Iterable[HandlerRegistration] = DEFAULT_HANDLERS,
        exported_handlers: Iterable[str] = DEFAULT_EXPORTED_HANDLERS,
    ) -> None:
        self.handlers: Tuple[HandlerRegistration, ...] = tuple(handlers)
        self.exported_handlers: FrozenSet[str] = frozenset(exported_handlers)
        self._by_callee: Dict[str, FrozenSet[int]] = {}
        for registration in self.handlers:
            positions = self._by_callee.get(registration.callee, frozenset())
            self._by_callee[registration.callee] = positions | {registration.argument}

    def handler_positions(self, call: Dict[str, Any]) -> FrozenSet[int]:
        path = callee_path(call.get("callee"))
        if path is None:
            return frozenset()
        return self._by_callee.get(path, frozenset())

    def argument_contexts(
        self, call: Dict[str, Any], context: LifetimeContext
    ) -> List[LifetimeContext]:
        """Context for each argument of `call`, in argument order."""
        arguments = call.get("arguments") or []
        positions = self.handler_positions(call)
        contexts: List[LifetimeContext] = []
        for index, argument in enumerate(arguments):
            if index in positions and isinstance(argument, dict) and argument.get("type") in FUNCTION_TYPES:
                logger.debug(
                    "argument %d of %s runs in the request lifetime",
                    index,
                    callee_path(call.get("callee")),
                )
                contexts.append(context.entering_request())
            else:
                contexts.append(context)
        return contexts

    def exported_property_context(
        self, prop: Dict[str, Any], context: LifetimeContext
    ) -> LifetimeContext:
        """Context for a property of the default-exported object literal."""
        if prop.get("type") != "Property":
            return context
        value = prop.get("value") or {}
        if value.get("type") not in FUNCTION_TYPES:
            return context
        name = property_name(prop)
        if name in self.exported_handlers:
            logger.debug("exported handler `%s` runs in the request lifetime", name)
            return context.entering_request()
        return context


__all__ = [
    "DEFAULT_EXPORTED_HANDLERS",
    "DEFAULT_HANDLERS",
    "FUNCTION_TYPES",
    "GLOBAL",
    "HandlerRegistration",
    "LifetimeContext",
    "LifetimeTracker",
    "REQUEST",
    "callee_path",
    "property_name",
]
