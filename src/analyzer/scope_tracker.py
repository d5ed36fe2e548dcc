"""
Lexical scope tracking for ESTree JavaScript ASTs.

The linter keeps one `ScopeStack` per pass. Frames are pushed when the walk
enters a script, function, block, catch clause, loop head, switch body or
class, and popped when it leaves (`ScopeStack.scope` is a context manager, so
frames are released even when a violation unwinds the walk). Identifier
references are resolved innermost-to-outermost; anything no frame binds is
*free* and becomes a candidate for the availability policy.

Declarations are hoisted the way JavaScript hoists them: `var` and top-level
function declarations are bound when their function (or script) is entered,
`let`/`const`/`class` and block-level functions when their block is entered.
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple


class ScopeType(str, Enum):
    SCRIPT = "script"
    FUNCTION = "function"
    BLOCK = "block"
    CATCH = "catch"
    LOOP = "loop"
    CLASS = "class"


class BindingKind(str, Enum):
    VAR = "var"
    LET = "let"
    CONST = "const"
    FUNCTION = "function"
    CLASS = "class"
    PARAMETER = "parameter"
    CATCH_PARAMETER = "catch_parameter"
    LOOP_VARIABLE = "loop_variable"
    IMPORT = "import"


# Frames that receive `var` bindings regardless of the block they appear in.
FUNCTION_BOUNDARIES = frozenset({ScopeType.SCRIPT, ScopeType.FUNCTION})

_NESTED_STATEMENT_KEYS = ("body", "consequent", "alternate", "block", "finalizer")


@dataclass(frozen=True)
class SourcePosition:
    """Position of a node in the linted (possibly generated) source."""

    line: Optional[int]
    column: Optional[int]
    offset: Optional[int] = None

    @classmethod
    def from_node(cls, node: Optional[Dict[str, Any]]) -> "SourcePosition":
        if not isinstance(node, dict):
            return cls(line=None, column=None)
        loc = node.get("loc") or {}
        start = loc.get("start") or {}
        span = node.get("range")
        return cls(
            line=start.get("line"),
            column=start.get("column"),
            offset=span[0] if span else None,
        )


@dataclass(frozen=True)
class Binding:
    """Represents a single identifier binding within a scope."""

    name: str
    kind: BindingKind
    loc: SourcePosition


@dataclass
class Scope:
    """One frame of the scope stack."""

    scope_type: ScopeType
    node: Optional[Dict[str, Any]] = None
    bindings: Dict[str, Binding] = field(default_factory=dict)

    def add_binding(self, binding: Binding) -> None:
        # Re-declaration replaces the earlier binding.
        self.bindings[binding.name] = binding

    def lookup(self, name: str) -> Optional[Binding]:
        return self.bindings.get(name)

    @property
    def is_function_boundary(self) -> bool:
        return self.scope_type in FUNCTION_BOUNDARIES


class ScopeStack:
    """Ordered frames, innermost last, owned by a single lint pass."""

    def __init__(self) -> None:
        self._frames: List[Scope] = []

    def __len__(self) -> int:
        return len(self._frames)

    @property
    def current(self) -> Scope:
        if not self._frames:
            raise LookupError("No scope has been entered.")
        return self._frames[-1]

    @contextmanager
    def scope(
        self, scope_type: ScopeType, node: Optional[Dict[str, Any]] = None
    ) -> Iterator[Scope]:
        frame = Scope(scope_type=scope_type, node=node)
        self._frames.append(frame)
        try:
            yield frame
        finally:
            self._frames.pop()

    def _function_frame(self) -> Scope:
        for frame in reversed(self._frames):
            if frame.is_function_boundary:
                return frame
        return self.current

    def bind(
        self, name: str, kind: BindingKind, node: Optional[Dict[str, Any]] = None
    ) -> Binding:
        """Bind `name` in the innermost frame, or the function frame for `var`."""
        binding = Binding(name=name, kind=kind, loc=SourcePosition.from_node(node))
        target = self._function_frame() if kind is BindingKind.VAR else self.current
        target.add_binding(binding)
        return binding

    def bind_pattern(self, pattern: Optional[Dict[str, Any]], kind: BindingKind) -> List[Binding]:
        return [self.bind(name, kind, node) for name, node in pattern_names(pattern)]

    def resolve(self, name: str) -> Optional[Binding]:
        """Return the innermost binding for `name`, or None when it is free."""
        for frame in reversed(self._frames):
            binding = frame.lookup(name)
            if binding is not None:
                return binding
        return None

    def is_free(self, name: str) -> bool:
        return self.resolve(name) is None

    def hoist(self, statements: Iterable[Dict[str, Any]], *, include_vars: bool) -> None:
        """Pre-bind the declarations a frame owns before its statements run."""
        statements = list(statements)
        if include_vars:
            for name, node in var_declarations(statements):
                self.bind(name, BindingKind.VAR, node)
        for name, kind, node in lexical_declarations(statements):
            self.bind(name, kind, node)


def pattern_names(pattern: Optional[Dict[str, Any]]) -> Iterator[Tuple[str, Dict[str, Any]]]:
    """Yield every name a binding pattern introduces, with its identifier node."""
    if not isinstance(pattern, dict):
        return
    pattern_type = pattern.get("type")
    if pattern_type == "Identifier":
        yield pattern["name"], pattern
    elif pattern_type == "AssignmentPattern":
        yield from pattern_names(pattern.get("left"))
    elif pattern_type == "RestElement":
        yield from pattern_names(pattern.get("argument"))
    elif pattern_type == "ArrayPattern":
        for element in pattern.get("elements") or []:
            yield from pattern_names(element)
    elif pattern_type == "ObjectPattern":
        for prop in pattern.get("properties") or []:
            if prop.get("type") == "RestElement":
                yield from pattern_names(prop)
            else:
                yield from pattern_names(prop.get("value"))


def _unwrap_export(statement: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    if statement.get("type") in {"ExportNamedDeclaration", "ExportDefaultDeclaration"}:
        return statement.get("declaration")
    return statement


def var_declarations(
    statements: Iterable[Optional[Dict[str, Any]]],
) -> Iterator[Tuple[str, Dict[str, Any]]]:
    """Yield `var` names declared anywhere in `statements`, not crossing functions."""
    for statement in statements:
        if not isinstance(statement, dict):
            continue
        statement = _unwrap_export(statement)
        if not isinstance(statement, dict):
            continue
        statement_type = statement.get("type")
        if statement_type == "VariableDeclaration":
            if statement.get("kind") == "var":
                for declarator in statement.get("declarations", []):
                    yield from pattern_names(declarator.get("id"))
            continue
        if statement_type == "ForStatement":
            yield from var_declarations([statement.get("init")])
        elif statement_type in {"ForInStatement", "ForOfStatement"}:
            yield from var_declarations([statement.get("left")])
        elif statement_type == "SwitchStatement":
            for case in statement.get("cases", []):
                yield from var_declarations(case.get("consequent", []))
            continue
        elif statement_type == "TryStatement":
            handler = statement.get("handler")
            if handler:
                yield from var_declarations([handler.get("body")])
        elif not str(statement_type).endswith("Statement"):
            # Expressions and function/class declarations own no outer `var`s.
            continue

        for key in _NESTED_STATEMENT_KEYS:
            child = statement.get(key)
            if isinstance(child, list):
                yield from var_declarations(child)
            elif isinstance(child, dict):
                yield from var_declarations([child])


def lexical_declarations(
    statements: Iterable[Optional[Dict[str, Any]]],
) -> Iterator[Tuple[str, BindingKind, Dict[str, Any]]]:
    """Yield block-scoped names declared directly in `statements`."""
    for statement in statements:
        if not isinstance(statement, dict):
            continue
        if statement.get("type") == "ImportDeclaration":
            for specifier in statement.get("specifiers", []):
                local = specifier.get("local")
                if local:
                    yield local["name"], BindingKind.IMPORT, local
            continue
        statement = _unwrap_export(statement)
        if not isinstance(statement, dict):
            continue
        statement_type = statement.get("type")
        identifier = statement.get("id")
        if statement_type == "FunctionDeclaration" and identifier:
            yield identifier["name"], BindingKind.FUNCTION, identifier
        elif statement_type == "ClassDeclaration" and identifier:
            yield identifier["name"], BindingKind.CLASS, identifier
        elif statement_type == "VariableDeclaration" and statement.get("kind") != "var":
            kind = BindingKind.CONST if statement.get("kind") == "const" else BindingKind.LET
            for declarator in statement.get("declarations", []):
                for name, node in pattern_names(declarator.get("id")):
                    yield name, kind, node


__all__ = [
    "Binding",
    "BindingKind",
    "FUNCTION_BOUNDARIES",
    "Scope",
    "ScopeStack",
    "ScopeType",
    "SourcePosition",
    "lexical_declarations",
    "pattern_names",
    "var_declarations",
]
