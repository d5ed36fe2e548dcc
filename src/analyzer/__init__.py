"""Scope resolution helpers for JavaScript ASTs."""

from .scope_tracker import (
    Binding,
    BindingKind,
    Scope,
    ScopeStack,
    ScopeType,
    SourcePosition,
    lexical_declarations,
    pattern_names,
    var_declarations,
)

__all__ = [
    "Binding",
    "BindingKind",
    "Scope",
    "ScopeStack",
    "ScopeType",
    "SourcePosition",
    "lexical_declarations",
    "pattern_names",
    "var_declarations",
]
