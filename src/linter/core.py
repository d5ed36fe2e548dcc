"""
Core lint pass over ESTree JavaScript ASTs (as produced by `esprima`).

`Linter` walks every statement, expression, declaration and binding pattern
in evaluation order. Declarations feed the scope stack; every identifier
reference that no enclosing scope binds is checked against the availability
policy for the lifetime the code runs in. The lifetime starts global and
switches to the request lifetime for handler bodies recognised by the
`LifetimeTracker`.

By default the first violation aborts the pass. With `fail_fast=False` the
walk continues and every violation is reported in traversal order.
Node types the walker does not know raise `UnsupportedNodeError`.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional

from analyzer import BindingKind, ScopeStack, ScopeType, SourcePosition
from reporter import Diagnostic, LintReport, SourceMap, finalize

from .context import GLOBAL, LifetimeContext, LifetimeTracker
from .errors import PolicyViolation, UnsupportedNodeError
from .policy import AvailabilityPolicy

logger = logging.getLogger(__name__)

_DECLARATION_KINDS = {
    "var": BindingKind.VAR,
    "let": BindingKind.LET,
    "const": BindingKind.CONST,
}

Node = Dict[str, Any]


class Linter:
    """Visitor checking free identifier references against an availability policy."""

    def __init__(
        self,
        policy: AvailabilityPolicy,
        *,
        tracker: Optional[LifetimeTracker] = None,
        fail_fast: bool = True,
    ):
        self.policy = policy
        self.tracker = tracker or LifetimeTracker()
        self.fail_fast = fail_fast
        self.diagnostics: List[Diagnostic] = []
        self._scopes = ScopeStack()

    # ------------------------------------------------------------------ helpers

    def lint_program(self, program: Node, context: LifetimeContext = GLOBAL) -> List[Diagnostic]:
        """Lint a whole `Program`. Raises `PolicyViolation` in fail-fast mode."""
        if not isinstance(program, dict) or program.get("type") != "Program":
            raise UnsupportedNodeError("Expected Program node at the root.", program)
        body = program.get("body", [])
        logger.debug("linting program with %d top-level statements", len(body))
        with self._scopes.scope(ScopeType.SCRIPT, program):
            self._scopes.hoist(body, include_vars=True)
            self._lint_statements(body, context)
        return self.diagnostics

    def _check_reference(self, node: Node, context: LifetimeContext) -> None:
        name = node.get("name")
        if self._scopes.resolve(name) is not None:
            return
        listed = self.policy.violation(name, context)
        if listed is None:
            return
        diagnostic = Diagnostic.for_violation(
            name,
            listed,
            SourcePosition.from_node(node),
            in_request_lifetime=context.in_request_lifetime,
        )
        if self.fail_fast:
            raise PolicyViolation(diagnostic)
        self.diagnostics.append(diagnostic)

    def _lint_statements(self, statements: Iterable[Node], context: LifetimeContext) -> None:
        for statement in statements:
            self._lint_statement(statement, context)

    def _lint_statement(self, node: Node, context: LifetimeContext) -> None:
        if not isinstance(node, dict):
            raise UnsupportedNodeError(f"Expected a statement node, got {node!r}.")
        handler = getattr(self, f"_lint_stmt_{node.get('type')}", None)
        if handler is None:
            raise UnsupportedNodeError(f"Unsupported statement node: {node.get('type')}", node)
        handler(node, context)

    def _lint_expression(self, node: Node, context: LifetimeContext) -> None:
        if not isinstance(node, dict):
            raise UnsupportedNodeError(f"Expected an expression node, got {node!r}.")
        handler = getattr(self, f"_lint_expr_{node.get('type')}", None)
        if handler is None:
            raise UnsupportedNodeError(f"Unsupported expression node: {node.get('type')}", node)
        handler(node, context)

    def _lint_optional(self, node: Optional[Node], context: LifetimeContext) -> None:
        if node is not None:
            self._lint_expression(node, context)

    def _skip(self, node: Node, context: LifetimeContext) -> None:
        return None

    # ------------------------------------------------------- scopes and patterns

    def _lint_function(self, node: Node, context: LifetimeContext) -> None:
        params = node.get("params") or []
        body = node.get("body")
        with self._scopes.scope(ScopeType.FUNCTION, node):
            identifier = node.get("id")
            if node.get("type") == "FunctionExpression" and identifier:
                # Named function expressions bind the name within their own scope.
                self._scopes.bind(identifier["name"], BindingKind.FUNCTION, identifier)
            for param in params:
                self._scopes.bind_pattern(param, BindingKind.PARAMETER)
            for param in params:
                self._lint_pattern_defaults(param, context)
            if isinstance(body, dict) and body.get("type") == "BlockStatement":
                statements = body.get("body", [])
                self._scopes.hoist(statements, include_vars=True)
                self._lint_statements(statements, context)
            else:
                # Concise arrow body.
                self._lint_expression(body, context)

    def _lint_class(self, node: Node, context: LifetimeContext) -> None:
        self._lint_optional(node.get("superClass"), context)
        with self._scopes.scope(ScopeType.CLASS, node):
            identifier = node.get("id")
            if identifier:
                self._scopes.bind(identifier["name"], BindingKind.CLASS, identifier)
            for member in (node.get("body") or {}).get("body", []):
                member_type = member.get("type")
                if member_type not in {"MethodDefinition", "PropertyDefinition", "ClassProperty"}:
                    raise UnsupportedNodeError(f"Unsupported class member: {member_type}", member)
                if member.get("computed"):
                    self._lint_expression(member.get("key"), context)
                self._lint_optional(member.get("value"), context)

    def _lint_variable_declaration(
        self, node: Node, context: LifetimeContext, *, loop_head: bool = False
    ) -> None:
        kind = _DECLARATION_KINDS.get(node.get("kind"), BindingKind.VAR)
        if loop_head and kind is not BindingKind.VAR:
            kind = BindingKind.LOOP_VARIABLE
        for declarator in node.get("declarations", []):
            pattern = declarator.get("id")
            self._scopes.bind_pattern(pattern, kind)
            # The initializer runs before any default inside the pattern.
            self._lint_optional(declarator.get("init"), context)
            self._lint_pattern_defaults(pattern, context)

    def _lint_pattern_defaults(self, pattern: Optional[Node], context: LifetimeContext) -> None:
        """Lint the expressions embedded in a binding pattern (defaults, computed keys)."""
        if pattern is None:
            return
        pattern_type = pattern.get("type")
        if pattern_type == "Identifier":
            return
        if pattern_type == "AssignmentPattern":
            self._lint_pattern_defaults(pattern.get("left"), context)
            self._lint_expression(pattern.get("right"), context)
        elif pattern_type == "ArrayPattern":
            for element in pattern.get("elements") or []:
                self._lint_pattern_defaults(element, context)
        elif pattern_type == "ObjectPattern":
            for prop in pattern.get("properties") or []:
                if prop.get("type") == "RestElement":
                    self._lint_pattern_defaults(prop, context)
                    continue
                if prop.get("computed"):
                    self._lint_expression(prop.get("key"), context)
                self._lint_pattern_defaults(prop.get("value"), context)
        elif pattern_type == "RestElement":
            self._lint_pattern_defaults(pattern.get("argument"), context)
        else:
            raise UnsupportedNodeError(f"Unsupported binding pattern: {pattern_type}", pattern)

    def _lint_target(self, node: Optional[Node], context: LifetimeContext) -> None:
        """Lint an assignment target; identifiers in it are references, not bindings."""
        if node is None:
            return
        node_type = node.get("type")
        if node_type == "Identifier":
            self._check_reference(node, context)
        elif node_type == "AssignmentPattern":
            self._lint_target(node.get("left"), context)
            self._lint_expression(node.get("right"), context)
        elif node_type == "ArrayPattern":
            for element in node.get("elements") or []:
                self._lint_target(element, context)
        elif node_type == "ObjectPattern":
            for prop in node.get("properties") or []:
                if prop.get("type") == "RestElement":
                    self._lint_target(prop, context)
                    continue
                if prop.get("computed"):
                    self._lint_expression(prop.get("key"), context)
                self._lint_target(prop.get("value"), context)
        elif node_type == "RestElement":
            self._lint_target(node.get("argument"), context)
        else:
            self._lint_expression(node, context)

    # ----------------------------------------------------------- statement nodes

    _lint_stmt_EmptyStatement = _skip
    _lint_stmt_DebuggerStatement = _skip
    _lint_stmt_BreakStatement = _skip
    _lint_stmt_ContinueStatement = _skip
    _lint_stmt_ExportAllDeclaration = _skip

    def _lint_stmt_BlockStatement(self, node: Node, context: LifetimeContext) -> None:
        statements = node.get("body", [])
        with self._scopes.scope(ScopeType.BLOCK, node):
            self._scopes.hoist(statements, include_vars=False)
            self._lint_statements(statements, context)

    def _lint_stmt_ExpressionStatement(self, node: Node, context: LifetimeContext) -> None:
        self._lint_expression(node.get("expression"), context)

    def _lint_stmt_IfStatement(self, node: Node, context: LifetimeContext) -> None:
        self._lint_expression(node.get("test"), context)
        self._lint_statement(node.get("consequent"), context)
        alternate = node.get("alternate")
        if alternate is not None:
            self._lint_statement(alternate, context)

    def _lint_stmt_LabeledStatement(self, node: Node, context: LifetimeContext) -> None:
        self._lint_statement(node.get("body"), context)

    def _lint_stmt_WithStatement(self, node: Node, context: LifetimeContext) -> None:
        self._lint_expression(node.get("object"), context)
        self._lint_statement(node.get("body"), context)

    def _lint_stmt_ReturnStatement(self, node: Node, context: LifetimeContext) -> None:
        self._lint_optional(node.get("argument"), context)

    def _lint_stmt_ThrowStatement(self, node: Node, context: LifetimeContext) -> None:
        self._lint_expression(node.get("argument"), context)

    def _lint_stmt_WhileStatement(self, node: Node, context: LifetimeContext) -> None:
        self._lint_expression(node.get("test"), context)
        self._lint_statement(node.get("body"), context)

    _lint_stmt_DoWhileStatement = _lint_stmt_WhileStatement

    def _lint_stmt_ForStatement(self, node: Node, context: LifetimeContext) -> None:
        with self._scopes.scope(ScopeType.LOOP, node):
            init = node.get("init")
            if init is not None and init.get("type") == "VariableDeclaration":
                self._lint_variable_declaration(init, context, loop_head=True)
            else:
                self._lint_optional(init, context)
            self._lint_optional(node.get("test"), context)
            self._lint_optional(node.get("update"), context)
            self._lint_statement(node.get("body"), context)

    def _lint_stmt_ForInStatement(self, node: Node, context: LifetimeContext) -> None:
        with self._scopes.scope(ScopeType.LOOP, node):
            left = node.get("left")
            if left.get("type") == "VariableDeclaration":
                self._lint_variable_declaration(left, context, loop_head=True)
            else:
                self._lint_target(left, context)
            self._lint_expression(node.get("right"), context)
            self._lint_statement(node.get("body"), context)

    _lint_stmt_ForOfStatement = _lint_stmt_ForInStatement

    def _lint_stmt_SwitchStatement(self, node: Node, context: LifetimeContext) -> None:
        self._lint_expression(node.get("discriminant"), context)
        cases = node.get("cases", [])
        with self._scopes.scope(ScopeType.BLOCK, node):
            # All cases share one block scope.
            for case in cases:
                self._scopes.hoist(case.get("consequent", []), include_vars=False)
            for case in cases:
                self._lint_optional(case.get("test"), context)
                self._lint_statements(case.get("consequent", []), context)

    def _lint_stmt_TryStatement(self, node: Node, context: LifetimeContext) -> None:
        self._lint_statement(node.get("block"), context)
        handler = node.get("handler")
        if handler is not None:
            self._lint_catch_clause(handler, context)
        finalizer = node.get("finalizer")
        if finalizer is not None:
            self._lint_statement(finalizer, context)

    def _lint_catch_clause(self, node: Node, context: LifetimeContext) -> None:
        param = node.get("param")
        with self._scopes.scope(ScopeType.CATCH, node):
            self._scopes.bind_pattern(param, BindingKind.CATCH_PARAMETER)
            self._lint_statement(node.get("body"), context)
            self._lint_pattern_defaults(param, context)

    def _lint_stmt_VariableDeclaration(self, node: Node, context: LifetimeContext) -> None:
        self._lint_variable_declaration(node, context)

    def _lint_stmt_FunctionDeclaration(self, node: Node, context: LifetimeContext) -> None:
        identifier = node.get("id")
        if identifier:
            self._scopes.bind(identifier["name"], BindingKind.FUNCTION, identifier)
        self._lint_function(node, context)

    def _lint_stmt_ClassDeclaration(self, node: Node, context: LifetimeContext) -> None:
        identifier = node.get("id")
        if identifier:
            self._scopes.bind(identifier["name"], BindingKind.CLASS, identifier)
        self._lint_class(node, context)

    def _lint_stmt_ImportDeclaration(self, node: Node, context: LifetimeContext) -> None:
        for specifier in node.get("specifiers", []):
            local = specifier.get("local")
            if local:
                self._scopes.bind(local["name"], BindingKind.IMPORT, local)

    def _lint_stmt_ExportNamedDeclaration(self, node: Node, context: LifetimeContext) -> None:
        declaration = node.get("declaration")
        if declaration is not None:
            self._lint_statement(declaration, context)
            return
        if node.get("source") is not None:
            # Re-exports name bindings of another module.
            return
        for specifier in node.get("specifiers", []):
            self._check_reference(specifier.get("local"), context)

    def _lint_stmt_ExportDefaultDeclaration(self, node: Node, context: LifetimeContext) -> None:
        declaration = node.get("declaration")
        declaration_type = declaration.get("type")
        if declaration_type in {"FunctionDeclaration", "ClassDeclaration"}:
            self._lint_statement(declaration, context)
        elif declaration_type == "ObjectExpression":
            for prop in declaration.get("properties", []):
                self._lint_property(prop, self.tracker.exported_property_context(prop, context))
        else:
            self._lint_expression(declaration, context)

    # --------------------------------------------------------- expression nodes

    _lint_expr_Literal = _skip
    _lint_expr_ThisExpression = _skip
    _lint_expr_Super = _skip
    _lint_expr_MetaProperty = _skip
    _lint_expr_Import = _skip

    def _lint_expr_Identifier(self, node: Node, context: LifetimeContext) -> None:
        self._check_reference(node, context)

    def _lint_expr_FunctionExpression(self, node: Node, context: LifetimeContext) -> None:
        self._lint_function(node, context)

    _lint_expr_ArrowFunctionExpression = _lint_expr_FunctionExpression

    def _lint_expr_ClassExpression(self, node: Node, context: LifetimeContext) -> None:
        self._lint_class(node, context)

    def _lint_expr_ArrayExpression(self, node: Node, context: LifetimeContext) -> None:
        for element in node.get("elements", []):
            # Holes in sparse arrays are None.
            self._lint_optional(element, context)

    def _lint_expr_ObjectExpression(self, node: Node, context: LifetimeContext) -> None:
        for prop in node.get("properties", []):
            self._lint_property(prop, context)

    def _lint_property(self, node: Node, context: LifetimeContext) -> None:
        if node.get("type") != "Property":
            # Object spread.
            self._lint_expression(node, context)
            return
        if node.get("computed"):
            self._lint_expression(node.get("key"), context)
        self._lint_expression(node.get("value"), context)

    def _lint_expr_UnaryExpression(self, node: Node, context: LifetimeContext) -> None:
        self._lint_expression(node.get("argument"), context)

    def _lint_expr_UpdateExpression(self, node: Node, context: LifetimeContext) -> None:
        self._lint_target(node.get("argument"), context)

    def _lint_expr_BinaryExpression(self, node: Node, context: LifetimeContext) -> None:
        self._lint_expression(node.get("left"), context)
        self._lint_expression(node.get("right"), context)

    _lint_expr_LogicalExpression = _lint_expr_BinaryExpression

    def _lint_expr_AssignmentExpression(self, node: Node, context: LifetimeContext) -> None:
        self._lint_target(node.get("left"), context)
        self._lint_expression(node.get("right"), context)

    def _lint_expr_ConditionalExpression(self, node: Node, context: LifetimeContext) -> None:
        self._lint_expression(node.get("test"), context)
        self._lint_expression(node.get("consequent"), context)
        self._lint_expression(node.get("alternate"), context)

    def _lint_expr_CallExpression(self, node: Node, context: LifetimeContext) -> None:
        self._lint_expression(node.get("callee"), context)
        arguments = node.get("arguments") or []
        contexts = self.tracker.argument_contexts(node, context)
        for argument, argument_context in zip(arguments, contexts):
            self._lint_expression(argument, argument_context)

    def _lint_expr_NewExpression(self, node: Node, context: LifetimeContext) -> None:
        self._lint_expression(node.get("callee"), context)
        for argument in node.get("arguments") or []:
            self._lint_expression(argument, context)

    def _lint_expr_MemberExpression(self, node: Node, context: LifetimeContext) -> None:
        self._lint_expression(node.get("object"), context)
        if node.get("computed"):
            self._lint_expression(node.get("property"), context)

    def _lint_expr_ChainExpression(self, node: Node, context: LifetimeContext) -> None:
        self._lint_expression(node.get("expression"), context)

    def _lint_expr_SequenceExpression(self, node: Node, context: LifetimeContext) -> None:
        for expression in node.get("expressions", []):
            self._lint_expression(expression, context)

    _lint_expr_TemplateLiteral = _lint_expr_SequenceExpression

    def _lint_expr_TaggedTemplateExpression(self, node: Node, context: LifetimeContext) -> None:
        self._lint_expression(node.get("tag"), context)
        self._lint_expression(node.get("quasi"), context)

    def _lint_expr_SpreadElement(self, node: Node, context: LifetimeContext) -> None:
        self._lint_expression(node.get("argument"), context)

    _lint_expr_AwaitExpression = _lint_expr_SpreadElement

    def _lint_expr_YieldExpression(self, node: Node, context: LifetimeContext) -> None:
        self._lint_optional(node.get("argument"), context)


def lint(
    tree: Node,
    policy: AvailabilityPolicy,
    source_map: Optional[SourceMap] = None,
    *,
    tracker: Optional[LifetimeTracker] = None,
    initial_context: LifetimeContext = GLOBAL,
    fail_fast: bool = True,
    source_name: str = "<input>",
) -> LintReport:
    """
    Lint a parsed program against an availability policy.

    Args:
        tree: esprima `Program` dictionary (with `loc`/`range` data for positions).
        policy: Names forbidden everywhere / outside the request lifetime.
        source_map: Optional map used to report original-source positions.
        tracker: Handler registrations; defaults to service-worker style handlers.
        initial_context: Lifetime of top-level code (global unless told otherwise).
        fail_fast: Stop at the first violation (default) or collect all of them.
        source_name: Label used when rendering diagnostics.

    Returns:
        LintReport that is `ok` when no violation was found.

    Raises:
        UnsupportedNodeError: If the tree contains a node shape the linter does not know.
    """
    linter = Linter(policy, tracker=tracker, fail_fast=fail_fast)
    try:
        diagnostics = linter.lint_program(tree, initial_context)
    except PolicyViolation as violation:
        diagnostics = [violation.diagnostic]
    return finalize(diagnostics, source_map, source_name=source_name)


__all__ = ["Linter", "lint"]
