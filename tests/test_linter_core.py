import pytest

from linter import (
    GLOBAL,
    REQUEST,
    AvailabilityPolicy,
    HandlerRegistration,
    LifetimeTracker,
    PolicyList,
    UnsupportedNodeError,
    lint,
)
from parser import parse_js

POLICY = AvailabilityPolicy(
    unavailable=frozenset({"eval", "unavailableApi", "localStorage"}),
    request_only=frozenset({"fetch", "caches", "setTimeout", "requestData"}),
)


def _lint(source: str, *, source_type: str = "script", **kwargs):
    parse_result = parse_js(source, source_name="inline.js", source_type=source_type)
    assert parse_result.ast is not None
    return lint(parse_result.ast, kwargs.pop("policy", POLICY), source_name="inline.js", **kwargs)


def _violation(source: str, **kwargs):
    report = _lint(source, **kwargs)
    assert not report.ok, "expected a policy violation"
    return report.first


ACCEPTED = [
    # Local bindings shadow platform names.
    "function unavailableApi() { return 1; } unavailableApi();",
    "unavailableApi(); function unavailableApi() { return 1; }",
    "function load(fetch) { return fetch('/'); } load(function () {});",
    "var caches = []; caches.push(1);",
    "const { fetch } = helpers; fetch('/');",
    "const [first, ...fetch] = list; fetch.length;",
    "function go() { return caches.keys(); } const caches = new Map();",
    "try { run(); } catch (setTimeout) { setTimeout.stack; }",
    "for (let fetch of urls) { fetch.trim(); }",
    "for (var setTimeout in timers) { setTimeout; }",
    "class caches {} new caches();",
    "const make = function fetch() { return fetch; };",
    "{ let requestData = 1; requestData += 1; }",
    # Property names are not references.
    "api.fetch('/'); api['caches'];",
    "const table = { fetch: 1, caches() { return 2; } };",
    "class Client { fetch() { return 1; } get caches() { return 2; } }",
    # Code that only runs per request.
    "addEventListener('fetch', function (event) { event.respondWith(fetch(event.request)); });",
    "addEventListener('fetch', (event) => event.respondWith(fetch(event.request)));",
    "self.addEventListener('fetch', (event) => { setTimeout(() => {}, 1); });",
    "addEventListener('fetch', (e) => { function inner() { return caches.open('v1'); } inner(); });",
    "addEventListener('fetch', async (e) => { await fetch(e.request); });",
    # Unlisted globals are ordinary user globals.
    "console.log(Math.max(1, 2), JSON.stringify({}));",
    "label: for (;;) { break label; }",
    "debugger; ;",
]


@pytest.mark.parametrize("source", ACCEPTED)
def test_accepts_permitted_programs(source: str):
    report = _lint(source)
    assert report.ok, report.diagnostics
    assert report.diagnostics == ()


REJECTED = [
    ("requestData.read();", "requestData", PolicyList.REQUEST_ONLY),
    ("eval('1');", "eval", PolicyList.UNAVAILABLE),
    ("if (ready) { fetch('/'); }", "fetch", PolicyList.REQUEST_ONLY),
    ("while (caches) {}", "caches", PolicyList.REQUEST_ONLY),
    ("do { x(); } while (requestData);", "requestData", PolicyList.REQUEST_ONLY),
    ("for (var i = 0; i < fetch.length; i++) {}", "fetch", PolicyList.REQUEST_ONLY),
    ("for (const key of caches) {}", "caches", PolicyList.REQUEST_ONLY),
    ("switch (mode) { case fetch: break; }", "fetch", PolicyList.REQUEST_ONLY),
    ("try {} finally { eval('x'); }", "eval", PolicyList.UNAVAILABLE),
    ("throw fetch;", "fetch", PolicyList.REQUEST_ONLY),
    ("with (scope) { unavailableApi; }", "unavailableApi", PolicyList.UNAVAILABLE),
    ("api[fetch];", "fetch", PolicyList.REQUEST_ONLY),
    ("const table = { fetch };", "fetch", PolicyList.REQUEST_ONLY),
    ("const table = { [caches]: 1 };", "caches", PolicyList.REQUEST_ONLY),
    ("const { a = fetch() } = {};", "fetch", PolicyList.REQUEST_ONLY),
    ("function f(a = caches) { return a; }", "caches", PolicyList.REQUEST_ONLY),
    ("fetch = null;", "fetch", PolicyList.REQUEST_ONLY),
    ("[a, caches] = pair;", "caches", PolicyList.REQUEST_ONLY),
    ("requestData++;", "requestData", PolicyList.REQUEST_ONLY),
    ("const t = `${caches}`;", "caches", PolicyList.REQUEST_ONLY),
    ("tag`${fetch}`;", "fetch", PolicyList.REQUEST_ONLY),
    ("new Wrapper(fetch);", "fetch", PolicyList.REQUEST_ONLY),
    ("x = ready ? fetch : null;", "fetch", PolicyList.REQUEST_ONLY),
    ("typeof caches;", "caches", PolicyList.REQUEST_ONLY),
    ("class Store extends localStorage {}", "localStorage", PolicyList.UNAVAILABLE),
    ("(0, eval)('1');", "eval", PolicyList.UNAVAILABLE),
    ("call(...caches);", "caches", PolicyList.REQUEST_ONLY),
    ("function* gen() { yield fetch; }", "fetch", PolicyList.REQUEST_ONLY),
    # Functions declared in the global lifetime stay there, even when called later.
    ("function later() { setTimeout(() => {}, 1); } later();", "setTimeout", PolicyList.REQUEST_ONLY),
    # Banned names stay banned inside handlers.
    ("addEventListener('fetch', (e) => { eval('1'); });", "eval", PolicyList.UNAVAILABLE),
    # Only the registered argument position is a handler.
    ("addEventListener(function () { fetch('/'); }, 'fetch');", "fetch", PolicyList.REQUEST_ONLY),
    # Handlers passed by name are not recognised.
    ("function handle(e) { return fetch(e.request); } addEventListener('fetch', handle);", "fetch", PolicyList.REQUEST_ONLY),
]


@pytest.mark.parametrize("source, name, listed", REJECTED)
def test_rejects_forbidden_references(source: str, name: str, listed: PolicyList):
    diagnostic = _violation(source)
    assert diagnostic.name == name
    assert diagnostic.listed is listed


def test_unavailable_inside_handler_records_request_lifetime():
    diagnostic = _violation("addEventListener('fetch', (e) => { localStorage.clear(); });")
    assert diagnostic.listed is PolicyList.UNAVAILABLE
    assert diagnostic.in_request_lifetime is True
    assert diagnostic.code == "unavailable-api"


def test_block_binding_does_not_leak_out_of_its_block():
    source = "{\n  let fetch = 1;\n  fetch;\n}\nfetch;\n"
    diagnostic = _violation(source)
    assert diagnostic.name == "fetch"
    assert diagnostic.loc.line == 5
    assert diagnostic.loc.column == 0


def test_catch_binding_does_not_leak_out_of_its_clause():
    source = "try {} catch (caches) { caches; }\ncaches;"
    diagnostic = _violation(source)
    assert diagnostic.loc.line == 2


def test_first_violation_in_traversal_order_is_reported():
    source = "var a = 1;\nsetTimeout(f, 1);\nlocalStorage.getItem('k');\n"
    report = _lint(source)
    assert len(report.diagnostics) == 1
    diagnostic = report.first
    assert diagnostic.name == "setTimeout"
    assert (diagnostic.loc.line, diagnostic.loc.column) == (2, 0)


def test_collect_all_reports_every_violation_in_order():
    source = "setTimeout(f, 1);\nif (x) { localStorage.getItem(fetch); }\n"
    report = _lint(source, fail_fast=False)
    assert [d.name for d in report.diagnostics] == ["setTimeout", "localStorage", "fetch"]
    assert [d.loc.line for d in report.diagnostics] == [1, 2, 2]


ORDERED_POLICY = AvailabilityPolicy(request_only=frozenset({"a", "b", "c", "d", "e"}))


@pytest.mark.parametrize(
    "source, expected",
    [
        ("for (x = a; b; c) { d; }", ["a", "b", "c", "d"]),
        ("switch (a) { case b: c; case d: e; }", ["a", "b", "c", "d", "e"]),
        ("try { a; } catch ({ p = c }) { b; } finally { d; }", ["a", "b", "c", "d"]),
    ],
)
def test_compound_statements_report_in_execution_order(source, expected):
    report = _lint(source, policy=ORDERED_POLICY, fail_fast=False)
    assert [d.name for d in report.diagnostics] == expected


def test_handler_context_does_not_leak_to_siblings():
    source = "register(function () {}, function () { fetch('/'); });"
    tracker = LifetimeTracker([HandlerRegistration("register", 0)])
    diagnostic = _violation(source, tracker=tracker)
    assert diagnostic.name == "fetch"
    assert diagnostic.in_request_lifetime is False


def test_custom_registration_table():
    source = 'register("onRequest", function () { requestData.read(); });'
    tracker = LifetimeTracker([HandlerRegistration("register", 1)])
    assert _lint(source, tracker=tracker).ok
    assert not _lint(source, tracker=LifetimeTracker([])).ok


def test_initial_request_context():
    assert _lint("fetch('/');", initial_context=REQUEST).ok
    assert not _lint("fetch('/');", initial_context=GLOBAL).ok


def test_module_syntax():
    source = (
        "import { fetch } from './polyfill.js';\n"
        "import * as caches from './cache.js';\n"
        "export const warm = fetch('/');\n"
        "export function open() { return caches.open(); }\n"
    )
    assert _lint(source, source_type="module").ok


def test_export_specifier_references_local_binding():
    assert _lint("const x = 1; export { x as fetch };", source_type="module").ok
    diagnostic = _violation("export { caches };", source_type="module")
    assert diagnostic.name == "caches"
    assert _lint("export { caches } from './cache.js';", source_type="module").ok


def test_exported_handler_methods_run_per_request():
    source = "export default { async fetch(request) { return fetch(request); } };"
    assert _lint(source, source_type="module").ok

    other = "export default { async warm() { return fetch('/'); } };"
    diagnostic = _violation(other, source_type="module")
    assert diagnostic.name == "fetch"


def test_exported_handler_names_are_configurable():
    source = "export default { onRequest: (req) => fetch(req) };"
    tracker = LifetimeTracker([], exported_handlers={"onRequest"})
    assert _lint(source, source_type="module", tracker=tracker).ok
    assert not _lint(source, source_type="module").ok


def test_lint_is_idempotent():
    parse_result = parse_js("caches.open('v1');\nfetch('/');", source_name="inline.js")
    first = lint(parse_result.ast, POLICY, fail_fast=False)
    second = lint(parse_result.ast, POLICY, fail_fast=False)
    assert first == second
    assert len(first.diagnostics) == 2


def test_tree_is_not_mutated():
    import copy

    parse_result = parse_js("function f(a = fetch) {} addEventListener('x', () => caches);")
    snapshot = copy.deepcopy(parse_result.ast)
    lint(parse_result.ast, POLICY, fail_fast=False)
    assert parse_result.ast == snapshot


def test_unknown_node_type_fails_loudly():
    program = {"type": "Program", "body": [{"type": "PipelineStatement"}]}
    with pytest.raises(UnsupportedNodeError, match="PipelineStatement"):
        lint(program, POLICY)


def test_root_must_be_a_program():
    with pytest.raises(UnsupportedNodeError):
        lint({"type": "ExpressionStatement"}, POLICY)
