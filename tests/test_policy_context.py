import pytest

from linter import (
    DEFAULT_HANDLERS,
    GLOBAL,
    REQUEST,
    AvailabilityPolicy,
    HandlerRegistration,
    LifetimeContext,
    LifetimeTracker,
    PolicyList,
)
from linter.context import callee_path
from parser import parse_js


def _expression(source: str):
    result = parse_js(source, source_name="inline.js")
    return result.ast["body"][0]["expression"]


POLICY = AvailabilityPolicy(
    unavailable=frozenset({"eval", "shared"}),
    request_only=frozenset({"fetch", "shared"}),
)


@pytest.mark.parametrize(
    "name, context, expected",
    [
        ("eval", GLOBAL, PolicyList.UNAVAILABLE),
        ("eval", REQUEST, PolicyList.UNAVAILABLE),
        ("fetch", GLOBAL, PolicyList.REQUEST_ONLY),
        ("fetch", REQUEST, None),
        ("shared", REQUEST, PolicyList.UNAVAILABLE),
        ("userGlobal", GLOBAL, None),
        ("userGlobal", REQUEST, None),
    ],
)
def test_policy_violation(name, context, expected):
    assert POLICY.violation(name, context) is expected
    assert POLICY.permitted(name, context) is (expected is None)


def test_policy_accepts_any_iterable_and_reports_overlap():
    policy = AvailabilityPolicy(unavailable=["a", "b"], request_only=("b", "c"))
    assert policy.unavailable == frozenset({"a", "b"})
    assert policy.overlap == frozenset({"b"})


def test_context_is_a_value():
    assert LifetimeContext() == GLOBAL
    assert GLOBAL.entering_request() == REQUEST
    assert REQUEST.entering_request() is REQUEST
    assert GLOBAL.in_request_lifetime is False


@pytest.mark.parametrize(
    "source, expected",
    [
        ("addEventListener()", "addEventListener"),
        ("self.addEventListener()", "self.addEventListener"),
        ("globalThis['addEventListener']()", "globalThis.addEventListener"),
        ("this.router.on()", "this.router.on"),
        ("app[method]()", None),
        ("makeApp().listen()", None),
    ],
)
def test_callee_path(source, expected):
    assert callee_path(_expression(source)["callee"]) == expected


def test_handler_registration_parse():
    assert HandlerRegistration.parse("self.addEventListener:1") == HandlerRegistration(
        "self.addEventListener", 1
    )
    with pytest.raises(ValueError):
        HandlerRegistration.parse("addEventListener")
    with pytest.raises(ValueError):
        HandlerRegistration.parse("addEventListener:one")


def test_argument_contexts_mark_function_at_registered_position():
    tracker = LifetimeTracker(DEFAULT_HANDLERS)
    call = _expression("addEventListener('fetch', () => {}, function () {})")
    assert tracker.argument_contexts(call, GLOBAL) == [GLOBAL, REQUEST, GLOBAL]


def test_argument_contexts_ignore_non_function_arguments():
    tracker = LifetimeTracker(DEFAULT_HANDLERS)
    call = _expression("addEventListener('fetch', handle)")
    assert tracker.argument_contexts(call, GLOBAL) == [GLOBAL, GLOBAL]


def test_multiple_positions_for_one_callee():
    tracker = LifetimeTracker(
        [HandlerRegistration("router.on", 1), HandlerRegistration("router.on", 2)]
    )
    call = _expression("router.on('/path', () => {}, () => {})")
    assert tracker.handler_positions(call) == frozenset({1, 2})
    assert tracker.argument_contexts(call, GLOBAL) == [GLOBAL, REQUEST, REQUEST]


def test_exported_property_context():
    tracker = LifetimeTracker([], exported_handlers={"fetch"})
    source = "({ fetch() {}, 'scheduled': () => {}, fetchLike: 1, other() {} })"
    properties = _expression(source)["properties"]
    contexts = [tracker.exported_property_context(prop, GLOBAL) for prop in properties]
    assert contexts == [REQUEST, GLOBAL, GLOBAL, GLOBAL]
