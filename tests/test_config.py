import textwrap

import pytest

from linter import (
    DEFAULT_EXPORTED_HANDLERS,
    DEFAULT_HANDLERS,
    ConfigError,
    HandlerRegistration,
    config_from_mapping,
    load_config,
)


def test_default_config_matches_builtin_handlers():
    config = load_config()
    assert "eval" in config.policy.unavailable
    assert {"fetch", "caches", "setTimeout"} <= config.policy.request_only
    assert not config.policy.overlap
    assert config.handlers == DEFAULT_HANDLERS
    assert config.exported_handlers == DEFAULT_EXPORTED_HANDLERS


def test_load_custom_config(tmp_path):
    path = tmp_path / "policy.yaml"
    path.write_text(
        textwrap.dedent(
            """
            unavailable: [unavailableApi]
            request_only: [requestData]
            handlers:
              - callee: register
                argument: 1
              - "router.on:2"
            """
        ),
        encoding="utf-8",
    )
    config = load_config(path)
    assert config.policy.unavailable == frozenset({"unavailableApi"})
    assert config.policy.request_only == frozenset({"requestData"})
    assert config.handlers == (
        HandlerRegistration("register", 1),
        HandlerRegistration("router.on", 2),
    )
    assert config.exported_handlers == frozenset()
    assert config.tracker().handlers == config.handlers


def test_empty_document_is_an_empty_config(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("", encoding="utf-8")
    config = load_config(path)
    assert config.policy.unavailable == frozenset()
    assert config.handlers == ()


def test_overlapping_names_warn(caplog):
    with caplog.at_level("WARNING", logger="linter.config"):
        config = config_from_mapping({"unavailable": ["x"], "request_only": ["x"]})
    assert config.policy.overlap == frozenset({"x"})
    assert "treated as unavailable" in caplog.text


@pytest.mark.parametrize(
    "data, message",
    [
        (["fetch"], "mapping"),
        ({"denied": ["fetch"]}, "Unknown configuration keys: denied"),
        ({"unavailable": "eval"}, "`unavailable` must be a list"),
        ({"request_only": [1, 2]}, "`request_only` must be a list"),
        ({"handlers": {"callee": "x"}}, "`handlers` must be a list"),
        ({"handlers": [{"callee": "x"}]}, "non-negative `argument`"),
        ({"handlers": [{"callee": "x", "argument": -1}]}, "non-negative `argument`"),
        ({"handlers": [{"argument": 1}]}, "`callee` path"),
        ({"handlers": ["addEventListener"]}, "Invalid handler entry"),
        ({"handlers": [3]}, "Invalid handler entry"),
    ],
)
def test_malformed_configs(data, message):
    with pytest.raises(ConfigError, match=message):
        config_from_mapping(data)


def test_missing_config_file(tmp_path):
    with pytest.raises(ConfigError, match="not found"):
        load_config(tmp_path / "nope.yaml")


def test_invalid_yaml(tmp_path):
    path = tmp_path / "broken.yaml"
    path.write_text("unavailable: [eval\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="Invalid YAML"):
        load_config(path)
