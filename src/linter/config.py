"""
Lint configuration loader.

A configuration is a YAML mapping with four optional keys:

    unavailable: [name, ...]
    request_only: [name, ...]
    handlers:
      - callee: self.addEventListener
        argument: 1
      - "router.on:2"
    exported_handlers: [fetch, ...]

A handler entry is either a `{callee, argument}` mapping or the shorthand
string `"callee:argument"`; `argument` is the zero-based position of the
function that runs per request.

Without an explicit path the bundled `default_policy.yaml` is used.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, FrozenSet, List, Optional, Tuple, Union

import yaml

from .context import HandlerRegistration, LifetimeTracker
from .errors import ConfigError
from .policy import AvailabilityPolicy

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = Path(__file__).parent / "default_policy.yaml"

_KNOWN_KEYS = {"unavailable", "request_only", "handlers", "exported_handlers"}


@dataclass(frozen=True)
class LintConfig:
    policy: AvailabilityPolicy = field(default_factory=AvailabilityPolicy)
    handlers: Tuple[HandlerRegistration, ...] = ()
    exported_handlers: FrozenSet[str] = frozenset()

    def tracker(self) -> LifetimeTracker:
        return LifetimeTracker(self.handlers, self.exported_handlers)


def _name_list(data: Dict[str, Any], key: str) -> List[str]:
    value = data.get(key) or []
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ConfigError(f"`{key}` must be a list of names")
    return value


def _handler(entry: Any) -> HandlerRegistration:
    if isinstance(entry, str):
        try:
            return HandlerRegistration.parse(entry)
        except ValueError as exc:
            raise ConfigError(f"Invalid handler entry: {exc}") from exc
    if not isinstance(entry, dict):
        raise ConfigError(f"Invalid handler entry: {entry!r}")
    callee = entry.get("callee")
    argument = entry.get("argument")
    if not isinstance(callee, str) or not callee:
        raise ConfigError(f"Handler entry needs a `callee` path: {entry!r}")
    if not isinstance(argument, int) or isinstance(argument, bool) or argument < 0:
        raise ConfigError(f"Handler entry needs a non-negative `argument`: {entry!r}")
    return HandlerRegistration(callee=callee, argument=argument)


def config_from_mapping(data: Dict[str, Any]) -> LintConfig:
    """Build a LintConfig from an already parsed mapping."""
    if not isinstance(data, dict):
        raise ConfigError(f"Configuration must be a mapping, got {type(data).__name__}")
    unknown = set(data) - _KNOWN_KEYS
    if unknown:
        raise ConfigError(f"Unknown configuration keys: {', '.join(sorted(unknown))}")

    policy = AvailabilityPolicy(
        unavailable=frozenset(_name_list(data, "unavailable")),
        request_only=frozenset(_name_list(data, "request_only")),
    )
    if policy.overlap:
        logger.warning(
            "names listed as both unavailable and request_only are treated as unavailable: %s",
            ", ".join(sorted(policy.overlap)),
        )

    handlers_data = data.get("handlers") or []
    if not isinstance(handlers_data, list):
        raise ConfigError("`handlers` must be a list")
    return LintConfig(
        policy=policy,
        handlers=tuple(_handler(entry) for entry in handlers_data),
        exported_handlers=frozenset(_name_list(data, "exported_handlers")),
    )


def load_config(path: Optional[Union[str, Path]] = None) -> LintConfig:
    """
    Load a lint configuration from YAML.

    Args:
        path: Configuration file; defaults to the bundled default policy.

    Returns:
        The parsed LintConfig.

    Raises:
        ConfigError: If the file is missing, is not valid YAML, or is malformed.
    """
    config_path = Path(path) if path else DEFAULT_CONFIG_FILE
    if not config_path.exists():
        raise ConfigError(f"Configuration file not found: {config_path}")
    try:
        with config_path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {config_path}: {exc}") from exc
    config = config_from_mapping(data or {})
    logger.debug(
        "loaded %s: %d unavailable, %d request-only, %d handler shapes",
        config_path,
        len(config.policy.unavailable),
        len(config.policy.request_only),
        len(config.handlers),
    )
    return config


__all__ = ["DEFAULT_CONFIG_FILE", "LintConfig", "config_from_mapping", "load_config"]
