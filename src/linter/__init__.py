"""Lifetime-aware availability linting for JavaScript ASTs."""

from .config import DEFAULT_CONFIG_FILE, LintConfig, config_from_mapping, load_config
from .context import (
    DEFAULT_EXPORTED_HANDLERS,
    DEFAULT_HANDLERS,
    GLOBAL,
    REQUEST,
    HandlerRegistration,
    LifetimeContext,
    LifetimeTracker,
)
from .core import Linter, lint
from .errors import ConfigError, LintError, PolicyViolation, UnsupportedNodeError
from .policy import AvailabilityPolicy, PolicyList

__all__ = [
    "AvailabilityPolicy",
    "ConfigError",
    "DEFAULT_CONFIG_FILE",
    "DEFAULT_EXPORTED_HANDLERS",
    "DEFAULT_HANDLERS",
    "GLOBAL",
    "HandlerRegistration",
    "LifetimeContext",
    "LifetimeTracker",
    "LintConfig",
    "LintError",
    "Linter",
    "PolicyList",
    "PolicyViolation",
    "REQUEST",
    "UnsupportedNodeError",
    "config_from_mapping",
    "lint",
    "load_config",
]
