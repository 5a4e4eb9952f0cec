"""Runtime tunables: config file, environment and CLI overrides.

Precedence, lowest to highest: built-in ``Constants`` defaults, the YAML or
JSON config file, ``DEPGRAPH_*`` environment variables, CLI flags. Bad
values are logged and ignored so configuration never breaks the CLI.
"""

from __future__ import annotations

import json
import logging
import os
from typing import Any, Callable, Dict, Optional

import yaml

from constants import Constants

logger = logging.getLogger(__name__)

# config key -> (Constants attribute, converter)
_TUNABLES: Dict[str, tuple] = {
    "registry_url": ("REGISTRY_URL_NPM", lambda v: str(v).rstrip("/")),
    "max_tries": ("MAX_TRIES", int),
    "request_timeout": ("REQUEST_TIMEOUT", float),
    "max_concurrency": ("MAX_CONCURRENCY", int),
    "verify_integrity": ("VERIFY_INTEGRITY", lambda v: _to_bool(v)),
}

_ENV_KEYS = {
    Constants.ENV_REGISTRY_URL: "registry_url",
    Constants.ENV_MAX_TRIES: "max_tries",
    Constants.ENV_REQUEST_TIMEOUT: "request_timeout",
    Constants.ENV_MAX_CONCURRENCY: "max_concurrency",
    Constants.ENV_VERIFY_INTEGRITY: "verify_integrity",
}


def _to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in ("1", "true", "yes", "on"):
        return True
    if text in ("0", "false", "no", "off"):
        return False
    raise ValueError(f"not a boolean: {value!r}")


def _apply(key: str, value: Any, source: str) -> bool:
    """Set one tunable on Constants; returns False when rejected."""
    spec = _TUNABLES.get(key)
    if spec is None:
        logger.warning("Unknown %s setting ignored: %s", source, key)
        return False
    attr, convert = spec
    try:
        converted = convert(value)
    except (TypeError, ValueError) as exc:
        logger.warning("Invalid %s value for %s (%r): %s", source, key, value, exc)
        return False
    if isinstance(converted, (int, float)) and not isinstance(converted, bool) and converted <= 0:
        logger.warning("Invalid %s value for %s: must be positive", source, key)
        return False
    setattr(Constants, attr, converted)
    return True


def load_config_file(path: Optional[str]) -> Dict[str, Any]:
    """Load the ``resolver`` section of a YAML or JSON config file.

    Args:
        path: Path to YAML/JSON config file.

    Returns:
        Settings dict (empty when missing or unreadable).
    """
    if not path:
        return {}
    if not os.path.isfile(path):
        logger.warning("Config file not found: %s", path)
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            if path.lower().endswith(".json"):
                data = json.load(f)
            else:
                data = yaml.safe_load(f)
    except (OSError, ValueError, yaml.YAMLError) as e:
        logger.error("Failed to load config: %s", e)
        return {}
    if not isinstance(data, dict):
        return {}
    section = data.get("resolver", data)
    return section if isinstance(section, dict) else {}


def apply_config_file(path: Optional[str]) -> None:
    for key, value in load_config_file(path).items():
        _apply(key, value, "config")


def apply_env_overrides(environ: Optional[Dict[str, str]] = None) -> None:
    env = os.environ if environ is None else environ
    for env_key, key in _ENV_KEYS.items():
        value = env.get(env_key)
        if value is not None and value.strip():
            _apply(key, value.strip(), "environment")


def apply_cli_overrides(args) -> None:
    """Apply CLI overrides (highest precedence)."""
    overrides: Dict[str, Callable[[Any], Any]] = {
        "REGISTRY": lambda v: _apply("registry_url", v, "CLI"),
        "MAX_TRIES": lambda v: _apply("max_tries", v, "CLI"),
        "MAX_CONCURRENCY": lambda v: _apply("max_concurrency", v, "CLI"),
    }
    for attr, setter in overrides.items():
        value = getattr(args, attr, None)
        if value is not None:
            setter(value)
    if getattr(args, "NO_VERIFY", False):
        Constants.VERIFY_INTEGRITY = False


def load_runtime_config(args) -> None:
    """Apply every configuration layer in precedence order."""
    apply_config_file(getattr(args, "CONFIG", None))
    apply_env_overrides()
    apply_cli_overrides(args)
