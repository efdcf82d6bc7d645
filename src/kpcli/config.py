#!/usr/bin/env python3
"""
KPCLI CONFIGURATION
-------------------
Resolves settings in increasing precedence:

  1. built-in defaults,
  2. ~/.config/kp/config.yaml (or the file named by $KP_CONFIG),
  3. environment variables,
  4. global command-line flags (applied by the CLI via with_overrides()).
"""

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from ruamel.yaml import YAML, YAMLError

from kpcli.core.waiter import DEFAULT_TIMEOUT
from kpcli.exceptions import ConfigError

DEFAULT_CONFIG_PATH = Path.home() / ".config" / "kp" / "config.yaml"

_ENV_KEYS = {
    "kubeconfig": ("KP_KUBECONFIG", "KUBECONFIG"),
    "context": ("KP_CONTEXT",),
    "kubectl": ("KP_KUBECTL",),
    "namespace": ("KP_NAMESPACE",),
    "wait_timeout": ("KP_WAIT_TIMEOUT",),
}


@dataclass(frozen=True)
class Config:
    """kp configuration."""

    kubeconfig: Optional[str] = None
    context: Optional[str] = None
    kubectl: str = "kubectl"
    namespace: str = "default"
    wait_timeout: float = DEFAULT_TIMEOUT

    @classmethod
    def load(cls, environ: Optional[Mapping[str, str]] = None,
             path: Optional[Path] = None) -> "Config":
        """Load config from the yaml file and the environment."""
        env = os.environ if environ is None else environ
        config_path = path or Path(env.get("KP_CONFIG") or DEFAULT_CONFIG_PATH)

        values: Dict[str, Any] = {}
        values.update(_read_file(config_path))
        for key, names in _ENV_KEYS.items():
            for name in names:
                if env.get(name):
                    values[key] = env[name]
                    break

        return cls()._merged(values, source=str(config_path))

    def with_overrides(self, **overrides: Any) -> "Config":
        """Returns a copy with every non-None override applied."""
        values = {key: value for key, value in overrides.items() if value is not None}
        return self._merged(values, source="command line")

    def _merged(self, values: Dict[str, Any], source: str) -> "Config":
        unknown = sorted(set(values) - set(_ENV_KEYS))
        if unknown:
            raise ConfigError(f"unknown setting(s) in {source}: {', '.join(unknown)}")

        if "wait_timeout" in values:
            values["wait_timeout"] = _parse_timeout(values["wait_timeout"], source)
        for key in ("kubeconfig", "context", "kubectl", "namespace"):
            if key in values:
                values[key] = str(values[key])
        return replace(self, **values)


def _parse_timeout(value: Any, source: str) -> float:
    try:
        timeout = float(value)
    except (TypeError, ValueError):
        raise ConfigError(f"wait_timeout in {source} must be a number of seconds, got {value!r}")
    if timeout <= 0:
        raise ConfigError(f"wait_timeout in {source} must be positive, got {value!r}")
    return timeout


def _read_file(config_path: Path) -> Dict[str, Any]:
    if not config_path.exists():
        return {}
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = YAML(typ='safe').load(f) or {}
    except (OSError, YAMLError) as e:
        raise ConfigError(f"Unable to load config from {config_path}: {e}")
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {config_path} must hold a map of settings")
    return dict(data)
