"""
utils/config.py
YAML configuration loader.

A missing file is not an error: the built-in defaults apply. Values found
in the file are deep-merged over the defaults, so a config may set only the
keys it cares about.

    api:
      host: 127.0.0.1
      port: 5000
    scan:
      default_ports: "22,80,443,3306,3389,8080"
      default_timeout: 3
      max_ports: 1000
      max_concurrent: 50
      grab_banners: true
    logging:
      level: INFO
    instances:
      - name: ssh-honeypot
        container_name: cowrie-1
        honeypot_ip: 172.17.0.2
        port_mappings: {"22": "2222"}
"""

from __future__ import annotations

import copy
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from utils.constants import (
    DEFAULT_PORTS, DEFAULT_TIMEOUT_S, MAX_CONCURRENT_PROBES,
    MAX_PORTS_PER_SCAN,
)

DEFAULT_CONFIG: Dict[str, Any] = {
    "api": {
        "host":       "127.0.0.1",
        "port":       5000,
        "secret_key": "",
    },
    "scan": {
        "default_ports":   DEFAULT_PORTS,
        "default_timeout": DEFAULT_TIMEOUT_S,
        "max_ports":       MAX_PORTS_PER_SCAN,
        "max_concurrent":  MAX_CONCURRENT_PROBES,
        "grab_banners":    True,
    },
    "logging": {
        "level": "INFO",
    },
    "instances": [],
}


class ConfigError(ValueError):
    """Raised when the config file exists but cannot be used."""


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    out = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(out.get(key), dict):
            out[key] = _merge(out[key], value)
        else:
            out[key] = value
    return out


def load_config(path: Optional[str | Path] = "config.yaml") -> Dict[str, Any]:
    """Load ``path`` and merge it over :data:`DEFAULT_CONFIG`."""
    defaults = copy.deepcopy(DEFAULT_CONFIG)
    if path is None:
        return defaults

    try:
        with open(path) as f:
            loaded = yaml.safe_load(f) or {}
    except FileNotFoundError:
        return defaults
    except yaml.YAMLError as exc:
        raise ConfigError(f"Cannot parse config {str(path)!r}: {exc}") from exc

    if not isinstance(loaded, dict):
        raise ConfigError(
            f"Config {str(path)!r} must be a mapping, got {type(loaded).__name__}"
        )
    return _merge(defaults, loaded)


__all__ = ["DEFAULT_CONFIG", "ConfigError", "load_config"]
