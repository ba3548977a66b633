#!/usr/bin/env python3
"""
DASHCURO SETTINGS
-----------------
Resolves run configuration from, in increasing order of precedence:
built-in defaults, an optional YAML config file, DASHCURO_* environment
variables and command-line flags.

Example config file:

    url: https://grafana.example.com
    api_token: glsa_xxx
    checkpoint: exemplar-dashboards
    strategy: tree
    retries: 3
    timeout: 30

Author: DashCuro Team
Date: 2026-10-18
"""

import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional
from urllib.parse import urlparse

from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from dashcuro.checkpoint.store import DEFAULT_CHECKPOINT
from dashcuro.client.grafana import DEFAULT_RETRIES, DEFAULT_TIMEOUT
from dashcuro.core.errors import ConfigError
from dashcuro.rules.exemplar import STRATEGIES

ENV_PREFIX = "DASHCURO_"

@dataclass
class Settings:
    url: str = ""
    api_token: str = ""
    checkpoint: str = DEFAULT_CHECKPOINT
    strategy: str = "text"
    retries: int = DEFAULT_RETRIES
    timeout: float = DEFAULT_TIMEOUT

    def merged(self, overrides: Mapping[str, Any]) -> "Settings":
        """Returns a copy with every non-empty override applied."""
        known = {f.name for f in fields(self)}
        changes = {}
        for key, value in overrides.items():
            if key not in known or value is None or value == "":
                continue
            try:
                if key == "retries":
                    value = int(value)
                elif key == "timeout":
                    value = float(value)
                else:
                    value = str(value)
            except (TypeError, ValueError) as e:
                raise ConfigError(f"Invalid value for '{key}': {value!r}") from e
            changes[key] = value
        return replace(self, **changes)

    def validate(self) -> "Settings":
        if not self.url:
            raise ConfigError("Failed to provide required flag 'url'")
        if not self.api_token:
            raise ConfigError("Failed to provide required flag 'api-token'")
        parsed = urlparse(self.url)
        if not parsed.scheme or not parsed.netloc:
            raise ConfigError(f"Grafana URL '{self.url}' must include scheme and host")
        if self.strategy not in STRATEGIES:
            raise ConfigError(f"Unknown strategy '{self.strategy}'. Expected one of {STRATEGIES}")
        if self.retries < 0:
            raise ConfigError("retries must not be negative")
        if self.timeout <= 0:
            raise ConfigError("timeout must be positive")
        return self

def load_config_file(path: Optional[str]) -> Dict[str, Any]:
    if not path:
        return {}
    config_path = Path(path)
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = YAML(typ="safe").load(f)
    except OSError as e:
        raise ConfigError(f"Unable to read config file {config_path}: {e}") from e
    except YAMLError as e:
        raise ConfigError(f"Config file {config_path} is not valid YAML: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {config_path} must contain a mapping")
    # Accept both api_token and api-token spellings
    return {str(k).replace("-", "_"): v for k, v in data.items()}

def load_env(environ: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
    environ = os.environ if environ is None else environ
    values = {}
    for f in fields(Settings):
        key = ENV_PREFIX + f.name.upper()
        if environ.get(key):
            values[f.name] = environ[key]
    return values

def resolve_settings(cli_values: Mapping[str, Any], config_path: Optional[str] = None,
                     environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Merges every source and validates the result. Raises ConfigError."""
    settings = Settings()
    settings = settings.merged(load_config_file(config_path))
    settings = settings.merged(load_env(environ))
    settings = settings.merged(cli_values)
    return settings.validate()
