"""3-layer configuration for report runs.

Loads and merges configuration from:
1. Default settings (built-in)
2. YAML config file (securescore.yaml or --config)
3. CLI parameters (override)
"""

from __future__ import annotations

import copy
import os
from pathlib import Path
from typing import Optional

import yaml

from .errors import ConfigurationError

DEFAULT_CONFIG_FILE = "securescore.yaml"

DEFAULT_CONFIG: dict = {
    "graph": {
        "cloud": "commercial",
        "tenant_id": "",
        "client_id": "",
        "client_secret_env": "SECURESCORE_CLIENT_SECRET",
        "timeout_seconds": 60,
        "retry_attempts": 3,
        "retry_delay_seconds": 5,
    },
    "report": {
        "output_dir": "reports",
        "title": "Microsoft Secure Score Report",
        "csv": False,
        "include_deprecated": False,
        "generated_by": "",
    },
    "mappings": {
        "path": "",
    },
}

CLOUD_ENDPOINTS: dict[str, dict[str, str]] = {
    "commercial": {
        "login": "https://login.microsoftonline.com",
        "graph": "https://graph.microsoft.com",
    },
    "usgov": {
        "login": "https://login.microsoftonline.us",
        "graph": "https://graph.microsoft.us",
    },
    "china": {
        "login": "https://login.chinacloudapi.cn",
        "graph": "https://microsoftgraph.chinacloudapi.cn",
    },
}


def deep_merge(base: dict, override: dict) -> dict:
    """Deep merge two dicts. Arrays are replaced, not merged."""
    result = {}
    for key in base:
        result[key] = base[key]
    for key, value in override.items():
        base_value = result.get(key)
        if isinstance(base_value, dict) and isinstance(value, dict):
            result[key] = deep_merge(base_value, value)
        else:
            result[key] = value
    return result


def load_config_file(config_path: Optional[Path] = None) -> dict:
    """Load a YAML config file.

    Without an explicit path, ``securescore.yaml`` in the working directory
    is used when present. An explicit path that does not exist, or any file
    that is not valid YAML, is a configuration error.
    """
    if config_path is None:
        config_path = Path.cwd() / DEFAULT_CONFIG_FILE
        if not config_path.exists():
            return {}
    elif not config_path.exists():
        raise ConfigurationError(f"Config file not found: {config_path}")

    try:
        content = config_path.read_text(encoding="utf-8-sig")  # utf-8-sig strips BOM
        data = yaml.safe_load(content) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Cannot parse config file {config_path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file must contain a mapping: {config_path}")

    for section in DEFAULT_CONFIG:
        # An empty section ("graph:") parses to None
        if section in data and data[section] is None:
            data[section] = {}
        elif section in data and not isinstance(data[section], dict):
            raise ConfigurationError(
                f"Config section '{section}' must be a mapping: {config_path}"
            )
    return data


def get_effective_config(
    config_path: Optional[Path] = None,
    cli_overrides: Optional[dict] = None,
) -> dict:
    """Get the fully resolved configuration for a run."""
    config = copy.deepcopy(DEFAULT_CONFIG)

    file_config = load_config_file(config_path)
    if file_config:
        config = deep_merge(config, file_config)

    if cli_overrides:
        config = deep_merge(config, cli_overrides)

    cloud = config["graph"].get("cloud", "commercial")
    if cloud not in CLOUD_ENDPOINTS:
        raise ConfigurationError(
            f"Unknown cloud '{cloud}'. Expected one of: {', '.join(CLOUD_ENDPOINTS)}"
        )

    return config


def get_client_secret(graph_config: dict) -> Optional[str]:
    """Client secret from the configured environment variable."""
    env_var = graph_config.get("client_secret_env") or "SECURESCORE_CLIENT_SECRET"
    return os.environ.get(env_var)


def get_cloud_endpoints(cloud: str) -> dict[str, str]:
    return CLOUD_ENDPOINTS.get(cloud, CLOUD_ENDPOINTS["commercial"])
