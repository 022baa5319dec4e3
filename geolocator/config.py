import copy
import logging
import os
from typing import Any, Dict, Optional

import yaml

logger = logging.getLogger("Geolocator.Config")

DEFAULT_CONFIG_PATH = "/etc/geolocator/config.yaml"

# Tunables left as None resolve through geolocator.model.settings.Config,
# so GEOLOCATOR_* environment overrides apply unless the YAML sets them.
DEFAULT_CONFIG: Dict[str, Any] = {
    "table": {
        "path": None,
        "codec": None,
        "precision": None,
        "strict": None,
        "skip_header": None,
    },
    "features": {
        "enabled": False,
        "accuracy_file": None,
        "theta_g": None,
        "theta_t": None,
    },
    "queries": {
        "path": None,
        "output": None,
        "restrict_vocabulary": True,
    },
    "scoring": {
        "window": None,
        "max_workers": None,
    },
    "http": {
        "host": "127.0.0.1",
        "port": 8000,
    },
    "logging": {
        "level": "INFO",
        "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    },
}


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge override into a copy of base."""
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load the YAML application config merged over the built-in defaults.

    An explicit path must exist. Without one, DEFAULT_CONFIG_PATH is used
    when present and the defaults otherwise.
    """
    path = config_path or DEFAULT_CONFIG_PATH

    if not os.path.exists(path):
        if config_path:
            raise FileNotFoundError(f"Config file not found: {config_path}")
        logger.debug(f"No config file at {path}, using defaults")
        return copy.deepcopy(DEFAULT_CONFIG)

    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a mapping, got {type(data).__name__}")

    logger.info(f"Loaded config from {path}")
    return _merge(DEFAULT_CONFIG, data)


def save_config(config: Dict[str, Any], config_path: str) -> None:
    directory = os.path.dirname(config_path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(config_path, "w", encoding="utf-8") as f:
        yaml.safe_dump(
            config,
            f,
            default_flow_style=False,
            indent=2,
            sort_keys=False,
            allow_unicode=True,
        )
    logger.info(f"Configuration saved to {config_path}")
