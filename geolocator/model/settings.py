"""
Location Model Configuration
============================

Centralized tunables for the cell codec, loader and scorer. All magic
numbers and thresholds are defined here for easy tuning and consistency.

Usage
-----
    from geolocator.model.settings import Config

    # Use values directly
    window = Config.SCORING.CONFIDENCE_WINDOW

    # Or get entire config group
    loader_config = Config.LOADER

Environment Override
-------------------
Configuration values can be overridden via environment variables using
the pattern: GEOLOCATOR_{GROUP}_{NAME}

For example:
    GEOLOCATOR_SCORING_CONFIDENCE_WINDOW=0.5
    GEOLOCATOR_CELLS_CODEC=text

Hot Reload
----------
    from geolocator.model.settings import reload_config, Config

    os.environ["GEOLOCATOR_CELLS_PRECISION"] = "3"
    reload_config()
    print(Config.CELLS.PRECISION)

Thread Safety
-------------
Configuration reads are thread-safe. Reloads are atomic - readers will
see either the old or new config, never a partial state.
"""

import logging
import os
import threading
from dataclasses import asdict, dataclass
from typing import Dict, Any

logger = logging.getLogger("Geolocator.Settings")

# Lock for thread-safe config reload
_config_lock = threading.RLock()


def _env_int(key: str, default: int) -> int:
    """Get integer from environment or use default."""
    val = os.environ.get(key)
    if val is not None:
        try:
            return int(val)
        except ValueError:
            logger.warning(f"Invalid int value for {key}: {val}, using default {default}")
    return default


def _env_float(key: str, default: float) -> float:
    """Get float from environment or use default."""
    val = os.environ.get(key)
    if val is not None:
        try:
            return float(val)
        except ValueError:
            logger.warning(f"Invalid float value for {key}: {val}, using default {default}")
    return default


def _env_bool(key: str, default: bool) -> bool:
    """Get boolean from environment or use default."""
    val = os.environ.get(key)
    if val is not None:
        return val.lower() in ('true', '1', 'yes', 'on')
    return default


def _env_str(key: str, default: str) -> str:
    """Get string from environment or use default."""
    val = os.environ.get(key)
    if val is not None and val.strip():
        return val.strip()
    return default


@dataclass(frozen=True)
class CellConfig:
    """Grid cell encoding configuration."""

    # Decimal places of the grid (2 = 0.01 degree cells)
    PRECISION: int = _env_int("GEOLOCATOR_CELLS_PRECISION", 2)

    # Cell id representation: "numeric" or "text"
    CODEC: str = _env_str("GEOLOCATOR_CELLS_CODEC", "numeric")


@dataclass(frozen=True)
class ScoringConfig:
    """Most Likely Cell selection configuration."""

    # Half-width of the square confidence window, in degrees
    CONFIDENCE_WINDOW: float = _env_float(
        "GEOLOCATOR_SCORING_CONFIDENCE_WINDOW", 0.3
    )


@dataclass(frozen=True)
class LoaderConfig:
    """Probability table loading configuration."""

    # Abort on the first malformed line instead of skipping it
    STRICT: bool = _env_bool("GEOLOCATOR_LOADER_STRICT", False)

    # First line of the table file is a header
    SKIP_HEADER: bool = _env_bool("GEOLOCATOR_LOADER_SKIP_HEADER", False)

    # Seconds between progress log lines during long loads
    PROGRESS_INTERVAL_SECONDS: int = _env_int(
        "GEOLOCATOR_LOADER_PROGRESS_INTERVAL_SECONDS", 10
    )


@dataclass(frozen=True)
class FeatureSelectionConfig:
    """Feature selection thresholds (both compared with strict >)."""

    # Accuracy threshold
    THETA_G: float = _env_float("GEOLOCATOR_FEATURES_THETA_G", 0.0)

    # Frequency threshold
    THETA_T: int = _env_int("GEOLOCATOR_FEATURES_THETA_T", 0)


@dataclass(frozen=True)
class WorkerConfig:
    """Batch scoring configuration."""

    # Thread pool size for batch scoring
    MAX_WORKERS: int = _env_int("GEOLOCATOR_WORKER_MAX_WORKERS", 4)


@dataclass(frozen=True)
class APIConfig:
    """API endpoint defaults."""

    # Maximum tokens accepted in a single locate request
    MAX_TOKENS: int = _env_int("GEOLOCATOR_API_MAX_TOKENS", 500)


class Config:
    """
    Main configuration container with all config groups.

    Access via Config.GROUP.CONSTANT, e.g.:
        Config.SCORING.CONFIDENCE_WINDOW
        Config.LOADER.STRICT
    """

    CELLS = CellConfig()
    SCORING = ScoringConfig()
    LOADER = LoaderConfig()
    FEATURES = FeatureSelectionConfig()
    WORKER = WorkerConfig()
    API = APIConfig()

    # Version counter, increments on reload
    _version: int = 0

    @classmethod
    def to_dict(cls) -> Dict[str, Dict[str, Any]]:
        """Effective tunables, reported by GET /api/info."""
        return {
            "cells": asdict(cls.CELLS),
            "scoring": asdict(cls.SCORING),
            "loader": asdict(cls.LOADER),
            "features": asdict(cls.FEATURES),
            "worker": asdict(cls.WORKER),
            "api": asdict(cls.API),
            "version": cls._version,
        }


def reload_config() -> None:
    """
    Reload configuration from environment variables.

    Dataclass defaults are evaluated once at import time, so each group is
    rebuilt with explicit values read from the current environment.
    """
    with _config_lock:
        Config.CELLS = CellConfig(
            PRECISION=_env_int("GEOLOCATOR_CELLS_PRECISION", 2),
            CODEC=_env_str("GEOLOCATOR_CELLS_CODEC", "numeric"),
        )
        Config.SCORING = ScoringConfig(
            CONFIDENCE_WINDOW=_env_float("GEOLOCATOR_SCORING_CONFIDENCE_WINDOW", 0.3),
        )
        Config.LOADER = LoaderConfig(
            STRICT=_env_bool("GEOLOCATOR_LOADER_STRICT", False),
            SKIP_HEADER=_env_bool("GEOLOCATOR_LOADER_SKIP_HEADER", False),
            PROGRESS_INTERVAL_SECONDS=_env_int(
                "GEOLOCATOR_LOADER_PROGRESS_INTERVAL_SECONDS", 10
            ),
        )
        Config.FEATURES = FeatureSelectionConfig(
            THETA_G=_env_float("GEOLOCATOR_FEATURES_THETA_G", 0.0),
            THETA_T=_env_int("GEOLOCATOR_FEATURES_THETA_T", 0),
        )
        Config.WORKER = WorkerConfig(
            MAX_WORKERS=_env_int("GEOLOCATOR_WORKER_MAX_WORKERS", 4),
        )
        Config.API = APIConfig(
            MAX_TOKENS=_env_int("GEOLOCATOR_API_MAX_TOKENS", 500),
        )
        Config._version += 1

        logger.info(f"Configuration reloaded (version {Config._version})")
