"""
Configuration management for MapNet.

Settings come from, in order of priority:
1. Environment variables (MAPNET_*; app.py loads a .env file first)
2. config.json next to the executable/project root
3. Built-in defaults

The editing core never reads configuration; only the host does.
"""

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

from mapnet.paths import get_config_path
from mapnet.edit.constants import PATH_HIT_TOLERANCE

logger = logging.getLogger(__name__)

DEFAULT_TILE_URL = "https://{s}.tile.openstreetmap.org/{z}/{x}/{y}.png"


@dataclass(frozen=True)
class Settings:
    map_center: Tuple[float, float] = (20.0, 0.0)
    map_zoom: int = 3
    tile_url: str = DEFAULT_TILE_URL
    path_hit_tolerance: float = PATH_HIT_TOLERANCE
    log_level: str = "INFO"
    seed_demo_data: bool = True
    port: int = 8082


def load_config(config_path: Optional[Path] = None) -> dict:
    """Load configuration from config.json."""
    config_path = config_path or get_config_path()
    if config_path.exists():
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                return json.load(f)
        except (json.JSONDecodeError, IOError):
            logger.warning(f"Could not read {config_path}, using defaults")
            return {}
    return {}


def save_config(config: dict, config_path: Optional[Path] = None) -> None:
    """Save configuration to config.json."""
    config_path = config_path or get_config_path()
    with open(config_path, 'w', encoding='utf-8') as f:
        json.dump(config, f, indent=2)


def _env_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def _number(value, cast, name: str, default):
    try:
        return cast(value)
    except (TypeError, ValueError):
        logger.warning(f"Ignoring invalid value {value!r} for {name}")
        return default


def load_settings(config_path: Optional[Path] = None) -> Settings:
    """
    Build Settings from config.json and the environment.

    Invalid values are logged and fall back to the defaults.
    """
    defaults = Settings()
    config = load_config(config_path)

    center = config.get("map_center", defaults.map_center)
    try:
        map_center = (float(center[0]), float(center[1]))
    except (TypeError, ValueError, IndexError):
        logger.warning(f"Ignoring invalid value {center!r} for map_center")
        map_center = defaults.map_center

    map_zoom = _number(config.get("map_zoom", defaults.map_zoom), int, "map_zoom", defaults.map_zoom)
    tolerance = _number(config.get("path_hit_tolerance", defaults.path_hit_tolerance),
                        float, "path_hit_tolerance", defaults.path_hit_tolerance)
    port = _number(config.get("port", defaults.port), int, "port", defaults.port)
    tile_url = config.get("tile_url", defaults.tile_url)
    log_level = config.get("log_level", defaults.log_level)
    seed = bool(config.get("seed_demo_data", defaults.seed_demo_data))

    # Environment overrides config.json
    env_level = os.environ.get("MAPNET_LOG_LEVEL")
    if env_level:
        log_level = env_level
    env_tolerance = os.environ.get("MAPNET_PATH_HIT_TOLERANCE")
    if env_tolerance:
        tolerance = _number(env_tolerance, float, "MAPNET_PATH_HIT_TOLERANCE", tolerance)
    env_port = os.environ.get("MAPNET_PORT")
    if env_port:
        port = _number(env_port, int, "MAPNET_PORT", port)
    env_seed = os.environ.get("MAPNET_SEED_DEMO_DATA")
    if env_seed:
        seed = _env_bool(env_seed)

    return Settings(
        map_center=map_center,
        map_zoom=map_zoom,
        tile_url=tile_url,
        path_hit_tolerance=tolerance,
        log_level=str(log_level).upper(),
        seed_demo_data=seed,
        port=port,
    )
