"""
===============================================================================
KARTOGRAPH - Configuration
===============================================================================
YAML configuration for the engine, the reference host and the command line.

Sections:
    engine      -- editor defaults and saved-plan persistence
    warp        -- watchdog tolerance
    simulation  -- fixed tick, coarse warp ladder and its lag
    facilities  -- facility levels consulted by the node-creation gate
    scenario    -- bodies and vessel / target orbits for the reference host
    logging     -- level and optional log file

A file only needs the keys it changes; everything else falls back to
DEFAULT_CONFIG.
===============================================================================
"""

import copy
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from kartograph.core.constants import (
    DEFAULT_DV_STEP_INDEX,
    EDITOR_TRANSITION_MARGIN,
    NODE_DEFAULT_OFFSET,
    SOI_TRANSITION_MARGIN,
    WARP_OVERSHOOT_TOLERANCE,
    WARP_RATES,
)

logger = logging.getLogger(__name__)


DEFAULT_CONFIG: Dict[str, Any] = {
    "engine": {
        "node_default_offset_s": NODE_DEFAULT_OFFSET,
        "default_step_index": DEFAULT_DV_STEP_INDEX,
        "soi_transition_margin_s": SOI_TRANSITION_MARGIN,
        "editor_transition_margin_s": EDITOR_TRANSITION_MARGIN,
        "saved_plans_path": None,
    },
    "warp": {
        "overshoot_tolerance_s": WARP_OVERSHOOT_TOLERANCE,
    },
    "simulation": {
        "dt": 0.02,
        "start_time": 0.0,
        "rates": list(WARP_RATES),
        "rate_change_delay_ticks": 3,
        "lookahead": 4.0,
        "max_ticks": 500000,
    },
    "facilities": {
        "tracking_station": 1,
        "mission_control": 1,
    },
    "scenario": {
        "bodies": {
            "Kerbin": {
                "radius": 600000.0,
                "gravitational_parameter": 3.5316e12,
                "atmosphere_depth": 70000.0,
            },
        },
        "vessel": {
            "name": "Kerbal X",
            "landed": False,
            "patches": [
                {
                    "body": "Kerbin",
                    "semi_major_axis": 750000.0,
                    "eccentricity": 0.1,
                    "inclination": 0.0,
                    "lan": 0.0,
                    "argument_of_periapsis": 0.0,
                    "true_anomaly": 0.0,
                },
            ],
        },
        "target": None,
    },
    "logging": {
        "level": "INFO",
        "file": None,
    },
}


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively overlay *override* onto a copy of *base*.

    An empty section (``engine:`` with nothing under it) keeps the defaults.
    """
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if value is None and isinstance(merged.get(key), dict):
            continue
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load configuration from a YAML file over the defaults.

    Args:
        config_path: Path to a YAML config. None returns a copy of
            DEFAULT_CONFIG.

    Returns:
        Merged configuration dictionary.

    Raises:
        FileNotFoundError: If *config_path* does not exist.
        yaml.YAMLError: If the file is not valid YAML.
        ValueError: If the top level of the file is not a mapping.
    """
    if config_path is None:
        return copy.deepcopy(DEFAULT_CONFIG)

    path = Path(config_path)
    logger.info("Loading configuration from: %s", path)
    with open(path, "r") as f:
        loaded = yaml.safe_load(f) or {}
    if not isinstance(loaded, dict):
        raise ValueError(f"Configuration root must be a mapping, got {type(loaded).__name__}")
    return _deep_merge(DEFAULT_CONFIG, loaded)
