#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Fuser Configuration Module
==========================

Handles YAML configuration loading and defines the default constants of
the camera-VO / SLAM-VO fuser.

Configuration Structure:
------------------------
The YAML config file contains:
- fusion: window sizes and blending weights
- rotation_median: Weiszfeld median parameters
- point_cloud: map-point selection radius and frame id
- output: verbosity

Every section is optional; missing keys fall back to the module-level
defaults below.

Configuration Model:
--------------------
YAML is the single source of truth for algorithm settings.
CLI provides only paths and runtime flags (see FuserConfig).

Author: VO fuser project
"""

import os
from dataclasses import dataclass
from typing import Any, Dict, Optional

import yaml


# ========================================
# Debug verbosity control
# ========================================
VERBOSE_DEBUG = False  # Per-step fuser debug output


# ========================================
# Fusion defaults
# ========================================
FILTER_WINDOW = 10          # Median filter ring-buffer length (steps)
RECOVERY_BUFFER = 20        # SLAM quality history length (steps)
ALPHA_BLENDING = 0.75       # Camera-VO weight when camera quality is OK
ALPHA_WEIGHT = 0.7          # Extra camera-VO scaling when quality is MED
REDUCTION_FACTOR = 0.01     # Reset-smoothing pull factor

# Weiszfeld rotation median
MEDIAN_P = 1.0
MEDIAN_MAX_ANGULAR_UPDATE = 1e-4   # rad
MEDIAN_MAX_ITERATIONS = 1000

# Point cloud sink
POINT_CLOUD_RADIUS = 1.0           # m
POINT_CLOUD_FRAME_ID = "fuser_cloud"


def default_config() -> Dict[str, Any]:
    """Flat configuration dictionary holding the module defaults."""
    return {
        'FILTER_WINDOW': FILTER_WINDOW,
        'RECOVERY_BUFFER': RECOVERY_BUFFER,
        'ALPHA_BLENDING': ALPHA_BLENDING,
        'ALPHA_WEIGHT': ALPHA_WEIGHT,
        'REDUCTION_FACTOR': REDUCTION_FACTOR,
        'MEDIAN_P': MEDIAN_P,
        'MEDIAN_MAX_ANGULAR_UPDATE': MEDIAN_MAX_ANGULAR_UPDATE,
        'MEDIAN_MAX_ITERATIONS': MEDIAN_MAX_ITERATIONS,
        'POINT_CLOUD_RADIUS': POINT_CLOUD_RADIUS,
        'POINT_CLOUD_FRAME_ID': POINT_CLOUD_FRAME_ID,
        'VERBOSE_DEBUG': VERBOSE_DEBUG,
    }


def validate_config(config: Dict[str, Any]) -> Dict[str, Any]:
    """
    Check parameter ranges.

    Raises:
        ValueError: If a window is not an integer >= 2 or a weight is outside [0, 1]
    """
    for key in ('FILTER_WINDOW', 'RECOVERY_BUFFER'):
        value = config[key]
        if isinstance(value, bool) or int(value) != value or int(value) < 2:
            raise ValueError(f"{key} must be an integer >= 2, got {value!r}")
        config[key] = int(value)

    for key in ('ALPHA_BLENDING', 'ALPHA_WEIGHT'):
        value = float(config[key])
        if not 0.0 <= value <= 1.0:
            raise ValueError(f"{key} must be within [0, 1], got {value}")
        config[key] = value

    if float(config['REDUCTION_FACTOR']) < 0.0:
        raise ValueError(f"REDUCTION_FACTOR must be >= 0, got {config['REDUCTION_FACTOR']}")
    if int(config['MEDIAN_MAX_ITERATIONS']) < 0:
        raise ValueError("MEDIAN_MAX_ITERATIONS must be >= 0")
    if float(config['POINT_CLOUD_RADIUS']) <= 0.0:
        raise ValueError("POINT_CLOUD_RADIUS must be > 0")

    return config


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load YAML configuration file and convert to flat upper-case keys.

    Args:
        config_path: Path to YAML configuration file. None returns defaults.

    Returns:
        Dictionary with configuration parameters (see default_config)

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If config file is malformed
        ValueError: If a parameter is out of range

    Example:
        >>> config = load_config("configs/config_default.yaml")
        >>> print(f"Filter window: {config['FILTER_WINDOW']}")
    """
    result = default_config()
    if config_path is None:
        return result

    if not os.path.exists(config_path):
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path, 'r') as f:
        config = yaml.safe_load(f) or {}

    # ========================================
    # Fusion
    # ========================================
    fusion = config.get('fusion', {}) or {}
    result['FILTER_WINDOW'] = fusion.get('filter_window', FILTER_WINDOW)
    result['RECOVERY_BUFFER'] = fusion.get('recovery_buffer', RECOVERY_BUFFER)
    result['ALPHA_BLENDING'] = fusion.get('alpha_blending', ALPHA_BLENDING)
    result['ALPHA_WEIGHT'] = fusion.get('alpha_weight', ALPHA_WEIGHT)
    result['REDUCTION_FACTOR'] = fusion.get('reduction_factor', REDUCTION_FACTOR)

    # ========================================
    # Rotation median (Weiszfeld)
    # ========================================
    median = config.get('rotation_median', {}) or {}
    result['MEDIAN_P'] = float(median.get('p', MEDIAN_P))
    result['MEDIAN_MAX_ANGULAR_UPDATE'] = float(median.get('max_angular_update', MEDIAN_MAX_ANGULAR_UPDATE))
    result['MEDIAN_MAX_ITERATIONS'] = int(median.get('max_iterations', MEDIAN_MAX_ITERATIONS))

    # ========================================
    # Point cloud sink
    # ========================================
    pc = config.get('point_cloud', {}) or {}
    result['POINT_CLOUD_RADIUS'] = float(pc.get('radius', POINT_CLOUD_RADIUS))
    result['POINT_CLOUD_FRAME_ID'] = str(pc.get('frame_id', POINT_CLOUD_FRAME_ID))

    # ========================================
    # Output
    # ========================================
    output = config.get('output', {}) or {}
    result['VERBOSE_DEBUG'] = bool(output.get('verbose', VERBOSE_DEBUG))

    return validate_config(result)


@dataclass
class FuserConfig:
    """
    Runtime paths and flags for the replay runner.

    Algorithm settings come from the YAML file at `config_yaml`.
    """

    camera_path: str
    secondary_path: str
    output_dir: str
    config_yaml: Optional[str] = None
    map_points_path: Optional[str] = None
    pc_every: int = 100
    save_debug_data: bool = False
