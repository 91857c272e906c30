"""
Configuration management for GramFrame.

This module provides centralized configuration with sensible defaults
that can be overridden by a user config file. The config file is loaded
from (in order of priority):
    1. ./gramframe.yaml (current directory)
    2. ~/.config/gramframe/config.yaml
    3. ~/.gramframe.yaml

All settings have defaults, so no config file is required.

Usage:
    from gramframe.config import config

    # Access settings
    threshold = config['interaction']['click_threshold_px']
    palette = config['harmonics']['palette']
"""

import copy
import json
from pathlib import Path

import yaml

from .utils.logging import get_logger

logger = get_logger(__name__)


def _represent_list(dumper, data):
    """Represent short lists of numbers in flow style [1, 2, 3, 4]."""
    # Use flow style for short lists of numbers (like RGBA colors)
    if len(data) <= 5 and all(isinstance(x, (int, float)) for x in data):
        return dumper.represent_sequence('tag:yaml.org,2002:seq', data, flow_style=True)
    return dumper.represent_sequence('tag:yaml.org,2002:seq', data, flow_style=False)


yaml.add_representer(list, _represent_list)


# =============================================================================
# DEFAULT CONFIGURATION
# =============================================================================

DEFAULTS = {
    # -------------------------------------------------------------------------
    # Color settings (RGBA tuples: red, green, blue, alpha 0-255)
    # -------------------------------------------------------------------------
    'colors': {
        'background': [255, 255, 255, 255],  # White
        'hover_cursor': [0, 200, 255, 200],  # Cyan crosshair
        'hover_cursor_width': 1,
        'marker': [255, 107, 107, 255],  # Default marker color
        'marker_selected': [255, 215, 0, 255],  # Gold
        'marker_size': 15,  # Crosshair half-length in pixels
        'harmonic_width': 2,
        'doppler_curve': [255, 0, 255, 255],  # Magenta
        'doppler_curve_width': 2,
        'doppler_plus': [255, 60, 60, 255],  # f+ marker
        'doppler_minus': [60, 120, 255, 255],  # f- marker
        'doppler_zero': [0, 200, 0, 255],  # f0 marker
        'doppler_marker_size': 12,
        'axis': [60, 60, 60, 255],
    },

    # -------------------------------------------------------------------------
    # Pointer interaction
    # -------------------------------------------------------------------------
    'interaction': {
        'click_threshold_px': 5.0,   # Moves shorter than this are clicks, not drags
        'marker_tolerance_px': 16.0,  # Hit radius for cross-cursor markers
        'harmonic_tolerance_px': 10.0,  # Hit distance for harmonic lines
        'doppler_tolerance_px': 12.0,  # Hit radius for f+, f-, f0
    },

    # -------------------------------------------------------------------------
    # Harmonic sets
    # -------------------------------------------------------------------------
    'harmonics': {
        'max_count': 10,       # Most lines shown per set, from the lowest in range
        'min_spacing': 1.0,    # Smallest accepted spacing (Hz)
        'line_height': 0.2,    # Line length as a fraction of image height
        'click_index_offset_origin': 10,  # Harmonic index under a click when freq axis starts above 0
        'click_index_zero_origin': 5,     # ... and when it starts at 0
        'palette': [
            '#ff6b6b', '#2ecc71', '#f39c12', '#9b59b6',
            '#ffc93c', '#ff9ff3', '#45b7d1', '#e67e22',
        ],
    },

    # -------------------------------------------------------------------------
    # Doppler estimation
    # -------------------------------------------------------------------------
    'doppler': {
        'speed_of_sound': 1500.0,  # Propagation speed in m/s (sea water)
        'curve_samples': 64,       # Points along the rendered S-curve
    },

    # -------------------------------------------------------------------------
    # Zoom and pan
    # -------------------------------------------------------------------------
    'zoom': {
        'max_scale': 10.0,   # Maximum zoom factor
        'step': 1.5,         # Factor for zoom in / zoom out commands
    },

    # -------------------------------------------------------------------------
    # Axes
    # -------------------------------------------------------------------------
    'axes': {
        'freq_tick_spacing_px': 80,  # Aim for frequency ticks every ~80px
        'time_tick_spacing_px': 50,  # Aim for time ticks every ~50px
    },

    # -------------------------------------------------------------------------
    # Display settings
    # -------------------------------------------------------------------------
    'display': {
        'resize_debounce_ms': 100,  # Delay before recomputing axes after a resize
        'axis_width': 70,  # Width of Y-axis labels
    },
}


# =============================================================================
# CONFIG LOADING
# =============================================================================

def _deep_merge(base: dict, override: dict) -> dict:
    """
    Deep merge two dictionaries.

    Values from 'override' take precedence over 'base'.
    Nested dicts are merged recursively.
    """
    result = copy.deepcopy(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = copy.deepcopy(value)
    return result


def _find_config_file() -> Path | None:
    """Find the user's config file, if it exists."""
    candidates = [
        Path('./gramframe.yaml'),
        Path('./gramframe.json'),
        Path.home() / '.config' / 'gramframe' / 'config.yaml',
        Path.home() / '.config' / 'gramframe' / 'config.json',
        Path.home() / '.gramframe.yaml',
        Path.home() / '.gramframe.json',
    ]

    for path in candidates:
        if path.exists():
            return path
    return None


def _load_config_file(path: Path) -> dict:
    """Load configuration from a file."""
    with open(path, 'r', encoding='utf-8') as f:
        if path.suffix in ('.yaml', '.yml'):
            return yaml.safe_load(f) or {}
        return json.load(f)


def load_config(config_path: Path | str | None = None) -> dict:
    """
    Load configuration with user overrides.

    Args:
        config_path: Optional explicit path to config file. If provided,
                     this file will be loaded instead of searching default locations.

    Returns a dict with all settings, using defaults for any
    values not specified in the user's config file.
    """
    config = copy.deepcopy(DEFAULTS)

    # Use explicit path if provided, otherwise search default locations
    if config_path:
        config_file = Path(config_path)
        if not config_file.exists():
            logger.warning("Config file not found: %s", config_file)
            return config
    else:
        config_file = _find_config_file()

    if config_file:
        try:
            user_config = _load_config_file(config_file)
            config = _deep_merge(config, user_config)
            logger.info("Loaded config from: %s", config_file)
        except (OSError, ValueError, yaml.YAMLError) as e:
            logger.warning("Failed to load config from %s: %s", config_file, e)

    return config


def save_default_config(path: Path | str):
    """
    Save the default configuration to a file.

    Useful for creating a template config file that users can edit.
    """
    path = Path(path)

    with open(path, 'w', encoding='utf-8') as f:
        if path.suffix in ('.yaml', '.yml'):
            yaml.dump(DEFAULTS, f, default_flow_style=False, sort_keys=False)
        else:
            json.dump(DEFAULTS, f, indent=2)


# =============================================================================
# GLOBAL CONFIG INSTANCE
# =============================================================================

# Load config on module import
config = load_config()


def reload_config(config_path: Path | str | None = None):
    """
    Reload configuration from file.

    The dict is updated in place so modules that imported ``config``
    see the new values.
    """
    fresh = load_config(config_path)
    config.clear()
    config.update(fresh)


def load_config_from_path(path: Path | str) -> dict:
    """
    Load configuration from a specific file path.

    Args:
        path: Path to the config file (YAML or JSON)

    Returns:
        Merged config dict with defaults

    Raises:
        FileNotFoundError: If the config file doesn't exist
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    base_config = copy.deepcopy(DEFAULTS)
    user_config = _load_config_file(path)
    return _deep_merge(base_config, user_config)
