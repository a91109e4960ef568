"""
Configuration and cue sheet loading (TOML).

Configuration file:

    [playback]
    time_update_resolution = 33
    tick_immediately = false
    rate = 1.0
    tick_interval = 0.01

    [output]
    status_port = 0

Cue sheet:

    total_duration = 12000

    [[channels]]
    name = "captions"

    [[channels.timings]]
    start = 500
    end = 2500
    data = "Hello"
"""

import copy
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import toml

from .errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG: Dict[str, Any] = {
    'playback': {
        'time_update_resolution': 33,
        'tick_immediately': False,
        'rate': 1.0,
        'tick_interval': 0.01,
    },
    'output': {
        'status_port': 0,
        'status_bind_address': '127.0.0.1',
    },
}


def _read_toml(path: Path) -> Dict[str, Any]:
    try:
        with open(path, 'r') as f:
            return toml.load(f)
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e
    except toml.TomlDecodeError as e:
        raise ConfigError(f"Invalid TOML in {path}: {e}") from e


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load configuration from a TOML file, filling in defaults.

    Args:
        config_path: Path to TOML file (None for defaults only)

    Raises:
        ConfigError: the file exists but cannot be parsed
    """
    config = copy.deepcopy(DEFAULT_CONFIG)
    if not config_path:
        return config

    path = Path(config_path)
    if not path.exists():
        logger.warning(f"Config file {path} not found, using defaults")
        return config

    loaded = _read_toml(path)
    for section, values in loaded.items():
        if isinstance(values, dict) and isinstance(config.get(section), dict):
            config[section].update(values)
        else:
            config[section] = values

    logger.info(f"Loaded configuration from {path}")
    return config


def load_cue_sheet(cue_path: str) -> Tuple[List[Dict[str, Any]], float]:
    """
    Load channels and total duration from a TOML cue sheet.

    Returns:
        (channels, total_duration) ready for Kinetophone()

    Raises:
        ConfigError: missing file, invalid TOML or malformed cue sheet
    """
    path = Path(cue_path)
    sheet = _read_toml(path)

    total_duration = sheet.get('total_duration')
    if total_duration is None:
        raise ConfigError(f"{path}: 'total_duration' is required")

    channels = sheet.get('channels', [])
    if not isinstance(channels, list):
        raise ConfigError(f"{path}: 'channels' must be an array of tables")

    for i, channel in enumerate(channels):
        if not isinstance(channel, dict) or 'name' not in channel:
            raise ConfigError(f"{path}: channel #{i} has no 'name'")
        if not isinstance(channel.get('timings', []), list):
            raise ConfigError(f"{path}: timings of channel '{channel['name']}' must be an array")

    n_timings = sum(len(channel.get('timings', [])) for channel in channels)
    logger.info(f"Loaded cue sheet {path}: {len(channels)} channels, {n_timings} timings")
    return channels, total_duration
