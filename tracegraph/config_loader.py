"""
Configuration Loader

Loads layout, routing, aggregation and polling settings from YAML,
falling back to built-in defaults for anything the file leaves out.
"""

import copy
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

import yaml

from .layout import LayoutConfig

logger = logging.getLogger(__name__)


class ConfigError(ValueError):
    """Raised when a configuration file cannot be read or is malformed."""


DEFAULT_CONFIG: Dict[str, Any] = {
    'layout': {
        'kind': 'force',
        'width': 800,
        'height': 600,
        'spacing': 100,
        'iterations': 300,
        'charge_strength': -300.0,
        'collision_radius': 30.0,
        'cluster_margin': 80.0,
        'max_cluster_radius': 100.0,
        'ring_capacity': 8,
        'ring_gap': 60.0,
        'circle_ratio': 0.3,
        'seed': 0,
    },
    'routing': {
        'max_offset': 50.0,
        'min_separation': 40.0,
    },
    'aggregation': {
        'group_separators': ['.', ':'],
    },
    'polling': {
        'interval_seconds': 5.0,
    },
}


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    result = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(result.get(key), dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


class ConfigLoader:
    """Provides tracegraph settings from defaults and an optional YAML file."""

    def __init__(self, config_path: Optional[Union[str, Path]] = None):
        self.config_path = Path(config_path) if config_path else None
        self._data = copy.deepcopy(DEFAULT_CONFIG)
        if self.config_path is not None:
            self._data = _deep_merge(self._data, self._load_file(self.config_path))

    @staticmethod
    def _load_file(path: Path) -> Dict[str, Any]:
        """Read a YAML file into a dict.

        Raises:
            ConfigError: If the file is missing, unparsable or not a mapping
        """
        if not path.exists():
            raise ConfigError(f"Config file not found: {path}")

        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}") from e
        except OSError as e:
            raise ConfigError(f"Could not read {path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigError(f"Config root in {path} must be a mapping")

        unknown = set(data) - set(DEFAULT_CONFIG)
        if unknown:
            logger.warning("Ignoring unknown config sections in %s: %s", path, sorted(unknown))

        logger.debug("Loaded config from %s", path)
        return data

    @property
    def data(self) -> Dict[str, Any]:
        return self._data

    def _section(self, name: str) -> Dict[str, Any]:
        section = self._data.get(name) or {}
        if not isinstance(section, dict):
            raise ConfigError(f"Config section '{name}' must be a mapping")
        return section

    def get_layout_kind(self) -> str:
        return str(self._section('layout').get('kind', 'force'))

    def get_layout_config(self) -> LayoutConfig:
        """Build a LayoutConfig from the layout section."""
        layout = self._section('layout')
        try:
            return LayoutConfig(
                canvas_width=float(layout['width']),
                canvas_height=float(layout['height']),
                spacing=float(layout['spacing']),
                iterations=int(layout['iterations']),
                charge_strength=float(layout['charge_strength']),
                collision_radius=float(layout['collision_radius']),
                cluster_margin=float(layout['cluster_margin']),
                max_cluster_radius=float(layout['max_cluster_radius']),
                ring_capacity=int(layout['ring_capacity']),
                ring_gap=float(layout['ring_gap']),
                circle_ratio=float(layout['circle_ratio']),
                seed=int(layout['seed']),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise ConfigError(f"Invalid layout settings: {e}") from e

    def get_routing_settings(self) -> Tuple[float, float]:
        """Return (max_offset, min_separation) for the edge router."""
        routing = self._section('routing')
        try:
            return float(routing['max_offset']), float(routing['min_separation'])
        except (KeyError, TypeError, ValueError) as e:
            raise ConfigError(f"Invalid routing settings: {e}") from e

    def get_group_separators(self) -> Tuple[str, ...]:
        separators = self._section('aggregation').get('group_separators') or []
        if isinstance(separators, str):
            separators = [separators]
        return tuple(str(sep) for sep in separators if sep)

    def get_poll_interval(self) -> float:
        try:
            interval = float(self._section('polling')['interval_seconds'])
        except (KeyError, TypeError, ValueError) as e:
            raise ConfigError(f"Invalid polling settings: {e}") from e
        if interval <= 0:
            raise ConfigError("polling.interval_seconds must be positive")
        return interval
