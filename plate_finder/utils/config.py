import os
import yaml
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Any, Optional


class Config:
    def __init__(self, config_path: str = "config.yaml"):
        self.config_path = Path(config_path)
        self.config = self._load_config()
        self._apply_env_overrides()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Config":
        """Build a config from an in-memory mapping (no file involved)"""
        config = cls.__new__(cls)
        config.config_path = None
        config.config = dict(data or {})
        config._apply_env_overrides()
        return config

    def _load_config(self) -> Dict[str, Any]:
        if not self.config_path.exists():
            raise FileNotFoundError(f"Config file not found: {self.config_path}")

        with open(self.config_path, 'r') as f:
            return yaml.safe_load(f) or {}

    def _apply_env_overrides(self):
        """Override config values from environment variables"""
        if os.environ.get('PLATE_FINDER_TARGET'):
            self.set('alerting', 'target', os.environ['PLATE_FINDER_TARGET'])
        if os.environ.get('PLATE_FINDER_LOG_LEVEL'):
            self.set('logging', 'level', os.environ['PLATE_FINDER_LOG_LEVEL'])

    def get(self, *keys, default=None):
        value = self.config
        for key in keys:
            if isinstance(value, dict):
                value = value.get(key)
                if value is None:
                    return default
            else:
                return default
        return value

    def set(self, section: str, key: str, value: Any):
        """Set one key, replacing a missing or bare (null) section"""
        values = self._section(section)
        values[key] = value
        self.config[section] = values

    def _section(self, name: str) -> Dict[str, Any]:
        section = self.config.get(name)
        return section if isinstance(section, dict) else {}

    @property
    def tracking(self):
        return self._section('tracking')

    @property
    def validation(self):
        return self._section('validation')

    @property
    def alerting(self):
        return self._section('alerting')

    @property
    def capture(self):
        return self._section('capture')

    @property
    def storage(self):
        return self._section('storage')

    @property
    def logging(self):
        return self._section('logging')


@dataclass
class EngineSettings:
    """Typed engine tuning, validated once at construction"""
    iou_threshold: float = 0.3
    stale_after: float = 1.0
    min_confidence: float = 0.7
    window_capacity: int = 3
    live_policy: str = 'strict'
    capture_policy: str = 'loose'
    capture_min_confidence: float = 0.0
    allow_overwrite: bool = False

    def __post_init__(self):
        if self.window_capacity <= 0:
            raise ValueError(f"window_capacity must be positive, got {self.window_capacity}")
        if self.stale_after <= 0:
            raise ValueError(f"stale_after must be positive, got {self.stale_after}")
        for name in ('iou_threshold', 'min_confidence', 'capture_min_confidence'):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must be within [0, 1], got {value}")

    @classmethod
    def from_config(cls, config: Config) -> "EngineSettings":
        tracking = config.tracking
        validation = config.validation
        defaults = cls.__dataclass_fields__
        return cls(
            iou_threshold=float(tracking.get('iou_threshold', defaults['iou_threshold'].default)),
            stale_after=float(tracking.get('stale_after', defaults['stale_after'].default)),
            min_confidence=float(validation.get('min_confidence', defaults['min_confidence'].default)),
            window_capacity=int(validation.get('window_capacity', defaults['window_capacity'].default)),
            live_policy=validation.get('live_policy', defaults['live_policy'].default),
            capture_policy=validation.get('capture_policy', defaults['capture_policy'].default),
            capture_min_confidence=float(
                validation.get('capture_min_confidence', defaults['capture_min_confidence'].default)
            ),
            allow_overwrite=bool(validation.get('allow_overwrite', defaults['allow_overwrite'].default)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {name: getattr(self, name) for name in self.__dataclass_fields__}


def target_from_config(config: Config) -> Optional[str]:
    return config.alerting.get('target') or None
