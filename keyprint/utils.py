# ABOUTME: Shared data structures, configuration and logging for keyprint
import json
import logging
import math
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

import yaml


@dataclass(frozen=True)
class KeyprintSnapshot:
    """Immutable export of captured timing data."""

    intervals: Tuple[int, ...] = field(default_factory=tuple)
    duration: int = 0
    backspace_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        """Display form, keys in the order intervals, duration, backspaceCount."""
        return {
            "intervals": list(self.intervals),
            "duration": self.duration,
            "backspaceCount": self.backspace_count,
        }

    def to_payload(self) -> Dict[str, Any]:
        """Wire form expected by the keyprint service."""
        return {
            "intervals": list(self.intervals),
            "duration": self.duration,
            "backspace_count": self.backspace_count,
        }

    def to_json(self, indent: Optional[int] = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "KeyprintSnapshot":
        """Create from either the display or the wire form."""
        backspaces = data.get("backspaceCount", data.get("backspace_count", 0))
        return cls(
            intervals=tuple(data.get("intervals") or ()),
            duration=data.get("duration", 0),
            backspace_count=backspaces,
        )


@dataclass(frozen=True)
class VerificationResult:
    """Normalized answer from the verify endpoint."""

    is_match: bool
    similarity: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {"isMatch": self.is_match, "similarity": self.similarity}


class ConfigManager:
    """Configuration management with validation."""

    def __init__(self, config_path: Union[str, Path] = "config.yaml"):
        self.config_path = Path(config_path)
        self.config = self._load_config()

    def _load_config(self) -> Dict[str, Any]:
        """Load configuration, layering the file over the defaults."""
        config = self._default_config()
        try:
            with open(self.config_path, "r") as f:
                loaded = yaml.safe_load(f)
        except FileNotFoundError:
            logging.warning(f"Config file {self.config_path} not found, using defaults")
            return config
        except yaml.YAMLError as e:
            logging.error(f"Error parsing config file: {e}")
            return config

        if not isinstance(loaded, dict):
            logging.warning(f"Config file {self.config_path} is empty or not a mapping")
            return config

        for section, values in loaded.items():
            if isinstance(values, dict) and isinstance(config.get(section), dict):
                config[section].update(values)
            else:
                config[section] = values
        return config

    def _default_config(self) -> Dict[str, Any]:
        """Default configuration values."""
        return {
            "api": {
                "base_url": "http://127.0.0.1:8080",
                "timeout_seconds": 10,
            },
            "capture": {
                "stop_key": "enter",
                "max_seconds": None,
            },
            "output": {
                "log_level": "INFO",
                "log_file": None,
            },
        }

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value with dot notation."""
        keys = key.split(".")
        value = self.config
        for k in keys:
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default
        return default if value is None else value


def setup_logging(level: str = "INFO", log_file: Optional[str] = None) -> None:
    """Configure logging for the application."""
    handlers: list = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=handlers,
    )


def generate_session_id() -> str:
    """Generate unique session identifier."""
    return str(uuid.uuid4())


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves going up (not banker's rounding)."""
    return int(math.floor(value + 0.5))
