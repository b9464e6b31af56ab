"""Configuration loading with minimal error handling"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml


def load_config(config_path: str = "config.yaml") -> dict[str, Any]:
    """
    Load configuration from YAML file.

    Args:
        config_path: Path to config file

    Returns:
        Configuration dictionary (empty file -> empty dict)

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If config file is not valid YAML or not a mapping
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(
            f"Config file not found: {config_path}\n"
            f"Please create a config.yaml file or specify path with --config"
        )

    with open(path) as f:
        try:
            config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in {config_path}: {e}") from e

    if config is None:
        return {}
    if not isinstance(config, dict):
        raise ValueError(f"Invalid config: top level of {config_path} must be a mapping")

    return config


def _as_bool(key: str, value: Any) -> bool:
    # YAML "false" in quotes is a string, not a boolean
    if not isinstance(value, bool):
        raise ValueError(f"{key} must be true or false, got {value!r}")
    return value


@dataclass
class EngineConfig:
    """Typed engine settings built from the config dictionary"""

    cache_enabled: bool = True
    cache_ttl_seconds: float = 300.0
    replace_index_entries: bool = True  # Clear-then-reinsert on re-add
    max_depth: int = 2
    vector_limit: int = 10
    vector_threshold: float = 0.7
    log_level: str = "INFO"

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> "EngineConfig":
        """
        Build from a loaded config dict; missing keys take defaults.

        Raises:
            ValueError: If a value is out of range or of the wrong type
        """
        cache_cfg = config.get("cache", {}) or {}
        engine_cfg = config.get("engine", {}) or {}
        traversal_cfg = config.get("traversal", {}) or {}
        vector_cfg = config.get("vector_search", {}) or {}
        logging_cfg = config.get("logging", {}) or {}

        defaults = cls()
        settings = cls(
            cache_enabled=_as_bool("cache.enabled", cache_cfg.get("enabled", defaults.cache_enabled)),
            cache_ttl_seconds=float(cache_cfg.get("ttl_seconds", defaults.cache_ttl_seconds)),
            replace_index_entries=_as_bool(
                "engine.replace_index_entries",
                engine_cfg.get("replace_index_entries", defaults.replace_index_entries),
            ),
            max_depth=int(traversal_cfg.get("max_depth", defaults.max_depth)),
            vector_limit=int(vector_cfg.get("limit", defaults.vector_limit)),
            vector_threshold=float(vector_cfg.get("threshold", defaults.vector_threshold)),
            log_level=str(logging_cfg.get("level", defaults.log_level)).upper(),
        )
        settings.validate()
        return settings

    def validate(self) -> None:
        if self.cache_ttl_seconds < 0:
            raise ValueError(f"cache.ttl_seconds must be >= 0, got {self.cache_ttl_seconds}")
        if self.max_depth < 0:
            raise ValueError(f"traversal.max_depth must be >= 0, got {self.max_depth}")
        if self.vector_limit < 0:
            raise ValueError(f"vector_search.limit must be >= 0, got {self.vector_limit}")
        if not -1.0 <= self.vector_threshold <= 1.0:
            raise ValueError(
                f"vector_search.threshold must be within [-1, 1], got {self.vector_threshold}"
            )
