from pathlib import Path
from typing import Any, Dict, Optional

import yaml  # type: ignore[import]

from .errors import ReleaseError

DEFAULT_CONFIG_PATH = Path("release.yaml")

CONFIG_KEYS = (
    "app_name",
    "src_dir",
    "out_dir",
    "full_release_notes_url",
    "app_homepage",
    "derived_data_path",
)


class Config:
    """Configuration container for release settings"""

    def __init__(self, config_dict: Optional[Dict[str, Any]] = None):
        self._config = config_dict or {}

    def __getitem__(self, key: str) -> Any:
        """Get a configuration value"""
        return self._config[key]

    def __contains__(self, key: str) -> bool:
        return key in self._config

    def get(self, key: str, default: Any = None) -> Any:
        """Get a configuration value with a default"""
        return self._config.get(key, default)

    def path(self, key: str) -> Optional[Path]:
        """Get a configuration value as a path, if set"""
        value = self._config.get(key)
        return Path(value).expanduser() if value else None


def load_config(config_path: Optional[Path] = None) -> Config:
    """Load configuration from YAML file.

    Without an explicit path, release.yaml in the current directory is used
    when present; its absence just means no configured defaults.
    """
    if config_path is None:
        if not DEFAULT_CONFIG_PATH.exists():
            return Config()
        config_path = DEFAULT_CONFIG_PATH

    if not config_path.exists():
        raise ReleaseError(f"Configuration file not found: {config_path}")

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            config_dict = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ReleaseError(f"Failed to parse configuration file: {e}") from e
    except OSError as e:
        raise ReleaseError(f"Failed to load configuration file: {e}") from e

    if not config_dict:
        raise ReleaseError("Configuration file is empty")

    if not isinstance(config_dict, dict):
        raise ReleaseError("Configuration file must contain a mapping of settings")

    unknown = sorted(str(key) for key in set(config_dict) - set(CONFIG_KEYS))
    if unknown:
        raise ReleaseError(f"Unknown configuration keys: {', '.join(unknown)}")

    return Config(config_dict)
