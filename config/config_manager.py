"""Configuration manager for the board service.

Settings come from three layers, later ones winning: the bundled
``settings.yaml`` next to this module, the user's YAML file, and
``BOARDHUB_<SECTION>__<KEY>`` environment variables.
"""

import os
import yaml
from pathlib import Path
from typing import Any, Dict, Optional
from dataclasses import dataclass


@dataclass
class StorageConfig:
    """Storage configuration settings."""
    db_path: str = "~/.boardhub/data/boardhub.db"
    echo_sql: bool = False


@dataclass
class SubscriptionConfig:
    """Subscription lifecycle settings."""
    max_conflict_retries: int = 3


@dataclass
class LoggingConfig:
    """Logging configuration settings."""
    level: str = "INFO"
    log_path: str = "~/.boardhub/logs/boardhub.log"
    max_log_size: int = 10485760  # 10 MB
    backup_count: int = 5


# (section, field, type, min, max)
FIELD_RULES = (
    ('storage', 'db_path', str, None, None),
    ('storage', 'echo_sql', bool, None, None),
    ('subscriptions', 'max_conflict_retries', int, 0, 10),
    ('logging', 'level', str, None, None),
    ('logging', 'log_path', str, None, None),
    ('logging', 'max_log_size', int, 1024, 104857600),
    ('logging', 'backup_count', int, 0, 100),
)


class ConfigManager:
    """Loads and validates service configuration."""

    DEFAULT_CONFIG_PATH = Path.home() / ".boardhub" / "config" / "settings.yaml"
    BUNDLED_CONFIG_PATH = Path(__file__).parent / "settings.yaml"
    ENV_PREFIX = "BOARDHUB_"
    LOG_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')

    def __init__(self, config_path: Optional[Path] = None):
        """Initialize configuration manager.

        Args:
            config_path: Optional custom path to configuration file.
                        If None, uses default user config path.
                        A missing file is created from the bundled defaults.

        Raises:
            ValueError: If the file is not valid YAML or a setting is invalid
        """
        self.config_path = config_path or self.DEFAULT_CONFIG_PATH
        self._config: Dict[str, Any] = self._read_yaml(self.BUNDLED_CONFIG_PATH)

        if self.config_path.exists():
            self._merge_into(self._config, self._read_yaml(self.config_path))
        else:
            self._write_defaults()

        self._apply_env_overrides()
        self._validate()

    @staticmethod
    def _read_yaml(path: Path) -> Dict[str, Any]:
        try:
            with open(path, 'r', encoding='utf-8') as f:
                return yaml.safe_load(f) or {}
        except FileNotFoundError:
            return {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in config file {path}: {e}")

    def _merge_into(self, target: Dict[str, Any], overrides: Dict[str, Any]) -> None:
        """Merge overrides into target in place, descending into sections."""
        for key, value in overrides.items():
            if isinstance(target.get(key), dict) and isinstance(value, dict):
                self._merge_into(target[key], value)
            else:
                target[key] = value

    def _write_defaults(self) -> None:
        self.config_path.parent.mkdir(parents=True, exist_ok=True)

        with open(self.config_path, 'w', encoding='utf-8') as f:
            yaml.dump(self._config, f, default_flow_style=False, sort_keys=False)

    def _apply_env_overrides(self) -> None:
        """Apply BOARDHUB_<SECTION>__<KEY> variables, e.g.
        BOARDHUB_STORAGE__DB_PATH=/srv/boardhub/boardhub.db.

        Variables naming an unknown section are ignored.
        """
        for env_key, env_value in os.environ.items():
            if not env_key.startswith(self.ENV_PREFIX):
                continue

            parts = env_key[len(self.ENV_PREFIX):].lower().split("__")
            if len(parts) != 2 or parts[0] not in self._config:
                continue

            section, key = parts
            self._config[section][key] = self._parse_env_value(env_value)

    @staticmethod
    def _parse_env_value(value: str) -> Any:
        lowered = value.lower()
        if lowered in ('true', 'yes'):
            return True
        if lowered in ('false', 'no'):
            return False
        try:
            return int(value)
        except ValueError:
            return value

    def _validate(self) -> None:
        """Check every known setting for presence, type and range.

        Raises:
            ValueError: On the first invalid setting
        """
        for section, field, expected_type, min_val, max_val in FIELD_RULES:
            values = self._config.get(section)
            if not isinstance(values, dict):
                raise ValueError(f"Missing required configuration section: {section}")
            if field not in values:
                raise ValueError(f"Missing required field: {section}.{field}")

            value = values[field]
            # bool is an int subclass; reject it for numeric settings
            if not isinstance(value, expected_type) or (expected_type is int and isinstance(value, bool)):
                raise ValueError(
                    f"Field {section}.{field} must be of type {expected_type.__name__}, "
                    f"got {type(value).__name__}"
                )
            if min_val is not None and value < min_val:
                raise ValueError(f"Field {section}.{field} must be >= {min_val}, got {value}")
            if max_val is not None and value > max_val:
                raise ValueError(f"Field {section}.{field} must be <= {max_val}, got {value}")

        level = self._config['logging']['level']
        if level.upper() not in self.LOG_LEVELS:
            raise ValueError(f"Field logging.level must be one of {', '.join(self.LOG_LEVELS)}, got {level}")

    def get_storage_config(self) -> StorageConfig:
        """Get storage configuration as dataclass."""
        return StorageConfig(**self._config['storage'])

    def get_subscription_config(self) -> SubscriptionConfig:
        """Get subscription configuration as dataclass."""
        return SubscriptionConfig(**self._config['subscriptions'])

    def get_logging_config(self) -> LoggingConfig:
        """Get logging configuration as dataclass."""
        return LoggingConfig(**self._config['logging'])

    def expand_path(self, path: str) -> Path:
        """Expand ~ and environment variables in a configured path."""
        return Path(os.path.expanduser(os.path.expandvars(path)))
