"""
Configuration management for the library curator.

Loads YAML configuration over dataclass defaults, applies environment
variable overrides and validates the result.
"""

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from utils.exceptions import ConfigurationError

ENV_PREFIX = "LIBRARY_CURATOR_"

VALID_LOG_LEVELS = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
VALID_SCAN_LOG_FORMATS = ['JSON', 'TEXT']


@dataclass
class FilesystemConfig:
    # Order matters: the first extension with a match supplies the representative file
    audio_extensions: List[str] = field(default_factory=lambda: [
        '.mp3', '.wav', '.flac', '.aac', '.ogg', '.wma'
    ])
    skip_list: List[str] = field(default_factory=list)


@dataclass
class LoggingConfig:
    level: str = "INFO"
    file: Optional[str] = None
    max_file_size: int = 5 * 1024 * 1024
    backup_count: int = 3


@dataclass
class ScanLogConfig:
    path: Optional[str] = None
    format: str = "JSON"


@dataclass
class OrganizeConfig:
    destination_root: Optional[str] = None
    dry_run: bool = False
    quiet: bool = False


@dataclass
class CuratorConfig:
    """Structured configuration with defaults."""

    filesystem: FilesystemConfig = field(default_factory=FilesystemConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    scan_log: ScanLogConfig = field(default_factory=ScanLogConfig)
    organize: OrganizeConfig = field(default_factory=OrganizeConfig)


def load_config(config_path: Optional[Path] = None) -> Dict[str, Any]:
    """
    Load configuration from a YAML file with defaults and environment overrides.

    Args:
        config_path: Path to configuration file (optional)

    Returns:
        Nested configuration dictionary

    Raises:
        ConfigurationError: If the file cannot be parsed or a value is invalid
    """
    config_dict = _dataclass_to_dict(CuratorConfig())

    if config_path and config_path.exists():
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                file_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in config file: {e}")
        except OSError as e:
            raise ConfigurationError(f"Cannot read config file {config_path}: {e}")

        if file_config:
            if not isinstance(file_config, dict):
                raise ConfigurationError(f"Config file {config_path} must contain a mapping")
            config_dict = _merge_configs(config_dict, file_config)

    config_dict = _apply_env_overrides(config_dict)

    _validate_config(config_dict)

    return config_dict


def _dataclass_to_dict(obj) -> Any:
    """Convert dataclass to dictionary recursively."""
    if hasattr(obj, '__dataclass_fields__'):
        return {name: _dataclass_to_dict(getattr(obj, name)) for name in obj.__dataclass_fields__}
    elif isinstance(obj, dict):
        return {k: _dataclass_to_dict(v) for k, v in obj.items()}
    elif isinstance(obj, (list, tuple)):
        return [_dataclass_to_dict(item) for item in obj]
    return obj


def _merge_configs(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge override into a copy of base."""
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _merge_configs(result[key], value)
        else:
            result[key] = value

    return result


def _apply_env_overrides(config: Dict[str, Any]) -> Dict[str, Any]:
    """
    Apply environment variable overrides to configuration.

    Variables are prefixed with LIBRARY_CURATOR_ and use double underscores
    for nested keys.

    Examples:
        LIBRARY_CURATOR_LOGGING__LEVEL=DEBUG
        LIBRARY_CURATOR_FILESYSTEM__SKIP_LIST='["/music/Various"]'
    """
    for env_var, value in os.environ.items():
        if not env_var.startswith(ENV_PREFIX):
            continue

        key_path = env_var[len(ENV_PREFIX):].lower().split('__')
        _set_nested_value(config, key_path, _convert_env_value(value))

    return config


def _convert_env_value(value: str) -> Any:
    """Convert an environment variable string to a Python value."""
    if value.lower() in ('true', 'yes', 'on'):
        return True
    if value.lower() in ('false', 'no', 'off'):
        return False

    try:
        return int(value)
    except ValueError:
        pass

    if value.startswith(('[', '{')):
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            pass

    return value


def _set_nested_value(config: Dict[str, Any], key_path: list, value: Any):
    """Set a value in a nested dictionary using a list of keys."""
    current = config
    for key in key_path[:-1]:
        current = current.setdefault(key, {})
    current[key_path[-1]] = value


def _validate_config(config: Dict[str, Any]):
    """
    Validate configuration values.

    Raises:
        ConfigurationError: If configuration is invalid
    """
    filesystem_config = config.get('filesystem', {})

    audio_extensions = filesystem_config.get('audio_extensions', [])
    if not isinstance(audio_extensions, list) or not audio_extensions:
        raise ConfigurationError("filesystem.audio_extensions must be a non-empty list")
    if not all(isinstance(ext, str) and ext.startswith('.') for ext in audio_extensions):
        raise ConfigurationError("filesystem.audio_extensions entries must start with '.'")

    skip_list = filesystem_config.get('skip_list', [])
    if not isinstance(skip_list, list):
        raise ConfigurationError("filesystem.skip_list must be a list of paths")

    logging_config = config.get('logging', {})
    log_level = str(logging_config.get('level', 'INFO'))
    if log_level.upper() not in VALID_LOG_LEVELS:
        raise ConfigurationError(f"logging.level must be one of {VALID_LOG_LEVELS}")

    backup_count = logging_config.get('backup_count', 3)
    if not isinstance(backup_count, int) or backup_count < 0:
        raise ConfigurationError("logging.backup_count must be a non-negative integer")

    scan_log_format = str(config.get('scan_log', {}).get('format', 'JSON'))
    if scan_log_format.upper() not in VALID_SCAN_LOG_FORMATS:
        raise ConfigurationError(f"scan_log.format must be one of {VALID_SCAN_LOG_FORMATS}")

    dry_run = config.get('organize', {}).get('dry_run', False)
    if not isinstance(dry_run, bool):
        raise ConfigurationError("organize.dry_run must be true or false")


def get_config_template() -> str:
    """
    Get a YAML template for the configuration file.

    Returns:
        YAML configuration template as string
    """
    return """# Configuration for library-curator
filesystem:
  # Checked in this order when picking a folder's representative file
  audio_extensions:
    - .mp3
    - .wav
    - .flac
    - .aac
    - .ogg
    - .wma

  # Folders (and everything beneath them) that scans leave alone
  skip_list: []

logging:
  level: INFO
  file: null
  max_file_size: 5242880
  backup_count: 3

# JSON-lines record of Good/Bad folders, one object per line
scan_log:
  path: null
  format: JSON   # JSON or Text

organize:
  destination_root: null
  dry_run: false
  quiet: false
"""
