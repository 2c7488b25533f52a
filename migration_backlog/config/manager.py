"""
Configuration Management Framework
Coordinator configuration from environment variables, dotenv and JSON/YAML files
"""
import json
import logging
import os
from dataclasses import asdict, dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from dotenv import load_dotenv

from ..core.errors import ConfigurationError
from ..core.source import SourceSettings, split_index_names
from ..core.store import RedisSettings

logger = logging.getLogger(__name__)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
TRUE_VALUES = ("true", "1", "yes", "on")


class Environment(Enum):
    """Environment types"""
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TESTING = "testing"


@dataclass
class BacklogSettings:
    """What to put in the backlog and in which order"""
    index_names: Union[str, List[str]] = "*"
    ignore_completed: bool = False
    index_filter: Optional[str] = None
    type_filter: Optional[str] = None
    index_comparator: Optional[str] = None


@dataclass
class CoordinatorConfig:
    """Main coordinator configuration"""
    environment: Environment = Environment.DEVELOPMENT
    log_level: str = "INFO"
    source: SourceSettings = field(default_factory=lambda: SourceSettings(connection_string=""))
    redis: RedisSettings = field(default_factory=RedisSettings)
    backlog: BacklogSettings = field(default_factory=BacklogSettings)


class ConfigManager:
    """
    Configuration manager with support for:
    - Environment variables (``<PREFIX>_...``)
    - dotenv files
    - Configuration files (JSON/YAML)
    - Validation

    Environment variables override values from the configuration file.
    """

    def __init__(self, config_prefix: str = "BACKLOG", load_env_files: bool = True):
        self.config_prefix = config_prefix
        self.config: Optional[CoordinatorConfig] = None
        if load_env_files:
            self._load_environment_variables()

    def _load_environment_variables(self):
        """Load environment variables from .env files"""
        env_files = ['.env_local', '.env', 'config.env']
        for env_file in env_files:
            if Path(env_file).exists():
                load_dotenv(env_file)
                logger.info(f"Loaded environment variables from {env_file}")
                break

    def load_config(self, config_file: Optional[str] = None) -> CoordinatorConfig:
        """Load configuration from file and environment variables"""
        config_data: Dict[str, Any] = {}

        if config_file:
            file_path = Path(config_file)
            if file_path.name.startswith('.env') or file_path.name.endswith('.env'):
                if not file_path.exists():
                    raise ConfigurationError(f"Configuration file not found: {config_file}")
                load_dotenv(config_file, override=True)
            else:
                config_data = self._load_config_file(config_file)

        _deep_update(config_data, self._load_from_environment())

        self.config = self._create_config_object(config_data)
        self._validate_config(self.config)

        logger.info(f"Configuration loaded for {self.config.environment.value} environment")
        return self.config

    def _load_config_file(self, config_file: str) -> Dict[str, Any]:
        """Load configuration from a JSON or YAML file"""
        file_path = Path(config_file)

        if not file_path.exists():
            raise ConfigurationError(f"Configuration file not found: {config_file}")

        with open(file_path, 'r') as f:
            if file_path.suffix.lower() == '.json':
                data = json.load(f)
            elif file_path.suffix.lower() in ['.yml', '.yaml']:
                data = yaml.safe_load(f)
            else:
                raise ConfigurationError(f"Unsupported configuration file format: {file_path.suffix}")

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigurationError(f"Configuration file {config_file} must contain a mapping")
        return data

    def _env(self, name: str) -> Optional[str]:
        return os.getenv(f"{self.config_prefix}_{name}")

    def _load_from_environment(self) -> Dict[str, Any]:
        """Load the configuration values that are set in the environment"""
        variables = {
            "environment": ("ENVIRONMENT", str),
            "log_level": ("LOG_LEVEL", str),
            "source": {
                "connection_string": ("SOURCE_CONNECTION_STRING", str),
                "max_pool_size": ("SOURCE_MAX_POOL_SIZE", int),
                "min_pool_size": ("SOURCE_MIN_POOL_SIZE", int),
                "socket_timeout_ms": ("SOURCE_SOCKET_TIMEOUT_MS", int),
                "connect_timeout_ms": ("SOURCE_CONNECT_TIMEOUT_MS", int),
                "server_selection_timeout_ms": ("SOURCE_SERVER_SELECTION_TIMEOUT_MS", int),
            },
            "redis": {
                "url": ("REDIS_URL", str),
                "key_prefix": ("REDIS_KEY_PREFIX", str),
                "socket_timeout": ("REDIS_SOCKET_TIMEOUT", float),
            },
            "backlog": {
                "index_names": ("INDEX_NAMES", str),
                "ignore_completed": ("IGNORE_COMPLETED", _parse_bool),
                "index_filter": ("INDEX_FILTER", str),
                "type_filter": ("TYPE_FILTER", str),
                "index_comparator": ("INDEX_COMPARATOR", str),
            },
        }
        return self._collect(variables)

    def _collect(self, variables: Dict[str, Any]) -> Dict[str, Any]:
        config = {}
        for key, spec in variables.items():
            if isinstance(spec, dict):
                section = self._collect(spec)
                if section:
                    config[key] = section
                continue

            name, parse = spec
            raw = self._env(name)
            if raw is None:
                continue
            try:
                config[key] = parse(raw)
            except ValueError:
                raise ConfigurationError(f"Invalid value for {self.config_prefix}_{name}: {raw!r}") from None
        return config

    def _create_config_object(self, config_data: Dict[str, Any]) -> CoordinatorConfig:
        """Create CoordinatorConfig object from dictionary"""
        try:
            environment = Environment(config_data.get("environment", Environment.DEVELOPMENT.value))
        except ValueError:
            raise ConfigurationError(f"Unknown environment: {config_data.get('environment')}") from None

        source_data = dict(config_data.get("source", {}))
        source_data.setdefault("connection_string", "")

        try:
            return CoordinatorConfig(
                environment=environment,
                log_level=str(config_data.get("log_level", "INFO")).upper(),
                source=SourceSettings(**source_data),
                redis=RedisSettings(**config_data.get("redis", {})),
                backlog=BacklogSettings(**config_data.get("backlog", {})),
            )
        except TypeError as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e

    def _validate_config(self, config: CoordinatorConfig):
        """Validate configuration"""
        errors = []

        if not config.source.connection_string:
            errors.append("Source connection string is required")

        if not config.redis.url:
            errors.append("Redis URL is required")

        if config.log_level not in LOG_LEVELS:
            errors.append(f"Log level must be one of {', '.join(LOG_LEVELS)}")

        if config.source.max_pool_size < config.source.min_pool_size:
            errors.append("Max pool size must be >= min pool size")

        index_names = config.backlog.index_names
        if isinstance(index_names, str) or (
                isinstance(index_names, list) and all(isinstance(name, str) for name in index_names)):
            if not split_index_names(index_names):
                errors.append("Index names are required")
        else:
            errors.append("Index names must be a string or a list of strings")

        if errors:
            raise ConfigurationError(f"Configuration validation failed: {'; '.join(errors)}")

    def get_config(self) -> CoordinatorConfig:
        """Get current configuration"""
        if self.config is None:
            raise RuntimeError("Configuration not loaded. Call load_config() first.")
        return self.config

    def save_config(self, config: CoordinatorConfig, file_path: str):
        """Save configuration to file"""
        config_dict = asdict(config)
        config_dict["environment"] = config.environment.value

        file_path_obj = Path(file_path)
        with open(file_path_obj, 'w') as f:
            if file_path_obj.suffix.lower() == '.json':
                json.dump(config_dict, f, indent=2)
            elif file_path_obj.suffix.lower() in ['.yml', '.yaml']:
                yaml.safe_dump(config_dict, f, default_flow_style=False)
            else:
                raise ConfigurationError(f"Unsupported file format: {file_path_obj.suffix}")


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in TRUE_VALUES


def _deep_update(target: Dict[str, Any], updates: Dict[str, Any]) -> Dict[str, Any]:
    for key, value in updates.items():
        if isinstance(value, dict) and isinstance(target.get(key), dict):
            _deep_update(target[key], value)
        else:
            target[key] = value
    return target
