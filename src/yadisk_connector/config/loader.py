"""Configuration loader for JSON/YAML files and environment variables."""

import json
import os
from pathlib import Path
from typing import Dict, Any, List, Union

import yaml

from .schema import ConnectorConfig, EXAMPLE_TRIGGER
from ..utils.logging import get_logger


class ConfigurationError(Exception):
    """Raised when configuration loading fails."""
    pass


class ConfigLoader:
    """Loads and validates configuration from various sources."""

    def __init__(self):
        self.logger = get_logger(self.__class__.__name__)

    def load_from_file(self, file_path: Union[str, Path]) -> ConnectorConfig:
        """Load configuration from JSON or YAML file.

        Args:
            file_path: Path to configuration file

        Returns:
            Validated ConnectorConfig object

        Raises:
            ConfigurationError: If file cannot be loaded or validated
        """
        file_path = Path(file_path)

        if not file_path.exists():
            raise ConfigurationError(f"Configuration file not found: {file_path}")

        self.logger.info("Loading configuration from file", file_path=str(file_path))

        suffix = file_path.suffix.lower()
        if suffix not in ('.yaml', '.yml', '.json'):
            raise ConfigurationError(f"Unsupported file format: {file_path.suffix}")

        try:
            with open(file_path, 'r', encoding='utf-8') as f:
                if suffix == '.json':
                    data = json.load(f)
                else:
                    data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML format: {e}")
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid JSON format: {e}")

        return self.load_from_dict(data or {})

    def load_from_dict(self, data: Dict[str, Any]) -> ConnectorConfig:
        """Load configuration from dictionary.

        Args:
            data: Configuration data as dictionary

        Returns:
            Validated ConnectorConfig object
        """
        if not isinstance(data, dict):
            raise ConfigurationError("Configuration root must be a mapping")

        try:
            data = self._apply_env_overrides(data)
            config = ConnectorConfig(**data)
        except Exception as e:
            raise ConfigurationError(f"Failed to load configuration: {e}")

        self.logger.info(
            "Configuration loaded",
            triggers_count=len(config.triggers),
            environment=config.environment
        )

        return config

    def save_to_file(self, config: ConnectorConfig, file_path: Union[str, Path], format: str = 'yaml'):
        """Save configuration to file.

        Args:
            config: Configuration to save
            file_path: Output file path
            format: Output format ('yaml' or 'json')
        """
        file_path = Path(file_path)
        file_path.parent.mkdir(parents=True, exist_ok=True)

        data = config.model_dump(mode="json")

        try:
            with open(file_path, 'w', encoding='utf-8') as f:
                if format.lower() == 'yaml':
                    yaml.safe_dump(data, f, default_flow_style=False, indent=2, allow_unicode=True)
                elif format.lower() == 'json':
                    json.dump(data, f, indent=2)
                else:
                    raise ConfigurationError(f"Unsupported format: {format}")
        except OSError as e:
            raise ConfigurationError(f"Failed to save configuration: {e}")

        self.logger.info("Configuration saved successfully", file_path=str(file_path))

    def create_default_config(self) -> ConnectorConfig:
        """Create a default configuration with one example trigger."""
        config = ConnectorConfig(version="1.0.0", environment="development", triggers=[EXAMPLE_TRIGGER])
        self.logger.info("Created default configuration")
        return config

    def _apply_env_overrides(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Apply environment variable overrides to configuration data.

        Environment variables use the format: CONNECTOR_<KEY>
        For example: CONNECTOR_DATABASE_URL, CONNECTOR_LOG_LEVEL
        """
        env_overrides = {}

        mapping = {
            'CONNECTOR_DATABASE_URL': 'database_url',
            'CONNECTOR_LOG_LEVEL': 'log_level',
            'CONNECTOR_LOG_FORMAT': 'log_format',
            'CONNECTOR_ENVIRONMENT': 'environment',
        }

        for env_var, key in mapping.items():
            value = os.getenv(env_var)
            if value:
                env_overrides[key] = value

        if env_overrides:
            self.logger.info("Applied environment variable overrides", overrides=list(env_overrides.keys()))
            data = {**data, **env_overrides}

        return data

    def validate_config(self, config: ConnectorConfig) -> List[str]:
        """Validate configuration and return list of warnings."""
        warnings = []

        if not config.get_active_triggers():
            warnings.append("No active triggers configured")

        for trigger in config.triggers:
            options = trigger.options
            if options.limit > options.api_limit:
                warnings.append(
                    f"Trigger '{trigger.name}' limit {options.limit} exceeds the API maximum "
                    f"and will be fetched as {options.api_limit}"
                )

        namespaces = [t.state_namespace for t in config.triggers]
        if len(namespaces) != len(set(namespaces)):
            warnings.append("Several triggers share the same workflow/node checkpoint")

        if warnings:
            self.logger.warning("Configuration validation warnings", warnings=warnings)
        else:
            self.logger.info("Configuration validation passed")

        return warnings


def load_config_from_env() -> ConnectorConfig:
    """Load configuration from environment variables and default files.

    Looks for configuration files in this order:
    1. CONNECTOR_CONFIG_FILE environment variable
    2. ./config/connector.yaml
    3. ./config/connector.json
    4. ./connector.yaml
    5. ./connector.json

    If no file is found, creates a default configuration.
    """
    loader = ConfigLoader()
    logger = get_logger("load_config_from_env")

    config_file = os.getenv('CONNECTOR_CONFIG_FILE')
    if config_file:
        if os.path.exists(config_file):
            return loader.load_from_file(config_file)
        logger.warning("Specified config file not found", file=config_file)

    possible_files = [
        './config/connector.yaml',
        './config/connector.yml',
        './config/connector.json',
        './connector.yaml',
        './connector.yml',
        './connector.json'
    ]

    for file_path in possible_files:
        if os.path.exists(file_path):
            logger.info("Found configuration file", file=file_path)
            return loader.load_from_file(file_path)

    logger.info("No configuration file found, creating default configuration")
    return loader.create_default_config()
