"""Settings resolution for the CLI.

Settings come from four layers, highest precedence first:
    1. Command-line options
    2. A YAML configuration file (portal-sync.yaml by default)
    3. Environment variables (a .env file is loaded via python-dotenv)
    4. Built-in defaults

Configuration file structure:
    subscription_id: "00000000-0000-0000-0000-000000000000"
    resource_group_name: "my-rg"
    service_name: "my-apim"
    folder: "./dist/snapshot"
    api_version: "2021-08-01"
    management_endpoint: "management.azure.com"
"""

import os
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv

from .errors import ConfigError, ConfigNotFoundError
from .models import SyncSettings


class ConfigLoader:
    """Loads and validates CLI settings."""

    DEFAULT_CONFIG_FILE = 'portal-sync.yaml'

    REQUIRED_FIELDS = ('subscription_id', 'resource_group_name', 'service_name')

    OPTIONAL_FIELDS = ('folder', 'api_version', 'management_endpoint')

    ENV_VARS = {
        'subscription_id': 'AZURE_SUBSCRIPTION_ID',
        'resource_group_name': 'AZURE_RESOURCE_GROUP_NAME',
        'service_name': 'AZURE_SERVICE_NAME',
    }

    @classmethod
    def load(cls, config_path: Optional[str] = None, **overrides: Any) -> SyncSettings:
        """Resolve settings from all layers.

        Args:
            config_path: YAML file to read. When omitted, portal-sync.yaml in
                the working directory is used if it exists.
            **overrides: Command-line values; None means "not given"

        Returns:
            SyncSettings with every required field set

        Raises:
            ConfigNotFoundError: If config_path was given but does not exist
            ConfigError: If the file is malformed or a required field is missing
        """
        load_dotenv()

        values: Dict[str, Any] = {}
        for field_name, env_var in cls.ENV_VARS.items():
            env_value = os.getenv(env_var)
            if env_value:
                values[field_name] = env_value

        if config_path is not None:
            values.update(cls._read_file(config_path))
        elif os.path.exists(cls.DEFAULT_CONFIG_FILE):
            values.update(cls._read_file(cls.DEFAULT_CONFIG_FILE))

        values.update({key: value for key, value in overrides.items() if value is not None})

        missing = [name for name in cls.REQUIRED_FIELDS if not values.get(name)]
        if missing:
            raise ConfigError(
                f"Missing required setting(s): {', '.join(missing)}",
                missing[0],
            )

        known = set(cls.REQUIRED_FIELDS) | set(cls.OPTIONAL_FIELDS)
        return SyncSettings(**{key: str(value) for key, value in values.items() if key in known})

    @classmethod
    def _read_file(cls, config_path: str) -> Dict[str, Any]:
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                content = f.read()
        except FileNotFoundError:
            raise ConfigNotFoundError(config_path)
        except OSError as e:
            raise ConfigError(f"Cannot read {config_path}: {e}")

        try:
            config_dict = yaml.safe_load(content)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML syntax: {str(e)}")

        if config_dict is None:
            return {}

        if not isinstance(config_dict, dict):
            raise ConfigError(
                f"Configuration must be a YAML dictionary, got {type(config_dict).__name__}"
            )

        unknown = set(config_dict) - set(cls.REQUIRED_FIELDS) - set(cls.OPTIONAL_FIELDS)
        if unknown:
            raise ConfigError(
                f"Unknown setting(s): {', '.join(sorted(unknown))}",
                sorted(unknown)[0],
            )

        return config_dict
