"""
Unified Configuration System for the CRC-SAS API client

This module provides centralized configuration management with clear hierarchy:
1. Built-in defaults (lowest priority)
2. Configuration files (YAML/JSON)
3. Environment variables
4. Command-line arguments (highest priority)
"""

import copy
import json
import os
from pathlib import Path
from typing import Dict, Any, Optional

import yaml

from .api_client import ApiCredentials
from .logging_utils import ConfigurationError

DEFAULT_BASE_URL = "https://api.crc-sas.org/ws-api"
MASKED_VALUE = "********"


class CrcSasConfig:
    """
    Unified configuration system for the CRC-SAS API client.

    Provides centralized configuration management with clear hierarchy:
    1. Built-in defaults
    2. Configuration files (YAML/JSON)
    3. Environment variables
    4. Command-line arguments (highest priority)

    Passwords are kept in memory only: they are masked by ``to_dict`` and
    never written by ``save_config``.
    """

    def __init__(self, config_file: Optional[str] = None, cli_args: Optional[Dict] = None):
        """
        Initialize configuration system with proper precedence order.

        Args:
            config_file: Path to YAML or JSON configuration file
            cli_args: Dictionary of command-line arguments (highest priority)
        """
        self.config_file = config_file
        self.cli_args = cli_args or {}
        self._config = {}
        self._load_configuration()

    def _load_configuration(self):
        """Load configuration with proper precedence order"""
        self._config = self._get_default_config()

        if self.config_file:
            file_config = self._load_config_file(self.config_file)
            self._merge_config(self._config, file_config)

        env_config = self._load_environment_config()
        self._merge_config(self._config, env_config)

        if self.cli_args:
            self._merge_config(self._config, self.cli_args)

        self._validate_configuration()

    def _get_default_config(self) -> Dict[str, Any]:
        """Built-in default configuration"""
        return {
            'api': {
                'base_url': DEFAULT_BASE_URL,
                'timeout': 60,
                'username': None,  # Set via environment
                'password': None,  # Set via environment
                'temp_directory': None  # System temp directory
            },
            'logging': {
                'log_level': 'INFO',
                'log_file': None
            }
        }

    def _load_config_file(self, config_path: str) -> Dict[str, Any]:
        """Load configuration from YAML or JSON file"""
        config_path = Path(config_path)
        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_path, 'r') as f:
            if config_path.suffix.lower() in ['.yaml', '.yml']:
                return yaml.safe_load(f) or {}
            elif config_path.suffix.lower() == '.json':
                return json.load(f)
            else:
                raise ConfigurationError(f"Unsupported config file format: {config_path.suffix}")

    def _load_environment_config(self) -> Dict[str, Any]:
        """Load configuration from environment variables"""
        env_config = {}

        env_mappings = {
            'CRCSAS_API_URL': 'api.base_url',
            'CRCSAS_USERNAME': 'api.username',
            'CRCSAS_PASSWORD': 'api.password',
            'CRCSAS_TIMEOUT': 'api.timeout',
            'CRCSAS_TEMP_DIR': 'api.temp_directory',
            'CRCSAS_LOG_LEVEL': 'logging.log_level',
            'CRCSAS_LOG_FILE': 'logging.log_file'
        }

        for env_var, config_path in env_mappings.items():
            value = os.getenv(env_var)
            if value is not None:
                self._set_nested_config(env_config, config_path, value)

        return env_config

    def _set_nested_config(self, config_dict: Dict, path: str, value: Any):
        """Set nested configuration value using dot notation path"""
        keys = path.split('.')
        current = config_dict

        for key in keys[:-1]:
            if key not in current:
                current[key] = {}
            current = current[key]

        # Numeric strings only for numeric settings; passwords stay strings
        if isinstance(value, str) and keys[-1] == 'timeout':
            if value.isdigit():
                value = int(value)
            elif value.replace('.', '', 1).isdigit():
                value = float(value)

        current[keys[-1]] = value

    def _merge_config(self, base_config: Dict, override_config: Dict):
        """Deep merge configuration dictionaries"""
        for key, value in override_config.items():
            if key in base_config and isinstance(base_config[key], dict) and isinstance(value, dict):
                self._merge_config(base_config[key], value)
            else:
                base_config[key] = value

    def _validate_configuration(self):
        """Validate final configuration"""
        for section in ['api', 'logging']:
            if not isinstance(self._config.get(section), dict):
                raise ConfigurationError(f"Required configuration section missing: {section}")

        self._validate_api_config()
        self._validate_logging_config()

    def _validate_api_config(self):
        """Validate api section configuration"""
        api = self._config['api']

        base_url = api.get('base_url')
        if not isinstance(base_url, str) or not base_url.startswith(('http://', 'https://')):
            raise ConfigurationError(f"base_url must be an http(s) URL. Got: {base_url!r}")

        timeout = api.get('timeout')
        if timeout is not None:
            if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
                raise ConfigurationError(f"timeout must be a positive number. Got: {timeout!r}")

        temp_dir = api.get('temp_directory')
        if temp_dir:
            Path(temp_dir).mkdir(parents=True, exist_ok=True)

    def _validate_logging_config(self):
        """Validate logging section configuration"""
        valid_log_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        log_level = str(self._config['logging'].get('log_level', 'INFO')).upper()
        if log_level not in valid_log_levels:
            raise ConfigurationError(f"log_level must be one of: {valid_log_levels}")
        self._config['logging']['log_level'] = log_level

    # Public interface methods
    def get(self, path: str, default: Any = None) -> Any:
        """
        Get configuration value using dot notation path.

        Args:
            path: Dot-separated path to configuration value (e.g., 'api.base_url')
            default: Default value if path not found

        Returns:
            Configuration value or default if not found
        """
        keys = path.split('.')
        current = self._config

        try:
            for key in keys:
                current = current[key]
            return current
        except (KeyError, TypeError):
            return default

    def get_api_config(self) -> Dict[str, Any]:
        """Get API access configuration"""
        return self._config['api']

    def get_logging_config(self) -> Dict[str, Any]:
        """Get logging configuration"""
        return self._config['logging']

    def get_credentials(self) -> ApiCredentials:
        """
        Build API credentials from the configured username and password.

        Raises:
            ConfigurationError: If username or password is not configured
        """
        username = self.get('api.username')
        password = self.get('api.password')
        if not username or not password:
            raise ConfigurationError(
                "API credentials not configured. Set CRCSAS_USERNAME and CRCSAS_PASSWORD, "
                "or api.username/api.password in the configuration file"
            )
        return ApiCredentials(str(username), str(password))

    def to_dict(self) -> Dict[str, Any]:
        """Return complete configuration as dictionary, with the password masked"""
        config = copy.deepcopy(self._config)
        if config['api'].get('password'):
            config['api']['password'] = MASKED_VALUE
        return config

    def save_config(self, output_path: str):
        """
        Save current configuration to file, without the password.

        Args:
            output_path: Path where to save configuration file
        """
        output_path = Path(output_path)
        config = copy.deepcopy(self._config)
        config['api']['password'] = None

        if output_path.suffix.lower() in ['.yaml', '.yml']:
            with open(output_path, 'w') as f:
                yaml.dump(config, f, default_flow_style=False, indent=2)
        elif output_path.suffix.lower() == '.json':
            with open(output_path, 'w') as f:
                json.dump(config, f, indent=2)
        else:
            raise ConfigurationError(f"Unsupported output format: {output_path.suffix}")
