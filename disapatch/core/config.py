"""
Configuration Management

Handles loading and managing configuration files for the DISA Patch tool.
"""

import copy
import logging
from pathlib import Path
from typing import Dict, Any, Optional

try:
    import yaml
except ImportError:
    raise ImportError("PyYAML is required. Install with: pip install PyYAML")

from .exceptions import ConfigurationError
from .constants import ErrorMessages, FileConstants, NetworkConstants, RepositoryConstants

logger = logging.getLogger(__name__)


class ConfigManager:
    """Manages configuration loading and validation"""

    # Configuration schema - defines expected structure and types
    CONFIG_SCHEMA = {
        'portal': {
            'type': dict,
            'required': False,
            'fields': {
                'base_url': {'type': str, 'required': False},
                'timeout': {'type': (int, float), 'required': False},
                'retries': {'type': int, 'required': False},
                'retry_delay': {'type': (int, float), 'required': False},
                'verify_tls': {'type': bool, 'required': False}
            }
        },
        'auth': {
            'type': dict,
            'required': False,
            'fields': {
                'cert_store': {'type': str, 'required': False},
                'thumbprint': {'type': str, 'required': False}
            }
        },
        'enumeration': {
            'type': dict,
            'required': False,
            'fields': {
                'repository': {
                    'type': str, 'required': False,
                    'choices': RepositoryConstants.Repository.get_names()
                },
                'row_cache_key': {'type': str, 'required': False, 'choices': ['title', 'asset_id']}
            }
        },
        'download': {
            'type': dict,
            'required': False,
            'fields': {
                'path': {'type': str, 'required': False},
                'force': {'type': bool, 'required': False}
            }
        },
        'global': {
            'type': dict,
            'required': False,
            'fields': {
                'debug': {'type': bool, 'required': False}
            }
        },
    }

    DEFAULTS = {
        'portal': {
            'base_url': NetworkConstants.DEFAULT_BASE_URL,
            'timeout': NetworkConstants.DEFAULT_TIMEOUT,
            'retries': NetworkConstants.DEFAULT_RETRIES,
            'retry_delay': NetworkConstants.DEFAULT_RETRY_DELAY,
            'verify_tls': True
        },
        'auth': {
            'cert_store': FileConstants.DEFAULT_CERT_STORE,
            'thumbprint': None
        },
        'enumeration': {
            'repository': RepositoryConstants.DEFAULT_REPOSITORY,
            'row_cache_key': 'title'
        },
        'download': {
            'path': FileConstants.DEFAULT_DOWNLOAD_DIR,
            'force': False
        },
        'global': {
            'debug': False
        }
    }

    def __init__(self):
        """Initialize configuration manager"""
        self.config_data = {}
        self.config_file_path = None

    def load_config(self, config_path: str) -> Dict[str, Any]:
        """
        Load configuration from YAML file

        Args:
            config_path: Path to configuration file

        Returns:
            Dict containing configuration data

        Raises:
            ConfigurationError: If configuration file cannot be loaded or is invalid
        """
        config_file = Path(config_path)

        if not config_file.exists():
            raise ConfigurationError(
                str(ErrorMessages.ConfigError.CONFIG_FILE_NOT_FOUND).format(config_path=config_path)
            )

        if not config_file.is_file():
            raise ConfigurationError(f"Configuration path is not a file: {config_path}")

        try:
            with open(config_file, 'r') as f:
                self.config_data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in configuration file {config_path}: {e}")
        except OSError as e:
            raise ConfigurationError(f"Failed to load configuration from {config_path}: {e}")

        self.config_file_path = config_path
        self._validate_config()
        logger.info(f"Successfully loaded configuration from {config_path}")

        return self.config_data

    def _validate_config(self) -> None:
        """
        Validate configuration structure and values

        Raises:
            ConfigurationError: If configuration is invalid
        """
        if not isinstance(self.config_data, dict):
            raise ConfigurationError("Configuration must be a dictionary")

        self._validate_against_schema(self.config_data, self.CONFIG_SCHEMA, "config")

    def _validate_against_schema(self, data: Dict[str, Any], schema: Dict[str, Any], path: str = "") -> None:
        """
        Validate data against schema definition

        Args:
            data: Data to validate
            schema: Schema definition
            path: Current path for error reporting

        Raises:
            ConfigurationError: If data doesn't match schema
        """
        for key, field_schema in schema.items():
            current_path = f"{path}.{key}" if path else key

            if key in data:
                value = data[key]

                # Skip None values for optional fields
                if value is None and not field_schema.get('required', False):
                    continue

                expected_type = field_schema['type']
                # bool is an int subclass; numeric fields must not accept it
                if not isinstance(value, expected_type) or (
                        isinstance(value, bool) and expected_type is not bool):
                    if isinstance(expected_type, tuple):
                        type_name = ' or '.join(t.__name__ for t in expected_type)
                    else:
                        type_name = expected_type.__name__
                    raise ConfigurationError(f"{current_path} must be a {type_name}")

                if 'choices' in field_schema:
                    if value not in field_schema['choices']:
                        choices_str = ', '.join(f"'{c}'" for c in field_schema['choices'])
                        raise ConfigurationError(f"{current_path} must be one of: {choices_str}")

                if expected_type == dict and 'fields' in field_schema:
                    self._validate_against_schema(value, field_schema['fields'], current_path)

            elif field_schema.get('required', False):
                raise ConfigurationError(f"Required field {current_path} is missing")

    def get_config(self) -> Dict[str, Any]:
        """
        Get current configuration data merged over the defaults

        Returns:
            Dict containing configuration data
        """
        merged = copy.deepcopy(self.DEFAULTS)
        for section, values in self.config_data.items():
            if isinstance(values, dict) and section in merged:
                merged[section].update({k: v for k, v in values.items() if v is not None})
            else:
                merged[section] = values
        return merged

    def get_section(self, section: str) -> Dict[str, Any]:
        """
        Get specific configuration section

        Args:
            section: Section name (e.g., 'portal', 'auth')

        Returns:
            Dict containing section data merged over defaults
        """
        return self.get_config().get(section, {})

    def get_value(self, key: str, default: Any = None) -> Any:
        """
        Get configuration value by key

        Args:
            key: Configuration key (supports dot notation like 'portal.timeout')
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        value = self.get_config()

        try:
            for k in key.split('.'):
                value = value[k]
        except (KeyError, TypeError):
            return default
        return default if value is None else value

    def get_config_template_content(self) -> str:
        """
        Generate configuration template content as string without file I/O

        Returns:
            str: YAML configuration template content
        """
        header = (
            "# DISA Patch Configuration File\n"
            "# Command-line options override the values below.\n"
            f"# Repositories: {', '.join(RepositoryConstants.Repository.get_names())}\n"
            "\n"
        )
        body = yaml.safe_dump(self.DEFAULTS, default_flow_style=False, sort_keys=False)
        return header + body

    def generate_config_template(self, output_dir: Optional[str] = None) -> str:
        """
        Generate configuration template file

        Args:
            output_dir: Directory to save template (optional)

        Returns:
            str: Path to generated template file

        Raises:
            ConfigurationError: If template generation fails
        """
        content = self.get_config_template_content()
        output_path = Path(output_dir) if output_dir else Path('.')
        config_file = output_path / FileConstants.DEFAULT_CONFIG_FILE

        try:
            output_path.mkdir(parents=True, exist_ok=True)
            with open(config_file, 'w') as f:
                f.write(content)
        except OSError as e:
            raise ConfigurationError(f"Failed to write configuration file: {e}")

        logger.info(f"Configuration file written: {config_file}")
        return str(config_file)
