"""
Configuration service for loading and validating TLS settings.
"""
import os
import configparser
from typing import Optional, Dict, Any
import logging

from ..models.config import Config, ConfigValidationError, ConfigValidationResult


class ConfigService:
    """Service for loading and validating configuration."""

    # Maps configuration keys to Config fields
    CONFIG_MAPPING = {
        # TLS settings
        "tls.enabled": ("enable_tls", bool),
        "enable_tls": ("enable_tls", bool),
        "tls.server_name": ("server_name", str),
        "server_name": ("server_name", str),
        "tls.ca_cert_path": ("ca_cert_path", str),
        "ca_cert_path": ("ca_cert_path", str),
        "tls.client_cert_path": ("client_cert_path", str),
        "client_cert_path": ("client_cert_path", str),
        "tls.client_key_path": ("client_key_path", str),
        "client_key_path": ("client_key_path", str),

        # Application settings
        "app.log_level": ("log_level", str),
        "log_level": ("log_level", str),
        "app.log_file_path": ("log_file_path", str),
        "log_file_path": ("log_file_path", str),
    }

    def __init__(self, config_path: Optional[str] = None):
        self.logger = logging.getLogger(__name__)
        self._config = None
        if config_path:
            self._config = self.load_config(config_path)

    def get_config(self) -> Config:
        """
        Get the loaded configuration.

        Returns:
            Config object

        Raises:
            ValueError: If no configuration has been loaded
        """
        if self._config is None:
            raise ValueError("No configuration loaded. Call load_config() first.")
        return self._config

    def load_config(self, config_path: str) -> Config:
        """
        Load configuration from an INI file.

        Args:
            config_path: Path to the configuration file

        Returns:
            Config object with loaded settings

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If config file is invalid or has validation errors
        """
        if not os.path.exists(config_path):
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        config_data = self._load_config_file(config_path)
        config = self._create_config_from_data(config_data)

        validation_result = self.validate_config(config)

        if validation_result.has_errors():
            error_summary = validation_result.get_error_summary()
            raise ValueError(f"Configuration validation failed:\n{error_summary}")

        if validation_result.has_warnings():
            warning_summary = validation_result.get_error_summary()
            self.logger.warning(f"Configuration warnings:\n{warning_summary}")

        self._config = config
        return config

    def _load_config_file(self, config_path: str) -> Dict[str, Any]:
        """Load configuration data from file."""
        config_parser = configparser.ConfigParser()

        try:
            config_parser.read(config_path)
        except configparser.Error as e:
            raise ValueError(f"Failed to parse configuration file: {e}")

        # Flatten to section.key
        config_data = {}
        for section in config_parser.sections():
            for key, value in config_parser.items(section):
                config_data[f"{section}.{key}"] = value

        for key, value in config_parser.defaults().items():
            if key not in config_data:
                config_data[key] = value

        return config_data

    def _create_config_from_data(self, config_data: Dict[str, Any]) -> Config:
        """Create Config object from configuration data."""
        config_kwargs = {}

        for config_key, raw_value in config_data.items():
            if config_key not in self.CONFIG_MAPPING:
                continue
            field_name, field_type = self.CONFIG_MAPPING[config_key]
            if field_type == bool:
                value = self._parse_bool(raw_value)
            else:
                value = str(raw_value).strip() if raw_value is not None else None
                if value == "" and field_name in ("client_cert_path", "client_key_path"):
                    value = None
            config_kwargs[field_name] = value

        return Config(**config_kwargs)

    def _parse_bool(self, value: Any) -> bool:
        """Parse boolean value from string."""
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            return value.lower() in ("true", "yes", "1", "on", "enabled")
        return bool(value)

    def validate_config(self, config: Config) -> ConfigValidationResult:
        """
        Validate configuration settings.

        Args:
            config: Configuration object to validate

        Returns:
            ConfigValidationResult with validation results
        """
        errors = []
        warnings = []

        if config.enable_tls:
            if not config.ca_cert_path:
                errors.append(ConfigValidationError(
                    "ca_cert_path",
                    "ca_cert_path is required when TLS is enabled"
                ))
            elif not os.path.exists(config.ca_cert_path):
                errors.append(ConfigValidationError(
                    "ca_cert_path",
                    f"CA bundle not found: {config.ca_cert_path}"
                ))

            if bool(config.client_cert_path) != bool(config.client_key_path):
                errors.append(ConfigValidationError(
                    "client_cert_path" if not config.client_cert_path else "client_key_path",
                    "client_cert_path and client_key_path must be configured together"
                ))
            else:
                for field_name in ("client_cert_path", "client_key_path"):
                    path = getattr(config, field_name)
                    if path and not os.path.exists(path):
                        errors.append(ConfigValidationError(
                            field_name,
                            f"Client credential file not found: {path}"
                        ))
        else:
            warnings.append(ConfigValidationError(
                "enable_tls",
                "TLS is disabled; server certificates will not be verified",
                "warning"
            ))

        if config.log_file_path:
            log_dir = os.path.dirname(config.log_file_path)
            if log_dir and not os.path.exists(log_dir):
                warnings.append(ConfigValidationError(
                    "log_file_path",
                    f"Log directory does not exist: {log_dir}",
                    "warning"
                ))

        all_issues = errors + warnings
        return ConfigValidationResult(
            is_valid=len(errors) == 0,
            errors=all_issues,
            warnings=[]
        )

    def create_default_config_file(self, config_path: str) -> None:
        """
        Create a default configuration file with example settings.

        Args:
            config_path: Path where to create the config file
        """
        config_content = """# TLS client configuration

[tls]
enabled = true
server_name = db.internal
ca_cert_path = certs/ca.crt
client_cert_path =
client_key_path =

[app]
log_level = INFO
log_file_path = logs/tlsutil.log
"""

        config_dir = os.path.dirname(config_path)
        if config_dir:
            os.makedirs(config_dir, exist_ok=True)

        with open(config_path, 'w') as f:
            f.write(config_content)

        self.logger.info(f"Created default configuration file: {config_path}")
