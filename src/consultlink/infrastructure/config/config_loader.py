"""Configuration loader with support for YAML files and environment variables."""

import os
from pathlib import Path
from typing import Optional, Dict, Any
import yaml

from .config_models import ConsultLinkConfig


class ConfigLoader:
    """
    Load and manage ConsultLink configuration.

    Configuration is loaded in the following order (later sources override earlier):
    1. Default configuration (embedded in code)
    2. Global configuration (~/.consultlink/config.yaml)
    3. Project configuration (./consultlink.yaml or .consultlink.yaml)
    4. User-specified configuration file
    5. Environment variables (CONSULTLINK_*)
    """

    ENV_PREFIX = "CONSULTLINK_"
    ENV_NESTING = "__"

    DEFAULT_CONFIG_PATHS = [
        Path.home() / ".consultlink" / "config.yaml",
        Path("./consultlink.yaml"),
        Path("./.consultlink.yaml"),
    ]

    @classmethod
    def load(cls, config_path: Optional[str] = None) -> ConsultLinkConfig:
        """
        Load configuration from multiple sources.

        Args:
            config_path: Optional path to configuration file

        Returns:
            ConsultLinkConfig instance

        Raises:
            FileNotFoundError: config_path does not exist
            ValueError: A file is not valid YAML
            pydantic.ValidationError: The merged settings are invalid
        """
        # Start from the defaults embedded in the models
        config_dict = {}

        # Load from default paths
        for path in cls.DEFAULT_CONFIG_PATHS:
            if path.exists():
                config_dict = cls._merge_dicts(
                    config_dict,
                    cls._load_yaml_file(path)
                )

        # Load from user-specified path
        if config_path:
            user_path = Path(config_path)
            if not user_path.exists():
                raise FileNotFoundError(f"Configuration file not found: {config_path}")
            config_dict = cls._merge_dicts(
                config_dict,
                cls._load_yaml_file(user_path)
            )

        # Override with environment variables
        config_dict = cls._merge_dicts(
            config_dict,
            cls._load_from_env()
        )

        # Create and validate configuration
        return ConsultLinkConfig(**config_dict)

    @staticmethod
    def _load_yaml_file(path: Path) -> Dict[str, Any]:
        """
        Load YAML configuration file.

        Args:
            path: Path to YAML file

        Returns:
            Configuration dictionary
        """
        try:
            with open(path, 'r') as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in {path}: {e}")

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ValueError(f"Configuration in {path} must be a mapping")
        return data

    @staticmethod
    def _merge_dicts(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """
        Recursively merge two dictionaries.

        Args:
            base: Base dictionary
            override: Dictionary with overrides

        Returns:
            Merged dictionary
        """
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = ConfigLoader._merge_dicts(result[key], value)
            else:
                result[key] = value

        return result

    @classmethod
    def _load_from_env(cls) -> Dict[str, Any]:
        """
        Load configuration from environment variables.

        Environment variables are prefixed with CONSULTLINK_ and use double
        underscores to separate nested keys, so single underscores stay
        part of the field name. For example:
        - CONSULTLINK_STORAGE__URL -> storage.url
        - CONSULTLINK_RESILIENCE__RETRY__MAX_RETRIES -> resilience.retry.max_retries

        Returns:
            Configuration dictionary from environment
        """
        config = {}

        for key, value in os.environ.items():
            if not key.startswith(cls.ENV_PREFIX):
                continue

            # Strip prefix, lowercase, split on the nesting separator
            key_parts = key[len(cls.ENV_PREFIX):].lower().split(cls.ENV_NESTING)
            if not all(key_parts):
                continue

            # Build nested dictionary
            current = config
            for part in key_parts[:-1]:
                if not isinstance(current.get(part), dict):
                    current[part] = {}
                current = current[part]

            # Set the value with type conversion
            current[key_parts[-1]] = cls._convert_env_value(value)

        return config

    @staticmethod
    def _convert_env_value(value: str) -> Any:
        """
        Convert environment variable string to appropriate type.

        Args:
            value: String value from environment

        Returns:
            Converted value
        """
        # Boolean
        if value.lower() in ('true', 'yes'):
            return True
        if value.lower() in ('false', 'no'):
            return False

        # Integer
        try:
            return int(value)
        except ValueError:
            pass

        # Float
        try:
            return float(value)
        except ValueError:
            pass

        # Database URLs may carry commas in query strings; keep strings whole.
        return value

    @classmethod
    def create_default_config(cls, path: Optional[str] = None) -> Path:
        """
        Create a default configuration file.

        Args:
            path: Optional path for config file. If not provided, creates in ~/.consultlink/

        Returns:
            Path to created configuration file
        """
        if path:
            config_path = Path(path)
            config_path.parent.mkdir(parents=True, exist_ok=True)
        else:
            config_dir = Path.home() / ".consultlink"
            config_dir.mkdir(parents=True, exist_ok=True)
            config_path = config_dir / "config.yaml"

        # Generate default configuration
        default_config = ConsultLinkConfig()
        yaml_content = default_config.to_yaml()

        # Add comments to YAML
        yaml_with_comments = f"""# ConsultLink Configuration
#
# This file configures ConsultLink's behavior. You can override these settings
# with environment variables (CONSULTLINK_SECTION__KEY, e.g.
# CONSULTLINK_STORAGE__URL) or by specifying --config at runtime.

{yaml_content}
"""

        # Write to file
        config_path.write_text(yaml_with_comments)

        return config_path

    @classmethod
    def get_config_info(cls) -> Dict[str, Any]:
        """
        Get information about configuration sources.

        Returns:
            Dictionary with configuration information
        """
        info = {
            "default_paths": [str(p) for p in cls.DEFAULT_CONFIG_PATHS],
            "existing_configs": [],
            "env_overrides": [],
        }

        # Check which default configs exist
        for path in cls.DEFAULT_CONFIG_PATHS:
            if path.exists():
                info["existing_configs"].append(str(path))

        # Check for environment overrides
        for key in os.environ.keys():
            if key.startswith(cls.ENV_PREFIX):
                info["env_overrides"].append(key)

        return info
