"""
Configuration Loader - Load YAML configuration files
"""

from pathlib import Path
from typing import Any, Dict, Optional

import structlog
import yaml

from oplog_stream.config.settings import OplogSettings

logger = structlog.get_logger(__name__)


def load_yaml_config(file_path: str) -> Dict[str, Any]:
    """
    Load YAML configuration file

    Args:
        file_path: Path to YAML file

    Returns:
        Dictionary containing configuration

    Raises:
        FileNotFoundError: If configuration file doesn't exist
        yaml.YAMLError: If YAML parsing fails
    """
    path = Path(file_path)

    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {file_path}")

    try:
        with open(path, "r", encoding="utf-8") as f:
            config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        logger.error("Failed to parse YAML file", path=file_path, error=str(e))
        raise

    if config is None:
        logger.warning("Empty configuration file", path=file_path)
        return {}

    if not isinstance(config, dict):
        raise ValueError(f"Configuration file must contain a mapping: {file_path}")

    return config


def load_config(config_path: Optional[str] = None) -> OplogSettings:
    """
    Load oplog tailer configuration from a YAML file or environment variables

    Values from the YAML file take precedence over environment variables,
    which in turn take precedence over defaults.

    Args:
        config_path: Optional path to YAML config file. If None, uses environment variables.

    Returns:
        OplogSettings: Validated configuration object

    Raises:
        FileNotFoundError: If config file specified but not found
        yaml.YAMLError: If YAML parsing fails
        ValidationError: If configuration validation fails

    Examples:
        >>> config = load_config()
        >>> config = load_config("config/oplog.yaml")
    """
    if config_path:
        yaml_config = load_yaml_config(config_path)
        config = OplogSettings(**yaml_config)
        logger.info("Loaded configuration", source=config_path)
    else:
        config = OplogSettings()
        logger.info("Loaded configuration", source="environment")

    return config
