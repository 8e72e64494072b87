"""
Configuration loading - YAML file, environment overrides, display.
"""

import logging
import os
import sys
from pathlib import Path

import yaml
from pydantic import ValidationError

from ..utils.constants import ENV_API_URL, ENV_CAMERA_URL, ENV_WS_URL
from .schemas import ClientConfig, validate_config_pydantic
from .validator import ValidationResult

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "config.yaml"


class ConfigValidationError(Exception):
    """Raised when config validation fails."""


# ANSI color codes for terminal output
class Colors:
    GREEN = "\033[92m"
    RED = "\033[91m"
    YELLOW = "\033[93m"
    CYAN = "\033[96m"
    BOLD = "\033[1m"
    RESET = "\033[0m"

    @classmethod
    def disable(cls):
        """Disable colors for non-TTY output."""
        cls.GREEN = cls.RED = cls.YELLOW = cls.CYAN = cls.BOLD = cls.RESET = ""


if not sys.stdout.isatty():
    Colors.disable()


def find_config_file(config_path: str | None) -> Path | None:
    """
    Find the config file.

    Search order:
    1. Specified path (must exist)
    2. ./config.yaml
    3. ~/.config/proctor-client/config.yaml

    Returns:
        Path, or None when nothing was specified and no default exists

    Raises:
        ConfigValidationError: If a specified path does not exist
    """
    if config_path:
        specified = Path(config_path)
        if not specified.exists():
            raise ConfigValidationError(f"Specified config file not found: {config_path}")
        return specified

    search_paths = [
        Path.cwd() / DEFAULT_CONFIG_FILE,
        Path.home() / ".config" / "proctor-client" / DEFAULT_CONFIG_FILE,
    ]
    for path in search_paths:
        if path.exists():
            logger.info(f"Using config: {path}")
            return path

    logger.info("No config file found, using defaults")
    return None


def load_config(config_path: str | None = None) -> dict:
    """
    Read the YAML config and apply environment overrides.

    Returns:
        Raw configuration dictionary (not yet validated)

    Raises:
        ConfigValidationError: If the file is missing or not valid YAML
    """
    config_file = find_config_file(config_path)
    config: dict = {}

    if config_file is not None:
        try:
            with open(config_file, encoding="utf-8") as f:
                config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigValidationError(f"Invalid YAML in {config_file}: {e}") from e
        if not isinstance(config, dict):
            raise ConfigValidationError(f"Config root must be a mapping: {config_file}")
        logger.info(f"Configuration loaded from {config_file}")

    return load_config_with_env(config)


def load_config_with_env(config: dict) -> dict:
    """
    Apply environment variable overrides to config.

    Args:
        config: Base configuration dictionary

    Returns:
        Configuration with environment variables applied
    """
    overrides = [
        (ENV_API_URL, "server", "api_base_url"),
        (ENV_WS_URL, "server", "ws_base_url"),
        (ENV_CAMERA_URL, "devices", "camera_url"),
    ]
    for env_var, section, key in overrides:
        if env_var in os.environ:
            logger.info(f"Using {section}.{key} from environment: {env_var}")
            if not isinstance(config.get(section), dict):
                config[section] = {}
            config[section][key] = os.environ[env_var]
    return config


def build_config(config: dict) -> ClientConfig:
    """
    Parse a raw config dictionary.

    Raises:
        ConfigValidationError: With every schema error in the message
    """
    try:
        return validate_config_pydantic(config)
    except ValidationError as e:
        raise ConfigValidationError(f"Invalid configuration:\n{e}") from e


def print_validation_result(result: ValidationResult) -> None:
    """Print validation result."""
    print()
    print(f"{Colors.BOLD}Configuration Validation{Colors.RESET}")
    print("=" * 60)

    if result.valid:
        print(f"\n{Colors.GREEN}✓ Configuration is valid{Colors.RESET}")
    else:
        print(f"\n{Colors.RED}✗ Configuration has errors{Colors.RESET}")

    if result.errors:
        print(f"\n{Colors.RED}Errors:{Colors.RESET}")
        for error in result.errors:
            print(f"  {Colors.RED}✗{Colors.RESET} {error}")

    if result.warnings:
        print(f"\n{Colors.YELLOW}Warnings:{Colors.RESET}")
        for warning in result.warnings:
            print(f"  {Colors.YELLOW}!{Colors.RESET} {warning}")

    if result.valid and result.derived:
        print(f"\n{Colors.CYAN}Derived Configuration:{Colors.RESET}")
        print(f"  Socket endpoint: {result.derived.get('ws_endpoint')}")
        devices = result.derived.get("required_devices") or ["none"]
        print(f"  Required devices: {', '.join(devices)}")
        print(f"  Reconnect strategy: {result.derived.get('reconnect')}")

    print()
