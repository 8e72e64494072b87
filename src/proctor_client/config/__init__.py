"""
Configuration loading and validation.

- load_config: Read YAML and apply environment overrides
- validate_config_full: Errors, warnings and derived settings
- build_config: Parse into a typed ClientConfig
"""

from .loader import (
    ConfigValidationError,
    build_config,
    find_config_file,
    load_config,
    load_config_with_env,
    print_validation_result,
)
from .schemas import (
    ClientConfig,
    DetectionConfig,
    DevicesConfig,
    QueueConfig,
    ReconnectConfig,
    ServerConfig,
    TransportConfig,
    ViolationsConfig,
    validate_config_pydantic,
)
from .validator import ValidationResult, validate_config_full

__all__ = [
    "ClientConfig",
    "ConfigValidationError",
    "DetectionConfig",
    "DevicesConfig",
    "QueueConfig",
    "ReconnectConfig",
    "ServerConfig",
    "TransportConfig",
    "ValidationResult",
    "ViolationsConfig",
    "build_config",
    "find_config_file",
    "load_config",
    "load_config_with_env",
    "print_validation_result",
    "validate_config_full",
    "validate_config_pydantic",
]
