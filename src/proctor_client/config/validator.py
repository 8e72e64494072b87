"""
Configuration Validator - structural and semantic checks.

Structural errors come from the pydantic schemas; everything here is
advisory (warnings) or derived display data.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from ..utils.constants import PROCTOR_SOCKET_PATH
from ..utils.event_schema import KNOWN_EVENT_TYPES
from .schemas import ClientConfig, validate_config_pydantic

logger = logging.getLogger(__name__)


@dataclass
class ValidationResult:
    """Result of config validation."""

    valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    derived: dict[str, Any] = field(default_factory=dict)


def validate_config_full(config: dict) -> ValidationResult:
    """
    Comprehensive config validation with detailed messages.

    Args:
        config: Raw configuration dictionary

    Returns:
        ValidationResult with errors, warnings, and derived settings
    """
    result = ValidationResult(valid=True)

    try:
        parsed = validate_config_pydantic(config)
    except ValidationError as e:
        result.valid = False
        result.errors.extend(_format_errors(e))
        return result

    _check_devices(parsed, result)
    _check_detection(parsed, result)
    _check_throttle(parsed, result)
    _check_timing(parsed, result)

    result.derived = {
        "ws_endpoint": parsed.server.resolved_ws_base_url() + PROCTOR_SOCKET_PATH,
        "required_devices": parsed.devices.requirements().required_devices(),
        "reconnect": parsed.transport.reconnect.strategy,
    }
    return result


def _format_errors(error: ValidationError) -> list[str]:
    messages = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"]) or "config"
        messages.append(f"{location}: {item['msg']}")
    return messages


def _check_devices(config: ClientConfig, result: ValidationResult) -> None:
    devices = config.devices
    if devices.microphone:
        result.warnings.append(
            "devices.microphone is required but audio capture is not supported; "
            "sessions will report the microphone as unavailable"
        )
    if not devices.camera and config.detection.enabled:
        result.warnings.append(
            "detection.enabled has no effect when devices.camera is false"
        )


def _check_detection(config: ClientConfig, result: ValidationResult) -> None:
    detection = config.detection
    if detection.enabled and not Path(detection.model_file).exists():
        result.warnings.append(
            f"Model file not found: {detection.model_file} (will be downloaded if valid)"
        )


def _check_throttle(config: ClientConfig, result: ValidationResult) -> None:
    for event_type in config.throttle:
        if event_type not in KNOWN_EVENT_TYPES:
            result.warnings.append(f"throttle.{event_type}: unknown event type")


def _check_timing(config: ClientConfig, result: ValidationResult) -> None:
    violations = config.violations
    if violations.check_interval > violations.cooling_period_seconds:
        result.warnings.append(
            "violations.check_interval is longer than the cooling period"
        )
