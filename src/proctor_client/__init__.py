"""
Proctor Client

Reports exam integrity events (capture-device status, tab and fullscreen
changes, AI-detected violations) to a proctoring backend over an
unreliable WebSocket without losing events or flooding the channel.

Package structure:
  core/       - Queue, emitter, transport, monitors, cooling controller
  models/     - Events, devices, violations
  notifiers/  - HTTP evidence upload
  config/     - Configuration loading and validation
  utils/      - Constants, wire schema, schedulers
"""

__version__ = "1.0.0"

from .config import ClientConfig, ConfigValidationError, ValidationResult, validate_config_full
from .models import ConnectionState, DeviceRequirement, ProctorEvent, ViolationType
from .session import SessionContext

__all__ = [
    "ClientConfig",
    "ConfigValidationError",
    "ConnectionState",
    "DeviceRequirement",
    "ProctorEvent",
    "SessionContext",
    "ValidationResult",
    "ViolationType",
    "validate_config_full",
]
