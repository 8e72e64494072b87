"""
Pydantic schemas for configuration validation.

Every section has defaults, so an empty file is a valid configuration.
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..models.devices import DeviceRequirement
from ..utils.constants import (
    COOLING_PERIOD_SECONDS,
    DEFAULT_API_BASE_URL,
    DEFAULT_QUEUE_CAPACITY,
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_THROTTLE_INTERVALS_MS,
    DETECTION_CHECK_INTERVAL,
    DEVICE_POLL_INTERVAL,
    RECONNECT_BASE_DELAY,
    RECONNECT_JITTER,
    RECONNECT_MAX_DELAY,
)


class StrictModel(BaseModel):
    """Base model that rejects unknown fields."""

    model_config = ConfigDict(extra="forbid")


class ServerConfig(StrictModel):
    """Backend endpoints."""

    api_base_url: str = DEFAULT_API_BASE_URL
    ws_base_url: str | None = Field(
        default=None, description="Derived from api_base_url when omitted"
    )
    request_timeout: float = Field(default=DEFAULT_REQUEST_TIMEOUT, gt=0)

    @field_validator("api_base_url")
    @classmethod
    def validate_api_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError("api_base_url must start with http:// or https://")
        return v.rstrip("/")

    @field_validator("ws_base_url")
    @classmethod
    def validate_ws_url(cls, v: str | None) -> str | None:
        if v is not None and not v.startswith(("ws://", "wss://")):
            raise ValueError("ws_base_url must start with ws:// or wss://")
        return v.rstrip("/") if v else v

    def resolved_ws_base_url(self) -> str:
        """http -> ws, https -> wss."""
        if self.ws_base_url:
            return self.ws_base_url
        return "ws" + self.api_base_url[len("http"):]


class ReconnectConfig(StrictModel):
    """Reconnection backoff."""

    strategy: Literal["fixed", "exponential"] = "exponential"
    base_delay: float = Field(default=RECONNECT_BASE_DELAY, gt=0)
    max_delay: float = Field(default=RECONNECT_MAX_DELAY, gt=0)
    jitter: float = Field(default=RECONNECT_JITTER, ge=0, le=1)

    @model_validator(mode="after")
    def validate_range(self):
        if self.max_delay < self.base_delay:
            raise ValueError("max_delay must be >= base_delay")
        return self


class TransportConfig(StrictModel):
    reconnect: ReconnectConfig = Field(default_factory=ReconnectConfig)


class QueueConfig(StrictModel):
    capacity: int = Field(default=DEFAULT_QUEUE_CAPACITY, gt=0)


class DevicesConfig(StrictModel):
    """Required capture devices and polling."""

    camera: bool = True
    microphone: bool = False
    camera_url: str = "0"
    poll_interval: float = Field(default=DEVICE_POLL_INTERVAL, gt=0)

    @field_validator("camera_url", mode="before")
    @classmethod
    def coerce_camera_url(cls, v):
        # YAML reads a bare device index as an int
        return str(v) if isinstance(v, int) else v

    def requirements(self) -> DeviceRequirement:
        return DeviceRequirement(camera=self.camera, microphone=self.microphone)


class ViolationsConfig(StrictModel):
    cooling_period_seconds: int = Field(default=COOLING_PERIOD_SECONDS, ge=1)
    check_interval: float = Field(default=DETECTION_CHECK_INTERVAL, gt=0)


class DetectionConfig(StrictModel):
    """Detection settings."""

    enabled: bool = True
    model_file: str = Field(default="yolov8n.pt", description="YOLO model file path (.pt)")
    confidence_threshold: float = Field(default=0.5, ge=0.0, le=1.0)

    @field_validator("model_file")
    @classmethod
    def validate_model_file(cls, v: str) -> str:
        if not v.endswith(".pt"):
            raise ValueError("Model file must be .pt format")
        return v


class ClientConfig(StrictModel):
    """Complete client configuration."""

    server: ServerConfig = Field(default_factory=ServerConfig)
    transport: TransportConfig = Field(default_factory=TransportConfig)
    queue: QueueConfig = Field(default_factory=QueueConfig)
    throttle: dict[str, int] = Field(
        default_factory=lambda: dict(DEFAULT_THROTTLE_INTERVALS_MS),
        description="Minimum milliseconds between events of a type",
    )
    devices: DevicesConfig = Field(default_factory=DevicesConfig)
    violations: ViolationsConfig = Field(default_factory=ViolationsConfig)
    detection: DetectionConfig = Field(default_factory=DetectionConfig)

    @field_validator("throttle")
    @classmethod
    def validate_throttle(cls, v: dict[str, int]) -> dict[str, int]:
        for event_type, interval in v.items():
            if interval < 0:
                raise ValueError(f"throttle interval for '{event_type}' must be >= 0")
        # Entries override the defaults, they do not replace the whole policy
        return {**DEFAULT_THROTTLE_INTERVALS_MS, **v}


def validate_config_pydantic(config: dict) -> ClientConfig:
    """
    Validate configuration using Pydantic.

    Raises:
        pydantic.ValidationError: If validation fails
    """
    return ClientConfig.model_validate(config or {})
