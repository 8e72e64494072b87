"""
Utility modules for constants, wire schema and timer abstractions.
"""

from .constants import (
    DEFAULT_QUEUE_CAPACITY,
    DEFAULT_THROTTLE_INTERVALS_MS,
    ENV_API_URL,
    ENV_CAMERA_URL,
    ENV_WS_URL,
)
from .event_schema import (
    EVENT_TYPE_AI_VIOLATION,
    EVENT_TYPE_CAMERA_STATUS,
    EVENT_TYPE_FULLSCREEN_EXIT,
    EVENT_TYPE_MIC_STATUS,
    EVENT_TYPE_NETWORK_INTERRUPTION,
    EVENT_TYPE_STREAM_LOST,
    EVENT_TYPE_TAB_BLUR,
    MESSAGE_TYPE_BATCH,
    MESSAGE_TYPE_EVENT,
    build_batch_message,
    build_event_message,
    get_event_summary,
)
from .scheduler import ManualScheduler, ScheduledTask, Scheduler, ThreadScheduler

__all__ = [
    "DEFAULT_QUEUE_CAPACITY",
    "DEFAULT_THROTTLE_INTERVALS_MS",
    "ENV_API_URL",
    "ENV_CAMERA_URL",
    "ENV_WS_URL",
    # Event schema
    "EVENT_TYPE_AI_VIOLATION",
    "EVENT_TYPE_CAMERA_STATUS",
    "EVENT_TYPE_FULLSCREEN_EXIT",
    "EVENT_TYPE_MIC_STATUS",
    "EVENT_TYPE_NETWORK_INTERRUPTION",
    "EVENT_TYPE_STREAM_LOST",
    "EVENT_TYPE_TAB_BLUR",
    "MESSAGE_TYPE_BATCH",
    "MESSAGE_TYPE_EVENT",
    "build_batch_message",
    "build_event_message",
    "get_event_summary",
    # Timers
    "ManualScheduler",
    "ScheduledTask",
    "Scheduler",
    "ThreadScheduler",
]
