"""
Core reliability components.

The detector module is not imported here so that the rest of the core
stays usable without loading torch.
"""

from .cooling import CoolingPeriodController
from .detection_loop import ViolationDetectionLoop, classify_signal
from .device_monitor import DeviceStatusMonitor
from .emitter import EventEmitter
from .event_queue import EventQueue
from .sequencer import Sequencer
from .throttle import ThrottlePolicy
from .transport import ReconnectPolicy, Transport

__all__ = [
    "CoolingPeriodController",
    "DeviceStatusMonitor",
    "EventEmitter",
    "EventQueue",
    "ReconnectPolicy",
    "Sequencer",
    "ThrottlePolicy",
    "Transport",
    "ViolationDetectionLoop",
    "classify_signal",
]
