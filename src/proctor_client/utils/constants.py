"""
Constants used throughout the proctoring client
"""

# Event queue
DEFAULT_QUEUE_CAPACITY = 500  # Oldest events are evicted beyond this

# Throttle intervals (milliseconds) per event type; unlisted types are unthrottled
DEFAULT_THROTTLE_INTERVALS_MS = {
    "camera_status": 1000,
    "mic_status": 1000,
    "tab_blur": 2000,
    "stream_lost": 5000,
}

# Device monitoring
DEVICE_POLL_INTERVAL = 1.5  # Seconds between capture handle polls

# Violations
COOLING_PERIOD_SECONDS = 60
COOLING_COUNTDOWN_INTERVAL = 1.0
DETECTION_CHECK_INTERVAL = 1.0  # Seconds between detector passes

# Reconnection
RECONNECT_BASE_DELAY = 2.0  # Seconds; also the fixed-strategy delay
RECONNECT_MAX_DELAY = 30.0
RECONNECT_JITTER = 0.1  # Fraction of delay, applied +/-

# WebSocket close
NORMAL_CLOSURE_CODE = 1000
MANUAL_DISCONNECT_REASON = "Manual disconnect"

# HTTP
DEFAULT_API_BASE_URL = "http://localhost:8000"
DEFAULT_REQUEST_TIMEOUT = 30  # Seconds
VIOLATION_SAVE_PATH = "/api/violations/save"
PROCTOR_SOCKET_PATH = "/ws/proctor/{session_id}/{user_id}"

# Camera acquisition
MAX_CAMERA_RECONNECT_ATTEMPTS = 2
CAMERA_RECONNECT_DELAY = 2.0  # Seconds between reconnection attempts

# Frame capture for violation evidence
EVIDENCE_FRAME_SIZE = (640, 480)
EVIDENCE_JPEG_QUALITY = 80

# Environment variables
ENV_API_URL = "PROCTOR_API_URL"
ENV_WS_URL = "PROCTOR_WS_URL"
ENV_CAMERA_URL = "PROCTOR_CAMERA_URL"
