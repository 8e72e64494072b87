"""
Proctor Client CLI
Main entry point for running a proctored exam session.

  --validate  Check configuration validity
  --dry-run   Simulate a session offline on a virtual clock
"""

import argparse
import logging
import signal
import sys
import time
import uuid
from threading import Event as ThreadEvent

from .config import (
    ClientConfig,
    ConfigValidationError,
    build_config,
    load_config,
    print_validation_result,
    validate_config_full,
)
from .core.camera import RequiredDeviceUnavailable, acquire_capture
from .models.events import ServerNotice
from .session import SessionContext
from .simulation import print_simulation_report, simulate_session
from .utils.event_schema import SERVER_EXAM_TERMINATED

logger = logging.getLogger(__name__)

DEFAULT_DURATION_MINUTES = 60
FAILURE_FLUSH_TIMEOUT = 3.0  # Seconds to let failure events reach the server

# Module-level shutdown signal for SIGTERM/SIGINT handling
_shutdown_signal = ThreadEvent()


def _handle_shutdown_signal(signum, _frame):
    signal_name = "SIGTERM" if signum == signal.SIGTERM else "SIGINT"
    # Note: print is safer than logger in signal handlers
    print(f"\nReceived {signal_name}, ending session...")
    _shutdown_signal.set()


def _setup_signal_handlers():
    """Register signal handlers for graceful shutdown."""
    signal.signal(signal.SIGTERM, _handle_shutdown_signal)
    signal.signal(signal.SIGINT, _handle_shutdown_signal)


def setup_logging(quiet: bool = False) -> None:
    """
    Setup logging configuration.

    Args:
        quiet: If True, only show warnings and errors
    """
    level = logging.WARNING if quiet else logging.INFO

    # Custom formatter with shorter module names
    class ShortNameFormatter(logging.Formatter):
        def format(self, record):
            record.name = record.name.replace("proctor_client.", "pc.")
            return super().format(record)

    handler = logging.StreamHandler()
    handler.setFormatter(
        ShortNameFormatter(
            fmt="%(asctime)s %(name)s %(levelname)s %(message)s", datefmt="%H:%M:%S"
        )
    )
    logging.root.addHandler(handler)
    logging.root.setLevel(level)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Proctor Client - Reliable integrity event reporting for exam sessions",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m proctor_client --session exam-42 --user alice 90   # 90 minute session
  python -m proctor_client --validate                          # Check config validity
  python -m proctor_client --dry-run                           # Offline simulated session

Environment Variables:
  PROCTOR_API_URL    - Override server.api_base_url
  PROCTOR_WS_URL     - Override server.ws_base_url
  PROCTOR_CAMERA_URL - Override devices.camera_url
        """,
    )

    parser.add_argument(
        "duration",
        type=float,
        nargs="?",
        help=f"Session length in minutes (default: {DEFAULT_DURATION_MINUTES})",
    )
    parser.add_argument(
        "-c",
        "--config",
        default=None,
        help="Path to config file (default: ./config.yaml if present)",
    )
    parser.add_argument("-s", "--session", help="Exam session id (default: random)")
    parser.add_argument("-u", "--user", help="Candidate id (default: random)")
    parser.add_argument(
        "-q",
        "--quiet",
        action="store_true",
        help="Quiet mode - only show warnings and errors",
    )
    parser.add_argument(
        "--validate",
        action="store_true",
        help="Validate configuration and show derived settings",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Simulate a session offline (no socket, camera or uploads)",
    )
    return parser


def parse_duration(duration_arg: float | None) -> float:
    """
    Returns:
        Duration in minutes

    Raises:
        SystemExit: If duration is not positive
    """
    if duration_arg is None:
        return DEFAULT_DURATION_MINUTES
    if duration_arg <= 0:
        logger.error(f"Invalid duration '{duration_arg}' - must be positive")
        sys.exit(1)
    return duration_arg


def run_validate(config_path: str | None) -> int:
    try:
        config = load_config(config_path)
    except ConfigValidationError as e:
        print(f"Error: {e}")
        return 1
    result = validate_config_full(config)
    print_validation_result(result)
    return 0 if result.valid else 1


def run_dry_run(config: ClientConfig, session_id: str, user_id: str) -> int:
    report = simulate_session(config, session_id, user_id)
    print_simulation_report(report)
    return 0


def _create_detector(config: ClientConfig):
    """Build and start loading the detector (model import is deferred)."""
    from .core.detector import DetectorHandle, yolo_loader

    detector = DetectorHandle(
        yolo_loader(config.detection.model_file, config.detection.confidence_threshold)
    )
    detector.initialize()
    return detector


def _on_notice(notice: ServerNotice) -> None:
    if notice.kind == SERVER_EXAM_TERMINATED:
        print(f"\nExam terminated by proctor: {notice.message}")
        _shutdown_signal.set()


def print_banner(config: ClientConfig, session: SessionContext, minutes: float) -> None:
    print("\n" + "=" * 70)
    print("PROCTOR CLIENT")
    print("=" * 70)
    print(f"\nSession: {session.session_id}  Candidate: {session.user_id}")
    print(f"Server:  {config.server.api_base_url}")
    print(f"Socket:  {session.transport.endpoint_for(session.session_id, session.user_id)}")
    required = config.devices.requirements().required_devices()
    print(f"Devices: {', '.join(required) or 'none'} required")
    print(f"Detection: {'on' if session.detection_loop else 'off'}")
    print(f"\nDuration: {minutes} minute(s)")
    print("  Press Ctrl+C to stop early")
    print("=" * 70)
    print()


def _wait_for_flush(session: SessionContext, timeout: float) -> None:
    deadline = time.time() + timeout
    while time.time() < deadline and not (
        session.transport.is_connected() and session.queue.is_empty()
    ):
        time.sleep(0.1)


def run_session(config: ClientConfig, session_id: str, user_id: str, minutes: float) -> int:
    requirements = config.devices.requirements()
    capture_error: RequiredDeviceUnavailable | None = None
    handle = None
    try:
        handle = acquire_capture(requirements, config.devices.camera_url)
    except RequiredDeviceUnavailable as e:
        capture_error = e

    detector = None
    if capture_error is None and handle is not None and config.detection.enabled:
        detector = _create_detector(config)

    session = SessionContext(
        config, session_id, user_id, capture_handle=handle, detector=detector
    )
    session.on_notice(_on_notice)
    _setup_signal_handlers()

    if capture_error is not None:
        for device, message in capture_error.errors.items():
            print(f"  {device}: {message}")
        session.start()
        session.report_device_failure(capture_error.errors)
        _wait_for_flush(session, FAILURE_FLUSH_TIMEOUT)
        session.stop()
        return 1

    print_banner(config, session, minutes)
    session.start()

    start_time = time.time()
    reason = "duration"
    try:
        # wait() returns True when a signal or termination notice arrives
        if _shutdown_signal.wait(timeout=minutes * 60):
            reason = "signal"
    except KeyboardInterrupt:
        reason = "interrupted"
    elapsed = time.time() - start_time

    stats = session.get_stats()
    session.stop()
    if handle is not None:
        handle.release()

    print(f"\n{'=' * 70}")
    if reason == "duration":
        print(f"Duration reached - stopped after {elapsed / 60:.1f} minutes")
    else:
        print("Session ended early")
    print(f"Events: {stats['last_sequence']}  Violations: {stats['violations']}")
    print(f"Unsent events: {stats['queue']['current_size']}")
    print("=" * 70)
    return 0


def main(argv: list[str] | None = None) -> None:
    """Main orchestrator function."""
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(quiet=args.quiet or args.validate or args.dry_run)

    if args.validate:
        sys.exit(run_validate(args.config))

    try:
        config = build_config(load_config(args.config))
    except ConfigValidationError as e:
        logger.error(str(e))
        sys.exit(1)

    session_id = args.session or f"session-{uuid.uuid4().hex[:8]}"
    user_id = args.user or f"candidate-{uuid.uuid4().hex[:8]}"

    if args.dry_run:
        sys.exit(run_dry_run(config, session_id, user_id))

    minutes = parse_duration(args.duration)
    sys.exit(run_session(config, session_id, user_id, minutes))


if __name__ == "__main__":
    main()
