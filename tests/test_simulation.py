"""
Tests for the offline dry-run
"""

import unittest

from proctor_client.config import build_config
from proctor_client.models.violations import ViolationType
from proctor_client.simulation import simulate_session


class TestSimulateSession(unittest.TestCase):
    """Test the scripted session end to end."""

    def test_default_timeline(self):
        report = simulate_session(build_config({}))

        self.assertEqual(report.last_sequence, 7)
        self.assertEqual(
            report.event_counts,
            {"camera_status": 3, "tab_blur": 1, "fullscreen_exit": 1, "ai_violation": 2},
        )
        self.assertEqual([e.sequence for e in report.events], list(range(1, 8)))

    def test_cooling_suppresses_repeats(self):
        """Test only the violations at 20s and 80s are recorded."""
        report = simulate_session(build_config({}))

        self.assertEqual(
            [alert.type for alert in report.alerts],
            [ViolationType.NO_FACE, ViolationType.MULTIPLE_FACES],
        )
        self.assertEqual(
            report.alerts[1].timestamp - report.alerts[0].timestamp, 60_000
        )
        self.assertTrue(report.cooling_active)
        self.assertEqual(report.cooling_remaining, 20)

    def test_detection_disabled(self):
        report = simulate_session(build_config({"detection": {"enabled": False}}))
        self.assertEqual(report.alerts, [])
        self.assertEqual(report.last_sequence, 5)
        self.assertFalse(report.cooling_active)

    def test_short_run(self):
        report = simulate_session(build_config({}), duration_seconds=8)
        self.assertEqual(report.event_counts, {"camera_status": 1, "tab_blur": 1})

    def test_custom_cooling_period(self):
        report = simulate_session(
            build_config({"violations": {"cooling_period_seconds": 30}})
        )
        # 20s no face, then two faces at 50s and 80s; the phone at 85s is suppressed
        self.assertEqual(
            [alert.type for alert in report.alerts],
            [ViolationType.NO_FACE, ViolationType.MULTIPLE_FACES, ViolationType.MULTIPLE_FACES],
        )
        self.assertFalse(report.cooling_active)


if __name__ == "__main__":
    unittest.main()
