"""
Tests for the periodic violation detection loop
"""

import unittest

import numpy as np

from proctor_client.core.cooling import CoolingPeriodController
from proctor_client.core.detection_loop import ViolationDetectionLoop, classify_signal
from proctor_client.models.violations import DetectionSignal, ViolationType
from proctor_client.utils.scheduler import ManualScheduler

FRAME = np.zeros((4, 4, 3), dtype=np.uint8)


class FakeDetector:
    def __init__(self, signal=None, ready=True):
        self.signal = signal or DetectionSignal(detected=True, face_count=1)
        self.ready = ready
        self.calls = 0

    def is_ready(self):
        return self.ready

    def detect(self, frame):
        self.calls += 1
        return self.signal


class FakeReporter:
    def __init__(self):
        self.alerts = []

    def submit(self, alert):
        self.alerts.append(alert)


class TestClassifySignal(unittest.TestCase):
    """Test signal -> violation mapping and its precedence."""

    def test_not_detected(self):
        self.assertIsNone(classify_signal(DetectionSignal(detected=False, face_count=0)))

    def test_clean_frame(self):
        self.assertIsNone(classify_signal(DetectionSignal(detected=True, face_count=1)))

    def test_no_face(self):
        self.assertEqual(
            classify_signal(DetectionSignal(detected=True, face_count=0)),
            (ViolationType.NO_FACE, "No face detected in frame"),
        )

    def test_multiple_faces(self):
        self.assertEqual(
            classify_signal(DetectionSignal(detected=True, face_count=3)),
            (ViolationType.MULTIPLE_FACES, "Multiple faces detected (3 faces)"),
        )

    def test_object(self):
        violation_type, message = classify_signal(
            DetectionSignal(detected=True, face_count=1, objects=["book", "cell phone"])
        )
        self.assertEqual(violation_type, ViolationType.OBJECT_DETECTED)
        self.assertEqual(message, "Prohibited object detected: book, cell phone")

    def test_looking_away(self):
        violation_type, _ = classify_signal(
            DetectionSignal(detected=True, face_count=1, looking_away=True)
        )
        self.assertEqual(violation_type, ViolationType.LOOKING_AWAY)

    def test_faces_take_precedence_over_objects(self):
        violation_type, _ = classify_signal(
            DetectionSignal(detected=True, face_count=2, objects=["laptop"], looking_away=True)
        )
        self.assertEqual(violation_type, ViolationType.MULTIPLE_FACES)


class TestViolationDetectionLoop(unittest.TestCase):
    """Test ViolationDetectionLoop gating and recording."""

    def setUp(self):
        self.scheduler = ManualScheduler(start_time=1_700_000_000.0)
        self.controller = CoolingPeriodController(self.scheduler, 60)
        self.addCleanup(self.controller.close)
        self.detector = FakeDetector()
        self.reporter = FakeReporter()
        self.frame = FRAME

    def make_loop(self, encoder=lambda frame: "ZW5jb2RlZA=="):
        loop = ViolationDetectionLoop(
            self.scheduler,
            self.detector,
            self.controller,
            frame_source=lambda: self.frame,
            reporter=self.reporter,
            interval=1.0,
            encoder=encoder,
        )
        self.addCleanup(loop.stop)
        return loop

    def test_clean_frame_records_nothing(self):
        loop = self.make_loop()
        self.assertIsNone(loop.tick())
        self.assertEqual(self.detector.calls, 1)
        self.assertEqual(self.controller.alerts, [])

    def test_violation_recorded_and_reported(self):
        self.detector.signal = DetectionSignal(detected=True, face_count=0)
        loop = self.make_loop()

        alert = loop.tick()

        self.assertEqual(alert.type, ViolationType.NO_FACE)
        self.assertEqual(alert.image, "ZW5jb2RlZA==")
        self.assertEqual(self.reporter.alerts, [alert])
        self.assertTrue(self.controller.is_in_cooling_period)

    def test_cooling_skips_detector(self):
        """Test ticks during cooling never call the detector."""
        self.detector.signal = DetectionSignal(detected=True, face_count=0)
        loop = self.make_loop()
        loop.tick()

        for _ in range(5):
            self.assertIsNone(loop.tick())

        self.assertEqual(self.detector.calls, 1)
        self.assertEqual(len(self.controller.alerts), 1)

    def test_not_ready_skips(self):
        self.detector.ready = False
        loop = self.make_loop()
        self.assertIsNone(loop.tick())
        self.assertEqual(self.detector.calls, 0)

    def test_no_frame_skips(self):
        self.frame = None
        loop = self.make_loop()
        self.assertIsNone(loop.tick())
        self.assertEqual(self.detector.calls, 0)

    def test_encoder_failure_records_without_image(self):
        def broken(frame):
            raise ValueError("bad frame")

        self.detector.signal = DetectionSignal(detected=True, face_count=2)
        loop = self.make_loop(encoder=broken)

        with self.assertLogs("proctor_client.core.detection_loop", level="WARNING"):
            alert = loop.tick()

        self.assertIsNone(alert.image)
        self.assertEqual(len(self.controller.alerts), 1)

    def test_scheduled_run_respects_cooling(self):
        """Test a persistent violation is recorded once per cooling window."""
        self.detector.signal = DetectionSignal(detected=True, face_count=0)
        loop = self.make_loop()
        loop.start()
        self.assertTrue(loop.running)

        self.scheduler.advance(1)
        self.assertEqual(len(self.controller.alerts), 1)

        self.scheduler.advance(59)
        self.assertEqual(len(self.controller.alerts), 1)

        # Window ended at t=61; the tick at t=61 records again
        self.scheduler.advance(1)
        self.assertEqual(len(self.controller.alerts), 2)

    def test_stop_cancels(self):
        self.detector.signal = DetectionSignal(detected=True, face_count=0)
        loop = self.make_loop()
        loop.start()
        loop.stop()
        self.scheduler.advance(5)
        self.assertFalse(loop.running)
        self.assertEqual(self.controller.alerts, [])

    def test_start_is_idempotent(self):
        loop = self.make_loop()
        loop.start()
        loop.start()
        self.assertEqual(self.scheduler.pending(), 1)


if __name__ == "__main__":
    unittest.main()
