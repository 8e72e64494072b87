"""
Tests for detector loading and signal extraction
"""

import unittest

import numpy as np

from proctor_client.core.detector import (
    STATUS_FAILED,
    STATUS_LOADING,
    STATUS_READY,
    DetectorHandle,
    signal_from_labels,
)
from proctor_client.models.violations import DetectionSignal

FRAME = np.zeros((8, 8, 3), dtype=np.uint8)


class TestSignalFromLabels(unittest.TestCase):
    """Test label -> signal conversion."""

    def test_single_person(self):
        signal = signal_from_labels(["person"])
        self.assertTrue(signal.detected)
        self.assertEqual(signal.face_count, 1)
        self.assertEqual(signal.objects, [])

    def test_empty_frame(self):
        self.assertEqual(signal_from_labels([]).face_count, 0)

    def test_suspicious_objects_sorted_and_unique(self):
        signal = signal_from_labels(["person", "cell phone", "book", "cell phone", "chair"])
        self.assertEqual(signal.face_count, 1)
        self.assertEqual(signal.objects, ["book", "cell phone"])

    def test_people_counted(self):
        self.assertEqual(signal_from_labels(["person", "person", "laptop"]).face_count, 2)


class TestDetectorHandle(unittest.TestCase):
    """Test DetectorHandle status transitions."""

    def test_loading_until_initialized(self):
        handle = DetectorHandle(lambda: (lambda frame: DetectionSignal(detected=True)))
        self.assertEqual(handle.status, STATUS_LOADING)
        self.assertFalse(handle.is_ready())
        self.assertFalse(handle.detect(FRAME).detected)

    def test_synchronous_load(self):
        expected = DetectionSignal(detected=True, face_count=1)
        handle = DetectorHandle(lambda: (lambda frame: expected))

        handle.initialize(background=False)

        self.assertEqual(handle.status, STATUS_READY)
        self.assertIs(handle.detect(FRAME), expected)

    def test_background_load(self):
        handle = DetectorHandle(lambda: (lambda frame: DetectionSignal(detected=True)))
        handle.initialize()
        self.assertTrue(handle.wait(timeout=5))

    def test_failed_load_is_kept_not_raised(self):
        def loader():
            raise FileNotFoundError("yolov8n.pt")

        handle = DetectorHandle(loader)
        with self.assertLogs("proctor_client.core.detector", level="ERROR"):
            handle.initialize(background=False)

        self.assertEqual(handle.status, STATUS_FAILED)
        self.assertIsInstance(handle.error, FileNotFoundError)
        self.assertFalse(handle.detect(FRAME).detected)

    def test_analyzer_error_gives_undetected(self):
        def analyzer(frame):
            raise RuntimeError("CUDA out of memory")

        handle = DetectorHandle(lambda: analyzer)
        handle.initialize(background=False)

        with self.assertLogs("proctor_client.core.detector", level="ERROR"):
            signal = handle.detect(FRAME)
        self.assertFalse(signal.detected)


if __name__ == "__main__":
    unittest.main()
