"""
Tests for camera acquisition and evidence encoding
"""

import base64
import unittest
from unittest import mock

import numpy as np

from proctor_client.core.camera import (
    OpenCVCaptureHandle,
    RequiredDeviceUnavailable,
    acquire_capture,
    encode_frame_base64,
)
from proctor_client.models.devices import REQUIREMENT_PRESETS, DeviceRequirement


def fake_capture(opened=True, frame=None):
    cap = mock.Mock()
    cap.isOpened.return_value = opened
    cap.read.return_value = (frame is not None, frame)
    return cap


class TestEncodeFrame(unittest.TestCase):
    """Test JPEG evidence encoding."""

    def test_encodes_jpeg(self):
        frame = np.full((120, 160, 3), 127, dtype=np.uint8)
        encoded = encode_frame_base64(frame)
        data = base64.b64decode(encoded)
        self.assertTrue(data.startswith(b"\xff\xd8"))

    def test_empty_frame(self):
        self.assertIsNone(encode_frame_base64(np.zeros((0, 0, 3), dtype=np.uint8)))
        self.assertIsNone(encode_frame_base64(None))


@mock.patch("proctor_client.core.camera.time.sleep")
@mock.patch("proctor_client.core.camera.cv2.VideoCapture")
class TestOpenCVCaptureHandle(unittest.TestCase):
    """Test OpenCVCaptureHandle with a mocked VideoCapture."""

    def test_open_uses_device_index(self, mock_capture, mock_sleep):
        mock_capture.return_value = fake_capture()
        OpenCVCaptureHandle("0").open()
        mock_capture.assert_called_once_with(0)

    def test_open_uses_url(self, mock_capture, mock_sleep):
        mock_capture.return_value = fake_capture()
        OpenCVCaptureHandle("rtsp://cam/stream").open()
        mock_capture.assert_called_once_with("rtsp://cam/stream")

    def test_open_retries_then_fails(self, mock_capture, mock_sleep):
        mock_capture.return_value = fake_capture(opened=False)
        with self.assertRaises(RuntimeError):
            OpenCVCaptureHandle("0").open(attempts=2, delay=0.5)
        self.assertEqual(mock_capture.call_count, 3)
        self.assertEqual(mock_sleep.call_count, 2)

    def test_tracks_and_enable(self, mock_capture, mock_sleep):
        mock_capture.return_value = fake_capture()
        handle = OpenCVCaptureHandle("0").open()

        track = handle.tracks()[0]
        self.assertEqual(track.kind, "video")
        self.assertTrue(track.live)
        self.assertTrue(track.enabled)

        handle.set_enabled(False)
        self.assertFalse(handle.tracks()[0].enabled)

    def test_read_frame(self, mock_capture, mock_sleep):
        frame = np.zeros((2, 2, 3), dtype=np.uint8)
        mock_capture.return_value = fake_capture(frame=frame)
        handle = OpenCVCaptureHandle("0").open()

        self.assertIs(handle.read_frame(), frame)
        handle.set_enabled(False)
        self.assertIsNone(handle.read_frame())

    def test_release(self, mock_capture, mock_sleep):
        cap = fake_capture()
        mock_capture.return_value = cap
        handle = OpenCVCaptureHandle("0").open()

        handle.release()
        handle.release()

        cap.release.assert_called_once()
        self.assertFalse(handle.tracks()[0].live)
        self.assertIsNone(handle.read_frame())


@mock.patch("proctor_client.core.camera.time.sleep")
@mock.patch("proctor_client.core.camera.cv2.VideoCapture")
class TestAcquireCapture(unittest.TestCase):
    """Test per-device acquisition errors."""

    def test_camera_only(self, mock_capture, mock_sleep):
        mock_capture.return_value = fake_capture()
        handle = acquire_capture(REQUIREMENT_PRESETS["CAMERA_ONLY"], "0")
        self.assertIsInstance(handle, OpenCVCaptureHandle)

    def test_nothing_required(self, mock_capture, mock_sleep):
        self.assertIsNone(acquire_capture(DeviceRequirement(camera=False, microphone=False), "0"))
        mock_capture.assert_not_called()

    def test_camera_failure(self, mock_capture, mock_sleep):
        mock_capture.return_value = fake_capture(opened=False)
        with self.assertLogs("proctor_client.core.camera", level="ERROR"):
            with self.assertRaises(RequiredDeviceUnavailable) as ctx:
                acquire_capture(REQUIREMENT_PRESETS["CAMERA_ONLY"], "0")
        self.assertIn("Camera access failed", ctx.exception.camera)
        self.assertIsNone(ctx.exception.microphone)

    def test_microphone_required_fails_and_releases_camera(self, mock_capture, mock_sleep):
        cap = fake_capture()
        mock_capture.return_value = cap
        with self.assertLogs("proctor_client.core.camera", level="ERROR"):
            with self.assertRaises(RequiredDeviceUnavailable) as ctx:
                acquire_capture(REQUIREMENT_PRESETS["BOTH"], "0")

        self.assertIsNone(ctx.exception.camera)
        self.assertIn("Microphone access failed", ctx.exception.microphone)
        cap.release.assert_called_once()


if __name__ == "__main__":
    unittest.main()
