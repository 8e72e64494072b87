"""
Tests for event models and the wire schema
"""

import json
import unittest

from proctor_client.models.devices import (
    REQUIREMENT_PRESETS,
    DeviceRequirement,
    MediaTrack,
    is_device_on,
)
from proctor_client.models.events import ProctorEvent
from proctor_client.utils.event_schema import (
    acknowledged_ids,
    build_batch_message,
    build_event_message,
    classify_server_message,
    decode_server_message,
    get_event_summary,
)


def make_event(sequence=1, event_type="camera_status", payload=None):
    return ProctorEvent(
        event_id=f"id-{sequence}",
        session_id="exam-1",
        user_id="cand-1",
        type=event_type,
        payload=payload or {"status": "on"},
        timestamp=1_700_000_000_123,
        sequence=sequence,
    )


class TestProctorEvent(unittest.TestCase):
    """Test ProctorEvent dataclass."""

    def test_to_dict(self):
        data = make_event().to_dict()
        self.assertEqual(
            data,
            {
                "event_id": "id-1",
                "session_id": "exam-1",
                "user_id": "cand-1",
                "type": "camera_status",
                "payload": {"status": "on"},
                "timestamp": 1_700_000_000_123,
                "sequence": 1,
            },
        )

    def test_from_dict(self):
        event = make_event(sequence=4)
        self.assertEqual(ProctorEvent.from_dict(event.to_dict()), event)

    def test_immutable(self):
        event = make_event()
        with self.assertRaises(AttributeError):
            event.sequence = 2


class TestMessages(unittest.TestCase):
    """Test client -> server message shapes."""

    def test_event_message(self):
        message = json.loads(build_event_message(make_event()))
        self.assertEqual(message["type"], "EVENT")
        self.assertEqual(message["event"]["event_id"], "id-1")

    def test_batch_message_preserves_order(self):
        events = [make_event(i) for i in (3, 1, 2)]
        message = json.loads(build_batch_message(events))
        self.assertEqual(message["type"], "BATCH_EVENTS")
        self.assertEqual([e["sequence"] for e in message["events"]], [3, 1, 2])


class TestServerMessages(unittest.TestCase):
    """Test server -> client parsing."""

    def test_decode_invalid_json(self):
        with self.assertLogs("proctor_client.utils.event_schema", level="ERROR"):
            self.assertIsNone(decode_server_message("{oops"))

    def test_classify_recognized(self):
        for kind in ("violation_warning", "violation_critical", "exam_terminated"):
            notice = classify_server_message({"type": kind, "message": "m"})
            self.assertEqual(notice.kind, kind)
            self.assertEqual(notice.message, "m")

    def test_classify_ack(self):
        notice = classify_server_message({"type": "ACK", "event_ids": ["a"]})
        self.assertEqual(notice.kind, "ack")

    def test_classify_unknown_passes_raw(self):
        raw = {"type": "something_new", "x": 1}
        notice = classify_server_message(raw)
        self.assertEqual(notice.kind, "unknown")
        self.assertEqual(notice.raw, raw)
        self.assertEqual(classify_server_message([1, 2]).kind, "unknown")

    def test_acknowledged_ids(self):
        self.assertEqual(acknowledged_ids({"type": "ACK", "event_ids": ["a", "b"]}), ["a", "b"])
        self.assertEqual(acknowledged_ids({"type": "ACK", "event_ids": "a"}), [])
        self.assertEqual(acknowledged_ids({"type": "violation_warning"}), [])
        self.assertEqual(acknowledged_ids("ACK"), [])

    def test_summary(self):
        summary = get_event_summary(make_event(sequence=7))
        self.assertIn("camera_status", summary)
        self.assertIn("status=on", summary)
        self.assertIn("seq: 7", summary)


class TestDeviceModels(unittest.TestCase):
    """Test device requirement helpers."""

    def test_presets(self):
        self.assertEqual(REQUIREMENT_PRESETS["CAMERA_ONLY"].required_devices(), ["camera"])
        self.assertEqual(REQUIREMENT_PRESETS["AUDIO_ONLY"].required_devices(), ["microphone"])
        self.assertEqual(
            REQUIREMENT_PRESETS["BOTH"].required_devices(), ["camera", "microphone"]
        )
        self.assertFalse(DeviceRequirement(camera=False, microphone=False).any_required())

    def test_is_device_on_uses_first_track(self):
        class Handle:
            def tracks(self):
                return [
                    MediaTrack(kind="video", enabled=False),
                    MediaTrack(kind="video"),
                ]

            def release(self):
                pass

        self.assertFalse(is_device_on(Handle(), "video"))
        self.assertFalse(is_device_on(Handle(), "audio"))


if __name__ == "__main__":
    unittest.main()
