"""
Tests for configuration loading and validation.
"""

import os
import tempfile
import unittest
from unittest import mock

from proctor_client.config import (
    ClientConfig,
    ConfigValidationError,
    build_config,
    load_config,
    load_config_with_env,
    validate_config_full,
)
from proctor_client.utils.constants import ENV_API_URL, ENV_CAMERA_URL, ENV_WS_URL


class TestConfigValidation(unittest.TestCase):
    """Test configuration validation logic."""

    def setUp(self):
        """Create a temporary model file for testing."""
        self.temp_model = tempfile.NamedTemporaryFile(suffix=".pt", delete=False)
        self.temp_model.close()
        self.model_path = self.temp_model.name

    def tearDown(self):
        if os.path.exists(self.model_path):
            os.unlink(self.model_path)

    def get_valid_config(self):
        """Return a complete valid configuration."""
        return {
            "server": {"api_base_url": "https://exam.example.com", "request_timeout": 10},
            "transport": {"reconnect": {"strategy": "fixed", "base_delay": 2.0}},
            "queue": {"capacity": 200},
            "throttle": {"camera_status": 1000, "tab_blur": 2000},
            "devices": {"camera": True, "microphone": False, "camera_url": 0},
            "violations": {"cooling_period_seconds": 60, "check_interval": 1.0},
            "detection": {
                "enabled": True,
                "model_file": self.model_path,
                "confidence_threshold": 0.5,
            },
        }

    def test_valid_config_passes(self):
        result = validate_config_full(self.get_valid_config())
        self.assertTrue(result.valid)
        self.assertEqual(result.errors, [])
        self.assertEqual(result.warnings, [])

    def test_empty_config_uses_defaults(self):
        config = build_config({})
        self.assertEqual(config.server.api_base_url, "http://localhost:8000")
        self.assertEqual(config.queue.capacity, 500)
        self.assertEqual(config.transport.reconnect.strategy, "exponential")
        self.assertEqual(config.violations.cooling_period_seconds, 60)
        self.assertEqual(config.throttle["stream_lost"], 5000)

    def test_derived_settings(self):
        result = validate_config_full(self.get_valid_config())
        self.assertEqual(
            result.derived["ws_endpoint"],
            "wss://exam.example.com/ws/proctor/{session_id}/{user_id}",
        )
        self.assertEqual(result.derived["required_devices"], ["camera"])
        self.assertEqual(result.derived["reconnect"], "fixed")

    def test_ws_url_derived_from_http(self):
        config = build_config({"server": {"api_base_url": "http://localhost:8000/"}})
        self.assertEqual(config.server.resolved_ws_base_url(), "ws://localhost:8000")

    def test_explicit_ws_url(self):
        config = build_config({"server": {"ws_base_url": "ws://socket.local:9000"}})
        self.assertEqual(config.server.resolved_ws_base_url(), "ws://socket.local:9000")

    def test_camera_index_coerced(self):
        config = build_config(self.get_valid_config())
        self.assertEqual(config.devices.camera_url, "0")

    def test_unknown_field_rejected(self):
        config = self.get_valid_config()
        config["queue"]["size"] = 10
        result = validate_config_full(config)
        self.assertFalse(result.valid)
        self.assertTrue(any(e.startswith("queue.size") for e in result.errors))

    def test_invalid_confidence_threshold(self):
        config = self.get_valid_config()
        config["detection"]["confidence_threshold"] = 1.5
        result = validate_config_full(config)
        self.assertFalse(result.valid)
        self.assertTrue(any("confidence_threshold" in e for e in result.errors))

    def test_invalid_model_format(self):
        config = self.get_valid_config()
        config["detection"]["model_file"] = "model.onnx"
        self.assertFalse(validate_config_full(config).valid)

    def test_invalid_strategy(self):
        config = self.get_valid_config()
        config["transport"]["reconnect"]["strategy"] = "linear"
        self.assertFalse(validate_config_full(config).valid)

    def test_max_delay_below_base(self):
        config = self.get_valid_config()
        config["transport"]["reconnect"] = {"base_delay": 10, "max_delay": 5}
        self.assertFalse(validate_config_full(config).valid)

    def test_negative_throttle(self):
        config = self.get_valid_config()
        config["throttle"]["tab_blur"] = -1
        self.assertFalse(validate_config_full(config).valid)

    def test_zero_capacity(self):
        config = self.get_valid_config()
        config["queue"]["capacity"] = 0
        self.assertFalse(validate_config_full(config).valid)

    def test_bad_api_url(self):
        config = self.get_valid_config()
        config["server"]["api_base_url"] = "localhost:8000"
        self.assertFalse(validate_config_full(config).valid)

    def test_warnings(self):
        """Test advisory problems are warnings, not errors."""
        config = self.get_valid_config()
        config["devices"]["microphone"] = True
        config["throttle"]["mouse_move"] = 100
        config["detection"]["model_file"] = "does-not-exist.pt"

        result = validate_config_full(config)

        self.assertTrue(result.valid)
        self.assertTrue(any("microphone" in w for w in result.warnings))
        self.assertTrue(any("mouse_move" in w for w in result.warnings))
        self.assertTrue(any("Model file not found" in w for w in result.warnings))

    def test_build_config_raises(self):
        with self.assertRaises(ConfigValidationError):
            build_config({"queue": {"capacity": -5}})

    def test_partial_throttle_keeps_defaults(self):
        config = build_config({"throttle": {"tab_blur": 3000, "custom": 250}})
        self.assertEqual(config.throttle["tab_blur"], 3000)
        self.assertEqual(config.throttle["custom"], 250)
        self.assertEqual(config.throttle["stream_lost"], 5000)
        self.assertEqual(config.throttle["camera_status"], 1000)

    def test_throttle_can_be_disabled_per_type(self):
        config = build_config({"throttle": {"stream_lost": 0}})
        self.assertEqual(config.throttle["stream_lost"], 0)
        self.assertEqual(config.throttle["mic_status"], 1000)

    def test_requirements(self):
        config = build_config({"devices": {"camera": True, "microphone": True}})
        requirements = config.devices.requirements()
        self.assertTrue(requirements.camera)
        self.assertTrue(requirements.microphone)


class TestConfigLoading(unittest.TestCase):
    """Test YAML loading and environment overrides."""

    def write_yaml(self, text: str) -> str:
        handle = tempfile.NamedTemporaryFile("w", suffix=".yaml", delete=False)
        handle.write(text)
        handle.close()
        self.addCleanup(os.unlink, handle.name)
        return handle.name

    def test_load_yaml(self):
        path = self.write_yaml("queue:\n  capacity: 42\ndevices:\n  camera_url: 2\n")
        with mock.patch.dict(os.environ, {}, clear=True):
            config = build_config(load_config(path))
        self.assertIsInstance(config, ClientConfig)
        self.assertEqual(config.queue.capacity, 42)
        self.assertEqual(config.devices.camera_url, "2")

    def test_empty_file(self):
        path = self.write_yaml("")
        with mock.patch.dict(os.environ, {}, clear=True):
            self.assertEqual(load_config(path), {})

    def test_missing_file(self):
        with self.assertRaises(ConfigValidationError):
            load_config("/nonexistent/proctor.yaml")

    def test_invalid_yaml(self):
        path = self.write_yaml("queue: [unclosed\n")
        with self.assertRaises(ConfigValidationError):
            load_config(path)

    def test_non_mapping_root(self):
        path = self.write_yaml("- a\n- b\n")
        with self.assertRaises(ConfigValidationError):
            load_config(path)

    def test_env_overrides(self):
        env = {
            ENV_API_URL: "https://api.test",
            ENV_WS_URL: "wss://socket.test",
            ENV_CAMERA_URL: "rtsp://cam.test/stream",
        }
        with mock.patch.dict(os.environ, env, clear=True):
            config = load_config_with_env({"server": {"request_timeout": 5}})

        self.assertEqual(config["server"]["api_base_url"], "https://api.test")
        self.assertEqual(config["server"]["ws_base_url"], "wss://socket.test")
        self.assertEqual(config["server"]["request_timeout"], 5)
        self.assertEqual(config["devices"]["camera_url"], "rtsp://cam.test/stream")

    def test_env_override_into_empty_section(self):
        """Test a bare `server:` key (None in YAML) still takes overrides."""
        with mock.patch.dict(os.environ, {ENV_API_URL: "https://api.test"}, clear=True):
            config = load_config_with_env({"server": None})
        self.assertEqual(config["server"], {"api_base_url": "https://api.test"})

    def test_no_env_no_change(self):
        with mock.patch.dict(os.environ, {}, clear=True):
            self.assertEqual(load_config_with_env({"queue": {"capacity": 3}}), {"queue": {"capacity": 3}})


if __name__ == "__main__":
    unittest.main()
