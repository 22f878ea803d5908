# ABOUTME: Unit tests for shared data structures and configuration
import logging

import pytest

from keyprint.utils import (
    ConfigManager,
    KeyprintSnapshot,
    VerificationResult,
    generate_session_id,
    round_half_up,
    setup_logging,
)


class TestKeyprintSnapshot:
    """Test KeyprintSnapshot data structure."""

    def test_display_and_wire_forms(self):
        snapshot = KeyprintSnapshot(intervals=(120, 80), duration=200, backspace_count=3)

        assert snapshot.to_dict() == {"intervals": [120, 80], "duration": 200, "backspaceCount": 3}
        assert snapshot.to_payload() == {"intervals": [120, 80], "duration": 200, "backspace_count": 3}

    def test_from_dict_accepts_both_forms(self):
        display = KeyprintSnapshot.from_dict({"intervals": [1, 2], "duration": 3, "backspaceCount": 1})
        wire = KeyprintSnapshot.from_dict({"intervals": [1, 2], "duration": 3, "backspace_count": 1})

        assert display == wire
        assert display.intervals == (1, 2)

    def test_snapshot_is_frozen(self):
        snapshot = KeyprintSnapshot(intervals=(1,), duration=1)

        with pytest.raises(AttributeError):
            snapshot.duration = 5

    def test_verification_result_dict(self):
        assert VerificationResult(is_match=False).to_dict() == {"isMatch": False, "similarity": 0.0}


class TestConfigManager:
    """Test configuration management."""

    def test_yaml_overrides_defaults(self, tmp_path):
        config_path = tmp_path / "config.yaml"
        config_path.write_text(
            """
api:
  timeout_seconds: 4
output:
  log_level: DEBUG
            """
        )

        config = ConfigManager(config_path)

        assert config.get("api.timeout_seconds") == 4
        assert config.get("api.base_url") == "http://127.0.0.1:8080"
        assert config.get("output.log_level") == "DEBUG"
        assert config.get("nonexistent.key", "default") == "default"

    def test_missing_config_file(self, tmp_path):
        config = ConfigManager(tmp_path / "nonexistent.yaml")

        assert config.get("api.timeout_seconds") == 10
        assert config.get("capture.stop_key") == "enter"
        assert config.get("capture.max_seconds") is None

    def test_invalid_yaml_uses_defaults(self, tmp_path):
        config_path = tmp_path / "config.yaml"
        config_path.write_text("api: [unclosed\n")

        config = ConfigManager(config_path)

        assert config.get("api.timeout_seconds") == 10

    def test_empty_file_uses_defaults(self, tmp_path):
        config_path = tmp_path / "config.yaml"
        config_path.write_text("")

        assert ConfigManager(config_path).get("output.log_level") == "INFO"

    def test_null_value_falls_back_to_default(self, tmp_path):
        config_path = tmp_path / "config.yaml"
        config_path.write_text("output:\n  log_file: null\n")

        assert ConfigManager(config_path).get("output.log_file", "fallback.log") == "fallback.log"


class TestUtilityFunctions:
    """Test utility functions."""

    def test_round_half_up(self):
        assert round_half_up(0.5) == 1
        assert round_half_up(1.5) == 2
        assert round_half_up(2.5) == 3
        assert round_half_up(2.49) == 2
        assert round_half_up(0) == 0

    def test_session_ids_unique(self):
        assert generate_session_id() != generate_session_id()

    def test_setup_logging_file_handler(self, tmp_path):
        log_file = tmp_path / "keyprint.log"
        root = logging.getLogger()
        saved = root.handlers[:]
        root.handlers = []
        try:
            setup_logging("debug", str(log_file))
            logging.debug("hello keyprint")
            for handler in root.handlers:
                handler.flush()
            assert "hello keyprint" in log_file.read_text()
        finally:
            for handler in root.handlers:
                handler.close()
            root.handlers = saved
