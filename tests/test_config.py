"""
Tests for Configuration Loading
================================
"""

import sys
from pathlib import Path

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from modules.utils.config import Config


@pytest.fixture
def config():
    Config.reset()
    yield Config()
    Config.reset()


class TestConfig:
    """Test suite for the Config singleton."""

    def test_singleton(self, config):
        assert Config() is config

    def test_defaults_without_load(self, config):
        assert config.get("dispatch.universal_cooldown_ms") == 3000
        assert config.stability["cooldown_ms"] == 100
        assert config.get("validation.interaction_box.left") == 0.15

    def test_bundled_file_loads_cleanly(self, config):
        config.load()
        assert config._validate() == []
        assert config.get("camera.device_id") == 0
        assert config.simulator["max_zoom"] == 10.0

    def test_user_file_merges_over_defaults(self, config, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(
            "dispatch:\n"
            "  universal_cooldown_ms: 500\n"
            "validation:\n"
            "  interaction_box:\n"
            "    left: 0.2\n"
        )
        config.load(str(path))

        assert config.dispatch["universal_cooldown_ms"] == 500
        assert config.dispatch["min_recording_ms"] == 1000
        assert config.validation["interaction_box"] == {
            "left": 0.2, "right": 0.85, "top": 0.175, "bottom": 0.825,
        }

    def test_missing_file_uses_defaults(self, config, tmp_path):
        config.load(str(tmp_path / "missing.yaml"))
        assert config.get("recognition.pinch_cooldown_ms") == 500

    def test_non_mapping_file_is_ignored(self, config, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("- just\n- a list\n")
        config.load(str(path))
        assert config.get("stability.window_size") == 1

    def test_validation_reports_bad_types(self, config, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(
            "stability:\n"
            "  window_size: three\n"
            "dispatch:\n"
            "  flash_cooldown_ms: true\n"
            "governor:\n"
            "  adaptive_threshold_fps: 28\n"
        )
        config.load(str(path))
        warnings = config._validate()

        assert any("stability.window_size" in w for w in warnings)
        assert any("dispatch.flash_cooldown_ms" in w for w in warnings)
        # int is accepted where a float is expected
        assert not any("adaptive_threshold_fps" in w for w in warnings)

    def test_get_missing_returns_default(self, config):
        assert config.get("nope.nothing", 42) == 42
        assert config.get_section("nope") == {}

    def test_set_creates_nested_keys(self, config):
        config.set("camera.device_id", 2)
        config.set("extra.deep.value", True)
        assert config.camera["device_id"] == 2
        assert config.get("extra.deep.value") is True
