"""
Centralized configuration manager.
Loads YAML configs and provides typed access with defaults.

    - Built-in defaults deep-merged under the user file
    - Schema validation for critical config fields (warnings only)
    - Reset support for testing
"""

import copy
import os
import yaml
import logging

logger = logging.getLogger(__name__)

_BASE_DIR = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
_CONFIG_DIR = os.path.join(_BASE_DIR, "config")

_DEFAULTS = {
    "governor": {
        "adaptive_enabled": True,
        "measurement_interval_ms": 1000,
        "history_size": 10,
        "adaptive_threshold_fps": 28.0,
        "optimal_fps": 35.0,
        "target_fps": 30.0,
        "min_fps": 25.0,
        "latency_window": 100,
    },
    "validation": {
        "edge_margin": 0.05,
        "min_hand_size": 0.03,
        "max_hand_size": 0.6,
        "interaction_box": {"left": 0.15, "right": 0.85, "top": 0.175, "bottom": 0.825},
    },
    "recognition": {
        "finger_extension_threshold": 0.005,
        "thumb_extension_margin": 0.01,
        "ok_sign_close_threshold": 0.15,
        "ok_sign_circle_tolerance": 0.08,
        "pinch_min_separation": 0.1,
        "pinch_min_duration_ms": 200,
        "pinch_distance_threshold": 0.01,
        "pinch_cooldown_ms": 500,
        "pinch_preempt_confidence": 0.5,
    },
    "stability": {
        "window_size": 1,
        "cooldown_ms": 100,
        "min_confidence": 0.2,
    },
    "dispatch": {
        "universal_cooldown_ms": 3000,
        "min_recording_ms": 1000,
        "video_restart_cooldown_ms": 2000,
        "flash_cooldown_ms": 2000,
        "camera_switch_cooldown_ms": 3000,
        "countdown_interval_ms": 1000,
        "block_flash_on_front_camera": True,
    },
    "feedback": {
        "visibility_threshold": 0.7,
        "action_feedback_ms": 3000,
    },
}

# Schema: required sections and their expected types
_CONFIG_SCHEMA = {
    "governor": {
        "adaptive_enabled": bool,
        "measurement_interval_ms": int,
        "history_size": int,
        "adaptive_threshold_fps": float,
    },
    "validation": {
        "edge_margin": float,
        "min_hand_size": float,
        "max_hand_size": float,
        "interaction_box": dict,
    },
    "recognition": {
        "pinch_min_duration_ms": int,
        "pinch_cooldown_ms": int,
        "pinch_distance_threshold": float,
    },
    "stability": {
        "window_size": int,
        "cooldown_ms": int,
        "min_confidence": float,
    },
    "dispatch": {
        "universal_cooldown_ms": int,
        "min_recording_ms": int,
        "video_restart_cooldown_ms": int,
        "flash_cooldown_ms": int,
        "camera_switch_cooldown_ms": int,
    },
}


def _deep_merge(base: dict, override: dict) -> dict:
    """Recursively merge override into base dict."""
    merged = base.copy()
    for key, value in override.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class Config:
    """Singleton configuration manager."""

    _instance = None
    _data = {}

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._data = copy.deepcopy(_DEFAULTS)
        return cls._instance

    def load(self, config_path=None):
        """Load configuration from a YAML file on top of the built-in defaults."""
        config_path = config_path or os.path.join(_CONFIG_DIR, "config.yaml")

        user_data = {}
        try:
            with open(config_path, "r") as f:
                user_data = yaml.safe_load(f) or {}
            logger.info("Loaded config from %s", config_path)
        except FileNotFoundError:
            logger.warning("Config file not found: %s, using defaults", config_path)

        if not isinstance(user_data, dict):
            logger.warning("Config root should be a mapping, got %s; ignoring file",
                           type(user_data).__name__)
            user_data = {}

        self._data = _deep_merge(copy.deepcopy(_DEFAULTS), user_data)
        self._validate()
        return self

    def _validate(self):
        """Validate critical config fields against schema."""
        warnings = []
        for section_name, fields in _CONFIG_SCHEMA.items():
            section = self._data.get(section_name)
            if section is None:
                warnings.append(f"Missing config section: '{section_name}'")
                continue
            if not isinstance(section, dict):
                warnings.append(f"Section '{section_name}' should be a dict, got {type(section).__name__}")
                continue
            for field_name, expected_type in fields.items():
                if field_name in section:
                    value = section[field_name]
                    # Allow int where float is expected
                    if expected_type is float and isinstance(value, (int, float)) \
                            and not isinstance(value, bool):
                        continue
                    if expected_type is int and isinstance(value, bool):
                        warnings.append(f"{section_name}.{field_name}: expected int, got bool")
                        continue
                    if not isinstance(value, expected_type):
                        warnings.append(
                            f"{section_name}.{field_name}: expected {expected_type.__name__}, "
                            f"got {type(value).__name__} ({value!r})"
                        )

        if warnings:
            for w in warnings:
                logger.warning("Config validation: %s", w)
        else:
            logger.debug("Config validation passed")
        return warnings

    def get(self, key_path: str, default=None):
        """Get nested config value using dot notation: 'dispatch.flash_cooldown_ms'."""
        keys = key_path.split(".")
        value = self._data
        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default
        return value

    def set(self, key_path: str, value):
        """Override a nested value (used for CLI flags)."""
        keys = key_path.split(".")
        node = self._data
        for key in keys[:-1]:
            node = node.setdefault(key, {})
        node[keys[-1]] = value

    def get_section(self, section: str) -> dict:
        """Get an entire config section."""
        return self._data.get(section, {})

    @property
    def governor(self) -> dict:
        return self._data.get("governor", {})

    @property
    def validation(self) -> dict:
        return self._data.get("validation", {})

    @property
    def recognition(self) -> dict:
        return self._data.get("recognition", {})

    @property
    def stability(self) -> dict:
        return self._data.get("stability", {})

    @property
    def dispatch(self) -> dict:
        return self._data.get("dispatch", {})

    @property
    def feedback(self) -> dict:
        return self._data.get("feedback", {})

    @property
    def camera(self) -> dict:
        return self._data.get("camera", {})

    @property
    def mediapipe(self) -> dict:
        return self._data.get("mediapipe", {})

    @property
    def simulator(self) -> dict:
        return self._data.get("simulator", {})

    @property
    def base_dir(self) -> str:
        return _BASE_DIR

    @classmethod
    def reset(cls):
        """Reset singleton instance (for testing)."""
        cls._instance = None
        cls._data = {}
