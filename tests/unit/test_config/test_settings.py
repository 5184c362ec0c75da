"""Unit tests for configuration loading, validation and environment overrides."""
import json

import pytest

from qrscan.config.defaults import DEFAULT_CONFIG
from qrscan.config.env_config import load_environment_overrides
from qrscan.config.settings import Config, load_config, save_config


class TestLoadConfig:
    """Test suite for load_config."""

    def test_missing_file_uses_defaults(self, temp_dir):
        """Test defaults are used when the file does not exist."""
        config = load_config(str(temp_dir / "missing.json"), environ={})

        assert config.detection_threshold == 0.25
        assert config.padding_ratio == 0.10
        assert config.default_facing == "back"
        assert config.input_size == 640

    def test_file_values_override_defaults(self, temp_dir):
        path = temp_dir / "config.json"
        path.write_text(json.dumps({"detection_threshold": 0.4, "default_facing": "front"}))

        config = load_config(str(path), environ={})

        assert config.detection_threshold == 0.4
        assert config.default_facing == "front"

    def test_invalid_json_falls_back_to_defaults(self, temp_dir):
        path = temp_dir / "config.json"
        path.write_text("{not json")

        config = load_config(str(path), environ={})

        assert config.to_dict()["model_path"] == DEFAULT_CONFIG["model_path"]

    @pytest.mark.parametrize("key,value", [
        ("detection_threshold", 1.5),
        ("padding_ratio", -0.1),
        ("camera_fps", "fast"),
        ("frame_retry_ms", True),
    ])
    def test_out_of_range_values_reset(self, temp_dir, key, value):
        """Test invalid numeric settings are replaced by their defaults."""
        path = temp_dir / "config.json"
        path.write_text(json.dumps({key: value}))

        config = load_config(str(path), environ={})

        assert getattr(config, key) == DEFAULT_CONFIG[key]

    def test_invalid_facing_reset(self, temp_dir):
        path = temp_dir / "config.json"
        path.write_text(json.dumps({"default_facing": "sideways"}))

        assert load_config(str(path), environ={}).default_facing == "back"

    def test_unknown_keys_kept_as_extra(self, temp_dir):
        path = temp_dir / "config.json"
        path.write_text(json.dumps({"theme": "dark"}))

        config = load_config(str(path), environ={})

        assert config.extra == {"theme": "dark"}
        assert config.get("theme") == "dark"

    def test_environment_overrides_file(self, temp_dir):
        """Test QRSCAN_* variables win over file values."""
        path = temp_dir / "config.json"
        path.write_text(json.dumps({"device": "cpu"}))

        config = load_config(str(path), environ={"QRSCAN_DEVICE": "cuda:0", "QRSCAN_OPEN_URLS": "no"})

        assert config.device == "cuda:0"
        assert config.open_urls is False


class TestEnvironmentOverrides:
    """Test suite for environment variable parsing."""

    def test_valid_overrides_parsed(self):
        overrides = load_environment_overrides({
            "QRSCAN_DETECTION_THRESHOLD": "0.5",
            "QRSCAN_DEFAULT_FACING": "FRONT",
            "QRSCAN_LOG_LEVEL": "debug",
            "QRSCAN_ENHANCE_CONTRAST": "off",
        })

        assert overrides == {
            "detection_threshold": 0.5,
            "default_facing": "front",
            "log_level": "DEBUG",
            "enhance_contrast": False,
        }

    def test_invalid_values_ignored(self):
        """Test unparseable values are dropped rather than raising."""
        overrides = load_environment_overrides({
            "QRSCAN_BACK_CAMERA_INDEX": "first",
            "QRSCAN_DEFAULT_FACING": "up",
            "QRSCAN_OPEN_URLS": "maybe",
        })

        assert overrides == {}

    def test_unrelated_variables_ignored(self):
        assert load_environment_overrides({"DEVICE": "cuda"}) == {}


class TestSaveConfig:
    """Test suite for save_config."""

    def test_save_and_reload(self, temp_dir):
        path = temp_dir / "config.json"
        config = Config(detection_threshold=0.3, extra={"theme": "dark"})

        save_config(config, str(path))
        data = json.loads(path.read_text())

        assert data["detection_threshold"] == 0.3
        assert data["theme"] == "dark"
        assert "extra" not in data
        assert not (temp_dir / "config.json.backup").exists()
