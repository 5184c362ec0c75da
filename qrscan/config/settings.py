"""Configuration dataclass and loading utilities.

Provides a strongly-typed configuration object that is injected into
services instead of relying on a global module-level dictionary.
"""
from __future__ import annotations
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, Optional, Mapping
import json, os, logging

from .defaults import DEFAULT_CONFIG, RANGE_RULES
from .env_config import load_environment_overrides


@dataclass(slots=True)
class Config:
    # Detection model
    model_path: str = DEFAULT_CONFIG["model_path"]
    input_size: int = DEFAULT_CONFIG["input_size"]
    device: str = DEFAULT_CONFIG["device"]
    detection_threshold: float = DEFAULT_CONFIG["detection_threshold"]

    # Region extraction
    padding_ratio: float = DEFAULT_CONFIG["padding_ratio"]
    enhance_contrast: bool = DEFAULT_CONFIG["enhance_contrast"]
    brightness_offset: int = DEFAULT_CONFIG["brightness_offset"]
    contrast_gain: float = DEFAULT_CONFIG["contrast_gain"]

    # Camera
    default_facing: str = DEFAULT_CONFIG["default_facing"]
    back_camera_index: int = DEFAULT_CONFIG["back_camera_index"]
    front_camera_index: int = DEFAULT_CONFIG["front_camera_index"]
    camera_width: int = DEFAULT_CONFIG["camera_width"]
    camera_height: int = DEFAULT_CONFIG["camera_height"]
    camera_fps: int = DEFAULT_CONFIG["camera_fps"]
    camera_switch_delay_ms: int = DEFAULT_CONFIG["camera_switch_delay_ms"]
    max_cameras_probe: int = DEFAULT_CONFIG["max_cameras_probe"]

    # Frame loop
    frame_retry_ms: int = DEFAULT_CONFIG["frame_retry_ms"]
    loop_interval_ms: int = DEFAULT_CONFIG["loop_interval_ms"]

    open_urls: bool = DEFAULT_CONFIG["open_urls"]

    # Logging
    log_level: str = DEFAULT_CONFIG["log_level"]
    log_dir: str = DEFAULT_CONFIG["log_dir"]
    enable_file_logging: bool = DEFAULT_CONFIG["enable_file_logging"]
    structured_logging: bool = DEFAULT_CONFIG["structured_logging"]

    # Arbitrary extra values retained for forward compatibility
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        # merge extra keys at top-level for saving
        extra = d.pop("extra", {})
        d.update(extra)
        return d

    def get(self, key: str, default: Any = None) -> Any:
        return getattr(self, key, self.extra.get(key, default))


def load_config(path: str = "config.json", environ: Optional[Mapping[str, str]] = None) -> Config:
    """Load configuration from a JSON file, then apply environment overrides.

    Args:
        path: Path to config.json file
        environ: Environment mapping used for ``QRSCAN_*`` overrides (defaults to os.environ)

    Returns:
        Config: Loaded and validated configuration
    """
    data: Dict[str, Any] = {}

    if os.path.isfile(path):
        try:
            with open(path, "r", encoding="utf-8") as f:
                loaded_data = json.load(f)
            if loaded_data is None:
                logging.warning(f"Configuration file '{path}' is empty, using defaults")
            elif not isinstance(loaded_data, dict):
                logging.error(f"Configuration file '{path}' does not contain a valid JSON object, using defaults")
            else:
                data = loaded_data
                logging.info(f"Successfully loaded configuration from '{path}'")
        except json.JSONDecodeError as e:
            logging.error(f"Failed to parse JSON configuration file '{path}': {e}. Using defaults.")
        except PermissionError:
            logging.error(f"Permission denied reading configuration file '{path}'. Using defaults.")
        except OSError as e:
            logging.error(f"Unexpected error loading configuration file '{path}': {e}. Using defaults.")
    else:
        logging.info(f"Configuration file '{path}' does not exist. Using defaults.")

    merged = {**DEFAULT_CONFIG, **data}
    merged.update(load_environment_overrides(environ))
    _validate_ranges(merged)
    _validate_choices(merged)

    known = set(Config.__annotations__) - {"extra"}
    extra = {k: v for k, v in merged.items() if k not in known}
    if extra:
        logging.info(f"Found extra configuration keys: {list(extra.keys())}")

    return Config(**{k: merged[k] for k in known}, extra=extra)


def save_config(cfg: Config, path: str = "config.json") -> None:
    """Save configuration to JSON, keeping a backup of the previous file until the write succeeds."""
    backup_path = f"{path}.backup"
    try:
        if os.path.exists(path):
            try:
                with open(path, "r", encoding="utf-8") as src, open(backup_path, "w", encoding="utf-8") as dst:
                    dst.write(src.read())
                logging.debug(f"Created backup configuration at '{backup_path}'")
            except OSError as e:
                logging.warning(f"Failed to create configuration backup: {e}")

        with open(path, "w", encoding="utf-8") as f:
            json.dump(cfg.to_dict(), f, indent=2, ensure_ascii=False)
        logging.info(f"Configuration saved successfully to '{path}'")

        if os.path.exists(backup_path):
            os.remove(backup_path)
    except PermissionError:
        logging.error(f"Permission denied writing configuration file '{path}'")
    except OSError as e:
        logging.error(f"OS error saving configuration file '{path}': {e}")


def _validate_ranges(config_dict: Dict[str, Any]) -> None:
    """Reset non-numeric or out-of-range values to their defaults."""
    for key, (min_val, max_val) in RANGE_RULES.items():
        value = config_dict.get(key)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            logging.warning(f"Setting '{key}' is not numeric: {value!r}. Using default.")
            config_dict[key] = DEFAULT_CONFIG[key]
        elif value < min_val or value > max_val:
            logging.warning(f"Setting '{key}'={value} outside valid range [{min_val}, {max_val}]. Using default.")
            config_dict[key] = DEFAULT_CONFIG[key]


def _validate_choices(config_dict: Dict[str, Any]) -> None:
    facing = str(config_dict.get("default_facing", "")).lower()
    if facing not in ("front", "back"):
        logging.warning(f"Setting 'default_facing'={facing!r} is invalid. Using default.")
        facing = DEFAULT_CONFIG["default_facing"]
    config_dict["default_facing"] = facing

    model_path = config_dict.get("model_path")
    if not isinstance(model_path, str) or not model_path.strip():
        logging.warning("Setting 'model_path' is empty. Using default.")
        config_dict["model_path"] = DEFAULT_CONFIG["model_path"]
