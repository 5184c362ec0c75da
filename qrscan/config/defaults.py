"""Default configuration values."""

from typing import Any, Dict, Tuple, Union

DEFAULT_CONFIG: Dict[str, Any] = {
    # Detection model
    "model_path": "models/qr_detector.pt",
    "input_size": 640,
    "device": "cpu",  # cpu, cuda, cuda:0, mps
    "detection_threshold": 0.25,  # 0.0 to 1.0, strictly exceeded

    # Region extraction
    "padding_ratio": 0.10,  # fraction of the shorter crop side
    "enhance_contrast": True,
    "brightness_offset": -50,
    "contrast_gain": 2.5,

    # Camera
    "default_facing": "back",  # back | front
    "back_camera_index": 0,
    "front_camera_index": 1,
    "camera_width": 1280,
    "camera_height": 720,
    "camera_fps": 30,
    "camera_switch_delay_ms": 500,
    "max_cameras_probe": 4,

    # Frame loop
    "frame_retry_ms": 50,  # back-off when no frame is available
    "loop_interval_ms": 0,  # pause between completed passes

    # URL hand-off
    "open_urls": True,

    # Debug and Logging Settings
    "log_level": "INFO",
    "log_dir": "logs",
    "enable_file_logging": True,
    "structured_logging": False,
}

RANGE_RULES: Dict[str, Tuple[Union[int, float], Union[int, float]]] = {
    "input_size": (32, 4096),
    "detection_threshold": (0.0, 1.0),
    "padding_ratio": (0.0, 1.0),
    "brightness_offset": (-255, 255),
    "contrast_gain": (0.0, 10.0),
    "back_camera_index": (0, 64),
    "front_camera_index": (0, 64),
    "camera_width": (160, 7680),
    "camera_height": (120, 4320),
    "camera_fps": (1, 240),
    "camera_switch_delay_ms": (0, 10000),
    "max_cameras_probe": (1, 64),
    "frame_retry_ms": (0, 5000),
    "loop_interval_ms": (0, 5000),
}
