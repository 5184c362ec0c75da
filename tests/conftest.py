"""Pytest configuration and shared fixtures for the QR scanner.

Provides configs, synthetic camera frames, generated QR images, a fake
detection backend and a fake frame source so the pipeline can be tested
without a camera or trained weights.
"""
import os
import sys
import tempfile
import logging
from pathlib import Path
from typing import List, Optional, Sequence
from unittest.mock import Mock

import pytest
import numpy as np
import cv2
import torch

# Add the project root to Python path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from qrscan.backends.base_backend import BaseBackend
from qrscan.config.settings import Config
from qrscan.core.entities import Facing, Frame
from qrscan.core.exceptions import CameraAccessError, ModelLoadError
from qrscan.services.inference_service import Detector


# Configure logging for tests
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[logging.StreamHandler()]
)

logging.getLogger('ultralytics').setLevel(logging.WARNING)


class FakeBackend(BaseBackend):
    """Backend returning preset rows in the raw (1, 5, N) head layout.

    Rows are given normalized (cx, cy, w, h, conf); box columns are scaled to
    model input pixels the way a real YOLO head reports them.
    """

    def __init__(self, rows: Optional[Sequence[Sequence[float]]] = None, input_size: int = 640,
                 fail_load: bool = False, fail_forward: bool = False):
        super().__init__("cpu")
        self.rows = [list(r) for r in (rows or [])]
        self.input_size = input_size
        self.fail_load = fail_load
        self.fail_forward = fail_forward
        self.forward_calls = 0
        self.last_input_shape = None

    def load_model(self, model_path: str) -> None:
        if self.fail_load:
            raise ModelLoadError(f"Failed to load model {model_path}")
        self.is_loaded = True

    def forward(self, tensor):
        self.forward_calls += 1
        self.last_input_shape = tuple(tensor.shape)
        if self.fail_forward:
            raise RuntimeError("forward failed")
        data = np.array(self.rows, dtype=np.float32).reshape(-1, 5)
        data[:, :4] *= self.input_size
        # (N, 5) -> (1, 5, N)
        return torch.from_numpy(data.T.copy()).unsqueeze(0)


class FakeFrameSource:
    """In-memory frame source with the same lifecycle rules as CameraFrameSource."""

    def __init__(self, frame: Optional[Frame] = None, camera_count: int = 1, fail_start: bool = False):
        self.frame = frame
        self.camera_count = camera_count
        self.fail_start = fail_start
        self.fail_device_count = False
        self.streaming = False
        self.facing: Optional[Facing] = None
        self.start_calls: List[Facing] = []
        self.stop_calls = 0
        self.release_count = 0

    def start(self, facing: Facing) -> int:
        self.start_calls.append(facing)
        if self.fail_start:
            raise CameraAccessError("Permission denied")
        self.streaming = True
        self.facing = facing
        return 0 if facing is Facing.BACK else 1

    def stop(self) -> None:
        self.stop_calls += 1
        if not self.streaming:
            return
        self.streaming = False
        self.release_count += 1

    def current_frame(self) -> Optional[Frame]:
        return self.frame if self.streaming else None

    def device_count(self) -> int:
        if self.fail_device_count:
            raise RuntimeError("enumeration failed")
        return self.camera_count


class TestDataGenerator:
    """Utility class for generating test data."""

    @staticmethod
    def create_test_image(width: int = 640, height: int = 480, pattern: str = "solid") -> np.ndarray:
        """Create a BGR test image.

        Args:
            width: Image width
            height: Image height
            pattern: Pattern type ('random', 'gradient', 'solid', 'white')
        """
        if pattern == "random":
            return np.random.randint(0, 256, (height, width, 3), dtype=np.uint8)
        elif pattern == "gradient":
            image = np.zeros((height, width, 3), dtype=np.uint8)
            for i in range(height):
                image[i, :, :] = int(255 * i / height)
            return image
        elif pattern == "solid":
            return np.full((height, width, 3), 128, dtype=np.uint8)
        elif pattern == "white":
            return np.full((height, width, 3), 255, dtype=np.uint8)
        else:
            raise ValueError(f"Unknown pattern: {pattern}")

    @staticmethod
    def create_qr_image(text: str, module_px: int = 8, border_modules: int = 4) -> np.ndarray:
        """Encode text as a BGR QR image with a white quiet zone."""
        encoder = cv2.QRCodeEncoder.create()
        qr = encoder.encode(text)
        if qr.ndim == 3:
            qr = cv2.cvtColor(qr, cv2.COLOR_BGR2GRAY)
        qr = cv2.resize(qr, (qr.shape[1] * module_px, qr.shape[0] * module_px), interpolation=cv2.INTER_NEAREST)
        pad = border_modules * module_px
        qr = cv2.copyMakeBorder(qr, pad, pad, pad, pad, cv2.BORDER_CONSTANT, value=255)
        return cv2.cvtColor(qr, cv2.COLOR_GRAY2BGR)

    @staticmethod
    def create_frame_with_qr(text: str, width: int = 1280, height: int = 720,
                             origin=(400, 150)) -> tuple:
        """Paste a QR image onto a white frame.

        Returns:
            (Frame, normalized center box (cx, cy, w, h) of the pasted QR)
        """
        canvas = np.full((height, width, 3), 255, dtype=np.uint8)
        qr = TestDataGenerator.create_qr_image(text)
        x, y = origin
        qh, qw = qr.shape[:2]
        canvas[y:y + qh, x:x + qw] = qr
        box = ((x + qw / 2) / width, (y + qh / 2) / height, qw / width, qh / height)
        return Frame.from_array(canvas), box


@pytest.fixture
def test_data_generator():
    """Provide the TestDataGenerator utility."""
    return TestDataGenerator


@pytest.fixture
def temp_dir():
    """Provide a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def config():
    """Default configuration with timings shortened for tests."""
    return Config(camera_switch_delay_ms=0, frame_retry_ms=1, enable_file_logging=False)


@pytest.fixture
def mock_config():
    """Provide a mock configuration object for testing."""
    config = Mock(spec=Config)
    config.back_camera_index = 0
    config.front_camera_index = 1
    config.camera_width = 640
    config.camera_height = 480
    config.camera_fps = 30
    config.max_cameras_probe = 2
    config.padding_ratio = 0.10
    config.enhance_contrast = True
    config.brightness_offset = -50
    config.contrast_gain = 2.5
    return config


@pytest.fixture
def sample_frame():
    """A 1280x720 mid-gray camera frame."""
    return Frame.from_array(TestDataGenerator.create_test_image(1280, 720))


@pytest.fixture
def fake_backend():
    return FakeBackend()


@pytest.fixture
def ready_detector(fake_backend):
    """Detector already loaded on a FakeBackend."""
    detector = Detector(fake_backend, "models/fake.pt")
    detector.load()
    return detector


@pytest.fixture
def fake_frame_source(sample_frame):
    return FakeFrameSource(frame=sample_frame)


@pytest.fixture
def mock_opencv_capture():
    """Provide a mock OpenCV VideoCapture object."""
    cap = Mock()
    cap.isOpened.return_value = True
    cap.read.return_value = (True, np.zeros((480, 640, 3), dtype=np.uint8))
    cap.get.return_value = 640
    cap.set.return_value = True
    cap.release.return_value = None
    return cap


# Test markers and utilities
def pytest_configure(config):
    """Configure pytest with custom markers and settings."""
    config.addinivalue_line("markers", "slow: mark test as slow running")
    config.addinivalue_line("markers", "integration: mark test as integration test")
    config.addinivalue_line("markers", "unit: mark test as unit test")
    config.addinivalue_line("markers", "gpu: mark test as requiring GPU")
    config.addinivalue_line("markers", "webcam: mark test as requiring webcam access")


def pytest_collection_modifyitems(config, items):
    """Add markers based on location and skip hardware tests unless enabled."""
    for item in items:
        if "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
        elif "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)

        if item.get_closest_marker("gpu") and not os.getenv("RUN_GPU_TESTS"):
            item.add_marker(pytest.mark.skip(reason="GPU tests disabled"))

        if item.get_closest_marker("webcam") and not os.getenv("RUN_WEBCAM_TESTS"):
            item.add_marker(pytest.mark.skip(reason="Webcam tests disabled"))


@pytest.fixture
def make_backend():
    """Factory for FakeBackend instances."""
    return FakeBackend


@pytest.fixture
def make_frame_source():
    """Factory for FakeFrameSource instances."""
    return FakeFrameSource
