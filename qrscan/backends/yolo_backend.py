"""YOLO backend implementation using Ultralytics' AutoBackend.

AutoBackend is used instead of the high-level ``YOLO`` predictor because the
pipeline needs the raw head output (no NMS, no letterboxing): the box
selector performs its own single-best selection on the transposed rows.
"""
import logging
import os
from typing import Any

from .base_backend import BaseBackend
from ..core.exceptions import ModelLoadError

logger = logging.getLogger(__name__)


class YoloBackend(BaseBackend):
    """Raw YOLO detection head backend."""

    SUPPORTED_FORMATS = ['.pt', '.torchscript', '.onnx', '.tflite', '.engine', '_saved_model']

    def __init__(self, device: str = "cpu"):
        super().__init__(device)
        self.model = None
        self.model_path = None

    def load_model(self, model_path: str) -> None:
        if not self.validate_model(model_path):
            raise ModelLoadError(f"Model not found or unsupported format: {model_path}")

        try:
            import torch
            from ultralytics.nn.autobackend import AutoBackend
        except ImportError as e:
            raise ModelLoadError(f"Ultralytics not installed. Install with: pip install ultralytics ({e})")

        try:
            self.model = AutoBackend(model_path, device=torch.device(self.device), fp16=False, verbose=False)
            self.model.eval()
        except Exception as e:
            self.is_loaded = False
            raise ModelLoadError(f"Failed to load YOLO model {model_path}: {e}") from e

        self.model_path = model_path
        self.is_loaded = True
        logger.info(f"Loaded YOLO model: {model_path} on {self.device}")

    def forward(self, tensor: Any) -> Any:
        if not self.is_loaded or self.model is None:
            raise ModelLoadError("No model loaded")
        return self.model(tensor)

    def validate_model(self, model_path: str) -> bool:
        """Check the path exists and has a format AutoBackend understands."""
        if not model_path or not os.path.exists(model_path):
            return False
        normalized = model_path.rstrip('/\\').lower()
        return any(normalized.endswith(fmt) for fmt in self.SUPPORTED_FORMATS)
