"""Frame to model-input tensor conversion."""

from typing import Optional

import cv2
import numpy as np

from ..core.constants import MODEL_INPUT_SIZE
from ..core.entities import Frame


class Preprocessor:
    """Resize and normalize a frame into a (1, S, S, 3) float32 RGB tensor.

    Pure: holds only the target size, no per-frame state.
    """

    def __init__(self, input_size: int = MODEL_INPUT_SIZE):
        self.input_size = input_size

    def transform(self, frame: Optional[Frame]) -> Optional[np.ndarray]:
        """Return the model input tensor, or None if the frame is unavailable."""
        if frame is None or frame.pixels is None or frame.pixels.size == 0:
            return None
        if frame.width <= 0 or frame.height <= 0:
            return None

        pixels = frame.pixels
        if pixels.ndim == 2:
            rgb = cv2.cvtColor(pixels, cv2.COLOR_GRAY2RGB)
        elif pixels.shape[2] == 4:
            rgb = cv2.cvtColor(pixels, cv2.COLOR_BGRA2RGB)
        else:
            rgb = cv2.cvtColor(pixels, cv2.COLOR_BGR2RGB)

        resized = cv2.resize(rgb, (self.input_size, self.input_size), interpolation=cv2.INTER_LINEAR)
        tensor = resized.astype(np.float32) / 255.0
        return np.expand_dims(tensor, axis=0)
