"""Image processing utilities."""

import cv2
import numpy as np
from typing import Tuple


def to_gray(image: np.ndarray) -> np.ndarray:
    """Return a single-channel uint8 view of a BGR, BGRA or gray image."""
    if image.ndim == 2:
        return image
    if image.shape[2] == 4:
        return cv2.cvtColor(image, cv2.COLOR_BGRA2GRAY)
    return cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)


def crop_image(image: np.ndarray, bbox: Tuple[int, int, int, int]) -> np.ndarray:
    """Crop image using (x, y, width, height) pixel coordinates."""
    x, y, w, h = bbox
    return image[y:y + h, x:x + w]


def adjust_brightness_contrast(image: np.ndarray, brightness: float = -50, contrast: float = 2.5) -> np.ndarray:
    """Apply ``pixel * contrast + brightness`` per channel, saturating to [0, 255]."""
    adjusted = image.astype(np.float32) * contrast + brightness
    return np.clip(adjusted, 0, 255).astype(np.uint8)


def mirror_horizontally(image: np.ndarray) -> np.ndarray:
    return cv2.flip(image, 1)
