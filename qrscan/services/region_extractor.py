"""Maps a detection back onto the camera frame and crops the QR region."""

import logging
from typing import Optional

import numpy as np

from ..core.entities import Detection, Frame, Region
from ..core.exceptions import InvalidRegion
from ..utils.geometry import clamp_xywh, denormalize_xywh, expand_xywh, round_half_up
from ..utils.image_utils import adjust_brightness_contrast, crop_image

logger = logging.getLogger(__name__)


class RegionExtractor:
    """Turns a normalized Detection into a padded, clamped pixel Region.

    The detector sees a 640x640 resized copy of the frame, so the normalized
    box is scaled by the frame's own width and height, never by the model
    input size.
    """

    def __init__(self, padding_ratio: float = 0.10, enhance: bool = True,
                 brightness: float = -50, contrast: float = 2.5):
        """Initialize region extractor.

        Args:
            padding_ratio: Padding added on every side, as a fraction of the shorter crop side
            enhance: Apply brightness/contrast normalization to cropped pixels
            brightness: Additive brightness offset used when enhancing
            contrast: Multiplicative contrast gain used when enhancing
        """
        self.padding_ratio = padding_ratio
        self.enhance = enhance
        self.brightness = brightness
        self.contrast = contrast

    @classmethod
    def from_config(cls, config) -> "RegionExtractor":
        return cls(
            padding_ratio=config.padding_ratio,
            enhance=config.enhance_contrast,
            brightness=config.brightness_offset,
            contrast=config.contrast_gain,
        )

    def compute_region(self, frame_width: int, frame_height: int, detection: Detection) -> Region:
        """Return the clamped pixel Region. Raises InvalidRegion if it collapses."""
        box = denormalize_xywh(detection.bbox, frame_width, frame_height)
        padding = round_half_up(min(box[2], box[3]) * self.padding_ratio)
        x, y, w, h = clamp_xywh(expand_xywh(box, padding), frame_width, frame_height)
        return Region(x=x, y=y, width=w, height=h)

    def extract(self, frame: Frame, detection: Detection) -> Optional[Region]:
        try:
            return self.compute_region(frame.width, frame.height, detection)
        except InvalidRegion as e:
            logger.debug(f"Rejected crop for {detection}: {e}")
            return None

    def crop(self, frame: Frame, region: Region) -> np.ndarray:
        """Copy the region's pixels out of the frame, enhanced if enabled."""
        pixels = crop_image(frame.pixels, (region.x, region.y, region.width, region.height))
        if self.enhance:
            return adjust_brightness_contrast(pixels, self.brightness, self.contrast)
        return pixels.copy()
