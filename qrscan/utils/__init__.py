"""Utility functions package."""

from .geometry import (
    cxcywh_to_xywh, denormalize_xywh, expand_xywh, clamp_xywh, round_half_up
)
from .image_utils import to_gray, crop_image, adjust_brightness_contrast, mirror_horizontally
from .validation import is_absolute_url

__all__ = [
    "cxcywh_to_xywh", "denormalize_xywh", "expand_xywh", "clamp_xywh", "round_half_up",
    "to_gray", "crop_image", "adjust_brightness_contrast", "mirror_horizontally",
    "is_absolute_url"
]
