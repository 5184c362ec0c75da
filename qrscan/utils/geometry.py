"""Geometry and bounding box utilities."""

import math


def cxcywh_to_xywh(box):
    """Convert center-width-height format to top-left-width-height format."""
    cx, cy, bw, bh = box
    return (cx - bw / 2, cy - bh / 2, bw, bh)


def round_half_up(value):
    """Round .5 away from zero for positive values (Python's round() is banker's rounding)."""
    return int(math.floor(value + 0.5))


def denormalize_xywh(box, img_w, img_h):
    """Scale a normalized (x, y, w, h) box to pixel units of an img_w x img_h image."""
    x, y, bw, bh = box
    return (x * img_w, y * img_h, bw * img_w, bh * img_h)


def expand_xywh(box, pad):
    """Grow a box by pad pixels on every side."""
    x, y, bw, bh = box
    return (x - pad, y - pad, bw + 2 * pad, bh + 2 * pad)


def clamp_xywh(box, img_w, img_h):
    """Clamp a pixel box to [0, img_w] x [0, img_h].

    Returns integer (x, y, w, h); width/height may be zero or negative when
    the box lies outside the image.
    """
    x, y, bw, bh = box
    x1 = max(0, math.floor(x))
    y1 = max(0, math.floor(y))
    x2 = min(img_w, math.floor(x + bw))
    y2 = min(img_h, math.floor(y + bh))
    return (x1, y1, x2 - x1, y2 - y1)

