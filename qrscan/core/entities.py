"""Domain entities (data-only structures) used across services."""
from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple
import time

import numpy as np

from .exceptions import InvalidRegion

NormBox = Tuple[float, float, float, float]  # (x, y, w, h) normalized 0..1, top-left corner form


class Facing(Enum):
    """Camera facing mode."""
    FRONT = "front"
    BACK = "back"

    def toggled(self) -> "Facing":
        return Facing.BACK if self is Facing.FRONT else Facing.FRONT


class ScannerState(Enum):
    """Lifecycle of the detection model. Transitions only move forward."""
    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


class ScanState(Enum):
    """Lifecycle of a scan session."""
    IDLE = "idle"
    SCANNING = "scanning"
    DETECTED = "detected"


class PassOutcome(Enum):
    """Result of a single frame pass."""
    BUSY = "busy"                      # another pass was in flight, dropped
    INACTIVE = "inactive"              # not scanning, or camera is switching
    NO_FRAME = "no_frame"
    NO_DETECTION = "no_detection"
    INVALID_REGION = "invalid_region"
    NOT_DECODED = "not_decoded"
    TEXT = "text"
    URL = "url"
    STALE = "stale"                    # session ended while the pass ran
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class Frame:
    """One camera frame. The pixel buffer is BGR and read-only."""
    pixels: np.ndarray
    width: int
    height: int
    timestamp: float = field(default_factory=time.monotonic)

    def __post_init__(self):
        # read-only view; the caller keeps a writeable array
        view = self.pixels.view()
        view.flags.writeable = False
        object.__setattr__(self, "pixels", view)

    @classmethod
    def from_array(cls, pixels: np.ndarray, timestamp: Optional[float] = None) -> "Frame":
        height, width = pixels.shape[:2]
        stamp = time.monotonic() if timestamp is None else timestamp
        return cls(pixels=pixels, width=int(width), height=int(height), timestamp=stamp)


@dataclass(frozen=True, slots=True)
class Detection:
    bbox: NormBox
    confidence: float


@dataclass(frozen=True, slots=True)
class Region:
    """Pixel-space crop rectangle, already clamped to the frame."""
    x: int
    y: int
    width: int
    height: int

    def __post_init__(self):
        if self.width <= 0 or self.height <= 0:
            raise InvalidRegion(f"Degenerate region {self.width}x{self.height} at ({self.x},{self.y})")

    @property
    def x2(self) -> int:
        return self.x + self.width

    @property
    def y2(self) -> int:
        return self.y + self.height


@dataclass(frozen=True, slots=True)
class DecodedSymbol:
    text: str
    source: str = "unknown"  # decoder that produced the text


@dataclass(slots=True)
class ScanSession:
    active: bool = False
    facing: Facing = Facing.BACK


@dataclass(frozen=True, slots=True)
class ScannerStatus:
    """Snapshot pushed to the presentation layer."""
    ready: bool = False
    status_text: str = ""
    progress: int = 0
    error: Optional[str] = None
    scan_state: ScanState = ScanState.IDLE
    has_multiple_cameras: bool = False
