"""Core domain entities and constants."""

from .entities import (
    Frame, Detection, Region, DecodedSymbol, ScanSession, ScannerStatus,
    Facing, ScannerState, ScanState, PassOutcome, NormBox
)
from .exceptions import (
    ApplicationError, CameraAccessError, ModelLoadError, FrameUnavailable,
    InvalidRegion, DecodeFailure, DetectionError, DetectorNotReadyError, ConfigError
)
from .constants import APP_NAME, VERSION, MODEL_INPUT_SIZE, DETECTION_THRESHOLD

__all__ = [
    "Frame", "Detection", "Region", "DecodedSymbol", "ScanSession", "ScannerStatus",
    "Facing", "ScannerState", "ScanState", "PassOutcome", "NormBox",
    "ApplicationError", "CameraAccessError", "ModelLoadError", "FrameUnavailable",
    "InvalidRegion", "DecodeFailure", "DetectionError", "DetectorNotReadyError", "ConfigError",
    "APP_NAME", "VERSION", "MODEL_INPUT_SIZE", "DETECTION_THRESHOLD"
]
