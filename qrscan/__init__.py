"""
Camera QR code scanner: YOLO detection followed by symbol decoding.
"""

__version__ = "1.0.0"

from .config.settings import Config, load_config, save_config
from .core.entities import Detection, Frame, Region, DecodedSymbol, ScannerStatus, ScannerState, ScanState, Facing

__all__ = [
    "Config", "load_config", "save_config",
    "Detection", "Frame", "Region", "DecodedSymbol", "ScannerStatus", "ScannerState", "ScanState", "Facing"
]
