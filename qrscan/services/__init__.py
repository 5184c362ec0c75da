"""Services package for the detect-then-decode pipeline."""

from .webcam_service import CameraFrameSource
from .preprocessing_service import Preprocessor
from .inference_service import Detector
from .box_selector import BoxSelector, select_best_detection
from .region_extractor import RegionExtractor
from .decoder_service import SymbolDecoder
from .scan_pipeline import ScanPipeline

__all__ = [
    "CameraFrameSource", "Preprocessor", "Detector", "BoxSelector", "select_best_detection",
    "RegionExtractor", "SymbolDecoder", "ScanPipeline"
]
