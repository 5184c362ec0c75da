"""QR symbol decoding over a cropped pixel buffer.

pyzbar (ZBar) is tried first; OpenCV's QRCodeDetector is the fallback and
the only decoder when the ZBar shared library is not installed.
"""

import logging
from typing import Optional

import cv2
import numpy as np

from ..core.entities import DecodedSymbol
from ..core.exceptions import DecodeFailure
from ..utils.image_utils import to_gray

logger = logging.getLogger(__name__)

# pyzbar needs the native zbar library at import time
HAS_PYZBAR = False
try:
    from pyzbar import pyzbar
    HAS_PYZBAR = True
except ImportError:
    HAS_PYZBAR = False


class SymbolDecoder:
    """Decodes a single QR code from a pixel buffer. Never raises."""

    def __init__(self, use_pyzbar: bool = True, use_opencv: bool = True):
        self.use_pyzbar = use_pyzbar and HAS_PYZBAR
        self.use_opencv = use_opencv
        self._cv_detector = cv2.QRCodeDetector() if use_opencv else None

        if use_pyzbar and not HAS_PYZBAR:
            logger.warning("pyzbar/zbar not available, decoding with OpenCV only")

    def warmup(self) -> None:
        """Run the decoders once on a blank image so first-frame latency is not paid mid-scan."""
        self.decode(np.full((32, 32), 255, dtype=np.uint8), 32, 32)

    def decode(self, pixels: np.ndarray, width: int, height: int) -> Optional[DecodedSymbol]:
        """Return the decoded symbol, or None when nothing could be read."""
        try:
            return self.decode_or_raise(pixels, width, height)
        except DecodeFailure as e:
            logger.debug(f"No QR symbol decoded: {e}")
            return None
        except Exception as e:
            logger.warning(f"QR decoding error: {e}")
            return None

    def decode_or_raise(self, pixels: np.ndarray, width: int, height: int) -> DecodedSymbol:
        if pixels is None or width <= 0 or height <= 0 or pixels.size == 0:
            raise DecodeFailure("empty region")
        if pixels.shape[0] != height or pixels.shape[1] != width:
            raise DecodeFailure(f"buffer is {pixels.shape[1]}x{pixels.shape[0]}, expected {width}x{height}")

        gray = np.ascontiguousarray(to_gray(pixels))

        if self.use_pyzbar:
            text = self._decode_pyzbar(gray)
            if text:
                return DecodedSymbol(text=text, source="pyzbar")

        if self.use_opencv:
            text = self._decode_opencv(gray)
            if text:
                return DecodedSymbol(text=text, source="opencv")

        raise DecodeFailure("no QR symbol found")

    def _decode_pyzbar(self, gray: np.ndarray) -> Optional[str]:
        results = pyzbar.decode(gray, symbols=[pyzbar.ZBarSymbol.QRCODE])
        if not results:
            return None
        return results[0].data.decode('utf-8', errors='replace').strip('\x00')

    def _decode_opencv(self, gray: np.ndarray) -> Optional[str]:
        try:
            data, _, _ = self._cv_detector.detectAndDecode(gray)
        except cv2.error as e:
            logger.debug(f"OpenCV QR detector failed: {e}")
            return None
        return data or None
