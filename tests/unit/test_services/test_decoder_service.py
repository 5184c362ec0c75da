"""Unit tests for SymbolDecoder."""
from unittest.mock import patch

import numpy as np
import pytest

from qrscan.core.exceptions import DecodeFailure
from qrscan.services import decoder_service
from qrscan.services.decoder_service import SymbolDecoder


class TestSymbolDecoder:
    """Test suite for QR decoding."""

    @pytest.mark.parametrize("text", [
        "https://example.com/path?q=1",
        "hello world",
        "WIFI:T:WPA;S:home;P:secret;;",
    ])
    def test_decodes_generated_qr(self, test_data_generator, text):
        """Test a generated QR image decodes back to its text."""
        image = test_data_generator.create_qr_image(text)
        h, w = image.shape[:2]

        symbol = SymbolDecoder().decode(image, w, h)

        assert symbol is not None
        assert symbol.text == text

    def test_opencv_only(self, test_data_generator):
        image = test_data_generator.create_qr_image("opencv path")
        h, w = image.shape[:2]

        symbol = SymbolDecoder(use_pyzbar=False).decode(image, w, h)

        assert symbol.text == "opencv path"
        assert symbol.source == "opencv"

    def test_grayscale_input(self, test_data_generator):
        image = test_data_generator.create_qr_image("gray")[:, :, 0].copy()
        h, w = image.shape

        assert SymbolDecoder().decode(image, w, h).text == "gray"

    def test_blank_image_returns_none(self, test_data_generator):
        image = test_data_generator.create_test_image(200, 200, "white")

        assert SymbolDecoder().decode(image, 200, 200) is None

    def test_dimension_mismatch_returns_none(self, test_data_generator):
        image = test_data_generator.create_test_image(200, 100, "white")

        assert SymbolDecoder().decode(image, 100, 200) is None

    @pytest.mark.parametrize("width,height", [(0, 10), (10, 0)])
    def test_empty_region_returns_none(self, width, height):
        assert SymbolDecoder().decode(np.zeros((height, width, 3), dtype=np.uint8), width, height) is None

    def test_decode_or_raise_raises(self):
        with pytest.raises(DecodeFailure):
            SymbolDecoder().decode_or_raise(np.full((50, 50), 255, dtype=np.uint8), 50, 50)

    def test_unexpected_error_never_escapes(self):
        """Test an internal decoder crash is reported as no result."""
        decoder = SymbolDecoder(use_pyzbar=False)
        with patch.object(decoder, '_decode_opencv', side_effect=RuntimeError("crash")):
            assert decoder.decode(np.full((50, 50), 255, dtype=np.uint8), 50, 50) is None

    @pytest.mark.skipif(not decoder_service.HAS_PYZBAR, reason="zbar library not installed")
    def test_pyzbar_preferred(self, test_data_generator):
        image = test_data_generator.create_qr_image("zbar first")
        h, w = image.shape[:2]

        symbol = SymbolDecoder().decode(image, w, h)

        assert symbol.source == "pyzbar"

    def test_warmup_does_not_raise(self):
        SymbolDecoder().warmup()
