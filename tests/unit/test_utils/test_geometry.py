"""Unit tests for geometry helpers."""
import pytest

from qrscan.utils.geometry import (
    clamp_xywh, cxcywh_to_xywh, denormalize_xywh, expand_xywh, round_half_up
)


class TestGeometry:

    def test_cxcywh_to_xywh(self):
        assert cxcywh_to_xywh((0.5, 0.5, 0.25, 0.5)) == (0.375, 0.25, 0.25, 0.5)

    @pytest.mark.parametrize("value,expected", [(14.4, 14), (14.5, 15), (0.5, 1), (2.5, 3), (0.0, 0)])
    def test_round_half_up(self, value, expected):
        """Test halves round up rather than to even."""
        assert round_half_up(value) == expected

    def test_denormalize(self):
        assert denormalize_xywh((0.5, 0.25, 0.25, 0.5), 1280, 720) == (640.0, 180.0, 320.0, 360.0)

    def test_expand(self):
        assert expand_xywh((10, 10, 20, 20), 5) == (5, 5, 30, 30)

    def test_clamp_inside(self):
        assert clamp_xywh((10.7, 20.2, 30.0, 40.0), 100, 100) == (10, 20, 30, 40)

    def test_clamp_outside(self):
        x, y, w, h = clamp_xywh((150, 150, 20, 20), 100, 100)

        assert w <= 0 and h <= 0
