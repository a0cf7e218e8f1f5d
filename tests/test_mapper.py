"""
Unit tests for latentnav.core.mapper
"""

import pytest

from latentnav.core.mapper import CoordinateMapper


class TestToLatent:
    """Test pixel -> latent conversion."""

    def test_center_is_origin(self):
        mapper = CoordinateMapper(600)
        assert mapper.to_latent(300, 300, 5.0, 5.0) == pytest.approx((0.0, 0.0))

    def test_corners(self):
        """Top-left is (-rx, +ry), bottom-right is (+rx, -ry)."""
        mapper = CoordinateMapper(600)
        assert mapper.to_latent(0, 0, 5.0, 2.0) == pytest.approx((-5.0, 2.0))
        assert mapper.to_latent(600, 600, 5.0, 2.0) == pytest.approx((5.0, -2.0))

    def test_y_axis_inverted(self):
        """Moving the pointer down lowers latent y."""
        mapper = CoordinateMapper(600)
        _, y_top = mapper.to_latent(300, 100, 5.0, 5.0)
        _, y_bottom = mapper.to_latent(300, 500, 5.0, 5.0)
        assert y_top > y_bottom

    def test_outside_viewport_not_clamped(self):
        mapper = CoordinateMapper(600)
        x, y = mapper.to_latent(-60, 660, 5.0, 5.0)
        assert x == pytest.approx(-6.0)
        assert y == pytest.approx(-6.0)

    def test_asymmetric_ranges(self):
        mapper = CoordinateMapper(400)
        x, y = mapper.to_latent(300, 100, 15.0, 0.5)
        assert x == pytest.approx(7.5)
        assert y == pytest.approx(0.25)


class TestToPixel:
    """Test latent -> pixel conversion."""

    @pytest.mark.parametrize("px,py", [(0, 0), (123.5, 456.25), (600, 600), (-30, 700)])
    def test_round_trip(self, px, py):
        """Test that to_pixel inverts to_latent."""
        mapper = CoordinateMapper(600)
        x, y = mapper.to_latent(px, py, 5.0, 1.5)
        assert mapper.to_pixel(x, y, 5.0, 1.5) == pytest.approx((px, py))

    def test_origin_is_center(self):
        mapper = CoordinateMapper(500)
        assert mapper.to_pixel(0.0, 0.0, 3.0, 3.0) == pytest.approx((250.0, 250.0))


class TestInit:
    @pytest.mark.parametrize("size", [0, -10])
    def test_invalid_size(self, size):
        with pytest.raises(ValueError):
            CoordinateMapper(size)
