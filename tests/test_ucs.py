"""Tests for darktable UCS 22 conversions, working profiles and achromatic weights."""

import numpy as np
import pytest

from colorequal.color.profiles import (
    D50_WHITE,
    D65_WHITE,
    SRGB_TO_XYZ_D65,
    WorkingProfile,
    cat16_adaptation,
    get_profile,
)
from colorequal.color.ucs import (
    rgb_to_ucs_hsb,
    rgb_to_xyz,
    ucs_hsb_to_jch,
    ucs_hsb_to_rgb,
    ucs_jch_to_hsb,
    ucs_lightness_to_y,
    ucs_uv_to_xy,
    white_lightness,
    xyY_to_ucs_uv,
    xyz_to_xyY,
    y_to_ucs_lightness,
)
from colorequal.color.weights import achromatic_weight, achromatic_weight_map


@pytest.fixture
def srgb():
    """sRGB working profile."""
    return WorkingProfile.srgb()


@pytest.fixture
def moderate_rgb():
    """Moderately saturated linear RGB colors."""
    rng = np.random.default_rng(42)
    return rng.uniform(0.05, 0.9, (256, 3))


class TestChromaticity:
    """Test xy <-> UV' conversions."""

    def test_white_at_origin(self):
        """D65 white maps to the UV' origin."""
        u, v = xyY_to_ucs_uv(0.3127, 0.3290)

        assert u == pytest.approx(0.0, abs=1e-5)
        assert v == pytest.approx(0.0, abs=1e-5)

    @pytest.mark.parametrize("xy", [(0.64, 0.33), (0.30, 0.60), (0.15, 0.06), (0.25, 0.40), (0.45, 0.41)])
    def test_uv_round_trip(self, xy):
        """xy -> UV' -> xy recovers the chromaticity."""
        u, v = xyY_to_ucs_uv(*xy)
        x, y = ucs_uv_to_xy(u, v)

        assert x == pytest.approx(xy[0], abs=1e-7)
        assert y == pytest.approx(xy[1], abs=1e-7)

    def test_black_maps_to_white_point(self):
        """Zero XYZ gets the D65 chromaticity and zero luminance."""
        x, y, Y = xyz_to_xyY(0.0, 0.0, 0.0)

        assert (x, y) == pytest.approx((0.3127, 0.3290), abs=1e-4)
        assert Y == 0.0


class TestLightness:
    """Test the lightness transfer function."""

    @pytest.mark.parametrize("Y", [0.01, 0.18, 0.5, 1.0, 4.0])
    def test_round_trip(self, Y):
        """Y -> L* -> Y recovers the luminance."""
        assert ucs_lightness_to_y(y_to_ucs_lightness(Y)) == pytest.approx(Y, rel=1e-6)

    def test_monotonic(self):
        """Lightness grows with luminance."""
        values = [y_to_ucs_lightness(Y) for Y in np.linspace(0.0, 8.0, 50)]
        assert np.all(np.diff(values) > 0.0)

    def test_white_lightness(self):
        """White lightness of 0 EV is the lightness of Y = 1."""
        assert white_lightness(0.0) == pytest.approx(y_to_ucs_lightness(1.0))
        assert white_lightness(1.0) > white_lightness(0.0)


class TestHSB:
    """Test JCH <-> HSB and full RGB <-> HSB conversions."""

    @pytest.mark.parametrize("jch", [(0.5, 0.1, 0.3), (0.9, 0.4, -2.0), (0.2, 0.0, 1.0)])
    def test_jch_hsb_round_trip(self, jch):
        """JCH -> HSB -> JCH recovers the input."""
        H, S, B = ucs_jch_to_hsb(*jch)
        J, C, H2 = ucs_hsb_to_jch(H, S, B)

        assert (J, C, H2) == pytest.approx(jch, abs=1e-9)

    def test_zero_brightness(self):
        """Black has zero saturation."""
        _, S, B = ucs_jch_to_hsb(0.0, 0.0, 0.0)
        assert S == 0.0
        assert B == 0.0

    def test_rgb_round_trip(self, srgb, moderate_rgb):
        """RGB -> HSB -> RGB recovers the colors."""
        white = white_lightness(1.0)
        hsb = rgb_to_ucs_hsb(moderate_rgb, srgb.input_matrix, white)
        rgb = ucs_hsb_to_rgb(hsb, srgb.output_matrix, white)

        np.testing.assert_allclose(rgb, moderate_rgb, atol=1e-6)

    def test_grey_has_no_saturation(self, srgb):
        """Neutral RGB has (almost) zero saturation."""
        hsb = rgb_to_ucs_hsb(np.array([[0.5, 0.5, 0.5]]), srgb.input_matrix, white_lightness(0.0))
        assert hsb[0, 1] < 1e-3

    def test_red_hue(self, srgb):
        """The sRGB red primary sits near 20 degrees of hue."""
        hsb = rgb_to_ucs_hsb(np.array([1.0, 0.0, 0.0]), srgb.input_matrix, white_lightness(0.0))
        assert abs(np.rad2deg(hsb[0]) - 20.0) < 10.0

    def test_rgba_input(self, srgb):
        """Alpha is ignored and the leading shape is kept."""
        rgba = np.full((4, 5, 4), 0.3)
        hsb = rgb_to_ucs_hsb(rgba, srgb.input_matrix, 1.0)
        assert hsb.shape == (4, 5, 3)


class TestWorkingProfile:
    """Test working profiles."""

    def test_cat16_maps_white(self):
        """CAT16 adaptation maps the source white onto the target white."""
        adapt = cat16_adaptation(D50_WHITE, D65_WHITE)
        np.testing.assert_allclose(adapt @ D50_WHITE, D65_WHITE, atol=1e-9)

    def test_srgb_matrices(self, srgb):
        """D65 matrices are recovered through the D50 connection space."""
        np.testing.assert_allclose(srgb.input_matrix, SRGB_TO_XYZ_D65, atol=1e-9)
        np.testing.assert_allclose(srgb.output_matrix @ srgb.input_matrix, np.eye(3), atol=1e-12)

    def test_luminance(self, srgb):
        """RGB white has unit luminance."""
        assert float(srgb.luminance([1.0, 1.0, 1.0])) == pytest.approx(1.0, abs=1e-4)

    def test_identity_equality(self):
        """Profiles compare by identity."""
        assert WorkingProfile.srgb() != WorkingProfile.srgb()

    @pytest.mark.parametrize("name", ["srgb", "rec2020", "display_p3"])
    def test_builtin_profiles(self, name):
        """Built-in profiles are available by name."""
        profile = get_profile(name)
        assert profile.output_matrix.shape == (3, 3)
        assert get_profile(name) is profile

    def test_unknown_profile(self):
        """Unknown profile names raise ValueError."""
        with pytest.raises(ValueError, match="profile"):
            get_profile("adobe_rgb")

    def test_invalid_matrix(self):
        """Singular or misshaped matrices are rejected."""
        with pytest.raises(ValueError, match="singular"):
            WorkingProfile("flat", np.zeros((3, 3)))

        with pytest.raises(ValueError, match="3x3"):
            WorkingProfile("short", np.eye(2))


class TestAchromaticWeight:
    """Test achromatic weights."""

    def test_white_is_achromatic(self):
        """D65 white gets a weight near 0."""
        assert achromatic_weight(0.95047, 1.0, 1.08883) < 0.01

    def test_black_is_achromatic(self):
        """Black gets a weight near 0."""
        assert achromatic_weight(0.0, 0.0, 0.0) < 0.01

    def test_saturated_red(self, srgb):
        """A saturated primary gets a weight near 1."""
        X, Y, Z = rgb_to_xyz(np.array([1.0, 0.0, 0.0]), srgb.input_matrix)
        assert achromatic_weight(X, Y, Z) > 0.99

    def test_monotonic(self):
        """Weight grows with the spread of the XYZ components."""
        t = np.linspace(0.0, 0.99, 64)
        xyz = np.stack([np.ones_like(t), np.ones_like(t), 1.0 - t], axis=-1)
        weights = achromatic_weight_map(xyz)

        assert np.all(np.diff(weights) >= 0.0)

    def test_bounded(self):
        """Weights stay in [0, 1], negative components included."""
        rng = np.random.default_rng(0)
        xyz = rng.uniform(-1.0, 5.0, (32, 32, 3))
        weights = achromatic_weight_map(xyz)

        assert weights.shape == (32, 32)
        assert np.all((weights >= 0.0) & (weights <= 1.0))
