"""Tests for ColorEqualizer (fluent node API with lazy curve compilation)."""

import copy
import logging

import numpy as np
import pytest

from colorequal import ColorEqualizer, EqualizerConfig, GamutCache, RenderMode
from colorequal.color.profiles import WorkingProfile, get_profile
from colorequal.color.ucs import rgb_to_ucs_hsb, ucs_hsb_to_rgb, white_lightness
from colorequal.constants import DEFAULT_WHITE_LEVEL, LUT_ELEM


@pytest.fixture(scope="module")
def srgb():
    """sRGB working profile shared by the module."""
    return WorkingProfile.srgb()


@pytest.fixture
def sample_image():
    """Moderately saturated linear RGBA image."""
    rng = np.random.default_rng(42)
    image = np.ones((16, 16, 4), dtype=np.float64)
    image[..., :3] = rng.uniform(0.2, 0.6, (16, 16, 3))
    return image


def hsb_image(srgb, hue_degrees, saturation, brightness, size=4):
    """Flat RGBA image of one HSB color, plus that color's HSB."""
    white = white_lightness(DEFAULT_WHITE_LEVEL)
    hsb = np.array([np.deg2rad(hue_degrees), saturation, brightness])
    rgb = ucs_hsb_to_rgb(hsb, srgb.output_matrix, white)
    assert rgb.min() > 0.0

    image = np.ones((size, size, 4), dtype=np.float64)
    image[..., :3] = rgb
    return image, hsb


def image_hsb(srgb, image):
    """HSB of the first pixel of an image."""
    return rgb_to_ucs_hsb(image[0, 0, :3], srgb.input_matrix, white_lightness(DEFAULT_WHITE_LEVEL))


class TestColorEqualizer:
    """Test ColorEqualizer construction and node setters."""

    def test_initialization(self):
        """Test ColorEqualizer initialization."""
        eq = ColorEqualizer()

        assert eq.needs_compilation
        assert not eq.is_compiled
        assert eq.profile.name == "linear Rec709 RGB"
        assert eq.is_identity()
        assert len(eq) == 0

    def test_method_chaining(self):
        """Test that methods return self for chaining."""
        eq = ColorEqualizer()
        result = (
            eq.hue("red", 10.0)
            .saturation(1, 1.2)
            .brightness("green", 0.9)
            .smoothing_hue(0.5)
            .white_level(2.0)
            .chroma_size(2.0)
            .param_size(8.0)
            .use_filter(False)
            .hue_shift(5.0)
            .render_mode("normal")
        )

        assert result is eq
        assert len(eq) == 3

    def test_node_names(self):
        """Nodes are addressable by name or index."""
        eq = ColorEqualizer().saturation("cyan", 1.4).saturation(7, 0.6)

        assert eq.get_nodes("saturation") == [1.0, 1.0, 1.0, 1.0, 1.4, 1.0, 1.0, 0.6]

    def test_invalid_node(self):
        """Unknown nodes are rejected."""
        with pytest.raises(ValueError, match="node"):
            ColorEqualizer().saturation("teal", 1.2)

        with pytest.raises(ValueError, match="node"):
            ColorEqualizer().saturation(8, 1.2)

        with pytest.raises(TypeError, match="node"):
            ColorEqualizer().saturation(1.5, 1.2)

    def test_out_of_range(self):
        """Node values outside their range are rejected."""
        with pytest.raises(ValueError, match="saturation"):
            ColorEqualizer().saturation("red", 2.5)

        with pytest.raises(ValueError, match="hue"):
            ColorEqualizer().hue("red", 200.0)

        with pytest.raises(ValueError, match="hue_shift"):
            ColorEqualizer().hue_shift(30.0)

        with pytest.raises(TypeError, match="number"):
            ColorEqualizer().brightness("red", True)

    def test_use_filter_type(self):
        """use_filter only accepts booleans."""
        with pytest.raises(TypeError, match="bool"):
            ColorEqualizer().use_filter(1)

    def test_nodes_bulk(self):
        """All nodes of a channel can be set at once."""
        values = [1.2, 1.0, 0.8, 1.0, 1.0, 1.1, 1.0, 1.0]
        eq = ColorEqualizer().nodes("brightness", values)

        assert eq.get_nodes("brightness") == values

        with pytest.raises(ValueError, match="8 node values"):
            eq.nodes("brightness", [1.0] * 3)

        with pytest.raises(ValueError, match="channel"):
            eq.nodes("chroma", values)

    def test_render_mode(self):
        """Render modes accept enum members or their values."""
        eq = ColorEqualizer().render_mode(RenderMode.WEIGHT)
        assert eq.render_mode("hue") is eq

        with pytest.raises(ValueError, match="mode"):
            eq.render_mode("chroma")

    def test_unknown_profile(self):
        """Unknown profile names raise ValueError."""
        with pytest.raises(ValueError, match="profile"):
            ColorEqualizer(profile="prophoto")


class TestCompilation:
    """Test lazy curve compilation."""

    def test_compile(self):
        """Compilation builds three LUTs and clears the dirty flag."""
        eq = ColorEqualizer().saturation("red", 1.2)
        assert eq.needs_compilation

        eq.compile()
        assert eq.is_compiled

        hue_lut, saturation_lut, brightness_lut = eq.luts
        assert hue_lut.shape == saturation_lut.shape == brightness_lut.shape == (LUT_ELEM,)

        eq.saturation("red", 1.3)
        assert eq.needs_compilation

    def test_compile_is_cached(self):
        """Compiling twice without changes keeps the LUTs."""
        eq = ColorEqualizer().compile()
        luts = eq.luts
        eq.compile()

        assert eq.luts is luts

    def test_global_settings_keep_luts(self):
        """Settings outside the curves do not invalidate them."""
        eq = ColorEqualizer().compile()
        eq.white_level(3.0).chroma_size(2.0).param_size(4.0).use_filter(False)

        assert eq.is_compiled

    def test_saturation_node_in_lut(self):
        """A saturation node shows its gain at its hue."""
        eq = ColorEqualizer().saturation("red", 1.2)
        _, saturation_lut, _ = eq.luts

        # Entry 200 is 20 degrees of hue, the red node
        assert saturation_lut[200] == pytest.approx(1.2, abs=1e-6)

    def test_hue_lut_in_radians(self):
        """Hue offsets are stored in radians."""
        hue_lut = ColorEqualizer().hue("red", 10.0).luts[0]

        assert hue_lut[200] == pytest.approx(np.deg2rad(10.0), abs=1e-6)

    def test_neutral_luts_are_exact(self):
        """Neutral nodes compile to exactly neutral LUTs."""
        hue_lut, saturation_lut, brightness_lut = ColorEqualizer().luts

        assert np.all(hue_lut == 0.0)
        assert np.all(saturation_lut == 1.0)
        assert np.all(brightness_lut == 1.0)

    def test_curve_ignores_hue_shift(self):
        """Display curves are built without the node shift."""
        eq = ColorEqualizer().hue_shift(10.0).hue("red", 10.0)

        assert eq.curve("hue")[200] == pytest.approx(np.deg2rad(10.0), abs=1e-6)
        assert eq.luts[0][210] == pytest.approx(np.deg2rad(10.0), abs=1e-6)

        with pytest.raises(ValueError, match="channel"):
            eq.curve("chroma")

    def test_max_saturation(self):
        """Saturation ceiling is positive, zero for black."""
        eq = ColorEqualizer()
        assert eq.max_saturation(0.5) > 0.0
        assert eq.max_saturation(0.0) == 0.0

        with pytest.raises(ValueError, match="profile"):
            ColorEqualizer(profile=None).max_saturation()


class TestApply:
    """Test applying the equalizer to images."""

    def test_identity(self, sample_image):
        """Neutral nodes leave the image unchanged."""
        eq = ColorEqualizer().use_filter(False)
        np.testing.assert_allclose(eq(sample_image), sample_image, atol=1e-5)

    def test_hue_offset(self, srgb):
        """A hue offset at the red node rotates red pixels by that offset."""
        image, hsb_in = hsb_image(srgb, 20.0, 0.1, 0.5)
        eq = ColorEqualizer(profile=srgb).hue("red", 10.0).use_filter(False)
        hsb_out = image_hsb(srgb, eq(image))

        assert np.angle(np.exp(1j * (hsb_out[0] - hsb_in[0]))) == pytest.approx(np.deg2rad(10.0), abs=1e-3)
        assert hsb_out[1] == pytest.approx(hsb_in[1], abs=1e-4)
        assert hsb_out[2] == pytest.approx(hsb_in[2], abs=1e-4)

    def test_saturation_gain(self, srgb):
        """Saturation gain g scales saturation by 1 + 1.5 (g - 1)."""
        image, hsb_in = hsb_image(srgb, 20.0, 0.1, 0.5)
        eq = ColorEqualizer(profile=srgb).saturation("red", 1.5).use_filter(False)
        hsb_out = image_hsb(srgb, eq(image))

        assert hsb_out[1] == pytest.approx(1.75 * hsb_in[1], rel=1e-3)
        assert hsb_out[0] == pytest.approx(hsb_in[0], abs=1e-4)

    def test_brightness_gain(self, srgb):
        """Brightness gain g scales brightness by 1 + 6 S (g - 1)."""
        image, hsb_in = hsb_image(srgb, 20.0, 0.1, 0.5)
        eq = ColorEqualizer(profile=srgb).brightness("red", 1.2).use_filter(False)
        hsb_out = image_hsb(srgb, eq(image))

        expected = hsb_in[2] * (1.0 + 6.0 * hsb_in[1] * 0.2)
        assert hsb_out[2] == pytest.approx(expected, rel=1e-3)

    def test_other_hues_less_affected(self, srgb):
        """A node change fades out at the opposite side of the hue circle."""
        eq = ColorEqualizer(profile=srgb).saturation("red", 1.5).use_filter(False)

        near, near_in = hsb_image(srgb, 20.0, 0.05, 0.5)
        far, far_in = hsb_image(srgb, 200.0, 0.05, 0.5)
        near_gain = image_hsb(srgb, eq(near))[1] / near_in[1]
        far_gain = image_hsb(srgb, eq(far))[1] / far_in[1]

        assert far_gain == pytest.approx(1.0, abs=1e-3)
        assert near_gain > far_gain

    def test_alpha_preserved(self, sample_image):
        """Alpha passes through untouched."""
        sample_image[..., 3] = np.linspace(0.0, 1.0, 256).reshape(16, 16)
        result = ColorEqualizer().saturation("blue", 1.3)(sample_image)

        np.testing.assert_array_equal(result[..., 3], sample_image[..., 3])

    def test_scale_validation(self, sample_image):
        """Scale must be positive."""
        with pytest.raises(ValueError, match="scale"):
            ColorEqualizer().apply(sample_image, 0.0)

    def test_no_profile(self, sample_image, caplog):
        """Without a profile images pass through with a warning."""
        eq = ColorEqualizer(profile=None).saturation("red", 1.5)
        with caplog.at_level(logging.WARNING):
            result = eq(sample_image)

        np.testing.assert_array_equal(result, sample_image)
        assert "No working profile" in caplog.text

    def test_set_profile(self, sample_image):
        """Profiles can be swapped by name."""
        eq = ColorEqualizer().set_profile("rec2020").use_filter(False)

        assert eq.profile.name == "linear Rec2020 RGB"
        np.testing.assert_allclose(eq(sample_image), sample_image, atol=1e-5)

    def test_mask_mode(self, sample_image):
        """Mask modes render non-negative RGBA."""
        result = ColorEqualizer().hue("red", 20.0).render_mode("hue")(sample_image)

        assert result.shape == sample_image.shape
        assert result[..., :3].min() >= 0.0


class TestWhiteLevel:
    """Test white level picking."""

    def test_from_white(self):
        """RGB white has luminance 1, i.e. 0 EV."""
        eq = ColorEqualizer().white_level_from_rgb([1.0, 1.0, 1.0])
        assert eq.to_config().white_level == pytest.approx(0.0, abs=1e-4)

    def test_from_patch(self):
        """Patches are averaged."""
        patch = np.full((3, 3, 3), 4.0)
        eq = ColorEqualizer().white_level_from_rgb(patch)
        assert eq.to_config().white_level == pytest.approx(2.0, abs=1e-4)

    def test_clipped_to_range(self):
        """Very dark picks are clipped to the valid range."""
        eq = ColorEqualizer().white_level_from_rgb([1e-6, 1e-6, 1e-6])
        assert eq.to_config().white_level == -2.0

    def test_errors(self):
        """Black picks or missing profiles are rejected."""
        with pytest.raises(ValueError, match="luminance"):
            ColorEqualizer().white_level_from_rgb([0.0, 0.0, 0.0])

        with pytest.raises(ValueError, match="profile"):
            ColorEqualizer(profile=None).white_level_from_rgb([1.0, 1.0, 1.0])


class TestConfigAndCopy:
    """Test configuration export, reset and copies."""

    def test_config_round_trip(self):
        """to_config and from_config preserve every parameter."""
        eq = ColorEqualizer().hue("blue", -12.0).saturation("red", 1.2).smoothing_hue(0.4).use_filter(False)
        config = eq.to_config()
        restored = ColorEqualizer.from_config(config)

        assert restored.to_config() == config
        assert isinstance(config, EqualizerConfig)

    def test_from_config_type(self):
        """from_config requires an EqualizerConfig."""
        with pytest.raises(TypeError, match="EqualizerConfig"):
            ColorEqualizer.from_config({"use_filter": False})

    def test_reset(self):
        """Reset restores defaults and keeps the profile."""
        eq = ColorEqualizer(profile="display_p3").saturation("red", 1.5).hue_shift(5.0)
        eq.reset()

        assert eq.is_identity()
        assert eq.to_config() == EqualizerConfig()
        assert eq.profile.name == "linear Display P3 RGB"

    def test_copy_independent(self):
        """Copies do not share node values."""
        eq = ColorEqualizer().saturation("red", 1.2)
        other = eq.copy().saturation("red", 1.5)

        assert eq.get_nodes("saturation")[0] == 1.2
        assert other.get_nodes("saturation")[0] == 1.5

    def test_deepcopy_shares_luts(self):
        """Compiled LUTs are shared between copies."""
        eq = ColorEqualizer().saturation("red", 1.2).compile()
        other = copy.deepcopy(eq)

        assert other.is_compiled
        assert other.luts is eq.luts
        assert other.gamut_cache is eq.gamut_cache
        assert copy.copy(eq).profile is eq.profile

    def test_repr(self):
        """Test string representation."""
        eq = ColorEqualizer().saturation("red", 1.2)

        assert repr(eq) == "ColorEqualizer(sat.red=1.20) [not compiled]"
        assert repr(ColorEqualizer().compile()) == "ColorEqualizer(neutral) [compiled]"


class TestGamutCacheOwnership:
    """Test the gamut LUT cache owned by an equalizer."""

    def test_equalizers_do_not_rebuild(self, sample_image):
        """Equalizers applied in turn keep their gamut LUTs."""
        first = ColorEqualizer().use_filter(False)
        second = ColorEqualizer().saturation("red", 1.2).use_filter(False)

        for _ in range(3):
            first(sample_image)
            second(sample_image)

        assert first.gamut_cache.builds == 1
        assert second.gamut_cache.builds == 1

    def test_shared_cache(self, sample_image):
        """Equalizers given one cache share a single gamut LUT build."""
        cache = GamutCache()
        first = ColorEqualizer(gamut_cache=cache).use_filter(False)
        second = ColorEqualizer.from_config(EqualizerConfig(use_filter=False), gamut_cache=cache)

        for _ in range(3):
            first(sample_image)
            second(sample_image)

        assert first.gamut_cache is cache
        assert cache.builds == 1

    def test_builtin_profiles_are_shared(self):
        """Profiles picked by name are the same object."""
        assert ColorEqualizer().profile is ColorEqualizer().profile
        assert ColorEqualizer("rec2020").profile is get_profile("rec2020")
