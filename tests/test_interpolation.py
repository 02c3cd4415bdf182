"""Tests for periodic RBF interpolation of hue nodes."""

import numpy as np
import pytest

from colorequal.constants import LUT_ELEM, NODES
from colorequal.interpolation import (
    NodeInterpolator,
    hue_node_angles,
    periodic_kernel,
    periodic_rbf_lut,
    series_length,
)
from colorequal.utils import lookup_lut


@pytest.fixture
def node_values():
    """Random node values around 1.0."""
    rng = np.random.default_rng(42)
    return rng.uniform(0.5, 1.5, NODES)


class TestNodeAngles:
    """Test node placement."""

    def test_default_placement(self):
        """Red sits at 20 degrees, nodes every 45 degrees."""
        degrees = np.rad2deg(hue_node_angles())
        np.testing.assert_allclose(degrees, 20.0 + 45.0 * np.arange(NODES))

    def test_hue_shift(self):
        """Hue shift moves every node by the same amount."""
        shifted = np.rad2deg(hue_node_angles(12.5))
        np.testing.assert_allclose(shifted, 32.5 + 45.0 * np.arange(NODES))

    def test_series_length(self):
        """Number of cosine terms grows with smoothing."""
        assert series_length(np.pi) == 6
        assert series_length(1.0) == 3
        assert series_length(4.0) > series_length(1.0)


class TestPeriodicKernel:
    """Test the periodic kernel."""

    def test_symmetric(self):
        """Kernel matrix of a set of angles against itself is symmetric."""
        angles = hue_node_angles(5.0)
        kernel = periodic_kernel(angles, angles, np.pi)

        assert kernel.shape == (NODES, NODES)
        np.testing.assert_allclose(kernel, kernel.T)

    def test_periodic(self):
        """Kernel depends on angular distance modulo a full turn."""
        a = np.array([0.3])
        b = np.array([1.1])
        k1 = periodic_kernel(a, b, np.pi)
        k2 = periodic_kernel(a + 2.0 * np.pi, b, np.pi)

        np.testing.assert_allclose(k1, k2, rtol=1e-12)


class TestNodeInterpolator:
    """Test NodeInterpolator."""

    @pytest.mark.parametrize("smoothing", [np.pi, np.pi / 0.5, np.pi / 2.0])
    @pytest.mark.parametrize("hue_shift", [0.0, 7.5, -12.3])
    def test_interpolates_nodes(self, node_values, smoothing, hue_shift):
        """Interpolant passes through every node value."""
        interp = NodeInterpolator(node_values, smoothing, hue_shift)
        result = interp(hue_node_angles(hue_shift))

        np.testing.assert_allclose(result, node_values, atol=1e-6)

    def test_flat_nodes_are_constant(self):
        """Equal node values give exactly that constant everywhere."""
        interp = NodeInterpolator([1.0] * NODES, np.pi)
        lut = interp.to_lut()

        assert interp.is_flat
        assert np.all(lut == 1.0)

    def test_zero_nodes_are_zero(self):
        """Neutral hue offsets produce an exactly zero curve."""
        lut = periodic_rbf_lut(np.zeros(NODES), np.pi)
        assert np.all(lut == 0.0)

    def test_scalar_and_array_input(self, node_values):
        """Evaluation keeps the shape of the input."""
        interp = NodeInterpolator(node_values, np.pi)

        assert np.ndim(interp(0.5)) == 0
        assert interp(np.linspace(-np.pi, np.pi, 7)).shape == (7,)

    def test_wraps_around(self, node_values):
        """LUT ends at -180 and +180 degrees agree."""
        lut = periodic_rbf_lut(node_values, np.pi)

        assert lut.shape == (LUT_ELEM,)
        assert lut[0] == pytest.approx(lut[-1], abs=1e-9)

    def test_clip(self):
        """Clipped LUTs stay non-negative."""
        values = [0.0, 0.0, 2.0, 0.0, 0.0, 2.0, 0.0, 0.0]
        lut = periodic_rbf_lut(values, np.pi / 0.05, clip=True)
        assert lut.min() >= 0.0

    def test_invalid_values(self):
        """Wrong node count or non-finite values are rejected."""
        with pytest.raises(ValueError, match="node values"):
            NodeInterpolator([1.0] * 7, np.pi)

        with pytest.raises(ValueError, match="finite"):
            NodeInterpolator([1.0] * 7 + [np.nan], np.pi)

    def test_invalid_smoothing(self):
        """Non-positive smoothing is rejected."""
        with pytest.raises(ValueError, match="smoothing"):
            NodeInterpolator([1.0] * NODES, 0.0)

    def test_repr(self, node_values):
        """Test string representation."""
        assert "NodeInterpolator" in repr(NodeInterpolator(node_values, np.pi))


class TestHueLut:
    """Test LUT sampling of a saturation curve."""

    def test_red_node_gain(self):
        """A single boosted node shows its gain at its own hue and fades away from it."""
        values = [1.2] + [1.0] * 7
        lut = periodic_rbf_lut(values, np.pi, clip=True)

        # Entry 200 is hue 20 degrees, the red node
        assert lut[200] == pytest.approx(1.2, abs=1e-6)

        # 200 degrees is the opposite node
        opposite = lookup_lut(lut, np.deg2rad(200.0))
        assert abs(opposite - 1.0) < abs(opposite - 1.2)

    def test_matches_interpolator(self, node_values):
        """LUT entries equal the interpolant at integer degrees."""
        interp = NodeInterpolator(node_values, np.pi, 3.0)
        lut = periodic_rbf_lut(node_values, np.pi, 3.0)
        hues = np.deg2rad(np.array([-180.0, -45.0, 0.0, 91.0, 180.0]))

        result = np.array([lookup_lut(lut, h) for h in hues])
        np.testing.assert_allclose(result, interp(hues), atol=1e-9)
