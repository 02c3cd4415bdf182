"""
Periodic radial-basis-function interpolation of hue nodes.

Turns the 8 per-channel node values into a smooth, periodic function of hue
and samples it into a 361-entry LUT. The kernel is a truncated cosine series
of the angular distance, so the interpolant wraps continuously across
+-180 degrees by construction.

Theory: https://eng.aurelienpierre.com/2022/06/interpolating-hue-angles/
"""

from __future__ import annotations

import logging
import math

import numpy as np
from scipy.linalg import cho_factor, cho_solve

from colorequal.constants import ANGLE_SHIFT, NODES
from colorequal.utils import lut_hues

logger = logging.getLogger(__name__)


def hue_node_angles(hue_shift: float = 0.0) -> np.ndarray:
    """
    Angular positions of the 8 nodes in radians, including the red reference offset.

    Args:
        hue_shift: Node placement shift in degrees

    Returns:
        Node angles [NODES]

    Example:
        >>> np.rad2deg(hue_node_angles())[:3]
        array([20., 65., 110.])
    """
    degrees = np.arange(NODES, dtype=np.float64) * 360.0 / NODES + hue_shift + ANGLE_SHIFT
    return np.deg2rad(degrees)


def series_length(smoothing: float) -> int:
    """Number of cosine terms kept for a smoothing value."""
    return int(math.ceil(3.0 * math.sqrt(smoothing)))


def periodic_kernel(angles_a: np.ndarray, angles_b: np.ndarray, smoothing: float) -> np.ndarray:
    """
    Evaluate the periodic kernel between two sets of angles.

    k(a, b) = exp(sum_l exp(-l^2 / smoothing) * cos(l * |a - b|))

    Args:
        angles_a: Angles in radians [N]
        angles_b: Angles in radians [K]
        smoothing: Inverse sharpness of the kernel (> 0)

    Returns:
        Kernel matrix [N, K]
    """
    m = series_length(smoothing)
    orders = np.arange(m, dtype=np.float64)
    coeffs = np.exp(-orders * orders / smoothing)

    distance = np.abs(np.asarray(angles_a)[:, np.newaxis] - np.asarray(angles_b)[np.newaxis, :])
    series = np.cos(distance[..., np.newaxis] * orders) @ coeffs
    return np.exp(series)


class NodeInterpolator:
    """
    Exact periodic interpolant through the 8 hue nodes of one channel.

    The kernel matrix is symmetric positive definite for distinct node
    angles, so the coefficients come from a Cholesky solve. A failed
    factorization means the node layout itself is invalid and the
    scipy.linalg.LinAlgError is left to propagate.

    Flat node sets (all values equal) evaluate to that constant everywhere,
    so neutral channels leave pixels untouched.

    Example:
        >>> values = [1.2, 1.0, 1.0, 1.0, 1.0, 1.0, 1.0, 1.0]
        >>> interp = NodeInterpolator(values, smoothing=np.pi)
        >>> lut = interp.to_lut(clip=True)
        >>> lut.shape
        (361,)
    """

    __slots__ = ("values", "smoothing", "hue_shift", "angles", "coefficients", "is_flat")

    def __init__(self, values, smoothing: float, hue_shift: float = 0.0):
        """
        Solve the interpolation system.

        Args:
            values: Node values, one per octant [NODES]
            smoothing: Inverse sharpness of the kernel (> 0)
            hue_shift: Node placement shift in degrees

        Raises:
            ValueError: If values does not hold NODES finite numbers or smoothing <= 0
        """
        values = np.asarray(values, dtype=np.float64)
        if values.shape != (NODES,):
            raise ValueError(f"Expected {NODES} node values, got shape {values.shape}")
        if not np.all(np.isfinite(values)):
            raise ValueError(f"Node values must be finite, got {values.tolist()}")
        if not smoothing > 0.0:
            raise ValueError(f"smoothing={smoothing} must be positive (> 0).")

        self.values = values
        self.smoothing = float(smoothing)
        self.hue_shift = float(hue_shift)
        self.angles = hue_node_angles(hue_shift)
        self.is_flat = bool(np.all(values == values[0]))

        kernel = periodic_kernel(self.angles, self.angles, self.smoothing)
        self.coefficients = cho_solve(cho_factor(kernel), values)

        logger.debug(
            "[NodeInterpolator] Solved %d nodes with smoothing=%.3f (%d cosine terms)",
            NODES,
            self.smoothing,
            series_length(self.smoothing),
        )

    def __call__(self, hues) -> np.ndarray:
        """
        Evaluate the interpolant at arbitrary hue angles.

        Args:
            hues: Hue angles in radians, scalar or 1D

        Returns:
            Interpolated values with the shape of hues
        """
        hues = np.asarray(hues, dtype=np.float64)
        if self.is_flat:
            # A kernel sum is not exactly constant between nodes
            return np.full(hues.shape, self.values[0])
        flat = np.atleast_1d(hues).ravel()
        result = periodic_kernel(flat, self.angles, self.smoothing) @ self.coefficients
        return result.reshape(hues.shape)

    def to_lut(self, clip: bool = False) -> np.ndarray:
        """
        Sample the interpolant at every integer degree of [-180, 180].

        Args:
            clip: Clamp the table to non-negative values (gain channels)

        Returns:
            LUT [LUT_ELEM]
        """
        lut = self(lut_hues())
        if clip:
            np.maximum(lut, 0.0, out=lut)
        return lut

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"NodeInterpolator(values={np.round(self.values, 4).tolist()}, "
            f"smoothing={self.smoothing:.3f}, hue_shift={self.hue_shift:.1f})"
        )


def periodic_rbf_lut(values, smoothing: float, hue_shift: float = 0.0, clip: bool = False) -> np.ndarray:
    """
    Build a hue LUT from 8 node values.

    Args:
        values: Node values [NODES]
        smoothing: Inverse sharpness of the kernel
        hue_shift: Node placement shift in degrees
        clip: Clamp to non-negative values

    Returns:
        LUT [LUT_ELEM], entry i is hue (i - 180) degrees
    """
    return NodeInterpolator(values, smoothing, hue_shift).to_lut(clip=clip)
