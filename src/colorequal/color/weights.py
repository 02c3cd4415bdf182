"""
Achromatic weight.

Grey pixels carry no reliable hue, so corrections fade out as a pixel
approaches the achromatic axis. The weight is a logistic of the relative
spread of the (approximately square-rooted) XYZ components.
"""

import math

import numpy as np
from numba import njit, prange

from colorequal.constants import WEIGHT_OFFSET, WEIGHT_STEEPNESS

SPREAD_THRESHOLD = 1.0e-6


@njit(cache=True, fastmath=True)
def _approx_sqrt(value: float) -> float:
    return value / (0.5 + 0.5 * value)


@njit(cache=True, fastmath=True)
def achromatic_weight(X: float, Y: float, Z: float) -> float:
    """
    Weight of one pixel from its XYZ components.

    Returns ~0 for neutral pixels and ~1 for strongly colored ones.
    """
    a = _approx_sqrt(max(X, 0.0))
    b = _approx_sqrt(max(Y, 0.0))
    c = _approx_sqrt(max(Z, 0.0))

    hi = max(a, max(b, c))
    lo = min(a, min(b, c))
    delta = hi - lo

    val = 0.0
    if abs(hi) > SPREAD_THRESHOLD and abs(delta) > SPREAD_THRESHOLD:
        val = delta / hi

    weight = 1.0 / (1.0 + math.exp(-(WEIGHT_STEEPNESS * (2.0 * val - WEIGHT_OFFSET))))
    return max(weight, 0.0)


@njit(parallel=True, fastmath=True, cache=True, nogil=True)
def achromatic_weight_numba(xyz: np.ndarray, out: np.ndarray) -> None:
    """
    Achromatic weights of XYZ pixels.

    Args:
        xyz: XYZ pixels [N, 3]
        out: Output weights [N]
    """
    n = xyz.shape[0]

    for i in prange(n):
        out[i] = achromatic_weight(xyz[i, 0], xyz[i, 1], xyz[i, 2])


def achromatic_weight_map(xyz: np.ndarray) -> np.ndarray:
    """
    Achromatic weights of an XYZ array.

    Args:
        xyz: XYZ values [..., 3]

    Returns:
        Weights in [0, 1] with the leading shape of xyz

    Example:
        >>> achromatic_weight_map(np.array([[0.95047, 1.0, 1.08883]]))  # D65 white
        array([0.0...])
    """
    xyz = np.asarray(xyz, dtype=np.float64)
    flat = np.ascontiguousarray(xyz.reshape(-1, 3))
    out = np.empty(flat.shape[0], dtype=np.float64)
    achromatic_weight_numba(flat, out)
    return out.reshape(xyz.shape[:-1])
