"""
Utility functions for hue LUT operations (NumPy/Numba CPU implementation)

Provides helpers for LUT sample angles, circular LUT interpolation and
image argument checks.
"""

import logging
import math

import numpy as np
from numba import njit

from colorequal.constants import IMAGE_CHANNELS, LUT_ELEM

logger = logging.getLogger(__name__)


def lut_hues(degrees: bool = False) -> np.ndarray:
    """
    Hue angle of every LUT entry, entry i is (i - 180) degrees.

    Args:
        degrees: Return degrees instead of radians

    Returns:
        Sample angles [LUT_ELEM]
    """
    hues = np.arange(LUT_ELEM, dtype=np.float64) - 180.0
    return hues if degrees else np.deg2rad(hues)


@njit(cache=True, fastmath=True)
def lookup_lut(lut: np.ndarray, hue: float) -> float:
    """
    Circular linear interpolation of a hue LUT.

    The hue is wrapped into [-pi, pi) then interpolated between the two
    nearest integer-degree entries.

    Args:
        lut: Hue LUT [LUT_ELEM], entry i is hue (i - 180) degrees
        hue: Hue angle in radians (any range)

    Returns:
        Interpolated value

    Example:
        >>> lut = np.linspace(0.0, 1.0, 361)
        >>> lookup_lut(lut, 0.0)
        0.5
    """
    two_pi = 2.0 * math.pi
    wrapped = hue + math.pi
    wrapped = wrapped - two_pi * math.floor(wrapped / two_pi)
    x = (LUT_ELEM - 1) * wrapped / two_pi

    x_prev = math.floor(x)
    alpha = x - x_prev
    i0 = int(x_prev) % (LUT_ELEM - 1)
    i1 = i0 + 1
    return lut[i0] + alpha * (lut[i1] - lut[i0])


def check_image(image: np.ndarray) -> np.ndarray:
    """
    Validate an RGBA image argument.

    Args:
        image: Linear RGBA image [H, W, 4]

    Returns:
        The image as a float array (no copy when already float)

    Raises:
        TypeError: If image is not a NumPy array
        ValueError: If the shape is not [H, W, 4] or the image is empty
    """
    if not isinstance(image, np.ndarray):
        raise TypeError(f"image must be a numpy.ndarray, got {type(image).__name__}")

    if image.ndim != 3 or image.shape[2] != IMAGE_CHANNELS:
        raise ValueError(
            f"image must have shape [H, W, {IMAGE_CHANNELS}] (linear RGBA), got {image.shape}. "
            f"Add an alpha channel with np.dstack([rgb, np.ones(rgb.shape[:2])])."
        )

    if image.shape[0] == 0 or image.shape[1] == 0:
        raise ValueError(f"image must not be empty, got shape {image.shape}")

    if not np.issubdtype(image.dtype, np.floating):
        logger.debug("[check_image] Converting %s image to float32", image.dtype)
        return image.astype(np.float32)
    return image
