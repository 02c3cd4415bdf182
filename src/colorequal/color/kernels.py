"""
Numba-optimized per-pixel kernels of the equalizer pipeline.

Each kernel is one pass over the flattened image; passes that need
neighborhoods (blurs, guided filters) run between them.
"""

import numpy as np
from numba import njit, prange

from colorequal.color.gamut import gamut_map_hsb_pixel
from colorequal.color.ucs import (
    rgb_to_ucs_luv,
    ucs_hsb_to_rgb_pixel,
    ucs_jch_to_hsb,
    ucs_luv_to_jch,
)
from colorequal.color.weights import achromatic_weight
from colorequal.constants import (
    BRIGHTNESS_STRENGTH,
    MASK_HUE_SCALE,
    SATURATION_STRENGTH,
)
from colorequal.utils import lookup_lut

# Mask kinds understood by render_mask_numba
MASK_HUE = 0
MASK_SATURATION = 1
MASK_BRIGHTNESS = 2
MASK_WEIGHT = 3


# ============================================================================
# Stage 1: RGB -> UV, L, weights
# ============================================================================


@njit(parallel=True, fastmath=True, cache=True, nogil=True)
def rgb_to_luv_weights_numba(
    rgba: np.ndarray,
    matrix: np.ndarray,
    uv_out: np.ndarray,
    lightness_out: np.ndarray,
    weights_out: np.ndarray,
) -> None:
    """
    Convert pixels to UCS chromaticity and lightness, and compute achromatic weights.

    Args:
        rgba: Linear RGBA pixels [N, 4]
        matrix: RGB -> XYZ D65 matrix [3, 3]
        uv_out: UV' chromaticity [N, 2]
        lightness_out: UCS lightness L* [N]
        weights_out: Achromatic weights [N]
    """
    n = rgba.shape[0]

    for i in prange(n):
        L, u_prime, v_prime, X, Y, Z = rgb_to_ucs_luv(rgba[i, 0], rgba[i, 1], rgba[i, 2], matrix)
        uv_out[i, 0] = u_prime
        uv_out[i, 1] = v_prime
        lightness_out[i] = L
        weights_out[i] = achromatic_weight(X, Y, Z)


# ============================================================================
# Stage 2: LUV -> HSB, LUT lookups
# ============================================================================


@njit(parallel=True, fastmath=True, cache=True, nogil=True)
def hsb_corrections_numba(
    uv: np.ndarray,
    lightness: np.ndarray,
    L_white: float,
    hue_lut: np.ndarray,
    saturation_lut: np.ndarray,
    brightness_lut: np.ndarray,
    hsb_out: np.ndarray,
    corrections_out: np.ndarray,
    brightness_out: np.ndarray,
) -> None:
    """
    Finish the conversion to HSB and look up the per-pixel corrections.

    Pixels with zero chroma get neutral corrections (0 hue offset, unit
    saturation gain, no brightness change).

    Args:
        uv: UV' chromaticity [N, 2]
        lightness: UCS lightness L* [N]
        L_white: Lightness of the scene white
        hue_lut: Hue offsets in radians [LUT_ELEM]
        saturation_lut: Saturation gains [LUT_ELEM]
        brightness_lut: Brightness gains [LUT_ELEM]
        hsb_out: HSB [N, 3]
        corrections_out: (hue offset, saturation gain) [N, 2]
        brightness_out: Brightness delta [N]
    """
    n = uv.shape[0]

    for i in prange(n):
        J, C, H = ucs_luv_to_jch(lightness[i], uv[i, 0], uv[i, 1], L_white)
        H, S, B = ucs_jch_to_hsb(J, C, H)
        hsb_out[i, 0] = H
        hsb_out[i, 1] = S
        hsb_out[i, 2] = B

        if C > 0.0:
            corrections_out[i, 0] = lookup_lut(hue_lut, H)
            corrections_out[i, 1] = lookup_lut(saturation_lut, H)
            brightness_out[i] = S * (lookup_lut(brightness_lut, H) - 1.0)
        else:
            corrections_out[i, 0] = 0.0
            corrections_out[i, 1] = 1.0
            brightness_out[i] = 0.0


# ============================================================================
# Stage 3: apply corrections, gamut map, HSB -> RGB
# ============================================================================


@njit(parallel=True, fastmath=True, cache=True, nogil=True)
def apply_corrections_numba(
    hsb: np.ndarray,
    corrections: np.ndarray,
    brightness_delta: np.ndarray,
    gamut_lut: np.ndarray,
    L_white: float,
    matrix: np.ndarray,
    alpha: np.ndarray,
    out: np.ndarray,
) -> None:
    """
    Apply the corrections in HSB and convert back to RGBA.

    Args:
        hsb: HSB [N, 3]
        corrections: (hue offset, saturation gain) [N, 2]
        brightness_delta: Brightness delta [N]
        gamut_lut: Gamut LUT [LUT_ELEM]
        L_white: Lightness of the scene white
        matrix: XYZ D65 -> RGB matrix [3, 3]
        alpha: Input alpha [N]
        out: Output RGBA [N, 4]
    """
    n = hsb.shape[0]

    for i in prange(n):
        H = hsb[i, 0] + corrections[i, 0]
        S = max(0.0, hsb[i, 1] * (1.0 + SATURATION_STRENGTH * (corrections[i, 1] - 1.0)))
        B = max(0.0, hsb[i, 2] * (1.0 + BRIGHTNESS_STRENGTH * brightness_delta[i]))

        H, S, B = gamut_map_hsb_pixel(H, S, B, gamut_lut, L_white, matrix)
        r, g, b = ucs_hsb_to_rgb_pixel(H, S, B, L_white, matrix)

        out[i, 0] = r
        out[i, 1] = g
        out[i, 2] = b
        out[i, 3] = alpha[i]


# ============================================================================
# Diagnostic Masks
# ============================================================================


@njit(parallel=True, fastmath=True, cache=True, nogil=True)
def render_mask_numba(
    hsb: np.ndarray,
    corrections: np.ndarray,
    brightness_delta: np.ndarray,
    weights: np.ndarray,
    kind: int,
    brightness_norm: float,
    alpha: np.ndarray,
    out: np.ndarray,
) -> None:
    """
    Render one correction channel as a signed greyscale mask.

    Positive corrections tint toward red, negative ones toward blue, over a
    grey base given by the normalized brightness.

    Args:
        hsb: HSB [N, 3]
        corrections: (hue offset, saturation gain) [N, 2]
        brightness_delta: Brightness delta [N]
        weights: Achromatic weights [N]
        kind: One of MASK_HUE, MASK_SATURATION, MASK_BRIGHTNESS, MASK_WEIGHT
        brightness_norm: Brightness normalization factor
        alpha: Input alpha [N]
        out: Output RGBA [N, 4]
    """
    n = hsb.shape[0]

    for i in prange(n):
        val = hsb[i, 2] * brightness_norm

        if kind == MASK_BRIGHTNESS:
            corr = BRIGHTNESS_STRENGTH * brightness_delta[i]
        elif kind == MASK_SATURATION:
            corr = corrections[i, 1] - 1.0
        elif kind == MASK_HUE:
            corr = MASK_HUE_SCALE * corrections[i, 0]
        else:
            corr = 0.5 * (weights[i] - 0.5)

        neg = corr < 0.0
        corr = abs(corr)
        if neg:
            out[i, 0] = max(0.0, val - corr)
            out[i, 1] = max(0.0, val - corr)
            out[i, 2] = max(0.0, val)
        else:
            out[i, 0] = max(0.0, val)
            out[i, 1] = max(0.0, val - corr)
            out[i, 2] = max(0.0, val - corr)
        out[i, 3] = alpha[i]
