"""
Gamut boundary of a working profile in UCS 22.

The gamut LUT stores, for every integer degree of hue in [-180, 180], the
largest UV' radius whose chromaticity is still reproducible by the profile
(all RGB components >= 0). Gamut mapping starts from that radius at the
pixel's own lightness and refines the chroma limit against the RGB of
the profile, so reproducible colors are never altered.
"""

from __future__ import annotations

import logging
import math
import threading

import numpy as np
from numba import njit, prange

from colorequal.color.profiles import WorkingProfile
from colorequal.color.ucs import (
    B_EXPONENT,
    C_L_EXPONENT,
    C_M2_EXPONENT,
    C_SCALE,
    L_SCALE,
    UV_FACTOR,
    UV_HALF,
    UV_PRIME_TO_STAR,
    UVD_TO_XY,
    ucs_hsb_to_jch,
    ucs_jch_to_hsb,
    ucs_jch_to_luv,
    ucs_lightness_to_y,
    ucs_uv_to_xy,
    xyY_to_xyz,
)
from colorequal.constants import LUT_ELEM
from colorequal.utils import lookup_lut, lut_hues

logger = logging.getLogger(__name__)

# Bisection setup for the boundary search
MAX_RADIUS = 8.0
BISECTION_STEPS = 60
CLIP_STEPS = 40

# Relative rounding allowance of the reproducibility test
GAMUT_TOLERANCE = 1.0e-9


# ============================================================================
# LUT Construction
# ============================================================================


def _uv_to_xy_checked(u_prime: np.ndarray, v_prime: np.ndarray) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Vectorized UV' -> xy returning a validity mask.

    Points beyond the compression asymptote or projecting behind the
    chromaticity plane are flagged invalid.
    """
    u_star = UV_PRIME_TO_STAR[0, 0] * u_prime + UV_PRIME_TO_STAR[0, 1] * v_prime
    v_star = UV_PRIME_TO_STAR[1, 0] * u_prime + UV_PRIME_TO_STAR[1, 1] * v_prime
    valid = (np.abs(u_star) < UV_FACTOR[0]) & (np.abs(v_star) < UV_FACTOR[1])

    with np.errstate(divide="ignore", invalid="ignore"):
        u = -UV_HALF[0] * u_star / (np.abs(u_star) - UV_FACTOR[0])
        v = -UV_HALF[1] * v_star / (np.abs(v_star) - UV_FACTOR[1])

        r0 = UVD_TO_XY[0, 0] * u + UVD_TO_XY[0, 1] * v + UVD_TO_XY[0, 2]
        r1 = UVD_TO_XY[1, 0] * u + UVD_TO_XY[1, 1] * v + UVD_TO_XY[1, 2]
        r2 = UVD_TO_XY[2, 0] * u + UVD_TO_XY[2, 1] * v + UVD_TO_XY[2, 2]
        x = r0 / r2
        y = r1 / r2

    valid &= np.isfinite(x) & np.isfinite(y) & (y > 0.0)
    return x, y, valid


def _in_gamut(radius: np.ndarray, hues: np.ndarray, output_matrix: np.ndarray) -> np.ndarray:
    """Whether the UV' point at (radius, hue) maps to non-negative RGB at Y = 1."""
    x, y, valid = _uv_to_xy_checked(radius * np.cos(hues), radius * np.sin(hues))
    y_safe = np.where(valid, y, 1.0)
    xyz = np.stack([x / y_safe, np.ones_like(x), (1.0 - x - y) / y_safe], axis=-1)
    rgb = xyz @ output_matrix.T
    return valid & (rgb.min(axis=-1) >= 0.0)


def build_gamut_lut(input_matrix: np.ndarray) -> np.ndarray:
    """
    Build the gamut LUT of an RGB -> XYZ D65 matrix.

    Searches the boundary radius along one UV' ray per LUT entry by
    bisection, all hues at once.

    Args:
        input_matrix: RGB -> XYZ D65 matrix [3, 3]

    Returns:
        Maximum UV' radius per hue [LUT_ELEM]

    Example:
        >>> lut = build_gamut_lut(WorkingProfile.srgb().input_matrix)
        >>> lut.shape
        (361,)
    """
    input_matrix = np.asarray(input_matrix, dtype=np.float64)
    if input_matrix.shape != (3, 3):
        raise ValueError(f"input_matrix must be 3x3, got shape {input_matrix.shape}")
    output_matrix = np.linalg.inv(input_matrix)

    hues = lut_hues()
    low = np.zeros(LUT_ELEM, dtype=np.float64)
    high = np.full(LUT_ELEM, MAX_RADIUS, dtype=np.float64)

    for _ in range(BISECTION_STEPS):
        mid = 0.5 * (low + high)
        inside = _in_gamut(mid, hues, output_matrix)
        low = np.where(inside, mid, low)
        high = np.where(inside, high, mid)

    logger.debug(
        "[GamutLUT] Built boundary, radius range [%.4f, %.4f]",
        float(low.min()),
        float(low.max()),
    )
    return low


# ============================================================================
# Mapping Kernels
# ============================================================================


@njit(cache=True, fastmath=True)
def max_chroma(J: float, radius: float, L_white: float) -> float:
    """Chroma reached by a UV' radius at lightness ratio J."""
    L = J * L_white
    if L <= 0.0:
        return 0.0
    return C_SCALE * math.pow(L, C_L_EXPONENT) * math.pow(radius * radius, C_M2_EXPONENT) / L_white


@njit(cache=True)
def is_reproducible(r: float, g: float, b: float) -> bool:
    """Whether RGB components are finite and non-negative up to rounding."""
    if not (math.isfinite(r) and math.isfinite(g) and math.isfinite(b)):
        return False
    floor = -GAMUT_TOLERANCE * max(max(r, g), max(b, 0.0))
    return r >= floor and g >= floor and b >= floor


@njit(cache=True, fastmath=True)
def _jch_reproducible(J: float, C: float, H: float, L_white: float, matrix: np.ndarray) -> bool:
    """Whether a JCH color converts to valid, non-negative RGB."""
    L, u_prime, v_prime = ucs_jch_to_luv(J, C, H, L_white)
    if L >= L_SCALE:
        return False

    # Beyond the compression asymptote the inverse chromaticity is meaningless
    u_star = UV_PRIME_TO_STAR[0, 0] * u_prime + UV_PRIME_TO_STAR[0, 1] * v_prime
    v_star = UV_PRIME_TO_STAR[1, 0] * u_prime + UV_PRIME_TO_STAR[1, 1] * v_prime
    if abs(u_star) >= UV_FACTOR[0] or abs(v_star) >= UV_FACTOR[1]:
        return False

    x, y = ucs_uv_to_xy(u_prime, v_prime)
    if not y > 0.0:
        return False

    X, Y, Z = xyY_to_xyz(x, y, ucs_lightness_to_y(L))
    r = matrix[0, 0] * X + matrix[0, 1] * Y + matrix[0, 2] * Z
    g = matrix[1, 0] * X + matrix[1, 1] * Y + matrix[1, 2] * Z
    b = matrix[2, 0] * X + matrix[2, 1] * Y + matrix[2, 2] * Z
    return is_reproducible(r, g, b)


@njit(cache=True, fastmath=True)
def gamut_clip_chroma(
    J: float, C: float, H: float, lut: np.ndarray, L_white: float, matrix: np.ndarray
) -> float:
    """
    Largest reproducible chroma not above C at constant J and H.

    The LUT radius gives the first guess; the boundary is then refined by
    bisection against the RGB of the working profile, so reproducible
    colors keep their chroma exactly.

    Args:
        J: Lightness ratio
        C: Requested chroma
        H: Hue in radians
        lut: Gamut LUT [LUT_ELEM]
        L_white: Lightness of the scene white
        matrix: XYZ D65 -> RGB matrix [3, 3]

    Returns:
        Chroma in [0, C]
    """
    if _jch_reproducible(J, C, H, L_white, matrix):
        return C

    low = 0.0
    high = C
    guess = max_chroma(J, lookup_lut(lut, H), L_white)
    if guess < high:
        if _jch_reproducible(J, guess, H, L_white, matrix):
            low = guess
        else:
            high = guess

    for _ in range(CLIP_STEPS):
        mid = 0.5 * (low + high)
        if _jch_reproducible(J, mid, H, L_white, matrix):
            low = mid
        else:
            high = mid
    return low


@njit(cache=True, fastmath=True)
def gamut_map_hsb_pixel(
    H: float, S: float, B: float, lut: np.ndarray, L_white: float, matrix: np.ndarray
) -> tuple[float, float, float]:
    """
    Limit the chroma of one HSB pixel to the gamut boundary at its lightness.

    Colors already inside the gamut are returned unchanged.
    """
    J, C, H = ucs_hsb_to_jch(H, S, B)
    C_mapped = gamut_clip_chroma(J, C, H, lut, L_white, matrix)
    if C_mapped == C:
        return H, S, B
    return ucs_jch_to_hsb(J, C_mapped, H)


@njit(parallel=True, fastmath=True, cache=True, nogil=True)
def gamut_map_hsb_numba(
    hsb: np.ndarray, lut: np.ndarray, L_white: float, matrix: np.ndarray, out: np.ndarray
) -> None:
    """
    Gamut-map HSB pixels.

    Args:
        hsb: HSB pixels [N, 3]
        lut: Gamut LUT [LUT_ELEM]
        L_white: Lightness of the scene white
        matrix: XYZ D65 -> RGB matrix [3, 3]
        out: Output HSB [N, 3]
    """
    n = hsb.shape[0]

    for i in prange(n):
        H, S, B = gamut_map_hsb_pixel(hsb[i, 0], hsb[i, 1], hsb[i, 2], lut, L_white, matrix)
        out[i, 0] = H
        out[i, 1] = S
        out[i, 2] = B


def gamut_map_hsb(hsb: np.ndarray, lut: np.ndarray, white: float, output_matrix: np.ndarray) -> np.ndarray:
    """
    Gamut-map an HSB array against a working profile.

    Args:
        hsb: HSB pixels [..., 3]
        lut: Gamut LUT of the profile [LUT_ELEM]
        white: Lightness of the scene white (see ucs.white_lightness)
        output_matrix: XYZ D65 -> RGB matrix of the profile [3, 3]

    Returns:
        Gamut-mapped HSB [..., 3] as float64

    Example:
        >>> profile = WorkingProfile.srgb()
        >>> lut = build_gamut_lut(profile.input_matrix)
        >>> mapped = gamut_map_hsb(hsb, lut, white_lightness(1.0), profile.output_matrix)
    """
    hsb = np.asarray(hsb, dtype=np.float64)
    flat = np.ascontiguousarray(hsb.reshape(-1, 3))
    out = np.empty_like(flat)
    gamut_map_hsb_numba(
        flat,
        np.ascontiguousarray(lut, dtype=np.float64),
        float(white),
        np.ascontiguousarray(output_matrix, dtype=np.float64),
        out,
    )
    return out.reshape(hsb.shape)


def max_saturation(gamut_lut: np.ndarray, brightness: float = 1.0, white: float = 1.0) -> float:
    """
    Smallest gamut-limited saturation over all hues at a given brightness.

    This is the saturation that stays reproducible whatever the hue, used to
    size saturation gradients.

    Args:
        gamut_lut: Gamut LUT [LUT_ELEM]
        brightness: HSB brightness
        white: Lightness of the scene white

    Returns:
        Saturation ceiling
    """
    if brightness <= 0.0:
        return 0.0

    radius = np.asarray(gamut_lut, dtype=np.float64)
    low = np.zeros_like(radius)
    high = np.full_like(radius, 1.0)

    # Grow the bracket until every hue overshoots its boundary
    def overshoot(saturation: np.ndarray) -> np.ndarray:
        chroma = saturation * brightness
        J = brightness / (chroma**B_EXPONENT + 1.0)
        L = J * white
        c_max = C_SCALE * L**C_L_EXPONENT * (radius * radius) ** C_M2_EXPONENT / white
        return chroma > c_max

    while not np.all(overshoot(high)):
        high *= 2.0
        if high.max() > 1.0e6:
            break

    for _ in range(BISECTION_STEPS):
        mid = 0.5 * (low + high)
        over = overshoot(mid)
        high = np.where(over, mid, high)
        low = np.where(over, low, mid)

    return float(low.min())


# ============================================================================
# Cache
# ============================================================================


class GamutCache:
    """
    Gamut LUT cache keyed on working profile identity.

    The LUT is rebuilt only when a different profile object is requested;
    updates are serialized with a lock, lookups of the current LUT are
    read-only.

    Example:
        >>> cache = GamutCache()
        >>> lut = cache.get(WorkingProfile.srgb())
    """

    __slots__ = ("_lock", "_profile", "_lut", "builds")

    def __init__(self):
        self._lock = threading.Lock()
        self._profile: WorkingProfile | None = None
        self._lut: np.ndarray | None = None
        self.builds = 0

    def get(self, profile: WorkingProfile) -> np.ndarray:
        """Return the gamut LUT of a profile, building it on profile change."""
        with self._lock:
            if self._lut is None or profile is not self._profile:
                logger.debug("[GamutCache] Building gamut LUT for %r", profile)
                lut = build_gamut_lut(profile.input_matrix)
                lut.setflags(write=False)
                self._lut = lut
                self._profile = profile
                self.builds += 1
            return self._lut

    def clear(self) -> None:
        """Drop the cached LUT."""
        with self._lock:
            self._profile = None
            self._lut = None

    def __repr__(self) -> str:
        """String representation."""
        return f"GamutCache(profile={self._profile!r}, builds={self.builds})"
