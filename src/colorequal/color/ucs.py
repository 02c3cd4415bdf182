"""
darktable UCS 22 color space conversions.

Scalar kernels are JIT-compiled so the per-pixel pipeline kernels can call
them directly; the array helpers at the bottom run the same chain over whole
images with prange.

Chain:
    RGB -> XYZ D65 -> xyY -> UV (compressed chromaticity) + L* (lightness)
        -> JCH (lightness ratio, chroma, hue) -> HSB (hue, saturation, brightness)

Reference: Aurélien Pierre, "darktable UCS 22", 2022
https://eng.aurelienpierre.com/2022/02/color-saturation-control-for-the-21th-century/
"""

import math

import numpy as np
from numba import njit, prange

# ============================================================================
# Model Constants
# ============================================================================

# D65 white chromaticity, returned for black pixels
D65_X = 0.3127
D65_Y = 0.3290

# xy -> UVD projective transform, applied to [x, y, 1]
XY_TO_UVD = np.array(
    [
        [-0.783941002840055, 0.277512987809202, 0.153836578598858],
        [0.745273540913283, -0.205375866083878, -0.165478376301988],
        [0.318707282433486, 2.16743692732158, 0.291320554395942],
    ],
    dtype=np.float64,
)
UVD_TO_XY = np.linalg.inv(XY_TO_UVD)

# Non-linear compression of U and V
UV_FACTOR = np.array([1.39656225667, 1.4513954287], dtype=np.float64)
UV_HALF = np.array([1.49217352929, 1.52488637914], dtype=np.float64)

# Compressed UV -> UV' rotation
UV_STAR_TO_PRIME = np.array(
    [
        [-1.124983854323892, -0.980483721769325],
        [1.86323315098672, 1.971853092390862],
    ],
    dtype=np.float64,
)
UV_PRIME_TO_STAR = np.linalg.inv(UV_STAR_TO_PRIME)

# Lightness
L_SCALE = 2.098883786377
L_EXPONENT = 0.631651345306265
L_OFFSET = 1.12426773749357
L_INV_EXPONENT = 1.0 / L_EXPONENT

# Chroma
C_SCALE = 15.932993652962535
C_L_EXPONENT = 0.6523997524738018
C_M2_EXPONENT = 0.6007557017508491  # Applied to M^2, i.e. M^1.2015114034404
C_M_INV_EXPONENT = 0.8322850678616855  # 1 / 1.2015114034404

# Brightness
B_EXPONENT = 1.33654221029386


# ============================================================================
# Scalar Kernels
# ============================================================================


@njit(cache=True, fastmath=True)
def xyz_to_xyY(X: float, Y: float, Z: float) -> tuple[float, float, float]:
    """XYZ to xyY, negative components clamped, black maps to the D65 chromaticity."""
    X = max(X, 0.0)
    Y = max(Y, 0.0)
    Z = max(Z, 0.0)
    total = X + Y + Z
    if total > 0.0:
        return X / total, Y / total, Y
    return D65_X, D65_Y, Y


@njit(cache=True, fastmath=True)
def xyY_to_xyz(x: float, y: float, Y: float) -> tuple[float, float, float]:
    """xyY to XYZ, degenerate y maps to black."""
    if y <= 0.0:
        return 0.0, 0.0, 0.0
    scale = Y / y
    return x * scale, Y, (1.0 - x - y) * scale


@njit(cache=True, fastmath=True)
def xyY_to_ucs_uv(x: float, y: float) -> tuple[float, float]:
    """
    Chromaticity xy to UCS UV' (white at the origin).

    Args:
        x: CIE x chromaticity
        y: CIE y chromaticity

    Returns:
        (U', V') chromaticity
    """
    u = XY_TO_UVD[0, 0] * x + XY_TO_UVD[0, 1] * y + XY_TO_UVD[0, 2]
    v = XY_TO_UVD[1, 0] * x + XY_TO_UVD[1, 1] * y + XY_TO_UVD[1, 2]
    d = XY_TO_UVD[2, 0] * x + XY_TO_UVD[2, 1] * y + XY_TO_UVD[2, 2]
    u /= d
    v /= d

    u_star = UV_FACTOR[0] * u / (abs(u) + UV_HALF[0])
    v_star = UV_FACTOR[1] * v / (abs(v) + UV_HALF[1])

    u_prime = UV_STAR_TO_PRIME[0, 0] * u_star + UV_STAR_TO_PRIME[0, 1] * v_star
    v_prime = UV_STAR_TO_PRIME[1, 0] * u_star + UV_STAR_TO_PRIME[1, 1] * v_star
    return u_prime, v_prime


@njit(cache=True, fastmath=True)
def ucs_uv_to_xy(u_prime: float, v_prime: float) -> tuple[float, float]:
    """
    UCS UV' back to chromaticity xy.

    Only defined while the compressed coordinates stay below their asymptote
    (|U*| < 1.3966, |V*| < 1.4514), which holds for every color inside a
    physical gamut.
    """
    u_star = UV_PRIME_TO_STAR[0, 0] * u_prime + UV_PRIME_TO_STAR[0, 1] * v_prime
    v_star = UV_PRIME_TO_STAR[1, 0] * u_prime + UV_PRIME_TO_STAR[1, 1] * v_prime

    u = -UV_HALF[0] * u_star / (abs(u_star) - UV_FACTOR[0])
    v = -UV_HALF[1] * v_star / (abs(v_star) - UV_FACTOR[1])

    r0 = UVD_TO_XY[0, 0] * u + UVD_TO_XY[0, 1] * v + UVD_TO_XY[0, 2]
    r1 = UVD_TO_XY[1, 0] * u + UVD_TO_XY[1, 1] * v + UVD_TO_XY[1, 2]
    r2 = UVD_TO_XY[2, 0] * u + UVD_TO_XY[2, 1] * v + UVD_TO_XY[2, 2]
    return r0 / r2, r1 / r2


@njit(cache=True, fastmath=True)
def y_to_ucs_lightness(Y: float) -> float:
    """Luminance Y to UCS lightness L*."""
    y_hat = math.pow(max(Y, 0.0), L_EXPONENT)
    return L_SCALE * y_hat / (y_hat + L_OFFSET)


@njit(cache=True, fastmath=True)
def ucs_lightness_to_y(L: float) -> float:
    """UCS lightness L* back to luminance Y."""
    return math.pow(L_OFFSET * L / (L_SCALE - L), L_INV_EXPONENT)


@njit(cache=True, fastmath=True)
def ucs_luv_to_jch(
    L: float, u_prime: float, v_prime: float, L_white: float
) -> tuple[float, float, float]:
    """
    Lightness and UV' to JCH relative to the white lightness.

    Args:
        L: UCS lightness L*
        u_prime: U' chromaticity
        v_prime: V' chromaticity
        L_white: Lightness of the scene white

    Returns:
        (J, C, H) with H in radians
    """
    m2 = u_prime * u_prime + v_prime * v_prime
    J = L / L_white
    C = C_SCALE * math.pow(max(L, 0.0), C_L_EXPONENT) * math.pow(m2, C_M2_EXPONENT) / L_white
    H = math.atan2(v_prime, u_prime)
    return J, C, H


@njit(cache=True, fastmath=True)
def ucs_jch_to_luv(J: float, C: float, H: float, L_white: float) -> tuple[float, float, float]:
    """JCH back to (L*, U', V')."""
    L = J * L_white
    if L > 0.0:
        M = math.pow(C * L_white / (C_SCALE * math.pow(L, C_L_EXPONENT)), C_M_INV_EXPONENT)
    else:
        M = 0.0
    return L, M * math.cos(H), M * math.sin(H)


@njit(cache=True, fastmath=True)
def ucs_jch_to_xyY(J: float, C: float, H: float, L_white: float) -> tuple[float, float, float]:
    """JCH back to xyY."""
    L, u_prime, v_prime = ucs_jch_to_luv(J, C, H, L_white)
    x, y = ucs_uv_to_xy(u_prime, v_prime)
    return x, y, ucs_lightness_to_y(L)


@njit(cache=True, fastmath=True)
def ucs_jch_to_hsb(J: float, C: float, H: float) -> tuple[float, float, float]:
    """JCH to (H, S, B); zero brightness gives zero saturation."""
    B = J * (math.pow(C, B_EXPONENT) + 1.0)
    S = C / B if B > 0.0 else 0.0
    return H, S, B


@njit(cache=True, fastmath=True)
def ucs_hsb_to_jch(H: float, S: float, B: float) -> tuple[float, float, float]:
    """(H, S, B) back to JCH."""
    C = S * B
    J = B / (math.pow(C, B_EXPONENT) + 1.0)
    return J, C, H


@njit(cache=True, fastmath=True)
def rgb_to_ucs_luv(
    r: float, g: float, b: float, matrix: np.ndarray
) -> tuple[float, float, float, float, float, float]:
    """
    One RGB pixel to (L*, U', V') plus its XYZ D65 components.

    Args:
        r, g, b: Linear RGB of the working profile
        matrix: RGB -> XYZ D65 matrix [3, 3]

    Returns:
        (L, U', V', X, Y, Z)
    """
    X = matrix[0, 0] * r + matrix[0, 1] * g + matrix[0, 2] * b
    Y = matrix[1, 0] * r + matrix[1, 1] * g + matrix[1, 2] * b
    Z = matrix[2, 0] * r + matrix[2, 1] * g + matrix[2, 2] * b
    x, y, Yl = xyz_to_xyY(X, Y, Z)
    u_prime, v_prime = xyY_to_ucs_uv(x, y)
    return y_to_ucs_lightness(Yl), u_prime, v_prime, X, Y, Z


@njit(cache=True, fastmath=True)
def ucs_hsb_to_rgb_pixel(
    H: float, S: float, B: float, L_white: float, matrix: np.ndarray
) -> tuple[float, float, float]:
    """
    One HSB pixel back to linear RGB.

    Args:
        H, S, B: UCS hue (radians), saturation and brightness
        L_white: Lightness of the scene white
        matrix: XYZ D65 -> RGB matrix [3, 3]

    Returns:
        (r, g, b)
    """
    J, C, Hj = ucs_hsb_to_jch(H, S, B)
    x, y, Y = ucs_jch_to_xyY(J, C, Hj, L_white)
    X, Y, Z = xyY_to_xyz(x, y, Y)
    r = matrix[0, 0] * X + matrix[0, 1] * Y + matrix[0, 2] * Z
    g = matrix[1, 0] * X + matrix[1, 1] * Y + matrix[1, 2] * Z
    b = matrix[2, 0] * X + matrix[2, 1] * Y + matrix[2, 2] * Z
    return r, g, b


# ============================================================================
# Whole-Array Kernels
# ============================================================================


@njit(parallel=True, fastmath=True, cache=True, nogil=True)
def rgb_to_ucs_hsb_numba(rgb: np.ndarray, matrix: np.ndarray, L_white: float, out: np.ndarray) -> None:
    """
    Convert RGB pixels to UCS HSB.

    Args:
        rgb: Linear RGB [N, >=3]
        matrix: RGB -> XYZ D65 matrix [3, 3]
        L_white: Lightness of the scene white
        out: Output HSB [N, 3]
    """
    n = rgb.shape[0]

    for i in prange(n):
        L, u_prime, v_prime, X, Y, Z = rgb_to_ucs_luv(rgb[i, 0], rgb[i, 1], rgb[i, 2], matrix)
        J, C, H = ucs_luv_to_jch(L, u_prime, v_prime, L_white)
        H, S, B = ucs_jch_to_hsb(J, C, H)
        out[i, 0] = H
        out[i, 1] = S
        out[i, 2] = B


@njit(parallel=True, fastmath=True, cache=True, nogil=True)
def ucs_hsb_to_rgb_numba(hsb: np.ndarray, matrix: np.ndarray, L_white: float, out: np.ndarray) -> None:
    """
    Convert UCS HSB pixels back to RGB.

    Args:
        hsb: UCS HSB [N, 3]
        matrix: XYZ D65 -> RGB matrix [3, 3]
        L_white: Lightness of the scene white
        out: Output RGB [N, >=3]
    """
    n = hsb.shape[0]

    for i in prange(n):
        r, g, b = ucs_hsb_to_rgb_pixel(hsb[i, 0], hsb[i, 1], hsb[i, 2], L_white, matrix)
        out[i, 0] = r
        out[i, 1] = g
        out[i, 2] = b


# ============================================================================
# NumPy Helpers
# ============================================================================


def white_lightness(white_level_ev: float) -> float:
    """Lightness of the scene white for an exposure in EV."""
    return float(y_to_ucs_lightness(2.0**white_level_ev))


def rgb_to_xyz(rgb: np.ndarray, matrix: np.ndarray) -> np.ndarray:
    """Linear RGB [..., 3] to XYZ [..., 3] through a 3x3 matrix."""
    return np.asarray(rgb, dtype=np.float64)[..., :3] @ np.asarray(matrix, dtype=np.float64).T


def rgb_to_ucs_hsb(rgb: np.ndarray, input_matrix: np.ndarray, L_white: float) -> np.ndarray:
    """
    Convert an RGB(A) array to UCS HSB.

    Args:
        rgb: Linear RGB [..., 3] or RGBA [..., 4] (alpha ignored)
        input_matrix: RGB -> XYZ D65 matrix [3, 3]
        L_white: Lightness of the scene white

    Returns:
        HSB [..., 3] as float64

    Example:
        >>> profile = WorkingProfile.srgb()
        >>> hsb = rgb_to_ucs_hsb(np.array([[0.5, 0.2, 0.1]]), profile.input_matrix, 1.0)
    """
    rgb = np.asarray(rgb, dtype=np.float64)
    flat = np.ascontiguousarray(rgb.reshape(-1, rgb.shape[-1]))
    out = np.empty((flat.shape[0], 3), dtype=np.float64)
    rgb_to_ucs_hsb_numba(flat, np.ascontiguousarray(input_matrix, dtype=np.float64), L_white, out)
    return out.reshape(rgb.shape[:-1] + (3,))


def ucs_hsb_to_rgb(hsb: np.ndarray, output_matrix: np.ndarray, L_white: float) -> np.ndarray:
    """
    Convert UCS HSB back to linear RGB.

    Args:
        hsb: HSB [..., 3]
        output_matrix: XYZ D65 -> RGB matrix [3, 3]
        L_white: Lightness of the scene white

    Returns:
        RGB [..., 3] as float64
    """
    hsb = np.asarray(hsb, dtype=np.float64)
    flat = np.ascontiguousarray(hsb.reshape(-1, 3))
    out = np.empty((flat.shape[0], 3), dtype=np.float64)
    ucs_hsb_to_rgb_numba(flat, np.ascontiguousarray(output_matrix, dtype=np.float64), L_white, out)
    return out.reshape(hsb.shape[:-1] + (3,))
