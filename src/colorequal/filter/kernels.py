"""
Numba-optimized kernels for guided filtering.

Provides JIT-compiled kernels for resampling and for the per-pixel steps of
the 2-channel guided filter. Blurs happen between these kernels.
"""

import math

import numpy as np
from numba import njit, prange


@njit(parallel=True, fastmath=True, cache=True, nogil=True)
def bilinear_resample_numba(src: np.ndarray, out: np.ndarray) -> None:
    """
    Resample an image with bilinear interpolation, pixel centers aligned.

    Args:
        src: Source image [H, W, C]
        out: Output image [h, w, C] (modified in-place)
    """
    in_h = src.shape[0]
    in_w = src.shape[1]
    out_h = out.shape[0]
    out_w = out.shape[1]
    channels = src.shape[2]

    scale_y = in_h / out_h
    scale_x = in_w / out_w

    for i in prange(out_h):
        fy = min(max((i + 0.5) * scale_y - 0.5, 0.0), in_h - 1.0)
        y0 = int(math.floor(fy))
        y1 = min(y0 + 1, in_h - 1)
        wy = fy - y0

        for j in range(out_w):
            fx = min(max((j + 0.5) * scale_x - 0.5, 0.0), in_w - 1.0)
            x0 = int(math.floor(fx))
            x1 = min(x0 + 1, in_w - 1)
            wx = fx - x0

            for c in range(channels):
                top = src[y0, x0, c] + wx * (src[y0, x1, c] - src[y0, x0, c])
                bottom = src[y1, x0, c] + wx * (src[y1, x1, c] - src[y1, x0, c])
                out[i, j, c] = top + wy * (bottom - top)


@njit(parallel=True, fastmath=True, cache=True, nogil=True)
def guide_products_numba(
    guide: np.ndarray,
    target: np.ndarray,
    guide_out: np.ndarray,
    cross_out: np.ndarray,
) -> None:
    """
    Pointwise products to be averaged into covariances.

    Args:
        guide: Guide UV [N, 2]
        target: Filtered signal [N, C]
        guide_out: Guide products (UU, UV, VV) [N, 3]
        cross_out: Target x guide products [N, C, 2]
    """
    n = guide.shape[0]
    channels = target.shape[1]

    for i in prange(n):
        u = guide[i, 0]
        v = guide[i, 1]
        guide_out[i, 0] = u * u
        guide_out[i, 1] = u * v
        guide_out[i, 2] = v * v
        for c in range(channels):
            cross_out[i, c, 0] = target[i, c] * u
            cross_out[i, c, 1] = target[i, c] * v


@njit(parallel=True, fastmath=True, cache=True, nogil=True)
def guided_coefficients_numba(
    mean_guide: np.ndarray,
    mean_guide_products: np.ndarray,
    mean_target: np.ndarray,
    mean_cross: np.ndarray,
    epsilon: float,
    det_guard: float,
    det_floor: float,
    use_floor: bool,
    a_out: np.ndarray,
    b_out: np.ndarray,
) -> None:
    """
    Local linear coefficients target ~ a . UV + b.

    The regularized covariance Sigma + epsilon * I is inverted in closed
    form. Where the determinant is not above det_guard the slopes are zero
    and the fit falls back to the local mean.

    Args:
        mean_guide: Local means of U, V [N, 2]
        mean_guide_products: Local means of UU, UV, VV [N, 3]
        mean_target: Local means of the target [N, C]
        mean_cross: Local means of target x (U, V) [N, C, 2]
        epsilon: Regularization added to the covariance diagonal
        det_guard: Smallest determinant magnitude considered invertible
        det_floor: Lower clamp of the determinant when use_floor is set
        use_floor: Clamp the determinant to det_floor before inversion
        a_out: Output slopes [N, C, 2]
        b_out: Output offsets [N, C]
    """
    n = mean_guide.shape[0]
    channels = mean_target.shape[1]

    for i in prange(n):
        mu = mean_guide[i, 0]
        mv = mean_guide[i, 1]

        s00 = mean_guide_products[i, 0] - mu * mu + epsilon
        s01 = mean_guide_products[i, 1] - mu * mv
        s11 = mean_guide_products[i, 2] - mv * mv + epsilon

        det = s00 * s11 - s01 * s01
        if use_floor:
            det = max(det, det_floor)

        invertible = abs(det) > det_guard
        inv00 = 0.0
        inv01 = 0.0
        inv11 = 0.0
        if invertible:
            inv00 = s11 / det
            inv01 = -s01 / det
            inv11 = s00 / det

        for c in range(channels):
            mt = mean_target[i, c]
            a0 = 0.0
            a1 = 0.0
            if invertible:
                cov_u = mean_cross[i, c, 0] - mt * mu
                cov_v = mean_cross[i, c, 1] - mt * mv
                a0 = cov_u * inv00 + cov_v * inv01
                a1 = cov_u * inv01 + cov_v * inv11
            a_out[i, c, 0] = a0
            a_out[i, c, 1] = a1
            b_out[i, c] = mt - a0 * mu - a1 * mv


@njit(parallel=True, fastmath=True, cache=True, nogil=True)
def guided_apply_numba(
    guide: np.ndarray,
    a: np.ndarray,
    b: np.ndarray,
    weights: np.ndarray,
    target: np.ndarray,
    out: np.ndarray,
) -> None:
    """
    Evaluate the smoothed linear model and blend it with the unfiltered target.

    out = w * (a . UV + b) + (1 - w) * target

    Args:
        guide: Guide UV at full resolution [N, 2]
        a: Smoothed slopes [N, C, 2]
        b: Smoothed offsets [N, C]
        weights: Achromatic weights [N]
        target: Unfiltered target [N, C]
        out: Output target [N, C] (may alias target)
    """
    n = guide.shape[0]
    channels = target.shape[1]

    for i in prange(n):
        u = guide[i, 0]
        v = guide[i, 1]
        w = weights[i]
        for c in range(channels):
            fitted = a[i, c, 0] * u + a[i, c, 1] * v + b[i, c]
            out[i, c] = w * fitted + (1.0 - w) * target[i, c]
