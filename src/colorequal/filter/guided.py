"""
Edge-aware guided filtering guided by UV chromaticity.

Fast guided filter (He et al., http://kaiminghe.com/eccv10/) generalized to
a 2-channel guide: each target channel is locally modeled as
a . UV + b, where a is a 2-vector. Local averages are Gaussian blurs
rather than box blurs so diagonal edges are not disadvantaged. The work
is done on a downsampled grid for wide radii, then the smoothed
coefficients are upsampled.

Two instantiations share the engine:
- ChromaticityPrefilter denoises UV itself before hue lookups.
- CorrectionGuidedFilter smooths the saturation gain and brightness delta
  so corrections follow chromaticity edges.
"""

from __future__ import annotations

import logging
import math
from typing import NamedTuple

import numpy as np
from scipy import ndimage

from colorequal.constants import (
    CHROMA_FEATHERING,
    CHROMA_MIN_SIGMA,
    DEFAULT_CHROMA_SIZE,
    DEFAULT_PARAM_SIZE,
    DET_FLOOR,
    DET_GUARD,
    PARAM_FEATHERING,
    PARAM_MIN_SIGMA,
)
from colorequal.filter.kernels import (
    bilinear_resample_numba,
    guide_products_numba,
    guided_apply_numba,
    guided_coefficients_numba,
)

logger = logging.getLogger(__name__)

MAX_SCALING = 4


# ============================================================================
# Primitives
# ============================================================================


def gaussian_blur(buffer: np.ndarray, sigma: float) -> np.ndarray:
    """
    Gaussian blur over the two spatial axes, edges replicated.

    Args:
        buffer: Image [H, W] or [H, W, ...]
        sigma: Standard deviation in pixels

    Returns:
        Blurred float64 copy of buffer
    """
    sigmas = (sigma, sigma) + (0.0,) * (buffer.ndim - 2)
    return ndimage.gaussian_filter(np.asarray(buffer, dtype=np.float64), sigma=sigmas, mode="nearest")


def bilinear_resample(src: np.ndarray, height: int, width: int) -> np.ndarray:
    """
    Resample an image to (height, width) with pixel-center aligned bilinear interpolation.

    Args:
        src: Image [H, W] or [H, W, C]
        height: Output height
        width: Output width

    Returns:
        Resampled float64 image with the channel layout of src

    Example:
        >>> small = bilinear_resample(np.ones((8, 8, 2)), 4, 4)
        >>> small.shape
        (4, 4, 2)
    """
    if height < 1 or width < 1:
        raise ValueError(f"Output size must be at least 1x1, got {height}x{width}")

    planar = src.ndim == 2
    src3 = np.ascontiguousarray(src[..., np.newaxis] if planar else src, dtype=np.float64)
    out = np.empty((height, width, src3.shape[2]), dtype=np.float64)
    bilinear_resample_numba(src3, out)
    return out[..., 0] if planar else out


class FilterGeometry(NamedTuple):
    """Working resolution of one guided filter pass."""

    scaling: int
    height: int
    width: int
    sigma: float
    resized: bool


# ============================================================================
# Engine
# ============================================================================


class GuidedFilter:
    """
    Guided filter of a C-channel target by a UV guide.

    Args:
        size: Filter radius in pixels at full resolution
        epsilon: Variance threshold added to the guide covariance
        min_sigma: Smallest Gaussian width of the local averages
        det_floor: Optional lower clamp of the covariance determinant

    Example:
        >>> gf = GuidedFilter(size=4.0, epsilon=1e-6, min_sigma=0.2)
        >>> smoothed = gf.filter(uv, corrections, weights)
    """

    __slots__ = ("size", "epsilon", "min_sigma", "det_floor")

    def __init__(self, size: float, epsilon: float, min_sigma: float, det_floor: float | None = None):
        if not size > 0.0:
            raise ValueError(f"size={size} must be positive (> 0).")
        if not epsilon > 0.0:
            raise ValueError(f"epsilon={epsilon} must be positive (> 0).")
        self.size = float(size)
        self.epsilon = float(epsilon)
        self.min_sigma = float(min_sigma)
        self.det_floor = det_floor

    def geometry(self, height: int, width: int, scale: float = 1.0) -> FilterGeometry:
        """
        Downsampling factor, working size and blur width for an image.

        Args:
            height: Full-resolution height
            width: Full-resolution width
            scale: Pixel scale of the region of interest

        Returns:
            FilterGeometry
        """
        sigma = self.size * scale
        scaling = int(max(1.0, min(float(MAX_SCALING), math.floor(sigma - 1.5))))
        ds_height = max(height // scaling, 1)
        ds_width = max(width // scaling, 1)
        gsigma = max(self.min_sigma, 0.5 * sigma / scaling)
        resized = ds_height != height or ds_width != width
        return FilterGeometry(scaling, ds_height, ds_width, gsigma, resized)

    def filter(
        self,
        guide: np.ndarray,
        target: np.ndarray,
        weights: np.ndarray,
        scale: float = 1.0,
    ) -> np.ndarray:
        """
        Filter target guided by UV.

        Args:
            guide: UV chromaticity [H, W, 2]
            target: Signal to filter [H, W] or [H, W, C]
            weights: Achromatic weights in [0, 1] [H, W]
            scale: Pixel scale of the region of interest

        Returns:
            Filtered target, float64, same shape as target

        Raises:
            ValueError: If the shapes do not agree
        """
        planar = target.ndim == 2
        target3 = target[..., np.newaxis] if planar else target

        if guide.ndim != 3 or guide.shape[2] != 2:
            raise ValueError(f"guide must have shape [H, W, 2], got {guide.shape}")
        height, width = guide.shape[:2]
        if target3.shape[:2] != (height, width) or weights.shape != (height, width):
            raise ValueError(
                f"target {target.shape} and weights {weights.shape} must match guide size {(height, width)}"
            )

        geo = self.geometry(height, width, scale)
        channels = target3.shape[2]

        ds_guide = guide
        ds_target = target3
        if geo.resized:
            ds_guide = bilinear_resample(guide, geo.height, geo.width)
            ds_target = bilinear_resample(target3, geo.height, geo.width)

        n = geo.height * geo.width
        flat_guide = np.ascontiguousarray(ds_guide, dtype=np.float64).reshape(n, 2)
        flat_target = np.ascontiguousarray(ds_target, dtype=np.float64).reshape(n, channels)

        guide_products = np.empty((n, 3), dtype=np.float64)
        cross = np.empty((n, channels, 2), dtype=np.float64)
        guide_products_numba(flat_guide, flat_target, guide_products, cross)

        grid = (geo.height, geo.width)
        mean_guide = gaussian_blur(flat_guide.reshape(grid + (2,)), geo.sigma).reshape(n, 2)
        mean_products = gaussian_blur(guide_products.reshape(grid + (3,)), geo.sigma).reshape(n, 3)
        mean_target = gaussian_blur(flat_target.reshape(grid + (channels,)), geo.sigma).reshape(n, channels)
        mean_cross = gaussian_blur(cross.reshape(grid + (channels, 2)), geo.sigma).reshape(n, channels, 2)

        a = np.empty((n, channels, 2), dtype=np.float64)
        b = np.empty((n, channels), dtype=np.float64)
        guided_coefficients_numba(
            mean_guide,
            mean_products,
            mean_target,
            mean_cross,
            self.epsilon,
            DET_GUARD,
            self.det_floor if self.det_floor is not None else 0.0,
            self.det_floor is not None,
            a,
            b,
        )

        a = gaussian_blur(a.reshape(grid + (channels * 2,)), geo.sigma)
        b = gaussian_blur(b.reshape(grid + (channels,)), geo.sigma)
        if geo.resized:
            a = bilinear_resample(a, height, width)
            b = bilinear_resample(b, height, width)

        pixels = height * width
        full_target = np.ascontiguousarray(target3, dtype=np.float64).reshape(pixels, channels)
        out = np.empty((pixels, channels), dtype=np.float64)
        guided_apply_numba(
            np.ascontiguousarray(guide, dtype=np.float64).reshape(pixels, 2),
            np.ascontiguousarray(a).reshape(pixels, channels, 2),
            np.ascontiguousarray(b).reshape(pixels, channels),
            np.ascontiguousarray(weights, dtype=np.float64).reshape(pixels),
            full_target,
            out,
        )

        logger.debug(
            "[%s] Filtered %dx%d (%d channels) at 1/%d, gaussian sigma=%.3f",
            type(self).__name__,
            width,
            height,
            channels,
            geo.scaling,
            geo.sigma,
        )

        out = out.reshape(height, width, channels)
        return out[..., 0] if planar else out

    def __repr__(self) -> str:
        """String representation."""
        return f"{type(self).__name__}(size={self.size}, epsilon={self.epsilon:g})"


class ChromaticityPrefilter(GuidedFilter):
    """
    Self-guided UV denoising ahead of the hue lookups.

    Noise in UV turns into hue noise, which the LUT lookups would amplify.
    Filtering UV by itself keeps chromaticity edges while flattening
    noise; the achromatic weight keeps greys from picking up color.
    """

    __slots__ = ()

    def __init__(self, size: float = DEFAULT_CHROMA_SIZE):
        super().__init__(size, CHROMA_FEATHERING, CHROMA_MIN_SIGMA)

    def __call__(self, uv: np.ndarray, weights: np.ndarray, scale: float = 1.0) -> np.ndarray:
        """
        Filter UV guided by itself.

        Args:
            uv: UV chromaticity [H, W, 2]
            weights: Achromatic weights [H, W]
            scale: Pixel scale of the region of interest

        Returns:
            Filtered UV [H, W, 2]
        """
        return self.filter(uv, uv, weights, scale)


class CorrectionGuidedFilter(GuidedFilter):
    """Smooths the saturation gain and brightness delta along UV edges (hue offsets are left alone)."""

    __slots__ = ()

    def __init__(self, size: float = DEFAULT_PARAM_SIZE):
        super().__init__(size, PARAM_FEATHERING, PARAM_MIN_SIGMA, det_floor=DET_FLOOR)

    def __call__(
        self,
        uv: np.ndarray,
        saturation_gain: np.ndarray,
        brightness_delta: np.ndarray,
        weights: np.ndarray,
        scale: float = 1.0,
    ) -> tuple[np.ndarray, np.ndarray]:
        """
        Filter the saturation gain and brightness delta guided by UV.

        Args:
            uv: UV chromaticity [H, W, 2]
            saturation_gain: Saturation gains [H, W]
            brightness_delta: Brightness deltas [H, W]
            weights: Achromatic weights [H, W]
            scale: Pixel scale of the region of interest

        Returns:
            (saturation_gain, brightness_delta), each [H, W]
        """
        target = np.stack([saturation_gain, brightness_delta], axis=-1)
        filtered = self.filter(uv, target, weights, scale)
        return filtered[..., 0], filtered[..., 1]
