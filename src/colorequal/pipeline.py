"""
Pixel pipeline of the color equalizer.

Runs the whole per-image process from precompiled node LUTs:

    1. RGB -> XYZ D65 -> UV + L, achromatic weights (blurred)
    2. chromaticity prefilter on UV (optional)
    3. LUV -> JCH -> HSB, per-pixel corrections from the node LUTs
    4. guided filter on saturation gain and brightness delta (optional)
    5. final render: corrections + gamut mapping + HSB -> RGB, or a mask

Every pass writes fresh buffers and returns before the next one starts.
"""

from __future__ import annotations

import logging
from enum import Enum

import numpy as np

from colorequal.color.gamut import GamutCache
from colorequal.color.kernels import hsb_corrections_numba, rgb_to_luv_weights_numba
from colorequal.color.profiles import WorkingProfile
from colorequal.color.render import ColorRenderer, MaskRenderer
from colorequal.color.ucs import white_lightness
from colorequal.constants import (
    DEFAULT_CHROMA_SIZE,
    DEFAULT_PARAM_SIZE,
    DEFAULT_USE_FILTER,
    DEFAULT_WHITE_LEVEL,
    LUT_ELEM,
)
from colorequal.filter.guided import ChromaticityPrefilter, CorrectionGuidedFilter, gaussian_blur
from colorequal.protocols import PixelBuffers, Renderer
from colorequal.utils import check_image

logger = logging.getLogger(__name__)


class RenderMode(Enum):
    """What the final pass renders."""

    NORMAL = "normal"
    HUE = "hue"
    SATURATION = "saturation"
    BRIGHTNESS = "brightness"
    WEIGHT = "weight"


def _check_lut(name: str, lut: np.ndarray) -> np.ndarray:
    lut = np.ascontiguousarray(lut, dtype=np.float64)
    if lut.shape != (LUT_ELEM,):
        raise ValueError(f"{name} must have shape ({LUT_ELEM},), got {lut.shape}")
    return lut


class PixelPipeline:
    """
    Apply hue-dependent corrections from node LUTs to RGBA images.

    Args:
        hue_lut: Hue offsets in radians [LUT_ELEM]
        saturation_lut: Saturation gains [LUT_ELEM]
        brightness_lut: Brightness gains [LUT_ELEM]
        profile: Working profile of the images, None disables processing
        white_level: Scene white exposure in EV
        chroma_size: Radius of the chromaticity prefilter
        param_size: Radius of the correction filter
        use_filter: Run both guided filters
        render_mode: Corrected image or one of the diagnostic masks
        gamut_lut: Precomputed gamut LUT, looked up in gamut_cache when None
        gamut_cache: Cache owning the gamut LUT of the profile, a private one
            is created when None (pass one in to share LUTs between pipelines)

    Example:
        >>> pipeline = PixelPipeline(hue_lut, sat_lut, bright_lut, WorkingProfile.srgb())
        >>> out = pipeline(image)
    """

    __slots__ = (
        "hue_lut",
        "saturation_lut",
        "brightness_lut",
        "profile",
        "white_level",
        "chroma_size",
        "param_size",
        "use_filter",
        "render_mode",
        "_gamut_lut",
        "_gamut_cache",
    )

    def __init__(
        self,
        hue_lut: np.ndarray,
        saturation_lut: np.ndarray,
        brightness_lut: np.ndarray,
        profile: WorkingProfile | None,
        white_level: float = DEFAULT_WHITE_LEVEL,
        chroma_size: float = DEFAULT_CHROMA_SIZE,
        param_size: float = DEFAULT_PARAM_SIZE,
        use_filter: bool = DEFAULT_USE_FILTER,
        render_mode: RenderMode = RenderMode.NORMAL,
        gamut_lut: np.ndarray | None = None,
        gamut_cache: GamutCache | None = None,
    ):
        self.hue_lut = _check_lut("hue_lut", hue_lut)
        self.saturation_lut = _check_lut("saturation_lut", saturation_lut)
        self.brightness_lut = _check_lut("brightness_lut", brightness_lut)
        self.profile = profile
        self.white_level = float(white_level)
        self.chroma_size = float(chroma_size)
        self.param_size = float(param_size)
        self.use_filter = bool(use_filter)
        self.render_mode = RenderMode(render_mode)
        self._gamut_lut = None if gamut_lut is None else _check_lut("gamut_lut", gamut_lut)
        self._gamut_cache = gamut_cache if gamut_cache is not None else GamutCache()

    @property
    def gamut_lut(self) -> np.ndarray | None:
        """Gamut LUT of the working profile (None without a profile)."""
        if self._gamut_lut is None and self.profile is not None:
            return self._gamut_cache.get(self.profile)
        return self._gamut_lut

    def _renderer(self, white: float) -> Renderer:
        if self.render_mode is RenderMode.NORMAL:
            return ColorRenderer(self.gamut_lut, white, self.profile.output_matrix)
        return MaskRenderer(self.render_mode.value)

    def prepare(self, image: np.ndarray, scale: float = 1.0) -> PixelBuffers:
        """
        Run every pass up to the final render.

        Args:
            image: Linear RGBA image [H, W, 4]
            scale: Pixel scale of the region of interest

        Returns:
            Filled working buffers
        """
        height, width = image.shape[:2]
        n = height * width
        white = white_lightness(self.white_level)

        buffers = PixelBuffers.allocate(height, width)
        rgba = np.ascontiguousarray(image.reshape(n, 4), dtype=np.float64)
        buffers.alpha[:] = rgba[:, 3]

        # STEP 1: RGB -> UV, L, weights
        rgb_to_luv_weights_numba(
            rgba,
            self.profile.input_matrix,
            buffers.uv,
            buffers.lightness,
            buffers.weights,
        )
        weights = gaussian_blur(buffers.weights.reshape(height, width), scale)
        buffers.weights = weights.reshape(n)

        # STEP 2: denoise chromaticity so hue lookups stay continuous
        if self.use_filter:
            prefilter = ChromaticityPrefilter(self.chroma_size)
            uv = prefilter(buffers.uv.reshape(height, width, 2), weights, scale)
            buffers.uv = np.ascontiguousarray(uv).reshape(n, 2)

        # STEP 3: HSB and per-pixel corrections
        hsb_corrections_numba(
            buffers.uv,
            buffers.lightness,
            white,
            self.hue_lut,
            self.saturation_lut,
            self.brightness_lut,
            buffers.hsb,
            buffers.corrections,
            buffers.brightness_delta,
        )

        # STEP 4: make corrections follow chromaticity edges, hue offsets untouched
        if self.use_filter:
            correction_filter = CorrectionGuidedFilter(self.param_size)
            gain, delta = correction_filter(
                buffers.uv.reshape(height, width, 2),
                buffers.corrections[:, 1].reshape(height, width),
                buffers.brightness_delta.reshape(height, width),
                weights,
                scale,
            )
            buffers.corrections[:, 1] = gain.reshape(n)
            buffers.brightness_delta = np.ascontiguousarray(delta).reshape(n)

        return buffers

    def process(self, image: np.ndarray, scale: float = 1.0, inplace: bool = False) -> np.ndarray:
        """
        Equalize an image.

        Args:
            image: Linear RGBA image [H, W, 4] in the working profile
            scale: Pixel scale of the region of interest (filter radii are multiplied by it)
            inplace: Write the result into image

        Returns:
            Processed image with the dtype of the input (alpha preserved)

        Raises:
            TypeError: If image is not a NumPy array
            TypeError: If inplace is requested on a non floating-point image
            ValueError: If image is not [H, W, 4] or scale is not positive
            MemoryError: If the working buffers cannot be allocated
        """
        if inplace and isinstance(image, np.ndarray) and not np.issubdtype(image.dtype, np.floating):
            raise TypeError(
                f"inplace processing needs a floating-point image, got {image.dtype}. "
                f"Convert with image.astype(np.float32) first."
            )
        image = check_image(image)
        if not scale > 0.0:
            raise ValueError(f"scale={scale} must be positive (> 0).")

        if self.profile is None:
            logger.warning("[PixelPipeline] No working profile, image returned unchanged")
            return image if inplace else image.copy()

        height, width = image.shape[:2]
        try:
            buffers = self.prepare(image, scale)
            out = np.empty((buffers.npixels, 4), dtype=np.float64)
            self._renderer(white_lightness(self.white_level)).render(buffers, out)
        except MemoryError:
            logger.error("[PixelPipeline] Could not allocate buffers for a %dx%d image", width, height)
            raise

        result = out.reshape(height, width, 4)
        logger.info(
            "[PixelPipeline] Processed %dx%d image (%s, filter=%s)",
            width,
            height,
            self.render_mode.value,
            self.use_filter,
        )

        if inplace:
            image[...] = result
            return image
        return result.astype(image.dtype, copy=False)

    __call__ = process

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"PixelPipeline(profile={self.profile!r}, white_level={self.white_level}, "
            f"use_filter={self.use_filter}, render_mode={self.render_mode.value})"
        )
