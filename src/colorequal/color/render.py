"""
Final rendering passes of the pixel pipeline.

ColorRenderer produces the corrected image; MaskRenderer visualizes one
correction channel (or the achromatic weight) for inspection.
"""

import logging

import numpy as np

from colorequal.color.kernels import (
    MASK_BRIGHTNESS,
    MASK_HUE,
    MASK_SATURATION,
    MASK_WEIGHT,
    apply_corrections_numba,
    render_mask_numba,
)
from colorequal.constants import MASK_MIN_BRIGHTNESS, MASK_NORM
from colorequal.protocols import PixelBuffers

logger = logging.getLogger(__name__)


class ColorRenderer:
    """Apply corrections, gamut-map and convert back to RGB."""

    __slots__ = ("gamut_lut", "white", "output_matrix")

    def __init__(self, gamut_lut: np.ndarray, white: float, output_matrix: np.ndarray):
        self.gamut_lut = gamut_lut
        self.white = white
        self.output_matrix = np.ascontiguousarray(output_matrix, dtype=np.float64)

    def render(self, buffers: PixelBuffers, out: np.ndarray) -> None:
        apply_corrections_numba(
            buffers.hsb,
            buffers.corrections,
            buffers.brightness_delta,
            self.gamut_lut,
            self.white,
            self.output_matrix,
            buffers.alpha,
            out,
        )


class MaskRenderer:
    """
    Signed greyscale visualization of one correction channel.

    The grey base is the pixel brightness scaled so the brightest pixel
    reads 1.5; positive corrections show red, negative ones blue.

    Example:
        >>> renderer = MaskRenderer("saturation")
    """

    KINDS = {
        "hue": MASK_HUE,
        "saturation": MASK_SATURATION,
        "brightness": MASK_BRIGHTNESS,
        "weight": MASK_WEIGHT,
    }

    __slots__ = ("kind",)

    def __init__(self, kind: str):
        if kind not in self.KINDS:
            raise ValueError(f"kind='{kind}' is not valid. Valid options are: {', '.join(sorted(self.KINDS))}")
        self.kind = kind

    def render(self, buffers: PixelBuffers, out: np.ndarray) -> None:
        peak = max(MASK_MIN_BRIGHTNESS, float(buffers.hsb[:, 2].max()))
        logger.debug("[MaskRenderer] Rendering %s mask, brightness peak %.4f", self.kind, peak)
        render_mask_numba(
            buffers.hsb,
            buffers.corrections,
            buffers.brightness_delta,
            buffers.weights,
            self.KINDS[self.kind],
            MASK_NORM / peak,
            buffers.alpha,
            out,
        )
