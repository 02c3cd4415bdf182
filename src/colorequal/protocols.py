"""
Protocol definitions for colorequal pipeline interfaces.

Defines the per-invocation working buffers and the interface of the final
rendering pass.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable

import numpy as np


@dataclass(slots=True)
class PixelBuffers:
    """
    Working buffers of one pipeline invocation, all flattened over pixels.

    Attributes:
        height: Image height
        width: Image width
        uv: UV' chromaticity [N, 2]
        lightness: UCS lightness L* [N]
        weights: Blurred achromatic weights [N]
        hsb: HSB [N, 3]
        corrections: (hue offset, saturation gain) [N, 2]
        brightness_delta: Brightness delta [N]
        alpha: Input alpha [N]
    """

    height: int
    width: int
    uv: np.ndarray
    lightness: np.ndarray
    weights: np.ndarray
    hsb: np.ndarray
    corrections: np.ndarray
    brightness_delta: np.ndarray
    alpha: np.ndarray

    @classmethod
    def allocate(cls, height: int, width: int) -> PixelBuffers:
        """Allocate uninitialized float64 buffers for an image size."""
        n = height * width
        return cls(
            height=height,
            width=width,
            uv=np.empty((n, 2), dtype=np.float64),
            lightness=np.empty(n, dtype=np.float64),
            weights=np.empty(n, dtype=np.float64),
            hsb=np.empty((n, 3), dtype=np.float64),
            corrections=np.empty((n, 2), dtype=np.float64),
            brightness_delta=np.empty(n, dtype=np.float64),
            alpha=np.empty(n, dtype=np.float64),
        )

    @property
    def npixels(self) -> int:
        return self.height * self.width


@runtime_checkable
class Renderer(Protocol):
    """
    Protocol for the final pass of the pixel pipeline.

    A renderer turns the filled working buffers into RGBA output: either
    the corrected image or a diagnostic mask.
    """

    def render(self, buffers: PixelBuffers, out: np.ndarray) -> None:
        """
        Write the rendered pixels.

        Args:
            buffers: Filled working buffers
            out: Output RGBA [N, 4]
        """
        ...
