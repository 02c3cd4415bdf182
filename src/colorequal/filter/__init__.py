"""
Guided filtering module.

Provides the 2-channel guided filter engine and its two instantiations
used by the equalizer.

Example:
    >>> from colorequal.filter import ChromaticityPrefilter
    >>> uv_smooth = ChromaticityPrefilter(size=1.5)(uv, weights)
"""

from colorequal.filter.guided import (
    ChromaticityPrefilter,
    CorrectionGuidedFilter,
    GuidedFilter,
    bilinear_resample,
    gaussian_blur,
)

__all__ = [
    "GuidedFilter",
    "ChromaticityPrefilter",
    "CorrectionGuidedFilter",
    "bilinear_resample",
    "gaussian_blur",
]
