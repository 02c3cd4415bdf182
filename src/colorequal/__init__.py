"""
colorequal - Hue-dependent color equalizer

Per-hue control of hue, saturation and brightness for linear RGB images,
working in the darktable UCS 22 perceptual color space.

Features:
- 8 hue nodes per channel turned into smooth periodic curves (RBF interpolation)
- Edge-aware guided filtering of chromaticity and corrections
- Gamut mapping against the working profile (sRGB, Rec.2020, Display P3 or custom)
- Fluent ColorEqualizer API with lazy curve compilation
- Diagnostic masks of every correction channel
- Numba-parallel per-pixel kernels

Example:
    >>> from colorequal import ColorEqualizer
    >>>
    >>> eq = (
    ...     ColorEqualizer(profile="srgb")
    ...     .saturation("red", 1.2)
    ...     .hue("blue", -10.0)
    ...     .brightness("green", 0.9)
    ... )
    >>> out = eq(image)  # image: linear RGBA [H, W, 4]

Example - Configuration:
    >>> from colorequal import ColorEqualizer, EqualizerConfig
    >>>
    >>> config = EqualizerConfig.from_dict({"use_filter": False, "saturation": [1.2] + [1.0] * 7})
    >>> out = ColorEqualizer.from_config(config)(image)
"""

__version__ = "0.1.0"

# Color space, gamut and equalizer
from colorequal.color.gamut import GamutCache, build_gamut_lut, gamut_map_hsb, max_saturation
from colorequal.color.pipeline import ColorEqualizer
from colorequal.color.profiles import WorkingProfile, get_profile
from colorequal.color.ucs import rgb_to_ucs_hsb, ucs_hsb_to_rgb

# Configuration
from colorequal.config import UI_RANGES, EqualizerConfig

# Filtering
from colorequal.filter.guided import ChromaticityPrefilter, CorrectionGuidedFilter, GuidedFilter

# Interpolation
from colorequal.interpolation import NodeInterpolator, periodic_rbf_lut

# Pixel pipeline
from colorequal.pipeline import PixelPipeline, RenderMode

# Protocols
from colorequal.protocols import PixelBuffers, Renderer

__all__ = [
    # Version
    "__version__",
    # Core classes
    "ColorEqualizer",
    "PixelPipeline",
    "RenderMode",
    "NodeInterpolator",
    # Configuration
    "EqualizerConfig",
    "UI_RANGES",
    # Profiles and gamut
    "WorkingProfile",
    "get_profile",
    "GamutCache",
    "build_gamut_lut",
    "gamut_map_hsb",
    "max_saturation",
    # Filtering
    "GuidedFilter",
    "ChromaticityPrefilter",
    "CorrectionGuidedFilter",
    # Protocols
    "PixelBuffers",
    "Renderer",
    # Utils
    "periodic_rbf_lut",
    "rgb_to_ucs_hsb",
    "ucs_hsb_to_rgb",
]
