"""
Color processing module.

Provides the darktable UCS 22 conversions, working profiles, gamut
mapping and the ColorEqualizer pipeline.
"""

from colorequal.color.gamut import GamutCache, build_gamut_lut, gamut_map_hsb, max_saturation
from colorequal.color.pipeline import ColorEqualizer
from colorequal.color.profiles import WorkingProfile, get_profile
from colorequal.color.ucs import rgb_to_ucs_hsb, ucs_hsb_to_rgb

__all__ = [
    "ColorEqualizer",
    "WorkingProfile",
    "get_profile",
    "GamutCache",
    "build_gamut_lut",
    "gamut_map_hsb",
    "max_saturation",
    "rgb_to_ucs_hsb",
    "ucs_hsb_to_rgb",
]
