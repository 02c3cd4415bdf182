"""
Working RGB profiles.

A profile is described by its RGB -> XYZ D50 matrix (the ICC connection
space). The equalizer works in XYZ D65, so the profile exposes CAT16-adapted
input and output matrices.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from functools import cache
from typing import Self

import numpy as np

logger = logging.getLogger(__name__)

# ============================================================================
# Chromatic Adaptation
# ============================================================================

# CIE CAT16 cone response matrix
CAT16_M = np.array(
    [
        [0.401288, 0.650173, -0.051461],
        [-0.250268, 1.204414, 0.045854],
        [-0.002079, 0.048952, 0.953127],
    ],
    dtype=np.float64,
)

D50_WHITE = np.array([0.96422, 1.0, 0.82521], dtype=np.float64)
D65_WHITE = np.array([0.95047, 1.0, 1.08883], dtype=np.float64)

# Primaries in XYZ D65
SRGB_TO_XYZ_D65 = np.array(
    [
        [0.4124564, 0.3575761, 0.1804375],
        [0.2126729, 0.7151522, 0.0721750],
        [0.0193339, 0.1191920, 0.9503041],
    ],
    dtype=np.float64,
)
REC2020_TO_XYZ_D65 = np.array(
    [
        [0.6369580, 0.1446169, 0.1688810],
        [0.2627002, 0.6779981, 0.0593017],
        [0.0000000, 0.0280727, 1.0609851],
    ],
    dtype=np.float64,
)
DISPLAY_P3_TO_XYZ_D65 = np.array(
    [
        [0.4865709, 0.2656677, 0.1982173],
        [0.2289746, 0.6917385, 0.0792869],
        [0.0000000, 0.0451134, 1.0439444],
    ],
    dtype=np.float64,
)


def cat16_adaptation(source_white: np.ndarray, target_white: np.ndarray) -> np.ndarray:
    """
    Von Kries adaptation matrix in CAT16 cone space (full adaptation).

    Args:
        source_white: XYZ of the source illuminant [3]
        target_white: XYZ of the target illuminant [3]

    Returns:
        XYZ source -> XYZ target matrix [3, 3]

    Example:
        >>> cat16_adaptation(D50_WHITE, D65_WHITE) @ D50_WHITE  # ~ D65_WHITE
    """
    lms_source = CAT16_M @ np.asarray(source_white, dtype=np.float64)
    lms_target = CAT16_M @ np.asarray(target_white, dtype=np.float64)
    gain = np.diag(lms_target / lms_source)
    return np.linalg.inv(CAT16_M) @ gain @ CAT16_M


D50_TO_D65 = cat16_adaptation(D50_WHITE, D65_WHITE)
D65_TO_D50 = cat16_adaptation(D65_WHITE, D50_WHITE)


# ============================================================================
# Working Profile
# ============================================================================


@dataclass(frozen=True, eq=False)
class WorkingProfile:
    """
    Linear RGB working profile.

    Profiles compare and hash by identity, which is what the gamut LUT cache
    keys on.

    Attributes:
        name: Display name
        matrix_in: RGB -> XYZ D50 matrix [3, 3]
        input_matrix: RGB -> XYZ D65 matrix [3, 3] (derived)
        output_matrix: XYZ D65 -> RGB matrix [3, 3] (derived)
    """

    name: str
    matrix_in: np.ndarray
    input_matrix: np.ndarray = field(init=False, repr=False)
    output_matrix: np.ndarray = field(init=False, repr=False)

    def __post_init__(self):
        """Validate the matrix and derive the D65 matrices."""
        matrix_in = np.asarray(self.matrix_in, dtype=np.float64)
        if matrix_in.shape != (3, 3):
            raise ValueError(f"matrix_in must be 3x3, got shape {matrix_in.shape}")
        if not np.all(np.isfinite(matrix_in)):
            raise ValueError("matrix_in must contain finite values")

        input_matrix = D50_TO_D65 @ matrix_in
        try:
            output_matrix = np.linalg.inv(input_matrix)
        except np.linalg.LinAlgError:
            raise ValueError(f"matrix_in of profile '{self.name}' is singular") from None

        object.__setattr__(self, "matrix_in", matrix_in)
        object.__setattr__(self, "input_matrix", np.ascontiguousarray(input_matrix))
        object.__setattr__(self, "output_matrix", np.ascontiguousarray(output_matrix))

    @classmethod
    def from_d65(cls, name: str, rgb_to_xyz_d65: np.ndarray) -> Self:
        """Build a profile from an RGB -> XYZ D65 primaries matrix."""
        return cls(name, D65_TO_D50 @ np.asarray(rgb_to_xyz_d65, dtype=np.float64))

    @classmethod
    def srgb(cls) -> Self:
        """Linear Rec.709 / sRGB primaries."""
        return cls.from_d65("linear Rec709 RGB", SRGB_TO_XYZ_D65)

    @classmethod
    def rec2020(cls) -> Self:
        """Linear Rec.2020 primaries."""
        return cls.from_d65("linear Rec2020 RGB", REC2020_TO_XYZ_D65)

    @classmethod
    def display_p3(cls) -> Self:
        """Linear Display P3 primaries."""
        return cls.from_d65("linear Display P3 RGB", DISPLAY_P3_TO_XYZ_D65)

    def luminance(self, rgb) -> np.ndarray:
        """Y (D65) of linear RGB values [..., 3]."""
        rgb = np.asarray(rgb, dtype=np.float64)[..., :3]
        return rgb @ self.input_matrix[1]

    def __repr__(self) -> str:
        """String representation."""
        return f"WorkingProfile(name={self.name!r})"


PROFILES = {
    "srgb": WorkingProfile.srgb,
    "rec2020": WorkingProfile.rec2020,
    "display_p3": WorkingProfile.display_p3,
}


@cache
def get_profile(name: str) -> WorkingProfile:
    """
    Shared instance of a built-in working profile.

    Repeated calls return the same object, so gamut caches keyed on the
    profile hit across equalizers.

    Raises:
        ValueError: If the name is unknown
    """
    try:
        factory = PROFILES[name]
    except KeyError:
        raise ValueError(
            f"profile='{name}' is not valid. Valid options are: {', '.join(sorted(PROFILES))}"
        ) from None
    logger.debug("[WorkingProfile] Built '%s' profile", name)
    return factory()
