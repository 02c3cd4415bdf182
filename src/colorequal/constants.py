"""
Constants and default values for colorequal pipelines.

Centralizes magic numbers and configuration defaults for better maintainability.
"""

from __future__ import annotations

import numpy as np

# =============================================================================
# Hue Nodes
# =============================================================================

NODES = 8  # Control nodes around the hue circle (one per 45 degrees)

# Octant names, index 0 is red
NODE_NAMES = ("red", "orange", "yellow", "green", "cyan", "blue", "lavender", "magenta")

# sRGB primary red sits at 20 degrees of hue in UCS 22, so node angles are
# offset to make node 0 coincide with red
ANGLE_SHIFT = 20.0

# =============================================================================
# Hue LUTs
# =============================================================================

LUT_ELEM = 361  # One entry per degree over [-180, 180]

# =============================================================================
# Correction Constants (kept literal, they define the tool's visual response)
# =============================================================================

SATURATION_STRENGTH = 1.5  # Maps saturation LUT gain to saturation change
BRIGHTNESS_STRENGTH = 6.0  # Maps brightness LUT delta to brightness change

# Achromatic weight logistic: w = 1 / (1 + exp(-(20 * (2 * val - 0.4))))
WEIGHT_STEEPNESS = 20.0
WEIGHT_OFFSET = 0.4

# Guided filter regularization (variance threshold)
CHROMA_FEATHERING = 1.0e-5  # Chromaticity prefilter epsilon
PARAM_FEATHERING = 1.0e-6  # Correction filter epsilon

# Minimum Gaussian widths of the two guided filters
CHROMA_MIN_SIGMA = 0.3
PARAM_MIN_SIGMA = 0.2

# Determinant guard of the 2x2 covariance inversion
DET_GUARD = 4.0 * float(np.finfo(np.float32).eps)
DET_FLOOR = 1.0e-15  # Correction filter clamps the determinant from below

# Mask visualization scales
MASK_NORM = 1.5  # Brightness normalization numerator
MASK_MIN_BRIGHTNESS = 0.01  # Floor of the brightness normalizer
MASK_HUE_SCALE = 0.2

# =============================================================================
# Parameter Defaults (neutral values)
# =============================================================================

DEFAULT_SMOOTHING_HUE = 1.0
DEFAULT_WHITE_LEVEL = 1.0  # EV
DEFAULT_CHROMA_SIZE = 1.5
DEFAULT_PARAM_SIZE = 1.0
DEFAULT_USE_FILTER = True
DEFAULT_HUE_SHIFT = 0.0

DEFAULT_HUE = 0.0  # Degrees, no hue offset
DEFAULT_SATURATION = 1.0  # No saturation change
DEFAULT_BRIGHTNESS = 1.0  # No brightness change

# =============================================================================
# Parameter Ranges
# =============================================================================

SMOOTHING_HUE_MIN = 0.05
SMOOTHING_HUE_MAX = 2.0
WHITE_LEVEL_MIN = -2.0
WHITE_LEVEL_MAX = 16.0
CHROMA_SIZE_MIN = 1.0
CHROMA_SIZE_MAX = 10.0
PARAM_SIZE_MIN = 1.0
PARAM_SIZE_MAX = 128.0
HUE_SHIFT_MIN = -23.0
HUE_SHIFT_MAX = 23.0

HUE_MIN = -180.0
HUE_MAX = 180.0
SATURATION_MIN = 0.0
SATURATION_MAX = 2.0
BRIGHTNESS_MIN = 0.0
BRIGHTNESS_MAX = 2.0

# =============================================================================
# Image Layout
# =============================================================================

IMAGE_CHANNELS = 4  # RGBA

# Valid channel names
VALID_CHANNELS = {"hue", "saturation", "brightness"}
