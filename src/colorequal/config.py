"""
Configuration for the color equalizer.

Holds the full parameter surface (global settings and the 24 node values)
as an immutable, validated record.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from typing import Any, Self

from colorequal.constants import (
    BRIGHTNESS_MAX,
    BRIGHTNESS_MIN,
    CHROMA_SIZE_MAX,
    CHROMA_SIZE_MIN,
    DEFAULT_BRIGHTNESS,
    DEFAULT_CHROMA_SIZE,
    DEFAULT_HUE,
    DEFAULT_HUE_SHIFT,
    DEFAULT_PARAM_SIZE,
    DEFAULT_SATURATION,
    DEFAULT_SMOOTHING_HUE,
    DEFAULT_USE_FILTER,
    DEFAULT_WHITE_LEVEL,
    HUE_MAX,
    HUE_MIN,
    HUE_SHIFT_MAX,
    HUE_SHIFT_MIN,
    NODES,
    PARAM_SIZE_MAX,
    PARAM_SIZE_MIN,
    SATURATION_MAX,
    SATURATION_MIN,
    SMOOTHING_HUE_MAX,
    SMOOTHING_HUE_MIN,
    WHITE_LEVEL_MAX,
    WHITE_LEVEL_MIN,
)


def _nodes(value: float) -> tuple[float, ...]:
    return (value,) * NODES


@dataclass(frozen=True)
class EqualizerConfig:
    """
    Configuration of a color equalizer.

    Node sequences are indexed by hue octant (0 = red, 1 = orange, ...,
    7 = magenta). Hue offsets are in degrees.

    Attributes:
        smoothing_hue: Sharpness of the hue curve (higher = sharper)
        white_level: Scene white exposure in EV
        chroma_size: Radius of the chromaticity prefilter
        param_size: Radius of the correction filter
        use_filter: Run the guided filters
        hue_shift: Node placement shift in degrees
        hue: Hue offsets per node, degrees
        saturation: Saturation gains per node
        brightness: Brightness gains per node

    Example:
        >>> config = EqualizerConfig(saturation=(1.2,) + (1.0,) * 7)
        >>> EqualizerConfig.from_dict(config.to_dict()) == config
        True
    """

    smoothing_hue: float = DEFAULT_SMOOTHING_HUE
    white_level: float = DEFAULT_WHITE_LEVEL
    chroma_size: float = DEFAULT_CHROMA_SIZE
    param_size: float = DEFAULT_PARAM_SIZE
    use_filter: bool = DEFAULT_USE_FILTER
    hue_shift: float = DEFAULT_HUE_SHIFT

    hue: tuple[float, ...] = field(default_factory=lambda: _nodes(DEFAULT_HUE))
    saturation: tuple[float, ...] = field(default_factory=lambda: _nodes(DEFAULT_SATURATION))
    brightness: tuple[float, ...] = field(default_factory=lambda: _nodes(DEFAULT_BRIGHTNESS))

    def __post_init__(self):
        """Validate configuration parameters."""
        scalars = {
            "smoothing_hue": (SMOOTHING_HUE_MIN, SMOOTHING_HUE_MAX),
            "white_level": (WHITE_LEVEL_MIN, WHITE_LEVEL_MAX),
            "chroma_size": (CHROMA_SIZE_MIN, CHROMA_SIZE_MAX),
            "param_size": (PARAM_SIZE_MIN, PARAM_SIZE_MAX),
            "hue_shift": (HUE_SHIFT_MIN, HUE_SHIFT_MAX),
        }
        for name, (lo, hi) in scalars.items():
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise TypeError(f"{name} must be a number, got {type(value).__name__}")
            if not lo <= value <= hi:
                raise ValueError(f"{name}={value} is outside valid range [{lo}, {hi}]")

        if not isinstance(self.use_filter, bool):
            raise TypeError(f"use_filter must be bool, got {type(self.use_filter).__name__}")

        channels = {
            "hue": (HUE_MIN, HUE_MAX),
            "saturation": (SATURATION_MIN, SATURATION_MAX),
            "brightness": (BRIGHTNESS_MIN, BRIGHTNESS_MAX),
        }
        for name, (lo, hi) in channels.items():
            values = tuple(float(v) for v in getattr(self, name))
            if len(values) != NODES:
                raise ValueError(f"{name} must hold {NODES} node values, got {len(values)}")
            for k, value in enumerate(values):
                if not lo <= value <= hi:
                    raise ValueError(f"{name}[{k}]={value} is outside valid range [{lo}, {hi}]")
            # Normalize lists to tuples so the record stays hashable
            object.__setattr__(self, name, values)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        """
        Build a configuration from a plain dict.

        Raises:
            ValueError: If the dict holds unknown keys
        """
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ValueError(
                f"Unknown configuration keys: {sorted(unknown)}. Valid keys are: {sorted(known)}"
            )
        return cls(**data)

    def to_dict(self) -> dict[str, Any]:
        """Export as a plain dict (node sequences as lists)."""
        data = asdict(self)
        for name in ("hue", "saturation", "brightness"):
            data[name] = list(data[name])
        return data


# Default UI slider ranges for building interfaces
UI_RANGES = {
    "smoothing_hue": {"min": SMOOTHING_HUE_MIN, "max": SMOOTHING_HUE_MAX, "step": 0.01, "default": DEFAULT_SMOOTHING_HUE},
    "white_level": {"min": WHITE_LEVEL_MIN, "max": WHITE_LEVEL_MAX, "step": 0.1, "default": DEFAULT_WHITE_LEVEL},
    "chroma_size": {"min": CHROMA_SIZE_MIN, "max": CHROMA_SIZE_MAX, "step": 0.1, "default": DEFAULT_CHROMA_SIZE},
    "param_size": {"min": PARAM_SIZE_MIN, "max": PARAM_SIZE_MAX, "step": 1.0, "default": DEFAULT_PARAM_SIZE},
    "hue_shift": {"min": HUE_SHIFT_MIN, "max": HUE_SHIFT_MAX, "step": 1.0, "default": DEFAULT_HUE_SHIFT},
    "hue": {"min": HUE_MIN, "max": HUE_MAX, "step": 1.0, "default": DEFAULT_HUE},
    "saturation": {"min": SATURATION_MIN, "max": SATURATION_MAX, "step": 0.01, "default": DEFAULT_SATURATION},
    "brightness": {"min": BRIGHTNESS_MIN, "max": BRIGHTNESS_MAX, "step": 0.01, "default": DEFAULT_BRIGHTNESS},
}
