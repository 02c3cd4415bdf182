"""
ColorEqualizer: fluent hue-dependent color equalizer.

Eight nodes around the hue circle (red, orange, yellow, green, cyan, blue,
lavender, magenta) carry a hue offset, a saturation gain and a brightness
gain. The node values are interpolated into smooth periodic curves and
applied per pixel according to the pixel's own hue, in darktable UCS 22.

Key Features:
- Method chaining with node addressing by index or name
- Lazy compilation of the node curves with dirty flag tracking
- Edge-aware guided filtering of the corrections
- Diagnostic render modes (hue, saturation, brightness, weight masks)

Example:
    >>> eq = (ColorEqualizer()
    ...     .saturation("red", 1.2)
    ...     .hue("blue", -10.0)
    ...     .brightness("green", 0.9)
    ... )
    >>> out = eq(image)
"""

from __future__ import annotations

import logging
import math
from copy import deepcopy
from typing import Self

import numpy as np

from colorequal.color.gamut import GamutCache, max_saturation
from colorequal.color.profiles import WorkingProfile, get_profile
from colorequal.color.ucs import white_lightness
from colorequal.config import EqualizerConfig
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
    NODE_NAMES,
    NODES,
    PARAM_SIZE_MAX,
    PARAM_SIZE_MIN,
    SATURATION_MAX,
    SATURATION_MIN,
    SMOOTHING_HUE_MAX,
    SMOOTHING_HUE_MIN,
    VALID_CHANNELS,
    WHITE_LEVEL_MAX,
    WHITE_LEVEL_MIN,
)
from colorequal.interpolation import periodic_rbf_lut
from colorequal.pipeline import PixelPipeline, RenderMode
from colorequal.validators import (
    resolve_node,
    validate_choices,
    validate_positive,
    validate_range,
    validate_type,
)

logger = logging.getLogger(__name__)


class ColorEqualizer:
    """
    Hue-dependent color equalizer with lazy curve compilation.

    Node setters validate their values and mark the curves dirty; the three
    node LUTs are rebuilt on the next application. The gamut LUT of the
    working profile lives in a GamutCache owned by the equalizer and shared
    with its copies.

    Channels:
    - hue: additive hue offset in degrees (-180 to 180, 0 = no change)
    - saturation: saturation gain (0 to 2, 1 = no change)
    - brightness: brightness gain (0 to 2, 1 = no change)

    Example:
        >>> eq = ColorEqualizer(profile="rec2020").saturation(0, 1.3).use_filter(False)
        >>> result = eq.apply(image)
    """

    __slots__ = (
        "_hue",
        "_saturation",
        "_brightness",
        "_smoothing_hue",
        "_white_level",
        "_chroma_size",
        "_param_size",
        "_use_filter",
        "_hue_shift",
        "_profile",
        "_render_mode",
        "_gamut_cache",
        "_luts",
        "_is_dirty",
    )

    def __init__(
        self,
        profile: WorkingProfile | str | None = "srgb",
        gamut_cache: GamutCache | None = None,
    ):
        """
        Initialize a neutral equalizer.

        Args:
            profile: Working profile, built-in profile name ("srgb", "rec2020",
                "display_p3"), or None to leave images untouched
            gamut_cache: Gamut LUT cache to use, a private one is created when
                None (pass the same cache to share LUTs between equalizers)

        Raises:
            ValueError: If the profile name is unknown
        """
        self._reset_parameters()
        self._profile = get_profile(profile) if isinstance(profile, str) else profile

        # Compiled node LUTs: hue (radians), saturation, brightness
        self._luts: tuple[np.ndarray, np.ndarray, np.ndarray] | None = None
        self._is_dirty = True
        self._gamut_cache = gamut_cache if gamut_cache is not None else GamutCache()

        logger.info("[ColorEqualizer] Initialized with profile=%r", self._profile)

    def _reset_parameters(self) -> None:
        self._hue = [DEFAULT_HUE] * NODES
        self._saturation = [DEFAULT_SATURATION] * NODES
        self._brightness = [DEFAULT_BRIGHTNESS] * NODES

        self._smoothing_hue = DEFAULT_SMOOTHING_HUE
        self._white_level = DEFAULT_WHITE_LEVEL
        self._chroma_size = DEFAULT_CHROMA_SIZE
        self._param_size = DEFAULT_PARAM_SIZE
        self._use_filter = DEFAULT_USE_FILTER
        self._hue_shift = DEFAULT_HUE_SHIFT
        self._render_mode = RenderMode.NORMAL

    @classmethod
    def from_config(
        cls,
        config: EqualizerConfig,
        profile: WorkingProfile | str | None = "srgb",
        gamut_cache: GamutCache | None = None,
    ) -> Self:
        """
        Build an equalizer from a configuration record.

        Example:
            >>> eq = ColorEqualizer.from_config(EqualizerConfig(use_filter=False))
        """
        if not isinstance(config, EqualizerConfig):
            raise TypeError(f"config must be EqualizerConfig, got {type(config).__name__}")

        eq = cls(profile=profile, gamut_cache=gamut_cache)
        eq._hue = list(config.hue)
        eq._saturation = list(config.saturation)
        eq._brightness = list(config.brightness)
        eq._smoothing_hue = float(config.smoothing_hue)
        eq._white_level = float(config.white_level)
        eq._chroma_size = float(config.chroma_size)
        eq._param_size = float(config.param_size)
        eq._use_filter = config.use_filter
        eq._hue_shift = float(config.hue_shift)
        return eq

    def to_config(self) -> EqualizerConfig:
        """Export the current parameters."""
        return EqualizerConfig(
            smoothing_hue=self._smoothing_hue,
            white_level=self._white_level,
            chroma_size=self._chroma_size,
            param_size=self._param_size,
            use_filter=self._use_filter,
            hue_shift=self._hue_shift,
            hue=tuple(self._hue),
            saturation=tuple(self._saturation),
            brightness=tuple(self._brightness),
        )

    # ========================================================================
    # Properties
    # ========================================================================

    @property
    def is_compiled(self) -> bool:
        """Check if the node LUTs are compiled and up-to-date."""
        return self._luts is not None and not self._is_dirty

    @property
    def needs_compilation(self) -> bool:
        """Check if compilation is needed."""
        return not self.is_compiled

    @property
    def profile(self) -> WorkingProfile | None:
        """Working profile."""
        return self._profile

    @property
    def gamut_cache(self) -> GamutCache:
        """Gamut LUT cache of this equalizer (shared with its copies)."""
        return self._gamut_cache

    @property
    def luts(self) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
        """Compiled (hue, saturation, brightness) LUTs, compiling if needed."""
        if self.needs_compilation:
            self.compile()
        return self._luts

    # ========================================================================
    # Node Values
    # ========================================================================

    @validate_range(HUE_MIN, HUE_MAX, "hue", param_index=2)
    def hue(self, node: int | str, degrees: float) -> Self:
        """
        Set the hue offset of a node.

        Args:
            node: Octant index 0-7 or name ("red", "orange", ...)
            degrees: Hue offset in degrees (0 = no change)

        Returns:
            Self for method chaining

        Example:
            >>> ColorEqualizer().hue("yellow", 15.0)
        """
        self._hue[resolve_node(node)] = float(degrees)
        self._is_dirty = True
        return self

    @validate_range(SATURATION_MIN, SATURATION_MAX, "saturation", param_index=2)
    def saturation(self, node: int | str, value: float) -> Self:
        """
        Set the saturation gain of a node.

        Args:
            node: Octant index 0-7 or name
            value: Saturation gain (1.0 = no change, >1.0 more saturated)

        Returns:
            Self for method chaining
        """
        self._saturation[resolve_node(node)] = float(value)
        self._is_dirty = True
        return self

    @validate_range(BRIGHTNESS_MIN, BRIGHTNESS_MAX, "brightness", param_index=2)
    def brightness(self, node: int | str, value: float) -> Self:
        """
        Set the brightness gain of a node.

        Args:
            node: Octant index 0-7 or name
            value: Brightness gain (1.0 = no change, >1.0 brighter)

        Returns:
            Self for method chaining
        """
        self._brightness[resolve_node(node)] = float(value)
        self._is_dirty = True
        return self

    @validate_choices(VALID_CHANNELS, "channel")
    def nodes(self, channel: str, values) -> Self:
        """
        Set all 8 node values of a channel at once.

        Args:
            channel: "hue", "saturation" or "brightness"
            values: 8 values in octant order

        Returns:
            Self for method chaining

        Example:
            >>> ColorEqualizer().nodes("saturation", [1.2, 1, 1, 1, 1, 1, 1, 1])
        """
        values = list(values)
        if len(values) != NODES:
            raise ValueError(f"{channel} must hold {NODES} node values, got {len(values)}")
        setter = getattr(self, channel)
        for k, value in enumerate(values):
            setter(k, value)
        return self

    def get_nodes(self, channel: str) -> list[float]:
        """Node values of a channel (hue in degrees)."""
        if channel not in VALID_CHANNELS:
            raise ValueError(f"channel='{channel}' is not valid. Valid options are: {', '.join(sorted(VALID_CHANNELS))}")
        return list(getattr(self, f"_{channel}"))

    # ========================================================================
    # Global Settings
    # ========================================================================

    @validate_range(SMOOTHING_HUE_MIN, SMOOTHING_HUE_MAX, "smoothing_hue")
    def smoothing_hue(self, value: float) -> Self:
        """
        Set the sharpness of the hue curve.

        Args:
            value: Higher values give sharper transitions between hue nodes

        Returns:
            Self for method chaining
        """
        self._smoothing_hue = float(value)
        self._is_dirty = True
        return self

    @validate_range(WHITE_LEVEL_MIN, WHITE_LEVEL_MAX, "white_level")
    def white_level(self, ev: float) -> Self:
        """Set the scene white exposure in EV."""
        self._white_level = float(ev)
        return self

    def white_level_from_rgb(self, rgb, profile: WorkingProfile | None = None) -> Self:
        """
        Set the white level from a picked color: the exposure of its luminance.

        Args:
            rgb: Linear RGB of the picked color [3] (or a patch [..., 3], averaged)
            profile: Profile of the color, defaults to the equalizer's

        Returns:
            Self for method chaining

        Raises:
            ValueError: Without a profile, or if the color has no positive luminance
        """
        profile = profile if profile is not None else self._profile
        if profile is None:
            raise ValueError("A working profile is required to measure the white level.")

        rgb = np.asarray(rgb, dtype=np.float64).reshape(-1, 3).mean(axis=0)
        luminance = float(profile.luminance(rgb))
        if not luminance > 0.0:
            raise ValueError(f"Picked color has no positive luminance (Y={luminance:.6g}).")

        ev = float(np.clip(math.log2(luminance), WHITE_LEVEL_MIN, WHITE_LEVEL_MAX))
        logger.debug("[ColorEqualizer] White level picked at %.3f EV (Y=%.4f)", ev, luminance)
        return self.white_level(ev)

    @validate_range(CHROMA_SIZE_MIN, CHROMA_SIZE_MAX, "chroma_size")
    def chroma_size(self, value: float) -> Self:
        """Set the radius of the chromaticity prefilter."""
        self._chroma_size = float(value)
        return self

    @validate_range(PARAM_SIZE_MIN, PARAM_SIZE_MAX, "param_size")
    def param_size(self, value: float) -> Self:
        """Set the radius of the correction filter."""
        self._param_size = float(value)
        return self

    @validate_type(bool, "enabled")
    def use_filter(self, enabled: bool) -> Self:
        """Enable or disable both guided filters."""
        self._use_filter = enabled
        return self

    @validate_range(HUE_SHIFT_MIN, HUE_SHIFT_MAX, "hue_shift")
    def hue_shift(self, degrees: float) -> Self:
        """
        Shift the placement of all nodes around the hue circle.

        Args:
            degrees: Node placement shift in degrees

        Returns:
            Self for method chaining
        """
        self._hue_shift = float(degrees)
        self._is_dirty = True
        return self

    def set_profile(self, profile: WorkingProfile | str | None) -> Self:
        """Change the working profile (None disables processing)."""
        self._profile = get_profile(profile) if isinstance(profile, str) else profile
        return self

    def render_mode(self, mode: RenderMode | str) -> Self:
        """
        Select what the equalizer renders.

        Args:
            mode: RenderMode or its value ("normal", "hue", "saturation",
                "brightness", "weight")

        Returns:
            Self for method chaining
        """
        try:
            self._render_mode = RenderMode(mode)
        except ValueError:
            valid = ", ".join(m.value for m in RenderMode)
            raise ValueError(f"mode='{mode}' is not valid. Valid options are: {valid}") from None
        return self

    # ========================================================================
    # Compilation
    # ========================================================================

    def _build_luts(self, hue_shift: float) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
        hue_lut = periodic_rbf_lut(
            np.deg2rad(self._hue), math.pi / self._smoothing_hue, hue_shift, clip=False
        )
        saturation_lut = periodic_rbf_lut(self._saturation, math.pi, hue_shift, clip=True)
        brightness_lut = periodic_rbf_lut(self._brightness, math.pi, hue_shift, clip=True)
        return hue_lut, saturation_lut, brightness_lut

    def compile(self) -> Self:
        """
        Interpolate the node values into the three hue LUTs.

        Returns:
            Self for method chaining
        """
        if not self._is_dirty and self._luts is not None:
            return self

        self._luts = self._build_luts(self._hue_shift)
        self._is_dirty = False
        logger.debug("[ColorEqualizer] Node LUTs compiled (hue_shift=%.1f)", self._hue_shift)
        return self

    @validate_choices(VALID_CHANNELS, "channel")
    def curve(self, channel: str) -> np.ndarray:
        """
        Node curve of one channel for display, with zero hue shift.

        Args:
            channel: "hue", "saturation" or "brightness"

        Returns:
            LUT [361] (hue offsets in radians), entry i is hue (i - 180) degrees
        """
        hue_lut, saturation_lut, brightness_lut = self._build_luts(0.0)
        return {"hue": hue_lut, "saturation": saturation_lut, "brightness": brightness_lut}[channel]

    def max_saturation(self, brightness: float = 1.0) -> float:
        """
        Saturation reproducible at every hue for a brightness, in the working profile.

        Raises:
            ValueError: Without a working profile
        """
        if self._profile is None:
            raise ValueError("A working profile is required to compute the gamut.")
        pipeline = self._pipeline()
        return max_saturation(pipeline.gamut_lut, brightness, white_lightness(self._white_level))

    # ========================================================================
    # Application
    # ========================================================================

    def _pipeline(self) -> PixelPipeline:
        hue_lut, saturation_lut, brightness_lut = self.luts
        return PixelPipeline(
            hue_lut,
            saturation_lut,
            brightness_lut,
            self._profile,
            white_level=self._white_level,
            chroma_size=self._chroma_size,
            param_size=self._param_size,
            use_filter=self._use_filter,
            render_mode=self._render_mode,
            gamut_cache=self._gamut_cache,
        )

    def is_identity(self) -> bool:
        """
        Check if the node values are all neutral.

        Note:
            Neutral nodes still run the pipeline: the guided filters and gamut
            mapping can alter noisy or out-of-gamut pixels.
        """
        return (
            all(v == DEFAULT_HUE for v in self._hue)
            and all(v == DEFAULT_SATURATION for v in self._saturation)
            and all(v == DEFAULT_BRIGHTNESS for v in self._brightness)
        )

    @validate_positive("scale", param_index=2)
    def apply(self, image: np.ndarray, scale: float = 1.0, inplace: bool = False) -> np.ndarray:
        """
        Apply the equalizer to an image.

        Args:
            image: Linear RGBA image [H, W, 4] in the working profile
            scale: Pixel scale of the region of interest (1.0 at full resolution)
            inplace: If True, writes the result into image

        Returns:
            Equalized image (or the requested mask), alpha preserved

        Example:
            >>> out = ColorEqualizer().saturation("cyan", 0.8).apply(image)
        """
        if self.needs_compilation:
            self.compile()
        return self._pipeline().process(image, scale=scale, inplace=inplace)

    def __call__(self, image: np.ndarray, scale: float = 1.0, inplace: bool = False) -> np.ndarray:
        """Apply the equalizer when called as a function."""
        return self.apply(image, scale=scale, inplace=inplace)

    def reset(self) -> Self:
        """
        Reset all parameters to defaults (the profile is kept).

        Returns:
            Self for method chaining
        """
        self._reset_parameters()
        self._luts = None
        self._is_dirty = True
        logger.debug("[ColorEqualizer] Reset to defaults")
        return self

    def copy(self) -> Self:
        """
        Create a deep copy of this equalizer.

        Example:
            >>> eq2 = eq.copy().saturation("red", 1.5)  # Independent copy
        """
        return deepcopy(self)

    def __len__(self) -> int:
        """Return the number of non-neutral node values."""
        count = sum(v != DEFAULT_HUE for v in self._hue)
        count += sum(v != DEFAULT_SATURATION for v in self._saturation)
        count += sum(v != DEFAULT_BRIGHTNESS for v in self._brightness)
        return count

    def __repr__(self) -> str:
        """String representation of the equalizer."""
        parts = []
        for channel, values, neutral in (
            ("hue", self._hue, DEFAULT_HUE),
            ("sat", self._saturation, DEFAULT_SATURATION),
            ("bright", self._brightness, DEFAULT_BRIGHTNESS),
        ):
            for k, value in enumerate(values):
                if value != neutral:
                    parts.append(f"{channel}.{NODE_NAMES[k]}={value:.2f}")

        param_str = ", ".join(parts) if parts else "neutral"
        status = "compiled" if self.is_compiled else "not compiled"
        return f"ColorEqualizer({param_str}) [{status}]"

    def __copy__(self) -> Self:
        """Shallow copy delegates to deep copy."""
        return self.copy()

    def __deepcopy__(self, memo) -> Self:
        """Create a deep copy sharing the compiled LUTs (never mutated) and the gamut cache."""
        new = ColorEqualizer(profile=self._profile, gamut_cache=self._gamut_cache)
        new._hue = list(self._hue)
        new._saturation = list(self._saturation)
        new._brightness = list(self._brightness)
        new._smoothing_hue = self._smoothing_hue
        new._white_level = self._white_level
        new._chroma_size = self._chroma_size
        new._param_size = self._param_size
        new._use_filter = self._use_filter
        new._hue_shift = self._hue_shift
        new._render_mode = self._render_mode
        new._luts = self._luts
        new._is_dirty = self._is_dirty
        return new
