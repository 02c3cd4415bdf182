"""
Example: hue-dependent color equalizer usage.

Demonstrates how to use colorequal for:
- Per-node saturation, hue and brightness changes
- Filtered vs unfiltered processing
- Diagnostic masks
- Saving and restoring configurations
"""

import json
import logging

import numpy as np

from colorequal import ColorEqualizer, EqualizerConfig, RenderMode
from colorequal.color.ucs import rgb_to_ucs_hsb, white_lightness

# Configure logging to see pipeline statistics
logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")


def generate_sample_image(height: int = 128, width: int = 192):
    """Generate a linear RGBA test image: a hue sweep fading to grey at the bottom."""
    rng = np.random.default_rng(42)

    hue = np.linspace(0.0, 2.0 * np.pi, width, endpoint=False)[np.newaxis, :]
    fade = np.linspace(1.0, 0.0, height)[:, np.newaxis]

    rgb = np.empty((height, width, 3), dtype=np.float32)
    for c, phase in enumerate((0.0, 2.0 * np.pi / 3.0, 4.0 * np.pi / 3.0)):
        rgb[..., c] = 0.35 + 0.15 * fade * np.cos(hue - phase)

    # Mild sensor noise
    rgb += rng.normal(0.0, 0.004, rgb.shape).astype(np.float32)

    alpha = np.ones((height, width, 1), dtype=np.float32)
    return np.concatenate([np.clip(rgb, 0.0, None), alpha], axis=-1)


def mean_saturation(eq: ColorEqualizer, image: np.ndarray) -> float:
    """Mean UCS saturation of an image in the equalizer's profile."""
    white = white_lightness(eq.to_config().white_level)
    return float(rgb_to_ucs_hsb(image, eq.profile.input_matrix, white)[..., 1].mean())


def example_1_saturation():
    """Example 1: Boost reds, calm down blues."""
    print("\n" + "=" * 70)
    print("EXAMPLE 1: Per-node saturation")
    print("=" * 70)

    image = generate_sample_image()
    eq = ColorEqualizer(profile="srgb").saturation("red", 1.4).saturation("blue", 0.7)

    result = eq(image)

    print(f"Equalizer: {eq}")
    print(f"Mean saturation: {mean_saturation(eq, image):.4f} -> {mean_saturation(eq, result):.4f}")


def example_2_hue_and_brightness():
    """Example 2: Shift greens toward yellow and darken them."""
    print("\n" + "=" * 70)
    print("EXAMPLE 2: Hue offset and brightness")
    print("=" * 70)

    image = generate_sample_image()
    eq = ColorEqualizer().hue("green", -15.0).brightness("green", 0.8).smoothing_hue(0.6)

    result = eq(image)
    diff = np.abs(result[..., :3] - image[..., :3])

    print(f"Equalizer: {eq}")
    print(f"Max RGB change: {diff.max():.4f}, mean: {diff.mean():.5f}")


def example_3_filtering():
    """Example 3: Guided filtering on and off."""
    print("\n" + "=" * 70)
    print("EXAMPLE 3: Guided filters")
    print("=" * 70)

    image = generate_sample_image()
    eq = ColorEqualizer().saturation("yellow", 1.5)

    filtered = eq.use_filter(True).chroma_size(2.0).param_size(8.0)(image)
    raw = eq.use_filter(False)(image)

    print(f"Mean |filtered - unfiltered|: {np.abs(filtered - raw).mean():.6f}")

    # Preview at half resolution: radii follow the pixel scale
    preview = eq.use_filter(True)(image[::2, ::2], scale=0.5)
    print(f"Preview shape: {preview.shape}")


def example_4_masks():
    """Example 4: Inspect where corrections apply."""
    print("\n" + "=" * 70)
    print("EXAMPLE 4: Diagnostic masks")
    print("=" * 70)

    image = generate_sample_image()
    eq = ColorEqualizer().saturation("cyan", 1.5).hue("orange", 10.0)

    for mode in RenderMode:
        if mode is RenderMode.NORMAL:
            continue
        mask = eq.render_mode(mode)(image)
        print(f"{mode.value:>10}: red-tinted {np.mean(mask[..., 0] > mask[..., 2]) * 100:5.1f}%")


def example_5_config():
    """Example 5: Save and restore settings."""
    print("\n" + "=" * 70)
    print("EXAMPLE 5: Configuration round trip")
    print("=" * 70)

    eq = ColorEqualizer().saturation("red", 1.2).hue("blue", -8.0).white_level(2.0)
    text = json.dumps(eq.to_config().to_dict())
    print(f"Saved: {text}")

    restored = ColorEqualizer.from_config(EqualizerConfig.from_dict(json.loads(text)))
    print(f"Restored: {restored}")


if __name__ == "__main__":
    example_1_saturation()
    example_2_hue_and_brightness()
    example_3_filtering()
    example_4_masks()
    example_5_config()
