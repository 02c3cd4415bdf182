"""
Benchmark color equalizer performance (NumPy/Numba/SciPy).
"""

import time

import numpy as np

from colorequal import ColorEqualizer

HEIGHT, WIDTH = 1080, 1920
NUM_ITERATIONS = 10

print("=" * 80)
print("COLOR EQUALIZER BENCHMARK")
print(f"Testing with {WIDTH}x{HEIGHT} RGBA images, {NUM_ITERATIONS} iterations")
print("=" * 80)

# Setup
rng = np.random.default_rng(42)
image = np.ones((HEIGHT, WIDTH, 4), dtype=np.float32)
image[..., :3] = rng.random((HEIGHT, WIDTH, 3), dtype=np.float32)

eq = ColorEqualizer().saturation("red", 1.3).hue("blue", -10.0).brightness("green", 0.9).compile()

# Warmup (JIT compilation and gamut LUT)
print("\nWarming up...")
eq(image[:64, :64])


def run(label: str, equalizer: ColorEqualizer, img: np.ndarray) -> float:
    times = []
    for _ in range(NUM_ITERATIONS):
        start = time.perf_counter()
        equalizer(img)
        times.append((time.perf_counter() - start) * 1000)

    mean_time = np.mean(times)
    pixels = img.shape[0] * img.shape[1]
    print(f"{label:<28} {mean_time:>9.2f} ms +/- {np.std(times):.2f} ms  ({pixels / mean_time / 1e3:.1f} Mpx/s)")
    return mean_time


print("\n" + "=" * 80)
print("FILTERING")
print("=" * 80)
time_raw = run("use_filter=False", eq.copy().use_filter(False), image)
time_default = run("use_filter=True (defaults)", eq.copy().use_filter(True), image)
time_wide = run("use_filter=True, param=32", eq.copy().param_size(32.0), image)
print(f"\nFilter overhead: {time_default / time_raw:.2f}x, wide radius: {time_wide / time_raw:.2f}x")

print("\n" + "=" * 80)
print("IMAGE SIZE SCALING")
print("=" * 80)
for size in (256, 512, 1024):
    run(f"{size}x{size}", eq, image[:size, :size])

print("\n" + "=" * 80)
print("CURVE COMPILATION OVERHEAD")
print("=" * 80)
start = time.perf_counter()
for k in range(100):
    ColorEqualizer(profile=None).saturation(k % 8, 1.2).compile()
print(f"Compile: {(time.perf_counter() - start) * 10:.3f} ms per equalizer")
