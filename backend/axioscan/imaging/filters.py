# backend/axioscan/imaging/filters.py
"""Named color filters with variable intensity.

Every kernel except sepia is blended by compositing its output over the
unfiltered original with alpha = intensity. Sepia interpolates its own color
matrix toward the identity instead.
"""
import math
from typing import Callable, Dict

import numpy as np
from PIL import Image, ImageOps

from ..errors import InvalidArgument
from .transforms import adjust_color, composite_over, restore_mode, split_alpha
from .types import FilterKind

SEPIA_MATRIX = np.array([
    [0.393, 0.769, 0.189],
    [0.349, 0.686, 0.168],
    [0.272, 0.534, 0.131],
], dtype=np.float32)

_LEVELS = np.linspace(0.0, 1.0, 256, dtype=np.float32)


def _curve_table(curve: Callable[[np.ndarray], np.ndarray]) -> list:
    values = np.clip(curve(_LEVELS) * 255.0 + 0.5, 0, 255).astype(np.uint8)
    return values.tolist()


def _apply_curves(rgb: Image.Image, red, green, blue) -> Image.Image:
    """Apply one tone curve per channel through a lookup table"""
    return rgb.point(_curve_table(red) + _curve_table(green) + _curve_table(blue))


def _s_curve(strength: float) -> Callable[[np.ndarray], np.ndarray]:
    """Sigmoid contrast curve normalized so that 0 -> 0 and 1 -> 1"""
    def curve(x: np.ndarray) -> np.ndarray:
        low = 1.0 / (1.0 + math.exp(strength * 0.5))
        high = 1.0 / (1.0 + math.exp(-strength * 0.5))
        y = 1.0 / (1.0 + np.exp(-strength * (x - 0.5)))
        return (y - low) / (high - low)
    return curve


def _gain(factor: float) -> Callable[[np.ndarray], np.ndarray]:
    return lambda x: x * factor


def _black_white(rgb: Image.Image) -> Image.Image:
    return ImageOps.grayscale(rgb).convert("RGB")


def _vintage(rgb: Image.Image) -> Image.Image:
    # Faded blacks, warm highlights, muted blues
    return _apply_curves(
        rgb,
        lambda x: 0.08 + 0.92 * np.power(x, 0.9),
        lambda x: 0.05 + 0.88 * x,
        lambda x: 0.12 + 0.72 * np.power(x, 1.1),
    )


def _cool(rgb: Image.Image) -> Image.Image:
    graded = adjust_color(rgb, brightness=0.02, contrast=1.05, saturation=0.9)
    return _apply_curves(graded, _gain(0.92), _gain(1.0), _gain(1.08))


def _warm(rgb: Image.Image) -> Image.Image:
    graded = adjust_color(rgb, brightness=0.02, contrast=1.05, saturation=1.1)
    return _apply_curves(graded, _gain(1.08), _gain(1.0), _gain(0.9))


def _dramatic(rgb: Image.Image) -> Image.Image:
    curve = _s_curve(8.0)
    contrasted = _apply_curves(rgb, curve, curve, curve)
    return adjust_color(contrasted, saturation=1.15)


def _noir(rgb: Image.Image) -> Image.Image:
    curve = _s_curve(10.0)
    gray = ImageOps.grayscale(rgb).convert("RGB")
    return _apply_curves(gray, curve, curve, curve)


KERNELS: Dict[FilterKind, Callable[[Image.Image], Image.Image]] = {
    FilterKind.BLACK_WHITE: _black_white,
    FilterKind.VINTAGE: _vintage,
    FilterKind.COOL: _cool,
    FilterKind.WARM: _warm,
    FilterKind.DRAMATIC: _dramatic,
    FilterKind.NOIR: _noir,
}


def sepia(image: Image.Image, intensity: float = 1.0) -> Image.Image:
    """Sepia tone; intensity interpolates the color matrix toward identity"""
    rgb, alpha = split_alpha(image)
    matrix = (1.0 - intensity) * np.eye(3, dtype=np.float32) + intensity * SEPIA_MATRIX

    pixels = np.asarray(rgb, dtype=np.float32)
    toned = pixels @ matrix.T
    out = np.clip(toned + 0.5, 0, 255).astype(np.uint8)
    return restore_mode(Image.fromarray(out), alpha, image.mode)


def blend_over(original: Image.Image, filtered: Image.Image, intensity: float) -> Image.Image:
    """Composite filtered over original with alpha = intensity"""
    if intensity >= 1.0:
        return filtered
    if intensity <= 0.0:
        return original.copy()

    overlay = filtered.convert("RGBA")
    overlay.putalpha(overlay.getchannel("A").point(lambda a: round(a * intensity)))
    return composite_over(original, overlay)


def apply_filter(image: Image.Image, kind: FilterKind, intensity: float = 1.0) -> Image.Image:
    """Apply a named filter at intensity in [0, 1]; the result keeps the input's mode"""
    if intensity is None or not math.isfinite(intensity) or not 0.0 <= intensity <= 1.0:
        raise InvalidArgument(f"Filter intensity must be within [0, 1], got {intensity!r}")

    try:
        kind = FilterKind(kind)
    except ValueError as e:
        raise InvalidArgument(f"Unknown filter: {kind!r}") from e

    if kind == FilterKind.ORIGINAL:
        return image.copy()
    if kind == FilterKind.SEPIA:
        return sepia(image, intensity)

    rgb, alpha = split_alpha(image)
    filtered = restore_mode(KERNELS[kind](rgb), alpha, image.mode)
    return blend_over(image, filtered, intensity)
