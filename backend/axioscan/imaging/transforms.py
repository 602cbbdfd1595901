# backend/axioscan/imaging/transforms.py
"""Geometric and compositing transforms over Pillow images.

Every function returns a new image and leaves its input untouched, so the
functions can run concurrently over distinct images.
"""
import math

import numpy as np
from PIL import Image, ImageOps

from ..errors import InvalidArgument
from .types import FlipAxis, Rect, Size, CropAspect

# Rec. 709 luma weights, used for saturation adjustments
LUMA_WEIGHTS = np.array([0.2125, 0.7154, 0.0721], dtype=np.float32)

# Tolerance when snapping a rotated extent to whole pixels
_EXTENT_EPSILON = 1e-6


def image_size(image: Image.Image) -> Size:
    return Size(*image.size)


def _require_finite(name: str, value: float) -> None:
    if value is None or not math.isfinite(value):
        raise InvalidArgument(f"{name} must be a finite number, got {value!r}")


def crop(image: Image.Image, rect: Rect) -> Image.Image:
    """Extract exactly the pixels inside rect"""
    if rect.width <= 0 or rect.height <= 0:
        raise InvalidArgument(f"Crop rectangle must have a positive area, got {rect}")
    if not rect.fits_within(image_size(image)):
        raise InvalidArgument(f"Crop rectangle {rect} exceeds image bounds {image.size}")
    return image.crop(rect.as_box())


def aspect_crop_rect(size: Size, aspect: CropAspect) -> Rect:
    """Largest rectangle of the given aspect ratio centered in size"""
    ratio = aspect.ratio
    if ratio is None:
        return Rect(0, 0, size.width, size.height)

    if size.aspect_ratio > ratio:
        # Image is wider than the preset, keep the full height
        height = size.height
        width = max(1, min(size.width, round(height * ratio)))
    else:
        width = size.width
        height = max(1, min(size.height, round(width / ratio)))

    return Rect((size.width - width) // 2, (size.height - height) // 2, width, height)


def rotated_canvas_size(size: Size, degrees: float) -> Size:
    """Integral bounding box of a size x size rectangle rotated about its center"""
    radians = math.radians(degrees)
    cos, sin = abs(math.cos(radians)), abs(math.sin(radians))
    width = size.width * cos + size.height * sin
    height = size.width * sin + size.height * cos
    return Size(
        max(1, math.ceil(width - _EXTENT_EPSILON)),
        max(1, math.ceil(height - _EXTENT_EPSILON)),
    )


def _fill_color(image: Image.Image):
    if image.mode == "RGBA":
        return (0, 0, 0, 0)
    if image.mode == "L":
        return 255
    return (255, 255, 255)


def rotate(image: Image.Image, degrees: float) -> Image.Image:
    """Rotate clockwise by degrees onto a canvas large enough that nothing is clipped.

    Quarter turns are exact pixel transposes. Other angles are resampled:
    the drawing origin is moved to the new canvas center, rotated, and the
    source is drawn centered on it. Pillow's image space is already y-down,
    so no vertical flip correction is applied.
    """
    _require_finite("Rotation angle", degrees)

    turn = degrees % 360
    if turn == 0:
        return image.copy()
    if turn == 90:
        return image.transpose(Image.Transpose.ROTATE_270)
    if turn == 180:
        return image.transpose(Image.Transpose.ROTATE_180)
    if turn == 270:
        return image.transpose(Image.Transpose.ROTATE_90)

    source = image_size(image)
    canvas = rotated_canvas_size(source, degrees)

    radians = math.radians(degrees)
    cos, sin = math.cos(radians), math.sin(radians)
    src_cx, src_cy = source.width / 2, source.height / 2
    dst_cx, dst_cy = canvas.width / 2, canvas.height / 2

    # Pillow wants the inverse mapping: output pixel -> source pixel
    matrix = (
        cos, sin, src_cx - cos * dst_cx - sin * dst_cy,
        -sin, cos, src_cy + sin * dst_cx - cos * dst_cy,
    )
    return image.transform(
        canvas.as_tuple(),
        Image.Transform.AFFINE,
        matrix,
        resample=Image.Resampling.BICUBIC,
        fillcolor=_fill_color(image),
    )


def flip(image: Image.Image, axis: FlipAxis) -> Image.Image:
    """Mirror about the image's own vertical (HORIZONTAL) or horizontal (VERTICAL) centerline"""
    if axis == FlipAxis.HORIZONTAL:
        return ImageOps.mirror(image)
    if axis == FlipAxis.VERTICAL:
        return ImageOps.flip(image)
    raise InvalidArgument(f"Unknown flip axis: {axis!r}")


def composite_over(base: Image.Image, overlay: Image.Image) -> Image.Image:
    """Alpha-over composite of overlay onto base; the result keeps base's mode"""
    if overlay.size != base.size:
        raise InvalidArgument(
            f"Overlay size {overlay.size} does not match base size {base.size}"
        )

    result = Image.alpha_composite(base.convert("RGBA"), overlay.convert("RGBA"))
    if base.mode == "RGBA":
        return result
    return result.convert(base.mode)


def split_alpha(image: Image.Image) -> tuple[Image.Image, Image.Image | None]:
    """Return the RGB part of an image and its alpha band, if any"""
    if image.mode == "RGBA":
        return image.convert("RGB"), image.getchannel("A")
    if image.mode == "RGB":
        return image, None
    return image.convert("RGB"), None


def restore_mode(rgb: Image.Image, alpha: Image.Image | None, mode: str) -> Image.Image:
    if alpha is not None:
        result = rgb.copy()
        result.putalpha(alpha)
        return result
    if mode == "L":
        return rgb.convert("L")
    return rgb


def adjust_color(
        image: Image.Image,
        brightness: float = 0.0,
        contrast: float = 1.0,
        saturation: float = 1.0
) -> Image.Image:
    """Color controls: additive brightness in [-1, 1], contrast and saturation in [0, 2].

    The identity setting (0, 1, 1) returns an exact copy.
    """
    for name, value in (("Brightness", brightness), ("Contrast", contrast), ("Saturation", saturation)):
        _require_finite(name, value)
    if not -1.0 <= brightness <= 1.0:
        raise InvalidArgument(f"Brightness must be within [-1, 1], got {brightness}")
    if not 0.0 <= contrast <= 2.0 or not 0.0 <= saturation <= 2.0:
        raise InvalidArgument("Contrast and saturation must be within [0, 2]")

    if brightness == 0.0 and contrast == 1.0 and saturation == 1.0:
        return image.copy()

    rgb, alpha = split_alpha(image)
    pixels = np.asarray(rgb, dtype=np.float32) / 255.0

    luma = pixels @ LUMA_WEIGHTS
    pixels = luma[..., None] + (pixels - luma[..., None]) * saturation
    pixels = pixels + brightness
    pixels = (pixels - 0.5) * contrast + 0.5

    out = np.clip(pixels * 255.0 + 0.5, 0, 255).astype(np.uint8)
    return restore_mode(Image.fromarray(out), alpha, image.mode)
