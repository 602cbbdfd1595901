# backend/axioscan/imaging/watermark.py
"""Tiled, rotated text watermark layers.

The same function renders the cheap preview layer and the full-resolution
layer baked in on save; only canvas_size differs. Size and spacing are
relative to the canvas so both layers line up.
"""
import math
from dataclasses import dataclass

from PIL import Image, ImageDraw, ImageFont

from ..config import settings
from ..errors import InvalidArgument
from ..utils.logging import imaging_logger
from .types import Size

# Font size at relative_size == 1, as a fraction of the canvas' shorter side
FONT_FRACTION = 0.1

# Extra rings around the grid so rotated corners are always covered
MARGIN_RINGS = 1

# Smallest spacing, as a fraction of the canvas' shorter side
MIN_SPACING = 0.02

# Upper bound on grid anchors one layer may evaluate
MAX_ANCHORS = 250_000


@dataclass
class WatermarkOptions:
    text: str
    opacity: float = 0.5
    relative_size: float = 0.5
    angle_degrees: float = 45.0
    spacing: float = 0.35
    color: tuple[int, int, int] = (128, 128, 128)


@dataclass
class WatermarkLayer:
    image: Image.Image
    anchors_evaluated: int
    tiles_drawn: int


def load_font(size: int) -> ImageFont.ImageFont:
    """Configured TrueType font, then DejaVu, then Pillow's bundled default"""
    candidates = []
    if settings.WATERMARK_FONT_PATH:
        candidates.append(str(settings.WATERMARK_FONT_PATH))
    candidates.append("DejaVuSans.ttf")

    for candidate in candidates:
        try:
            return ImageFont.truetype(candidate, size)
        except OSError:
            imaging_logger.debug(f"Font not available: {candidate}")
    return ImageFont.load_default(size=size)


def _validate(options: WatermarkOptions, canvas_size: Size) -> None:
    if not options.text or not options.text.strip():
        raise InvalidArgument("Watermark text must not be empty")
    if canvas_size.width <= 0 or canvas_size.height <= 0:
        raise InvalidArgument(f"Canvas must have a positive area, got {canvas_size}")
    for name, value in (
            ("Opacity", options.opacity),
            ("Relative size", options.relative_size),
            ("Angle", options.angle_degrees),
            ("Spacing", options.spacing),
    ):
        if value is None or not math.isfinite(value):
            raise InvalidArgument(f"{name} must be a finite number, got {value!r}")
    if not 0.0 <= options.opacity <= 1.0:
        raise InvalidArgument(f"Opacity must be within [0, 1], got {options.opacity}")
    if not 0.0 < options.relative_size <= 1.0:
        raise InvalidArgument(f"Relative size must be within (0, 1], got {options.relative_size}")
    if options.spacing < MIN_SPACING:
        raise InvalidArgument(f"Spacing must be at least {MIN_SPACING}, got {options.spacing}")


def _render_tile(options: WatermarkOptions, font: ImageFont.ImageFont) -> Image.Image:
    """Text on a transparent tile, rotated clockwise by the watermark angle"""
    left, top, right, bottom = font.getbbox(options.text)
    pad = max(2, (bottom - top) // 5)
    tile = Image.new("RGBA", (right - left + 2 * pad, bottom - top + 2 * pad), (0, 0, 0, 0))

    fill = tuple(options.color) + (round(255 * options.opacity),)
    ImageDraw.Draw(tile).text((pad - left, pad - top), options.text, font=font, fill=fill)

    # Image.rotate turns counter-clockwise
    return tile.rotate(-options.angle_degrees, expand=True, resample=Image.Resampling.BICUBIC)


def _blit(layer: Image.Image, tile: Image.Image, x: int, y: int) -> None:
    """alpha_composite tile at (x, y), clipping whatever falls off the layer"""
    src_left, src_top = max(0, -x), max(0, -y)
    src_right = min(tile.width, layer.width - x)
    src_bottom = min(tile.height, layer.height - y)
    if src_right <= src_left or src_bottom <= src_top:
        return

    clipped = tile.crop((src_left, src_top, src_right, src_bottom))
    layer.alpha_composite(clipped, dest=(max(0, x), max(0, y)))


def generate_watermark_layer(options: WatermarkOptions, canvas_size: Size) -> WatermarkLayer:
    """Tile options.text across a transparent canvas_size layer.

    Anchors sit on a square grid centered on the canvas, spacing apart. Each
    anchor is rotated about the canvas center; anchors whose tile would not
    touch the canvas are skipped.
    """
    _validate(options, canvas_size)

    min_side = canvas_size.min_side
    font_size = max(1, round(min_side * FONT_FRACTION * options.relative_size))
    spacing = max(1.0, options.spacing * min_side)
    rings = math.ceil(canvas_size.diagonal / spacing) + MARGIN_RINGS
    if (2 * rings + 1) ** 2 > MAX_ANCHORS:
        raise InvalidArgument(
            f"Watermark spacing {options.spacing} is too dense for a {canvas_size.width}x{canvas_size.height} canvas"
        )

    font = load_font(font_size)
    tile = _render_tile(options, font)
    half_w, half_h = tile.width / 2, tile.height / 2

    layer = Image.new("RGBA", canvas_size.as_tuple(), (0, 0, 0, 0))
    center_x, center_y = canvas_size.width / 2, canvas_size.height / 2
    radians = math.radians(options.angle_degrees)
    cos, sin = math.cos(radians), math.sin(radians)

    evaluated = 0
    drawn = 0
    for row in range(-rings, rings + 1):
        for col in range(-rings, rings + 1):
            evaluated += 1
            dx, dy = col * spacing, row * spacing
            anchor_x = center_x + cos * dx - sin * dy
            anchor_y = center_y + sin * dx + cos * dy

            if (anchor_x + half_w < 0 or anchor_x - half_w > canvas_size.width or
                    anchor_y + half_h < 0 or anchor_y - half_h > canvas_size.height):
                continue

            _blit(layer, tile, round(anchor_x - half_w), round(anchor_y - half_h))
            drawn += 1

    imaging_logger.debug("Generated watermark layer", extra={
        "canvas_size": canvas_size.as_tuple(),
        "font_size": font_size,
        "rings": rings,
        "anchors_evaluated": evaluated,
        "tiles_drawn": drawn
    })
    return WatermarkLayer(image=layer, anchors_evaluated=evaluated, tiles_drawn=drawn)
