# backend/axioscan/imaging/annotations.py
"""Overlay capture for annotations, signatures and redactions.

Captured input is rasterized onto a transparent layer of the page size; the
edit session bakes the layer into the page with composite_over.
"""
from dataclasses import dataclass, field
from typing import List, Sequence, Tuple

from PIL import Image, ImageDraw

from ..errors import InvalidArgument
from .types import Rect, Size


@dataclass
class Stroke:
    points: List[Tuple[float, float]]
    color: Tuple[int, int, int] = (0, 0, 0)
    width: int = 4
    opacity: float = 1.0


@dataclass
class RedactionBox:
    rect: Rect
    color: Tuple[int, int, int] = (0, 0, 0)


@dataclass
class AnnotationOverlay:
    strokes: List[Stroke] = field(default_factory=list)
    redactions: List[RedactionBox] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not self.strokes and not self.redactions


def rasterize_strokes(strokes: Sequence[Stroke], canvas_size: Size) -> Image.Image:
    """Draw each stroke as a polyline with round joins on a transparent layer"""
    layer = Image.new("RGBA", canvas_size.as_tuple(), (0, 0, 0, 0))

    for stroke in strokes:
        if stroke.width <= 0:
            raise InvalidArgument(f"Stroke width must be positive, got {stroke.width}")
        if not 0.0 <= stroke.opacity <= 1.0:
            raise InvalidArgument(f"Stroke opacity must be within [0, 1], got {stroke.opacity}")
        if not stroke.points:
            continue

        # Each stroke gets its own layer so overlapping segments don't stack alpha
        stroke_layer = Image.new("RGBA", layer.size, (0, 0, 0, 0))
        draw = ImageDraw.Draw(stroke_layer)
        fill = tuple(stroke.color) + (round(255 * stroke.opacity),)

        if len(stroke.points) == 1:
            x, y = stroke.points[0]
            radius = stroke.width / 2
            draw.ellipse((x - radius, y - radius, x + radius, y + radius), fill=fill)
        else:
            draw.line(stroke.points, fill=fill, width=stroke.width, joint="curve")

        layer.alpha_composite(stroke_layer)

    return layer


def redaction_layer(boxes: Sequence[RedactionBox], canvas_size: Size) -> Image.Image:
    """Opaque filled rectangles; redactions are never partially transparent"""
    layer = Image.new("RGBA", canvas_size.as_tuple(), (0, 0, 0, 0))
    draw = ImageDraw.Draw(layer)

    for box in boxes:
        if box.rect.width <= 0 or box.rect.height <= 0:
            raise InvalidArgument(f"Redaction must have a positive area, got {box.rect}")
        draw.rectangle(
            (box.rect.x, box.rect.y, box.rect.right - 1, box.rect.bottom - 1),
            fill=tuple(box.color) + (255,)
        )

    return layer


def render_overlay(overlay: AnnotationOverlay, canvas_size: Size) -> Image.Image:
    """Strokes first, redactions on top so nothing drawn can show through them"""
    layer = rasterize_strokes(overlay.strokes, canvas_size)
    layer.alpha_composite(redaction_layer(overlay.redactions, canvas_size))
    return layer
