# backend/axioscan/imaging/__init__.py
from .types import Size, Rect, FlipAxis, FilterKind, CropAspect
from .codec import decode_image, encode_image, make_thumbnail, raster_fingerprint
from .transforms import crop, aspect_crop_rect, rotate, flip, composite_over, adjust_color
from .filters import apply_filter
from .watermark import WatermarkOptions, WatermarkLayer, generate_watermark_layer
from .annotations import Stroke, RedactionBox, AnnotationOverlay, render_overlay

__all__ = [
    "Size", "Rect", "FlipAxis", "FilterKind", "CropAspect",
    "decode_image", "encode_image", "make_thumbnail", "raster_fingerprint",
    "crop", "aspect_crop_rect", "rotate", "flip", "composite_over", "adjust_color",
    "apply_filter",
    "WatermarkOptions", "WatermarkLayer", "generate_watermark_layer",
    "Stroke", "RedactionBox", "AnnotationOverlay", "render_overlay",
]
