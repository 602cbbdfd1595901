# backend/axioscan/imaging/codec.py
import io

from PIL import Image, ImageOps, UnidentifiedImageError

from ..config import settings
from ..errors import ImageCodecError

JPEG = "JPEG"
PNG = "PNG"

CONTENT_TYPES = {
    JPEG: "image/jpeg",
    PNG: "image/png",
}

EXTENSIONS = {
    JPEG: "jpg",
    PNG: "png",
}


def decode_image(data: bytes) -> Image.Image:
    """Decode raw bytes into a fully loaded, upright Pillow image"""
    if not data:
        raise ImageCodecError("Image data is empty")

    try:
        with Image.open(io.BytesIO(data)) as img:
            img.load()
            image = ImageOps.exif_transpose(img)
    except (UnidentifiedImageError, OSError, ValueError) as e:
        raise ImageCodecError(f"Failed to decode image: {e}") from e

    if image.mode not in ("RGB", "RGBA", "L"):
        image = image.convert("RGBA" if "A" in image.getbands() else "RGB")
    return image


def flatten_alpha(image: Image.Image, background=(255, 255, 255)) -> Image.Image:
    """Composite an image with alpha onto an opaque background"""
    if image.mode == "RGB":
        return image
    if image.mode in ("RGBA", "LA") or (image.mode == "P" and "transparency" in image.info):
        rgba = image.convert("RGBA")
        base = Image.new("RGBA", rgba.size, background + (255,))
        return Image.alpha_composite(base, rgba).convert("RGB")
    return image.convert("RGB")


def encode_image(image: Image.Image, format: str = JPEG, quality: int | None = None) -> bytes:
    """Encode an image; JPEG output is flattened onto white first"""
    buffer = io.BytesIO()
    try:
        if format == JPEG:
            flatten_alpha(image).save(
                buffer,
                format=JPEG,
                quality=quality if quality is not None else settings.JPEG_QUALITY
            )
        elif format == PNG:
            image.save(buffer, format=PNG)
        else:
            raise ImageCodecError(f"Unsupported image format: {format}")
    except (OSError, ValueError) as e:
        raise ImageCodecError(f"Failed to encode image as {format}: {e}") from e
    return buffer.getvalue()


def make_thumbnail(image: Image.Image, max_size: int | None = None) -> Image.Image:
    """Downscale a copy so that its long edge is at most max_size"""
    limit = max_size or settings.THUMBNAIL_MAX_SIZE
    thumbnail = image.copy()
    thumbnail.thumbnail((limit, limit), Image.Resampling.LANCZOS)
    return thumbnail


def raster_fingerprint(image: Image.Image) -> bytes:
    """Lossless encoding used to decide whether two rasters are byte-identical"""
    return encode_image(image, format=PNG)
