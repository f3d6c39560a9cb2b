# imaging.py
import io
import logging
from PIL import Image, ImageOps


def fit_within(width: int, height: int, max_width: int, max_height: int) -> tuple[int, int]:
    """Scales (width, height) down, preserving aspect ratio, so it fits the bounds. Never scales up."""
    if width > max_width:
        height = height * max_width / width
        width = max_width
    if height > max_height:
        width = width * max_height / height
        height = max_height
    return max(1, round(width)), max(1, round(height))


def resize(data: bytes, max_width: int, max_height: int, quality: int = 90) -> bytes:
    """
    Downscales an encoded image so neither dimension exceeds the bounds and
    re-encodes it in its original format at the given quality. EXIF orientation is applied
    to the pixels first, so the bounds hold for the image as displayed.

    Raises whatever Pillow raises for undecodable input; callers decide whether that is fatal.
    """
    with Image.open(io.BytesIO(data)) as img:
        image_format = img.format
        if not image_format:
            raise ValueError("Could not determine image format")

        img = ImageOps.exif_transpose(img)
        size = fit_within(img.width, img.height, max_width, max_height)
        resized = img.resize(size, Image.Resampling.LANCZOS) if size != img.size else img.copy()

    if image_format == "JPEG" and resized.mode not in ("RGB", "L"):
        resized = resized.convert("RGB")

    buffered = io.BytesIO()
    if image_format in ("JPEG", "WEBP"):
        resized.save(buffered, format=image_format, quality=quality)
    else:
        resized.save(buffered, format=image_format)
    logging.debug(f"Resized {image_format} image to {size[0]}x{size[1]}")
    return buffered.getvalue()
