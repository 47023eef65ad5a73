"""Image fingerprinting, type detection and format conversion."""

from __future__ import annotations

import hashlib
import io
import logging
import re
from typing import Tuple

from filetype import guess
from PIL import Image

from .config import Settings
from .errors import DecodeError
from .utils import reference_extension

logger = logging.getLogger("local_images")

UNKNOWN_EXTENSION = "unknown"
MAX_EXTENSION_LENGTH = 5
SVG_SNIFF_BYTES = 4096

_SVG_PATTERN = re.compile(
    r"^\s*(?:<\?xml[^>]*>\s*)?"
    r"(?:(?:<!--.*?-->|<!DOCTYPE[^>]*>)\s*)*"
    r"<svg[\s>/]",
    re.IGNORECASE | re.DOTALL,
)


def fingerprint(data: bytes) -> str:
    """Return a stable content hash used for deduplicated file names."""
    return hashlib.md5(data).hexdigest()


def is_svg(data: bytes) -> bool:
    """Check whether the bytes look like an SVG document."""
    head = data[:SVG_SNIFF_BYTES].decode("utf-8", errors="ignore").lstrip("\ufeff")
    return bool(_SVG_PATTERN.match(head))


def sniff_extension(data: bytes) -> str:
    """Detect a file extension from the byte signature, or return ''."""
    kind = guess(data)
    if kind is None:
        return ""
    ext = kind.extension.lower()
    if ext == "jpeg":
        return "jpg"
    return ext


def detect_extension(data: bytes, reference: str) -> str:
    """Pick an extension for ``data``, preferring content over the reference.

    The byte signature wins; SVG is recognised textually when the signature
    is missing or XML-like; otherwise the extension written in the reference
    is used. ``"unknown"`` is returned when neither yields a short token.
    """
    sniffed = sniff_extension(data)
    if (not sniffed or sniffed == "xml") and is_svg(data):
        return "svg"
    if sniffed and len(sniffed) <= MAX_EXTENSION_LENGTH:
        return sniffed

    from_reference = reference_extension(reference)
    if from_reference and len(from_reference) <= MAX_EXTENSION_LENGTH:
        return from_reference
    return UNKNOWN_EXTENSION


def _flatten_to_rgb(image: Image.Image) -> Image.Image:
    if image.mode in ("RGBA", "LA") or (
        image.mode == "P" and "transparency" in image.info
    ):
        rgba = image.convert("RGBA")
        background = Image.new("RGB", rgba.size, (255, 255, 255))
        background.paste(rgba, mask=rgba.getchannel("A"))
        return background
    return image.convert("RGB")


def convert_to_jpeg(data: bytes, quality: int) -> bytes:
    """Re-encode raster image bytes as JPEG at the given quality."""
    try:
        with Image.open(io.BytesIO(data)) as image:
            image.load()
            rgb = _flatten_to_rgb(image)
    except (OSError, ValueError, Image.DecompressionBombError) as exc:
        raise DecodeError(f"Cannot decode image for conversion: {exc}") from exc

    buffer = io.BytesIO()
    rgb.save(buffer, format="JPEG", quality=quality)
    return buffer.getvalue()


def maybe_convert(data: bytes, ext: str, settings: Settings) -> Tuple[bytes, str]:
    """Apply the PNG to JPEG policy; other content passes through unchanged."""
    if not settings.png_to_jpeg or ext != "png":
        return data, ext
    converted = convert_to_jpeg(data, settings.jpeg_quality)
    logger.debug(
        "Converted PNG (%d bytes) to JPEG (%d bytes) at quality %d",
        len(data),
        len(converted),
        settings.jpeg_quality,
    )
    return converted, "jpg"
