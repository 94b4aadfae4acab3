import io
import logging
import time
from pathlib import Path

import numpy as np
from PIL import Image, ImageOps, UnidentifiedImageError

from ..core import DEFAULT_MARGIN, DEFAULT_OPACITY, DEFAULT_SCALE, PNG_COMPRESS_LEVEL
from ..core.blend import composite
from ..core.errors import EncodeFailure, UnsupportedFormat
from ..core.models import RasterImage, WatermarkSpec, freeze
from ..core.position import resolve_geometry

logger = logging.getLogger(__name__)

SUPPORTED_IMAGE_FORMATS = {".png", ".jpg", ".jpeg", ".webp", ".bmp", ".tiff", ".tif"}


def is_supported_image(path: Path) -> bool:
    """Check if file is a supported image format."""
    return path.suffix.lower() in SUPPORTED_IMAGE_FORMATS


def decode_image(data: bytes) -> RasterImage:
    """
    Decode image bytes into a read-only RGBA array.

    EXIF orientation is applied before conversion.

    Raises:
        UnsupportedFormat: If Pillow cannot identify or decode the bytes
    """
    try:
        with Image.open(io.BytesIO(data)) as img:
            img = ImageOps.exif_transpose(img)
            # Convert to RGBA (handles RGB, palette, grayscale, etc.)
            if img.mode != "RGBA":
                img = img.convert("RGBA")
            image_array = np.array(img, dtype=np.uint8)
    except (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError) as e:
        raise UnsupportedFormat(f"Cannot decode image: {e}") from e

    if image_array.ndim != 3 or image_array.shape[2] != 4:
        raise UnsupportedFormat(f"Unexpected pixel layout {image_array.shape}")
    return freeze(image_array)


def encode_png(image_array: RasterImage) -> bytes:
    """Encode an RGBA array as PNG bytes."""
    buffer = io.BytesIO()
    try:
        Image.fromarray(np.ascontiguousarray(image_array)).save(
            buffer, "PNG", compress_level=PNG_COMPRESS_LEVEL
        )
    except (OSError, ValueError, TypeError) as e:
        raise EncodeFailure(f"Cannot encode PNG: {e}") from e
    return buffer.getvalue()


def resize_watermark(watermark: RasterImage, size: tuple[int, int]) -> RasterImage:
    """Resize the watermark to (width, height) with Lanczos filtering."""
    height, width = watermark.shape[:2]
    if (width, height) == size:
        return watermark
    # resize() builds a new image; the shared watermark stays untouched
    resized = Image.fromarray(np.ascontiguousarray(watermark)).resize(size, Image.LANCZOS)
    return np.array(resized, dtype=np.uint8)


def apply_watermark(base: RasterImage, spec: WatermarkSpec) -> RasterImage:
    """
    Watermark one decoded photo.

    The watermark is resized relative to this photo's width, so photos of
    different sizes get proportionally sized watermarks.
    """
    height, width = base.shape[:2]
    geometry = resolve_geometry((width, height), spec.size, scale=spec.scale, margin=spec.margin)
    resized = resize_watermark(spec.image, (geometry.width, geometry.height))
    return composite(base, resized, geometry.rect, spec.opacity)


def process_photo(source_bytes: bytes, spec: WatermarkSpec) -> tuple[bytes, float]:
    """
    Decode, watermark and re-encode a single photo.

    Args:
        source_bytes: Raw photo bytes in any format Pillow can read
        spec: Shared watermark and blending parameters

    Returns:
        Tuple of (PNG bytes, elapsed seconds for decode + composite + encode)
    """
    start = time.perf_counter()

    base = decode_image(source_bytes)
    result_array = apply_watermark(base, spec)
    output = encode_png(result_array)

    duration = time.perf_counter() - start
    logger.debug("Watermarked %dx%d photo in %.4fs", base.shape[1], base.shape[0], duration)
    return output, duration


def process_image(
    input_path: Path,
    watermark_path: Path,
    output_path: Path,
    opacity: float = DEFAULT_OPACITY,
    margin: int = DEFAULT_MARGIN,
    scale: float = DEFAULT_SCALE,
) -> Path:
    """
    Watermark a photo file and write the PNG result.

    Args:
        input_path: Path to input photo
        watermark_path: Path to the watermark image
        output_path: Destination for the PNG output
        opacity: Global watermark opacity
        margin: Distance from the bottom-right edges in pixels
        scale: Watermark width relative to the photo width

    Returns:
        Path to the output file
    """
    watermark = decode_image(watermark_path.read_bytes())
    spec = WatermarkSpec(image=watermark, opacity=opacity, margin=margin, scale=scale)

    output, _ = process_photo(input_path.read_bytes(), spec)
    output_path.write_bytes(output)
    return output_path
