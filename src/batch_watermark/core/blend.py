import numpy as np
from numpy.typing import NDArray

from . import CHANNEL_MAX, OPAQUE_ALPHA
from .models import RasterImage
from .position import PlacementRect


def blend_pixel(
    base_px: tuple[int, int, int, int],
    watermark_px: tuple[int, int, int, int],
    opacity: float,
) -> tuple[int, int, int, int]:
    """
    Blend a single watermark pixel over a base pixel.

    Scalar reference for composite(); both use the same formula.
    """
    alpha = (watermark_px[3] / CHANNEL_MAX) * opacity
    channels = (
        min(CHANNEL_MAX, max(0, round(b * (1 - alpha) + w * alpha)))
        for b, w in zip(base_px[:3], watermark_px[:3])
    )
    return (*channels, OPAQUE_ALPHA)


def blend_region(
    region: NDArray[np.uint8],
    watermark: NDArray[np.uint8],
    opacity: float,
) -> NDArray[np.uint8]:
    """
    Alpha blend a watermark over an equally sized base region.

    Formula: out = base * (1 - a) + watermark * a, a = (wm_alpha / 255) * opacity

    Returns:
        New uint8 RGBA array; alpha channel is fully opaque
    """
    base_rgb = region[:, :, :3].astype(np.float32)
    wm_rgb = watermark[:, :, :3].astype(np.float32)

    alpha = (watermark[:, :, 3].astype(np.float32) / CHANNEL_MAX) * opacity
    alpha_expanded = alpha[:, :, np.newaxis]  # Shape: (h, w, 1)

    blended = base_rgb * (1.0 - alpha_expanded) + wm_rgb * alpha_expanded

    # Round instead of truncating to avoid darkening
    out = np.empty(region.shape[:2] + (4,), dtype=np.uint8)
    out[:, :, :3] = np.clip(np.rint(blended), 0, CHANNEL_MAX).astype(np.uint8)
    out[:, :, 3] = OPAQUE_ALPHA
    return out


def composite(
    base: RasterImage,
    watermark: RasterImage,
    rect: PlacementRect,
    opacity: float,
) -> RasterImage:
    """
    Composite a resized watermark onto a base image.

    Args:
        base: Base image (H, W, 4) RGBA, not modified
        watermark: Watermark already resized to (rect.height, rect.width) or larger
        rect: Placement rectangle in base coordinates
        opacity: Global opacity (0.0 to 1.0)

    Returns:
        New RGBA image; pixels outside rect are identical to base
    """
    img_h, img_w = base.shape[:2]
    visible = rect.clip(img_w, img_h)

    result = np.array(base, dtype=np.uint8, copy=True)
    if visible.width == 0 or visible.height == 0 or opacity <= 0.0:
        return result

    x, y = visible.x, visible.y
    w, h = visible.width, visible.height

    region = base[y : y + h, x : x + w]
    wm_region = watermark[:h, :w]

    result[y : y + h, x : x + w] = blend_region(region, wm_region, opacity)
    return result
