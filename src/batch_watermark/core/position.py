from dataclasses import dataclass

from . import DEFAULT_SCALE, MIN_WATERMARK_SIZE
from .errors import InvalidGeometry


@dataclass(frozen=True)
class PlacementRect:
    """Watermark rectangle in base-image pixel coordinates."""

    x: int
    y: int
    width: int
    height: int

    def clip(self, base_width: int, base_height: int) -> "PlacementRect":
        """Return the part of the rectangle that lies inside the base image."""
        width = max(0, min(self.width, base_width - self.x))
        height = max(0, min(self.height, base_height - self.y))
        return PlacementRect(x=self.x, y=self.y, width=width, height=height)

    def contains(self, px: int, py: int) -> bool:
        return self.x <= px < self.x + self.width and self.y <= py < self.y + self.height


@dataclass(frozen=True)
class WatermarkGeometry:
    """Scaled watermark size together with its placement."""

    width: int
    height: int
    rect: PlacementRect


def scaled_watermark_size(
    base_width: int,
    watermark_width: int,
    watermark_height: int,
    scale: float = DEFAULT_SCALE,
) -> tuple[int, int]:
    """
    Calculate watermark size relative to the base width.

    The aspect ratio of the watermark is preserved and neither side
    drops below MIN_WATERMARK_SIZE.
    Sizes use round(), which rounds halves to even: an 8x5 watermark
    on a 100px base becomes 20x12, not 20x13.
    """
    if watermark_width <= 0 or watermark_height <= 0 or base_width <= 0:
        raise InvalidGeometry(
            f"Cannot scale {watermark_width}x{watermark_height} watermark "
            f"onto base of width {base_width}"
        )

    width = max(MIN_WATERMARK_SIZE, round(base_width * scale))
    height = max(MIN_WATERMARK_SIZE, round(width * watermark_height / watermark_width))
    return width, height


def calculate_placement(
    base_width: int,
    base_height: int,
    watermark_width: int,
    watermark_height: int,
    margin: int = 0,
) -> PlacementRect:
    """
    Calculate watermark position in the bottom-right corner.

    Subtraction saturates at zero, so a watermark larger than the base
    (plus margin) is pinned to the top-left corner instead of going negative.
    """
    x = max(0, base_width - watermark_width - margin)
    y = max(0, base_height - watermark_height - margin)
    return PlacementRect(x=x, y=y, width=watermark_width, height=watermark_height)


def resolve_geometry(
    base_size: tuple[int, int],
    watermark_size: tuple[int, int],
    scale: float = DEFAULT_SCALE,
    margin: int = 0,
) -> WatermarkGeometry:
    """
    Resolve scaled watermark size and placement for one base image.

    Args:
        base_size: (width, height) of the photo
        watermark_size: (width, height) of the undecorated watermark
        scale: Target watermark width as a fraction of base width
        margin: Distance from the right and bottom edges in pixels

    Returns:
        WatermarkGeometry with the scaled size and placement rectangle
    """
    base_width, base_height = base_size
    width, height = scaled_watermark_size(base_width, *watermark_size, scale=scale)
    rect = calculate_placement(base_width, base_height, width, height, margin)
    # Watermark larger than the base is cropped to the visible part
    rect = rect.clip(base_width, base_height)
    return WatermarkGeometry(width=width, height=height, rect=rect)
