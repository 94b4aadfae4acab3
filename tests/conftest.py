import numpy as np
import pytest

from batch_watermark.core.models import WatermarkSpec

from .images import encode, gradient, solid


@pytest.fixture
def watermark_array() -> np.ndarray:
    """300x150 white watermark whose alpha ramps from transparent to opaque."""
    image_array = solid(300, 150, (255, 255, 255, 255))
    image_array[:, :, 3] = np.linspace(0, 255, 300, dtype=np.uint8)[np.newaxis, :]
    return image_array


@pytest.fixture
def watermark_png(watermark_array) -> bytes:
    return encode(watermark_array)


@pytest.fixture
def spec(watermark_array) -> WatermarkSpec:
    return WatermarkSpec(image=watermark_array, opacity=0.5, margin=20)


@pytest.fixture
def photo_png() -> bytes:
    return encode(gradient(800, 600))


@pytest.fixture
def photo_jpeg() -> bytes:
    return encode(gradient(640, 480), "JPEG")


@pytest.fixture
def corrupt_bytes() -> bytes:
    return b"\x89PNG\r\n\x1a\nthis is not really a png"
