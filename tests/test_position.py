import pytest

from batch_watermark.core.errors import InvalidGeometry
from batch_watermark.core.position import (
    PlacementRect,
    calculate_placement,
    resolve_geometry,
    scaled_watermark_size,
)


def test_reference_example():
    geometry = resolve_geometry((800, 600), (300, 150), scale=0.20, margin=20)

    assert (geometry.width, geometry.height) == (160, 80)
    assert geometry.rect == PlacementRect(x=620, y=500, width=160, height=80)


def test_aspect_ratio_is_preserved():
    assert scaled_watermark_size(1000, 200, 100) == (200, 100)
    assert scaled_watermark_size(1000, 100, 300) == (200, 600)


def test_halves_round_to_even():
    # 20 * 5 / 8 = 12.5
    assert scaled_watermark_size(100, 8, 5) == (20, 12)


def test_tiny_base_floors_to_one_pixel():
    assert scaled_watermark_size(2, 1000, 10) == (1, 1)


@pytest.mark.parametrize(
    "base_width, wm_size",
    [(0, (100, 50)), (800, (0, 50)), (800, (100, 0))],
)
def test_zero_dimensions_are_rejected(base_width, wm_size):
    with pytest.raises(InvalidGeometry):
        scaled_watermark_size(base_width, *wm_size)


def test_placement_saturates_at_origin():
    rect = calculate_placement(100, 50, 120, 80, margin=20)
    assert (rect.x, rect.y) == (0, 0)


@pytest.mark.parametrize(
    "base, wm, scale, margin",
    [
        ((800, 600), (300, 150), 0.2, 20),
        ((50, 40), (300, 150), 0.2, 100),
        ((100, 20), (10, 100), 0.5, 5),  # watermark taller than base
        ((30, 30), (10, 10), 2.0, 0),  # scaled wider than base
        ((1, 1), (5, 5), 0.2, 0),
    ],
)
def test_rect_always_inside_base(base, wm, scale, margin):
    rect = resolve_geometry(base, wm, scale=scale, margin=margin).rect
    base_width, base_height = base

    assert 0 <= rect.x and 0 <= rect.y
    assert rect.x + rect.width <= base_width
    assert rect.y + rect.height <= base_height


def test_clip_and_contains():
    rect = PlacementRect(x=90, y=40, width=20, height=20).clip(100, 50)

    assert (rect.width, rect.height) == (10, 10)
    assert rect.contains(95, 45)
    assert not rect.contains(100, 45)
    assert not rect.contains(89, 45)
