"""
Chin renderer tests.

Both renderers must draw deterministically, tolerate off-canvas rectangles
and leave the bitmap alone when there is nothing to draw.
"""

import math

import numpy as np
import pytest
from PIL import Image

from chin_generator.config import Config
from chin_generator.placement import PlacementRect
from chin_generator.renderers import (
    AssetChinRenderer,
    ChinAssets,
    ProceduralChinRenderer,
    composite_over,
    create_renderer,
)


def solid(width, height, color):
    bitmap = np.zeros((height, width, 4), dtype=np.uint8)
    bitmap[..., :3] = color
    bitmap[..., 3] = 255
    return bitmap


def flat_assets(width=20, height=10, outline_column=None):
    mask = np.zeros((height, width, 4), dtype=np.uint8)
    mask[...] = 255
    outline = np.zeros((height, width, 4), dtype=np.uint8)
    if outline_column is not None:
        outline[:, outline_column] = (0, 0, 0, 255)
    return ChinAssets(mask, outline)


def test_procedural_chin_fills_both_ellipses():
    bitmap = solid(200, 200, (90, 90, 90))
    renderer = ProceduralChinRenderer(outline_color=(0, 0, 0), stroke_width=4)

    renderer.draw(bitmap, PlacementRect(50, 50, 100, 80), (10, 200, 30))

    # Ellipse centres at 25% / 75% of the width, 60% of the height
    assert tuple(bitmap[98, 75]) == (10, 200, 30, 255)
    assert tuple(bitmap[98, 125]) == (10, 200, 30, 255)
    # Centre seam
    assert tuple(bitmap[85, 100]) == (0, 0, 0, 255)
    # Untouched corner
    assert tuple(bitmap[0, 0]) == (90, 90, 90, 255)


@pytest.mark.parametrize("rect", [
    PlacementRect(-500, -500, 100, 100),
    PlacementRect(150, 150, 400, 400),
    PlacementRect(10, 10, -40, -20),
    PlacementRect(10, 10, 0, 0),
])
def test_procedural_chin_tolerates_odd_rectangles(rect):
    bitmap = solid(200, 200, (90, 90, 90))
    ProceduralChinRenderer().draw(bitmap, rect, (200, 150, 120), angle=0.3)


@pytest.mark.parametrize("renderer", [
    ProceduralChinRenderer(),
    AssetChinRenderer(ChinAssets.from_procedural(200, 120)),
])
@pytest.mark.parametrize("rect", [
    PlacementRect(-4e10, 100, 8e10, 3e9),
    PlacementRect(100, 100, 1e12, 1e12),
    PlacementRect(0, 0, math.inf, 50),
    PlacementRect(math.nan, 0, 50, 50),
])
def test_huge_or_non_finite_rectangles_do_not_raise(renderer, rect):
    bitmap = solid(200, 200, (90, 90, 90))
    renderer.draw(bitmap, rect, (200, 150, 120), angle=0.1)
    assert bitmap.shape == (200, 200, 4)


def test_procedural_chin_much_larger_than_bitmap_still_draws():
    bitmap = solid(200, 200, (90, 90, 90))
    # Left ellipse centre lands on the bitmap centre, far larger than the bitmap
    ProceduralChinRenderer().draw(bitmap, PlacementRect(-1e9 * 0.25 + 100, 100 - 1e9 * 0.6,
                                                        1e9, 1e9), (10, 200, 30))
    assert tuple(bitmap[100, 100]) == (10, 200, 30, 255)


def test_asset_renderer_is_noop_without_assets():
    bitmap = solid(100, 100, (50, 50, 50))
    before = bitmap.copy()

    AssetChinRenderer(ChinAssets()).draw(bitmap, PlacementRect(10, 10, 50, 30), (200, 100, 50))
    assert np.array_equal(bitmap, before)


def test_asset_renderer_tints_mask_and_keeps_outline_on_top():
    bitmap = solid(100, 100, (50, 50, 50))
    renderer = AssetChinRenderer(flat_assets(outline_column=10))

    # 1:1 scale, so the sprite lands on whole pixels
    renderer.draw(bitmap, PlacementRect(10, 10, 20, 10), (200, 100, 50))

    assert tuple(bitmap[15, 15]) == (200, 100, 50, 255)
    assert tuple(bitmap[15, 20]) == (0, 0, 0, 255)
    assert tuple(bitmap[5, 5]) == (50, 50, 50, 255)
    assert tuple(bitmap[15, 40]) == (50, 50, 50, 255)


def test_asset_renderer_scales_into_rectangle():
    bitmap = solid(100, 100, (50, 50, 50))
    AssetChinRenderer(flat_assets()).draw(bitmap, PlacementRect(20, 30, 40, 20), (200, 100, 50))

    assert tuple(bitmap[40, 40]) == (200, 100, 50, 255)
    assert tuple(bitmap[25, 40]) == (50, 50, 50, 255)
    assert tuple(bitmap[40, 70]) == (50, 50, 50, 255)


def test_asset_renderer_rotates_about_rectangle_centre():
    bitmap = solid(100, 100, (50, 50, 50))
    AssetChinRenderer(flat_assets()).draw(bitmap, PlacementRect(40, 45, 20, 10), (200, 100, 50),
                                          angle=math.pi / 2)

    # A quarter turn makes the 20x10 sprite 10 wide and 20 tall
    assert tuple(bitmap[42, 50]) == (200, 100, 50, 255)
    assert tuple(bitmap[50, 42]) == (50, 50, 50, 255)


def test_asset_renderer_off_canvas_is_silent():
    bitmap = solid(50, 50, (50, 50, 50))
    before = bitmap.copy()
    AssetChinRenderer(flat_assets()).draw(bitmap, PlacementRect(500, 500, 40, 20), (1, 2, 3))
    assert np.array_equal(bitmap, before)


@pytest.mark.parametrize("renderer", [
    ProceduralChinRenderer(),
    AssetChinRenderer(ChinAssets.from_procedural(200, 120)),
])
def test_rendering_is_idempotent(renderer):
    original = solid(160, 120, (128, 128, 128))
    first, second = original.copy(), original.copy()
    rect = PlacementRect(30.5, 50.25, 90, 45)

    renderer.draw(first, rect, (180, 140, 120), angle=0.2)
    renderer.draw(second, rect, (180, 140, 120), angle=0.2)

    assert np.array_equal(first, second)
    assert not np.array_equal(first, original)


def test_composite_over_blends_straight_alpha():
    target = solid(1, 1, (0, 0, 255))
    source = np.array([[[255, 0, 0, 128]]], dtype=np.uint8)

    composite_over(target, source)
    assert tuple(target[0, 0]) == (128, 0, 127, 255)


def test_built_in_assets_have_shape_and_line_art():
    assets = ChinAssets.from_procedural(200, 120)

    assert assets.is_ready
    assert assets.mask.shape == (120, 200, 4)
    assert assets.mask[..., 3].max() == 255
    assert assets.mask[0, 0, 3] == 0
    assert assets.outline[..., 3].max() == 255
    assert not np.any(assets.outline[..., :3][assets.outline[..., 3] == 255])


def test_assets_round_trip_through_png(tmp_path):
    mask_path, outline_path = ChinAssets.from_procedural(120, 80).save(tmp_path)

    loaded = ChinAssets.load(mask_path, outline_path)
    assert loaded.is_ready
    assert loaded.mask.shape == (80, 120, 4)


def test_missing_asset_files_are_not_ready(tmp_path):
    assets = ChinAssets.load(tmp_path / "mask.png", tmp_path / "outline.png")
    assert not assets.is_ready


def test_mask_without_alpha_uses_luminance(tmp_path):
    shape = np.zeros((10, 10, 3), dtype=np.uint8)
    shape[2:8, 2:8] = 255
    Image.fromarray(shape).save(tmp_path / "mask.png")
    Image.fromarray(np.zeros((10, 10, 4), dtype=np.uint8)).save(tmp_path / "outline.png")

    assets = ChinAssets.load(tmp_path / "mask.png", tmp_path / "outline.png")
    assert assets.mask[5, 5, 3] == 255
    assert assets.mask[0, 0, 3] == 0


def test_create_renderer_follows_config(tmp_path):
    procedural = create_renderer(Config(renderer="procedural", stroke_width=5))
    assert isinstance(procedural, ProceduralChinRenderer)
    assert procedural.stroke_width == 5

    asset = create_renderer(Config(renderer="asset", mask_asset=tmp_path / "missing.png",
                                   outline_asset=tmp_path / "missing_outline.png"))
    assert isinstance(asset, AssetChinRenderer)
    assert asset.assets.is_ready
