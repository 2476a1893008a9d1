"""
Placement formula and landmark tests.
"""

import math

import pytest

from chin_generator.landmarks import FaceBox, LandmarkSet
from chin_generator.placement import (
    PlacementParams,
    PlacementRect,
    detected_placement,
    fallback_placement,
)


def assert_rect(rect, x, y, width, height):
    assert rect.x == pytest.approx(x)
    assert rect.y == pytest.approx(y)
    assert rect.width == pytest.approx(width)
    assert rect.height == pytest.approx(height)


def test_detected_placement_matches_formula():
    face = FaceBox(min_x=100, min_y=50, max_x=300, max_y=350)

    rect = detected_placement(face, PlacementParams(intensity=0.5))
    # w = 200 * 0.6, h = 300 * 0.325
    assert_rect(rect, 140, 311, 120, 97.5)


def test_detected_placement_with_width_factor_and_offset():
    face = FaceBox(min_x=100, min_y=50, max_x=300, max_y=350)

    rect = detected_placement(face, PlacementParams(0.5, width_factor=1.5, vertical_offset=0.1))
    assert_rect(rect, 110, 341, 180, 97.5)


@pytest.mark.parametrize("intensity, expected", [
    (0.0, (155, 320, 90, 75)),
    (1.0, (125, 302, 150, 120)),
    (2.0, (95, 284, 210, 165)),
])
def test_detected_placement_scales_with_intensity(intensity, expected):
    face = FaceBox(min_x=100, min_y=50, max_x=300, max_y=350)
    assert_rect(detected_placement(face, PlacementParams(intensity)), *expected)


def test_fallback_placement_matches_formula():
    rect = fallback_placement(400, 300, PlacementParams(intensity=0.5))
    assert_rect(rect, 120, 195, 160, 60)


def test_fallback_placement_with_width_factor_and_offset():
    rect = fallback_placement(400, 300, PlacementParams(0.5, width_factor=0.5, vertical_offset=0.1))
    assert_rect(rect, 160, 225, 80, 60)


@pytest.mark.parametrize("rect", [
    PlacementRect(120, 195, 160, 60),
    PlacementRect(-30.7, -10.2, 100, 50),
    PlacementRect(350, 280, 200, 200),
    PlacementRect(-500, -500, 10, 10),
    PlacementRect(1000, 1000, 10, 10),
    PlacementRect(10.9, 10.9, 0.5, 0.5),
    PlacementRect(0, 0, math.inf, 10),
    PlacementRect(-math.inf, 0, math.inf, 10),
    PlacementRect(math.nan, 5, 10, 10),
])
def test_clamped_rectangle_stays_inside_bitmap(rect):
    clamped = rect.clamped(400, 300)
    assert clamped.x >= 0 and clamped.y >= 0
    assert clamped.width >= 0 and clamped.height >= 0
    assert clamped.x + clamped.width <= 400
    assert clamped.y + clamped.height <= 300


def test_clamped_rectangle_inside_bitmap_is_unchanged():
    clamped = PlacementRect(120, 195, 160, 60).clamped(400, 300)
    assert (clamped.x, clamped.y, clamped.width, clamped.height) == (120, 195, 160, 60)


def test_landmark_bounding_box_in_pixels():
    landmarks = LandmarkSet.from_normalized([(0.25, 0.1), (0.75, 0.9), (0.5, 0.5)])

    box = landmarks.bounding_box(400, 200)
    assert (box.min_x, box.min_y, box.max_x, box.max_y) == (100, 20, 300, 180)
    assert box.width == 200
    assert box.height == 160
    assert box.center_x == 200


def test_empty_landmark_set_is_falsy():
    landmarks = LandmarkSet.from_normalized([])
    assert not landmarks
    with pytest.raises(ValueError):
        landmarks.bounding_box(10, 10)


def test_eye_angle_uses_eye_landmarks():
    points = [(0.5, 0.5)] * 300
    points[33] = (0.4, 0.4)
    points[263] = (0.6, 0.5)
    landmarks = LandmarkSet.from_normalized(points)

    assert landmarks.eye_angle(100, 100) == pytest.approx(math.atan2(10, 20))
    # Pixel space, not normalized space
    assert landmarks.eye_angle(200, 100) == pytest.approx(math.atan2(10, 40))


def test_eye_angle_is_zero_for_short_landmark_sets():
    landmarks = LandmarkSet.from_normalized([(0.1, 0.1)] * 263)
    assert landmarks.eye_angle(100, 100) == 0.0
