import math

import numpy as np
import pytest

from helmet_engine.common.enums import FillKind, SegmentKind, ShapeGroup
from helmet_engine.common.models import HelmetStyle, Pose
from helmet_engine.geometry.helmet_builder import (
    HelmetGeometryBuilder, build_helmet, faceplate_transform,
)
from helmet_engine.geometry.paths import rounded_polygon, rounded_rect, similarity, transform_points


def points_of(shape):
    return np.array(shape.points)


def test_build_is_deterministic(pose):
    first = build_helmet(pose, 0.37)
    second = build_helmet(pose, 0.37)

    assert first.model_dump_json() == second.model_dump_json()


def test_shape_groups(pose):
    shapes = build_helmet(pose, 0.5)
    faceplate = {s.name for s in shapes.group(ShapeGroup.FACEPLATE)}
    shell = {s.name for s in shapes.group(ShapeGroup.SHELL)}

    assert {'faceplate', 'eye_left', 'eye_right', 'brow_ridge', 'mouth_slit'} <= faceplate
    assert {'shell', 'vent_left', 'vent_right', 'forehead_plate', 'face_recess'} <= shell


def test_drawing_order_back_to_front(pose):
    names = [s.name for s in build_helmet(pose, 0.0)]

    assert names[0] == 'shell'
    assert names[-1] == 'forehead_plate'
    assert names.index('faceplate') < names.index('eye_left')


def test_faceplate_transform_is_identity_when_closed():
    assert np.array_equal(faceplate_transform(HelmetStyle(), 0.0), np.eye(3))


def test_closed_faceplate_sits_at_rest_position(pose):
    style = HelmetStyle()
    plate = build_helmet(pose, 0.0, style).get('faceplate')
    x, y = plate.segments[0].points[0]

    assert x == pytest.approx(pose.center_x - style.faceplate_width * 0.46 * pose.scale)
    expected_y = style.faceplate_offset_y - style.faceplate_height * 0.35
    assert y == pytest.approx(pose.center_y + expected_y * pose.scale)


def test_opening_moves_only_faceplate_group(pose):
    closed = build_helmet(pose, 0.0)
    opened = build_helmet(pose, 1.0)

    for shape in closed.group(ShapeGroup.SHELL):
        assert opened.get(shape.name).segments == shape.segments
    for shape in closed.group(ShapeGroup.FACEPLATE):
        assert not np.allclose(points_of(opened.get(shape.name)), points_of(shape))


def test_open_faceplate_lifts_and_tilts(pose):
    style = HelmetStyle()
    closed = points_of(build_helmet(pose, 0.0, style).get('faceplate'))
    opened = points_of(build_helmet(pose, 1.0, style).get('faceplate'))

    assert opened[:, 1].mean() < closed[:, 1].mean() - 0.5 * style.lift_max * pose.scale
    # Outline starts at the top-left corner; the fourth point is the top-right corner
    top_left, top_right = opened[0], opened[3]
    tilt = math.atan2(top_right[1] - top_left[1], top_right[0] - top_left[0])
    assert tilt == pytest.approx(-style.hinge_angle_max, abs=1e-9)


def test_shade_only_when_open(pose):
    style = HelmetStyle()
    names = [s.name for s in build_helmet(pose, 0.0, style)]
    assert 'faceplate_shade' not in names

    shade = build_helmet(pose, 0.4, style).get('faceplate_shade')
    assert shade.opacity == pytest.approx(style.shade_max_opacity * 0.4)


def test_progress_is_clamped(pose):
    assert build_helmet(pose, 1.7) == build_helmet(pose, 1.0)
    assert build_helmet(pose, -3.0) == build_helmet(pose, 0.0)
    assert build_helmet(pose, float('nan')) == build_helmet(pose, 0.0)


def test_pose_transform_is_rigid():
    small = Pose(center_x=0.0, center_y=0.0, scale=50.0, rotation=0.0)
    big = Pose(center_x=400.0, center_y=-120.0, scale=100.0, rotation=0.7)
    a = build_helmet(small, 0.3)
    b = build_helmet(big, 0.3)

    # Same shapes, mapped by one similarity transform: scale 2, rotation 0.7, offset
    expected = transform_points(similarity(400.0, -120.0, 2.0, 0.7), np.vstack([points_of(s) for s in a]))
    actual = np.vstack([points_of(s) for s in b])
    assert np.allclose(actual, expected)


def test_eyes_are_mirrored_about_center(pose):
    shapes = build_helmet(pose, 0.0)
    left = points_of(shapes.get('eye_left'))
    right = points_of(shapes.get('eye_right'))

    mirrored = right.copy()
    mirrored[:, 0] = 2 * pose.center_x - right[:, 0]

    # paths repeat their start point, so compare distinct vertices
    assert np.allclose(np.unique(np.round(left, 6), axis=0), np.unique(np.round(mirrored, 6), axis=0))


def test_eyes_carry_glow_hint(pose):
    eye = build_helmet(pose, 0.0).get('eye_left')

    assert eye.glow is not None
    assert eye.glow.blur == pytest.approx(HelmetStyle().glow_blur * pose.scale)


def test_gradient_endpoints_are_in_pixels(pose):
    style = HelmetStyle()
    shell = build_helmet(pose, 0.0, style).get('shell')
    ry = style.shell_height / 2

    assert shell.fill.kind == FillKind.LINEAR
    assert shell.fill.start == pytest.approx((pose.center_x, pose.center_y + (style.shell_offset_y - ry) * pose.scale))
    assert shell.fill.end == pytest.approx((pose.center_x, pose.center_y + (style.shell_offset_y + ry) * pose.scale))


def test_stroke_width_has_pixel_floor():
    tiny = Pose(center_x=10.0, center_y=10.0, scale=10.0, rotation=0.0)
    shell = build_helmet(tiny, 0.0).get('shell')

    assert shell.stroke.width == 2.0


def test_builder_uses_configured_style(pose):
    builder = HelmetGeometryBuilder.from_config({'eye_fill': '#ff0000', 'lift_max': 0.0, 'hinge_angle_max': 0.0})
    closed = build_helmet(pose, 0.0, builder.style)
    opened = builder.build(pose, 1.0)

    assert opened.get('eye_left').fill.color == '#ff0000'
    assert opened.get('faceplate').segments == closed.get('faceplate').segments


def test_style_validation_rejects_bad_proportions():
    with pytest.raises(ValueError):
        HelmetStyle(shell_width=-1.0)


def test_style_rejects_unknown_keys():
    with pytest.raises(ValueError):
        HelmetGeometryBuilder.from_config({'eye_fil': '#ff0000'})


def test_rounded_polygon_structure():
    square = [(0.0, 0.0), (10.0, 0.0), (10.0, 10.0), (0.0, 10.0)]
    segments = rounded_polygon(square, 2.0).transformed(np.eye(3))
    kinds = [s.kind for s in segments]

    assert kinds[0] == SegmentKind.MOVE
    assert kinds[-1] == SegmentKind.CLOSE
    assert kinds.count(SegmentKind.QUAD) == 4
    assert segments[0].points[0] == (0.0, 2.0)


def test_rounded_rect_radius_limited_to_half_side():
    segments = rounded_rect(0.0, 0.0, 4.0, 2.0, 10.0).transformed(np.eye(3))
    xs = [p[0] for s in segments for p in s.points]
    ys = [p[1] for s in segments for p in s.points]

    assert min(xs) == -2.0 and max(xs) == 2.0
    assert min(ys) == -1.0 and max(ys) == 1.0
