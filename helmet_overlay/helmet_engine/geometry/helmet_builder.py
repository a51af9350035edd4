# helmet_overlay/helmet_engine/geometry/helmet_builder.py
import math
import numpy as np
from typing import List, Optional
from ..common.enums import ShapeGroup, FillKind
from ..common.models import (
    Pose, HelmetStyle, HelmetShapeSet, ShapeDescriptor, FillStyle, GradientStop,
    StrokeStyle, GlowHint, ColorStops,
)
from .paths import Path, rounded_polygon, rounded_rect, similarity, translation, rotation_about, transform_point

# Forehead plate corners as fractions of the shell size
FOREHEAD_TOP = (0.36, -0.62)
FOREHEAD_BOTTOM = (0.46, -0.38)
# Fraction of the faceplate height at which the hinge sits (top edge)
HINGE_Y_RATIO = -0.35

def _linear_fill(stops: ColorStops, matrix: np.ndarray, y0: float, y1: float) -> FillStyle:
    """Vertical gradient in local space, endpoints resolved to pixels."""
    return FillStyle(
        kind=FillKind.LINEAR,
        stops=tuple(GradientStop(offset=o, color=c) for o, c in stops),
        start=transform_point(matrix, 0.0, y0),
        end=transform_point(matrix, 0.0, y1),
    )

def _solid(color: str) -> FillStyle:
    return FillStyle(kind=FillKind.SOLID, color=color)

def _stroke(color: str, scale: float, ratio: float, min_width: float) -> StrokeStyle:
    return StrokeStyle(color=color, width=max(min_width, scale * ratio))

def faceplate_outline(style: HelmetStyle) -> Path:
    """Closed faceplate outline in faceplate-local units."""
    fw, fh = style.faceplate_width, style.faceplate_height
    return (Path()
            .move_to(-fw * 0.46, -fh * 0.35)
            .line_to(-fw * 0.2, -style.faceplate_top_cut)
            .line_to(fw * 0.2, -style.faceplate_top_cut)
            .line_to(fw * 0.46, -fh * 0.35)
            .line_to(fw * 0.52, fh * 0.35)
            .quad_to(0.0, fh * 0.60, -fw * 0.52, fh * 0.35)
            .close())

def _eye_slit(style: HelmetStyle, side: int) -> Path:
    fw, fh = style.faceplate_width, style.faceplate_height
    eye_w = fw * style.eye_width_ratio
    eye_h = style.eye_height
    cx = fw * style.eye_spacing_ratio * side
    cy = fh * style.eye_y_ratio
    return (Path()
            .move_to(cx - eye_w * 0.5, cy)
            .quad_to(cx, cy - eye_h * 0.95, cx + eye_w * 0.5, cy)
            .quad_to(cx, cy + eye_h * 0.65, cx - eye_w * 0.5, cy)
            .close())

def faceplate_transform(style: HelmetStyle, progress: float) -> np.ndarray:
    """Hinge rotation then lift of the faceplate; identity at progress 0."""
    hinge_y = style.faceplate_height * HINGE_Y_RATIO
    return (translation(0.0, -style.lift_max * progress)
            @ rotation_about(-style.hinge_angle_max * progress, 0.0, hinge_y))

def build_helmet(pose: Pose, progress: float, style: Optional[HelmetStyle] = None) -> HelmetShapeSet:
    """Builds the helmet shapes for one frame.

    Pure function of its arguments: every shape shares the pose similarity
    transform, and faceplate shapes additionally follow the hinge transform.
    """
    style = style or HelmetStyle()
    p = min(max(progress, 0.0), 1.0) if math.isfinite(progress) else 0.0
    s = pose.scale
    fw, fh = style.faceplate_width, style.faceplate_height
    rx, ry = style.shell_width / 2, style.shell_height / 2

    world = similarity(pose.center_x, pose.center_y, s, pose.rotation)
    shell_m = world @ translation(0.0, style.shell_offset_y)
    plate_closed_m = world @ translation(0.0, style.faceplate_offset_y)
    plate_m = plate_closed_m @ faceplate_transform(style, p)
    forehead_m = world @ translation(0.0, style.forehead_offset_y)

    shapes: List[ShapeDescriptor] = []

    def add(name, group, path, matrix, **styling):
        shapes.append(ShapeDescriptor(name=name, group=group, segments=path.transformed(matrix), **styling))

    shell_points = [
        (-rx * 0.85, -ry * 0.9), (rx * 0.85, -ry * 0.9), (rx, -ry * 0.25), (rx * 0.9, ry * 0.85),
        (0.0, ry), (-rx * 0.9, ry * 0.85), (-rx, -ry * 0.25),
    ]
    add('shell', ShapeGroup.SHELL, rounded_polygon(shell_points, style.shell_corner_radius), shell_m,
        fill=_linear_fill(style.shell_gradient, shell_m, -ry, ry),
        stroke=_stroke(style.shell_stroke, s, style.shell_stroke_width, 2.0))

    for side, name in ((-1, 'vent_left'), (1, 'vent_right')):
        vent = rounded_rect(style.vent_x * side, style.vent_y, style.vent_width,
                            style.vent_height, style.vent_corner_radius)
        add(name, ShapeGroup.SHELL, vent, shell_m, fill=_solid(style.vent_fill))

    add('face_recess', ShapeGroup.SHELL, faceplate_outline(style).scaled(style.recess_inset),
        plate_closed_m, fill=_solid(style.recess_fill))

    outline = faceplate_outline(style)
    add('faceplate', ShapeGroup.FACEPLATE, outline, plate_m,
        fill=_linear_fill(style.faceplate_gradient, plate_m, -fh, fh),
        stroke=_stroke(style.faceplate_stroke, s, style.faceplate_stroke_width, 1.5))

    cheeks = (Path()
              .move_to(-fw * 0.40, -fh * 0.10).line_to(-fw * 0.10, fh * 0.22)
              .move_to(fw * 0.40, -fh * 0.10).line_to(fw * 0.10, fh * 0.22))
    add('cheek_lines', ShapeGroup.FACEPLATE, cheeks, plate_m,
        stroke=_stroke(style.detail_stroke, s, 0.012, 1.0))

    brow = Path().move_to(-fw * 0.35, -fh * 0.08).quad_to(0.0, -fh * 0.22, fw * 0.35, -fh * 0.08)
    add('brow_ridge', ShapeGroup.FACEPLATE, brow, plate_m,
        stroke=_stroke(style.detail_stroke, s, 0.018, 2.0))

    for side, name in ((-1, 'eye_left'), (1, 'eye_right')):
        add(name, ShapeGroup.FACEPLATE, _eye_slit(style, side), plate_m,
            fill=_solid(style.eye_fill),
            stroke=_stroke(style.eye_stroke, s, 0.01, 1.0),
            glow=GlowHint(color=style.eye_glow, blur=max(1.0, s * style.glow_blur)))

    mouth = Path().move_to(-fw * 0.18, fh * 0.28).line_to(fw * 0.18, fh * 0.28)
    add('mouth_slit', ShapeGroup.FACEPLATE, mouth, plate_m,
        stroke=_stroke(style.detail_stroke, s, 0.014, 1.5))

    if p > 0.0:
        add('faceplate_shade', ShapeGroup.FACEPLATE, outline, plate_m,
            fill=_solid(style.shade_color), opacity=style.shade_max_opacity * p)

    w, h = style.shell_width, style.shell_height
    forehead_points = [
        (-w * FOREHEAD_TOP[0], h * FOREHEAD_TOP[1]), (w * FOREHEAD_TOP[0], h * FOREHEAD_TOP[1]),
        (w * FOREHEAD_BOTTOM[0], h * FOREHEAD_BOTTOM[1]), (-w * FOREHEAD_BOTTOM[0], h * FOREHEAD_BOTTOM[1]),
    ]
    add('forehead_plate', ShapeGroup.SHELL, rounded_polygon(forehead_points, style.forehead_corner_radius),
        forehead_m, fill=_linear_fill(style.forehead_gradient, forehead_m, -h * 0.7, -h * 0.3))

    return HelmetShapeSet(shapes=tuple(shapes))

class HelmetGeometryBuilder:
    """Binds a style to ``build_helmet``; holds no per-frame state."""

    def __init__(self, style: Optional[HelmetStyle] = None):
        self.style = style or HelmetStyle()

    @classmethod
    def from_config(cls, config: Optional[dict] = None) -> 'HelmetGeometryBuilder':
        return cls(HelmetStyle(**(config or {})))

    def build(self, pose: Pose, progress: float) -> HelmetShapeSet:
        return build_helmet(pose, progress, self.style)
