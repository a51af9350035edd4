# helmet_overlay/helmet_engine/common/models.py
import math
import numpy as np
from pydantic import BaseModel, Field, field_validator
from typing import Optional, Tuple, Dict, Iterator
from .enums import PoseState, FaceplateState, ShapeGroup, SegmentKind, FillKind

Point = Tuple[float, float]
ColorStops = Tuple[Tuple[float, str], ...]

def wrap_angle(angle: float) -> float:
    """Maps an angle in radians onto (-pi, pi]."""
    wrapped = math.atan2(math.sin(angle), math.cos(angle))
    if wrapped <= -math.pi:
        wrapped = math.pi
    return wrapped

class FrameMetadata(BaseModel):
    """Metadata associated with a single camera frame."""
    frame_id: int
    timestamp: float
    source_resolution: Tuple[int, int]

class Pose(BaseModel):
    """Rigid 2D placement of the face in pixel space; rotation is kept in (-pi, pi]."""
    center_x: float
    center_y: float
    scale: float = Field(gt=0)
    rotation: float

    class Config:
        frozen = True

    @field_validator('rotation')
    @classmethod
    def _wrapped_rotation(cls, value: float) -> float:
        if not math.isfinite(value):
            raise ValueError("rotation must be finite")
        if -math.pi < value <= math.pi:
            return value
        return wrap_angle(value)

class HelmetStyle(BaseModel):
    """Static colors and proportions of the helmet.

    Lengths are in pose-scale units; ``*_ratio`` fields are fractions of the
    faceplate size.
    """
    shell_gradient: ColorStops = ((0.0, '#9f0d24'), (0.45, '#c8102e'), (1.0, '#5b0a18'))
    shell_stroke: str = 'rgba(0,0,0,0.35)'
    shell_width: float = Field(2.0, gt=0)
    shell_height: float = Field(2.6, gt=0)
    shell_offset_y: float = 0.15
    shell_corner_radius: float = Field(0.18, ge=0)
    shell_stroke_width: float = 0.035

    recess_fill: str = '#1a0d0f'
    recess_inset: float = Field(0.92, gt=0, le=1)

    vent_fill: str = 'rgba(0,0,0,0.25)'
    vent_x: float = 0.86
    vent_y: float = 0.2
    vent_width: float = Field(0.16, gt=0)
    vent_height: float = Field(0.6, gt=0)
    vent_corner_radius: float = Field(0.05, ge=0)

    forehead_gradient: ColorStops = ((0.0, '#a30f26'), (1.0, '#70101e'))
    forehead_offset_y: float = 0.02
    forehead_corner_radius: float = Field(0.08, ge=0)

    faceplate_gradient: ColorStops = (
        (0.0, '#f6e3a1'), (0.15, '#e8c65b'), (0.55, '#d4af37'), (1.0, '#9c7f1e'))
    faceplate_stroke: str = 'rgba(0,0,0,0.35)'
    faceplate_width: float = Field(1.7, gt=0)
    faceplate_height: float = Field(2.34, gt=0)
    faceplate_offset_y: float = 0.10
    faceplate_top_cut: float = 0.55
    faceplate_stroke_width: float = 0.02
    hinge_angle_max: float = 0.15
    lift_max: float = 0.9

    detail_stroke: str = 'rgba(0,0,0,0.5)'
    eye_fill: str = '#b8f0ff'
    eye_glow: str = 'rgba(102,217,255,0.8)'
    eye_stroke: str = 'rgba(0,0,0,0.45)'
    eye_width_ratio: float = 0.16
    eye_height: float = 0.07
    eye_spacing_ratio: float = 0.23
    eye_y_ratio: float = -0.02
    glow_blur: float = 0.12

    shade_color: str = 'rgba(0,0,0,0.5)'
    shade_max_opacity: float = Field(0.25, ge=0, le=1)

    class Config:
        frozen = True
        extra = "forbid"

class PathSegment(BaseModel):
    """One path command; ``points`` holds the control point then the end point for QUAD."""
    kind: SegmentKind
    points: Tuple[Point, ...] = ()

    class Config:
        frozen = True

class GradientStop(BaseModel):
    offset: float = Field(ge=0, le=1)
    color: str

    class Config:
        frozen = True

class FillStyle(BaseModel):
    kind: FillKind = FillKind.SOLID
    color: Optional[str] = None
    stops: Tuple[GradientStop, ...] = ()
    start: Optional[Point] = None
    end: Optional[Point] = None
    radius: Optional[float] = None

    class Config:
        frozen = True

class StrokeStyle(BaseModel):
    color: str
    width: float = Field(gt=0)

    class Config:
        frozen = True

class GlowHint(BaseModel):
    color: str
    blur: float = Field(gt=0)

    class Config:
        frozen = True

class ShapeDescriptor(BaseModel):
    """A drawable path in final pixel coordinates plus its styling."""
    name: str
    group: ShapeGroup
    segments: Tuple[PathSegment, ...]
    fill: Optional[FillStyle] = None
    stroke: Optional[StrokeStyle] = None
    glow: Optional[GlowHint] = None
    opacity: float = Field(1.0, ge=0, le=1)

    class Config:
        frozen = True

    @property
    def points(self) -> Tuple[Point, ...]:
        """Every point referenced by the path, control points included."""
        return tuple(p for segment in self.segments for p in segment.points)

class HelmetShapeSet(BaseModel):
    """Ordered shapes of one helmet frame, back to front."""
    shapes: Tuple[ShapeDescriptor, ...] = ()

    class Config:
        frozen = True

    def __iter__(self) -> Iterator[ShapeDescriptor]:
        return iter(self.shapes)

    def __len__(self) -> int:
        return len(self.shapes)

    def get(self, name: str) -> ShapeDescriptor:
        for shape in self.shapes:
            if shape.name == name:
                return shape
        raise KeyError(name)

    def group(self, group: ShapeGroup) -> Tuple[ShapeDescriptor, ...]:
        return tuple(s for s in self.shapes if s.group == group)

class OverlayResult(BaseModel):
    """Encapsulates the complete result of a single frame's overlay processing."""
    timestamp: float
    frame_id: int
    processing_time_ms: float
    status: PoseState
    raw_pose: Optional[Pose] = None
    smoothed_pose: Optional[Pose] = None
    faceplate_progress: float = 0.0
    faceplate_state: FaceplateState = FaceplateState.CLOSED
    shapes: Optional[HelmetShapeSet] = None
    landmarks: Optional[np.ndarray] = None
    performance_metrics: Dict[str, float] = Field(default_factory=dict)

    class Config:
        arbitrary_types_allowed = True
