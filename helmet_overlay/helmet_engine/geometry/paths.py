# helmet_overlay/helmet_engine/geometry/paths.py
import math
import numpy as np
from typing import List, Sequence, Tuple
from ..common.enums import SegmentKind
from ..common.models import PathSegment, Point

def translation(tx: float, ty: float) -> np.ndarray:
    return np.array([[1.0, 0.0, tx], [0.0, 1.0, ty], [0.0, 0.0, 1.0]])

def rotation(angle: float) -> np.ndarray:
    c, s = math.cos(angle), math.sin(angle)
    return np.array([[c, -s, 0.0], [s, c, 0.0], [0.0, 0.0, 1.0]])

def rotation_about(angle: float, px: float, py: float) -> np.ndarray:
    """Rotation by ``angle`` around the pivot (px, py)."""
    return translation(px, py) @ rotation(angle) @ translation(-px, -py)

def similarity(tx: float, ty: float, scale: float, angle: float) -> np.ndarray:
    """Translate * rotate * uniform scale, mapping local units to pixels."""
    return translation(tx, ty) @ rotation(angle) @ np.diag([scale, scale, 1.0])

def transform_points(matrix: np.ndarray, points: np.ndarray) -> np.ndarray:
    points = np.asarray(points, dtype=np.float64).reshape(-1, 2)
    return points @ matrix[:2, :2].T + matrix[:2, 2]

def transform_point(matrix: np.ndarray, x: float, y: float) -> Point:
    px, py = transform_points(matrix, [(x, y)])[0]
    return float(px), float(py)

class Path:
    """A path in local coordinates, resolved to pixels by ``transformed``."""

    def __init__(self):
        self._segments: List[Tuple[SegmentKind, List[Point]]] = []

    def move_to(self, x: float, y: float) -> 'Path':
        self._segments.append((SegmentKind.MOVE, [(x, y)]))
        return self

    def line_to(self, x: float, y: float) -> 'Path':
        self._segments.append((SegmentKind.LINE, [(x, y)]))
        return self

    def quad_to(self, cx: float, cy: float, x: float, y: float) -> 'Path':
        self._segments.append((SegmentKind.QUAD, [(cx, cy), (x, y)]))
        return self

    def close(self) -> 'Path':
        self._segments.append((SegmentKind.CLOSE, []))
        return self

    def scaled(self, factor: float) -> 'Path':
        """Copy of the path scaled about the local origin."""
        path = Path()
        path._segments = [(kind, [(x * factor, y * factor) for x, y in pts])
                          for kind, pts in self._segments]
        return path

    def transformed(self, matrix: np.ndarray) -> Tuple[PathSegment, ...]:
        result = []
        for kind, pts in self._segments:
            if pts:
                mapped = transform_points(matrix, pts)
                pts = tuple((float(x), float(y)) for x, y in mapped)
            result.append(PathSegment(kind=kind, points=tuple(pts)))
        return tuple(result)

def rounded_polygon(points: Sequence[Point], radius: float) -> Path:
    """Closed polygon whose corners are cut by quadratic curves.

    The radius is limited per corner to half of each adjacent edge.
    """
    path = Path()
    n = len(points)
    if n < 2:
        return path
    for i in range(n):
        prev = points[i - 1]
        curr = points[i]
        nxt = points[(i + 1) % n]
        v1 = (curr[0] - prev[0], curr[1] - prev[1])
        v2 = (nxt[0] - curr[0], nxt[1] - curr[1])
        len1 = math.hypot(*v1)
        len2 = math.hypot(*v2)
        if len1 == 0 or len2 == 0:
            p1 = p2 = curr
        else:
            r = min(radius, len1 / 2, len2 / 2)
            p1 = (curr[0] - v1[0] / len1 * r, curr[1] - v1[1] / len1 * r)
            p2 = (curr[0] + v2[0] / len2 * r, curr[1] + v2[1] / len2 * r)
        if i == 0:
            path.move_to(*p1)
        else:
            path.line_to(*p1)
        path.quad_to(curr[0], curr[1], p2[0], p2[1])
    return path.close()

def rounded_rect(cx: float, cy: float, width: float, height: float, radius: float) -> Path:
    hw, hh = width / 2, height / 2
    corners = [(cx - hw, cy - hh), (cx + hw, cy - hh), (cx + hw, cy + hh), (cx - hw, cy + hh)]
    return rounded_polygon(corners, min(radius, hw, hh))
