# helmet_overlay/helmet_engine/visualization/visualizer.py
import re
import cv2
import numpy as np
from typing import List, Tuple
from ..common.enums import FaceLandmark, FillKind, SegmentKind
from ..common.models import OverlayResult, HelmetShapeSet, ShapeDescriptor, FillStyle

_RGBA = re.compile(r'^rgba?\(\s*([\d.]+)\s*,\s*([\d.]+)\s*,\s*([\d.]+)\s*(?:,\s*([\d.]+)\s*)?\)$')
SUBPIXEL_SHIFT = 4

def parse_color(color: str) -> Tuple[float, float, float, float]:
    """Parses '#rrggbb', '#rrggbbaa' or 'rgba(r,g,b,a)' into (b, g, r, alpha)."""
    text = color.strip().lower()
    if text.startswith('#') and len(text) in (7, 9):
        r, g, b = (int(text[i:i + 2], 16) for i in (1, 3, 5))
        a = int(text[7:9], 16) / 255 if len(text) == 9 else 1.0
        return float(b), float(g), float(r), a
    match = _RGBA.match(text)
    if match:
        r, g, b = (float(v) for v in match.group(1, 2, 3))
        a = float(match.group(4)) if match.group(4) is not None else 1.0
        return b, g, r, min(max(a, 0.0), 1.0)
    raise ValueError(f"Unsupported color: {color!r}")

def flatten_path(shape: ShapeDescriptor, samples: int = 12) -> List[Tuple[np.ndarray, bool]]:
    """Converts a shape's segments into (polyline, closed) pairs, sampling quadratic curves."""
    polylines = []
    current: List[Tuple[float, float]] = []
    closed = False
    for segment in shape.segments:
        if segment.kind == SegmentKind.MOVE:
            if len(current) > 1:
                polylines.append((np.array(current), closed))
            current, closed = [segment.points[0]], False
        elif segment.kind == SegmentKind.LINE:
            current.append(segment.points[0])
        elif segment.kind == SegmentKind.QUAD:
            p0 = np.array(current[-1])
            c, p1 = np.array(segment.points[0]), np.array(segment.points[1])
            for t in np.linspace(0.0, 1.0, samples + 1)[1:]:
                current.append(tuple((1 - t) ** 2 * p0 + 2 * (1 - t) * t * c + t ** 2 * p1))
        elif segment.kind == SegmentKind.CLOSE:
            closed = True
    if len(current) > 1:
        polylines.append((np.array(current), closed))
    return polylines

class HelmetVisualizer:
    """Rasterizes helmet shape sets onto camera frames and draws the HUD."""

    def __init__(self, config: dict):
        self.config = config
        self.curve_samples = int(config.get('curve_samples', 12))
        self.font = cv2.FONT_HERSHEY_SIMPLEX

    def render(self, frame: np.ndarray, result: OverlayResult, current_fps: float) -> np.ndarray:
        """Renders the helmet and HUD onto a copy of the frame."""
        output_frame = frame.copy()

        # Adaptive Level of Detail (LOD): glows are the expensive part
        lod_reduced = self.config.get('adaptive_lod', False) and current_fps < self.config.get('lod_threshold_fps', 0)

        if result.shapes is not None:
            self.draw_shapes(output_frame, result.shapes, draw_glow=not lod_reduced)

        if result.landmarks is not None and self.config.get('draw_landmarks', False):
            self._draw_landmarks(output_frame, result.landmarks)

        if self.config.get('draw_hud', True):
            self._draw_hud(output_frame, result, current_fps, lod_reduced)

        return output_frame

    def draw_shapes(self, frame: np.ndarray, shapes: HelmetShapeSet, draw_glow: bool = True) -> None:
        for shape in shapes:
            polylines = flatten_path(shape, self.curve_samples)
            if not polylines:
                continue
            if draw_glow and shape.glow is not None:
                self._draw_glow(frame, shape, polylines)
            if shape.fill is not None:
                mask = self._fill_mask(frame.shape[:2], polylines)
                box = self._bounds(mask)
                if box is not None:
                    color, alpha = self._fill_layer(shape.fill, box)
                    self._composite(frame, mask, color, alpha * shape.opacity, box)
            if shape.stroke is not None:
                mask = self._stroke_mask(frame.shape[:2], polylines, shape.stroke.width)
                b, g, r, a = parse_color(shape.stroke.color)
                self._composite(frame, mask, np.array([b, g, r], dtype=np.float32), a * shape.opacity)

    @staticmethod
    def _fixed(points: np.ndarray) -> np.ndarray:
        return np.round(points * (1 << SUBPIXEL_SHIFT)).astype(np.int32)

    def _fill_mask(self, size, polylines) -> np.ndarray:
        mask = np.zeros(size, dtype=np.uint8)
        cv2.fillPoly(mask, [self._fixed(pts) for pts, _ in polylines], 255, cv2.LINE_AA, SUBPIXEL_SHIFT)
        return mask

    def _stroke_mask(self, size, polylines, width: float) -> np.ndarray:
        mask = np.zeros(size, dtype=np.uint8)
        thickness = max(1, int(round(width)))
        for pts, closed in polylines:
            cv2.polylines(mask, [self._fixed(pts)], closed, 255, thickness, cv2.LINE_AA, SUBPIXEL_SHIFT)
        return mask

    def _draw_glow(self, frame: np.ndarray, shape: ShapeDescriptor, polylines) -> None:
        mask = self._fill_mask(frame.shape[:2], polylines)
        sigma = max(shape.glow.blur / 2.0, 0.5)
        blurred = cv2.GaussianBlur(mask, (0, 0), sigma)
        b, g, r, a = parse_color(shape.glow.color)
        self._composite(frame, blurred, np.array([b, g, r], dtype=np.float32), a * shape.opacity)

    def _fill_layer(self, fill: FillStyle, box):
        """Returns (color, alpha): constants for solid fills, per-pixel maps over ``box`` for gradients."""
        if fill.kind == FillKind.SOLID or not fill.stops:
            b, g, r, a = parse_color(fill.color or '#000000')
            return np.array([b, g, r], dtype=np.float32), a

        y0, y1, x0, x1 = box
        ys, xs = np.mgrid[y0:y1, x0:x1].astype(np.float32)
        sx, sy = fill.start or (0.0, 0.0)
        if fill.kind == FillKind.RADIAL:
            radius = fill.radius or 1.0
            t = np.hypot(xs - sx, ys - sy) / radius
        else:
            ex, ey = fill.end or (sx, sy + 1.0)
            dx, dy = ex - sx, ey - sy
            length_sq = dx * dx + dy * dy or 1.0
            t = ((xs - sx) * dx + (ys - sy) * dy) / length_sq
        t = np.clip(t, 0.0, 1.0)

        offsets = np.array([stop.offset for stop in fill.stops], dtype=np.float32)
        colors = np.array([parse_color(stop.color) for stop in fill.stops], dtype=np.float32)
        layer = np.stack([np.interp(t, offsets, colors[:, c]) for c in range(3)], axis=-1).astype(np.float32)
        alpha = np.interp(t, offsets, colors[:, 3]).astype(np.float32)
        return layer, alpha

    @staticmethod
    def _bounds(mask: np.ndarray):
        ys, xs = np.nonzero(mask)
        if ys.size == 0:
            return None
        return ys.min(), ys.max() + 1, xs.min(), xs.max() + 1

    def _composite(self, frame: np.ndarray, mask: np.ndarray, color, alpha, box=None) -> None:
        """Alpha-blends ``color`` through ``mask``; per-pixel color and alpha are ``box``-sized."""
        box = box or self._bounds(mask)
        if box is None:
            return
        y0, y1, x0, x1 = box
        weight = mask[y0:y1, x0:x1].astype(np.float32) / 255.0 * alpha
        region = frame[y0:y1, x0:x1].astype(np.float32)
        weight = weight[..., None]
        blended = region * (1.0 - weight) + color * weight
        frame[y0:y1, x0:x1] = np.clip(blended, 0, 255).astype(frame.dtype)

    def _draw_landmarks(self, frame: np.ndarray, landmarks: np.ndarray) -> None:
        h, w = frame.shape[:2]
        for role in FaceLandmark:
            if role.value >= landmarks.shape[0]:
                continue
            x, y = landmarks[role.value, :2]
            cv2.circle(frame, (int(x * w), int(y * h)), 3, (0, 255, 0), -1, cv2.LINE_AA)

    def _draw_hud(self, frame: np.ndarray, result: OverlayResult, fps: float, lod_reduced: bool):
        """Draws the Heads-Up Display with performance and faceplate status."""
        hud_elements = [
            f"FPS: {fps:.1f}",
            f"Processing: {result.processing_time_ms:.1f} ms",
            f"State: {result.status.value}",
            f"Faceplate: {result.faceplate_state.value} {result.faceplate_progress:.2f}",
        ]
        if lod_reduced:
            hud_elements.append("LOD: REDUCED")

        for i, text in enumerate(hud_elements):
            cv2.putText(frame, text, (10, 30 + i * 30), self.font, 0.7, (240, 240, 240), 2, cv2.LINE_AA)
