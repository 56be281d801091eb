"""IoU primitives for COCO-style boxes and polygons.

Box IoU is exact. Polygon IoU is estimated by sampling a regular grid over the
union of the two bounding boxes and counting points inside each polygon with
the even-odd rule. Only the first ring of a segmentation is used, so
multi-part shapes and holes are approximated by their first polygon.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence

import numpy as np

from .types import Annotation

IOU_METHODS = ("bbox", "polygon")
GRID_SAMPLES = 50

IoUFunction = Callable[[Annotation, Annotation], float]


def _xyxy(box: Sequence[float]) -> tuple[float, float, float, float]:
    x, y, w, h = (float(v) for v in box)
    return x, y, x + max(0.0, w), y + max(0.0, h)


def box_area(box: Sequence[float]) -> float:
    return max(0.0, float(box[2])) * max(0.0, float(box[3]))


def box_iou(a: Sequence[float], b: Sequence[float]) -> float:
    ax1, ay1, ax2, ay2 = _xyxy(a)
    bx1, by1, bx2, by2 = _xyxy(b)

    inter_w = max(0.0, min(ax2, bx2) - max(ax1, bx1))
    inter_h = max(0.0, min(ay2, by2) - max(ay1, by1))
    inter = inter_w * inter_h
    union = box_area(a) + box_area(b) - inter
    if union <= 0.0:
        return 0.0
    return inter / union


def point_in_polygon(xs: np.ndarray, ys: np.ndarray, polygon: Sequence[float]) -> np.ndarray:
    pts = np.asarray(polygon[: len(polygon) // 2 * 2], dtype=np.float64).reshape(-1, 2)
    inside = np.zeros(np.shape(xs), dtype=bool)
    n = pts.shape[0]
    if n < 3:
        return inside

    j = n - 1
    for i in range(n):
        xi, yi = pts[i]
        xj, yj = pts[j]
        crosses = (yi > ys) != (yj > ys)
        if yj != yi:
            x_cross = (xj - xi) * (ys - yi) / (yj - yi) + xi
            inside ^= crosses & (xs < x_cross)
        j = i
    return inside


def sampling_grid(a: Sequence[float], b: Sequence[float]) -> tuple[np.ndarray, np.ndarray]:
    ax1, ay1, ax2, ay2 = _xyxy(a)
    bx1, by1, bx2, by2 = _xyxy(b)
    min_x, min_y = min(ax1, bx1), min(ay1, by1)
    max_x, max_y = max(ax2, bx2), max(ay2, by2)

    step = max(1.0, min((max_x - min_x) / GRID_SAMPLES, (max_y - min_y) / GRID_SAMPLES))
    # inclusive of the max corner
    nx = int(np.floor((max_x - min_x) / step + 1e-9)) + 1
    ny = int(np.floor((max_y - min_y) / step + 1e-9)) + 1
    gx = min_x + step * np.arange(nx, dtype=np.float64)
    gy = min_y + step * np.arange(ny, dtype=np.float64)
    return np.meshgrid(gx, gy, indexing="ij")


def _first_ring(ann: Annotation) -> list[float] | None:
    if not ann.segmentation:
        return None
    ring = ann.segmentation[0]
    if len(ring) < 6:
        return None
    return ring


def polygon_iou(a: Annotation, b: Annotation) -> float:
    ring_a = _first_ring(a)
    ring_b = _first_ring(b)
    if ring_a is None or ring_b is None:
        return box_iou(a.bbox, b.bbox)

    xs, ys = sampling_grid(a.bbox, b.bbox)
    in_a = point_in_polygon(xs, ys, ring_a)
    in_b = point_in_polygon(xs, ys, ring_b)

    both = int(np.count_nonzero(in_a & in_b))
    union = int(np.count_nonzero(in_a)) + int(np.count_nonzero(in_b)) - both
    if union == 0:
        return 0.0
    return both / union


def annotation_iou(a: Annotation, b: Annotation, method: str = "bbox") -> float:
    return iou_function(method)(a, b)


def iou_function(method: str) -> IoUFunction:
    if method == "bbox":
        return lambda a, b: box_iou(a.bbox, b.bbox)
    if method == "polygon":
        return polygon_iou
    raise ValueError(f"iou method must be one of: {', '.join(IOU_METHODS)} (got {method!r})")
