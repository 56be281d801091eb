from __future__ import annotations

from collections.abc import Iterable, Mapping
import logging
from pathlib import Path

import cv2
import numpy as np

from .classification import filter_annotations
from .types import Annotation, DiffResult, ImageInfo

logger = logging.getLogger(__name__)

DEFAULT_COLORS: dict[str, str] = {
    "tp-gt": "#4caf50",
    "fn": "#ff9800",
    "tp-pred": "#66bb6a",
    "fp": "#f44336",
}


def hex_to_bgr(color: str) -> tuple[int, int, int]:
    value = color.lstrip("#")
    if len(value) != 6:
        raise ValueError(f"color must be #rrggbb (got {color!r})")
    r, g, b = (int(value[i : i + 2], 16) for i in (0, 2, 4))
    return b, g, r


def _draw_annotation(
    img: np.ndarray,
    ann: Annotation,
    color: tuple[int, int, int],
    label: str,
    *,
    show_box: bool = True,
    show_label: bool = True,
) -> None:
    x, y, w, h = ann.bbox
    p1 = (int(round(x)), int(round(y)))
    p2 = (int(round(x + max(0.0, w))), int(round(y + max(0.0, h))))
    if show_box:
        cv2.rectangle(img, p1, p2, color, 2)

    if ann.segmentation and len(ann.segmentation[0]) >= 6:
        ring = ann.segmentation[0]
        poly = np.array(ring[: len(ring) // 2 * 2], dtype=np.float32).reshape((-1, 1, 2)).astype(np.int32)
        cv2.polylines(img, [poly], True, color, 1)

    if show_label:
        cv2.putText(img, label, (p1[0], max(12, p1[1] - 4)), cv2.FONT_HERSHEY_SIMPLEX, 0.5, color, 1, cv2.LINE_AA)


def render_diff_overlay(
    img: np.ndarray,
    result: DiffResult,
    colors: Mapping[str, str] = DEFAULT_COLORS,
    filters: Iterable[str] | None = None,
    *,
    show_boxes: bool = True,
    show_labels: bool = True,
) -> np.ndarray:
    """Draw the diff classes of `result` on a copy of `img`.

    Polygons are always drawn when present; `show_boxes` and `show_labels`
    toggle the bounding rectangles and the class captions.
    """
    out = img.copy()
    for label, ann in filter_annotations(result, filters):
        _draw_annotation(out, ann, hex_to_bgr(colors[label]), label, show_box=show_boxes, show_label=show_labels)
    return out


def write_diff_overlays(
    results: Mapping[int, DiffResult],
    images: Iterable[ImageInfo],
    images_root: Path,
    out_dir: Path,
    colors: Mapping[str, str] = DEFAULT_COLORS,
    filters: Iterable[str] | None = None,
    *,
    show_boxes: bool = True,
    show_labels: bool = True,
) -> list[Path]:
    out_dir.mkdir(parents=True, exist_ok=True)
    wanted = None if filters is None else list(filters)
    written: list[Path] = []

    for info in images:
        result = results.get(info.id)
        if result is None:
            continue
        img = cv2.imread(str(images_root / info.file_name), cv2.IMREAD_COLOR)
        if img is None:
            logger.warning("skipping overlay for image %s: cannot read %s", info.id, images_root / info.file_name)
            continue

        overlay = render_diff_overlay(
            img, result, colors=colors, filters=wanted, show_boxes=show_boxes, show_labels=show_labels
        )
        out_path = out_dir / f"{Path(info.file_name).stem}.jpg"
        cv2.imwrite(str(out_path), overlay)
        written.append(out_path)

    return written
