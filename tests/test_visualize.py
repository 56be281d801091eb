from __future__ import annotations

import cv2
import numpy as np
import pytest

from annotation_diff.types import Annotation, DiffResult, ImageInfo
from annotation_diff.visualize import DEFAULT_COLORS, hex_to_bgr, render_diff_overlay, write_diff_overlays


def _result() -> DiffResult:
    return DiffResult(
        image_id=1,
        false_positives=[Annotation(id=5, image_id=1, category_id=1, bbox=(10.0, 10.0, 20.0, 20.0))],
        false_negatives=[
            Annotation(
                id=6,
                image_id=1,
                category_id=1,
                bbox=(40.0, 40.0, 10.0, 10.0),
                segmentation=[[40, 40, 50, 40, 50, 50, 40, 50]],
            )
        ],
    )


def test_hex_to_bgr() -> None:
    assert hex_to_bgr("#f44336") == (0x36, 0x43, 0xF4)
    with pytest.raises(ValueError):
        hex_to_bgr("#fff")


def test_render_diff_overlay_uses_class_colors() -> None:
    img = np.zeros((64, 64, 3), dtype=np.uint8)
    out = render_diff_overlay(img, _result())

    assert not np.any(img)
    assert tuple(out[20, 10]) == hex_to_bgr(DEFAULT_COLORS["fp"])
    assert tuple(out[45, 40]) == hex_to_bgr(DEFAULT_COLORS["fn"])


def test_render_diff_overlay_respects_filters() -> None:
    img = np.zeros((64, 64, 3), dtype=np.uint8)
    out = render_diff_overlay(img, _result(), filters=["fn"])
    assert tuple(out[20, 10]) == (0, 0, 0)


def test_write_diff_overlays(tmp_path) -> None:
    images_root = tmp_path / "images"
    images_root.mkdir()
    cv2.imwrite(str(images_root / "a.png"), np.zeros((64, 64, 3), dtype=np.uint8))

    images = [ImageInfo(id=1, file_name="a.png"), ImageInfo(id=2, file_name="missing.png")]
    results = {1: _result(), 2: DiffResult(image_id=2)}
    written = write_diff_overlays(results, images, images_root, tmp_path / "overlays")

    assert [p.name for p in written] == ["a.jpg"]
    assert written[0].exists()


def test_render_diff_overlay_without_boxes_keeps_polygons() -> None:
    img = np.zeros((64, 64, 3), dtype=np.uint8)
    out = render_diff_overlay(img, _result(), show_boxes=False)

    # the fp annotation has no polygon, so its rectangle area stays blank
    assert not np.any(out[18:31, 8:32])
    assert tuple(out[45, 40]) == hex_to_bgr(DEFAULT_COLORS["fn"])


def test_render_diff_overlay_without_labels() -> None:
    img = np.zeros((64, 64, 3), dtype=np.uint8)
    labelled = render_diff_overlay(img, _result())
    plain = render_diff_overlay(img, _result(), show_labels=False)

    # the "fp" caption sits above the box top edge at y=10
    assert np.any(labelled[0:8])
    assert not np.any(plain[0:8])
    assert tuple(plain[20, 10]) == hex_to_bgr(DEFAULT_COLORS["fp"])
