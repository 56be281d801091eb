from __future__ import annotations

import json

import cv2
import numpy as np
import pytest

from annotation_diff.cli import main


def _write_coco(path, annotations, categories=None, images=None) -> None:
    payload = {
        "images": images or [{"id": 1, "file_name": "img1.png", "width": 64, "height": 64}],
        "categories": categories or [{"id": 1, "name": "object"}],
        "annotations": annotations,
    }
    path.write_text(json.dumps(payload), encoding="utf-8")


def _box(ann_id: int, bbox, image_id: int = 1, category_id: int = 1) -> dict:
    return {"id": ann_id, "image_id": image_id, "category_id": category_id, "bbox": bbox}


@pytest.fixture()
def datasets(tmp_path):
    gt = tmp_path / "gt.json"
    pred = tmp_path / "pred.json"
    _write_coco(gt, [_box(1, [0, 0, 10, 10]), _box(2, [30, 30, 10, 10])])
    _write_coco(
        pred,
        [
            _box(11, [0, 0, 10, 10], category_id=4),
            _box(12, [33, 33, 10, 10], category_id=4),
            _box(13, [50, 50, 5, 5], category_id=4),
        ],
        categories=[{"id": 4, "name": "Object"}],
    )
    return gt, pred


def test_cli_prints_summary_and_writes_reports(tmp_path, datasets, capsys) -> None:
    gt, pred = datasets
    images_root = tmp_path / "images"
    images_root.mkdir()
    cv2.imwrite(str(images_root / "img1.png"), np.zeros((64, 64, 3), dtype=np.uint8))
    reports = tmp_path / "reports"

    main(
        [
            "--primary", str(gt),
            "--secondary", str(pred),
            "--reports-dir", str(reports),
            "--images-root", str(images_root),
        ]
    )
    out = capsys.readouterr().out

    # categories are mapped by name, so 1 -> 4
    assert "images compared: 1" in out
    assert "Total: TP=1 FP=2 FN=1" in out
    assert "overlays written: 1" in out
    assert (reports / "statistics.txt").exists()
    assert (reports / "statistics.csv").exists()
    assert (reports / "overlays" / "img1.jpg").exists()

    payload = json.loads((reports / "diff.json").read_text(encoding="utf-8"))
    assert payload["images"][0]["below_threshold_matches"][0]["gt_id"] == 2


def test_cli_overrides_config_file(tmp_path, datasets, capsys) -> None:
    gt, pred = datasets
    config = tmp_path / "settings.json"
    config.write_text(json.dumps({"iou_threshold": 0.9, "category_mapping": {"1": [4]}}), encoding="utf-8")

    main(["--primary", str(gt), "--secondary", str(pred), "--config", str(config), "--iou-threshold", "0.3"])
    out = capsys.readouterr().out
    assert "IoU threshold: 0.3 (bbox)" in out
    assert "Total: TP=2 FP=1 FN=0" in out


def test_cli_secondary_as_ground_truth(datasets, capsys) -> None:
    gt, pred = datasets
    main(["--primary", str(gt), "--secondary", str(pred), "--gt", "secondary"])
    out = capsys.readouterr().out
    assert "Total: TP=1 FP=1 FN=2" in out
    assert "ground truth: secondary" in out


def test_cli_rejects_invalid_threshold(datasets, capsys) -> None:
    gt, pred = datasets
    with pytest.raises(SystemExit) as excinfo:
        main(["--primary", str(gt), "--secondary", str(pred), "--iou-threshold", "1.5"])
    assert excinfo.value.code == 2
    assert "iou_threshold" in capsys.readouterr().out


def test_cli_missing_file(tmp_path, capsys) -> None:
    with pytest.raises(SystemExit) as excinfo:
        main(["--primary", str(tmp_path / "nope.json"), "--secondary", str(tmp_path / "nope2.json")])
    assert excinfo.value.code == 2
    assert "not found" in capsys.readouterr().out


def test_cli_explicit_empty_mapping_disables_default(tmp_path, capsys) -> None:
    gt = tmp_path / "gt.json"
    pred = tmp_path / "pred.json"
    _write_coco(gt, [_box(1, [0, 0, 10, 10])])
    _write_coco(pred, [_box(1, [0, 0, 10, 10])])
    config = tmp_path / "settings.json"
    config.write_text(json.dumps({"category_mapping": {}}), encoding="utf-8")

    main(["--primary", str(gt), "--secondary", str(pred), "--config", str(config)])
    out = capsys.readouterr().out
    assert "Total: TP=0 FP=1 FN=1" in out


def test_cli_config_without_mapping_uses_default(tmp_path, capsys) -> None:
    gt = tmp_path / "gt.json"
    pred = tmp_path / "pred.json"
    _write_coco(gt, [_box(1, [0, 0, 10, 10])])
    _write_coco(pred, [_box(1, [0, 0, 10, 10])])
    config = tmp_path / "settings.json"
    config.write_text(json.dumps({"iou_threshold": 0.5}), encoding="utf-8")

    main(["--primary", str(gt), "--secondary", str(pred), "--config", str(config)])
    assert "Total: TP=1 FP=0 FN=0" in capsys.readouterr().out


def test_cli_overlays_cover_images_only_in_predictions(tmp_path, capsys) -> None:
    gt = tmp_path / "gt.json"
    pred = tmp_path / "pred.json"
    _write_coco(gt, [_box(1, [0, 0, 10, 10])])
    _write_coco(
        pred,
        [_box(11, [0, 0, 10, 10]), _box(12, [5, 5, 10, 10], image_id=2)],
        images=[
            {"id": 1, "file_name": "img1.png", "width": 64, "height": 64},
            {"id": 2, "file_name": "img2.png", "width": 64, "height": 64},
        ],
    )
    images_root = tmp_path / "images"
    images_root.mkdir()
    for name in ("img1.png", "img2.png"):
        cv2.imwrite(str(images_root / name), np.zeros((64, 64, 3), dtype=np.uint8))
    reports = tmp_path / "reports"

    main(
        [
            "--primary", str(gt),
            "--secondary", str(pred),
            "--reports-dir", str(reports),
            "--images-root", str(images_root),
        ]
    )
    out = capsys.readouterr().out

    assert "overlays written: 2" in out
    assert (reports / "overlays" / "img2.jpg").exists()
