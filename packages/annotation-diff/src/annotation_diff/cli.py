from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path

from .categories import CategoryMapping, default_category_mapping, parse_category_mapping
from .config import ComparisonSettings, read_settings_payload, settings_from_dict
from .diff import compare_datasets
from .geometry import IOU_METHODS
from .io import load_coco
from .matching import MatchBudgetExceeded
from .reporting import format_statistics_text, write_reports
from .statistics import mean_matched_iou
from .types import AnnotationSet, ImageInfo
from .visualize import write_diff_overlays


def _parse_image_ids(raw: str | None) -> list[int] | None:
    if not raw:
        return None
    try:
        return [int(x.strip()) for x in raw.split(",") if x.strip()]
    except ValueError as exc:
        raise ValueError(f"--images must be a comma-separated list of integer ids (got {raw!r})") from exc


def _build_settings(args: argparse.Namespace, primary: AnnotationSet, secondary: AnnotationSet) -> ComparisonSettings:
    # an explicit mapping, even an empty one, disables the name-based default
    mapping: CategoryMapping | None = None
    if args.config is not None:
        payload = read_settings_payload(args.config)
        base = settings_from_dict(payload, source=args.config)
        if "category_mapping" in payload:
            mapping = base.category_mapping
        gt_is_primary = base.gt_is_primary
        iou_threshold = base.iou_threshold
        iou_method = base.iou_method
        max_matches = base.max_matches_per_annotation
        max_pairs = base.max_pairs_per_image
        workers = base.workers
    else:
        gt_is_primary = True
        iou_threshold = 0.5
        iou_method = "bbox"
        max_matches = 1
        max_pairs = None
        workers = 1

    if args.mapping is not None:
        mapping = parse_category_mapping(json.loads(args.mapping.read_text(encoding="utf-8")))
    if mapping is None:
        mapping = default_category_mapping(primary.categories, secondary.categories)

    return ComparisonSettings(
        category_mapping=mapping,
        gt_is_primary=(args.gt == "primary") if args.gt is not None else gt_is_primary,
        iou_threshold=args.iou_threshold if args.iou_threshold is not None else iou_threshold,
        iou_method=args.iou_method if args.iou_method is not None else iou_method,
        max_matches_per_annotation=args.max_matches if args.max_matches is not None else max_matches,
        max_pairs_per_image=args.max_pairs if args.max_pairs is not None else max_pairs,
        workers=args.workers if args.workers is not None else workers,
    )


def _overlay_images(gt_set: AnnotationSet, pred_set: AnnotationSet) -> list[ImageInfo]:
    seen: set[int] = set()
    images: list[ImageInfo] = []
    for info in [*gt_set.images, *pred_set.images]:
        if info.id not in seen:
            seen.add(info.id)
            images.append(info)
    return images


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Diff two COCO annotation files into TP/FP/FN with P/R/F1 statistics")
    parser.add_argument("--primary", type=Path, required=True, help="Primary COCO JSON (category mapping keys)")
    parser.add_argument("--secondary", type=Path, required=True, help="Secondary COCO JSON")
    parser.add_argument("--config", type=Path, default=None, help="Comparison settings JSON")
    parser.add_argument("--gt", choices=("primary", "secondary"), default=None, help="Which file is ground truth")
    parser.add_argument("--iou-threshold", type=float, default=None)
    parser.add_argument("--iou-method", choices=IOU_METHODS, default=None)
    parser.add_argument("--max-matches", type=int, default=None, help="Max accepted matches per annotation")
    parser.add_argument("--mapping", type=Path, default=None, help="Category mapping JSON (primary id -> secondary ids)")
    parser.add_argument("--images", type=str, default=None, help="Comma-separated image ids to restrict the diff to")
    parser.add_argument("--workers", type=int, default=None)
    parser.add_argument("--max-pairs", type=int, default=None, help="Abort when an image has more annotation pairs")
    parser.add_argument("--reports-dir", type=Path, default=None)
    parser.add_argument("--images-root", type=Path, default=None, help="Image directory for overlay rendering")
    parser.add_argument("--no-viz", action="store_true")
    parser.add_argument("--no-boxes", action="store_true", help="Omit bounding rectangles from overlays")
    parser.add_argument("--no-labels", action="store_true", help="Omit class captions from overlays")
    parser.add_argument("--progress", action="store_true")
    parser.add_argument("--log-level", default="WARNING", choices=("DEBUG", "INFO", "WARNING", "ERROR"))
    args = parser.parse_args(argv)

    logging.basicConfig(level=getattr(logging, args.log_level), format="%(levelname)s %(name)s: %(message)s")

    try:
        primary = load_coco(args.primary)
        secondary = load_coco(args.secondary)
        settings = _build_settings(args, primary, secondary)
        image_ids = _parse_image_ids(args.images)
    except (FileNotFoundError, ValueError) as exc:
        print(f"ERROR: {exc}")
        raise SystemExit(2) from exc

    try:
        results, stats = compare_datasets(primary, secondary, settings, image_ids, show_progress=args.progress)
    except MatchBudgetExceeded as exc:
        print(f"ERROR: {exc}")
        raise SystemExit(2) from exc

    print(f"images compared: {len(results)}")
    print(f"mean matched IoU: {mean_matched_iou(results)}")
    print(format_statistics_text(stats, settings), end="")

    if args.reports_dir is not None:
        paths = write_reports(args.reports_dir, results, stats, settings)
        for kind, path in paths.items():
            print(f"{kind} report: {path}")

        if args.images_root is not None and not args.no_viz:
            gt_set, pred_set = (primary, secondary) if settings.gt_is_primary else (secondary, primary)
            images = _overlay_images(gt_set, pred_set)
            overlays = write_diff_overlays(
                results,
                images,
                args.images_root,
                args.reports_dir / "overlays",
                show_boxes=not args.no_boxes,
                show_labels=not args.no_labels,
            )
            print(f"overlays written: {len(overlays)}")


if __name__ == "__main__":
    main()
