from __future__ import annotations

import csv
import json
from collections.abc import Mapping
from pathlib import Path

from .config import ComparisonSettings, settings_to_dict
from .statistics import mean_matched_iou
from .types import Annotation, CategoryStats, DiffResult, DiffStatistics, MatchedAnnotation

CSV_COLUMNS = ("category_id", "category_name", "tp", "fp", "fn", "precision", "recall", "f1")


def _write_json(path: Path, payload: dict) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, indent=2), encoding="utf-8")


def _stats_line(label: str, stats: CategoryStats) -> str:
    return "{label}: TP={tp} FP={fp} FN={fn} P={p:.4f} R={r:.4f} F1={f1:.4f}".format(
        label=label,
        tp=stats.tp,
        fp=stats.fp,
        fn=stats.fn,
        p=stats.precision,
        r=stats.recall,
        f1=stats.f1,
    )


def format_statistics_text(stats: DiffStatistics, settings: ComparisonSettings | None = None) -> str:
    lines = ["# Annotation Diff Statistics", ""]
    if settings is not None:
        lines.append(
            "IoU threshold: {t} ({m}), max matches per annotation: {k}, ground truth: {gt}".format(
                t=settings.iou_threshold,
                m=settings.iou_method,
                k=settings.max_matches_per_annotation,
                gt="primary" if settings.gt_is_primary else "secondary",
            )
        )
        lines.append("")

    lines.append(_stats_line("Total", stats.total))
    if stats.by_category:
        lines.append("")
        lines.append("## By category")
        for cat_id, cat_stats in sorted(stats.by_category.items()):
            lines.append("- " + _stats_line(f"{cat_stats.category_name} ({cat_id})", cat_stats))
    return "\n".join(lines) + "\n"


def write_statistics_csv(path: Path, stats: DiffStatistics) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8", newline="") as fh:
        writer = csv.writer(fh)
        writer.writerow(CSV_COLUMNS)
        for cat_id, s in sorted(stats.by_category.items()):
            writer.writerow([cat_id, s.category_name, s.tp, s.fp, s.fn, f"{s.precision:.6f}", f"{s.recall:.6f}", f"{s.f1:.6f}"])
        t = stats.total
        writer.writerow(["total", "", t.tp, t.fp, t.fn, f"{t.precision:.6f}", f"{t.recall:.6f}", f"{t.f1:.6f}"])
    return path


def _match_row(m: MatchedAnnotation) -> dict:
    return {"gt_id": m.gt_annotation.id, "pred_id": m.pred_annotation.id, "iou": m.iou}


def _ids(anns: list[Annotation]) -> list[int]:
    return [a.id for a in anns]


def diff_to_dict(results: Mapping[int, DiffResult], stats: DiffStatistics, settings: ComparisonSettings) -> dict:
    return {
        "settings": settings_to_dict(settings),
        "statistics": {
            "total": stats.total.as_dict(),
            "mean_matched_iou": mean_matched_iou(results),
            "by_category": {str(k): v.as_dict() for k, v in sorted(stats.by_category.items())},
        },
        "images": [
            {
                "image_id": image_id,
                "true_positives": [_match_row(m) for m in r.true_positives],
                "false_positives": _ids(r.false_positives),
                "false_negatives": _ids(r.false_negatives),
                "below_threshold_matches": [_match_row(m) for m in r.below_threshold_matches],
            }
            for image_id, r in sorted(results.items())
        ],
    }


def write_diff_json(
    path: Path,
    results: Mapping[int, DiffResult],
    stats: DiffStatistics,
    settings: ComparisonSettings,
) -> Path:
    _write_json(path, diff_to_dict(results, stats, settings))
    return path


def write_reports(
    reports_dir: Path,
    results: Mapping[int, DiffResult],
    stats: DiffStatistics,
    settings: ComparisonSettings,
) -> dict[str, Path]:
    summary_txt = reports_dir / "statistics.txt"
    summary_txt.parent.mkdir(parents=True, exist_ok=True)
    summary_txt.write_text(format_statistics_text(stats, settings), encoding="utf-8")

    return {
        "text": summary_txt,
        "csv": write_statistics_csv(reports_dir / "statistics.csv", stats),
        "json": write_diff_json(reports_dir / "diff.json", results, stats, settings),
    }
