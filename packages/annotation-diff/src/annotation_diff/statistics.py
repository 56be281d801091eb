from __future__ import annotations

from collections.abc import Iterable, Mapping

import numpy as np

from .types import Category, CategoryStats, DiffResult, DiffStatistics


def compute_statistics(results: Mapping[int, DiffResult], categories: Iterable[Category]) -> DiffStatistics:
    """Roll per-image diff results up into overall and per-category counts.

    ``categories`` come from the dataset playing the ground-truth role. True
    positives count towards the ground-truth annotation's category; false
    positives and false negatives towards their own. Entries whose category is
    not listed still count in the total.
    """
    by_category = {cat.id: CategoryStats(category_name=cat.name) for cat in categories}
    total = CategoryStats()

    for result in results.values():
        for match in result.true_positives:
            total.tp += 1
            stats = by_category.get(match.gt_annotation.category_id)
            if stats is not None:
                stats.tp += 1
        for ann in result.false_positives:
            total.fp += 1
            stats = by_category.get(ann.category_id)
            if stats is not None:
                stats.fp += 1
        for ann in result.false_negatives:
            total.fn += 1
            stats = by_category.get(ann.category_id)
            if stats is not None:
                stats.fn += 1

    return DiffStatistics(total=total, by_category=by_category)


def mean_matched_iou(results: Mapping[int, DiffResult]) -> float | None:
    ious = [m.iou for r in results.values() for m in r.true_positives]
    return float(np.mean(ious)) if ious else None
