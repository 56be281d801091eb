from __future__ import annotations

from collections.abc import Iterable

from .types import Annotation, DiffResult

DIFF_FILTERS = ("tp-gt", "tp-pred", "fp", "fn")
SIDES = ("gt", "pred")


def classify_annotations(result: DiffResult) -> dict[tuple[str, int], str]:
    """Label every annotation of one image, keyed by ``(side, annotation_id)``."""
    labels: dict[tuple[str, int], str] = {}
    for match in result.true_positives:
        labels[("gt", match.gt_annotation.id)] = "tp-gt"
        labels[("pred", match.pred_annotation.id)] = "tp-pred"
    for ann in result.false_negatives:
        labels[("gt", ann.id)] = "fn"
    for ann in result.false_positives:
        labels[("pred", ann.id)] = "fp"
    return labels


def classify(result: DiffResult, annotation: Annotation, side: str) -> str | None:
    if side not in SIDES:
        raise ValueError(f"side must be one of: {', '.join(SIDES)}")
    return classify_annotations(result).get((side, annotation.id))


def filter_annotations(result: DiffResult, filters: Iterable[str] | None = None) -> list[tuple[str, Annotation]]:
    wanted = set(DIFF_FILTERS if filters is None else filters)
    unknown = wanted - set(DIFF_FILTERS)
    if unknown:
        raise ValueError(f"unknown diff filters: {', '.join(sorted(unknown))}")

    out: list[tuple[str, Annotation]] = []
    seen: set[tuple[str, int]] = set()
    for match in result.true_positives:
        if "tp-gt" in wanted and ("gt", match.gt_annotation.id) not in seen:
            seen.add(("gt", match.gt_annotation.id))
            out.append(("tp-gt", match.gt_annotation))
        if "tp-pred" in wanted and ("pred", match.pred_annotation.id) not in seen:
            seen.add(("pred", match.pred_annotation.id))
            out.append(("tp-pred", match.pred_annotation))
    if "fn" in wanted:
        out.extend(("fn", ann) for ann in result.false_negatives)
    if "fp" in wanted:
        out.extend(("fp", ann) for ann in result.false_positives)
    return out
