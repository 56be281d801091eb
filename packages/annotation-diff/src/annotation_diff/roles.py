from __future__ import annotations

from .types import DiffResult, MatchedAnnotation, MatchedPair, MatchOutcome


def _to_matched(pair: MatchedPair, gt_is_primary: bool) -> MatchedAnnotation:
    if gt_is_primary:
        return MatchedAnnotation(gt_annotation=pair.annotation_a, pred_annotation=pair.annotation_b, iou=pair.iou)
    return MatchedAnnotation(gt_annotation=pair.annotation_b, pred_annotation=pair.annotation_a, iou=pair.iou)


def resolve_roles(outcome: MatchOutcome, image_id: int, gt_is_primary: bool) -> DiffResult:
    """Map side A/B matcher output onto ground-truth and prediction roles.

    Side A is always the primary dataset. When the primary dataset is the
    ground truth, unmatched A annotations are false negatives and unmatched B
    annotations are false positives; otherwise the roles flip.
    """
    if gt_is_primary:
        false_negatives, false_positives = list(outcome.unmatched_a), list(outcome.unmatched_b)
    else:
        false_negatives, false_positives = list(outcome.unmatched_b), list(outcome.unmatched_a)

    return DiffResult(
        image_id=image_id,
        true_positives=[_to_matched(m, gt_is_primary) for m in outcome.matches],
        false_positives=false_positives,
        false_negatives=false_negatives,
        below_threshold_matches=[_to_matched(m, gt_is_primary) for m in outcome.below_threshold],
    )
