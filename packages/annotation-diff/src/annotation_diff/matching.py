"""Greedy matchers between two per-image annotation lists.

Neither strategy is an optimal assignment. ``match_single`` walks side A in
input order and lets each annotation take its best free partner, so an early
annotation can block a better match for a later one. ``match_multiple`` sorts
all candidate pairs globally by IoU before assigning. The two only agree when
at most one match per annotation is allowed and there are no ties.
"""

from __future__ import annotations

from collections.abc import Mapping
import logging

from .categories import is_eligible
from .geometry import IoUFunction
from .types import Annotation, MatchedPair, MatchOutcome

logger = logging.getLogger(__name__)


class MatchBudgetExceeded(RuntimeError):
    pass


def _check_budget(n_a: int, n_b: int, max_pairs: int | None) -> None:
    if max_pairs is not None and n_a * n_b > max_pairs:
        raise MatchBudgetExceeded(f"{n_a}x{n_b}={n_a * n_b} annotation pairs exceeds max_pairs={max_pairs}")


def match_single(
    annotations_a: list[Annotation],
    annotations_b: list[Annotation],
    iou_fn: IoUFunction,
    mapping: Mapping[int, set[int]],
    iou_threshold: float,
    max_pairs: int | None = None,
) -> MatchOutcome:
    _check_budget(len(annotations_a), len(annotations_b), max_pairs)

    used_a: set[int] = set()
    used_b: set[int] = set()
    matches: list[MatchedPair] = []

    for ai, a in enumerate(annotations_a):
        best_idx: int | None = None
        best_iou = 0.0
        for bi, b in enumerate(annotations_b):
            if bi in used_b or not is_eligible(mapping, a, b):
                continue
            iou = iou_fn(a, b)
            if iou >= iou_threshold and (best_idx is None or iou > best_iou):
                best_idx = bi
                best_iou = iou

        if best_idx is not None:
            used_a.add(ai)
            used_b.add(best_idx)
            matches.append(MatchedPair(annotation_a=a, annotation_b=annotations_b[best_idx], iou=best_iou))

    unmatched_a = [a for ai, a in enumerate(annotations_a) if ai not in used_a]
    unmatched_b = [b for bi, b in enumerate(annotations_b) if bi not in used_b]

    below: list[MatchedPair] = []
    for a in unmatched_a:
        for b in unmatched_b:
            if not is_eligible(mapping, a, b):
                continue
            iou = iou_fn(a, b)
            if 0.0 < iou < iou_threshold:
                below.append(MatchedPair(annotation_a=a, annotation_b=b, iou=iou))

    logger.debug(
        "single match: a=%d b=%d matched=%d below_threshold=%d",
        len(annotations_a),
        len(annotations_b),
        len(matches),
        len(below),
    )
    return MatchOutcome(matches=matches, unmatched_a=unmatched_a, unmatched_b=unmatched_b, below_threshold=below)


def match_multiple(
    annotations_a: list[Annotation],
    annotations_b: list[Annotation],
    iou_fn: IoUFunction,
    mapping: Mapping[int, set[int]],
    iou_threshold: float,
    max_matches: int,
    max_pairs: int | None = None,
) -> MatchOutcome:
    _check_budget(len(annotations_a), len(annotations_b), max_pairs)

    candidates: list[tuple[float, int, int]] = []
    near: list[tuple[float, int, int]] = []
    for ai, a in enumerate(annotations_a):
        for bi, b in enumerate(annotations_b):
            if not is_eligible(mapping, a, b):
                continue
            iou = iou_fn(a, b)
            if iou >= iou_threshold:
                candidates.append((iou, ai, bi))
            elif iou > 0.0:
                near.append((iou, ai, bi))

    # stable sort keeps enumeration order among equal IoUs
    candidates.sort(key=lambda x: -x[0])
    count_a: dict[int, int] = {}
    count_b: dict[int, int] = {}
    matches: list[MatchedPair] = []

    for iou, ai, bi in candidates:
        ca = count_a.get(ai, 0)
        cb = count_b.get(bi, 0)
        if ca >= max_matches or cb >= max_matches:
            continue
        count_a[ai] = ca + 1
        count_b[bi] = cb + 1
        matches.append(MatchedPair(annotation_a=annotations_a[ai], annotation_b=annotations_b[bi], iou=iou))

    near.sort(key=lambda x: -x[0])
    below = [
        MatchedPair(annotation_a=annotations_a[ai], annotation_b=annotations_b[bi], iou=iou)
        for iou, ai, bi in near
        if ai not in count_a or bi not in count_b
    ]

    unmatched_a = [a for ai, a in enumerate(annotations_a) if ai not in count_a]
    unmatched_b = [b for bi, b in enumerate(annotations_b) if bi not in count_b]

    logger.debug(
        "multi match: a=%d b=%d candidates=%d near=%d matched=%d below_threshold=%d",
        len(annotations_a),
        len(annotations_b),
        len(candidates),
        len(near),
        len(matches),
        len(below),
    )
    return MatchOutcome(matches=matches, unmatched_a=unmatched_a, unmatched_b=unmatched_b, below_threshold=below)


def match_annotations(
    annotations_a: list[Annotation],
    annotations_b: list[Annotation],
    iou_fn: IoUFunction,
    mapping: Mapping[int, set[int]],
    iou_threshold: float,
    max_matches: int = 1,
    max_pairs: int | None = None,
) -> MatchOutcome:
    if max_matches > 1:
        return match_multiple(annotations_a, annotations_b, iou_fn, mapping, iou_threshold, max_matches, max_pairs)
    return match_single(annotations_a, annotations_b, iou_fn, mapping, iou_threshold, max_pairs)
