from __future__ import annotations

from collections.abc import Iterable
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
import logging
import threading

from tqdm import tqdm

from .config import ComparisonSettings
from .geometry import iou_function
from .matching import match_annotations
from .roles import resolve_roles
from .statistics import compute_statistics
from .types import Annotation, AnnotationSet, DiffResult, DiffStatistics

logger = logging.getLogger(__name__)


class DiffCancelled(RuntimeError):
    pass


def _scoped_image_ids(
    primary_by_image: dict[int, list[Annotation]],
    secondary_by_image: dict[int, list[Annotation]],
    image_ids: Iterable[int] | None,
) -> list[int]:
    all_ids = set(primary_by_image) | set(secondary_by_image)
    if image_ids is not None:
        all_ids &= set(image_ids)
    return sorted(all_ids)


def diff_image(
    image_id: int,
    annotations_primary: list[Annotation],
    annotations_secondary: list[Annotation],
    settings: ComparisonSettings,
) -> DiffResult:
    outcome = match_annotations(
        annotations_primary,
        annotations_secondary,
        iou_function(settings.iou_method),
        settings.category_mapping,
        settings.iou_threshold,
        max_matches=settings.max_matches_per_annotation,
        max_pairs=settings.max_pairs_per_image,
    )
    result = resolve_roles(outcome, image_id, settings.gt_is_primary)
    logger.debug(
        "image %s: tp=%d fp=%d fn=%d below=%d",
        image_id,
        len(result.true_positives),
        len(result.false_positives),
        len(result.false_negatives),
        len(result.below_threshold_matches),
    )
    return result


def _run_parallel(
    ids: list[int],
    primary_by_image: dict[int, list[Annotation]],
    secondary_by_image: dict[int, list[Annotation]],
    settings: ComparisonSettings,
    cancel_event: threading.Event | None,
    progress: tqdm,
) -> dict[int, DiffResult]:
    done: dict[int, DiffResult] = {}
    executor = ThreadPoolExecutor(max_workers=settings.workers)
    futures: dict[Future, int] = {}
    try:
        for image_id in ids:
            fut = executor.submit(
                diff_image,
                image_id,
                primary_by_image.get(image_id, []),
                secondary_by_image.get(image_id, []),
                settings,
            )
            futures[fut] = image_id

        pending = set(futures)
        while pending:
            if cancel_event is not None and cancel_event.is_set():
                raise DiffCancelled(f"diff cancelled after {len(done)}/{len(ids)} images")
            finished, pending = wait(pending, timeout=0.1, return_when=FIRST_COMPLETED)
            for fut in finished:
                done[futures[fut]] = fut.result()
                progress.update(1)
    finally:
        executor.shutdown(wait=True, cancel_futures=True)

    return {image_id: done[image_id] for image_id in ids}


def compute_diff(
    primary: AnnotationSet,
    secondary: AnnotationSet,
    settings: ComparisonSettings,
    image_ids: Iterable[int] | None = None,
    *,
    cancel_event: threading.Event | None = None,
    show_progress: bool = False,
) -> dict[int, DiffResult]:
    primary_by_image = primary.by_image()
    secondary_by_image = secondary.by_image()
    ids = _scoped_image_ids(primary_by_image, secondary_by_image, image_ids)

    logger.debug(
        "diff: primary=%d secondary=%d images=%d method=%s threshold=%s max_matches=%d gt_is_primary=%s",
        len(primary.annotations),
        len(secondary.annotations),
        len(ids),
        settings.iou_method,
        settings.iou_threshold,
        settings.max_matches_per_annotation,
        settings.gt_is_primary,
    )

    with tqdm(total=len(ids), desc="annotation-diff", unit="image", disable=not show_progress) as progress:
        if settings.workers > 1 and len(ids) > 1:
            return _run_parallel(ids, primary_by_image, secondary_by_image, settings, cancel_event, progress)

        results: dict[int, DiffResult] = {}
        for image_id in ids:
            if cancel_event is not None and cancel_event.is_set():
                raise DiffCancelled(f"diff cancelled after {len(results)}/{len(ids)} images")
            results[image_id] = diff_image(
                image_id,
                primary_by_image.get(image_id, []),
                secondary_by_image.get(image_id, []),
                settings,
            )
            progress.update(1)
        return results


def compare_datasets(
    primary: AnnotationSet,
    secondary: AnnotationSet,
    settings: ComparisonSettings,
    image_ids: Iterable[int] | None = None,
    *,
    cancel_event: threading.Event | None = None,
    show_progress: bool = False,
) -> tuple[dict[int, DiffResult], DiffStatistics]:
    results = compute_diff(
        primary,
        secondary,
        settings,
        image_ids,
        cancel_event=cancel_event,
        show_progress=show_progress,
    )
    gt_set = primary if settings.gt_is_primary else secondary
    return results, compute_statistics(results, gt_set.categories)
