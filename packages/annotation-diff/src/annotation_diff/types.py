from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from dataclasses import field
from pathlib import Path
from typing import Any


@dataclass(slots=True)
class Annotation:
    id: int
    image_id: int
    category_id: int
    bbox: tuple[float, float, float, float]  # x, y, w, h
    segmentation: list[list[float]] = field(default_factory=list)  # polygons only, RLE loads as []
    area: float = 0.0
    iscrowd: int = 0
    extra: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class Category:
    id: int
    name: str
    supercategory: str = ""
    extra: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class ImageInfo:
    id: int
    file_name: str
    width: int = 0
    height: int = 0
    extra: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class AnnotationSet:
    annotations: list[Annotation]
    categories: list[Category]
    images: list[ImageInfo] = field(default_factory=list)
    source: Path | None = None

    def by_image(self) -> dict[int, list[Annotation]]:
        grouped: dict[int, list[Annotation]] = defaultdict(list)
        for ann in self.annotations:
            grouped[ann.image_id].append(ann)
        return dict(grouped)

    def image_ids(self) -> set[int]:
        return {ann.image_id for ann in self.annotations}

    def category_names(self) -> dict[int, str]:
        return {cat.id: cat.name for cat in self.categories}


@dataclass(slots=True)
class MatchedPair:
    annotation_a: Annotation
    annotation_b: Annotation
    iou: float


@dataclass(slots=True)
class MatchOutcome:
    matches: list[MatchedPair]
    unmatched_a: list[Annotation]
    unmatched_b: list[Annotation]
    below_threshold: list[MatchedPair]


@dataclass(slots=True)
class MatchedAnnotation:
    gt_annotation: Annotation
    pred_annotation: Annotation
    iou: float


@dataclass(slots=True)
class DiffResult:
    image_id: int
    true_positives: list[MatchedAnnotation] = field(default_factory=list)
    false_positives: list[Annotation] = field(default_factory=list)
    false_negatives: list[Annotation] = field(default_factory=list)
    below_threshold_matches: list[MatchedAnnotation] = field(default_factory=list)


@dataclass(slots=True)
class CategoryStats:
    tp: int = 0
    fp: int = 0
    fn: int = 0
    category_name: str | None = None

    @property
    def precision(self) -> float:
        d = self.tp + self.fp
        return self.tp / d if d > 0 else 0.0

    @property
    def recall(self) -> float:
        d = self.tp + self.fn
        return self.tp / d if d > 0 else 0.0

    @property
    def f1(self) -> float:
        p = self.precision
        r = self.recall
        return 2.0 * p * r / (p + r) if (p + r) > 0 else 0.0

    def as_dict(self) -> dict:
        return {
            "category_name": self.category_name,
            "tp": self.tp,
            "fp": self.fp,
            "fn": self.fn,
            "precision": self.precision,
            "recall": self.recall,
            "f1": self.f1,
        }


@dataclass(slots=True)
class DiffStatistics:
    total: CategoryStats
    by_category: dict[int, CategoryStats]
