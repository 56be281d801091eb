from __future__ import annotations

from dataclasses import dataclass
from dataclasses import field
import json
from pathlib import Path
from numbers import Real

from .categories import CategoryMapping, mapping_to_json, parse_category_mapping
from .geometry import IOU_METHODS

_SETTINGS_KEYS = {
    "gt_is_primary",
    "iou_threshold",
    "category_mapping",
    "max_matches_per_annotation",
    "iou_method",
    "max_pairs_per_image",
    "workers",
}


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


@dataclass(slots=True)
class ComparisonSettings:
    category_mapping: CategoryMapping = field(default_factory=dict)
    gt_is_primary: bool = True
    iou_threshold: float = 0.5
    max_matches_per_annotation: int = 1
    iou_method: str = "bbox"  # bbox|polygon
    max_pairs_per_image: int | None = None
    workers: int = 1

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        if not isinstance(self.gt_is_primary, bool):
            raise ValueError("gt_is_primary must be a boolean")
        if isinstance(self.iou_threshold, bool) or not isinstance(self.iou_threshold, Real):
            raise ValueError(f"iou_threshold must be a number (got {self.iou_threshold!r})")
        if not (0.0 < self.iou_threshold <= 1.0):
            raise ValueError(f"iou_threshold must be in (0,1] (got {self.iou_threshold})")
        if not _is_int(self.max_matches_per_annotation):
            raise ValueError("max_matches_per_annotation must be an integer")
        if self.max_matches_per_annotation < 1:
            raise ValueError(f"max_matches_per_annotation must be >= 1 (got {self.max_matches_per_annotation})")
        if self.iou_method not in IOU_METHODS:
            raise ValueError(f"iou_method must be one of: {', '.join(IOU_METHODS)}")
        if self.max_pairs_per_image is not None:
            if not _is_int(self.max_pairs_per_image):
                raise ValueError(f"max_pairs_per_image must be an integer (got {self.max_pairs_per_image!r})")
            if self.max_pairs_per_image < 1:
                raise ValueError("max_pairs_per_image must be >= 1 when set")
        if not _is_int(self.workers):
            raise ValueError(f"workers must be an integer (got {self.workers!r})")
        if self.workers < 1:
            raise ValueError("workers must be >= 1")
        for src, targets in self.category_mapping.items():
            if not isinstance(targets, set):
                raise ValueError(f"category_mapping[{src}] must be a set of category ids")


def _settings_from_dict(payload: dict) -> ComparisonSettings:
    unknown = set(payload) - _SETTINGS_KEYS
    if unknown:
        raise ValueError(f"comparison settings contain unknown keys: {', '.join(sorted(unknown))}")

    kwargs = dict(payload)
    if "category_mapping" in kwargs:
        kwargs["category_mapping"] = parse_category_mapping(kwargs["category_mapping"])
    return ComparisonSettings(**kwargs)


def settings_from_dict(payload: dict, source: Path | None = None) -> ComparisonSettings:
    """Build settings from a decoded JSON object.

    With `source` set, errors are re-raised as ValueError naming the file.
    """
    if source is None:
        return _settings_from_dict(payload)
    try:
        return _settings_from_dict(payload)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"invalid comparison settings in {source}: {exc}") from exc


def read_settings_payload(path: Path) -> dict:
    if not path.exists():
        raise FileNotFoundError(f"comparison settings not found: {path}")
    payload = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(payload, dict):
        raise ValueError(f"comparison settings must be a JSON object: {path}")
    return payload


def load_comparison_settings(path: Path) -> ComparisonSettings:
    return settings_from_dict(read_settings_payload(path), source=path)


def settings_to_dict(settings: ComparisonSettings) -> dict:
    return {
        "gt_is_primary": settings.gt_is_primary,
        "iou_threshold": settings.iou_threshold,
        "category_mapping": mapping_to_json(settings.category_mapping),
        "max_matches_per_annotation": settings.max_matches_per_annotation,
        "iou_method": settings.iou_method,
        "max_pairs_per_image": settings.max_pairs_per_image,
        "workers": settings.workers,
    }
