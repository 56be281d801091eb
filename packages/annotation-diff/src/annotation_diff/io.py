from __future__ import annotations

from collections.abc import Callable
import json
from pathlib import Path
from typing import TypeVar

from .types import Annotation, AnnotationSet, Category, ImageInfo

_ANNOTATION_KEYS = {"id", "image_id", "category_id", "bbox", "segmentation", "area", "iscrowd"}
_CATEGORY_KEYS = {"id", "name", "supercategory"}
_IMAGE_KEYS = {"id", "file_name", "width", "height"}

T = TypeVar("T")


def _parse_segmentation(raw: object) -> list[list[float]]:
    # RLE dicts (crowd regions) carry no polygon rings
    if not isinstance(raw, list):
        return []
    if raw and not isinstance(raw[0], list):
        raw = [raw]
    return [[float(v) for v in ring] for ring in raw]


def parse_annotation(raw: dict) -> Annotation:
    bbox = raw.get("bbox")
    if not isinstance(bbox, (list, tuple)) or len(bbox) != 4:
        raise ValueError("bbox must have 4 values [x, y, width, height]")
    x, y, w, h = (float(v) for v in bbox)

    return Annotation(
        id=int(raw["id"]),
        image_id=int(raw["image_id"]),
        category_id=int(raw["category_id"]),
        bbox=(x, y, w, h),
        segmentation=_parse_segmentation(raw.get("segmentation", [])),
        area=float(raw.get("area", max(0.0, w) * max(0.0, h))),
        iscrowd=int(raw.get("iscrowd", 0)),
        extra={k: v for k, v in raw.items() if k not in _ANNOTATION_KEYS},
    )


def parse_category(raw: dict) -> Category:
    return Category(
        id=int(raw["id"]),
        name=str(raw["name"]),
        supercategory=str(raw.get("supercategory", "")),
        extra={k: v for k, v in raw.items() if k not in _CATEGORY_KEYS},
    )


def parse_image(raw: dict) -> ImageInfo:
    return ImageInfo(
        id=int(raw["id"]),
        file_name=str(raw.get("file_name", "")),
        width=int(raw.get("width", 0)),
        height=int(raw.get("height", 0)),
        extra={k: v for k, v in raw.items() if k not in _IMAGE_KEYS},
    )


def _parse_all(path: Path, kind: str, item: str, items: object, parser: Callable[[dict], T]) -> list[T]:
    if not isinstance(items, list):
        raise ValueError(f"{path}: '{kind}' must be a list")
    out: list[T] = []
    for idx, raw in enumerate(items):
        try:
            if not isinstance(raw, dict):
                raise ValueError("expected an object")
            out.append(parser(raw))
        except (KeyError, TypeError, ValueError) as exc:
            raise ValueError(f"invalid {item} at {path}[{idx}]: {exc}") from exc
    return out


def load_coco(path: Path) -> AnnotationSet:
    if not path.exists():
        raise FileNotFoundError(f"annotation file not found: {path}")
    payload = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(payload, dict):
        raise ValueError(f"{path}: COCO file must be a JSON object")

    annotations = _parse_all(path, "annotations", "annotation", payload.get("annotations", []), parse_annotation)
    ids = [ann.id for ann in annotations]
    if len(ids) != len(set(ids)):
        raise ValueError(f"{path}: annotation ids must be unique")

    return AnnotationSet(
        annotations=annotations,
        categories=_parse_all(path, "categories", "category", payload.get("categories", []), parse_category),
        images=_parse_all(path, "images", "image", payload.get("images", []), parse_image),
        source=path,
    )
