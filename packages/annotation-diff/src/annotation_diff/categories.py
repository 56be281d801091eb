from __future__ import annotations

from collections.abc import Iterable, Mapping

from .types import Annotation, Category

CategoryMapping = dict[int, set[int]]


def is_eligible(mapping: Mapping[int, set[int]], a: Annotation, b: Annotation) -> bool:
    """Return True if ``a`` (primary side) may be compared with ``b`` (secondary side).

    A primary category without an entry has no counterpart at all; its
    annotations are never compared, whatever ``b`` is.
    """
    targets = mapping.get(a.category_id)
    return targets is not None and b.category_id in targets


def default_category_mapping(
    primary_categories: Iterable[Category],
    secondary_categories: Iterable[Category],
) -> CategoryMapping:
    by_name: dict[str, int] = {}
    for cat in secondary_categories:
        by_name.setdefault(cat.name.lower(), cat.id)

    mapping: CategoryMapping = {}
    for cat in primary_categories:
        mapping[cat.id] = {by_name.get(cat.name.lower(), cat.id)}
    return mapping


def _as_int(value: object, what: str) -> int:
    if isinstance(value, bool):
        raise ValueError(f"{what} must be an integer category id (got {value!r})")
    try:
        return int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{what} must be an integer category id (got {value!r})") from exc


def parse_category_mapping(raw: Mapping[object, object]) -> CategoryMapping:
    """Convert a JSON-shaped mapping such as ``{"1": [1, 2], "3": 4}``."""
    if not isinstance(raw, Mapping):
        raise ValueError("category_mapping must be an object of primary id -> secondary id(s)")

    mapping: CategoryMapping = {}
    for key, value in raw.items():
        src = _as_int(key, "category_mapping key")
        if isinstance(value, (list, tuple, set)):
            mapping[src] = {_as_int(v, f"category_mapping[{src}]") for v in value}
        else:
            mapping[src] = {_as_int(value, f"category_mapping[{src}]")}
    return mapping


def mapping_to_json(mapping: Mapping[int, set[int]]) -> dict[str, list[int]]:
    return {str(k): sorted(v) for k, v in sorted(mapping.items())}
