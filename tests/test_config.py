from __future__ import annotations

import json

import pytest

from annotation_diff.config import (
    ComparisonSettings,
    load_comparison_settings,
    settings_from_dict,
    settings_to_dict,
)


def _minimal_settings_payload() -> dict:
    return {
        "gt_is_primary": False,
        "iou_threshold": 0.75,
        "category_mapping": {"1": [1, 2], "3": 4},
        "max_matches_per_annotation": 2,
        "iou_method": "polygon",
    }


def test_defaults_are_valid() -> None:
    settings = ComparisonSettings()
    assert settings.gt_is_primary is True
    assert settings.iou_threshold == 0.5
    assert settings.max_matches_per_annotation == 1
    assert settings.iou_method == "bbox"
    assert settings.category_mapping == {}


@pytest.mark.parametrize("threshold", [0.0, -0.1, 1.0001, float("nan")])
def test_rejects_threshold_outside_unit_interval(threshold: float) -> None:
    with pytest.raises(ValueError, match="iou_threshold"):
        ComparisonSettings(iou_threshold=threshold)


def test_accepts_threshold_of_one() -> None:
    assert ComparisonSettings(iou_threshold=1.0).iou_threshold == 1.0


def test_rejects_max_matches_below_one() -> None:
    with pytest.raises(ValueError, match="max_matches_per_annotation"):
        ComparisonSettings(max_matches_per_annotation=0)


def test_rejects_unknown_iou_method() -> None:
    with pytest.raises(ValueError, match="iou_method"):
        ComparisonSettings(iou_method="mask")


def test_rejects_bad_workers_and_pair_budget() -> None:
    with pytest.raises(ValueError, match="workers"):
        ComparisonSettings(workers=0)
    with pytest.raises(ValueError, match="max_pairs_per_image"):
        ComparisonSettings(max_pairs_per_image=0)


def test_mapping_values_must_be_sets() -> None:
    with pytest.raises(ValueError, match="category_mapping"):
        ComparisonSettings(category_mapping={1: [1]})  # type: ignore[dict-item]


def test_settings_from_dict_parses_mapping() -> None:
    settings = settings_from_dict(_minimal_settings_payload())
    assert settings.category_mapping == {1: {1, 2}, 3: {4}}
    assert settings.gt_is_primary is False
    assert settings.max_matches_per_annotation == 2
    assert settings.iou_method == "polygon"


def test_load_comparison_settings_rejects_unknown_top_key(tmp_path) -> None:
    payload = _minimal_settings_payload()
    payload["extra"] = 1
    path = tmp_path / "settings.json"
    path.write_text(json.dumps(payload), encoding="utf-8")

    with pytest.raises(ValueError, match="unknown keys"):
        load_comparison_settings(path)


def test_load_comparison_settings_wraps_validation_errors(tmp_path) -> None:
    payload = _minimal_settings_payload()
    payload["iou_threshold"] = 2.0
    path = tmp_path / "settings.json"
    path.write_text(json.dumps(payload), encoding="utf-8")

    with pytest.raises(ValueError, match="invalid comparison settings"):
        load_comparison_settings(path)


def test_load_comparison_settings_missing_file(tmp_path) -> None:
    with pytest.raises(FileNotFoundError):
        load_comparison_settings(tmp_path / "missing.json")


def test_settings_to_dict_is_loadable(tmp_path) -> None:
    settings = settings_from_dict(_minimal_settings_payload())
    path = tmp_path / "settings.json"
    path.write_text(json.dumps(settings_to_dict(settings)), encoding="utf-8")

    loaded = load_comparison_settings(path)
    assert loaded == settings


@pytest.mark.parametrize(
    ("kwargs", "field_name"),
    [
        ({"iou_threshold": "0.5"}, "iou_threshold"),
        ({"iou_threshold": True}, "iou_threshold"),
        ({"workers": 2.5}, "workers"),
        ({"workers": "2"}, "workers"),
        ({"workers": True}, "workers"),
        ({"max_pairs_per_image": 1.5}, "max_pairs_per_image"),
        ({"max_pairs_per_image": "10"}, "max_pairs_per_image"),
        ({"max_matches_per_annotation": 2.0}, "max_matches_per_annotation"),
    ],
)
def test_rejects_wrong_field_types(kwargs: dict, field_name: str) -> None:
    with pytest.raises(ValueError, match=f"{field_name} must be"):
        ComparisonSettings(**kwargs)


def test_settings_from_dict_rejects_string_numbers() -> None:
    with pytest.raises(ValueError, match="workers must be an integer"):
        settings_from_dict({"workers": "2"})
    with pytest.raises(ValueError, match="iou_threshold must be a number"):
        settings_from_dict({"iou_threshold": "0.5"})


def test_settings_from_dict_accepts_integer_threshold() -> None:
    assert settings_from_dict({"iou_threshold": 1}).iou_threshold == 1
