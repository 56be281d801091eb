from .config import ComparisonSettings, load_comparison_settings
from .diff import DiffCancelled, compare_datasets, compute_diff
from .geometry import box_iou, polygon_iou
from .io import load_coco
from .matching import MatchBudgetExceeded, match_multiple, match_single
from .statistics import compute_statistics

__all__ = [
    "ComparisonSettings",
    "load_comparison_settings",
    "DiffCancelled",
    "compare_datasets",
    "compute_diff",
    "box_iou",
    "polygon_iou",
    "load_coco",
    "MatchBudgetExceeded",
    "match_multiple",
    "match_single",
    "compute_statistics",
]
