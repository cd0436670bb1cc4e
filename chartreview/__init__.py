"""
Chart Review Engine

Selects the clinically relevant subset of a patient record bundle and
derives a ranked list of review items from it.

Usage:
    from chartreview import select_relevant_resources, compute_review_items

    selection = select_relevant_resources(bundle, now=reference_time)
    items = compute_review_items(selection)
"""
from chartreview.core.selection import select_relevant_resources, SelectionResult
from chartreview.core.review import compute_review_items, ReviewEngine, ReviewItem
from chartreview.core.tables import CodeTables, DEFAULT_TABLES
from chartreview.utils import ChartReviewError, MissingSubjectError, InvalidBundleError

__version__ = "1.0.0"

__all__ = [
    "select_relevant_resources",
    "SelectionResult",
    "compute_review_items",
    "ReviewEngine",
    "ReviewItem",
    "CodeTables",
    "DEFAULT_TABLES",
    "ChartReviewError",
    "MissingSubjectError",
    "InvalidBundleError",
]
