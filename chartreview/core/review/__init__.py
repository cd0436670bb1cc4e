"""
Review Layer

Turns a selection into actionable review items.

Usage:
    from chartreview.core.review import ReviewEngine, compute_review_items

    items = compute_review_items(selection)
    summary = ReviewEngine.summarise(items)
"""
from .base import ChartHint, ChartTab, ReviewItem, ReviewItemType, Severity, SEVERITY_RANK
from .care_gaps import analyze_care_gaps
from .engine import ReviewEngine, compute_review_items, sort_review_items
from .labs import analyze_labs, extract_numeric_value
from .medications import analyze_medications
from .timeline import TimelineSegment, detect_medication_overlaps, segment_medication_timeline

__all__ = [
    "ChartHint",
    "ChartTab",
    "ReviewItem",
    "ReviewItemType",
    "Severity",
    "SEVERITY_RANK",
    "ReviewEngine",
    "compute_review_items",
    "sort_review_items",
    "analyze_labs",
    "analyze_medications",
    "analyze_care_gaps",
    "extract_numeric_value",
    "TimelineSegment",
    "detect_medication_overlaps",
    "segment_medication_timeline",
]
