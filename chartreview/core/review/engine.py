"""
Review Engine

Central dispatcher. Takes a SelectionResult and returns every ReviewItem
across the registered analyzers, most severe first.

Usage:
    from chartreview.core.review import ReviewEngine

    engine = ReviewEngine()
    items = engine.analyze(selection)
    for item in items:
        print(item.severity.value, item.title)

Adding a new analyzer:
    1. Create  chartreview/core/review/<topic>.py
    2. Implement analyze_<topic>(...) -> List[ReviewItem]
    3. Register an adapter in _ANALYZERS below.
"""
from __future__ import annotations

from collections import Counter
from datetime import datetime
from typing import Callable, Dict, List, Optional, Tuple

from chartreview.core.selection.base import SelectionResult
from chartreview.core.tables import CodeTables, DEFAULT_TABLES
from chartreview.utils import get_logger
from chartreview.utils.dates import parse_fhir_date, sort_key
from .base import ReviewItem, ReviewItemType, Severity, SEVERITY_RANK
from .care_gaps import analyze_care_gaps
from .labs import analyze_labs
from .medications import analyze_medications

logger = get_logger(__name__)

Analyzer = Callable[[SelectionResult, datetime, CodeTables], List[ReviewItem]]

# ── Registry: name → analyzer, in concatenation order ─────────────────────────
_ANALYZERS: Tuple[Tuple[str, Analyzer], ...] = (
    ("labs",        lambda sel, now, tables: analyze_labs(sel.lab_values)),
    ("medications", lambda sel, now, tables: analyze_medications(sel.medications, now, tables)),
    ("care_gaps",   analyze_care_gaps),
)


def sort_review_items(items: List[ReviewItem]) -> List[ReviewItem]:
    """
    Severity rank ascending, then date identified descending.

    Items that tie on both keep their input order.
    """
    by_date = sorted(items, key=lambda item: sort_key(item.date_identified), reverse=True)
    return sorted(by_date, key=lambda item: SEVERITY_RANK[item.severity])


class ReviewEngine:
    """
    Transforms a SelectionResult into an ordered list of ReviewItems.

    Stateless apart from the code tables it was built with; safe to share
    across threads and concurrent requests.
    """

    def __init__(self, tables: CodeTables = DEFAULT_TABLES):
        self.tables = tables

    def analyze(
        self,
        selection: Optional[SelectionResult],
        now: Optional[datetime] = None,
    ) -> List[ReviewItem]:
        """
        Run all registered analyzers against a selection.

        Args:
            selection: Output of select_relevant_resources(). None yields [].
            now:       Reference time. Defaults to selection.reference_time so
                       review and selection agree on "now".

        Returns:
            Items sorted most severe first. An empty list is the expected
            result for a chart with nothing to review.
        """
        if selection is None:
            return []
        now = parse_fhir_date(now) if now is not None else selection.reference_time

        all_items: List[ReviewItem] = []
        for name, analyzer in _ANALYZERS:
            items = analyzer(selection, now, self.tables)
            all_items.extend(items)
            if items:
                logger.info(
                    f"ReviewEngine [{name}]: {len(items)} item(s) — "
                    + ", ".join(item.id for item in items)
                )
            else:
                logger.debug(f"ReviewEngine [{name}]: no items")

        return sort_review_items(all_items)

    @staticmethod
    def registered_analyzers() -> List[str]:
        return [name for name, _ in _ANALYZERS]

    @staticmethod
    def summarise(items: List[ReviewItem]) -> Dict:
        """
        Build a compact summary dict suitable for JSON responses.

        Example output:
        {
            "total_items": 3,
            "high_count": 0,
            "medium_count": 3,
            "low_count": 0,
            "action_required_count": 3,
            "by_type": {"lab-abnormal": 1, "med-interaction": 1, "care-gap": 1},
            "items": [{...}, {...}, {...}]
        }
        """
        severities = Counter(item.severity for item in items)
        by_type = Counter(item.type.value for item in items)

        return {
            "total_items":           len(items),
            "high_count":            severities.get(Severity.HIGH, 0),
            "medium_count":          severities.get(Severity.MEDIUM, 0),
            "low_count":             severities.get(Severity.LOW, 0),
            "action_required_count": sum(1 for item in items if item.action_required),
            "by_type":               {t.value: by_type[t.value] for t in ReviewItemType if by_type[t.value]},
            "items":                 [item.to_dict() for item in items],
        }


def compute_review_items(
    selection: Optional[SelectionResult],
    now: Optional[datetime] = None,
    tables: CodeTables = DEFAULT_TABLES,
) -> List[ReviewItem]:
    """Functional entry point; see ReviewEngine.analyze()."""
    return ReviewEngine(tables).analyze(selection, now)
