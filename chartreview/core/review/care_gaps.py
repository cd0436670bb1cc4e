"""
Care-Gap Review Rules

Runs each screening rule from the code tables against the selection: a
rule fires when the patient is eligible and no recent qualifying evidence
is on file.
"""
from __future__ import annotations

from datetime import datetime
from typing import List

from chartreview.core.selection.base import SelectionResult
from chartreview.core.tables import CareGapRule, CodeTables, DEFAULT_TABLES
from chartreview.utils.dates import as_utc
from .base import ChartHint, ChartTab, ReviewItem, ReviewItemType, Severity


def _care_gap_item(rule: CareGapRule, identified: str) -> ReviewItem:
    return ReviewItem(
        id=f"care-gap-{rule.id}",
        type=ReviewItemType.CARE_GAP,
        severity=Severity.MEDIUM,
        title=f"Care Gap: {rule.name}",
        description=rule.description,
        details=rule.recommendation,
        action_required=True,
        date_identified=identified,
        chart_hint=ChartHint(tab=ChartTab.LABS),
    )


def analyze_care_gaps(
    selection: SelectionResult,
    now: datetime,
    tables: CodeTables = DEFAULT_TABLES,
) -> List[ReviewItem]:
    """One item per triggered rule, in table order. Empty without a patient."""
    if selection is None or selection.patient is None:
        return []

    now = as_utc(now)
    identified = now.isoformat()
    return [
        _care_gap_item(rule, identified)
        for rule in tables.care_gap_rules
        if rule.applies(selection.patient, now) and rule.check_gap(selection, now)
    ]
