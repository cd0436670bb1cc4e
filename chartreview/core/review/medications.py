"""
Medication Review Rules

Pairwise checks over active orders (catalogued interactions and duplicate
therapy) plus a long-term-use adherence flag per order.
"""
from __future__ import annotations

from datetime import datetime
from itertools import combinations
from typing import Iterable, List

from chartreview.core.selection.base import ProcessedMedication
from chartreview.core.tables import CodeTables, DEFAULT_TABLES
from chartreview.utils.dates import as_utc, days_since
from .base import ChartHint, ChartTab, ReviewItem, ReviewItemType, Severity

ADHERENCE_REVIEW_DAYS = 90


def _interaction_items(
    first: ProcessedMedication,
    second: ProcessedMedication,
    identified: str,
    tables: CodeTables,
) -> List[ReviewItem]:
    items: List[ReviewItem] = []
    pair_id = f"{first.source_id}-{second.source_id}"

    rule = tables.find_interaction(first.code, second.code)
    if rule is not None:
        severity = Severity(rule.severity)
        items.append(ReviewItem(
            id=f"med-interaction-{pair_id}",
            type=ReviewItemType.MED_INTERACTION,
            severity=severity,
            title="Medication Interaction",
            description=f"{first.name} + {second.name}: {rule.description}",
            details=rule.action,
            action_required=severity is Severity.HIGH,
            date_identified=identified,
            chart_hint=ChartHint(tab=ChartTab.MED_TIMELINE),
        ))

    # Same drug ordered twice; reported alongside any catalogued interaction
    if first.code is not None and first.code == second.code:
        items.append(ReviewItem(
            id=f"med-duplicate-{pair_id}",
            type=ReviewItemType.MED_INTERACTION,
            severity=Severity.MEDIUM,
            title="Duplicate Medication",
            description=f"Multiple prescriptions for {first.name}",
            details="Review for potential duplicate therapy and consolidate if appropriate",
            action_required=True,
            date_identified=identified,
            chart_hint=ChartHint(tab=ChartTab.MED_TIMELINE, medication_id=first.source_id),
        ))
    return items


def _adherence_item(med: ProcessedMedication, days: float, identified: str) -> ReviewItem:
    return ReviewItem(
        id=f"med-adherence-{med.source_id}",
        type=ReviewItemType.MED_ADHERENCE,
        severity=Severity.LOW,
        title="Long-term Active Medication",
        description=f"{med.name} active for {round(days)} days",
        details="Review medication adherence and consider refill needs",
        action_required=False,
        date_identified=identified,
        resource_ref=med.source_ref,
        chart_hint=ChartHint(tab=ChartTab.MEDICATIONS, medication_id=med.source_id),
    )


def analyze_medications(
    medications: Iterable[ProcessedMedication],
    now: datetime,
    tables: CodeTables = DEFAULT_TABLES,
) -> List[ReviewItem]:
    """
    Interaction, duplicate and adherence items.

    Pairs are taken over active orders only, in input order (i < j).
    """
    medications = list(medications)
    now = as_utc(now)
    identified = now.isoformat()
    items: List[ReviewItem] = []

    active = [med for med in medications if med.is_active]
    for first, second in combinations(active, 2):
        items.extend(_interaction_items(first, second, identified, tables))

    for med in medications:
        if not med.is_active:
            continue
        days = days_since(med.authored_date, now)
        if days is not None and days > ADHERENCE_REVIEW_DAYS:
            items.append(_adherence_item(med, days, identified))

    return items
