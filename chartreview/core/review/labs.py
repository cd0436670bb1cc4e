"""
Lab Review Rules

Abnormal results and significant changes between consecutive results of
the same lab code.

Design principles:
  - An abnormal item needs a reference range, even when the source data
    flagged the value some other way.
  - Deltas compare normalized values of consecutive results in date order
    and are skipped when the earlier value is zero or either is non-numeric.
"""
from __future__ import annotations

import re
from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Union

import numpy as np

from chartreview.core.selection.base import ProcessedLabValue
from chartreview.utils.dates import format_date, sort_key
from .base import ChartHint, ChartTab, ReviewItem, ReviewItemType, Severity

# Percent change thresholds
DELTA_SIGNIFICANT_PCT = 30.0
DELTA_HIGH_PCT = 50.0

_NUMBER = re.compile(r"-?(?:\d+(?:\.\d*)?|\.\d+)")


def extract_numeric_value(value: Union[float, int, str, None]) -> Optional[float]:
    """First number in `value`, e.g. "<5.2 mg/dL" → 5.2."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        match = _NUMBER.search(value)
        return float(match.group()) if match else None
    return None


def _numeric(lab: ProcessedLabValue) -> Optional[float]:
    if lab.normalized_value is not None:
        return float(lab.normalized_value)
    return extract_numeric_value(lab.value)


def _fmt(value: Optional[float]) -> str:
    return "N/A" if value is None else f"{value:g}"


def percent_changes(values: Iterable[Optional[float]]) -> np.ndarray:
    """
    |cur - prev| / prev * 100 for each consecutive pair.

    Entry i compares values[i] with values[i + 1]; it is NaN when either
    value is missing or values[i] is zero.
    """
    series = np.array([np.nan if v is None else v for v in values], dtype=float)
    if series.size < 2:
        return np.empty(0)
    prev, cur = series[:-1], series[1:]
    with np.errstate(divide="ignore", invalid="ignore"):
        changes = np.abs((cur - prev) * 100.0 / prev)
    changes[(prev == 0) | ~np.isfinite(changes)] = np.nan
    return changes


def group_by_code(labs: Iterable[ProcessedLabValue]) -> Dict[str, List[ProcessedLabValue]]:
    """Labs per code, each group in ascending date order."""
    groups: Dict[str, List[ProcessedLabValue]] = defaultdict(list)
    for lab in labs:
        groups[lab.code].append(lab)
    for group in groups.values():
        group.sort(key=lambda lab: sort_key(lab.date))
    return dict(groups)


def _abnormal_item(lab: ProcessedLabValue, index: int) -> ReviewItem:
    ref = lab.reference_range
    return ReviewItem(
        id=f"lab-abnormal-{lab.source_id or index}",
        type=ReviewItemType.LAB_ABNORMAL,
        severity=Severity.MEDIUM,
        title=f"Abnormal {lab.display}",
        description=(
            f"{_fmt(_numeric(lab))} {lab.normalized_unit} "
            f"(Normal: {_fmt(ref.low)}-{_fmt(ref.high)})"
        ),
        details=f"Lab result is outside normal reference range. Date: {format_date(lab.date)}",
        action_required=True,
        date_identified=lab.date,
        resource_ref=lab.source_ref,
        chart_hint=ChartHint(tab=ChartTab.LAB_TRENDS, code=lab.code),
    )


def _delta_item(
    prev_lab: ProcessedLabValue,
    lab: ProcessedLabValue,
    prev_value: float,
    value: float,
    change: float,
    index: int,
) -> ReviewItem:
    direction = "increased" if value > prev_value else "decreased"
    is_high = change > DELTA_HIGH_PCT
    return ReviewItem(
        id=f"lab-delta-{lab.source_id or index}",
        type=ReviewItemType.LAB_DELTA,
        severity=Severity.HIGH if is_high else Severity.MEDIUM,
        title=f"Significant {lab.display} Change",
        description=(
            f"{direction} {change:.1f}% from {_fmt(prev_value)} to "
            f"{_fmt(value)} {lab.normalized_unit}"
        ),
        details=f"Significant change from {format_date(prev_lab.date)} to {format_date(lab.date)}",
        action_required=is_high,
        date_identified=lab.date,
        resource_ref=lab.source_ref,
        chart_hint=ChartHint(tab=ChartTab.LAB_TRENDS, code=lab.code),
    )


def analyze_labs(labs: Iterable[ProcessedLabValue]) -> List[ReviewItem]:
    """
    Evaluate abnormal-value and delta rules per lab code.

    Returns:
        Items in code-group order; within a group, in date order with each
        result's abnormal item ahead of its delta item.
    """
    items: List[ReviewItem] = []
    for group in group_by_code(labs).values():
        values = [_numeric(lab) for lab in group]
        changes = percent_changes(values)

        for index, lab in enumerate(group):
            if lab.is_abnormal and lab.reference_range is not None:
                items.append(_abnormal_item(lab, index))

            if index == 0:
                continue
            change = changes[index - 1]
            if np.isnan(change) or change <= DELTA_SIGNIFICANT_PCT:
                continue
            items.append(_delta_item(
                group[index - 1], lab, values[index - 1], values[index], float(change), index
            ))
    return items
