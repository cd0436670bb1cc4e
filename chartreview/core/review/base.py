"""
Review Layer — Base Types

Defines the data contract every analyzer produces. The type and severity
values are matched on by downstream consumers and must not change.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


class ReviewItemType(str, Enum):
    LAB_ABNORMAL    = "lab-abnormal"
    LAB_DELTA       = "lab-delta"
    MED_INTERACTION = "med-interaction"
    MED_ADHERENCE   = "med-adherence"
    CARE_GAP        = "care-gap"


class Severity(str, Enum):
    """
    How soon a reviewer should look at the item.

    HIGH   – review before anything else
    MEDIUM – review during this visit
    LOW    – informational, no action expected
    """
    HIGH   = "high"
    MEDIUM = "medium"
    LOW    = "low"


# Lower rank sorts first
SEVERITY_RANK = {
    Severity.HIGH:   0,
    Severity.MEDIUM: 1,
    Severity.LOW:    2,
}


class ChartTab(str, Enum):
    LABS         = "labs"
    LAB_TRENDS   = "lab-trends"
    MEDICATIONS  = "medications"
    MED_TIMELINE = "med-timeline"
    CONDITIONS   = "conditions"


@dataclass(frozen=True)
class ChartHint:
    """Where a renderer should point the reviewer for context."""
    tab: ChartTab
    code: Optional[str] = None
    medication_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        hint: Dict[str, Any] = {"tab": self.tab.value}
        if self.code is not None:
            hint["code"] = self.code
        if self.medication_id is not None:
            hint["medicationId"] = self.medication_id
        return hint


@dataclass(frozen=True)
class ReviewItem:
    """
    One actionable finding for a chart reviewer.

    `date_identified` is the date of the underlying lab result for lab items
    and the analysis reference time for everything else.
    """
    # ── Core identity ─────────────────────────────────────────────────────
    id: str                       # e.g. "lab-abnormal-obs-1"
    type: ReviewItemType
    severity: Severity
    title: str
    description: str
    details: str

    # ── Triage ────────────────────────────────────────────────────────────
    action_required: bool
    date_identified: str

    # ── Navigation ────────────────────────────────────────────────────────
    resource_ref: Optional[str] = None
    chart_hint: Optional[ChartHint] = None

    @property
    def severity_rank(self) -> int:
        return SEVERITY_RANK[self.severity]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type.value,
            "severity": self.severity.value,
            "title": self.title,
            "description": self.description,
            "details": self.details,
            "resourceRef": self.resource_ref,
            "chartHint": self.chart_hint.to_dict() if self.chart_hint else None,
            "actionRequired": self.action_required,
            "dateIdentified": self.date_identified,
        }
