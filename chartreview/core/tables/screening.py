"""
Preventive-Care Screening Rules

Each rule is a flat CareGapRule built by screening_rule(): a demographic
eligibility predicate plus an evidence-staleness predicate. A gap exists
when no qualifying lab evidence is on file, or the newest qualifying
evidence is older than the rule's window.
"""
from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional, Sequence, TYPE_CHECKING

from chartreview.utils.dates import calculate_age, days_between, parse_fhir_date
from .base import CareGapRule

if TYPE_CHECKING:
    from chartreview.core.fhir import Patient
    from chartreview.core.selection.base import ProcessedLabValue, SelectionResult


def _matches(code: Optional[str], label: Optional[str], codes: Iterable[str], keywords: Sequence[str]) -> bool:
    if code is not None and code in codes:
        return True
    text = (label or "").lower()
    return any(keyword in text for keyword in keywords)


def patient_is_eligible(
    patient: "Patient",
    now: datetime,
    min_age: Optional[int] = None,
    max_age: Optional[int] = None,
    gender: Optional[str] = None,
) -> bool:
    """Age bounds are inclusive. Unknown age fails any age bound."""
    if gender is not None and (patient.gender or "").lower() != gender:
        return False
    if min_age is None and max_age is None:
        return True
    age = calculate_age(patient.birthDate, now)
    if age is None:
        return False
    if min_age is not None and age < min_age:
        return False
    if max_age is not None and age > max_age:
        return False
    return True


def latest_evidence_date(evidence: Iterable["ProcessedLabValue"]) -> Optional[datetime]:
    dates = [d for d in (parse_fhir_date(lab.date) for lab in evidence) if d is not None]
    return max(dates) if dates else None


def screening_rule(
    *,
    rule_id: str,
    name: str,
    description: str,
    recommendation: str,
    evidence_codes: Iterable[str],
    evidence_keywords: Sequence[str] = (),
    max_age_days: float,
    min_age: Optional[int] = None,
    max_age: Optional[int] = None,
    gender: Optional[str] = None,
    condition_codes: Iterable[str] = (),
    condition_keywords: Sequence[str] = (),
) -> CareGapRule:
    """
    Build a care-gap rule.

    When `condition_codes` or `condition_keywords` is given the rule only
    reports a gap for patients with a matching active condition.
    """
    evidence_codes = frozenset(evidence_codes)
    condition_codes = frozenset(condition_codes)
    needs_condition = bool(condition_codes or condition_keywords)

    def applies(patient: "Patient", now: datetime) -> bool:
        return patient_is_eligible(patient, now, min_age=min_age, max_age=max_age, gender=gender)

    def check_gap(selection: "SelectionResult", now: datetime) -> bool:
        if needs_condition and not any(
            c.is_active and _matches(c.code, c.name, condition_codes, condition_keywords)
            for c in selection.conditions
        ):
            return False

        evidence = [
            lab for lab in selection.lab_values
            if _matches(lab.code, lab.display, evidence_codes, evidence_keywords)
        ]
        latest = latest_evidence_date(evidence)
        if latest is None:
            return True
        return days_between(latest, now) > max_age_days

    return CareGapRule(
        id=rule_id,
        name=name,
        description=description,
        applies=applies,
        check_gap=check_gap,
        recommendation=recommendation,
    )
