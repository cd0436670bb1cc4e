"""
Resource Selector

Picks the clinically relevant subset of a bundle: the latest result per lab
code (unit-normalized, range-checked, scored), qualifying medication orders,
non-inactive conditions and the most recent encounters.

Design principles:
  - Every function is pure over (bundle, now, tables); nothing reads a clock
    except select_relevant_resources() when the caller passes no `now`.
  - Partial or malformed resources are excluded, never raised on.
  - Scores are ordering signals only. Thresholds are module-level constants.
"""
from __future__ import annotations

import time
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Union, cast

from chartreview.core.fhir import (
    Bundle,
    Condition,
    Encounter,
    MedicationRequest,
    Observation,
    Patient,
    parse_bundle,
)
from chartreview.core.fhir.parsing import (
    MEDICATION_RESOURCE_TYPES,
    concept_label,
    diagnosis_code,
    drug_code,
    first_code,
    first_concept,
    first_display,
    get_resources_by_type,
    lab_code,
)
from chartreview.core.tables import CodeTables, DEFAULT_TABLES
from chartreview.utils import get_logger, MissingSubjectError
from chartreview.utils.dates import as_utc, is_within_days, parse_fhir_date, sort_key, utc_now
from .base import (
    ProcessedCondition,
    ProcessedLabValue,
    ProcessedMedication,
    ProcessingStats,
    ReferenceRange,
    SelectionResult,
)

logger = get_logger(__name__)

BundleInput = Union[Bundle, Mapping[str, Any]]

# ── Status filters ────────────────────────────────────────────────────────────
LAB_STATUSES = frozenset({"final", "amended"})
MEDICATION_STATUSES = frozenset({"active", "completed"})
ENCOUNTER_STATUSES = frozenset({"finished", "in-progress"})
ACTIVE_CLINICAL_STATUSES = frozenset({"active", "recurrence"})

# ── Recency windows (days) ────────────────────────────────────────────────────
LAB_RECENT_DAYS = 90
COMPLETED_MED_WINDOW_DAYS = 90
MED_RECENT_DAYS = 30
UNCONFIRMED_CONDITION_WINDOW_DAYS = 30
CONDITION_RECENT_DAYS = 90

MAX_ENCOUNTERS = 10

# ── Score weights ─────────────────────────────────────────────────────────────
LAB_ABNORMAL_BONUS = 2
LAB_RECENT_BONUS = 1

MED_BASE_SCORE = 5
MED_ACTIVE_BONUS = 3
MED_RECENT_BONUS = 2
MED_INPATIENT_BONUS = 1

CONDITION_BASE_SCORE = 4
CONDITION_ACTIVE_BONUS = 3
CONDITION_CHRONIC_BONUS = 2
CONDITION_SEVERE_BONUS = 2
CONDITION_RECENT_BONUS = 1


def _as_bundle(bundle: BundleInput) -> Bundle:
    return parse_bundle(bundle)


# ── Labs ──────────────────────────────────────────────────────────────────────

def _latest_per_code(observations: List[Observation]) -> Dict[str, Observation]:
    """
    Keep the Observation with the latest effective date per lab code.

    A dated result replaces an undated one; on equal dates (or two undated
    results) the first encountered is kept.
    """
    latest: Dict[str, Observation] = {}
    for obs in observations:
        code = lab_code(obs)
        existing = latest.get(code)
        if existing is None:
            latest[code] = obs
            continue
        obs_date = parse_fhir_date(obs.effective_date)
        existing_date = parse_fhir_date(existing.effective_date)
        if obs_date is not None and (existing_date is None or obs_date > existing_date):
            latest[code] = obs
    return latest


def _reference_range(obs: Observation) -> Optional[ReferenceRange]:
    if not obs.referenceRange:
        return None
    first = obs.referenceRange[0]
    return ReferenceRange(
        low=first.low.value if first.low is not None else None,
        high=first.high.value if first.high is not None else None,
        text=first.text,
    )


def _interpretation(obs: Observation) -> Optional[str]:
    concept = first_concept(obs.interpretation)
    if concept is None:
        return None
    return first_display(concept) or concept.text or first_code(concept)


def _process_lab(code: str, obs: Observation, now: datetime, tables: CodeTables) -> ProcessedLabValue:
    quantity = obs.valueQuantity
    raw_value = cast(float, quantity.value)
    raw_unit = quantity.unit or quantity.code or ""
    normalized_value, normalized_unit = tables.convert(code, raw_value, raw_unit)

    ref_range = _reference_range(obs)
    is_abnormal = ref_range is not None and not ref_range.contains(normalized_value)

    score = tables.lab_priority(code)
    if is_abnormal:
        score += LAB_ABNORMAL_BONUS
    if is_within_days(obs.effective_date, LAB_RECENT_DAYS, now):
        score += LAB_RECENT_BONUS

    coding_display = next(
        (c.display for c in obs.code.coding if c.code == code and c.display), None
    )
    display = tables.lab_display(code) or coding_display or obs.code.text or "Unknown Lab"

    return ProcessedLabValue(
        code=code,
        display=display,
        value=raw_value,
        unit=raw_unit,
        normalized_unit=normalized_unit,
        normalized_value=normalized_value,
        date=obs.effective_date or "",
        relevance_score=score,
        reference_range=ref_range,
        interpretation=_interpretation(obs),
        is_abnormal=is_abnormal,
        source_id=obs.id,
    )


def select_lab_values(
    bundle: BundleInput,
    now: datetime,
    tables: CodeTables = DEFAULT_TABLES,
) -> List[ProcessedLabValue]:
    """
    Latest scored result per lab code, highest relevance first.

    Observations need status final/amended, a lab code and a numeric
    quantity; anything else is skipped.
    """
    bundle = _as_bundle(bundle)
    now = as_utc(now)
    candidates: List[Observation] = []
    for obs in get_resources_by_type(bundle, "Observation"):
        obs = cast(Observation, obs)
        if obs.status not in LAB_STATUSES:
            continue
        if lab_code(obs) is None:
            logger.debug(f"select_lab_values: Observation/{obs.id} has no lab code, skipping")
            continue
        if obs.valueQuantity is None or obs.valueQuantity.value is None:
            logger.debug(f"select_lab_values: Observation/{obs.id} has no numeric value, skipping")
            continue
        candidates.append(obs)

    labs = [
        _process_lab(code, obs, now, tables)
        for code, obs in _latest_per_code(candidates).items()
    ]
    labs.sort(key=lambda lab: lab.relevance_score, reverse=True)
    return labs


# ── Medications ───────────────────────────────────────────────────────────────

def _frequency_text(order: MedicationRequest) -> str:
    """Readable dosing frequency; empty when any timing part is missing."""
    if not order.dosageInstruction:
        return ""
    timing = order.dosageInstruction[0].timing
    repeat = timing.repeat if timing is not None else None
    if repeat is None or not (repeat.frequency and repeat.period and repeat.periodUnit):
        return ""
    return f"{repeat.frequency:g} times per {repeat.period:g} {repeat.periodUnit}"


def _medication_name(order: MedicationRequest) -> str:
    name = concept_label(order.medicationCodeableConcept)
    if not name and order.medicationReference is not None:
        name = order.medicationReference.display
    return name or "Unknown Medication"


def _process_medication(order: MedicationRequest, now: datetime) -> ProcessedMedication:
    category = first_concept(order.category)
    dosage = order.dosageInstruction[0] if order.dosageInstruction else None

    score = MED_BASE_SCORE
    if order.status == "active":
        score += MED_ACTIVE_BONUS
    if is_within_days(order.authoredOn, MED_RECENT_DAYS, now):
        score += MED_RECENT_BONUS
    if first_code(category) == "inpatient":
        score += MED_INPATIENT_BONUS

    validity = None
    if order.dispenseRequest is not None and order.dispenseRequest.validityPeriod is not None:
        period = order.dispenseRequest.validityPeriod
        validity = (period.start, period.end)

    return ProcessedMedication(
        name=_medication_name(order),
        status=cast(str, order.status),
        is_active=order.status == "active",
        relevance_score=score,
        code=drug_code(order),
        category=first_display(category),
        dosage=dosage.text if dosage is not None else None,
        frequency=_frequency_text(order),
        route=first_display(dosage.route) if dosage is not None else None,
        authored_date=order.authoredOn,
        validity_period=validity,
        source_id=order.id,
        resource_type=order.resourceType,
    )


def select_active_medications(bundle: BundleInput, now: datetime) -> List[ProcessedMedication]:
    """
    Active orders plus orders completed within the last 90 days.

    Older completed orders are dropped. Orders for the same drug are all
    kept so duplicate therapy can be reported downstream.
    """
    bundle = _as_bundle(bundle)
    now = as_utc(now)
    meds: List[ProcessedMedication] = []
    for order in get_resources_by_type(bundle, *MEDICATION_RESOURCE_TYPES):
        order = cast(MedicationRequest, order)
        if order.status not in MEDICATION_STATUSES:
            continue
        if order.status == "completed" and not is_within_days(order.authoredOn, COMPLETED_MED_WINDOW_DAYS, now):
            logger.debug(f"select_active_medications: {order.reference} completed too long ago, skipping")
            continue
        meds.append(_process_medication(order, now))

    meds.sort(key=lambda med: med.relevance_score, reverse=True)
    return meds


# ── Conditions ────────────────────────────────────────────────────────────────

def _is_severe(condition: Condition) -> bool:
    if condition.severity is None:
        return False
    code = (first_code(condition.severity) or "").lower()
    display = (first_display(condition.severity) or "").lower()
    return code == "severe" or display == "severe"


def select_conditions(
    bundle: BundleInput,
    now: datetime,
    tables: CodeTables = DEFAULT_TABLES,
) -> List[ProcessedCondition]:
    """
    Non-inactive conditions, highest relevance first.

    Unconfirmed conditions are kept only when recorded in the last 30 days.
    """
    bundle = _as_bundle(bundle)
    now = as_utc(now)
    conditions: List[ProcessedCondition] = []
    for condition in get_resources_by_type(bundle, "Condition"):
        condition = cast(Condition, condition)
        clinical_status = first_code(condition.clinicalStatus) or "unknown"
        if clinical_status == "inactive":
            continue

        verification_status = first_code(condition.verificationStatus)
        if verification_status == "unconfirmed" and not is_within_days(
            condition.recordedDate, UNCONFIRMED_CONDITION_WINDOW_DAYS, now
        ):
            logger.debug(f"select_conditions: Condition/{condition.id} unconfirmed and not recent, skipping")
            continue

        code = diagnosis_code(condition)
        is_chronic = tables.is_chronic(code)
        is_active = clinical_status in ACTIVE_CLINICAL_STATUSES

        score = CONDITION_BASE_SCORE
        if is_active:
            score += CONDITION_ACTIVE_BONUS
        if is_chronic:
            score += CONDITION_CHRONIC_BONUS
        if _is_severe(condition):
            score += CONDITION_SEVERE_BONUS
        if is_within_days(condition.recordedDate, CONDITION_RECENT_DAYS, now):
            score += CONDITION_RECENT_BONUS

        onset = condition.onsetDateTime
        if onset is None and condition.onsetPeriod is not None:
            onset = condition.onsetPeriod.start

        conditions.append(ProcessedCondition(
            name=concept_label(condition.code) or "Unknown Condition",
            clinical_status=clinical_status,
            is_chronic=is_chronic,
            is_active=is_active,
            relevance_score=score,
            code=code,
            verification_status=verification_status,
            category=first_display(first_concept(condition.category)),
            severity=first_display(condition.severity),
            onset_date=onset,
            recorded_date=condition.recordedDate,
            source_id=condition.id,
        ))

    conditions.sort(key=lambda cond: cond.relevance_score, reverse=True)
    return conditions


# ── Encounters ────────────────────────────────────────────────────────────────

def select_encounters(bundle: BundleInput, limit: int = MAX_ENCOUNTERS) -> List[Encounter]:
    """Finished or in-progress encounters, newest first, capped at `limit`."""
    bundle = _as_bundle(bundle)
    encounters = [
        cast(Encounter, enc) for enc in get_resources_by_type(bundle, "Encounter")
        if cast(Encounter, enc).status in ENCOUNTER_STATUSES
    ]
    encounters.sort(
        key=lambda enc: sort_key(enc.period.start if enc.period is not None else None),
        reverse=True,
    )
    return encounters[:limit]


# ── Orchestration ─────────────────────────────────────────────────────────────

def find_patient(bundle: BundleInput) -> Optional[Patient]:
    """First Patient resource in bundle order."""
    patients = get_resources_by_type(_as_bundle(bundle), "Patient")
    return cast(Patient, patients[0]) if patients else None


def select_relevant_resources(
    bundle: BundleInput,
    now: Optional[datetime] = None,
    tables: CodeTables = DEFAULT_TABLES,
) -> SelectionResult:
    """
    Run every selection step over one bundle.

    Args:
        bundle: Bundle model or raw bundle dict.
        now:    Reference time for all recency windows. Defaults to the
                current UTC time; pass it explicitly for reproducible output.
        tables: Reference data.

    Raises:
        MissingSubjectError: the bundle has no Patient resource.
    """
    start_time = time.time()
    bundle = _as_bundle(bundle)
    now = parse_fhir_date(now) if now is not None else utc_now()

    patient = find_patient(bundle)
    if patient is None:
        logger.error(f"select_relevant_resources: bundle {bundle.id or '<unnamed>'} has no Patient")
        raise MissingSubjectError(bundle_id=bundle.id)

    lab_values = select_lab_values(bundle, now, tables)
    medications = select_active_medications(bundle, now)
    conditions = select_conditions(bundle, now, tables)
    encounters = select_encounters(bundle)

    stats = ProcessingStats(
        total_observations=len(get_resources_by_type(bundle, "Observation")),
        selected_lab_values=len(lab_values),
        total_medications=len(get_resources_by_type(bundle, *MEDICATION_RESOURCE_TYPES)),
        active_medications=sum(1 for med in medications if med.is_active),
        total_conditions=len(get_resources_by_type(bundle, "Condition")),
        chronic_conditions=sum(1 for cond in conditions if cond.is_chronic),
        processing_time_ms=(time.time() - start_time) * 1000,
    )

    logger.info(
        f"select_relevant_resources [{patient.reference or 'Patient'}]: "
        f"{stats.selected_lab_values}/{stats.total_observations} labs, "
        f"{len(medications)}/{stats.total_medications} medications, "
        f"{len(conditions)}/{stats.total_conditions} conditions, "
        f"{len(encounters)} encounters"
    )

    return SelectionResult(
        patient=patient,
        reference_time=now,
        lab_values=tuple(lab_values),
        medications=tuple(medications),
        conditions=tuple(conditions),
        encounters=tuple(encounters),
        stats=stats,
    )
