"""
Pytest Configuration and Fixtures

Shared fixtures for chart review tests. Every test runs against the fixed
reference time in `now`; nothing reads the wall clock.
"""
import pytest
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional
import sys

# Add package root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from chartreview.core.fhir import Patient
from chartreview.core.selection import (
    ProcessedCondition,
    ProcessedLabValue,
    ProcessedMedication,
    ReferenceRange,
    SelectionResult,
)

NOW = datetime(2025, 6, 15, 12, 0, 0, tzinfo=timezone.utc)

LOINC = "http://loinc.org"
SNOMED = "http://snomed.info/sct"
RXNORM = "http://www.nlm.nih.gov/research/umls/rxnorm"


def days_ago(days: float) -> str:
    """ISO date-time `days` before NOW."""
    return (NOW - timedelta(days=days)).isoformat()


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def patient_resource():
    def _make(gender: str = "female", birth_date: str = "1970-01-01", rid: str = "patient-1") -> Dict[str, Any]:
        return {
            "resourceType": "Patient",
            "id": rid,
            "name": [{"given": ["Jane"], "family": "Doe"}],
            "gender": gender,
            "birthDate": birth_date,
        }
    return _make


@pytest.fixture
def observation():
    def _make(
        rid: str,
        code: str = "4548-4",
        value: Optional[float] = 7.0,
        unit: str = "%",
        date: Optional[str] = "2025-06-01",
        status: str = "final",
        low: Optional[float] = None,
        high: Optional[float] = None,
        display: str = "Hemoglobin A1c",
    ) -> Dict[str, Any]:
        obs: Dict[str, Any] = {
            "resourceType": "Observation",
            "id": rid,
            "status": status,
            "code": {"coding": [{"system": LOINC, "code": code, "display": display}]},
        }
        if date is not None:
            obs["effectiveDateTime"] = date
        if value is not None:
            obs["valueQuantity"] = {"value": value, "unit": unit}
        if low is not None or high is not None:
            rng: Dict[str, Any] = {}
            if low is not None:
                rng["low"] = {"value": low}
            if high is not None:
                rng["high"] = {"value": high}
            obs["referenceRange"] = [rng]
        return obs
    return _make


@pytest.fixture
def medication_request():
    def _make(
        rid: str,
        rx_code: Optional[str] = "1191",
        name: str = "Aspirin 81 MG",
        status: str = "active",
        authored: Optional[str] = "2025-06-01",
        category_code: Optional[str] = None,
        timing: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        med: Dict[str, Any] = {
            "resourceType": "MedicationRequest",
            "id": rid,
            "status": status,
            "intent": "order",
            "medicationCodeableConcept": {
                "coding": [{"system": RXNORM, "code": rx_code, "display": name}] if rx_code else [],
                "text": name,
            },
        }
        if authored is not None:
            med["authoredOn"] = authored
        if category_code is not None:
            med["category"] = [{"coding": [{"code": category_code, "display": category_code.title()}]}]
        if timing is not None:
            med["dosageInstruction"] = [{"text": "take as directed", "timing": {"repeat": timing}}]
        return med
    return _make


@pytest.fixture
def condition_resource():
    def _make(
        rid: str,
        snomed: Optional[str] = "44054006",
        name: str = "Type 2 diabetes mellitus",
        clinical_status: Optional[str] = "active",
        verification: Optional[str] = "confirmed",
        recorded: Optional[str] = "2020-01-01",
        severity: Optional[str] = None,
    ) -> Dict[str, Any]:
        cond: Dict[str, Any] = {
            "resourceType": "Condition",
            "id": rid,
            "code": {
                "coding": [{"system": SNOMED, "code": snomed, "display": name}] if snomed else [],
                "text": name,
            },
        }
        if clinical_status is not None:
            cond["clinicalStatus"] = {"coding": [{"code": clinical_status}]}
        if verification is not None:
            cond["verificationStatus"] = {"coding": [{"code": verification}]}
        if recorded is not None:
            cond["recordedDate"] = recorded
        if severity is not None:
            cond["severity"] = {"coding": [{"code": severity, "display": severity.title()}]}
        return cond
    return _make


@pytest.fixture
def bundle():
    def _make(*resources: Dict[str, Any], bundle_id: str = "bundle-1") -> Dict[str, Any]:
        return {
            "resourceType": "Bundle",
            "id": bundle_id,
            "type": "collection",
            "entry": [{"resource": r} for r in resources],
        }
    return _make


# ── Processed-value factories for analyzer tests ─────────────────────────────

@pytest.fixture
def make_lab():
    def _make(**overrides: Any) -> ProcessedLabValue:
        fields: Dict[str, Any] = dict(
            code="1234-5",
            display="Test Lab",
            value=100.0,
            unit="mg/dL",
            normalized_unit="mg/dL",
            normalized_value=100.0,
            date="2024-01-01",
            relevance_score=3,
            source_id="lab-1",
        )
        fields.update(overrides)
        return ProcessedLabValue(**fields)
    return _make


@pytest.fixture
def make_med():
    def _make(**overrides: Any) -> ProcessedMedication:
        fields: Dict[str, Any] = dict(
            name="Test Medication",
            status="active",
            is_active=True,
            relevance_score=8,
            code="12345",
            dosage="10 mg daily",
            authored_date=days_ago(10),
            source_id="med-1",
        )
        fields.update(overrides)
        return ProcessedMedication(**fields)
    return _make


@pytest.fixture
def make_condition():
    def _make(**overrides: Any) -> ProcessedCondition:
        fields: Dict[str, Any] = dict(
            name="Type 2 Diabetes Mellitus",
            clinical_status="active",
            is_chronic=True,
            is_active=True,
            relevance_score=9,
            code="44054006",
            source_id="condition-1",
        )
        fields.update(overrides)
        return ProcessedCondition(**fields)
    return _make


@pytest.fixture
def make_selection():
    def _make(
        gender: str = "male",
        birth_date: str = "1980-01-01",
        labs: List[ProcessedLabValue] = (),
        meds: List[ProcessedMedication] = (),
        conditions: List[ProcessedCondition] = (),
        with_patient: bool = True,
    ) -> SelectionResult:
        patient = Patient(id="patient-1", gender=gender, birthDate=birth_date) if with_patient else None
        return SelectionResult(
            patient=patient,
            reference_time=NOW,
            lab_values=tuple(labs),
            medications=tuple(meds),
            conditions=tuple(conditions),
        )
    return _make


@pytest.fixture
def hba1c_range() -> ReferenceRange:
    return ReferenceRange(low=4.0, high=6.0)


@pytest.fixture
def ago():
    """ISO date-time N days before the reference time."""
    return days_ago
