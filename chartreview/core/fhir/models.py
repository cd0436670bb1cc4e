"""
Pydantic models for the clinical interchange schema.

Only the fields the selection rules read are declared; everything else a
resource carries is preserved as extra data and never validated. Fields read
only for display degrade to empty when malformed instead of rejecting the
resource. Field names follow the schema's camelCase so bundles validate
straight from JSON.
"""
from __future__ import annotations

from typing import Annotated, Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, WrapValidator


def _or_none(value: Any, handler: Any) -> Any:
    try:
        return handler(value)
    except ValidationError:
        return None


def _or_empty(value: Any, handler: Any) -> Any:
    try:
        return handler(value)
    except ValidationError:
        return []


class FHIRModel(BaseModel):
    """Base for all schema elements: tolerant of unknown fields."""
    model_config = ConfigDict(extra="allow", populate_by_name=True)


# ── Data types ────────────────────────────────────────────────────────────────

class Coding(FHIRModel):
    system: Optional[str] = None
    code: Optional[str] = None
    display: Optional[str] = None


class CodeableConcept(FHIRModel):
    coding: List[Coding] = Field(default_factory=list)
    text: Optional[str] = None


# Descriptive concepts: malformed values become None / [] on the resource
LenientConcept = Annotated[Optional[CodeableConcept], WrapValidator(_or_none)]
LenientConcepts = Annotated[List[CodeableConcept], WrapValidator(_or_empty)]


class Quantity(FHIRModel):
    value: Optional[float] = None
    unit: Optional[str] = None
    system: Optional[str] = None
    code: Optional[str] = None


class ReferenceRange(FHIRModel):
    low: Optional[Quantity] = None
    high: Optional[Quantity] = None
    text: Optional[str] = None


class Period(FHIRModel):
    start: Optional[str] = None
    end: Optional[str] = None


class Reference(FHIRModel):
    reference: Optional[str] = None
    display: Optional[str] = None


class TimingRepeat(FHIRModel):
    frequency: Optional[float] = None
    period: Optional[float] = None
    periodUnit: Optional[str] = None


class Timing(FHIRModel):
    repeat: Optional[TimingRepeat] = None


class Dosage(FHIRModel):
    text: Optional[str] = None
    timing: Optional[Timing] = None
    route: LenientConcept = None


class DispenseRequest(FHIRModel):
    validityPeriod: Optional[Period] = None


# ── Resources ─────────────────────────────────────────────────────────────────

class Resource(FHIRModel):
    """Any resource. Unknown resource types validate as this."""
    resourceType: str
    id: Optional[str] = None

    @property
    def reference(self) -> Optional[str]:
        """Relative reference, e.g. "Observation/obs-1"."""
        if not self.id:
            return None
        return f"{self.resourceType}/{self.id}"


class Patient(Resource):
    resourceType: str = "Patient"
    gender: Optional[str] = None
    birthDate: Optional[str] = None


class Observation(Resource):
    resourceType: str = "Observation"
    status: Optional[str] = None
    code: Optional[CodeableConcept] = None
    effectiveDateTime: Optional[str] = None
    effectivePeriod: Optional[Period] = None
    valueQuantity: Optional[Quantity] = None
    interpretation: LenientConcepts = Field(default_factory=list)
    referenceRange: List[ReferenceRange] = Field(default_factory=list)

    @property
    def effective_date(self) -> Optional[str]:
        if self.effectiveDateTime:
            return self.effectiveDateTime
        if self.effectivePeriod is not None:
            return self.effectivePeriod.start
        return None


class MedicationRequest(Resource):
    resourceType: str = "MedicationRequest"
    status: Optional[str] = None
    category: LenientConcepts = Field(default_factory=list)
    medicationCodeableConcept: Optional[CodeableConcept] = None
    medicationReference: Optional[Reference] = None
    authoredOn: Optional[str] = None
    dosageInstruction: List[Dosage] = Field(default_factory=list)
    dispenseRequest: Optional[DispenseRequest] = None


class Condition(Resource):
    resourceType: str = "Condition"
    clinicalStatus: Optional[CodeableConcept] = None
    verificationStatus: Optional[CodeableConcept] = None
    category: LenientConcepts = Field(default_factory=list)
    severity: LenientConcept = None
    code: Optional[CodeableConcept] = None
    onsetDateTime: Optional[str] = None
    onsetPeriod: Optional[Period] = None
    recordedDate: Optional[str] = None


class Encounter(Resource):
    """Only status and period are read; class, type and the rest stay raw."""
    resourceType: str = "Encounter"
    status: Optional[str] = None
    period: Optional[Period] = None


class BundleEntry(FHIRModel):
    fullUrl: Optional[str] = None
    resource: Optional[Any] = None


class Bundle(FHIRModel):
    """
    A collection of resources.

    `entry[*].resource` holds validated resource models once the bundle has
    gone through parse_bundle().
    """
    resourceType: str = "Bundle"
    id: Optional[str] = None
    type: Optional[str] = None
    entry: List[BundleEntry] = Field(default_factory=list)
