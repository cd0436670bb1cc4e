"""
Resource Selection — Base Types

Immutable records produced by the selector and read by the review engine.
to_dict() emits the camelCase field names downstream consumers match on.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple, Union

from chartreview.core.fhir import Encounter, Patient


@dataclass(frozen=True)
class ReferenceRange:
    low: Optional[float] = None
    high: Optional[float] = None
    text: Optional[str] = None

    def contains(self, value: float) -> bool:
        if self.low is not None and value < self.low:
            return False
        if self.high is not None and value > self.high:
            return False
        return True

    def to_dict(self) -> Dict[str, Any]:
        return {"low": self.low, "high": self.high, "text": self.text}


@dataclass(frozen=True)
class ProcessedLabValue:
    """Most recent result for one lab code."""
    code: str
    display: str
    value: Union[float, str, None]
    unit: str
    normalized_unit: str
    normalized_value: Optional[float]
    date: str
    relevance_score: int
    reference_range: Optional[ReferenceRange] = None
    interpretation: Optional[str] = None
    is_abnormal: bool = False
    source_id: Optional[str] = None

    @property
    def source_ref(self) -> Optional[str]:
        return f"Observation/{self.source_id}" if self.source_id else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "display": self.display,
            "value": self.value,
            "unit": self.unit,
            "normalizedUnit": self.normalized_unit,
            "normalizedValue": self.normalized_value,
            "referenceRange": self.reference_range.to_dict() if self.reference_range else None,
            "interpretation": self.interpretation,
            "date": self.date,
            "isAbnormal": self.is_abnormal,
            "relevanceScore": self.relevance_score,
            "sourceRef": self.source_ref,
        }


@dataclass(frozen=True)
class ProcessedMedication:
    """One qualifying medication order. Orders for the same drug are not merged."""
    name: str
    status: str
    is_active: bool
    relevance_score: int
    code: Optional[str] = None
    category: Optional[str] = None
    dosage: Optional[str] = None
    frequency: str = ""
    route: Optional[str] = None
    authored_date: Optional[str] = None
    validity_period: Optional[Tuple[Optional[str], Optional[str]]] = None
    source_id: Optional[str] = None
    resource_type: str = "MedicationRequest"

    @property
    def source_ref(self) -> Optional[str]:
        return f"{self.resource_type}/{self.source_id}" if self.source_id else None

    def to_dict(self) -> Dict[str, Any]:
        validity = None
        if self.validity_period is not None:
            validity = {"start": self.validity_period[0], "end": self.validity_period[1]}
        return {
            "name": self.name,
            "code": self.code,
            "status": self.status,
            "isActive": self.is_active,
            "category": self.category,
            "dosage": self.dosage,
            "frequency": self.frequency,
            "route": self.route,
            "authoredDate": self.authored_date,
            "validityPeriod": validity,
            "relevanceScore": self.relevance_score,
            "sourceRef": self.source_ref,
        }


@dataclass(frozen=True)
class ProcessedCondition:
    name: str
    clinical_status: str
    is_chronic: bool
    is_active: bool
    relevance_score: int
    code: Optional[str] = None
    verification_status: Optional[str] = None
    category: Optional[str] = None
    severity: Optional[str] = None
    onset_date: Optional[str] = None
    recorded_date: Optional[str] = None
    source_id: Optional[str] = None

    @property
    def source_ref(self) -> Optional[str]:
        return f"Condition/{self.source_id}" if self.source_id else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "code": self.code,
            "clinicalStatus": self.clinical_status,
            "verificationStatus": self.verification_status,
            "category": self.category,
            "severity": self.severity,
            "onsetDate": self.onset_date,
            "recordedDate": self.recorded_date,
            "isChronic": self.is_chronic,
            "isActive": self.is_active,
            "relevanceScore": self.relevance_score,
            "sourceRef": self.source_ref,
        }


@dataclass(frozen=True)
class ProcessingStats:
    total_observations: int = 0
    selected_lab_values: int = 0
    total_medications: int = 0
    active_medications: int = 0
    total_conditions: int = 0
    chronic_conditions: int = 0
    processing_time_ms: float = 0.0   # wall clock, informational only

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalObservations": self.total_observations,
            "selectedLabValues": self.selected_lab_values,
            "totalMedications": self.total_medications,
            "activeMedications": self.active_medications,
            "totalConditions": self.total_conditions,
            "chronicConditions": self.chronic_conditions,
            "processingTimeMs": round(self.processing_time_ms, 3),
        }


@dataclass(frozen=True)
class SelectionResult:
    """
    Everything selected from one bundle.

    `reference_time` is the "now" every recency window was measured against;
    the review stage reuses it unless given another.
    """
    patient: Optional[Patient]
    reference_time: datetime
    lab_values: Tuple[ProcessedLabValue, ...] = field(default=())
    medications: Tuple[ProcessedMedication, ...] = field(default=())
    conditions: Tuple[ProcessedCondition, ...] = field(default=())
    encounters: Tuple[Encounter, ...] = field(default=())
    stats: ProcessingStats = field(default_factory=ProcessingStats)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "patient": self.patient.model_dump(by_alias=True, exclude_none=True) if self.patient else None,
            "referenceTime": self.reference_time.isoformat(),
            "labValues": [lab.to_dict() for lab in self.lab_values],
            "medications": [med.to_dict() for med in self.medications],
            "conditions": [cond.to_dict() for cond in self.conditions],
            "encounters": [enc.model_dump(by_alias=True, exclude_none=True) for enc in self.encounters],
            "processingStats": self.stats.to_dict(),
        }
