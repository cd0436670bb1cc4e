"""
Interchange Schema Layer

Usage:
    from chartreview.core.fhir import parse_bundle

    bundle = parse_bundle(json.load(fp))
"""
from .models import (
    Bundle,
    BundleEntry,
    CodeableConcept,
    Coding,
    Condition,
    Encounter,
    MedicationRequest,
    Observation,
    Patient,
    Quantity,
    Resource,
)
from .parsing import (
    parse_bundle,
    parse_resource,
    extract_resources,
    get_resources_by_type,
    count_resources,
)

__all__ = [
    "Bundle",
    "BundleEntry",
    "CodeableConcept",
    "Coding",
    "Condition",
    "Encounter",
    "MedicationRequest",
    "Observation",
    "Patient",
    "Quantity",
    "Resource",
    "parse_bundle",
    "parse_resource",
    "extract_resources",
    "get_resources_by_type",
    "count_resources",
]
