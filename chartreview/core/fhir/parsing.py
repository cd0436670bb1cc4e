"""
Bundle Parsing

Turns raw JSON-shaped bundles into validated models, one entry at a time.
A resource that fails validation is excluded and logged; only input that is
not a bundle or resource at all is rejected.
"""
from __future__ import annotations

from collections import Counter
from typing import Any, Dict, Iterable, List, Mapping, Optional, Type, Union

from pydantic import ValidationError

from chartreview.utils import get_logger, InvalidBundleError
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
    Resource,
)

logger = get_logger(__name__)

# Resource type → model. MedicationOrder is the older name for MedicationRequest.
RESOURCE_MODELS: Dict[str, Type[Resource]] = {
    "Patient": Patient,
    "Observation": Observation,
    "MedicationRequest": MedicationRequest,
    "MedicationOrder": MedicationRequest,
    "Condition": Condition,
    "Encounter": Encounter,
}

MEDICATION_RESOURCE_TYPES = ("MedicationRequest", "MedicationOrder")

LOINC_SYSTEM = "loinc.org"
SNOMED_SYSTEM = "snomed.info"
RXNORM_SYSTEM = "rxnorm"


def parse_resource(data: Any) -> Optional[Resource]:
    """
    Validate a single resource dict.

    Returns None (after logging) when the resource cannot be validated.
    """
    if isinstance(data, Resource):
        return data
    if not isinstance(data, Mapping):
        logger.warning(f"Skipping non-object resource of type {type(data).__name__}")
        return None

    resource_type = data.get("resourceType")
    if not isinstance(resource_type, str) or not resource_type:
        logger.warning("Skipping resource without a resourceType")
        return None

    model = RESOURCE_MODELS.get(resource_type, Resource)
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        logger.warning(
            f"Skipping invalid {resource_type}/{data.get('id', '?')}: "
            f"{exc.error_count()} validation error(s)"
        )
        return None


def parse_bundle(data: Union[Bundle, Mapping[str, Any]]) -> Bundle:
    """
    Build a Bundle whose entries hold validated resource models.

    Accepts an already-parsed Bundle, a bundle dict, or a single resource
    dict (wrapped into a one-entry collection).

    Raises:
        InvalidBundleError: if `data` is not a mapping with a resourceType.
    """
    if isinstance(data, Bundle):
        if all(isinstance(e.resource, Resource) or e.resource is None for e in data.entry):
            return data
        data = data.model_dump(by_alias=True)

    if not isinstance(data, Mapping):
        raise InvalidBundleError(
            "Expected a bundle or resource object",
            received=type(data).__name__,
        )

    resource_type = data.get("resourceType")
    if not isinstance(resource_type, str):
        raise InvalidBundleError(
            "Input has no resourceType",
            received="object",
        )

    if resource_type != "Bundle":
        resource = parse_resource(data)
        entries = [BundleEntry(resource=resource)] if resource is not None else []
        return Bundle(type="collection", entry=entries)

    raw_entries = data.get("entry") or []
    if not isinstance(raw_entries, list):
        logger.warning("Bundle entry field is not a list; treating bundle as empty")
        raw_entries = []

    entries: List[BundleEntry] = []
    skipped = 0
    for raw in raw_entries:
        if not isinstance(raw, Mapping) or raw.get("resource") is None:
            skipped += 1
            continue
        resource = parse_resource(raw["resource"])
        if resource is None:
            skipped += 1
            continue
        entries.append(BundleEntry(fullUrl=raw.get("fullUrl"), resource=resource))

    if skipped:
        logger.info(f"parse_bundle: kept {len(entries)} entries, skipped {skipped}")

    return Bundle(id=data.get("id"), type=data.get("type"), entry=entries)


def extract_resources(bundle: Bundle) -> List[Resource]:
    return [e.resource for e in bundle.entry if isinstance(e.resource, Resource)]


def get_resources_by_type(bundle: Bundle, *resource_types: str) -> List[Resource]:
    """Resources of the given types, in bundle order."""
    wanted = set(resource_types)
    return [r for r in extract_resources(bundle) if r.resourceType in wanted]


def count_resources(bundle: Bundle) -> Dict[str, int]:
    return dict(Counter(r.resourceType for r in extract_resources(bundle)))


# ── Coding helpers ────────────────────────────────────────────────────────────

def find_coding(concept: Optional[CodeableConcept], system_fragment: str) -> Optional[Coding]:
    """First coding whose system contains `system_fragment` and carries a code."""
    if concept is None:
        return None
    for coding in concept.coding:
        if coding.system and system_fragment in coding.system and coding.code:
            return coding
    return None


def first_code(concept: Optional[CodeableConcept]) -> Optional[str]:
    if concept is None or not concept.coding:
        return None
    return concept.coding[0].code


def first_display(concept: Optional[CodeableConcept]) -> Optional[str]:
    if concept is None or not concept.coding:
        return None
    return concept.coding[0].display


def concept_label(concept: Optional[CodeableConcept]) -> Optional[str]:
    """Human label: the concept text, else the first coding's display."""
    if concept is None:
        return None
    return concept.text or first_display(concept)


def first_concept(concepts: Iterable[CodeableConcept]) -> Optional[CodeableConcept]:
    for concept in concepts:
        return concept
    return None


def lab_code(observation: Observation) -> Optional[str]:
    coding = find_coding(observation.code, LOINC_SYSTEM)
    return coding.code if coding else None


def diagnosis_code(condition: Condition) -> Optional[str]:
    coding = find_coding(condition.code, SNOMED_SYSTEM)
    return coding.code if coding else None


def drug_code(order: MedicationRequest) -> Optional[str]:
    """RxNorm code when present, otherwise the first coded value."""
    concept = order.medicationCodeableConcept
    coding = find_coding(concept, RXNORM_SYSTEM)
    if coding is not None:
        return coding.code
    return first_code(concept)
