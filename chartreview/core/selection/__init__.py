"""
Resource Selection Layer

Usage:
    from chartreview.core.selection import select_relevant_resources

    selection = select_relevant_resources(bundle_dict, now=reference_time)
"""
from .base import (
    ProcessedCondition,
    ProcessedLabValue,
    ProcessedMedication,
    ProcessingStats,
    ReferenceRange,
    SelectionResult,
)
from .selector import (
    find_patient,
    select_active_medications,
    select_conditions,
    select_encounters,
    select_lab_values,
    select_relevant_resources,
)

__all__ = [
    "ProcessedCondition",
    "ProcessedLabValue",
    "ProcessedMedication",
    "ProcessingStats",
    "ReferenceRange",
    "SelectionResult",
    "find_patient",
    "select_active_medications",
    "select_conditions",
    "select_encounters",
    "select_lab_values",
    "select_relevant_resources",
]
