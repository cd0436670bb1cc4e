"""
Code Tables

Static reference data for selection and review: lab priorities, chronic
condition codes, unit conversions, interaction pairs and care-gap rules.
"""
from .base import CareGapRule, CodeTables, InteractionRule, LabPriority, UnitConversion
from .defaults import DEFAULT_TABLES
from .screening import screening_rule, patient_is_eligible

__all__ = [
    "CareGapRule",
    "CodeTables",
    "InteractionRule",
    "LabPriority",
    "UnitConversion",
    "DEFAULT_TABLES",
    "screening_rule",
    "patient_is_eligible",
]
