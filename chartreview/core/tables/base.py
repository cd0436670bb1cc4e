"""
Code Tables — Base Types

Flat value records for the static reference data. Rules carry their
predicates as plain function values; there is no rule class hierarchy.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Callable, FrozenSet, Mapping, Optional, Tuple, TYPE_CHECKING

if TYPE_CHECKING:
    from chartreview.core.fhir import Patient
    from chartreview.core.selection.base import SelectionResult


@dataclass(frozen=True)
class LabPriority:
    display: str
    priority: int


@dataclass(frozen=True)
class UnitConversion:
    """value_in_target_unit = value * factor"""
    factor: float
    target_unit: str


@dataclass(frozen=True)
class InteractionRule:
    """
    A catalogued interaction between two drug codes.

    Matching is symmetric: (A, B) matches orders coded B and A. A rule whose
    two codes are equal only matches two orders of that same drug.
    """
    code_pair: Tuple[str, str]
    severity: str                 # "high" | "medium" | "low"
    description: str
    action: str

    def matches(self, code_a: Optional[str], code_b: Optional[str]) -> bool:
        if code_a is None or code_b is None:
            return False
        return sorted((code_a, code_b)) == sorted(self.code_pair)


# applies(patient, now) -> eligible; check_gap(selection, now) -> gap exists
AppliesFn = Callable[["Patient", datetime], bool]
CheckGapFn = Callable[["SelectionResult", datetime], bool]


@dataclass(frozen=True)
class CareGapRule:
    id: str
    name: str
    description: str
    applies: AppliesFn
    check_gap: CheckGapFn
    recommendation: str


@dataclass(frozen=True)
class CodeTables:
    """
    All reference data the selection and review stages read.

    Build once, pass by reference. Use dataclasses.replace() to derive an
    alternate table for a test or a site-specific configuration. Mapping
    fields are stored as read-only views and left out of the hash.
    """
    lab_priorities: Mapping[str, LabPriority] = field(hash=False)
    chronic_condition_codes: FrozenSet[str]
    diabetes_condition_codes: FrozenSet[str]
    unit_conversions: Mapping[str, UnitConversion] = field(hash=False)
    code_unit_conversions: Mapping[Tuple[str, str], UnitConversion] = field(hash=False)
    interaction_rules: Tuple[InteractionRule, ...]
    care_gap_rules: Tuple[CareGapRule, ...] = field(default=())
    default_lab_priority: int = 3

    def __post_init__(self):
        for name in ("lab_priorities", "unit_conversions", "code_unit_conversions"):
            object.__setattr__(self, name, MappingProxyType(dict(getattr(self, name))))

    def lab_priority(self, code: str) -> int:
        entry = self.lab_priorities.get(code)
        return entry.priority if entry else self.default_lab_priority

    def lab_display(self, code: str) -> Optional[str]:
        entry = self.lab_priorities.get(code)
        return entry.display if entry else None

    def is_chronic(self, code: Optional[str]) -> bool:
        return code is not None and code in self.chronic_condition_codes

    def is_diabetes(self, code: Optional[str]) -> bool:
        return code is not None and code in self.diabetes_condition_codes

    def convert(self, code: str, value: float, unit: str) -> Tuple[float, str]:
        """
        Normalize a lab quantity.

        A (code, unit) entry wins over a unit-only entry. Without a table
        entry the value and unit pass through unchanged.
        """
        conversion = self.code_unit_conversions.get((code, unit)) or self.unit_conversions.get(unit)
        if conversion is None:
            return value, unit
        return round(value * conversion.factor, 2), conversion.target_unit

    def find_interaction(self, code_a: Optional[str], code_b: Optional[str]) -> Optional[InteractionRule]:
        for rule in self.interaction_rules:
            if rule.matches(code_a, code_b):
                return rule
        return None
