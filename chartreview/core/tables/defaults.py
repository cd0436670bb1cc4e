"""
Default Code Tables

Lab codes are LOINC, condition codes SNOMED CT, drug codes RxNorm.
DEFAULT_TABLES is built once at import and handed to every stage.
"""
from __future__ import annotations

from types import MappingProxyType

from .base import CodeTables, InteractionRule, LabPriority, UnitConversion
from .screening import screening_rule

# ── Lab priorities (higher = more relevant) ───────────────────────────────────
LAB_PRIORITIES = MappingProxyType({
    "4548-4":  LabPriority("Hemoglobin A1c", 10),
    "33747-0": LabPriority("Hemoglobin A1c", 10),
    "18262-6": LabPriority("Low density lipoprotein cholesterol", 9),
    "13457-7": LabPriority("Cholesterol in LDL", 9),
    "2093-3":  LabPriority("Total cholesterol", 8),
    "2085-9":  LabPriority("High density lipoprotein cholesterol", 8),
    "8480-6":  LabPriority("Systolic blood pressure", 9),
    "8462-4":  LabPriority("Diastolic blood pressure", 9),
    "33743-4": LabPriority("Estimated glomerular filtration rate", 8),
    "2160-0":  LabPriority("Creatinine", 7),
    "6690-2":  LabPriority("Leukocytes", 6),
    "718-7":   LabPriority("Hemoglobin", 7),
    "4544-3":  LabPriority("Hematocrit", 6),
    "777-3":   LabPriority("Platelets", 6),
    "2947-0":  LabPriority("Sodium", 5),
    "2823-3":  LabPriority("Potassium", 5),
    "1975-2":  LabPriority("Bilirubin", 4),
    "1742-6":  LabPriority("ALT", 4),
    "1920-8":  LabPriority("AST", 4),
})

DEFAULT_LAB_PRIORITY = 3

# ── Chronic conditions ────────────────────────────────────────────────────────
DIABETES_CODES = frozenset({
    "44054006",   # Type 2 diabetes
    "46635009",   # Type 1 diabetes
})

CHRONIC_CONDITION_CODES = DIABETES_CODES | frozenset({
    "38341003",   # Hypertension
    "13644009",   # Hypercholesterolemia
    "49601007",   # Cardiovascular disease
    "413838009",  # Chronic kidney disease
    "195967001",  # Asthma
    "13645005",   # COPD
    "40412008",   # Rheumatoid arthritis
    "56265001",   # Heart disease
})

# ── Unit conversions ──────────────────────────────────────────────────────────
UNIT_CONVERSIONS = MappingProxyType({
    "mmol/mol": UnitConversion(0.09148, "%"),      # HbA1c
    "mmol/L":   UnitConversion(38.67, "mg/dL"),    # cholesterol
    "umol/L":   UnitConversion(0.0113, "mg/dL"),   # creatinine
})

GLUCOSE_CODES = ("2345-7", "2339-0")

CODE_UNIT_CONVERSIONS = MappingProxyType({
    (code, "mmol/L"): UnitConversion(18.018, "mg/dL") for code in GLUCOSE_CODES
})

# ── Medication interactions ───────────────────────────────────────────────────
INTERACTION_RULES = (
    InteractionRule(
        code_pair=("1191", "1191"),       # aspirin + aspirin
        severity="medium",
        description="Duplicate aspirin therapy detected",
        action="Review dosing and consider consolidation",
    ),
    InteractionRule(
        code_pair=("6809", "4821"),       # metformin + insulin
        severity="low",
        description="Metformin and insulin combination requires monitoring",
        action="Monitor blood glucose levels closely",
    ),
    InteractionRule(
        code_pair=("29046", "1191"),      # lisinopril + aspirin
        severity="medium",
        description="ACE inhibitor and aspirin may increase bleeding risk",
        action="Monitor for signs of bleeding",
    ),
)

# ── Care-gap screening ────────────────────────────────────────────────────────
MAMMOGRAPHY_CODES = ("24606-6",)
# Colonoscopy study LOINC; 33747-0 is an HbA1c code and never counts here
COLONOSCOPY_CODES = ("18746-8",)
HBA1C_CODES = ("4548-4", "33747-0")
LIPID_CODES = ("2093-3", "2085-9", "2089-1", "18262-6", "13457-7")

CARE_GAP_RULES = (
    screening_rule(
        rule_id="mammography-screening",
        name="Mammography Screening",
        description="Annual mammography for women 50-74",
        recommendation="Schedule annual mammography screening",
        evidence_codes=MAMMOGRAPHY_CODES,
        evidence_keywords=("mammogram", "mammography"),
        max_age_days=730,
        min_age=50,
        max_age=74,
        gender="female",
    ),
    screening_rule(
        rule_id="colonoscopy-screening",
        name="Colorectal Cancer Screening",
        description="Colonoscopy every 10 years for adults 45-75",
        recommendation="Schedule colonoscopy screening",
        evidence_codes=COLONOSCOPY_CODES,
        evidence_keywords=("colonoscopy",),
        max_age_days=3650,
        min_age=45,
        max_age=75,
    ),
    screening_rule(
        rule_id="hba1c-diabetic",
        name="HbA1c Monitoring for Diabetes",
        description="HbA1c every 3-6 months for diabetic patients",
        recommendation="Order HbA1c test for diabetes monitoring",
        evidence_codes=HBA1C_CODES,
        max_age_days=180,
        condition_codes=DIABETES_CODES,
        condition_keywords=("diabetes",),
    ),
    screening_rule(
        rule_id="lipid-screening",
        name="Lipid Panel Screening",
        description="Lipid panel every 5 years for adults 40+",
        recommendation="Order lipid panel screening",
        evidence_codes=LIPID_CODES,
        evidence_keywords=("lipid", "cholesterol"),
        max_age_days=1825,
        min_age=40,
    ),
)

DEFAULT_TABLES = CodeTables(
    lab_priorities=LAB_PRIORITIES,
    chronic_condition_codes=CHRONIC_CONDITION_CODES,
    diabetes_condition_codes=DIABETES_CODES,
    unit_conversions=UNIT_CONVERSIONS,
    code_unit_conversions=CODE_UNIT_CONVERSIONS,
    interaction_rules=INTERACTION_RULES,
    care_gap_rules=CARE_GAP_RULES,
    default_lab_priority=DEFAULT_LAB_PRIORITY,
)
