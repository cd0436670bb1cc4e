"""
Unit Tests for Care-Gap Rules

Eligibility boundaries are evaluated against the fixed reference time
2025-06-15.
"""
from dataclasses import replace

import pytest

from chartreview.core.review import ChartTab, ReviewItemType, Severity, analyze_care_gaps
from chartreview.core.tables import DEFAULT_TABLES, screening_rule


def _ids(items):
    return {item.id for item in items}


class TestMammographyScreening:

    @pytest.mark.parametrize("birth_date, expected", [
        ("1975-06-15", True),     # turns 50 today
        ("1975-06-16", False),    # still 49
        ("1951-06-15", True),     # 74
        ("1950-06-15", False),    # 75
    ])
    def test_age_bounds(self, make_selection, now, birth_date, expected):
        items = analyze_care_gaps(make_selection(gender="female", birth_date=birth_date), now)
        assert ("care-gap-mammography-screening" in _ids(items)) is expected

    def test_male_not_eligible(self, make_selection, now):
        items = analyze_care_gaps(make_selection(gender="male", birth_date="1970-01-01"), now)
        assert "care-gap-mammography-screening" not in _ids(items)

    def test_recent_mammogram_closes_gap(self, make_selection, make_lab, now, ago):
        selection = make_selection(
            gender="female", birth_date="1970-01-01",
            labs=[make_lab(code="24606-6", date=ago(100))],
        )
        assert "care-gap-mammography-screening" not in _ids(analyze_care_gaps(selection, now))

    def test_stale_mammogram_is_gap(self, make_selection, make_lab, now, ago):
        selection = make_selection(
            gender="female", birth_date="1970-01-01",
            labs=[make_lab(code="24606-6", date=ago(800))],
        )
        assert "care-gap-mammography-screening" in _ids(analyze_care_gaps(selection, now))

    def test_evidence_matched_by_display(self, make_selection, make_lab, now, ago):
        selection = make_selection(
            gender="female", birth_date="1970-01-01",
            labs=[make_lab(code="9999-9", display="Screening Mammogram", date=ago(30))],
        )
        assert "care-gap-mammography-screening" not in _ids(analyze_care_gaps(selection, now))

    def test_undated_evidence_is_gap(self, make_selection, make_lab, now):
        selection = make_selection(
            gender="female", birth_date="1970-01-01",
            labs=[make_lab(code="24606-6", date="")],
        )
        assert "care-gap-mammography-screening" in _ids(analyze_care_gaps(selection, now))


class TestColonoscopyScreening:

    def test_eligible_without_evidence(self, make_selection, now):
        items = analyze_care_gaps(make_selection(birth_date="1975-01-01"), now)
        assert "care-gap-colonoscopy-screening" in _ids(items)

    def test_colonoscopy_within_ten_years(self, make_selection, make_lab, now):
        selection = make_selection(birth_date="1960-01-01", labs=[make_lab(code="18746-8", date="2018-01-01")])
        assert "care-gap-colonoscopy-screening" not in _ids(analyze_care_gaps(selection, now))

    def test_hba1c_is_not_colonoscopy_evidence(self, make_selection, make_lab, now, ago):
        selection = make_selection(birth_date="1960-01-01", labs=[make_lab(code="33747-0", date=ago(10))])
        assert "care-gap-colonoscopy-screening" in _ids(analyze_care_gaps(selection, now))

    def test_under_45(self, make_selection, now):
        items = analyze_care_gaps(make_selection(birth_date="1985-01-01"), now)
        assert "care-gap-colonoscopy-screening" not in _ids(items)


class TestHbA1cMonitoring:

    def test_diabetic_without_recent_hba1c(self, make_selection, make_condition, make_lab, now):
        selection = make_selection(
            birth_date="2000-01-01",
            conditions=[make_condition()],
            labs=[make_lab(code="4548-4", date="2024-06-01")],
        )
        assert _ids(analyze_care_gaps(selection, now)) == {"care-gap-hba1c-diabetic"}

    def test_recent_hba1c_closes_gap(self, make_selection, make_condition, make_lab, now, ago):
        selection = make_selection(
            birth_date="2000-01-01",
            conditions=[make_condition()],
            labs=[make_lab(code="4548-4", date=ago(30))],
        )
        assert analyze_care_gaps(selection, now) == []

    def test_diabetes_matched_by_name(self, make_selection, make_condition, now):
        selection = make_selection(
            birth_date="2000-01-01",
            conditions=[make_condition(code=None, name="Diabetes mellitus type 1")],
        )
        assert _ids(analyze_care_gaps(selection, now)) == {"care-gap-hba1c-diabetic"}

    def test_requires_active_condition(self, make_selection, make_condition, now):
        selection = make_selection(
            birth_date="2000-01-01",
            conditions=[make_condition(clinical_status="resolved", is_active=False)],
        )
        assert analyze_care_gaps(selection, now) == []

    def test_non_diabetic(self, make_selection, make_condition, now):
        selection = make_selection(
            birth_date="2000-01-01",
            conditions=[make_condition(code="38341003", name="Hypertension")],
        )
        assert analyze_care_gaps(selection, now) == []


class TestLipidScreening:

    def test_age_40_without_panel(self, make_selection, now):
        items = analyze_care_gaps(make_selection(birth_date="1985-06-15"), now)
        assert _ids(items) == {"care-gap-lipid-screening"}

    def test_recent_panel(self, make_selection, make_lab, now):
        selection = make_selection(birth_date="1985-01-01", labs=[make_lab(code="2093-3", date="2023-01-01")])
        assert analyze_care_gaps(selection, now) == []

    def test_under_40(self, make_selection, now):
        assert analyze_care_gaps(make_selection(birth_date="1990-01-01"), now) == []


class TestAnalyzeCareGaps:
    """General behaviour of the care-gap analyzer."""

    def test_item_shape(self, make_selection, now):
        item = analyze_care_gaps(make_selection(birth_date="1985-01-01"), now)[0]

        assert item.type is ReviewItemType.CARE_GAP
        assert item.severity is Severity.MEDIUM
        assert item.title == "Care Gap: Lipid Panel Screening"
        assert item.description == "Lipid panel every 5 years for adults 40+"
        assert item.details == "Order lipid panel screening"
        assert item.action_required is True
        assert item.date_identified == now.isoformat()
        assert item.chart_hint.tab is ChartTab.LABS

    def test_table_order(self, make_selection, now):
        items = analyze_care_gaps(make_selection(gender="female", birth_date="1960-01-01"), now)
        assert [item.id for item in items] == [
            "care-gap-mammography-screening",
            "care-gap-colonoscopy-screening",
            "care-gap-lipid-screening",
        ]

    def test_no_patient(self, make_selection, now):
        assert analyze_care_gaps(make_selection(with_patient=False), now) == []

    def test_unknown_birth_date_fails_age_rules(self, make_selection, now):
        assert analyze_care_gaps(make_selection(gender="female", birth_date=None), now) == []

    def test_custom_rule(self, make_selection, now):
        tables = replace(DEFAULT_TABLES, care_gap_rules=(
            screening_rule(
                rule_id="potassium-check",
                name="Potassium Check",
                description="Potassium yearly",
                recommendation="Order potassium",
                evidence_codes=("2823-3",),
                max_age_days=365,
            ),
        ))
        items = analyze_care_gaps(make_selection(), now, tables)
        assert [item.id for item in items] == ["care-gap-potassium-check"]

    def test_naive_reference_time(self, make_selection, make_lab, now, ago):
        selection = make_selection(birth_date="1985-01-01", labs=[make_lab(code="2093-3", date=ago(100))])
        assert analyze_care_gaps(selection, now.replace(tzinfo=None)) == []

        items = analyze_care_gaps(make_selection(birth_date="1985-01-01"), now.replace(tzinfo=None))
        assert items[0].date_identified == now.isoformat()
