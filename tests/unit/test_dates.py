"""
Unit Tests for Date Helpers

Parsing of schema dates, recency windows and calendar-correct ages.
"""
import pytest
from datetime import date, datetime, timezone

from chartreview.utils.dates import (
    as_utc,
    calculate_age,
    days_between,
    days_since,
    format_date,
    is_within_days,
    parse_fhir_date,
    sort_key,
    EPOCH_MIN,
)


class TestParseFhirDate:
    """Tests for parse_fhir_date."""

    @pytest.mark.parametrize("text, expected", [
        ("2024-01-01", datetime(2024, 1, 1, tzinfo=timezone.utc)),
        ("2024-03", datetime(2024, 3, 1, tzinfo=timezone.utc)),
        ("2024", datetime(2024, 1, 1, tzinfo=timezone.utc)),
        ("2024-01-01T10:00:00Z", datetime(2024, 1, 1, 10, tzinfo=timezone.utc)),
        ("2024-01-01T10:00:00", datetime(2024, 1, 1, 10, tzinfo=timezone.utc)),
    ])
    def test_formats(self, text, expected):
        assert parse_fhir_date(text) == expected

    def test_offset_is_preserved_as_instant(self):
        parsed = parse_fhir_date("2024-01-01T10:00:00+02:00")
        assert parsed == datetime(2024, 1, 1, 8, tzinfo=timezone.utc)

    @pytest.mark.parametrize("bad", [None, "", "   ", "not a date", "2024-13-01", 42])
    def test_unparseable_returns_none(self, bad):
        assert parse_fhir_date(bad) is None

    def test_date_and_naive_datetime_objects(self):
        assert parse_fhir_date(date(2024, 5, 6)) == datetime(2024, 5, 6, tzinfo=timezone.utc)
        assert parse_fhir_date(datetime(2024, 5, 6, 7)).tzinfo is not None


class TestRecency:
    """Tests for recency windows."""

    def test_within_window(self, now):
        assert is_within_days("2025-06-01", 30, now)

    def test_outside_window(self, now):
        assert not is_within_days("2025-01-01", 90, now)

    def test_future_dates_count_as_recent(self, now):
        assert is_within_days("2026-01-01", 30, now)

    def test_unparseable_never_recent(self, now):
        assert not is_within_days("garbage", 10_000, now)
        assert not is_within_days(None, 10_000, now)

    def test_days_between_and_since(self, now):
        start = datetime(2025, 6, 5, 12, tzinfo=timezone.utc)
        assert days_between(start, now) == pytest.approx(10.0)
        assert days_since("2025-06-05T12:00:00Z", now) == pytest.approx(10.0)
        assert days_since("nope", now) is None

    def test_naive_reference_time_read_as_utc(self, now):
        naive_now = now.replace(tzinfo=None)
        assert as_utc(naive_now) == now
        assert as_utc(now) is now
        assert days_since("2025-06-05T12:00:00Z", naive_now) == pytest.approx(10.0)
        assert is_within_days("2025-06-05", 30, naive_now)


class TestCalculateAge:
    """Tests for calendar-correct age."""

    def test_birthday_today(self, now):
        assert calculate_age("1980-06-15", now) == 45

    def test_birthday_tomorrow_reduces_age(self, now):
        assert calculate_age("1980-06-16", now) == 44

    def test_birthday_earlier_this_year(self, now):
        assert calculate_age("1980-01-01", now) == 45

    def test_later_month_reduces_age(self, now):
        assert calculate_age("1980-12-01", now) == 44

    def test_unknown_birth_date(self, now):
        assert calculate_age(None, now) is None
        assert calculate_age("unknown", now) is None


class TestOrderingHelpers:
    """Tests for sort keys and display formatting."""

    def test_unparseable_sorts_oldest(self):
        assert sort_key("garbage") == EPOCH_MIN
        assert sort_key("1900-01-01") > EPOCH_MIN

    def test_format_date(self):
        assert format_date("2024-01-15T08:30:00Z") == "2024-01-15"
        assert format_date("") == "unknown date"
        assert format_date("sometime") == "sometime"
