"""
Utilities Package - Logging, Exception Handling and Dates
"""
from .logging import get_logger, setup_logging
from .exceptions import (
    ChartReviewError,
    MissingSubjectError,
    InvalidBundleError,
)
from .dates import (
    utc_now,
    as_utc,
    parse_fhir_date,
    days_between,
    days_since,
    is_within_days,
    calculate_age,
)

__all__ = [
    "get_logger",
    "setup_logging",
    "ChartReviewError",
    "MissingSubjectError",
    "InvalidBundleError",
    "utc_now",
    "as_utc",
    "parse_fhir_date",
    "days_between",
    "days_since",
    "is_within_days",
    "calculate_age",
]
