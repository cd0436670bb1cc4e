"""
Custom Exception Hierarchy

Only conditions that make a whole selection meaningless are raised.
Everything else is tolerated by excluding the offending resource.
"""
from typing import Optional, Dict, Any


class ChartReviewError(Exception):
    """Base exception for all chart review errors."""

    def __init__(
        self,
        message: str,
        code: str = "UNKNOWN_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details
        }


class MissingSubjectError(ChartReviewError):
    """The bundle carries no Patient resource."""

    def __init__(
        self,
        message: str = "No patient resource found in bundle",
        bundle_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            code="MISSING_SUBJECT",
            details={"bundle_id": bundle_id, **(details or {})}
        )
        self.bundle_id = bundle_id


class InvalidBundleError(ChartReviewError):
    """Input is not a bundle or resource at all."""

    def __init__(
        self,
        message: str,
        received: str = "unknown",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            code="INVALID_BUNDLE",
            details={"received": received, **(details or {})}
        )
        self.received = received
