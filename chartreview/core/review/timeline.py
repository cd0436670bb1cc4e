"""
Medication Timeline

Turns processed medications into dated segments and marks segments of the
same drug whose periods overlap. Renderers draw these; no drawing here.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Optional, Tuple

from chartreview.core.selection.base import ProcessedMedication
from chartreview.utils.dates import as_utc, parse_fhir_date

# Assumed course length when a finished order carries no end date
DEFAULT_COURSE_DAYS = 30

FINISHED_STATUSES = frozenset({"completed", "stopped"})


@dataclass(frozen=True)
class TimelineSegment:
    medication_id: str
    name: str
    start: datetime
    end: Optional[datetime]          # None = ongoing
    status: str
    code: Optional[str] = None
    dosage: Optional[str] = None
    resource_ref: Optional[str] = None
    overlap_with: Tuple[str, ...] = ()

    @property
    def has_overlap(self) -> bool:
        return bool(self.overlap_with)

    def end_or(self, now: datetime) -> datetime:
        return self.end if self.end is not None else now

    def to_dict(self) -> Dict:
        return {
            "medicationId": self.medication_id,
            "name": self.name,
            "code": self.code,
            "start": self.start.isoformat(),
            "end": self.end.isoformat() if self.end else None,
            "status": self.status,
            "dosage": self.dosage,
            "resourceRef": self.resource_ref,
            "hasOverlap": self.has_overlap,
            "overlapWith": list(self.overlap_with),
        }


def detect_medication_overlaps(
    segments: Iterable[TimelineSegment],
    now: datetime,
) -> List[TimelineSegment]:
    """
    Mark every pair of same-drug segments whose periods intersect.

    Ongoing segments run until `now`. Segments without a drug code are never
    matched. Returns new segments in input order.
    """
    segments = list(segments)
    now = as_utc(now)
    overlaps: List[List[str]] = [[] for _ in segments]

    for i, first in enumerate(segments):
        for j in range(i + 1, len(segments)):
            second = segments[j]
            if first.code is None or first.code != second.code:
                continue
            if first.start <= second.end_or(now) and second.start <= first.end_or(now):
                overlaps[i].append(second.medication_id)
                overlaps[j].append(first.medication_id)

    return [
        replace(segment, overlap_with=tuple(found)) if found else segment
        for segment, found in zip(segments, overlaps)
    ]


def segment_medication_timeline(
    medications: Iterable[ProcessedMedication],
    now: datetime,
) -> List[TimelineSegment]:
    """
    One segment per medication.

    The segment starts at the authored date (or `now` when unknown). Finished
    orders end DEFAULT_COURSE_DAYS later; all others are ongoing.
    """
    now = as_utc(now)
    segments: List[TimelineSegment] = []
    for index, med in enumerate(medications):
        start = parse_fhir_date(med.authored_date) or now
        end = start + timedelta(days=DEFAULT_COURSE_DAYS) if med.status in FINISHED_STATUSES else None
        segments.append(TimelineSegment(
            medication_id=med.source_id or f"med-{index}",
            name=med.name,
            start=start,
            end=end,
            status=med.status,
            code=med.code,
            dosage=med.dosage,
            resource_ref=med.source_ref,
        ))
    return detect_medication_overlaps(segments, now)
