"""
Time-derived trip state.

Every gate that compares "now" with a trip's dates goes through
``trip_timing`` so that attendance, gear and edit checks agree on the same
boundaries.
"""
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

DRAFT = "draft"
UPCOMING = "upcoming"
ACTIVE = "active"
PAST = "past"


def utcnow() -> datetime:
    """Current time as naive UTC, matching how trip dates are stored."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def as_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


@dataclass(frozen=True)
class TripTiming:
    phase: str
    has_started: bool    # now >= start: gear pledging is closed
    is_past_start: bool  # now > start: ordinary admins can no longer edit
    cutoff_passed: bool  # now > cutoff: attendance is frozen in both directions

    @property
    def attendance_open(self) -> bool:
        return self.phase != DRAFT and not self.cutoff_passed

    @property
    def gear_open(self) -> bool:
        return not self.has_started


def trip_timing(
    now: datetime,
    start_date: datetime,
    end_date: datetime,
    attendance_cutoff_date: Optional[datetime] = None,
    draft: bool = False,
) -> TripTiming:
    now = as_naive_utc(now)
    start_date = as_naive_utc(start_date)
    end_date = as_naive_utc(end_date)
    attendance_cutoff_date = as_naive_utc(attendance_cutoff_date)

    if draft:
        phase = DRAFT
    elif now > end_date:
        phase = PAST
    elif now >= start_date:
        phase = ACTIVE
    else:
        phase = UPCOMING

    return TripTiming(
        phase=phase,
        has_started=now >= start_date,
        is_past_start=now > start_date,
        cutoff_passed=attendance_cutoff_date is not None and now > attendance_cutoff_date,
    )


def timing_for(trip, now: Optional[datetime] = None) -> TripTiming:
    return trip_timing(
        now or utcnow(),
        trip.start_date,
        trip.end_date,
        trip.attendance_cutoff_date,
        draft=trip.draft,
    )
