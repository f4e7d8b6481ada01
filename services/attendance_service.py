"""
Attendance ledger: which families are committed to a published trip.

A record is pure membership keyed by (trip_id, family_id). Marking twice and
unmarking an absent family both succeed silently.
"""
from datetime import datetime
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from models.Trip import Trip
from models.TripAttendance import TripAttendance
from services import authorization as policy
from services.authorization import Caller
from services.errors import PreconditionError
from services.family_service import get_family_or_404
from services.trip_service import get_trip_or_404
from services.trip_timing import timing_for
from utils.logger import setup_api_logger

logger = setup_api_logger()


def is_attending(db: Session, trip_id: int, family_id: int) -> bool:
    return db.query(TripAttendance).filter_by(trip_id=trip_id, family_id=family_id).first() is not None


def mark_attendance(
    db: Session,
    trip_id: int,
    family_id: int,
    attending: bool,
    caller: Caller,
    now: Optional[datetime] = None,
) -> Trip:
    trip = get_trip_or_404(db, trip_id)
    timing = timing_for(trip, now)

    if trip.draft:
        raise PreconditionError(f"Trip {trip_id} is a draft; draft trips do not accept attendance")
    # Applies to withdrawals as well
    if timing.cutoff_passed:
        raise PreconditionError(
            f"Attendance cutoff for trip {trip_id} has passed ({trip.attendance_cutoff_date.isoformat()})"
        )

    policy.enforce(policy.can_mark_attendance(caller, trip.admin_ids, family_id))

    family = get_family_or_404(db, family_id)
    if not family.is_eligible:
        raise PreconditionError(
            f"Family {family_id} must be approved and active to attend "
            f"(status={family.status.value}, active={family.is_active})"
        )

    record = db.query(TripAttendance).filter_by(trip_id=trip_id, family_id=family_id).first()
    if attending and record is None:
        db.add(TripAttendance(trip_id=trip_id, family_id=family_id))
        try:
            db.commit()
        except IntegrityError:
            # A concurrent request inserted the same row first
            db.rollback()
            logger.info("Attendance of family %s on trip %s already recorded", family_id, trip_id)
    elif not attending and record is not None:
        db.delete(record)
        db.commit()

    db.refresh(trip)
    return trip


def get_trip_attendees(db: Session, trip_id: int, caller: Caller) -> List[TripAttendance]:
    trip = get_trip_or_404(db, trip_id)
    policy.enforce(policy.can_view_trip(caller, trip.admin_ids, trip.draft))
    return (
        db.query(TripAttendance)
        .filter(TripAttendance.trip_id == trip_id)
        .order_by(TripAttendance.family_id)
        .all()
    )
