"""
Trip lifecycle: creation in draft, publish/unpublish, admin set and edits.

A trip is always created as a draft. Only super-admins flip the draft flag,
and a published trip must keep at least one admin.
"""
from datetime import datetime
from typing import Iterable, List, Optional

from sqlalchemy.orm import Session

from models.Trip import Trip
from models.User import User
from services import authorization as policy
from services.authorization import Caller, Role
from services.errors import (
    AlreadyInStateError,
    NotFoundError,
    PreconditionError,
    ValidationError,
)
from services.trip_timing import as_naive_utc, timing_for, utcnow
from utils.logger import setup_api_logger

logger = setup_api_logger()

DATE_FIELDS = ("start_date", "end_date", "attendance_cutoff_date")
REQUIRED_FIELDS = ("name", "location", "start_date", "end_date")


def get_trip_or_404(db: Session, trip_id: int) -> Trip:
    trip = db.query(Trip).filter(Trip.id == trip_id).first()
    if not trip:
        raise NotFoundError(f"Trip {trip_id} not found")
    return trip


def validate_trip_dates(start_date: datetime, end_date: datetime, attendance_cutoff_date: Optional[datetime]) -> None:
    if end_date < start_date:
        raise ValidationError(
            f"End date ({end_date.isoformat()}) must not be before start date ({start_date.isoformat()})"
        )
    if attendance_cutoff_date is not None and attendance_cutoff_date > start_date:
        raise ValidationError(
            f"Attendance cutoff date ({attendance_cutoff_date.isoformat()}) "
            f"must not be after start date ({start_date.isoformat()})"
        )


def create_trip(db: Session, data: dict, caller: Caller) -> Trip:
    """Create a trip in draft mode. No admins are attached here."""
    policy.enforce(policy.can_create_trip(caller))

    values = dict(data)
    for field in DATE_FIELDS:
        values[field] = as_naive_utc(values.get(field))
    validate_trip_dates(values["start_date"], values["end_date"], values.get("attendance_cutoff_date"))

    # A trip is never born published, whoever creates it
    values["draft"] = True
    trip = Trip(**values)
    db.add(trip)
    db.commit()
    db.refresh(trip)
    logger.info("Trip %s created in draft by user %s", trip.id, caller.user_id)
    return trip


def get_trip(db: Session, trip_id: int, caller: Caller) -> Trip:
    trip = get_trip_or_404(db, trip_id)
    policy.enforce(policy.can_view_trip(caller, trip.admin_ids, trip.draft))
    return trip


def list_trips(
    db: Session,
    caller: Caller,
    draft: Optional[bool] = None,
    start_date_from: Optional[datetime] = None,
    start_date_to: Optional[datetime] = None,
    include_past: bool = False,
    now: Optional[datetime] = None,
) -> List[Trip]:
    q = db.query(Trip)

    if caller.role == Role.FAMILY:
        # Families only ever see published trips
        q = q.filter(Trip.draft.is_(False))
    elif draft is not None:
        q = q.filter(Trip.draft.is_(draft))

    if caller.role == Role.TRIP_ADMIN:
        q = q.filter(Trip.admins.any(User.id == caller.user_id))

    start_date_from = as_naive_utc(start_date_from)
    if start_date_from is None and not include_past:
        start_date_from = as_naive_utc(now) or utcnow()
    if start_date_from is not None:
        q = q.filter(Trip.start_date >= start_date_from)
    if start_date_to is not None:
        q = q.filter(Trip.start_date <= as_naive_utc(start_date_to))

    return q.order_by(Trip.start_date.asc()).all()


def update_trip(db: Session, trip_id: int, data: dict, caller: Caller, now: Optional[datetime] = None) -> Trip:
    """
    Apply a partial update. Dates are validated on the merged values, so a
    new start date is checked against the stored end date and cutoff too.
    """
    trip = get_trip_or_404(db, trip_id)
    policy.enforce(policy.can_manage_trip(caller, trip.admin_ids, "update trips"))

    if timing_for(trip, now).is_past_start and not caller.is_super_admin:
        raise PreconditionError(f"Cannot update trip {trip_id}: it started on {trip.start_date.isoformat()}")

    changes = dict(data)
    for field in DATE_FIELDS:
        if field in changes:
            changes[field] = as_naive_utc(changes[field])

    for field in REQUIRED_FIELDS:
        if field in changes and changes[field] is None:
            del changes[field]

    merged = {field: changes.get(field, getattr(trip, field)) for field in DATE_FIELDS}
    validate_trip_dates(merged["start_date"], merged["end_date"], merged["attendance_cutoff_date"])

    for k, v in changes.items():
        setattr(trip, k, v)

    db.commit()
    db.refresh(trip)
    return trip


def delete_trip(db: Session, trip_id: int, caller: Caller) -> None:
    """Hard delete; attendance, gear items and pledges go with the trip."""
    policy.enforce(policy.require_super_admin(caller, "delete trips"))
    trip = get_trip_or_404(db, trip_id)
    db.delete(trip)
    db.commit()
    logger.info("Trip %s deleted by user %s", trip_id, caller.user_id)


def publish_trip(db: Session, trip_id: int, caller: Caller) -> Trip:
    policy.enforce(policy.require_super_admin(caller, "publish trips"))
    trip = get_trip_or_404(db, trip_id)

    if not trip.draft:
        raise AlreadyInStateError(f"Trip {trip_id} is already published")
    if not trip.admins:
        raise PreconditionError(f"Trip {trip_id} must have at least one admin before publishing")

    trip.draft = False
    db.commit()
    db.refresh(trip)
    logger.info("Trip %s published", trip_id)
    return trip


def unpublish_trip(db: Session, trip_id: int, caller: Caller) -> Trip:
    """
    Return a trip to draft. Attendance and pledges are kept; they are frozen
    because every attendance and gear mutation re-checks the draft flag.
    """
    policy.enforce(policy.require_super_admin(caller, "unpublish trips"))
    trip = get_trip_or_404(db, trip_id)

    if trip.draft:
        raise AlreadyInStateError(f"Trip {trip_id} is already in draft mode")

    trip.draft = True
    db.commit()
    db.refresh(trip)
    logger.info("Trip %s returned to draft", trip_id)
    return trip


def _load_adults(db: Session, user_ids: Iterable[int]) -> List[User]:
    wanted = list(dict.fromkeys(user_ids))
    users = db.query(User).filter(User.id.in_(wanted)).all() if wanted else []

    missing = sorted(set(wanted) - {u.id for u in users})
    if missing:
        raise ValidationError(f"{len(missing)} admin id(s) do not exist: {missing}")

    non_adults = sorted(u.id for u in users if not u.is_adult)
    if non_adults:
        raise ValidationError(f"Only adults can be trip admins; {len(non_adults)} supplied id(s) are not: {non_adults}")
    return users


def assign_admins(db: Session, trip_id: int, admin_ids: List[int], caller: Caller) -> Trip:
    """Replace the whole admin set."""
    policy.enforce(policy.require_super_admin(caller, "assign trip admins"))
    trip = get_trip_or_404(db, trip_id)
    admins = _load_adults(db, admin_ids)

    if not trip.draft and not admins:
        raise PreconditionError(f"Trip {trip_id} is published and must keep at least one admin")

    trip.admins = admins
    db.commit()
    db.refresh(trip)
    return trip


def add_admin(db: Session, trip_id: int, user_id: int, caller: Caller) -> Trip:
    policy.enforce(policy.require_super_admin(caller, "add trip admins"))
    trip = get_trip_or_404(db, trip_id)

    if user_id in trip.admin_ids:
        raise AlreadyInStateError(f"User {user_id} is already an admin of trip {trip_id}")

    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise NotFoundError(f"User {user_id} not found")
    if not user.is_adult:
        raise ValidationError(f"Only adults can be trip admins; user {user_id} is not")

    trip.admins.append(user)
    db.commit()
    db.refresh(trip)
    return trip


def remove_admin(db: Session, trip_id: int, user_id: int, caller: Caller) -> Trip:
    policy.enforce(policy.require_super_admin(caller, "remove trip admins"))
    trip = get_trip_or_404(db, trip_id)

    if user_id not in trip.admin_ids:
        raise PreconditionError(f"User {user_id} is not an admin of trip {trip_id}")

    if not trip.draft and len(trip.admins) <= 1:
        raise PreconditionError(f"Cannot remove the last admin from published trip {trip_id}")

    trip.admins = [a for a in trip.admins if a.id != user_id]
    db.commit()
    db.refresh(trip)
    return trip
