"""
Family registration, membership and the status transitions that decide
attendance eligibility (approved and active).
"""
from typing import Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from models.Family import Family, FamilyStatus
from models.Trip import Trip
from models.TripAttendance import TripAttendance
from models.User import User, UserType
from services import authorization as policy
from services.authorization import Caller, Role
from services.errors import (
    AlreadyInStateError,
    AuthorizationError,
    NotFoundError,
    PreconditionError,
    ValidationError,
)
from utils.logger import setup_api_logger

logger = setup_api_logger()


def get_family_or_404(db: Session, family_id: int) -> Family:
    family = db.query(Family).filter(Family.id == family_id).first()
    if not family:
        raise NotFoundError(f"Family {family_id} not found")
    return family


def _ensure_emails_free(db: Session, emails: List[str]) -> None:
    taken = db.query(User.email).filter(User.email.in_(emails)).all()
    if taken:
        raise ValidationError(f"Email already exists: {', '.join(e for (e,) in taken)}")


def _trips_left_without_admins(db: Session, leaving_user_ids: Iterable[int]) -> List[int]:
    """Published trips whose whole admin set is among ``leaving_user_ids``."""
    leaving = set(leaving_user_ids)
    if not leaving:
        return []
    trips = (
        db.query(Trip)
        .filter(Trip.draft.is_(False), Trip.admins.any(User.id.in_(leaving)))
        .all()
    )
    return sorted(t.id for t in trips if t.admin_ids <= leaving)


def create_family(db: Session, name: Optional[str], adults: List[dict], children: Optional[List[dict]] = None) -> Family:
    """Register a family. It starts PENDING and active, waiting for approval."""
    if not adults:
        raise ValidationError("At least one adult is required to create a family")

    emails = [a["email"] for a in adults]
    _ensure_emails_free(db, emails)
    if len(set(emails)) != len(emails):
        raise ValidationError("Adult emails must be unique within a family")

    family = Family(name=name, status=FamilyStatus.PENDING, is_active=True)
    for adult in adults:
        family.members.append(User(type=UserType.ADULT, name=adult["name"], email=adult["email"]))
    for child in children or []:
        family.members.append(User(type=UserType.CHILD, name=child["name"], age=child["age"]))

    db.add(family)
    db.commit()
    db.refresh(family)
    return family


def get_family(db: Session, family_id: int, caller: Caller) -> Family:
    policy.enforce(policy.can_view_family(caller, family_id))
    return get_family_or_404(db, family_id)


def list_families(
    db: Session,
    caller: Caller,
    status: Optional[FamilyStatus] = None,
    is_active: Optional[bool] = None,
) -> List[Family]:
    """
    Super-admins see every family, trip admins the families attending the
    trips they manage, and a family only itself.
    """
    if caller.role == Role.FAMILY:
        return [get_family_or_404(db, caller.family_id)] if caller.family_id is not None else []

    q = db.query(Family)
    if caller.role == Role.TRIP_ADMIN:
        attending = (
            select(TripAttendance.family_id)
            .join(Trip, Trip.id == TripAttendance.trip_id)
            .where(Trip.admins.any(User.id == caller.user_id))
        )
        q = q.filter(Family.id.in_(attending))

    if status is not None:
        q = q.filter(Family.status == status)
    if is_active is not None:
        q = q.filter(Family.is_active.is_(is_active))

    return q.order_by(Family.created_at.desc(), Family.id.desc()).all()


def approve_family(db: Session, family_id: int, caller: Caller) -> Family:
    policy.enforce(policy.require_super_admin(caller, "approve families"))
    family = get_family_or_404(db, family_id)
    if family.status == FamilyStatus.APPROVED:
        raise AlreadyInStateError(f"Family {family_id} is already approved")

    family.status = FamilyStatus.APPROVED
    db.commit()
    db.refresh(family)
    logger.info("Family %s approved by user %s", family_id, caller.user_id)
    return family


def deactivate_family(db: Session, family_id: int, caller: Caller) -> Family:
    policy.enforce(policy.require_super_admin(caller, "deactivate families"))
    family = get_family_or_404(db, family_id)
    if not family.is_active:
        raise AlreadyInStateError(f"Family {family_id} is already deactivated")

    family.is_active = False
    db.commit()
    db.refresh(family)
    return family


def reactivate_family(db: Session, family_id: int, caller: Caller) -> Family:
    policy.enforce(policy.require_super_admin(caller, "reactivate families"))
    family = get_family_or_404(db, family_id)
    if family.is_active:
        raise AlreadyInStateError(f"Family {family_id} is already active")

    family.is_active = True
    db.commit()
    db.refresh(family)
    return family


def delete_family(db: Session, family_id: int, caller: Caller) -> None:
    """
    Hard delete; the family's attendance records and gear pledges are removed
    with it. Refused while its adults are the only admins of a published trip.
    """
    policy.enforce(policy.require_super_admin(caller, "delete families"))
    family = get_family_or_404(db, family_id)

    stranded = _trips_left_without_admins(db, [m.id for m in family.members])
    if stranded:
        raise PreconditionError(
            f"Cannot delete family {family_id}: its members are the only admins of published trip(s) {stranded}"
        )

    db.delete(family)
    db.commit()
    logger.info("Family %s deleted by user %s", family_id, caller.user_id)


def add_member(db: Session, family_id: int, data: dict, caller: Caller) -> User:
    policy.enforce(policy.can_manage_family_members(caller, family_id, "add members to"))
    get_family_or_404(db, family_id)

    member_type = data["type"]
    if member_type == UserType.ADULT:
        if not data.get("email"):
            raise ValidationError("Adult members must have an email")
        _ensure_emails_free(db, [data["email"]])
    elif data.get("age") is None:
        raise ValidationError("Child members must have an age")

    member = User(
        family_id=family_id,
        type=member_type,
        name=data["name"],
        age=data.get("age"),
        email=data.get("email") if member_type == UserType.ADULT else None,
    )
    db.add(member)
    db.commit()
    db.refresh(member)
    return member


def remove_member(db: Session, family_id: int, member_id: int, caller: Caller) -> None:
    policy.enforce(policy.can_manage_family_members(caller, family_id, "remove members from"))
    family = get_family_or_404(db, family_id)

    member = db.query(User).filter(User.id == member_id).first()
    if not member:
        raise NotFoundError(f"User {member_id} not found")
    if member.family_id != family_id:
        raise AuthorizationError(f"User {member_id} does not belong to family {family_id}")

    if member.is_adult:
        adults = [m for m in family.members if m.is_adult]
        if len(adults) <= 1:
            raise ValidationError(f"Cannot remove the last adult from family {family_id}")
        stranded = _trips_left_without_admins(db, [member_id])
        if stranded:
            raise PreconditionError(
                f"Cannot remove user {member_id}: they are the only admin of published trip(s) {stranded}"
            )

    db.delete(member)
    db.commit()
