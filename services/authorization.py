"""
Authorization policy for trip, attendance and gear operations.

The caller identity (role and family) is resolved outside the core and
passed in as a ``Caller``. Each policy function returns a ``Decision``;
``enforce`` raises ``AuthorizationError`` with the decision's message when
it is a denial.
"""
from dataclasses import dataclass
from typing import Iterable, Optional
import enum

from services.errors import AuthorizationError


class Role(str, enum.Enum):
    FAMILY = "FAMILY"
    TRIP_ADMIN = "TRIP_ADMIN"
    SUPER_ADMIN = "SUPER_ADMIN"


@dataclass(frozen=True)
class Caller:
    user_id: int
    role: Role
    family_id: Optional[int] = None

    @property
    def is_super_admin(self) -> bool:
        return self.role == Role.SUPER_ADMIN


@dataclass(frozen=True)
class Decision:
    allowed: bool
    message: str = ""


ALLOW = Decision(True)


def deny(message: str) -> Decision:
    return Decision(False, message)


def enforce(decision: Decision) -> None:
    if not decision.allowed:
        raise AuthorizationError(decision.message)


def _administers(caller: Caller, trip_admin_ids: Iterable[int]) -> bool:
    return caller.user_id in set(trip_admin_ids)


def require_super_admin(caller: Caller, action: str) -> Decision:
    if caller.is_super_admin:
        return ALLOW
    return deny(f"Only super-admins can {action}")


def can_create_trip(caller: Caller) -> Decision:
    if caller.role in (Role.TRIP_ADMIN, Role.SUPER_ADMIN):
        return ALLOW
    return deny("Only trip admins and super-admins can create trips")


def can_manage_trip(caller: Caller, trip_admin_ids: Iterable[int], action: str = "manage this trip") -> Decision:
    """Super-admins may manage any trip; anyone else must be one of its admins."""
    if caller.is_super_admin or _administers(caller, trip_admin_ids):
        return ALLOW
    return deny(f"Only trip admins and super-admins can {action}")


def can_view_trip(caller: Caller, trip_admin_ids: Iterable[int], draft: bool) -> Decision:
    if caller.is_super_admin:
        return ALLOW
    is_admin = _administers(caller, trip_admin_ids)
    if draft and not is_admin:
        return deny("Draft trips are only visible to trip admins and super-admins")
    if caller.role == Role.TRIP_ADMIN and not is_admin:
        return deny("You can only view trips you manage")
    return ALLOW


def can_mark_attendance(caller: Caller, trip_admin_ids: Iterable[int], family_id: int) -> Decision:
    """
    FAMILY callers act for their own family only, TRIP_ADMIN callers only on
    trips they administer, SUPER_ADMIN callers on any trip/family pair.
    """
    if caller.is_super_admin:
        return ALLOW
    if caller.role == Role.FAMILY:
        if caller.family_id != family_id:
            return deny(f"You can only mark attendance for your own family (requested family {family_id})")
        return ALLOW
    if not _administers(caller, trip_admin_ids):
        return deny("You can only mark attendance for trips you manage")
    return ALLOW


def can_pledge_for_family(caller: Caller, trip_admin_ids: Iterable[int], family_id: int) -> Decision:
    """
    Gear pledges: a family caller may only pledge for its own family unless it
    also administers the trip; admins and super-admins may pledge for anyone.
    """
    if caller.role != Role.FAMILY:
        return ALLOW
    if caller.family_id == family_id or _administers(caller, trip_admin_ids):
        return ALLOW
    return deny(f"Families can only volunteer gear for their own family (requested family {family_id})")


def can_view_family_gear(caller: Caller, trip_admin_ids: Iterable[int], family_id: int) -> Decision:
    if caller.role != Role.FAMILY:
        return ALLOW
    if caller.family_id == family_id or _administers(caller, trip_admin_ids):
        return ALLOW
    return deny("Cannot view other families' gear assignments")


def can_view_family(caller: Caller, family_id: int) -> Decision:
    if caller.role != Role.FAMILY or caller.family_id == family_id:
        return ALLOW
    return deny("You can only access your own family")


def can_manage_family_members(caller: Caller, family_id: int, action: str) -> Decision:
    """Super-admins manage any family's members; anyone else only their own family's."""
    if caller.is_super_admin or caller.family_id == family_id:
        return ALLOW
    return deny(f"You can only {action} your own family")
