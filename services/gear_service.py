"""
Gear allocation: per-trip gear items with a fixed quantity needed, and
per-family pledges that together may never exceed it.

Pledges are upserts keyed by (gear_item_id, family_id): a second pledge
from the same family replaces the first. The capacity check reads the sum of
the other families' pledges and then writes, so two concurrent pledges could
both pass against the same read. Every write that the check depends on
therefore claims the gear item's ``version`` with a compare-and-swap UPDATE
in the same transaction as the write. A writer that loses the swap rolls
back, re-reads the sum and tries again, up to ``MAX_ASSIGN_ATTEMPTS`` times.
"""
import os
from datetime import datetime
from typing import List, Optional

from sqlalchemy import func, update
from sqlalchemy.orm import Session

from models.GearAssignment import GearAssignment
from models.GearItem import GearItem
from models.TripAttendance import TripAttendance
from services import authorization as policy
from services.authorization import Caller
from services.errors import (
    CapacityError,
    NotFoundError,
    PreconditionError,
    ValidationError,
)
from services.trip_service import get_trip_or_404
from services.trip_timing import timing_for
from utils.logger import setup_api_logger

logger = setup_api_logger()

MAX_ASSIGN_ATTEMPTS = int(os.getenv("GEAR_ASSIGN_MAX_ATTEMPTS", "3"))

UNASSIGNED = "unassigned"
PARTIAL = "partial"
COMPLETE = "complete"


def gear_status(quantity_needed: int, total_assigned: int) -> str:
    if total_assigned <= 0:
        return UNASSIGNED
    if total_assigned < quantity_needed:
        return PARTIAL
    return COMPLETE


def _require_positive(value: int, field: str) -> None:
    if value is None or value <= 0:
        raise ValidationError(f"{field} must be greater than 0 (got {value})")


def _load_item(db: Session, gear_item_id: int) -> GearItem:
    # populate_existing: never trust a copy left in the identity map by an earlier attempt
    item = (
        db.query(GearItem)
        .populate_existing()
        .filter(GearItem.id == gear_item_id)
        .first()
    )
    if not item:
        raise NotFoundError(f"Gear item {gear_item_id} not found")
    return item


def _assigned_total(db: Session, gear_item_id: int, exclude_family_id: Optional[int] = None) -> int:
    q = db.query(func.coalesce(func.sum(GearAssignment.quantity_assigned), 0)).filter(
        GearAssignment.gear_item_id == gear_item_id
    )
    if exclude_family_id is not None:
        q = q.filter(GearAssignment.family_id != exclude_family_id)
    return int(q.scalar())


def _claim_version(db: Session, gear_item_id: int, seen_version: int) -> bool:
    """
    Bump the item's version only if nobody else has since ``seen_version`` was
    read. Holds the item's write lock until the transaction ends.
    """
    result = db.execute(
        update(GearItem)
        .where(GearItem.id == gear_item_id, GearItem.version == seen_version)
        .values(version=seen_version + 1)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def _check_pledge_window(item: GearItem, now: Optional[datetime]) -> None:
    trip = item.trip
    if timing_for(trip, now).has_started:
        raise PreconditionError(
            f"Cannot volunteer for gear item {item.id} after trip {trip.id} has started ({trip.start_date.isoformat()})"
        )
    if trip.draft:
        raise PreconditionError(f"Trip {trip.id} is a draft; gear pledges are frozen")


def create_gear_item(db: Session, trip_id: int, name: str, quantity_needed: int, caller: Caller) -> GearItem:
    """Admins may stage gear needs while the trip is still a draft."""
    _require_positive(quantity_needed, "Quantity needed")
    trip = get_trip_or_404(db, trip_id)
    policy.enforce(policy.can_manage_trip(caller, trip.admin_ids, "create gear items"))

    item = GearItem(trip_id=trip_id, name=name, quantity_needed=quantity_needed, version=0)
    db.add(item)
    db.commit()
    db.refresh(item)
    return item


def get_gear_item(db: Session, gear_item_id: int, caller: Caller) -> GearItem:
    item = _load_item(db, gear_item_id)
    policy.enforce(policy.can_view_trip(caller, item.trip.admin_ids, item.trip.draft))
    return item


def list_gear_items(db: Session, trip_id: int, caller: Caller) -> List[GearItem]:
    trip = get_trip_or_404(db, trip_id)
    policy.enforce(policy.can_view_trip(caller, trip.admin_ids, trip.draft))
    return db.query(GearItem).filter(GearItem.trip_id == trip_id).order_by(GearItem.name.asc()).all()


def update_gear_item(db: Session, gear_item_id: int, data: dict, caller: Caller) -> GearItem:
    """
    Metadata edits are allowed in any trip state. Capacity may not drop below
    what is already pledged; the check shares the pledge serialization.
    """
    changes = {k: v for k, v in data.items() if v is not None}
    if "quantity_needed" in changes:
        _require_positive(changes["quantity_needed"], "Quantity needed")

    item = _load_item(db, gear_item_id)
    policy.enforce(policy.can_manage_trip(caller, item.trip.admin_ids, "update gear items"))

    if "quantity_needed" not in changes:
        for k, v in changes.items():
            setattr(item, k, v)
        db.commit()
        db.refresh(item)
        return item

    for attempt in range(1, MAX_ASSIGN_ATTEMPTS + 1):
        if attempt > 1:
            item = _load_item(db, gear_item_id)

        total = _assigned_total(db, gear_item_id)
        if changes["quantity_needed"] < total:
            raise CapacityError(
                f"Cannot reduce quantity needed of gear item {gear_item_id} below total assigned; "
                f"minimum is {total}"
            )

        seen_version = item.version
        if not _claim_version(db, gear_item_id, seen_version):
            db.rollback()
            logger.info("Gear item %s changed during capacity update (attempt %s), retrying", gear_item_id, attempt)
            continue

        for k, v in changes.items():
            setattr(item, k, v)
        # the UPDATE above already moved the row on; keep the ORM's copy in step
        item.version = seen_version + 1
        db.commit()
        db.refresh(item)
        return item

    raise CapacityError(
        f"Could not update gear item {gear_item_id}: it kept changing concurrently "
        f"after {MAX_ASSIGN_ATTEMPTS} attempts"
    )


def delete_gear_item(db: Session, gear_item_id: int, caller: Caller) -> None:
    """Irreversible; every pledge on the item is deleted in the same transaction."""
    item = _load_item(db, gear_item_id)
    policy.enforce(policy.can_manage_trip(caller, item.trip.admin_ids, "delete gear items"))
    db.delete(item)
    db.commit()


def assign_gear(
    db: Session,
    gear_item_id: int,
    family_id: int,
    quantity_assigned: int,
    caller: Caller,
    now: Optional[datetime] = None,
) -> GearItem:
    """
    Pledge ``quantity_assigned`` units of a gear item for a family, replacing
    any earlier pledge of that family. Pledges from the other families plus
    this one may not exceed the quantity needed.
    """
    _require_positive(quantity_assigned, "Quantity assigned")

    for attempt in range(1, MAX_ASSIGN_ATTEMPTS + 1):
        item = _load_item(db, gear_item_id)
        trip = item.trip
        _check_pledge_window(item, now)
        policy.enforce(policy.can_pledge_for_family(caller, trip.admin_ids, family_id))

        attending = db.query(TripAttendance).filter_by(trip_id=trip.id, family_id=family_id).first()
        if attending is None:
            raise PreconditionError(
                f"Family {family_id} must be attending trip {trip.id} to volunteer for gear"
            )

        # Exclude this family's own row: the new quantity replaces it
        other_total = _assigned_total(db, gear_item_id, exclude_family_id=family_id)
        if other_total + quantity_assigned > item.quantity_needed:
            raise CapacityError(
                f"Cannot assign more than needed for gear item {gear_item_id}. "
                f"Available: {item.quantity_needed - other_total}, Requested: {quantity_assigned}"
            )

        if not _claim_version(db, gear_item_id, item.version):
            db.rollback()
            logger.info(
                "Gear item %s changed while family %s was pledging (attempt %s), retrying",
                gear_item_id, family_id, attempt,
            )
            continue

        assignment = (
            db.query(GearAssignment)
            .populate_existing()
            .filter_by(gear_item_id=gear_item_id, family_id=family_id)
            .first()
        )
        if assignment is None:
            db.add(GearAssignment(gear_item_id=gear_item_id, family_id=family_id, quantity_assigned=quantity_assigned))
        else:
            assignment.quantity_assigned = quantity_assigned
        db.commit()

        item = _load_item(db, gear_item_id)
        logger.info("Family %s pledged %s x gear item %s", family_id, quantity_assigned, gear_item_id)
        return item

    raise CapacityError(
        f"Could not assign gear item {gear_item_id}: capacity kept changing concurrently "
        f"after {MAX_ASSIGN_ATTEMPTS} attempts"
    )


def remove_gear_assignment(
    db: Session,
    gear_item_id: int,
    family_id: int,
    caller: Caller,
    now: Optional[datetime] = None,
) -> None:
    """Unlike attendance withdrawal, removing a pledge that does not exist is an error."""
    item = _load_item(db, gear_item_id)
    _check_pledge_window(item, now)
    policy.enforce(policy.can_pledge_for_family(caller, item.trip.admin_ids, family_id))

    assignment = db.query(GearAssignment).filter_by(gear_item_id=gear_item_id, family_id=family_id).first()
    if not assignment:
        raise NotFoundError(f"Family {family_id} has no assignment on gear item {gear_item_id}")

    db.delete(assignment)
    db.commit()


def get_gear_summary(db: Session, trip_id: int, caller: Caller) -> List[dict]:
    """Totals and status are derived from the assignment rows on every read."""
    items = list_gear_items(db, trip_id, caller)

    summary = []
    for item in items:
        total = sum(a.quantity_assigned for a in item.assignments)
        summary.append({
            "gear_item_id": item.id,
            "name": item.name,
            "quantity_needed": item.quantity_needed,
            "total_assigned": total,
            "status": gear_status(item.quantity_needed, total),
            "assignments": [
                {
                    "family_id": a.family_id,
                    "family_name": a.family.name,
                    "quantity_assigned": a.quantity_assigned,
                }
                for a in item.assignments
            ],
        })
    return summary


def get_family_gear_assignments(db: Session, trip_id: int, family_id: int, caller: Caller) -> List[GearAssignment]:
    trip = get_trip_or_404(db, trip_id)
    policy.enforce(policy.can_view_family_gear(caller, trip.admin_ids, family_id))
    return (
        db.query(GearAssignment)
        .join(GearItem, GearAssignment.gear_item_id == GearItem.id)
        .filter(GearItem.trip_id == trip_id, GearAssignment.family_id == family_id)
        .order_by(GearItem.name.asc())
        .all()
    )
