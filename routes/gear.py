from typing import List
from fastapi import APIRouter, BackgroundTasks, Depends, status
from sqlalchemy.orm import Session

from schemas import GearItemWrite, GearItemUpdate, GearItemRead, GearAssignmentWrite, GearAssignmentRead, GearSummaryItem
from database import get_db
from routes.deps import get_caller
from services import activity_log, gear_service
from services.authorization import Caller

router = APIRouter(prefix="/gear", tags=["Gear"])


@router.post("/", response_model=GearItemRead, status_code=status.HTTP_201_CREATED)
def create_gear_item(
    payload: GearItemWrite,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
):
    item = gear_service.create_gear_item(db, payload.trip_id, payload.name, payload.quantity_needed, caller)
    background_tasks.add_task(
        activity_log.record_activity, db.get_bind(), caller.user_id, activity_log.CREATE, "GearItem", item.id,
        {"trip_id": payload.trip_id, "name": payload.name, "quantity_needed": payload.quantity_needed},
    )
    return item


@router.get("/trip/{trip_id}", response_model=List[GearItemRead])
def list_gear_items(trip_id: int, db: Session = Depends(get_db), caller: Caller = Depends(get_caller)):
    return gear_service.list_gear_items(db, trip_id, caller)


@router.get("/trip/{trip_id}/summary", response_model=List[GearSummaryItem])
def gear_summary(trip_id: int, db: Session = Depends(get_db), caller: Caller = Depends(get_caller)):
    return gear_service.get_gear_summary(db, trip_id, caller)


@router.get("/trip/{trip_id}/family/{family_id}", response_model=List[GearAssignmentRead])
def family_gear_assignments(
    trip_id: int,
    family_id: int,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
):
    return gear_service.get_family_gear_assignments(db, trip_id, family_id, caller)


@router.get("/{gear_item_id}", response_model=GearItemRead)
def get_gear_item(gear_item_id: int, db: Session = Depends(get_db), caller: Caller = Depends(get_caller)):
    return gear_service.get_gear_item(db, gear_item_id, caller)


@router.put("/{gear_item_id}", response_model=GearItemRead)
def update_gear_item(
    gear_item_id: int,
    payload: GearItemUpdate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
):
    changes = payload.model_dump(exclude_unset=True)
    item = gear_service.update_gear_item(db, gear_item_id, changes, caller)
    background_tasks.add_task(
        activity_log.record_activity, db.get_bind(), caller.user_id, activity_log.UPDATE, "GearItem", gear_item_id,
        changes,
    )
    return item


@router.delete("/{gear_item_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_gear_item(
    gear_item_id: int,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
):
    gear_service.delete_gear_item(db, gear_item_id, caller)
    background_tasks.add_task(
        activity_log.record_activity, db.get_bind(), caller.user_id, activity_log.DELETE, "GearItem", gear_item_id,
    )


@router.post("/{gear_item_id}/assign", response_model=GearItemRead)
def assign_gear(
    gear_item_id: int,
    payload: GearAssignmentWrite,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
):
    item = gear_service.assign_gear(db, gear_item_id, payload.family_id, payload.quantity_assigned, caller)
    background_tasks.add_task(
        activity_log.record_activity, db.get_bind(), caller.user_id, activity_log.ASSIGN, "GearItem", gear_item_id,
        {"family_id": payload.family_id, "quantity_assigned": payload.quantity_assigned},
    )
    return item


@router.delete("/{gear_item_id}/assign/{family_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_gear_assignment(
    gear_item_id: int,
    family_id: int,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
):
    gear_service.remove_gear_assignment(db, gear_item_id, family_id, caller)
    background_tasks.add_task(
        activity_log.record_activity, db.get_bind(), caller.user_id, activity_log.UNASSIGN, "GearItem", gear_item_id,
        {"family_id": family_id},
    )
