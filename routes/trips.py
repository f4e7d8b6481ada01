from typing import List, Optional
from datetime import datetime
from fastapi import APIRouter, BackgroundTasks, Depends, status, Query
from sqlalchemy.orm import Session

from schemas import TripWrite, TripUpdate, TripRead, AdminsWrite, AttendanceWrite, AttendeeRead
from database import get_db
from routes.deps import get_caller
from services import activity_log, attendance_service, trip_service
from services.authorization import Caller

router = APIRouter(prefix="/trips", tags=["Trips"])


@router.post("/", response_model=TripRead, status_code=status.HTTP_201_CREATED)
def create_trip(
    payload: TripWrite,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
):
    trip = trip_service.create_trip(db, payload.model_dump(), caller)
    background_tasks.add_task(
        activity_log.record_activity, db.get_bind(), caller.user_id, activity_log.CREATE, "Trip", trip.id,
        {"name": trip.name, "start_date": trip.start_date.isoformat()},
    )
    return trip


@router.get("/", response_model=List[TripRead])
def list_trips(
    draft: Optional[bool] = Query(None),
    start_date_from: Optional[datetime] = Query(None),
    start_date_to: Optional[datetime] = Query(None),
    include_past: bool = Query(False),
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
):
    return trip_service.list_trips(
        db, caller,
        draft=draft,
        start_date_from=start_date_from,
        start_date_to=start_date_to,
        include_past=include_past,
    )


@router.get("/{trip_id}", response_model=TripRead)
def get_trip(trip_id: int, db: Session = Depends(get_db), caller: Caller = Depends(get_caller)):
    return trip_service.get_trip(db, trip_id, caller)


@router.put("/{trip_id}", response_model=TripRead)
def update_trip(
    trip_id: int,
    payload: TripUpdate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
):
    changes = payload.model_dump(exclude_unset=True)
    trip = trip_service.update_trip(db, trip_id, changes, caller)
    background_tasks.add_task(
        activity_log.record_activity, db.get_bind(), caller.user_id, activity_log.UPDATE, "Trip", trip_id,
        {"fields": sorted(changes)},
    )
    return trip


@router.delete("/{trip_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_trip(
    trip_id: int,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
):
    trip_service.delete_trip(db, trip_id, caller)
    background_tasks.add_task(
        activity_log.record_activity, db.get_bind(), caller.user_id, activity_log.DELETE, "Trip", trip_id,
    )


@router.post("/{trip_id}/publish", response_model=TripRead)
def publish_trip(
    trip_id: int,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
):
    trip = trip_service.publish_trip(db, trip_id, caller)
    background_tasks.add_task(
        activity_log.record_activity, db.get_bind(), caller.user_id, activity_log.PUBLISH, "Trip", trip_id,
    )
    return trip


@router.post("/{trip_id}/unpublish", response_model=TripRead)
def unpublish_trip(
    trip_id: int,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
):
    trip = trip_service.unpublish_trip(db, trip_id, caller)
    background_tasks.add_task(
        activity_log.record_activity, db.get_bind(), caller.user_id, activity_log.UNPUBLISH, "Trip", trip_id,
    )
    return trip


@router.put("/{trip_id}/admins", response_model=TripRead)
def assign_admins(
    trip_id: int,
    payload: AdminsWrite,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
):
    trip = trip_service.assign_admins(db, trip_id, payload.admin_ids, caller)
    background_tasks.add_task(
        activity_log.record_activity, db.get_bind(), caller.user_id, activity_log.UPDATE, "Trip", trip_id,
        {"admin_ids": sorted(trip.admin_ids)},
    )
    return trip


@router.post("/{trip_id}/admins/{user_id}", response_model=TripRead)
def add_admin(
    trip_id: int,
    user_id: int,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
):
    trip = trip_service.add_admin(db, trip_id, user_id, caller)
    background_tasks.add_task(
        activity_log.record_activity, db.get_bind(), caller.user_id, activity_log.UPDATE, "Trip", trip_id,
        {"added_admin_id": user_id},
    )
    return trip


@router.delete("/{trip_id}/admins/{user_id}", response_model=TripRead)
def remove_admin(
    trip_id: int,
    user_id: int,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
):
    trip = trip_service.remove_admin(db, trip_id, user_id, caller)
    background_tasks.add_task(
        activity_log.record_activity, db.get_bind(), caller.user_id, activity_log.UPDATE, "Trip", trip_id,
        {"removed_admin_id": user_id},
    )
    return trip


@router.post("/{trip_id}/attendance", response_model=TripRead)
def mark_attendance(
    trip_id: int,
    payload: AttendanceWrite,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
):
    trip = attendance_service.mark_attendance(db, trip_id, payload.family_id, payload.attending, caller)
    action = activity_log.ATTEND if payload.attending else activity_log.UNATTEND
    background_tasks.add_task(
        activity_log.record_activity, db.get_bind(), caller.user_id, action, "Trip", trip_id,
        {"family_id": payload.family_id},
    )
    return trip


@router.get("/{trip_id}/attendees", response_model=List[AttendeeRead])
def list_attendees(trip_id: int, db: Session = Depends(get_db), caller: Caller = Depends(get_caller)):
    return attendance_service.get_trip_attendees(db, trip_id, caller)
