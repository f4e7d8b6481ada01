from typing import List, Optional
from fastapi import APIRouter, BackgroundTasks, Depends, status, Query
from sqlalchemy.orm import Session

from schemas import FamilyWrite, FamilyRead, MemberWrite, UserRead
from database import get_db
from routes.deps import get_caller
from services import activity_log, family_service
from services.authorization import Caller
from models.Family import FamilyStatus

router = APIRouter(prefix="/families", tags=["Families"])


@router.post("/", response_model=FamilyRead, status_code=status.HTTP_201_CREATED)
def register_family(payload: FamilyWrite, db: Session = Depends(get_db)):
    """Registration is open; the family waits in PENDING until a super-admin approves it"""
    data = payload.model_dump()
    return family_service.create_family(db, data["name"], data["adults"], data["children"])


@router.get("/", response_model=List[FamilyRead])
def list_families(
    family_status: Optional[FamilyStatus] = Query(None, alias="status"),
    is_active: Optional[bool] = Query(None),
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
):
    return family_service.list_families(db, caller, status=family_status, is_active=is_active)


@router.get("/{family_id}", response_model=FamilyRead)
def get_family(family_id: int, db: Session = Depends(get_db), caller: Caller = Depends(get_caller)):
    return family_service.get_family(db, family_id, caller)


@router.post("/{family_id}/approve", response_model=FamilyRead)
def approve_family(
    family_id: int,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
):
    family = family_service.approve_family(db, family_id, caller)
    background_tasks.add_task(
        activity_log.record_activity, db.get_bind(), caller.user_id, activity_log.APPROVE, "Family", family_id,
    )
    return family


@router.post("/{family_id}/deactivate", response_model=FamilyRead)
def deactivate_family(
    family_id: int,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
):
    family = family_service.deactivate_family(db, family_id, caller)
    background_tasks.add_task(
        activity_log.record_activity, db.get_bind(), caller.user_id, activity_log.DEACTIVATE, "Family", family_id,
    )
    return family


@router.post("/{family_id}/reactivate", response_model=FamilyRead)
def reactivate_family(
    family_id: int,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
):
    family = family_service.reactivate_family(db, family_id, caller)
    background_tasks.add_task(
        activity_log.record_activity, db.get_bind(), caller.user_id, activity_log.REACTIVATE, "Family", family_id,
    )
    return family


@router.delete("/{family_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_family(
    family_id: int,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
):
    family_service.delete_family(db, family_id, caller)
    background_tasks.add_task(
        activity_log.record_activity, db.get_bind(), caller.user_id, activity_log.DELETE, "Family", family_id,
    )


@router.post("/{family_id}/members", response_model=UserRead, status_code=status.HTTP_201_CREATED)
def add_member(
    family_id: int,
    payload: MemberWrite,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
):
    member = family_service.add_member(db, family_id, payload.model_dump(), caller)
    background_tasks.add_task(
        activity_log.record_activity, db.get_bind(), caller.user_id, activity_log.CREATE, "User", member.id,
        {"family_id": family_id, "type": member.type.value, "name": member.name},
    )
    return member


@router.delete("/{family_id}/members/{member_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_member(
    family_id: int,
    member_id: int,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
):
    family_service.remove_member(db, family_id, member_id, caller)
    background_tasks.add_task(
        activity_log.record_activity, db.get_bind(), caller.user_id, activity_log.DELETE, "User", member_id,
        {"family_id": family_id},
    )
