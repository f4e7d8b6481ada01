# schemas.py (Pydantic v2)
from pydantic import BaseModel, EmailStr, Field
from typing import Optional, List
from datetime import datetime

from models.User import UserType
from models.Family import FamilyStatus


# ---------- Users / Families ----------
class UserRead(BaseModel):
    id: int
    name: str
    email: Optional[str] = None
    type: UserType
    age: Optional[int] = None

    class Config:
        from_attributes = True

class AdultWrite(BaseModel):
    name: str = Field(min_length=1)
    email: EmailStr

class ChildWrite(BaseModel):
    name: str = Field(min_length=1)
    age: int = Field(ge=0)

class FamilyWrite(BaseModel):
    name: Optional[str] = None
    adults: List[AdultWrite]
    children: List[ChildWrite] = []

class MemberWrite(BaseModel):
    """A member added to an existing family; adults need an email, children an age"""
    type: UserType
    name: str = Field(min_length=1)
    email: Optional[EmailStr] = None
    age: Optional[int] = Field(default=None, ge=0)

class FamilyRead(BaseModel):
    id: int
    name: Optional[str] = None
    status: FamilyStatus
    is_active: bool
    members: List[UserRead] = []

    class Config:
        from_attributes = True


# ---------- Trips ----------
class TripBase(BaseModel):
    name: str = Field(min_length=1)
    location: str = Field(min_length=1)
    description: Optional[str] = None
    start_date: datetime
    end_date: datetime
    attendance_cutoff_date: Optional[datetime] = None
    photo_album_link: Optional[str] = None

class TripWrite(TripBase):
    pass

class TripUpdate(BaseModel):
    """Partial update for trips; dates are re-validated against the stored values"""
    name: Optional[str] = Field(default=None, min_length=1)
    location: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    attendance_cutoff_date: Optional[datetime] = None
    photo_album_link: Optional[str] = None

class AttendeeRead(BaseModel):
    family_id: int
    created_at: datetime
    family: FamilyRead

    class Config:
        from_attributes = True

class TripRead(TripBase):
    id: int
    draft: bool
    status: str  # draft, upcoming, active or past
    admins: List[UserRead] = []
    attendees: List[AttendeeRead] = []
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True

class AdminsWrite(BaseModel):
    admin_ids: List[int]

class AttendanceWrite(BaseModel):
    family_id: int
    attending: bool


# ---------- Gear ----------
class GearItemWrite(BaseModel):
    trip_id: int
    name: str = Field(min_length=1)
    quantity_needed: int

class GearItemUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    quantity_needed: Optional[int] = None

class GearAssignmentWrite(BaseModel):
    family_id: int
    quantity_assigned: int

class GearAssignmentRead(BaseModel):
    gear_item_id: int
    family_id: int
    quantity_assigned: int

    class Config:
        from_attributes = True

class GearItemRead(BaseModel):
    id: int
    trip_id: int
    name: str
    quantity_needed: int
    total_assigned: int
    assignments: List[GearAssignmentRead] = []

    class Config:
        from_attributes = True

class GearSummaryAssignment(BaseModel):
    family_id: int
    family_name: Optional[str] = None
    quantity_assigned: int

class GearSummaryItem(BaseModel):
    gear_item_id: int
    name: str
    quantity_needed: int
    total_assigned: int
    status: str  # unassigned, partial or complete
    assignments: List[GearSummaryAssignment] = []
