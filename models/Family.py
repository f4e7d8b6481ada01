from sqlalchemy import Column, Integer, String, Boolean, DateTime, Enum as SQLEnum, func
from sqlalchemy.orm import relationship
from database import Base
import enum

class FamilyStatus(enum.Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"

class Family(Base):
    __tablename__ = "families"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(150), nullable=True)
    status = Column(SQLEnum(FamilyStatus), default=FamilyStatus.PENDING, nullable=False, index=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    members = relationship("User", back_populates="family", cascade="all, delete-orphan")
    # Deleting a family drops its attendance and every pledge it made, on any trip
    attendances = relationship("TripAttendance", back_populates="family", cascade="all, delete")
    gear_assignments = relationship("GearAssignment", back_populates="family", cascade="all, delete")

    @property
    def is_eligible(self) -> bool:
        """Only approved, active families may attend trips."""
        return self.status == FamilyStatus.APPROVED and bool(self.is_active)
