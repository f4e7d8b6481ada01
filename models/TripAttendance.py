from sqlalchemy import Column, Integer, DateTime, ForeignKey, func
from sqlalchemy.orm import relationship
from database import Base

class TripAttendance(Base):
    __tablename__ = "trip_attendance"

    # Presence of the row means the family is attending
    trip_id = Column(Integer, ForeignKey("trips.id", ondelete="CASCADE"), primary_key=True)
    family_id = Column(Integer, ForeignKey("families.id", ondelete="CASCADE"), primary_key=True, index=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)

    trip = relationship("Trip", back_populates="attendees")
    family = relationship("Family", back_populates="attendances")
