from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, ForeignKey, Table, func
from sqlalchemy.orm import relationship
from database import Base
from services.trip_timing import timing_for

trip_admins = Table(
    "trip_admins",
    Base.metadata,
    Column("trip_id", Integer, ForeignKey("trips.id", ondelete="CASCADE"), primary_key=True),
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
)

class Trip(Base):
    __tablename__ = "trips"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(150), nullable=False)
    location = Column(String(250), nullable=False)
    description = Column(Text)
    # Stored as naive UTC
    start_date = Column(DateTime, nullable=False, index=True)
    end_date = Column(DateTime, nullable=False)
    attendance_cutoff_date = Column(DateTime, nullable=True)
    photo_album_link = Column(String(500), nullable=True)
    draft = Column(Boolean, default=True, nullable=False, index=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    admins = relationship("User", secondary=trip_admins, lazy="selectin", back_populates="administered_trips")
    attendees = relationship("TripAttendance", back_populates="trip", cascade="all, delete")
    gear_items = relationship("GearItem", back_populates="trip", cascade="all, delete")

    @property
    def admin_ids(self) -> set:
        return {admin.id for admin in self.admins}

    @property
    def status(self) -> str:
        return timing_for(self).phase
