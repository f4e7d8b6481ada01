from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Enum as SQLEnum, func
from sqlalchemy.orm import relationship
from database import Base
import enum

class UserType(enum.Enum):
    ADULT = "ADULT"
    CHILD = "CHILD"

class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    family_id = Column(Integer, ForeignKey("families.id", ondelete="CASCADE"), nullable=True, index=True)
    type = Column(SQLEnum(UserType), default=UserType.ADULT, nullable=False)
    name = Column(String(150), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=True)  # Children have no login email
    age = Column(Integer, nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    family = relationship("Family", back_populates="members")
    administered_trips = relationship("Trip", secondary="trip_admins", back_populates="admins")

    @property
    def is_adult(self) -> bool:
        return self.type == UserType.ADULT
