from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, CheckConstraint, func
from sqlalchemy.orm import relationship
from database import Base

class GearItem(Base):
    __tablename__ = "gear_items"
    __table_args__ = (
        CheckConstraint("quantity_needed > 0", name="ck_gear_item_quantity_positive"),
    )

    id = Column(Integer, primary_key=True, index=True)
    trip_id = Column(Integer, ForeignKey("trips.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(150), nullable=False)
    quantity_needed = Column(Integer, nullable=False)
    # Bumped by every pledge write; see services.gear_service.assign_gear
    version = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    trip = relationship("Trip", back_populates="gear_items")
    assignments = relationship(
        "GearAssignment",
        back_populates="gear_item",
        cascade="all, delete",
        order_by="GearAssignment.family_id",
    )

    @property
    def total_assigned(self) -> int:
        return sum(a.quantity_assigned for a in self.assignments)
