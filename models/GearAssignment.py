from sqlalchemy import Column, Integer, DateTime, ForeignKey, CheckConstraint, func
from sqlalchemy.orm import relationship
from database import Base

class GearAssignment(Base):
    __tablename__ = "gear_assignments"
    __table_args__ = (
        CheckConstraint("quantity_assigned > 0", name="ck_gear_assignment_quantity_positive"),
    )

    gear_item_id = Column(Integer, ForeignKey("gear_items.id", ondelete="CASCADE"), primary_key=True)
    family_id = Column(Integer, ForeignKey("families.id", ondelete="CASCADE"), primary_key=True, index=True)
    quantity_assigned = Column(Integer, nullable=False)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    gear_item = relationship("GearItem", back_populates="assignments")
    family = relationship("Family", back_populates="gear_assignments")
