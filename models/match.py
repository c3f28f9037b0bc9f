# models/match.py
from sqlalchemy import Column, Integer, DateTime, ForeignKey, UniqueConstraint, CheckConstraint
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from .base import Base


class Match(Base):
    """Mutual LIKE between two pets, stored once per unordered pair (low id first)."""

    __tablename__ = "matches"
    __table_args__ = (
        UniqueConstraint("pet_low_id", "pet_high_id"),
        CheckConstraint("pet_low_id < pet_high_id", name="canonical_order"),
    )

    id = Column(Integer, primary_key=True, index=True)
    pet_low_id = Column(Integer, ForeignKey("pets.id", ondelete="CASCADE"), nullable=False)
    pet_high_id = Column(Integer, ForeignKey("pets.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    pet_low = relationship("Pet", foreign_keys=[pet_low_id])
    pet_high = relationship("Pet", foreign_keys=[pet_high_id])

    def other_pet_id(self, pet_id: int) -> int:
        return self.pet_high_id if self.pet_low_id == pet_id else self.pet_low_id

    def involves(self, pet_id: int) -> bool:
        return pet_id in (self.pet_low_id, self.pet_high_id)

    def __repr__(self):
        return f"<Match {self.pet_low_id}↔{self.pet_high_id}>"
