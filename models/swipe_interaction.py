# models/swipe_interaction.py
import enum

from sqlalchemy import (
    Column, Integer, DateTime, ForeignKey, Enum, UniqueConstraint, CheckConstraint, Index,
)
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from .base import Base


class SwipeAction(str, enum.Enum):
    LIKE = "LIKE"
    PASS = "PASS"


class SwipeInteraction(Base):
    """One pet's swipe on another. Never updated or deleted."""

    __tablename__ = "swipe_interactions"
    __table_args__ = (
        UniqueConstraint("actor_pet_id", "target_pet_id"),
        CheckConstraint("actor_pet_id <> target_pet_id", name="not_self"),
        Index("ix_swipe_interactions_actor_action", "actor_pet_id", "action"),
    )

    id = Column(Integer, primary_key=True, index=True)
    actor_pet_id = Column(Integer, ForeignKey("pets.id", ondelete="CASCADE"), nullable=False)
    target_pet_id = Column(Integer, ForeignKey("pets.id", ondelete="CASCADE"), nullable=False, index=True)
    action = Column(Enum(SwipeAction, name="swipe_action", native_enum=False), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    actor = relationship("Pet", foreign_keys=[actor_pet_id])
    target = relationship("Pet", foreign_keys=[target_pet_id])

    def __repr__(self):
        return f"<SwipeInteraction {self.actor_pet_id}→{self.target_pet_id} {self.action}>"
