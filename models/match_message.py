# models/match_message.py
from sqlalchemy import Column, Integer, Text, DateTime, ForeignKey
from sqlalchemy.sql import func

from .base import Base


class MatchMessage(Base):
    __tablename__ = "match_messages"

    id = Column(Integer, primary_key=True, index=True)
    match_id = Column(Integer, ForeignKey("matches.id", ondelete="CASCADE"), nullable=False, index=True)
    sender_pet_id = Column(Integer, ForeignKey("pets.id", ondelete="CASCADE"), nullable=False)
    receiver_pet_id = Column(Integer, ForeignKey("pets.id", ondelete="CASCADE"), nullable=False)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<MatchMessage match={self.match_id} {self.sender_pet_id}→{self.receiver_pet_id}>"
