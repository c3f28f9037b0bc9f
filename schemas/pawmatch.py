# schemas/pawmatch.py
from typing import List, Optional
from datetime import datetime

from pydantic import BaseModel, Field

from schemas.pet import PetRead


class SwipeRequest(BaseModel):
    actor_pet_id: int = Field(..., description="Pet swiping, must belong to the caller")
    target_pet_id: int = Field(..., description="Pet being swiped on")
    # Checked by the service so an unknown value maps to INVALID_ACTION
    action: str = Field(..., description="LIKE or PASS")


class ReconcileRequest(BaseModel):
    actor_pet_id: int
    target_pet_id: int


class MatchRead(BaseModel):
    id: int
    pet_low_id: int
    pet_high_id: int
    created_at: datetime

    class Config:
        from_attributes = True


class SwipeResult(BaseModel):
    is_match: bool
    match: Optional[MatchRead] = None


class MatchWithPets(BaseModel):
    id: int
    pets: List[PetRead]
    created_at: datetime


class MessageCreate(BaseModel):
    match_id: int
    sender_pet_id: int
    content: str = Field(..., min_length=1, max_length=2000)


class MessageRead(BaseModel):
    id: int
    match_id: int
    sender_pet_id: int
    receiver_pet_id: int
    content: str
    created_at: datetime

    class Config:
        from_attributes = True
