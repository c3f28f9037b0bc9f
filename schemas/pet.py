# schemas/pet.py
from typing import Optional
from datetime import datetime

from pydantic import BaseModel, Field

from models.pet import PetGender, PetSpecies


class PetBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=100, description="Pet name")
    species: PetSpecies = Field(..., description="Species")
    breed: Optional[str] = Field(None, max_length=100, description="Breed")
    gender: Optional[PetGender] = Field(None, description="MALE or FEMALE")
    age_months: Optional[int] = Field(None, ge=0, description="Age in months")
    bio: Optional[str] = Field(None, description="Dating profile text")


class PetCreate(PetBase):
    pass


class PetRead(PetBase):
    id: int
    owner_id: int
    created_at: datetime

    class Config:
        from_attributes = True
