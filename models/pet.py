# models/pet.py
import enum

from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Enum
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from .base import Base


class PetSpecies(str, enum.Enum):
    DOG = "Dog"
    CAT = "Cat"
    RABBIT = "Rabbit"
    HAMSTER = "Hamster"
    BIRD = "Bird"
    FISH = "Fish"
    OTHER = "Other"


class PetGender(str, enum.Enum):
    MALE = "MALE"
    FEMALE = "FEMALE"


class Pet(Base):
    __tablename__ = "pets"

    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    species = Column(Enum(PetSpecies, name="pet_species", native_enum=False), nullable=False, index=True)
    breed = Column(String(100), nullable=True)
    gender = Column(Enum(PetGender, name="pet_gender", native_enum=False), nullable=True)
    age_months = Column(Integer, nullable=True)
    bio = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    owner = relationship("User", backref="pets")

    def __repr__(self):
        return f"<Pet id={self.id} owner={self.owner_id} species={self.species}>"
