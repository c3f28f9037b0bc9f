from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.database import get_db
from core.exceptions import NotFound
from core.permissions import Capability, require_capabilities
from models.pet import Pet
from models.user import User
from schemas.common import ApiResponse
from schemas.pet import PetCreate, PetRead

router = APIRouter(prefix="/pets", tags=["Pets"])

pet_owner = require_capabilities(Capability.MANAGE_OWN_PETS)


@router.post(
    "/",
    response_model=ApiResponse[PetRead],
    status_code=status.HTTP_201_CREATED,
    summary="Add a pet",
)
async def create_pet(
    payload: PetCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(pet_owner),
) -> ApiResponse[PetRead]:
    pet = Pet(owner_id=current_user.id, **payload.model_dump())
    db.add(pet)
    await db.commit()
    await db.refresh(pet)
    return ApiResponse[PetRead](message="Created successfully", data=PetRead.model_validate(pet))


@router.get(
    "/",
    response_model=ApiResponse[List[PetRead]],
    summary="My pets",
)
async def list_my_pets(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(pet_owner),
) -> ApiResponse[List[PetRead]]:
    res = await db.execute(
        select(Pet).where(Pet.owner_id == current_user.id).order_by(Pet.created_at.desc(), Pet.id.desc())
    )
    return ApiResponse[List[PetRead]](data=[PetRead.model_validate(p) for p in res.scalars().all()])


@router.get(
    "/{pet_id}",
    response_model=ApiResponse[PetRead],
    summary="Pet profile",
)
async def get_pet(
    pet_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(pet_owner),
) -> ApiResponse[PetRead]:
    pet = await db.get(Pet, pet_id)
    if not pet:
        raise NotFound("Pet not found")
    return ApiResponse[PetRead](data=PetRead.model_validate(pet))
