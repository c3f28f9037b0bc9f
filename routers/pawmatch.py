from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from core.permissions import Capability, require_capabilities
from models.pet import PetGender, PetSpecies
from models.user import User
from schemas.common import ApiResponse
from schemas.pawmatch import (
    MatchRead,
    MatchWithPets,
    MessageCreate,
    MessageRead,
    ReconcileRequest,
    SwipeRequest,
    SwipeResult,
)
from schemas.pet import PetRead
from services.pawmatch import DiscoveryFilters, PawMatchService, ReconcileResult, get_pawmatch_service

router = APIRouter(prefix="/pawmatch", tags=["PawMatch"])

pawmatch_user = require_capabilities(Capability.PAWMATCH)


def _swipe_response(result: ReconcileResult, message: str) -> ApiResponse[SwipeResult]:
    match = MatchRead.model_validate(result.match) if result.match is not None else None
    return ApiResponse[SwipeResult](
        message=message,
        data=SwipeResult(is_match=result.is_match, match=match),
    )


@router.post(
    "/swipe",
    response_model=ApiResponse[SwipeResult],
    summary="Like or pass on a pet and find out whether it is a match",
)
async def swipe(
    payload: SwipeRequest,
    current_user: User = Depends(pawmatch_user),
    service: PawMatchService = Depends(get_pawmatch_service),
) -> ApiResponse[SwipeResult]:
    result = await service.swipe(payload.actor_pet_id, payload.target_pet_id, payload.action, current_user)
    return _swipe_response(result, "It's a Match!" if result.is_match else "Swipe recorded")


@router.get(
    "/discovery",
    response_model=ApiResponse[List[PetRead]],
    summary="Candidate pets that the given pet has not swiped on yet",
)
async def discovery(
    pet_id: int = Query(..., description="Pet doing the swiping"),
    species: Optional[PetSpecies] = Query(None, description="Defaults to the pet's own species"),
    gender: Optional[PetGender] = Query(None),
    limit: int = Query(20, ge=1, le=20),
    offset: int = Query(0, ge=0),
    current_user: User = Depends(pawmatch_user),
    service: PawMatchService = Depends(get_pawmatch_service),
) -> ApiResponse[List[PetRead]]:
    filters = DiscoveryFilters(species=species, gender=gender, limit=limit, offset=offset)
    candidates = await service.find_candidates(pet_id, current_user, filters)
    pets = [PetRead.model_validate(pet) async for pet in candidates]
    return ApiResponse[List[PetRead]](data=pets)


@router.get(
    "/matches",
    response_model=ApiResponse[List[MatchWithPets]],
    summary="All matches of a pet",
)
async def matches(
    pet_id: int = Query(...),
    current_user: User = Depends(pawmatch_user),
    service: PawMatchService = Depends(get_pawmatch_service),
) -> ApiResponse[List[MatchWithPets]]:
    found = await service.list_matches(pet_id, current_user)
    out = [
        MatchWithPets(
            id=m.id,
            pets=[PetRead.model_validate(m.pet_low), PetRead.model_validate(m.pet_high)],
            created_at=m.created_at,
        )
        for m in found
    ]
    return ApiResponse[List[MatchWithPets]](data=out)


@router.post(
    "/matches/reconcile",
    response_model=ApiResponse[SwipeResult],
    summary="Re-run match detection for a pair from the stored swipes",
)
async def reconcile(
    payload: ReconcileRequest,
    current_user: User = Depends(pawmatch_user),
    service: PawMatchService = Depends(get_pawmatch_service),
) -> ApiResponse[SwipeResult]:
    result = await service.retry_reconciliation(payload.actor_pet_id, payload.target_pet_id, current_user)
    return _swipe_response(result, "It's a Match!" if result.is_match else "No mutual like")


@router.get(
    "/liked-me",
    response_model=ApiResponse[List[PetRead]],
    summary="Pets that liked this pet, without the ones already matched",
)
async def liked_me(
    pet_id: int = Query(...),
    current_user: User = Depends(pawmatch_user),
    service: PawMatchService = Depends(get_pawmatch_service),
) -> ApiResponse[List[PetRead]]:
    pets = await service.list_likes_received(pet_id, current_user)
    return ApiResponse[List[PetRead]](data=[PetRead.model_validate(p) for p in pets])


@router.get(
    "/liked",
    response_model=ApiResponse[List[PetRead]],
    summary="Pets this pet liked, without the ones already matched",
)
async def liked(
    pet_id: int = Query(...),
    current_user: User = Depends(pawmatch_user),
    service: PawMatchService = Depends(get_pawmatch_service),
) -> ApiResponse[List[PetRead]]:
    pets = await service.list_likes_sent(pet_id, current_user)
    return ApiResponse[List[PetRead]](data=[PetRead.model_validate(p) for p in pets])


@router.get(
    "/messages",
    response_model=ApiResponse[List[MessageRead]],
    summary="Chat history of a match",
)
async def list_messages(
    match_id: int = Query(...),
    current_user: User = Depends(pawmatch_user),
    service: PawMatchService = Depends(get_pawmatch_service),
) -> ApiResponse[List[MessageRead]]:
    messages = await service.list_messages(match_id, current_user)
    return ApiResponse[List[MessageRead]](data=[MessageRead.model_validate(m) for m in messages])


@router.post(
    "/messages",
    response_model=ApiResponse[MessageRead],
    status_code=status.HTTP_201_CREATED,
    summary="Send a message to a matched pet",
)
async def send_message(
    payload: MessageCreate,
    current_user: User = Depends(pawmatch_user),
    service: PawMatchService = Depends(get_pawmatch_service),
) -> ApiResponse[MessageRead]:
    message = await service.send_message(payload.match_id, payload.sender_pet_id, payload.content, current_user)
    return ApiResponse[MessageRead](
        message="Message sent successfully",
        data=MessageRead.model_validate(message),
    )
