"""PawMatch engine: swipe recording, match reconciliation and discovery.

Two database constraints carry all the concurrency guarantees:

* ``swipe_interactions (actor_pet_id, target_pet_id)`` is unique, so of two
  identical concurrent swipes exactly one is stored;
* ``matches (pet_low_id, pet_high_id)`` is unique and always written through
  :func:`utils.pairs.canonical_pair`, so reciprocal likes that reconcile at
  the same time still produce a single match.
"""
import logging
from dataclasses import dataclass
from typing import AsyncIterator, List, Optional, Set, Union

from fastapi import Depends
from sqlalchemy import select, or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from core.config import settings
from core.database import get_db
from core.exceptions import (
    BadRequest, DuplicateInteraction, Forbidden, InvalidAction, NotFound, ServerError,
)
from models.match import Match
from models.match_message import MatchMessage
from models.pet import Pet, PetGender, PetSpecies
from models.swipe_interaction import SwipeAction, SwipeInteraction
from models.user import User
from services.notifications import MatchNotifier, get_notifier
from utils.pairs import canonical_pair

logger = logging.getLogger(__name__)

MESSAGE_HISTORY_LIMIT = 100


@dataclass
class ReconcileResult:
    is_match: bool
    match: Optional[Match] = None
    # True only for the call that inserted the match row
    created: bool = False


@dataclass
class DiscoveryFilters:
    species: Optional[PetSpecies] = None
    gender: Optional[PetGender] = None
    limit: int = 20
    offset: int = 0


class PawMatchService:

    def __init__(self, db: AsyncSession, notifier: MatchNotifier):
        self.db = db
        self.notifier = notifier

    # ------------------------------------------------------------------ #
    # Ownership
    # ------------------------------------------------------------------ #

    async def get_owned_pet(
        self, pet_id: int, owner: User, message: str = "Pet not found or does not belong to you"
    ) -> Pet:
        pet = await self.db.get(Pet, pet_id)
        if pet is None or pet.owner_id != owner.id:
            raise Forbidden(message)
        return pet

    # ------------------------------------------------------------------ #
    # Interaction store
    # ------------------------------------------------------------------ #

    async def record_interaction(
        self,
        actor_pet_id: int,
        target_pet_id: int,
        action: Union[str, SwipeAction],
        acting_user: User,
    ) -> SwipeInteraction:
        """Store one swipe. A second swipe on the same target is rejected."""
        try:
            swipe_action = SwipeAction(action)
        except ValueError:
            raise InvalidAction(f"Invalid action {action!r}, expected LIKE or PASS")

        if actor_pet_id == target_pet_id:
            raise BadRequest("A pet cannot swipe on itself")

        await self.get_owned_pet(actor_pet_id, acting_user, "Actor pet not found or does not belong to you")
        if await self.db.get(Pet, target_pet_id) is None:
            raise NotFound("Target pet not found")

        if await self._get_interaction(actor_pet_id, target_pet_id) is not None:
            raise DuplicateInteraction()

        interaction = SwipeInteraction(
            actor_pet_id=actor_pet_id,
            target_pet_id=target_pet_id,
            action=swipe_action,
        )
        self.db.add(interaction)
        try:
            await self.db.commit()
        except IntegrityError as exc:
            await self.db.rollback()
            if await self._get_interaction(actor_pet_id, target_pet_id) is None:
                # Not the pair constraint, e.g. a pet deleted meanwhile
                logger.exception("Swipe %s→%s rejected by the store", actor_pet_id, target_pet_id)
                raise ServerError("Failed to record swipe") from exc
            # Lost the race against an identical concurrent swipe
            logger.info("Concurrent duplicate swipe %s→%s rejected", actor_pet_id, target_pet_id)
            raise DuplicateInteraction()
        await self.db.refresh(interaction)

        logger.info("Swipe recorded: %s %s→%s", swipe_action.value, actor_pet_id, target_pet_id)
        return interaction

    async def _get_interaction(self, actor_pet_id: int, target_pet_id: int) -> Optional[SwipeInteraction]:
        res = await self.db.execute(
            select(SwipeInteraction).where(
                SwipeInteraction.actor_pet_id == actor_pet_id,
                SwipeInteraction.target_pet_id == target_pet_id,
            )
        )
        return res.scalar_one_or_none()

    # ------------------------------------------------------------------ #
    # Match reconciler
    # ------------------------------------------------------------------ #

    async def reconcile_match(self, actor_pet_id: int, target_pet_id: int) -> ReconcileResult:
        """Materialize the match for a pair of mutual LIKEs, if there is one.

        Depends only on the stored interactions, so it is safe to run again
        for the same pair: an existing match is returned as is.
        """
        try:
            forward = await self._get_interaction(actor_pet_id, target_pet_id)
            reverse = await self._get_interaction(target_pet_id, actor_pet_id)
            if not (_is_like(forward) and _is_like(reverse)):
                return ReconcileResult(is_match=False)

            low, high = canonical_pair(actor_pet_id, target_pet_id)
            return await self.create_match_if_absent(low, high)
        except SQLAlchemyError as exc:
            logger.exception("Match reconciliation failed for %s↔%s", actor_pet_id, target_pet_id)
            raise ServerError("Failed to reconcile match") from exc

    async def create_match_if_absent(self, pet_low_id: int, pet_high_id: int) -> ReconcileResult:
        """Insert the match keyed on the canonical pair, or return the stored one."""
        existing = await self._get_match(pet_low_id, pet_high_id)
        if existing is not None:
            return ReconcileResult(is_match=True, match=existing, created=False)

        match = Match(pet_low_id=pet_low_id, pet_high_id=pet_high_id)
        self.db.add(match)
        try:
            await self.db.commit()
        except IntegrityError:
            # The reciprocal swipe inserted the same pair first
            await self.db.rollback()
            existing = await self._get_match(pet_low_id, pet_high_id)
            if existing is None:
                raise
            logger.info("Match %s↔%s already created concurrently", pet_low_id, pet_high_id)
            return ReconcileResult(is_match=True, match=existing, created=False)
        await self.db.refresh(match)

        logger.info("Match created: %s↔%s (id=%s)", pet_low_id, pet_high_id, match.id)
        return ReconcileResult(is_match=True, match=match, created=True)

    async def _get_match(self, pet_low_id: int, pet_high_id: int) -> Optional[Match]:
        res = await self.db.execute(
            select(Match).where(Match.pet_low_id == pet_low_id, Match.pet_high_id == pet_high_id)
        )
        return res.scalar_one_or_none()

    # ------------------------------------------------------------------ #
    # Swipe flow
    # ------------------------------------------------------------------ #

    async def swipe(
        self,
        actor_pet_id: int,
        target_pet_id: int,
        action: Union[str, SwipeAction],
        acting_user: User,
    ) -> ReconcileResult:
        interaction = await self.record_interaction(actor_pet_id, target_pet_id, action, acting_user)
        if interaction.action != SwipeAction.LIKE:
            return ReconcileResult(is_match=False)

        result = await self.reconcile_match(actor_pet_id, target_pet_id)
        if result.created:
            await self._notify_match(result.match)
        elif not result.is_match:
            await self._notify_like(actor_pet_id, target_pet_id)
        return result

    async def retry_reconciliation(
        self, actor_pet_id: int, target_pet_id: int, acting_user: User
    ) -> ReconcileResult:
        await self.get_owned_pet(actor_pet_id, acting_user, "Actor pet not found or does not belong to you")
        if actor_pet_id == target_pet_id:
            raise BadRequest("A pet cannot match with itself")

        result = await self.reconcile_match(actor_pet_id, target_pet_id)
        if result.created:
            await self._notify_match(result.match)
        return result

    async def _notify_match(self, match: Match) -> None:
        try:
            await self.notifier.on_match_created(match)
        except Exception:
            logger.exception("Match notification failed for match %s", match.id)

    async def _notify_like(self, actor_pet_id: int, target_pet_id: int) -> None:
        try:
            await self.notifier.on_like_received(actor_pet_id, target_pet_id)
        except Exception:
            logger.exception("Like notification failed for %s→%s", actor_pet_id, target_pet_id)

    # ------------------------------------------------------------------ #
    # Discovery
    # ------------------------------------------------------------------ #

    async def find_candidates(
        self, querying_pet_id: int, owner: User, filters: Optional[DiscoveryFilters] = None
    ) -> AsyncIterator[Pet]:
        """Validate ownership and return a single-pass iterator over one page of candidates.

        Excluded: the querying pet, every pet of its owner, and every pet it
        has already swiped on. Species defaults to the querying pet's own.
        """
        filters = filters or DiscoveryFilters()
        pet = await self.get_owned_pet(querying_pet_id, owner)

        swiped = select(SwipeInteraction.target_pet_id).where(SwipeInteraction.actor_pet_id == pet.id)
        stmt = select(Pet).where(
            Pet.id != pet.id,
            Pet.owner_id != owner.id,
            Pet.id.not_in(swiped),
            Pet.species == (filters.species or pet.species),
        )
        if filters.gender is not None:
            stmt = stmt.where(Pet.gender == filters.gender)

        limit = max(1, min(filters.limit, settings.DISCOVERY_PAGE_SIZE))
        stmt = (
            stmt.order_by(Pet.created_at.desc(), Pet.id.desc())
            .offset(max(filters.offset, 0))
            .limit(limit)
        )
        return self._iterate(stmt)

    async def _iterate(self, stmt) -> AsyncIterator[Pet]:
        res = await self.db.execute(stmt)
        for pet in res.scalars():
            yield pet

    # ------------------------------------------------------------------ #
    # Read models
    # ------------------------------------------------------------------ #

    async def list_matches(self, pet_id: int, owner: User) -> List[Match]:
        pet = await self.get_owned_pet(pet_id, owner, "You don't own this pet")
        res = await self.db.execute(
            select(Match)
            .where(or_(Match.pet_low_id == pet.id, Match.pet_high_id == pet.id))
            .options(selectinload(Match.pet_low), selectinload(Match.pet_high))
            .order_by(Match.created_at.desc(), Match.id.desc())
        )
        return list(res.scalars().all())

    async def list_likes_received(self, pet_id: int, owner: User) -> List[Pet]:
        """Pets that LIKEd ``pet_id`` and are not matched with it yet."""
        pet = await self.get_owned_pet(pet_id, owner, "Unauthorized access to this pet")
        res = await self.db.execute(
            select(Pet)
            .join(SwipeInteraction, SwipeInteraction.actor_pet_id == Pet.id)
            .where(
                SwipeInteraction.target_pet_id == pet.id,
                SwipeInteraction.action == SwipeAction.LIKE,
            )
            .order_by(SwipeInteraction.created_at.desc(), SwipeInteraction.id.desc())
        )
        matched = await self._matched_pet_ids(pet.id)
        return [p for p in res.scalars().all() if p.id not in matched]

    async def list_likes_sent(self, pet_id: int, owner: User) -> List[Pet]:
        """Pets that ``pet_id`` LIKEd and that are not matched with it yet."""
        pet = await self.get_owned_pet(pet_id, owner, "Unauthorized access to this pet")
        res = await self.db.execute(
            select(Pet)
            .join(SwipeInteraction, SwipeInteraction.target_pet_id == Pet.id)
            .where(
                SwipeInteraction.actor_pet_id == pet.id,
                SwipeInteraction.action == SwipeAction.LIKE,
            )
            .order_by(SwipeInteraction.created_at.desc(), SwipeInteraction.id.desc())
        )
        matched = await self._matched_pet_ids(pet.id)
        return [p for p in res.scalars().all() if p.id not in matched]

    async def _matched_pet_ids(self, pet_id: int) -> Set[int]:
        res = await self.db.execute(
            select(Match).where(or_(Match.pet_low_id == pet_id, Match.pet_high_id == pet_id))
        )
        return {m.other_pet_id(pet_id) for m in res.scalars().all()}

    # ------------------------------------------------------------------ #
    # Match chat
    # ------------------------------------------------------------------ #

    async def _get_match_or_404(self, match_id: int) -> Match:
        match = await self.db.get(Match, match_id)
        if match is None:
            raise NotFound("Match not found")
        return match

    async def list_messages(self, match_id: int, user: User) -> List[MatchMessage]:
        match = await self._get_match_or_404(match_id)

        res = await self.db.execute(select(Pet.id).where(Pet.owner_id == user.id))
        own_pet_ids = {row[0] for row in res.all()}
        if not (own_pet_ids & {match.pet_low_id, match.pet_high_id}):
            raise Forbidden("You don't have access to this chat")

        res = await self.db.execute(
            select(MatchMessage)
            .where(MatchMessage.match_id == match.id)
            .order_by(MatchMessage.created_at.asc(), MatchMessage.id.asc())
            .limit(MESSAGE_HISTORY_LIMIT)
        )
        return list(res.scalars().all())

    async def send_message(self, match_id: int, sender_pet_id: int, content: str, user: User) -> MatchMessage:
        await self.get_owned_pet(sender_pet_id, user, "You don't own this pet")
        match = await self._get_match_or_404(match_id)
        if not match.involves(sender_pet_id):
            raise Forbidden("Pet is not part of this match")

        message = MatchMessage(
            match_id=match.id,
            sender_pet_id=sender_pet_id,
            receiver_pet_id=match.other_pet_id(sender_pet_id),
            content=content,
        )
        self.db.add(message)
        await self.db.commit()
        await self.db.refresh(message)
        return message


def _is_like(interaction: Optional[SwipeInteraction]) -> bool:
    return interaction is not None and interaction.action == SwipeAction.LIKE


def get_pawmatch_service(
    db: AsyncSession = Depends(get_db),
    notifier: MatchNotifier = Depends(get_notifier),
) -> PawMatchService:
    return PawMatchService(db, notifier)
