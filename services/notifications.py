import logging
from typing import Dict, Iterable, Protocol

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from core.database import AsyncSessionLocal
from models.match import Match
from models.notification import Notification, NotificationType
from models.pet import Pet

logger = logging.getLogger(__name__)

MATCH_TITLE = "It's a Match! 🐾"
LIKE_TITLE = "Someone likes your pet ❤️"


class MatchNotifier(Protocol):
    """Receives PawMatch state transitions after they are committed.

    Implementations may fail; the caller logs the failure and carries on.
    """

    async def on_match_created(self, match: Match) -> None:
        ...

    async def on_like_received(self, actor_pet_id: int, target_pet_id: int) -> None:
        ...


class NotificationDispatcher:
    """Writes in-app notifications for the owners of the pets involved.

    Uses its own session, so nothing it does can touch the swipe transaction.
    """

    def __init__(self, session_factory: async_sessionmaker = AsyncSessionLocal):
        self._session_factory = session_factory

    async def on_match_created(self, match: Match) -> None:
        async with self._session_factory() as session:
            pets = await _load_pets(session, (match.pet_low_id, match.pet_high_id))
            low, high = pets.get(match.pet_low_id), pets.get(match.pet_high_id)
            if low is None or high is None:
                logger.warning("Match %s references a missing pet, skipping notification", match.id)
                return

            for pet, other in ((low, high), (high, low)):
                session.add(Notification(
                    user_id=pet.owner_id,
                    type=NotificationType.PAWMATCH_MATCH,
                    title=MATCH_TITLE,
                    message=f"{pet.name} and {other.name} liked each other. Say hello!",
                    reference_id=match.id,
                ))
            await session.commit()
        logger.info("Match notifications sent for match %s", match.id)

    async def on_like_received(self, actor_pet_id: int, target_pet_id: int) -> None:
        async with self._session_factory() as session:
            pets = await _load_pets(session, (actor_pet_id, target_pet_id))
            actor, target = pets.get(actor_pet_id), pets.get(target_pet_id)
            if actor is None or target is None:
                logger.warning("Like %s→%s references a missing pet, skipping notification",
                               actor_pet_id, target_pet_id)
                return

            session.add(Notification(
                user_id=target.owner_id,
                type=NotificationType.PAWMATCH_LIKE,
                title=LIKE_TITLE,
                message=f"{actor.name} liked {target.name}. Swipe back to match!",
                reference_id=actor.id,
            ))
            await session.commit()


async def _load_pets(session: AsyncSession, pet_ids: Iterable[int]) -> Dict[int, Pet]:
    res = await session.execute(select(Pet).where(Pet.id.in_(list(pet_ids))))
    return {pet.id: pet for pet in res.scalars().all()}


def get_notifier() -> MatchNotifier:
    return NotificationDispatcher()
