import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET", "test-secret")

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import async_sessionmaker, AsyncSession  # noqa: E402

from core.database import build_engine, get_db  # noqa: E402
from core.security import create_access_token  # noqa: E402
from models.base import Base  # noqa: E402
from models import match, match_message, notification  # noqa: E402,F401
from models.pet import Pet, PetGender, PetSpecies  # noqa: E402
from models.user import Role, User  # noqa: E402
from services.notifications import get_notifier  # noqa: E402
from services.pawmatch import PawMatchService  # noqa: E402


class RecordingNotifier:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.matches = []
        self.likes = []

    async def on_match_created(self, match) -> None:
        if self.fail:
            raise RuntimeError("notification backend down")
        self.matches.append(match.id)

    async def on_like_received(self, actor_pet_id: int, target_pet_id: int) -> None:
        if self.fail:
            raise RuntimeError("notification backend down")
        self.likes.append((actor_pet_id, target_pet_id))


@pytest_asyncio.fixture
async def engine(tmp_path):
    # File database, so separate sessions really use separate connections
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'pawmatch.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def notifier_factory():
    return RecordingNotifier


@pytest.fixture
def notifier(notifier_factory):
    return notifier_factory()


@pytest.fixture
def service(db, notifier):
    return PawMatchService(db, notifier)


@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    async def _make_user(role: Role = Role.CUSTOMER, is_active: bool = True) -> User:
        counter["n"] += 1
        user = User(
            email=f"owner{counter['n']}@tailmates.test",
            full_name=f"Owner {counter['n']}",
            role=role,
            is_active=is_active,
        )
        db.add(user)
        await db.commit()
        await db.refresh(user)
        return user

    return _make_user


@pytest.fixture
def make_pet(db):
    async def _make_pet(
        owner: User,
        name: str = "Buddy",
        species: PetSpecies = PetSpecies.DOG,
        gender: PetGender = PetGender.MALE,
    ) -> Pet:
        pet = Pet(owner_id=owner.id, name=name, species=species, gender=gender, age_months=12)
        db.add(pet)
        await db.commit()
        await db.refresh(pet)
        return pet

    return _make_pet


@pytest.fixture
def auth_headers():
    def _auth_headers(user: User) -> dict:
        return {"Authorization": f"Bearer {create_access_token(user.id)}"}

    return _auth_headers


@pytest_asyncio.fixture
async def client(session_factory, notifier):
    from main import app

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notifier] = lambda: notifier
    try:
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            yield ac
    finally:
        app.dependency_overrides.clear()
