import asyncio

import pytest
import pytest_asyncio
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from core.security import create_access_token
from models.match import Match
from models.pet import PetGender
from models.user import Role
from services.pawmatch import PawMatchService

pytestmark = pytest.mark.asyncio


@pytest_asyncio.fixture
async def owners(make_user, make_pet):
    alice, bob = await make_user(), await make_user()
    rex = await make_pet(alice, name="Rex")
    luna = await make_pet(bob, name="Luna", gender=PetGender.FEMALE)
    return alice, bob, rex, luna


async def _swipe(client, headers, actor, target, action):
    return await client.post(
        "/pawmatch/swipe",
        json={"actor_pet_id": actor.id, "target_pet_id": target.id, "action": action},
        headers=headers,
    )


async def test_swipe_requires_token(client, owners):
    _, _, rex, luna = owners

    resp = await _swipe(client, {}, rex, luna, "LIKE")

    assert resp.status_code == 401
    body = resp.json()
    assert body["success"] is False
    assert body["code"] == "NO_TOKEN"
    assert "data" not in body


async def test_swipe_with_expired_token(client, owners):
    alice, _, rex, luna = owners
    headers = {"Authorization": f"Bearer {create_access_token(alice.id, expires_minutes=-1)}"}

    resp = await _swipe(client, headers, rex, luna, "LIKE")

    assert resp.status_code == 401
    assert resp.json()["code"] == "TOKEN_EXPIRED"


async def test_deactivated_account_is_forbidden(client, auth_headers, make_user, make_pet, owners):
    _, _, _, luna = owners
    ghost = await make_user(is_active=False)
    pet = await make_pet(ghost)

    resp = await _swipe(client, auth_headers(ghost), pet, luna, "LIKE")

    assert resp.status_code == 403


async def test_merchant_cannot_swipe(client, auth_headers, make_user, owners):
    _, _, rex, luna = owners
    merchant = await make_user(role=Role.MERCHANT)

    resp = await _swipe(client, auth_headers(merchant), rex, luna, "LIKE")

    assert resp.status_code == 403
    assert "pawmatch" in resp.json()["message"]


async def test_like_without_reciprocal(client, auth_headers, owners):
    alice, _, rex, luna = owners

    resp = await _swipe(client, auth_headers(alice), rex, luna, "LIKE")

    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["message"] == "Swipe recorded"
    assert body["data"] == {"is_match": False, "match": None}


async def test_reciprocal_like_is_a_match(client, auth_headers, notifier, owners):
    alice, bob, rex, luna = owners
    await _swipe(client, auth_headers(alice), rex, luna, "LIKE")

    resp = await _swipe(client, auth_headers(bob), luna, rex, "LIKE")

    body = resp.json()
    assert resp.status_code == 200
    assert body["message"] == "It's a Match!"
    assert body["data"]["is_match"] is True
    match = body["data"]["match"]
    assert (match["pet_low_id"], match["pet_high_id"]) == tuple(sorted([rex.id, luna.id]))
    assert notifier.matches == [match["id"]]

    resp = await client.get("/pawmatch/matches", params={"pet_id": rex.id}, headers=auth_headers(alice))
    [listed] = resp.json()["data"]
    assert listed["id"] == match["id"]
    assert {p["name"] for p in listed["pets"]} == {"Rex", "Luna"}


async def test_duplicate_swipe_is_conflict(client, auth_headers, owners):
    alice, _, rex, luna = owners
    await _swipe(client, auth_headers(alice), rex, luna, "PASS")

    resp = await _swipe(client, auth_headers(alice), rex, luna, "LIKE")

    assert resp.status_code == 409
    assert resp.json()["code"] == "DUPLICATE_INTERACTION"


async def test_invalid_action(client, auth_headers, owners):
    alice, _, rex, luna = owners

    resp = await _swipe(client, auth_headers(alice), rex, luna, "SUPERLIKE")

    assert resp.status_code == 400
    assert resp.json()["code"] == "INVALID_ACTION"


async def test_swipe_with_foreign_pet_is_forbidden(client, auth_headers, owners):
    alice, _, rex, luna = owners

    resp = await _swipe(client, auth_headers(alice), luna, rex, "LIKE")

    assert resp.status_code == 403
    assert resp.json()["success"] is False


async def test_missing_fields_are_a_validation_error(client, auth_headers, owners):
    alice, _, rex, _ = owners

    resp = await client.post(
        "/pawmatch/swipe", json={"actor_pet_id": rex.id}, headers=auth_headers(alice)
    )

    assert resp.status_code == 422
    assert resp.json()["code"] == "VALIDATION_ERROR"


async def test_store_failure_is_a_server_error_envelope(client, auth_headers, monkeypatch, owners):
    alice, bob, rex, luna = owners

    async def broken_insert(self, pet_low_id, pet_high_id):
        raise OperationalError("INSERT INTO matches", {}, Exception("disk I/O error"))

    monkeypatch.setattr(PawMatchService, "create_match_if_absent", broken_insert)
    await _swipe(client, auth_headers(alice), rex, luna, "LIKE")

    resp = await _swipe(client, auth_headers(bob), luna, rex, "LIKE")

    assert resp.status_code == 500
    body = resp.json()
    assert body["success"] is False
    assert body["message"] == "Failed to reconcile match"
    assert "data" not in body

    resp = await client.get("/pawmatch/liked", params={"pet_id": luna.id}, headers=auth_headers(bob))
    assert [p["id"] for p in resp.json()["data"]] == [rex.id]


async def test_concurrent_reciprocal_swipes_make_one_match(client, auth_headers, session_factory, owners):
    alice, bob, rex, luna = owners

    responses = await asyncio.gather(
        _swipe(client, auth_headers(alice), rex, luna, "LIKE"),
        _swipe(client, auth_headers(bob), luna, rex, "LIKE"),
    )

    assert all(r.status_code == 200 for r in responses)
    async with session_factory() as session:
        count = await session.execute(select(func.count(Match.id)))
        assert count.scalar_one() == 1


async def test_discovery_and_likes_lists(client, auth_headers, owners):
    alice, bob, rex, luna = owners

    resp = await client.get("/pawmatch/discovery", params={"pet_id": rex.id}, headers=auth_headers(alice))
    assert [p["id"] for p in resp.json()["data"]] == [luna.id]

    await _swipe(client, auth_headers(alice), rex, luna, "LIKE")

    resp = await client.get("/pawmatch/discovery", params={"pet_id": rex.id}, headers=auth_headers(alice))
    assert resp.json()["data"] == []

    resp = await client.get("/pawmatch/liked", params={"pet_id": rex.id}, headers=auth_headers(alice))
    assert [p["id"] for p in resp.json()["data"]] == [luna.id]

    resp = await client.get("/pawmatch/liked-me", params={"pet_id": luna.id}, headers=auth_headers(bob))
    assert [p["id"] for p in resp.json()["data"]] == [rex.id]


async def test_discovery_page_size_is_capped(client, auth_headers, owners):
    alice, _, rex, _ = owners

    resp = await client.get(
        "/pawmatch/discovery", params={"pet_id": rex.id, "limit": 50}, headers=auth_headers(alice)
    )

    assert resp.status_code == 422


async def test_discovery_for_foreign_pet_is_forbidden(client, auth_headers, owners):
    _, bob, rex, _ = owners

    resp = await client.get("/pawmatch/discovery", params={"pet_id": rex.id}, headers=auth_headers(bob))

    assert resp.status_code == 403


async def test_reconcile_endpoint_is_idempotent(client, auth_headers, owners):
    alice, bob, rex, luna = owners
    await _swipe(client, auth_headers(alice), rex, luna, "LIKE")
    first = (await _swipe(client, auth_headers(bob), luna, rex, "LIKE")).json()["data"]["match"]

    resp = await client.post(
        "/pawmatch/matches/reconcile",
        json={"actor_pet_id": rex.id, "target_pet_id": luna.id},
        headers=auth_headers(alice),
    )

    assert resp.status_code == 200
    assert resp.json()["data"]["match"]["id"] == first["id"]


async def test_match_chat(client, auth_headers, make_user, owners):
    alice, bob, rex, luna = owners
    await _swipe(client, auth_headers(alice), rex, luna, "LIKE")
    match = (await _swipe(client, auth_headers(bob), luna, rex, "LIKE")).json()["data"]["match"]

    resp = await client.post(
        "/pawmatch/messages",
        json={"match_id": match["id"], "sender_pet_id": luna.id, "content": "Woof!"},
        headers=auth_headers(bob),
    )
    assert resp.status_code == 201
    assert resp.json()["data"]["receiver_pet_id"] == rex.id

    resp = await client.get("/pawmatch/messages", params={"match_id": match["id"]}, headers=auth_headers(alice))
    assert [m["content"] for m in resp.json()["data"]] == ["Woof!"]

    resp = await client.post(
        "/pawmatch/messages",
        json={"match_id": match["id"], "sender_pet_id": rex.id, "content": "Hi"},
        headers=auth_headers(bob),
    )
    assert resp.status_code == 403

    resp = await client.get("/pawmatch/messages", params={"match_id": 987654}, headers=auth_headers(alice))
    assert resp.status_code == 404
