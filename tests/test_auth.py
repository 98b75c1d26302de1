"""Bearer token authentication."""

import uuid

import pytest

from eqms.config import UserStatus
from eqms.organization.infrastructure.repositories import SQLAlchemyUserProfileRepository


def header(token):
    return {"Authorization": f"Bearer {token}"}


async def test_missing_token(client, world):
    response = await client.get("/api/tickets")

    assert response.status_code == 401
    assert response.headers["WWW-Authenticate"] == "Bearer"


@pytest.mark.parametrize("token_kwargs", [
    {"secret": "not-the-secret"},
    {"expires_in": -60},
    {"audience": "someone-else"},
])
async def test_rejected_tokens(client, world, token, token_kwargs):
    response = await client.get("/api/tickets", headers=header(token(world.user.id, **token_kwargs)))
    assert response.status_code == 401


async def test_garbage_token(client, world):
    response = await client.get("/api/tickets", headers=header("not.a.jwt"))
    assert response.status_code == 401


async def test_unknown_profile_is_forbidden(client, world, token):
    response = await client.get("/api/tickets", headers=header(token(str(uuid.uuid4()))))
    assert response.status_code == 403


@pytest.mark.parametrize("status", [UserStatus.PENDING, UserStatus.INACTIVE])
async def test_disabled_profile_is_forbidden(client, database, world, token, status):
    async with database.session() as session:
        users = SQLAlchemyUserProfileRepository(session)
        profile = await users.get_by_id(world.user.id)
        profile.status = status
        await users.update(profile)

    response = await client.get("/api/tickets", headers=header(token(world.user.id)))
    assert response.status_code == 403


async def test_correlation_id_is_echoed(client, world, auth):
    response = await client.get(
        "/api/users/me", headers={**auth(world.user), "X-Correlation-ID": "req-123"}
    )
    assert response.headers["X-Correlation-ID"] == "req-123"
