"""
Bearer Token Authentication
===========================

FastAPI dependencies that turn the hosted auth provider's access token
into an Actor.

- no or invalid token -> 401
- valid token without a profile -> 403
- pending or inactive profile -> 403
"""

from dataclasses import dataclass
from typing import Optional

import jwt
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from eqms.config import Settings, UserStatus
from eqms.core.exceptions import AuthenticationException, AuthorizationException
from eqms.core.policy import Actor
from eqms.infrastructure.database import get_session
from eqms.organization.domain import UserProfile
from eqms.organization.infrastructure.repositories import SQLAlchemyUserProfileRepository
from eqms.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)

bearer_scheme = HTTPBearer(auto_error=False, description="Access token from the auth provider")


@dataclass(frozen=True)
class CurrentUser:
    """Authenticated caller: the policy actor plus the stored profile."""
    actor: Actor
    profile: UserProfile


def decode_access_token(token: str, settings: Settings) -> dict:
    """
    Verify signature, expiry and audience of an access token.

    Raises:
        AuthenticationException: token is expired, malformed or not ours
    """
    options = {"require": ["sub"]}
    if settings.auth_jwt_audience is None:
        options["verify_aud"] = False

    try:
        return jwt.decode(
            token,
            settings.auth_jwt_secret,
            algorithms=[settings.auth_jwt_algorithm],
            audience=settings.auth_jwt_audience,
            options=options,
        )
    except jwt.ExpiredSignatureError as e:
        raise AuthenticationException("Access token has expired") from e
    except jwt.InvalidTokenError as e:
        raise AuthenticationException("Invalid access token") from e


def _settings(request: Request) -> Settings:
    return request.app.state.settings


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    session: AsyncSession = Depends(get_session),
) -> CurrentUser:
    if credentials is None or not credentials.credentials:
        raise AuthenticationException("Missing bearer token")

    claims = decode_access_token(credentials.credentials, _settings(request))
    user_id = str(claims["sub"])

    profile = await SQLAlchemyUserProfileRepository(session).get_by_id(user_id)
    if profile is None:
        raise AuthorizationException("User profile not found")
    if profile.status is UserStatus.PENDING:
        raise AuthorizationException("Account is pending approval")
    if profile.status is UserStatus.INACTIVE:
        raise AuthorizationException("Account is inactive")

    request.state.user_id = profile.id
    actor = Actor(
        user_id=profile.id,
        role=profile.role,
        sbu_id=profile.sbu_id,
        email=profile.email,
    )
    return CurrentUser(actor=actor, profile=profile)


async def get_actor(current: CurrentUser = Depends(get_current_user)) -> Actor:
    return current.actor
