"""Request Dependencies — bearer credential → User row → Actor, plus role gates.

Invariants:
    - Every order endpoint resolves the caller from the Authorization header
    - A missing or unknown token raises AuthenticationError (401)
    - Route-level role gates only decide which endpoint a role may call;
      which transitions a role may make is decided by the state machine alone

Design Decisions:
    - Token transport is external: the backend only looks the token up
    - Dependencies share the request's AsyncSession (FastAPI caches get_db per request)
"""

from fastapi import Depends, Header
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fulfillment.config import Settings, get_settings
from fulfillment.core.domain_types import Actor, ActorId, ActorRole
from fulfillment.core.errors import AuthenticationError, AuthorizationError
from fulfillment.infrastructure.database import get_db
from fulfillment.models.user import User as UserModel
from fulfillment.services.order_workflow import OrderWorkflow


async def get_current_user(
    authorization: str | None = Header(None),
    db: AsyncSession = Depends(get_db),
) -> UserModel:
    if not authorization or not authorization.startswith("Bearer "):
        raise AuthenticationError()
    token = authorization.removeprefix("Bearer ").strip()
    result = await db.execute(select(UserModel).where(UserModel.api_token == token))
    user = result.scalar_one_or_none()
    if user is None:
        raise AuthenticationError()
    return user


def actor_for(user: UserModel) -> Actor:
    return Actor(ActorRole(user.role), ActorId(user.id))


async def get_current_actor(user: UserModel = Depends(get_current_user)) -> Actor:
    return actor_for(user)


def require_role(*roles: ActorRole):
    """Dependency factory: 403 unless the caller has one of `roles`."""
    async def _check(user: UserModel = Depends(get_current_user)) -> UserModel:
        if ActorRole(user.role) not in roles:
            raise AuthorizationError(
                f"This endpoint is not available to role '{user.role}'", user.role,
            )
        return user
    return _check


async def get_workflow(
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> OrderWorkflow:
    return OrderWorkflow(db, settings)
