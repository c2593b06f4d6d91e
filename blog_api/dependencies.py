"""
FastAPI dependency wiring.

Application-wide collaborators (settings, cache, paginator, token manager,
password hasher, session factory) live on ``app.state`` and are handed to
services per request; nothing is a module-level singleton.
"""
import json
from typing import Any, AsyncIterator, Dict, Optional, Type

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from .cache import CacheService
from .exceptions import NotAuthenticatedError, UserNotAuthenticatedError
from .models import User
from .pagination import PageRequest, Paginator
from .repositories import CommentRepository, PostRepository, UserRepository
from .security import TokenManager
from .serializers import Serializer
from .services import CommentService, PostService, UserService
from .validators import CommentValidator, PostValidator, UserValidator

bearer_scheme = HTTPBearer(auto_error=False)


async def get_db(request: Request) -> AsyncIterator[AsyncSession]:
    async with request.app.state.sessionmaker() as session:
        yield session


def get_cache(request: Request) -> CacheService:
    return request.app.state.cache


def get_paginator(request: Request) -> Paginator:
    return request.app.state.paginator


def get_serializer(request: Request) -> Serializer:
    return request.app.state.serializer


def get_page_request(
    request: Request, paginator: Paginator = Depends(get_paginator)
) -> PageRequest:
    # Raw strings on purpose: malformed values clamp instead of failing with 422
    return paginator.clamp(
        request.query_params.get("page"), request.query_params.get("limit")
    )


async def get_json_payload(request: Request) -> Optional[Dict[str, Any]]:
    body = await request.body()
    if not body:
        return None
    try:
        payload = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None
    return payload if isinstance(payload, dict) else None


def get_user_service(request: Request, session: AsyncSession = Depends(get_db)) -> UserService:
    users = UserRepository(session)
    state = request.app.state
    return UserService(users, UserValidator(users), state.hasher, state.tokens)


def get_post_service(
    session: AsyncSession = Depends(get_db),
    cache: CacheService = Depends(get_cache),
    serializer: Serializer = Depends(get_serializer),
) -> PostService:
    return PostService(PostRepository(session), PostValidator(), serializer, cache)


def get_comment_service(
    session: AsyncSession = Depends(get_db),
    cache: CacheService = Depends(get_cache),
    serializer: Serializer = Depends(get_serializer),
) -> CommentService:
    return CommentService(
        CommentRepository(session),
        PostRepository(session),
        CommentValidator(),
        serializer,
        cache,
    )


def authenticated_user(error: Type[NotAuthenticatedError] = UserNotAuthenticatedError):
    """Build a dependency resolving the bearer token to a User, failing with error."""

    async def dependency(
        request: Request,
        credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
        session: AsyncSession = Depends(get_db),
    ) -> User:
        if credentials is None:
            raise error()

        tokens: TokenManager = request.app.state.tokens
        try:
            user_id = tokens.user_id_from(credentials.credentials)
        except NotAuthenticatedError as exc:
            raise error(exc.message) from exc
        user = await UserRepository(session).find(user_id)
        if user is None:
            raise error()
        return user

    return dependency


get_current_user = authenticated_user()
# /api/profile reports the generic NOT_AUTHENTICATED code
get_profile_user = authenticated_user(NotAuthenticatedError)
