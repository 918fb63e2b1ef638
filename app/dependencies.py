"""FastAPI dependencies."""

from typing import Annotated
from uuid import UUID

import redis
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import Settings, get_settings
from app.core.account_kinds import ADMIN_KIND, DOCTOR_SPEC, USER_SPEC, AccountKind
from app.core.clock import Clock, utc_now
from app.core.firebase import BlobStore, FirebaseBlobStore
from app.core.redis_client import CacheManager, get_redis_client
from app.database import get_db
from app.services.account_service import AccountService
from app.services.challenge_service import ChallengeService
from app.services.chat_service import ChatService
from app.services.email_service import EmailNotifier, Notifier
from app.services.session_service import SessionService

# Missing credentials are reported by SessionService so every failure is a 401
security = HTTPBearer(auto_error=False)


def get_clock() -> Clock:
    """Time source for expiry checks."""
    return utc_now


def get_notifier(settings: Annotated[Settings, Depends(get_settings)]) -> Notifier:
    """Outbound email channel."""
    return EmailNotifier(settings)


def get_blob_store() -> BlobStore:
    """Profile image storage."""
    return FirebaseBlobStore()


def get_cache_manager(
    redis_client: Annotated[redis.Redis, Depends(get_redis_client)],
) -> CacheManager:
    """Redis-backed key store holding the revocation list."""
    return CacheManager(redis_client)


def get_session_service(
    settings: Annotated[Settings, Depends(get_settings)],
    cache_manager: Annotated[CacheManager, Depends(get_cache_manager)],
) -> SessionService:
    """Token issuing and authorization."""
    return SessionService(settings, cache_manager)


def get_bearer_token(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> str | None:
    """Raw bearer token from the Authorization header, if any."""
    return credentials.credentials if credentials else None


def get_current_user_id(
    token: Annotated[str | None, Depends(get_bearer_token)],
    sessions: Annotated[SessionService, Depends(get_session_service)],
) -> UUID:
    """
    Resolve the user a request acts for.

    Raises:
        UnauthenticatedException: If the token is missing, invalid, revoked or not a user token
    """
    return sessions.authorize(token, AccountKind.USER)


def get_current_doctor_id(
    token: Annotated[str | None, Depends(get_bearer_token)],
    sessions: Annotated[SessionService, Depends(get_session_service)],
) -> UUID:
    """
    Resolve the doctor a request acts for.

    Raises:
        UnauthenticatedException: If the token is missing, invalid, revoked or not a doctor token
    """
    return sessions.authorize(token, AccountKind.DOCTOR)


def get_current_admin(
    token: Annotated[str | None, Depends(get_bearer_token)],
    sessions: Annotated[SessionService, Depends(get_session_service)],
) -> str:
    """Resolve the operator email a request acts for."""
    return sessions.authorize_subject(token, ADMIN_KIND)


def get_user_challenges(
    settings: Annotated[Settings, Depends(get_settings)],
    notifier: Annotated[Notifier, Depends(get_notifier)],
    clock: Annotated[Clock, Depends(get_clock)],
) -> ChallengeService:
    return ChallengeService(USER_SPEC, settings, notifier, clock=clock)


def get_doctor_challenges(
    settings: Annotated[Settings, Depends(get_settings)],
    notifier: Annotated[Notifier, Depends(get_notifier)],
    clock: Annotated[Clock, Depends(get_clock)],
) -> ChallengeService:
    return ChallengeService(DOCTOR_SPEC, settings, notifier, clock=clock)


def get_user_accounts(
    sessions: Annotated[SessionService, Depends(get_session_service)],
    blob_store: Annotated[BlobStore, Depends(get_blob_store)],
) -> AccountService:
    return AccountService(USER_SPEC, sessions, blob_store)


def get_doctor_accounts(
    sessions: Annotated[SessionService, Depends(get_session_service)],
    blob_store: Annotated[BlobStore, Depends(get_blob_store)],
) -> AccountService:
    return AccountService(DOCTOR_SPEC, sessions, blob_store)


def get_chat_service(
    settings: Annotated[Settings, Depends(get_settings)],
    clock: Annotated[Clock, Depends(get_clock)],
) -> ChatService:
    return ChatService(settings, clock=clock)


# Type aliases for dependency injection
DatabaseSession = Annotated[AsyncSession, Depends(get_db)]
BearerToken = Annotated[str | None, Depends(get_bearer_token)]
SessionServiceDep = Annotated[SessionService, Depends(get_session_service)]
CurrentUserId = Annotated[UUID, Depends(get_current_user_id)]
CurrentDoctorId = Annotated[UUID, Depends(get_current_doctor_id)]
CurrentAdmin = Annotated[str, Depends(get_current_admin)]
ChatServiceDep = Annotated[ChatService, Depends(get_chat_service)]
SettingsDep = Annotated[Settings, Depends(get_settings)]
