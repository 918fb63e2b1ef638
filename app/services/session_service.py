"""Bearer token issuing, validation and revocation."""

from datetime import UTC, datetime, timedelta
from uuid import UUID

import structlog

from app.config import Settings
from app.core.exceptions import UnauthenticatedException
from app.core.redis_client import CacheManager
from app.core.security import create_access_token, decode_access_token

logger = structlog.get_logger(__name__)


class SessionService:
    """Issues signed bearer tokens and authorizes requests that carry them."""

    def __init__(self, settings: Settings, cache_manager: CacheManager):
        """Initialize session service with settings and the revocation store."""
        self.settings = settings
        self.cache = cache_manager

    @staticmethod
    def _revocation_key(jti: str) -> str:
        """Generate revocation list key for a token id."""
        return f"revoked:{jti}"

    def issue_token(self, subject: UUID | str, kind: str) -> str:
        """
        Create an access token for an authenticated principal.

        Args:
            subject: Account ID (or operator email)
            kind: Principal kind, checked again by ``authorize``

        Returns:
            Encoded JWT
        """
        return create_access_token(
            data={"sub": str(subject), "kind": kind},
            settings=self.settings,
            expires_delta=timedelta(minutes=self.settings.access_token_expire_minutes),
        )

    def _decode(self, token: str | None, required_kind: str) -> dict:
        """Validate a token and return its claims."""
        if not token:
            raise UnauthenticatedException()

        payload = decode_access_token(token, self.settings)
        if payload is None:
            raise UnauthenticatedException()

        if payload.get("kind") != required_kind or not isinstance(payload.get("sub"), str):
            raise UnauthenticatedException()

        jti = payload.get("jti")
        if not jti or self.cache.exists(self._revocation_key(jti)):
            raise UnauthenticatedException("Session has been revoked. Please log in again.")

        return payload

    def authorize(self, token: str | None, required_kind: str) -> UUID:
        """
        Resolve the account a bearer token acts for.

        Raises:
            UnauthenticatedException: If the token is missing, invalid, expired,
                revoked or issued for a different account kind
        """
        payload = self._decode(token, required_kind)
        try:
            return UUID(payload["sub"])
        except ValueError:
            raise UnauthenticatedException("Invalid user ID format")

    def authorize_subject(self, token: str | None, required_kind: str) -> str:
        """Like ``authorize`` but returns the raw subject claim."""
        return self._decode(token, required_kind)["sub"]

    def revoke(self, token: str) -> None:
        """
        Put a token on the revocation list until it would have expired anyway.

        Invalid tokens are ignored.
        """
        payload = decode_access_token(token, self.settings)
        if payload is None or not payload.get("jti"):
            return

        expires_at = datetime.fromtimestamp(payload["exp"], UTC)
        ttl = int((expires_at - datetime.now(UTC)).total_seconds())
        if ttl <= 0:
            return

        self.cache.set(self._revocation_key(payload["jti"]), "1", ttl=ttl)
        logger.info("session_revoked", kind=payload.get("kind"), subject=payload.get("sub"))
