"""
TokenService: issue and verify access/refresh JWTs.

Access tokens carry sub, email, role; refresh tokens carry only sub and
``type: "refresh"``. Both carry iss, aud, iat, exp. RS256 is used when both
keys are configured, HS256 with JWT_SECRET otherwise.

Refresh tokens are stateless and are not rotated: refreshing returns a new
access token and the same refresh token stays valid until its exp.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Callable, Optional

import jwt

from config import JWTSettings
from errors import AuthenticationError
from repositories.user_repository import UserRepository
from schemas.models.user import DEFAULT_ROLE
from shared.datetime_utils import utcnow
from shared.logging import get_logger

log = get_logger(__name__)

REFRESH_TOKEN_TYPE = "refresh"


class TokenService:
    def __init__(
        self,
        settings: JWTSettings,
        user_repo: UserRepository,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._settings = settings
        self._user_repo = user_repo
        self._clock = clock

        if settings.use_rs256:
            self._algorithm = "RS256"
            # Support keys provided via env with literal \n sequences
            self._signing_key = settings.jwt_private_key.replace("\\n", "\n")
            self._verify_key = settings.jwt_public_key.replace("\\n", "\n")
        else:
            if not settings.jwt_secret:
                raise RuntimeError("JWT_SECRET must be set when RS256 keys are not provided")
            self._algorithm = "HS256"
            self._signing_key = settings.jwt_secret
            self._verify_key = settings.jwt_secret

    @property
    def access_ttl_seconds(self) -> int:
        return self._settings.access_token_ttl_seconds

    def _encode(self, claims: dict, ttl_seconds: int) -> str:
        now = self._clock()
        payload = {
            "iss": self._settings.jwt_issuer,
            "aud": self._settings.jwt_audience,
            "iat": int(now.timestamp()),
            "exp": int((now + timedelta(seconds=ttl_seconds)).timestamp()),
            **claims,
        }
        return jwt.encode(payload, self._signing_key, algorithm=self._algorithm)

    def issue_access(self, user_id: str, email: Optional[str], role: Optional[str]) -> str:
        claims: dict = {"sub": str(user_id), "role": role or DEFAULT_ROLE}
        if email:
            claims["email"] = email
        return self._encode(claims, self._settings.access_token_ttl_seconds)

    def issue_refresh(self, user_id: str) -> str:
        return self._encode(
            {"sub": str(user_id), "type": REFRESH_TOKEN_TYPE},
            self._settings.refresh_token_ttl_seconds,
        )

    def verify(self, token: str) -> dict:
        """Decode and validate signature, expiry, issuer and audience.

        Raises:
            AuthenticationError: on any validation failure.
        """
        try:
            return jwt.decode(
                token,
                self._verify_key,
                algorithms=[self._algorithm],
                audience=self._settings.jwt_audience,
                issuer=self._settings.jwt_issuer,
                options={"require": ["exp", "iat", "sub"]},
            )
        except jwt.ExpiredSignatureError as e:
            raise AuthenticationError("Token expired") from e
        except jwt.InvalidTokenError as e:
            raise AuthenticationError("Invalid token") from e

    def verify_access(self, token: str) -> dict:
        claims = self.verify(token)
        if claims.get("type") == REFRESH_TOKEN_TYPE:
            raise AuthenticationError("Invalid token")
        self._check_clock(claims)
        return claims

    def verify_refresh(self, token: str) -> dict:
        claims = self.verify(token)
        if claims.get("type") != REFRESH_TOKEN_TYPE:
            raise AuthenticationError("Invalid refresh token")
        self._check_clock(claims)
        return claims

    def _check_clock(self, claims: dict) -> None:
        # PyJWT checks exp against the wall clock; this applies the injected one.
        if int(claims["exp"]) <= int(self._clock().timestamp()):
            raise AuthenticationError("Token expired")

    async def refresh(self, refresh_token: str) -> str:
        """Exchange a refresh token for a new access token.

        The user row is re-read so a role change takes effect on the next
        refresh; a deleted user can no longer refresh.
        """
        claims = self.verify_refresh(refresh_token)
        user = await self._user_repo.find_by_id(claims["sub"])
        if user is None:
            log.warning("token_refresh_failed", reason="user_not_found", user_id=claims["sub"])
            raise AuthenticationError("Invalid refresh token")
        return self.issue_access(str(user.id), user.email, user.effective_role)
