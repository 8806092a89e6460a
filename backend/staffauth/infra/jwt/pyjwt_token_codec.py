# comments in English; reST docstrings
"""PyJWT-backed token codec with independent access and refresh secrets."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import uuid4

import jwt

from staffauth.core.config import parse_duration
from staffauth.services._shared.clock import Clock, utc_now
from staffauth.services._shared.errors import (
    ConfigError,
    ExpiredTokenError,
    InvalidSignatureError,
    MalformedTokenError,
)
from staffauth.services._shared.ports.token_codec import (
    ClaimSet,
    TokenClaims,
    TokenCodec,
    TokenKind,
    TokenPair,
)


REQUIRED_CLAIMS = ["sub", "type", "iat", "exp", "jti"]


@dataclass(frozen=True, slots=True)
class TokenSettings:
    """
    Signing configuration for both token kinds.

    :param access_secret: HMAC secret for access tokens.
    :param refresh_secret: HMAC secret for refresh tokens.
    :param access_expires: Access token lifetime.
    :param refresh_expires: Refresh token lifetime.
    :param algorithm: JWS algorithm (HMAC family).
    """

    access_secret: str
    refresh_secret: str
    access_expires: timedelta = timedelta(minutes=15)
    refresh_expires: timedelta = timedelta(days=7)
    algorithm: str = "HS256"

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> TokenSettings:
        """Build settings from a Flask config mapping (``JWT_*`` keys)."""
        try:
            access_expires = parse_duration(config.get("JWT_ACCESS_EXPIRES", "15m"))
            refresh_expires = parse_duration(config.get("JWT_REFRESH_EXPIRES", "7d"))
        except ValueError as exc:
            raise ConfigError(str(exc)) from exc
        return cls(
            access_secret=str(config.get("JWT_ACCESS_SECRET") or ""),
            refresh_secret=str(config.get("JWT_REFRESH_SECRET") or ""),
            access_expires=access_expires,
            refresh_expires=refresh_expires,
            algorithm=str(config.get("JWT_ALGORITHM") or "HS256"),
        )

    def validate(self) -> None:
        """
        Fail fast on unusable signing configuration.

        :raises ConfigError: When a secret is missing or both secrets are equal.
        """
        if not self.access_secret:
            raise ConfigError("JWT_ACCESS_SECRET is not set")
        if not self.refresh_secret:
            raise ConfigError("JWT_REFRESH_SECRET is not set")
        if self.access_secret == self.refresh_secret:
            raise ConfigError("JWT_ACCESS_SECRET and JWT_REFRESH_SECRET must differ")

    def secret_for(self, kind: TokenKind) -> str:
        return self.access_secret if kind is TokenKind.ACCESS else self.refresh_secret

    def lifetime_for(self, kind: TokenKind) -> timedelta:
        return self.access_expires if kind is TokenKind.ACCESS else self.refresh_expires


class PyJWTTokenCodec(TokenCodec):
    """
    Sign and verify tokens with PyJWT.

    Expiry is checked against the injected clock instead of PyJWT's own
    ``time.time()`` so tests can move time deterministically. Each token gets
    a random ``jti``; two tokens minted in the same second never collide.
    """

    def __init__(self, settings: TokenSettings, *, clock: Clock = utc_now) -> None:
        self.settings = settings
        self._clock = clock

    # ------------------------------------------------------------------ #
    # Issue
    # ------------------------------------------------------------------ #

    def _secret(self, kind: TokenKind) -> str:
        secret = self.settings.secret_for(kind)
        if not secret:
            raise ConfigError(f"No signing secret configured for {kind.value} tokens")
        return secret

    def lifetime(self, kind: TokenKind) -> timedelta:
        return self.settings.lifetime_for(kind)

    def issue(self, kind: TokenKind, claims: ClaimSet) -> str:
        secret = self._secret(kind)
        now = self._clock()
        payload: dict[str, Any] = {
            **claims.as_payload(),
            "type": kind.value,
            "iat": int(now.timestamp()),
            "exp": int((now + self.lifetime(kind)).timestamp()),
            "jti": uuid4().hex,
        }
        return jwt.encode(payload, secret, algorithm=self.settings.algorithm)

    def issue_pair(self, claims: ClaimSet) -> TokenPair:
        return TokenPair(
            access_token=self.issue(TokenKind.ACCESS, claims),
            refresh_token=self.issue(TokenKind.REFRESH, claims),
        )

    # ------------------------------------------------------------------ #
    # Verify
    # ------------------------------------------------------------------ #

    def verify(self, kind: TokenKind, token: str) -> TokenClaims:
        if not isinstance(token, str) or not token.strip():
            raise MalformedTokenError()
        secret = self._secret(kind)

        try:
            payload = jwt.decode(
                token,
                secret,
                algorithms=[self.settings.algorithm],
                options={"verify_exp": False, "verify_iat": False, "require": REQUIRED_CLAIMS},
            )
        except jwt.InvalidSignatureError as exc:
            raise InvalidSignatureError() from exc
        except jwt.InvalidTokenError as exc:
            # DecodeError, MissingRequiredClaimError, InvalidSubjectError, ...
            raise MalformedTokenError() from exc

        if payload.get("type") != kind.value:
            raise MalformedTokenError("Token kind mismatch")

        try:
            expires_at = datetime.fromtimestamp(int(payload["exp"]), tz=UTC)
            issued_at = datetime.fromtimestamp(int(payload["iat"]), tz=UTC)
            user_id = int(payload["sub"])
        except (TypeError, ValueError, OverflowError) as exc:
            raise MalformedTokenError() from exc

        if self._clock() >= expires_at:
            raise ExpiredTokenError()

        return TokenClaims(
            user_id=user_id,
            email=str(payload.get("email", "")),
            phone_number=str(payload.get("phone_number", "")),
            role=str(payload.get("role", "")),
            kind=kind,
            issued_at=issued_at,
            expires_at=expires_at,
            jti=str(payload["jti"]),
        )
