from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Protocol


class TokenKind(str, Enum):
    """The two token families; each has its own secret and lifetime."""

    ACCESS = "access"
    REFRESH = "refresh"


@dataclass(frozen=True, slots=True)
class ClaimSet:
    """
    Identity payload embedded in every token.

    :ivar user_id: Account primary key.
    :ivar email: Normalized email at issuance.
    :ivar phone_number: Phone number at issuance.
    :ivar role: Role name (``USER`` / ``ADMIN``) at issuance.
    """

    user_id: int
    email: str
    phone_number: str
    role: str

    def as_payload(self) -> dict[str, Any]:
        return {
            "sub": str(self.user_id),
            "email": self.email,
            "phone_number": self.phone_number,
            "role": self.role,
        }


@dataclass(frozen=True, slots=True)
class TokenClaims:
    """Verified token contents: the decoded claim set plus timing metadata."""

    user_id: int
    email: str
    phone_number: str
    role: str
    kind: TokenKind
    issued_at: datetime
    expires_at: datetime
    jti: str

    @property
    def claim_set(self) -> ClaimSet:
        return ClaimSet(
            user_id=self.user_id,
            email=self.email,
            phone_number=self.phone_number,
            role=self.role,
        )


@dataclass(frozen=True, slots=True)
class TokenPair:
    access_token: str
    refresh_token: str


class TokenCodec(Protocol):
    """Port for signing and verifying access/refresh tokens."""

    def issue(self, kind: TokenKind, claims: ClaimSet) -> str:
        """Sign ``claims`` with the secret and lifetime configured for ``kind``."""
        ...

    def verify(self, kind: TokenKind, token: str) -> TokenClaims:
        """
        Verify ``token`` as a ``kind`` token.

        :raises InvalidSignatureError: Signature does not match the kind's secret.
        :raises ExpiredTokenError: The codec clock is past the embedded expiry.
        :raises MalformedTokenError: Undecodable, wrong kind or missing claims.
        """
        ...

    def issue_pair(self, claims: ClaimSet) -> TokenPair:
        """Issue an access and a refresh token carrying identical claims."""
        ...

    def lifetime(self, kind: TokenKind) -> timedelta:
        """Return the configured lifetime for ``kind``."""
        ...
