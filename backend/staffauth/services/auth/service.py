# staffauth/services/auth/service.py
from __future__ import annotations

import logging
import secrets
from collections.abc import Iterable

from sqlalchemy.exc import IntegrityError

from staffauth.models.user import User, UserRole
from staffauth.repositories.user import UserRepository
from staffauth.services._shared.base import BaseService
from staffauth.services._shared.errors import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    TokenError,
    UnauthorizedError,
    violates,
)
from staffauth.services._shared.ports.password_hasher import PasswordHasher
from staffauth.services._shared.ports.token_codec import (
    ClaimSet,
    TokenCodec,
    TokenKind,
    TokenPair,
)
from staffauth.services.auth.dto import (
    AuthResultOut,
    LoginIn,
    LogoutIn,
    Principal,
    RefreshIn,
    RegisterIn,
)
from staffauth.services.auth.registry import RefreshTokenRegistry
from staffauth.services.users.cache import UserCache
from staffauth.services.users.dto import UserPublic

log = logging.getLogger(__name__)

# Client-facing messages
EMPLOYEE_ID_TAKEN = "User with this employee ID already exists"
EMAIL_TAKEN = "User with this email already exists"
PHONE_TAKEN = "User with this phone number already exists"
INVALID_CREDENTIALS = "Invalid employee ID or password"
ACCOUNT_DEACTIVATED = "Account is deactivated"
REFRESH_REQUIRED = "Refresh token required"
REFRESH_INVALID_OR_EXPIRED = "Invalid or expired refresh token"
REFRESH_INVALID = "Invalid refresh token"
ACCESS_REQUIRED = "Access token is required"
ACCESS_INVALID = "Invalid or expired access token"
PRINCIPAL_GONE = "User not found or inactive"

# Uniqueness checks in message precedence order
_UNIQUE_KEYS: tuple[tuple[str, str, str], ...] = (
    ("employee_id", "uq_users_employee_id", EMPLOYEE_ID_TAKEN),
    ("email", "uq_users_email", EMAIL_TAKEN),
    ("phone_number", "uq_users_phone_number", PHONE_TAKEN),
)


class AuthService(BaseService):
    """
    Session lifecycle: register / login / refresh / logout / logout-all.

    Tokens are minted by the :class:`TokenCodec`; refresh tokens are only
    honoured while they sit in the user's :class:`RefreshTokenRegistry` set.
    Every successful refresh consumes the presented token, so each refresh
    token is single-use.
    """

    def __init__(
        self,
        *,
        codec: TokenCodec,
        registry: RefreshTokenRegistry,
        hasher: PasswordHasher,
        cache: UserCache,
    ) -> None:
        """
        :param codec: Signs and verifies access/refresh tokens.
        :param registry: Per-user set of valid refresh tokens.
        :param hasher: Password hashing primitive.
        :param cache: User read cache; registration invalidates its listings.
        """
        self.codec = codec
        self.registry = registry
        self.hasher = hasher
        self.cache = cache
        # Compared against when the employee id is unknown so the response
        # time does not reveal which ids exist.
        self._dummy_hash = hasher.hash(secrets.token_urlsafe(16))

    # ------------------------------------------------------------------ #
    # Register
    # ------------------------------------------------------------------ #

    def register(self, dto: RegisterIn) -> AuthResultOut:
        """
        Create a ``USER`` account and open its first session.

        :raises ConflictError: Employee id, email or phone number already used
            (reported in that precedence).
        """
        password_hash = self.hasher.hash(dto.password)
        with self.rw_uow() as uow:
            repo: UserRepository = uow.users
            self._ensure_unique(repo, dto)
            user = User(
                first_name=dto.first_name,
                middle_name=dto.middle_name,
                last_name=dto.last_name,
                email=dto.email,
                employee_id=dto.employee_id,
                phone_number=dto.phone_number,
                password_hash=password_hash,
                role=UserRole.USER,
                is_active=True,
                refresh_tokens=[],
            )
            try:
                repo.add(user)
            except IntegrityError as exc:
                # Lost a race against a concurrent registration
                conflict = self._conflict_from(exc)
                if conflict is None:
                    raise
                raise conflict from exc
            claims = self._claims_for(user)
            public = UserPublic.from_model(user)

        tokens = self._open_session(claims)
        self.cache.invalidate_collections()
        log.info("auth.registered", extra={"user_id": public.id})
        return AuthResultOut(user=public, tokens=tokens)

    @staticmethod
    def _ensure_unique(repo: UserRepository, dto: RegisterIn) -> None:
        taken = {
            "employee_id": repo.find_by_employee_id(dto.employee_id) is not None,
            "email": repo.find_by_email(dto.email) is not None,
            "phone_number": repo.find_by_phone_number(dto.phone_number) is not None,
        }
        for key, _, message in _UNIQUE_KEYS:
            if taken[key]:
                raise ConflictError("User", message)

    @staticmethod
    def _conflict_from(exc: IntegrityError) -> ConflictError | None:
        for _, constraint, message in _UNIQUE_KEYS:
            if violates(exc, constraint):
                return ConflictError("User", message)
        return None

    # ------------------------------------------------------------------ #
    # Login
    # ------------------------------------------------------------------ #

    def login(self, dto: LoginIn) -> AuthResultOut:
        """
        Authenticate by employee id and password and open a session.

        The password is checked before the active flag, so the distinct
        "deactivated" message is only shown to callers who know the password.

        :raises UnauthorizedError: Unknown id, wrong password or inactive account.
        """
        with self.ro_uow() as uow:
            user = uow.users.find_by_employee_id(dto.employee_id)
            if user is None:
                self.hasher.compare(dto.password, self._dummy_hash)
                raise UnauthorizedError(INVALID_CREDENTIALS)
            if not self.hasher.compare(dto.password, user.password_hash):
                raise UnauthorizedError(INVALID_CREDENTIALS)
            if not user.is_active:
                raise UnauthorizedError(ACCOUNT_DEACTIVATED)
            claims = self._claims_for(user)
            public = UserPublic.from_model(user)

        tokens = self._open_session(claims)
        log.info("auth.login", extra={"user_id": public.id})
        return AuthResultOut(user=public, tokens=tokens)

    # ------------------------------------------------------------------ #
    # Refresh (single-use rotation)
    # ------------------------------------------------------------------ #

    def refresh(self, dto: RefreshIn) -> TokenPair:
        """
        Exchange a refresh token for a new pair and retire the old one.

        :raises UnauthorizedError: Missing, undecodable, expired, unknown or
            already-rotated token, or missing/inactive user.
        """
        presented = dto.refresh_token
        if not presented:
            raise UnauthorizedError(REFRESH_REQUIRED)

        try:
            verified = self.codec.verify(TokenKind.REFRESH, presented)
        except TokenError as exc:
            raise UnauthorizedError(REFRESH_INVALID_OR_EXPIRED) from exc

        user_id = verified.user_id
        if not self.registry.is_valid(user_id, presented):
            raise UnauthorizedError(REFRESH_INVALID)

        with self.ro_uow() as uow:
            user = uow.users.get(user_id)
            if user is None or not user.is_active:
                raise UnauthorizedError(REFRESH_INVALID)
            claims = self._claims_for(user)

        # A concurrent refresh with the same token may already have removed it
        if not self.registry.remove(user_id, presented):
            log.warning("auth.refresh_reuse", extra={"user_id": user_id})
            raise UnauthorizedError(REFRESH_INVALID)

        try:
            tokens = self._open_session(claims)
        except NotFoundError as exc:
            raise UnauthorizedError(REFRESH_INVALID) from exc
        log.info("auth.refreshed", extra={"user_id": user_id})
        return tokens

    # ------------------------------------------------------------------ #
    # Logout
    # ------------------------------------------------------------------ #

    def logout(self, dto: LogoutIn) -> None:
        """Retire the presented refresh token. Idempotent."""
        if dto.refresh_token:
            self.registry.remove(dto.user_id, dto.refresh_token)
        log.info("auth.logout", extra={"user_id": dto.user_id})

    def logout_all(self, user_id: int) -> int:
        """Retire every refresh token of ``user_id``. Idempotent."""
        removed = self.registry.remove_all(user_id)
        log.info("auth.logout_all removed=%s", removed, extra={"user_id": user_id})
        return removed

    # ------------------------------------------------------------------ #
    # Profile & access-token authentication
    # ------------------------------------------------------------------ #

    def get_profile(self, user_id: int) -> UserPublic:
        """
        :raises NotFoundError: If the user does not exist.
        """
        with self.ro_uow() as uow:
            user = uow.users.get(user_id)
            if user is None:
                raise NotFoundError("User", user_id)
            return UserPublic.from_model(user)

    def authenticate(self, access_token: str | None) -> Principal:
        """
        Resolve the caller behind a bearer access token.

        The user is re-read on every call, so deactivation takes effect on the
        next request even while the access token has not expired.

        :raises UnauthorizedError: Missing or invalid token, or missing/inactive user.
        """
        if not access_token:
            raise UnauthorizedError(ACCESS_REQUIRED)
        try:
            verified = self.codec.verify(TokenKind.ACCESS, access_token)
        except TokenError as exc:
            raise UnauthorizedError(ACCESS_INVALID) from exc

        with self.ro_uow() as uow:
            user = uow.users.get(verified.user_id)
            if user is None or not user.is_active:
                raise UnauthorizedError(PRINCIPAL_GONE)
            return Principal(user_id=user.id, email=user.email, role=user.role.value)

    @staticmethod
    def authorize(principal: Principal, roles: Iterable[UserRole | str]) -> None:
        """
        :raises ForbiddenError: If the principal's role is not in ``roles``.
        """
        allowed = {r.value if isinstance(r, UserRole) else str(r) for r in roles}
        if principal.role not in allowed:
            raise ForbiddenError()

    # ------------------------------------------------------------------ #
    # Utilities
    # ------------------------------------------------------------------ #

    @staticmethod
    def _claims_for(user: User) -> ClaimSet:
        return ClaimSet(
            user_id=user.id,
            email=user.email,
            phone_number=user.phone_number,
            role=user.role.value,
        )

    def _open_session(self, claims: ClaimSet) -> TokenPair:
        """Issue a pair and register its refresh token."""
        tokens = self.codec.issue_pair(claims)
        self.registry.add(claims.user_id, tokens.refresh_token)
        return tokens
