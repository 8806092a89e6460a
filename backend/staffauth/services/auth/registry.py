# staffauth/services/auth/registry.py
"""Per-user registry of currently valid refresh tokens.

The set lives on the ``users`` row. Every mutation is a read-modify-write on
the freshly loaded row (``SELECT ... FOR UPDATE`` where the database supports
it) guarded by the row's version counter. A concurrent writer makes the flush
fail with :class:`StaleDataError`; the unit of work rolls back and the
operation is retried on fresh state.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TypeVar

from sqlalchemy.orm.exc import StaleDataError

from staffauth.models.user import User
from staffauth.services._shared.base import BaseService
from staffauth.services._shared.clock import Clock, utc_now
from staffauth.services._shared.errors import InternalError, NotFoundError, TokenError
from staffauth.services._shared.ports.token_codec import TokenCodec, TokenKind

log = logging.getLogger(__name__)

T = TypeVar("T")


class RefreshTokenRegistry(BaseService):
    """
    Track which refresh tokens are valid for each user.

    :param clock: Source of ``last_login`` timestamps.
    :param max_attempts: Retries on optimistic-concurrency conflicts.
    :param codec: When given, tokens it no longer accepts (expired, or signed
        with a retired secret) are pruned from the set on every ``add``.
    """

    def __init__(
        self,
        *,
        clock: Clock = utc_now,
        max_attempts: int = 3,
        codec: TokenCodec | None = None,
    ) -> None:
        self._clock = clock
        self.max_attempts = max(1, max_attempts)
        self._codec = codec

    # ------------------------------------------------------------------ #
    # Mutations
    # ------------------------------------------------------------------ #

    def add(self, user_id: int, token: str) -> None:
        """
        Register ``token`` for ``user_id`` and stamp ``last_login``.

        :raises NotFoundError: If the user does not exist at call time.
        """

        def _missing() -> None:
            raise NotFoundError("User", user_id)

        def _apply(user: User) -> None:
            user.add_refresh_token(token, keep=self._still_verifiable if self._codec else None)
            user.last_login = self._clock()

        self._mutate(user_id, _apply, on_missing=_missing)

    def remove(self, user_id: int, token: str) -> bool:
        """
        Remove exactly ``token``.

        :returns: ``True`` when it was present. Absent token or user is a no-op.
        """
        return self._mutate(
            user_id, lambda user: user.remove_refresh_token(token), on_missing=lambda: False
        )

    def remove_all(self, user_id: int) -> int:
        """Clear every refresh token of ``user_id`` and return how many were removed."""
        return self._mutate(user_id, lambda user: user.clear_refresh_tokens(), on_missing=lambda: 0)

    # ------------------------------------------------------------------ #
    # Queries
    # ------------------------------------------------------------------ #

    def is_valid(self, user_id: int, token: str) -> bool:
        """Return ``True`` when the user exists, is active and holds ``token``."""
        with self.ro_uow() as uow:
            user = uow.users.get(user_id)
            return bool(user is not None and user.is_active and user.holds_refresh_token(token))

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #

    def _still_verifiable(self, token: str) -> bool:
        try:
            self._codec.verify(TokenKind.REFRESH, token)
        except TokenError:
            return False
        return True

    def _mutate(
        self,
        user_id: int,
        apply: Callable[[User], T],
        *,
        on_missing: Callable[[], T],
    ) -> T:
        for attempt in range(1, self.max_attempts + 1):
            try:
                with self.rw_uow() as uow:
                    user = uow.users.get_for_update(user_id)
                    if user is None:
                        return on_missing()
                    result = apply(user)
                    uow.users.flush()
                return result
            except StaleDataError:
                log.warning(
                    "registry.concurrent_update attempt=%s",
                    attempt,
                    extra={"user_id": user_id},
                )
        raise InternalError("Refresh-token update kept conflicting; giving up")
