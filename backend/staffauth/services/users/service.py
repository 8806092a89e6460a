# staffauth/services/users/service.py
from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError

from staffauth.models.user import UserRole
from staffauth.services._shared.base import BaseService
from staffauth.services._shared.errors import (
    BadRequestError,
    ConflictError,
    NotFoundError,
    violates,
)
from staffauth.services._shared.ports.password_hasher import PasswordHasher
from staffauth.services.users.cache import UserCache, count_key, list_key, single_key
from staffauth.services.users.dto import (
    ChangePasswordIn,
    UpdateProfileIn,
    UserListQuery,
    UserLookupOut,
    UserPageOut,
    UserPublic,
)

log = logging.getLogger(__name__)

EMAIL_TAKEN = "User with this email already exists"
OLD_PASSWORD_MISMATCH = "Old password does not match"


class UserDirectoryService(BaseService):
    """
    User reads behind a cache-aside layer, plus the writes that invalidate it.

    Reads check the cache first and populate it on a miss before returning.
    Writes that change what a listing shows (profile, activation, deletion)
    drop every list/count entry and the user's own entry; a password change
    only drops the user's own entry.
    """

    def __init__(self, *, cache: UserCache, hasher: PasswordHasher) -> None:
        self.cache = cache
        self.hasher = hasher

    # ------------------------------------------------------------------ #
    # Reads
    # ------------------------------------------------------------------ #

    def get_user(self, user_id: int) -> UserLookupOut:
        """
        Return one user, cached for ``single_ttl`` seconds.

        :raises NotFoundError: If the user does not exist.
        """
        key = single_key(user_id)
        cached = self.cache.get_json(key)
        if cached is not None:
            return UserLookupOut(user=UserPublic.from_dict(cached), from_cache=True)

        with self.ro_uow() as uow:
            user = uow.users.get(user_id)
            if user is None:
                raise NotFoundError("User", user_id)
            public = UserPublic.from_model(user)

        self.cache.put_json(key, public.to_dict(), self.cache.single_ttl)
        return UserLookupOut(user=public)

    def list_users(self, query: UserListQuery) -> UserPageOut:
        """
        Return one directory page and the matching total.

        Page and count are cached under separate keys; the result is flagged
        as cached only when both were hits.
        """
        pagination = self.ensure_pagination(page=query.page, limit=query.limit)
        search = query.normalized_search()
        role = query.role.value if query.role is not None else None

        key = list_key(pagination.page, pagination.limit, search, role)
        cached_page = self.cache.get_json(key)
        if cached_page is not None:
            users = [UserPublic.from_dict(item) for item in cached_page]
        else:
            with self.ro_uow() as uow:
                page = uow.users.search(
                    page=pagination.page,
                    limit=pagination.limit,
                    search=search,
                    role=query.role,
                )
                users = [UserPublic.from_model(u) for u in page.items]
            self.cache.put_json(key, [u.to_dict() for u in users], self.cache.list_ttl)

        total, count_hit = self._count(search, query.role)
        return UserPageOut(
            users=users,
            page=pagination.page,
            limit=pagination.limit,
            total=total,
            from_cache=cached_page is not None and count_hit,
        )

    def count_users(self, *, search: str | None = None, role: UserRole | None = None) -> int:
        total, _ = self._count(UserListQuery(search=search).normalized_search(), role)
        return total

    def _count(self, search: str | None, role: UserRole | None) -> tuple[int, bool]:
        key = count_key(search, role.value if role is not None else None)
        cached = self.cache.get_json(key)
        if isinstance(cached, int):
            return cached, True

        with self.ro_uow() as uow:
            total = uow.users.count_matching(search=search, role=role)
        self.cache.put_json(key, total, self.cache.list_ttl)
        return total, False

    # ------------------------------------------------------------------ #
    # Writes
    # ------------------------------------------------------------------ #

    def update_profile(self, user_id: int, dto: UpdateProfileIn) -> UserPublic:
        """
        Update names and/or email of ``user_id``.

        :raises NotFoundError: If the user does not exist.
        :raises ConflictError: If the new email belongs to another user.
        """
        changes = dto.changes()
        with self.rw_uow() as uow:
            repo = uow.users
            user = repo.get_for_update(user_id)
            if user is None:
                raise NotFoundError("User", user_id)
            email = changes.get("email")
            if email is not None and repo.email_taken_by_other(email, user_id):
                raise ConflictError("User", EMAIL_TAKEN)
            try:
                repo.update(user, **changes)
            except IntegrityError as exc:
                if violates(exc, "uq_users_email"):
                    raise ConflictError("User", EMAIL_TAKEN) from exc
                raise
            public = UserPublic.from_model(user)

        self.cache.invalidate_user_and_collections(user_id)
        log.info("users.profile_updated", extra={"user_id": user_id})
        return public

    def change_password(self, user_id: int, dto: ChangePasswordIn) -> None:
        """
        Replace the password after checking the old one.

        :raises NotFoundError: If the user does not exist.
        :raises BadRequestError: If ``old_password`` does not match.
        """
        new_hash = self.hasher.hash(dto.new_password)
        with self.rw_uow() as uow:
            user = uow.users.get_for_update(user_id)
            if user is None:
                raise NotFoundError("User", user_id)
            if not self.hasher.compare(dto.old_password, user.password_hash):
                raise BadRequestError(OLD_PASSWORD_MISMATCH)
            uow.users.update(user, password_hash=new_hash)

        self.cache.invalidate_user(user_id)
        log.info("users.password_changed", extra={"user_id": user_id})

    def deactivate(self, user_id: int) -> UserPublic:
        """
        Mark ``user_id`` inactive. Its tokens stop working on next use.

        :raises NotFoundError: If the user does not exist.
        """
        with self.rw_uow() as uow:
            user = uow.users.get_for_update(user_id)
            if user is None:
                raise NotFoundError("User", user_id)
            uow.users.update(user, is_active=False)
            public = UserPublic.from_model(user)

        self.cache.invalidate_user_and_collections(user_id)
        log.info("users.deactivated", extra={"user_id": user_id})
        return public

    def delete(self, user_id: int) -> None:
        """
        Remove ``user_id`` permanently.

        :raises NotFoundError: If the user does not exist.
        """
        with self.rw_uow() as uow:
            user = uow.users.get_for_update(user_id)
            if user is None:
                raise NotFoundError("User", user_id)
            uow.users.delete(user)

        self.cache.invalidate_user_and_collections(user_id)
        log.info("users.deleted", extra={"user_id": user_id})
