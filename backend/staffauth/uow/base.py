"""Unit of work contract the services depend on."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from staffauth.repositories import UserRepository


class UnitOfWork(ABC):
    """
    One transaction shared by every repository a service call touches.

    Used as a context manager. A clean exit of a read-write scope commits;
    any exception rolls back. Read-only scopes never commit.
    """

    users: UserRepository

    @abstractmethod
    def __enter__(self) -> UnitOfWork: ...

    @abstractmethod
    def __exit__(self, exc_type, exc, tb) -> None: ...

    @abstractmethod
    def commit(self) -> None: ...

    @abstractmethod
    def rollback(self) -> None: ...
