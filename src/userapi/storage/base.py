"""
=============================================================================
USER STORAGE CONTRACT
=============================================================================

Handlers talk to this interface only; they never see SQL or a
connection. Two implementations satisfy it:

    ┌────────────────────────┐         ┌──────────────────────────────┐
    │  UserHandler           │ ──────► │  UserStorage (ABC)           │
    └────────────────────────┘         └──────────────┬───────────────┘
                                                      │
                                 ┌────────────────────┴────────────────┐
                                 ▼                                     ▼
                   ┌──────────────────────────┐         ┌──────────────────────────┐
                   │ PostgresUserStorage      │         │ InMemoryUserStorage      │
                   │ injected psycopg2 pool   │         │ dict, for tests          │
                   └──────────────────────────┘         └──────────────────────────┘

Errors are typed. A missing record is NotFoundError and anything else
that goes wrong underneath is StorageError, so callers can tell the
two apart without reading messages.

=============================================================================
"""

from abc import ABC, abstractmethod
from typing import List

from ..models import User


class UserStorage(ABC):
    """Persistence for User records."""

    @abstractmethod
    def create_user(self, user: User) -> int:
        """
        Persist a new user and return the id assigned to it.

        The id on the passed-in user is ignored.

        Raises:
            StorageError: Constraint violation or connectivity failure.
        """

    @abstractmethod
    def get_user_by_id(self, user_id: int) -> User:
        """
        Raises:
            NotFoundError: No user has this id.
            StorageError: Any other failure.
        """

    @abstractmethod
    def get_all_users(self) -> List[User]:
        """
        Every user, ordered by ascending id. No users is an empty list.

        Raises:
            StorageError: On failure.
        """

    @abstractmethod
    def update_user(self, user: User) -> None:
        """
        Replace name and email of the user whose id is `user.id`.

        Raises:
            NotFoundError: No user has this id.
            StorageError: Any other failure.
        """

    @abstractmethod
    def delete_user(self, user_id: int) -> None:
        """
        Remove a user for good.

        Raises:
            NotFoundError: No user had this id.
            StorageError: Any other failure.
        """

    @abstractmethod
    def ping(self) -> None:
        """
        Check the backing store is reachable.

        Raises:
            StorageError: If it is not.
        """

    def close(self) -> None:
        """Release held resources. Nothing to do by default."""
