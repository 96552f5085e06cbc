"""
In-memory UserStorage used as a test double.

Besides storing users in a dict it records how it was called and can be
told to fail, so handler error paths can be exercised without a database:

    storage = InMemoryUserStorage()
    storage.return_error = StorageError("simulated outage")
    handler.create(request)          # → 500
    assert storage.create_user_arg.name == "Ada"

It takes no locks and is meant for single-threaded test use.
"""

from dataclasses import replace
from typing import Dict, List, Optional

from ..errors import NotFoundError, StorageError
from ..models import User
from .base import UserStorage


# Creating a user with this name always fails.
ERROR_USER_NAME = "error_user"


class InMemoryUserStorage(UserStorage):
    """
    Dict-backed storage with call recording and error injection.

    Attributes:
        users: Stored records keyed by id. Tests may seed it directly.
        next_id: Id the next create will assign.
        return_error: When set, every operation raises it.
        create_user_arg: Last user passed to create_user().
        get_by_id_arg: Last id passed to get_user_by_id().
        update_called: update_user() has been called.
        delete_called: delete_user() has been called.
    """

    def __init__(self):
        self.users: Dict[int, User] = {}
        self.next_id = 1
        self.return_error: Optional[Exception] = None

        self.create_user_arg: Optional[User] = None
        self.get_by_id_arg: Optional[int] = None
        self.update_called = False
        self.delete_called = False

    def reset(self) -> None:
        """Back to a freshly constructed state."""
        self.__init__()

    def _raise_injected(self) -> None:
        if self.return_error is not None:
            raise self.return_error

    def create_user(self, user: User) -> int:
        self.create_user_arg = user
        self._raise_injected()

        if user.name == ERROR_USER_NAME:
            raise StorageError(f"create user: forced failure for {ERROR_USER_NAME!r}")

        user_id = self.next_id
        self.next_id += 1
        self.users[user_id] = replace(user, id=user_id)
        return user_id

    def get_user_by_id(self, user_id: int) -> User:
        self.get_by_id_arg = user_id
        self._raise_injected()

        user = self.users.get(user_id)
        if user is None:
            raise NotFoundError(f"user {user_id} not found")
        return replace(user)

    def get_all_users(self) -> List[User]:
        self._raise_injected()
        return [replace(self.users[user_id]) for user_id in sorted(self.users)]

    def update_user(self, user: User) -> None:
        self.update_called = True
        self._raise_injected()

        if user.id not in self.users:
            raise NotFoundError(f"user {user.id} not found")
        self.users[user.id] = replace(user)

    def delete_user(self, user_id: int) -> None:
        self.delete_called = True
        self._raise_injected()

        if user_id not in self.users:
            raise NotFoundError(f"user {user_id} not found")
        del self.users[user_id]

    def ping(self) -> None:
        self._raise_injected()
