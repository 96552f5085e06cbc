"""
Unit tests for the user CRUD handlers.

Handlers are called directly with hand-built requests over the in-memory
storage, without the route table in front of them.
"""

import json
from typing import Optional

import pytest

from userapi.errors import StorageError, ValidationError
from userapi.handlers.users import UserHandler, parse_user_id
from userapi.http.request import HTTPRequest
from userapi.http.response import HTTPStatus
from userapi.models import User
from userapi.storage import InMemoryUserStorage


def make_request(method: str, path: str, body: Optional[object] = None) -> HTTPRequest:
    """A dict body is JSON-encoded, str/bytes are sent as-is."""
    if body is None:
        raw = b""
    elif isinstance(body, bytes):
        raw = body
    elif isinstance(body, str):
        raw = body.encode()
    else:
        raw = json.dumps(body).encode()

    return HTTPRequest(
        method=method,
        path=path,
        headers={"content-type": "application/json"},
        body=raw,
        client_address=("127.0.0.1", 50000),
    )


@pytest.fixture
def handler(storage: InMemoryUserStorage) -> UserHandler:
    return UserHandler(storage)


def seed(storage: InMemoryUserStorage, name: str = "Test User", email: str = "test@example.com") -> int:
    return storage.create_user(User(name=name, email=email))


class TestParseUserId:
    """Tests for id segment parsing."""

    @pytest.mark.parametrize("segment,expected", [
        ("1", 1),
        ("0042", 42),
        ("-5", -5),
        ("+7", 7),
        ("9223372036854775807", 2 ** 63 - 1),
    ])
    def test_valid(self, segment: str, expected: int):
        """Signed base-10 int64 values parse."""
        assert parse_user_id(segment) == expected

    @pytest.mark.parametrize("segment", [
        "abc", "1.5", "1e3", " 1", "1\n", "1/2", "", "9223372036854775808", "٣",
    ])
    def test_invalid(self, segment: str):
        """Anything else is a validation error."""
        with pytest.raises(ValidationError):
            parse_user_id(segment)


class TestCreate:
    """Tests for UserHandler.create."""

    def test_create_user(self, handler, storage):
        """201 with the stored user and a non-zero id."""
        response = handler.create(make_request(
            "POST", "/api/v1/users", {"name": "Test User", "email": "test@example.com"},
        ))

        assert response.status == HTTPStatus.CREATED
        assert response.headers["Content-Type"] == "application/json"
        body = response.json()
        assert body["name"] == "Test User"
        assert body["email"] == "test@example.com"
        assert body["id"] != 0
        assert response.headers["Location"] == f"/api/v1/users/{body['id']}"
        assert storage.create_user_arg.name == "Test User"

    @pytest.mark.parametrize("email", ["test@example.com", ""])
    def test_empty_name(self, handler, storage, email: str):
        """Empty name is 400 whatever the email."""
        response = handler.create(make_request("POST", "/api/v1/users", {"name": "", "email": email}))

        assert response.status == HTTPStatus.BAD_REQUEST
        assert storage.create_user_arg is None

    def test_empty_email(self, handler):
        """Empty email is 400."""
        response = handler.create(make_request("POST", "/api/v1/users", {"name": "Test User", "email": ""}))
        assert response.status == HTTPStatus.BAD_REQUEST

    def test_malformed_json(self, handler):
        """Decode errors are 400 with the decoder detail."""
        response = handler.create(make_request("POST", "/api/v1/users", '{"name": "Test User",'))

        assert response.status == HTTPStatus.BAD_REQUEST
        assert response.headers["Content-Type"].startswith("text/plain")
        assert response.text.startswith("invalid JSON: ")

    @pytest.mark.parametrize("body", [None, b"  \r\n"])
    def test_empty_body(self, handler, storage, body):
        """A missing body is a decode error, not a user without fields."""
        response = handler.create(make_request("POST", "/api/v1/users", body))

        assert response.status == HTTPStatus.BAD_REQUEST
        assert response.text == "invalid JSON: empty body"
        assert storage.create_user_arg is None

    def test_body_id_ignored(self, handler):
        """The store assigns the id."""
        response = handler.create(make_request(
            "POST", "/api/v1/users", {"id": 500, "name": "a", "email": "b"},
        ))

        assert response.json()["id"] == 1

    def test_storage_failure(self, handler, storage):
        """Storage errors are a generic 500."""
        storage.return_error = StorageError("create user: connection refused")

        response = handler.create(make_request("POST", "/api/v1/users", {"name": "a", "email": "b"}))

        assert response.status == HTTPStatus.INTERNAL_SERVER_ERROR
        assert response.text == "internal error while creating user"
        assert "connection refused" not in response.text

    def test_error_user_trigger(self, handler):
        """The "error_user" name makes the store fail."""
        response = handler.create(make_request(
            "POST", "/api/v1/users", {"name": "error_user", "email": "e@example.com"},
        ))
        assert response.status == HTTPStatus.INTERNAL_SERVER_ERROR

    def test_wrong_method(self, handler):
        """Non-POST is 405."""
        response = handler.create(make_request("GET", "/api/v1/users"))

        assert response.status == HTTPStatus.METHOD_NOT_ALLOWED
        assert response.headers["Allow"] == "POST"


class TestRead:
    """Tests for UserHandler.read."""

    def test_list_empty(self, handler):
        """No users is an empty JSON array."""
        response = handler.read(make_request("GET", "/api/v1/users"))

        assert response.status == HTTPStatus.OK
        assert response.headers["Content-Type"] == "application/json"
        assert response.json() == []

    def test_list_after_create(self, handler, storage):
        """The collection holds the created user."""
        user_id = seed(storage)

        response = handler.read(make_request("GET", "/api/v1/users"))

        assert response.json() == [{"id": user_id, "name": "Test User", "email": "test@example.com"}]

    def test_get_by_id(self, handler, storage):
        """Single user by id."""
        user_id = seed(storage)

        response = handler.read(make_request("GET", f"/api/v1/users/{user_id}"))

        assert response.status == HTTPStatus.OK
        assert response.json() == {"id": user_id, "name": "Test User", "email": "test@example.com"}
        assert storage.get_by_id_arg == user_id

    def test_trailing_slash_is_collection(self, handler, storage):
        """/api/v1/users/ lists."""
        seed(storage)
        response = handler.read(make_request("GET", "/api/v1/users/"))
        assert isinstance(response.json(), list)

    def test_id_from_path_params(self, handler, storage):
        """The router's id parameter takes precedence over the raw path."""
        user_id = seed(storage)
        request = make_request("GET", "/ignored")
        request.path_params = {"id": f"{user_id}/"}

        assert handler.read(request).json()["id"] == user_id

    def test_not_found(self, handler):
        """Unknown id is 404."""
        response = handler.read(make_request("GET", "/api/v1/users/999"))

        assert response.status == HTTPStatus.NOT_FOUND
        assert response.text == "user not found"

    def test_bad_id(self, handler, storage):
        """Non-numeric id is 400 and storage is not asked."""
        response = handler.read(make_request("GET", "/api/v1/users/abc"))

        assert response.status == HTTPStatus.BAD_REQUEST
        assert storage.get_by_id_arg is None

    def test_repeated_reads_identical(self, handler, storage):
        """GET is idempotent."""
        user_id = seed(storage)
        request = make_request("GET", f"/api/v1/users/{user_id}")

        assert handler.read(request).body == handler.read(request).body

    def test_storage_failure(self, handler, storage):
        """List and single reads both give 500 on storage failure."""
        storage.return_error = StorageError("down")

        assert handler.read(make_request("GET", "/api/v1/users")).status == HTTPStatus.INTERNAL_SERVER_ERROR
        response = handler.read(make_request("GET", "/api/v1/users/1"))
        assert response.status == HTTPStatus.INTERNAL_SERVER_ERROR
        assert response.text == "internal error while reading user"

    def test_wrong_method(self, handler):
        """Non-GET is 405."""
        response = handler.read(make_request("POST", "/api/v1/users/1"))
        assert response.status == HTTPStatus.METHOD_NOT_ALLOWED


class TestUpdate:
    """Tests for UserHandler.update."""

    def test_update(self, handler, storage):
        """200 with new values and the URL id."""
        user_id = seed(storage)

        response = handler.update(make_request(
            "PUT", f"/api/v1/users/{user_id}",
            {"id": 999, "name": "Updated User", "email": "updated@example.com"},
        ))

        assert response.status == HTTPStatus.OK
        assert response.json() == {"id": user_id, "name": "Updated User", "email": "updated@example.com"}
        assert storage.users[user_id].name == "Updated User"
        assert 999 not in storage.users

    def test_not_found(self, handler, storage):
        """Unknown id is 404."""
        response = handler.update(make_request(
            "PUT", "/api/v1/users/999", {"name": "x", "email": "y"},
        ))

        assert response.status == HTTPStatus.NOT_FOUND
        assert storage.update_called is True

    def test_missing_id(self, handler, storage):
        """The collection path cannot be updated."""
        response = handler.update(make_request("PUT", "/api/v1/users", {"name": "x", "email": "y"}))

        assert response.status == HTTPStatus.BAD_REQUEST
        assert response.text == "user id is required in the path"
        assert storage.update_called is False

    def test_bad_id(self, handler):
        """Non-numeric id is 400."""
        response = handler.update(make_request("PUT", "/api/v1/users/abc", {"name": "x", "email": "y"}))
        assert response.status == HTTPStatus.BAD_REQUEST

    def test_malformed_json(self, handler, storage):
        """Decode errors are 400."""
        user_id = seed(storage)

        response = handler.update(make_request("PUT", f"/api/v1/users/{user_id}", "not json"))

        assert response.status == HTTPStatus.BAD_REQUEST
        assert response.text.startswith("invalid JSON: ")

    def test_empty_fields(self, handler, storage):
        """Empty name or email is 400."""
        user_id = seed(storage)

        response = handler.update(make_request("PUT", f"/api/v1/users/{user_id}", {"name": "x"}))

        assert response.status == HTTPStatus.BAD_REQUEST
        assert storage.update_called is False

    def test_storage_failure(self, handler, storage):
        """Storage errors are a generic 500."""
        user_id = seed(storage)
        storage.return_error = StorageError("down")

        response = handler.update(make_request("PUT", f"/api/v1/users/{user_id}", {"name": "x", "email": "y"}))

        assert response.status == HTTPStatus.INTERNAL_SERVER_ERROR
        assert response.text == "internal error while updating user"

    def test_wrong_method(self, handler):
        """Non-PUT is 405."""
        response = handler.update(make_request("PATCH", "/api/v1/users/1", {"name": "x"}))

        assert response.status == HTTPStatus.METHOD_NOT_ALLOWED
        assert response.headers["Allow"] == "PUT"


class TestDelete:
    """Tests for UserHandler.delete."""

    def test_delete(self, handler, storage):
        """204 with an empty body, then the user is gone."""
        user_id = seed(storage)

        response = handler.delete(make_request("DELETE", f"/api/v1/users/{user_id}"))

        assert response.status == HTTPStatus.NO_CONTENT
        assert response.body == b""
        assert handler.read(make_request("GET", f"/api/v1/users/{user_id}")).status == HTTPStatus.NOT_FOUND

    def test_delete_twice(self, handler, storage):
        """Second delete is 404, not 204."""
        user_id = seed(storage)
        request = make_request("DELETE", f"/api/v1/users/{user_id}")

        assert handler.delete(request).status == HTTPStatus.NO_CONTENT
        assert handler.delete(request).status == HTTPStatus.NOT_FOUND

    def test_not_found(self, handler):
        """Unknown id is 404."""
        response = handler.delete(make_request("DELETE", "/api/v1/users/999"))
        assert response.status == HTTPStatus.NOT_FOUND

    def test_missing_id(self, handler, storage):
        """The collection path cannot be deleted."""
        response = handler.delete(make_request("DELETE", "/api/v1/users/"))

        assert response.status == HTTPStatus.BAD_REQUEST
        assert storage.delete_called is False

    def test_bad_id(self, handler):
        """Non-numeric id is 400."""
        response = handler.delete(make_request("DELETE", "/api/v1/users/abc"))
        assert response.status == HTTPStatus.BAD_REQUEST

    def test_storage_failure(self, handler, storage):
        """Storage errors are a generic 500."""
        storage.return_error = StorageError("down")

        response = handler.delete(make_request("DELETE", "/api/v1/users/1"))

        assert response.status == HTTPStatus.INTERNAL_SERVER_ERROR
        assert response.text == "internal error while deleting user"
        assert storage.delete_called is True

    def test_wrong_method(self, handler):
        """Non-DELETE is 405."""
        response = handler.delete(make_request("GET", "/api/v1/users/1"))
        assert response.status == HTTPStatus.METHOD_NOT_ALLOWED


class TestDeleteThenGet:
    """GetUserByID after a successful DeleteUser always fails."""

    @pytest.mark.parametrize("count", [1, 3, 5])
    def test_every_deleted_id_is_gone(self, handler, storage, count: int):
        """Every deleted id reads back as 404 while the rest remain."""
        ids = [seed(storage, name=f"user{i}", email=f"u{i}@example.com") for i in range(count)]

        for user_id in ids[::2]:
            assert handler.delete(make_request("DELETE", f"/api/v1/users/{user_id}")).status == HTTPStatus.NO_CONTENT

        for index, user_id in enumerate(ids):
            status = handler.read(make_request("GET", f"/api/v1/users/{user_id}")).status
            expected = HTTPStatus.NOT_FOUND if index % 2 == 0 else HTTPStatus.OK
            assert status == expected
