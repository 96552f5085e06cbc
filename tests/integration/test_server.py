"""
Integration tests: the full application over a real socket.

Each test gets its own server on a free port, backed by in-memory storage.
"""

import http.client
import json
import socket
from typing import Optional, Tuple

from userapi.errors import StorageError
from userapi.storage import InMemoryUserStorage


def request(
    port: int,
    method: str,
    path: str,
    body: Optional[dict] = None,
) -> Tuple[http.client.HTTPResponse, bytes]:
    conn = http.client.HTTPConnection("127.0.0.1", port, timeout=5)
    try:
        headers = {"Content-Type": "application/json"} if body is not None else {}
        payload = json.dumps(body) if body is not None else None
        conn.request(method, path, body=payload, headers=headers)
        response = conn.getresponse()
        return response, response.read()
    finally:
        conn.close()


class TestUsersOverHTTP:
    """CRUD through the socket server."""

    def test_crud_flow(self, live_server):
        """Create, list, fetch, update, delete."""
        response, body = request(live_server.port, "POST", "/api/v1/users",
                                 {"name": "Test User", "email": "test@example.com"})
        assert response.status == 201
        assert response.getheader("Content-Type") == "application/json"
        created = json.loads(body)
        user_id = created["id"]
        assert response.getheader("Location") == f"/api/v1/users/{user_id}"

        response, body = request(live_server.port, "GET", "/api/v1/users")
        assert response.status == 200
        assert json.loads(body) == [created]

        response, body = request(live_server.port, "PUT", f"/api/v1/users/{user_id}",
                                 {"name": "Renamed", "email": "renamed@example.com"})
        assert response.status == 200
        assert json.loads(body) == {"id": user_id, "name": "Renamed", "email": "renamed@example.com"}

        response, body = request(live_server.port, "DELETE", f"/api/v1/users/{user_id}")
        assert response.status == 204
        assert response.getheader("Content-Length") is None
        assert body == b""

        response, body = request(live_server.port, "GET", f"/api/v1/users/{user_id}")
        assert response.status == 404
        assert body == b"user not found"

    def test_empty_list_is_array(self, live_server):
        """No users is [] rather than null."""
        response, body = request(live_server.port, "GET", "/api/v1/users")

        assert response.status == 200
        assert json.loads(body) == []

    def test_invalid_json(self, live_server):
        """A malformed body is 400 with a plain-text reason."""
        conn = http.client.HTTPConnection("127.0.0.1", live_server.port, timeout=5)
        try:
            conn.request("POST", "/api/v1/users", body="{not json",
                         headers={"Content-Type": "application/json"})
            response = conn.getresponse()
            body = response.read()
        finally:
            conn.close()

        assert response.status == 400
        assert response.getheader("Content-Type").startswith("text/plain")
        assert body

    def test_missing_fields(self, live_server):
        """name and email are both required."""
        response, body = request(live_server.port, "POST", "/api/v1/users", {"name": "only"})

        assert response.status == 400
        assert body == b"name and email are required"

    def test_method_not_allowed(self, live_server):
        """405 carries an Allow header."""
        response, _ = request(live_server.port, "PATCH", "/api/v1/users")

        assert response.status == 405
        assert response.getheader("Allow") == "GET, POST"

    def test_encoded_newline_in_id(self, live_server):
        """/api/v1/users/1%0A is a bad id, not user 1."""
        request(live_server.port, "POST", "/api/v1/users", {"name": "a", "email": "b"})

        response, _ = request(live_server.port, "GET", "/api/v1/users/1%0A")

        assert response.status == 400

    def test_unknown_api_path(self, live_server):
        """Paths outside the resource are 404."""
        response, _ = request(live_server.port, "GET", "/api/v1/usersfoo")
        assert response.status == 404

    def test_storage_failure(self, live_server, storage: InMemoryUserStorage):
        """Storage errors surface as 500 without details."""
        storage.return_error = StorageError("connection refused")

        response, body = request(live_server.port, "GET", "/api/v1/users")

        assert response.status == 500
        assert b"connection refused" not in body


class TestStatusAndStatic:
    """Non-API routes."""

    def test_status(self, live_server):
        """Healthy storage is 200 JSON."""
        response, body = request(live_server.port, "GET", "/status")

        assert response.status == 200
        assert json.loads(body)["status"] == "healthy"

    def test_index(self, live_server):
        """/ serves the frontend."""
        response, body = request(live_server.port, "GET", "/")

        assert response.status == 200
        assert b"<title>Users</title>" in body

    def test_request_id_header(self, live_server):
        """Every response is tagged for log correlation."""
        response, _ = request(live_server.port, "GET", "/status")
        assert response.getheader("X-Request-ID")


class TestConnectionHandling:
    """Keep-alive and malformed input."""

    def test_keep_alive(self, live_server):
        """Two requests share one connection."""
        conn = http.client.HTTPConnection("127.0.0.1", live_server.port, timeout=5)
        try:
            conn.request("GET", "/api/v1/users")
            first = conn.getresponse()
            first.read()

            conn.request("GET", "/status")
            second = conn.getresponse()
            second.read()
        finally:
            conn.close()

        assert first.status == 200
        assert second.status == 200

    def test_malformed_request_line(self, live_server):
        """Garbage on the wire is 400 and the connection closes."""
        with socket.create_connection(("127.0.0.1", live_server.port), timeout=5) as sock:
            sock.sendall(b"NONSENSE\r\n\r\n")
            data = b""
            while True:
                chunk = sock.recv(4096)
                if not chunk:
                    break
                data += chunk

        assert data.startswith(b"HTTP/1.1 400")
        assert b"Connection: close" in data
