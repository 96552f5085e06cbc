"""
Unit tests for URL router.
"""

from userapi.http.router import Router
from userapi.http.request import HTTPRequest
from userapi.http.response import HTTPResponse, ResponseBuilder, HTTPStatus


def make_request(method: str, path: str) -> HTTPRequest:
    """Helper to create a request for testing."""
    return HTTPRequest(method=method, path=path)


def dummy_handler(request: HTTPRequest) -> HTTPResponse:
    """Dummy handler for testing."""
    return ResponseBuilder().json({"path": request.path}).build()


class TestRouter:
    """Tests for Router class."""

    def test_add_route(self):
        """Routes keep their path and upper-cased method."""
        router = Router()
        router.add_route("/users", dummy_handler, method="get")

        routes = router.routes()
        assert len(routes) == 1
        assert routes[0].path == "/users"
        assert routes[0].method == "GET"

    def test_match_with_method(self):
        """Same path, different methods, different routes."""
        router = Router()
        router.add_route("/users", dummy_handler, method="GET", name="list")
        router.add_route("/users", dummy_handler, method="POST", name="create")

        assert router.match("GET", "/users").route.name == "list"
        assert router.match("POST", "/users").route.name == "create"

    def test_match_dynamic_params(self):
        """:param captures exactly one segment."""
        router = Router()
        router.add_route("/users/:user_id/posts/:post_id", dummy_handler, method="GET")

        assert router.match("GET", "/users/123").params == {"id": "123"}
        assert router.match("GET", "/users/456/posts/789").params == {
            "user_id": "456",
            "post_id": "789",
        }

    def test_match_wildcard(self):
        """*param captures the rest of the path, slashes included."""
        router = Router()
        router.add_route("/api/v1/users/*id", dummy_handler, method="GET")

        assert router.match("GET", "/api/v1/users/42").params == {"id": "42"}
        assert router.match("GET", "/api/v1/users/1/2").params == {"id": "1/2"}

    def test_wildcard_does_not_match_bare_prefix(self):
        """The collection path is not an item path."""
        router = Router()
        router.add_route("/api/v1/users/*id", dummy_handler, method="GET")

        assert router.match("GET", "/api/v1/users") is None

    def test_root_pattern(self):
        """"/" matches only the root."""
        router = Router()
        router.add_route("/", dummy_handler, method="GET")

        assert router.match("GET", "/") is not None
        assert router.match("GET", "/other") is None

    def test_trailing_slash_normalized(self):
        """A trailing slash is ignored when matching."""
        router = Router()
        router.add_route("/api/v1/users", dummy_handler, method="GET")

        assert router.match("GET", "/api/v1/users/") is not None

    def test_prefix_is_not_a_partial_match(self):
        """Literal segments match whole segments only."""
        router = Router()
        router.add_route("/api/v1/users", dummy_handler, method="GET")

        assert router.match("GET", "/api/v1/usersfoo") is None

    def test_trailing_newline_is_not_the_path(self):
        """A decoded %0A after a literal path is not a match."""
        router = Router()
        router.add_route("/api/v1/users", dummy_handler, method="GET")

        assert router.match("GET", "/api/v1/users\n") is None
        assert router.get_allowed_methods("/api/v1/users\n") == []

    def test_wildcard_keeps_newlines(self):
        """*param hands a newline through for the handler to reject."""
        router = Router()
        router.add_route("/api/v1/users/*id", dummy_handler, method="GET")

        assert router.match("GET", "/api/v1/users/1\n").params == {"id": "1\n"}

    def test_any_method_route(self):
        """method=None matches every method."""
        router = Router()
        router.add_route("/anything", dummy_handler)

        for method in ("GET", "POST", "PATCH", "OPTIONS"):
            assert router.match(method, "/anything") is not None

    def test_first_match_wins(self):
        """Earlier routes shadow later ones."""
        router = Router()
        router.add_route("/users", dummy_handler, method="GET", name="first")
        router.add_route("/users", dummy_handler, name="fallback")

        assert router.match("GET", "/users").route.name == "first"
        assert router.match("PUT", "/users").route.name == "fallback"

    def test_get_allowed_methods(self):
        """Only explicit methods count towards Allow."""
        router = Router()
        router.add_route("/users", dummy_handler, method="GET")
        router.add_route("/users", dummy_handler, method="POST")
        router.add_route("/users", dummy_handler, method="DELETE")
        router.add_route("/users", dummy_handler)

        assert router.get_allowed_methods("/users") == ["DELETE", "GET", "POST"]

    def test_handle_success(self):
        """Matched handler's response is returned."""
        router = Router()

        @router.get("/hello")
        def hello(request):
            return ResponseBuilder().text("Hello!").build()

        response = router.handle(make_request("GET", "/hello"))

        assert response.status == HTTPStatus.OK
        assert response.body == b"Hello!"

    def test_handle_not_found(self):
        """Unknown paths give 404."""
        router = Router()
        router.add_route("/users", dummy_handler, method="GET")

        response = router.handle(make_request("GET", "/posts"))

        assert response.status == HTTPStatus.NOT_FOUND
        assert response.text == "No route matches /posts"

    def test_handle_method_not_allowed(self):
        """Known path, wrong method gives 405 with Allow."""
        router = Router()
        router.add_route("/users", dummy_handler, method="GET")

        response = router.handle(make_request("POST", "/users"))

        assert response.status == HTTPStatus.METHOD_NOT_ALLOWED
        assert response.headers["Allow"] == "GET"

    def test_path_params_in_request(self):
        """Path params are injected into the request."""
        router = Router()
        captured_params = {}

        @router.get("/users/:id")
        def get_user(request):
            captured_params.update(request.path_params)
            return ResponseBuilder().json(request.path_params).build()

        router.handle(make_request("GET", "/users/42"))

        assert captured_params == {"id": "42"}


class TestRouterDecorators:
    """Tests for decorator-style route registration."""

    def test_method_decorators(self):
        """get/post/put/delete register with their method."""
        router = Router()

        @router.get("/a")
        @router.post("/b")
        @router.put("/c")
        @router.delete("/d")
        def handler(request):
            return ResponseBuilder().text("test").build()

        methods = {route.path: route.method for route in router.routes()}
        assert methods == {"/a": "GET", "/b": "POST", "/c": "PUT", "/d": "DELETE"}

    def test_decorator_returns_handler(self):
        """Decorated functions stay callable."""
        router = Router()

        @router.get("/test")
        def handler(request):
            return ResponseBuilder().text("test").build()

        assert handler(make_request("GET", "/test")).body == b"test"


class TestRouterURLGeneration:
    """Tests for URL generation."""

    def test_url_for_static(self):
        """Routes without params return their path."""
        router = Router()
        router.add_route("/api/v1/users", dummy_handler, name="users")

        assert router.url_for("users") == "/api/v1/users"

    def test_url_for_with_params(self):
        """:param and *param placeholders are filled in."""
        router = Router()
        router.add_route("/users/:id/posts/:post_id", dummy_handler, name="user_post")
        router.add_route("/api/v1/users/*id", dummy_handler, name="user")

        assert router.url_for("user_post", id="123", post_id="456") == "/users/123/posts/456"
        assert router.url_for("user", id=7) == "/api/v1/users/7"

    def test_url_for_unknown(self):
        """Unknown names give None."""
        assert Router().url_for("nonexistent") is None
