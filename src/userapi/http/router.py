"""
=============================================================================
HTTP ROUTER
=============================================================================

Maps (method, path) to a handler through an ordered table of routes.

=============================================================================
PATTERN SYNTAX
=============================================================================

    ┌────────────────────┬──────────────────────┬─────────────────────────┐
    │ Pattern            │ Path                 │ path_params             │
    ├────────────────────┼──────────────────────┼─────────────────────────┤
    │ /api/v1/users      │ /api/v1/users        │ {}                      │
    │                    │ /api/v1/users/       │ {}   (slash normalised) │
    │ /api/v1/users/:id  │ /api/v1/users/42     │ {"id": "42"}            │
    │ /api/v1/users/*id  │ /api/v1/users/42     │ {"id": "42"}            │
    │                    │ /api/v1/users/4/2    │ {"id": "4/2"}           │
    │ /*path             │ /css/style.css       │ {"path": "css/..."}     │
    └────────────────────┴──────────────────────┴─────────────────────────┘

    :name   one path segment, no slashes
    *name   the rest of the path, slashes included (must be last)

=============================================================================
MATCHING RULES
=============================================================================

    1. The request path is normalised: "/" + path.strip("/")
    2. Routes are tried in registration order; the first one whose
       method matches (None = any method) and whose regex matches wins.
    3. No match, but the path matches under another method
           → 405 Method Not Allowed with an Allow header
    4. Otherwise
           → 404 Not Found

Because order decides, specific rows go before catch-alls:

    GET  /api/v1/users/*id     ◄── checked first
    ...
    GET  /*path                ◄── static files, checked last

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple
import re

from .request import HTTPRequest
from .response import HTTPResponse, method_not_allowed, not_found


Handler = Callable[[HTTPRequest], HTTPResponse]


@dataclass
class Route:
    """A URL pattern bound to a handler."""

    path: str
    method: Optional[str]
    handler: Handler
    name: Optional[str] = None

    _pattern: Optional[re.Pattern] = field(default=None, repr=False)
    _param_names: List[str] = field(default_factory=list, repr=False)


@dataclass
class RouteMatch:
    route: Route
    params: Dict[str, str]


class Router:
    """
    Ordered route table with :param and *wildcard patterns.

        router = Router()

        @router.get("/status")
        def status(request):
            return ok({"status": "healthy"})

        router.add_route("/api/v1/users/*id", users.read, method="GET",
                         name="user")
    """

    def __init__(self):
        self._routes: List[Route] = []
        self._named_routes: Dict[str, Route] = {}

    def add_route(
        self,
        path: str,
        handler: Handler,
        method: Optional[str] = None,
        name: Optional[str] = None,
    ) -> Route:
        """
        Register a route. A method of None matches every method.
        """
        pattern, param_names = self._compile_pattern(path)

        route = Route(
            path=path,
            method=method.upper() if method else None,
            handler=handler,
            name=name,
            _pattern=pattern,
            _param_names=param_names,
        )
        self._routes.append(route)

        if name:
            self._named_routes[name] = route

        return route

    def _compile_pattern(self, path: str) -> Tuple[re.Pattern, List[str]]:
        """
        Pattern to regex, matched against the whole path.

            "/api/v1/users/*id"
                → ^/api/v1/users/(?P<id>.*)$
        """
        param_names: List[str] = []
        regex_parts = ["^"]

        for segment in path.split("/"):
            if not segment:
                continue

            regex_parts.append("/")

            if segment.startswith(":"):
                param_name = segment[1:]
                param_names.append(param_name)
                regex_parts.append(f"(?P<{param_name}>[^/]+)")
            elif segment.startswith("*"):
                param_name = segment[1:] or "wildcard"
                param_names.append(param_name)
                regex_parts.append(f"(?P<{param_name}>.*)")
                break
            else:
                regex_parts.append(re.escape(segment))

        # A bare "/" pattern compiles to "^$" otherwise.
        if len(regex_parts) == 1:
            regex_parts.append("/")

        regex_parts.append("$")
        return re.compile("".join(regex_parts), re.DOTALL), param_names

    @staticmethod
    def _normalize(path: str) -> str:
        return "/" + path.strip("/")

    def match(self, method: str, path: str) -> Optional[RouteMatch]:
        """First route matching both method and path, or None."""
        path = self._normalize(path)
        method = method.upper()

        for route in self._routes:
            if route.method and route.method != method:
                continue
            match = route._pattern.fullmatch(path)
            if match:
                return RouteMatch(route=route, params=match.groupdict())

        return None

    def get_allowed_methods(self, path: str) -> List[str]:
        """
        Methods with an explicit route for this path, for the Allow header.
        """
        path = self._normalize(path)
        methods = set()

        for route in self._routes:
            if route.method and route._pattern.fullmatch(path):
                methods.add(route.method)

        return sorted(methods)

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        """
        Dispatch a request: the matched handler's response, or 405 / 404.
        """
        match = self.match(request.method, request.path)

        if match:
            request.path_params = match.params
            return match.route.handler(request)

        allowed = self.get_allowed_methods(request.path)
        if allowed:
            return method_not_allowed(allowed)

        return not_found(f"No route matches {request.path}")

    # ─── DECORATORS ───

    def route(
        self,
        path: str,
        method: Optional[str] = None,
        name: Optional[str] = None,
    ) -> Callable[[Handler], Handler]:
        def decorator(handler: Handler) -> Handler:
            self.add_route(path, handler, method, name)
            return handler
        return decorator

    def get(self, path: str, name: Optional[str] = None) -> Callable[[Handler], Handler]:
        return self.route(path, "GET", name)

    def post(self, path: str, name: Optional[str] = None) -> Callable[[Handler], Handler]:
        return self.route(path, "POST", name)

    def put(self, path: str, name: Optional[str] = None) -> Callable[[Handler], Handler]:
        return self.route(path, "PUT", name)

    def delete(self, path: str, name: Optional[str] = None) -> Callable[[Handler], Handler]:
        return self.route(path, "DELETE", name)

    # ─── INTROSPECTION ───

    def url_for(self, name: str, **params: str) -> Optional[str]:
        """
        Reverse routing.

            router.url_for("user", id="7")  # "/api/v1/users/7"
        """
        route = self._named_routes.get(name)
        if not route:
            return None

        url = route.path
        for param_name, value in params.items():
            url = url.replace(f":{param_name}", str(value))
            url = url.replace(f"*{param_name}", str(value))
        return url

    def routes(self) -> List[Route]:
        return list(self._routes)
