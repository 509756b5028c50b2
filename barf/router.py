"""Route table, sub-routers (retro frames) and the dispatching middleware."""

from __future__ import annotations

import dataclasses
import itertools
import re
from dataclasses import dataclass, field
from http import HTTPStatus
from typing import Optional

from barf.config import PARAMS_CTX_KEY
from barf.web import Handler, HTTPRequest, Middleware, Responder, ResponseWriter

GET = "get"
POST = "post"
PUT = "put"
PATCH = "patch"
DELETE = "delete"
HEAD = "head"
OPTIONS = "options"

METHODS = (GET, POST, PUT, PATCH, DELETE, HEAD, OPTIONS)

_EDGE_SLASHES = re.compile(r"^/+|/+$")


def strip_slashes(path: str) -> str:
    """Remove every leading and trailing slash from path."""
    return _EDGE_SLASHES.sub("", path)


def _normalize(path: str) -> str:
    return strip_slashes(path) or "/"


def params(path: str, route: str) -> dict[str, str]:
    """Return the values of route's ":name" segments taken from path."""
    path_parts = path.split("/")
    route_parts = route.split("/")
    if len(path_parts) != len(route_parts):
        return {}
    return {
        part[1:]: value
        for part, value in zip(route_parts, path_parts)
        if part.startswith(":")
    }


@dataclass
class Route:
    """A handler registered for a path and a (lower case) method."""

    path: str
    method: str
    handler: Optional[Handler] = None
    query: dict[str, str] = field(default_factory=dict)
    params: dict[str, str] = field(default_factory=dict)
    retro_frame: bool = False
    retro_frame_entry: str = ""


@dataclass(eq=False)
class SubRoute:
    """A group of routes sharing an entry path and a middleware stack."""

    entry: str
    key: str
    table: "RouteTable" = field(repr=False)
    stack: list[Middleware] = field(default_factory=list)
    routes: list[Route] = field(default_factory=list)

    def __call__(self, writer: ResponseWriter, request: HTTPRequest) -> None:
        """A sub-router serves nothing by itself."""

    def _full_path(self, path: str) -> str:
        return f"/{self.entry}/{strip_slashes(path)}"

    def _add(self, method: str, path: str, handler: Handler) -> None:
        route = Route(
            path=self._full_path(path),
            method=method,
            handler=handler,
            retro_frame=True,
            retro_frame_entry=self.key,
        )
        self.table.register(route)
        self.routes.append(route)

    def get(self, path: str, handler: Handler) -> None:
        """Register a GET route under the entry path."""
        self._add(GET, path, handler)

    def post(self, path: str, handler: Handler) -> None:
        """Register a POST route under the entry path."""
        self._add(POST, path, handler)

    def put(self, path: str, handler: Handler) -> None:
        """Register a PUT route under the entry path."""
        self._add(PUT, path, handler)

    def patch(self, path: str, handler: Handler) -> None:
        """Register a PATCH route under the entry path."""
        self._add(PATCH, path, handler)

    def delete(self, path: str, handler: Handler) -> None:
        """Register a DELETE route under the entry path."""
        self._add(DELETE, path, handler)

    def any_route(self, path: str, handler: Handler) -> None:
        """Register a route for every method under the entry path.

        These routes are not bound to the sub-router's middleware stack.
        """
        full = self._full_path(path)
        for method in METHODS:
            route = Route(path=full, method=method, handler=handler)
            self.table.register(route)
            self.routes.append(route)


class RouteTable:
    """Registered routes keyed by path and method, plus known sub-routers."""

    def __init__(self) -> None:
        self._routes: dict[str, dict[str, Route]] = {}
        self._subroutes: dict[str, SubRoute] = {}
        self._keys = itertools.count(1)

    def register(self, route: Route) -> None:
        """Store route under its normalised path and method."""
        route.path = _normalize(route.path)
        self._routes.setdefault(route.path, {})[route.method] = route

    def lookup(self, path: str, method: str) -> Optional[Route]:
        """Return a copy of the route matching path and method, or None.

        An exact path wins; otherwise the first pattern with ":name"
        segments that fits supplies the route and its parameters.
        """
        path = _normalize(path)
        exact = self._routes.get(path, {}).get(method)
        if exact is not None:
            return dataclasses.replace(exact, params={})

        segments = path.split("/")
        for pattern, by_method in self._routes.items():
            candidate = by_method.get(method)
            variables = pattern.split("/")
            if candidate is None or len(variables) != len(segments):
                continue
            if all(
                variable == segment or variable.startswith(":")
                for variable, segment in zip(variables, segments)
            ):
                return dataclasses.replace(candidate, params=params(path, pattern))
        return None

    def reframe(self, route: Route) -> Optional[SubRoute]:
        """Return the sub-router a route was registered on, if any."""
        return self._subroutes.get(route.retro_frame_entry)

    def retro_frame(self, path: str) -> SubRoute:
        """Create a new sub-router with the given entry path."""
        sub = SubRoute(
            entry=strip_slashes(path),
            key=f"retroframe-{next(self._keys)}",
            table=self,
        )
        self._subroutes[sub.key] = sub
        return sub

    def _add(self, method: str, path: str, handler: Handler) -> None:
        self.register(Route(path=path, method=method, handler=handler))

    def get(self, path: str, handler: Handler) -> None:
        """Register a GET route."""
        self._add(GET, path, handler)

    def post(self, path: str, handler: Handler) -> None:
        """Register a POST route."""
        self._add(POST, path, handler)

    def put(self, path: str, handler: Handler) -> None:
        """Register a PUT route."""
        self._add(PUT, path, handler)

    def patch(self, path: str, handler: Handler) -> None:
        """Register a PATCH route."""
        self._add(PATCH, path, handler)

    def delete(self, path: str, handler: Handler) -> None:
        """Register a DELETE route."""
        self._add(DELETE, path, handler)

    def any_route(self, path: str, handler: Handler) -> None:
        """Register a route for every method."""
        for method in METHODS:
            self._add(method, path, handler)


def dispatcher(table: RouteTable, respond: Responder) -> Middleware:
    """Middleware routing each request to its handler before calling the next one.

    Unknown routes are answered with a 404 through respond. A route on a
    sub-router has that sub-router's middleware wrapped around the next handler.
    """

    def middleware(next_handler: Handler) -> Handler:
        def route_request(writer: ResponseWriter, request: HTTPRequest) -> None:
            following = next_handler
            route = table.lookup(request.path, request.method.lower())
            if route is None or route.handler is None:
                respond(
                    writer,
                    False,
                    HTTPStatus.NOT_FOUND,
                    f"Path /{strip_slashes(_normalize(request.path))} for method "
                    f"{request.method.upper()} not found",
                    None,
                )
            else:
                if route.retro_frame:
                    sub = table.reframe(route)
                    if sub is not None:
                        for layer in reversed(sub.stack):
                            following = layer(following)
                routed = request.with_context(**{PARAMS_CTX_KEY: route.params})
                route.handler(writer, routed)
            following(writer, request)

        return route_request

    return middleware