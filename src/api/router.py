"""Method and path routing for the users API."""

import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from enum import StrEnum


class HandlerId(StrEnum):
    """Every handler a request can be routed to."""

    GET_USERS = "getUsers"
    GET_USER = "getUser"
    CREATE_USER = "createUser"
    UPDATE_USER = "updateUser"
    DELETE_USER = "deleteUser"
    NOT_FOUND = "notFound"


@dataclass(frozen=True)
class Route:
    """A compiled path pattern bound to a handler."""

    pattern: re.Pattern[str]
    handler_id: HandlerId


@dataclass(frozen=True)
class RouteMatch:
    """Result of routing: the handler plus captured path segments, in order."""

    handler_id: HandlerId
    params: tuple[str, ...] = ()


# Patterns are tried in order and must match the whole path.
USER_ROUTES: dict[str, list[tuple[str, HandlerId]]] = {
    "GET": [
        (r"/", HandlerId.GET_USERS),
        (r"/(\d+)", HandlerId.GET_USER),
    ],
    "POST": [
        (r"/", HandlerId.CREATE_USER),
    ],
    "PUT": [
        (r"/(\d+)", HandlerId.UPDATE_USER),
    ],
    "DELETE": [
        (r"/(\d+)", HandlerId.DELETE_USER),
    ],
}


class Router:
    """Ordered per-method route table; the first matching pattern wins."""

    def __init__(self, routes: Mapping[str, Sequence[tuple[str, HandlerId]]] | None = None):
        self._routes: dict[str, list[Route]] = {}
        for method, entries in (routes or {}).items():
            for pattern, handler_id in entries:
                self.add(method, pattern, handler_id)

    def add(self, method: str, pattern: str, handler_id: HandlerId) -> None:
        """Append a route for ``method``; ``\\d`` only matches ASCII digits."""
        route = Route(re.compile(pattern, re.ASCII), HandlerId(handler_id))
        self._routes.setdefault(method.upper(), []).append(route)

    def routes_for(self, method: str) -> list[Route]:
        return list(self._routes.get(method.upper(), []))

    def resolve(self, path: str, method: str) -> RouteMatch:
        """Find the handler for ``method`` and ``path``.

        Unknown methods and unmatched paths resolve to ``notFound`` with no
        params rather than raising.
        """
        for route in self._routes.get(method.upper(), []):
            match = route.pattern.fullmatch(path)
            if match:
                return RouteMatch(route.handler_id, match.groups())
        return RouteMatch(HandlerId.NOT_FOUND)


def create_router() -> Router:
    """Build the router for the users endpoints."""
    return Router(USER_ROUTES)
