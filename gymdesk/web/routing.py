"""Route classification and the access gate."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Final

from gymdesk.exceptions import ConfigError
from gymdesk.models.domain import Principal, is_anonymous
from gymdesk.types import AccessDecision, RouteClass

PROTECTED_PREFIXES: Final = ("/dashboard", "/members", "/classes", "/trainers", "/settings", "/profile")
AUTH_ONLY_PREFIXES: Final = ("/login", "/signup")


class RouteTable:
    """Fixed mapping from path prefix to route class.

    Prefixes of different classes may not overlap (neither may be a prefix
    of the other), so lookup order never changes the answer.
    """

    def __init__(self, table: Mapping[RouteClass, Iterable[str]]) -> None:
        self._entries: list[tuple[str, RouteClass]] = []
        for route_class, prefixes in table.items():
            if route_class == RouteClass.PUBLIC:
                raise ConfigError("PUBLIC is the default class and takes no prefixes")
            for prefix in prefixes:
                if not prefix.startswith("/"):
                    raise ConfigError(f"Route prefix must start with '/': {prefix!r}")
                self._entries.append((prefix, route_class))

        for i, (a, class_a) in enumerate(self._entries):
            for b, class_b in self._entries[i + 1 :]:
                if class_a != class_b and (a.startswith(b) or b.startswith(a)):
                    raise ConfigError(f"Route prefixes overlap: {a!r} ({class_a}) and {b!r} ({class_b})")

    def classify(self, path: str) -> RouteClass:
        for prefix, route_class in self._entries:
            if path.startswith(prefix):
                return route_class
        return RouteClass.PUBLIC


DEFAULT_ROUTES: Final = RouteTable(
    {
        RouteClass.PROTECTED: PROTECTED_PREFIXES,
        RouteClass.AUTH_ONLY: AUTH_ONLY_PREFIXES,
    }
)


def classify(path: str, table: RouteTable = DEFAULT_ROUTES) -> RouteClass:
    """Classify a request path. Case-sensitive prefix match."""
    return table.classify(path)


def decide(principal: Principal, route_class: RouteClass) -> AccessDecision:
    """Apply the gate rules in order: protect, bounce signed-in users, allow."""
    if route_class == RouteClass.PROTECTED and is_anonymous(principal):
        return AccessDecision.REDIRECT_LOGIN
    if route_class == RouteClass.AUTH_ONLY and not is_anonymous(principal):
        return AccessDecision.REDIRECT_HOME
    return AccessDecision.ALLOW
