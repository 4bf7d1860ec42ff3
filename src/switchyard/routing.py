"""Route table used by the dispatcher."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, MutableMapping

import rure
from rure.regex import RegexObject

from .http import ANY, WS, normalize_method

Handler = Callable[..., Any]


_PATH_PARAM_PATTERN = re.compile(r"{([a-zA-Z_][a-zA-Z0-9_]*)(?::([a-zA-Z_][a-zA-Z0-9_]*))?}")


@dataclass(slots=True, frozen=True)
class Route:
    method: str
    path: str
    handler: Handler
    pattern: RegexObject = field(repr=False, compare=False)
    param_names: tuple[str, ...] = ()

    @property
    def is_static(self) -> bool:
        return not self.param_names


@dataclass(slots=True)
class RouteMatch:
    handler: Handler | None
    params: Mapping[str, str]
    route: Route | None = None

    @property
    def found(self) -> bool:
        return self.handler is not None


class RouteTable:
    """Maps ``(verb, path pattern)`` pairs to handlers.

    ``ANY`` entries answer every wire verb for their path; ``WS`` entries are
    only ever returned for ``WS`` lookups. Storing a handler under an existing
    ``(verb, pattern)`` replaces the earlier one.
    """

    def __init__(self) -> None:
        self._routes: dict[str, dict[str, Route]] = {}

    def on(self, method: str, path: str, handler: Handler) -> Route:
        method = normalize_method(method)
        pattern, param_names = _compile_path(path)
        route = Route(method=method, path=path, handler=handler, pattern=pattern, param_names=param_names)
        self._routes.setdefault(method, {})[path] = route
        return route

    def any(self, path: str, handler: Handler) -> Route:
        return self.on(ANY, path, handler)

    def ws(self, path: str, handlers: Any) -> Route:
        return self.on(WS, path, handlers)

    @property
    def routes(self) -> list[Route]:
        return [route for table in self._routes.values() for route in table.values()]

    def find(self, method: str, path: str) -> RouteMatch:
        method = normalize_method(method)
        keys = (method,) if method == WS else (method, ANY)

        for key in keys:
            route = self._routes.get(key, {}).get(path)
            if route is not None and route.is_static:
                return RouteMatch(handler=route.handler, params={}, route=route)

        for key in keys:
            for route in self._routes.get(key, {}).values():
                if route.is_static:
                    continue
                captures = route.pattern.match(path)
                if captures is None:
                    continue
                params: MutableMapping[str, str] = {}
                for name in route.param_names:
                    group = captures.group(name)
                    if group is None:
                        continue
                    params[name] = group
                return RouteMatch(handler=route.handler, params=params, route=route)

        return RouteMatch(handler=None, params={})


_REGEX_META = frozenset(".+*?()|[]{}^$\\")


def _escape_literal(text: str) -> str:
    return "".join(f"\\{char}" if char in _REGEX_META else char for char in text)


def _compile_path(path: str) -> tuple[RegexObject, tuple[str, ...]]:
    param_names: list[str] = []
    pieces: list[str] = []
    position = 0
    for match in _PATH_PARAM_PATTERN.finditer(path):
        pieces.append(_escape_literal(path[position : match.start()]))
        name = match.group(1)
        converter = match.group(2)
        param_names.append(name)
        if converter is None or converter == "str":
            pieces.append(f"(?P<{name}>[^/]+)")
        elif converter == "path":
            pieces.append(f"(?P<{name}>.*)")
        else:
            raise ValueError(f"Unsupported path converter: {converter}")
        position = match.end()
    pieces.append(_escape_literal(path[position:]))
    pattern = "^" + "".join(pieces) + "$"
    return rure.compile(pattern), tuple(param_names)


__all__ = ["Route", "RouteMatch", "RouteTable"]
