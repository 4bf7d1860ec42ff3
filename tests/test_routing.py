from __future__ import annotations

import pytest

from switchyard.routing import RouteTable


def handler(ctx):
    return ctx


def other(ctx):
    return ctx


def test_find_static_route() -> None:
    table = RouteTable()
    route = table.on("GET", "/items", handler)

    match = table.find("GET", "/items")
    assert match.found
    assert match.handler is handler
    assert match.route is route
    assert match.params == {}


def test_find_extracts_path_parameters() -> None:
    table = RouteTable()
    table.on("GET", "/items/{item_id}/tags/{tag}", handler)

    match = table.find("get", "/items/42/tags/blue")
    assert match.handler is handler
    assert match.params == {"item_id": "42", "tag": "blue"}


def test_parameter_does_not_span_segments() -> None:
    table = RouteTable()
    table.on("GET", "/items/{item_id}", handler)

    assert table.find("GET", "/items/42/details").handler is None


def test_path_converter_consumes_rest_of_path() -> None:
    table = RouteTable()
    table.on("GET", "/static/{filepath:path}", handler)

    match = table.find("GET", "/static/css/app.css")
    assert match.params == {"filepath": "css/app.css"}


def test_unknown_converter_is_rejected() -> None:
    table = RouteTable()
    with pytest.raises(ValueError):
        table.on("GET", "/items/{item:uuid}", handler)


def test_literal_segments_are_matched_exactly() -> None:
    table = RouteTable()
    table.on("GET", "/files/{name}.txt", handler)

    assert table.find("GET", "/files/report.txt").params == {"name": "report"}
    assert table.find("GET", "/files/reportXtxt").handler is None


def test_miss_returns_empty_match() -> None:
    table = RouteTable()
    table.on("GET", "/items", handler)

    match = table.find("POST", "/items")
    assert match.handler is None
    assert not match.found
    assert match.params == {}


def test_reregistering_replaces_the_route() -> None:
    table = RouteTable()
    table.on("GET", "/items", handler)
    table.on("GET", "/items", other)

    assert table.find("GET", "/items").handler is other
    assert len(table.routes) == 1


def test_any_answers_every_wire_verb() -> None:
    table = RouteTable()
    table.any("/anything", handler)

    for method in ("GET", "POST", "PATCH", "DELETE"):
        assert table.find(method, "/anything").handler is handler


def test_specific_verb_wins_over_any() -> None:
    table = RouteTable()
    table.any("/items", handler)
    table.on("POST", "/items", other)

    assert table.find("POST", "/items").handler is other
    assert table.find("GET", "/items").handler is handler


def test_static_route_wins_over_parameterised_route() -> None:
    table = RouteTable()
    table.on("GET", "/items/{item_id}", handler)
    table.on("GET", "/items/new", other)

    assert table.find("GET", "/items/new").handler is other
    assert table.find("GET", "/items/7").handler is handler


def test_websocket_routes_are_isolated() -> None:
    table = RouteTable()
    handlers = object()
    table.ws("/socket", handlers)
    table.any("/other", handler)

    assert table.find("WS", "/socket").handler is handlers
    assert table.find("GET", "/socket").handler is None
    assert table.find("WS", "/other").handler is None


def test_routes_lists_every_registration() -> None:
    table = RouteTable()
    table.on("GET", "/a", handler)
    table.on("POST", "/a", other)
    table.any("/b", handler)

    registered = {(route.method, route.path) for route in table.routes}
    assert registered == {("GET", "/a"), ("POST", "/a"), ("ANY", "/b")}
