import json

import pytest

from barf.config import PARAMS_CTX_KEY
from barf.router import (
    METHODS,
    Route,
    RouteTable,
    dispatcher,
    params,
    strip_slashes,
)
from barf.web import HTTPRequest, ResponseWriter, write_json


def _noop(writer, request):
    pass


@pytest.mark.parametrize(
    "raw, expected",
    [("///a/b//", "a/b"), ("/", ""), ("users", "users"), ("/x/", "x")],
)
def test_strip_slashes(raw, expected):
    assert strip_slashes(raw) == expected


def test_params_extracts_named_segments():
    assert params("users/42/posts/7", "users/:id/posts/:post") == {"id": "42", "post": "7"}


def test_params_length_mismatch_is_empty():
    assert params("users/42/extra", "users/:id") == {}


def test_register_normalises_path():
    table = RouteTable()
    route = Route(path="//users/", method="get", handler=_noop)
    table.register(route)
    assert route.path == "users"
    assert table.lookup("/users", "get").handler is _noop


@pytest.mark.parametrize("path", ["/", "", "///"])
def test_root_route(path):
    table = RouteTable()
    table.get("/", _noop)
    found = table.lookup(path, "get")
    assert found.path == "/"


def test_lookup_with_parameters():
    table = RouteTable()
    table.get("/users/:id", _noop)
    found = table.lookup("/users/42/", "get")
    assert found.params == {"id": "42"}
    assert found.handler is _noop


def test_lookup_method_mismatch_and_unknown():
    table = RouteTable()
    table.post("/users/:id", _noop)
    assert table.lookup("/users/1", "get") is None
    assert table.lookup("/nothing", "post") is None


def test_exact_match_preferred_over_pattern():
    table = RouteTable()

    def exact(writer, request):
        pass

    table.get("/users/:id", _noop)
    table.get("/users/me", exact)
    assert table.lookup("users/me", "get").handler is exact
    assert table.lookup("users/you", "get").handler is _noop


def test_lookup_does_not_change_stored_route():
    table = RouteTable()
    table.get("/users/:id", _noop)
    table.lookup("/users/1", "get")
    again = table.lookup("/users/:id", "get")
    assert again.params == {}


def test_each_verb_registers_its_method():
    table = RouteTable()
    table.get("/a", _noop)
    table.post("/a", _noop)
    table.put("/a", _noop)
    table.patch("/a", _noop)
    table.delete("/a", _noop)
    for method in ("get", "post", "put", "patch", "delete"):
        assert table.lookup("/a", method).method == method
    assert table.lookup("/a", "head") is None


def test_any_route_registers_all_methods():
    table = RouteTable()
    table.any_route("/all", _noop)
    assert [table.lookup("/all", m).method for m in METHODS] == list(METHODS)


def test_retro_frame_routes():
    table = RouteTable()
    sub = table.retro_frame("/api/v1/")
    assert sub.entry == "api/v1"
    sub.get("/home", _noop)
    found = table.lookup("/api/v1/home", "get")
    assert found.retro_frame is True
    assert found.retro_frame_entry == sub.key
    assert table.reframe(found) is sub


def test_retro_frames_with_same_path_are_distinct():
    table = RouteTable()
    first = table.retro_frame("/api")
    second = table.retro_frame("/api")
    assert first.key != second.key
    second.post("/about", _noop)
    found = table.lookup("/api/about", "post")
    assert table.reframe(found) is second


def test_sub_route_any_route_is_not_bound_to_frame():
    table = RouteTable()
    sub = table.retro_frame("/api")
    sub.any_route("/x", _noop)
    found = table.lookup("/api/x", "delete")
    assert found.retro_frame is False
    assert table.reframe(found) is None


def test_reframe_of_plain_route_is_none():
    table = RouteTable()
    table.get("/plain", _noop)
    assert table.reframe(table.lookup("/plain", "get")) is None


def test_dispatcher_not_found():
    table = RouteTable()
    calls = []
    handler = dispatcher(table, write_json)(lambda w, r: calls.append("next"))
    writer = ResponseWriter()
    handler(writer, HTTPRequest(method="GET", path="/missing/"))
    assert writer.status == 404
    assert json.loads(writer.body) == {
        "status": False,
        "message": "Path /missing for method GET not found",
        "data": None,
    }
    assert calls == ["next"]


def test_dispatcher_calls_handler_with_params_then_next():
    table = RouteTable()
    calls = []

    def route_handler(writer, request):
        calls.append("route")
        write_json(writer, True, 200, "ok", request.context[PARAMS_CTX_KEY])

    def next_handler(writer, request):
        calls.append(("next", request.context.get(PARAMS_CTX_KEY)))

    table.get("/users/:name", route_handler)
    handler = dispatcher(table, write_json)(next_handler)
    writer = ResponseWriter()
    handler(writer, HTTPRequest(method="GET", path="/users/ada"))
    assert writer.status == 200
    assert json.loads(writer.body) == {
        "status": True,
        "message": "ok",
        "data": {"name": "ada"},
    }
    assert calls == ["route", ("next", None)]


def test_dispatcher_wraps_next_with_sub_route_stack():
    table = RouteTable()
    events = []

    def layer(name):
        def middleware(handler):
            def wrapped(writer, request):
                events.append(f"before {name}")
                handler(writer, request)
                events.append(f"after {name}")

            return wrapped

        return middleware

    sub = table.retro_frame("/api")
    sub.stack.extend([layer("0"), layer("1")])
    sub.get("/home", lambda w, r: events.append("route"))
    handler = dispatcher(table, write_json)(lambda w, r: events.append("next"))
    handler(ResponseWriter(), HTTPRequest(method="GET", path="/api/home"))
    assert events == [
        "route",
        "before 0",
        "before 1",
        "next",
        "after 1",
        "after 0",
    ]


def test_dispatcher_plain_route_skips_sub_stack():
    table = RouteTable()
    events = []
    sub = table.retro_frame("/api")
    sub.stack.append(lambda h: (lambda w, r: events.append("layer")))
    table.get("/plain", lambda w, r: events.append("route"))
    handler = dispatcher(table, write_json)(lambda w, r: events.append("next"))
    handler(ResponseWriter(), HTTPRequest(method="GET", path="/plain"))
    assert events == ["route", "next"]