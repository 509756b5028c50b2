import json
from dataclasses import dataclass

import pytest

from barf.config import PARAMS_CTX_KEY
from barf.request import Body, Params, Query, Request, body, params, query
from barf.web import HTTPRequest


@dataclass
class Person:
    name: str = ""
    age: int = 0


def test_body_json_round_trip():
    payload = {"name": "ada", "age": 36}
    request = HTTPRequest(method="POST", body=json.dumps(payload).encode())
    assert body(request).json() == payload


def test_body_format_into_dataclass_ignores_unknown_keys():
    request = HTTPRequest(body=b'{"name": "ada", "age": 36, "extra": true}')
    assert body(request).format(Person) == Person(name="ada", age=36)


def test_body_format_missing_keys_use_defaults():
    assert Body(b'{"name": "ada"}').format(Person) == Person(name="ada")


def test_body_format_with_plain_factory():
    assert Body(b'{"a": 1}').format(dict) == {"a": 1}


def test_body_invalid_json_raises():
    with pytest.raises(ValueError):
        Body(b"").json()
    with pytest.raises(ValueError):
        Body(b"{not json").json()


def test_body_json_rejects_array_and_accepts_null():
    with pytest.raises(ValueError):
        Body(b"[1, 2]").json()
    assert Body(b"null").json() is None


def test_params_without_context_is_empty_object():
    assert params(HTTPRequest()) == b"{}"
    assert params(HTTPRequest()).json() == {}


def test_params_round_trip_from_context():
    request = HTTPRequest().with_context(**{PARAMS_CTX_KEY: {"username": "ada", "id": "7"}})
    assert params(request).json() == {"username": "ada", "id": "7"}


def test_params_json_rejects_non_string_values():
    with pytest.raises(ValueError):
        Params(b'{"id": 7}').json()


def test_query_takes_first_value_and_keeps_blanks():
    request = HTTPRequest(raw_query="a=1&a=2&b=&c=x%20y")
    assert query(request).json() == {"a": "1", "b": "", "c": "x y"}


def test_query_empty():
    assert query(HTTPRequest()).json() == {}


def test_query_format_into_dataclass():
    data = Query(b'{"name": "ada", "page": "2"}').format(Person)
    assert data == Person(name="ada")


def test_request_wrapper_matches_functions():
    http_request = HTTPRequest(
        body=b'{"name": "ada"}',
        raw_query="q=search",
        context={PARAMS_CTX_KEY: {"username": "ada"}},
    )
    wrapped = Request(http_request)
    assert wrapped.body() == body(http_request)
    assert wrapped.params().json() == {"username": "ada"}
    assert wrapped.query().json() == {"q": "search"}


def test_request_body_keeps_raw_bytes():
    raw = b'{"name":"ada"}'
    assert bytes(Request(HTTPRequest(body=raw)).body()) == raw