"""Access to a request's body, path parameters and query as JSON."""

from __future__ import annotations

import dataclasses
import json
from typing import Any, Callable, Optional, TypeVar

from barf.config import PARAMS_CTX_KEY
from barf.web import HTTPRequest

T = TypeVar("T")


def _encode(mapping: dict[str, str]) -> bytes:
    return json.dumps(
        mapping, sort_keys=True, separators=(",", ":"), ensure_ascii=False
    ).encode("utf-8")


def _decode_object(raw: bytes, strings_only: bool) -> Optional[dict[str, Any]]:
    data = json.loads(raw)
    if data is None:
        return None
    if not isinstance(data, dict):
        raise ValueError(f"cannot decode JSON {type(data).__name__} into an object")
    if strings_only and any(not isinstance(value, str) for value in data.values()):
        raise ValueError("cannot decode JSON object with non-string values")
    return data


def _build(factory: Callable[..., T], raw: bytes) -> T:
    data = json.loads(raw)
    if isinstance(factory, type) and dataclasses.is_dataclass(factory):
        if not isinstance(data, dict):
            raise ValueError(
                f"cannot decode JSON {type(data).__name__} into {factory.__name__}"
            )
        names = {item.name for item in dataclasses.fields(factory) if item.init}
        return factory(**{key: value for key, value in data.items() if key in names})
    return factory(data)


class Body(bytes):
    """The raw request body."""

    def json(self) -> Optional[dict[str, Any]]:
        """Decode the body as a JSON object; raise ValueError if it is not one."""
        return _decode_object(self, strings_only=False)

    def format(self, factory: Callable[..., T]) -> T:
        """Decode the body and build a value with factory.

        A dataclass factory receives the object's matching keys as keyword
        arguments; unknown keys are ignored. Any other factory is called with
        the decoded value.
        """
        return _build(factory, self)


class Params(bytes):
    """The request's path parameters encoded as JSON."""

    def json(self) -> Optional[dict[str, str]]:
        """Decode the parameters as a mapping of strings."""
        return _decode_object(self, strings_only=True)

    def format(self, factory: Callable[..., T]) -> T:
        """Decode the parameters and build a value with factory."""
        return _build(factory, self)


class Query(bytes):
    """The request's query (first value of each key) encoded as JSON."""

    def json(self) -> Optional[dict[str, str]]:
        """Decode the query as a mapping of strings."""
        return _decode_object(self, strings_only=True)

    def format(self, factory: Callable[..., T]) -> T:
        """Decode the query and build a value with factory."""
        return _build(factory, self)


def body(request: HTTPRequest) -> Body:
    """Return the body of request."""
    return Body(request.body)


def params(request: HTTPRequest) -> Params:
    """Return the path parameters stored in request's context, or an empty object."""
    found = request.context.get(PARAMS_CTX_KEY)
    return Params(_encode(dict(found) if found is not None else {}))


def query(request: HTTPRequest) -> Query:
    """Return the first value of each query key of request."""
    first = {key: values[0] for key, values in request.query_values.items() if values}
    return Query(_encode(first))


class Request:
    """A request prepared for reading its body, parameters and query."""

    def __init__(self, http_request: HTTPRequest) -> None:
        self.http_request = http_request

    def body(self) -> Body:
        return body(self.http_request)

    def params(self) -> Params:
        return params(self.http_request)

    def query(self) -> Query:
        return query(self.http_request)