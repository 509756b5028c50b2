"""HTTP primitives: headers, requests, response writers and JSON responses."""

from __future__ import annotations

import base64
import dataclasses
import json
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from http import HTTPStatus
from typing import Any, Callable, Optional, Union
from urllib.parse import parse_qs

_TOKEN_CHARS = frozenset(
    "!#$%&'*+-.^_`|~0123456789"
    "abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ"
)

_HTML_ESCAPES = (
    ("<", "\\u003c"),
    (">", "\\u003e"),
    ("&", "\\u0026"),
    ("\u2028", "\\u2028"),
    ("\u2029", "\\u2029"),
)


def canonical_header_key(key: str) -> str:
    """Return the canonical form of a header name.

    Names holding characters that are not valid in a header token are
    returned unchanged.
    """
    if not key or any(ch not in _TOKEN_CHARS for ch in key):
        return key
    return "-".join(part[:1].upper() + part[1:].lower() for part in key.split("-"))


def status_text(code: int) -> str:
    """Return the reason phrase for an HTTP status code, or "" if unknown."""
    try:
        return HTTPStatus(code).phrase
    except ValueError:
        return ""


class Headers:
    """A case-insensitive multi-valued header map."""

    def __init__(
        self,
        initial: Union[Mapping[str, str], Iterable[tuple[str, str]], None] = None,
    ) -> None:
        self._values: dict[str, list[str]] = {}
        if initial is not None:
            pairs = initial.items() if isinstance(initial, Mapping) else initial
            for name, value in pairs:
                self.add(name, value)

    def get(self, name: str) -> str:
        """Return the first value for name, or "" if there is none."""
        values = self._values.get(canonical_header_key(name))
        return values[0] if values else ""

    def values(self, name: str) -> list[str]:
        """Return every value stored for name."""
        return list(self._values.get(canonical_header_key(name), []))

    def set(self, name: str, value: str) -> None:
        """Replace all values of name with value."""
        self._values[canonical_header_key(name)] = [value]

    def add(self, name: str, value: str) -> None:
        """Append value to the values of name."""
        self._values.setdefault(canonical_header_key(name), []).append(value)

    def delete(self, name: str) -> None:
        """Remove every value of name."""
        self._values.pop(canonical_header_key(name), None)

    def items(self) -> Iterator[tuple[str, str]]:
        """Yield every (name, value) pair in insertion order."""
        for name, values in self._values.items():
            for value in values:
                yield name, value

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and canonical_header_key(name) in self._values

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"Headers({self._values!r})"


@dataclass
class HTTPRequest:
    """An incoming HTTP request."""

    method: str = "GET"
    path: str = "/"
    raw_query: str = ""
    headers: Headers = field(default_factory=Headers)
    body: bytes = b""
    proto: str = "HTTP/1.1"
    remote_addr: str = ""
    context: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_environ(cls, environ: Mapping[str, Any]) -> "HTTPRequest":
        """Build a request from a WSGI environment."""
        headers = Headers()
        for key, value in environ.items():
            if key.startswith("HTTP_"):
                headers.add(key[5:].replace("_", "-"), value)
        for key in ("CONTENT_TYPE", "CONTENT_LENGTH"):
            if environ.get(key):
                headers.set(key.replace("_", "-"), environ[key])
        try:
            length = int(environ.get("CONTENT_LENGTH") or 0)
        except ValueError:
            length = 0
        stream = environ.get("wsgi.input")
        body = stream.read(length) if stream is not None and length > 0 else b""
        return cls(
            method=str(environ.get("REQUEST_METHOD", "GET")).upper(),
            path=environ.get("PATH_INFO") or "/",
            raw_query=environ.get("QUERY_STRING", ""),
            headers=headers,
            body=body,
            proto=environ.get("SERVER_PROTOCOL", "HTTP/1.1"),
            remote_addr=environ.get("REMOTE_ADDR", ""),
        )

    def with_context(self, **kwargs: Any) -> "HTTPRequest":
        """Return a shallow copy whose context also holds the given values."""
        return dataclasses.replace(self, context={**self.context, **kwargs})

    @property
    def user_agent(self) -> str:
        return self.headers.get("User-Agent")

    @property
    def query_values(self) -> dict[str, list[str]]:
        """The parsed query string."""
        return parse_qs(self.raw_query, keep_blank_values=True)


class ResponseWriter:
    """Collects the status, headers and body of a response."""

    def __init__(self) -> None:
        self.headers = Headers()
        self.status = 0
        self._body = bytearray()
        self._wrote_header = False

    @property
    def wrote_header(self) -> bool:
        return self._wrote_header

    @property
    def body(self) -> bytes:
        return bytes(self._body)

    def write_header(self, status: int) -> None:
        """Send the status code; later calls are ignored."""
        if self._wrote_header:
            return
        if not 100 <= int(status) <= 999:
            raise ValueError(f"invalid WriteHeader code {status}")
        self.status = int(status)
        self._wrote_header = True

    def write(self, data: Union[bytes, str]) -> int:
        """Append data to the body, sending a 200 status first if none was sent."""
        if isinstance(data, str):
            data = data.encode("utf-8")
        if not self._wrote_header:
            self.write_header(HTTPStatus.OK)
        self._body += data
        return len(data)


Handler = Callable[[ResponseWriter, HTTPRequest], None]
Middleware = Callable[[Handler], Handler]
Responder = Callable[[ResponseWriter, bool, int, str, Optional[dict]], None]


def _json_default(obj: Any) -> Any:
    to_dict = getattr(obj, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return dataclasses.asdict(obj)
    if isinstance(obj, (bytes, bytearray)):
        return base64.b64encode(bytes(obj)).decode("ascii")
    raise TypeError(f"object of type {type(obj).__name__} is not JSON serializable")


def _encode_json(data: Any) -> bytes:
    text = json.dumps(
        data,
        default=_json_default,
        ensure_ascii=False,
        allow_nan=False,
        separators=(",", ":"),
    )
    for raw, escaped in _HTML_ESCAPES:
        text = text.replace(raw, escaped)
    return (text + "\n").encode("utf-8")


def write_json(
    writer: ResponseWriter,
    status: bool,
    status_code: int,
    message: str,
    data: Optional[dict],
) -> None:
    """Write a status/message/data JSON response."""
    writer.headers.set("Content-Type", "application/json")
    writer.write_header(status_code)
    writer.write(_encode_json({"status": status, "message": message, "data": data}))


class Response:
    """Fluent helper for writing a JSON response."""

    def __init__(self, writer: ResponseWriter) -> None:
        self.writer = writer
        self.code = 0
        self.body: Any = None

    def status(self, code: int) -> "Response":
        """Set the status code to send."""
        self.code = code
        return self

    def json(self, data: Any) -> None:
        """Send data as JSON with the chosen status code."""
        self.body = data
        self.writer.headers.set("Content-Type", "application/json")
        self.writer.write_header(self.code)
        self.writer.write(_encode_json(data))


def recover(respond: Responder) -> Middleware:
    """Middleware that turns an exception in a handler into a 500 response."""

    def middleware(handler: Handler) -> Handler:
        def recovering(writer: ResponseWriter, request: HTTPRequest) -> None:
            try:
                handler(writer, request)
            except Exception as exc:  # noqa: BLE001 - any handler failure becomes a 500
                message = str(exc) or "unknown error"
                respond(
                    writer,
                    False,
                    HTTPStatus.INTERNAL_SERVER_ERROR,
                    "Internal Server Error: " + message,
                    None,
                )

        return recovering

    return middleware