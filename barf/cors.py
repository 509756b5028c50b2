"""Cross-Origin Resource Sharing support and its middleware."""

from __future__ import annotations

from dataclasses import dataclass, field
from http import HTTPStatus
from typing import Any, Callable, Optional

from barf.config import CORSOptions
from barf.web import (
    Handler,
    HTTPRequest,
    Middleware,
    ResponseWriter,
    canonical_header_key,
)

_OPTIONS = "OPTIONS"

_DEFAULT_METHODS = ("GET", "HEAD", "POST", "PUT", "HEAD", "PATCH", "DELETE")

_DEFAULT_HEADERS = ("Origin", "Accept", "Content-Type", "X-Requested-With", "Authorization")


@dataclass(frozen=True)
class OriginWildcard:
    """An allowed origin holding a single "*" between a prefix and a suffix."""

    prefix: str
    suffix: str

    def match_origin(self, origin: str) -> bool:
        """Return True if origin starts with the prefix and ends with the suffix."""
        return (
            len(origin) >= len(self.prefix) + len(self.suffix)
            and origin.startswith(self.prefix)
            and origin.endswith(self.suffix)
        )


@dataclass
class Cors:
    """Prepared CORS settings able to answer preflight and simple requests."""

    allowed_origins: list[str] = field(default_factory=list)
    allowed_methods: list[str] = field(default_factory=list)
    allowed_headers: list[str] = field(default_factory=list)
    exposed_headers: list[str] = field(default_factory=list)
    allow_credentials: bool = False
    max_age: int = 0
    options_passthrough: bool = False
    options_success_status: int = HTTPStatus.NO_CONTENT
    allow_all_origins: bool = False
    allow_all_headers: bool = False
    allowed_origin_func: Optional[Callable[[str], bool]] = None
    allowed_origin_with_request_func: Optional[Callable[[str, Any], bool]] = None
    allowed_origins_wildcard: list[OriginWildcard] = field(default_factory=list)

    def origin_allowed(self, origin: str, request: HTTPRequest) -> bool:
        """Return True if requests from origin are allowed."""
        if self.allowed_origin_func is not None:
            return bool(self.allowed_origin_func(origin))
        if self.allowed_origin_with_request_func is not None:
            return bool(self.allowed_origin_with_request_func(origin, request))
        if self.allow_all_origins:
            return True
        origin = origin.lower()
        if origin in self.allowed_origins:
            return True
        return any(wild.match_origin(origin) for wild in self.allowed_origins_wildcard)

    def method_allowed(self, method: str) -> bool:
        """Return True if method is allowed; OPTIONS always is, given any methods."""
        if not self.allowed_methods:
            return False
        method = method.upper()
        if method == _OPTIONS:
            return True
        return method in self.allowed_methods

    def headers_allowed(self, headers: list[str]) -> bool:
        """Return True if every one of headers is allowed."""
        if self.allow_all_headers and not headers:
            return True
        return all(canonical_header_key(h) in self.allowed_headers for h in headers)

    def preflight(self, writer: ResponseWriter, request: HTTPRequest) -> None:
        """Set the response headers of a preflight (OPTIONS) request."""
        headers = writer.headers
        origin = request.headers.get("Origin")

        if request.method != _OPTIONS:
            return

        headers.set("Vary", "Origin")
        headers.set("Vary", "Access-Control-Request-Method")
        headers.set("Vary", "Access-Control-Request-Headers")

        if not origin or not self.origin_allowed(origin, request):
            return

        request_method = request.headers.get("Access-Control-Request-Method")
        if not request_method or not self.method_allowed(request_method):
            return

        requested = ",".join(request.headers.values("Access-Control-Request-Headers"))
        parsed = parse_headers(requested)
        if not self.headers_allowed(parsed):
            return

        headers.set("Access-Control-Allow-Origin", "*" if self.allow_all_origins else origin)
        headers.set("Access-Control-Allow-Methods", request_method.upper())
        if parsed:
            headers.set("Access-Control-Allow-Headers", ",".join(parsed))
        if self.allow_credentials:
            headers.set("Access-Control-Allow-Credentials", "true")
        if self.max_age > 0:
            headers.set("Access-Control-Max-Age", str(self.max_age))

    def request(self, writer: ResponseWriter, request: HTTPRequest) -> None:
        """Set the CORS response headers of an ordinary request."""
        headers = writer.headers
        origin = request.headers.get("Origin")

        headers.set("Vary", "Origin")
        if not origin or not self.origin_allowed(origin, request):
            return
        if not self.method_allowed(request.method):
            return
        headers.set("Access-Control-Allow-Origin", "*" if self.allow_all_origins else origin)
        if self.allow_credentials:
            headers.set("Access-Control-Allow-Credentials", "true")
        if self.exposed_headers:
            headers.set("Access-Control-Expose-Headers", ",".join(self.exposed_headers))


def prepare(options: CORSOptions) -> Cors:
    """Build CORS settings from options, filling in the defaults."""
    cors = Cors(
        exposed_headers=[canonical_header_key(h) for h in options.exposed_headers],
        allow_credentials=options.allow_credentials,
        max_age=options.max_age,
        options_passthrough=options.options_passthrough,
        allowed_origin_func=options.allowed_origin_func,
        allowed_origin_with_request_func=options.allowed_origin_with_request_func,
    )

    if options.allowed_origins:
        for origin in options.allowed_origins:
            if origin == "*":
                cors.allow_all_origins = True
                cors.allowed_origins = []
                cors.allowed_origins_wildcard = []
                break
            prefix, star, suffix = origin.partition("*")
            if star:
                cors.allowed_origins_wildcard.append(OriginWildcard(prefix, suffix))
            else:
                cors.allowed_origins.append(origin)
    elif options.allowed_origin_func is None and options.allowed_origin_with_request_func is None:
        cors.allow_all_origins = True

    if options.allowed_methods:
        cors.allowed_methods = [m.upper() for m in options.allowed_methods]
    else:
        cors.allowed_methods = list(_DEFAULT_METHODS)

    if options.allowed_headers:
        if "*" in options.allowed_headers:
            cors.allow_all_headers = True
            cors.allowed_headers = []
        else:
            cors.allowed_headers = [canonical_header_key(h) for h in options.allowed_headers]
    else:
        cors.allowed_headers = list(_DEFAULT_HEADERS)

    if options.options_success_status > 0:
        cors.options_success_status = options.options_success_status
    else:
        cors.options_success_status = HTTPStatus.NO_CONTENT

    return cors


def cors_middleware(options: Cors) -> Middleware:
    """Middleware adding CORS headers and answering preflight requests."""

    def middleware(handler: Handler) -> Handler:
        def with_cors(writer: ResponseWriter, request: HTTPRequest) -> None:
            if request.method == _OPTIONS and request.headers.get(
                "Access-Control-Request-Method"
            ):
                options.preflight(writer, request)
                if options.options_passthrough:
                    handler(writer, request)
                else:
                    writer.write_header(options.options_success_status)
            else:
                options.request(writer, request)
                handler(writer, request)

        return with_cors

    return middleware


def parse_headers(headers: str) -> list[str]:
    """Split a comma or space separated header list into canonical names.

    Characters other than letters, digits, "-", "_" and "." are dropped.
    """
    result: list[str] = []
    current: list[str] = []
    uppercase = True
    last = len(headers) - 1
    for index, ch in enumerate(headers):
        if "a" <= ch <= "z":
            current.append(ch.upper() if uppercase else ch)
        elif "A" <= ch <= "Z":
            current.append(ch if uppercase else ch.lower())
        elif ch in "-_." or "0" <= ch <= "9":
            current.append(ch)

        if ch in " ," or index == last:
            if current:
                result.append("".join(current))
                current = []
                uppercase = True
        else:
            uppercase = ch in "-_"
    return result