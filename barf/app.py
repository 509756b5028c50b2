"""The application: configuration, middleware hijacking and the HTTP server."""

from __future__ import annotations

import signal
import socket
import threading
from collections.abc import Callable, Iterable
from socketserver import ThreadingMixIn
from typing import Any, Optional
from wsgiref.simple_server import WSGIRequestHandler, WSGIServer, make_server

from barf import log
from barf.config import (
    LOGGING,
    MAX_HEADER_BYTES,
    PORT,
    READ_TIMEOUT,
    RECOVERY,
    SHUTDOWN_TIMEOUT,
    WRITE_TIMEOUT,
    Augment,
    CORSOptions,
)
from barf.cors import cors_middleware, prepare
from barf.request import Request
from barf.router import RouteTable, SubRoute, dispatcher
from barf.web import (
    Handler,
    HTTPRequest,
    Middleware,
    Response,
    ResponseWriter,
    recover,
    status_text,
    write_json,
)


def _noop(writer: ResponseWriter, request: HTTPRequest) -> None:
    """The innermost handler: everything has been written by then."""


class _ThreadingServer(ThreadingMixIn, WSGIServer):
    daemon_threads = False
    block_on_close = True


class _QuietHandler(WSGIRequestHandler):
    def log_message(self, format: str, *args: Any) -> None:  # noqa: A002
        pass


def _handler_class(timeout: int) -> type[WSGIRequestHandler]:
    class _Handler(_QuietHandler):
        pass

    _Handler.timeout = timeout if timeout > 0 else None
    return _Handler


class Hippocampus:
    """Prepares the base handler or a sub-router for taking on middleware."""

    def __init__(self, app: "Barf", router: Optional[SubRoute] = None) -> None:
        self.app = app
        self.router = router
        if router is not None:
            self.stack: Optional[list[Middleware]] = list(router.stack)
        else:
            self.stack = list(app._stack) if app._stack is not None else None

    def hijack(self, *args: Middleware) -> None:
        """Inject the given middleware into the sub-router or base handler.

        The base handler can only be rebuilt before the server is started.
        """
        if args and self.stack is not None:
            self.stack = self.stack + list(args)
        if self.router is not None:
            self.router.stack = list(self.stack or [])
            return

        app = self.app
        app._stack = self.stack
        if app._beckoned:
            return
        if app._base is None or app.augment is None:
            raise RuntimeError("stark() must be called before hijacking the base handler")
        handler: Handler = app._base
        for layer in reversed(self.stack or []):
            handler = layer(handler)
        # CORS runs before any user-defined middleware.
        handler = cors_middleware(prepare(app.augment.cors or CORSOptions()))(handler)
        if app.augment.recovery:
            handler = recover(write_json)(handler)
        app._handler = handler


class Barf:
    """A web application holding its routes, configuration and server."""

    def __init__(self) -> None:
        self.routes = RouteTable()
        self.augment: Optional[Augment] = None
        self._base: Optional[Handler] = None
        self._stack: Optional[list[Middleware]] = None
        self._handler: Optional[Handler] = None
        self._beckoned = False
        self._httpd: Optional[_ThreadingServer] = None
        self._stop = threading.Event()
        self._lock = threading.Lock()

    @property
    def address(self) -> Optional[tuple[str, int]]:
        """The address the running server is bound to, or None."""
        httpd = self._httpd
        return httpd.server_address[:2] if httpd is not None else None  # type: ignore[return-value]

    def stark(self, augment: Optional[Augment] = None) -> None:
        """Create the server, overriding defaults with the non-empty values of augment.

        Does nothing if the server was already created.
        """
        if self._handler is not None:
            return
        if augment is not None and not isinstance(augment, Augment):
            raise TypeError(f"stark() expects an Augment, got {type(augment).__name__}")
        resolved = Augment(
            max_header_bytes=MAX_HEADER_BYTES,
            read_timeout=READ_TIMEOUT,
            read_header_timeout=READ_TIMEOUT,
            write_timeout=WRITE_TIMEOUT,
            shutdown_timeout=SHUTDOWN_TIMEOUT,
            port=PORT,
            logging=LOGGING,
            recovery=RECOVERY,
            cors=CORSOptions(),
        )
        if augment is not None:
            if augment.max_header_bytes:
                resolved.max_header_bytes = augment.max_header_bytes
            if augment.read_timeout:
                resolved.read_timeout = augment.read_timeout
            if augment.write_timeout:
                resolved.write_timeout = augment.write_timeout
            if augment.port:
                resolved.port = f":{augment.port}"
            if augment.read_header_timeout:
                resolved.read_header_timeout = augment.read_header_timeout
            if augment.logging is not None:
                resolved.logging = augment.logging
            if augment.recovery is not None:
                resolved.recovery = augment.recovery
            if augment.cors is not None:
                resolved.cors = augment.cors
        self.augment = resolved
        self._create_server()

    def _create_server(self) -> None:
        assert self.augment is not None
        inner: Handler = log.morgan(_noop) if self.augment.logging else _noop
        self._base = dispatcher(self.routes, write_json)(inner)
        self._stack = []
        self._handler = self._base
        if self.augment.recovery:
            self.hippocampus().hijack()
            log.info("Recovery middleware added to base barf handler")

    def _listen_address(self) -> tuple[str, int]:
        assert self.augment is not None
        host, _, port = self.augment.port.rpartition(":")
        return host, int(port)

    def _install_signal_handlers(self) -> Callable[[], None]:
        if threading.current_thread() is not threading.main_thread():
            return lambda: None
        previous = {}

        def on_signal(signum: int, frame: Any) -> None:
            self._stop.set()

        for signum in (signal.SIGINT, signal.SIGTERM):
            previous[signum] = signal.signal(signum, on_signal)

        def restore() -> None:
            for signum, handler in previous.items():
                signal.signal(signum, handler)

        return restore

    def beck(self) -> None:
        """Start serving, creating the server with defaults if needed.

        Blocks until SIGINT or SIGTERM is received or shutdown() is called.
        Does nothing if the server is already running.
        """
        if self._beckoned:
            return
        if self._handler is None:
            self.stark()
        assert self.augment is not None
        host, port = self._listen_address()
        httpd = make_server(
            host,
            port,
            self,
            server_class=_ThreadingServer,
            handler_class=_handler_class(self.augment.read_timeout),
        )
        with self._lock:
            self._httpd = httpd
            self._beckoned = True
            self._stop.clear()
        log.info(f"BARF server started at http://localhost{self.augment.port}")
        worker = threading.Thread(target=httpd.serve_forever, daemon=True)
        worker.start()
        restore = self._install_signal_handlers()
        try:
            while not self._stop.wait(0.2):
                if not worker.is_alive():
                    break
        finally:
            restore()
        self.shutdown()

    def shutdown(self) -> None:
        """Stop the running server, allowing shutdown_timeout seconds to finish.

        Raises SystemExit(1) if the server does not stop in time.
        """
        with self._lock:
            httpd = self._httpd
            self._httpd = None
            self._stop.set()
        if httpd is None:
            return
        log.warn("Shutting down BARF...")

        def stop() -> None:
            httpd.shutdown()
            httpd.server_close()

        stopper = threading.Thread(target=stop, daemon=True)
        stopper.start()
        timeout = self.augment.shutdown_timeout if self.augment else SHUTDOWN_TIMEOUT
        stopper.join(timeout)
        self._beckoned = False
        if stopper.is_alive():
            log.error("BARF forced to shut down...")
            raise SystemExit(1)
        log.debug("BARF exited!")

    def handle(self, request: HTTPRequest) -> ResponseWriter:
        """Run request through the handler chain and return the written response."""
        if self._handler is None:
            self.stark()
        assert self._handler is not None
        writer = ResponseWriter()
        self._handler(writer, request)
        return writer

    def __call__(
        self, environ: dict[str, Any], start_response: Callable[..., Any]
    ) -> Iterable[bytes]:
        """Serve a WSGI request."""
        writer = self.handle(HTTPRequest.from_environ(environ))
        status = writer.status or 200
        body = writer.body
        headers = list(writer.headers.items())
        if "Content-Length" not in writer.headers:
            headers.append(("Content-Length", str(len(body))))
        start_response(f"{status} {status_text(status)}", headers)
        return [body]

    def hippocampus(self, *args: SubRoute) -> Hippocampus:
        """Prepare a sub-router, or the base handler when none is given, for hijacking."""
        if not args:
            return Hippocampus(self)
        router = args[0]
        if not isinstance(router, SubRoute):
            raise TypeError(f"hippocampus() expects a SubRoute, got {type(router).__name__}")
        return Hippocampus(self, router)

    def retro_frame(self, path: str) -> SubRoute:
        """Return a new sub-router registered against the entry path."""
        return self.routes.retro_frame(path)

    def get(self, path: str, handler: Handler) -> None:
        """Register a GET route."""
        self.routes.get(path, handler)

    def post(self, path: str, handler: Handler) -> None:
        """Register a POST route."""
        self.routes.post(path, handler)

    def put(self, path: str, handler: Handler) -> None:
        """Register a PUT route."""
        self.routes.put(path, handler)

    def patch(self, path: str, handler: Handler) -> None:
        """Register a PATCH route."""
        self.routes.patch(path, handler)

    def delete(self, path: str, handler: Handler) -> None:
        """Register a DELETE route."""
        self.routes.delete(path, handler)

    def any_route(self, path: str, handler: Handler) -> None:
        """Register a route for every method."""
        self.routes.any_route(path, handler)


_default = Barf()


def stark(augment: Optional[Augment] = None) -> None:
    """Create the default application's server."""
    _default.stark(augment)


def beck() -> None:
    """Start the default application's server."""
    _default.beck()


def hippocampus(*args: SubRoute) -> Hippocampus:
    """Prepare the default application or one of its sub-routers for hijacking."""
    return _default.hippocampus(*args)


def retro_frame(path: str) -> SubRoute:
    """Create a sub-router on the default application."""
    return _default.retro_frame(path)


def get(path: str, handler: Handler) -> None:
    """Register a GET route on the default application."""
    _default.get(path, handler)


def post(path: str, handler: Handler) -> None:
    """Register a POST route on the default application."""
    _default.post(path, handler)


def put(path: str, handler: Handler) -> None:
    """Register a PUT route on the default application."""
    _default.put(path, handler)


def patch(path: str, handler: Handler) -> None:
    """Register a PATCH route on the default application."""
    _default.patch(path, handler)


def delete(path: str, handler: Handler) -> None:
    """Register a DELETE route on the default application."""
    _default.delete(path, handler)


def any_route(path: str, handler: Handler) -> None:
    """Register a route for every method on the default application."""
    _default.any_route(path, handler)


def logger() -> log.Logger:
    """Return a logger instance."""
    return log.Logger()


def request(http_request: HTTPRequest) -> Request:
    """Prepare a request for reading its body, parameters and query."""
    return Request(http_request)


def response(writer: ResponseWriter) -> Response:
    """Prepare a JSON response on writer."""
    return Response(writer)


def _free_port() -> int:
    with socket.socket() as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]