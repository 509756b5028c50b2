"""Example applications and a command that runs one of them."""

from __future__ import annotations

import argparse
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from http import HTTPStatus
from typing import Any, Optional

from barf.app import Barf
from barf.config import ENV_TAG, Augment, CORSOptions, Res
from barf.env import EnvError, env
from barf.log import Logger
from barf.request import Request
from barf.web import Handler, HTTPRequest, Middleware, Response, ResponseWriter

ENV_FILE = "example/.env"


@dataclass
class ExampleEnv:
    """Environment read by the examples that take their port from a file."""

    port: str = field(default="", metadata={ENV_TAG: "key=PORT;required=true"})


@dataclass
class Person:
    """The body accepted by the body/params/query example."""

    name: str = ""
    age: int = 0


def _reply(
    writer: ResponseWriter,
    message: str,
    data: Any = None,
    status: int = HTTPStatus.OK,
    ok: bool = True,
) -> None:
    Response(writer).status(status).json(Res(status=ok, data=data, message=message))


def _hello(writer: ResponseWriter, request: HTTPRequest) -> None:
    _reply(writer, "Hello World")


def _about(writer: ResponseWriter, request: HTTPRequest) -> None:
    _reply(writer, "About")


def _home(writer: ResponseWriter, request: HTTPRequest) -> None:
    _reply(writer, "Home")


def _dashboard(writer: ResponseWriter, request: HTTPRequest) -> None:
    prepared = Request(request)
    _reply(
        writer,
        "Hello World",
        {"params": prepared.params().json(), "query": prepared.query().json()},
    )


def _greet_user(writer: ResponseWriter, request: HTTPRequest) -> None:
    prepared = Request(request)
    try:
        person = prepared.body().format(Person)
    except (ValueError, TypeError):
        _reply(
            writer,
            "Invalid request body",
            status=HTTPStatus.BAD_REQUEST,
            ok=False,
        )
        return
    _reply(
        writer,
        "Hello World",
        {
            "params": prepared.params().json(),
            "query": prepared.query().json(),
            "body": person,
        },
    )


def _google_cors() -> CORSOptions:
    return CORSOptions(
        allowed_origins=["https://*.google.com"],
        max_age=3600,
        allowed_methods=["GET"],
        allowed_origin_func=lambda origin: origin == "https://www.google.com",
    )


def _logging_layer(before: str, after: str) -> Middleware:
    log = Logger()

    def layer(handler: Handler) -> Handler:
        def wrapped(writer: ResponseWriter, request: HTTPRequest) -> None:
            log.info(before)
            handler(writer, request)
            log.info(after)

        return wrapped

    return layer


def retro_app() -> Barf:
    """An app on port 5000 with a root route and a sub-router under /api/v1."""
    app = Barf()
    app.stark(Augment(port="5000", logging=True, recovery=True))
    app.get("/", _hello)
    sub = app.retro_frame("/api/v1")
    sub.get("/about", _about)
    return app


def simple_app() -> Barf:
    """An app with default configuration and a single root route."""
    app = Barf()
    app.get("/", _hello)
    return app


def config_app() -> Barf:
    """An app on port 5000 with logging and recovery switched on."""
    app = Barf()
    app.stark(Augment(port="5000", logging=True, recovery=True))
    app.get("/", _hello)
    return app


def body_params_query_app(port: str) -> Barf:
    """An app echoing a posted body together with path parameters and query."""
    app = Barf()
    app.stark(Augment(port=port, logging=True, recovery=True))
    app.post("/:username", _greet_user)
    return app


def cors_app(port: str) -> Barf:
    """An app answering cross-origin requests from one allowed origin."""
    app = Barf()
    app.stark(Augment(port=port, logging=True, cors=_google_cors()))
    app.get("/dashboard/:username", _dashboard)
    return app


def middleware_app(port: str) -> Barf:
    """An app with three global middleware layers around its handler."""
    app = Barf()
    app.stark(Augment(port=port, logging=True, cors=_google_cors()))
    for index in range(3):
        app.hippocampus().hijack(_logging_layer(f"before {index}", f"after {index}"))
    app.get("/dashboard/:username", _dashboard)
    return app


def subroute_app(port: str) -> Barf:
    """An app with global middleware and two sub-routers on the same entry path."""
    app = Barf()
    app.stark(Augment(port=port, logging=True, cors=_google_cors()))
    app.hippocampus().hijack(_logging_layer("before 1", "after 1"))

    first = app.retro_frame("/api/v1")
    app.hippocampus(first).hijack(_logging_layer("sub before 0", "sub after 0"))
    first.get("/home", _home)

    # Same entry path, but a separate sub-router without the middleware above.
    second = app.retro_frame("/api/v1")
    second.get("/about", _about)
    return app


def _load_port(path: str) -> str:
    settings = ExampleEnv()
    env(settings, path)
    return settings.port


_PLAIN_APPS: dict[str, Callable[[], Barf]] = {
    "main": retro_app,
    "simple": simple_app,
    "with_config": config_app,
}

_PORT_APPS: dict[str, Callable[[str], Barf]] = {
    "body_params_query": body_params_query_app,
    "cors": cors_app,
    "middleware": middleware_app,
    "subroute": subroute_app,
}


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run one example application until interrupted; return the exit status."""
    parser = argparse.ArgumentParser(
        prog="barf-examples", description="Run one of the example applications."
    )
    parser.add_argument(
        "example",
        nargs="?",
        default="main",
        choices=sorted([*_PLAIN_APPS, *_PORT_APPS]),
    )
    parser.add_argument(
        "--env-file",
        default=ENV_FILE,
        help="env file holding PORT for the examples that need it",
    )
    args = parser.parse_args(argv)
    log = Logger()
    try:
        if args.example in _PORT_APPS:
            app = _PORT_APPS[args.example](_load_port(args.env_file))
        else:
            app = _PLAIN_APPS[args.example]()
        app.beck()
    except (EnvError, OSError, TypeError, ValueError) as exc:
        log.error(str(exc))
        return 1
    return 0