"""Coloured console logging and the request logging middleware."""

from __future__ import annotations

import sys
import time
from datetime import datetime, timezone

from barf.config import DEBUG_COLOR, ERROR_COLOR, INFO_COLOR, RESET_COLOR, WARN_COLOR
from barf.web import Handler, HTTPRequest, ResponseWriter, status_text


def _emit(color: str, msg: str) -> None:
    stamp = time.strftime("%Y/%m/%d %H:%M:%S")
    print(f"{stamp} {color}{msg}{RESET_COLOR}", file=sys.stderr, flush=True)


def info(msg: str) -> None:
    """Log a message in green."""
    _emit(INFO_COLOR, msg)


def warn(msg: str) -> None:
    """Log a message in yellow."""
    _emit(WARN_COLOR, msg)


def error(msg: str) -> None:
    """Log a message in red."""
    _emit(ERROR_COLOR, msg)


def debug(msg: str) -> None:
    """Log a message in blue."""
    _emit(DEBUG_COLOR, msg)


def code(msg: str, status_code: int) -> None:
    """Log a message at a level chosen by an HTTP status code."""
    if status_code >= 500:
        error(msg)
    elif status_code >= 400:
        warn(msg)
    elif status_code >= 300:
        debug(msg)
    else:
        info(msg)


class Logger:
    """Logger instance exposing the module's log functions."""

    def info(self, msg: str) -> None:
        info(msg)

    def warn(self, msg: str) -> None:
        warn(msg)

    def error(self, msg: str) -> None:
        error(msg)

    def debug(self, msg: str) -> None:
        debug(msg)

    def code(self, msg: str, status_code: int) -> None:
        code(msg, status_code)


def morgan(next_handler: Handler) -> Handler:
    """Middleware logging a request after its response status is known.

    It is the innermost handler of the chain, so next_handler is not called.
    """

    def log_request(writer: ResponseWriter, request: HTTPRequest) -> None:
        status = writer.status
        stamp = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
        msg = (
            f"{stamp}: {request.user_agent} - {request.proto}: {request.method}"
            f" - {request.path} - {status} - {status_text(status)}"
        )
        code(msg, status)

    return log_request