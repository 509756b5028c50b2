"""Basically, A Remarkable Framework: a small WSGI web framework with routing, middleware, CORS and env loading."""

__version__ = "0.1.0"

__all__ = ["app", "config", "cors", "env", "examples", "log", "request", "router", "web"]