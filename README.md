# barf

Basically, A Remarkable Framework: a small WSGI web framework that stays out of
your way. A route handler is a plain function taking a response writer and a
request; helpers make JSON replies, path parameters, query strings and request
bodies easy to work with. It has no third-party dependencies.

## Features

- Routes for GET, POST, PUT, PATCH, DELETE, or every method at once (`any_route`)
- Path parameters such as `/dashboard/:username`
- Sub-routers ("retro frames") mounted under an entry path, each with its own
  middleware stack
- Global middleware through `hippocampus().hijack(...)`
- CORS handling, recovery (an exception in a handler becomes a 500 JSON reply)
  and coloured request logging
- Loading of `.env` files and environment variables into dataclass instances
- A `Barf` application object that is a WSGI callable, plus a built-in
  threaded development server

## Installation

```
pip install .
```

## Quick start

The functions in `barf.app` act on a default application:

```python
from barf import app
from barf.config import Augment, Res


def hello(writer, request):
    app.response(writer).status(200).json(
        Res(status=True, data=None, message="Hello World")
    )


def about(writer, request):
    app.response(writer).status(200).json(
        Res(status=True, data=None, message="About")
    )


app.stark(Augment(port="5000"))
app.get("/", hello)

api = app.retro_frame("/api/v1")
api.get("/about", about)

app.beck()
```

`stark` builds the handler chain from an `Augment` configuration; any setting
left at zero, empty or `None` keeps its default (port `21186`, request logging
and recovery enabled, shutdown timeout 5 seconds). `beck` calls `stark` with the
defaults if it has not been called, starts serving and blocks until SIGINT or
SIGTERM arrives (or `shutdown()` is called on the application), then shuts down,
allowing `shutdown_timeout` seconds.

To keep several applications apart, create `barf.app.Barf()` objects and use
the same methods on them (`stark`, `beck`, `get`, `post`, `put`, `patch`,
`delete`, `any_route`, `retro_frame`, `hippocampus`). A `Barf` instance is a
WSGI application, so it can also be handed to any WSGI server. `Barf.handle`
runs an `barf.web.HTTPRequest` through the chain and returns the
`barf.web.ResponseWriter` holding the status, headers and body, which is handy
in tests.

Requests for unknown paths or methods get a 404 JSON reply of the form
`{"status": false, "message": "Path /x for method GET not found", "data": null}`.

## Reading requests

```python
def show(writer, request):
    req = app.request(request)
    path_params = req.params().json()   # {"username": "..."}
    query = req.query().json()          # first value of each query key
    body = req.body().json()            # the body decoded as a JSON object
```

Each of `body()`, `params()` and `query()` also has `format(factory)`: given a
dataclass it builds one from the matching keys of the decoded object, ignoring
unknown keys; any other callable is called with the decoded value. Decoding
errors are raised as `ValueError`.

## Middleware

A middleware takes the next handler and returns a new one. Global middleware
wraps every request; passing a sub-router to `hippocampus` applies it to that
sub-router's routes only.

```python
app.hippocampus().hijack(my_middleware)
app.hippocampus(api).hijack(api_only_middleware)
```

The base handler can only be rebuilt before `beck` has started serving.

## CORS

Pass `barf.config.CORSOptions` as `Augment(cors=...)` to set allowed origins
(exact, `*`, or one `*` wildcard such as `https://*.example.com`), methods,
headers, exposed headers, credentials, max age, an origin callback and the
status for preflight replies (default 204). The CORS layer is put in place
whenever the base handler is rebuilt by `hippocampus().hijack(...)`, which
`stark` does by itself when recovery is enabled.

## Environment variables

```python
from dataclasses import dataclass, field
from barf.env import env


@dataclass
class Settings:
    port: str = field(default="", metadata={"barfenv": "key=PORT;required=true"})


settings = Settings()
env(settings, ".env")
```

`barf.env.env(target, path)` loads the given file into the process environment
(skipping empty lines and `#` comments), checks that every required key is set,
and fills the tagged fields of `target`, converting values to `str`, `int`,
`float` or `bool` according to the field's type. Problems are raised as
`barf.env.EnvError`. `find(key)` and `get(key)` read single variables.

## Logging

`app.logger()` returns a `barf.log.Logger` with `info`, `warn`, `error`,
`debug` and `code` methods, each printing to standard error in its own colour;
`code` picks the level from an HTTP status code. With logging enabled, every
request is logged with its timestamp, user agent, protocol, method, path and
status.

## Running the examples

```
barf-examples [main|simple|with_config|body_params_query|cors|middleware|subroute] [--env-file PATH]
```

`main` (the default), `simple` and `with_config` need nothing else. The other
examples read `PORT` from an env file, `example/.env` unless `--env-file` says
otherwise.

## What it does not do

The built-in server is Python's threaded `wsgiref` server, meant for
development. Of the timeouts and limits in `Augment`, only `read_timeout`
(used as the connection timeout) and `shutdown_timeout` take effect;
`max_header_bytes`, `write_timeout` and `read_header_timeout` are kept in the
configuration but not enforced. Responses are buffered whole; there is no
streaming and no TLS.

## Running the tests

```
pip install ".[test]"
pytest
```