"""Configuration types, defaults and shared constants."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Optional

# Name of the metadata key used to describe environment-backed fields.
ENV_TAG = "barfenv"

# Seconds to wait for the server to shut down gracefully.
SHUTDOWN_TIMEOUT = 5

# Maximum seconds before timing out writes of the response.
WRITE_TIMEOUT = 10

# Maximum seconds for reading the entire request, including the body.
READ_TIMEOUT = 10

# Maximum bytes read while parsing the request line and headers.
MAX_HEADER_BYTES = 1 << 20

# Address the server listens on by default.
PORT = ":21186"

# Default path of the environment file.
ENV_PATH = ".env"

# Request logging is enabled by default.
LOGGING = True

# Panic (exception) recovery is enabled by default.
RECOVERY = True

# Keys accepted inside an env tag, with the values each may take (None: any).
ENV_TAG_KEYS: dict[str, Optional[tuple[str, ...]]] = {
    "required": ("true", "false"),
    "key": None,
}

WARN_COLOR = "\x1b[33m"
ERROR_COLOR = "\x1b[31m"
INFO_COLOR = "\x1b[32m"
DEBUG_COLOR = "\x1b[34m"
RESET_COLOR = "\x1b[0m"

# Keys under which per-request values are stored in a request's context.
QUERY_CTX_KEY = "query"
BODY_CTX_KEY = "body"
STATUS_CODE_CTX_KEY = "status_code"
PARAMS_CTX_KEY = "params"


@dataclass
class CORSOptions:
    """Configuration for Cross-Origin Resource Sharing."""

    allowed_origins: list[str] = field(default_factory=list)
    allowed_methods: list[str] = field(default_factory=list)
    allowed_headers: list[str] = field(default_factory=list)
    exposed_headers: list[str] = field(default_factory=list)
    allow_credentials: bool = False
    max_age: int = 0
    options_passthrough: bool = False
    options_success_status: int = 0
    allowed_origin_func: Optional[Callable[[str], bool]] = None
    allowed_origin_with_request_func: Optional[Callable[[str, Any], bool]] = None


@dataclass
class Augment:
    """Server configuration.

    A zero, empty or None value means "use the default".
    """

    max_header_bytes: int = 0
    read_timeout: int = 0
    write_timeout: int = 0
    shutdown_timeout: int = 0
    port: str = ""
    read_header_timeout: int = 0
    logging: Optional[bool] = None
    recovery: Optional[bool] = None
    cors: Optional[CORSOptions] = None


@dataclass
class Res:
    """A simple status based response body."""

    status: bool = False
    message: str = ""
    data: Any = None

    def to_dict(self) -> dict[str, Any]:
        """Return the response as a JSON-ready mapping."""
        return {"status": self.status, "message": self.message, "data": self.data}