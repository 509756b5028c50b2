"""Loading environment variables into dataclass instances.

A dataclass field takes part when its metadata holds an ``barfenv`` entry
of the form ``"key=YOUR_ENV_KEY"`` or ``"key=YOUR_ENV_KEY;required=true"``.
``required`` defaults to false.
"""

from __future__ import annotations

import dataclasses
import os
import re
from collections.abc import Callable, Iterator
from typing import Any, Optional

from barf.config import ENV_TAG, ENV_TAG_KEYS

_LINE_WITH_COMMENT = re.compile(r"^(?P<key>[^=]+)=(?P<value>[^#]+)")
_INTEGER = re.compile(r"[+-]?[0-9]+\Z")
_TRUE = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_FALSE = frozenset({"0", "f", "F", "FALSE", "false", "False"})
_TYPE_NAMES: dict[str, type] = {"str": str, "int": int, "float": float, "bool": bool}


class EnvError(ValueError):
    """Raised when environment variables cannot be loaded or verified."""


def find(key: str) -> Optional[str]:
    """Return the value of the environment variable key, or None if it is unset."""
    return os.environ.get(key)


def get(key: str) -> str:
    """Return the value of the environment variable key, or "" if it is unset."""
    return os.environ.get(key, "")


def load(path: str | os.PathLike[str]) -> None:
    """Set the key=value pairs of an env file in the process environment.

    Empty lines and lines starting with "#" are skipped; a trailing "#"
    comment is dropped from a value. Any other line that is not exactly one
    key=value pair raises EnvError.
    """
    with open(path, encoding="utf-8") as handle:
        text = handle.read()
    for line in text.split("\n"):
        if line.endswith("\r"):
            line = line[:-1]
        if not line:
            continue
        if "#" in line:
            if line.startswith("#"):
                continue
            match = _LINE_WITH_COMMENT.match(line)
            if match:
                os.environ[match.group("key")] = match.group("value")
            continue
        pair = line.split("=")
        if len(pair) != 2:
            raise EnvError(f"invalid line in env file {line}")
        os.environ[pair[0]] = pair[1]


def _tagged_fields(target: Any) -> Iterator[tuple[dataclasses.Field, str]]:
    for item in dataclasses.fields(target):
        tag = item.metadata.get(ENV_TAG, "")
        if tag:
            yield item, tag


def verify(target: Any) -> None:
    """Check the env tags of target and that every required variable is set."""
    for _, tag in _tagged_fields(target):
        settings: dict[str, str] = {}
        for pair in tag.split(";"):
            parts = pair.split("=")
            if len(parts) != 2:
                raise EnvError(
                    f"invalid key value pair -> {pair} <- in env struct "
                    f"{type(target).__name__}"
                )
            name, value = parts
            if name not in ENV_TAG_KEYS:
                raise EnvError(f"invalid key {name}")
            allowed = ENV_TAG_KEYS[name]
            if allowed is not None and value not in allowed:
                raise EnvError(f"invalid value {value} for key {name}")
            settings[name] = value
        required = settings.get("required") == "true"
        key = settings.get("key")
        if key is not None and required and get(key) == "":
            raise EnvError(f"environment variable {key} is not set")


def _parse_int(raw: str) -> int:
    if not _INTEGER.match(raw):
        raise EnvError(f'invalid integer value "{raw}"')
    return int(raw)


def _parse_float(raw: str) -> float:
    if not raw or raw != raw.strip() or "_" in raw:
        raise EnvError(f'invalid float value "{raw}"')
    try:
        return float(raw)
    except ValueError as exc:
        raise EnvError(f'invalid float value "{raw}"') from exc


def _parse_bool(raw: str) -> bool:
    if raw in _TRUE:
        return True
    if raw in _FALSE:
        return False
    raise EnvError(f'invalid boolean value "{raw}"')


_CONVERTERS: dict[type, Callable[[str], Any]] = {
    str: str,
    int: _parse_int,
    float: _parse_float,
    bool: _parse_bool,
}


def _converter_for(item: dataclasses.Field) -> Optional[Callable[[str], Any]]:
    kind = item.type
    if isinstance(kind, str):
        kind = _TYPE_NAMES.get(kind.strip())
    if isinstance(kind, type):
        return _CONVERTERS.get(kind)
    return None


def apply(target: Any) -> None:
    """Set each tagged field of target from the environment variable it names.

    Fields typed str, int, float or bool are filled; fields of other types are
    left alone. A value that cannot be converted raises EnvError.
    """
    for item, tag in _tagged_fields(target):
        settings: dict[str, str] = {}
        for pair in tag.split(";"):
            parts = pair.split("=")
            if len(parts) != 2 or parts[0] not in ENV_TAG_KEYS:
                continue
            settings[parts[0]] = parts[1]
        key = settings.get("key")
        if key is None:
            continue
        converter = _converter_for(item)
        if converter is None:
            continue
        setattr(target, item.name, converter(get(key)))


def env(target: Any, path: str | os.PathLike[str] | None = None) -> None:
    """Fill a dataclass instance from the environment, loading path first if given."""
    if path is not None:
        load(path)
    if target is None:
        raise EnvError("target must not be None")
    if not dataclasses.is_dataclass(target) or isinstance(target, type):
        raise EnvError("target must be a dataclass instance")
    verify(target)
    apply(target)