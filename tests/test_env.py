import os
from dataclasses import dataclass, field

import pytest

from barf.env import EnvError, apply, env, find, get, load, verify

NAMES = (
    "BARF_T_PORT",
    "BARF_T_COUNT",
    "BARF_T_RATIO",
    "BARF_T_DEBUG",
    "BARF_T_NAME",
    "BARF_T_OTHER",
    "BARF_T_MISSING",
)


@pytest.fixture(autouse=True)
def clean_env():
    for name in NAMES:
        os.environ.pop(name, None)
    yield
    for name in NAMES:
        os.environ.pop(name, None)


@dataclass
class Settings:
    port: str = field(default="", metadata={"barfenv": "key=BARF_T_PORT;required=true"})
    count: int = field(default=0, metadata={"barfenv": "key=BARF_T_COUNT"})
    ratio: float = field(default=0.0, metadata={"barfenv": "key=BARF_T_RATIO"})
    debug: bool = field(default=False, metadata={"barfenv": "key=BARF_T_DEBUG"})
    untouched: str = "keep"


def _set_all():
    os.environ["BARF_T_PORT"] = "5000"
    os.environ["BARF_T_COUNT"] = "42"
    os.environ["BARF_T_RATIO"] = "2.5"
    os.environ["BARF_T_DEBUG"] = "true"


def test_get_and_find():
    assert get("BARF_T_MISSING") == ""
    assert find("BARF_T_MISSING") is None
    os.environ["BARF_T_NAME"] = "value"
    assert get("BARF_T_NAME") == "value"
    assert find("BARF_T_NAME") == "value"


def test_find_distinguishes_empty_from_unset():
    os.environ["BARF_T_NAME"] = ""
    assert find("BARF_T_NAME") == ""
    assert get("BARF_T_NAME") == get("BARF_T_MISSING")


def test_load_sets_pairs_and_skips_comments(tmp_path):
    path = tmp_path / ".env"
    path.write_text(
        "# a comment\n\nBARF_T_PORT=5000\nBARF_T_NAME=web # trailing\r\nBARF_T_OTHER=#only\n",
        encoding="utf-8",
    )
    load(path)
    assert get("BARF_T_PORT") == "5000"
    assert get("BARF_T_NAME") == "web "
    assert find("BARF_T_OTHER") is None


def test_load_rejects_invalid_line(tmp_path):
    path = tmp_path / ".env"
    path.write_text("BARF_T_PORT=1=2\n", encoding="utf-8")
    with pytest.raises(EnvError, match="invalid line in env file BARF_T_PORT=1=2"):
        load(path)


def test_load_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load(tmp_path / "absent.env")


def test_verify_required_missing():
    with pytest.raises(EnvError, match="environment variable BARF_T_PORT is not set"):
        verify(Settings())


def test_verify_optional_missing_passes_and_leaves_defaults():
    os.environ["BARF_T_PORT"] = "80"
    target = Settings()
    verify(target)
    assert target == Settings()


@pytest.mark.parametrize(
    "tag, message",
    [
        ("key=BARF_T_NAME;color=red", "invalid key color"),
        ("key=BARF_T_NAME;required=maybe", "invalid value maybe for key required"),
        ("key", "invalid key value pair -> key <-"),
        ("key=BARF_T_NAME;", "invalid key value pair ->  <-"),
    ],
)
def test_verify_bad_tags(tag, message):
    @dataclass
    class Bad:
        name: str = field(default="", metadata={"barfenv": tag})

    with pytest.raises(EnvError, match=message):
        verify(Bad())


def test_apply_converts_types():
    _set_all()
    target = Settings()
    apply(target)
    assert target.port == "5000"
    assert target.count == 42
    assert target.ratio == 2.5
    assert target.debug is True
    assert target.untouched == "keep"


@pytest.mark.parametrize("raw, expected", [("t", True), ("1", True), ("F", False), ("0", False)])
def test_apply_bool_spellings(raw, expected):
    os.environ["BARF_T_DEBUG"] = raw
    target = Settings()
    os.environ["BARF_T_COUNT"] = "1"
    os.environ["BARF_T_RATIO"] = "1"
    apply(target)
    assert target.debug is expected


@pytest.mark.parametrize(
    "name, raw",
    [("BARF_T_COUNT", "4x"), ("BARF_T_COUNT", ""), ("BARF_T_RATIO", "abc"), ("BARF_T_DEBUG", "yes")],
)
def test_apply_bad_values_raise(name, raw):
    _set_all()
    os.environ[name] = raw
    with pytest.raises(EnvError):
        apply(Settings())


def test_env_rejects_none_and_non_dataclass():
    with pytest.raises(EnvError):
        env(None)
    with pytest.raises(EnvError):
        env({"port": "1"})
    with pytest.raises(EnvError):
        env(Settings)


def test_env_loads_file_then_fills(tmp_path):
    path = tmp_path / ".env"
    path.write_text(
        "BARF_T_PORT=8080\nBARF_T_COUNT=7\nBARF_T_RATIO=0.5\nBARF_T_DEBUG=false\n",
        encoding="utf-8",
    )
    target = Settings()
    env(target, path)
    assert target == Settings(port="8080", count=7, ratio=0.5, debug=False)


def test_env_without_path_uses_process_environment():
    _set_all()
    target = Settings()
    env(target)
    assert target.port == "5000"
    assert target.count == 42