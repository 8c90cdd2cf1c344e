"""JSON helpers backed by orjson."""
from __future__ import annotations

import sys
from pathlib import Path
from typing import Any

import orjson


def load_json(path: Path) -> Any:
    return orjson.loads(path.read_bytes())


def dumps_json(obj: Any, *, pretty: bool = True) -> bytes:
    opts = orjson.OPT_SORT_KEYS
    if pretty:
        opts |= orjson.OPT_INDENT_2
    return orjson.dumps(obj, option=opts)


def save_json(obj: Any, path: Path, *, pretty: bool = True) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(dumps_json(obj, pretty=pretty))


def write_json_stdout(obj: Any) -> None:
    """Structured output for scripts: JSON on stdout, humans read stderr."""
    sys.stdout.buffer.write(dumps_json(obj))
    sys.stdout.buffer.write(b"\n")
    sys.stdout.flush()
