"""I/O utilities for JSON, JSONL and saved page files.

orjson handles all JSON: it writes UTF-8 directly, so Bengali text
round-trips byte for byte.
"""
from __future__ import annotations

from pathlib import Path
from typing import Any, Iterable

import orjson


def load_json(path: Path) -> Any:
    """Load JSON from a file."""
    return orjson.loads(path.read_bytes())


def dumps(obj: Any, *, pretty: bool = False) -> bytes:
    opts = orjson.OPT_INDENT_2 | orjson.OPT_SORT_KEYS if pretty else orjson.OPT_SORT_KEYS
    return orjson.dumps(obj, option=opts)


def save_json(obj: Any, path: Path, *, pretty: bool = True) -> None:
    """Save an object as JSON, creating parent directories."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(dumps(obj, pretty=pretty))


def load_jsonl(path: Path) -> list[dict[str, Any]]:
    """Load a JSON Lines file (one JSON object per line). Blank lines skipped."""
    records: list[dict[str, Any]] = []
    for line in path.read_bytes().split(b"\n"):
        line = line.strip()
        if line:
            records.append(orjson.loads(line))
    return records


def save_jsonl(records: Iterable[dict[str, Any]], path: Path) -> int:
    """Save dicts as a JSON Lines file; returns the number written."""
    path.parent.mkdir(parents=True, exist_ok=True)
    lines = [dumps(r) for r in records]
    path.write_bytes(b"\n".join(lines) + b"\n" if lines else b"")
    return len(lines)


def read_html_file(fpath: Path) -> str:
    """Read a saved page with encoding fallback: UTF-8 -> CP1252 -> replace.

    Returns "" when the file cannot be read.
    """
    try:
        raw = fpath.read_bytes()
    except OSError:
        return ""
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError:
        try:
            return raw.decode("cp1252")
        except UnicodeDecodeError:
            return raw.decode("utf-8", errors="replace")
