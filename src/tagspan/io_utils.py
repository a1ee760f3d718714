"""I/O utilities: encoding-safe text reading and orjson JSON/JSONL.

Markup documents arrive in mixed encodings, so ``read_file`` falls back
UTF-8 -> CP1252 -> replace. Candidate spans travel as JSON Lines.
"""
from __future__ import annotations

from pathlib import Path
from typing import Any

import orjson


def read_file(fpath: Path, *, min_size: int = 0) -> str:
    """Read a text file with encoding fallback: UTF-8 -> CP1252 -> replace.

    Offsets are character offsets into the returned string, so the same
    decoding must be used when spans are produced and corrected.

    Args:
        fpath: Path to the file.
        min_size: Minimum file size in bytes. Returns empty string if smaller.

    Returns:
        File contents as a string. Empty string on failure or below min_size.
    """
    try:
        if min_size > 0 and fpath.stat().st_size < min_size:
            return ""
        try:
            return fpath.read_text(encoding="utf-8")
        except UnicodeDecodeError:
            try:
                return fpath.read_text(encoding="cp1252")
            except UnicodeDecodeError:
                with open(fpath, errors="replace") as f:
                    return f.read()
    except OSError:
        return ""


def save_json(obj: Any, path: Path, *, pretty: bool = True) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    opts = orjson.OPT_INDENT_2 | orjson.OPT_SORT_KEYS if pretty else orjson.OPT_SORT_KEYS
    path.write_bytes(orjson.dumps(obj, option=opts))


def load_jsonl(path: Path) -> list[dict[str, Any]]:
    """Load a JSON Lines file (one JSON object per line). Blank lines skipped."""
    records: list[dict[str, Any]] = []
    for line in path.read_bytes().split(b"\n"):
        line = line.strip()
        if line:
            records.append(orjson.loads(line))
    return records
