"""Tests for tagspan.io_utils module."""
from pathlib import Path

import orjson

from tagspan.io_utils import load_jsonl, read_file, save_json


class TestReadFile:
    def test_utf8_file(self, tmp_path: Path) -> None:
        path = tmp_path / "doc.html"
        path.write_text("<p>café</p>", encoding="utf-8")
        assert read_file(path) == "<p>café</p>"

    def test_cp1252_fallback(self, tmp_path: Path) -> None:
        path = tmp_path / "doc.html"
        path.write_bytes(b"<p>\x93quoted\x94</p>")
        assert read_file(path) == "<p>“quoted”</p>"

    def test_nonexistent_file(self) -> None:
        assert read_file(Path("/nonexistent/file.html")) == ""

    def test_min_size(self, tmp_path: Path) -> None:
        path = tmp_path / "small.html"
        path.write_text("small")
        assert read_file(path, min_size=1000) == ""


class TestJson:
    def test_save_json_creates_parents_and_sorts_keys(self, tmp_path: Path) -> None:
        path = tmp_path / "nested" / "out.json"
        save_json({"b": [1, 2], "a": None}, path)
        assert orjson.loads(path.read_bytes()) == {"a": None, "b": [1, 2]}
        assert path.read_text().startswith('{\n  "a"')

    def test_save_json_compact(self, tmp_path: Path) -> None:
        path = tmp_path / "out.json"
        save_json({"b": 1, "a": 2}, path, pretty=False)
        assert path.read_bytes() == b'{"a":2,"b":1}'

    def test_jsonl_skips_blank_lines(self, tmp_path: Path) -> None:
        path = tmp_path / "spans.jsonl"
        path.write_bytes(b'{"start": 0, "end": 3}\n\n{"start": 4, "end": 9}\n')
        assert load_jsonl(path) == [
            {"start": 0, "end": 3},
            {"start": 4, "end": 9},
        ]
