#!/usr/bin/env python3
"""Correct tagger spans against the tag structure of a markup document.

Reads a markup file and a JSONL file of candidate spans (one object per
line with integer ``start`` and ``end``; other keys are echoed back) and
widens each span so it never splits a tag, or marks it unalignable.

Usage:
    python3 scripts/correct_spans.py --markup doc.html --spans spans.jsonl
    python3 scripts/correct_spans.py --markup doc.html --spans spans.jsonl \
      --stripped --verbose
    python3 scripts/correct_spans.py --markup doc.html --spans spans.jsonl \
      --output report.json

Structured JSON output goes to stdout; human messages go to stderr.
"""
from __future__ import annotations

import argparse
import logging
import sys
from collections import Counter
from pathlib import Path
from typing import Any

import orjson

from tagspan.io_utils import load_jsonl, read_file, save_json
from tagspan.markup import HTML_VOID_ELEMENTS, MarkupError, ParsedMarkup, parse_markup, strip_markup
from tagspan.offset_corrector import OffsetCorrector


def dump_json(obj: Any) -> None:
    sys.stdout.buffer.write(orjson.dumps(obj, option=orjson.OPT_INDENT_2))
    sys.stdout.buffer.write(b"\n")


def log(msg: str) -> None:
    print(msg, file=sys.stderr, flush=True)


# ---------------------------------------------------------------------------
# Correction
# ---------------------------------------------------------------------------


def _span_from_record(record: dict[str, Any], line_no: int) -> tuple[int, int]:
    start = record.get("start")
    end = record.get("end")
    if type(start) is not int or type(end) is not int:
        raise ValueError(f"record {line_no}: 'start' and 'end' must be integers")
    return start, end


def correct_records(
    parsed: ParsedMarkup,
    records: list[dict[str, Any]],
    *,
    stripped: bool = False,
) -> list[dict[str, Any]]:
    """Correct each record's span and return one result row per record.

    Args:
        parsed: Scanned markup document.
        records: Span records with ``start``/``end`` keys.
        stripped: If True, offsets are in stripped-text coordinates and are
            re-mapped to the original before correction.

    Raises:
        ValueError: On malformed records or out-of-range offsets.
    """
    corrector = OffsetCorrector(parsed.text, parsed.table)
    stripped_text = strip_markup(parsed) if stripped else None

    rows: list[dict[str, Any]] = []
    for line_no, record in enumerate(records, start=1):
        start, end = _span_from_record(record, line_no)
        if stripped_text is not None:
            original = stripped_text.to_original_span(start, end)
        else:
            original = (start, end)
        span = corrector.correct_pair(*original)

        row: dict[str, Any] = {
            k: v for k, v in record.items() if k not in ("start", "end")
        }
        row["input"] = [start, end]
        row["original"] = list(original)
        if span is None:
            row["status"] = "unalignable"
            row["span"] = None
            row["text"] = None
        else:
            row["status"] = "corrected"
            row["span"] = [span.start, span.end]
            row["text"] = parsed.text[span.start:span.end]
        rows.append(row)
    return rows


def summarize(rows: list[dict[str, Any]]) -> dict[str, Any]:
    status_counts = Counter(row["status"] for row in rows)
    widened = sum(
        1 for row in rows
        if row["span"] is not None and row["span"] != row["original"]
    )
    return {
        "total": len(rows),
        "corrected": status_counts.get("corrected", 0),
        "unalignable": status_counts.get("unalignable", 0),
        "changed": widened,
    }


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Correct tagger spans so they align with markup tags."
    )
    parser.add_argument(
        "--markup", type=Path, required=True,
        help="Path to the HTML/XML document",
    )
    parser.add_argument(
        "--spans", type=Path, required=True,
        help="JSONL file of candidate spans with 'start' and 'end'",
    )
    parser.add_argument(
        "--stripped", action="store_true",
        help="Span offsets refer to the markup-stripped text",
    )
    parser.add_argument(
        "--xml", action="store_true",
        help="Treat every element as paired (no HTML void elements)",
    )
    parser.add_argument(
        "--output", type=Path, default=None,
        help="Also write the JSON payload to this file",
    )
    parser.add_argument(
        "--verbose", action="store_true",
        help="Verbose logging",
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    if not args.markup.exists():
        log(f"Error: markup file not found: {args.markup}")
        sys.exit(1)
    if not args.spans.exists():
        log(f"Error: spans file not found: {args.spans}")
        sys.exit(1)

    text = read_file(args.markup)
    void_elements = frozenset() if args.xml else HTML_VOID_ELEMENTS
    try:
        parsed = parse_markup(text, void_elements=void_elements)
    except MarkupError as exc:
        log(f"Error: cannot scan {args.markup}: {exc}")
        sys.exit(1)

    try:
        records = load_jsonl(args.spans)
    except orjson.JSONDecodeError as exc:
        log(f"Error: invalid JSONL in {args.spans}: {exc}")
        sys.exit(1)

    try:
        rows = correct_records(
            parsed,
            records,
            stripped=args.stripped,
        )
    except ValueError as exc:
        log(f"Error: {exc}")
        sys.exit(1)

    summary = summarize(rows)
    log(
        f"Corrected {summary['corrected']}/{summary['total']} spans "
        f"({summary['unalignable']} unalignable, {summary['changed']} changed)"
    )
    payload = {
        "document": str(args.markup),
        "num_tags": len(parsed.table),
        "results": rows,
        "summary": summary,
    }
    if args.output is not None:
        save_json(payload, args.output)
        log(f"Wrote JSON report: {args.output}")
    dump_json(payload)


if __name__ == "__main__":
    main()
