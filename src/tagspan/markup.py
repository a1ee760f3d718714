"""HTML/XML markup scanning into a tag table, and markup stripping.

``parse_markup`` walks the markup with ``html.parser.HTMLParser`` (the
backend behind BeautifulSoup's ``"html.parser"``) and records, per paired
element, the absolute offsets of its open and close delimiters. Void
elements, self-closing elements, comments, declarations and processing
instructions are markup but not tags: they are excluded from the stripped
text and never nest anything.

``strip_markup`` produces the text a tagger sees plus a run-length inverse
map back to original offsets, so tagger spans can be re-mapped and then
handed to ``OffsetCorrector.correct_pair``.
"""
from __future__ import annotations

import logging
import re
from bisect import bisect_right
from dataclasses import dataclass
from html.parser import HTMLParser

from tagspan.offset_corrector import OffsetCorrector
from tagspan.tag_table import TagTable, TagTableBuilder

log = logging.getLogger(__name__)

HTML_VOID_ELEMENTS: frozenset[str] = frozenset({
    "area", "base", "br", "col", "embed", "hr", "img", "input",
    "link", "meta", "param", "source", "track", "wbr",
})


class MarkupError(ValueError):
    """Markup cannot be encoded as a properly nested tag table."""

    def __init__(self, message: str, offset: int) -> None:
        super().__init__(f"{message} (offset {offset})")
        self.offset = offset


# ---------------------------------------------------------------------------
# Scanning
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ParsedMarkup:
    """Markup text with its tag table and every delimiter range."""

    text: str
    table: TagTable
    markup_ranges: tuple[tuple[int, int], ...]

    def corrector(self) -> OffsetCorrector:
        """Build an ``OffsetCorrector`` over this document."""
        return OffsetCorrector(self.text, self.table)


class _MarkupScanner(HTMLParser):
    """Collects tag delimiter offsets while HTMLParser tokenizes."""

    def __init__(self, markup: str, void_elements: frozenset[str]) -> None:
        super().__init__(convert_charrefs=False)
        self._markup = markup
        self._void_elements = void_elements
        self._line_starts = [0] + [m.end() for m in re.finditer("\n", markup)]
        self._open_names: list[tuple[str, int]] = []
        self.builder = TagTableBuilder()
        self.ranges: list[tuple[int, int]] = []

    def _offset(self) -> int:
        # getpos() is (1-based line, column) of the construct being handled
        lineno, column = self.getpos()
        return self._line_starts[lineno - 1] + column

    def _end_of(self, search_from: int) -> int:
        gt = self._markup.find(">", search_from)
        if gt < 0:
            raise MarkupError("unterminated markup", search_from)
        return gt + 1

    def handle_starttag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        start = self._offset()
        end = start + len(self.get_starttag_text() or "")
        self.ranges.append((start, end))
        if tag in self._void_elements:
            return
        self.builder.open_tag(start, end)
        self._open_names.append((tag, start))

    def handle_startendtag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        start = self._offset()
        self.ranges.append((start, start + len(self.get_starttag_text() or "")))

    def handle_endtag(self, tag: str) -> None:
        start = self._offset()
        end = self._end_of(start)
        self.ranges.append((start, end))
        if tag in self._void_elements:
            return
        if not self._open_names:
            raise MarkupError(f"close tag </{tag}> without open tag", start)
        open_name, open_start = self._open_names[-1]
        if open_name != tag:
            raise MarkupError(
                f"close tag </{tag}> does not match <{open_name}> opened at {open_start}",
                start,
            )
        self._open_names.pop()
        self.builder.close_tag(start, end)

    def handle_comment(self, data: str) -> None:
        # bogus comments (<!x>, </1>) arrive here too, with a 2-char prefix
        start = self._offset()
        prefix = 4 if self._markup.startswith("<!--", start) else 2
        self.ranges.append((start, self._end_of(start + prefix + len(data))))

    def handle_decl(self, decl: str) -> None:
        start = self._offset()
        self.ranges.append((start, self._end_of(start + 2 + len(decl))))

    def handle_pi(self, data: str) -> None:
        start = self._offset()
        self.ranges.append((start, self._end_of(start + 2 + len(data))))

    def unknown_decl(self, data: str) -> None:
        start = self._offset()
        self.ranges.append((start, self._end_of(start + 3 + len(data))))

    def finish(self) -> TagTable:
        self.close()
        if self._open_names:
            name, open_start = self._open_names[-1]
            raise MarkupError(f"element <{name}> is never closed", open_start)
        return self.builder.build()


def parse_markup(
    markup: str,
    *,
    void_elements: frozenset[str] = HTML_VOID_ELEMENTS,
) -> ParsedMarkup:
    """Scan *markup* into a tag table.

    Args:
        markup: HTML or XML document text.
        void_elements: Lower-case element names that never take a close tag.
            Pass an empty set for XML.

    Returns:
        ParsedMarkup with the table and all delimiter ranges in document order.

    Raises:
        MarkupError: If close tags do not match open tags or elements are
            left open.
    """
    scanner = _MarkupScanner(markup, void_elements)
    scanner.feed(markup)
    table = scanner.finish()
    log.debug(
        "scanned %d chars: %d tags, %d markup ranges",
        len(markup), len(table), len(scanner.ranges),
    )
    return ParsedMarkup(text=markup, table=table, markup_ranges=tuple(scanner.ranges))


# ---------------------------------------------------------------------------
# Stripping with inverse map
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class StrippedRun:
    """Contiguous stretch of stripped text copied from the original."""

    stripped_start: int
    original_start: int
    length: int

    def __post_init__(self) -> None:
        if self.length <= 0:
            raise ValueError(f"length must be positive, got {self.length}")


@dataclass(frozen=True, slots=True)
class StrippedText:
    """Markup-free text plus runs mapping it back to the original."""

    text: str
    runs: tuple[StrippedRun, ...]
    original_length: int

    def to_original_offset(self, offset: int) -> int:
        """Original offset of the stripped character at *offset*."""
        if not 0 <= offset < len(self.text):
            raise ValueError(f"offset {offset} outside stripped text of length {len(self.text)}")
        idx = bisect_right(self.runs, offset, key=lambda run: run.stripped_start) - 1
        run = self.runs[idx]
        return run.original_start + (offset - run.stripped_start)

    def to_original_span(self, start: int, end: int) -> tuple[int, int]:
        """Map a stripped ``[start, end)`` span into original coordinates.

        The end maps to just past the last covered character, so spans never
        absorb markup that follows them.
        """
        if not 0 <= start <= end <= len(self.text):
            raise ValueError(
                f"span ({start}, {end}) outside stripped text of length {len(self.text)}",
            )
        if start == len(self.text):
            original_start = self.original_length
        else:
            original_start = self.to_original_offset(start)
        if end == start:
            return (original_start, original_start)
        return (original_start, self.to_original_offset(end - 1) + 1)


def strip_markup(parsed: ParsedMarkup) -> StrippedText:
    """Remove every markup range from the parsed document."""
    text = parsed.text
    pieces: list[str] = []
    runs: list[StrippedRun] = []
    stripped_pos = 0
    pos = 0
    for start, end in parsed.markup_ranges:
        if start > pos:
            runs.append(StrippedRun(stripped_pos, pos, start - pos))
            pieces.append(text[pos:start])
            stripped_pos += start - pos
        pos = max(pos, end)
    if pos < len(text):
        runs.append(StrippedRun(stripped_pos, pos, len(text) - pos))
        pieces.append(text[pos:])
    return StrippedText(text="".join(pieces), runs=tuple(runs), original_length=len(text))
