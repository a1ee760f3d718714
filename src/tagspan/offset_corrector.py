"""Correct candidate spans so they never split markup tags.

A tagger working over stripped text produces ``[start, end)`` spans that,
once re-mapped to the original markup, may start inside one element and end
inside another. ``OffsetCorrector.correct_pair`` widens such a span outward
over whitespace and enclosing tag delimiters until both ends share an
ancestor tag, or reports the span as unalignable (``None``) when widening
would cross real content.

Algorithm:
    1. Snap the end offset back over a trailing close delimiter
       (``foo</tag>|`` -> ``foo|</tag>``).
    2. Look up the innermost tags enclosing both offsets.
    3. Climb from the start tag until a tag encloses the end offset (the
       ancestor), pulling the start left to each open delimiter.
    4. Climb from the end tag up to the ancestor, pushing the end right past
       each close delimiter.

Text skipped in steps 3 and 4 must be whitespace, otherwise the pair is
unalignable.
"""
from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from tagspan.tag_table import ROOT_TAG, TagTable

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CorrectedSpan:
    """A corrected ``[start, end)`` span in original-text coordinates."""

    start: int
    end: int

    def __post_init__(self) -> None:
        if self.start < 0:
            raise ValueError(f"start must be >= 0, got {self.start}")
        if self.end < self.start:
            raise ValueError(f"end must be >= start, got {self.end} < {self.start}")

    def as_tuple(self) -> tuple[int, int]:
        return (self.start, self.end)


class OffsetCorrector:
    """Aligns candidate spans with the tag structure of one document.

    The corrector borrows *doc_text* and *tag_table* and never mutates them.
    Results are immutable values; the last successful one is kept on
    ``last_span``. One instance should not be shared between threads; the
    table itself is safe to share between correctors.
    """

    def __init__(self, doc_text: str, tag_table: TagTable) -> None:
        if tag_table.extent > len(doc_text):
            raise ValueError(
                f"tag table extends to {tag_table.extent} beyond document length {len(doc_text)}",
            )
        self.doc_text = doc_text
        self.tag_table = tag_table
        self._last_span: CorrectedSpan | None = None

    @property
    def last_span(self) -> CorrectedSpan | None:
        """Most recent successful result, or None before any success."""
        return self._last_span

    def correct_pair(self, left_offset: int, right_offset: int) -> CorrectedSpan | None:
        """Correct ``[left_offset, right_offset)``; None if it is unalignable.

        The left offset is pulled left over whitespace and opening tags; the
        right offset is pulled right over whitespace and closing tags.

        Raises:
            ValueError: If the offsets are not ``0 <= left <= right <= len(doc_text)``.
        """
        if not 0 <= left_offset <= right_offset <= len(self.doc_text):
            raise ValueError(
                f"offsets ({left_offset}, {right_offset}) out of bounds for "
                f"document of length {len(self.doc_text)}",
            )
        table = self.tag_table
        right_offset = self.snap_end_offset(left_offset, right_offset)

        start_tag = table.lookup_enclosing_tag(left_offset)
        end_tag = table.lookup_enclosing_tag(right_offset)

        # Find the ancestor enclosing both offsets, moving the left offset out.
        tag = start_tag
        while not self.tag_encloses_offset(tag, right_offset):
            if self.has_non_whitespace(table.open_end(tag), left_offset):
                log.debug(
                    "unalignable: content between open tag %d and offset %d",
                    tag, left_offset,
                )
                return None
            left_offset = table.open_start(tag)
            tag = table.parent(tag)
        ancestor = tag

        tag = end_tag
        while tag != ancestor:
            if self.has_non_whitespace(right_offset, table.close_start(tag)):
                log.debug(
                    "unalignable: content between offset %d and close tag %d",
                    right_offset, tag,
                )
                return None
            right_offset = table.close_end(tag)
            tag = table.parent(tag)

        span = CorrectedSpan(left_offset, right_offset)
        self._last_span = span
        return span

    def correct_spans(
        self, pairs: Iterable[tuple[int, int]],
    ) -> list[CorrectedSpan | None]:
        """Apply ``correct_pair`` to each ``(start, end)`` pair in order."""
        return [self.correct_pair(start, end) for start, end in pairs]

    def snap_end_offset(self, left_offset: int, end_offset: int) -> int:
        """Pull *end_offset* back to the ``<`` of a close tag it lands just past.

        HTML stripping can report an end offset after a closing element, e.g.
        ``foo</tag>|``; this moves it to ``foo|</tag>``.
        """
        if end_offset == 0 or self.doc_text[end_offset - 1] != ">":
            return end_offset
        new_end = self.doc_text.rfind("<", 0, end_offset - 1)
        # never move the end before this call's start
        if new_end > left_offset:
            return new_end
        return end_offset

    def lookup_tag(self, offset: int) -> int:
        return self.tag_table.lookup_enclosing_tag(offset)

    def has_non_whitespace(self, start: int, end: int) -> bool:
        """True if ``doc_text[start:end]`` holds any non-whitespace character."""
        if start >= end:
            return False
        return not self.doc_text[start:end].isspace()

    def tag_encloses_offset(self, tag: int, offset: int) -> bool:
        if tag == ROOT_TAG:
            return True
        return self.tag_table.records[tag].encloses(offset)
