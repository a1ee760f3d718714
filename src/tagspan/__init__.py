"""Align tagger spans over stripped text with the original markup's tags."""

from tagspan.markup import (
    HTML_VOID_ELEMENTS,
    MarkupError,
    ParsedMarkup,
    StrippedRun,
    StrippedText,
    parse_markup,
    strip_markup,
)
from tagspan.offset_corrector import CorrectedSpan, OffsetCorrector
from tagspan.tag_table import ROOT_TAG, TagRecord, TagTable, TagTableBuilder

__all__ = [
    "CorrectedSpan",
    "HTML_VOID_ELEMENTS",
    "MarkupError",
    "OffsetCorrector",
    "ParsedMarkup",
    "ROOT_TAG",
    "StrippedRun",
    "StrippedText",
    "TagRecord",
    "TagTable",
    "TagTableBuilder",
    "parse_markup",
    "strip_markup",
]
