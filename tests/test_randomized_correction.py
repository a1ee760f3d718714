"""Randomized checks of OffsetCorrector against brute-force expectations."""
import random
import string

import pytest

from tagspan.markup import parse_markup
from tagspan.offset_corrector import OffsetCorrector
from tagspan.tag_table import TagTableBuilder


def _random_word(rng: random.Random, min_len: int = 1, max_len: int = 1) -> str:
    length = rng.randint(min_len, max_len)
    return "".join(rng.choice(string.ascii_lowercase) for _ in range(length))


def _random_names(rng: random.Random) -> list[str]:
    # first name is long, the rest single letters; multi-word names reuse them
    names = [_random_word(rng, 16, 32)]
    names.extend(_random_word(rng) for _ in range(3))
    for _ in range(10):
        words = [
            _random_word(rng) if rng.random() < 0.5 else rng.choice(names)
            for _ in range(rng.randint(2, 4))
        ]
        names.append(" ".join(words))
    return sorted(set(names))


def _random_markup(rng: random.Random, depth: int = 0) -> str:
    parts: list[str] = []
    for _ in range(rng.randint(0, 4)):
        roll = rng.random()
        if roll < 0.35 and depth < 3:
            name = rng.choice("abc")
            parts.append(f"<{name}>{_random_markup(rng, depth + 1)}</{name}>")
        elif roll < 0.7:
            parts.append(rng.choice(["word", "x", "yz"]))
        else:
            parts.append(rng.choice([" ", "  ", "\n", "\t "]))
    return "".join(parts)


class TestTagFreeDocuments:
    @pytest.mark.parametrize("seed", range(10))
    def test_name_occurrences_are_unchanged(self, seed: int) -> None:
        rng = random.Random(seed)
        names = _random_names(rng)

        # must start and end with a space so every name is space-bounded
        words = [" "]
        for _ in range(20):
            words.append(_random_word(rng) if rng.random() < 0.5 else rng.choice(names))
            words.append(" ")
        text = "".join(words)

        corrector = OffsetCorrector(text, TagTableBuilder().build())
        checked = 0
        for name in names:
            spaced = f" {name} "
            off = text.find(spaced)
            while off >= 0:
                expected = (off + 1, off + 1 + len(name))
                span = corrector.correct_pair(*expected)
                assert span is not None
                assert span.as_tuple() == expected
                checked += 1
                off = text.find(spaced, off + 1)
        assert checked > 0


class TestNestedMarkupProperties:
    @pytest.mark.parametrize("seed", range(20))
    def test_corrections_respect_tag_structure(self, seed: int) -> None:
        rng = random.Random(seed)
        markup = _random_markup(rng)
        while len(markup) < 20:
            markup += _random_markup(rng)
        parsed = parse_markup(markup)
        table = parsed.table
        corrector = parsed.corrector()

        in_markup = [False] * len(markup)
        inside_delim = [False] * (len(markup) + 1)
        for start, end in parsed.markup_ranges:
            for i in range(start, end):
                in_markup[i] = True
            for i in range(start + 1, end):
                inside_delim[i] = True
        positions = [p for p in range(len(markup) + 1) if not inside_delim[p]]
        open_starts = {rec.open_start for rec in table.records}
        close_ends = {rec.close_end for rec in table.records}

        for _ in range(300):
            left, right = sorted((rng.choice(positions), rng.choice(positions)))
            if left in open_starts:
                # a start on an open "<" counts as inside that element, so
                # the end may legitimately stay inside it
                continue
            snapped = corrector.snap_end_offset(left, right)
            span = corrector.correct_pair(left, right)
            if span is None:
                continue

            # widening only
            assert span.start <= left
            assert span.end >= snapped

            # boundaries land on tag edges when they move
            assert span.start == left or span.start in open_starts
            assert span.end == snapped or span.end in close_ends

            # only whitespace and delimiters are absorbed
            for i in [*range(span.start, left), *range(snapped, span.end)]:
                assert in_markup[i] or markup[i].isspace()

            # no tag straddles a boundary
            for rec in table.records:
                assert not rec.open_start < span.start < rec.close_end < span.end
                assert not span.start <= rec.open_start < span.end < rec.close_end
