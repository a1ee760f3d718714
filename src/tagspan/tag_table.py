"""Tag table and parent-change index for markup-bearing documents.

The tag hierarchy is a flat, id-addressed table: each record stores its
parent id and the offsets of its open and close delimiters, so climbing to
a parent is tuple indexing. A derived parent-change index records every
offset where the innermost enclosing tag changes, enabling O(log T)
offset -> tag lookup via ``bisect_right`` instead of tree traversal.

Tables are immutable once built. Producers populate them through
``TagTableBuilder`` (see ``tagspan.markup`` for the HTML/XML scanner).
"""
from __future__ import annotations

from bisect import bisect_right
from dataclasses import dataclass, field

ROOT_TAG = -1
"""Sentinel id for "no enclosing tag"; its virtual bounds are the whole document."""


@dataclass(frozen=True, slots=True)
class TagRecord:
    """Offsets of one tag's delimiters plus its parent id."""

    parent: int
    open_start: int
    open_end: int
    close_start: int
    close_end: int

    def __post_init__(self) -> None:
        if self.open_start < 0:
            raise ValueError(f"open_start must be >= 0, got {self.open_start}")
        if not (
            self.open_start < self.open_end
            <= self.close_start < self.close_end
        ):
            raise ValueError(
                "tag offsets must satisfy open_start < open_end <= close_start < close_end, "
                f"got ({self.open_start}, {self.open_end}, {self.close_start}, {self.close_end})",
            )

    def encloses(self, offset: int) -> bool:
        return self.open_start <= offset < self.close_end


@dataclass(frozen=True, slots=True)
class TagTable:
    """Immutable tag records plus the ascending parent-change index.

    ``change_offsets`` and ``change_ids`` are parallel: from
    ``change_offsets[i]`` up to the next change, the innermost enclosing tag
    is ``change_ids[i]``.
    """

    records: tuple[TagRecord, ...] = ()
    change_offsets: tuple[int, ...] = (0,)
    change_ids: tuple[int, ...] = (ROOT_TAG,)
    extent: int = field(init=False, default=0)

    def __post_init__(self) -> None:
        if len(self.change_offsets) != len(self.change_ids):
            raise ValueError("change_offsets and change_ids must have equal length")
        for prev, cur in zip(self.change_offsets, self.change_offsets[1:]):
            if cur <= prev:
                raise ValueError(
                    f"change_offsets must be strictly ascending, got {prev} then {cur}",
                )
        n = len(self.records)
        for tag_id in self.change_ids:
            if not ROOT_TAG <= tag_id < n:
                raise ValueError(f"parent-change index references unknown tag {tag_id}")

        extent = 0
        for tag_id, rec in enumerate(self.records):
            if rec.parent != ROOT_TAG:
                if not 0 <= rec.parent < tag_id:
                    raise ValueError(
                        f"tag {tag_id} has parent {rec.parent}; parents must precede children",
                    )
                parent = self.records[rec.parent]
                if not (
                    parent.open_end <= rec.open_start
                    and rec.close_end <= parent.close_start
                ):
                    raise ValueError(
                        f"tag {tag_id} is not contained in the body of its parent {rec.parent}",
                    )
            extent = max(extent, rec.close_end)
        object.__setattr__(self, "extent", extent)

    def __len__(self) -> int:
        return len(self.records)

    def parent(self, tag_id: int) -> int:
        return self.records[tag_id].parent

    def open_start(self, tag_id: int) -> int:
        return self.records[tag_id].open_start

    def open_end(self, tag_id: int) -> int:
        return self.records[tag_id].open_end

    def close_start(self, tag_id: int) -> int:
        return self.records[tag_id].close_start

    def close_end(self, tag_id: int) -> int:
        return self.records[tag_id].close_end

    def lookup_enclosing_tag(self, offset: int) -> int:
        """Return the innermost tag enclosing *offset*, or ``ROOT_TAG``.

        Rounds down to the latest parent change at or before *offset*.
        Offsets before the first recorded change belong to the root.
        """
        idx = bisect_right(self.change_offsets, offset) - 1
        if idx < 0:
            return ROOT_TAG
        return self.change_ids[idx]


class TagTableBuilder:
    """Stack-based producer of a ``TagTable``.

    Tags must be opened and closed in document order. Each tag gets its id
    when opened, so parent ids always precede child ids.

    Example::

        builder = TagTableBuilder()
        builder.open_tag(0, 3)      # <a>
        builder.close_tag(7, 11)    # </a>
        table = builder.build()
    """

    def __init__(self) -> None:
        # [parent, open_start, open_end, close_start, close_end]; closes are -1 until seen
        self._pending: list[list[int]] = []
        self._stack: list[int] = []
        self._change_offsets: list[int] = [0]
        self._change_ids: list[int] = [ROOT_TAG]

    @property
    def depth(self) -> int:
        """Number of tags currently open."""
        return len(self._stack)

    def open_tag(self, open_start: int, open_end: int) -> int:
        """Register a tag whose open delimiter spans ``[open_start, open_end)``."""
        parent = self._stack[-1] if self._stack else ROOT_TAG
        tag_id = len(self._pending)
        self._pending.append([parent, open_start, open_end, -1, -1])
        self._stack.append(tag_id)
        self._mark_parent_change(open_start, tag_id)
        return tag_id

    def close_tag(self, close_start: int, close_end: int) -> int:
        """Complete the innermost open tag with delimiter ``[close_start, close_end)``."""
        if not self._stack:
            raise ValueError(f"close tag at {close_start} has no open tag")
        tag_id = self._stack.pop()
        row = self._pending[tag_id]
        row[3] = close_start
        row[4] = close_end
        self._mark_parent_change(close_end, row[0])
        return tag_id

    def build(self) -> TagTable:
        if self._stack:
            raise ValueError(f"{len(self._stack)} tag(s) left open")
        return TagTable(
            records=tuple(TagRecord(*row) for row in self._pending),
            change_offsets=tuple(self._change_offsets),
            change_ids=tuple(self._change_ids),
        )

    def _mark_parent_change(self, offset: int, tag_id: int) -> None:
        last = self._change_offsets[-1]
        if offset == last:
            # e.g. "</a><b>": b starts where a's close ends
            self._change_ids[-1] = tag_id
        elif offset > last:
            self._change_offsets.append(offset)
            self._change_ids.append(tag_id)
        else:
            raise ValueError(
                f"parent change at {offset} precedes last recorded change at {last}",
            )
