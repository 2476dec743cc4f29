# positions.py
# SPDX-License-Identifier: MIT
"""Map byte offsets in the original Markdown text to 1-based line numbers.

Offsets are UTF-8 byte offsets into the text as received. Line terminators
are ``\\r\\n``, ``\\r`` and ``\\n``, the same sequences the parser treats as
line breaks, so parser line maps and tracker lines agree.
"""
from __future__ import annotations

import re
from bisect import bisect_right
from dataclasses import dataclass
from typing import Iterable, List, Optional

__all__ = ["LineRange", "ByteRange", "SourcePosition", "SourceTracker"]

_LINE_BREAK = re.compile(rb"\r\n|\r|\n")


@dataclass(slots=True, frozen=True)
class LineRange:
    start_line: int
    end_line: int


@dataclass(slots=True, frozen=True)
class ByteRange:
    start_byte: int
    end_byte: int


@dataclass(slots=True, frozen=True)
class SourcePosition:
    """Line and byte span of a node or chunk.

    Attributes:
        lines (LineRange | None): Inclusive 1-based line range, or None for
            spans with no text (zero length).
        bytes (ByteRange): Half-open byte range ``[start_byte, end_byte)``.
    """
    lines: Optional[LineRange]
    bytes: ByteRange

    @classmethod
    def merge(cls, positions: Iterable["SourcePosition"]) -> "SourcePosition":
        """Return the smallest position covering every input position.

        Raises:
            ValueError: If ``positions`` is empty.
        """
        items = list(positions)
        if not items:
            raise ValueError("cannot merge an empty sequence of positions")
        start_byte = min(p.bytes.start_byte for p in items)
        end_byte = max(p.bytes.end_byte for p in items)
        line_ranges = [p.lines for p in items if p.lines is not None]
        lines = None
        if line_ranges:
            lines = LineRange(
                min(r.start_line for r in line_ranges),
                max(r.end_line for r in line_ranges),
            )
        return cls(lines=lines, bytes=ByteRange(start_byte, end_byte))


class SourceTracker:
    """Byte/line lookups over one immutable source text.

    The line-start table is computed once on construction; every lookup is
    an O(log n) bisect.
    """

    __slots__ = ("text", "data", "_line_starts")

    def __init__(self, text: str) -> None:
        self.text = text
        self.data = text.encode("utf-8")
        starts: List[int] = [0]
        starts.extend(m.end() for m in _LINE_BREAK.finditer(self.data))
        self._line_starts = starts

    def __len__(self) -> int:
        return len(self.data)

    @property
    def line_count(self) -> int:
        return len(self._line_starts)

    def line_of(self, byte_offset: int) -> int:
        """Return the 1-based line containing ``byte_offset``."""
        offset = min(max(byte_offset, 0), len(self.data))
        return bisect_right(self._line_starts, offset)

    def byte_of_line(self, line_index: int) -> int:
        """Return the byte offset where 0-based line ``line_index`` starts.

        Indices past the last line map to the end of the text.
        """
        if line_index <= 0:
            return 0
        if line_index >= len(self._line_starts):
            return len(self.data)
        return self._line_starts[line_index]

    def position_of(self, start_byte: int, end_byte: int) -> SourcePosition:
        """Compute the source position for ``[start_byte, end_byte)``.

        The end line is the line of the last byte that is not part of a
        trailing run of line terminators, so a span that ends in blank lines
        reports the line of its last content.
        """
        if start_byte > end_byte:
            raise ValueError(f"invalid span: start {start_byte} > end {end_byte}")
        span = ByteRange(start_byte, end_byte)
        if start_byte == end_byte:
            return SourcePosition(lines=None, bytes=span)
        last = end_byte
        while last > start_byte and self.data[last - 1] in (0x0A, 0x0D):
            last -= 1
        start_line = self.line_of(start_byte)
        end_line = self.line_of(last - 1) if last > start_byte else start_line
        return SourcePosition(lines=LineRange(start_line, end_line), bytes=span)

    def slice(self, start_byte: int, end_byte: int) -> str:
        """Decode the original text between two byte offsets."""
        return self.data[start_byte:end_byte].decode("utf-8")

    def is_blank(self, start_byte: int, end_byte: int) -> bool:
        """Return True when the span holds only whitespace (or nothing)."""
        return not self.data[start_byte:end_byte].strip()
