# nodes.py
# SPDX-License-Identifier: MIT
"""Document object tree: node kinds and the immutable node value type."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterator, Optional, Tuple

from .positions import SourcePosition

__all__ = ["NodeKind", "Node", "INTERIOR_KINDS"]


class NodeKind(str, Enum):
    DOCUMENT = "document"
    HEADING = "heading"
    PARAGRAPH = "paragraph"
    LIST = "list"
    LIST_ITEM = "list_item"
    CODE_BLOCK = "code_block"
    TABLE = "table"
    TABLE_ROW = "table_row"
    BLOCKQUOTE = "blockquote"
    THEMATIC_BREAK = "thematic_break"
    TEXT = "text"
    OPAQUE = "opaque"


# Kinds built from their syntax children. Headings get their children from
# the section that follows them instead.
INTERIOR_KINDS = frozenset({
    NodeKind.DOCUMENT,
    NodeKind.LIST,
    NodeKind.LIST_ITEM,
    NodeKind.TABLE,
    NodeKind.BLOCKQUOTE,
})


@dataclass(slots=True, frozen=True)
class Node:
    """One element of the document object tree.

    Attributes:
        kind (NodeKind): Block kind.
        markdown (str): Exact source text covered by ``position.bytes``.
        token_count (int): Tokens of ``markdown`` for leaves; for interior
            nodes the sum of the children plus the tokens of any markup the
            node owns outside its children (e.g. a table delimiter row, or
            the heading line of a section).
        position (SourcePosition): Line and byte span in the source.
        children (tuple[Node, ...]): Ordered, non-overlapping children. A
            top-level heading holds the blocks of its section.
        heading_title (str | None): Inline title text, headings only.
        level (int | None): Heading level 1-6, headings only.
        ordered (bool | None): Whether a list is ordered, lists only.
        language (str | None): Info string of a fenced code block.
        filename (str | None): Source file name, document root only.
    """
    kind: NodeKind
    markdown: str
    token_count: int
    position: SourcePosition
    children: Tuple["Node", ...] = ()
    heading_title: Optional[str] = None
    level: Optional[int] = None
    ordered: Optional[bool] = None
    language: Optional[str] = None
    filename: Optional[str] = None

    @property
    def start_byte(self) -> int:
        return self.position.bytes.start_byte

    @property
    def end_byte(self) -> int:
        return self.position.bytes.end_byte

    @property
    def is_leaf(self) -> bool:
        return not self.children

    def walk(self) -> Iterator["Node"]:
        """Yield this node and its descendants in document order."""
        yield self
        for child in self.children:
            yield from child.walk()
