# builder.py
# SPDX-License-Identifier: MIT
"""Build the document object tree from a markdown-it syntax tree.

Every block maps to a :class:`Node` whose ``markdown`` is the exact source
slice for its byte span. Children partition their parent: whitespace between
blocks is absorbed by the preceding block (leading whitespace by the first
one), and any markup the parser attributes to no child block (a table
delimiter row, link reference definitions, a section's heading line) stays
with the parent and is counted in the parent's tokens.

At document level the tree nests by outline: a heading owns the blocks that
follow it up to the next heading of the same or a higher level.
"""
from __future__ import annotations

from dataclasses import replace
from typing import List, Optional, Sequence, Tuple

from markdown_it.tree import SyntaxTreeNode

from .errors import BuildError
from .log import get_logger
from .nodes import INTERIOR_KINDS, Node, NodeKind
from .parser import parse_markdown
from .positions import SourceTracker
from .tokenizer import TokenCounter

__all__ = ["MarkdownObjectBuilder", "build_document", "partition_spans"]

log = get_logger(__name__)

Span = Tuple[int, int]

_KIND_MAP = {
    "heading": NodeKind.HEADING,
    "paragraph": NodeKind.PARAGRAPH,
    "bullet_list": NodeKind.LIST,
    "ordered_list": NodeKind.LIST,
    "list_item": NodeKind.LIST_ITEM,
    "fence": NodeKind.CODE_BLOCK,
    "code_block": NodeKind.CODE_BLOCK,
    "table": NodeKind.TABLE,
    "tr": NodeKind.TABLE_ROW,
    "blockquote": NodeKind.BLOCKQUOTE,
    "hr": NodeKind.THEMATIC_BREAK,
    "html_block": NodeKind.TEXT,
}


def partition_spans(
    tracker: SourceTracker,
    start: int,
    end: int,
    raw: Sequence[Span],
) -> Tuple[List[Span], List[Span]]:
    """Fit child spans into ``[start, end)`` and find the gaps between them.

    Raw spans are clamped into the parent and made non-overlapping in order.
    Whitespace-only gaps are absorbed by the preceding child (or, before the
    first child, by the first child).

    Returns:
        tuple[list[Span], list[Span]]: Adjusted child spans and the gaps no
            child covers. With at least one child every gap holds markup.
    """
    spans: List[List[int]] = []
    cursor = start
    for s, e in raw:
        s = min(max(s, cursor), end)
        e = min(max(e, s), end)
        spans.append([s, e])
        cursor = e
    if spans and tracker.is_blank(start, spans[0][0]):
        spans[0][0] = start
    for i, span in enumerate(spans):
        nxt = spans[i + 1][0] if i + 1 < len(spans) else end
        if tracker.is_blank(span[1], nxt):
            span[1] = nxt

    gaps: List[Span] = []
    cursor = start
    for s, e in spans:
        if s > cursor:
            gaps.append((cursor, s))
        cursor = e
    if cursor < end:
        gaps.append((cursor, end))
    return [(s, e) for s, e in spans], gaps


class MarkdownObjectBuilder:
    """Single-pass builder: top-down span layout, bottom-up token counts.

    Args:
        counter (TokenCounter): Request-scoped token counter.
    """

    def __init__(self, counter: TokenCounter) -> None:
        self.counter = counter

    def build(
        self,
        text: str,
        filename: str,
        tree: Optional[SyntaxTreeNode] = None,
    ) -> Node:
        """Build the document tree for ``text``.

        Args:
            text (str): Markdown source the tree was parsed from.
            filename (str): Name recorded on the root for breadcrumbs.
            tree (SyntaxTreeNode | None): Pre-parsed syntax tree; parsed
                here when omitted.

        Returns:
            Node: Document root.

        Raises:
            ParseError: If parsing fails.
            BuildError: If a block cannot be placed in the source.
            TokenizationError: If the tokenizer fails on any span.
        """
        tracker = SourceTracker(text)
        if tree is None:
            tree = parse_markdown(text)
        if tree.type != "root":
            raise BuildError(f"Expected a root syntax node; got {tree.type!r}.")

        root = self._build_node(tracker, tree, NodeKind.DOCUMENT, 0, len(tracker), filename=filename)
        log.debug(
            "Built %s: %d nodes, %d top-level blocks, %d tokens, %d bytes",
            filename,
            sum(1 for _ in root.walk()),
            len(root.children),
            root.token_count,
            len(tracker),
        )
        return root

    # -----------------
    # Tree construction
    # -----------------
    def _build_node(
        self,
        tracker: SourceTracker,
        snode: SyntaxTreeNode,
        kind: NodeKind,
        start: int,
        end: int,
        *,
        filename: Optional[str] = None,
    ) -> Node:
        markdown = tracker.slice(start, end)
        position = tracker.position_of(start, end)
        children: Tuple[Node, ...] = ()
        if kind in INTERIOR_KINDS:
            blocks = self._child_blocks(tracker, snode, kind)
            spans, _ = partition_spans(tracker, start, end, [span for _, _, span in blocks])
            children = tuple(
                self._build_node(tracker, child, child_kind, s, e)
                for (child, child_kind, _), (s, e) in zip(blocks, spans)
            )
            if kind is NodeKind.DOCUMENT:
                children = self._sections(tracker, children)
            token_count = self._owned_tokens(tracker, start, end, children)
        else:
            token_count = self.counter.count(markdown)

        heading_title = level = ordered = language = None
        if kind is NodeKind.HEADING:
            level = _heading_level(snode)
            heading_title = _inline_text(snode)
        elif kind is NodeKind.LIST:
            ordered = snode.type == "ordered_list"
        elif kind is NodeKind.CODE_BLOCK and snode.type == "fence":
            info = (snode.info or "").strip()
            language = info.split()[0] if info else None

        return Node(
            kind=kind,
            markdown=markdown,
            token_count=token_count,
            position=position,
            children=children,
            heading_title=heading_title,
            level=level,
            ordered=ordered,
            language=language,
            filename=filename,
        )

    def _owned_tokens(
        self,
        tracker: SourceTracker,
        start: int,
        end: int,
        children: Sequence[Node],
    ) -> int:
        """Children's tokens plus the tokens of non-blank text between them."""
        total = 0
        cursor = start
        for child in children:
            if not tracker.is_blank(cursor, child.start_byte):
                total += self.counter.count(tracker.slice(cursor, child.start_byte))
            total += child.token_count
            cursor = child.end_byte
        if not tracker.is_blank(cursor, end):
            total += self.counter.count(tracker.slice(cursor, end))
        return total

    def _sections(self, tracker: SourceTracker, nodes: Sequence[Node]) -> Tuple[Node, ...]:
        """Fold the blocks after each heading into that heading's node.

        A section runs up to the next heading of the same or a higher level.
        Its heading line becomes markup owned by the heading node; a heading
        followed directly by a same-level heading stays a leaf.
        """
        out: List[Node] = []
        idx = 0
        while idx < len(nodes):
            node = nodes[idx]
            idx += 1
            if node.kind is not NodeKind.HEADING:
                out.append(node)
                continue
            stop = idx
            while stop < len(nodes) and not (
                nodes[stop].kind is NodeKind.HEADING and (nodes[stop].level or 1) <= (node.level or 1)
            ):
                stop += 1
            body = self._sections(tracker, nodes[idx:stop])
            idx = stop
            if not body:
                out.append(node)
                continue
            start, end = node.start_byte, body[-1].end_byte
            out.append(
                replace(
                    node,
                    markdown=tracker.slice(start, end),
                    position=tracker.position_of(start, end),
                    children=body,
                    token_count=self._owned_tokens(tracker, start, end, body),
                )
            )
        return tuple(out)

    def _child_blocks(
        self,
        tracker: SourceTracker,
        snode: SyntaxTreeNode,
        kind: NodeKind,
    ) -> List[Tuple[SyntaxTreeNode, NodeKind, Span]]:
        """Return ``(syntax node, kind, raw byte span)`` for each child block."""
        if kind is NodeKind.TABLE:
            return self._table_rows(tracker, snode)
        out: List[Tuple[SyntaxTreeNode, NodeKind, Span]] = []
        for child in snode.children:
            child_kind = _KIND_MAP.get(child.type, NodeKind.OPAQUE)
            line_map = child.map
            if line_map is None:
                raise BuildError(
                    f"Block {child.type!r} has no source position and cannot be attributed to the input."
                )
            out.append((child, child_kind, _line_span(tracker, line_map)))
        return out

    def _table_rows(
        self,
        tracker: SourceTracker,
        table: SyntaxTreeNode,
    ) -> List[Tuple[SyntaxTreeNode, NodeKind, Span]]:
        table_map = table.map
        rows = [tr for section in table.children for tr in section.children if tr.type == "tr"]
        out: List[Tuple[SyntaxTreeNode, NodeKind, Span]] = []
        for idx, tr in enumerate(rows):
            line_map = tr.map
            if line_map is None:
                if table_map is None:
                    raise BuildError("Table row has no source position.")
                # Header row, delimiter row, then one line per body row.
                first = table_map[0] + (idx if idx == 0 else idx + 1)
                line_map = (first, first + 1)
            out.append((tr, NodeKind.TABLE_ROW, _line_span(tracker, line_map)))
        return out


def _line_span(tracker: SourceTracker, line_map: Sequence[int]) -> Span:
    return tracker.byte_of_line(line_map[0]), tracker.byte_of_line(line_map[1])


def _heading_level(snode: SyntaxTreeNode) -> int:
    tag = snode.tag or "h1"
    try:
        return int(tag[1:])
    except ValueError:
        return 1


def _inline_text(snode: SyntaxTreeNode) -> str:
    parts = [child.content for child in snode.children if child.type == "inline"]
    return " ".join(p.strip() for p in parts if p.strip())


def build_document(
    text: str,
    filename: str,
    counter: TokenCounter,
    tree: Optional[SyntaxTreeNode] = None,
) -> Node:
    """Build the document tree for ``text`` with ``counter``."""
    return MarkdownObjectBuilder(counter).build(text, filename, tree=tree)
