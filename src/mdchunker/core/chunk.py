# chunk.py
# SPDX-License-Identifier: MIT
"""Token-bounded chunk packing over the document object tree.

Top-level blocks (whole heading sections where the document has headings)
are packed greedily in document order against a soft ``target`` and a hard
``hard_cap``. A block larger than ``hard_cap`` is split at its largest seams
(child blocks, then lines, sentences, words) and the pieces are packed with
the same rules; a section's heading line travels with the content after
it. Each chunk remembers the heading path that was open when it started and
the exact source span it covers.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Callable, Iterator, List, Optional, Sequence, Tuple

from .config import PackPolicy
from .errors import OversizedBlockError
from .log import get_logger
from .nodes import Node, NodeKind
from .positions import SourcePosition, SourceTracker
from .tokenizer import TokenCounter

__all__ = ["Chunk", "Block", "ChunkPacker", "pack_chunks"]

log = get_logger(__name__)

DEFAULT_FILENAME = "demo.md"

# -----------------
# Text seam finders
# -----------------
_LINE = re.compile(r"[^\r\n]*(?:\r\n|\r|\n)|[^\r\n]+")
_SENTENCE_BOUNDARY = re.compile(r'(?<=[.!?])(?:["\')\]]+)?\s+(?=[A-Z0-9])')
_WORD = re.compile(r"\S+\s*|\s+")

TextSplitter = Callable[[str], List[str]]


def _split_lines(text: str) -> List[str]:
    return _LINE.findall(text)


def _split_sentences(text: str) -> List[str]:
    """Split prose after sentence-ending punctuation, keeping the spacing."""
    pieces: List[str] = []
    last = 0
    for match in _SENTENCE_BOUNDARY.finditer(text):
        pieces.append(text[last:match.end()])
        last = match.end()
    if last < len(text):
        pieces.append(text[last:])
    return pieces


def _split_words(text: str) -> List[str]:
    return _WORD.findall(text)


_PROSE_SPLITTERS: Tuple[TextSplitter, ...] = (_split_lines, _split_sentences, _split_words)
_CODE_SPLITTERS: Tuple[TextSplitter, ...] = (_split_lines, _split_words)


# ---------------
# Data types
# ---------------
@dataclass(slots=True, frozen=True)
class Block:
    """Contiguous packing unit.

    Attributes:
        start (int): Start byte offset in the source.
        end (int): End byte offset in the source.
        tokens (int): Token count used for packing decisions.
        node (Node | None): Tree node the block stands for, if any.
        splitters (tuple): Text seam finders still available to split the
            block when it has no child nodes.
        parts (tuple[Block, ...]): Sub-blocks when markup owned by a
            container was glued onto a neighbouring block.
        heading (Node | None): Section heading the block opens.
        lead (bool): Heading text that must not end a chunk while content
            follows it.
    """
    start: int
    end: int
    tokens: int
    node: Optional[Node] = None
    splitters: Tuple[TextSplitter, ...] = ()
    parts: Tuple["Block", ...] = ()
    heading: Optional[Node] = None
    lead: bool = False

    def headings(self) -> Iterator[Node]:
        for part in self.parts or (self,):
            if part.heading is not None:
                yield part.heading


@dataclass(slots=True, frozen=True)
class Chunk:
    """One emitted chunk.

    Attributes:
        id (int): 1-based sequence number in document order.
        breadcrumb (tuple[str, ...]): File name then the open heading
            titles at the point the chunk starts.
        token_count (int): Tokens of ``markdown``, counted on the chunk text
            itself. Packing decisions use the summed counts of the folded
            units, which BPE merges at unit boundaries can make differ.
        markdown (str): Source text for ``position.bytes``.
        position (SourcePosition): Merged span of the folded content.
        oversized (bool): True when the chunk is a single unsplittable unit
            larger than the hard cap.
    """
    id: int
    breadcrumb: Tuple[str, ...]
    token_count: int
    markdown: str
    position: SourcePosition
    oversized: bool = False


def _join(a: Block, b: Block) -> Block:
    return Block(
        start=a.start,
        end=b.end,
        tokens=a.tokens + b.tokens,
        node=a.node if a.node is not None else b.node,
        parts=(a.parts or (a,)) + (b.parts or (b,)),
    )


def _node_block(node: Node, opens_section: bool) -> Block:
    splitters = _CODE_SPLITTERS if node.kind is NodeKind.CODE_BLOCK else _PROSE_SPLITTERS
    is_heading = node.kind is NodeKind.HEADING
    return Block(
        node.start_byte,
        node.end_byte,
        node.token_count,
        node=node,
        splitters=splitters,
        heading=node if opens_section and is_heading else None,
        lead=is_heading and node.is_leaf,
    )


# -------------
# Packing state
# -------------
@dataclass
class _Accumulator:
    blocks: List[Block] = field(default_factory=list)
    crumbs: List[Tuple[str, ...]] = field(default_factory=list)
    tokens: int = 0

    @property
    def empty(self) -> bool:
        return not self.blocks

    @property
    def leads_only(self) -> bool:
        return bool(self.blocks) and all(b.lead for b in self.blocks)

    def push(self, block: Block, crumb: Tuple[str, ...]) -> None:
        self.blocks.append(block)
        self.crumbs.append(crumb)
        self.tokens += block.tokens


class _PackRun:
    """State for packing one document; never shared between calls."""

    def __init__(
        self,
        tracker: SourceTracker,
        counter: TokenCounter,
        policy: PackPolicy,
        filename: str,
    ) -> None:
        self.tracker = tracker
        self.counter = counter
        self.target = policy.target
        self.hard_cap = policy.hard_cap
        self.reject_oversized = policy.oversize == "reject"
        self.filename = filename
        self.headings: List[Tuple[int, str]] = []
        self.acc = _Accumulator()
        self.chunks: List[Chunk] = []

    # Breadcrumbs
    def enter_heading(self, node: Node) -> None:
        level = node.level or 1
        while self.headings and self.headings[-1][0] >= level:
            self.headings.pop()
        self.headings.append((level, node.heading_title or ""))

    def breadcrumb(self) -> Tuple[str, ...]:
        return (self.filename, *(title for _, title in self.headings))

    # Accumulator transitions
    def add(self, block: Block) -> None:
        self.acc.push(block, self.breadcrumb())

    def close(self, *, carry: bool = True) -> None:
        """Emit the accumulator as a chunk.

        With ``carry``, trailing heading text is held back to open the next
        chunk; an accumulator holding only heading text stays open.
        """
        blocks, crumbs = self.acc.blocks, self.acc.crumbs
        cut = len(blocks)
        if carry:
            while cut and blocks[cut - 1].lead:
                cut -= 1
        if cut == 0:
            return
        self._emit(blocks[:cut], crumbs[0])
        self.acc = _Accumulator()
        for block, crumb in zip(blocks[cut:], crumbs[cut:]):
            self.acc.push(block, crumb)

    def _emit(self, blocks: Sequence[Block], breadcrumb: Tuple[str, ...], oversized: bool = False) -> None:
        start, end = blocks[0].start, blocks[-1].end
        markdown = self.tracker.slice(start, end)
        self.chunks.append(
            Chunk(
                id=len(self.chunks) + 1,
                breadcrumb=breadcrumb,
                token_count=self.counter.count(markdown),
                markdown=markdown,
                position=SourcePosition.merge(self.tracker.position_of(b.start, b.end) for b in blocks),
                oversized=oversized,
            )
        )

    def emit_oversized(self, block: Block) -> None:
        self.close()
        position = self.tracker.position_of(block.start, block.end)
        line = position.lines.start_line if position.lines else None
        if self.reject_oversized:
            raise OversizedBlockError(
                f"Block at line {line} has {block.tokens} tokens and cannot be split below hardCap {self.hard_cap}.",
                token_count=block.tokens,
                hard_cap=self.hard_cap,
            )
        log.warning(
            "Emitting oversized chunk: %d tokens > hardCap %d at line %s with no further split point",
            block.tokens,
            self.hard_cap,
            line,
        )
        # Held-back heading text goes out with the block it introduces.
        blocks = self.acc.blocks + [block]
        crumb = self.acc.crumbs[0] if self.acc.crumbs else self.breadcrumb()
        self.acc = _Accumulator()
        self._emit(blocks, crumb, oversized=True)

    # Packing rules
    def feed(self, block: Block) -> None:
        for heading in block.headings():
            self.enter_heading(heading)
        if block.tokens > self.hard_cap:
            self.split(block)
            return
        total = self.acc.tokens + block.tokens
        if total <= self.target:
            self.add(block)
            return
        if self.acc.empty:
            # Over target but within the hard cap: a chunk of its own.
            self.add(block)
            self.close()
            return
        if total <= self.hard_cap and (self.acc.tokens < self.target or self.acc.leads_only):
            # Overshoot the target rather than leave an undersized chunk.
            self.add(block)
            self.close()
            return
        if self.acc.leads_only:
            # Heading text waiting for content that does not fit beside it.
            self.split(block)
            return
        self.close()
        self.feed(block)

    def split(self, block: Block) -> None:
        pieces = self.seams(block)
        if len(pieces) == 1 and pieces[0] is block:
            if block.tokens > self.hard_cap:
                self.emit_oversized(block)
                return
            self.close(carry=False)
            self.feed(block)
            return
        self.close()
        for piece in pieces:
            self.feed(piece)
        self.close()

    # Seams
    def seams(self, block: Block) -> List[Block]:
        """Return the next-finer pieces of ``block``.

        ``[block]`` itself means no seam is left. A single different piece
        (a container with one child) is returned as is and split further
        when fed.
        """
        if block.parts:
            return list(block.parts)
        node = block.node
        if node is not None and not node.is_leaf:
            return self.cover(
                node.start_byte,
                node.end_byte,
                node.children,
                sections=node.kind is NodeKind.HEADING,
            )
        text = self.tracker.slice(block.start, block.end)
        for idx, splitter in enumerate(block.splitters):
            pieces = splitter(text)
            if len(pieces) <= 1:
                continue
            rest = block.splitters[idx + 1:]
            out: List[Block] = []
            offset = block.start
            for piece in pieces:
                size = len(piece.encode("utf-8"))
                out.append(Block(offset, offset + size, self.counter.count(piece), splitters=rest, lead=block.lead))
                offset += size
            return out
        return [block]

    def cover(self, start: int, end: int, nodes: Sequence[Node], *, sections: bool = False) -> List[Block]:
        """Blocks covering ``[start, end)``: one per node plus owned markup.

        Markup between nodes is glued to the preceding block; markup before
        the first node (a section's heading line) is glued to the following
        one. With ``sections``, heading nodes open breadcrumb sections.
        """
        out: List[Block] = []
        lead: Optional[Block] = None
        cursor = start
        for node in nodes:
            if node.start_byte > cursor:
                gap = self._gap_block(cursor, node.start_byte, lead=not out)
                if gap is not None:
                    if out:
                        out[-1] = _join(out[-1], gap)
                    else:
                        lead = gap
            block = _node_block(node, sections)
            if lead is not None:
                block = _join(lead, block)
                lead = None
            out.append(block)
            cursor = node.end_byte
        if cursor < end:
            gap = self._gap_block(cursor, end)
            if gap is not None:
                if out:
                    out[-1] = _join(out[-1], gap)
                else:
                    out.append(gap)
        return out

    def _gap_block(self, start: int, end: int, lead: bool = False) -> Optional[Block]:
        if self.tracker.is_blank(start, end):
            return None
        text = self.tracker.slice(start, end)
        return Block(start, end, self.counter.count(text), splitters=_PROSE_SPLITTERS, lead=lead)


class ChunkPacker:
    """Greedy hierarchical packer.

    A heading's whole section is packed as one unit when it fits; only a
    section over the hard cap is opened up into its child blocks. Heading
    text never closes a chunk while content follows it.

    Args:
        counter (TokenCounter): Counter used for text pieces produced by
            forced splits and for chunk totals; must be the one the tree was
            built with.
        policy (PackPolicy | None): Token budgets; defaults to 512/1024.
    """

    def __init__(self, counter: TokenCounter, policy: Optional[PackPolicy] = None) -> None:
        self.counter = counter
        self.policy = policy or PackPolicy()

    def pack(self, root: Node, filename: Optional[str] = None) -> List[Chunk]:
        """Pack the document tree into chunks.

        Args:
            root (Node): Document root produced by the builder.
            filename (str | None): First breadcrumb element; defaults to the
                file name recorded on the root.

        Returns:
            list[Chunk]: Chunks in document order, ids starting at 1.

        Raises:
            ConfigError: If the policy is inconsistent (checked first).
            OversizedBlockError: If an unsplittable block exceeds the hard
                cap and the policy rejects such blocks.
        """
        self.policy.validate()
        name = filename or root.filename or DEFAULT_FILENAME
        tracker = SourceTracker(root.markdown)
        run = _PackRun(tracker, self.counter, self.policy, name)
        for block in run.cover(0, len(tracker), root.children, sections=True):
            run.feed(block)
        run.close(carry=False)
        log.debug(
            "Packed %s into %d chunks (target=%d, hardCap=%d)",
            name,
            len(run.chunks),
            self.policy.target,
            self.policy.hard_cap,
        )
        return run.chunks


def pack_chunks(
    root: Node,
    filename: Optional[str],
    counter: TokenCounter,
    *,
    target: int = 512,
    hard_cap: int = 1024,
    oversize: str = "emit",
) -> List[Chunk]:
    """Pack ``root`` with the given budgets; see :meth:`ChunkPacker.pack`."""
    policy = PackPolicy(target=target, hard_cap=hard_cap, oversize=oversize)
    return ChunkPacker(counter, policy).pack(root, filename)
