# parser.py
# SPDX-License-Identifier: MIT
"""CommonMark + tables parsing via markdown-it-py."""
from __future__ import annotations

from markdown_it import MarkdownIt
from markdown_it.tree import SyntaxTreeNode

from .errors import ParseError

__all__ = ["make_parser", "parse_markdown"]


def make_parser() -> MarkdownIt:
    """Return a CommonMark parser with the GFM table rule enabled."""
    return MarkdownIt("commonmark").enable("table")


def parse_markdown(text: str, md: MarkdownIt | None = None) -> SyntaxTreeNode:
    """Parse Markdown into a block/inline syntax tree.

    Args:
        text (str): Markdown source.
        md (MarkdownIt | None): Parser instance to reuse; a fresh one is
            built when omitted.

    Returns:
        SyntaxTreeNode: Root node (``type == "root"``) whose block children
            carry 0-based ``[start, end)`` line maps.

    Raises:
        ParseError: If ``text`` is not a string or the parser fails.
    """
    if not isinstance(text, str):
        raise ParseError(f"Markdown input must be a string; got {type(text).__name__}.")
    parser = md or make_parser()
    try:
        tokens = parser.parse(text)
        return SyntaxTreeNode(tokens)
    except Exception as exc:
        raise ParseError(f"Could not parse Markdown: {exc}") from exc
