# serialize.py
# SPDX-License-Identifier: MIT
"""Transcribe document trees and chunks into plain JSON-ready structures."""
from __future__ import annotations

import json
from typing import Any, Dict, List, Sequence

from .chunk import Chunk
from .nodes import Node, NodeKind
from .positions import SourcePosition

__all__ = [
    "position_to_dict",
    "node_to_dict",
    "chunk_to_dict",
    "chunks_to_list",
    "document_to_json",
    "format_chunks_text",
]


def position_to_dict(position: SourcePosition) -> Dict[str, Any]:
    lines = position.lines
    return {
        "lines": (
            {"startLine": lines.start_line, "endLine": lines.end_line}
            if lines is not None
            else None
        ),
        "bytes": {
            "startByte": position.bytes.start_byte,
            "endByte": position.bytes.end_byte,
        },
    }


def node_to_dict(node: Node) -> Dict[str, Any]:
    """Return the nested mapping for ``node`` and its subtree.

    Kind-specific fields appear only on the kinds they belong to:
    ``filename`` on the root, ``headingTitle``/``level`` on headings,
    ``ordered`` on lists and ``language`` on fenced code with an info string.
    """
    data: Dict[str, Any] = {"kind": node.kind.value}
    if node.kind is NodeKind.DOCUMENT:
        data["filename"] = node.filename
    if node.kind is NodeKind.HEADING:
        data["level"] = node.level
        data["headingTitle"] = node.heading_title
    if node.ordered is not None:
        data["ordered"] = node.ordered
    if node.language is not None:
        data["language"] = node.language
    data["markdownText"] = node.markdown
    data["tokenCount"] = node.token_count
    data["sourcePosition"] = position_to_dict(node.position)
    data["children"] = [node_to_dict(child) for child in node.children]
    return data


def chunk_to_dict(chunk: Chunk) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        "id": chunk.id,
        "breadcrumb": list(chunk.breadcrumb),
        "tokenCount": chunk.token_count,
        "markdown": chunk.markdown,
        "sourcePosition": position_to_dict(chunk.position),
    }
    if chunk.oversized:
        data["oversized"] = True
    return data


def chunks_to_list(chunks: Sequence[Chunk]) -> List[Dict[str, Any]]:
    return [chunk_to_dict(chunk) for chunk in chunks]


def document_to_json(node: Node, *, indent: int | None = None) -> str:
    """Serialize a document tree to a JSON string."""
    return json.dumps(node_to_dict(node), indent=indent, ensure_ascii=False)


def format_chunks_text(chunks: Sequence[Chunk]) -> str:
    """Render chunks as a human-readable plain-text listing.

    Each chunk gets an 80-column ``=`` rule, a header with id, token count
    and first line, its breadcrumb joined by `` > ``, and its markdown.
    """
    separator = "=" * 80
    blocks: List[str] = []
    for chunk in chunks:
        lines = chunk.position.lines
        line = lines.start_line if lines is not None else "N/A"
        header = f"Chunk: {chunk.id} | {chunk.token_count} tokens | Line: {line}"
        breadcrumb = " > ".join(chunk.breadcrumb)
        blocks.append(f"{separator}\n{header}\n{breadcrumb}\n{separator}\n\n{chunk.markdown}\n")
    return "\n\n".join(blocks)
