# __init__.py
# SPDX-License-Identifier: MIT
"""
Top-level package exports for :mod:`mdchunker`.

mdchunker turns a Markdown document into a hierarchy-aware object tree
(every node carries its source text, token count and line/byte span) and
packs that tree into token-bounded chunks with heading breadcrumbs.

Public surface
--------------
- :func:`process_markdown` runs parse -> build -> pack for one document and
  returns a :class:`ProcessResult`.
- :func:`handle_request` validates a raw request mapping and returns an
  ``(status, body)`` pair shaped like the HTTP response.
- :class:`MarkdownObjectBuilder`, :class:`ChunkPacker` and
  :class:`TokenCounter` are the building blocks for custom pipelines.

Examples:
    >>> from mdchunker import process_markdown
    >>> result = process_markdown("# Title\\n\\nHello world.")  # doctest: +SKIP
    >>> [c.breadcrumb for c in result.chunks]  # doctest: +SKIP
    [('demo.md', 'Title')]
"""

from __future__ import annotations

try:
    from importlib.metadata import version as _pkg_version

    __version__ = _pkg_version("mdchunker")
except Exception:  # PackageNotFoundError when running from a source checkout
    __version__ = "0.0.0+unknown"


from .core.builder import MarkdownObjectBuilder, build_document
from .core.chunk import Chunk, ChunkPacker, pack_chunks
from .core.config import (
    LoggingConfig,
    MdChunkerConfig,
    PackPolicy,
    RequestLimits,
    TokenizerConfig,
    load_config_from_path,
)
from .core.errors import (
    BuildError,
    ConfigError,
    MdChunkerError,
    OversizedBlockError,
    ParseError,
    TokenizationError,
    ValidationError,
)
from .core.log import configure_logging, get_logger, temp_level
from .core.nodes import Node, NodeKind
from .core.parser import parse_markdown
from .core.positions import ByteRange, LineRange, SourcePosition, SourceTracker
from .core.serialize import (
    chunk_to_dict,
    document_to_json,
    format_chunks_text,
    node_to_dict,
)
from .core.service import ProcessRequest, ProcessResult, handle_request, process_markdown
from .core.tokenizer import TokenCounter, count_tokens

PRIMARY_API = [
    "__version__",
    "process_markdown",
    "handle_request",
    "ProcessRequest",
    "ProcessResult",
    "MdChunkerConfig",
    "PackPolicy",
    "TokenizerConfig",
    "RequestLimits",
    "LoggingConfig",
    "load_config_from_path",
    "MarkdownObjectBuilder",
    "build_document",
    "ChunkPacker",
    "pack_chunks",
    "Chunk",
    "Node",
    "NodeKind",
    "SourcePosition",
    "SourceTracker",
    "LineRange",
    "ByteRange",
    "TokenCounter",
    "count_tokens",
    "parse_markdown",
    "node_to_dict",
    "chunk_to_dict",
    "document_to_json",
    "format_chunks_text",
    "MdChunkerError",
    "ValidationError",
    "ConfigError",
    "ParseError",
    "TokenizationError",
    "BuildError",
    "OversizedBlockError",
    "configure_logging",
    "get_logger",
    "temp_level",
]

__all__ = list(PRIMARY_API)
