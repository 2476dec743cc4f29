# errors.py
# SPDX-License-Identifier: MIT
"""Exception taxonomy for a build-and-pack request.

Every error aborts the whole request; callers get a message, never a partial
chunk list.
"""

from __future__ import annotations

__all__ = [
    "MdChunkerError",
    "ValidationError",
    "ConfigError",
    "ParseError",
    "TokenizationError",
    "BuildError",
    "OversizedBlockError",
]


class MdChunkerError(RuntimeError):
    """Base class for all errors raised while processing a document."""


class ValidationError(MdChunkerError, ValueError):
    """A request field is missing, has the wrong type, or is out of range."""


class ConfigError(MdChunkerError, ValueError):
    """Packing or tokenizer configuration is inconsistent."""


class ParseError(MdChunkerError):
    """The Markdown parser could not produce a syntax tree."""


class TokenizationError(MdChunkerError):
    """The encoder could not be resolved or failed on a span of text."""


class BuildError(MdChunkerError):
    """A syntax-tree node cannot be mapped onto the document object."""


class OversizedBlockError(MdChunkerError):
    """An unsplittable unit exceeds the hard cap and the policy rejects it."""

    def __init__(self, message: str, *, token_count: int, hard_cap: int) -> None:
        super().__init__(message)
        self.token_count = token_count
        self.hard_cap = hard_cap
