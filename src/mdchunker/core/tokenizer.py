# tokenizer.py
# SPDX-License-Identifier: MIT
"""Token counting on top of tiktoken.

A :class:`TokenCounter` wraps one encoder and memoizes counts per distinct
text for as long as the counter lives. Build one counter per request; the
memo never outlives the request that filled it.
"""
from __future__ import annotations

from typing import Any, Dict, Optional, Protocol

import tiktoken

from .errors import TokenizationError
from .log import get_logger

__all__ = [
    "DEFAULT_MODEL",
    "FALLBACK_ENCODING",
    "Encoder",
    "TokenCounter",
    "resolve_encoder",
    "count_tokens",
]

log = get_logger(__name__)

DEFAULT_MODEL = "gpt-3.5-turbo"
FALLBACK_ENCODING = "cl100k_base"


class Encoder(Protocol):
    """Anything exposing tiktoken's ``encode`` signature."""

    def encode(self, text: str, *, disallowed_special: Any = ...) -> list[int]:
        ...


def resolve_encoder(model: Optional[str] = None, encoding: Optional[str] = None) -> Encoder:
    """Return a tiktoken encoding for an encoding name or model identifier.

    An explicit ``encoding`` wins over ``model``. Model names tiktoken does not
    know fall back to ``cl100k_base``.

    Args:
        model (str | None): Model identifier such as ``"gpt-3.5-turbo"``.
        encoding (str | None): Encoding name such as ``"cl100k_base"``.

    Returns:
        Encoder: Encoding object (tiktoken caches these internally).

    Raises:
        TokenizationError: If the encoding cannot be loaded.
    """
    try:
        if encoding:
            return tiktoken.get_encoding(encoding)
        name = model or DEFAULT_MODEL
        if name in tiktoken.list_encoding_names():
            return tiktoken.get_encoding(name)
        try:
            return tiktoken.encoding_for_model(name)
        except KeyError:
            log.debug("Unknown model %r; falling back to %s", name, FALLBACK_ENCODING)
            return tiktoken.get_encoding(FALLBACK_ENCODING)
    except Exception as exc:
        raise TokenizationError(
            f"Could not load tokenizer for model={model!r} encoding={encoding!r}: {exc}"
        ) from exc


class TokenCounter:
    """Request-scoped token counter.

    Args:
        encoder (Encoder | None): Pre-built encoder. When omitted the encoder
            is resolved from ``model``/``encoding``.
        model (str): Model identifier used to pick the encoding.
        encoding (str | None): Explicit encoding name.
    """

    def __init__(
        self,
        encoder: Optional[Encoder] = None,
        *,
        model: str = DEFAULT_MODEL,
        encoding: Optional[str] = None,
    ) -> None:
        self.model = model
        self.encoder = encoder if encoder is not None else resolve_encoder(model, encoding)
        self._memo: Dict[str, int] = {}

    def count(self, text: str) -> int:
        """Return the number of tokens in ``text``.

        Raises:
            TokenizationError: If the encoder fails on the text.
        """
        if not text:
            return 0
        cached = self._memo.get(text)
        if cached is not None:
            return cached
        try:
            # Special-token strings are counted as plain text.
            n = len(self.encoder.encode(text, disallowed_special=()))
        except Exception as exc:
            preview = text[:40].replace("\n", "\\n")
            raise TokenizationError(
                f"Tokenizer failed on text starting {preview!r} ({len(text)} chars): {exc}"
            ) from exc
        self._memo[text] = n
        return n

    __call__ = count

    @property
    def cache_size(self) -> int:
        return len(self._memo)


def count_tokens(text: str, model_id: str = DEFAULT_MODEL) -> int:
    """Count tokens in ``text`` for ``model_id`` with a throwaway counter."""
    return TokenCounter(model=model_id).count(text)
