# service.py
# SPDX-License-Identifier: MIT
"""Request-level entry points: validate, parse, build, pack, serialize.

One call is one synchronous computation. Each call constructs its own token
counter, tree and accumulator, so concurrent callers share nothing mutable.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Tuple

from .builder import MarkdownObjectBuilder
from .chunk import Chunk, ChunkPacker
from .config import MdChunkerConfig, PackPolicy, RequestLimits
from .errors import ConfigError, MdChunkerError, ValidationError
from .log import get_logger
from .nodes import Node
from .parser import parse_markdown
from .serialize import chunks_to_list, node_to_dict
from .tokenizer import Encoder, TokenCounter

__all__ = [
    "ProcessRequest",
    "ProcessResult",
    "process_markdown",
    "handle_request",
    "STATUS_OK",
    "STATUS_UNPROCESSABLE",
]

log = get_logger(__name__)

STATUS_OK = 200
STATUS_UNPROCESSABLE = 422

_INT_STRING = re.compile(r"^[+-]?\d+$")


def _optional_int(payload: Mapping[str, Any], key: str) -> Optional[int]:
    value = payload.get(key)
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValidationError(f"The {key} field must be an integer.")
    if isinstance(value, int):
        return value
    if isinstance(value, str) and _INT_STRING.match(value.strip()):
        return int(value.strip())
    raise ValidationError(f"The {key} field must be an integer.")


def _check_range(key: str, value: int, bounds: Tuple[int, int]) -> None:
    lo, hi = bounds
    if not lo <= value <= hi:
        raise ConfigError(f"The {key} field must be between {lo} and {hi}; got {value}.")


@dataclass(slots=True, frozen=True)
class ProcessRequest:
    """A validated processing request."""
    markdown: str
    filename: str
    target: int
    hard_cap: int

    @classmethod
    def from_mapping(
        cls,
        payload: Mapping[str, Any],
        *,
        limits: Optional[RequestLimits] = None,
        defaults: Optional[MdChunkerConfig] = None,
    ) -> "ProcessRequest":
        """Validate a raw request mapping.

        Keys are ``markdown`` (required), ``filename``, ``target`` and
        ``hardCap``; missing or null optional keys take the configured
        defaults.

        Raises:
            ValidationError: If a field is missing, mistyped or too long.
            ConfigError: If ``target``/``hardCap`` are out of range or
                ``hardCap < target``.
        """
        limits = limits or RequestLimits()
        defaults = defaults or MdChunkerConfig()
        if not isinstance(payload, Mapping):
            raise ValidationError("The request body must be an object.")

        markdown = payload.get("markdown")
        if markdown is None:
            raise ValidationError("The markdown field is required.")
        if not isinstance(markdown, str):
            raise ValidationError("The markdown field must be a string.")
        if len(markdown) > limits.max_markdown_chars:
            raise ValidationError(
                f"The markdown field must not be greater than {limits.max_markdown_chars} characters."
            )

        filename = payload.get("filename")
        if filename is None:
            filename = defaults.default_filename
        elif not isinstance(filename, str):
            raise ValidationError("The filename field must be a string.")
        elif len(filename) > limits.max_filename_chars:
            raise ValidationError(
                f"The filename field must not be greater than {limits.max_filename_chars} characters."
            )

        target = _optional_int(payload, "target")
        hard_cap = _optional_int(payload, "hardCap")
        if target is None:
            target = defaults.pack.target
        else:
            _check_range("target", target, limits.target_range)
        if hard_cap is None:
            hard_cap = defaults.pack.hard_cap
        else:
            _check_range("hardCap", hard_cap, limits.hard_cap_range)

        PackPolicy(target=target, hard_cap=hard_cap, oversize=defaults.pack.oversize).validate()
        return cls(markdown=markdown, filename=filename, target=target, hard_cap=hard_cap)


@dataclass(slots=True, frozen=True)
class ProcessResult:
    """Document tree and chunks from one successful request."""
    document: Node
    chunks: Tuple[Chunk, ...]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": True,
            "markdownObject": node_to_dict(self.document),
            "chunks": chunks_to_list(self.chunks),
        }


def process_markdown(
    markdown: str,
    *,
    filename: Optional[str] = None,
    target: Optional[int] = None,
    hard_cap: Optional[int] = None,
    config: Optional[MdChunkerConfig] = None,
    encoder: Optional[Encoder] = None,
) -> ProcessResult:
    """Parse, build and pack one Markdown document.

    Args:
        markdown (str): Markdown source.
        filename (str | None): Breadcrumb root; defaults to
            ``config.default_filename``.
        target (int | None): Soft token budget; defaults to
            ``config.pack.target``.
        hard_cap (int | None): Hard token ceiling; defaults to
            ``config.pack.hard_cap``.
        config (MdChunkerConfig | None): Settings; defaults apply when
            omitted.
        encoder (Encoder | None): Encoder to count with instead of the
            configured tiktoken encoding.

    Returns:
        ProcessResult: Document tree and chunk list.

    Raises:
        MdChunkerError: Any error aborts the whole request.
    """
    cfg = config or MdChunkerConfig()
    cfg.validate()
    policy = PackPolicy(
        target=cfg.pack.target if target is None else target,
        hard_cap=cfg.pack.hard_cap if hard_cap is None else hard_cap,
        oversize=cfg.pack.oversize,
    )
    policy.validate()
    name = filename or cfg.default_filename

    counter = TokenCounter(encoder, model=cfg.tokenizer.model, encoding=cfg.tokenizer.encoding)
    tree = parse_markdown(markdown)
    document = MarkdownObjectBuilder(counter).build(markdown, name, tree=tree)
    chunks = ChunkPacker(counter, policy).pack(document, name)
    log.debug("Processed %s: %d chunks, %d distinct spans tokenized", name, len(chunks), counter.cache_size)
    return ProcessResult(document=document, chunks=tuple(chunks))


def handle_request(
    payload: Mapping[str, Any],
    *,
    config: Optional[MdChunkerConfig] = None,
    encoder: Optional[Encoder] = None,
) -> Tuple[int, Dict[str, Any]]:
    """Run one request and build the response body.

    Returns:
        tuple[int, dict]: ``(200, {"success": True, ...})`` on success, or
            ``(422, {"success": False, "error": message})`` when validation
            or processing fails.
    """
    cfg = config or MdChunkerConfig()
    try:
        request = ProcessRequest.from_mapping(payload, limits=cfg.limits, defaults=cfg)
        result = process_markdown(
            request.markdown,
            filename=request.filename,
            target=request.target,
            hard_cap=request.hard_cap,
            config=cfg,
            encoder=encoder,
        )
    except MdChunkerError as exc:
        log.info("Request failed: %s: %s", type(exc).__name__, exc)
        return STATUS_UNPROCESSABLE, {"success": False, "error": str(exc)}
    return STATUS_OK, result.to_dict()

