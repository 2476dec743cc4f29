# config.py
# SPDX-License-Identifier: MIT
"""Configuration models and helpers for mdchunker.

This module defines declarative dataclasses for the tokenizer, packing
policy, request limits and logging, along with helpers for serializing and
loading configurations from JSON and TOML.
"""
from __future__ import annotations

import json
import tomllib
from collections.abc import Sequence as ABCSequence
from dataclasses import dataclass, field, fields, is_dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple, Type, TypeVar, Union, get_args, get_origin, get_type_hints

from .errors import ConfigError
from .log import PACKAGE_LOGGER_NAME, configure_logging
from .tokenizer import DEFAULT_MODEL

__all__ = [
    "OVERSIZE_POLICIES",
    "TokenizerConfig",
    "PackPolicy",
    "RequestLimits",
    "LoggingConfig",
    "MdChunkerConfig",
    "load_config_from_path",
]

OVERSIZE_POLICIES = frozenset({"emit", "reject"})


@dataclass(slots=True)
class TokenizerConfig:
    """Which tokenizer to count tokens with.

    Attributes:
        model (str): Model identifier used to look up the encoding.
        encoding (str | None): Explicit encoding name; wins over ``model``.
    """
    model: str = DEFAULT_MODEL
    encoding: Optional[str] = None


@dataclass(slots=True)
class PackPolicy:
    """Token budgets for the chunk packer.

    Attributes:
        target (int): Soft token budget per chunk.
        hard_cap (int): Hard token ceiling per chunk; must be >= ``target``.
        oversize (str): What to do with a unit that cannot be split below
            ``hard_cap``: ``"emit"`` it as a flagged chunk or ``"reject"``
            the document.
    """
    target: int = 512
    hard_cap: int = 1024
    oversize: str = "emit"

    def validate(self) -> None:
        """Raise ConfigError when the budgets are inconsistent."""
        if isinstance(self.target, bool) or not isinstance(self.target, int):
            raise ConfigError(f"target must be an integer; got {self.target!r}.")
        if isinstance(self.hard_cap, bool) or not isinstance(self.hard_cap, int):
            raise ConfigError(f"hardCap must be an integer; got {self.hard_cap!r}.")
        if self.target <= 0:
            raise ConfigError(f"target must be positive; got {self.target}.")
        if self.hard_cap < self.target:
            raise ConfigError(
                f"hardCap ({self.hard_cap}) must be greater than or equal to target ({self.target})."
            )
        if self.oversize not in OVERSIZE_POLICIES:
            raise ConfigError(
                f"oversize must be one of {sorted(OVERSIZE_POLICIES)}; got {self.oversize!r}."
            )


@dataclass(slots=True)
class RequestLimits:
    """Bounds enforced on incoming requests before any processing."""
    max_markdown_chars: int = 500_000
    max_filename_chars: int = 255
    target_range: Tuple[int, int] = (128, 8192)
    hard_cap_range: Tuple[int, int] = (256, 16384)

    def validate(self) -> None:
        for name in ("target_range", "hard_cap_range"):
            lo, hi = getattr(self, name)
            if lo > hi:
                raise ConfigError(f"limits.{name} lower bound {lo} exceeds upper bound {hi}.")
        if self.max_markdown_chars <= 0 or self.max_filename_chars <= 0:
            raise ConfigError("limits.max_markdown_chars and limits.max_filename_chars must be positive.")


@dataclass(slots=True)
class LoggingConfig:
    """Controls the package logger; set propagate=True/logger_name to
    integrate with host apps.
    """
    level: Union[int, str] = "INFO"
    propagate: bool = False
    fmt: Optional[str] = "%(asctime)s %(levelname)s %(name)s: %(message)s"
    logger_name: str = PACKAGE_LOGGER_NAME

    def apply(self) -> None:
        """Apply this logging configuration to the package logger."""
        configure_logging(
            level=self.level,
            propagate=self.propagate,
            fmt=self.fmt,
            logger_name=self.logger_name or PACKAGE_LOGGER_NAME,
        )


T = TypeVar("T")


@dataclass(slots=True)
class MdChunkerConfig:
    """Declarative settings for building and packing documents.

    Request fields (``target``, ``hardCap``, ``filename``) override
    ``pack`` and ``default_filename`` per call; ``limits`` bounds what a
    request may ask for.
    """
    default_filename: str = "demo.md"
    tokenizer: TokenizerConfig = field(default_factory=TokenizerConfig)
    pack: PackPolicy = field(default_factory=PackPolicy)
    limits: RequestLimits = field(default_factory=RequestLimits)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def validate(self) -> None:
        """Validate nested settings for internal consistency.

        Raises:
            ConfigError: If any nested section is inconsistent.
        """
        self.pack.validate()
        self.limits.validate()
        if not self.default_filename:
            raise ConfigError("default_filename must be a non-empty string.")

    # -------------------------
    # Serialization helpers
    # -------------------------
    def to_dict(self) -> Dict[str, Any]:
        """Return a JSON-serializable representation of this configuration."""
        return _dataclass_to_dict(self)

    def to_json(self, path: Path | str, *, indent: int = 2) -> str:
        """Serialize the configuration to JSON and write it to disk.

        Args:
            path (Path | str): Target file path.
            indent (int): Indentation level passed to ``json.dumps``.

        Returns:
            str: String path to the written file.
        """
        target = Path(path)
        target.write_text(json.dumps(self.to_dict(), indent=indent, sort_keys=True), encoding="utf-8")
        return str(target)

    @classmethod
    def from_dict(cls: Type[T], data: Mapping[str, Any]) -> T:
        return _dataclass_from_dict(cls, data)

    @classmethod
    def from_json(cls: Type[T], path: Path | str) -> T:
        payload = json.loads(Path(path).read_text(encoding="utf-8"))
        return cls.from_dict(payload)

    @classmethod
    def from_toml(cls: Type[T], path: Path | str) -> T:
        """
        Load an MdChunkerConfig from a TOML file.

        The TOML layout mirrors the structure of this dataclass: top-level
        tables [tokenizer], [pack], [limits] and [logging].
        """
        data = tomllib.loads(Path(path).read_bytes().decode("utf-8"))
        return cls.from_dict(data)


def load_config_from_path(path: str | Path) -> MdChunkerConfig:
    """Load an MdChunkerConfig from a JSON or TOML file.

    Args:
        path (Path | str): Path to a ``.toml`` or ``.json`` config file.

    Returns:
        MdChunkerConfig: Parsed and validated configuration instance.

    Raises:
        ConfigError: If the file extension is not ``.toml`` or ``.json``
            or the settings are inconsistent.
    """
    p = Path(path)
    suffix = p.suffix.lower()
    if suffix == ".toml":
        cfg = MdChunkerConfig.from_toml(p)
    elif suffix == ".json":
        cfg = MdChunkerConfig.from_json(p)
    else:
        raise ConfigError(f"Unsupported config extension {p.suffix!r}; expected .toml or .json.")
    cfg.validate()
    return cfg


def _dataclass_to_dict(obj: Any) -> Dict[str, Any]:
    """Serialize dataclasses to JSON-friendly dicts, skipping None fields."""
    result: Dict[str, Any] = {}
    for f in fields(obj):
        value = getattr(obj, f.name)
        if value is None:
            continue
        serialized = _serialize_value(value)
        if serialized is not None:
            result[f.name] = serialized
    return result


def _serialize_value(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, (list, tuple)):
        return [_serialize_value(v) for v in value]
    if isinstance(value, dict):
        return {str(k): _serialize_value(v) for k, v in value.items() if v is not None}
    if is_dataclass(value):
        return _dataclass_to_dict(value)
    return None


def _dataclass_from_dict(cls: Type[T], data: Mapping[str, Any] | None) -> T:
    """Instantiate a dataclass of type `cls` from a mapping.

    Unknown keys are rejected so typos in config files surface early.

    Raises:
        ConfigError: If ``data`` is not a mapping or has unknown keys.
    """
    if data is None:
        return cls()  # type: ignore[call-arg]
    if not isinstance(data, Mapping):
        raise ConfigError(f"Expected a table for {cls.__name__}; got {type(data).__name__}.")
    type_hints = get_type_hints(cls)
    known = {f.name for f in fields(cls)}
    unknown = sorted(k for k in data if k not in known)
    if unknown:
        raise ConfigError(
            f"Unsupported options for {cls.__name__}: {', '.join(unknown)}. "
            f"Allowed keys: {', '.join(sorted(known))}"
        )

    kwargs: Dict[str, Any] = {}
    for f in fields(cls):
        if f.name not in data:
            continue
        field_type = type_hints.get(f.name, f.type)
        kwargs[f.name] = _coerce_value(field_type, data[f.name])
    return cls(**kwargs)  # type: ignore[arg-type]


def _coerce_value(expected_type: Any, value: Any) -> Any:
    """Coerce `value` into the shape implied by `expected_type`.

    Handles nested dataclasses, tuples/lists, Optional and Paths.
    """
    base_type, _ = _strip_optional(expected_type)
    if value is None:
        return None
    if is_dataclass_type(base_type):
        return _dataclass_from_dict(base_type, value)
    origin = get_origin(base_type)
    if origin in (list, tuple, ABCSequence):
        args = [a for a in get_args(base_type) if a is not Ellipsis]
        inner = args[0] if args else Any
        items = [_coerce_value(inner, v) for v in value]
        return tuple(items) if origin is tuple else list(items)
    if base_type is Path:
        return Path(value)
    if base_type in {str, int, float, bool}:
        return base_type(value)
    return value


def _strip_optional(typ: Any) -> Tuple[Any, bool]:
    """Strip Optional from a type annotation.

    Returns:
        tuple[Any, bool]: ``(base_type, is_optional)``.
    """
    origin = get_origin(typ)
    if origin is Union:
        args = [arg for arg in get_args(typ) if arg is not type(None)]
        if len(args) == 1:
            base, _ = _strip_optional(args[0])
            return base, True
    return typ, False


def is_dataclass_type(typ: Any) -> bool:
    """Return True if `typ` is a dataclass type (not an instance)."""
    return isinstance(typ, type) and is_dataclass(typ)
