# main.py
# SPDX-License-Identifier: MIT

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Optional, Sequence

from ..core.config import MdChunkerConfig, load_config_from_path
from ..core.errors import MdChunkerError
from ..core.log import get_logger
from ..core.serialize import format_chunks_text
from ..core.service import STATUS_OK, ProcessRequest, handle_request, process_markdown

log = get_logger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    """Build the mdchunker CLI argument parser.

    Returns:
        argparse.ArgumentParser: Parser with ``process`` and ``chunks``
        subcommands.
    """
    parser = argparse.ArgumentParser(prog="mdchunker", description="Markdown object builder and chunk packer")
    parser.add_argument(
        "--log-level",
        default=None,
        help="Logging level (e.g., DEBUG, INFO, WARNING); overrides the config file's [logging] level.",
    )
    parser.add_argument("-c", "--config", help="Optional config file (TOML or JSON).")
    subparsers = parser.add_subparsers(dest="command", required=True)

    def add_common(p: argparse.ArgumentParser) -> None:
        p.add_argument("input", help="Markdown file to process, or '-' for stdin.")
        p.add_argument("--filename", help="Breadcrumb root (defaults to the input file name).")
        p.add_argument("--target", type=int, help="Soft token budget per chunk.")
        p.add_argument("--hard-cap", type=int, dest="hard_cap", help="Hard token ceiling per chunk.")
        p.add_argument("--model", help="Tokenizer model identifier (e.g., gpt-4o).")
        p.add_argument("-o", "--output", type=Path, help="Output file (defaults to stdout).")

    process_p = subparsers.add_parser("process", help="Emit the JSON response: document object and chunks.")
    add_common(process_p)
    process_p.add_argument("--indent", type=int, default=2, help="JSON indentation (0 for compact).")

    chunks_p = subparsers.add_parser("chunks", help="Emit chunks as a plain-text listing.")
    add_common(chunks_p)

    return parser


def _read_input(path: str) -> str:
    if path == "-":
        return sys.stdin.read()
    return Path(path).read_text(encoding="utf-8")


def _default_filename(args: argparse.Namespace, cfg: MdChunkerConfig) -> str:
    if args.filename:
        return args.filename
    if args.input != "-":
        return Path(args.input).name
    return cfg.default_filename


def _write_output(text: str, output: Optional[Path]) -> None:
    if output is None:
        sys.stdout.write(text)
        if not text.endswith("\n"):
            sys.stdout.write("\n")
        return
    output.write_text(text, encoding="utf-8")


def _load_config(args: argparse.Namespace) -> MdChunkerConfig:
    cfg = load_config_from_path(args.config) if args.config else MdChunkerConfig()
    if args.model:
        cfg.tokenizer.model = args.model
    return cfg


def _payload(args: argparse.Namespace, cfg: MdChunkerConfig) -> dict:
    return {
        "markdown": _read_input(args.input),
        "filename": _default_filename(args, cfg),
        "target": args.target,
        "hardCap": args.hard_cap,
    }


def _cmd_process(args: argparse.Namespace, cfg: MdChunkerConfig) -> int:
    status, body = handle_request(_payload(args, cfg), config=cfg)
    indent = args.indent or None
    _write_output(json.dumps(body, indent=indent, ensure_ascii=False), args.output)
    return 0 if status == STATUS_OK else 1


def _cmd_chunks(args: argparse.Namespace, cfg: MdChunkerConfig) -> int:
    try:
        request = ProcessRequest.from_mapping(_payload(args, cfg), limits=cfg.limits, defaults=cfg)
        result = process_markdown(
            request.markdown,
            filename=request.filename,
            target=request.target,
            hard_cap=request.hard_cap,
            config=cfg,
        )
    except MdChunkerError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    _write_output(format_chunks_text(result.chunks), args.output)
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Entry point for the ``mdchunker`` console script.

    Args:
        argv (Sequence[str] | None): Arguments excluding the program name;
            defaults to ``sys.argv[1:]``.

    Returns:
        int: Process exit code.
    """
    parser = _build_parser()
    args = parser.parse_args(argv)
    try:
        cfg = _load_config(args)
    except MdChunkerError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2
    if args.log_level:
        cfg.logging.level = args.log_level
    cfg.logging.apply()
    log.debug("Running %s on %s", args.command, args.input)
    if args.command == "process":
        return _cmd_process(args, cfg)
    return _cmd_chunks(args, cfg)


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
