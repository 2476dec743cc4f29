import io
import json
import logging
from pathlib import Path

import pytest

from mdchunker.cli.main import main
from mdchunker.core import tokenizer
from mdchunker.core.config import LoggingConfig, MdChunkerConfig, PackPolicy

TEXT = "# Guide\n\nIntro text.\n\n## Setup\n\nRun the installer.\n"


@pytest.fixture(autouse=True)
def fake_tiktoken(monkeypatch, encoder):
    seen = []

    def fake_resolve(model=None, encoding=None):
        seen.append((model, encoding))
        return encoder

    monkeypatch.setattr(tokenizer, "resolve_encoder", fake_resolve)
    yield seen
    logger = logging.getLogger("mdchunker")
    for handler in list(logger.handlers):
        if not isinstance(handler, logging.NullHandler):
            logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
    logger.propagate = True


def _write_doc(tmp_path: Path) -> Path:
    path = tmp_path / "guide.md"
    path.write_text(TEXT, encoding="utf-8")
    return path


def test_cli_process_writes_json(tmp_path: Path, capsys):
    doc = _write_doc(tmp_path)

    rc = main(["process", str(doc)])

    assert rc == 0
    body = json.loads(capsys.readouterr().out)
    assert body["success"] is True
    assert body["markdownObject"]["filename"] == "guide.md"
    assert body["chunks"][0]["breadcrumb"] == ["guide.md", "Guide"]


def test_cli_process_to_output_file(tmp_path: Path):
    doc = _write_doc(tmp_path)
    out = tmp_path / "out.json"

    rc = main(["process", str(doc), "--filename", "manual.md", "--indent", "0", "-o", str(out)])

    assert rc == 0
    body = json.loads(out.read_text(encoding="utf-8"))
    assert body["markdownObject"]["filename"] == "manual.md"


def test_cli_process_reports_validation_error(tmp_path: Path, capsys):
    doc = _write_doc(tmp_path)

    rc = main(["process", str(doc), "--target", "10"])

    assert rc == 1
    body = json.loads(capsys.readouterr().out)
    assert body["success"] is False
    assert "target" in body["error"]


def test_cli_chunks_reads_stdin(monkeypatch, capsys):
    monkeypatch.setattr("sys.stdin", io.StringIO(TEXT))

    rc = main(["chunks", "-"])

    assert rc == 0
    out = capsys.readouterr().out
    assert out.startswith("=" * 80 + "\nChunk: 1 | ")
    assert "demo.md > Guide" in out


def test_cli_chunks_error_goes_to_stderr(tmp_path: Path, capsys):
    doc = _write_doc(tmp_path)

    rc = main(["chunks", str(doc), "--target", "300", "--hard-cap", "280"])

    assert rc == 1
    assert "hardCap (280)" in capsys.readouterr().err


def test_cli_uses_config_and_model_override(tmp_path: Path, capsys, fake_tiktoken):
    doc = _write_doc(tmp_path)
    cfg_path = tmp_path / "cfg.json"
    MdChunkerConfig(default_filename="ignored.md", pack=PackPolicy(target=200, hard_cap=400)).to_json(cfg_path)

    rc = main(["-c", str(cfg_path), "process", str(doc), "--model", "gpt-4o"])

    assert rc == 0
    assert fake_tiktoken == [("gpt-4o", None)]
    body = json.loads(capsys.readouterr().out)
    assert body["markdownObject"]["filename"] == "guide.md"


def test_cli_bad_config_exits_2(tmp_path: Path, capsys):
    doc = _write_doc(tmp_path)
    cfg_path = tmp_path / "cfg.ini"
    cfg_path.write_text("[pack]\n", encoding="utf-8")

    rc = main(["-c", str(cfg_path), "process", str(doc)])

    assert rc == 2
    assert "Unsupported config extension" in capsys.readouterr().err


def test_cli_chunks_applies_request_limits(tmp_path: Path, capsys):
    doc = _write_doc(tmp_path)

    rc = main(["chunks", str(doc), "--target", "5"])

    assert rc == 1
    assert "between 128 and 8192" in capsys.readouterr().err


def test_cli_applies_config_logging_section(tmp_path: Path):
    doc = _write_doc(tmp_path)
    cfg_path = tmp_path / "cfg.json"
    MdChunkerConfig(logging=LoggingConfig(level="DEBUG")).to_json(cfg_path)

    rc = main(["-c", str(cfg_path), "process", str(doc), "-o", str(tmp_path / "out.json")])

    assert rc == 0
    assert logging.getLogger("mdchunker").level == logging.DEBUG


def test_cli_log_level_flag_overrides_config(tmp_path: Path):
    doc = _write_doc(tmp_path)
    cfg_path = tmp_path / "cfg.json"
    MdChunkerConfig(logging=LoggingConfig(level="DEBUG")).to_json(cfg_path)

    rc = main(["--log-level", "ERROR", "-c", str(cfg_path), "process", str(doc), "-o", str(tmp_path / "out.json")])

    assert rc == 0
    assert logging.getLogger("mdchunker").level == logging.ERROR
