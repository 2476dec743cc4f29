import pytest

from mdchunker.core.errors import ParseError
from mdchunker.core.parser import make_parser, parse_markdown


def test_parse_returns_root_with_line_maps():
    tree = parse_markdown("# Title\n\nHello.\n")

    assert tree.type == "root"
    assert [child.type for child in tree.children] == ["heading", "paragraph"]
    assert [child.map for child in tree.children] == [(0, 1), (2, 3)]


def test_tables_are_enabled():
    tree = parse_markdown("| a | b |\n|---|---|\n| 1 | 2 |\n")

    assert [child.type for child in tree.children] == ["table"]


def test_parser_instance_can_be_reused():
    md = make_parser()

    first = parse_markdown("one\n", md)
    second = parse_markdown("- two\n", md)

    assert first.children[0].type == "paragraph"
    assert second.children[0].type == "bullet_list"


def test_non_string_input_is_rejected():
    with pytest.raises(ParseError):
        parse_markdown(b"# bytes")


def test_parser_failure_is_wrapped(monkeypatch):
    md = make_parser()

    def boom(text, env=None):
        raise RuntimeError("broken rule")

    monkeypatch.setattr(md, "parse", boom)

    with pytest.raises(ParseError, match="broken rule"):
        parse_markdown("text", md)
