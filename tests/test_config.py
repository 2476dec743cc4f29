import json
from pathlib import Path

import pytest

from mdchunker.core.config import (
    MdChunkerConfig,
    PackPolicy,
    RequestLimits,
    TokenizerConfig,
    load_config_from_path,
)
from mdchunker.core.errors import ConfigError


def test_defaults_are_consistent():
    cfg = MdChunkerConfig()

    cfg.validate()

    assert cfg.default_filename == "demo.md"
    assert cfg.pack == PackPolicy(target=512, hard_cap=1024, oversize="emit")
    assert cfg.tokenizer.model == "gpt-3.5-turbo"
    assert cfg.limits.target_range == (128, 8192)


def test_pack_policy_rejects_hard_cap_below_target():
    with pytest.raises(ConfigError, match="hardCap \\(256\\) must be greater than or equal to target \\(512\\)"):
        PackPolicy(target=512, hard_cap=256).validate()


@pytest.mark.parametrize(
    "policy",
    [
        PackPolicy(target=0, hard_cap=10),
        PackPolicy(target=True, hard_cap=10),
        PackPolicy(target=10, hard_cap="20"),
        PackPolicy(target=10, hard_cap=20, oversize="drop"),
    ],
)
def test_pack_policy_rejects_bad_values(policy):
    with pytest.raises(ConfigError):
        policy.validate()


def test_equal_target_and_hard_cap_are_allowed():
    PackPolicy(target=300, hard_cap=300).validate()


def test_request_limits_reject_inverted_range():
    with pytest.raises(ConfigError, match="target_range"):
        RequestLimits(target_range=(500, 100)).validate()


def test_json_round_trip(tmp_path: Path):
    cfg = MdChunkerConfig(
        default_filename="guide.md",
        tokenizer=TokenizerConfig(model="gpt-4o"),
        pack=PackPolicy(target=200, hard_cap=400, oversize="reject"),
    )
    path = tmp_path / "cfg.json"

    cfg.to_json(path)
    payload = json.loads(path.read_text(encoding="utf-8"))
    loaded = load_config_from_path(path)

    assert "encoding" not in payload["tokenizer"]
    assert payload["limits"]["target_range"] == [128, 8192]
    assert loaded.default_filename == "guide.md"
    assert loaded.tokenizer.model == "gpt-4o"
    assert loaded.pack == PackPolicy(target=200, hard_cap=400, oversize="reject")
    assert loaded.limits.target_range == (128, 8192)


def test_toml_loading(tmp_path: Path):
    path = tmp_path / "cfg.toml"
    path.write_text(
        """
default_filename = "handbook.md"

[tokenizer]
encoding = "o200k_base"

[pack]
target = 256
hard_cap = 512

[limits]
max_markdown_chars = 1000

[logging]
level = "DEBUG"
propagate = true
""",
        encoding="utf-8",
    )

    cfg = load_config_from_path(path)

    assert cfg.default_filename == "handbook.md"
    assert cfg.tokenizer.encoding == "o200k_base"
    assert cfg.tokenizer.model == "gpt-3.5-turbo"
    assert (cfg.pack.target, cfg.pack.hard_cap) == (256, 512)
    assert cfg.limits.max_markdown_chars == 1000
    assert cfg.limits.max_filename_chars == 255
    assert cfg.logging.level == "DEBUG"
    assert cfg.logging.propagate is True


def test_unknown_keys_are_rejected():
    with pytest.raises(ConfigError, match="Unsupported options for PackPolicy: budget"):
        MdChunkerConfig.from_dict({"pack": {"budget": 10}})


def test_section_must_be_a_table():
    with pytest.raises(ConfigError, match="Expected a table for PackPolicy"):
        MdChunkerConfig.from_dict({"pack": 10})


def test_inconsistent_file_fails_on_load(tmp_path: Path):
    path = tmp_path / "cfg.json"
    path.write_text(json.dumps({"pack": {"target": 900, "hard_cap": 100}}), encoding="utf-8")

    with pytest.raises(ConfigError, match="hardCap"):
        load_config_from_path(path)


def test_unsupported_extension(tmp_path: Path):
    path = tmp_path / "cfg.yaml"
    path.write_text("pack: {}", encoding="utf-8")

    with pytest.raises(ConfigError, match="Unsupported config extension"):
        load_config_from_path(path)
