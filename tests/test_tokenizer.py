import pytest

import mdchunker.core.tokenizer as tokenizer_module
from mdchunker.core.errors import TokenizationError
from mdchunker.core.tokenizer import TokenCounter


def test_count_is_memoized_per_counter(counter, encoder):
    first = counter.count("| --- | --- |")
    second = counter.count("| --- | --- |")

    assert first == second > 0
    assert encoder.calls == 1
    assert counter.cache_size == 1


def test_counters_do_not_share_memo(encoder):
    TokenCounter(encoder).count("same text")
    TokenCounter(encoder).count("same text")

    assert encoder.calls == 2


def test_empty_text_has_zero_tokens(counter, encoder):
    assert counter.count("") == 0
    assert encoder.calls == 0


def test_encoder_failure_raises_tokenization_error():
    class Broken:
        def encode(self, text, disallowed_special=()):
            raise ValueError("text too long")

    counter = TokenCounter(Broken())

    with pytest.raises(TokenizationError, match="text too long"):
        counter.count("anything")


def test_unresolvable_encoding_raises_tokenization_error(monkeypatch):
    def fail(name):
        raise ValueError(f"unknown encoding {name}")

    monkeypatch.setattr(tokenizer_module.tiktoken, "get_encoding", fail)

    with pytest.raises(TokenizationError):
        TokenCounter(encoding="nope")


def test_tiktoken_counts_are_deterministic():
    try:
        counter = TokenCounter(model="gpt-3.5-turbo")
    except TokenizationError as exc:
        pytest.skip(f"cl100k_base unavailable: {exc}")

    text = "Hello world. <|endoftext|> is plain text here."
    assert counter.count(text) == TokenCounter(model="gpt-3.5-turbo").count(text)
    assert counter.count(text) > 0
