import re

import pytest

from mdchunker.core.tokenizer import TokenCounter


class FakeEncoder:
    """Deterministic stand-in for a BPE encoding.

    Whitespace runs are one token each; other text is cut into pieces of at
    most four characters.
    """

    _PIECE = re.compile(r"\s+|[^\s]{1,4}")

    def __init__(self) -> None:
        self.calls = 0

    def encode(self, text, disallowed_special=()):
        self.calls += 1
        return [len(piece) for piece in self._PIECE.findall(text)]


@pytest.fixture
def encoder():
    return FakeEncoder()


@pytest.fixture
def counter(encoder):
    return TokenCounter(encoder)
