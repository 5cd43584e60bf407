"""Text helpers: literal tokenization and word normalization."""

from __future__ import annotations

import string
from typing import List

TOKEN_DELIMITER = " "

_PUNCTUATION_TABLE = str.maketrans("", "", string.punctuation)


def split_tokens(text: str) -> List[str]:
    """Split text on every single space.

    Repeated delimiters are not collapsed and nothing is trimmed, so
    ``"a  b"`` yields ``["a", "", "b"]`` and ``""`` yields ``[""]``.
    """
    return text.split(TOKEN_DELIMITER)


def normalize_word(word: str) -> str:
    """Strip ASCII punctuation from a token and lowercase what remains."""
    return word.translate(_PUNCTUATION_TABLE).lower()
