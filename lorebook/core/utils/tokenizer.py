"""
Token Estimation
================

Two ways of pricing rule content against the injection budget:

- ``estimate_token_weight``: the character heuristic (4 chars per token) that
  exported rule files are written with. Cheap and stable across versions.
- ``Tokenizer.count_tokens``: a real BPE count via ``tiktoken``, used when
  the deployment opts into ``token_weight_mode = "tiktoken"``.
"""

import logging
import math
from collections.abc import Callable
from functools import lru_cache

import tiktoken

logger = logging.getLogger(__name__)

CHARS_PER_TOKEN = 4
DEFAULT_ENCODING = "cl100k_base"


def estimate_token_weight(content: str | None) -> int:
    """Estimate the budget cost of ``content`` (ceil(len / 4), 0 for empty)."""
    if not content:
        return 0
    return math.ceil(len(content) / CHARS_PER_TOKEN)


class Tokenizer:
    """Thin wrapper around tiktoken encodings."""

    @staticmethod
    @lru_cache(maxsize=8)
    def _get_encoding(encoding_name: str):
        return tiktoken.get_encoding(encoding_name)

    @classmethod
    def count_tokens(cls, text: str | None, encoding_name: str = DEFAULT_ENCODING) -> int:
        """Count tokens in ``text`` using the named encoding."""
        if not text:
            return 0
        return len(cls._get_encoding(encoding_name).encode(text))


def get_token_weigher(mode: str, encoding_name: str = DEFAULT_ENCODING) -> Callable[[str], int] | None:
    """
    Resolve the weigher the rule store should apply on add and content edits.

    Returns None for the default character heuristic, so explicitly supplied
    weights (e.g. from an imported file) are preserved on add.
    """
    if mode == "chars":
        return None
    if mode == "tiktoken":
        return lambda content: Tokenizer.count_tokens(content, encoding_name)
    raise ValueError(f"Unknown token weight mode: {mode}")
