import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Callable

import tiktoken

from md_translator.config import (
    CONTEXT_MIN_TOKENS,
    DEFAULT_DOCUMENT_NAME,
    TOKENIZER_MODEL_NAME,
)

logger = logging.getLogger(__name__)

TokenCounter = Callable[[str], int]


@dataclass
class RunContext:
    """Per-file state handed explicitly to every processing step."""

    file: str
    quote_original: bool = True
    document_name: str = DEFAULT_DOCUMENT_NAME
    seq: int = 1

    def next_block_id(self) -> str:
        block_id = f"{self.file}:{self.seq}"
        self.seq += 1
        return block_id


@lru_cache(maxsize=1)
def _get_encoding(model_name: str):
    try:
        encoding = tiktoken.encoding_for_model(model_name)
    except KeyError:
        logger.debug(f"No tiktoken encoding registered for {model_name}, using cl100k_base.")
        encoding = tiktoken.get_encoding("cl100k_base")
    return encoding


def count_tokens(text: str) -> int:
    return len(_get_encoding(TOKENIZER_MODEL_NAME).encode(text, disallowed_special=()))


def build_context(
    full_text: str,
    start: int,
    end: int,
    min_tokens: int = CONTEXT_MIN_TOKENS,
    count: TokenCounter = count_tokens,
) -> str:
    """Grow the span ``[start, end)`` of ``full_text`` until it holds ``min_tokens``.

    The window widens on both sides by half the missing token count (at least
    a fifth of ``min_tokens``), measured in characters, and stops early once
    it covers the whole text.
    """
    if start < 0 or end > len(full_text) or start > end:
        raise ValueError(f"invalid span ({start}, {end}) for text of length {len(full_text)}")

    eot = len(full_text)
    min_append = max(min_tokens // 5, 1)
    window = full_text[start:end]
    tokens = count(window)
    while tokens < min_tokens:
        if start == 0 and end == eot:
            break
        append = max((min_tokens - tokens) // 2, min_append)
        if start > 0:
            start = max(start - append, 0)
        if end < eot:
            end = min(end + append, eot)
        window = full_text[start:end]
        tokens = count(window)
    return window
