"""Line-based splitting of oversized paragraphs.

A chunk is a run of whole lines; chunks are joined back with a single
newline, so ``"\\n".join(split_block(text))`` always equals ``text``.
"""

import logging
from typing import List, Sequence

from md_translator.config import MAX_CHUNK_CHARS

logger = logging.getLogger(__name__)

SEPARATOR = "\n"


def needs_split(text: str, max_chars: int = MAX_CHUNK_CHARS) -> bool:
    return len(text) > max_chars


def split_block(text: str, max_chars: int = MAX_CHUNK_CHARS) -> List[str]:
    if max_chars <= 0:
        raise ValueError("max_chars must be positive")
    if not needs_split(text, max_chars):
        return [text]

    chunks: List[str] = []
    current: List[str] = []
    current_len = 0
    for line in text.split(SEPARATOR):
        # joining adds one separator per line after the first
        added = len(line) + (1 if current else 0)
        if current and current_len + added > max_chars:
            chunks.append(SEPARATOR.join(current))
            current, current_len = [], 0
            added = len(line)
        current.append(line)
        current_len += added
    if current:
        chunks.append(SEPARATOR.join(current))

    logger.debug(f"Split block of {len(text)} chars into {len(chunks)} chunks")
    return chunks


def rejoin_chunks(translated: Sequence[str], originals: Sequence[str]) -> str:
    """Join translated chunks, keeping each chunk's trailing-newline parity.

    Tables and lists break when a blank line appears between two of their
    rows, so a trailing newline the source chunk did not have is dropped.
    """
    if len(translated) != len(originals):
        raise ValueError(f"expected {len(originals)} translated chunks, got {len(translated)}")
    parts = []
    for text, original in zip(translated, originals):
        if text.endswith("\n") and not original.endswith("\n"):
            text = text[:-1]
        parts.append(text)
    return SEPARATOR.join(parts)
