"""Write-only log of translated blocks, kept for later similarity lookup."""

import json
import logging
import os
from dataclasses import dataclass
from typing import Dict, Protocol

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MemoryEntry:
    source_text: str
    translated_text: str
    block_id: str
    block_kind: str

    def to_json(self) -> Dict[str, str]:
        return {
            "sourceText": self.source_text,
            "translatedText": self.translated_text,
            "blockId": self.block_id,
            "blockKind": self.block_kind,
        }


class TranslationMemory(Protocol):
    def save(self, entry: MemoryEntry) -> None:
        ...


class NullTranslationMemory:
    def save(self, entry: MemoryEntry) -> None:
        pass


class JsonlTranslationMemory:
    """Appends one JSON object per line; failures are logged, never raised."""

    def __init__(self, path: str):
        self.path = path

    def save(self, entry: MemoryEntry) -> None:
        try:
            directory = os.path.dirname(self.path)
            if directory:
                os.makedirs(directory, exist_ok=True)
            with open(self.path, "a", encoding="utf-8") as f:
                f.write(json.dumps(entry.to_json(), ensure_ascii=False) + "\n")
        except OSError as e:
            logger.error(f"Failed to write translation memory entry {entry.block_id} to {self.path}: {e}")
