"""File-backed record of which source files have been translated.

The store is a JSON array of ``{"relativePath": ..., "contentHash": ...}``
objects, one per source file, rewritten in full on every change.
"""

import hashlib
import json
import logging
import os
from dataclasses import dataclass
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)


def compute_hash(data: bytes) -> str:
    return hashlib.md5(data).hexdigest()


@dataclass(frozen=True)
class FileHash:
    relative_path: str
    content_hash: str

    def renew(self, content_hash: str) -> "FileHash":
        return FileHash(self.relative_path, content_hash)

    def to_json(self) -> Dict[str, str]:
        return {"relativePath": self.relative_path, "contentHash": self.content_hash}

    @classmethod
    def from_json(cls, data: Dict[str, str]) -> "FileHash":
        return cls(data["relativePath"], data["contentHash"])


class HashStore:
    def __init__(self, path: str):
        self.path = path
        self._rows: Optional[Dict[str, FileHash]] = None

    def _load(self) -> Dict[str, FileHash]:
        if self._rows is not None:
            return self._rows
        self._rows = {}
        if os.path.exists(self.path):
            try:
                with open(self.path, "r", encoding="utf-8") as f:
                    text = f.read()
                for item in json.loads(text) if text.strip() else []:
                    record = FileHash.from_json(item)
                    self._rows[record.relative_path] = record
            except (json.JSONDecodeError, KeyError, TypeError) as e:
                logger.warning(f"Hash store {self.path} is corrupted ({e}). Starting with empty store.")
                self._rows = {}
        return self._rows

    def _write(self) -> None:
        rows = self._load()
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        data = [record.to_json() for record in rows.values()]
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)

    def get(self, relative_path: str) -> Optional[FileHash]:
        return self._load().get(relative_path)

    def records(self) -> List[FileHash]:
        return list(self._load().values())

    def save(self, record: FileHash) -> None:
        self._load()[record.relative_path] = record
        self._write()
        logger.debug(f"Hash stored for {record.relative_path}: {record.content_hash}")

    def delete(self, relative_path: str) -> bool:
        rows = self._load()
        if relative_path not in rows:
            return False
        del rows[relative_path]
        self._write()
        return True
