"""Mirrors a set of source files into an output directory, translating the
ones a processor understands and copying the rest.

Files whose content hash is unchanged since the last successful translation
are skipped, so re-running over an untouched tree costs no oracle calls.
"""

import filecmp
import glob
import logging
import os
import shutil
from dataclasses import dataclass, field
from pathlib import PurePath
from typing import Callable, List, Optional, Set

from md_translator.config import BACKUP_SUFFIX, VCS_DIR_NAMES, TranslatorConfig
from md_translator.context import RunContext
from md_translator.hash_store import FileHash, HashStore, compute_hash

logger = logging.getLogger(__name__)


@dataclass
class WalkReport:
    processed: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    copied: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    deleted: List[str] = field(default_factory=list)


def get_base_dir(pattern: str) -> str:
    """Directory part of ``pattern`` in front of its first wildcard."""
    if not glob.has_magic(pattern):
        return os.path.dirname(pattern) or "."
    base_parts = []
    for part in PurePath(pattern).parts:
        if glob.has_magic(part):
            break
        base_parts.append(part)
    return os.path.join(*base_parts) if base_parts else "."


def is_vcs_path(relative_path: str) -> bool:
    return any(part in VCS_DIR_NAMES for part in PurePath(relative_path).parts)


class FileWalker:
    def __init__(self, get_processor: Callable[[str], Optional[object]], hash_store: HashStore, config: TranslatorConfig):
        self.get_processor = get_processor
        self.hash_store = hash_store
        self.config = config

    def walk(self, pattern: str, output_dir: str) -> WalkReport:
        report = WalkReport()
        base_dir = get_base_dir(pattern)
        sources: Set[str] = set()

        for path in sorted(glob.glob(pattern, recursive=True)):
            if os.path.isdir(path):
                continue
            relative_path = PurePath(os.path.relpath(path, base_dir)).as_posix()
            if is_vcs_path(relative_path):
                continue
            sources.add(relative_path)
            output_path = os.path.join(output_dir, relative_path)
            try:
                self._walk_file(path, relative_path, output_path, report)
            except Exception as e:
                logger.error(f"Failed to process {path}: {e}", exc_info=self.config.verbose)
                report.failed.append(relative_path)

        if self.config.sync_delete:
            self.delete_orphans(output_dir, sources, report)

        logger.info(
            f"Walk finished: {len(report.processed)} translated, {len(report.skipped)} unchanged, "
            f"{len(report.copied)} copied, {len(report.failed)} failed, {len(report.deleted)} deleted."
        )
        return report

    def _walk_file(self, path: str, relative_path: str, output_path: str, report: WalkReport) -> None:
        processor = self.get_processor(os.path.splitext(path)[1])
        if processor is None:
            if not self.config.force and os.path.exists(output_path) and filecmp.cmp(path, output_path, shallow=False):
                logger.debug(f"{relative_path} is already copied, skipping.")
                report.skipped.append(relative_path)
                return
            os.makedirs(os.path.dirname(output_path) or ".", exist_ok=True)
            shutil.copyfile(path, output_path)
            logger.info(f"Copied {relative_path}")
            report.copied.append(relative_path)
            return

        with open(path, "rb") as f:
            data = f.read()
        content_hash = compute_hash(data)
        record = self.hash_store.get(relative_path)
        if (
            not self.config.force
            and os.path.exists(output_path)
            and record is not None
            and record.content_hash == content_hash
        ):
            logger.info(f"{relative_path} is unchanged, skipping.")
            report.skipped.append(relative_path)
            return

        logger.info(f"Translating {relative_path}")
        ctx = RunContext(
            file=relative_path,
            quote_original=self.config.quote_original,
            document_name=self.config.document_name,
        )
        result = processor.process(ctx, data.decode("utf-8"))

        if os.path.exists(output_path):
            os.replace(output_path, output_path + BACKUP_SUFFIX)
            logger.debug(f"Backed up previous translation to {output_path + BACKUP_SUFFIX}")
        os.makedirs(os.path.dirname(output_path) or ".", exist_ok=True)
        with open(output_path, "w", encoding="utf-8", newline="") as f:
            f.write(result)
        self.hash_store.save(record.renew(content_hash) if record else FileHash(relative_path, content_hash))
        logger.info(f"Successfully wrote translated file: {output_path}")
        report.processed.append(relative_path)

    def _protected_paths(self) -> Set[str]:
        paths = {os.path.abspath(self.hash_store.path)}
        if self.config.memory_file:
            paths.add(os.path.abspath(self.config.memory_file))
        return paths

    def delete_orphans(self, output_dir: str, sources: Set[str], report: WalkReport) -> None:
        """Remove output files (and their hash records) with no source left.

        A backup is kept as long as the file it was taken from still has a source.
        """
        if not os.path.isdir(output_dir):
            return
        protected = self._protected_paths()
        for dirpath, dirnames, filenames in os.walk(output_dir, topdown=False):
            for filename in sorted(filenames):
                path = os.path.join(dirpath, filename)
                relative_path = PurePath(os.path.relpath(path, output_dir)).as_posix()
                if relative_path in sources or os.path.abspath(path) in protected or is_vcs_path(relative_path):
                    continue
                if relative_path.endswith(BACKUP_SUFFIX) and relative_path[:-len(BACKUP_SUFFIX)] in sources:
                    continue
                os.remove(path)
                self.hash_store.delete(relative_path)
                logger.info(f"Deleted orphaned output {relative_path}")
                report.deleted.append(relative_path)
            if os.path.abspath(dirpath) != os.path.abspath(output_dir) and not os.listdir(dirpath):
                os.rmdir(dirpath)
                logger.debug(f"Removed empty directory {dirpath}")

        for record in self.hash_store.records():
            if record.relative_path not in sources:
                self.hash_store.delete(record.relative_path)
