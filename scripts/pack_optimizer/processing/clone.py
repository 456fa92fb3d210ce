"""
Tree cloning: mirrors a source directory into a destination directory.
"""

import shutil
import logging
from pathlib import Path
from typing import Optional, Union

from ..utils.executor import ExecutionReport, StageExecutor
from ..utils.filesystem import ensure_parent
from ..utils.walker import PathPredicate, TraverseMode, map_path, traverse
from .base import exclude_suffixes_predicate

logger = logging.getLogger(__name__)

DEFAULT_EXCLUDED_SUFFIXES = (".md", ".old")


def default_clone_predicate() -> PathPredicate:
    """Filter dropping documentation and backup files from the working tree."""
    return exclude_suffixes_predicate(*DEFAULT_EXCLUDED_SUFFIXES)


def clone_dir(input_dir: Union[str, Path], output_dir: Union[str, Path],
              predicate: Optional[PathPredicate] = None,
              executor: Optional[StageExecutor] = None) -> ExecutionReport:
    """
    Copy a directory tree byte-for-byte into another directory.

    Every directory is recreated, including empty ones and ones the
    predicate rejects; files are copied only when the predicate accepts them.

    Args:
        input_dir: Source tree
        output_dir: Destination root, created on demand
        predicate: Optional file filter; None copies every file
        executor: Executor to copy entries on

    Returns:
        ExecutionReport counting the cloned entries
    """
    input_dir = Path(input_dir)
    output_dir = Path(output_dir)
    executor = executor or StageExecutor()

    entries = [
        entry for entry in traverse(input_dir, TraverseMode.ALL)
        if entry.is_dir() or predicate is None or predicate(entry)
    ]

    def clone_entry(entry: Path) -> None:
        destination = map_path(entry, input_dir, output_dir)

        if entry.is_dir():
            destination.mkdir(parents=True, exist_ok=True)
            return

        ensure_parent(destination)
        shutil.copy(entry, destination)

    report = executor.run(entries, clone_entry)
    logger.info(f"Cloned {report.processed} directory items in {report.duration:.2f}s")
    return report
