"""
Filesystem helpers for preparing the output directory.
"""

import shutil
import logging
from pathlib import Path
from typing import Optional, Union

from .executor import ExecutionReport, StageExecutor

logger = logging.getLogger(__name__)


def ensure_parent(path: Path) -> None:
    """Create the parent directory chain of path if it does not exist yet."""
    path.parent.mkdir(parents=True, exist_ok=True)


def is_empty_dir(directory: Union[str, Path]) -> bool:
    """Check whether a directory has no entries."""
    return next(Path(directory).iterdir(), None) is None


def _remove_entry(entry: Path) -> None:
    if entry.is_dir() and not entry.is_symlink():
        shutil.rmtree(entry)
    else:
        entry.unlink()


def empty_dir(directory: Union[str, Path], executor: Optional[StageExecutor] = None) -> ExecutionReport:
    """
    Remove every file and subdirectory inside a directory, keeping the directory itself.

    Args:
        directory: Directory to empty
        executor: Executor used to remove top-level entries concurrently

    Returns:
        ExecutionReport counting the removed top-level entries
    """
    executor = executor or StageExecutor()
    entries = list(Path(directory).iterdir())

    report = executor.run(entries, _remove_entry)
    logger.info(f"Emptied {report.processed} directory items in {report.duration:.2f}s")
    return report
