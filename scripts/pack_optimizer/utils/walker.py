"""
Directory traversal helpers shared by every pipeline stage.

Traversal builds the complete entry list in memory before a stage starts,
so memory use grows linearly with the number of entries in the tree.
"""

from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional, Union


PathPredicate = Callable[[Path], bool]


class TraverseMode(Enum):
    """Which kinds of entries a traversal reports."""
    ALL = "all"
    FILES = "files"
    DIRECTORIES = "directories"


def traverse(root: Union[str, Path], mode: TraverseMode = TraverseMode.ALL,
             predicate: Optional[PathPredicate] = None) -> List[Path]:
    """
    Recursively list entries under a root directory.

    Ordering is depth-first with each parent before its children; siblings
    come in directory-listing order, which is platform dependent.

    Args:
        root: Directory to traverse
        mode: Kinds of entries to report
        predicate: Optional filter deciding which entries are reported.
            Rejected directories are still descended into.

    Returns:
        List of paths under root

    Raises:
        OSError: If any directory in the tree cannot be read
    """
    root = Path(root)
    entries: List[Path] = []

    for item in root.iterdir():
        is_dir = item.is_dir()

        if predicate is None or predicate(item):
            if mode is TraverseMode.ALL:
                entries.append(item)
            elif mode is TraverseMode.FILES and item.is_file():
                entries.append(item)
            elif mode is TraverseMode.DIRECTORIES and is_dir:
                entries.append(item)

        if is_dir:
            entries.extend(traverse(item, mode, predicate))

    return entries


def map_path(entry: Path, input_root: Path, output_root: Path) -> Path:
    """Map an entry under input_root to the same relative location under output_root."""
    return Path(output_root) / Path(entry).relative_to(input_root)
