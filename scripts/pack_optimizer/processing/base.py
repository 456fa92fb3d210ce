"""
Stage descriptors shared by every in-place transform of the working tree.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from ..utils.executor import ExecutionReport, StageExecutor
from ..utils.walker import PathPredicate, TraverseMode, map_path, traverse

logger = logging.getLogger(__name__)


# transform(source, destination); source == destination for in-place stages
FileTransform = Callable[[Path, Path], None]


def suffix_predicate(*suffixes: str) -> PathPredicate:
    """Build a stateless filter accepting paths that end with any of the given suffixes."""
    suffixes = tuple(suffixes)

    def predicate(path: Path) -> bool:
        return str(path).endswith(suffixes)

    return predicate


def exclude_suffixes_predicate(*suffixes: str) -> PathPredicate:
    """Build a stateless filter rejecting paths that end with any of the given suffixes."""
    accepts = suffix_predicate(*suffixes)
    return lambda path: not accepts(path)


@dataclass(frozen=True)
class StageSpec:
    """
    One fixed transform applied to every matching file of a tree.

    Attributes:
        name: Step identifier
        prompt: Confirmation prompt shown before the stage runs
        predicate: File eligibility filter
        transform: Per-file transform
        label: Human-readable file kind used in the stage report
        verb: Past-tense action used in the stage report
        sequential: Process files strictly one at a time
    """
    name: str
    prompt: str
    predicate: PathPredicate
    transform: FileTransform
    label: str
    verb: str = "Minified"
    sequential: bool = False


def run_stage(spec: StageSpec, input_root: Path, output_root: Path,
              executor: Optional[StageExecutor] = None,
              sequential: Optional[bool] = None) -> ExecutionReport:
    """
    Run a stage over every matching file under input_root.

    Args:
        spec: Stage to run
        input_root: Tree to read from
        output_root: Tree to write to (equal to input_root for in-place stages)
        executor: Executor to run per-file transforms on
        sequential: Override for the stage's own concurrency policy

    Returns:
        ExecutionReport for the stage
    """
    executor = executor or StageExecutor()
    files = [path for path in traverse(input_root, TraverseMode.FILES) if spec.predicate(path)]

    def apply(path: Path) -> None:
        spec.transform(path, map_path(path, input_root, output_root))

    run_sequential = spec.sequential if sequential is None else sequential
    report = executor.run(files, apply, sequential=run_sequential)

    logger.info(f"{spec.verb} {report.processed} {spec.label} files in {report.duration:.2f}s")
    return report
