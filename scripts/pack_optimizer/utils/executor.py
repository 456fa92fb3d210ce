"""
Concurrent runner applying a per-file transform across a batch of entries.
"""

import os
import time
import logging
from concurrent.futures import ThreadPoolExecutor, FIRST_EXCEPTION, wait
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Sequence

from ..errors import StageError, TransformIOError

logger = logging.getLogger(__name__)


@dataclass
class ExecutionReport:
    """Outcome of one batch run."""
    processed: int
    duration: float
    sequential: bool = False


def default_worker_count() -> int:
    """Worker pool size matching the available parallelism."""
    return os.cpu_count() or 1


class StageExecutor:
    """
    Runs a transform once per entry, either on a bounded thread pool or
    strictly one entry at a time.

    The first failing unit aborts the batch: queued units are cancelled,
    units already running are allowed to finish, and the error is re-raised.
    """

    def __init__(self, max_workers: Optional[int] = None):
        self.max_workers = max_workers or default_worker_count()

    def run(self, entries: Sequence[Path], transform: Callable[[Path], None],
            sequential: bool = False) -> ExecutionReport:
        """
        Apply transform to every entry and wait for all of them.

        Args:
            entries: Paths to process
            transform: Per-entry callable; must not depend on sibling results
            sequential: Run on the calling thread with no overlap at all

        Returns:
            ExecutionReport with processed count and wall-clock duration

        Raises:
            StageError: The first failure raised by a transform
        """
        start_time = time.perf_counter()

        if sequential or self.max_workers == 1 or len(entries) <= 1:
            for entry in entries:
                _apply(transform, entry)
            sequential = True
        else:
            self._run_pool(entries, transform)

        duration = time.perf_counter() - start_time
        logger.debug(f"Processed {len(entries)} entries in {duration:.2f}s (sequential={sequential})")
        return ExecutionReport(processed=len(entries), duration=duration, sequential=sequential)

    def _run_pool(self, entries: Sequence[Path], transform: Callable[[Path], None]) -> None:
        workers = min(self.max_workers, len(entries))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = [executor.submit(_apply, transform, entry) for entry in entries]
            done, pending = wait(futures, return_when=FIRST_EXCEPTION)

            failed = next((f for f in done if f.exception() is not None), None)
            if failed is not None:
                for future in pending:
                    future.cancel()
                # Drain the units that were already running before re-raising
                wait(pending)
                raise failed.exception()


def _apply(transform: Callable[[Path], None], entry: Path) -> None:
    try:
        transform(entry)
    except StageError:
        raise
    except OSError as e:
        raise TransformIOError(entry, str(e)) from e
