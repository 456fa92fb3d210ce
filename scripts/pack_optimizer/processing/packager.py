"""
Archive packaging of the finished working tree.
"""

import time
import hashlib
import logging
import zipfile
from dataclasses import dataclass
from pathlib import Path
from typing import Union

from ..utils.walker import TraverseMode, traverse

logger = logging.getLogger(__name__)

DIGEST_CHUNK_SIZE = 8192
DEFAULT_DIGEST_ALGORITHM = "sha1"


@dataclass
class ArchiveResult:
    """Outcome of packaging a tree into an archive."""
    path: Path
    file_count: int
    digest: str
    algorithm: str
    duration: float


def file_digest(path: Union[str, Path], algorithm: str = DEFAULT_DIGEST_ALGORITHM,
                chunk_size: int = DIGEST_CHUNK_SIZE) -> str:
    """Compute a hex digest of a file by streaming it in fixed-size chunks."""
    hasher = hashlib.new(algorithm)
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(chunk_size), b""):
            hasher.update(chunk)
    return hasher.hexdigest()


def zip_dir(input_dir: Union[str, Path], archive_path: Union[str, Path],
            algorithm: str = DEFAULT_DIGEST_ALGORITHM) -> ArchiveResult:
    """
    Write every file under input_dir into a zip archive keyed by relative path.

    Directories are not stored as entries. The archive itself is skipped when
    it lives inside input_dir. The digest is computed over the finished
    archive file and is reported only, never embedded.

    Args:
        input_dir: Tree to package
        archive_path: Archive file to create
        algorithm: hashlib algorithm name for the advisory digest

    Returns:
        ArchiveResult describing the archive
    """
    input_dir = Path(input_dir)
    archive_path = Path(archive_path)
    start_time = time.perf_counter()

    archive_target = archive_path.resolve()
    entries = traverse(
        input_dir,
        TraverseMode.ALL,
        lambda entry: entry.resolve() != archive_target,
    )

    file_count = 0
    with zipfile.ZipFile(archive_path, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        for entry in entries:
            if not entry.is_file():
                continue
            archive.write(entry, entry.relative_to(input_dir).as_posix())
            file_count += 1

    duration = time.perf_counter() - start_time
    logger.info(f"Zipped {file_count} files in {duration:.2f}s")

    digest = file_digest(archive_path, algorithm)
    logger.info(f"Zip file {algorithm.upper()} hash: {digest}")

    return ArchiveResult(
        path=archive_path,
        file_count=file_count,
        digest=digest,
        algorithm=algorithm,
        duration=duration,
    )
