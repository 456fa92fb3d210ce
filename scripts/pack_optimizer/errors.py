"""
Exceptions raised while transforming individual files in the working tree.
"""

from pathlib import Path
from typing import Union


class StageError(Exception):
    """Base exception for a failure transforming a single file."""

    def __init__(self, path: Union[str, Path], message: str):
        super().__init__(f"{path}: {message}")
        self.path = Path(path)
        self.reason = message


class ParseError(StageError):
    """Exception raised when a structured-data file cannot be parsed."""

    def __init__(self, path: Union[str, Path], message: str):
        super().__init__(path, f"Failed to parse: {message}")


class CodecError(StageError):
    """Exception raised when an image cannot be decoded or re-encoded."""

    def __init__(self, path: Union[str, Path], message: str):
        super().__init__(path, f"Failed to optimize image: {message}")


class TransformIOError(StageError):
    """Exception raised for read, write or directory creation failures."""

    def __init__(self, path: Union[str, Path], message: str):
        super().__init__(path, f"I/O error: {message}")
