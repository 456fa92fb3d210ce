"""
Utility modules for tree traversal, concurrent execution, confirmation prompts, and output directory handling.
"""

from .walker import TraverseMode, traverse, map_path
from .executor import StageExecutor, ExecutionReport, default_worker_count
from .confirm import ConfirmGate, ConsoleConfirm, always_confirm
from .filesystem import empty_dir, ensure_parent, is_empty_dir

__all__ = [
    "TraverseMode",
    "traverse",
    "map_path",
    "StageExecutor",
    "ExecutionReport",
    "default_worker_count",
    "ConfirmGate",
    "ConsoleConfirm",
    "always_confirm",
    "empty_dir",
    "ensure_parent",
    "is_empty_dir",
]
