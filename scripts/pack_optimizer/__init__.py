"""
Resource Pack Optimizer

A build pipeline that clones a resource pack directory, minifies its json,
yaml and shader files, losslessly recompresses its PNG images, and writes the
result to an output directory or a single zip archive with an advisory digest.
"""

__version__ = "0.1.0"
__author__ = "MineSuperior"

from .config import PipelineConfig
from .errors import StageError, ParseError, CodecError, TransformIOError
from .pipeline import PackPipeline, PipelineStep, PipelineState, PipelineError, PathValidationError, UserDeclined, RunOutcome

__all__ = [
    "PipelineConfig",
    "StageError",
    "ParseError",
    "CodecError",
    "TransformIOError",
    "PackPipeline",
    "PipelineStep",
    "PipelineState",
    "PipelineError",
    "PathValidationError",
    "UserDeclined",
    "RunOutcome",
]
