"""
Pipeline controller for a single optimizer run.
Validates paths, gates every stage behind a confirmation, runs the stages in
their fixed order over an ephemeral working tree, and packages the result.
"""

import time
import shutil
import logging
import tempfile
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Any
from dataclasses import dataclass, field

from .config import PipelineConfig
from .processing.base import StageSpec, exclude_suffixes_predicate, run_stage
from .processing.clone import clone_dir
from .processing.image import PngRecompressor, make_png_stage
from .processing.minify import JSON_STAGE, YAML_STAGE
from .processing.packager import ArchiveResult, zip_dir
from .processing.shader import SHADER_STAGE
from .utils.confirm import ConfirmGate, ConsoleConfirm, always_confirm
from .utils.executor import ExecutionReport, StageExecutor
from .utils.filesystem import empty_dir, is_empty_dir


class PipelineStep(Enum):
    """Enumeration of pipeline steps in execution order."""
    VALIDATE = "validate"
    EMPTY_OUTPUT = "empty_output"
    CLONE = "clone"
    MINIFY_JSON = "minify_json"
    MINIFY_YAML = "minify_yaml"
    STRIP_SHADERS = "strip_shaders"
    COMPRESS_PNG = "compress_png"
    ARCHIVE = "archive"
    COPY_OUTPUT = "copy_output"
    CLEANUP = "cleanup"


class RunOutcome(Enum):
    """Terminal state of a run."""
    DONE = "done"
    ABORTED = "aborted"


@dataclass
class StepResult:
    """Result of a pipeline step execution."""
    step: PipelineStep
    processed: int
    duration: float
    message: str
    data: Dict[str, Any] = field(default_factory=dict)


@dataclass
class PipelineState:
    """Current state of the pipeline execution."""
    current_step: Optional[PipelineStep] = None
    completed_steps: List[PipelineStep] = field(default_factory=list)
    step_results: Dict[PipelineStep, StepResult] = field(default_factory=dict)
    outcome: Optional[RunOutcome] = None
    abort_message: Optional[str] = None
    working_dir: Optional[Path] = None
    working_dir_kept: bool = False
    archive: Optional[ArchiveResult] = None
    start_time: Optional[float] = None
    end_time: Optional[float] = None

    @property
    def total_duration(self) -> float:
        if self.start_time is None:
            return 0.0
        return (self.end_time or time.time()) - self.start_time


class PipelineError(Exception):
    """Base exception for pipeline errors."""
    def __init__(self, message: str, step: Optional[PipelineStep] = None):
        super().__init__(message)
        self.step = step


class PathValidationError(PipelineError):
    """Exception raised when the input or output directory is unusable."""
    def __init__(self, message: str):
        super().__init__(message, PipelineStep.VALIDATE)


class UserDeclined(PipelineError):
    """Raised when the operator refuses a confirmation prompt."""
    def __init__(self, step: Optional[PipelineStep] = None):
        super().__init__("User did not confirm to continue", step)


def validate_paths(input_dir: Optional[Path], output_dir: Optional[Path]) -> None:
    """
    Check that the input and output directories can be used for a run.

    Raises:
        PathValidationError: On the first failed check
    """
    if input_dir is None or not input_dir.exists() or not input_dir.is_dir():
        raise PathValidationError("Input directory does not exist or is not a directory")

    if output_dir is None or not output_dir.exists() or not output_dir.is_dir():
        raise PathValidationError("Output directory does not exist")

    resolved_input = input_dir.resolve()
    resolved_output = output_dir.resolve()

    if resolved_input == resolved_output:
        raise PathValidationError("Input directory is the same as output directory")

    if resolved_output.is_relative_to(resolved_input):
        raise PathValidationError("Output directory is a subdirectory or a descendant of input directory")

    # Emptying the output directory would otherwise delete the input
    if resolved_input.is_relative_to(resolved_output):
        raise PathValidationError("Input directory is a subdirectory or a descendant of output directory")


class PackPipeline:
    """
    Controller for one optimizer run.

    Steps run strictly one after another. Each stage is announced through the
    confirmation gate first; a refusal ends the run as aborted and nothing
    further is touched. Any other failure propagates after the working tree
    has been removed.
    """

    def __init__(self, config: PipelineConfig, confirm: Optional[ConfirmGate] = None):
        """
        Initialize the pipeline.

        Args:
            config: Run configuration
            confirm: Confirmation gate; ignored when config.no_confirm is set
        """
        self.config = config
        self.confirm: ConfirmGate = always_confirm if config.no_confirm else (confirm or ConsoleConfirm())
        self.state = PipelineState()
        self.logger = self._setup_logging()
        self.executor = StageExecutor(config.max_workers)
        self.png_recompressor = PngRecompressor(config.png_compress_level)

    def _setup_logging(self) -> logging.Logger:
        """Set up logging for the pipeline."""
        logger = logging.getLogger("pack_optimizer")
        logger.setLevel(logging.INFO)

        if not logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            )
            handler.setFormatter(formatter)
            logger.addHandler(handler)

        return logger

    @property
    def stages(self) -> List[StageSpec]:
        """In-place stages applied to the working tree after cloning."""
        return [
            JSON_STAGE,
            YAML_STAGE,
            SHADER_STAGE,
            make_png_stage(self.png_recompressor, sequential=self.config.sequential_images),
        ]

    def run(self) -> PipelineState:
        """
        Run every step in order.

        Returns:
            Final pipeline state; outcome is ABORTED when a prompt was declined

        Raises:
            PathValidationError: If the input or output directory is unusable
            StageError: If any file fails to transform
            OSError: If the working tree or output cannot be written
        """
        self.state.start_time = time.time()
        input_dir = self.config.input_path
        output_dir = self.config.output_path

        try:
            self.state.current_step = PipelineStep.VALIDATE
            validate_paths(input_dir, output_dir)
            self._record(PipelineStep.VALIDATE, 0, 0.0, "Input and output directories are valid")

            if not is_empty_dir(output_dir):
                self._gate(
                    PipelineStep.EMPTY_OUTPUT,
                    f"Output directory is not empty.\nContinuing will delete all files in:\n{output_dir}",
                )
                report = empty_dir(output_dir, self.executor)
                self._record_report(PipelineStep.EMPTY_OUTPUT, report, "Emptied output directory")

            self._run_stages(input_dir, output_dir)

        except UserDeclined as e:
            self.state.outcome = RunOutcome.ABORTED
            self.state.abort_message = str(e)
            self.logger.warning(f"Run aborted before step {e.step.value if e.step else 'unknown'}")
        except Exception as e:
            self.logger.error(f"Pipeline execution failed at step "
                              f"{self.state.current_step.value if self.state.current_step else 'unknown'}: {e}")
            raise
        else:
            self.state.outcome = RunOutcome.DONE
        finally:
            self._discard_working_dir()
            self.state.end_time = time.time()

        return self.state

    def _run_stages(self, input_dir: Path, output_dir: Path) -> None:
        working_dir = Path(tempfile.mkdtemp(prefix=self.config.working_dir_prefix))
        self.state.working_dir = working_dir

        self._gate(PipelineStep.CLONE, f"Clone all files in {input_dir} into {working_dir}")
        report = clone_dir(
            input_dir,
            working_dir,
            exclude_suffixes_predicate(*self.config.exclude_suffixes),
            self.executor,
        )
        self._record_report(PipelineStep.CLONE, report, "Cloned directory items")

        for spec in self.stages:
            step = PipelineStep(spec.name)
            self._gate(step, spec.prompt)
            report = run_stage(spec, working_dir, working_dir, self.executor)
            self._record_report(step, report, f"{spec.verb} {spec.label} files")

        self.logger.info(
            f"PNG recompression rewrote {self.png_recompressor.files_rewritten} files, "
            f"saving {self.png_recompressor.bytes_saved} bytes"
        )

        if self.config.archive_requested:
            archive_path = output_dir / self.config.zip_name
            self._gate(PipelineStep.ARCHIVE, f"Zip all files and output to {archive_path}")
            archive = zip_dir(working_dir, archive_path, self.config.digest_algorithm)
            self.state.archive = archive
            self._record(
                PipelineStep.ARCHIVE, archive.file_count, archive.duration, "Zipped files",
                {"digest": archive.digest, "algorithm": archive.algorithm, "path": str(archive.path)},
            )
        else:
            self.state.current_step = PipelineStep.COPY_OUTPUT
            report = clone_dir(working_dir, output_dir, None, self.executor)
            self._record_report(PipelineStep.COPY_OUTPUT, report, "Copied directory items to output")

        try:
            self._gate(PipelineStep.CLEANUP, f"Delete temporary directory {working_dir}")
        except UserDeclined:
            self.state.working_dir_kept = True
            raise

        self.logger.info(f"Deleting temporary directory {working_dir}...")
        start_time = time.perf_counter()
        shutil.rmtree(working_dir)
        self._record(PipelineStep.CLEANUP, 1, time.perf_counter() - start_time, "Deleted temporary directory")

    def _gate(self, step: PipelineStep, prompt: str) -> None:
        """Ask for confirmation before a step, raising UserDeclined on refusal."""
        self.state.current_step = step
        if not self.confirm(prompt):
            raise UserDeclined(step)

    def _record_report(self, step: PipelineStep, report: ExecutionReport, message: str) -> None:
        self._record(step, report.processed, report.duration, message,
                     {"sequential": report.sequential})

    def _record(self, step: PipelineStep, processed: int, duration: float, message: str,
                data: Optional[Dict[str, Any]] = None) -> None:
        self.state.current_step = step
        self.state.step_results[step] = StepResult(
            step=step,
            processed=processed,
            duration=duration,
            message=message,
            data=data or {},
        )
        if step not in self.state.completed_steps:
            self.state.completed_steps.append(step)

    def _discard_working_dir(self) -> None:
        """Remove a working tree left behind by an error or abort, unless the operator kept it."""
        working_dir = self.state.working_dir
        if working_dir is None or self.state.working_dir_kept or not working_dir.exists():
            return
        shutil.rmtree(working_dir, ignore_errors=True)
