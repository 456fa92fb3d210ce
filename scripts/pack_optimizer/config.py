"""
Configuration management for the pack optimizer.
Supports TOML and JSON configuration files, environment overrides and validation.
"""

import os
import json
import hashlib
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Any, Union
from pathlib import Path

import toml

from .processing.clone import DEFAULT_EXCLUDED_SUFFIXES
from .processing.packager import DEFAULT_DIGEST_ALGORITHM
from .utils.executor import default_worker_count


ENV_PREFIX = "PACK_OPTIMIZER_"
DEFAULT_ZIP_NAME = "output.zip"


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def _parse_list(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


def _check_digest_algorithm(name: str) -> Optional[str]:
    if name.lower() not in hashlib.algorithms_available:
        return f"digest_algorithm '{name}' is not supported"
    try:
        digest_size = hashlib.new(name).digest_size
    except ValueError:
        return f"digest_algorithm '{name}' is not supported"
    # shake_* digests have no fixed length
    if digest_size == 0:
        return f"digest_algorithm '{name}' has no fixed digest length"
    return None


@dataclass
class PipelineConfig:
    """Main configuration class for an optimizer run."""

    # Paths
    input_path: Optional[Path] = None
    output_path: Optional[Path] = None
    zip_name: Optional[str] = None

    # Prompts
    no_confirm: bool = False

    # Processing settings
    exclude_suffixes: List[str] = field(default_factory=lambda: list(DEFAULT_EXCLUDED_SUFFIXES))
    max_workers: int = field(default_factory=default_worker_count)
    sequential_images: bool = True
    png_compress_level: int = 9

    # Output settings
    digest_algorithm: str = DEFAULT_DIGEST_ALGORITHM
    working_dir_prefix: str = "pack-optimizer-"

    def __post_init__(self):
        if self.input_path is not None:
            self.input_path = Path(self.input_path)
        if self.output_path is not None:
            self.output_path = Path(self.output_path)

    @property
    def archive_requested(self) -> bool:
        """Whether the run should end in an archive instead of a direct copy."""
        return self.zip_name is not None

    @classmethod
    def from_file(cls, config_path: Union[str, Path]) -> "PipelineConfig":
        """Load configuration from TOML or JSON file."""
        config_path = Path(config_path)

        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        if config_path.suffix.lower() == '.toml':
            return cls._from_dict(toml.load(config_path))
        elif config_path.suffix.lower() == '.json':
            with open(config_path, 'r') as f:
                return cls._from_dict(json.load(f))
        else:
            raise ValueError(f"Unsupported configuration format: {config_path.suffix}")

    @classmethod
    def _from_dict(cls, data: Dict[str, Any]) -> "PipelineConfig":
        """Create configuration from the nested section layout."""
        config_data = {}

        if 'paths' in data:
            paths = data['paths']
            for key in ('input_path', 'output_path', 'zip_name'):
                if key in paths:
                    config_data[key] = paths[key]

        if 'processing' in data:
            processing = data['processing']
            if 'exclude_suffixes' in processing:
                config_data['exclude_suffixes'] = list(processing['exclude_suffixes'])
            if 'max_workers' in processing:
                config_data['max_workers'] = int(processing['max_workers'])
            if 'sequential_images' in processing:
                config_data['sequential_images'] = bool(processing['sequential_images'])
            if 'png_compress_level' in processing:
                config_data['png_compress_level'] = int(processing['png_compress_level'])

        if 'output' in data:
            output = data['output']
            config_data['no_confirm'] = output.get('no_confirm', False)
            config_data['digest_algorithm'] = output.get('digest_algorithm', DEFAULT_DIGEST_ALGORITHM)
            if 'working_dir_prefix' in output:
                config_data['working_dir_prefix'] = output['working_dir_prefix']

        return cls(**config_data)

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to the nested section layout used by config files."""
        paths = {}
        if self.input_path is not None:
            paths['input_path'] = str(self.input_path)
        if self.output_path is not None:
            paths['output_path'] = str(self.output_path)
        if self.zip_name is not None:
            paths['zip_name'] = self.zip_name

        return {
            'paths': paths,
            'processing': {
                'exclude_suffixes': list(self.exclude_suffixes),
                'max_workers': self.max_workers,
                'sequential_images': self.sequential_images,
                'png_compress_level': self.png_compress_level,
            },
            'output': {
                'no_confirm': self.no_confirm,
                'digest_algorithm': self.digest_algorithm,
                'working_dir_prefix': self.working_dir_prefix,
            },
        }

    @classmethod
    def default(cls) -> "PipelineConfig":
        """Create default configuration with environment variable overrides."""
        return cls._apply_env_overrides(cls())

    @classmethod
    def _apply_env_overrides(cls, config: "PipelineConfig") -> "PipelineConfig":
        """Apply environment variable overrides to configuration."""

        if os.getenv(f'{ENV_PREFIX}INPUT_PATH'):
            config.input_path = Path(os.environ[f'{ENV_PREFIX}INPUT_PATH'])

        if os.getenv(f'{ENV_PREFIX}OUTPUT_PATH'):
            config.output_path = Path(os.environ[f'{ENV_PREFIX}OUTPUT_PATH'])

        if os.getenv(f'{ENV_PREFIX}ZIP_NAME'):
            config.zip_name = os.environ[f'{ENV_PREFIX}ZIP_NAME']

        if os.getenv(f'{ENV_PREFIX}NO_CONFIRM'):
            config.no_confirm = _parse_bool(os.environ[f'{ENV_PREFIX}NO_CONFIRM'])

        if os.getenv(f'{ENV_PREFIX}EXCLUDE_SUFFIXES') is not None:
            config.exclude_suffixes = _parse_list(os.environ[f'{ENV_PREFIX}EXCLUDE_SUFFIXES'])

        if os.getenv(f'{ENV_PREFIX}MAX_WORKERS'):
            config.max_workers = int(os.environ[f'{ENV_PREFIX}MAX_WORKERS'])

        if os.getenv(f'{ENV_PREFIX}SEQUENTIAL_IMAGES'):
            config.sequential_images = _parse_bool(os.environ[f'{ENV_PREFIX}SEQUENTIAL_IMAGES'])

        if os.getenv(f'{ENV_PREFIX}PNG_COMPRESS_LEVEL'):
            config.png_compress_level = int(os.environ[f'{ENV_PREFIX}PNG_COMPRESS_LEVEL'])

        if os.getenv(f'{ENV_PREFIX}DIGEST_ALGORITHM'):
            config.digest_algorithm = os.environ[f'{ENV_PREFIX}DIGEST_ALGORITHM']

        return config

    def validate(self) -> List[str]:
        """Validate configuration values and return list of errors."""
        errors = []

        if self.max_workers < 1:
            errors.append("max_workers must be at least 1")

        if not 0 <= self.png_compress_level <= 9:
            errors.append("png_compress_level must be between 0 and 9")

        digest_error = _check_digest_algorithm(self.digest_algorithm)
        if digest_error:
            errors.append(digest_error)

        if self.zip_name is not None:
            if not self.zip_name or Path(self.zip_name).name != self.zip_name:
                errors.append("zip_name must be a plain file name")

        for suffix in self.exclude_suffixes:
            if not suffix:
                errors.append("exclude_suffixes must not contain empty entries")
                break

        return errors


ENV_VARS = [
    (f"{ENV_PREFIX}INPUT_PATH", "Directory to read from", "resourcepack"),
    (f"{ENV_PREFIX}OUTPUT_PATH", "Directory to output to", "dist"),
    (f"{ENV_PREFIX}ZIP_NAME", "Archive file name inside the output directory", DEFAULT_ZIP_NAME),
    (f"{ENV_PREFIX}NO_CONFIRM", "Bypass confirmation prompts (true/false)", "true"),
    (f"{ENV_PREFIX}EXCLUDE_SUFFIXES", "Comma-separated suffixes left out of the clone", ".md,.old"),
    (f"{ENV_PREFIX}MAX_WORKERS", "Worker threads per stage", "8"),
    (f"{ENV_PREFIX}SEQUENTIAL_IMAGES", "Compress PNG files one at a time (true/false)", "true"),
    (f"{ENV_PREFIX}PNG_COMPRESS_LEVEL", "PNG compression level (0-9)", "9"),
    (f"{ENV_PREFIX}DIGEST_ALGORITHM", "Archive digest algorithm", DEFAULT_DIGEST_ALGORITHM),
]
