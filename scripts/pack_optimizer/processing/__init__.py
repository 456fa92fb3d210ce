"""
Transform stages for cloning, structured-data minification, shader comment stripping, PNG recompression, and archive packaging.
"""

from .base import StageSpec, run_stage, suffix_predicate, exclude_suffixes_predicate
from .clone import clone_dir, default_clone_predicate
from .minify import JSON_STAGE, YAML_STAGE, minify_json_text, minify_yaml_text
from .shader import SHADER_STAGE, strip_shader_comments
from .image import PngRecompressor, make_png_stage
from .packager import ArchiveResult, zip_dir, file_digest

__all__ = [
    "StageSpec",
    "run_stage",
    "suffix_predicate",
    "exclude_suffixes_predicate",
    "clone_dir",
    "default_clone_predicate",
    "JSON_STAGE",
    "YAML_STAGE",
    "minify_json_text",
    "minify_yaml_text",
    "SHADER_STAGE",
    "strip_shader_comments",
    "PngRecompressor",
    "make_png_stage",
    "ArchiveResult",
    "zip_dir",
    "file_digest",
]
