"""
Line-comment stripping for GLSL vertex and fragment shaders.

The strip is lexical and line oriented: it knows nothing about block
comments or string literals, so a "//" inside a string is treated as the
start of a comment.
"""

from pathlib import Path
from typing import List

from ..errors import ParseError
from ..utils.filesystem import ensure_parent
from .base import StageSpec, suffix_predicate


SHADER_SUFFIXES = (".vsh", ".fsh")
LINE_COMMENT = "//"


def strip_line(line: str) -> str:
    """Drop a trailing line comment and surrounding whitespace from one line."""
    index = line.find(LINE_COMMENT)
    if index != -1:
        line = line[:index]
    return line.strip()


def strip_shader_comments(source: str) -> str:
    """
    Remove line comments and blank lines from shader source.

    Surviving lines are joined with a single newline and no trailing newline.
    """
    lines: List[str] = []
    for line in source.split("\n"):
        stripped = strip_line(line)
        if stripped:
            lines.append(stripped)
    return "\n".join(lines)


def strip_shader_file(source: Path, destination: Path) -> None:
    """Strip comments from one shader file into destination."""
    try:
        text = source.read_bytes().decode("utf-8")
    except UnicodeDecodeError as e:
        raise ParseError(source, f"not valid utf-8: {e}")

    ensure_parent(destination)
    destination.write_bytes(strip_shader_comments(text).encode("utf-8"))


SHADER_STAGE = StageSpec(
    name="strip_shaders",
    prompt="Minify all .vsh and .fsh files",
    predicate=suffix_predicate(*SHADER_SUFFIXES),
    transform=strip_shader_file,
    label="open_gl_sl-like",
)
