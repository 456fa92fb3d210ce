"""
Structured-data minification for json-like and yaml-like files.

Both families are rewritten in place as compact JSON. YAML files keep their
extension even though their content becomes JSON.
"""

import re
import json
from pathlib import Path
from typing import Any

import yaml

from ..errors import ParseError
from ..utils.filesystem import ensure_parent
from .base import StageSpec, suffix_predicate


JSON_SUFFIXES = (".json", ".mcmeta")
YAML_SUFFIXES = (".yml", ".yaml")

_BOOL_TAG = "tag:yaml.org,2002:bool"
_INT_TAG = "tag:yaml.org,2002:int"
_FLOAT_TAG = "tag:yaml.org,2002:float"
_TIMESTAMP_TAG = "tag:yaml.org,2002:timestamp"

# YAML 1.1 scalar rules replaced by the YAML 1.2 core schema
_DROPPED_TAGS = {_BOOL_TAG, _INT_TAG, _FLOAT_TAG, _TIMESTAMP_TAG}

CORE_BOOL = re.compile(r"^(?:true|True|TRUE|false|False|FALSE)$")
CORE_INT = re.compile(r"^(?:[-+]?[0-9]+|0o[0-7]+|0x[0-9a-fA-F]+)$")
CORE_FLOAT = re.compile(
    r"^(?:[-+]?(?:\.[0-9]+|[0-9]+(?:\.[0-9]*)?)(?:[eE][-+]?[0-9]+)?"
    r"|[-+]?\.(?:inf|Inf|INF)"
    r"|\.(?:nan|NaN|NAN))$"
)


class JsonCompatibleLoader(yaml.SafeLoader):
    """
    Safe YAML loader resolving plain scalars by the YAML 1.2 core schema.

    Only true/false are booleans, integers are decimal, 0o octal or 0x hex,
    and there are no timestamps or base-60 numbers, so values such as
    ``no``, ``on``, ``12:30`` and ``2024-01-02`` stay strings and ``010``
    stays ten.
    """

    def construct_yaml_bool(self, node):
        return self.construct_scalar(node).lower() == "true"

    def construct_yaml_int(self, node):
        value = self.construct_scalar(node)
        if value.startswith("0o"):
            return int(value[2:], 8)
        if value.startswith("0x"):
            return int(value[2:], 16)
        return int(value, 10)


JsonCompatibleLoader.yaml_implicit_resolvers = {
    first_char: [(tag, regexp) for tag, regexp in resolvers if tag not in _DROPPED_TAGS]
    for first_char, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}
JsonCompatibleLoader.add_implicit_resolver(_BOOL_TAG, CORE_BOOL, list("tTfF"))
JsonCompatibleLoader.add_implicit_resolver(_INT_TAG, CORE_INT, list("-+0123456789"))
JsonCompatibleLoader.add_implicit_resolver(_FLOAT_TAG, CORE_FLOAT, list("-+.0123456789"))
JsonCompatibleLoader.add_constructor(_BOOL_TAG, JsonCompatibleLoader.construct_yaml_bool)
JsonCompatibleLoader.add_constructor(_INT_TAG, JsonCompatibleLoader.construct_yaml_int)


def _reject_constant(name: str) -> Any:
    raise ValueError(f"non-standard JSON constant {name}")


def dump_compact(value: Any) -> str:
    """Serialize a value as JSON without any insignificant whitespace."""
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False, allow_nan=False)


def minify_json_text(text: str, path: Path = Path("<string>")) -> str:
    """
    Re-serialize JSON text in its most compact form.

    Raises:
        ParseError: If the text is empty, whitespace-only, malformed, or holds an out-of-range number
    """
    try:
        value = json.loads(text, parse_constant=_reject_constant)
    except ValueError as e:
        raise ParseError(path, f"invalid json: {e}")

    try:
        return dump_compact(value)
    except (TypeError, ValueError) as e:
        raise ParseError(path, f"value out of range: {e}")


def minify_yaml_text(text: str, path: Path = Path("<string>")) -> str:
    """
    Convert YAML text into compact JSON carrying the same content.

    Raises:
        ParseError: If the text is empty, malformed, or holds values JSON cannot express
    """
    if not text.strip():
        raise ParseError(path, "invalid yaml: document is empty")

    try:
        value = yaml.load(text, Loader=JsonCompatibleLoader)
    except (yaml.YAMLError, ValueError) as e:
        raise ParseError(path, f"invalid yaml: {e}")

    try:
        return dump_compact(value)
    except (TypeError, ValueError) as e:
        raise ParseError(path, f"yaml value has no json equivalent: {e}")


def _read_text(path: Path) -> str:
    try:
        return path.read_bytes().decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise ParseError(path, f"not valid utf-8: {e}")


def _write_text(path: Path, content: str) -> None:
    ensure_parent(path)
    path.write_bytes(content.encode("utf-8"))


def minify_json_file(source: Path, destination: Path) -> None:
    """Minify one json-like file from source into destination."""
    _write_text(destination, minify_json_text(_read_text(source), source))


def minify_yaml_file(source: Path, destination: Path) -> None:
    """Convert one yaml-like file from source into compact JSON at destination."""
    _write_text(destination, minify_yaml_text(_read_text(source), source))


JSON_STAGE = StageSpec(
    name="minify_json",
    prompt="Minify all .json and .mcmeta files",
    predicate=suffix_predicate(*JSON_SUFFIXES),
    transform=minify_json_file,
    label="json-like",
)

YAML_STAGE = StageSpec(
    name="minify_yaml",
    prompt="Minify all .yml and .yaml files",
    predicate=suffix_predicate(*YAML_SUFFIXES),
    transform=minify_yaml_file,
    label="yaml-like",
)
