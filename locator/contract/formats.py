from __future__ import annotations

import json
import tomllib
from enum import Enum
from io import StringIO
from pathlib import Path
from typing import Any, Callable

from ruamel.yaml import YAML
from ruamel.yaml.comments import CommentedMap
from ruamel.yaml.error import YAMLError

from ..errors import ContractError, UnsupportedFormatError


class FileFormat(str, Enum):
    JSON = "json"
    YAML = "yaml"
    TOML = "toml"


_EXTENSIONS = {
    ".json": FileFormat.JSON,
    ".yaml": FileFormat.YAML,
    ".yml": FileFormat.YAML,
    ".toml": FileFormat.TOML,
}

_YAML_RT = YAML(typ="rt")
_YAML_RT.preserve_quotes = True
_YAML_RT.indent(mapping=2, sequence=4, offset=2)
# keep long lines (hashes, URLs) unwrapped
_YAML_RT.width = 1000000


def detect_format(path: Path | str) -> FileFormat:
    """Format by file extension; anything unknown (e.g. .dhall) is unsupported."""
    suffix = Path(path).suffix.lower()
    fmt = _EXTENSIONS.get(suffix)
    if fmt is None:
        raise UnsupportedFormatError(str(path), f"extension '{suffix or '<none>'}' is not one of {sorted(_EXTENSIONS)}")
    return fmt


def parse_text(text: str, fmt: FileFormat, *, source: str) -> Any:
    """Parse `text` in `fmt`; YAML comes back as a round-trip CommentedMap."""
    try:
        if fmt is FileFormat.JSON:
            return json.loads(text)
        if fmt is FileFormat.YAML:
            return _YAML_RT.load(text)
        return tomllib.loads(text)
    except (ValueError, YAMLError) as e:
        # json.JSONDecodeError and tomllib.TOMLDecodeError are ValueErrors
        raise ContractError(source, f"cannot parse {fmt.value}: {e}") from e


def read_data(path: Path, *, source: str | None = None) -> Any:
    fmt = detect_format(path)
    return parse_text(path.read_text(encoding="utf-8"), fmt, source=source or str(path))


def dump_text(data: Any, fmt: FileFormat, *, source: str) -> str:
    if fmt is FileFormat.JSON:
        return json.dumps(data, ensure_ascii=False, indent=2) + "\n"
    if fmt is FileFormat.YAML:
        buf = StringIO()
        _YAML_RT.dump(data, buf)
        return buf.getvalue()
    raise UnsupportedFormatError(source, f"writing {fmt.value} is not supported")


def rewrite_file(path: Path, transform: Callable[[Any], bool]) -> bool:
    """
    Load `path` (YAML round-trip keeps comments and quoting), call
    transform(data) -> "changed?", and if changed save atomically.
    """
    fmt = detect_format(path)
    if fmt is FileFormat.TOML:
        raise UnsupportedFormatError(str(path), "writing toml is not supported")
    data = read_data(path)
    if data is None and fmt is FileFormat.YAML:
        data = CommentedMap()
    if not bool(transform(data)):
        return False
    text = dump_text(data, fmt, source=str(path))
    tmp = path.with_suffix(path.suffix + ".tmp-rt")
    tmp.write_text(text, encoding="utf-8")
    tmp.replace(path)
    return True


__all__ = ["FileFormat", "detect_format", "parse_text", "read_data", "dump_text", "rewrite_file"]
