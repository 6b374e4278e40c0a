"""Reading Cargo manifests and editing them while preserving their layout."""

from __future__ import annotations

import json
import os
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Optional, Union

import tomlkit
from tomlkit.exceptions import TOMLKitError
from tomlkit.items import InlineTable
from tomlkit.toml_document import TOMLDocument

PathLike = Union[str, Path]

_DEV_DEPS = "dev-dependencies"
_BARE_KEY = re.compile(r"[A-Za-z0-9_-]+")


class ManifestError(Exception):
    """A manifest could not be read or one of its fields is malformed."""

    def __init__(self, message: str, field: Optional[str] = None) -> None:
        super().__init__(message)
        self.field = field


def _field_error(name: str) -> ManifestError:
    return ManifestError(f"failed to parse `{name}` field from manifest", name)


def _plain(value: Any) -> Any:
    unwrap = getattr(value, "unwrap", None)
    return unwrap() if callable(unwrap) else value


def _is_table(value: Any) -> bool:
    """A ``[header]`` table; inline tables do not count."""
    return isinstance(value, Mapping) and not isinstance(value, InlineTable)


@dataclass(frozen=True)
class ManifestPackage:
    """The ``[package]`` fields that old cargo does not report in its metadata.

    ``publish`` is ``None`` when the metadata reports it instead.
    ``rust_version`` is only meaningful when ``rust_version_in_manifest`` is true;
    otherwise the metadata reports it.
    """

    publish: Optional[bool]
    rust_version: Optional[str] = None
    rust_version_in_manifest: bool = False


def parse_package(doc: Mapping, metadata_cargo_version: int) -> ManifestPackage:
    """Read the ``[package]`` table; raise ``ManifestError`` naming the bad field."""
    package = doc.get("package")
    if not _is_table(package):
        raise _field_error("package")
    values = _plain(package)

    publish: Optional[bool]
    if metadata_cargo_version >= 39:
        publish = None
    else:
        # Unrestricted if true or missing, forbidden if false or an empty array.
        raw = values.get("publish")
        if raw is None:
            publish = True
        elif isinstance(raw, bool):
            publish = raw
        elif isinstance(raw, list):
            publish = bool(raw)
        else:
            raise _field_error("publish")

    if metadata_cargo_version >= 58:
        return ManifestPackage(publish)
    raw = values.get("rust-version")
    if raw is not None and not isinstance(raw, str):
        raise _field_error("rust-version")
    return ManifestPackage(publish, raw, True)


def parse_features(doc: Mapping) -> dict[str, list[str]]:
    """Read the ``[features]`` table, sorted by feature name."""
    features = doc.get("features")
    if features is None:
        return {}
    if not _is_table(features):
        raise _field_error("features")
    result: dict[str, list[str]] = {}
    for name, values in _plain(features).items():
        if not isinstance(values, list):
            raise _field_error("features")
        result[str(name)] = [str(v) for v in values if isinstance(v, str)]
    return dict(sorted(result.items()))


@dataclass
class Manifest:
    """A parsed ``Cargo.toml`` together with its original text."""

    raw: str
    doc: TOMLDocument
    package: ManifestPackage
    features: dict[str, list[str]] = field(default_factory=dict)

    @classmethod
    def load(cls, path: PathLike, metadata_cargo_version: int) -> Manifest:
        """Read and parse the manifest at ``path``."""
        path = Path(path)
        with open(path, encoding="utf-8", newline="") as f:
            raw = f.read()
        try:
            doc = tomlkit.parse(raw)
        except TOMLKitError as e:
            raise ManifestError(f"failed to parse manifest `{path}` as toml: {e}") from e
        try:
            package = parse_package(doc, metadata_cargo_version)
            features = parse_features(doc)
        except ManifestError as e:
            raise ManifestError(
                f"failed to parse `{e.field}` field from manifest `{path}`", e.field
            ) from e
        return cls(raw, doc, package, features)


# Layout-preserving removal of dev-dependencies.
#
# The document is cut into units: trivia lines (blank or comment-only), table
# headers and key/value entries. Trivia directly before a header or an entry
# belongs to it and goes away with it.


@dataclass
class _Unit:
    text: str
    kind: str  # "trivia", "header" or "entry"
    path: tuple[str, ...] = ()


def _skip_blank(text: str, pos: int) -> int:
    while pos < len(text) and text[pos] in " \t":
        pos += 1
    return pos


def _line_end(text: str, pos: int) -> int:
    nl = text.find("\n", pos)
    return len(text) if nl < 0 else nl + 1


def _read_basic_string(text: str, pos: int) -> tuple[str, int]:
    """Read a single-line ``"..."`` string starting at ``pos``."""
    i = pos + 1
    while i < len(text):
        c = text[i]
        if c == "\\":
            i += 2
            continue
        if c == '"':
            raw = text[pos + 1 : i]
            try:
                value = json.loads(f'"{raw}"')
            except ValueError:
                value = raw
            return value, i + 1
        if c == "\n":
            break
        i += 1
    raise ManifestError("unterminated string in manifest")


def _read_literal_string(text: str, pos: int) -> tuple[str, int]:
    end = text.find("'", pos + 1)
    if end < 0 or "\n" in text[pos + 1 : end]:
        raise ManifestError("unterminated string in manifest")
    return text[pos + 1 : end], end + 1


def _parse_key(text: str, pos: int) -> tuple[tuple[str, ...], int]:
    parts: list[str] = []
    while True:
        pos = _skip_blank(text, pos)
        c = text[pos] if pos < len(text) else ""
        if c == '"':
            part, pos = _read_basic_string(text, pos)
        elif c == "'":
            part, pos = _read_literal_string(text, pos)
        else:
            m = _BARE_KEY.match(text, pos)
            if not m:
                raise ManifestError(f"invalid key in manifest at offset {pos}")
            part, pos = m.group(), m.end()
        parts.append(part)
        pos = _skip_blank(text, pos)
        if pos < len(text) and text[pos] == ".":
            pos += 1
            continue
        return tuple(parts), pos


def _skip_multiline(text: str, pos: int, quote: str) -> int:
    """Skip past the closing delimiter of a multi-line string opened before ``pos``."""
    delim = quote * 3
    i = pos
    while i < len(text):
        if quote == '"' and text[i] == "\\":
            i += 2
            continue
        if text.startswith(delim, i):
            i += 3
            # Up to two quotes right before the delimiter are content.
            extra = 0
            while extra < 2 and i < len(text) and text[i] == quote:
                i += 1
                extra += 1
            return i
        i += 1
    raise ManifestError("unterminated multi-line string in manifest")


def _value_end(text: str, pos: int) -> int:
    """Index just past the end of the value that starts at ``pos``."""
    depth = 0
    n = len(text)
    while pos < n:
        if text.startswith('"""', pos):
            pos = _skip_multiline(text, pos + 3, '"')
            continue
        if text.startswith("'''", pos):
            pos = _skip_multiline(text, pos + 3, "'")
            continue
        c = text[pos]
        if c == '"':
            _, pos = _read_basic_string(text, pos)
            continue
        if c == "'":
            _, pos = _read_literal_string(text, pos)
            continue
        if c == "#":
            nl = text.find("\n", pos)
            pos = n if nl < 0 else nl
            continue
        if c in "[{":
            depth += 1
        elif c in "]}":
            depth = max(0, depth - 1)
        elif c == "\n" and depth == 0:
            return pos + 1
        pos += 1
    return n


def _units(text: str) -> Iterable[_Unit]:
    table: tuple[str, ...] = ()
    pos = 0
    while pos < len(text):
        start = pos
        pos = _skip_blank(text, pos)
        c = text[pos] if pos < len(text) else ""
        if c in ("", "\n", "\r", "#"):
            pos = _line_end(text, pos)
            yield _Unit(text[start:pos], "trivia")
        elif c == "[":
            array = text.startswith("[[", pos)
            table, pos = _parse_key(text, pos + (2 if array else 1))
            closing = "]]" if array else "]"
            if not text.startswith(closing, pos):
                raise ManifestError(f"invalid table header in manifest at offset {start}")
            pos = _line_end(text, pos + len(closing))
            yield _Unit(text[start:pos], "header", table)
        else:
            key, pos = _parse_key(text, pos)
            if not text.startswith("=", pos):
                raise ManifestError(f"expected `=` in manifest at offset {pos}")
            pos = _value_end(text, pos + 1)
            yield _Unit(text[start:pos], "entry", table + key)


def _is_dev_deps(path: tuple[str, ...]) -> bool:
    if path and path[0] == _DEV_DEPS:
        return True
    return len(path) >= 3 and path[0] == "target" and path[2] == _DEV_DEPS


def remove_dev_deps(doc: str) -> str:
    """Return the manifest text ``doc`` without any dev-dependencies tables.

    Both ``[dev-dependencies]`` and ``[target.<cfg>.dev-dependencies]`` are
    removed; everything else keeps its original layout.
    """
    out: list[str] = []
    pending: list[str] = []
    in_removed_table = False
    for unit in _units(doc):
        if unit.kind == "trivia":
            pending.append(unit.text)
            continue
        if unit.kind == "header":
            in_removed_table = _is_dev_deps(unit.path)
            removed = in_removed_table
        else:
            removed = in_removed_table or _is_dev_deps(unit.path)
        if not removed:
            line = unit.text if unit.text.endswith("\n") else unit.text + "\n"
            out.extend(pending)
            out.append(line)
        pending = []
    out.extend(pending)
    return "".join(out)


def _same_file(a: PathLike, b: PathLike) -> bool:
    try:
        return os.path.samefile(a, b)
    except OSError:
        return False


def remove_private_crates(
    doc: Any, workspace_root: PathLike, private_crates: Iterable[PathLike]
) -> None:
    """Drop private crates from ``workspace.members``, excluding any left over.

    ``private_crates`` holds manifest paths. Crates that are not listed by
    name (for example because members uses a glob) are added to
    ``workspace.exclude``.
    """
    workspace = doc.get("workspace") if isinstance(doc, Mapping) else None
    if not isinstance(workspace, Mapping):
        return
    workspace_root = Path(workspace_root)
    remaining = sorted({Path(p) for p in private_crates})

    members = workspace.get("members")
    if isinstance(members, list):
        matched: list[int] = []
        for index, member in enumerate(members):
            if not isinstance(member, str):
                continue
            manifest_path = workspace_root / str(member) / "Cargo.toml"
            found = next((p for p in remaining if _same_file(p, manifest_path)), None)
            if found is not None:
                matched.append(index)
                remaining.remove(found)
        for index in reversed(matched):
            del members[index]

    if not remaining:
        return
    dirs = [str(p.parent) for p in remaining]
    exclude = workspace.get("exclude")
    if isinstance(exclude, list):
        for d in dirs:
            exclude.append(d)
    else:
        workspace["exclude"] = dirs