"""The workspace description printed by ``cargo metadata --format-version=1``."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Iterator, Optional, TypeVar

T = TypeVar("T")

PackageId = str
"""An opaque unique identifier for referring to a package."""


class MetadataError(Exception):
    """The metadata could not be parsed; ``field`` names the offending field."""

    def __init__(self, message: str, field: Optional[str] = None) -> None:
        super().__init__(message)
        self.field = field


def _field_error(name: str) -> MetadataError:
    return MetadataError(f"failed to parse `{name}` field from metadata", name)


def _as_object(value: Any, name: str) -> dict:
    if not isinstance(value, dict):
        raise _field_error(name)
    return value


def _string(obj: dict, key: str) -> str:
    value = obj.get(key)
    if not isinstance(value, str):
        raise _field_error(key)
    return value


def _array(obj: dict, key: str) -> list:
    value = obj.get(key)
    if not isinstance(value, list):
        raise _field_error(key)
    return value


def _object(obj: dict, key: str) -> dict:
    value = obj.get(key)
    if not isinstance(value, dict):
        raise _field_error(key)
    return value


def _nullable(obj: dict, key: str, kind: type[T]) -> Optional[T]:
    """A field that must be present and is either null or of type ``kind``."""
    if key not in obj:
        raise _field_error(key)
    value = obj[key]
    if value is None:
        return None
    if not isinstance(value, kind):
        raise _field_error(key)
    return value


def _map_items(values: list, parse: Callable[[Any], tuple[str, T]]) -> dict[str, T]:
    return dict(parse(v) for v in values)


@dataclass(frozen=True)
class DepKindInfo:
    """The kind of a dependency edge and the platform it applies to."""

    kind: Optional[str]
    target: Optional[str]

    @classmethod
    def _from_value(cls, value: Any) -> DepKindInfo:
        obj = _as_object(value, "dep_kinds")
        return cls(
            kind=_nullable(obj, "kind", str),
            target=_nullable(obj, "target", str),
        )


@dataclass(frozen=True)
class NodeDep:
    """A dependency in a node; ``dep_kinds`` is empty before cargo 1.41."""

    pkg: PackageId
    dep_kinds: tuple[DepKindInfo, ...] = ()

    @classmethod
    def _from_value(cls, value: Any, cargo_version: int) -> NodeDep:
        obj = _as_object(value, "deps")
        pkg = _string(obj, "pkg")
        dep_kinds: tuple[DepKindInfo, ...] = ()
        if cargo_version >= 41:
            dep_kinds = tuple(DepKindInfo._from_value(v) for v in _array(obj, "dep_kinds"))
        return cls(pkg, dep_kinds)


@dataclass(frozen=True)
class Node:
    """A node in the dependency graph; ``deps`` is empty before cargo 1.30."""

    deps: tuple[NodeDep, ...] = ()

    @classmethod
    def _from_value(cls, value: Any, cargo_version: int) -> tuple[PackageId, Node]:
        obj = _as_object(value, "nodes")
        node_id = _string(obj, "id")
        deps: tuple[NodeDep, ...] = ()
        if cargo_version >= 30:
            deps = tuple(NodeDep._from_value(v, cargo_version) for v in _array(obj, "deps"))
        return node_id, cls(deps)


@dataclass(frozen=True)
class Resolve:
    """The resolved dependency graph; empty when run with ``--no-deps``."""

    nodes: dict[PackageId, Node] = field(default_factory=dict)

    @classmethod
    def _from_obj(cls, obj: dict, cargo_version: int) -> Resolve:
        return cls(
            _map_items(_array(obj, "nodes"), lambda v: Node._from_value(v, cargo_version))
        )


@dataclass(frozen=True)
class Dependency:
    """A dependency of a package."""

    name: str
    optional: bool
    rename: Optional[str] = None

    @classmethod
    def _from_value(cls, value: Any) -> Dependency:
        obj = _as_object(value, "dependencies")
        name = _string(obj, "name")
        optional = obj.get("optional")
        if not isinstance(optional, bool):
            raise _field_error("optional")
        return cls(name, optional, _nullable(obj, "rename", str))

    def as_feature(self) -> Optional[str]:
        """The implicit feature name of an optional dependency, else ``None``."""
        if not self.optional:
            return None
        return self.rename if self.rename is not None else self.name


@dataclass(frozen=True)
class Package:
    """A package of the workspace or a feature-enabled dependency."""

    name: str
    dependencies: tuple[Dependency, ...]
    features: dict[str, list[str]]
    manifest_path: Path
    publish: bool = True
    rust_version: Optional[str] = None

    @classmethod
    def _from_value(cls, value: Any, cargo_version: int) -> tuple[PackageId, Package]:
        obj = _as_object(value, "packages")
        package_id = _string(obj, "id")
        name = _string(obj, "name")
        dependencies = tuple(Dependency._from_value(v) for v in _array(obj, "dependencies"))
        features: dict[str, list[str]] = {}
        for key, values in _object(obj, "features").items():
            if not isinstance(values, list) or not all(isinstance(v, str) for v in values):
                raise _field_error("features")
            features[key] = list(values)
        manifest_path = Path(_string(obj, "manifest_path"))
        publish = True
        if cargo_version >= 39:
            # Unrestricted if null, forbidden if an empty array.
            registries = _nullable(obj, "publish", list)
            publish = registries is None or bool(registries)
        rust_version = _nullable(obj, "rust_version", str) if cargo_version >= 58 else None
        return package_id, cls(
            name=name,
            dependencies=dependencies,
            features=dict(sorted(features.items())),
            manifest_path=manifest_path,
            publish=publish,
            rust_version=rust_version,
        )

    def optional_deps(self) -> Iterator[str]:
        """Feature names of the optional dependencies, in declaration order."""
        for dep in self.dependencies:
            feature = dep.as_feature()
            if feature is not None:
                yield feature


@dataclass(frozen=True)
class Metadata:
    """The parts of ``cargo metadata`` output that are used."""

    cargo_version: int
    packages: dict[PackageId, Package]
    workspace_members: list[PackageId]
    resolve: Resolve
    workspace_root: Path

    @classmethod
    def from_dict(cls, obj: Any, cargo_version: int) -> Metadata:
        """Build from decoded JSON; raise ``MetadataError`` naming a bad field."""
        obj = _as_object(obj, "metadata")
        members = _array(obj, "workspace_members")
        if not all(isinstance(m, str) for m in members):
            raise _field_error("workspace_members")
        packages = _map_items(
            _array(obj, "packages"), lambda v: Package._from_value(v, cargo_version)
        )
        resolve_obj = _nullable(obj, "resolve", dict)
        resolve = (
            Resolve._from_obj(resolve_obj, cargo_version)
            if resolve_obj is not None
            else Resolve()
        )
        workspace_root = Path(_string(obj, "workspace_root"))
        return cls(cargo_version, packages, list(members), resolve, workspace_root)

    @classmethod
    def from_json(cls, text: str, cargo_version: int) -> Metadata:
        """Parse the JSON text printed by ``cargo metadata``."""
        try:
            obj = json.loads(text)
        except ValueError as e:
            raise MetadataError(f"failed to parse metadata output: {e}") from e
        return cls.from_dict(obj, cargo_version)