"""Planning and bookkeeping for the runs over packages and toolchain versions."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Mapping, Optional, Sequence, Union

from cargo_hack import term
from cargo_hack.process import ProcessBuilder
from cargo_hack.version import Version, VersionRange


@dataclass
class Progress:
    """How many commands have run out of how many planned."""

    total: int = 0
    count: int = 0


@dataclass
class KeepGoing:
    """Failures collected while running with ``--keep-going``."""

    count: int = 0
    failed_commands: dict[str, list[str]] = field(default_factory=dict)

    def record(self, package: str, command: Union[str, ProcessBuilder]) -> None:
        """Note that ``command`` failed for ``package``."""
        text = command.format(True) if isinstance(command, ProcessBuilder) else str(command)
        self.count += 1
        self.failed_commands.setdefault(package, []).append(text)

    def __str__(self) -> str:
        lines = [f"failed to run {self.count} commands", "", "failed commands:"]
        for package in sorted(self.failed_commands):
            lines.append(f"    {package}:")
            lines.extend(f"        {c}" for c in self.failed_commands[package])
        return "\n".join(lines) + "\n"


@dataclass(frozen=True)
class PackageVersion:
    """A package to run, with the rust-version its manifest declares."""

    id: str
    name: str
    rust_version: Optional[str] = None

    def msrv(self) -> Optional[Version]:
        """The declared rust-version without its patch, if any."""
        if self.rust_version is None:
            return None
        return Version.parse(self.rust_version).strip_patch()


def assign_versions(
    packages: Iterable[PackageVersion],
    range_: VersionRange,
    steps: Sequence[Version],
) -> dict[Version, list[PackageVersion]]:
    """Map each toolchain version to the packages run with it, oldest first.

    A package is run on each step not older than its rust-version, and on its
    rust-version itself when that is not one of the steps.
    """
    versions: dict[Version, list[PackageVersion]] = {}
    msrv_only = range_ == VersionRange.msrv()
    for pkg in packages:
        msrv = pkg.msrv()
        if msrv_only:
            if msrv is None:
                raise ValueError(
                    f"no rust-version field in {pkg.name}'s Cargo.toml is specified"
                )
            versions.setdefault(msrv, []).append(pkg)
            continue
        seen = False
        for version in steps:
            if msrv is not None and version < msrv:
                continue
            if not seen:
                if msrv is not None and version != msrv:
                    versions.setdefault(msrv, []).append(pkg)
                seen = True
            versions.setdefault(version, []).append(pkg)
        if not seen:
            term.warn(
                f"skipping {pkg.name}, rust-version ({msrv}) is not in specified range ({range_})"
            )
    return dict(sorted(versions.items()))


def total_runs(
    versions: Mapping[Version, Iterable[PackageVersion]],
    feature_counts: Mapping[str, int],
    target_count: int,
) -> int:
    """Count the commands to run; cargo before 1.64 builds one target per run."""
    total = 0
    for version, packages in versions.items():
        for pkg in packages:
            count = feature_counts[pkg.id]
            if target_count == 0 or version.minor >= 64:
                total += count
            else:
                total += count * target_count
    return total


def needs_lockfile(versions: Mapping[Version, object], locked: bool) -> bool:
    """Whether to generate the lockfile with the oldest cargo first (pre-1.60)."""
    if not versions:
        raise ValueError("no toolchain versions to run")
    return not locked and min(versions).minor < 60


def print_command(line: ProcessBuilder) -> str:
    """Print the command without program path or backticks, and return it."""
    line = line.copy()
    line.strip_program_path = True
    with term.scoped_verbose(True):
        text = line.format()
    text = text[1:-1]
    print(text)
    return text