"""Installing toolchains and working out which toolchain versions to run."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable, Optional, Sequence, Union

from cargo_hack import term
from cargo_hack.process import ProcessError, cmd
from cargo_hack.term import LogGroup
from cargo_hack.version import MaybeVersion, Version, VersionRange

_U32_MAX = 2**32 - 1

StableVersion = Union[Version, Callable[[], Version]]


@dataclass(frozen=True)
class Rustup:
    """The installed rustup, known by its minor version."""

    version: int

    @classmethod
    def detect(cls) -> Rustup:
        """Ask rustup for its version; assume the latest if that fails."""
        try:
            version = rustup_minor_version()
        except (ProcessError, ValueError) as e:
            term.warn(f"unable to determine rustup version; assuming latest stable rustup: {e}")
            version = _U32_MAX
        return cls(version)


def rustup_minor_version() -> int:
    """The minor version reported by ``rustup --version``."""
    line = cmd("rustup", "--version")
    output = line.read()
    words = output.split(" ")
    if len(words) < 2 or words[0] != "rustup":
        raise ValueError(f"unexpected output from {line}: {output}")
    version = Version.parse(words[1])
    if version.major != 1 or version.patch is None:
        raise ValueError(f"unexpected output from {line}: {output}")
    return version.minor


def install_toolchain(
    toolchain: str,
    targets: Sequence[str],
    print_output: bool,
    log_group: LogGroup,
) -> None:
    """Install ``toolchain`` (and ``targets``) unless it is already usable."""
    toolchain = toolchain[1:] if toolchain.startswith("+") else toolchain

    if not targets:
        try:
            cmd("rustup", "run", toolchain, "cargo", "--version").run_with_output()
        except ProcessError:
            pass
        else:
            return

    # --no-self-update: on some CI Windows images rustup cannot update itself.
    line = cmd("rustup", "toolchain", "add", toolchain, "--no-self-update")
    if targets:
        line.args(["--target", ",".join(targets)])

    if print_output:
        # Installation can take a while, so let the user see its progress.
        with log_group.group(f"running {line}"):
            line.run()
    else:
        line.run_with_output()


def _check(version: Version) -> None:
    if version.major != 1:
        raise ValueError("major version must be 1")
    if version.patch is not None:
        term.warn(
            "--version-range always selects the latest patch release per minor release, "
            f"not the specified patch release `{version.patch}`"
        )


def version_range(
    range_: VersionRange,
    step: int,
    rust_versions: Iterable[Optional[str]],
    stable_version: StableVersion,
) -> list[Version]:
    """Expand ``range_`` into the toolchain versions to run, ``step`` minors apart.

    ``rust_versions`` holds the rust-version of each selected package (``None``
    where unset); the lowest one stands for ``msrv``. ``stable_version`` is the
    current stable version, or a function that finds it when first needed.
    """
    if step < 1:
        raise ValueError("step must be a positive integer")

    cache: dict[str, Version] = {}

    def stable() -> Version:
        if "stable" not in cache:
            cache["stable"] = stable_version() if callable(stable_version) else stable_version
        return cache["stable"]

    def lowest_msrv() -> Version:
        if "msrv" not in cache:
            msrvs = [Version.parse(v).strip_patch() for v in rust_versions if v is not None]
            if not msrvs:
                raise ValueError("no rust-version field in selected Cargo.toml's is specified")
            cache["msrv"] = min(msrvs)
        return cache["msrv"]

    start_bound = range_.start_inclusive
    if start_bound is MaybeVersion.STABLE:
        start = stable()
    else:
        start = lowest_msrv() if start_bound is MaybeVersion.MSRV else start_bound
        _check(start)

    end_bound = range_.end_inclusive
    if end_bound is MaybeVersion.STABLE:
        end = stable()
    elif end_bound is MaybeVersion.MSRV:
        end = lowest_msrv()
    else:
        end = end_bound
        _check(end)

    versions = [Version(1, minor) for minor in range(start.minor, end.minor + 1, step)]
    if not versions:
        raise ValueError(f"specified version range `{range_}` is empty")
    return versions