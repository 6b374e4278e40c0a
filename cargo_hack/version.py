"""Toolchain versions and version ranges as given to ``--version-range``."""

from __future__ import annotations

import enum
import functools
import re
from dataclasses import dataclass, replace
from typing import Optional, Union

from cargo_hack import term

_U32_MAX = 2**32 - 1
_NUMBER = re.compile(r"\+?[0-9]+")


def _parse_component(text: str) -> int:
    if not _NUMBER.fullmatch(text):
        raise ValueError(f"invalid digit found in string `{text}`")
    value = int(text)
    if value > _U32_MAX:
        raise ValueError(f"number too large to fit in target type: `{text}`")
    return value


@functools.total_ordering
@dataclass(frozen=True)
class Version:
    """A ``major.minor[.patch]`` version; a missing patch sorts before any patch."""

    major: int
    minor: int
    patch: Optional[int] = None

    def _key(self) -> tuple[int, int, int, int]:
        if self.patch is None:
            return (self.major, self.minor, 0, 0)
        return (self.major, self.minor, 1, self.patch)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self._key() < other._key()

    def strip_patch(self) -> Version:
        """Return the same version without its patch component."""
        return replace(self, patch=None)

    @classmethod
    def parse(cls, text: str) -> Version:
        """Parse ``major.minor[.patch]``; raise ``ValueError`` on bad input."""
        parts = text.split(".", 2)
        major = _parse_component(parts[0])
        if len(parts) < 2:
            raise ValueError("missing minor version")
        minor = _parse_component(parts[1])
        patch = _parse_component(parts[2]) if len(parts) > 2 else None
        return cls(major, minor, patch)

    def __str__(self) -> str:
        text = f"{self.major}.{self.minor}"
        if self.patch is not None:
            text += f".{self.patch}"
        return text


class MaybeVersion(enum.Enum):
    """A range bound that is resolved later instead of being a fixed version."""

    MSRV = "msrv"
    STABLE = "stable"


Bound = Union[Version, MaybeVersion]


def _maybe_version(text: str) -> Optional[Version]:
    return Version.parse(text) if text else None


@dataclass(frozen=True)
class VersionRange:
    """An inclusive range of toolchain versions."""

    start_inclusive: Bound
    end_inclusive: Bound

    @classmethod
    def msrv(cls) -> VersionRange:
        """The range that holds only each package's rust-version."""
        return cls(MaybeVersion.MSRV, MaybeVersion.MSRV)

    @classmethod
    def parse(cls, text: str) -> VersionRange:
        """Parse ``[start]..[=end]``; raise ``ValueError`` on bad input."""
        end: Optional[Version]
        if ".." in text:
            start, end_text = text.split("..", 1)
            if end_text.startswith("="):
                end_text = end_text[1:]
                if not end_text:
                    raise ValueError(
                        f"inclusive range `{text}` must have end expression; "
                        f"consider using `{text.replace('..=', '..')}` or `{text}<end>`"
                    )
            elif end_text:
                term.warn(
                    "using `..` for inclusive range is deprecated; "
                    f"consider using `{text.replace('..', '..=')}`"
                )
            end = _maybe_version(end_text)
        else:
            start, end = text, None
        start_version = _maybe_version(start)
        return cls(
            start_version if start_version is not None else MaybeVersion.MSRV,
            end if end is not None else MaybeVersion.STABLE,
        )

    def __str__(self) -> str:
        text = ""
        if isinstance(self.start_inclusive, Version):
            text += str(self.start_inclusive)
        text += ".."
        if isinstance(self.end_inclusive, Version):
            text += f"={self.end_inclusive}"
        return text