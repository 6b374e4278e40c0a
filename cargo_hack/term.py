"""Terminal output: colored status lines, global flags and CI log groups."""

from __future__ import annotations

import enum
import os
import sys
from contextlib import contextmanager
from typing import Iterator, Optional


class Coloring(enum.Enum):
    """When to color diagnostic output."""

    AUTO = "auto"
    ALWAYS = "always"
    NEVER = "never"

    @classmethod
    def parse(cls, text: str) -> Coloring:
        """Parse ``auto``, ``always`` or ``never``."""
        for member in cls:
            if member.value == text:
                return member
        raise ValueError(f"must be auto, always, or never, but found `{text}`")


class _State:
    coloring: Coloring = Coloring.AUTO
    verbose: bool = False
    error: bool = False
    warn: bool = False


def init_coloring() -> None:
    """Turn coloring off when stderr is not a terminal."""
    if not sys.stderr.isatty():
        _State.coloring = Coloring.NEVER


def set_coloring(color: Optional[str]) -> None:
    """Apply ``--color`` or, if not given, ``CARGO_TERM_COLOR``."""
    if color is not None:
        try:
            new = Coloring.parse(color)
        except ValueError as e:
            raise ValueError(f"argument for --color {e}") from None
    else:
        env = os.environ.get("CARGO_TERM_COLOR")
        if env is not None:
            try:
                new = Coloring.parse(env)
            except ValueError as e:
                raise ValueError(f"CARGO_TERM_COLOR {e}") from None
        else:
            new = Coloring.AUTO
    if new is Coloring.AUTO and _State.coloring is Coloring.NEVER:
        # Keep the decision made by init_coloring.
        return
    _State.coloring = new


def is_verbose() -> bool:
    return _State.verbose


def set_verbose(value: bool) -> None:
    _State.verbose = value


@contextmanager
def scoped_verbose(value: bool) -> Iterator[None]:
    """Set verbosity for the duration of the block, then restore it."""
    previous = _State.verbose
    _State.verbose = value
    try:
        yield
    finally:
        _State.verbose = previous


def had_error() -> bool:
    """Whether an error has been reported."""
    return _State.error


def had_warning() -> bool:
    """Whether a warning has been reported."""
    return _State.warn


_RED = "31"
_YELLOW = "33"


def _use_color() -> bool:
    if _State.coloring is Coloring.ALWAYS:
        return True
    if _State.coloring is Coloring.NEVER:
        return False
    return sys.stderr.isatty()


def _print_status(status: str, color: Optional[str], msg: str) -> None:
    if _use_color():
        fg = f"\x1b[{color}m" if color else ""
        prefix = f"\x1b[1m{fg}{status}\x1b[0m\x1b[1m:\x1b[0m "
    else:
        prefix = f"{status}: "
    sys.stderr.write(f"{prefix}{msg}\n")
    sys.stderr.flush()


def error(msg: str) -> None:
    _State.error = True
    _print_status("error", _RED, msg)


def warn(msg: str) -> None:
    _State.warn = True
    _print_status("warning", _YELLOW, msg)


def info(msg: str) -> None:
    _print_status("info", None, msg)


class LogGroup(enum.Enum):
    """How to group the output of each command."""

    NONE = "none"
    GITHUB_ACTIONS = "github-actions"

    @classmethod
    def auto(cls) -> LogGroup:
        """GitHub Actions grouping when running there, otherwise none."""
        return cls.GITHUB_ACTIONS if "GITHUB_ACTIONS" in os.environ else cls.NONE

    @classmethod
    def parse(cls, text: str) -> LogGroup:
        for member in cls:
            if member.value == text:
                return member
        raise ValueError(
            f"argument for --log-group must be none or github-actions, but found `{text}`"
        )

    @contextmanager
    def group(self, msg: str) -> Iterator[None]:
        """Announce ``msg``; under GitHub Actions, wrap the block in a log group."""
        if self is LogGroup.GITHUB_ACTIONS:
            print(f"::group::{msg}", flush=True)
            try:
                yield
            finally:
                print("::endgroup::", flush=True)
        else:
            info(msg)
            yield