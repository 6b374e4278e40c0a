"""Building, displaying and running external commands."""

from __future__ import annotations

import os
import signal
import subprocess
from pathlib import Path
from typing import Iterable, Optional, Sequence, Union

from cargo_hack import term

Arg = Union[str, "os.PathLike[str]", "os.PathLike[bytes]", bytes]


def _to_str(arg: Arg) -> str:
    return os.fsdecode(os.fspath(arg))


def _describe_status(returncode: int) -> str:
    if returncode < 0:
        number = -returncode
        try:
            name = signal.Signals(number).name
        except ValueError:
            return f"signal: {number}"
        return f"signal: {number} ({name})"
    return f"exit status: {returncode}"


class ProcessError(Exception):
    """A command could not be started or did not exit successfully."""

    def __init__(
        self,
        message: str,
        returncode: Optional[int] = None,
        stdout: Optional[bytes] = None,
        stderr: Optional[bytes] = None,
    ) -> None:
        super().__init__(message)
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr

    @classmethod
    def build(
        cls,
        message: str,
        returncode: Optional[int] = None,
        output: Optional[subprocess.CompletedProcess] = None,
    ) -> ProcessError:
        """Compose the message from the status and any captured output."""
        if returncode is None:
            message += " (never executed)"
        else:
            message += f" ({_describe_status(returncode)})"
        stdout = stderr = None
        if output is not None:
            stdout, stderr = output.stdout, output.stderr
            for label, data in (("stdout", stdout), ("stderr", stderr)):
                if not data:
                    continue
                try:
                    text = data.decode("utf-8")
                except UnicodeDecodeError:
                    continue
                if text.strip():
                    message += f"\n--- {label}\n{text}"
        return cls(message, returncode, stdout, stderr)


class ProcessBuilder:
    """A command line assembled in the order::

        <program> <leading_args> <propagated_leading_args> <args>
            [--features <features>] [-- <trailing_args>]
    """

    def __init__(self, program: Arg) -> None:
        self.program = _to_str(program)
        self._propagated_leading_args: Sequence[str] = ()
        self._trailing_args: Sequence[str] = ()
        self._leading_args: list[str] = []
        self._args: list[str] = []
        self._features: list[str] = []
        self.strip_program_path = False

    def arg(self, arg: Arg) -> ProcessBuilder:
        """Add one argument."""
        self._args.append(_to_str(arg))
        return self

    def args(self, args: Iterable[Arg]) -> ProcessBuilder:
        """Add several arguments."""
        self._args.extend(_to_str(a) for a in args)
        return self

    def leading_arg(self, arg: str) -> ProcessBuilder:
        """Add an argument that goes right after the program."""
        self._leading_args.append(str(arg))
        return self

    def propagate(
        self, leading_args: Sequence[str], trailing_args: Sequence[str]
    ) -> ProcessBuilder:
        """Set the user's arguments passed before and after ``--``."""
        self._propagated_leading_args = tuple(leading_args)
        self._trailing_args = tuple(trailing_args)
        return self

    def append_features(self, features: Iterable[object]) -> None:
        """Add features to the ``--features`` list."""
        self._features.extend(str(f) for f in features)

    def copy(self) -> ProcessBuilder:
        """Return an independent copy of this builder."""
        other = ProcessBuilder(self.program)
        other._propagated_leading_args = self._propagated_leading_args
        other._trailing_args = self._trailing_args
        other._leading_args = list(self._leading_args)
        other._args = list(self._args)
        other._features = list(self._features)
        other.strip_program_path = self.strip_program_path
        return other

    def _features_text(self) -> str:
        return ",".join(self._features)

    def command_line(self) -> list[str]:
        """The full argument vector, program first."""
        line = [self.program, *self._leading_args, *self._propagated_leading_args]
        line.extend(self._args)
        if self._features:
            line += ["--features", self._features_text()]
        if self._trailing_args:
            line.append("--")
            line.extend(self._trailing_args)
        return line

    def format(self, alternate: bool = False) -> str:
        """Render the command in backticks; ``alternate`` shows full paths."""
        detailed = alternate or term.is_verbose()
        if not self.strip_program_path and detailed:
            program = self.program
        else:
            program = Path(self.program).stem
        parts = [program, *self._leading_args, *self._propagated_leading_args]
        args = iter(self._args)
        for arg in args:
            if arg == "--manifest-path":
                path = Path(next(args))
                # Displaying --manifest-path is redundant unless asked for.
                if detailed:
                    try:
                        path = path.relative_to(os.getcwd())
                    except ValueError:
                        pass
                    parts.append(f"--manifest-path {path}")
            else:
                parts.append(arg)
        if self._features:
            parts.append(f"--features {self._features_text()}")
        if self._trailing_args:
            parts.append("--")
            parts.extend(self._trailing_args)
        return "`" + " ".join(parts) + "`"

    def __str__(self) -> str:
        return self.format(False)

    def __format__(self, spec: str) -> str:
        if spec == "#":
            return self.format(True)
        return format(self.format(False), spec)

    def __repr__(self) -> str:
        return f"ProcessBuilder({self.command_line()!r})"

    def run(self) -> None:
        """Run the command, raising ``ProcessError`` on failure."""
        try:
            completed = subprocess.run(self.command_line(), check=False)
        except OSError as e:
            raise ProcessError.build(f"could not execute process {self:#}") from e
        if completed.returncode != 0:
            raise ProcessError.build(
                f"process didn't exit successfully: {self:#}", completed.returncode
            )

    def run_with_output(self) -> subprocess.CompletedProcess:
        """Run the command capturing its output, raising on failure."""
        try:
            completed = subprocess.run(self.command_line(), capture_output=True, check=False)
        except OSError as e:
            raise ProcessError.build(f"could not execute process {self:#}") from e
        if completed.returncode != 0:
            raise ProcessError.build(
                f"process didn't exit successfully: {self:#}",
                completed.returncode,
                completed,
            )
        return completed

    def read(self) -> str:
        """Run the command and return its stdout without trailing newlines."""
        stdout = self.run_with_output().stdout
        try:
            text = stdout.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ProcessError(f"failed to parse output from {self:#}") from e
        return text.rstrip("\r\n")


def cmd(program: Arg, *args: Arg) -> ProcessBuilder:
    """Create a builder for ``program`` with the given arguments."""
    return ProcessBuilder(program).args(args)