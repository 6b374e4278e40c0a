"""Restoring files that were modified temporarily."""

from __future__ import annotations

import itertools
import signal
import sys
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Union

from cargo_hack import term

PathLike = Union[str, Path]


@dataclass
class _File:
    text: str
    path: Path

    def restore(self) -> None:
        if term.is_verbose():
            term.info(f"restoring {self.path}")
        with open(self.path, "w", encoding="utf-8", newline="") as f:
            f.write(self.text)


class RestoreManager:
    """Keeps the original text of files so they can be written back."""

    def __init__(self, needs_restore: bool) -> None:
        self.needs_restore = needs_restore
        self._files: dict[int, _File] = {}
        self._keys = itertools.count()
        self._lock = threading.Lock()

    def register(self, text: str, path: PathLike) -> Handle:
        """Register ``path`` for restoring, if restoring is needed at all."""
        if not self.needs_restore:
            return Handle(None, None)
        return self.register_always(text, path)

    def register_always(self, text: str, path: PathLike) -> Handle:
        """Register ``path`` for restoring regardless of ``needs_restore``."""
        with self._lock:
            key = next(self._keys)
            self._files[key] = _File(str(text), Path(path))
        return Handle(self, key)

    def _restore(self, key: int) -> None:
        with self._lock:
            file = self._files.pop(key, None)
            if file is not None:
                file.restore()

    def restore_all(self) -> None:
        """Write back every registered file, reporting failures."""
        with self._lock:
            files, self._files = self._files, {}
            for file in files.values():
                try:
                    file.restore()
                except OSError as e:
                    term.error(str(e))

    def install_signal_handler(self) -> Any:
        """Restore all files and exit on Ctrl-C; return the previous handler."""

        def handler(signum: int, frame: object) -> None:
            self.restore_all()
            sys.exit(1 if term.had_error() else 0)

        return signal.signal(signal.SIGINT, handler)


class Handle:
    """Restores one registered file when closed or when its block ends."""

    def __init__(self, manager: Optional[RestoreManager], key: Optional[int]) -> None:
        self._manager = manager
        self._key = key

    def close(self) -> None:
        """Restore the file now; later calls do nothing."""
        manager, key = self._manager, self._key
        self._manager = self._key = None
        if manager is not None and key is not None:
            manager._restore(key)

    def __enter__(self) -> Handle:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()