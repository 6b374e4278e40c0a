"""Building blocks for checking Cargo workspaces across feature combinations and toolchains."""

__version__ = "0.1.0"

__all__ = [
    "manifest",
    "metadata",
    "process",
    "restore",
    "runs",
    "rustup",
    "term",
    "version",
]