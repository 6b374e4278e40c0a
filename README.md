# cargo_hack

Building blocks for checking a Cargo workspace across feature combinations
and across a range of Rust toolchains. The package runs `cargo` and `rustup`
as external programs and provides the pieces around them.

## Modules

- `cargo_hack.version` — `Version` (`major.minor[.patch]`, with
  `Version.parse` and `strip_patch`), `MaybeVersion` (`MSRV`, `STABLE`) and
  `VersionRange`, parsed from `[start]..[=end]` with `VersionRange.parse`.
  A missing start means `MSRV`, a missing end means `STABLE`; `..=` without
  an end is rejected, and `<start>..<end>` is accepted with a deprecation
  warning.
- `cargo_hack.term` — `error`, `warn` and `info` status lines on standard
  error, optionally coloured (`Coloring`, `init_coloring`, `set_coloring`);
  a global verbosity flag (`is_verbose`, `set_verbose`, `scoped_verbose`);
  `had_error` and `had_warning`; and `LogGroup`, whose `group()` context
  manager prints `::group::`/`::endgroup::` markers under GitHub Actions and
  an `info` line otherwise.
- `cargo_hack.process` — `ProcessBuilder`, which assembles
  `<program> <leading args> <propagated args> <args> [--features a,b] [-- <trailing args>]`,
  displays it (`format`, `str()`, `f"{line:#}"` for full paths), and runs it
  with `run`, `run_with_output` or `read`, raising `ProcessError` on failure.
  `cmd(program, *args)` is a shorthand.
- `cargo_hack.restore` — `RestoreManager` remembers the original text of files
  (`register`, `register_always`) and writes it back when the returned
  `Handle` is closed or leaves its `with` block, on `restore_all`, or on
  Ctrl-C after `install_signal_handler`.
- `cargo_hack.manifest` — `Manifest.load` reads a `Cargo.toml` with `tomlkit`
  and parses the `[package]` fields older cargo does not report
  (`parse_package`, `ManifestPackage`) and the `[features]` table
  (`parse_features`). `remove_dev_deps` takes manifest text and returns it
  without `[dev-dependencies]` and `[target.<cfg>.dev-dependencies]`,
  keeping the rest of the layout. `remove_private_crates` drops private
  crates from `workspace.members` of a parsed document and adds any left over
  to `workspace.exclude`. Errors raise `ManifestError`.
- `cargo_hack.metadata` — `Metadata.from_json` / `Metadata.from_dict` parse
  `cargo metadata --format-version=1` output into `Package`, `Dependency`,
  `Resolve`, `Node`, `NodeDep` and `DepKindInfo`, honouring fields that older
  cargo versions omit. Errors raise `MetadataError`.
- `cargo_hack.rustup` — `Rustup.detect` and `rustup_minor_version`,
  `install_toolchain`, and `version_range`, which expands a `VersionRange`
  into concrete `1.x` versions a given step apart.
- `cargo_hack.runs` — `Progress`, `KeepGoing` (collects failed commands per
  package and formats a summary), `PackageVersion`, `assign_versions`
  (which toolchain versions each package runs on), `total_runs`,
  `needs_lockfile` and `print_command`.

## Installation

Install the package with your usual Python package installer. It needs
Python 3.10 or later and depends only on `tomlkit`.

## Examples

Versions and ranges:

```python
from cargo_hack.version import Version, VersionRange

print(Version.parse("1.70.2").strip_patch())      # 1.70
print(VersionRange.parse("1.60..=1.70"))          # 1.60..=1.70
```

Expanding a range into toolchain versions:

```python
from cargo_hack.rustup import version_range
from cargo_hack.version import Version, VersionRange

versions = version_range(VersionRange.parse("1.60..=1.62"), 1, [], Version(1, 80))
print([str(v) for v in versions])                 # ['1.60', '1.61', '1.62']
```

Removing dev-dependencies from manifest text:

```python
from cargo_hack.manifest import remove_dev_deps

text = "[package]\n[dev-dependencies]\nserde = \"1\"\n"
print(remove_dev_deps(text))                      # [package]
```

Reading workspace metadata:

```python
from cargo_hack.metadata import Metadata

metadata = Metadata.from_json(metadata_json_text, 80)
for package_id in metadata.workspace_members:
    package = metadata.packages[package_id]
    print(package.name, list(package.optional_deps()))
```

Building a command line:

```python
from cargo_hack.process import cmd

line = cmd("cargo", "check")
line.append_features(["a", "b"])
print(line.command_line())        # ['cargo', 'check', '--features', 'a,b']
```

Temporarily changing a file:

```python
from pathlib import Path
from cargo_hack.restore import RestoreManager

manager = RestoreManager(needs_restore=True)
path = Path("Cargo.toml")
original = path.read_text()
with manager.register(original, path):
    path.write_text(remove_dev_deps(original))
    ...  # run cargo here
# Cargo.toml holds its original text again
```

## Environment

- `CARGO_TERM_COLOR` (`auto`, `always`, `never`) sets colouring when
  `set_coloring` is called without an explicit choice.
- `GITHUB_ACTIONS` being set makes `LogGroup.auto()` return
  `LogGroup.GITHUB_ACTIONS`.

## What the package does not do

There is no command-line program: the package parses no command-line
options and has no entry point that walks a workspace and runs cargo for you.
It also does not compute feature combinations (each feature or the feature
powerset) for a package; `runs` only plans and counts runs once the number
of feature runs per package is known. Callers put these pieces together
themselves.