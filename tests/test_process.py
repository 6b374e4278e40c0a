import os
import sys
from pathlib import Path

import pytest

from cargo_hack import term
from cargo_hack.process import ProcessBuilder, ProcessError, cmd


def test_command_line_order():
    b = cmd("cargo", "build")
    b.leading_arg("+1.70")
    b.propagate(["-v"], ["--nocapture"])
    b.append_features(["a", "b"])
    assert b.command_line() == [
        "cargo", "+1.70", "-v", "build", "--features", "a,b", "--", "--nocapture"
    ]


def test_plain_command_line_has_no_extras():
    b = cmd("cargo", "check")
    assert b.command_line() == ["cargo", "check"]


def test_args_accept_paths():
    b = ProcessBuilder(Path("prog")).args([Path("a"), "b"])
    assert b.command_line() == ["prog", "a", "b"]


def test_display_uses_program_stem():
    b = cmd("/usr/bin/cargo", "build")
    b.append_features(["a"])
    assert str(b) == "`cargo build --features a`"


def test_alternate_shows_full_program():
    b = cmd("/usr/bin/cargo", "build")
    assert b.format(True).startswith("`/usr/bin/cargo build")
    assert f"{b:#}" == b.format(True)


def test_verbose_shows_full_program():
    b = cmd("/usr/bin/cargo", "build")
    with term.scoped_verbose(True):
        assert str(b).startswith("`/usr/bin/cargo")
    assert str(b).startswith("`cargo")


def test_strip_program_path_wins_over_alternate():
    b = cmd("/usr/bin/cargo", "build")
    b.strip_program_path = True
    assert b.format(True).startswith("`cargo build")


def test_manifest_path_only_in_alternate():
    manifest = os.path.join(os.getcwd(), "x", "Cargo.toml")
    b = cmd("cargo", "check", "--manifest-path", manifest)
    assert "--manifest-path" not in str(b)
    relative = os.path.join("x", "Cargo.toml")
    assert f"--manifest-path {relative}" in b.format(True)


def test_trailing_args_rendered_after_separator():
    b = cmd("cargo", "test")
    b.propagate([], ["--ignored"])
    assert b.format().endswith(" -- --ignored`")


def test_copy_is_independent():
    b = cmd("cargo", "build")
    c = b.copy()
    c.arg("--release")
    c.append_features(["x"])
    assert b.command_line() == ["cargo", "build"]
    assert c.command_line()[:3] == ["cargo", "build", "--release"]
    assert "--features" in c.command_line()


def test_read_returns_stdout():
    b = cmd(sys.executable, "-c", "print('hi')")
    assert b.read() == "hi"


def test_read_strips_trailing_newlines():
    script = "import sys; sys.stdout.buffer.write(b'x\\r\\n\\n')"
    assert cmd(sys.executable, "-c", script).read() == "x"


def test_run_with_output_success():
    out = cmd(sys.executable, "-c", "print('ok')").run_with_output()
    assert out.returncode == 0
    assert out.stdout.strip() == b"ok"


def test_run_failure_raises():
    b = cmd(sys.executable, "-c", "raise SystemExit(3)")
    with pytest.raises(ProcessError, match="process didn't exit successfully") as exc:
        b.run()
    assert exc.value.returncode == 3


def test_run_with_output_failure_includes_output():
    script = "import sys; print('out-text'); sys.stderr.write('err-text'); sys.exit(2)"
    with pytest.raises(ProcessError) as exc:
        cmd(sys.executable, "-c", script).run_with_output()
    message = str(exc.value)
    assert "\n--- stdout\n" in message
    assert "out-text" in message
    assert "\n--- stderr\n" in message
    assert "err-text" in message
    assert exc.value.returncode == 2


def test_missing_program_never_executed():
    with pytest.raises(ProcessError) as exc:
        cmd("definitely-not-a-real-program-xyz").run()
    assert "could not execute process" in str(exc.value)
    assert "(never executed)" in str(exc.value)
    assert exc.value.returncode is None