import signal

import pytest

from cargo_hack.restore import RestoreManager


@pytest.fixture
def manifest(tmp_path):
    path = tmp_path / "Cargo.toml"
    path.write_text("original\n", encoding="utf-8")
    return path


def test_register_without_restore_leaves_file(manifest):
    manager = RestoreManager(needs_restore=False)
    handle = manager.register("original\n", manifest)
    manifest.write_text("changed", encoding="utf-8")
    handle.close()
    assert manifest.read_text(encoding="utf-8") == "changed"


def test_register_restores_on_close(manifest):
    manager = RestoreManager(needs_restore=True)
    handle = manager.register("original\n", manifest)
    manifest.write_text("changed", encoding="utf-8")
    handle.close()
    assert manifest.read_text(encoding="utf-8") == "original\n"


def test_register_always_ignores_flag(manifest):
    manager = RestoreManager(needs_restore=False)
    handle = manager.register_always("original\n", manifest)
    manifest.write_text("changed", encoding="utf-8")
    handle.close()
    assert manifest.read_text(encoding="utf-8") == "original\n"


def test_close_twice_is_noop(manifest):
    manager = RestoreManager(needs_restore=True)
    handle = manager.register("original\n", manifest)
    handle.close()
    manifest.write_text("changed again", encoding="utf-8")
    handle.close()
    assert manifest.read_text(encoding="utf-8") == "changed again"


def test_context_manager_restores(manifest):
    manager = RestoreManager(needs_restore=True)
    with manager.register("original\n", manifest):
        manifest.write_text("changed", encoding="utf-8")
    assert manifest.read_text(encoding="utf-8") == "original\n"


def test_restore_all_restores_every_file(tmp_path):
    first = tmp_path / "a.toml"
    second = tmp_path / "b.toml"
    manager = RestoreManager(needs_restore=True)
    manager.register("first", first)
    manager.register("second", second)
    first.write_text("x", encoding="utf-8")
    second.write_text("y", encoding="utf-8")
    manager.restore_all()
    assert first.read_text(encoding="utf-8") == "first"
    assert second.read_text(encoding="utf-8") == "second"


def test_handle_after_restore_all_is_noop(manifest):
    manager = RestoreManager(needs_restore=True)
    handle = manager.register("original\n", manifest)
    manager.restore_all()
    manifest.write_text("later", encoding="utf-8")
    handle.close()
    assert manifest.read_text(encoding="utf-8") == "later"


def test_restore_all_reports_failures(tmp_path, capsys):
    manager = RestoreManager(needs_restore=True)
    manager.register("text", tmp_path / "missing" / "Cargo.toml")
    manager.restore_all()
    assert "error: " in capsys.readouterr().err


def test_close_raises_on_write_failure(tmp_path):
    manager = RestoreManager(needs_restore=True)
    handle = manager.register("text", tmp_path / "missing" / "Cargo.toml")
    with pytest.raises(OSError):
        handle.close()


def test_signal_handler_restores_and_exits(manifest):
    manager = RestoreManager(needs_restore=True)
    manager.register("original\n", manifest)
    manifest.write_text("changed", encoding="utf-8")
    previous = manager.install_signal_handler()
    try:
        handler = signal.getsignal(signal.SIGINT)
        with pytest.raises(SystemExit) as exc:
            handler(signal.SIGINT, None)
    finally:
        signal.signal(signal.SIGINT, previous)
    assert exc.value.code in (0, 1)
    assert manifest.read_text(encoding="utf-8") == "original\n"