"""
Tests for editor/shell launching (subprocess is faked)
"""

import subprocess

import pytest

import editor_launcher
from editor_launcher import LauncherError, ProcessLauncher


@pytest.fixture
def runs(monkeypatch):
    calls = []

    def fake_run(command, cwd=None):
        calls.append((command, cwd))
        return subprocess.CompletedProcess(command, 0)
    monkeypatch.setattr(editor_launcher.subprocess, "run", fake_run)
    return calls


def test_editor_gets_all_files_in_one_call(tmp_path, runs):
    launcher = ProcessLauncher(editor="code --wait", shell="bash")
    launcher.open_editor([tmp_path / "a.c", tmp_path / "b.h"], tmp_path)
    launcher.spawn_shell(tmp_path)

    assert runs == [
        (["code", "--wait", str(tmp_path / "a.c"), str(tmp_path / "b.h")], str(tmp_path)),
        (["bash"], str(tmp_path)),
    ]


def test_defaults_come_from_environment(monkeypatch):
    monkeypatch.delenv("EDITOR", raising=False)
    monkeypatch.setenv("SHELL", "/bin/zsh")
    launcher = ProcessLauncher()
    assert launcher.editor == "vi"
    assert launcher.shell == "/bin/zsh"


def test_missing_program_raises_launcher_error(tmp_path, monkeypatch):
    def missing(command, cwd=None):
        raise FileNotFoundError(command[0])
    monkeypatch.setattr(editor_launcher.subprocess, "run", missing)

    with pytest.raises(LauncherError):
        ProcessLauncher(editor="no-such-editor").open_editor([], tmp_path)
