"""
Unit tests for the external editor round-trip.

The editor is replaced by a fake subprocess.run that edits (or fails to
edit) the temp file, so no real editor is launched.

Run with:
    pytest tests/test_editor.py -v
"""

import os
import subprocess

import pytest

from aicommits import editor
from aicommits.editor import edit_text, get_editor, temporary_message_file


@pytest.fixture
def fake_editor(monkeypatch):
    """Install a fake editor; returns a dict describing what it saw."""
    seen = {}

    def install(new_text=None, error=None):
        def run(cmd, check):
            path = cmd[-1]
            seen["cmd"] = cmd
            seen["path"] = path
            with open(path, encoding="utf-8") as f:
                seen["initial"] = f.read()
            if error:
                raise error
            if new_text is not None:
                with open(path, "w", encoding="utf-8") as f:
                    f.write(new_text)
            return subprocess.CompletedProcess(cmd, 0)

        monkeypatch.setattr(editor.subprocess, "run", run)
        return seen

    monkeypatch.setenv("EDITOR", "myeditor --wait")
    monkeypatch.delenv("VISUAL", raising=False)
    return install


# ---------------------------------------------------------------------------
# Editor selection
# ---------------------------------------------------------------------------

class TestGetEditor:

    def test_visual_wins(self, monkeypatch):
        monkeypatch.setenv("VISUAL", "code --wait")
        monkeypatch.setenv("EDITOR", "nano")
        assert get_editor() == "code --wait"

    def test_editor(self, monkeypatch):
        monkeypatch.delenv("VISUAL", raising=False)
        monkeypatch.setenv("EDITOR", "nano")
        assert get_editor() == "nano"

    def test_fallback(self, monkeypatch):
        monkeypatch.delenv("VISUAL", raising=False)
        monkeypatch.delenv("EDITOR", raising=False)
        assert get_editor() in ("vi", "notepad")


# ---------------------------------------------------------------------------
# Round-trip
# ---------------------------------------------------------------------------

class TestEditText:

    def test_returns_edited_text_and_removes_file(self, fake_editor):
        seen = fake_editor("Add cache\n\n* with eviction\n")

        assert edit_text("Add cache\n\n* body") == "Add cache\n\n* with eviction\n"
        assert seen["initial"] == "Add cache\n\n* body"
        assert seen["cmd"][:2] == ["myeditor", "--wait"]
        assert seen["path"].endswith(".gitcommit")
        assert not os.path.exists(seen["path"])

    def test_unchanged_returns_none_and_removes_file(self, fake_editor):
        seen = fake_editor("Add cache\n\n* body\n\n")

        assert edit_text("Add cache\n\n* body") is None
        assert not os.path.exists(seen["path"])

    def test_untouched_file_returns_none(self, fake_editor):
        seen = fake_editor()
        assert edit_text("Add cache") is None
        assert not os.path.exists(seen["path"])

    def test_editor_failure_returns_none_and_removes_file(self, fake_editor):
        seen = fake_editor(error=subprocess.CalledProcessError(1, "myeditor"))

        assert edit_text("Add cache") is None
        assert not os.path.exists(seen["path"])

    def test_missing_editor_binary(self, fake_editor):
        seen = fake_editor(error=FileNotFoundError("myeditor"))
        assert edit_text("Add cache") is None
        assert not os.path.exists(seen["path"])


class TestTemporaryMessageFile:

    def test_file_removed_when_body_raises(self):
        with pytest.raises(RuntimeError):
            with temporary_message_file("text") as path:
                with open(path, encoding="utf-8") as f:
                    assert f.read() == "text"
                raise RuntimeError("boom")
        assert not os.path.exists(path)
