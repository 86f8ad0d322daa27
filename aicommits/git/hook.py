"""prepare-commit-msg hook - install it, and fill git's message file."""

import logging
import stat
import sys
from pathlib import Path

from aicommits.git.analyzer import GitError

logger = logging.getLogger(__name__)

HOOK_NAME = "prepare-commit-msg"
HOOK_MARKER = "# Installed by aic. Remove with: aic --uninstall-hook"

HOOK_SCRIPT = """#!/bin/sh
{marker}
exec "{python}" -m aicommits.cli.main --prepare-commit-msg "$@"
"""

# git already has a message from these sources (-m, merge, squash, -c/--amend)
SKIP_SOURCES = ("message", "merge", "squash", "commit")


class HookError(GitError):
    """Raised when the hook cannot be installed or removed."""
    pass


def should_generate(source: str | None) -> bool:
    return source not in SKIP_SOURCES


def is_ours(path: Path) -> bool:
    try:
        return HOOK_MARKER in path.read_text(encoding="utf-8", errors="replace")
    except OSError:
        return False


def install_hook(hooks_dir, python: str | None = None) -> Path:
    """Write the hook script into hooks_dir and make it executable.

    A hook we did not write is never replaced.
    """
    path = Path(hooks_dir) / HOOK_NAME
    if path.exists() and not is_ours(path):
        raise HookError(f"{path} already exists and was not installed by aic. Remove it first.")

    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(HOOK_SCRIPT.format(marker=HOOK_MARKER, python=python or sys.executable), encoding="utf-8")
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    logger.debug("Installed %s", path)
    return path


def uninstall_hook(hooks_dir) -> Path | None:
    """Remove our hook. Returns the removed path, or None when none was installed."""
    path = Path(hooks_dir) / HOOK_NAME
    if not path.exists():
        return None
    if not is_ours(path):
        raise HookError(f"{path} was not installed by aic. Leaving it in place.")
    path.unlink()
    return path


def write_message(path, message: str) -> None:
    """Put message at the top of git's message file.

    Whatever git wrote there (the commented status template) stays below it.
    """
    target = Path(path)
    existing = target.read_text(encoding="utf-8") if target.exists() else ""
    text = message.rstrip("\n") + "\n"
    if existing.strip():
        text += "\n" + existing.lstrip("\n")
    target.write_text(text, encoding="utf-8")
