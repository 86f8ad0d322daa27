"""External editor round-trip for commit messages."""

import contextlib
import logging
import os
import subprocess
import sys
import tempfile
from typing import Iterator

logger = logging.getLogger(__name__)


def get_editor() -> str:
    editor = os.environ.get('VISUAL') or os.environ.get('EDITOR')
    if not editor:
        editor = 'notepad' if sys.platform == 'win32' else 'vi'
    return editor


@contextlib.contextmanager
def temporary_message_file(content: str) -> Iterator[str]:
    """Write content to a temp .gitcommit file and always remove it afterwards."""
    tmp = tempfile.NamedTemporaryFile(mode='w', suffix='.gitcommit', prefix='aicommits-',
                                      delete=False, encoding='utf-8')
    try:
        tmp.write(content)
        tmp.close()
        yield tmp.name
    finally:
        tmp.close()
        try:
            os.unlink(tmp.name)
        except OSError as e:
            # Log so temp files don't silently accumulate
            logger.warning("Could not delete temp file %s: %s", tmp.name, e)


def edit_text(initial: str) -> str | None:
    """Open text in the user's editor.

    Returns the edited text, or None when nothing changed or the editor
    could not be run or read back.
    """
    editor = get_editor()
    with temporary_message_file(initial) as path:
        try:
            # EDITOR may carry flags, e.g. "code --wait"
            subprocess.run([*editor.split(), path], check=True)
            with open(path, 'r', encoding='utf-8') as f:
                edited = f.read()
        except (subprocess.CalledProcessError, OSError) as e:
            logger.warning("Editor '%s' failed: %s", editor, e)
            return None

    if edited.strip() == initial.strip():
        return None
    return edited
