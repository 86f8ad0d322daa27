"""Terminal output for aic: styled text, the message box, agent progress
and live stream echo.

Colour follows NO_COLOR / FORCE_COLOR and otherwise only reaches a real
terminal. Glyphs fall back to ASCII where the console cannot encode them.
"""

import os
import re
import shutil
import sys
import textwrap
import threading

from aicommits import COMMIT_TYPE_NAMES

_ANSI = {
    'reset': '\033[0m',
    'bold': '\033[1m',
    'dim': '\033[2m',
    'red': '\033[31m',
    'green': '\033[32m',
    'yellow': '\033[33m',
    'magenta': '\033[35m',
    'cyan': '\033[36m',
}


def _color_wanted() -> bool:
    if os.environ.get('NO_COLOR'):
        return False
    if os.environ.get('FORCE_COLOR'):
        return True
    if not getattr(sys.stdout, 'isatty', lambda: False)():
        return False
    if sys.platform != 'win32':
        return True
    # Older Windows consoles need VT processing switched on
    try:
        import ctypes
        kernel32 = ctypes.windll.kernel32
        return bool(kernel32.SetConsoleMode(kernel32.GetStdHandle(-11), 7))
    except (AttributeError, OSError):
        return False


def _can_encode(sample: str) -> bool:
    try:
        sample.encode(getattr(sys.stdout, 'encoding', None) or 'utf-8')
    except (UnicodeEncodeError, LookupError):
        return False
    return True


COLORS_ENABLED = _color_wanted()
UNICODE_ENABLED = _can_encode('✓✗→⚠┌─┐│└┘⠋')

CHECK, CROSS, ARROW, WARN = ('✓', '✗', '→', '⚠') if UNICODE_ENABLED else ('[OK]', '[X]', '->', '[!]')


def style(text: str, *names: str) -> str:
    if not COLORS_ENABLED or not names:
        return text
    return ''.join(_ANSI[n] for n in names) + text + _ANSI['reset']


def dim(text: str) -> str:
    return style(text, 'dim')


def bold(text: str) -> str:
    return style(text, 'bold')


def info(text: str) -> str:
    return style(text, 'cyan')


def print_success(message: str) -> None:
    print(f"{style(CHECK, 'green')} {message}")


def print_error(message: str) -> None:
    print(style(f"{CROSS} {message}", 'red'), file=sys.stderr)


def print_warning(message: str) -> None:
    print(style(f"{WARN} {message}", 'yellow'))


# ---------------------------------------------------------------------------
# Commit messages
# ---------------------------------------------------------------------------

TYPE_STYLES = {
    'feat': 'green',
    'fix': 'red',
    'refactor': 'yellow',
    'revert': 'yellow',
    'docs': 'cyan',
    'ci': 'cyan',
    'build': 'cyan',
    'test': 'magenta',
    'perf': 'green',
    'chore': 'dim',
    'style': 'dim',
}

_TYPE_PREFIX = re.compile(rf'^({"|".join(COMMIT_TYPE_NAMES)})(\([^)]*\))?(!?:)')


def colorize_commit_type(message: str) -> str:
    """Colour the conventional type(scope): prefix of a subject line."""
    match = _TYPE_PREFIX.match(message)
    if not match or not COLORS_ENABLED:
        return message
    prefix = match.group(0)
    return style(prefix, 'bold', TYPE_STYLES[match.group(1)]) + message[len(prefix):]


def box_lines(text: str, width: int, paint_first=None) -> list[str]:
    """Frame text in a box no wider than width, wrapping long lines.

    Continuation lines of a bullet keep the bullet's indent. paint_first
    styles the first line after padding, so escapes never skew the frame.
    """
    inner = max(width - 4, 20)
    lines = []
    for line in text.split('\n'):
        if len(line) <= inner:
            lines.append(line)
            continue
        indent = '  ' if line.lstrip().startswith(('- ', '* ')) else ''
        lines.extend(textwrap.wrap(line, width=inner, subsequent_indent=indent))

    span = max(len(line) for line in lines)
    if UNICODE_ENABLED:
        top, side, bottom = f"┌{'─' * (span + 2)}┐", '│', f"└{'─' * (span + 2)}┘"
    else:
        top = bottom = f"+{'-' * (span + 2)}+"
        side = '|'

    padded = [line.ljust(span) for line in lines]
    if paint_first is not None:
        padded[0] = paint_first(padded[0])

    framed = [dim(top)]
    framed.extend(f"{dim(side)} {line} {dim(side)}" for line in padded)
    framed.append(dim(bottom))
    return framed


def print_commit_message(message: str, body: str = "") -> None:
    """Show a subject and body the way git will record them."""
    columns = shutil.get_terminal_size((80, 24)).columns
    text = f"{message}\n\n{body}".strip()
    print()
    for line in box_lines(text, max(int(columns * 0.8), 60), paint_first=colorize_commit_type):
        print(line)


def format_candidate(message: str, option_num: int) -> str:
    return f"{info(f'[{option_num}]')} {colorize_commit_type(message)}"


# ---------------------------------------------------------------------------
# Agent progress
# ---------------------------------------------------------------------------

TOOL_LABELS = {
    'listStagedFiles': 'Listing staged files',
    'getRecentCommitMessageExamples': 'Reading recent commit messages',
    'readStagedFile': 'Reading',
    'readStagedFileDiffs': 'Reading diffs for',
    'finishCommitMessage': 'Finishing commit message',
}


def format_tool_step(kind: str, tool: str | None, payload=None) -> str | None:
    """One status line for an agent step; None when there is nothing to show."""
    if not tool:
        return None
    label = TOOL_LABELS.get(tool, tool)

    if kind == 'call':
        target = payload.get('filePath') or payload.get('filePaths') if isinstance(payload, dict) else None
        if isinstance(target, list):
            target = ', '.join(str(t) for t in target)
        return dim(f"  {ARROW} {label}{f' {target}' if target else ''}")

    if kind == 'result':
        if isinstance(payload, str) and payload.startswith('Error'):
            return style(f"  {CROSS} {payload.splitlines()[0]}", 'yellow')
        if isinstance(payload, (list, dict)):
            return dim(f"  {CHECK} {len(payload)} item(s)")
        return dim(f"  {CHECK} done")

    return None


def print_tool_step(step) -> None:
    """Progress observer for the agent loop; tolerates partial step objects."""
    line = format_tool_step(
        getattr(step, 'kind', ''),
        getattr(getattr(step, 'tool', None), 'value', None),
        getattr(step, 'payload', None),
    )
    if line:
        print(line)


# ---------------------------------------------------------------------------
# Live output
# ---------------------------------------------------------------------------

class DeltaPrinter:
    """Echoes stream fragments as they arrive.

    Streams run on worker threads, so writes are serialized.
    """

    def __init__(self, stream=None):
        self.stream = stream or sys.stdout
        self._lock = threading.Lock()

    def __call__(self, fragment: str) -> None:
        with self._lock:
            self.stream.write(fragment)
            self.stream.flush()


class Spinner:
    """Progress indicator while waiting on a provider. Silent when stdout is not a terminal."""

    FRAMES = '⠋⠙⠹⠸⠼⠴⠦⠧⠇⠏' if UNICODE_ENABLED else '-\\|/'
    INTERVAL = 0.08

    def __init__(self, label: str = ""):
        self.label = label
        self._done = threading.Event()
        self._worker = None

    def _run(self):
        frame = 0
        while not self._done.wait(self.INTERVAL if frame else 0):
            sys.stdout.write(f"\r\033[K{self.FRAMES[frame % len(self.FRAMES)]} {self.label}")
            sys.stdout.flush()
            frame += 1

    def __enter__(self):
        if sys.stdout.isatty():
            self._done.clear()
            self._worker = threading.Thread(target=self._run, daemon=True)
            self._worker.start()
        return self

    def __exit__(self, *exc):
        self._done.set()
        if self._worker is not None:
            self._worker.join()
            self._worker = None
            sys.stdout.write('\r\033[K')
            sys.stdout.flush()
        return False


__all__ = [
    "COLORS_ENABLED", "UNICODE_ENABLED", "CHECK", "CROSS", "ARROW", "WARN",
    "style", "dim", "bold", "info",
    "print_success", "print_error", "print_warning",
    "TYPE_STYLES", "colorize_commit_type", "box_lines", "print_commit_message", "format_candidate",
    "TOOL_LABELS", "format_tool_step", "print_tool_step",
    "DeltaPrinter", "Spinner",
]
