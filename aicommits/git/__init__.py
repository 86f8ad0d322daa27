"""Git Operations Package"""

from aicommits.git.analyzer import GitAnalyzer, GitError, StagedDiff, ALWAYS_EXCLUDED
from aicommits.git.diff_processor import DiffProcessor, ProcessorConfig, Priority, PRIORITY_LABELS
from aicommits.git.hook import HookError, install_hook, uninstall_hook, should_generate, write_message

__all__ = [
    "GitAnalyzer",
    "GitError",
    "StagedDiff",
    "ALWAYS_EXCLUDED",
    "DiffProcessor",
    "ProcessorConfig",
    "Priority",
    "PRIORITY_LABELS",
    "HookError",
    "install_hook",
    "uninstall_hook",
    "should_generate",
    "write_message",
]
