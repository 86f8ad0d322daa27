"""Diff Processor - Classify files and slice unified diffs for LLM context."""

from dataclasses import dataclass
from enum import IntEnum
import re


class Priority(IntEnum):
    """File category, ordered by relevance to a reviewer."""
    SOURCE = 1
    TEST = 2
    CONFIG = 3
    DOCS = 4
    NOISE = 99


PRIORITY_LABELS = {
    Priority.SOURCE: "Source",
    Priority.TEST: "Tests",
    Priority.CONFIG: "Configuration",
    Priority.DOCS: "Documentation",
    Priority.NOISE: "Generated",
}


@dataclass
class ProcessorConfig:
    """Tunable settings for diff processing."""
    max_lines_per_file: int = 200
    max_diff_chars: int = 50000


class DiffProcessor:
    """Slices raw git diffs into per-file pieces and groups paths by kind."""

    NOISE_PATTERNS: list[str] = [
        r'package-lock\.json$', r'yarn\.lock$', r'pnpm-lock\.yaml$',
        r'poetry\.lock$', r'Cargo\.lock$', r'Gemfile\.lock$', r'composer\.lock$',
        r'\.min\.js$', r'\.min\.css$', r'\.map$', r'\.pyc$', r'__pycache__',
        r'\.class$', r'dist/', r'build/', r'\.egg-info/',
        r'\.idea/', r'\.vscode/', r'\.DS_Store$',
        r'node_modules/', r'vendor/', r'venv/', r'\.venv/',
    ]

    TEST_PATTERNS: list[str] = [
        r'test[s]?/', r'spec[s]?/', r'__tests__/',
        r'\.test\.', r'\.spec\.', r'_test\.', r'_spec\.', r'(^|/)test_[^/]+$',
        r'Test\.java$', r'Tests\.java$',
    ]

    CONFIG_PATTERNS: list[str] = [
        r'\.json$', r'\.ya?ml$', r'\.toml$', r'\.ini$', r'\.env',
        r'\.config\.', r'config/', r'settings/', r'\.github/',
        r'Makefile$', r'Dockerfile$', r'docker-compose',
    ]

    DOCS_PATTERNS: list[str] = [
        r'\.md$', r'\.rst$', r'\.txt$', r'docs/',
        r'README', r'CHANGELOG', r'LICENSE',
    ]

    def __init__(self, config: ProcessorConfig | None = None):
        self.config = config or ProcessorConfig()
        self._noise_re = [re.compile(p, re.IGNORECASE) for p in self.NOISE_PATTERNS]
        self._test_re = [re.compile(p, re.IGNORECASE) for p in self.TEST_PATTERNS]
        self._config_re = [re.compile(p, re.IGNORECASE) for p in self.CONFIG_PATTERNS]
        self._docs_re = [re.compile(p, re.IGNORECASE) for p in self.DOCS_PATTERNS]

    def get_priority(self, path: str) -> Priority:
        if any(p.search(path) for p in self._noise_re):
            return Priority.NOISE
        if any(p.search(path) for p in self._test_re):
            return Priority.TEST
        if any(p.search(path) for p in self._docs_re):
            return Priority.DOCS
        if any(p.search(path) for p in self._config_re):
            return Priority.CONFIG
        return Priority.SOURCE

    def categorize(self, paths: list[str]) -> dict[str, list[str]]:
        """Group paths under a label, most relevant category first."""
        grouped: dict[Priority, list[str]] = {}
        for path in paths:
            grouped.setdefault(self.get_priority(path), []).append(path)
        return {PRIORITY_LABELS[p]: grouped[p] for p in sorted(grouped)}

    def count_changes(self, diff: str) -> tuple[int, int]:
        """Added and removed line counts, ignoring file headers."""
        additions = deletions = 0
        for line in diff.split('\n'):
            if line.startswith('+') and not line.startswith('+++'):
                additions += 1
            elif line.startswith('-') and not line.startswith('---'):
                deletions += 1
        return additions, deletions

    def split_diff_by_file(self, diff: str) -> dict[str, str]:
        files = {}
        current_file = None
        current_lines = []

        for line in diff.split('\n'):
            if line.startswith('diff --git'):
                if current_file:
                    files[current_file] = '\n'.join(current_lines)
                match = re.search(r'diff --git a/(.+?) b/', line)
                if match:
                    current_file = match.group(1)
                    current_lines = [line]
            elif current_file:
                current_lines.append(line)

        if current_file:
            files[current_file] = '\n'.join(current_lines)

        return files

    def truncate_file_diff(self, diff: str, path: str) -> str:
        lines = diff.split('\n')
        if len(lines) <= self.config.max_lines_per_file:
            return diff

        truncated_lines = lines[:self.config.max_lines_per_file]
        truncated_lines.append(f"\n... [{len(lines) - self.config.max_lines_per_file} more lines truncated from {path}]")
        return '\n'.join(truncated_lines)

    def truncate_diff(self, diff: str) -> str:
        limit = self.config.max_diff_chars
        if len(diff) <= limit:
            return diff
        return f"{diff[:limit]}\n\n[DIFF TRUNCATED - {len(diff) - limit} more characters not shown for brevity]"
