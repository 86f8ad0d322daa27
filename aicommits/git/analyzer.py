"""Git Analyzer - Extract staged changes and repository context from git."""

import logging
import subprocess
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

# Lock files never help the model and can be huge
ALWAYS_EXCLUDED = ['package-lock.json', 'pnpm-lock.yaml', '*.lock']


@dataclass
class StagedDiff:
    """Staged file paths plus their unified diff."""
    files: list[str] = field(default_factory=list)
    diff: str = ""

    @property
    def total_files(self) -> int:
        return len(self.files)

    @property
    def is_empty(self) -> bool:
        return len(self.files) == 0


class GitError(Exception):
    """Raised when git operations fail."""
    pass


def _exclude_pathspec(pattern: str) -> str:
    return f":(exclude){pattern}"


class GitAnalyzer:
    """Reads staged changes and history from the current repository."""

    def __init__(self):
        self._verify_git_available()
        self._verify_in_repo()

    def _run_git(self, *args: str, input_text: str | None = None) -> str:
        """Run a git command and return stdout."""
        logger.debug("git %s", " ".join(args))
        try:
            result = subprocess.run(
                ['git', *args],
                capture_output=True,
                text=True,
                check=True,
                encoding='utf-8',
                errors='replace',
                input=input_text,
            )
            return result.stdout
        except subprocess.CalledProcessError as e:
            raise GitError(f"Git command failed: git {' '.join(args)}\n{e.stderr}")
        except FileNotFoundError:
            raise GitError("Git is not installed or not in PATH")

    def _verify_git_available(self) -> None:
        """Fail fast if git isn't available."""
        try:
            self._run_git('--version')
        except GitError:
            raise GitError("Git is not installed or not in PATH")

    def _verify_in_repo(self) -> None:
        """Fail fast if we're not in a git repository."""
        try:
            self._run_git('rev-parse', '--git-dir')
        except GitError:
            raise GitError("Not inside a git repository")

    def get_staged_diff(self, exclude: list[str] | None = None, context_lines: int = 10) -> StagedDiff | None:
        """Staged changes, or None when nothing is staged."""
        pathspecs = [_exclude_pathspec(p) for p in ALWAYS_EXCLUDED + list(exclude or [])]
        cached = ['--cached', '--diff-algorithm=minimal']

        names = self._run_git('diff', *cached, '--name-only', '--', '.', *pathspecs)
        files = [line for line in names.split('\n') if line.strip()]
        if not files:
            return None

        diff = self._run_git('diff', f'-U{context_lines}', *cached, '--', '.', *pathspecs)
        return StagedDiff(files=files, diff=diff)

    def recent_commit_subjects(self, count: int = 5) -> list[str]:
        """Recent subject lines, skipping merges and reverts."""
        try:
            output = self._run_git('log', f'--max-count={count * 3}', '--pretty=format:%s')
        except GitError:
            # Fresh repository without commits
            return []

        subjects = []
        for subject in output.split('\n'):
            lowered = subject.strip().lower()
            if not lowered or lowered.startswith(('merge', 'revert')) or 'revert:' in lowered:
                continue
            subjects.append(subject.strip())
        return subjects[:count]

    def read_staged_file(self, path: str) -> str:
        """Content of a file as it is in the index."""
        return self._run_git('show', f':{path}')

    def current_branch(self) -> str:
        return self._run_git('rev-parse', '--abbrev-ref', 'HEAD').strip()

    def default_branch(self) -> str:
        """origin's HEAD branch, falling back to main/master."""
        try:
            ref = self._run_git('symbolic-ref', '--short', 'refs/remotes/origin/HEAD').strip()
            return ref.split('/', 1)[1] if '/' in ref else ref
        except GitError:
            pass
        for candidate in ('main', 'master'):
            try:
                self._run_git('rev-parse', '--verify', '--quiet', candidate)
                return candidate
            except GitError:
                continue
        raise GitError("Could not determine the default branch. Pass --base explicitly.")

    def get_branch_diff(self, base: str, head: str, context_lines: int = 10) -> StagedDiff | None:
        """Changes on head since it diverged from base."""
        span = f'{base}...{head}'
        names = self._run_git('diff', '--name-only', span)
        files = [line for line in names.split('\n') if line.strip()]
        if not files:
            return None
        diff = self._run_git('diff', f'-U{context_lines}', span)
        return StagedDiff(files=files, diff=diff)

    def hooks_dir(self) -> str:
        """Where git looks for hooks; honours core.hooksPath."""
        return self._run_git('rev-parse', '--git-path', 'hooks').strip()

    def commit(self, message: str) -> None:
        self._run_git('commit', '-F', '-', input_text=message)
