"""Shared fakes: a scripted LLM client and a stub git collaborator."""

import threading

import pytest

from aicommits.llm.base import LLMClient


class ScriptedClient(LLMClient):
    """LLMClient whose replies come from a list (consumed in order) or a callable.

    Any entry that is an Exception is raised instead of returned.
    """

    DEFAULT_BASE_URL = "https://api.example.test/v1"

    def __init__(self, replies=None, chunks=None, tool_replies=None, models=None, base_url=None):
        super().__init__(base_url)
        self.model = "test-model"
        self.replies = replies
        self.chunks = chunks
        self.tool_replies = tool_replies
        self.offered_tools = []
        self.models = models or []
        self.requests = []
        self._lock = threading.Lock()

    @property
    def name(self) -> str:
        return f"Scripted ({self.model})"

    def list_models(self):
        return list(self.models)

    def _next(self, source, request):
        with self._lock:
            self.requests.append(request)
            if not callable(source):
                result = source.pop(0)
        if callable(source):
            # Outside the lock so concurrent callers can overlap
            result = source(request)
        if isinstance(result, Exception):
            raise result
        return result

    def generate_completion(self, request):
        return list(self._next(self.replies, request))

    def generate_with_tools(self, request, tools):
        self.offered_tools.append(tools)
        return self._next(self.tool_replies, request)

    def _stream(self, request):
        for chunk in self._next(self.chunks, request):
            if isinstance(chunk, Exception):
                raise chunk
            yield chunk


class StubGit:
    """Stands in for GitAnalyzer in agent tests."""

    def __init__(self, files=None, subjects=None):
        self.files = files or {}
        self.subjects = subjects or []
        self.read_calls = []

    def read_staged_file(self, path):
        from aicommits.git.analyzer import GitError

        self.read_calls.append(path)
        if path not in self.files:
            raise GitError(f"Git command failed: git show :{path}")
        return self.files[path]

    def recent_commit_subjects(self, count=5):
        return self.subjects[:count]


@pytest.fixture
def scripted_client():
    """Factory for ScriptedClient."""
    return ScriptedClient


@pytest.fixture
def stub_git():
    return StubGit
