"""
Unit tests for the generation orchestrator and the streaming accumulator.

Run with:
    pytest tests/test_generator.py -v
"""

import threading

import pytest

from aicommits.generator import (
    CommitMessageGenerator, GenerationConfig, GenerationResult, dedupe, sanitize,
)
from aicommits.git.analyzer import StagedDiff
from aicommits.llm.base import CompletionRequest, EmptyResultError, Message, TransportError
from aicommits.prompts.builder import COMMIT_SYSTEM_PROMPT
from aicommits.streaming import StreamAccumulator

STAGED = StagedDiff(files=["src/app.py"], diff="diff --git a/src/app.py b/src/app.py\n+print('hi')\n")


def _is_subject(request: CompletionRequest) -> bool:
    return request.messages[0].content == COMMIT_SYSTEM_PROMPT


# ---------------------------------------------------------------------------
# Sanitizing
# ---------------------------------------------------------------------------

class TestSanitize:

    @pytest.mark.parametrize("raw, expected", [
        ("Add login flow.", "Add login flow"),
        ("  Add login flow  ", "Add login flow"),
        ("Add login\nflow", "Add loginflow"),
        ("Bump to v1.2.", "Bump to v1.2"),
        ("Add ellipsis...", "Add ellipsis..."),
        ("Fix (scope).", "Fix (scope)."),
    ])
    def test_sanitize(self, raw, expected):
        assert sanitize(raw) == expected

    def test_line_breaks_are_removed_not_replaced(self):
        assert sanitize("fix: a\r\nb") == "fix: ab"

    def test_dedupe_keeps_first_occurrence_order(self):
        assert dedupe(["b", "a", "b", "c", "a"]) == ["b", "a", "c"]


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------

class TestCommitMessageGenerator:

    def test_nothing_staged_makes_no_provider_call(self, scripted_client):
        client = scripted_client(replies=lambda r: ["unused"])
        generator = CommitMessageGenerator(client, "test-model")

        for staged in (None, StagedDiff(files=[], diff="")):
            result = generator.generate(staged)
            assert result.nothing_staged is True
            assert result.subjects == []
        assert client.requests == []

    def test_subject_and_body_requests(self, scripted_client):
        client = scripted_client(replies=lambda r: ["fix: typo."] if _is_subject(r) else ["* fix typo"])
        config = GenerationConfig(locale="de", max_length=50, commit_type="conventional")
        generator = CommitMessageGenerator(client, "test-model", config, recent_commits=["Add cache"])

        result = generator.generate(STAGED)

        assert result.subjects == ["fix: typo"]
        assert result.bodies == ["* fix typo"]
        subject_request = next(r for r in client.requests if _is_subject(r))
        body_request = next(r for r in client.requests if not _is_subject(r))
        assert [m.role for m in subject_request.messages] == ["system", "user", "user"]
        assert "Message language: de" in subject_request.messages[1].content
        assert "maximum of 50 characters" in subject_request.messages[1].content
        assert '"feat": "A new feature"' in subject_request.messages[1].content
        assert "- Add cache" in subject_request.messages[1].content
        assert subject_request.messages[2].content == STAGED.diff
        assert [m.role for m in body_request.messages] == ["system", "user"]
        assert body_request.messages[1].content == STAGED.diff

    def test_generate_two_with_duplicates(self, scripted_client):
        def replies(request):
            if _is_subject(request):
                return ["Add parser.", "Add parser"]
            return ["* one", "* one"]

        client = scripted_client(replies=replies)
        generator = CommitMessageGenerator(client, "test-model", GenerationConfig(generate=2))

        result = generator.generate(STAGED)

        assert result.subjects == ["Add parser"]
        # Bodies are not deduplicated
        assert result.bodies == ["* one", "* one"]
        assert all(r.n == 2 for r in client.requests)

    def test_requests_run_concurrently(self, scripted_client):
        both_started = threading.Barrier(2, timeout=5)

        def replies(request):
            # Deadlocks (and times out) unless both requests are in flight at once
            both_started.wait()
            return ["Add x"] if _is_subject(request) else ["* x"]

        generator = CommitMessageGenerator(scripted_client(replies=replies), "test-model")
        assert generator.generate(STAGED).subjects == ["Add x"]

    def test_provider_error_propagates(self, scripted_client):
        client = scripted_client(replies=lambda r: TransportError("boom") if _is_subject(r) else ["* x"])
        with pytest.raises(TransportError):
            CommitMessageGenerator(client, "test-model").generate(STAGED)

    def test_zero_candidates_is_empty_not_error(self, scripted_client):
        client = scripted_client(replies=lambda r: [])
        result = CommitMessageGenerator(client, "test-model").generate(STAGED)

        assert result.subjects == []
        assert result.nothing_staged is False
        with pytest.raises(EmptyResultError):
            result.first()


class TestGenerationResult:

    def test_first_without_body(self):
        assert GenerationResult(subjects=["Add x"]).first() == ("Add x", "")

    def test_first(self):
        assert GenerationResult(subjects=["a", "b"], bodies=["* a", "* b"]).first() == ("a", "* a")


class TestGenerateStreaming:

    def test_streams_both_channels(self, scripted_client):
        client = scripted_client(chunks=lambda r: ["Add ", "cache."] if _is_subject(r) else ["* cache ", "layer\n"])
        subject_deltas, body_deltas = [], []

        result = CommitMessageGenerator(client, "test-model").generate_streaming(
            STAGED, subject_deltas.append, body_deltas.append,
        )

        assert result.subjects == ["Add cache"]
        assert result.bodies == ["* cache layer"]
        assert subject_deltas == ["Add ", "cache."]
        assert body_deltas == ["* cache ", "layer\n"]

    def test_nothing_staged(self, scripted_client):
        client = scripted_client(chunks=lambda r: ["x"])
        result = CommitMessageGenerator(client, "test-model").generate_streaming(None)
        assert result.nothing_staged is True
        assert client.requests == []


# ---------------------------------------------------------------------------
# Streaming accumulator
# ---------------------------------------------------------------------------

class TestStreamAccumulator:

    def _request(self, text):
        return CompletionRequest(model="m", messages=[Message("user", text)])

    def test_returns_full_text_per_channel(self, scripted_client):
        client = scripted_client(chunks=lambda r: list(r.messages[0].content))
        texts = StreamAccumulator(client).run({
            "a": (self._request("abc"), None),
            "b": (self._request("xy"), None),
        })
        assert texts == {"a": "abc", "b": "xy"}

    def test_failure_raised_after_all_channels_finish(self, scripted_client):
        finished = []

        def chunks(request):
            if request.messages[0].content == "bad":
                return ["x", TransportError("lost")]
            return ["ok"]

        client = scripted_client(chunks=chunks)
        with pytest.raises(TransportError):
            StreamAccumulator(client).run({
                "bad": (self._request("bad"), None),
                "good": (self._request("good"), finished.append),
            })
        assert finished == ["ok"]
