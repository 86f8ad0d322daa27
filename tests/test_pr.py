"""
Unit tests for pull request content generation.

Run with:
    pytest tests/test_pr.py -v
"""

import pytest

from aicommits.llm.base import EmptyResultError
from aicommits.pr import (
    FALLBACK_DESCRIPTION, FALLBACK_TITLE, PRContent, PRContentGenerator, PRRequest, parse_pr_response,
)

DIFF = (
    "diff --git a/src/api.py b/src/api.py\n"
    "--- a/src/api.py\n"
    "+++ b/src/api.py\n"
    "+def health():\n"
    "+    return 'ok'\n"
    "-def ping():\n"
    "diff --git a/tests/test_api.py b/tests/test_api.py\n"
    "+def test_health():\n"
)


@pytest.fixture
def request_():
    return PRRequest(diff=DIFF, files=["src/api.py", "tests/test_api.py"], base_branch="main", head_branch="feature/health")


# ---------------------------------------------------------------------------
# Response parsing
# ---------------------------------------------------------------------------

class TestParsePRResponse:

    def test_json(self):
        reply = '{"title": "Add health endpoint", "description": "## Summary\\n- new route"}'
        assert parse_pr_response(reply) == PRContent("Add health endpoint", "## Summary\n- new route")

    def test_json_wrapped_in_prose(self):
        reply = 'Here you go:\n```json\n{"title": "Add health", "description": "Adds it."}\n```'
        assert parse_pr_response(reply).title == "Add health"

    def test_line_fallback(self):
        content = parse_pr_response("Title: Add health endpoint\n\nAdds a route.\nAnd a test.")
        assert content.title == "Add health endpoint"
        assert content.description == "Adds a route.\nAnd a test."

    def test_json_missing_field_falls_back_to_lines(self):
        content = parse_pr_response('{"title": "Only title"}')
        assert content.title == '{"title": "Only title"}'
        assert content.description == FALLBACK_DESCRIPTION

    def test_empty_reply(self):
        assert parse_pr_response("") == PRContent(FALLBACK_TITLE, FALLBACK_DESCRIPTION)


# ---------------------------------------------------------------------------
# Generator
# ---------------------------------------------------------------------------

class TestPRContentGenerator:

    def test_prompt_contents(self, scripted_client, request_):
        client = scripted_client(replies=[['{"title": "Add health", "description": "Adds it."}']])
        content = PRContentGenerator(client, "test-model").generate(request_)

        assert content.title == "Add health"
        system, user = client.requests[0].messages
        assert system.role == "system"
        assert '"feature/health" to "main"' in user.content
        assert "- 2 files changed" in user.content
        assert "- 3 additions, 1 deletions" in user.content
        assert "- Source: 1 files" in user.content
        assert "- Tests: 1 files" in user.content
        assert "+def health():" in user.content

    def test_large_diff_is_truncated(self, scripted_client):
        big = "diff --git a/a.py b/a.py\n" + "+x\n" * 30000
        client = scripted_client(replies=[['{"title": "t", "description": "d"}']])
        PRContentGenerator(client, "test-model").generate(PRRequest(big, ["a.py"], "main", "dev"))

        assert "[DIFF TRUNCATED" in client.requests[0].messages[1].content

    def test_no_candidates(self, scripted_client, request_):
        client = scripted_client(replies=[[]])
        with pytest.raises(EmptyResultError):
            PRContentGenerator(client, "test-model").generate(request_)

    def test_streaming(self, scripted_client, request_):
        client = scripted_client(chunks=[['{"title": "Add ', 'health", "description": "Adds it."}']])
        deltas = []
        content = PRContentGenerator(client, "test-model").generate_streaming(request_, deltas.append)

        assert content == PRContent("Add health", "Adds it.")
        assert len(deltas) == 2
