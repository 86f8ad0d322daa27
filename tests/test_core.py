"""
Unit tests for core modules: DiffProcessor, PromptBuilder, Config, GitAnalyzer.

Run with:
    pytest tests/test_core.py -v
"""

import json
import logging

import pytest

from aicommits.config import Config, ConfigManager
from aicommits.generator import GenerationConfig
from aicommits.git.analyzer import GitAnalyzer, GitError, StagedDiff
from aicommits.git.diff_processor import DiffProcessor, ProcessorConfig, Priority
from aicommits.logging_utils import verbosity_to_level
from aicommits.prompts.builder import COMMIT_SYSTEM_PROMPT, PromptBuilder


# ---------------------------------------------------------------------------
# DiffProcessor - file classification
# ---------------------------------------------------------------------------

class TestDiffProcessorClassify:
    """DiffProcessor.get_priority() file classification."""

    @pytest.fixture
    def processor(self):
        return DiffProcessor()

    @pytest.mark.parametrize("path", [
        "src/cli/main.py",
        "app/models/user.rb",
        "lib/utils.ts",
        "index.js",
    ])
    def test_source_files(self, processor, path):
        assert processor.get_priority(path) == Priority.SOURCE

    @pytest.mark.parametrize("path", [
        "package-lock.json",
        "yarn.lock",
        "poetry.lock",
        "dist/bundle.js",
        "node_modules/pkg/index.js",
        "__pycache__/mod.pyc",
    ])
    def test_noise_files(self, processor, path):
        assert processor.get_priority(path) == Priority.NOISE

    @pytest.mark.parametrize("path", [
        "tests/test_main.py",
        "spec/models/user_spec.rb",
        "src/utils.test.ts",
        "test_helpers.py",
        "UserTest.java",
    ])
    def test_test_files(self, processor, path):
        assert processor.get_priority(path) == Priority.TEST

    @pytest.mark.parametrize("path", [
        "settings.yaml",
        "pyproject.toml",
        ".github/workflows/ci.yml",
        "Dockerfile",
        "Makefile",
    ])
    def test_config_files(self, processor, path):
        assert processor.get_priority(path) == Priority.CONFIG

    @pytest.mark.parametrize("path", ["README.md", "docs/guide.rst", "LICENSE"])
    def test_docs_files(self, processor, path):
        assert processor.get_priority(path) == Priority.DOCS

    def test_categorize_orders_by_relevance(self, processor):
        grouped = processor.categorize(["README.md", "tests/test_app.py", "src/app.py", "src/util.py"])
        assert list(grouped) == ["Source", "Tests", "Documentation"]
        assert grouped["Source"] == ["src/app.py", "src/util.py"]


# ---------------------------------------------------------------------------
# DiffProcessor - diff slicing
# ---------------------------------------------------------------------------

class TestDiffSplitByFile:

    def test_splits_multi_file_diff(self):
        diff = (
            "diff --git a/src/foo.py b/src/foo.py\n"
            "+added line in foo\n"
            "diff --git a/src/bar.py b/src/bar.py\n"
            "+added line in bar\n"
        )
        result = DiffProcessor().split_diff_by_file(diff)

        assert list(result) == ["src/foo.py", "src/bar.py"]
        assert "added line in foo" in result["src/foo.py"]
        assert "added line in bar" not in result["src/foo.py"]
        assert "added line in bar" in result["src/bar.py"]

    def test_empty_diff(self):
        assert DiffProcessor().split_diff_by_file("") == {}


class TestDiffTruncation:

    def test_file_diff_truncated_by_lines(self):
        processor = DiffProcessor(ProcessorConfig(max_lines_per_file=3))
        result = processor.truncate_file_diff("a\nb\nc\nd\ne", "x.py")

        assert result.startswith("a\nb\nc\n")
        assert "2 more lines truncated from x.py" in result

    def test_short_diff_untouched(self):
        assert DiffProcessor().truncate_diff("+x") == "+x"

    def test_long_diff_truncated_by_chars(self):
        processor = DiffProcessor(ProcessorConfig(max_diff_chars=10))
        result = processor.truncate_diff("+" * 25)

        assert result.startswith("+" * 10)
        assert "[DIFF TRUNCATED - 15 more characters" in result

    def test_count_changes_ignores_headers(self):
        diff = "--- a/x.py\n+++ b/x.py\n+new\n+new2\n-old\n context"
        assert DiffProcessor().count_changes(diff) == (2, 1)


# ---------------------------------------------------------------------------
# PromptBuilder
# ---------------------------------------------------------------------------

class TestPromptBuilder:

    @pytest.fixture
    def builder(self):
        return PromptBuilder()

    def test_system_prompt(self, builder):
        assert builder.commit_system_prompt() == COMMIT_SYSTEM_PROMPT
        assert "imperative mood" in COMMIT_SYSTEM_PROMPT

    def test_subject_prompt_plain(self, builder):
        prompt = builder.subject_prompt("en", 72, "")
        assert "Message language: en" in prompt
        assert "maximum of 72 characters" in prompt
        assert prompt.endswith("<commit message>")
        assert "type-to-description" not in prompt

    def test_subject_prompt_conventional(self, builder):
        prompt = builder.subject_prompt("en", 72, "conventional")
        assert "type-to-description JSON" in prompt
        assert '"fix": "A bug fix"' in prompt
        assert prompt.endswith("<type>(<optional scope>): <commit message>")

    def test_subject_prompt_is_deterministic(self, builder):
        assert builder.subject_prompt("fr", 50, "conventional") == builder.subject_prompt("fr", 50, "conventional")

    def test_recent_commits_only_when_given(self, builder):
        assert "recent commit messages" not in builder.subject_prompt("en", 72, "", [])
        assert "- Fix login" in builder.subject_prompt("en", 72, "", ["Fix login"])

    def test_body_prompt(self, builder):
        prompt = builder.body_prompt("ja")
        assert "Message language: ja" in prompt
        assert "bullet points" in prompt

    def test_agent_prompts_name_finish_tool(self, builder):
        assert "finishCommitMessage" in builder.agent_system_prompt("finishCommitMessage")
        prompt = builder.agent_revision_prompt("Add x", "", "shorter", "en", 72, "", "finishCommitMessage")
        assert "USER REVISION REQUEST:\nshorter" in prompt
        assert "CURRENT COMMIT BODY:\n(empty)" in prompt


# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------

class TestConfig:

    def test_defaults(self):
        config = Config()
        assert config.provider == "openai"
        assert config.locale == "en"
        assert config.max_length == 140
        assert config.generate == 1
        assert config.type == ""

    def test_to_dict_excludes_none(self):
        d = Config().to_dict()
        assert "model" not in d
        assert "api_key" not in d
        assert "provider" in d

    def test_from_dict_ignores_unknown_keys(self):
        config = Config.from_dict({"provider": "claude", "unknown_key": "value"})
        assert config.provider == "claude"
        assert not hasattr(config, "unknown_key")

    @pytest.mark.parametrize("field, value, default", [
        ("provider", "gpt4", "openai"),
        ("locale", "english", "en"),
        ("type", "fancy", ""),
        ("max_length", -1, 140),
        ("generate", 6, 1),
        ("generate", 0, 1),
        ("context_lines", -3, 10),
        ("exclude", "*.md", []),
    ])
    def test_validate_resets_invalid_values(self, field, value, default):
        config = Config(**{field: value})
        warnings = config.validate()
        assert len(warnings) == 1
        assert getattr(config, field) == default

    def test_validate_valid_config_no_warnings(self):
        assert Config(provider="ollama", locale="de", type="conventional", generate=5).validate() == []

    def test_from_dict_triggers_validation(self, capsys):
        Config.from_dict({"provider": "invalid"})
        assert "Config warning" in capsys.readouterr().err

    def test_env_overrides(self):
        config = Config(provider="openai", model="gpt-4o").apply_env({
            "AIC_PROVIDER": "ollama",
            "AIC_MODEL": "qwen2.5",
            "AIC_API_KEY": "",
        })
        assert config.provider == "ollama"
        assert config.model == "qwen2.5"
        assert config.api_key is None

    def test_generation_config(self):
        config = Config(locale="de", max_length=60, type="conventional", generate=3, exclude=["*.md"])
        assert config.generation_config() == GenerationConfig(
            locale="de", max_length=60, commit_type="conventional", generate=3,
            context_lines=10, exclude=["*.md"],
        )


class TestConfigManager:

    @pytest.fixture(autouse=True)
    def isolated(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setattr("pathlib.Path.home", lambda: tmp_path / "fakehome")
        (tmp_path / "fakehome").mkdir()
        for var in ("AIC_PROVIDER", "AIC_MODEL", "AIC_API_KEY", "AIC_BASE_URL"):
            monkeypatch.delenv(var, raising=False)

    def test_load_returns_defaults_when_no_file(self):
        manager = ConfigManager()
        assert manager.load().provider == "openai"
        assert manager.get_config_path() is None

    def test_load_reads_local_file(self, tmp_path):
        (tmp_path / ".aicommitsrc").write_text(json.dumps({"provider": "claude", "locale": "de"}))

        manager = ConfigManager()
        config = manager.load()
        assert config.provider == "claude"
        assert config.locale == "de"
        assert manager.get_config_path() == tmp_path / ".aicommitsrc"

    def test_local_file_wins_over_home(self, tmp_path):
        (tmp_path / ".aicommitsrc").write_text(json.dumps({"model": "local"}))
        (tmp_path / "fakehome" / ".aicommitsrc").write_text(json.dumps({"model": "global"}))
        assert ConfigManager().load().model == "local"

    def test_env_overrides_file(self, tmp_path, monkeypatch):
        (tmp_path / ".aicommitsrc").write_text(json.dumps({"provider": "claude"}))
        monkeypatch.setenv("AIC_PROVIDER", "ollama")
        assert ConfigManager().load().provider == "ollama"

    def test_save_and_load_roundtrip(self, tmp_path):
        path = ConfigManager().save(Config(provider="ollama", generate=3), global_config=True)
        assert path == tmp_path / "fakehome" / ".aicommitsrc"

        loaded = ConfigManager().load()
        assert loaded.provider == "ollama"
        assert loaded.generate == 3

    @pytest.mark.parametrize("content", ["not valid json {{{", "[1, 2]"])
    def test_malformed_file_returns_defaults(self, tmp_path, content):
        (tmp_path / ".aicommitsrc").write_text(content)
        assert ConfigManager().load().provider == "openai"


# ---------------------------------------------------------------------------
# GitAnalyzer (git itself replaced by a scripted runner)
# ---------------------------------------------------------------------------

class ScriptedGit(GitAnalyzer):

    def __init__(self, outputs):
        # Skips the availability checks in GitAnalyzer.__init__
        self.outputs = outputs
        self.calls = []

    def _run_git(self, *args, input_text=None):
        self.calls.append((args, input_text))
        result = self.outputs.get(args[0], "")
        if isinstance(result, Exception):
            raise result
        return result


class TestGitAnalyzer:

    def test_staged_diff_excludes_lock_files(self):
        git = ScriptedGit({"diff": "src/app.py\n"})
        staged = git.get_staged_diff(exclude=["*.md"], context_lines=3)

        assert isinstance(staged, StagedDiff)
        assert staged.files == ["src/app.py"]
        name_args = git.calls[0][0]
        assert "--cached" in name_args
        assert ":(exclude)package-lock.json" in name_args
        assert ":(exclude)*.lock" in name_args
        assert ":(exclude)*.md" in name_args
        assert "-U3" in git.calls[1][0]

    def test_nothing_staged(self):
        assert ScriptedGit({"diff": "\n"}).get_staged_diff() is None

    def test_recent_subjects_skip_merges_and_reverts(self):
        log = "Add cache\nMerge branch 'main'\nRevert \"Add x\"\nrevert: undo y\nFix typo\n"
        assert ScriptedGit({"log": log}).recent_commit_subjects(count=5) == ["Add cache", "Fix typo"]

    def test_recent_subjects_without_history(self):
        assert ScriptedGit({"log": GitError("no commits")}).recent_commit_subjects() == []

    def test_commit_passes_message_on_stdin(self):
        git = ScriptedGit({})
        git.commit("Add cache\n\n* body")
        assert git.calls == [(("commit", "-F", "-"), "Add cache\n\n* body")]


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

class TestLogging:

    @pytest.mark.parametrize("verbosity, level", [
        (0, logging.WARNING),
        (1, logging.INFO),
        (2, logging.DEBUG),
        (5, logging.DEBUG),
    ])
    def test_verbosity_to_level(self, verbosity, level):
        assert verbosity_to_level(verbosity) == level
