"""Agentic tool loop - the model inspects the staged changes through tools
before it commits to a final message.

Tools are offered through the provider's native tool calling. Each turn the
host runs every call the model made and answers it with a tool message.
The loop ends when the model calls finishCommitMessage, or fails once the
step budget is spent.
"""

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

from aicommits.generator import GenerationConfig
from aicommits.git.analyzer import GitAnalyzer, GitError
from aicommits.git.diff_processor import DiffProcessor
from aicommits.llm.base import (
    LLMClient, LLMError, CompletionRequest, Message, ToolCall, ToolDefinition, ValidationError,
)
from aicommits.prompts.builder import PromptBuilder

logger = logging.getLogger(__name__)

MAX_STEPS = 25


class ToolBudgetExceededError(LLMError):
    """The model never called the finish tool within the step budget."""
    pass


class ToolName(Enum):
    LIST_STAGED_FILES = "listStagedFiles"
    GET_RECENT_COMMIT_MESSAGE_EXAMPLES = "getRecentCommitMessageExamples"
    READ_STAGED_FILE = "readStagedFile"
    READ_STAGED_FILE_DIFFS = "readStagedFileDiffs"
    FINISH_COMMIT_MESSAGE = "finishCommitMessage"


@dataclass(frozen=True)
class ToolSpec:
    description: str
    properties: dict[str, dict] = field(default_factory=dict)
    required: tuple[str, ...] = ()

    def definition(self, name: ToolName) -> ToolDefinition:
        schema = {"type": "object", "properties": dict(self.properties)}
        if self.required:
            schema["required"] = list(self.required)
        return ToolDefinition(name=name.value, description=self.description, parameters=schema)


TOOL_SPECS: dict[ToolName, ToolSpec] = {
    ToolName.LIST_STAGED_FILES: ToolSpec(
        "List the paths of all files staged for commit.",
    ),
    ToolName.GET_RECENT_COMMIT_MESSAGE_EXAMPLES: ToolSpec(
        "Get recent commit subject lines from this repository to match its style.",
    ),
    ToolName.READ_STAGED_FILE: ToolSpec(
        "Read the staged content of one file.",
        {"filePath": {"type": "string", "description": "Path relative to the repository root."}},
        required=("filePath",),
    ),
    ToolName.READ_STAGED_FILE_DIFFS: ToolSpec(
        "Get the staged diff for each of the named files.",
        {"filePaths": {"type": "array", "items": {"type": "string"}, "description": "Paths to show."}},
        required=("filePaths",),
    ),
    ToolName.FINISH_COMMIT_MESSAGE: ToolSpec(
        "Submit the final commit message subject and body. Ends the session.",
        {
            "message": {"type": "string", "description": "The commit subject line."},
            "body": {"type": "string", "description": "The commit body; may be empty."},
        },
        required=("message",),
    ),
}


def tool_definitions() -> list[ToolDefinition]:
    return [TOOL_SPECS[name].definition(name) for name in ToolName]


@dataclass
class ToolStep:
    """One observable step: kind is "call" before execution, "result" after."""
    kind: str
    tool: ToolName
    payload: Any = None


@dataclass
class RepositoryContext:
    diff: str
    files: list[str]


@dataclass
class AgentResult:
    message: str
    body: str
    steps: list[ToolStep] = field(default_factory=list)


StepCallback = Callable[[ToolStep], None]


def _require_str(arguments: dict, key: str) -> str:
    value = arguments.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"Missing required argument '{key}'.")
    return value.strip()


class GitToolbox:
    """Runs the inspection tools against the staged changes.

    The finish tool is handled by the agent itself; every other tool must
    have a handler here.
    """

    def __init__(self, context: RepositoryContext, git: GitAnalyzer | None = None,
                 processor: DiffProcessor | None = None):
        self.context = context
        self.git = git
        self.processor = processor or DiffProcessor()
        self._file_diffs: dict[str, str] | None = None

        self.handlers: dict[ToolName, Callable[[dict], Any]] = {
            ToolName.LIST_STAGED_FILES: self.list_staged_files,
            ToolName.GET_RECENT_COMMIT_MESSAGE_EXAMPLES: self.recent_commit_examples,
            ToolName.READ_STAGED_FILE: self.read_staged_file,
            ToolName.READ_STAGED_FILE_DIFFS: self.read_staged_file_diffs,
        }
        missing = set(ToolName) - set(self.handlers) - {ToolName.FINISH_COMMIT_MESSAGE}
        if missing:
            raise TypeError(f"No handler for tools: {sorted(t.value for t in missing)}")

    def execute(self, tool: ToolName, arguments: dict) -> Any:
        return self.handlers[tool](arguments)

    def list_staged_files(self, arguments: dict) -> list[str]:
        return list(self.context.files)

    def recent_commit_examples(self, arguments: dict) -> list[str]:
        if self.git is None:
            return []
        return self.git.recent_commit_subjects(count=10)

    def read_staged_file(self, arguments: dict) -> str:
        path = _require_str(arguments, "filePath")
        if self.git is None:
            raise GitError("Repository access is not available.")
        return self.processor.truncate_file_diff(self.git.read_staged_file(path), path)

    def read_staged_file_diffs(self, arguments: dict) -> dict[str, str]:
        paths = arguments.get("filePaths")
        if isinstance(paths, str):
            paths = [paths]
        if not isinstance(paths, list) or not paths:
            raise ValidationError("Missing required argument 'filePaths'.")

        if self._file_diffs is None:
            self._file_diffs = self.processor.split_diff_by_file(self.context.diff)

        diffs = {}
        for path in paths:
            diff = self._file_diffs.get(str(path))
            if diff is None:
                diffs[str(path)] = f"No staged changes for {path}."
            else:
                diffs[str(path)] = self.processor.truncate_file_diff(diff, str(path))
        return diffs


def _as_text(result: Any) -> str:
    if isinstance(result, str):
        return result
    return json.dumps(result, indent=2, ensure_ascii=False)


class CommitAgent:
    """Multi-step commit message writer driven by tool calls."""

    def __init__(self, client: LLMClient, model: str, toolbox: GitToolbox,
                 config: GenerationConfig | None = None, max_steps: int = MAX_STEPS,
                 builder: PromptBuilder | None = None):
        self.client = client
        self.model = model
        self.toolbox = toolbox
        self.config = config or GenerationConfig()
        self.max_steps = max_steps
        self.builder = builder or PromptBuilder()

    def generate(self, on_step: StepCallback | None = None) -> AgentResult:
        c = self.config
        prompt = self.builder.agent_generate_prompt(
            c.locale, c.max_length, c.commit_type, ToolName.FINISH_COMMIT_MESSAGE.value,
        )
        return self._run(prompt, on_step)

    def revise(self, instruction: str, message: str, body: str,
               on_step: StepCallback | None = None) -> AgentResult:
        if not instruction or not instruction.strip():
            raise ValidationError("A revision instruction is required.")

        c = self.config
        prompt = self.builder.agent_revision_prompt(
            current_message=message,
            current_body=body,
            instruction=instruction.strip(),
            locale=c.locale,
            max_length=c.max_length,
            commit_type=c.commit_type,
            finish_tool=ToolName.FINISH_COMMIT_MESSAGE.value,
        )
        return self._run(prompt, on_step)

    def _run(self, task: str, on_step: StepCallback | None) -> AgentResult:
        notify = on_step or (lambda step: None)
        steps: list[ToolStep] = []
        finish = ToolName.FINISH_COMMIT_MESSAGE.value
        tools = tool_definitions()
        messages = [
            Message("system", self.builder.agent_system_prompt(finish)),
            Message("user", task),
        ]

        def record(step: ToolStep) -> None:
            steps.append(step)
            notify(step)

        for step_number in range(1, self.max_steps + 1):
            reply = self.client.generate_with_tools(
                CompletionRequest(messages=list(messages), model=self.model), tools,
            )

            if not reply.tool_calls:
                logger.debug("Step %d: no tool call", step_number)
                if reply.text:
                    messages.append(Message("assistant", reply.text))
                messages.append(Message("user", f"Use the tools. When the message is ready, call {finish}."))
                continue

            messages.append(Message("assistant", reply.text, tool_calls=list(reply.tool_calls)))
            for call in reply.tool_calls:
                result = self._handle_call(call, record)
                if isinstance(result, AgentResult):
                    result.steps = steps
                    return result
                messages.append(Message(
                    "tool", _as_text(result), tool_call_id=call.id, tool_name=call.name,
                ))

        raise ToolBudgetExceededError(
            f"The agent did not finish the commit message within {self.max_steps} steps."
        )

    def _handle_call(self, call: ToolCall, record: StepCallback) -> Any:
        """Run one call. Returns an AgentResult for a successful finish, else the tool result."""
        try:
            tool = ToolName(call.name)
        except ValueError:
            logger.debug("Unknown tool requested: %s", call.name)
            known = ", ".join(name.value for name in ToolName)
            return f"Error: unknown tool '{call.name}'. Available tools: {known}."

        logger.debug("Calling %s %s", tool.value, call.arguments)
        record(ToolStep("call", tool, call.arguments))

        if tool is ToolName.FINISH_COMMIT_MESSAGE:
            message = str(call.arguments.get("message") or "").strip()
            body = str(call.arguments.get("body") or "").strip()
            if message:
                record(ToolStep("result", tool, {"message": message, "body": body}))
                return AgentResult(message=message, body=body)
            result = "Error: 'message' must not be empty."
        else:
            result = self._execute(tool, call.arguments)

        record(ToolStep("result", tool, result))
        return result

    def _execute(self, tool: ToolName, arguments: dict) -> Any:
        try:
            return self.toolbox.execute(tool, arguments)
        except (GitError, ValidationError) as e:
            # The model sees the failure and can try something else
            logger.debug("Tool %s failed: %s", tool.value, e)
            return f"Error running {tool.value}: {e}"


def make_regenerator(client: LLMClient, model: str, git: GitAnalyzer | None,
                     config: GenerationConfig | None = None,
                     on_step: StepCallback | None = None):
    """Regenerate callback for RevisionLoop; a fresh agent run per round."""
    def regenerate(instruction, session):
        toolbox = GitToolbox(RepositoryContext(diff=session.diff, files=session.files), git)
        agent = CommitAgent(client, model, toolbox, config)
        result = agent.revise(instruction, session.message, session.body, on_step)
        return result.message, result.body
    return regenerate
