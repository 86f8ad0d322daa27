"""Prompt Builder - Construct LLM prompts for commit and pull request generation."""

import json

from aicommits import COMMIT_TYPES

# Output format line per commit style
COMMIT_FORMATS = {
    '': '<commit message>',
    'conventional': '<type>(<optional scope>): <commit message>',
}

COMMIT_SYSTEM_PROMPT = " ".join([
    "You are a git commit message generator.",
    "Your task is to write clear, concise, and descriptive commit messages that follow best practices.",
    "Always use the imperative mood and focus on the intent and impact of the change.",
    'CRITICAL: When analyzing a git diff, only consider the actual changes made (lines starting with "+" for additions or "-" for deletions).',
    'Ignore context lines and existing code that appears in the diff without "+" or "-" prefixes.',
    "Do not include file names, code snippets, or unnecessary details.",
    "Never include explanations, commentary, or formatting outside the commit message itself.",
])


def _join(lines: list[str]) -> str:
    return "\n".join(line for line in lines if line)


class PromptBuilder:
    """Constructs prompts for subject lines, bodies, the agent and PRs.

    Every prompt is a pure function of its arguments so the subject and body
    requests can be built and sent independently.
    """

    def commit_system_prompt(self) -> str:
        return COMMIT_SYSTEM_PROMPT

    def subject_prompt(self, locale: str, max_length: int, commit_type: str,
                       recent_commits: list[str] | None = None) -> str:
        return _join([
            f"Message language: {locale}",
            f"Commit message must be a maximum of {max_length} characters.",
            'Write a clear, concise, and descriptive commit message in the imperative mood (e.g., "Add feature", "Fix bug").',
            "Focus on the main intent and impact of the change. If possible, briefly mention the reason or motivation.",
            "Do not include file names, code snippets, or restate the diff. Do not include unnecessary words or phrases.",
            'Avoid generic messages like "update code" or "fix issue".',
            "Return only the commit message, with no extra commentary or formatting.",
            self._type_section(commit_type),
            self._style_examples_section(recent_commits),
            f"The output response must be in format:\n{COMMIT_FORMATS.get(commit_type, COMMIT_FORMATS[''])}",
        ])

    def body_prompt(self, locale: str) -> str:
        return _join([
            "Generate a concise git commit body written in present tense for the following code diff with the given specifications below:",
            f"Message language: {locale}",
            'IMPORTANT: Only describe the changes that were ADDED in this diff. Focus only on lines that start with "+" (plus sign).',
            "Do not describe existing code, context lines, or unchanged code that appears in the diff.",
            "Use bullet points for the items.",
            'Return only the bullet points using the ascii character "*". Your entire response will be passed directly into git commit.',
        ])

    def _type_section(self, commit_type: str) -> str:
        if commit_type != 'conventional':
            return ""
        return (
            "Choose a type from the type-to-description JSON below that best describes the git diff:\n"
            + json.dumps(COMMIT_TYPES, indent=2)
        )

    def _style_examples_section(self, recent_commits: list[str] | None) -> str:
        if not recent_commits:
            return ""
        examples = "\n".join(f"- {subject}" for subject in recent_commits)
        return f"Match the style of these recent commit messages from this repository:\n{examples}"

    # -----------------------------------------------------------------
    # Agent
    # -----------------------------------------------------------------

    def agent_system_prompt(self, finish_tool: str) -> str:
        return "\n".join([
            "You are an AI agent that writes git commit messages by examining a repository through tools.",
            "",
            "Call the provided tools to inspect the staged changes. Call as many as you need.",
            "Focus on the actual changes made (lines with + or - in diffs).",
            'Use imperative mood (e.g., "Add feature", "Fix bug") and match the repository\'s commit style.',
            "",
            f'CRITICAL: When you are ready, you MUST call "{finish_tool}" with the final message and body.',
            "Do not write the commit message as plain text.",
        ])

    def agent_generate_prompt(self, locale: str, max_length: int, commit_type: str, finish_tool: str) -> str:
        lines = [
            "Please analyze the staged changes and generate an appropriate commit message.",
            f"Message language: {locale}",
            f"Commit message must be a maximum of {max_length} characters.",
            "",
            "Look at recent commit messages to learn the repository's conventions first.",
            f"Then call {finish_tool} with your final commit message and body.",
        ]
        if commit_type:
            lines.append(f"Follow the {commit_type} commit format.")
        return "\n".join(lines)

    def agent_revision_prompt(self, current_message: str, current_body: str, instruction: str,
                              locale: str, max_length: int, commit_type: str, finish_tool: str) -> str:
        lines = [
            "I need you to revise a commit message based on user feedback.",
            "",
            "CURRENT COMMIT MESSAGE:",
            current_message,
            "",
            "CURRENT COMMIT BODY:",
            current_body or "(empty)",
            "",
            "USER REVISION REQUEST:",
            instruction,
            "",
            "Use your tools to re-examine the staged changes and write a revised commit message that addresses the feedback.",
            f"Message language: {locale}",
            f"Commit message must be a maximum of {max_length} characters.",
            "",
            f"Then call {finish_tool} with your revised commit message and body.",
        ]
        if commit_type:
            lines.append(f"Follow the {commit_type} commit format.")
        return "\n".join(lines)

    # -----------------------------------------------------------------
    # Pull requests
    # -----------------------------------------------------------------

    def pr_system_prompt(self) -> str:
        return "\n".join([
            "You are an AI assistant that generates GitHub Pull Request titles and descriptions.",
            "Your task is to analyze code changes and create clear, informative PR content.",
            "",
            "GUIDELINES:",
            "- Generate a concise, descriptive PR title that summarizes the main change",
            "- Create a detailed description that explains what was changed and why",
            "- Highlight important changes like breaking changes or new features",
            "",
            "RESPONSE FORMAT:",
            "You must respond with a JSON object containing exactly two fields:",
            '{"title": "PR title here", "description": "PR description here"}',
            "",
            "The description should use markdown formatting and include:",
            "- A brief summary of what was changed",
            "- Key changes organized by category when applicable",
            "- Impact on users or other developers if relevant",
        ])

    def pr_user_prompt(self, base_branch: str, head_branch: str, file_count: int,
                       additions: int, deletions: int, categories: dict[str, list[str]], diff: str) -> str:
        by_category = "\n".join(f"- {name}: {len(files)} files" for name, files in categories.items())
        return "\n".join([
            f'Please generate a PR title and description for changes from branch "{head_branch}" to "{base_branch}".',
            "",
            "CHANGE SUMMARY:",
            f"- {file_count} files changed",
            f"- {additions} additions, {deletions} deletions",
            "",
            "FILES BY CATEGORY:",
            by_category,
            "",
            "DETAILED DIFF:",
            diff,
            "",
            "Focus on the main purpose and impact of these changes.",
        ])
