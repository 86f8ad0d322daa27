"""CLI Main Entry Point"""

import dataclasses
import logging
import sys

from aicommits.agent import CommitAgent, GitToolbox, RepositoryContext, make_regenerator
from aicommits.config import Config, load_config
from aicommits.editor import edit_text
from aicommits.generator import CommitMessageGenerator, GenerationResult
from aicommits.git import GitAnalyzer, GitError, StagedDiff, should_generate, write_message
from aicommits.llm import get_client, LLMClient, LLMError
from aicommits.logging_utils import configure_logging
from aicommits.output import (
    bold, dim, info, print_error, print_success, print_tool_step, print_warning, DeltaPrinter, Spinner,
)
from aicommits.pr import PRContentGenerator, PRRequest
from aicommits.revision import RevisionLoop, RevisionSession, join_message

from aicommits.cli.args import parse_args
from aicommits.cli.commands import (
    display_config, run_config_get, run_config_set, run_ignore, run_install_completion, run_install_hook,
    run_list_models, run_setup, run_uninstall_hook,
)
from aicommits.cli.utils import ask_instruction, choose_revision_action, display_options

logger = logging.getLogger(__name__)

MAX_FILES_SHOWN = 8


def _apply_overrides(args, config: Config) -> Config:
    """CLI flags win over environment variables and the config file."""
    if args.provider:
        config.provider = args.provider
    if args.model:
        config.model = args.model
    if args.generate:
        config.generate = args.generate
    if args.type:
        config.type = args.type
    if args.locale:
        config.locale = args.locale
    if args.exclude:
        config.exclude = [*config.exclude, *args.exclude]
    return config


def _create_client(config: Config) -> LLMClient:
    return get_client(provider=config.provider, model=config.model,
                      api_key=config.api_key, base_url=config.base_url)


def _display_file_list(staged: StagedDiff) -> None:
    print(bold(f"Staged changes ({staged.total_files} files):"))
    for path in staged.files[:MAX_FILES_SHOWN]:
        print(dim(f"  {path}"))
    remaining = staged.total_files - MAX_FILES_SHOWN
    if remaining > 0:
        print(dim(f"  ... and {remaining} more files"))


def _generate(args, generator: CommitMessageGenerator, staged: StagedDiff, client: LLMClient) -> GenerationResult:
    if args.stream:
        print(f"\n{dim('Subject:')} ", end='', flush=True)
        result = generator.generate_streaming(staged, on_subject_delta=DeltaPrinter())
        print()
        return result

    with Spinner(f"Generating with {client.name}"):
        return generator.generate(staged)


def _generate_with_agent(client: LLMClient, git: GitAnalyzer, staged: StagedDiff, gen_config,
                         is_interactive: bool) -> GenerationResult:
    toolbox = GitToolbox(RepositoryContext(diff=staged.diff, files=staged.files), git)
    agent = CommitAgent(client, client.model, toolbox, gen_config)
    if is_interactive:
        print(dim(f"\nInspecting changes with {client.name}"))
    result = agent.generate(on_step=print_tool_step if is_interactive else None)
    return GenerationResult(subjects=[result.message], bodies=[result.body] if result.body else [])


def _select_candidate(result: GenerationResult, is_interactive: bool) -> tuple[str, str] | None:
    """Pick a subject, then a body. None means cancelled.

    Subjects and bodies come from separate requests, so a body is never
    tied to the subject at the same position.
    """
    message, body = result.first()
    if not is_interactive:
        return message, body

    if len(result.subjects) > 1:
        idx = display_options(result.subjects)
        if idx is None:
            return None
        message = result.subjects[idx]

    bodies = list(dict.fromkeys(b for b in result.bodies if b))
    if len(bodies) > 1:
        print(dim("\nBodies:"))
        idx = display_options(bodies)
        if idx is None:
            return None
        body = bodies[idx]
    return message, body


def _is_interactive() -> bool:
    return sys.stdin.isatty() and sys.stdout.isatty()


def _generate_commit_flow(args, config: Config) -> int:
    """Main commit message generation flow.

    Returns:
        int: Exit code
    """
    is_interactive = _is_interactive()
    gen_config = config.generation_config()

    git = GitAnalyzer()
    staged = git.get_staged_diff(gen_config.exclude, gen_config.context_lines)
    if staged is None:
        print_error("No staged changes. Run 'git add' first.")
        return 1

    if is_interactive:
        _display_file_list(staged)

    client = _create_client(config)
    model = client.model
    logger.info("Using %s", client.name)

    if args.agent:
        result = _generate_with_agent(client, git, staged, gen_config, is_interactive)
    else:
        generator = CommitMessageGenerator(client, model, gen_config, recent_commits=git.recent_commit_subjects())
        result = _generate(args, generator, staged, client)
    if result.nothing_staged:
        print_error("No staged changes. Run 'git add' first.")
        return 1

    selected = _select_candidate(result, is_interactive)
    if selected is None:
        print(dim("Cancelled."))
        return 0
    message, body = selected

    # Pipe mode: output raw message and exit
    if not is_interactive:
        print(f"{message}\n\n{body}".strip())
        return 0

    loop = RevisionLoop(
        choose_action=choose_revision_action,
        ask_instruction=ask_instruction,
        edit_text=edit_text,
        regenerate=make_regenerator(client, model, git, gen_config, on_step=print_tool_step),
        max_rounds=None if args.unbounded else args.max_revisions,
        on_error=lambda e: print_error(str(e)),
        on_notice=print_warning,
    )
    outcome = loop.run(RevisionSession(message=message, body=body, diff=staged.diff, files=staged.files))

    if not outcome.accepted:
        print(dim("Cancelled."))
        return 0

    if args.dry_run:
        print(outcome.full_message)
        return 0

    git.commit(outcome.full_message)
    print_success(f"Committed: {outcome.message}")
    return 0


def _prepare_commit_msg_flow(args, config: Config) -> int:
    """Fill git's message file from the prepare-commit-msg hook.

    Failures are reported but never block the commit.
    """
    message_file, *rest = args.prepare_commit_msg
    source = rest[0] if rest else None
    if not should_generate(source):
        logger.debug("Commit source '%s' already has a message", source)
        return 0

    gen_config = dataclasses.replace(config.generation_config(), generate=1)
    try:
        git = GitAnalyzer()
        staged = git.get_staged_diff(gen_config.exclude, gen_config.context_lines)
        if staged is None:
            return 0
        client = _create_client(config)
        generator = CommitMessageGenerator(client, client.model, gen_config,
                                           recent_commits=git.recent_commit_subjects())
        result = generator.generate(staged)
        if result.nothing_staged:
            return 0
        message, body = result.first()
        write_message(message_file, join_message(message, body).strip())
    except (LLMError, GitError, OSError) as e:
        print_error(f"aic could not prepare the commit message: {e}")
    return 0


def _generate_pr_flow(args, config: Config) -> int:
    git = GitAnalyzer()
    base = args.base or git.default_branch()
    head = args.head or git.current_branch()

    changes = git.get_branch_diff(base, head, config.context_lines)
    if changes is None:
        print_error(f"No changes between {base} and {head}.")
        return 1

    client = _create_client(config)
    generator = PRContentGenerator(client, client.model)
    request = PRRequest(diff=changes.diff, files=changes.files, base_branch=base, head_branch=head)

    print(f"Describing {bold(str(changes.total_files))} files ({base}...{head}) using {info(client.name)}")
    if args.stream:
        content = generator.generate_streaming(request, on_delta=DeltaPrinter())
        print()
    else:
        with Spinner("Generating"):
            content = generator.generate(request)

    print(f"\n{bold('Title:')} {content.title}\n")
    print(content.description)
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the CLI."""
    args = parse_args(argv)
    configure_logging(args.verbose)

    # Subcommands that exit early
    if args.install_completion:
        return run_install_completion()
    if args.display_config:
        return display_config()
    if args.setup:
        return run_setup()
    if args.config_set:
        return run_config_set(args.config_set, local=args.local)
    if args.config_get:
        return run_config_get(args.config_get)
    if args.ignore_list or args.ignore_add or args.ignore_remove:
        return run_ignore(add=args.ignore_add, remove=args.ignore_remove)
    if args.install_hook:
        return run_install_hook()
    if args.uninstall_hook:
        return run_uninstall_hook()

    config = _apply_overrides(args, load_config())
    for warning_text in config.validate():
        print_warning(warning_text)

    if args.prepare_commit_msg:
        return _prepare_commit_msg_flow(args, config)
    if args.list_models:
        return run_list_models(config)

    try:
        if args.pr:
            return _generate_pr_flow(args, config)
        return _generate_commit_flow(args, config)
    except (LLMError, GitError) as e:
        print()
        print_error(str(e))
        return 1
    except KeyboardInterrupt:
        print()
        print_error("Cancelled")
        return 130


if __name__ == '__main__':
    sys.exit(main())
